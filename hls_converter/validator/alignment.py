"""
Duration alignment of existing output and the resume pass.

An output directory is *aligned* when every quality playlist's summed segment
durations lie within the tolerance of the source video's duration. Alignment
is the only resume signal: aligned output is skipped, anything else is
removed and converted again from scratch.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from ..config import DEFAULT_SUPPORTED_FORMATS
from ..inspector import MediaInspector, find_source_video
from ..models import MASTER_PLAYLIST_NAME, PLAYLIST_NAME, QualityMeasurement, ValidationResult
from ..playlist import parse_media_playlist, validate_master_playlist
from ..utils import get_logger, log_performance

logger = get_logger(__name__)

DEFAULT_TOLERANCE = 2.0


class AlignmentValidator:
    """Compares source duration against reconstructed output duration."""

    def __init__(self, inspector: MediaInspector, tolerance: float = DEFAULT_TOLERANCE):
        """
        Initialize alignment validator.

        Args:
            inspector: Prober used for source durations
            tolerance: Allowed absolute difference in seconds
        """
        self.inspector = inspector
        self.tolerance = tolerance

    async def validate(self, source_path: Path, output_dir: Path) -> ValidationResult:
        """
        Validate one output directory against its source.

        Args:
            source_path: Source video
            output_dir: Video output directory holding one subdirectory per quality

        Returns:
            ValidationResult; ``aligned`` is True only if every quality is in tolerance
        """
        result = ValidationResult(
            output_dir=output_dir, source_path=source_path, tolerance=self.tolerance
        )

        result.source_duration = await self.inspector.probe_duration(source_path)
        if result.source_duration is None:
            result.add_error(f"Could not get source duration of {source_path.name}")
            return result

        quality_dirs = _quality_dirs(output_dir)
        if not quality_dirs:
            result.add_error("No quality directories found")
            return result

        for quality_dir in quality_dirs:
            measurement = self.measure(quality_dir, result.source_duration)
            result.qualities.append(measurement)

            if measurement.error:
                logger.warning(f"{output_dir.name}/{measurement.quality}: {measurement.error}")
            elif measurement.aligned:
                logger.debug(
                    f"{output_dir.name}/{measurement.quality} aligned "
                    f"(diff: {measurement.difference:.2f}s)"
                )
            else:
                logger.info(
                    f"{output_dir.name}/{measurement.quality} misaligned: "
                    f"{measurement.duration:.2f}s vs {result.source_duration:.2f}s"
                )

        # Informational only; alignment is decided by durations
        _, master_errors = validate_master_playlist(output_dir)
        for error in master_errors:
            result.add_warning(error)

        return result

    def measure(self, quality_dir: Path, source_duration: float) -> QualityMeasurement:
        """
        Measure one quality playlist against a source duration.

        An unreadable playlist yields a misaligned measurement with an error.
        """
        playlist_path = quality_dir / PLAYLIST_NAME
        measurement = QualityMeasurement(quality=quality_dir.name, playlist_path=playlist_path)

        try:
            info = parse_media_playlist(playlist_path)
        except (OSError, UnicodeDecodeError) as e:
            measurement.error = f"Could not read playlist: {e}"
            return measurement

        measurement.duration = info.total_duration
        measurement.segment_count = info.segment_count
        measurement.difference = abs(source_duration - info.total_duration)
        measurement.aligned = measurement.difference <= self.tolerance
        return measurement


def _quality_dirs(output_dir: Path) -> list[Path]:
    """Direct subdirectories of a video output directory."""
    try:
        return sorted(
            entry
            for entry in output_dir.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )
    except OSError as e:
        logger.warning(f"Could not list {output_dir}: {e}")
        return []


@dataclass
class ResumePlan:
    """Outcome of validating every existing output directory."""

    aligned: dict[Path, ValidationResult] = field(default_factory=dict)  # source -> result
    requeued: list[Path] = field(default_factory=list)  # sources to convert first
    unmatched: list[Path] = field(default_factory=list)  # output dirs without a source
    removed: list[Path] = field(default_factory=list)  # deleted output dirs
    results: list[ValidationResult] = field(default_factory=list)

    @property
    def validated_count(self) -> int:
        """Directories matched to a source and validated."""
        return len(self.results)

    def is_aligned(self, source_path: Path) -> bool:
        """Whether a source already has aligned output."""
        return source_path in self.aligned


@log_performance(logger)
async def plan_resume(
    validator: AlignmentValidator,
    output_root: Path,
    input_dir: Path,
    formats: Sequence[str] = DEFAULT_SUPPORTED_FORMATS,
    delete_misaligned: bool = True,
) -> ResumePlan:
    """
    Validate every existing output directory below ``output_root``.

    Runs sequentially and completes before any conversion is scheduled.

    Args:
        validator: Alignment validator
        output_root: Root of all output
        input_dir: Root of all sources
        formats: Source extensions used to map directories back to sources
        delete_misaligned: Remove misaligned directories (False for dry runs)

    Returns:
        ResumePlan
    """
    plan = ResumePlan()

    if not output_root.is_dir():
        logger.debug(f"No existing output under {output_root}")
        return plan

    output_dirs = sorted(master.parent for master in output_root.rglob(MASTER_PLAYLIST_NAME))
    if output_dirs:
        logger.info(f"Validating {len(output_dirs)} existing output director(ies)")

    for output_dir in output_dirs:
        source = find_source_video(output_dir, output_root, input_dir, formats)
        if source is None:
            logger.warning(f"Could not find source video for {output_dir}")
            plan.unmatched.append(output_dir)
            continue

        result = await validator.validate(source, output_dir)
        plan.results.append(result)

        if result.aligned:
            plan.aligned[source] = result
            continue

        if source not in plan.requeued:
            plan.requeued.append(source)

        if delete_misaligned:
            try:
                shutil.rmtree(output_dir)
            except OSError as e:
                logger.error(f"Could not remove misaligned output {output_dir}: {e}")
            else:
                plan.removed.append(output_dir)
                logger.info(f"Removed misaligned output: {output_dir}")

    logger.info(
        f"Validation summary: {plan.validated_count} validated, {len(plan.aligned)} aligned, "
        f"{len(plan.requeued)} misaligned, {len(plan.unmatched)} unmatched"
    )
    return plan
