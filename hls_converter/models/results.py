"""
Data models for validation and conversion results.

This module contains dataclasses for representing alignment checks, the
outcome of a single job and the summary of a whole batch run.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass
class QualityMeasurement:
    """Reconstructed duration of one quality playlist."""

    quality: str
    playlist_path: Path
    duration: Optional[float] = None  # None when the playlist was unreadable
    segment_count: int = 0
    difference: Optional[float] = None
    aligned: bool = False
    error: Optional[str] = None


@dataclass
class ValidationResult:
    """Alignment of an existing output directory against its source."""

    output_dir: Path
    source_path: Optional[Path] = None
    tolerance: float = 2.0
    source_duration: Optional[float] = None
    qualities: list[QualityMeasurement] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any errors."""
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        """Check if there are any warnings."""
        return len(self.warnings) > 0

    @property
    def aligned(self) -> bool:
        """Every quality track is within tolerance of the source duration."""
        return (
            not self.has_errors
            and self.source_duration is not None
            and len(self.qualities) > 0
            and all(q.aligned for q in self.qualities)
        )

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)


class JobStatus(Enum):
    """Final classification of a job."""

    SUCCEEDED = "succeeded"
    PARTIAL = "partially succeeded"
    FAILED = "failed"
    SKIPPED = "skipped (aligned)"


@dataclass
class JobResult:
    """Result of converting one source video."""

    name: str
    source_path: Path
    output_dir: Path
    status: JobStatus
    succeeded_qualities: list[str] = field(default_factory=list)
    failed_qualities: dict[str, str] = field(default_factory=dict)  # quality -> reason
    manifest_path: Optional[Path] = None
    error: Optional[str] = None  # job-level failure
    aligned: Optional[bool] = None  # post-conversion alignment check
    duration: float = 0.0

    @property
    def is_success(self) -> bool:
        """Succeeded fully or partially."""
        return self.status in (JobStatus.SUCCEEDED, JobStatus.PARTIAL)

    @property
    def error_lines(self) -> list[str]:
        """Report lines for every failure recorded on this job."""
        lines = [
            f"{self.name} ({quality}): {reason}"
            for quality, reason in self.failed_qualities.items()
        ]
        if self.error:
            lines.append(f"{self.name}: {self.error}")
        return lines


@dataclass
class BatchReport:
    """Summary of a whole batch run."""

    output_dir: Path
    jobs: list[JobResult] = field(default_factory=list)
    total_files: int = 0
    not_scheduled: int = 0  # stopped by a health check
    halted: bool = False
    halt_reason: Optional[str] = None
    capability: str = "none"
    codec: str = "h264"
    elapsed: float = 0.0

    def add(self, result: JobResult) -> None:
        """Record a finished job."""
        self.jobs.append(result)

    @property
    def succeeded(self) -> int:
        """Jobs with at least one usable quality (partial included)."""
        return sum(1 for job in self.jobs if job.is_success)

    @property
    def partial(self) -> int:
        """Jobs where some but not all qualities failed."""
        return sum(1 for job in self.jobs if job.status == JobStatus.PARTIAL)

    @property
    def failed(self) -> int:
        """Jobs that produced nothing usable."""
        return sum(1 for job in self.jobs if job.status == JobStatus.FAILED)

    @property
    def skipped(self) -> int:
        """Jobs skipped because existing output was aligned."""
        return sum(1 for job in self.jobs if job.status == JobStatus.SKIPPED)

    @property
    def errors(self) -> list[str]:
        """Flat list of ``video (quality): reason`` strings."""
        lines: list[str] = []
        for job in self.jobs:
            lines.extend(job.error_lines)
        return lines

    @property
    def all_skipped(self) -> bool:
        """Every discovered video was already aligned."""
        return bool(self.jobs) and self.skipped == len(self.jobs)
