"""
Batch conversion driver.

Ties the pipeline together for one input directory:

1. startup checks (encoder/prober present) and capability detection
2. resource-based batch size
3. discovery and the resume pass over existing output
4. per-video quality selection and job planning
5. batched conversion with health checks, then the final report
"""

import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config import ConverterConfig
from ..hardware import HardwareDetector, HardwareType, HealthMonitor
from ..inspector import MediaInspector, find_video_files
from ..models import BatchReport, ConversionJob, JobResult, JobStatus, ProgressListener
from ..planner import ExecutionStrategy, QualityMode, create_execution_strategy, select_qualities
from ..playlist import ManifestWriter, codec_signature
from ..transcoder import CodecPreference, CompressionLevel, EncodingOptions, build_command
from ..utils import ensure_directory, get_logger
from ..validator import AlignmentValidator, ResumePlan, plan_resume
from .orchestrator import ConversionOrchestrator, TaskRunner
from .subprocess import check_binary

logger = get_logger(__name__)

INSTALL_HINTS = {
    "win32": [
        "Download from: https://ffmpeg.org/download.html",
        "Or use: winget install ffmpeg",
        "Or use: choco install ffmpeg",
    ],
    "linux": [
        "Ubuntu/Debian: sudo apt update && sudo apt install ffmpeg",
        "CentOS/RHEL: sudo yum install ffmpeg",
        "Arch: sudo pacman -S ffmpeg",
    ],
    "darwin": [
        "brew install ffmpeg",
        "Pre-built binaries: https://evermeet.cx/ffmpeg/",
    ],
}


def install_hints(platform_name: str = sys.platform) -> list[str]:
    """Platform specific FFmpeg installation hints."""
    key = "linux" if platform_name.startswith("linux") else platform_name
    return INSTALL_HINTS.get(key, ["Please visit: https://ffmpeg.org/download.html"])


@dataclass
class PreviewEntry:
    """What a conversion run would do with one source video."""

    job: ConversionJob
    action: str  # "convert", "reconvert" or "skip"
    commands: list[list[str]] = field(default_factory=list)


@dataclass
class BatchPreview:
    """Dry-run plan of a whole batch."""

    input_dir: Path
    output_dir: Path
    capability: HardwareType
    strategy: ExecutionStrategy
    entries: list[PreviewEntry] = field(default_factory=list)
    unmatched: list[Path] = field(default_factory=list)

    @property
    def to_convert(self) -> int:
        """Videos that would be (re)converted."""
        return sum(1 for entry in self.entries if entry.action != "skip")


class BatchConverter:
    """
    Converts every video below an input directory.

    Collaborators (detector, inspector, encoder runner) can be injected so
    the whole flow runs without external binaries.
    """

    def __init__(
        self,
        config: ConverterConfig,
        input_dir: Path,
        listener: Optional[ProgressListener] = None,
        runner: Optional[TaskRunner] = None,
        detector: Optional[HardwareDetector] = None,
        inspector: Optional[MediaInspector] = None,
        health: Optional[HealthMonitor] = None,
    ):
        """
        Initialize the batch converter.

        Args:
            config: Effective configuration
            input_dir: Directory scanned for source videos
            listener: Receives progress events
            runner: Encoder runner passed to the orchestrator
            detector: Hardware detector (defaults to one using the configured ffmpeg)
            inspector: Prober (defaults to one using the configured ffprobe)
            health: Health monitor (defaults to one built from the config when enabled)
        """
        self.config = config
        self.input_dir = input_dir
        self.output_dir = config.resolve_output_dir(input_dir)
        self.listener = listener
        self.runner = runner
        self.detector = detector or HardwareDetector(
            ffmpeg_path=config.binaries.ffmpeg_path,
            timeout=config.hardware.probe_timeout,
        )
        self.inspector = inspector or MediaInspector(config.binaries.ffprobe_path)
        self.validator = AlignmentValidator(
            self.inspector, tolerance=config.validation.duration_tolerance
        )
        if health is None and config.performance.health_checks:
            health = HealthMonitor(
                min_free_disk_gb=config.performance.min_free_disk_gb,
                cpu_warning_percent=config.performance.cpu_warning_percent,
            )
        self.health = health

    # Startup

    async def check_binaries(self, require_ffmpeg: bool = True) -> dict[str, str]:
        """
        Verify the encoder and prober run.

        Returns:
            Mapping of binary path to version line

        Raises:
            BinaryNotFoundError: If a binary is missing or broken
        """
        binaries = [self.config.binaries.ffprobe_path]
        if require_ffmpeg:
            binaries.insert(0, self.config.binaries.ffmpeg_path)

        versions = {}
        for binary in binaries:
            versions[binary] = await check_binary(binary)
        return versions

    async def detect_capability(self) -> HardwareType:
        """Select the active hardware capability (never fails)."""
        return await self.detector.detect(self.config.hardware.prefer)

    def plan_concurrency(self) -> ExecutionStrategy:
        """Batch size from host resources or the configured override."""
        return create_execution_strategy(self.config.performance.max_concurrent)

    def encoding_options(self) -> EncodingOptions:
        """Encoding options from the configuration."""
        encoding = self.config.encoding
        return EncodingOptions(
            codec=CodecPreference.parse(encoding.codec),
            compression=CompressionLevel.parse(encoding.compression),
            use_crf=encoding.use_crf,
            crf=encoding.crf,
            adaptive_bitrate=encoding.adaptive_bitrate,
            hardware_decoding=self.config.hardware.hardware_decoding,
            web_optimized=encoding.web_optimized,
            segment_duration=self.config.hls.segment_duration,
            frame_rate=self.config.hls.frame_rate,
            ffmpeg_path=self.config.binaries.ffmpeg_path,
        )

    # Discovery and planning

    def discover(self) -> list[Path]:
        """Source videos below the input directory, sorted."""
        exclude = self.output_dir if _is_within(self.output_dir, self.input_dir) else None
        return find_video_files(
            self.input_dir, self.config.output.supported_formats, exclude=exclude
        )

    def output_dir_for(self, source_path: Path) -> Path:
        """``<output root>/<relative dir of source>/<stem>``."""
        try:
            relative_parent = source_path.parent.relative_to(self.input_dir)
        except ValueError:
            relative_parent = Path()
        return self.output_dir / relative_parent / source_path.stem

    async def plan_job(self, source_path: Path) -> ConversionJob:
        """Probe a source and select its qualities."""
        source = await self.inspector.probe(source_path)
        qualities = select_qualities(
            source.height,
            QualityMode(self.config.quality.mode),
            self.config.quality.min_ratio,
            self.config.quality.max_ratio,
        )
        logger.debug(
            f"{source.name} ({source.resolution}): {', '.join(q.name for q in qualities)}"
        )
        return ConversionJob.create(source, self.output_dir_for(source_path), qualities)

    async def resume_pass(self, delete_misaligned: bool) -> ResumePlan:
        """Validate existing output (skipped when disabled in the config)."""
        if not self.config.validation.validate_on_startup:
            return ResumePlan()
        return await plan_resume(
            self.validator,
            self.output_dir,
            self.input_dir,
            self.config.output.supported_formats,
            delete_misaligned=delete_misaligned,
        )

    @staticmethod
    def order_sources(videos: list[Path], plan: ResumePlan) -> list[Path]:
        """Re-queued sources first, then the rest in discovery order."""
        requeued = [path for path in plan.requeued if path in videos]
        return requeued + [path for path in videos if path not in requeued]

    # Runs

    async def run(self, check_binaries: bool = True) -> BatchReport:
        """
        Convert the whole input directory.

        Args:
            check_binaries: Run the startup binary checks

        Returns:
            BatchReport

        Raises:
            BinaryNotFoundError: If the encoder or prober is missing
        """
        started = time.time()

        if check_binaries:
            await self.check_binaries()

        capability = await self.detect_capability()
        strategy = self.plan_concurrency()
        options = self.encoding_options()

        report = BatchReport(
            output_dir=self.output_dir,
            capability=capability.value,
            codec=options.codec.value,
        )

        videos = self.discover()
        report.total_files = len(videos)
        if not videos:
            logger.warning(f"No video files found in {self.input_dir}")
            report.elapsed = time.time() - started
            return report

        plan = await self.resume_pass(delete_misaligned=True)

        jobs: list[ConversionJob] = []
        for source_path in self.order_sources(videos, plan):
            if plan.is_aligned(source_path):
                report.add(self._skipped_result(source_path))
                continue
            jobs.append(await self.plan_job(source_path))

        if report.skipped:
            logger.info(f"Skipping {report.skipped} already converted video(s)")

        orchestrator = ConversionOrchestrator(
            capability=capability,
            options=options,
            manifest_writer=ManifestWriter(codecs=codec_signature(options.codec.value)),
            validator=self.validator,
            file_validation=self.config.validation.file_validation,
            timeout=self.config.encoding.timeout,
            runner=self.runner,
            listener=self.listener,
        )

        if jobs:
            ensure_directory(self.output_dir)
            batch_run = await orchestrator.run_batches(
                jobs,
                strategy.concurrency,
                health=self.health,
                health_path=self.output_dir,
            )
            for result in batch_run.results:
                report.add(result)
            report.not_scheduled = batch_run.not_scheduled
            report.halted = batch_run.halted
            report.halt_reason = batch_run.halt_reason

        report.elapsed = time.time() - started
        logger.info(
            f"Finished: {report.succeeded} succeeded ({report.partial} partial), "
            f"{report.failed} failed, {report.skipped} skipped"
        )
        return report

    async def preview(self, check_binaries: bool = True) -> BatchPreview:
        """
        Plan the run without converting or deleting anything.

        Returns:
            BatchPreview with the action and encoder commands per video
        """
        if check_binaries:
            await self.check_binaries()

        capability = await self.detect_capability()
        strategy = self.plan_concurrency()
        options = self.encoding_options()
        plan = await self.resume_pass(delete_misaligned=False)

        preview = BatchPreview(
            input_dir=self.input_dir,
            output_dir=self.output_dir,
            capability=capability,
            strategy=strategy,
            unmatched=list(plan.unmatched),
        )

        for source_path in self.order_sources(self.discover(), plan):
            job = await self.plan_job(source_path)
            if plan.is_aligned(source_path):
                preview.entries.append(PreviewEntry(job=job, action="skip"))
                continue

            action = "reconvert" if source_path in plan.requeued else "convert"
            commands = [
                build_command(
                    capability,
                    options,
                    task.quality,
                    task.source.path,
                    task.playlist_path,
                    task.segment_pattern,
                )
                for task in job.tasks
            ]
            preview.entries.append(PreviewEntry(job=job, action=action, commands=commands))

        return preview

    async def validate_only(self, check_binaries: bool = True) -> ResumePlan:
        """
        Validate existing output without converting or deleting anything.

        Raises:
            BinaryNotFoundError: If the prober is missing
        """
        if check_binaries:
            await self.check_binaries(require_ffmpeg=False)

        return await plan_resume(
            self.validator,
            self.output_dir,
            self.input_dir,
            self.config.output.supported_formats,
            delete_misaligned=False,
        )

    def _skipped_result(self, source_path: Path) -> JobResult:
        """Result recorded for a video whose output is already aligned."""
        return JobResult(
            name=source_path.name,
            source_path=source_path,
            output_dir=self.output_dir_for(source_path),
            status=JobStatus.SKIPPED,
            aligned=True,
        )


def _is_within(path: Path, parent: Path) -> bool:
    """Whether ``path`` lies below ``parent``."""
    try:
        path.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False
