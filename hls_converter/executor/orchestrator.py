"""
Conversion orchestration.

A :class:`ConversionOrchestrator` converts one video at a time: every selected
quality is encoded concurrently, each task's failure is captured as its own
outcome, and the master playlist is written once all tasks have settled.
:meth:`ConversionOrchestrator.run_batches` drives many videos in fixed-size
batches; a batch fully settles before the next one starts.
"""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from ..hardware import HardwareType, HealthMonitor
from ..models import (
    ConversionJob,
    ConversionTask,
    Failed,
    JobResult,
    JobStatus,
    ProgressEvent,
    ProgressListener,
    ProgressStage,
    Succeeded,
)
from ..playlist import ManifestWriter
from ..transcoder import EncodingOptions, build_command, format_command
from ..utils import ensure_directory, get_logger
from ..validator import AlignmentValidator, check_playlist_exists, check_quality_playlist
from .subprocess import ProgressCallback, run_ffmpeg_async

logger = get_logger(__name__)

# (command, progress callback, expected duration) -> completes or raises
TaskRunner = Callable[[List[str], Optional[ProgressCallback], Optional[float]], Awaitable[object]]


@dataclass
class BatchRun:
    """Results of driving a list of jobs through the batches."""

    results: list[JobResult] = field(default_factory=list)
    not_scheduled: int = 0
    halted: bool = False
    halt_reason: Optional[str] = None


class ConversionOrchestrator:
    """
    Runs conversion jobs.

    Encoder processes are started through an injectable runner so the
    pipeline can be exercised without spawning FFmpeg.
    """

    def __init__(
        self,
        capability: HardwareType,
        options: EncodingOptions,
        manifest_writer: Optional[ManifestWriter] = None,
        validator: Optional[AlignmentValidator] = None,
        file_validation: bool = True,
        timeout: Optional[float] = None,
        runner: Optional[TaskRunner] = None,
        listener: Optional[ProgressListener] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            capability: Active hardware capability
            options: Encoding options shared by all tasks
            manifest_writer: Master playlist writer
            validator: Alignment validator for the post-conversion check (None = skip)
            file_validation: Check playlist and segments after each encode
            timeout: Per-task encoder timeout in seconds
            runner: Encoder runner (defaults to AsyncFFmpegProcess)
            listener: Receives progress events
        """
        self.capability = capability
        self.options = options
        self.manifest_writer = manifest_writer or ManifestWriter()
        self.validator = validator
        self.file_validation = file_validation
        self.timeout = timeout
        self._runner: TaskRunner = runner or self._run_ffmpeg
        self._listener = listener

    async def convert(self, job: ConversionJob) -> JobResult:
        """
        Convert one video into all of its selected qualities.

        Task failures never propagate: they are recorded on the task and the
        failed quality is left out of the master playlist.

        Args:
            job: Job with fresh tasks

        Returns:
            JobResult (succeeded, partially succeeded or failed)

        Raises:
            ManifestError: If the master playlist cannot be written
        """
        started = time.time()
        logger.info(
            f"Converting {job.name} -> {', '.join(t.quality.name for t in job.tasks)}"
        )

        await asyncio.gather(*(self._run_task(task) for task in job.tasks))

        manifest_path = self.manifest_writer.write(job.manifest_path, job.tasks)

        succeeded = job.succeeded_tasks
        if not succeeded:
            status = JobStatus.FAILED
        elif len(succeeded) == len(job.tasks):
            status = JobStatus.SUCCEEDED
        else:
            status = JobStatus.PARTIAL

        result = build_job_result(job, status, manifest_path=manifest_path)

        if succeeded and self.validator is not None:
            validation = await self.validator.validate(job.source.path, job.output_dir)
            result.aligned = validation.aligned
            if not validation.aligned:
                logger.warning(
                    f"{job.name}: output duration does not match the source "
                    f"(will be redone on the next run)"
                )

        result.duration = time.time() - started
        logger.info(f"{job.name}: {status.value} in {result.duration:.1f}s")
        return result

    async def run_batches(
        self,
        jobs: Sequence[ConversionJob],
        concurrency: int,
        health: Optional[HealthMonitor] = None,
        health_path: Optional[Path] = None,
        on_result: Optional[Callable[[JobResult], None]] = None,
    ) -> BatchRun:
        """
        Convert jobs in sequential batches of ``concurrency`` videos.

        A per-job failure is recorded and the batch continues. When a health
        check reports critically low disk space, no further batch starts.

        Args:
            jobs: Jobs in scheduling order
            concurrency: Videos per batch
            health: Health monitor sampled before each batch (None = no checks)
            health_path: Path whose file system is checked for free space
            on_result: Called once per finished job

        Returns:
            BatchRun with one result per scheduled job
        """
        run = BatchRun()
        size = max(1, concurrency)
        batches = [list(jobs[i : i + size]) for i in range(0, len(jobs), size)]

        for index, batch in enumerate(batches, start=1):
            if health is not None:
                status = health.check(health_path or batch[0].output_dir)
                if not status.can_schedule:
                    run.halted = True
                    run.halt_reason = (
                        f"low disk space ({status.free_disk_gb:.1f}GB free, "
                        f"{health.min_free_disk_gb:.1f}GB required)"
                    )
                    run.not_scheduled = sum(len(b) for b in batches[index - 1 :])
                    logger.error(
                        f"Stopping: {run.halt_reason}; {run.not_scheduled} video(s) not scheduled"
                    )
                    break

            logger.info(f"Batch {index}/{len(batches)}: {len(batch)} video(s)")
            results = await asyncio.gather(*(self._convert_isolated(job) for job in batch))

            for result in results:
                run.results.append(result)
                if on_result is not None:
                    on_result(result)

        return run

    async def _convert_isolated(self, job: ConversionJob) -> JobResult:
        """Convert a job, turning a job-level error into a failed result."""
        started = time.time()
        try:
            return await self.convert(job)
        except Exception as e:
            logger.error(f"{job.name} failed: {e}")
            result = build_job_result(job, JobStatus.FAILED)
            result.error = str(e) or e.__class__.__name__
            result.duration = time.time() - started
            return result

    async def _run_task(self, task: ConversionTask) -> None:
        """Run one quality; every error becomes a Failed outcome."""
        task.start(time.time())
        self._emit(task, ProgressStage.STARTED)
        logger.info(f"Starting {task.label}")

        def on_progress(progress: float, speed: Optional[float]) -> None:
            self._emit(task, ProgressStage.PROGRESS, progress=progress, speed=speed)

        try:
            ensure_directory(task.output_dir)
            command = build_command(
                self.capability,
                self.options,
                task.quality,
                task.source.path,
                task.playlist_path,
                task.segment_pattern,
            )
            logger.debug(f"{task.label}: {format_command(command)}")

            await self._runner(command, on_progress, task.source.duration or None)

            if self.file_validation:
                check_quality_playlist(task.playlist_path)
            else:
                check_playlist_exists(task.playlist_path)

            outcome = Succeeded(task.playlist_path)
        except Exception as e:
            outcome = Failed(str(e) or e.__class__.__name__)

        task.finish(outcome, time.time())

        if isinstance(outcome, Failed):
            logger.error(f"{task.label} failed: {outcome.reason}")
            self._emit(task, ProgressStage.FAILED, message=outcome.reason)
        else:
            logger.info(f"Completed {task.label} in {task.duration:.1f}s")
            self._emit(task, ProgressStage.SUCCEEDED, progress=1.0)

    async def _run_ffmpeg(
        self,
        command: List[str],
        progress_callback: Optional[ProgressCallback],
        duration: Optional[float],
    ) -> None:
        """Default runner backed by AsyncFFmpegProcess."""
        await run_ffmpeg_async(command, self.timeout, progress_callback, duration)

    def _emit(
        self,
        task: ConversionTask,
        stage: ProgressStage,
        progress: float = 0.0,
        speed: Optional[float] = None,
        message: Optional[str] = None,
    ) -> None:
        """Send a progress event to the listener, if any."""
        if self._listener is None:
            return

        event = ProgressEvent(
            job=task.source.name,
            quality=task.quality.name,
            stage=stage,
            progress=progress,
            speed=speed,
            message=message,
        )
        try:
            self._listener(event)
        except Exception as e:
            logger.warning(f"Progress listener failed: {e}")


def build_job_result(
    job: ConversionJob, status: JobStatus, manifest_path: Optional[Path] = None
) -> JobResult:
    """Summarise a job's task outcomes."""
    return JobResult(
        name=job.name,
        source_path=job.source.path,
        output_dir=job.output_dir,
        status=status,
        succeeded_qualities=[task.quality.name for task in job.succeeded_tasks],
        failed_qualities={
            task.quality.name: task.failure_reason or "unknown error"
            for task in job.failed_tasks
        },
        manifest_path=manifest_path,
    )
