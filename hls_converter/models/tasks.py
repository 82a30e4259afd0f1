"""
Data models for conversion tasks and jobs.

A :class:`ConversionJob` owns one :class:`ConversionTask` per selected
quality. Tasks move ``pending -> running -> succeeded | failed`` exactly once;
terminal states are final.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from hls_converter.models.media import SourceVideo

PLAYLIST_NAME = "playlist.m3u8"
SEGMENT_PATTERN = "segment_%03d.ts"
MASTER_PLAYLIST_NAME = "master.m3u8"


@dataclass(frozen=True)
class QualityProfile:
    """One rung of the quality ladder."""

    name: str
    width: int
    height: int
    video_bitrate: str
    audio_bitrate: str

    @property
    def resolution(self) -> str:
        """Get resolution as string (e.g., '1280x720')."""
        return f"{self.width}x{self.height}"


class TaskStatus(Enum):
    """Status of a conversion task."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Succeeded:
    """Task finished and produced a usable quality playlist."""

    playlist_path: Path


@dataclass(frozen=True)
class Failed:
    """Task finished without usable output."""

    reason: str


Outcome = Union[Succeeded, Failed]


@dataclass
class ConversionTask:
    """A (source video, quality profile) pair and its output location."""

    source: SourceVideo
    quality: QualityProfile
    output_dir: Path  # quality-scoped directory
    status: TaskStatus = TaskStatus.PENDING
    outcome: Optional[Outcome] = None
    started_at: Optional[float] = None
    completed_at: Optional[float] = None

    @property
    def playlist_path(self) -> Path:
        """Quality playlist written by the encoder."""
        return self.output_dir / PLAYLIST_NAME

    @property
    def segment_pattern(self) -> Path:
        """Segment filename pattern handed to the encoder."""
        return self.output_dir / SEGMENT_PATTERN

    @property
    def label(self) -> str:
        """Human readable ``video (quality)`` label."""
        return f"{self.source.name} ({self.quality.name})"

    @property
    def is_terminal(self) -> bool:
        """Check if the task has settled."""
        return self.status in (TaskStatus.SUCCEEDED, TaskStatus.FAILED)

    @property
    def succeeded(self) -> bool:
        """Check if the task settled successfully."""
        return self.status == TaskStatus.SUCCEEDED

    @property
    def failure_reason(self) -> Optional[str]:
        """Reason of a failed task, None otherwise."""
        return self.outcome.reason if isinstance(self.outcome, Failed) else None

    @property
    def duration(self) -> Optional[float]:
        """Wall-clock run time once settled."""
        if self.started_at is not None and self.completed_at is not None:
            return self.completed_at - self.started_at
        return None

    def start(self, now: float) -> None:
        """Move ``pending -> running``."""
        if self.status != TaskStatus.PENDING:
            raise RuntimeError(f"Cannot start task {self.label} in state {self.status.value}")
        self.status = TaskStatus.RUNNING
        self.started_at = now

    def finish(self, outcome: Outcome, now: float) -> None:
        """Record the terminal outcome."""
        if self.is_terminal:
            raise RuntimeError(f"Task {self.label} already settled as {self.status.value}")
        self.outcome = outcome
        self.status = TaskStatus.SUCCEEDED if isinstance(outcome, Succeeded) else TaskStatus.FAILED
        self.completed_at = now


@dataclass
class ConversionJob:
    """One source video and the tasks selected for it."""

    source: SourceVideo
    output_dir: Path  # video root containing the master manifest
    tasks: list[ConversionTask] = field(default_factory=list)

    @classmethod
    def create(
        cls, source: SourceVideo, output_dir: Path, qualities: list[QualityProfile]
    ) -> "ConversionJob":
        """Build a job with one fresh task per quality."""
        tasks = [
            ConversionTask(source=source, quality=quality, output_dir=output_dir / quality.name)
            for quality in qualities
        ]
        return cls(source=source, output_dir=output_dir, tasks=tasks)

    @property
    def name(self) -> str:
        """Source file name."""
        return self.source.name

    @property
    def manifest_path(self) -> Path:
        """Master manifest location."""
        return self.output_dir / MASTER_PLAYLIST_NAME

    @property
    def succeeded_tasks(self) -> list[ConversionTask]:
        """Tasks that settled successfully, in job order."""
        return [task for task in self.tasks if task.succeeded]

    @property
    def failed_tasks(self) -> list[ConversionTask]:
        """Tasks that settled with a failure, in job order."""
        return [task for task in self.tasks if task.status == TaskStatus.FAILED]
