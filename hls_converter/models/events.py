"""
Progress events emitted by the conversion pipeline.

The pipeline never keeps presentation state. Listeners receive one
:class:`ProgressEvent` per task transition or encoder progress update.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class ProgressStage(Enum):
    """Stage reported by a progress event."""

    STARTED = "started"
    PROGRESS = "progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    """A single progress notification for one task."""

    job: str
    quality: str
    stage: ProgressStage
    progress: float = 0.0  # 0.0 - 1.0
    speed: Optional[float] = None
    message: Optional[str] = None

    @property
    def task_key(self) -> str:
        """Stable identifier of the task the event belongs to."""
        return f"{self.job}::{self.quality}"

    @property
    def is_terminal(self) -> bool:
        """Whether the task settled with this event."""
        return self.stage in (ProgressStage.SUCCEEDED, ProgressStage.FAILED)


ProgressListener = Callable[[ProgressEvent], None]
