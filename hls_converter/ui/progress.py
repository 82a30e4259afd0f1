"""
Progress tracking and monitoring for conversion tasks.

The conversion pipeline only emits :class:`ProgressEvent` values; this module
turns them into presentation state:
- per-task progress, speed and timing
- Rich progress bars, one per (video, quality) task
- running totals of active, completed and failed tasks
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from ..models import ProgressEvent, ProgressStage
from ..utils import get_logger

logger = get_logger(__name__)


class DisplayStatus(Enum):
    """Display status of a task."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TaskProgress:
    """Progress information for a single task."""

    key: str
    name: str
    status: DisplayStatus = DisplayStatus.RUNNING
    progress: float = 0.0  # 0.0 to 1.0
    speed: float = 0.0  # encoder speed multiplier
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    error_message: Optional[str] = None
    rich_task_id: Optional[TaskID] = None

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time in seconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time else time.time()
        return end - self.start_time

    @property
    def eta(self) -> Optional[float]:
        """Calculate estimated time remaining in seconds."""
        if self.progress <= 0 or self.elapsed_time <= 0:
            return None
        if self.progress >= 1.0:
            return 0.0
        return self.elapsed_time / self.progress * (1.0 - self.progress)

    @property
    def is_complete(self) -> bool:
        """Check if task has settled."""
        return self.status in (DisplayStatus.COMPLETED, DisplayStatus.FAILED)


class ProgressTracker:
    """
    Presentation state for all tasks of a run.

    Fed exclusively by progress events.
    """

    def __init__(self):
        """Initialize progress tracker."""
        self._tasks: dict[str, TaskProgress] = {}

    def apply(self, event: ProgressEvent) -> TaskProgress:
        """
        Apply one event.

        Args:
            event: Progress event from the pipeline

        Returns:
            Updated TaskProgress
        """
        task = self._tasks.get(event.task_key)
        if task is None:
            task = TaskProgress(
                key=event.task_key,
                name=f"{event.job} ({event.quality})",
                start_time=time.time(),
            )
            self._tasks[event.task_key] = task

        if event.stage == ProgressStage.PROGRESS:
            task.progress = min(max(event.progress, 0.0), 1.0)
            if event.speed is not None:
                task.speed = event.speed
        elif event.stage == ProgressStage.SUCCEEDED:
            task.status = DisplayStatus.COMPLETED
            task.progress = 1.0
            task.end_time = time.time()
        elif event.stage == ProgressStage.FAILED:
            task.status = DisplayStatus.FAILED
            task.error_message = event.message
            task.end_time = time.time()

        return task

    def get_task(self, key: str) -> Optional[TaskProgress]:
        """Get task by key."""
        return self._tasks.get(key)

    def get_all_tasks(self) -> list[TaskProgress]:
        """Get all tasks in first-seen order."""
        return list(self._tasks.values())

    def count(self, status: DisplayStatus) -> int:
        """Number of tasks in a status."""
        return sum(1 for task in self._tasks.values() if task.status == status)

    @property
    def total_progress(self) -> float:
        """Average progress across all tasks."""
        tasks = self.get_all_tasks()
        if not tasks:
            return 0.0
        return sum(t.progress for t in tasks) / len(tasks)


class ConversionMonitor:
    """
    Rich-based progress monitor, usable as a progress listener.

    Usage::

        with ConversionMonitor() as monitor:
            await BatchConverter(config, input_dir, listener=monitor).run()
    """

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize conversion monitor.

        Args:
            console: Rich console (creates new if None)
        """
        self.console = console or Console()
        self.tracker = ProgressTracker()
        self._progress: Optional[Progress] = None
        self._live: Optional[Live] = None

    def create_progress(self) -> Progress:
        """Create Rich progress display with custom columns."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=None),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            TextColumn("[cyan]{task.fields[speed]}"),
            console=self.console,
            expand=True,
        )

    def start(self) -> None:
        """Start the live display."""
        self._progress = self.create_progress()
        self._live = Live(
            self._generate_layout(),
            console=self.console,
            refresh_per_second=4,
            transient=False,
        )
        self._live.start()
        logger.debug("Progress monitor started")

    def stop(self) -> None:
        """Stop the live display."""
        if self._live:
            self._live.stop()
            self._live = None
        self._progress = None
        logger.debug("Progress monitor stopped")

    def __call__(self, event: ProgressEvent) -> None:
        """Progress listener entry point."""
        self.handle(event)

    def handle(self, event: ProgressEvent) -> None:
        """
        Update tracker and progress bars from one event.

        Args:
            event: Progress event from the pipeline
        """
        task = self.tracker.apply(event)

        if self._progress is None:
            return

        if task.rich_task_id is None:
            task.rich_task_id = self._progress.add_task(task.name, total=100.0, speed="")

        if event.stage == ProgressStage.SUCCEEDED:
            speed_text = "✓ Complete"
        elif event.stage == ProgressStage.FAILED:
            speed_text = "✗ Failed"
        else:
            speed_text = self._format_speed(task.speed)

        self._progress.update(
            task.rich_task_id,
            completed=task.progress * 100,
            speed=speed_text,
        )

        if self._live:
            self._live.update(self._generate_layout())

    def _format_speed(self, speed: float) -> str:
        """Format encoder speed multiplier for display."""
        if speed <= 0:
            return ""
        return f"{speed:.2f}x" if speed < 10 else f"{speed:.0f}x"

    def _generate_layout(self) -> Panel:
        """Progress bars wrapped in a panel with running totals."""
        return Panel(
            self._progress if self._progress else "",
            title="[bold cyan]HLS Conversion Progress[/bold cyan]",
            subtitle=self._generate_statistics(),
            border_style="cyan",
        )

    def _generate_statistics(self) -> str:
        """Running totals for the panel subtitle."""
        total = len(self.tracker.get_all_tasks())
        if not total:
            return ""

        parts = []
        active = self.tracker.count(DisplayStatus.RUNNING)
        completed = self.tracker.count(DisplayStatus.COMPLETED)
        failed = self.tracker.count(DisplayStatus.FAILED)
        if active:
            parts.append(f"[yellow]Active: {active}[/yellow]")
        if completed:
            parts.append(f"[green]Completed: {completed}[/green]")
        if failed:
            parts.append(f"[red]Failed: {failed}[/red]")
        parts.append(f"Total: {total}")
        return " | ".join(parts)

    def __enter__(self) -> "ConversionMonitor":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.stop()
