"""UI components and progress tracking."""

from hls_converter.ui.progress import (
    ConversionMonitor,
    DisplayStatus,
    ProgressTracker,
    TaskProgress,
)
from hls_converter.ui.reporter import SummaryReporter, create_summary_table

__all__ = [
    "ConversionMonitor",
    "DisplayStatus",
    "ProgressTracker",
    "TaskProgress",
    "SummaryReporter",
    "create_summary_table",
]
