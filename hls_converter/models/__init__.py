"""Data models for the HLS converter."""

from hls_converter.models.events import ProgressEvent, ProgressListener, ProgressStage
from hls_converter.models.media import SourceVideo
from hls_converter.models.results import (
    BatchReport,
    JobResult,
    JobStatus,
    QualityMeasurement,
    ValidationResult,
)
from hls_converter.models.tasks import (
    MASTER_PLAYLIST_NAME,
    PLAYLIST_NAME,
    SEGMENT_PATTERN,
    ConversionJob,
    ConversionTask,
    Failed,
    Outcome,
    QualityProfile,
    Succeeded,
    TaskStatus,
)

__all__ = [
    # Media models
    "SourceVideo",
    # Task models
    "MASTER_PLAYLIST_NAME",
    "PLAYLIST_NAME",
    "SEGMENT_PATTERN",
    "ConversionJob",
    "ConversionTask",
    "Failed",
    "Outcome",
    "QualityProfile",
    "Succeeded",
    "TaskStatus",
    # Result models
    "BatchReport",
    "JobResult",
    "JobStatus",
    "QualityMeasurement",
    "ValidationResult",
    # Events
    "ProgressEvent",
    "ProgressListener",
    "ProgressStage",
]
