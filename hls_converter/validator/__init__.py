"""Output validation for HLS conversion."""

from hls_converter.validator.alignment import (
    DEFAULT_TOLERANCE,
    AlignmentValidator,
    ResumePlan,
    plan_resume,
)
from hls_converter.validator.checker import check_playlist_exists, check_quality_playlist

__all__ = [
    "DEFAULT_TOLERANCE",
    "AlignmentValidator",
    "ResumePlan",
    "plan_resume",
    "check_playlist_exists",
    "check_quality_playlist",
]
