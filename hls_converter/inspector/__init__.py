"""Media probing and source discovery."""

from hls_converter.inspector.analyzer import MediaInspector, get_media_inspector
from hls_converter.inspector.scanner import (
    DEFAULT_SKIP_DIRS,
    find_source_video,
    find_video_files,
    is_ignored_file,
)

__all__ = [
    "MediaInspector",
    "get_media_inspector",
    "DEFAULT_SKIP_DIRS",
    "find_source_video",
    "find_video_files",
    "is_ignored_file",
]
