"""Utility functions and helpers."""

from hls_converter.utils.errors import (
    BinaryNotFoundError,
    ConfigurationError,
    ConverterError,
    FFmpegError,
    ManifestError,
    MediaInspectionError,
    ProcessTimeoutError,
    ValidationError,
)
from hls_converter.utils.helpers import (
    bytes_to_gb,
    ensure_directory,
    format_duration,
    format_size,
    parse_bitrate,
    parse_time_to_seconds,
    scale_bitrate,
)
from hls_converter.utils.logger import get_logger, log_performance, setup_logger

__all__ = [
    # Errors
    "BinaryNotFoundError",
    "ConfigurationError",
    "ConverterError",
    "FFmpegError",
    "ManifestError",
    "MediaInspectionError",
    "ProcessTimeoutError",
    "ValidationError",
    # Helpers
    "bytes_to_gb",
    "ensure_directory",
    "format_duration",
    "format_size",
    "parse_bitrate",
    "parse_time_to_seconds",
    "scale_bitrate",
    # Logging
    "get_logger",
    "log_performance",
    "setup_logger",
]
