"""
HLS Converter

Batch converts directories of videos into multi-quality HLS output with
hardware-accelerated encoding and duration-based resume.
"""

__version__ = "0.1.0"

from hls_converter.config import ConverterConfig
from hls_converter.executor import BatchConverter
from hls_converter.models import (
    BatchReport,
    ConversionJob,
    JobResult,
    JobStatus,
    QualityProfile,
    SourceVideo,
)
from hls_converter.utils import (
    BinaryNotFoundError,
    ConfigurationError,
    ConverterError,
    get_logger,
    setup_logger,
)

__all__ = [
    "__version__",
    # Entry points
    "BatchConverter",
    "ConverterConfig",
    # Models
    "BatchReport",
    "ConversionJob",
    "JobResult",
    "JobStatus",
    "QualityProfile",
    "SourceVideo",
    # Utils
    "BinaryNotFoundError",
    "ConfigurationError",
    "ConverterError",
    "get_logger",
    "setup_logger",
]
