"""Configuration management for the HLS converter."""

from hls_converter.config.manager import (
    ConfigManager,
    get_config_manager,
)
from hls_converter.config.models import (
    DEFAULT_SUPPORTED_FORMATS,
    BinaryConfig,
    ConverterConfig,
    EncodingConfig,
    HardwareConfig,
    HLSConfig,
    OutputConfig,
    PerformanceConfig,
    QualityConfig,
    ValidationConfig,
)

__all__ = [
    # Manager
    "ConfigManager",
    "get_config_manager",
    # Models
    "DEFAULT_SUPPORTED_FORMATS",
    "BinaryConfig",
    "ConverterConfig",
    "EncodingConfig",
    "HardwareConfig",
    "HLSConfig",
    "OutputConfig",
    "PerformanceConfig",
    "QualityConfig",
    "ValidationConfig",
]
