"""
Configuration models using Pydantic.

This module defines the configuration structure for the HLS converter.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

DEFAULT_SUPPORTED_FORMATS = [
    ".mp4",
    ".avi",
    ".mov",
    ".mkv",
    ".webm",
    ".m4v",
    ".flv",
    ".wmv",
    ".3gp",
    ".ogv",
]


class BinaryConfig(BaseModel):
    """External encoder/prober locations."""

    ffmpeg_path: str = Field(
        default="ffmpeg", description="FFmpeg executable (name on PATH or absolute path)"
    )
    ffprobe_path: str = Field(
        default="ffprobe", description="FFprobe executable (name on PATH or absolute path)"
    )

    @field_validator("ffmpeg_path", "ffprobe_path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Reject blank binary paths."""
        if not v.strip():
            raise ValueError("binary path must not be empty")
        return v.strip()


class HardwareConfig(BaseModel):
    """Hardware acceleration configuration."""

    prefer: str = Field(
        default="auto",
        description="Accelerator: auto, nvidia, intel, amd, videotoolbox, cpu-only",
    )
    hardware_decoding: bool = Field(
        default=True, description="Also decode the input on the active accelerator"
    )
    probe_timeout: float = Field(
        default=10.0, gt=0, le=120, description="Timeout for each trial encode in seconds"
    )

    @field_validator("prefer")
    @classmethod
    def validate_prefer(cls, v: str) -> str:
        """Validate preferred accelerator."""
        valid_options = ["auto", "nvidia", "intel", "amd", "videotoolbox", "cpu-only"]
        if v.lower() not in valid_options:
            raise ValueError(f"prefer must be one of {valid_options}")
        return v.lower()


class EncodingConfig(BaseModel):
    """Encoder selection and compression settings."""

    codec: Literal["h264", "hevc", "av1"] = Field(default="h264", description="Output codec")
    compression: Literal["balanced", "high", "maximum"] = Field(
        default="balanced", description="Compression level"
    )
    use_crf: bool = Field(default=True, description="Constant quality instead of bitrate-only")
    crf: int = Field(default=23, ge=18, le=28, description="Constant Rate Factor (18-28)")
    adaptive_bitrate: bool = Field(
        default=True, description="Add content-adaptive encoder tuning"
    )
    web_optimized: bool = Field(
        default=True, description="Pixel format/profile/faststart for browser playback"
    )
    timeout: Optional[float] = Field(
        default=None, gt=0, description="Per-quality encode timeout in seconds (None = no limit)"
    )


class QualityConfig(BaseModel):
    """Quality ladder selection."""

    mode: Literal["equal", "adaptive-filtered", "adaptive-all"] = Field(
        default="equal", description="Ladder selection mode"
    )
    min_ratio: float = Field(
        default=0.5, gt=0, le=4.0, description="Lowest kept height as a ratio of the source"
    )
    max_ratio: float = Field(
        default=1.0, gt=0, le=4.0, description="Highest kept height as a ratio of the source"
    )

    @field_validator("max_ratio")
    @classmethod
    def validate_ratio_order(cls, v: float, info: ValidationInfo) -> float:
        """Ensure max_ratio is not below min_ratio."""
        min_ratio = info.data.get("min_ratio")
        if min_ratio is not None and v < min_ratio:
            raise ValueError("max_ratio must be greater than or equal to min_ratio")
        return v


class HLSConfig(BaseModel):
    """HLS output configuration."""

    segment_duration: int = Field(
        default=10, ge=2, le=30, description="Segment duration in seconds"
    )
    frame_rate: int = Field(
        default=30, ge=1, le=120, description="Frame rate assumed for keyframe spacing"
    )


class ValidationConfig(BaseModel):
    """Output validation and resume settings."""

    file_validation: bool = Field(
        default=True, description="Check playlists and segments after each encode"
    )
    duration_tolerance: float = Field(
        default=2.0, ge=0, le=60, description="Allowed source/output duration drift in seconds"
    )
    validate_on_startup: bool = Field(
        default=True, description="Validate existing output before scheduling work"
    )


class PerformanceConfig(BaseModel):
    """Performance tuning configuration."""

    max_concurrent: Optional[int] = Field(
        default=None, ge=1, le=32, description="Fixed batch size (None = computed from resources)"
    )
    health_checks: bool = Field(default=True, description="Check disk/CPU between batches")
    min_free_disk_gb: float = Field(
        default=5.0, ge=0, description="Stop scheduling below this much free disk"
    )
    cpu_warning_percent: float = Field(
        default=90.0, gt=0, le=100, description="Warn above this CPU utilisation"
    )


class OutputConfig(BaseModel):
    """Output configuration."""

    output_dir: Optional[Path] = Field(
        default=None, description="Output root (None = <input>/hls)"
    )
    supported_formats: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_FORMATS),
        description="Video file extensions picked up by discovery",
    )

    @field_validator("supported_formats")
    @classmethod
    def validate_formats(cls, v: list[str]) -> list[str]:
        """Normalize extensions to lower-case with a leading dot."""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        if not normalized:
            raise ValueError("supported_formats must contain at least one extension")
        return normalized


class ConverterConfig(BaseModel):
    """Main converter configuration."""

    binaries: BinaryConfig = Field(default_factory=BinaryConfig)
    hardware: HardwareConfig = Field(default_factory=HardwareConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    hls: HLSConfig = Field(default_factory=HLSConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def create_default(cls) -> "ConverterConfig":
        """Create default configuration."""
        return cls()

    def resolve_output_dir(self, input_dir: Path) -> Path:
        """Return the configured output root, defaulting to ``<input>/hls``."""
        if self.output.output_dir is not None:
            return Path(self.output.output_dir)
        return input_dir / "hls"
