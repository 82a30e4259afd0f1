"""FFmpeg command construction."""

from hls_converter.transcoder.command import (
    HARDWARE_ENCODERS,
    HWACCEL_FLAGS,
    SOFTWARE_ENCODERS,
    CodecPreference,
    CompressionLevel,
    EncodingOptions,
    build_command,
    encoder_family,
    format_command,
    select_encoder,
)

__all__ = [
    "HARDWARE_ENCODERS",
    "HWACCEL_FLAGS",
    "SOFTWARE_ENCODERS",
    "CodecPreference",
    "CompressionLevel",
    "EncodingOptions",
    "build_command",
    "encoder_family",
    "format_command",
    "select_encoder",
]
