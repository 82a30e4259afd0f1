"""
FFmpeg invocation builder for one HLS quality.

:func:`build_command` is a pure function of the active capability, the
encoding options, the quality profile and the output paths. The argument list
is assembled in a fixed order:

1. hardware decode flags (must precede ``-i``)
2. input, encoder selection (codec x capability)
3. rate control: constant quality or bitrate-only, compression preset, optional
   adaptive tuning
4. audio, scaling, rate limits and keyframe placement
5. web-compatibility flags
6. HLS muxer flags, then the playlist path as the final argument
"""

import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Tuple, Union

from ..hardware import HardwareType
from ..models import QualityProfile
from ..utils import scale_bitrate


class CodecPreference(str, Enum):
    """Output video codec."""

    H264 = "h264"
    HEVC = "hevc"
    AV1 = "av1"

    @classmethod
    def parse(cls, value: Union[str, "CodecPreference"]) -> "CodecPreference":
        """Resolve a codec name; anything unrecognised means H.264."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.H264


class CompressionLevel(str, Enum):
    """Speed/size trade-off."""

    BALANCED = "balanced"
    HIGH = "high"
    MAXIMUM = "maximum"

    @classmethod
    def parse(cls, value: Union[str, "CompressionLevel"]) -> "CompressionLevel":
        """Resolve a level name; anything unrecognised means balanced."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.BALANCED


# (codec, capability) -> encoder; missing pairs use SOFTWARE_ENCODERS
HARDWARE_ENCODERS: Dict[Tuple[CodecPreference, HardwareType], str] = {
    (CodecPreference.H264, HardwareType.NVIDIA): "h264_nvenc",
    (CodecPreference.H264, HardwareType.INTEL): "h264_qsv",
    (CodecPreference.H264, HardwareType.AMD): "h264_amf",
    (CodecPreference.H264, HardwareType.VIDEOTOOLBOX): "h264_videotoolbox",
    (CodecPreference.HEVC, HardwareType.NVIDIA): "hevc_nvenc",
    (CodecPreference.HEVC, HardwareType.INTEL): "hevc_qsv",
    (CodecPreference.HEVC, HardwareType.AMD): "hevc_amf",
    (CodecPreference.HEVC, HardwareType.VIDEOTOOLBOX): "hevc_videotoolbox",
    (CodecPreference.AV1, HardwareType.NVIDIA): "av1_nvenc",
}

SOFTWARE_ENCODERS: Dict[CodecPreference, str] = {
    CodecPreference.H264: "libx264",
    CodecPreference.HEVC: "libx265",
    CodecPreference.AV1: "libaom-av1",
}

HWACCEL_FLAGS: Dict[HardwareType, List[str]] = {
    HardwareType.NVIDIA: ["-hwaccel", "cuda", "-hwaccel_output_format", "cuda"],
    HardwareType.INTEL: ["-hwaccel", "qsv"],
    HardwareType.VIDEOTOOLBOX: ["-hwaccel", "videotoolbox"],
}

# Encoder family -> compression level -> preset arguments
COMPRESSION_PRESETS: Dict[str, Dict[CompressionLevel, List[str]]] = {
    "x264": {
        CompressionLevel.BALANCED: ["-preset", "fast", "-tune", "film"],
        CompressionLevel.HIGH: ["-preset", "medium", "-tune", "film"],
        CompressionLevel.MAXIMUM: ["-preset", "slow", "-tune", "film"],
    },
    "x265": {
        CompressionLevel.BALANCED: ["-preset", "fast"],
        CompressionLevel.HIGH: ["-preset", "medium"],
        CompressionLevel.MAXIMUM: ["-preset", "slow"],
    },
    "aom": {
        CompressionLevel.BALANCED: ["-cpu-used", "6"],
        CompressionLevel.HIGH: ["-cpu-used", "4"],
        CompressionLevel.MAXIMUM: ["-cpu-used", "2"],
    },
    "nvenc": {
        CompressionLevel.BALANCED: ["-preset", "p4", "-rc", "vbr"],
        CompressionLevel.HIGH: ["-preset", "p5", "-rc", "vbr"],
        CompressionLevel.MAXIMUM: ["-preset", "p6", "-rc", "vbr"],
    },
    "qsv": {
        CompressionLevel.BALANCED: ["-preset", "fast"],
        CompressionLevel.HIGH: ["-preset", "medium"],
        CompressionLevel.MAXIMUM: ["-preset", "slow"],
    },
    "amf": {
        CompressionLevel.BALANCED: ["-quality", "speed"],
        CompressionLevel.HIGH: ["-quality", "balanced"],
        CompressionLevel.MAXIMUM: ["-quality", "quality"],
    },
    "videotoolbox": {
        CompressionLevel.BALANCED: ["-realtime", "true"],
        CompressionLevel.HIGH: ["-realtime", "false"],
        CompressionLevel.MAXIMUM: ["-realtime", "false"],
    },
}

ADAPTIVE_TUNING: Dict[str, List[str]] = {
    "x264": ["-x264-params", "aq-mode=2:aq-strength=1.0:psy-rd=1.0,0.15:me=hex:subme=7:ref=6"],
    "x265": ["-x265-params", "aq-mode=2:aq-strength=1.0:psy-rd=1.0"],
    "nvenc": ["-spatial-aq", "1"],
}

H264_WEB_FLAGS = ["-profile:v", "high", "-level", "4.0"]


def encoder_family(encoder: str) -> str:
    """Map an encoder name onto the option vocabulary it understands."""
    if encoder == "libx264":
        return "x264"
    if encoder == "libx265":
        return "x265"
    if encoder == "libaom-av1":
        return "aom"
    return encoder.split("_", 1)[-1]


def select_encoder(capability: HardwareType, codec: Union[str, CodecPreference]) -> str:
    """
    Pick the encoder for a codec on the active capability.

    Args:
        capability: Active hardware capability
        codec: Codec preference (unknown values mean H.264)

    Returns:
        FFmpeg encoder name
    """
    preference = CodecPreference.parse(codec)
    return HARDWARE_ENCODERS.get((preference, capability), SOFTWARE_ENCODERS[preference])


@dataclass(frozen=True)
class EncodingOptions:
    """Everything besides capability and quality that shapes the command."""

    codec: CodecPreference = CodecPreference.H264
    compression: CompressionLevel = CompressionLevel.BALANCED
    use_crf: bool = True
    crf: int = 23
    adaptive_bitrate: bool = True
    hardware_decoding: bool = True
    web_optimized: bool = True
    segment_duration: int = 10
    frame_rate: int = 30
    ffmpeg_path: str = "ffmpeg"

    @property
    def keyframe_interval(self) -> int:
        """Frames between keyframes, one keyframe per segment."""
        return self.segment_duration * self.frame_rate


def build_command(
    capability: HardwareType,
    options: EncodingOptions,
    quality: QualityProfile,
    input_path: Path,
    playlist_path: Path,
    segment_pattern: Path,
) -> List[str]:
    """
    Build the FFmpeg invocation for one HLS quality.

    Args:
        capability: Active hardware capability
        options: Encoding options
        quality: Target quality profile
        input_path: Source video
        playlist_path: Quality playlist to write (always the last argument)
        segment_pattern: Segment filename pattern (e.g. ``segment_%03d.ts``)

    Returns:
        FFmpeg command as list of arguments
    """
    codec = CodecPreference.parse(options.codec)
    encoder = select_encoder(capability, codec)
    family = encoder_family(encoder)
    gpu_frames = options.hardware_decoding and capability == HardwareType.NVIDIA

    command = [options.ffmpeg_path, "-hide_banner"]

    if options.hardware_decoding:
        command.extend(HWACCEL_FLAGS.get(capability, []))

    command.extend(["-i", str(input_path)])

    command.extend(["-c:v", encoder])
    command.extend(_rate_control_options(family, quality, options))
    command.extend(COMPRESSION_PRESETS[family][CompressionLevel.parse(options.compression)])
    if options.adaptive_bitrate:
        command.extend(ADAPTIVE_TUNING.get(family, []))

    command.extend(["-c:a", "aac", "-b:a", quality.audio_bitrate])

    command.extend(["-vf", _scale_filter(quality, gpu_frames)])
    command.extend(
        [
            "-maxrate",
            quality.video_bitrate,
            "-bufsize",
            scale_bitrate(quality.video_bitrate, 2),
        ]
    )

    # Fixed GOP so every segment starts on a keyframe
    gop = str(options.keyframe_interval)
    command.extend(["-g", gop, "-keyint_min", gop, "-sc_threshold", "0"])

    if options.web_optimized:
        if not gpu_frames:
            command.extend(["-pix_fmt", "yuv420p"])
        if codec == CodecPreference.H264:
            command.extend(H264_WEB_FLAGS)
        command.extend(["-movflags", "+faststart"])

    command.extend(
        [
            "-f",
            "hls",
            "-hls_time",
            str(options.segment_duration),
            "-hls_list_size",
            "0",
            "-hls_playlist_type",
            "vod",
            "-hls_segment_filename",
            str(segment_pattern),
            "-hls_flags",
            "independent_segments",
            "-hls_segment_type",
            "mpegts",
            "-y",
            str(playlist_path),
        ]
    )
    return command


def _rate_control_options(
    family: str, quality: QualityProfile, options: EncodingOptions
) -> List[str]:
    """Constant-quality flags for the encoder family, or a target bitrate."""
    if options.use_crf:
        crf = str(options.crf)
        if family in ("x264", "x265", "aom"):
            return ["-crf", crf]
        if family == "nvenc":
            return ["-cq", crf]
        if family == "qsv":
            return ["-global_quality", crf]
        if family == "amf":
            return ["-rc", "cqp", "-qp_i", crf, "-qp_p", crf]
    # VideoToolbox has no CRF equivalent
    return ["-b:v", quality.video_bitrate]


def _scale_filter(quality: QualityProfile, gpu_frames: bool) -> str:
    """Scale to the target size; CUDA frames stay on the GPU."""
    if gpu_frames:
        return f"scale_cuda={quality.width}:{quality.height}"
    return (
        f"scale={quality.width}:{quality.height}:force_original_aspect_ratio=decrease,"
        f"pad={quality.width}:{quality.height}:(ow-iw)/2:(oh-ih)/2"
    )


def format_command(command: List[str]) -> str:
    """Shell-style rendering of a command, for logs and dry runs."""
    return " ".join(shlex.quote(arg) for arg in command)
