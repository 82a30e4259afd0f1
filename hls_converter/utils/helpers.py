"""
Helper functions for the HLS converter.

This module contains utility functions used throughout the application.
"""

import re
from pathlib import Path

BYTES_PER_GB = 1024**3


def format_size(bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 GB")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if bytes < 1024.0:
            return f"{bytes:.1f} {unit}"
        bytes /= 1024.0  # type: ignore
    return f"{bytes:.1f} PB"


def format_duration(seconds: float) -> str:
    """
    Format duration as HH:MM:SS.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string (e.g., "01:30:45")
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def bytes_to_gb(size: int) -> float:
    """Convert a byte count to gigabytes (GiB)."""
    return size / BYTES_PER_GB


def parse_time_to_seconds(time_str: str) -> float:
    """
    Parse time string to seconds.

    Supports formats:
    - HH:MM:SS.mmm
    - MM:SS.mmm
    - SS.mmm

    Args:
        time_str: Time string to parse

    Returns:
        Time in seconds
    """
    parts = time_str.split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
        return float(hours) * 3600 + float(minutes) * 60 + float(seconds)
    elif len(parts) == 2:
        minutes, seconds = parts
        return float(minutes) * 60 + float(seconds)
    else:
        return float(parts[0])


def ensure_directory(path: Path) -> Path:
    """
    Ensure directory exists, create if it doesn't.

    Args:
        path: Directory path

    Returns:
        The same directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def parse_bitrate(bitrate_str: str) -> int:
    """
    Parse bitrate string to bits per second.

    Supports formats like: "128k", "5M", "1000"

    Args:
        bitrate_str: Bitrate string

    Returns:
        Bitrate in bits per second, 0 if unparseable
    """
    bitrate_str = bitrate_str.strip().upper()

    match = re.match(r"(\d+\.?\d*)\s*([KMG])?", bitrate_str)
    if not match:
        return 0

    value = float(match.group(1))
    unit = match.group(2)

    if unit == "K":
        return int(value * 1000)
    elif unit == "M":
        return int(value * 1000000)
    elif unit == "G":
        return int(value * 1000000000)
    else:
        return int(value)


def scale_bitrate(bitrate_str: str, factor: int) -> str:
    """
    Multiply a bitrate string, expressed back in kbit/s.

    Used for rate-control buffers ("5000k" x 2 -> "10000k").

    Args:
        bitrate_str: Bitrate string such as "5000k" or "5M"
        factor: Integer multiplier

    Returns:
        Scaled bitrate string with a "k" suffix
    """
    return f"{parse_bitrate(bitrate_str) * factor // 1000}k"
