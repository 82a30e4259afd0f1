"""
Custom exceptions for the HLS converter.

This module defines the exception hierarchy used throughout the application.
Per-task failures are turned into outcome values by the orchestrator; the
exceptions below are what crosses module boundaries before that happens.
"""

from typing import Optional


class ConverterError(Exception):
    """Base exception for all converter errors."""

    pass


class BinaryNotFoundError(ConverterError):
    """A required external binary (ffmpeg/ffprobe) is missing or broken."""

    def __init__(self, message: str, binary: str):
        """
        Initialize error with the binary that could not be run.

        Args:
            message: Error message
            binary: Name or path of the binary that was tried
        """
        super().__init__(message)
        self.binary = binary


class MediaInspectionError(ConverterError):
    """Failed to inspect media file."""

    pass


class ValidationError(ConverterError):
    """Output validation failed."""

    pass


class ManifestError(ConverterError):
    """Master manifest could not be written."""

    pass


class ConfigurationError(ConverterError):
    """Configuration is invalid or missing."""

    pass


class FFmpegError(ConverterError):
    """FFmpeg command execution failed."""

    def __init__(
        self,
        message: str,
        command: Optional[list[str]] = None,
        stderr: Optional[str] = None,
    ):
        """
        Initialize FFmpeg error with command details.

        Args:
            message: Error message
            command: FFmpeg command that failed
            stderr: Standard error output from FFmpeg
        """
        super().__init__(message)
        self.command = command
        self.stderr = stderr


class ProcessTimeoutError(ConverterError):
    """Process exceeded timeout threshold."""

    def __init__(self, message: str, timeout: float):
        """
        Initialize timeout error.

        Args:
            message: Error message
            timeout: Timeout value in seconds
        """
        super().__init__(message)
        self.timeout = timeout
