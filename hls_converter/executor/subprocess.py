"""
Async subprocess wrapper for FFmpeg and FFprobe execution.

This module provides asynchronous process management for external media
tools, including progress parsing, timeout handling, and startup checks.
"""

import asyncio
import codecs
import re
from typing import AsyncIterator, Callable, Optional

from ..utils import (
    BinaryNotFoundError,
    FFmpegError,
    ProcessTimeoutError,
    get_logger,
    parse_time_to_seconds,
)

logger = get_logger(__name__)

ProgressCallback = Callable[[float, Optional[float]], None]

LINE_BREAK = re.compile(r"[\r\n]")


class AsyncFFmpegProcess:
    """
    Async wrapper for FFmpeg subprocess execution.

    Provides non-blocking process execution with:
    - Real-time stderr streaming
    - Progress parsing and callbacks
    - Timeout handling
    - Cleanup of the child process on errors
    """

    # Regex patterns for parsing FFmpeg output
    DURATION_PATTERN = re.compile(r"Duration: (\d{2}:\d{2}:\d{2}\.\d{2})")
    PROGRESS_PATTERN = re.compile(r"time=(\d{2}:\d{2}:\d{2}\.\d{2})")
    SPEED_PATTERN = re.compile(r"speed=\s*(\d+\.?\d*)x")

    STDERR_CHUNK_SIZE = 4096

    ERROR_PATTERNS = [
        r"Error while (opening|decoding|encoding)",
        r"Invalid data found",
        r"No such file or directory",
        r"Permission denied",
        r"Unknown encoder",
        r"Codec .* is not supported",
        r"Invalid argument",
        r"Cannot load",
    ]

    def __init__(
        self,
        command: list[str],
        timeout: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
        duration: Optional[float] = None,
    ):
        """
        Initialize async FFmpeg process.

        Args:
            command: FFmpeg command as list of arguments
            timeout: Maximum execution time in seconds (None = no timeout)
            progress_callback: Called with (progress 0.0-1.0, speed multiplier)
            duration: Known input duration; parsed from stderr when None
        """
        self.command = command
        self.timeout = timeout
        self.progress_callback = progress_callback
        self._process: Optional[asyncio.subprocess.Process] = None
        self._duration: Optional[float] = duration if duration and duration > 0 else None
        self._stderr_lines: list[str] = []

    async def run(self) -> tuple[str, str]:
        """
        Run the command and wait for completion.

        Returns:
            Tuple of (stdout, stderr) as strings

        Raises:
            FFmpegError: If the process cannot start or exits non-zero
            ProcessTimeoutError: If process exceeds timeout
        """
        logger.debug(f"Running: {' '.join(self.command)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise FFmpegError(
                f"Could not start {self.command[0]}: {e}", command=self.command
            ) from e

        try:
            if self.timeout:
                stdout, stderr = await asyncio.wait_for(
                    self._communicate_with_progress(),
                    timeout=self.timeout,
                )
            else:
                stdout, stderr = await self._communicate_with_progress()
        except asyncio.TimeoutError:
            logger.error(f"Process exceeded timeout of {self.timeout}s: {self.command[0]}")
            await self.terminate()
            raise ProcessTimeoutError(
                f"Process exceeded timeout of {self.timeout}s",
                timeout=self.timeout or 0.0,
            )
        except BaseException:
            await self.terminate()
            raise

        if self._process.returncode != 0:
            error_msg = self._extract_error_message(stderr)
            raise FFmpegError(
                f"FFmpeg failed with code {self._process.returncode}: {error_msg}",
                command=self.command,
                stderr=stderr,
            )

        return stdout, stderr

    async def _communicate_with_progress(self) -> tuple[str, str]:
        """Read stdout and stderr concurrently, then wait for exit."""
        if not self._process:
            raise RuntimeError("Process not started")

        stdout, stderr = await asyncio.gather(self._read_stdout(), self._read_stderr())
        await self._process.wait()
        return stdout, stderr

    async def _read_stdout(self) -> str:
        """Read complete stdout."""
        if not self._process or not self._process.stdout:
            return ""

        stdout = await self._process.stdout.read()
        return stdout.decode(errors="replace") if stdout else ""

    async def _read_stderr(self) -> str:
        """
        Read stderr and report encoding progress.

        Returns:
            Complete stderr output as string
        """
        stderr_lines: list[str] = []

        async for line in self._stream_stderr():
            stderr_lines.append(line)

            if self._duration is None:
                duration_match = self.DURATION_PATTERN.search(line)
                if duration_match:
                    self._duration = parse_time_to_seconds(duration_match.group(1))

            if self._duration and self.progress_callback:
                progress_match = self.PROGRESS_PATTERN.search(line)
                if progress_match:
                    elapsed = parse_time_to_seconds(progress_match.group(1))
                    progress = min(elapsed / self._duration, 1.0)

                    speed_match = self.SPEED_PATTERN.search(line)
                    speed = float(speed_match.group(1)) if speed_match else None

                    try:
                        self.progress_callback(progress, speed)
                    except Exception as e:
                        logger.warning(f"Progress callback failed: {e}")

        self._stderr_lines = stderr_lines
        return "\n".join(stderr_lines)

    async def _stream_stderr(self) -> AsyncIterator[str]:
        """
        Stream stderr line by line.

        FFmpeg rewrites its status line with carriage returns, so both
        ``\\r`` and ``\\n`` end a line. Reads fixed-size chunks, so lines
        longer than the stream reader limit never stall the encode.
        """
        if not self._process or not self._process.stderr:
            return

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        while True:
            chunk = await self._process.stderr.read(self.STDERR_CHUNK_SIZE)
            if not chunk:
                break

            buffer += decoder.decode(chunk)
            *parts, buffer = LINE_BREAK.split(buffer)
            for part in parts:
                part = part.strip()
                if part:
                    yield part

        buffer = (buffer + decoder.decode(b"", final=True)).strip()
        if buffer:
            yield buffer

    def _extract_error_message(self, stderr: str) -> str:
        """
        Extract meaningful error message from stderr.

        Returns:
            Matched error line with context, or the last three lines
        """
        lines = stderr.split("\n")
        for pattern in self.ERROR_PATTERNS:
            for i, line in enumerate(lines):
                if re.search(pattern, line, re.IGNORECASE):
                    return " | ".join(lines[i : i + 3])

        tail = [line for line in lines if line.strip()]
        return " | ".join(tail[-3:]) if tail else "Unknown error"

    async def terminate(self) -> None:
        """
        Terminate the process gracefully.

        Sends SIGTERM, waits briefly, then sends SIGKILL if needed.
        """
        if not self._process or self._process.returncode is not None:
            return

        try:
            self._process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(self._process.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning(f"Forcing termination of {self.command[0]}")
            self._process.kill()
            await self._process.wait()

    @property
    def is_running(self) -> bool:
        """Check if process is currently running."""
        return self._process is not None and self._process.returncode is None

    @property
    def returncode(self) -> Optional[int]:
        """Get process return code."""
        return self._process.returncode if self._process else None

    @property
    def stderr_output(self) -> list[str]:
        """Get captured stderr lines."""
        return self._stderr_lines.copy()


async def run_ffmpeg_async(
    command: list[str],
    timeout: Optional[float] = None,
    progress_callback: Optional[ProgressCallback] = None,
    duration: Optional[float] = None,
) -> tuple[str, str]:
    """
    Convenience function to run an FFmpeg command asynchronously.

    Raises:
        FFmpegError: If command fails
        ProcessTimeoutError: If command exceeds timeout
    """
    process = AsyncFFmpegProcess(command, timeout, progress_callback, duration)
    return await process.run()


async def check_binary(binary: str, timeout: float = 15.0) -> str:
    """
    Verify an external binary runs by asking for its version.

    Args:
        binary: Executable name or path
        timeout: Seconds to wait for ``-version``

    Returns:
        First line of the version output

    Raises:
        BinaryNotFoundError: If the binary is missing or fails
    """
    try:
        process = await asyncio.create_subprocess_exec(
            binary,
            "-version",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise BinaryNotFoundError(f"{binary} not found: {e}", binary=binary) from e

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        raise BinaryNotFoundError(f"{binary} -version timed out", binary=binary) from e

    if process.returncode != 0:
        raise BinaryNotFoundError(
            f"{binary} -version exited with code {process.returncode}", binary=binary
        )

    output = stdout.decode(errors="replace").strip() if stdout else ""
    version = output.splitlines()[0] if output else binary
    logger.info(f"Found {version}")
    return version
