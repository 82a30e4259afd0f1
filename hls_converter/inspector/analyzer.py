"""
Media inspection using FFprobe.

This module reads the properties the converter needs from a source video:
file size, duration, frame size and codec of the primary video stream.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

from ..models import SourceVideo
from ..utils import MediaInspectionError, get_logger

logger = get_logger(__name__)


class MediaInspector:
    """
    Inspects media files using FFprobe.

    Two probes are used:
    - a full JSON probe of format and streams for :class:`SourceVideo`
    - a container duration probe used by alignment checks
    """

    def __init__(self, ffprobe_path: str = "ffprobe", timeout: Optional[float] = 60.0):
        """
        Initialize media inspector.

        Args:
            ffprobe_path: Path to ffprobe executable (default: "ffprobe")
            timeout: Seconds to wait for one probe (None = no limit)
        """
        self._ffprobe_path = ffprobe_path
        self._timeout = timeout

    @property
    def ffprobe_path(self) -> str:
        """FFprobe executable in use."""
        return self._ffprobe_path

    async def inspect(self, input_file: Path) -> SourceVideo:
        """
        Inspect a media file.

        Args:
            input_file: Path to media file to inspect

        Returns:
            SourceVideo with probed properties

        Raises:
            MediaInspectionError: If file doesn't exist or inspection fails
        """
        if not input_file.exists():
            raise MediaInspectionError(f"File not found: {input_file}")

        if not input_file.is_file():
            raise MediaInspectionError(f"Not a file: {input_file}")

        stdout = await self._run_ffprobe(
            input_file, ["-print_format", "json", "-show_format", "-show_streams"]
        )

        try:
            probe_data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise MediaInspectionError(f"Failed to parse FFprobe output: {e}") from e

        if not isinstance(probe_data, dict):
            raise MediaInspectionError("Unexpected FFprobe output")

        video = self._parse_video(input_file, probe_data)
        logger.debug(
            f"Inspected {video.name}: {video.resolution}, {video.duration:.1f}s, {video.codec}"
        )
        return video

    async def probe(self, input_file: Path) -> SourceVideo:
        """
        Inspect a media file, degrading to an unknown video on failure.

        Unreadable metadata never stops a batch; the returned video has zero
        size, duration and dimensions and codec ``unknown``.

        Args:
            input_file: Path to media file

        Returns:
            SourceVideo (possibly :meth:`SourceVideo.unknown`)
        """
        try:
            return await self.inspect(input_file)
        except MediaInspectionError as e:
            logger.warning(f"Could not read metadata of {input_file.name}: {e}")
            return SourceVideo.unknown(input_file)

    async def probe_duration(self, input_file: Path) -> Optional[float]:
        """
        Read the container duration of a file.

        Args:
            input_file: Path to media file

        Returns:
            Duration in seconds, or None if it cannot be determined
        """
        try:
            stdout = await self._run_ffprobe(
                input_file, ["-show_entries", "format=duration", "-of", "csv=p=0"]
            )
        except MediaInspectionError as e:
            logger.warning(f"Could not read duration of {input_file.name}: {e}")
            return None

        try:
            duration = float(stdout.strip())
        except ValueError:
            logger.warning(f"Unparseable duration for {input_file.name}: {stdout.strip()!r}")
            return None

        return duration if duration > 0 else None

    async def _run_ffprobe(self, input_file: Path, args: list[str]) -> str:
        """
        Run ffprobe quietly and return its stdout.

        Raises:
            MediaInspectionError: If ffprobe cannot run or fails
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self._ffprobe_path,
                "-v",
                "quiet",
                *args,
                str(input_file),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise MediaInspectionError(f"FFprobe execution failed: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise MediaInspectionError(f"FFprobe timed out after {self._timeout}s") from e

        if process.returncode != 0:
            error_msg = stderr.decode(errors="replace").strip() if stderr else "Unknown error"
            raise MediaInspectionError(
                f"FFprobe failed with code {process.returncode}: {error_msg or 'Unknown error'}"
            )

        return stdout.decode(errors="replace") if stdout else ""

    def _parse_video(self, input_file: Path, probe_data: dict) -> SourceVideo:
        """Build a SourceVideo from format data and the first video stream."""
        format_data = probe_data.get("format", {}) or {}
        streams = probe_data.get("streams", []) or []

        video_stream = next(
            (s for s in streams if str(s.get("codec_type", "")).lower() == "video"),
            {},
        )

        duration = _to_float(format_data.get("duration"))
        if duration <= 0:
            duration = _to_float(video_stream.get("duration"))

        size = _to_int(format_data.get("size"))
        if size <= 0:
            try:
                size = input_file.stat().st_size
            except OSError:
                size = 0

        return SourceVideo(
            path=input_file,
            size=size,
            duration=duration,
            width=_to_int(video_stream.get("width")),
            height=_to_int(video_stream.get("height")),
            codec=video_stream.get("codec_name") or "unknown",
        )


def _to_float(value: object) -> float:
    """Parse an FFprobe number field, 0.0 when missing."""
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: object) -> int:
    """Parse an FFprobe integer field, 0 when missing."""
    try:
        return int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0


# Global instance
_inspector: Optional[MediaInspector] = None


def get_media_inspector(ffprobe_path: str = "ffprobe") -> MediaInspector:
    """
    Get global media inspector instance.

    Args:
        ffprobe_path: FFprobe executable; a different path replaces the instance

    Returns:
        MediaInspector instance
    """
    global _inspector
    if _inspector is None or _inspector.ffprobe_path != ffprobe_path:
        _inspector = MediaInspector(ffprobe_path)
    return _inspector
