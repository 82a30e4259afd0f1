"""
HLS playlist generation module.

This module writes the master playlist of a converted video and parses
master and media playlists back for validation.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

from ..models import MASTER_PLAYLIST_NAME, ConversionTask
from ..utils import ManifestError, get_logger

logger = get_logger(__name__)

HLS_VERSION = 6

# Advertised peak bandwidth per quality tier (bits per second)
BANDWIDTHS = {
    "1080p": 5_000_000,
    "720p": 2_500_000,
    "480p": 1_000_000,
    "360p": 500_000,
}
DEFAULT_BANDWIDTH = 1_000_000

# RFC 6381 codec strings for muxed video + AAC-LC audio
CODEC_SIGNATURES = {
    "h264": "avc1.640028,mp4a.40.2",
    "hevc": "hvc1.1.6.L120.90,mp4a.40.2",
    "av1": "av01.0.08M.08,mp4a.40.2",
}
DEFAULT_CODECS = CODEC_SIGNATURES["h264"]

STREAM_INF_PREFIX = "#EXT-X-STREAM-INF:"
_ATTRIBUTE_PATTERN = re.compile(r'([A-Z0-9-]+)=("[^"]*"|[^,]*)')
_EXTINF_PATTERN = re.compile(r"#EXTINF:\s*([0-9]*\.?[0-9]+)")


def get_bandwidth_for_quality(quality: str) -> int:
    """Bandwidth advertised for a quality tier name."""
    return BANDWIDTHS.get(quality, DEFAULT_BANDWIDTH)


def codec_signature(codec: str) -> str:
    """CODECS attribute for an output codec name; unknown names mean H.264."""
    return CODEC_SIGNATURES.get(str(codec).lower(), DEFAULT_CODECS)


@dataclass(frozen=True)
class ManifestEntry:
    """One quality listed in a master playlist."""

    uri: str  # relative to the master playlist
    width: int
    height: int
    bandwidth: int
    codecs: str = DEFAULT_CODECS

    @property
    def resolution(self) -> str:
        """Get resolution string."""
        return f"{self.width}x{self.height}"

    @property
    def quality(self) -> str:
        """Quality directory the entry points into."""
        return self.uri.split("/", 1)[0]


@dataclass
class MediaPlaylistInfo:
    """Parsed content of a quality playlist."""

    has_header: bool = False
    target_duration: Optional[float] = None
    segments: list[tuple[str, float]] = field(default_factory=list)  # (uri, duration)
    ended: bool = False

    @property
    def total_duration(self) -> float:
        """Sum of all declared segment durations."""
        return sum(duration for _, duration in self.segments)

    @property
    def segment_count(self) -> int:
        """Number of segments referenced."""
        return len(self.segments)

    @property
    def segment_uris(self) -> list[str]:
        """Segment references in playlist order."""
        return [uri for uri, _ in self.segments]


def render_manifest(entries: Sequence[ManifestEntry], version: int = HLS_VERSION) -> str:
    """
    Render master playlist text.

    An empty entry list still renders a valid (contentless) playlist.
    """
    lines = ["#EXTM3U", f"#EXT-X-VERSION:{version}", ""]
    for entry in entries:
        lines.append(
            f"{STREAM_INF_PREFIX}BANDWIDTH={entry.bandwidth},"
            f"RESOLUTION={entry.resolution},"
            f'CODECS="{entry.codecs}"'
        )
        lines.append(entry.uri)
        lines.append("")
    return "\n".join(lines) + "\n"


class ManifestWriter:
    """
    Writes the master playlist of one converted video.

    Only succeeded tasks are listed, highest resolution first. The file is
    written to a temporary sibling and renamed into place, so readers never
    see a partial manifest.
    """

    def __init__(self, codecs: str = DEFAULT_CODECS, version: int = HLS_VERSION):
        """
        Initialize the manifest writer.

        Args:
            codecs: CODECS attribute written for every entry
            version: EXT-X-VERSION of the master playlist
        """
        self.codecs = codecs
        self.version = version

    def build_entries(
        self, manifest_path: Path, tasks: Sequence[ConversionTask]
    ) -> list[ManifestEntry]:
        """
        Build manifest entries from the succeeded tasks.

        Args:
            manifest_path: Location of the master playlist
            tasks: All tasks of a job (failed and pending ones are ignored)

        Returns:
            Entries sorted by descending resolution height
        """
        base_dir = manifest_path.parent
        succeeded = [task for task in tasks if task.succeeded]
        succeeded.sort(key=lambda task: task.quality.height, reverse=True)

        return [
            ManifestEntry(
                uri=_relative_uri(task.playlist_path, base_dir),
                width=task.quality.width,
                height=task.quality.height,
                bandwidth=get_bandwidth_for_quality(task.quality.name),
                codecs=self.codecs,
            )
            for task in succeeded
        ]

    def write(self, manifest_path: Path, tasks: Sequence[ConversionTask]) -> Path:
        """
        Atomically write the master playlist.

        Args:
            manifest_path: Final master playlist path
            tasks: All tasks of the job

        Returns:
            Path to the written manifest

        Raises:
            ManifestError: If the manifest cannot be written
        """
        entries = self.build_entries(manifest_path, tasks)
        content = render_manifest(entries, self.version)
        temp_path = manifest_path.with_name(manifest_path.name + ".tmp")

        try:
            temp_path.write_text(content, encoding="utf-8")
            temp_path.replace(manifest_path)
        except OSError as e:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(f"Could not remove {temp_path}: {cleanup_error}")
            raise ManifestError(f"Failed to write master playlist {manifest_path}: {e}") from e

        if not entries:
            logger.warning(f"Master playlist without qualities: {manifest_path}")
        logger.info(f"Generated master playlist: {manifest_path} ({len(entries)} qualities)")
        return manifest_path


def _relative_uri(path: Path, base_dir: Path) -> str:
    """Playlist reference relative to the master playlist, with forward slashes."""
    try:
        return path.relative_to(base_dir).as_posix()
    except ValueError:
        return path.as_posix()


def _read_text(source: Union[str, Path]) -> str:
    """Accept either playlist text or a playlist path."""
    if isinstance(source, Path):
        return source.read_text(encoding="utf-8")
    return source


def parse_master_playlist(source: Union[str, Path]) -> list[ManifestEntry]:
    """
    Parse the stream entries of a master playlist.

    Args:
        source: Playlist text or path

    Returns:
        Entries in file order
    """
    lines = [line.strip() for line in _read_text(source).splitlines()]
    entries: list[ManifestEntry] = []

    for i, line in enumerate(lines):
        if not line.startswith(STREAM_INF_PREFIX):
            continue

        attrs = {
            key: value.strip('"')
            for key, value in _ATTRIBUTE_PATTERN.findall(line[len(STREAM_INF_PREFIX) :])
        }
        uri = next((candidate for candidate in lines[i + 1 :] if candidate), "")
        if not uri or uri.startswith("#"):
            continue

        width, height = 0, 0
        resolution = attrs.get("RESOLUTION", "")
        if "x" in resolution:
            w, h = resolution.split("x", 1)
            if w.isdigit() and h.isdigit():
                width, height = int(w), int(h)

        bandwidth = attrs.get("BANDWIDTH", "0")
        entries.append(
            ManifestEntry(
                uri=uri,
                width=width,
                height=height,
                bandwidth=int(bandwidth) if bandwidth.isdigit() else 0,
                codecs=attrs.get("CODECS", ""),
            )
        )

    return entries


def parse_media_playlist(source: Union[str, Path]) -> MediaPlaylistInfo:
    """
    Parse a quality playlist.

    Args:
        source: Playlist text or path

    Returns:
        MediaPlaylistInfo with segment references and declared durations
    """
    info = MediaPlaylistInfo()
    pending_duration: Optional[float] = None

    for raw_line in _read_text(source).splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line == "#EXTM3U":
            info.has_header = True
        elif line.startswith("#EXT-X-TARGETDURATION:"):
            try:
                info.target_duration = float(line.split(":", 1)[1])
            except ValueError:
                logger.debug(f"Ignoring malformed target duration: {line}")
        elif line.startswith("#EXTINF:"):
            match = _EXTINF_PATTERN.match(line)
            pending_duration = float(match.group(1)) if match else 0.0
        elif line == "#EXT-X-ENDLIST":
            info.ended = True
        elif not line.startswith("#"):
            info.segments.append((line, pending_duration or 0.0))
            pending_duration = None

    return info


def validate_master_playlist(output_dir: Path) -> tuple[bool, list[str]]:
    """
    Check a video's master playlist and the quality playlists it references.

    Returns:
        Tuple of (is_valid, errors)
    """
    errors: list[str] = []
    master_path = output_dir / MASTER_PLAYLIST_NAME

    if not master_path.exists():
        return False, [f"Master playlist ({MASTER_PLAYLIST_NAME}) not found"]

    try:
        content = master_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return False, [f"Error reading master playlist: {e}"]

    if not content.lstrip().startswith("#EXTM3U"):
        errors.append("Master playlist missing #EXTM3U header")

    entries = parse_master_playlist(content)
    if not entries:
        errors.append("Master playlist lists no qualities")

    for entry in entries:
        if not (output_dir / entry.uri).exists():
            errors.append(f"Referenced playlist not found: {entry.uri}")

    return len(errors) == 0, errors
