"""
Post-encode validation of quality playlists.

A finished encode only counts as succeeded when its playlist is present,
well-formed and complete:
- the playlist file exists
- it carries the ``#EXTM3U`` header
- it references at least one ``.ts`` segment
- every referenced segment exists next to it
"""

from pathlib import Path

from ..playlist import MediaPlaylistInfo, parse_media_playlist
from ..utils import ValidationError, get_logger

logger = get_logger(__name__)

SEGMENT_SUFFIXES = (".ts",)


def check_playlist_exists(playlist_path: Path) -> None:
    """
    Minimal check applied even when file validation is disabled.

    Raises:
        ValidationError: If the playlist was not produced
    """
    if not playlist_path.is_file():
        raise ValidationError(f"Playlist not found: {playlist_path}")


def check_quality_playlist(playlist_path: Path) -> MediaPlaylistInfo:
    """
    Validate a quality playlist and its segments.

    Args:
        playlist_path: Path to ``playlist.m3u8``

    Returns:
        Parsed playlist

    Raises:
        ValidationError: If the playlist is missing, malformed or incomplete
    """
    check_playlist_exists(playlist_path)

    try:
        content = playlist_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ValidationError(f"Cannot read playlist {playlist_path}: {e}") from e

    if "#EXTM3U" not in content:
        raise ValidationError(f"Playlist missing #EXTM3U header: {playlist_path}")

    info = parse_media_playlist(content)
    segments = [uri for uri in info.segment_uris if uri.endswith(SEGMENT_SUFFIXES)]
    if not segments:
        raise ValidationError(f"Playlist references no segments: {playlist_path}")

    missing = [uri for uri in segments if not (playlist_path.parent / uri).exists()]
    if missing:
        raise ValidationError(
            f"Playlist {playlist_path.name} missing {len(missing)} of "
            f"{len(segments)} segment(s), first: {missing[0]}"
        )

    if not info.ended:
        logger.debug(f"Playlist without #EXT-X-ENDLIST: {playlist_path}")

    logger.debug(f"Validated {playlist_path} ({len(segments)} segments)")
    return info
