"""HLS playlist generation and parsing."""

from .generator import (
    BANDWIDTHS,
    CODEC_SIGNATURES,
    DEFAULT_BANDWIDTH,
    DEFAULT_CODECS,
    ManifestEntry,
    ManifestWriter,
    MediaPlaylistInfo,
    codec_signature,
    get_bandwidth_for_quality,
    parse_master_playlist,
    parse_media_playlist,
    render_manifest,
    validate_master_playlist,
)

__all__ = [
    "BANDWIDTHS",
    "CODEC_SIGNATURES",
    "DEFAULT_BANDWIDTH",
    "DEFAULT_CODECS",
    "ManifestEntry",
    "ManifestWriter",
    "MediaPlaylistInfo",
    "codec_signature",
    "get_bandwidth_for_quality",
    "parse_master_playlist",
    "parse_media_playlist",
    "render_manifest",
    "validate_master_playlist",
]
