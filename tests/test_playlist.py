"""
Tests for master playlist writing and playlist parsing.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from hls_converter.models import ConversionJob, Failed, SourceVideo, Succeeded
from hls_converter.planner import QUALITY_LADDER
from hls_converter.playlist import (
    CODEC_SIGNATURES,
    DEFAULT_BANDWIDTH,
    ManifestEntry,
    ManifestWriter,
    codec_signature,
    get_bandwidth_for_quality,
    parse_master_playlist,
    parse_media_playlist,
    render_manifest,
    validate_master_playlist,
)
from hls_converter.utils import ManifestError

MEDIA_PLAYLIST = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:10
#EXT-X-MEDIA-SEQUENCE:0
#EXT-X-PLAYLIST-TYPE:VOD
#EXT-X-INDEPENDENT-SEGMENTS
#EXTINF:10.010000,
segment_000.ts
#EXTINF:10.010000,
segment_001.ts
#EXTINF:4.504500,
segment_002.ts
#EXT-X-ENDLIST
"""


# === Fixtures ===


@pytest.fixture
def job(tmp_path):
    """Job over the full ladder."""
    source = SourceVideo(tmp_path / "movie.mp4", 1000, 24.5, 1920, 1080, "h264")
    return ConversionJob.create(source, tmp_path / "hls" / "movie", list(QUALITY_LADDER))


def settle(job, succeeded):
    """Finish every task; names in ``succeeded`` succeed."""
    for task in job.tasks:
        task.start(0.0)
        if task.quality.name in succeeded:
            task.finish(Succeeded(task.playlist_path), 1.0)
        else:
            task.finish(Failed("encoder crashed"), 1.0)


class TestBandwidthAndCodecs:
    """Test advertised stream attributes."""

    def test_bandwidths(self):
        """Test per-quality bandwidth table."""
        assert get_bandwidth_for_quality("1080p") == 5_000_000
        assert get_bandwidth_for_quality("720p") == 2_500_000
        assert get_bandwidth_for_quality("480p") == 1_000_000
        assert get_bandwidth_for_quality("360p") == 500_000
        assert get_bandwidth_for_quality("4k") == DEFAULT_BANDWIDTH

    def test_codec_signature(self):
        """Test CODECS attribute per output codec."""
        assert codec_signature("h264") == "avc1.640028,mp4a.40.2"
        assert codec_signature("HEVC") == CODEC_SIGNATURES["hevc"]
        assert codec_signature("vp9") == CODEC_SIGNATURES["h264"]


class TestRenderManifest:
    """Test master playlist rendering."""

    def test_render(self):
        """Test exact output format."""
        entries = [ManifestEntry("720p/playlist.m3u8", 1280, 720, 2_500_000)]

        assert render_manifest(entries) == (
            "#EXTM3U\n"
            "#EXT-X-VERSION:6\n"
            "\n"
            '#EXT-X-STREAM-INF:BANDWIDTH=2500000,RESOLUTION=1280x720,CODECS="avc1.640028,mp4a.40.2"\n'
            "720p/playlist.m3u8\n"
            "\n"
        )

    def test_render_empty(self):
        """Test an empty manifest is still well-formed."""
        assert render_manifest([]) == "#EXTM3U\n#EXT-X-VERSION:6\n\n"


class TestManifestWriter:
    """Test ManifestWriter."""

    def test_only_succeeded_sorted_by_height(self, job):
        """Test failed qualities are left out and order is by height."""
        settle(job, {"360p", "1080p", "480p"})
        job.output_dir.mkdir(parents=True)

        path = ManifestWriter().write(job.manifest_path, job.tasks)

        entries = parse_master_playlist(path)
        assert [e.quality for e in entries] == ["1080p", "480p", "360p"]
        assert [e.uri for e in entries] == [
            "1080p/playlist.m3u8",
            "480p/playlist.m3u8",
            "360p/playlist.m3u8",
        ]
        assert entries[0].resolution == "1920x1080"
        assert entries[0].bandwidth == 5_000_000

    def test_order_independent_of_task_order(self, job):
        """Test reversed task order gives the same manifest."""
        settle(job, {"1080p", "720p"})
        job.output_dir.mkdir(parents=True)
        writer = ManifestWriter()

        first = writer.write(job.manifest_path, job.tasks).read_text()
        second = writer.write(job.manifest_path, list(reversed(job.tasks))).read_text()

        assert first == second

    def test_codecs_attribute(self, job):
        """Test configured codec signature is written."""
        settle(job, {"720p"})
        job.output_dir.mkdir(parents=True)

        ManifestWriter(codecs=codec_signature("hevc")).write(job.manifest_path, job.tasks)

        entries = parse_master_playlist(job.manifest_path)
        assert entries[0].codecs == "hvc1.1.6.L120.90,mp4a.40.2"

    def test_all_failed_writes_empty_manifest(self, job):
        """Test a job without successes still gets a valid empty manifest."""
        settle(job, set())
        job.output_dir.mkdir(parents=True)

        path = ManifestWriter().write(job.manifest_path, job.tasks)

        assert path.read_text() == "#EXTM3U\n#EXT-X-VERSION:6\n\n"
        assert parse_master_playlist(path) == []

    def test_pending_tasks_ignored(self, job):
        """Test unsettled tasks are not listed."""
        assert ManifestWriter().build_entries(job.manifest_path, job.tasks) == []

    def test_no_temp_file_left(self, job):
        """Test the temporary file is renamed into place."""
        settle(job, {"720p"})
        job.output_dir.mkdir(parents=True)

        ManifestWriter().write(job.manifest_path, job.tasks)

        assert sorted(p.name for p in job.output_dir.iterdir()) == ["master.m3u8"]

    def test_write_failure(self, job):
        """Test unwritable output raises ManifestError."""
        settle(job, {"720p"})
        # Parent directory does not exist
        with pytest.raises(ManifestError, match="Failed to write master playlist"):
            ManifestWriter().write(job.manifest_path, job.tasks)

    def test_rename_failure_cleans_up(self, job):
        """Test the temp file is removed when the rename fails."""
        settle(job, {"720p"})
        job.output_dir.mkdir(parents=True)

        with patch.object(Path, "replace", side_effect=OSError("read-only")):
            with pytest.raises(ManifestError):
                ManifestWriter().write(job.manifest_path, job.tasks)

        assert list(job.output_dir.iterdir()) == []


class TestParsing:
    """Test playlist parsing."""

    def test_parse_media_playlist(self):
        """Test segments and durations."""
        info = parse_media_playlist(MEDIA_PLAYLIST)

        assert info.has_header
        assert info.ended
        assert info.target_duration == 10.0
        assert info.segment_uris == ["segment_000.ts", "segment_001.ts", "segment_002.ts"]
        assert info.segment_count == 3
        assert info.total_duration == pytest.approx(24.5245)

    def test_parse_media_playlist_from_path(self, tmp_path):
        """Test parsing from a file."""
        path = tmp_path / "playlist.m3u8"
        path.write_text(MEDIA_PLAYLIST)

        assert parse_media_playlist(path).segment_count == 3

    def test_parse_truncated_media_playlist(self):
        """Test an interrupted playlist has no end tag."""
        info = parse_media_playlist("#EXTM3U\n#EXTINF:10.0,\nsegment_000.ts\n")

        assert not info.ended
        assert info.total_duration == 10.0

    def test_parse_master_playlist(self):
        """Test stream entries are read back."""
        text = (
            "#EXTM3U\n#EXT-X-VERSION:6\n\n"
            '#EXT-X-STREAM-INF:BANDWIDTH=1000000,RESOLUTION=854x480,CODECS="avc1.640028,mp4a.40.2"\n'
            "480p/playlist.m3u8\n"
        )

        entries = parse_master_playlist(text)

        assert entries == [
            ManifestEntry("480p/playlist.m3u8", 854, 480, 1_000_000, "avc1.640028,mp4a.40.2")
        ]


class TestValidateMasterPlaylist:
    """Test master playlist checks."""

    def test_valid(self, job):
        """Test manifest with existing quality playlists."""
        settle(job, {"720p"})
        (job.output_dir / "720p").mkdir(parents=True)
        (job.output_dir / "720p" / "playlist.m3u8").write_text(MEDIA_PLAYLIST)
        ManifestWriter().write(job.manifest_path, job.tasks)

        assert validate_master_playlist(job.output_dir) == (True, [])

    def test_missing(self, tmp_path):
        """Test missing manifest."""
        valid, errors = validate_master_playlist(tmp_path)
        assert not valid
        assert "not found" in errors[0]

    def test_missing_reference(self, job):
        """Test manifest pointing at a missing playlist."""
        settle(job, {"480p"})
        job.output_dir.mkdir(parents=True)
        ManifestWriter().write(job.manifest_path, job.tasks)

        valid, errors = validate_master_playlist(job.output_dir)

        assert not valid
        assert errors == ["Referenced playlist not found: 480p/playlist.m3u8"]
