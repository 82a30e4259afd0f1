"""
Integration tests for the batch converter.

The whole pipeline runs against a temporary directory tree; only the prober,
the hardware detector and the encoder are replaced.
"""

from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest

from hls_converter import BatchConverter, ConverterConfig
from hls_converter.config import OutputConfig, PerformanceConfig, QualityConfig
from hls_converter.hardware import HardwareType
from hls_converter.models import JobStatus, SourceVideo
from hls_converter.playlist import parse_master_playlist
from hls_converter.utils import BinaryNotFoundError


class FakeInspector:
    """Prober reporting 1080p sources of a fixed duration."""

    def __init__(self, duration: float = 30.0, unreadable: tuple = ()):
        self.duration = duration
        self.unreadable = set(unreadable)

    async def probe(self, path: Path) -> SourceVideo:
        if path.name in self.unreadable:
            return SourceVideo.unknown(path)
        return SourceVideo(path, 1000, self.duration, 1920, 1080, "h264")

    async def probe_duration(self, path: Path) -> Optional[float]:
        return self.duration


class FakeDetector:
    """Detector without hardware."""

    def __init__(self):
        self.calls = 0

    async def detect(self, prefer: str = "auto") -> HardwareType:
        self.calls += 1
        return HardwareType.NONE


class FakeRunner:
    """Writes three 10 second segments per quality."""

    def __init__(self):
        self.playlists: list[Path] = []

    async def __call__(self, command, progress_callback, duration):
        playlist = Path(command[-1])
        self.playlists.append(playlist)
        pattern = command[command.index("-hls_segment_filename") + 1]
        lines = ["#EXTM3U", "#EXT-X-TARGETDURATION:10"]
        for i in range(3):
            segment = Path(pattern % i)
            segment.write_bytes(b"\x47")
            lines.extend(["#EXTINF:10.000000,", segment.name])
        lines.append("#EXT-X-ENDLIST")
        playlist.write_text("\n".join(lines) + "\n")


def write_short_output(video_dir: Path, quality: str = "1080p") -> None:
    """Existing output 5 seconds shorter than the 30 second source."""
    quality_dir = video_dir / quality
    quality_dir.mkdir(parents=True)
    (quality_dir / "segment_000.ts").write_bytes(b"\x47")
    (quality_dir / "playlist.m3u8").write_text(
        "#EXTM3U\n#EXTINF:25.000000,\nsegment_000.ts\n#EXT-X-ENDLIST\n"
    )
    (video_dir / "master.m3u8").write_text(
        f"#EXTM3U\n#EXT-X-VERSION:6\n\n"
        f"#EXT-X-STREAM-INF:BANDWIDTH=5000000,RESOLUTION=1920x1080\n{quality}/playlist.m3u8\n"
    )


# === Fixtures ===


@pytest.fixture
def input_dir(tmp_path):
    """Input directory with three videos."""
    directory = tmp_path / "videos"
    directory.mkdir()
    for name in ("a.mp4", "b.mp4", "c.mkv"):
        (directory / name).write_bytes(b"\x00" * 64)
    return directory


@pytest.fixture
def config():
    """Sequential conversion without health checks."""
    return ConverterConfig(performance=PerformanceConfig(max_concurrent=1, health_checks=False))


@pytest.fixture
def make_converter(config, input_dir):
    """Build a converter with fake collaborators."""

    def _make(runner=None, inspector=None, cfg=None):
        return BatchConverter(
            cfg or config,
            input_dir,
            runner=runner or FakeRunner(),
            detector=FakeDetector(),
            inspector=inspector or FakeInspector(),
        )

    return _make


class TestBatchRun:
    """Test full conversion runs."""

    @pytest.mark.asyncio
    async def test_converts_everything(self, make_converter, input_dir):
        """Test every video gets aligned output."""
        report = await make_converter().run(check_binaries=False)

        assert report.total_files == 3
        assert report.succeeded == 3
        assert report.failed == 0
        assert report.capability == "none"
        assert report.codec == "h264"
        assert report.output_dir == input_dir / "hls"
        for stem in ("a", "b", "c"):
            master = input_dir / "hls" / stem / "master.m3u8"
            assert [e.quality for e in parse_master_playlist(master)] == ["1080p"]
        assert all(job.aligned for job in report.jobs)

    @pytest.mark.asyncio
    async def test_second_run_skips_everything(self, make_converter):
        """Test a rerun over aligned output converts nothing."""
        await make_converter().run(check_binaries=False)

        runner = FakeRunner()
        report = await make_converter(runner=runner).run(check_binaries=False)

        assert runner.playlists == []
        assert report.skipped == 3
        assert report.all_skipped
        assert all(job.status == JobStatus.SKIPPED for job in report.jobs)

    @pytest.mark.asyncio
    async def test_second_run_skips_uppercase_extension(self, config, tmp_path):
        """Test a rerun over an upper-case extension source converts nothing."""
        videos = tmp_path / "upper"
        videos.mkdir()
        (videos / "Clip.MP4").write_bytes(b"\x00" * 64)

        def converter(runner):
            return BatchConverter(
                config, videos, runner=runner, detector=FakeDetector(), inspector=FakeInspector()
            )

        first = await converter(FakeRunner()).run(check_binaries=False)
        assert first.succeeded == 1
        assert (videos / "hls" / "Clip" / "master.m3u8").exists()

        runner = FakeRunner()
        report = await converter(runner).run(check_binaries=False)

        assert runner.playlists == []
        assert report.skipped == 1
        assert [job.status for job in report.jobs] == [JobStatus.SKIPPED]

    @pytest.mark.asyncio
    async def test_misaligned_output_redone_first(self, make_converter, input_dir):
        """Test misaligned output is deleted and its source converted first."""
        output_root = input_dir / "hls"
        write_short_output(output_root / "c")
        stale_segment = output_root / "c" / "1080p" / "segment_000.ts"

        runner = FakeRunner()
        report = await make_converter(runner=runner).run(check_binaries=False)

        assert runner.playlists[0] == output_root / "c" / "1080p" / "playlist.m3u8"
        assert [p.parent.parent.name for p in runner.playlists] == ["c", "a", "b"]
        assert report.succeeded == 3
        assert stale_segment.exists()  # rewritten by the new encode
        playlist = (output_root / "c" / "1080p" / "playlist.m3u8").read_text()
        assert playlist.count("#EXTINF") == 3

    @pytest.mark.asyncio
    async def test_nested_layout(self, make_converter, input_dir):
        """Test output mirrors the input tree."""
        season = input_dir / "show" / "season1"
        season.mkdir(parents=True)
        (season / "ep1.mp4").write_bytes(b"\x00")

        await make_converter().run(check_binaries=False)

        assert (input_dir / "hls" / "show" / "season1" / "ep1" / "master.m3u8").exists()

    @pytest.mark.asyncio
    async def test_custom_output_root(self, config, input_dir, tmp_path):
        """Test a configured output root."""
        cfg = config.model_copy(update={"output": OutputConfig(output_dir=tmp_path / "out")})
        converter = BatchConverter(
            cfg, input_dir, runner=FakeRunner(), detector=FakeDetector(), inspector=FakeInspector()
        )

        report = await converter.run(check_binaries=False)

        assert report.succeeded == 3
        assert (tmp_path / "out" / "a" / "master.m3u8").exists()

    @pytest.mark.asyncio
    async def test_adaptive_mode(self, config, input_dir):
        """Test adaptive selection converts several qualities."""
        cfg = config.model_copy(update={"quality": QualityConfig(mode="adaptive-filtered")})
        runner = FakeRunner()
        converter = BatchConverter(
            cfg, input_dir, runner=runner, detector=FakeDetector(), inspector=FakeInspector()
        )

        report = await converter.run(check_binaries=False)

        assert report.jobs[0].succeeded_qualities == ["1080p", "720p"]
        assert len(runner.playlists) == 6

    @pytest.mark.asyncio
    async def test_unknown_metadata(self, make_converter):
        """Test unreadable metadata still converts the lowest closest rung."""
        report = await make_converter(inspector=FakeInspector(unreadable=("a.mp4",))).run(
            check_binaries=False
        )

        job = next(j for j in report.jobs if j.name == "a.mp4")
        assert job.succeeded_qualities == ["360p"]

    @pytest.mark.asyncio
    async def test_empty_input(self, config, tmp_path):
        """Test an input without videos."""
        empty = tmp_path / "empty"
        empty.mkdir()
        converter = BatchConverter(
            config, empty, runner=FakeRunner(), detector=FakeDetector(), inspector=FakeInspector()
        )

        report = await converter.run(check_binaries=False)

        assert report.total_files == 0
        assert report.jobs == []
        assert not (empty / "hls").exists()

    @pytest.mark.asyncio
    async def test_missing_binary(self, make_converter):
        """Test startup check failure stops the run."""
        with patch(
            "hls_converter.executor.batch.check_binary",
            new=AsyncMock(side_effect=BinaryNotFoundError("ffmpeg not found", binary="ffmpeg")),
        ):
            with pytest.raises(BinaryNotFoundError):
                await make_converter().run()

    @pytest.mark.asyncio
    async def test_binary_check(self, make_converter):
        """Test both binaries are checked."""
        check = AsyncMock(return_value="version 6.1")
        with patch("hls_converter.executor.batch.check_binary", new=check):
            versions = await make_converter().check_binaries()

        assert list(versions) == ["ffmpeg", "ffprobe"]


class TestPreviewAndValidate:
    """Test dry runs and validation-only passes."""

    @pytest.mark.asyncio
    async def test_preview_never_deletes(self, make_converter, input_dir):
        """Test dry run plans without touching output."""
        output_root = input_dir / "hls"
        await make_converter().run(check_binaries=False)
        (output_root / "b" / "master.m3u8").unlink()
        for path in list((output_root / "b").rglob("*")):
            if path.is_file():
                path.unlink()
        write_short_output(output_root / "c", quality="720p")

        runner = FakeRunner()
        preview = await make_converter(runner=runner).preview(check_binaries=False)

        actions = {entry.job.name: entry.action for entry in preview.entries}
        assert actions == {"a.mp4": "skip", "b.mp4": "convert", "c.mkv": "reconvert"}
        assert preview.to_convert == 2
        assert runner.playlists == []
        assert (output_root / "c" / "master.m3u8").exists()
        reconvert = next(e for e in preview.entries if e.action == "reconvert")
        assert reconvert.commands[0][-1] == str(output_root / "c" / "1080p" / "playlist.m3u8")

    @pytest.mark.asyncio
    async def test_validate_only(self, make_converter, input_dir):
        """Test validation reports without deleting."""
        output_root = input_dir / "hls"
        write_short_output(output_root / "a")

        with patch("hls_converter.executor.batch.check_binary", new=AsyncMock()) as check:
            plan = await make_converter().validate_only()

        check.assert_awaited_once_with("ffprobe")
        assert plan.validated_count == 1
        assert plan.requeued == [input_dir / "a.mp4"]
        assert (output_root / "a" / "master.m3u8").exists()
