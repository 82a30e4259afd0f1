"""Tests for summary reporter."""

from io import StringIO

import pytest
from rich.console import Console

from hls_converter.executor import BatchPreview
from hls_converter.executor.batch import PreviewEntry
from hls_converter.hardware import HardwareInfo, HardwareType
from hls_converter.hardware.detector import ProbeResult
from hls_converter.models import (
    BatchReport,
    ConversionJob,
    JobResult,
    JobStatus,
    QualityMeasurement,
    SourceVideo,
    ValidationResult,
)
from hls_converter.planner import QUALITY_LADDER, ExecutionStrategy
from hls_converter.ui import SummaryReporter, create_summary_table
from hls_converter.validator import ResumePlan


@pytest.fixture
def mock_console():
    """Create console writing to string IO."""
    string_io = StringIO()
    console = Console(file=string_io, force_terminal=False, width=400)
    return console, string_io


@pytest.fixture
def sample_report(tmp_path):
    """Report with one video per status."""
    output_dir = tmp_path / "hls"
    report = BatchReport(output_dir=output_dir, total_files=4, capability="nvidia", elapsed=75.0)
    report.add(
        JobResult(
            name="a.mp4",
            source_path=tmp_path / "a.mp4",
            output_dir=output_dir / "a",
            status=JobStatus.SUCCEEDED,
            succeeded_qualities=["1080p", "720p"],
            aligned=True,
            duration=42.0,
        )
    )
    report.add(
        JobResult(
            name="b.mp4",
            source_path=tmp_path / "b.mp4",
            output_dir=output_dir / "b",
            status=JobStatus.PARTIAL,
            succeeded_qualities=["720p"],
            failed_qualities={"1080p": "ffmpeg exited with code 1"},
            aligned=True,
        )
    )
    report.add(
        JobResult(
            name="c.mp4",
            source_path=tmp_path / "c.mp4",
            output_dir=output_dir / "c",
            status=JobStatus.FAILED,
            failed_qualities={"720p": "timed out"},
        )
    )
    report.add(
        JobResult(
            name="d.mp4",
            source_path=tmp_path / "d.mp4",
            output_dir=output_dir / "d",
            status=JobStatus.SKIPPED,
            aligned=True,
        )
    )
    return report


class TestBatchReport:
    """Test report counts."""

    def test_counts(self, sample_report):
        """Test per-status counts."""
        assert sample_report.succeeded == 2
        assert sample_report.partial == 1
        assert sample_report.failed == 1
        assert sample_report.skipped == 1
        assert not sample_report.all_skipped

    def test_errors(self, sample_report):
        """Test flattened error lines."""
        assert sample_report.errors == [
            "b.mp4 (1080p): ffmpeg exited with code 1",
            "c.mp4 (720p): timed out",
        ]

    def test_job_level_error(self, tmp_path):
        """Test job errors follow quality errors."""
        result = JobResult(
            name="x.mp4",
            source_path=tmp_path / "x.mp4",
            output_dir=tmp_path,
            status=JobStatus.FAILED,
            failed_qualities={"360p": "boom"},
            error="Failed to write master playlist",
        )

        assert result.error_lines == [
            "x.mp4 (360p): boom",
            "x.mp4: Failed to write master playlist",
        ]
        assert not result.is_success

    def test_empty_is_not_all_skipped(self, tmp_path):
        """Test an empty run is not reported as all skipped."""
        assert not BatchReport(output_dir=tmp_path).all_skipped


class TestSummaryReporter:
    """Test SummaryReporter."""

    def test_display_report(self, mock_console, sample_report):
        """Test the final report lists videos and errors."""
        console, output = mock_console

        SummaryReporter(console).display_report(sample_report)

        text = output.getvalue()
        assert "Conversion Complete" in text
        for name in ("a.mp4", "b.mp4", "c.mp4", "d.mp4"):
            assert name in text
        assert "partially succeeded" in text
        assert "skipped (aligned)" in text
        assert "failed: 1080p" in text
        assert "Errors (2)" in text
        assert "c.mp4 (720p): timed out" in text
        assert "00:00:42" in text

    def test_display_report_halted(self, mock_console, tmp_path):
        """Test halt reason is shown."""
        console, output = mock_console
        report = BatchReport(
            output_dir=tmp_path,
            halted=True,
            halt_reason="Low disk space: 1.0 GB free",
            not_scheduled=3,
        )

        SummaryReporter(console).display_report(report)

        text = output.getvalue()
        assert "Scheduling stopped: Low disk space" in text
        assert "Not scheduled" in text

    def test_display_report_all_skipped(self, mock_console, tmp_path):
        """Test the nothing-to-do message."""
        console, output = mock_console
        report = BatchReport(output_dir=tmp_path, total_files=1)
        report.add(
            JobResult(
                name="a.mp4",
                source_path=tmp_path / "a.mp4",
                output_dir=tmp_path / "a",
                status=JobStatus.SKIPPED,
                aligned=True,
            )
        )

        SummaryReporter(console).display_report(report)

        assert "already converted and aligned" in output.getvalue()

    def test_display_preview(self, mock_console, tmp_path):
        """Test dry-run table and commands."""
        console, output = mock_console
        source = SourceVideo(tmp_path / "movie.mp4", 2 * 1024 * 1024, 90.0, 1920, 1080, "h264")
        job = ConversionJob.create(source, tmp_path / "hls" / "movie", QUALITY_LADDER[:2])
        preview = BatchPreview(
            input_dir=tmp_path,
            output_dir=tmp_path / "hls",
            capability=HardwareType.NONE,
            strategy=ExecutionStrategy(2, 8, 16.0, "linux"),
            entries=[
                PreviewEntry(
                    job=job, action="reconvert", commands=[["ffmpeg", "-i", "in file.mp4"]]
                )
            ],
            unmatched=[tmp_path / "hls" / "orphan"],
        )

        SummaryReporter(console).display_preview(preview, show_commands=True)

        text = output.getvalue()
        assert "Dry Run" in text
        assert "CPU (software)" in text
        assert "1080p, 720p" in text
        assert "reconvert" in text
        assert "2.0 MB" in text
        assert "00:01:30" in text
        assert "'in file.mp4'" in text
        assert "No source found for existing output" in text

    def test_display_preview_empty(self, mock_console, tmp_path):
        """Test dry run without videos."""
        console, output = mock_console
        preview = BatchPreview(
            input_dir=tmp_path,
            output_dir=tmp_path / "hls",
            capability=HardwareType.NONE,
            strategy=ExecutionStrategy(1, 4, 8.0, "linux"),
        )

        SummaryReporter(console).display_preview(preview)

        assert "No video files found" in output.getvalue()

    def test_display_validation(self, mock_console, tmp_path):
        """Test validation-only output."""
        console, output = mock_console
        good = ValidationResult(output_dir=tmp_path / "good", source_duration=20.0)
        good.qualities.append(
            QualityMeasurement("720p", tmp_path, duration=20.0, segment_count=2, aligned=True)
        )
        bad = ValidationResult(output_dir=tmp_path / "bad", source_duration=30.0)
        bad.qualities.append(QualityMeasurement("480p", tmp_path, error="Could not read playlist"))
        plan = ResumePlan(
            aligned={tmp_path / "good.mp4": good},
            requeued=[tmp_path / "bad.mp4"],
            unmatched=[tmp_path / "orphan"],
            results=[good, bad],
        )

        SummaryReporter(console).display_validation(plan)

        text = output.getvalue()
        assert "aligned" in text
        assert "misaligned" in text
        assert "720p: 20.0s (2 seg)" in text
        assert "480p: unreadable" in text
        assert "no source" in text
        assert "2 validated, 1 aligned, 1 misaligned, 1 without source" in text
        assert "redone on the next conversion run" in text

    def test_display_validation_empty(self, mock_console):
        """Test validation with no existing output."""
        console, output = mock_console

        SummaryReporter(console).display_validation(ResumePlan())

        assert "No existing output found" in output.getvalue()

    def test_display_hardware(self, mock_console):
        """Test hardware table."""
        console, output = mock_console
        info = HardwareInfo(
            capability=HardwareType.NVIDIA,
            probes=[
                ProbeResult(HardwareType.NVIDIA, available=True, detail="NVIDIA RTX 3080"),
                ProbeResult(HardwareType.INTEL, error="Encoder h264_qsv failed"),
            ],
            platform="linux",
            machine="x86_64",
        )

        SummaryReporter(console).display_hardware(info)

        text = output.getvalue()
        assert "NVIDIA RTX 3080" in text
        assert "Encoder h264_qsv failed" in text
        assert "Selected: NVIDIA NVENC" in text

    def test_display_error(self, mock_console):
        """Test error panel."""
        console, output = mock_console

        SummaryReporter(console).display_error("Configuration error", ValueError("bad crf"))

        text = output.getvalue()
        assert "Configuration error" in text
        assert "bad crf" in text


class TestCreateSummaryTable:
    """Test create_summary_table."""

    def test_rows(self, mock_console, sample_report):
        """Test counts table content."""
        console, output = mock_console

        table = create_summary_table(sample_report)
        console.print(table)

        text = output.getvalue()
        assert table.row_count == 9
        assert "Total videos" in text
        assert "nvidia" in text
        assert "00:01:15" in text

    def test_not_scheduled_row(self, tmp_path):
        """Test the extra row after a halt."""
        report = BatchReport(output_dir=tmp_path, not_scheduled=2)

        assert create_summary_table(report).row_count == 10
