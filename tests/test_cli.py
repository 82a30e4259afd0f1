"""
Tests for the command-line interface.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from hls_converter import __version__
from hls_converter.cli.main import app, apply_overrides, quality_mode
from hls_converter.config import ConverterConfig
from hls_converter.executor import BatchPreview
from hls_converter.hardware import HardwareInfo, HardwareType, ProbeResult
from hls_converter.models import BatchReport
from hls_converter.planner import ExecutionStrategy
from hls_converter.utils import BinaryNotFoundError, ConfigurationError
from hls_converter.validator import ResumePlan

runner = CliRunner()


def flat(output: str) -> str:
    """Console output with line wrapping undone."""
    return " ".join(output.split())


# === Fixtures ===


@pytest.fixture
def config_file(tmp_path):
    """Minimal configuration file."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"encoding": {"crf": 21}}))
    return path


@pytest.fixture
def input_dir(tmp_path):
    """Input directory with one video."""
    directory = tmp_path / "videos"
    directory.mkdir()
    (directory / "movie.mp4").write_bytes(b"\x00")
    return directory


@pytest.fixture
def converter_cls(input_dir):
    """Patched BatchConverter class returning canned results."""
    with patch("hls_converter.cli.main.BatchConverter") as cls:
        instance = MagicMock()
        instance.run = AsyncMock(return_value=BatchReport(output_dir=input_dir / "hls"))
        instance.preview = AsyncMock(
            return_value=BatchPreview(
                input_dir=input_dir,
                output_dir=input_dir / "hls",
                capability=HardwareType.NONE,
                strategy=ExecutionStrategy(1, 4, 8.0, "linux"),
            )
        )
        instance.validate_only = AsyncMock(return_value=ResumePlan())
        cls.return_value = instance
        yield cls


class TestOverrides:
    """Test command-line overrides of the configuration."""

    def test_none_values_ignored(self):
        """Test unset options keep configured values."""
        config = ConverterConfig()

        result = apply_overrides(config, {"encoding": {"crf": None, "codec": "hevc"}})

        assert result.encoding.crf == 23
        assert result.encoding.codec == "hevc"
        assert config.encoding.codec == "h264"

    def test_invalid_value(self):
        """Test overrides are validated."""
        with pytest.raises(ConfigurationError, match="Invalid option"):
            apply_overrides(ConverterConfig(), {"hls": {"segment_duration": 0}})

    @pytest.mark.parametrize(
        "current,adaptive,no_smart,expected",
        [
            ("equal", False, False, "equal"),
            ("equal", True, False, "adaptive-filtered"),
            ("equal", True, True, "adaptive-all"),
            ("adaptive-filtered", False, True, "adaptive-all"),
            ("equal", False, True, "equal"),
            ("adaptive-all", False, False, "adaptive-all"),
        ],
    )
    def test_quality_mode(self, current, adaptive, no_smart, expected):
        """Test ladder mode resolution."""
        assert quality_mode(current, adaptive, no_smart) == expected


class TestConvertCommand:
    """Test the convert command."""

    def test_convert(self, converter_cls, input_dir, config_file):
        """Test options reach the converter configuration."""
        result = runner.invoke(
            app,
            [
                "convert",
                str(input_dir),
                "--config",
                str(config_file),
                "--codec",
                "hevc",
                "--adaptive",
                "-j",
                "3",
                "--tolerance",
                "1.5",
                "--no-validation",
                "--no-health-checks",
                "--output",
                str(input_dir / "out"),
            ],
        )

        assert result.exit_code == 0, result.output
        config, passed_dir = converter_cls.call_args[0]
        assert passed_dir == input_dir
        assert config.encoding.crf == 21
        assert config.encoding.codec == "hevc"
        assert config.quality.mode == "adaptive-filtered"
        assert config.performance.max_concurrent == 3
        assert config.performance.health_checks is False
        assert config.validation.duration_tolerance == 1.5
        assert config.validation.file_validation is False
        assert config.output.output_dir == input_dir / "out"
        converter_cls.return_value.run.assert_awaited_once()
        assert "Conversion Complete" in flat(result.output)

    def test_dry_run(self, converter_cls, input_dir, config_file):
        """Test dry run uses the preview."""
        result = runner.invoke(
            app, ["convert", str(input_dir), "--config", str(config_file), "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        converter_cls.return_value.preview.assert_awaited_once()
        converter_cls.return_value.run.assert_not_called()
        assert "Dry Run" in flat(result.output)

    def test_validate(self, converter_cls, input_dir, config_file):
        """Test validation-only mode."""
        result = runner.invoke(
            app, ["convert", str(input_dir), "--config", str(config_file), "--validate"]
        )

        assert result.exit_code == 0, result.output
        converter_cls.return_value.validate_only.assert_awaited_once()
        converter_cls.return_value.run.assert_not_called()

    def test_missing_binary(self, converter_cls, input_dir, config_file):
        """Test missing FFmpeg exits with install hints."""
        converter_cls.return_value.run = AsyncMock(
            side_effect=BinaryNotFoundError("ffmpeg not found", binary="ffmpeg")
        )

        result = runner.invoke(app, ["convert", str(input_dir), "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Required binary not available: ffmpeg" in flat(result.output)
        assert "Install FFmpeg" in flat(result.output)

    def test_invalid_config(self, converter_cls, input_dir, tmp_path):
        """Test invalid configuration exits with 1."""
        bad = tmp_path / "bad.yaml"
        bad.write_text(yaml.safe_dump({"encoding": {"crf": 99}}))

        result = runner.invoke(app, ["convert", str(input_dir), "--config", str(bad)])

        assert result.exit_code == 1
        assert "Configuration error" in flat(result.output)
        converter_cls.assert_not_called()

    def test_interrupted(self, converter_cls, input_dir, config_file):
        """Test Ctrl+C exits with 130."""
        converter_cls.side_effect = KeyboardInterrupt()

        result = runner.invoke(app, ["convert", str(input_dir), "--config", str(config_file)])

        assert result.exit_code == 130
        assert "cancelled" in flat(result.output)

    def test_crf_range(self, input_dir):
        """Test out-of-range CRF is rejected by the parser."""
        result = runner.invoke(app, ["convert", str(input_dir), "--crf", "40"])

        assert result.exit_code == 2

    def test_missing_input(self, tmp_path):
        """Test a nonexistent input directory is rejected."""
        result = runner.invoke(app, ["convert", str(tmp_path / "missing")])

        assert result.exit_code == 2


class TestOtherCommands:
    """Test the hardware, config and version commands."""

    def test_version(self):
        """Test version output."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in flat(result.output)

    def test_config_init(self, tmp_path):
        """Test default config creation and overwrite protection."""
        target = tmp_path / "conf.yaml"

        result = runner.invoke(app, ["config", "init", "--output", str(target)])
        assert result.exit_code == 0, result.output
        data = yaml.safe_load(target.read_text())
        assert data["hls"]["segment_duration"] == 10

        result = runner.invoke(app, ["config", "init", "--output", str(target)])
        assert result.exit_code == 1
        assert "already exists" in flat(result.output)

        result = runner.invoke(app, ["config", "init", "--output", str(target), "--force"])
        assert result.exit_code == 0

    def test_config_show(self, config_file):
        """Test configuration tables."""
        result = runner.invoke(app, ["config", "show", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Encoding" in flat(result.output)
        assert "crf" in flat(result.output)
        assert "21" in flat(result.output)

    def test_hardware(self, config_file):
        """Test hardware detection output."""
        detector = MagicMock()
        detector.probe_all = AsyncMock(
            return_value=HardwareInfo(
                capability=HardwareType.NONE,
                probes=[ProbeResult(HardwareType.NVIDIA, error="nvidia-smi not found")],
                platform="linux",
                machine="x86_64",
            )
        )

        with patch("hls_converter.cli.main.get_hardware_detector", return_value=detector):
            result = runner.invoke(app, ["hardware", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "nvidia-smi not found" in flat(result.output)
        assert "CPU (software)" in flat(result.output)
