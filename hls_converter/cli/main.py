"""
CLI interface for the HLS converter.

This module provides the command-line interface using Typer and Rich
for terminal output.
"""

import asyncio
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import ConverterConfig, get_config_manager
from ..executor import BatchConverter, install_hints
from ..hardware import get_hardware_detector
from ..ui import ConversionMonitor, SummaryReporter
from ..utils import (
    BinaryNotFoundError,
    ConfigurationError,
    ConverterError,
    get_logger,
    setup_logger,
)

# Initialize Typer app
app = typer.Typer(
    name="hls-converter",
    help="Batch convert video directories to adaptive-bitrate HLS",
    add_completion=False,
)

config_app = typer.Typer(help="Manage configuration files")
app.add_typer(config_app, name="config")

# Console for rich output
console = Console()

logger = get_logger(__name__)


class HardwareChoice(str, Enum):
    AUTO = "auto"
    NVIDIA = "nvidia"
    INTEL = "intel"
    AMD = "amd"
    VIDEOTOOLBOX = "videotoolbox"
    CPU_ONLY = "cpu-only"


class CodecChoice(str, Enum):
    H264 = "h264"
    HEVC = "hevc"
    AV1 = "av1"


class CompressionChoice(str, Enum):
    BALANCED = "balanced"
    HIGH = "high"
    MAXIMUM = "maximum"


def apply_overrides(
    config: ConverterConfig, overrides: dict[str, dict[str, Any]]
) -> ConverterConfig:
    """
    Return a copy of ``config`` with per-section overrides applied.

    The result is validated again, so out-of-range values are rejected.

    Args:
        config: Loaded configuration
        overrides: Section name -> {field: value}; None values are ignored

    Returns:
        New ConverterConfig

    Raises:
        ConfigurationError: If an override is invalid
    """
    data = config.model_dump()
    for section, values in overrides.items():
        for key, value in values.items():
            if value is not None:
                data[section][key] = value

    try:
        return ConverterConfig(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid option: {e}") from e


def quality_mode(current: str, adaptive: bool, no_smart_quality: bool) -> str:
    """Resolve the ladder mode from ``--adaptive`` / ``--no-smart-quality``."""
    if adaptive:
        return "adaptive-all" if no_smart_quality else "adaptive-filtered"
    if no_smart_quality and current == "adaptive-filtered":
        return "adaptive-all"
    return current


def load_config(config_file: Optional[Path]) -> ConverterConfig:
    """Load the configuration from ``config_file`` or the default locations."""
    manager = get_config_manager(config_file)
    if config_file:
        return manager.load(config_file)
    return manager.config


@app.command()
def convert(
    input_dir: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=False,
        readable=True,
        help="Directory scanned recursively for videos",
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output root (default: <input>/hls)",
    ),
    hardware: Optional[HardwareChoice] = typer.Option(
        None,
        "--hardware",
        "-hw",
        help="Hardware acceleration override",
    ),
    no_hw_decode: bool = typer.Option(
        False,
        "--no-hw-decode",
        help="Decode input in software even when encoding on hardware",
    ),
    codec: Optional[CodecChoice] = typer.Option(
        None,
        "--codec",
        help="Output codec",
    ),
    compression: Optional[CompressionChoice] = typer.Option(
        None,
        "--compression",
        help="Compression level",
    ),
    crf: Optional[int] = typer.Option(
        None,
        "--crf",
        min=18,
        max=28,
        help="Constant Rate Factor (18-28)",
    ),
    no_crf: bool = typer.Option(
        False,
        "--no-crf",
        help="Bitrate-only encoding",
    ),
    no_adaptive_bitrate: bool = typer.Option(
        False,
        "--no-adaptive-bitrate",
        help="Disable adaptive quantization tuning",
    ),
    adaptive: bool = typer.Option(
        False,
        "--adaptive",
        help="Select qualities relative to each video's resolution",
    ),
    no_smart_quality: bool = typer.Option(
        False,
        "--no-smart-quality",
        help="With --adaptive, keep every ladder quality",
    ),
    segment_duration: Optional[int] = typer.Option(
        None,
        "--segment-duration",
        help="HLS segment duration in seconds",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-j",
        min=1,
        help="Videos converted at once (default: from CPU and memory)",
    ),
    tolerance: Optional[float] = typer.Option(
        None,
        "--tolerance",
        help="Allowed duration difference in seconds for aligned output",
    ),
    no_web_optimization: bool = typer.Option(
        False,
        "--no-web-optimization",
        help="Skip fast-start and streaming flags",
    ),
    no_validation: bool = typer.Option(
        False,
        "--no-validation",
        help="Skip playlist and segment checks after each encode",
    ),
    no_health_checks: bool = typer.Option(
        False,
        "--no-health-checks",
        help="Skip disk and CPU checks between batches",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be converted without converting or deleting",
    ),
    validate_only: bool = typer.Option(
        False,
        "--validate",
        help="Only validate existing output",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log",
        help="Log file path",
    ),
) -> None:
    """
    Convert every video below INPUT_DIR to multi-quality HLS.

    Existing output is validated first: aligned videos are skipped, misaligned
    ones are deleted and converted again before any new video.
    """
    setup_logger(
        level="DEBUG" if verbose else "INFO",
        log_file=log_file,
        verbose=verbose,
        console=console,
    )

    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]HLS Converter[/bold cyan]\n"
            "[dim]Batch • Adaptive Bitrate • Hardware Accelerated[/dim]",
            border_style="cyan",
        )
    )
    console.print()

    reporter = SummaryReporter(console)

    try:
        config = load_config(config_file)
        config = apply_overrides(
            config,
            {
                "hardware": {
                    "prefer": hardware.value if hardware else None,
                    "hardware_decoding": False if no_hw_decode else None,
                },
                "encoding": {
                    "codec": codec.value if codec else None,
                    "compression": compression.value if compression else None,
                    "crf": crf,
                    "use_crf": False if no_crf else None,
                    "adaptive_bitrate": False if no_adaptive_bitrate else None,
                    "web_optimized": False if no_web_optimization else None,
                },
                "quality": {
                    "mode": quality_mode(config.quality.mode, adaptive, no_smart_quality),
                },
                "hls": {"segment_duration": segment_duration},
                "validation": {
                    "duration_tolerance": tolerance,
                    "file_validation": False if no_validation else None,
                },
                "performance": {
                    "max_concurrent": concurrency,
                    "health_checks": False if no_health_checks else None,
                },
                "output": {"output_dir": output_dir},
            },
        )

        logger.debug(f"Effective configuration: {config.model_dump(mode='json')}")
        converter = BatchConverter(config, input_dir)

        if validate_only:
            plan = asyncio.run(converter.validate_only())
            reporter.display_validation(plan)
        elif dry_run:
            preview = asyncio.run(converter.preview())
            reporter.display_preview(preview, show_commands=verbose)
        else:
            with ConversionMonitor(console) as monitor:
                converter.listener = monitor
                report = asyncio.run(converter.run())
            reporter.display_report(report)

    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Conversion cancelled by user[/yellow]")
        sys.exit(130)
    except BinaryNotFoundError as e:
        reporter.display_error(f"Required binary not available: {e.binary}", e)
        console.print("[bold]Install FFmpeg:[/bold]")
        for hint in install_hints():
            console.print(f"  • {hint}")
        sys.exit(1)
    except ConfigurationError as e:
        reporter.display_error("Configuration error", e)
        sys.exit(1)
    except ConverterError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)


@app.command("hardware")
def hardware_command(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
) -> None:
    """
    Detect and display available hardware acceleration.
    """
    try:
        config = load_config(config_file)
    except ConfigurationError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        sys.exit(1)

    console.print()
    console.print(Panel("[bold cyan]Hardware Detection[/bold cyan]", border_style="cyan"))
    console.print()

    detector = get_hardware_detector(
        config.binaries.ffmpeg_path, timeout=config.hardware.probe_timeout
    )
    info = asyncio.run(detector.probe_all())
    SummaryReporter(console).display_hardware(info)
    console.print()


@config_app.command("init")
def config_init(
    output: Path = typer.Option(
        Path(".hls-converter.yaml"),
        "--output",
        "-o",
        help="Configuration file to create",
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """
    Create a default configuration file.
    """
    try:
        get_config_manager().init_default_config(output, force=force)
    except ConfigurationError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Created config file: {output}")


@config_app.command("show")
def config_show(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
) -> None:
    """
    Display the effective configuration.
    """
    try:
        config = load_config(config_file)
    except ConfigurationError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        sys.exit(1)

    console.print()
    console.print(Panel("[bold cyan]Current Configuration[/bold cyan]", border_style="cyan"))
    console.print()

    for section_name, section in config:
        table = Table(title=section_name.capitalize(), show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")
        for key, value in section:
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            table.add_row(key, "-" if value is None else str(value))
        console.print(table)
        console.print()


@app.command("version")
def version_command() -> None:
    """
    Display version information.
    """
    from .. import __version__

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]HLS Converter[/bold cyan]\n"
            f"[dim]Version {__version__}[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def main() -> None:
    """
    Main entry point for CLI.
    """
    app()


if __name__ == "__main__":
    main()
