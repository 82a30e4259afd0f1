"""
Summary reporting for batch conversions.

This module provides rich console output for the final batch report, the
dry-run preview, validation-only results and hardware detection.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..executor import BatchPreview
from ..hardware import HardwareInfo
from ..models import BatchReport, JobStatus, ValidationResult
from ..transcoder import format_command
from ..utils import format_duration, format_size, get_logger
from ..validator import ResumePlan

logger = get_logger(__name__)

STATUS_STYLES = {
    JobStatus.SUCCEEDED: "green",
    JobStatus.PARTIAL: "yellow",
    JobStatus.FAILED: "red",
    JobStatus.SKIPPED: "dim",
}


class SummaryReporter:
    """
    Reporter for displaying batch results.

    This class creates formatted console output for:
    - The final batch report (counts, per-video status, errors)
    - Dry-run previews
    - Validation-only results
    - Hardware detection results
    """

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize summary reporter.

        Args:
            console: Rich console instance (creates new if not provided)
        """
        self.console = console or Console()

    def display_report(self, report: BatchReport) -> None:
        """
        Display the final batch report.

        Args:
            report: Batch report
        """
        self.console.print()
        style = "red" if report.failed or report.halted else "green"
        self.console.rule("[bold]Conversion Complete", style=style)
        self.console.print()

        self.console.print(create_summary_table(report))
        self.console.print()

        if report.jobs:
            self._display_jobs(report)

        if report.halted:
            self.console.print(
                Panel(
                    Text(f"Scheduling stopped: {report.halt_reason}", style="bold red"),
                    title="Halted",
                    border_style="red",
                )
            )
            self.console.print()

        errors = report.errors
        if errors:
            lines = Text("\n").join(Text(f"• {line}", style="red") for line in errors)
            self.console.print(Panel(lines, title=f"Errors ({len(errors)})", border_style="red"))
            self.console.print()

        if report.all_skipped:
            self.display_info("All videos are already converted and aligned.")

    def _display_jobs(self, report: BatchReport) -> None:
        """Per-video status table."""
        table = Table(title="Videos", show_header=True)
        table.add_column("Video", style="cyan", overflow="fold")
        table.add_column("Status")
        table.add_column("Qualities", style="yellow")
        table.add_column("Aligned", justify="center")
        table.add_column("Time", style="blue", justify="right")

        for job in report.jobs:
            qualities = ", ".join(job.succeeded_qualities) or "-"
            if job.failed_qualities:
                qualities += f" [red](failed: {', '.join(job.failed_qualities)})[/red]"

            if job.aligned is None:
                aligned = "-"
            else:
                aligned = "[green]✓[/green]" if job.aligned else "[red]✗[/red]"

            table.add_row(
                job.name,
                f"[{STATUS_STYLES[job.status]}]{job.status.value}[/]",
                qualities,
                aligned,
                format_duration(job.duration) if job.duration else "-",
            )

        self.console.print(table)
        self.console.print()

    def display_preview(self, preview: BatchPreview, show_commands: bool = False) -> None:
        """
        Display a dry-run plan.

        Args:
            preview: Batch preview
            show_commands: Also print the encoder command of every quality
        """
        self.console.print()
        self.console.rule("[bold cyan]Dry Run", style="cyan")
        self.console.print()

        overview = Table(show_header=False, box=None)
        overview.add_column("Metric", style="cyan", width=24)
        overview.add_column("Value", style="white")
        overview.add_row("Input", str(preview.input_dir))
        overview.add_row("Output", str(preview.output_dir))
        overview.add_row("Hardware", preview.capability.display_name)
        overview.add_row("Concurrent videos", str(preview.strategy.concurrency))
        overview.add_row("Videos found", str(len(preview.entries)))
        overview.add_row("To convert", str(preview.to_convert))
        self.console.print(overview)
        self.console.print()

        if not preview.entries:
            self.display_info("No video files found.")
            return

        table = Table(title="Planned Conversions", show_header=True)
        table.add_column("Video", style="cyan", overflow="fold")
        table.add_column("Size", style="blue", justify="right")
        table.add_column("Duration", justify="right")
        table.add_column("Resolution", style="yellow")
        table.add_column("Codec")
        table.add_column("Qualities", style="green")
        table.add_column("Action")
        table.add_column("Output", style="dim", overflow="fold")

        actions = {"convert": "green", "reconvert": "yellow", "skip": "dim"}
        for entry in preview.entries:
            source = entry.job.source
            table.add_row(
                source.name,
                format_size(source.size) if source.size else "?",
                format_duration(source.duration) if source.duration else "?",
                source.resolution if source.has_known_dimensions else "unknown",
                source.codec,
                ", ".join(task.quality.name for task in entry.job.tasks),
                f"[{actions.get(entry.action, 'white')}]{entry.action}[/]",
                str(entry.job.output_dir),
            )

        self.console.print(table)
        self.console.print()

        if show_commands:
            for entry in preview.entries:
                for command in entry.commands:
                    self.console.print(Text(format_command(command), style="dim"))
            self.console.print()

        for path in preview.unmatched:
            self.console.print(f"[yellow]⚠ No source found for existing output: {path}[/yellow]")

    def display_validation(self, plan: ResumePlan) -> None:
        """
        Display validation-only results.

        Args:
            plan: Result of the validation pass
        """
        self.console.print()
        self.console.rule("[bold cyan]Validation", style="cyan")
        self.console.print()

        if not plan.results and not plan.unmatched:
            self.display_info("No existing output found.")
            return

        table = Table(title="Existing Output", show_header=True)
        table.add_column("Directory", style="cyan", overflow="fold")
        table.add_column("Source", justify="right")
        table.add_column("Qualities")
        table.add_column("Status", justify="center")

        for result in plan.results:
            table.add_row(
                str(result.output_dir),
                format_duration(result.source_duration) if result.source_duration else "?",
                _format_measurements(result),
                "[green]✓ aligned[/green]" if result.aligned else "[red]✗ misaligned[/red]",
            )

        for path in plan.unmatched:
            table.add_row(str(path), "-", "-", "[yellow]no source[/yellow]")

        self.console.print(table)
        self.console.print()

        misaligned = plan.validated_count - len(plan.aligned)
        summary = (
            f"{plan.validated_count} validated, {len(plan.aligned)} aligned, "
            f"{misaligned} misaligned, {len(plan.unmatched)} without source"
        )
        if misaligned:
            self.console.print(f"[yellow]{summary}[/yellow]")
            self.console.print("[dim]Misaligned output is redone on the next conversion run.[/dim]")
        else:
            self.console.print(f"[green]{summary}[/green]")

    def display_hardware(self, info: HardwareInfo) -> None:
        """
        Display hardware detection results.

        Args:
            info: Result of probing every accelerator
        """
        table = Table(title="Hardware Acceleration", show_header=True)
        table.add_column("Accelerator", style="cyan")
        table.add_column("Available", justify="center")
        table.add_column("Details", overflow="fold")

        for probe in info.probes:
            table.add_row(
                probe.hardware_type.display_name,
                "[green]✓[/green]" if probe.available else "[red]✗[/red]",
                probe.detail if probe.available else (probe.error or ""),
            )

        self.console.print(table)
        self.console.print(
            f"Platform: {info.platform} ({info.machine})  "
            f"Selected: [bold green]{info.capability.display_name}[/bold green]"
        )

    def display_error(self, message: str, error: Optional[Exception] = None) -> None:
        """
        Display error message.

        Args:
            message: Error message
            error: Optional exception object
        """
        error_text = Text(f"✗ {message}", style="bold red")

        if error:
            error_text.append(Text(f"\n{error}", style="red"))

        self.console.print()
        self.console.print(Panel(error_text, title="Error", border_style="red"))
        self.console.print()

    def display_info(self, message: str) -> None:
        """
        Display info message.

        Args:
            message: Info message
        """
        self.console.print(Text(f"ℹ {message}", style="cyan"))


def _format_measurements(result: ValidationResult) -> str:
    """One ``quality: duration`` item per measured quality."""
    if not result.qualities:
        return "; ".join(result.errors) or "-"

    parts = []
    for measurement in result.qualities:
        if measurement.duration is None:
            parts.append(f"[red]{measurement.quality}: unreadable[/red]")
        else:
            style = "green" if measurement.aligned else "red"
            parts.append(
                f"[{style}]{measurement.quality}: {measurement.duration:.1f}s "
                f"({measurement.segment_count} seg)[/{style}]"
            )
    return ", ".join(parts)


def create_summary_table(report: BatchReport) -> Table:
    """
    Create the counts table of a batch report.

    Args:
        report: Batch report

    Returns:
        Rich Table object
    """
    table = Table(title="Summary", show_header=False, box=None)
    table.add_column("Metric", style="cyan", width=24)
    table.add_column("Value", style="white")

    table.add_row("Total videos", str(report.total_files))
    table.add_row("Succeeded", f"[green]{report.succeeded}[/green]")
    table.add_row("  partially", f"[yellow]{report.partial}[/yellow]")
    table.add_row("Failed", f"[red]{report.failed}[/red]")
    table.add_row("Skipped (aligned)", str(report.skipped))
    if report.not_scheduled:
        table.add_row("Not scheduled", f"[red]{report.not_scheduled}[/red]")
    table.add_row("Hardware", report.capability)
    table.add_row("Codec", report.codec)
    table.add_row("Elapsed", format_duration(report.elapsed))
    table.add_row("Output", str(report.output_dir))
    return table
