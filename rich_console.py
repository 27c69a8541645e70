"""
Rich console configuration for the FramesWithin CLI.

Provides styled terminal output: palette tables with live swatches, AI result
panels, usage statistics and styled logging.
"""

import logging
from typing import Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme
from rich.panel import Panel
from rich.table import Table
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeElapsedColumn,
    MofNCompleteColumn,
)

from ai_service.data_models import AIInsight, GradingBreakdown
from data_models import GradingSettings, Palette

FRAMESWITHIN_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "highlight": "bold magenta",
    "muted": "dim",
    "warm": "bold dark_orange",
    "cool": "bold deep_sky_blue1",
    "neutral": "bold grey70",
})

# Global console instance
console = Console(theme=FRAMESWITHIN_THEME)


def setup_rich_logging(verbose: bool = False) -> None:
    """
    Configure logging to use Rich handler for styled output.

    Args:
        verbose: Enable DEBUG level logging with full details
    """
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                show_time=verbose,
                show_path=verbose,
                rich_tracebacks=True,
                tracebacks_show_locals=verbose,
                markup=False,
            )
        ],
        force=True,  # Override any existing configuration
    )


def create_progress() -> Progress:
    """
    Create a Rich progress bar for processing several inputs.

    Returns:
        Configured Progress instance
    """
    return Progress(
        SpinnerColumn("dots"),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=40, style="cyan", complete_style="green"),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def print_banner(version: str) -> None:
    console.print("[bold magenta]FramesWithin[/] [dim]color palettes and grading[/]")
    console.print(f"[muted]Version {version}[/]\n")


def print_palette(palette: Palette, title: Optional[str] = None) -> None:
    """
    Print a palette as a table with a colored swatch per entry.

    Args:
        palette: Extracted palette
        title: Table title (e.g. the source file name)
    """
    temperature = palette.temperature.value
    table = Table(
        title=title,
        caption=f"Temperature: [{temperature}]{temperature}[/]",
        header_style="bold",
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Swatch")
    table.add_column("Hex", style="bold")
    table.add_column("RGB")
    table.add_column("HSL")

    for i, (hex_color, rgb, hsl) in enumerate(zip(palette.dominant, palette.rgb, palette.hsl), start=1):
        table.add_row(
            str(i),
            f"[on {hex_color}]      [/]",
            hex_color,
            f"{rgb.r}, {rgb.g}, {rgb.b}",
            f"{hsl.h:.0f}°, {hsl.s:.0f}%, {hsl.l:.0f}%",
        )

    console.print(table)


def _bullets(items: List[str]) -> str:
    return "\n".join(f"• {item}" for item in items) if items else "[dim]none[/]"


def print_insights(insights: AIInsight, mock: bool = False, error: Optional[str] = None) -> None:
    """Print creator insights, flagging demo data and service errors."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Section", style="dim", vertical="top")
    table.add_column("Content")

    table.add_row("Mood", insights.visual_mood)
    table.add_row("Suggestions", _bullets(insights.suggestions))
    table.add_row("Captions", _bullets(insights.captions))
    table.add_row("Hashtags", " ".join(insights.hashtags) or "[dim]none[/]")
    table.add_row("Viral Tips", _bullets(insights.viral_tips))

    title = "[bold]AI Insights[/]" + (" [warning](demo data)[/]" if mock else "")
    console.print(Panel(table, title=title, border_style="magenta", padding=(1, 2)))
    if error:
        print_error(error)


def print_breakdown(
    breakdown: GradingBreakdown,
    settings: Optional[GradingSettings] = None,
    mock: bool = False,
    error: Optional[str] = None,
) -> None:
    """
    Print a grading breakdown and, if given, the knobs it maps to.

    Args:
        breakdown: Estimated grading parameters
        settings: Grading settings derived from the breakdown
        mock: True when demo data was returned
        error: Service error message, if any
    """
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Parameter", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Temperature", f"{breakdown.temperature:.0f} K")
    table.add_row("Tint", f"{breakdown.tint:+.0f}")
    table.add_row("Hue", f"{breakdown.hue:+.0f}°")
    table.add_row("Saturation", f"{breakdown.saturation:+.0f}")
    table.add_row("Exposure", f"{breakdown.exposure:+.2f} stops")
    table.add_row("Radiance", f"{breakdown.radiance:.0f}")
    table.add_row("Density", f"{breakdown.density:.0f}")
    table.add_row("Color Balance", breakdown.color_balance)
    table.add_row("Balance Curve", breakdown.balance_curve)
    table.add_row("Chroma Curve", breakdown.chroma_curve)

    if settings is not None:
        knobs = []
        for name in ("brightness", "contrast", "saturation", "hue", "temperature"):
            value = getattr(settings, name)
            if abs(value) >= 0.001:
                knobs.append(f"{name}: {value:+.1f}")
        table.add_row("Grade With", ", ".join(knobs) if knobs else "[dim]no adjustment[/]")

    title = "[bold]Grading Breakdown[/]" + (" [warning](demo data)[/]" if mock else "")
    console.print(Panel(table, title=title, border_style="cyan", padding=(1, 2)))
    if error:
        print_error(error)


def print_stats(totals: Dict[str, int], monthly: List[Dict], limits: Dict[str, float], storage_used_gb: float) -> None:
    """
    Print usage totals, plan limits and monthly buckets.

    Args:
        totals: Counter totals keyed by name
        monthly: Rows from UsageStats.monthly(), oldest first
        limits: Plan limits keyed by name
        storage_used_gb: Storage used so far in GB
    """
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("Metric", style="dim")
    summary.add_column("Value", style="bold")
    summary.add_row("Uploads", f"{totals['uploads']} / {limits['uploads']}")
    summary.add_row("Palettes", str(totals["palettes"]))
    summary.add_row("AI Insights", f"{totals['insights']} / {limits['insights']}")
    summary.add_row("Exports", str(totals["exports"]))
    summary.add_row("Storage", f"{storage_used_gb:.2f} GB / {limits['storage_gb']:.0f} GB")
    console.print(Panel(summary, title="[bold]Usage[/]", border_style="cyan", padding=(1, 2)))

    table = Table(title="Monthly", header_style="bold")
    table.add_column("Month")
    for name in ("uploads", "palettes", "insights", "exports"):
        table.add_column(name.capitalize(), justify="right")
    for row in monthly:
        table.add_row(
            row["month"],
            str(row["uploads"]),
            str(row["palettes"]),
            str(row["insights"]),
            str(row["exports"]),
        )
    console.print(table)


def print_completion_summary(outputs: List[str], input_count: int = 1) -> None:
    """
    Print a styled completion summary.

    Args:
        outputs: Paths of files written
        input_count: Number of inputs processed
    """
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold green")

    table.add_row("Inputs Processed", str(input_count))
    for output in outputs:
        table.add_row("Output", output)

    console.print()
    console.print(Panel(table, title="[bold green]Complete[/]", border_style="green", padding=(1, 2)))


def print_error(message: str, hint: Optional[str] = None) -> None:
    """
    Print a styled error message.

    Args:
        message: Error message
        hint: Optional hint for resolution
    """
    console.print(f"\n[error]Error:[/] {message}")
    if hint:
        console.print(f"[muted]Hint: {hint}[/]")
