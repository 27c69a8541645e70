#!/usr/bin/env python3
"""
FramesWithin command-line interface.

Extracts color palettes from images and video frames, grades images, and asks
the AI service for creator insights or a grading breakdown. Usage counters and
user settings persist in a JSON state file.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from ai_service import AIServiceClient
from color_grading import create_color_grader
from constants import DEFAULT_COLOR_COUNT, DEFAULT_QUALITY, EXPORT_FORMATS
from data_models import GradingSettings, Palette
from exporter import (
    export_breakdown_json,
    export_insights_json,
    export_palette_json,
    export_palette_png,
    load_breakdown_json,
)
from palette import ColorThiefQuantizer, PillowQuantizer, Quantizer, extract_palette
from raster_io import is_video, load_raster, save_graded_image
from rich_console import (
    console,
    create_progress,
    print_banner,
    print_breakdown,
    print_completion_summary,
    print_error,
    print_insights,
    print_palette,
    print_stats,
    setup_rich_logging,
)
from state_store import (
    JsonStateStore,
    UsageStats,
    UserSettings,
    default_state_path,
    load_settings,
)

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


class CLIConfig(BaseModel):
    """Validated command-line options for one invocation."""
    command: Literal["palette", "grade", "insights", "breakdown", "stats"]
    inputs: List[str] = Field(default_factory=list)
    output: Optional[str] = None
    color_count: int = Field(default=DEFAULT_COLOR_COUNT, ge=1)
    quality: int = Field(default=DEFAULT_QUALITY, ge=1)
    timestamp: float = Field(default=0.0, ge=0.0, description="Video frame time in seconds")
    quantizer: Literal["colorthief", "pillow"] = "colorthief"
    state_file: Path = Field(default_factory=default_state_path)
    verbose: bool = False

    # Exports
    json_output: Optional[str] = None
    png_output: Optional[str] = None

    # AI service
    api_key: Optional[str] = None
    description: Optional[str] = None

    # Grading
    grading: GradingSettings = Field(default_factory=GradingSettings)
    breakdown_file: Optional[str] = None
    export_format: Optional[Literal["png", "jpg", "webp"]] = None
    image_quality: Optional[int] = Field(default=None, ge=1, le=100)

    reset_monthly: bool = False


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--state-file",
        help="Usage/settings state file (default: $FRAMESWITHIN_STATE or ~/.frameswithin/state.json)",
    )


def _add_extract_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--colors", "-k", type=int, default=DEFAULT_COLOR_COUNT,
                        help=f"Number of palette colors (default: {DEFAULT_COLOR_COUNT})")
    parser.add_argument("--quality", "-q", type=int, default=DEFAULT_QUALITY,
                        help="Sampling stride; 1 is slowest and most accurate (default: %(default)s)")
    parser.add_argument("--at", type=float, default=0.0, dest="timestamp",
                        help="Video frame time in seconds (default: 0)")
    parser.add_argument("--quantizer", choices=["colorthief", "pillow"], default="colorthief",
                        help="Quantization backend (default: %(default)s)")


def _add_grading_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("Color grading (-100 to 100)")
    group.add_argument("--brightness", type=float, default=0.0, help="Add to each channel")
    group.add_argument("--contrast", type=float, default=0.0, help="Contrast around mid-gray")
    group.add_argument("--saturation", type=float, default=0.0, help="Percent change of saturation")
    group.add_argument("--hue", type=float, default=0.0, help="Hue rotation (100 = full turn)")
    group.add_argument("--temperature", type=float, default=0.0, help="Positive warms, negative cools")
    group.add_argument("--from-breakdown", dest="breakdown_file", metavar="JSON",
                       help="Start from a grading breakdown JSON file; knobs stack on top")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="frameswithin",
        description="Extract color palettes, grade images, and get AI creator insights.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("palette", help="Extract the dominant color palette")
    p.add_argument("inputs", nargs="+", metavar="INPUT", help="Image or video files")
    _add_extract_args(p)
    p.add_argument("--json", dest="json_output", metavar="OUT", help="Export palette as JSON")
    p.add_argument("--png", dest="png_output", metavar="OUT", help="Export palette swatches as PNG")
    _add_common_args(p)

    g = subparsers.add_parser("grade", help="Grade an image or video frame and save it")
    g.add_argument("input", metavar="INPUT", help="Image or video file")
    g.add_argument("output", metavar="OUTPUT", help="Output image path")
    g.add_argument("--at", type=float, default=0.0, dest="timestamp",
                   help="Video frame time in seconds (default: 0)")
    _add_grading_args(g)
    g.add_argument("--format", dest="export_format", choices=list(EXPORT_FORMATS),
                   help="Output format (default: from extension, else stored preference)")
    g.add_argument("--image-quality", type=int, help="Quality for jpg/webp, 1-100 (default: stored preference)")
    _add_common_args(g)

    i = subparsers.add_parser("insights", help="Get AI creator insights for a palette")
    i.add_argument("input", metavar="INPUT", help="Image or video file")
    _add_extract_args(i)
    i.add_argument("--description", help="Short description of the content")
    i.add_argument("--api-key", help="OpenAI API key (default: stored setting, then $OPENAI_API_KEY)")
    i.add_argument("--json", dest="json_output", metavar="OUT", help="Export insights as JSON")
    _add_common_args(i)

    b = subparsers.add_parser("breakdown", help="Estimate grading parameters for a palette")
    b.add_argument("input", metavar="INPUT", help="Image or video file")
    _add_extract_args(b)
    b.add_argument("--api-key", help="OpenAI API key (default: stored setting, then $OPENAI_API_KEY)")
    b.add_argument("--json", dest="json_output", metavar="OUT", help="Export breakdown as JSON")
    _add_common_args(b)

    s = subparsers.add_parser("stats", help="Show usage statistics")
    s.add_argument("--reset-monthly", action="store_true", help="Clear monthly counters first")
    _add_common_args(s)

    return parser


def config_from_args(args: argparse.Namespace) -> CLIConfig:
    """
    Build a validated CLIConfig from parsed arguments.

    Raises:
        ValidationError: if an option is out of range
    """
    values = {"command": args.command, "verbose": args.verbose}
    if args.state_file:
        values["state_file"] = Path(args.state_file).expanduser()

    if args.command == "palette":
        values["inputs"] = args.inputs
    elif args.command in ("grade", "insights", "breakdown"):
        values["inputs"] = [args.input]

    for name in ("timestamp", "quantizer", "json_output", "png_output", "api_key",
                 "description", "breakdown_file", "export_format", "image_quality", "reset_monthly"):
        if getattr(args, name, None) is not None:
            values[name] = getattr(args, name)
    if getattr(args, "colors", None) is not None:
        values["color_count"] = args.colors
    if getattr(args, "quality", None) is not None:
        values["quality"] = args.quality

    if args.command == "grade":
        values["output"] = args.output
        values["grading"] = GradingSettings(
            brightness=args.brightness,
            contrast=args.contrast,
            saturation=args.saturation,
            hue=args.hue,
            temperature=args.temperature,
        )

    return CLIConfig(**values)


def make_quantizer(config: CLIConfig) -> Quantizer:
    if config.quantizer == "pillow":
        return PillowQuantizer(quality=config.quality)
    return ColorThiefQuantizer(quality=config.quality)


def resolve_cli_api_key(config: CLIConfig, settings: UserSettings) -> Optional[str]:
    """--api-key, else the stored key; None lets the client fall back to $OPENAI_API_KEY."""
    if config.api_key:
        return config.api_key
    return settings.openai_api_key


def _export_path(base: str, input_path: str, multiple: bool) -> str:
    """With several inputs, suffix the export name with each input's stem."""
    if not multiple:
        return base
    base_path = Path(base)
    return str(base_path.with_name(f"{base_path.stem}-{Path(input_path).stem}{base_path.suffix}"))


def _record_upload(stats: UsageStats, path: str) -> str:
    size_mb = os.path.getsize(path) / (1024 * 1024)
    record = stats.add_upload(Path(path).name, "video" if is_video(path) else "image", size_mb)
    stats.increment_uploads()
    stats.add_storage_used(size_mb)
    return record.id


def _extract(config: CLIConfig, path: str, stats: UsageStats) -> Palette:
    """Decode one input, extract its palette and record the upload."""
    raster = load_raster(path, config.timestamp)
    upload_id = _record_upload(stats, path)
    palette = extract_palette(raster, config.color_count, make_quantizer(config))
    stats.increment_palettes()
    stats.update_upload_status(upload_id, "processed")
    return palette


def run_palette(config: CLIConfig, stats: UsageStats) -> int:
    multiple = len(config.inputs) > 1
    outputs = []
    failures = 0

    def process(path: str) -> None:
        palette = _extract(config, path, stats)
        print_palette(palette, title=Path(path).name)
        if config.json_output:
            outputs.append(export_palette_json(palette, _export_path(config.json_output, path, multiple)))
            stats.increment_exports()
        if config.png_output:
            outputs.append(export_palette_png(palette, _export_path(config.png_output, path, multiple)))
            stats.increment_exports()

    if not multiple:
        process(config.inputs[0])
    else:
        with create_progress() as progress:
            task = progress.add_task("Extracting palettes", total=len(config.inputs))
            for path in config.inputs:
                try:
                    process(path)
                except (ValueError, RuntimeError, OSError) as e:
                    failures += 1
                    logger.error(f"Skipping {path}: {e}")
                progress.advance(task)

    if outputs:
        print_completion_summary(outputs, input_count=len(config.inputs) - failures)
    return 1 if failures else 0


def run_grade(config: CLIConfig, stats: UsageStats, settings: UserSettings) -> int:
    base = None
    if config.breakdown_file:
        base = load_breakdown_json(config.breakdown_file).to_grading_settings()

    knobs = config.grading
    grader = create_color_grader(
        settings=base,
        brightness=knobs.brightness,
        contrast=knobs.contrast,
        saturation=knobs.saturation,
        hue=knobs.hue,
        temperature=knobs.temperature,
    )

    # Always grade from the original decoded buffer
    original = load_raster(config.inputs[0], config.timestamp)
    if grader is None:
        console.print("[warning]No adjustment set; writing the image unchanged[/]")
        graded = original.copy()
    else:
        graded = grader.grade(original)

    fmt = config.export_format
    if fmt is None and not Path(config.output).suffix:
        fmt = settings.preferred_export_format
    quality = config.image_quality or settings.image_quality

    output = save_graded_image(graded, config.output, fmt=fmt, quality=quality)
    stats.increment_exports()
    print_completion_summary([output])
    return 0


def run_insights(config: CLIConfig, stats: UsageStats, settings: UserSettings) -> int:
    palette = _extract(config, config.inputs[0], stats)
    print_palette(palette, title=Path(config.inputs[0]).name)

    client = AIServiceClient(api_key=resolve_cli_api_key(config, settings))
    result = client.generate_insights(palette, config.description)
    if not result.mock:
        stats.increment_insights()
    print_insights(result.insights, mock=result.mock, error=result.error)

    if config.json_output:
        print_completion_summary([export_insights_json(result.insights, config.json_output)])
        stats.increment_exports()
    return 0


def run_breakdown(config: CLIConfig, stats: UsageStats, settings: UserSettings) -> int:
    palette = _extract(config, config.inputs[0], stats)
    print_palette(palette, title=Path(config.inputs[0]).name)

    client = AIServiceClient(api_key=resolve_cli_api_key(config, settings))
    result = client.grading_breakdown(palette)
    print_breakdown(
        result.breakdown,
        settings=result.breakdown.to_grading_settings(),
        mock=result.mock,
        error=result.error,
    )

    if config.json_output:
        print_completion_summary([export_breakdown_json(result.breakdown, config.json_output)])
        stats.increment_exports()
    return 0


def run_stats(config: CLIConfig, stats: UsageStats) -> int:
    print_banner(__version__)
    if config.reset_monthly:
        stats.reset_monthly()
        console.print("[success]Monthly counters cleared[/]")
    print_stats(stats.totals(), stats.monthly(), stats.limits, stats.storage_used)
    return 0


def run(config: CLIConfig) -> int:
    """Execute one CLI command against the configured state file."""
    store = JsonStateStore(config.state_file)
    stats = UsageStats(store)
    settings = load_settings(store)

    if config.command == "palette":
        return run_palette(config, stats)
    if config.command == "grade":
        return run_grade(config, stats, settings)
    if config.command == "insights":
        return run_insights(config, stats, settings)
    if config.command == "breakdown":
        return run_breakdown(config, stats, settings)
    return run_stats(config, stats)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_rich_logging(verbose=args.verbose)

    try:
        config = config_from_args(args)
    except ValidationError as e:
        parser.error(f"invalid options: {e}")

    try:
        return run(config)
    except RuntimeError as e:
        logger.debug("Command failed", exc_info=True)
        print_error(str(e), hint="Video input needs ffmpeg and ffprobe on your PATH")
        return 1
    except OSError as e:
        logger.debug("Command failed", exc_info=True)
        print_error(str(e), hint="Check that the path exists and is writable")
        return 1
    except ValueError as e:
        logger.debug("Command failed", exc_info=True)
        print_error(str(e), hint="Run with --verbose for details")
        return 1


if __name__ == "__main__":
    sys.exit(main())
