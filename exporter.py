"""
Exporters for palettes and AI results.

Writes an extracted palette as JSON or as a PNG swatch strip, and AI
insights or grading breakdowns as JSON. Graded images are written by
raster_io.save_graded_image.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageDraw

from ai_service.data_models import AIInsight, GradingBreakdown
from constants import SWATCH_SIZE
from data_models import Palette

logger = logging.getLogger(__name__)


def _with_default_suffix(output_path: Union[str, Path], suffix: str) -> Path:
    output_path = Path(output_path)
    if not output_path.suffix:
        output_path = output_path.with_suffix(suffix)
    return output_path


def _write_json(data: dict, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def palette_export_data(palette: Palette, exported_at: Optional[datetime] = None) -> dict:
    """
    Build the palette export document.

    Args:
        palette: Extracted palette
        exported_at: Export timestamp (default: now, UTC)

    Returns:
        Dict with colors, rgb, hsl, temperature and exportedAt
    """
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        "colors": list(palette.dominant),
        "rgb": [c.model_dump() for c in palette.rgb],
        "hsl": [c.model_dump() for c in palette.hsl],
        "temperature": palette.temperature.value,
        "exportedAt": exported_at.isoformat(),
    }


def export_palette_json(palette: Palette, output_path: Union[str, Path]) -> str:
    """
    Export a palette to JSON.

    Args:
        palette: Extracted palette
        output_path: Path for output .json file

    Returns:
        Path to the created file
    """
    output_path = _with_default_suffix(output_path, '.json')
    _write_json(palette_export_data(palette), output_path)

    logger.info(f"Exported palette JSON to {output_path}")
    return str(output_path)


def render_palette_swatches(palette: Palette, swatch_size: int = SWATCH_SIZE) -> Image.Image:
    """Draw one square swatch per color, most dominant on the left."""
    if swatch_size < 1:
        raise ValueError(f"swatch_size must be at least 1, got {swatch_size}")

    image = Image.new("RGB", (swatch_size * len(palette), swatch_size))
    draw = ImageDraw.Draw(image)
    for i, color in enumerate(palette.rgb):
        left = i * swatch_size
        draw.rectangle(
            [left, 0, left + swatch_size - 1, swatch_size - 1],
            fill=color.as_tuple(),
        )
    return image


def export_palette_png(palette: Palette, output_path: Union[str, Path], swatch_size: int = SWATCH_SIZE) -> str:
    """
    Export a palette as a PNG strip of color swatches.

    Args:
        palette: Extracted palette
        output_path: Path for output .png file
        swatch_size: Edge length of each square swatch in pixels

    Returns:
        Path to the created file
    """
    output_path = _with_default_suffix(output_path, '.png')
    output_path.parent.mkdir(parents=True, exist_ok=True)
    render_palette_swatches(palette, swatch_size).save(output_path, format="PNG")

    logger.info(f"Exported palette swatches to {output_path}")
    return str(output_path)


def export_breakdown_json(breakdown: GradingBreakdown, output_path: Union[str, Path]) -> str:
    """Export a grading breakdown with its wire field names."""
    output_path = _with_default_suffix(output_path, '.json')
    _write_json(breakdown.to_payload(), output_path)

    logger.info(f"Exported grading breakdown to {output_path}")
    return str(output_path)


def export_insights_json(insights: AIInsight, output_path: Union[str, Path]) -> str:
    """Export creator insights with their wire field names."""
    output_path = _with_default_suffix(output_path, '.json')
    _write_json(insights.to_payload(), output_path)

    logger.info(f"Exported insights to {output_path}")
    return str(output_path)


def load_breakdown_json(input_path: Union[str, Path]) -> GradingBreakdown:
    """
    Read a breakdown written by export_breakdown_json (or returned by the AI service).

    Accepts either the bare breakdown object or a {"breakdown": {...}} body.

    Raises:
        ValueError: if the file is not valid JSON or does not match the model
    """
    with open(input_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict) and "breakdown" in data:
        data = data["breakdown"]
    return GradingBreakdown.model_validate(data)
