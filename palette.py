"""
Palette extraction for uploaded images and video frames.

Finds the dominant colors of a raster with a pluggable quantizer, derives
hex and HSL values for each, and classifies the palette as warm, cool or
neutral from its most dominant color.

Extraction never fails on quantizer errors. If the full palette cannot be
computed it falls back to a single dominant color, and failing that to a
neutral gray.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from colorthief import ColorThief
from PIL import Image

from color_utils import rgb_to_hsl
from constants import (
    COOL_HUE_MAX,
    DEFAULT_COLOR_COUNT,
    DEFAULT_QUALITY,
    FALLBACK_GRAY,
    HUE_RANGE,
    MAGENTA_HUE_MIN,
    MAX_QUANTIZE_COLORS,
    WARM_HUE_MAX,
)
from data_models import ColorTemperature, HSLColor, Palette, RGBColor
from raster_io import to_rgba

logger = logging.getLogger(__name__)

RGBTriple = Tuple[int, int, int]

# Pixels more transparent than this are not sampled
_MIN_SAMPLE_ALPHA = 125


def temperature_for_hue(h: float) -> ColorTemperature:
    """
    Classify a hue angle.

    [0, 60] and [300, 360] are warm; (60, 300) is cool. Anything else,
    including NaN or out-of-range hues, is neutral.
    """
    if 0 <= h <= WARM_HUE_MAX:
        return ColorTemperature.WARM
    if WARM_HUE_MAX < h <= COOL_HUE_MAX:
        return ColorTemperature.COOL
    if COOL_HUE_MAX < h < MAGENTA_HUE_MIN:
        return ColorTemperature.COOL
    if MAGENTA_HUE_MIN <= h <= HUE_RANGE:
        return ColorTemperature.WARM
    return ColorTemperature.NEUTRAL


def classify_temperature(r: int, g: int, b: int) -> ColorTemperature:
    """Classify an RGB color as warm, cool or neutral by its hue."""
    h, _, _ = rgb_to_hsl(r, g, b)
    return temperature_for_hue(h)


class Quantizer(ABC):
    """
    Reduces an image to a few representative colors.

    Implementations may raise on any failure; `extract_palette` handles it.
    """

    @abstractmethod
    def quantize(self, image: Image.Image, color_count: int) -> List[RGBTriple]:
        """Return up to `color_count` colors ranked by dominance."""

    def dominant_color(self, image: Image.Image) -> RGBTriple:
        """Return the single most dominant color."""
        return self.quantize(image, 5)[0]


class _DecodedColorThief(ColorThief):
    """ColorThief over an image that is already decoded in memory."""

    def __init__(self, image: Image.Image):
        self.image = image


class ColorThiefQuantizer(Quantizer):
    """
    Modified median cut quantization (MMCQ) via the colorthief library.

    Args:
        quality: Sampling stride; 1 looks at every pixel, higher is faster
    """

    def __init__(self, quality: int = DEFAULT_QUALITY):
        self.quality = quality

    def quantize(self, image: Image.Image, color_count: int) -> List[RGBTriple]:
        return _DecodedColorThief(image).get_palette(color_count=color_count, quality=self.quality)

    def dominant_color(self, image: Image.Image) -> RGBTriple:
        return _DecodedColorThief(image).get_color(quality=self.quality)


class PillowQuantizer(Quantizer):
    """
    Deterministic median cut quantization via Pillow.

    Colors are ranked by how many sampled pixels map to them.
    """

    def __init__(self, quality: int = DEFAULT_QUALITY):
        self.quality = max(1, int(quality))

    def _samples(self, image: Image.Image) -> Image.Image:
        pixels = np.asarray(image.convert("RGBA"), dtype=np.uint8).reshape(-1, 4)
        pixels = pixels[::self.quality]
        opaque = pixels[pixels[:, 3] >= _MIN_SAMPLE_ALPHA, :3]
        if opaque.size == 0:
            raise ValueError("No opaque pixels to sample")
        return Image.fromarray(np.ascontiguousarray(opaque.reshape(1, -1, 3)))

    def quantize(self, image: Image.Image, color_count: int) -> List[RGBTriple]:
        samples = self._samples(image)
        quantized = samples.quantize(colors=color_count, method=Image.Quantize.MEDIANCUT)
        flat_palette = quantized.getpalette()
        counts = sorted(quantized.getcolors(), key=lambda item: (-item[0], item[1]))
        return [
            tuple(flat_palette[index * 3:index * 3 + 3])
            for _, index in counts[:color_count]
        ]


def as_pil_image(image: Union[np.ndarray, Image.Image]) -> Image.Image:
    """Accept a PIL image or an RGB/RGBA uint8 array and return a PIL image."""
    if isinstance(image, Image.Image):
        return image
    return Image.fromarray(to_rgba(image))


def build_palette(colors: Sequence[RGBColor]) -> Palette:
    """Derive hex, HSL and temperature for colors ranked by dominance."""
    first = colors[0]
    return Palette(
        dominant=[c.hex for c in colors],
        rgb=list(colors),
        hsl=[HSLColor.from_rgb(c) for c in colors],
        temperature=classify_temperature(first.r, first.g, first.b),
    )


def _to_colors(triples: Sequence[Sequence[int]]) -> List[RGBColor]:
    return [RGBColor(r=int(t[0]), g=int(t[1]), b=int(t[2])) for t in triples]


def _quantize_with_fallback(quantizer: Quantizer, image: Image.Image, color_count: int) -> List[RGBColor]:
    try:
        requested = min(color_count, MAX_QUANTIZE_COLORS)
        colors = _to_colors(quantizer.quantize(image, requested)[:color_count])
        if colors:
            return colors
        logger.warning("Quantizer returned no colors, falling back to dominant color")
    except Exception as e:
        logger.warning(f"Palette quantization failed ({e}), falling back to dominant color")

    try:
        return _to_colors([quantizer.dominant_color(image)])
    except Exception as e:
        logger.warning(f"Dominant color extraction failed ({e}), using neutral gray")

    return _to_colors([FALLBACK_GRAY])


def extract_palette(
    image: Union[np.ndarray, Image.Image],
    color_count: int = DEFAULT_COLOR_COUNT,
    quantizer: Optional[Quantizer] = None,
) -> Palette:
    """
    Extract the dominant color palette of an image or video frame.

    Args:
        image: RGBA/RGB uint8 raster buffer or PIL image
        color_count: Maximum number of colors to return (>= 1)
        quantizer: Quantization backend (default: ColorThiefQuantizer)

    Returns:
        Palette with at most `color_count` entries, most dominant first.
        Always contains at least one color.

    Raises:
        ValueError: if color_count is not a positive integer or the raster
                    buffer is malformed
    """
    if isinstance(color_count, bool) or not isinstance(color_count, int) or color_count < 1:
        raise ValueError(f"color_count must be a positive integer, got {color_count!r}")

    pil_image = as_pil_image(image)
    quantizer = quantizer or ColorThiefQuantizer()

    colors = _quantize_with_fallback(quantizer, pil_image, color_count)
    palette = build_palette(colors)

    logger.debug(
        f"Extracted {len(palette)} colors ({palette.temperature.value}): {', '.join(palette.dominant)}"
    )
    return palette
