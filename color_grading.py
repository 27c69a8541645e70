"""
Color grading engine for FramesWithin.

Applies brightness, contrast, saturation, hue and temperature adjustments to
an RGBA raster buffer. Each call reads an immutable source buffer and returns
a new one; alpha is passed through untouched.

Per-pixel processing order:
1. Brightness (add, clamp)
2. Contrast around 128 (clamp)
3. Saturation (scale HSL saturation)
4. Hue shift (rotate HSL hue)
5. Temperature (push red/blue, clamp)

Stages run in float64 over the whole frame; the only rounding happens inside
HSL->RGB conversions and in the final 8-bit store.
"""

import logging
from functools import lru_cache
from typing import Optional

import numpy as np

from color_utils import hsl_to_rgb_array, rgb_to_hsl_array
from constants import (
    ADJUSTMENT_EPSILON,
    CONTRAST_MAX,
    CONTRAST_MIN,
    CONTRAST_POLE,
    COOL_BLUE_CUT,
    COOL_RED_GAIN,
    HUE_RANGE,
    WARM_BLUE_CUT,
    WARM_RED_GAIN,
)
from data_models import GradingSettings
from raster_io import validate_raster

logger = logging.getLogger(__name__)


def _is_set(amount: float) -> bool:
    return abs(amount) >= ADJUSTMENT_EPSILON


def contrast_factor(contrast: float) -> float:
    """
    Contrast multiplier: 259 * (c + 255) / (255 * (259 - c)).

    The input is clamped to [-255, 258] first, so the pole at c = 259 (and
    the inverted curve beyond it) can never be reached.
    """
    c = min(max(float(contrast), CONTRAST_MIN), CONTRAST_MAX)
    return (CONTRAST_POLE * (c + 255.0)) / (255.0 * (CONTRAST_POLE - c))


def apply_brightness(rgb: np.ndarray, amount: float) -> np.ndarray:
    """
    Add `amount` to every channel and clamp to 0-255.

    Args:
        rgb: float array of shape (..., 3)
        amount: Channel offset (conventionally -100 to 100)

    Returns:
        New float64 array
    """
    return np.clip(np.asarray(rgb, dtype=np.float64) + amount, 0.0, 255.0)


def apply_contrast(rgb: np.ndarray, amount: float) -> np.ndarray:
    """
    Stretch or compress channels around mid-gray (128).

    new = factor * (old - 128) + 128, clamped to 0-255.
    """
    factor = contrast_factor(amount)
    result = factor * (np.asarray(rgb, dtype=np.float64) - 128.0) + 128.0
    return np.clip(result, 0.0, 255.0)


def apply_saturation(rgb: np.ndarray, amount: float) -> np.ndarray:
    """
    Scale HSL saturation by (1 + amount / 100), clamped to 0-100.

    -100 produces grayscale; positive values push colors away from gray.
    Hue and lightness are kept.
    """
    h, s, lightness = rgb_to_hsl_array(rgb)
    s = np.clip(s * (1.0 + amount / 100.0), 0.0, 100.0)
    return hsl_to_rgb_array(h, s, lightness)


def apply_hue_shift(rgb: np.ndarray, amount: float) -> np.ndarray:
    """
    Rotate hue by amount * 3.6 degrees (100 = one full turn).

    Negative rotations wrap into [0, 360).
    """
    h, s, lightness = rgb_to_hsl_array(rgb)
    h = np.mod(h + amount * HUE_RANGE / 100.0, HUE_RANGE)
    return hsl_to_rgb_array(h, s, lightness)


def apply_temperature(rgb: np.ndarray, amount: float) -> np.ndarray:
    """
    Warm or cool by moving the red and blue channels.

    With t = amount / 100:
      warm (t > 0): red += 20t, blue -= 10t
      cool (t < 0): red += 10t, blue -= 20t
    Green is untouched; red and blue are clamped to 0-255.
    """
    result = np.array(rgb, dtype=np.float64, copy=True)
    if not _is_set(amount):
        return result

    t = amount / 100.0
    if t > 0:
        red_shift, blue_shift = t * WARM_RED_GAIN, -t * WARM_BLUE_CUT
    else:
        red_shift, blue_shift = t * COOL_RED_GAIN, -t * COOL_BLUE_CUT

    result[..., 0] = np.clip(result[..., 0] + red_shift, 0.0, 255.0)
    result[..., 2] = np.clip(result[..., 2] + blue_shift, 0.0, 255.0)
    return result


@lru_cache(maxsize=64)
def _get_tone_lut(brightness: float, contrast: float) -> np.ndarray:
    """
    Combined brightness + contrast lookup table.

    Both stages are per-channel functions of an 8-bit input, so they can be
    pre-computed into a single 256-entry table. Entries stay float64 because
    the saturation stage consumes unrounded values.
    """
    lut = np.arange(256, dtype=np.float64)
    if _is_set(brightness):
        lut = apply_brightness(lut, brightness)
    if _is_set(contrast):
        lut = apply_contrast(lut, contrast)
    lut.flags.writeable = False
    return lut


def _store(rgb: np.ndarray, source: np.ndarray) -> np.ndarray:
    """Round half-to-even, clamp, and attach the source alpha channel."""
    out = np.empty_like(source)
    out[..., :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    out[..., 3] = source[..., 3]
    return out


def apply_grading(buffer: np.ndarray, settings: GradingSettings) -> np.ndarray:
    """
    Grade an RGBA raster buffer.

    Always start from the original decoded buffer rather than a previously
    graded one, so rounding error does not compound across slider changes.

    Args:
        buffer: RGBA uint8 array of shape (height, width, 4); not modified
        settings: Adjustment knobs

    Returns:
        New RGBA uint8 array with the same shape

    Raises:
        ValueError: if `buffer` is not an RGBA uint8 raster
    """
    validate_raster(buffer)

    if _is_set(settings.brightness) or _is_set(settings.contrast):
        rgb = _get_tone_lut(float(settings.brightness), float(settings.contrast))[buffer[..., :3]]
    else:
        rgb = buffer[..., :3].astype(np.float64)

    if _is_set(settings.saturation):
        rgb = apply_saturation(rgb, settings.saturation)

    if _is_set(settings.hue):
        rgb = apply_hue_shift(rgb, settings.hue)

    if _is_set(settings.temperature):
        rgb = apply_temperature(rgb, settings.temperature)

    return _store(rgb, buffer)


class ColorGrader:
    """
    Holds one set of grading settings and applies them to frames.

    Usage:
        grader = ColorGrader(brightness=20, saturation=15)
        if grader.is_active:
            graded = grader.grade(original)
    """

    def __init__(
        self,
        settings: Optional[GradingSettings] = None,
        brightness: float = 0.0,
        contrast: float = 0.0,
        saturation: float = 0.0,
        hue: float = 0.0,
        temperature: float = 0.0,
    ):
        """
        Initialize the grader.

        Args:
            settings: Base settings (copied); the keyword knobs stack on top
            brightness: Channel offset (-100 to 100)
            contrast: Contrast amount (-100 to 100)
            saturation: Saturation percent change (-100 to 100)
            hue: Hue rotation (-100 to 100, 100 = full turn)
            temperature: Warm (+) / cool (-) shift (-100 to 100)
        """
        base = settings.model_copy() if settings is not None else GradingSettings()
        base.brightness += brightness
        base.contrast += contrast
        base.saturation += saturation
        base.hue += hue
        base.temperature += temperature
        self.settings = base

        if base.contrast < CONTRAST_MIN or base.contrast > CONTRAST_MAX:
            logger.warning(
                f"Contrast {base.contrast:+.1f} outside [{CONTRAST_MIN:.0f}, {CONTRAST_MAX:.0f}], clamping"
            )

        if self.is_active:
            params = []
            for name in ("brightness", "contrast", "saturation", "hue", "temperature"):
                value = getattr(base, name)
                if _is_set(value):
                    params.append(f"{name}={value:+.1f}")
            logger.debug(f"Color grading active: {', '.join(params)}")

    @property
    def is_active(self) -> bool:
        """Check if any pixel adjustment will be applied."""
        s = self.settings
        return (
            _is_set(s.brightness) or
            _is_set(s.contrast) or
            _is_set(s.saturation) or
            _is_set(s.hue) or
            _is_set(s.temperature)
        )

    def grade(self, buffer: np.ndarray) -> np.ndarray:
        """Grade a copy of `buffer`; an inactive grader returns an exact copy."""
        if not self.is_active:
            validate_raster(buffer)
            return buffer.copy()
        return apply_grading(buffer, self.settings)


def create_color_grader(
    settings: Optional[GradingSettings] = None,
    brightness: float = 0.0,
    contrast: float = 0.0,
    saturation: float = 0.0,
    hue: float = 0.0,
    temperature: float = 0.0,
) -> Optional[ColorGrader]:
    """
    Factory function to create a ColorGrader from CLI-style arguments.

    Returns:
        ColorGrader instance, or None if no adjustment is configured
    """
    grader = ColorGrader(
        settings=settings,
        brightness=brightness,
        contrast=contrast,
        saturation=saturation,
        hue=hue,
        temperature=temperature,
    )
    return grader if grader.is_active else None
