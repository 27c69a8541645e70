"""
Color-space conversion utilities.

Scalar RGB/HSL/hex conversions used for palette entries, plus vectorized
numpy equivalents used by the grading engine on whole frames. Both variants
share the same formulas so a pixel graded in bulk matches the scalar result.

Conventions:
    RGB channels are 0-255, hue is degrees in [0, 360), saturation and
    lightness are percentages in [0, 100].
"""

import math
import re
from typing import Tuple

import numpy as np

_HEX_PATTERN = re.compile(r"#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})", re.IGNORECASE)


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """
    Parse a 6-digit hex color, with or without a leading '#'.

    Malformed input yields (0, 0, 0) instead of raising.
    """
    if not isinstance(hex_color, str):
        return (0, 0, 0)
    match = _HEX_PATTERN.fullmatch(hex_color.strip())
    if match is None:
        return (0, 0, 0)
    return tuple(int(part, 16) for part in match.groups())


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Encode an RGB triple as a lowercase '#rrggbb' string."""
    for channel in (r, g, b):
        if not 0 <= channel <= 255:
            raise ValueError(f"RGB channel out of range: {channel}")
    return "#{:02x}{:02x}{:02x}".format(int(r), int(g), int(b))


def rgb_to_hsl(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """
    Convert RGB (0-255) to HSL.

    Hue is taken from whichever channel is the maximum (red, then green,
    then blue on ties). Gray inputs (r == g == b) give h = 0 and s = 0.

    Returns:
        (h, s, l) with h in [0, 360) and s, l in [0, 100]
    """
    r, g, b = r / 255.0, g / 255.0, b / 255.0

    high = max(r, g, b)
    low = min(r, g, b)
    h = 0.0
    s = 0.0
    lightness = (high + low) / 2.0

    if high != low:
        d = high - low
        s = d / (2.0 - high - low) if lightness > 0.5 else d / (high + low)
        if high == r:
            h = (g - b) / d + (6.0 if g < b else 0.0)
        elif high == g:
            h = (b - r) / d + 2.0
        else:
            h = (r - g) / d + 4.0
        h /= 6.0

    return h * 360.0, s * 100.0, lightness * 100.0


def hsl_to_rgb(h: float, s: float, lightness: float) -> Tuple[int, int, int]:
    """
    Convert HSL back to integer RGB using the chroma/intermediate/match
    decomposition. Channels are rounded half up.
    """
    h = (h % 360.0) / 360.0
    s /= 100.0
    lightness /= 100.0

    c = (1.0 - abs(2.0 * lightness - 1.0)) * s
    x = c * (1.0 - abs((h * 6.0) % 2.0 - 1.0))
    m = lightness - c / 2.0

    if h < 1 / 6:
        r, g, b = c, x, 0.0
    elif h < 2 / 6:
        r, g, b = x, c, 0.0
    elif h < 3 / 6:
        r, g, b = 0.0, c, x
    elif h < 4 / 6:
        r, g, b = 0.0, x, c
    elif h < 5 / 6:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return (
        math.floor((r + m) * 255.0 + 0.5),
        math.floor((g + m) * 255.0 + 0.5),
        math.floor((b + m) * 255.0 + 0.5),
    )


def rgb_to_hsl_array(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized rgb_to_hsl.

    Args:
        rgb: Array of shape (..., 3) with channel values 0-255 (any numeric dtype)

    Returns:
        Tuple of (h, s, l) float64 arrays of shape (...)
    """
    rgb = np.asarray(rgb, dtype=np.float64) / 255.0
    r = rgb[..., 0]
    g = rgb[..., 1]
    b = rgb[..., 2]

    high = rgb.max(axis=-1)
    low = rgb.min(axis=-1)
    lightness = (high + low) / 2.0
    d = high - low

    chromatic = d > 0
    safe_d = np.where(chromatic, d, 1.0)
    denom = np.where(lightness > 0.5, 2.0 - high - low, high + low)
    s = np.where(chromatic, d / np.where(chromatic, denom, 1.0), 0.0)

    # Same branch priority as the scalar version: red, then green, then blue
    hue_r = (g - b) / safe_d + np.where(g < b, 6.0, 0.0)
    hue_g = (b - r) / safe_d + 2.0
    hue_b = (r - g) / safe_d + 4.0
    h = np.where(high == r, hue_r, np.where(high == g, hue_g, hue_b))
    h = np.where(chromatic, h / 6.0, 0.0)

    return h * 360.0, s * 100.0, lightness * 100.0


def hsl_to_rgb_array(h: np.ndarray, s: np.ndarray, lightness: np.ndarray) -> np.ndarray:
    """
    Vectorized hsl_to_rgb.

    Returns:
        float64 array of shape (..., 3) holding whole numbers (rounded half up)
    """
    h = np.mod(np.asarray(h, dtype=np.float64), 360.0) / 360.0
    s = np.asarray(s, dtype=np.float64) / 100.0
    lightness = np.asarray(lightness, dtype=np.float64) / 100.0

    c = (1.0 - np.abs(2.0 * lightness - 1.0)) * s
    x = c * (1.0 - np.abs(np.mod(h * 6.0, 2.0) - 1.0))
    m = lightness - c / 2.0
    zero = np.zeros_like(c)

    sectors = [h < 1 / 6, h < 2 / 6, h < 3 / 6, h < 4 / 6, h < 5 / 6]
    r = np.select(sectors, [c, x, zero, zero, x], default=c)
    g = np.select(sectors, [x, c, c, x, zero], default=zero)
    b = np.select(sectors, [zero, zero, x, c, c], default=x)

    rgb = np.stack([r + m, g + m, b + m], axis=-1) * 255.0
    return np.floor(rgb + 0.5)
