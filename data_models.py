"""
Data models for the FramesWithin color pipeline.

Pydantic models for palette entries, extracted palettes, and grading
settings. Field names match the JSON the dashboard exchanges with the
AI service (`dominant`, `rgb`, `hsl`, `temperature`).
"""

from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from color_utils import hex_to_rgb, rgb_to_hex, rgb_to_hsl


class ColorTemperature(str, Enum):
    """Overall temperature of a palette, taken from its dominant color."""
    WARM = "warm"
    COOL = "cool"
    NEUTRAL = "neutral"


class RGBColor(BaseModel):
    """8-bit RGB triple."""
    r: int = Field(ge=0, le=255)
    g: int = Field(ge=0, le=255)
    b: int = Field(ge=0, le=255)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    @property
    def hex(self) -> str:
        """Lowercase '#rrggbb' encoding."""
        return rgb_to_hex(self.r, self.g, self.b)

    @classmethod
    def from_hex(cls, hex_color: str) -> "RGBColor":
        """Parse a hex string (malformed input gives black)."""
        r, g, b = hex_to_rgb(hex_color)
        return cls(r=r, g=g, b=b)


class HSLColor(BaseModel):
    """Hue in degrees, saturation and lightness in percent."""
    h: float = Field(ge=0.0, lt=360.0)
    s: float = Field(ge=0.0, le=100.0)
    l: float = Field(ge=0.0, le=100.0)  # noqa: E741

    @classmethod
    def from_rgb(cls, rgb: RGBColor) -> "HSLColor":
        h, s, lightness = rgb_to_hsl(rgb.r, rgb.g, rgb.b)
        return cls(h=h, s=s, l=lightness)


class Palette(BaseModel):
    """
    Ranked dominant colors extracted from one image or video frame.

    Entries are ordered by dominance (most dominant first). `dominant`,
    `rgb` and `hsl` are parallel lists describing the same colors.
    """
    dominant: List[str] = Field(description="Hex encoding of each color")
    rgb: List[RGBColor] = Field(description="RGB value of each color")
    hsl: List[HSLColor] = Field(description="HSL conversion of each color")
    temperature: ColorTemperature = Field(description="Classification of the first color")

    @model_validator(mode="after")
    def _check_parallel_lists(self) -> "Palette":
        if not (len(self.dominant) == len(self.rgb) == len(self.hsl)):
            raise ValueError(
                f"Palette lists differ in length: dominant={len(self.dominant)}, "
                f"rgb={len(self.rgb)}, hsl={len(self.hsl)}"
            )
        if not self.rgb:
            raise ValueError("Palette must contain at least one color")
        for hex_color, rgb in zip(self.dominant, self.rgb):
            if hex_to_rgb(hex_color) != rgb.as_tuple():
                raise ValueError(f"Hex {hex_color} does not match {rgb.as_tuple()}")
        return self

    def __len__(self) -> int:
        return len(self.rgb)

    @property
    def primary(self) -> RGBColor:
        """The most dominant color."""
        return self.rgb[0]

    def to_payload(self) -> dict:
        """JSON-ready dict in the shape the AI service expects."""
        return self.model_dump(mode="json")


class GradingSettings(BaseModel):
    """
    Named adjustment knobs for one grading pass.

    The five basic knobs conventionally range -100..100 and drive the pixel
    transform. The extended knobs are carried for the UI and AI breakdown
    but do not affect pixels. Values are not range-checked here; the engine
    clamps what it needs to (e.g. contrast near its pole at 259).
    """
    model_config = ConfigDict(validate_assignment=True)

    brightness: float = Field(default=0.0, description="Added to each RGB channel")
    contrast: float = Field(default=0.0, description="Contrast around mid-gray (128)")
    saturation: float = Field(default=0.0, description="Percent change of HSL saturation")
    hue: float = Field(default=0.0, description="Hue rotation; 100 = one full turn")
    temperature: float = Field(default=0.0, description="Positive warms, negative cools")

    # Extended knobs
    exposure: float = 0.0
    shadows: float = 0.0
    highlights: float = 0.0
    clarity: float = 0.0
    vibrance: float = 0.0
