"""
Data models for the AI service boundary.

Pydantic models for the two response shapes the AI service returns: creator
insights (mood, suggestions, captions, hashtags, tips) and a grading
breakdown (estimated grading parameters for a palette). Both accept the
camelCase field names used on the wire.

Also defines the fixed fallback payloads used when no credential is
configured or a response cannot be parsed.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from constants import (
    EXPOSURE_STOP_SCALE,
    KELVIN_PER_STEP,
    KNOB_MAX,
    KNOB_MIN,
    NEUTRAL_KELVIN,
)
from data_models import GradingSettings


def _clamp_knob(value: float) -> float:
    return min(max(value, KNOB_MIN), KNOB_MAX)


class AIInsight(BaseModel):
    """Social-media insights generated for a palette."""
    model_config = ConfigDict(populate_by_name=True)

    visual_mood: str = Field(alias="visualMood", description="2-3 sentences on emotional impact")
    suggestions: List[str] = Field(default_factory=list, description="Visual improvement ideas")
    captions: List[str] = Field(default_factory=list, description="Caption options with emojis")
    hashtags: List[str] = Field(default_factory=list, description="Hashtags, always '#'-prefixed")
    viral_tips: List[str] = Field(default_factory=list, alias="viralTips", description="Posting tips")

    @field_validator("hashtags")
    @classmethod
    def _prefix_hashtags(cls, tags: List[str]) -> List[str]:
        # The prompt asks for bare words; mock data already carries '#'
        cleaned = []
        for tag in tags:
            tag = tag.strip()
            if tag:
                cleaned.append(tag if tag.startswith("#") else f"#{tag}")
        return cleaned

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class GradingBreakdown(BaseModel):
    """Professional grading parameters estimated from a palette."""
    model_config = ConfigDict(populate_by_name=True)

    temperature: float = Field(description="White balance in Kelvin (2500-10000)")
    tint: float = Field(description="-100 (green) to +100 (magenta)")
    hue: float = Field(description="Hue shift in degrees (-180 to +180)")
    saturation: float = Field(description="Saturation adjustment (-100 to +100)")
    exposure: float = Field(description="Exposure in stops (-5 to +5)")
    radiance: float = Field(description="Glow (0-100)")
    density: float = Field(description="Density (0-100)")
    color_balance: Literal["warm", "neutral", "cool"] = Field(alias="colorBalance")
    balance_curve: Literal["linear", "s-curve", "film"] = Field(alias="balanceCurve")
    chroma_curve: Literal["standard", "vivid", "muted"] = Field(alias="chromaCurve")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_grading_settings(self) -> GradingSettings:
        """
        Map the breakdown onto pixel-grading knobs.

        Lower Kelvin reads as a warmer look, so 6500 K is neutral and every
        40 K below it adds one step of warmth. Hue degrees become the -100..100
        hue knob, exposure stops drive brightness at 20 per stop.
        """
        exposure = self.exposure * EXPOSURE_STOP_SCALE
        return GradingSettings(
            brightness=_clamp_knob(exposure),
            saturation=self.saturation,
            hue=self.hue * 100.0 / 360.0,
            temperature=_clamp_knob((NEUTRAL_KELVIN - self.temperature) / KELVIN_PER_STEP),
            exposure=exposure,
        )


class InsightsResult(BaseModel):
    """Insights plus how they were obtained."""
    insights: AIInsight
    mock: bool = Field(default=False, description="True when canned data was returned")
    error: Optional[str] = None


class BreakdownResult(BaseModel):
    """Grading breakdown plus how it was obtained."""
    breakdown: GradingBreakdown
    mock: bool = Field(default=False, description="True when canned data was returned")
    error: Optional[str] = None


MOCK_INSIGHTS = AIInsight(
    visualMood=(
        "Cinematic tones creating an engaging, professional atmosphere. "
        "The composition suggests quality and attention to detail."
    ),
    suggestions=[
        "Increase saturation by 15% to make colors more vibrant",
        "Add a subtle vignette to draw focus to the center",
        "Consider warming the temperature for a more inviting feel",
        "Boost contrast slightly to enhance visual depth",
        "Apply subtle film grain for a cinematic look",
    ],
    captions=[
        "Creating magic one frame at a time ✨",
        "When colors tell the story \U0001F3A8",
        "Perfection in every pixel",
        "This is what dreams look like \U0001F31F",
        "Crafted with passion and precision",
    ],
    hashtags=[
        "#contentcreator", "#visualart", "#cinematography",
        "#colorgrading", "#creativeprocess", "#digitalart",
        "#photography", "#viral", "#trending", "#aesthetic",
    ],
    viralTips=[
        "Post during peak engagement hours (6-9 PM) for maximum reach",
        "Use trending audio that matches your content mood",
        "Create a series to build anticipation with your audience",
        "Engage with comments within the first hour of posting",
        "Cross-post to multiple platforms with tailored captions",
    ],
)

# Returned when no credential is configured
MOCK_BREAKDOWN = GradingBreakdown(
    temperature=6500,
    tint=10,
    hue=0,
    saturation=0,
    exposure=0,
    radiance=0,
    density=0,
    colorBalance="neutral",
    balanceCurve="linear",
    chromaCurve="standard",
)

# Returned when the service fails or its reply cannot be parsed
FALLBACK_BREAKDOWN = MOCK_BREAKDOWN.model_copy(update={"tint": 0})
