"""
Request payloads and prompt text for the AI service.
"""

import json
from typing import Optional

from constants import (
    INSIGHT_CAPTION_COUNT,
    INSIGHT_HASHTAG_COUNT,
    INSIGHT_SUGGESTION_COUNT,
    INSIGHT_TIP_COUNT,
)
from data_models import Palette

INSIGHTS_SYSTEM_PROMPT = (
    "You are a social media expert and content strategist who helps creators "
    "optimize their content for maximum engagement. Always respond with valid JSON only."
)

BREAKDOWN_SYSTEM_PROMPT = (
    "You are a professional colorist who analyzes color palettes and provides precise "
    "color grading parameters. Always respond with valid JSON only, no markdown or explanations."
)


def build_insights_request(palette: Palette, description: Optional[str] = None) -> dict:
    """JSON body for an insights request."""
    return {
        "palette": palette.to_payload(),
        "imageDescription": description,
    }


def build_breakdown_request(palette: Palette) -> dict:
    """JSON body for a grading-breakdown request."""
    return {"palette": palette.to_payload()}


def build_insights_prompt(palette: Palette, description: Optional[str] = None) -> str:
    lines = [
        "Analyze this content for social media optimization.",
        "",
        f"Color palette: {json.dumps(palette.dominant)}",
        f"Color temperature: {palette.temperature.value}",
    ]
    if description:
        lines.append(f"Image description: {description}")
    lines.extend([
        "",
        "Provide insights to help this content go viral. Include:",
        "1. Visual mood description (2-3 sentences about the emotional impact)",
        f"2. {INSIGHT_SUGGESTION_COUNT} specific visual improvement suggestions",
        f"3. {INSIGHT_CAPTION_COUNT} engaging caption options with emojis",
        f"4. {INSIGHT_HASHTAG_COUNT} relevant hashtags (without # symbol)",
        f"5. {INSIGHT_TIP_COUNT} viral tips for posting this content",
        "",
        "Respond ONLY with a valid JSON object:",
        "{",
        '  "visualMood": "string",',
        '  "suggestions": ["string", ...],',
        '  "captions": ["string", ...],',
        '  "hashtags": ["string", ...],',
        '  "viralTips": ["string", ...]',
        "}",
    ])
    return "\n".join(lines)


def build_breakdown_prompt(palette: Palette) -> str:
    rgb_values = [c.model_dump() for c in palette.rgb]
    return "\n".join([
        "Analyze this color palette and estimate professional color grading parameters.",
        "",
        f"Palette colors: {json.dumps(palette.dominant)}",
        f"RGB values: {json.dumps(rgb_values)}",
        f"Temperature: {palette.temperature.value}",
        "",
        "Based on these colors, estimate the following parameters that would create this look:",
        "1. Temperature (in Kelvin, typical range 2500-10000)",
        "2. Tint (-100 to +100, negative=green, positive=magenta)",
        "3. Hue shift (-180 to +180 degrees)",
        "4. Saturation adjustment (-100 to +100)",
        "5. Exposure adjustment (-5 to +5 stops)",
        "6. Radiance/Glow (0-100)",
        "7. Density (0-100)",
        "8. Color Balance (warm/neutral/cool)",
        "9. Balance Curve (linear/s-curve/film)",
        "10. Chroma Curve (standard/vivid/muted)",
        "",
        "Respond ONLY with a valid JSON object in this exact format:",
        "{",
        '  "temperature": number,',
        '  "tint": number,',
        '  "hue": number,',
        '  "saturation": number,',
        '  "exposure": number,',
        '  "radiance": number,',
        '  "density": number,',
        '  "colorBalance": "warm" | "neutral" | "cool",',
        '  "balanceCurve": "linear" | "s-curve" | "film",',
        '  "chromaCurve": "standard" | "vivid" | "muted"',
        "}",
    ])
