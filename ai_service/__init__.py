"""
AI service boundary for FramesWithin.

Builds request payloads and prompts from an extracted palette, calls the
language-model API for creator insights or a grading breakdown, and
validates replies against fixed-shape models with documented fallbacks.
"""

from ai_service.data_models import (
    AIInsight,
    GradingBreakdown,
    InsightsResult,
    BreakdownResult,
    MOCK_INSIGHTS,
    MOCK_BREAKDOWN,
    FALLBACK_BREAKDOWN,
)
from ai_service.prompts import build_insights_request, build_breakdown_request
from ai_service.client import AIServiceClient, read_service_response

__all__ = [
    "AIInsight",
    "GradingBreakdown",
    "InsightsResult",
    "BreakdownResult",
    "MOCK_INSIGHTS",
    "MOCK_BREAKDOWN",
    "FALLBACK_BREAKDOWN",
    "build_insights_request",
    "build_breakdown_request",
    "AIServiceClient",
    "read_service_response",
]
