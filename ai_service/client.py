"""
Client for the language-model API.

Sends palette prompts to the chat completions endpoint and turns replies
into validated models. Nothing here raises on service trouble: a missing
credential yields mock data, and transport or parse failures yield the
documented fallback with an error message attached.
"""

import json
import logging
import os
import re
from typing import Optional, Union

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from ai_service.data_models import (
    AIInsight,
    BreakdownResult,
    FALLBACK_BREAKDOWN,
    GradingBreakdown,
    InsightsResult,
    MOCK_BREAKDOWN,
    MOCK_INSIGHTS,
)
from ai_service.prompts import (
    BREAKDOWN_SYSTEM_PROMPT,
    INSIGHTS_SYSTEM_PROMPT,
    build_breakdown_prompt,
    build_insights_prompt,
)
from constants import (
    AI_MODEL,
    API_KEY_ENV_VAR,
    API_KEY_PLACEHOLDER,
    BREAKDOWN_MAX_TOKENS,
    BREAKDOWN_TEMPERATURE,
    INSIGHTS_MAX_TOKENS,
    INSIGHTS_TEMPERATURE,
)
from data_models import Palette

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```json\n?|\n?```")


def resolve_api_key(api_key: Optional[str] = None) -> Optional[str]:
    """
    Pick the API key to use, or None if no usable credential exists.

    An explicit key wins over the OPENAI_API_KEY environment variable. Empty
    strings and the 'your_openai_api_key' placeholder count as missing.
    """
    if api_key is None:
        api_key = os.environ.get(API_KEY_ENV_VAR)
    if not api_key or not api_key.strip() or api_key == API_KEY_PLACEHOLDER:
        return None
    return api_key.strip()


def parse_model_json(text: str) -> dict:
    """
    Parse a JSON object from model output, tolerating ```json fences.

    Raises:
        ValueError: if the text is not a JSON object
    """
    cleaned = _CODE_FENCE.sub("", text or "").strip()
    data = json.loads(cleaned)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class AIServiceClient:
    """
    Generates creator insights and grading breakdowns for a palette.

    Usage:
        client = AIServiceClient(api_key=settings.openai_api_key)
        result = client.generate_insights(palette)
        if result.mock:
            ...
    """

    def __init__(self, api_key: Optional[str] = None, model: str = AI_MODEL, client: Optional[OpenAI] = None):
        """
        Args:
            api_key: Explicit key; falls back to the OPENAI_API_KEY environment variable
            model: Chat model name
            client: Pre-built OpenAI client (mainly for tests)
        """
        self.api_key = resolve_api_key(api_key)
        self.model = model
        self._client = client

    @property
    def has_credentials(self) -> bool:
        return self.api_key is not None or self._client is not None

    def _openai(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _complete(self, system_prompt: str, prompt: str, temperature: float, max_tokens: int) -> str:
        completion = self._openai().chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return completion.choices[0].message.content or ""

    def generate_insights(self, palette: Palette, description: Optional[str] = None) -> InsightsResult:
        """Ask for mood, suggestions, captions, hashtags and viral tips."""
        if not self.has_credentials:
            logger.info("No API key configured, returning demo insights")
            return InsightsResult(insights=MOCK_INSIGHTS.model_copy(deep=True), mock=True)

        try:
            text = self._complete(
                INSIGHTS_SYSTEM_PROMPT,
                build_insights_prompt(palette, description),
                INSIGHTS_TEMPERATURE,
                INSIGHTS_MAX_TOKENS,
            )
        except (OpenAIError, IndexError) as e:
            logger.warning(f"AI insights request failed: {e}")
            return InsightsResult(
                insights=MOCK_INSIGHTS.model_copy(deep=True),
                mock=True,
                error="Failed to generate insights",
            )

        try:
            insights = AIInsight.model_validate(parse_model_json(text))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Failed to parse AI insights response: {e}")
            logger.debug(f"Raw response: {text!r}")
            return InsightsResult(
                insights=MOCK_INSIGHTS.model_copy(deep=True),
                mock=True,
                error="Failed to parse AI response",
            )

        return InsightsResult(insights=insights)

    def grading_breakdown(self, palette: Palette) -> BreakdownResult:
        """Ask for grading parameters that would reproduce the palette's look."""
        if not self.has_credentials:
            logger.info("No API key configured, returning demo breakdown")
            return BreakdownResult(breakdown=MOCK_BREAKDOWN.model_copy(), mock=True)

        try:
            text = self._complete(
                BREAKDOWN_SYSTEM_PROMPT,
                build_breakdown_prompt(palette),
                BREAKDOWN_TEMPERATURE,
                BREAKDOWN_MAX_TOKENS,
            )
        except (OpenAIError, IndexError) as e:
            logger.warning(f"AI breakdown request failed: {e}")
            return BreakdownResult(breakdown=FALLBACK_BREAKDOWN.model_copy(), error="Failed to analyze image")

        try:
            breakdown = GradingBreakdown.model_validate(parse_model_json(text))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Failed to parse AI breakdown response, using fallback: {e}")
            logger.debug(f"Raw response: {text!r}")
            return BreakdownResult(breakdown=FALLBACK_BREAKDOWN.model_copy(), error="Failed to parse AI response")

        return BreakdownResult(breakdown=breakdown)


def read_service_response(data: dict) -> Union[InsightsResult, BreakdownResult]:
    """
    Validate a decoded AI service response body of either shape.

    Accepts {"insights": {...}, "mock"?, "error"?} or
    {"breakdown": {...}, "mock"?, "error"?}. A body whose payload does not
    match its model gets the matching fallback with an error set.

    Raises:
        ValueError: if the body carries neither an insights nor a breakdown key
    """
    mock = bool(data.get("mock", False))
    error = data.get("error")

    if "breakdown" in data:
        try:
            breakdown = GradingBreakdown.model_validate(data["breakdown"])
        except ValidationError as e:
            logger.warning(f"Invalid breakdown payload, using fallback: {e}")
            return BreakdownResult(
                breakdown=FALLBACK_BREAKDOWN.model_copy(),
                error=error or "Invalid breakdown payload",
            )
        return BreakdownResult(breakdown=breakdown, mock=mock, error=error)

    if "insights" in data:
        try:
            insights = AIInsight.model_validate(data["insights"])
        except ValidationError as e:
            logger.warning(f"Invalid insights payload, using demo insights: {e}")
            return InsightsResult(
                insights=MOCK_INSIGHTS.model_copy(deep=True),
                mock=True,
                error=error or "Invalid insights payload",
            )
        return InsightsResult(insights=insights, mock=mock, error=error)

    raise ValueError(f"Unrecognized AI service response keys: {sorted(data)}")
