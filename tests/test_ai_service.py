"""
Tests for the AI service boundary.

The OpenAI client is replaced with a MagicMock; no network access is needed.
"""

import json
import pytest
from unittest.mock import MagicMock

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from openai import OpenAIError

from ai_service import (
    AIInsight,
    AIServiceClient,
    BreakdownResult,
    FALLBACK_BREAKDOWN,
    GradingBreakdown,
    InsightsResult,
    MOCK_BREAKDOWN,
    MOCK_INSIGHTS,
    build_breakdown_request,
    build_insights_request,
    read_service_response,
)
from ai_service.client import parse_model_json, resolve_api_key
from ai_service.prompts import build_breakdown_prompt, build_insights_prompt
from data_models import RGBColor
from palette import build_palette


INSIGHTS_REPLY = {
    "visualMood": "Moody and warm.",
    "suggestions": ["Lift shadows"],
    "captions": ["Golden hour ✨"],
    "hashtags": ["sunset", "#goldenhour", "  "],
    "viralTips": ["Post at 7 PM"],
}

BREAKDOWN_REPLY = {
    "temperature": 5700,
    "tint": 5,
    "hue": 36,
    "saturation": 15,
    "exposure": 0.5,
    "radiance": 20,
    "density": 10,
    "colorBalance": "warm",
    "balanceCurve": "film",
    "chromaCurve": "vivid",
}


def make_openai(content=None, error=None):
    """MagicMock shaped like an OpenAI client returning one chat completion."""
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        message = MagicMock()
        message.content = content
        client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=message)])
    return client


@pytest.fixture
def palette():
    return build_palette([RGBColor(r=230, g=120, b=40), RGBColor(r=30, g=40, b=90)])


class TestResolveApiKey:
    """Tests for credential resolution."""

    def test_explicit_key(self):
        assert resolve_api_key("sk-test") == "sk-test"

    def test_strips_whitespace(self):
        assert resolve_api_key("  sk-test \n") == "sk-test"

    def test_placeholder_is_missing(self):
        assert resolve_api_key("your_openai_api_key") is None

    def test_blank_is_missing(self):
        assert resolve_api_key("   ") is None

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert resolve_api_key() == "sk-env"

    def test_explicit_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert resolve_api_key("sk-explicit") == "sk-explicit"

    def test_nothing_configured(self):
        assert resolve_api_key() is None


class TestParseModelJson:
    """Tests for lenient JSON parsing of model output."""

    def test_plain(self):
        assert parse_model_json('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        assert parse_model_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_not_an_object(self):
        with pytest.raises(ValueError):
            parse_model_json("[1, 2]")

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_model_json("Sure! Here are your insights.")

    def test_empty(self):
        with pytest.raises(ValueError):
            parse_model_json("")


class TestRequests:
    """Tests for request payloads and prompts."""

    def test_insights_request(self, palette):
        body = build_insights_request(palette, "beach at dusk")
        assert set(body) == {"palette", "imageDescription"}
        assert body["palette"]["dominant"] == palette.dominant
        assert body["palette"]["temperature"] == "warm"
        assert body["imageDescription"] == "beach at dusk"
        json.dumps(body)

    def test_insights_request_without_description(self, palette):
        assert build_insights_request(palette)["imageDescription"] is None

    def test_breakdown_request(self, palette):
        assert build_breakdown_request(palette) == {"palette": palette.to_payload()}

    def test_insights_prompt(self, palette):
        prompt = build_insights_prompt(palette, "beach at dusk")
        assert palette.dominant[0] in prompt
        assert "Image description: beach at dusk" in prompt
        assert '"viralTips"' in prompt

    def test_insights_prompt_omits_missing_description(self, palette):
        assert "Image description" not in build_insights_prompt(palette)

    def test_breakdown_prompt(self, palette):
        prompt = build_breakdown_prompt(palette)
        assert '"r": 230' in prompt
        assert '"chromaCurve"' in prompt


class TestGenerateInsights:
    """Tests for AIServiceClient.generate_insights."""

    def test_no_key_returns_mock(self, palette):
        result = AIServiceClient().generate_insights(palette)
        assert result.mock
        assert result.error is None
        assert result.insights == MOCK_INSIGHTS

    def test_placeholder_key_returns_mock(self, palette):
        result = AIServiceClient(api_key="your_openai_api_key").generate_insights(palette)
        assert result.mock

    def test_parses_reply(self, palette):
        openai = make_openai(json.dumps(INSIGHTS_REPLY))
        result = AIServiceClient(client=openai).generate_insights(palette, "beach")

        assert not result.mock
        assert result.error is None
        assert result.insights.visual_mood == "Moody and warm."
        assert result.insights.hashtags == ["#sunset", "#goldenhour"]
        assert result.insights.viral_tips == ["Post at 7 PM"]

    def test_request_parameters(self, palette):
        openai = make_openai(json.dumps(INSIGHTS_REPLY))
        AIServiceClient(client=openai).generate_insights(palette)

        kwargs = openai.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 1000
        assert kwargs["messages"][0]["role"] == "system"
        assert palette.dominant[0] in kwargs["messages"][1]["content"]

    def test_fenced_reply(self, palette):
        openai = make_openai("```json\n" + json.dumps(INSIGHTS_REPLY) + "\n```")
        result = AIServiceClient(client=openai).generate_insights(palette)
        assert not result.mock

    def test_unparseable_reply_falls_back(self, palette):
        openai = make_openai("I cannot do that.")
        result = AIServiceClient(client=openai).generate_insights(palette)
        assert result.mock
        assert result.error == "Failed to parse AI response"
        assert result.insights == MOCK_INSIGHTS

    def test_wrong_shape_falls_back(self, palette):
        openai = make_openai(json.dumps({"captions": ["no mood"]}))
        result = AIServiceClient(client=openai).generate_insights(palette)
        assert result.error == "Failed to parse AI response"

    def test_service_error_falls_back(self, palette):
        openai = make_openai(error=OpenAIError("rate limited"))
        result = AIServiceClient(client=openai).generate_insights(palette)
        assert result.mock
        assert result.error == "Failed to generate insights"

    def test_mock_is_not_shared(self, palette):
        result = AIServiceClient().generate_insights(palette)
        result.insights.captions.append("mutated")
        assert "mutated" not in MOCK_INSIGHTS.captions


class TestGradingBreakdown:
    """Tests for AIServiceClient.grading_breakdown."""

    def test_no_key_returns_mock(self, palette):
        result = AIServiceClient().grading_breakdown(palette)
        assert result.mock
        assert result.breakdown.tint == 10
        assert result.breakdown == MOCK_BREAKDOWN

    def test_parses_reply(self, palette):
        openai = make_openai(json.dumps(BREAKDOWN_REPLY))
        result = AIServiceClient(client=openai).grading_breakdown(palette)

        assert not result.mock
        assert result.breakdown.temperature == 5700
        assert result.breakdown.color_balance == "warm"
        assert result.breakdown.balance_curve == "film"

        kwargs = openai.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 500

    def test_unparseable_reply_uses_fallback(self, palette):
        openai = make_openai("```json\nnot json\n```")
        result = AIServiceClient(client=openai).grading_breakdown(palette)
        assert not result.mock
        assert result.breakdown == FALLBACK_BREAKDOWN
        assert result.breakdown.tint == 0
        assert result.error == "Failed to parse AI response"

    def test_invalid_enum_uses_fallback(self, palette):
        reply = dict(BREAKDOWN_REPLY, colorBalance="purple")
        result = AIServiceClient(client=make_openai(json.dumps(reply))).grading_breakdown(palette)
        assert result.breakdown == FALLBACK_BREAKDOWN

    def test_service_error_uses_fallback(self, palette):
        openai = make_openai(error=OpenAIError("timeout"))
        result = AIServiceClient(client=openai).grading_breakdown(palette)
        assert result.breakdown == FALLBACK_BREAKDOWN
        assert result.error == "Failed to analyze image"


class TestBreakdownMapping:
    """Tests for GradingBreakdown.to_grading_settings."""

    def test_mapping(self):
        settings = GradingBreakdown.model_validate(BREAKDOWN_REPLY).to_grading_settings()
        assert settings.temperature == pytest.approx(20.0)
        assert settings.hue == pytest.approx(10.0)
        assert settings.saturation == 15
        assert settings.brightness == pytest.approx(10.0)
        assert settings.exposure == pytest.approx(10.0)
        assert settings.contrast == 0.0

    def test_neutral_mock_maps_to_no_adjustment(self):
        settings = MOCK_BREAKDOWN.to_grading_settings()
        assert settings.temperature == 0.0
        assert settings.brightness == 0.0

    def test_clamped(self):
        reply = dict(BREAKDOWN_REPLY, temperature=1000, exposure=-8)
        settings = GradingBreakdown.model_validate(reply).to_grading_settings()
        assert settings.temperature == 100.0
        assert settings.brightness == -100.0
        assert settings.exposure == -160.0


class TestModels:
    """Tests for wire-name handling on the AI models."""

    def test_insight_accepts_field_names(self):
        insight = AIInsight(visual_mood="Calm", viral_tips=["tip"])
        assert insight.to_payload()["visualMood"] == "Calm"
        assert insight.to_payload()["viralTips"] == ["tip"]

    def test_breakdown_payload_uses_wire_names(self):
        payload = MOCK_BREAKDOWN.to_payload()
        assert payload["colorBalance"] == "neutral"
        assert "color_balance" not in payload


class TestReadServiceResponse:
    """Tests for validating decoded service bodies."""

    def test_breakdown_body(self):
        result = read_service_response({"breakdown": BREAKDOWN_REPLY, "mock": False})
        assert isinstance(result, BreakdownResult)
        assert result.breakdown.hue == 36

    def test_insights_body(self):
        result = read_service_response({"insights": INSIGHTS_REPLY, "mock": True})
        assert isinstance(result, InsightsResult)
        assert result.mock
        assert result.insights.hashtags[0] == "#sunset"

    def test_invalid_breakdown_gets_fallback(self):
        result = read_service_response({"breakdown": {"tint": 3}})
        assert result.breakdown == FALLBACK_BREAKDOWN
        assert result.error

    def test_error_is_kept(self):
        result = read_service_response({"breakdown": BREAKDOWN_REPLY, "error": "Failed to analyze image"})
        assert result.error == "Failed to analyze image"

    def test_invalid_insights_gets_mock(self):
        result = read_service_response({"insights": None})
        assert result.mock
        assert result.insights == MOCK_INSIGHTS

    def test_unknown_body_raises(self):
        with pytest.raises(ValueError, match="Unrecognized"):
            read_service_response({"palette": {}})
