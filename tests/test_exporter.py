"""
Tests for palette and AI result exports.
"""

import json
import pytest
import numpy as np
from datetime import datetime, timezone

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from PIL import Image

from ai_service import MOCK_BREAKDOWN, MOCK_INSIGHTS
from data_models import RGBColor
from exporter import (
    export_breakdown_json,
    export_insights_json,
    export_palette_json,
    export_palette_png,
    load_breakdown_json,
    palette_export_data,
    render_palette_swatches,
)
from palette import build_palette


@pytest.fixture
def palette():
    return build_palette([
        RGBColor(r=255, g=0, b=0),
        RGBColor(r=0, g=128, b=255),
        RGBColor(r=20, g=200, b=20),
    ])


class TestPaletteJson:
    """Tests for the palette JSON export."""

    def test_document_shape(self, palette):
        stamp = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
        data = palette_export_data(palette, exported_at=stamp)
        assert data["colors"] == ["#ff0000", "#0080ff", "#14c814"]
        assert data["rgb"][1] == {"r": 0, "g": 128, "b": 255}
        assert set(data["hsl"][0]) == {"h", "s", "l"}
        assert data["temperature"] == "warm"
        assert data["exportedAt"] == "2026-05-01T12:00:00+00:00"

    def test_writes_file(self, palette, tmp_path):
        path = export_palette_json(palette, tmp_path / "palette.json")
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["colors"][0] == "#ff0000"
        assert "exportedAt" in data

    def test_adds_suffix(self, palette, tmp_path):
        path = export_palette_json(palette, tmp_path / "palette")
        assert path.endswith("palette.json")
        assert os.path.exists(path)

    def test_indented(self, palette, tmp_path):
        path = export_palette_json(palette, tmp_path / "palette.json")
        with open(path, encoding="utf-8") as f:
            assert f.read().startswith('{\n  "colors"')


class TestPalettePng:
    """Tests for the swatch strip export."""

    def test_dimensions(self, palette):
        image = render_palette_swatches(palette)
        assert image.size == (300, 100)

    def test_swatch_colors(self, palette):
        pixels = np.asarray(render_palette_swatches(palette, swatch_size=10))
        assert tuple(pixels[5, 5]) == (255, 0, 0)
        assert tuple(pixels[0, 19]) == (0, 128, 255)
        assert tuple(pixels[9, 29]) == (20, 200, 20)

    def test_writes_png(self, palette, tmp_path):
        path = export_palette_png(palette, tmp_path / "swatches", swatch_size=4)
        assert path.endswith(".png")
        with Image.open(path) as img:
            assert img.format == "PNG"
            assert img.size == (12, 4)

    def test_bad_swatch_size(self, palette):
        with pytest.raises(ValueError):
            render_palette_swatches(palette, swatch_size=0)


class TestAiExports:
    """Tests for insights and breakdown exports."""

    def test_insights_use_wire_names(self, tmp_path):
        path = export_insights_json(MOCK_INSIGHTS, tmp_path / "insights")
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert "visualMood" in data
        assert data["hashtags"] == MOCK_INSIGHTS.hashtags
        # Emoji survive unescaped
        with open(path, encoding="utf-8") as f:
            assert "✨" in f.read()

    def test_breakdown_round_trip(self, tmp_path):
        path = export_breakdown_json(MOCK_BREAKDOWN, tmp_path / "look.json")
        assert load_breakdown_json(path) == MOCK_BREAKDOWN

    def test_load_wrapped_breakdown(self, tmp_path):
        path = tmp_path / "response.json"
        path.write_text(json.dumps({"breakdown": MOCK_BREAKDOWN.to_payload(), "mock": True}), encoding="utf-8")
        assert load_breakdown_json(path).tint == 10

    def test_load_invalid_breakdown(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"tint": "lots"}', encoding="utf-8")
        with pytest.raises(ValueError):
            load_breakdown_json(path)
