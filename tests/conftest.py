"""
Pytest configuration and fixtures for FramesWithin tests.

Provides small RGBA raster buffers, stub quantizers and an isolated state
store so no test touches the network, ffmpeg or the user's home directory.
"""

import pytest
import numpy as np
from typing import List, Tuple

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from palette import Quantizer
from state_store import JsonStateStore, MemoryStateStore


class FixedQuantizer(Quantizer):
    """Returns a preset ranking regardless of the image."""

    def __init__(self, colors: List[Tuple[int, int, int]]):
        self.colors = colors
        self.calls = []

    def quantize(self, image, color_count):
        self.calls.append(color_count)
        return list(self.colors)


class EmptyQuantizer(Quantizer):
    """Returns no palette but a valid dominant color."""

    def __init__(self, dominant=(200, 40, 40)):
        self.dominant = dominant

    def quantize(self, image, color_count):
        return []

    def dominant_color(self, image):
        return self.dominant


class FailingQuantizer(Quantizer):
    """Raises on every call."""

    def quantize(self, image, color_count):
        raise RuntimeError("quantizer exploded")

    def dominant_color(self, image):
        raise RuntimeError("dominant color exploded")


@pytest.fixture
def two_pixel_buffer():
    """1x2 RGBA buffer: dark gray and a muted red, both opaque."""
    return np.array([[[10, 10, 10, 255], [200, 50, 50, 255]]], dtype=np.uint8)


@pytest.fixture
def gradient_buffer():
    """32x32 RGBA buffer with varied hues and a partly transparent column."""
    ys, xs = np.mgrid[0:32, 0:32]
    buffer = np.zeros((32, 32, 4), dtype=np.uint8)
    buffer[..., 0] = (xs * 8).astype(np.uint8)
    buffer[..., 1] = (ys * 8).astype(np.uint8)
    buffer[..., 2] = 255 - (xs * 4).astype(np.uint8)
    buffer[..., 3] = 255
    buffer[:, 0, 3] = 64
    return buffer


@pytest.fixture
def solid_red_buffer():
    """16x16 opaque pure red."""
    buffer = np.zeros((16, 16, 4), dtype=np.uint8)
    buffer[..., 0] = 255
    buffer[..., 3] = 255
    return buffer


@pytest.fixture
def fixed_quantizer():
    return FixedQuantizer([(255, 0, 0), (0, 0, 255), (20, 200, 20)])


@pytest.fixture
def empty_quantizer():
    return EmptyQuantizer()


@pytest.fixture
def failing_quantizer():
    return FailingQuantizer()


@pytest.fixture
def memory_store():
    return MemoryStateStore()


@pytest.fixture
def state_path(tmp_path):
    """Path to a state file inside a directory that does not exist yet."""
    return tmp_path / "state" / "state.json"


@pytest.fixture
def json_store(state_path):
    return JsonStateStore(state_path)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep tests away from real credentials and the real state file."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("FRAMESWITHIN_STATE", str(tmp_path / "env_state.json"))
