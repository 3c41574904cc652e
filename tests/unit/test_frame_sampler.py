"""
Unit tests for frame sampling utilities.
"""

import base64

import cv2
import numpy as np
import pytest

from conftest import FakeSource, build_end_screen, to_bgr
from src.recorder.utils import (FrameSampler, downsample, encode_png_base64, load_image_rgb,
                                make_thumbnail)


@pytest.mark.unit
class TestFrameSampler:
    """Test suite for FrameSampler and helpers."""

    def test_sample_without_frame(self):
        assert FrameSampler(FakeSource()).sample() is None

    def test_sample_returns_rgb(self, end_screen_frame):
        sampler = FrameSampler(FakeSource(end_screen_frame))

        frame = sampler.sample()

        assert frame.shape == (360, 640, 3)
        assert np.array_equal(frame, end_screen_frame)

    def test_downsample_resizes(self):
        big = to_bgr(np.repeat(np.repeat(build_end_screen(), 3, axis=0), 3, axis=1))

        frame = downsample(big)

        assert frame.shape == (360, 640, 3)
        assert tuple(frame[80, 320]) == (66, 133, 244)

    def test_custom_size(self, end_screen_frame):
        sampler = FrameSampler(FakeSource(end_screen_frame), width=320, height=180)

        assert sampler.sample().shape == (180, 320, 3)

    def test_encode_png_base64(self, end_screen_frame):
        encoded = encode_png_base64(end_screen_frame)

        raw = np.frombuffer(base64.b64decode(encoded), dtype=np.uint8)
        decoded = cv2.cvtColor(cv2.imdecode(raw, cv2.IMREAD_COLOR), cv2.COLOR_BGR2RGB)
        assert np.array_equal(decoded, end_screen_frame)

    def test_make_thumbnail(self, end_screen_frame):
        data = make_thumbnail(end_screen_frame)

        image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert image.shape == (180, 320, 3)

    def test_make_thumbnail_bad_frame(self):
        assert make_thumbnail(np.zeros((4, 4, 7), dtype=np.uint8)) is None

    def test_load_image_rgb(self, tmp_path, end_screen_frame):
        path = tmp_path / "end.png"
        cv2.imwrite(str(path), to_bgr(end_screen_frame))

        assert np.array_equal(load_image_rgb(str(path)), end_screen_frame)

    def test_load_image_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image_rgb(str(tmp_path / "missing.png"))
