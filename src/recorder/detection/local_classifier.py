"""End-of-Run Screen Detection from Pixel Signatures.

This module detects the end-of-run screen of the basketball doodle without
any external service. It scans a narrow vertical strip through the middle of
the frame for the three blocks the end screen stacks on top of each other:

1. Top region (0-40% Y): solid blue score ribbon
2. Middle region (30-70% Y): solid green replay button
3. Lower region (50-85% Y): white share/URL box

The ribbon is mandatory. Either the button or the URL box is enough to
corroborate it, so one of them may be partially covered.

Typical usage example:

    from local_classifier import LocalFrameClassifier

    classifier = LocalFrameClassifier()
    result = classifier.classify(frame_rgb)
    if result.is_game_over:
        print("Run ended")
"""

import logging
from typing import Dict, Tuple

import numpy as np

from ..models import ClassificationResult, DetectionMode
from .base import FrameClassifier

logger = logging.getLogger(__name__)


class LocalFrameClassifier(FrameClassifier):
    """Detect the end screen by matching a fixed colour layout.

    Deterministic and side-effect free: the same pixels always give the same
    result. The score is never readable in this mode.

    Attributes:
        scan_width: Width of the centre strip in pixels.
        color_tolerance: Euclidean RGB distance accepted as a colour match.
    """

    mode = DetectionMode.LOCAL

    RIBBON_BLUE = (66, 133, 244)
    BUTTON_GREEN = (52, 168, 83)
    WHITE_MIN = 220

    # Fraction of the strip width that must match for a row to count
    ROW_MATCH_FRACTION = 0.4
    # Fraction of the frame height a cue needs in matching rows
    MIN_ROW_FRACTION = 0.02

    RIBBON_BAND = (None, 0.40)
    BUTTON_BAND = (0.30, 0.70)
    URL_BOX_BAND = (0.50, 0.85)

    def __init__(self, scan_width: int = 20, color_tolerance: float = 70.0):
        """Initialize local classifier.

        Args:
            scan_width: Width of the centre strip at the 640x360 sample size.
            color_tolerance: Maximum RGB distance (exclusive) for a colour match.
        """
        self.scan_width = scan_width
        self.color_tolerance = color_tolerance

    def analyze(self, frame: np.ndarray) -> Dict:
        """Count matching rows for each visual cue.

        Args:
            frame: RGB (or RGBA) frame of shape (H, W, C), dtype uint8.

        Returns:
            Dictionary with row counts and cue flags:
            - 'blue_rows', 'green_rows', 'white_rows': matching row counts (int)
            - 'has_ribbon', 'has_button', 'has_url_box': cue present (bool)
            - 'is_game_over': final decision (bool)

        Raises:
            ValueError: If the frame is not a uint8 colour image.
        """
        pixels = np.asarray(frame)
        if pixels.ndim != 3 or pixels.shape[2] < 3 or pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 colour frame, got shape {pixels.shape} ({pixels.dtype})")

        height, width = pixels.shape[:2]
        if height == 0 or width == 0:
            raise ValueError("Empty frame")

        center_x = width // 2
        start_x = max(0, center_x - self.scan_width // 2)
        strip = pixels[:, start_x:start_x + self.scan_width, :3].astype(np.int32)

        blue_counts = self._color_matches(strip, self.RIBBON_BLUE).sum(axis=1)
        green_counts = self._color_matches(strip, self.BUTTON_GREEN).sum(axis=1)
        white_counts = np.all(strip > self.WHITE_MIN, axis=2).sum(axis=1)

        y_percent = np.arange(height) / height
        threshold = self.scan_width * self.ROW_MATCH_FRACTION

        blue_rows = int(np.count_nonzero((blue_counts > threshold) & self._in_band(y_percent, self.RIBBON_BAND)))
        green_rows = int(np.count_nonzero((green_counts > threshold) & self._in_band(y_percent, self.BUTTON_BAND)))
        white_rows = int(np.count_nonzero((white_counts > threshold) & self._in_band(y_percent, self.URL_BOX_BAND)))

        min_rows = height * self.MIN_ROW_FRACTION
        has_ribbon = blue_rows > min_rows
        has_button = green_rows > min_rows
        has_url_box = white_rows > min_rows

        return {
            'blue_rows': blue_rows,
            'green_rows': green_rows,
            'white_rows': white_rows,
            'has_ribbon': has_ribbon,
            'has_button': has_button,
            'has_url_box': has_url_box,
            'is_game_over': has_ribbon and (has_button or has_url_box)
        }

    def classify(self, frame: np.ndarray) -> ClassificationResult:
        """Classify a frame. Never raises; unreadable frames are negative."""
        try:
            analysis = self.analyze(frame)
        except (ValueError, TypeError, IndexError, AttributeError) as e:
            logger.warning(f"Local analysis failed: {e}")
            return ClassificationResult.negative()

        is_game_over = analysis['is_game_over']
        return ClassificationResult(
            is_game_over=is_game_over,
            score=None,
            confidence=1.0 if is_game_over else 0.0
        )

    def _color_matches(self, strip: np.ndarray, target: Tuple[int, int, int]) -> np.ndarray:
        distance = np.sqrt(((strip - np.array(target, dtype=np.int32)) ** 2).sum(axis=2))
        return distance < self.color_tolerance

    @staticmethod
    def _in_band(y_percent: np.ndarray, band: Tuple) -> np.ndarray:
        low, high = band
        mask = y_percent < high
        if low is not None:
            mask &= y_percent > low
        return mask
