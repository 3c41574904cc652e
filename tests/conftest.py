"""
Pytest configuration and shared fixtures.

This module provides fixtures used across multiple test files.
"""

import sys
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.recorder.errors import CaptureError  # noqa: E402
from src.recorder.models import ClassificationResult, DetectionMode  # noqa: E402
from src.recorder.recording.buffer import RecordingBuffer  # noqa: E402

WIDTH = 640
HEIGHT = 360

BACKGROUND = (30, 30, 30)
RIBBON_BLUE = (66, 133, 244)
BUTTON_GREEN = (52, 168, 83)
URL_WHITE = (255, 255, 255)

# Row ranges at 640x360 for each end-screen element
RIBBON_ROWS = (54, 108)
BUTTON_ROWS = (150, 210)
URL_BOX_ROWS = (230, 280)


def build_end_screen(ribbon: bool = True,
                     button: bool = True,
                     url_box: bool = True,
                     ribbon_rows=RIBBON_ROWS,
                     ribbon_columns=(0, WIDTH),
                     ribbon_color=RIBBON_BLUE) -> np.ndarray:
    """Synthetic RGB end-of-run screen at the sample resolution."""
    frame = np.full((HEIGHT, WIDTH, 3), BACKGROUND, dtype=np.uint8)
    if ribbon:
        frame[ribbon_rows[0]:ribbon_rows[1], ribbon_columns[0]:ribbon_columns[1]] = ribbon_color
    if button:
        frame[BUTTON_ROWS[0]:BUTTON_ROWS[1], 200:440] = BUTTON_GREEN
    if url_box:
        frame[URL_BOX_ROWS[0]:URL_BOX_ROWS[1], 120:520] = URL_WHITE
    return frame


def build_gameplay_frame(seed: int = 0) -> np.ndarray:
    """Synthetic RGB gameplay frame: orange court with noise, no end-screen cues."""
    rng = np.random.default_rng(seed)
    frame = np.full((HEIGHT, WIDTH, 3), (205, 120, 60), dtype=np.int16)
    frame += rng.integers(-20, 20, size=frame.shape, dtype=np.int16)
    return np.clip(frame, 0, 255).astype(np.uint8)


def to_bgr(frame_rgb: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(frame_rgb[..., ::-1])


@pytest.fixture
def temp_output_dir(tmp_path) -> Path:
    """Return a temporary output directory for tests."""
    output_dir = tmp_path / "test_output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


@pytest.fixture
def end_screen_frame() -> np.ndarray:
    """RGB frame showing ribbon, replay button and URL box."""
    return build_end_screen()


@pytest.fixture
def gameplay_frame() -> np.ndarray:
    """RGB frame of ordinary gameplay."""
    return build_gameplay_frame()


class FakeScheduler:
    """Scheduler double that records delays and fires ticks on demand."""

    def __init__(self):
        self.delays: List[int] = []
        self.callback: Optional[Callable[[], None]] = None
        self.last_delay_ms: Optional[int] = None
        self.cancel_count = 0

    @property
    def pending(self) -> bool:
        return self.callback is not None

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self.delays.append(delay_ms)
        self.last_delay_ms = delay_ms
        self.callback = callback

    def cancel(self) -> None:
        self.cancel_count += 1
        self.callback = None

    def fire(self) -> None:
        callback, self.callback = self.callback, None
        assert callback is not None, "no tick pending"
        callback()


class FakeSource:
    """Video source double holding a single current frame (BGR)."""

    def __init__(self, frame_rgb: Optional[np.ndarray] = None, fail_open: bool = False):
        self.frame = to_bgr(frame_rgb) if frame_rgb is not None else None
        self.fail_open = fail_open
        self.opened = False
        self.closed = False
        self.frame_listeners = []
        self.ended_listeners = []

    def open(self):
        if self.fail_open:
            raise CaptureError("Permission denied. You must allow screen sharing.")
        self.opened = True

    def close(self):
        self.closed = True

    def latest_frame(self):
        return None if self.frame is None else self.frame.copy()

    def show(self, frame_rgb: np.ndarray, timestamp: float = 0.0):
        """Make frame_rgb the live frame and deliver it to frame listeners."""
        self.frame = to_bgr(frame_rgb)
        for listener in list(self.frame_listeners):
            listener(self.frame, timestamp)

    def end(self):
        for listener in list(self.ended_listeners):
            listener()

    def add_frame_listener(self, listener):
        self.frame_listeners.append(listener)

    def remove_frame_listener(self, listener):
        if listener in self.frame_listeners:
            self.frame_listeners.remove(listener)

    def add_ended_listener(self, listener):
        self.ended_listeners.append(listener)

    def remove_ended_listener(self, listener):
        if listener in self.ended_listeners:
            self.ended_listeners.remove(listener)


class ScriptedClassifier:
    """Classifier double returning a scripted sequence of outcomes.

    Each entry is a ClassificationResult to return, an exception to raise, or
    a callable invoked before returning a negative result.
    """

    def __init__(self, outcomes=None, mode: DetectionMode = DetectionMode.REMOTE):
        self.outcomes = list(outcomes or [])
        self.mode = mode
        self.calls = 0

    def classify(self, frame):
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else ClassificationResult.negative()
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            return outcome()
        return outcome


class CountingRecording(RecordingBuffer):
    """RecordingBuffer that counts lifecycle calls."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.opens = 0
        self.closes = 0
        self.aborts = 0

    def open(self) -> bool:
        opened = super().open()
        if opened:
            self.opens += 1
        return opened

    def close(self) -> bytes:
        if self.is_open:
            self.closes += 1
        return super().close()

    def abort(self) -> None:
        if self.is_open:
            self.aborts += 1
        super().abort()


def game_over(score: Optional[int] = None, confidence: float = 1.0) -> ClassificationResult:
    return ClassificationResult(is_game_over=True, score=score, confidence=confidence)


def playing(confidence: float = 0.9) -> ClassificationResult:
    return ClassificationResult(is_game_over=False, score=None, confidence=confidence)


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def fake_source(gameplay_frame) -> FakeSource:
    return FakeSource(gameplay_frame)


@pytest.fixture
def recording() -> CountingRecording:
    return CountingRecording()


@pytest.fixture
def mock_openai_api_key(monkeypatch):
    """Mock OpenAI API key for tests that don't actually call the API."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key-1234567890")


# Markers for conditional test skipping
def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast tests of a single module"
    )
    config.addinivalue_line(
        "markers", "integration: tests spanning several modules or real video files"
    )
    config.addinivalue_line(
        "markers", "requires_api_key: mark test as requiring OpenAI API key"
    )
