"""Session Controller for Live Run Recording.

This module provides the state machine that watches a live gameplay stream,
records each run and decides which recordings to keep. On every tick it
samples the current frame, asks the active classifier whether the run has
ended, applies the resulting state transition and schedules the next tick.

States:
- IDLE: no stream attached, no ticks scheduled
- MONITORING: stream attached, waiting for the first classification
- RECORDING: a run is in progress and being recorded
- ANALYZING: the run just ended, recording is being flushed
- WAITING_FOR_START: the end screen is visible, waiting for a new run

Ticks never overlap: the next tick is scheduled only once the current tick's
result has been fully applied. Stopping a session bumps an epoch counter so
that a classification already in flight is discarded when it returns.

Typical usage example:

    from src.recorder.session import SessionController, SessionHistory
    from src.recorder.utils import VideoSource

    history = SessionHistory()
    controller = SessionController(mode=DetectionMode.LOCAL, history=history)
    if controller.start(VideoSource(0)):
        controller.wait_until_idle()
"""

import functools
import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, Optional

import numpy as np

from ..config import RETENTION_THRESHOLD, TimingConfig, get_timing_config
from ..detection.base import FrameClassifier, build_classifier
from ..errors import CaptureError, ClassificationError, RateLimitedError, RecordingError, SessionActiveError
from ..models import AttemptRecord, AttemptStatus, ClassificationResult, DetectionMode, SessionState
from ..recording.buffer import RecordingBuffer
from ..utils.frame_sampler import FrameSampler, make_thumbnail
from .history import SessionHistory
from .scheduler import TickScheduler

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState, SessionState], None]


def classify_retention(score: Optional[int], threshold: int = RETENTION_THRESHOLD) -> AttemptStatus:
    """Decide what happens to a finished run's recording.

    Args:
        score: Final score, or None if it could not be read.
        threshold: Lowest score that is kept.

    Returns:
        MANUAL_REVIEW for an unknown score, SAVED for score >= threshold,
        DISCARDED otherwise.
    """
    if score is None:
        return AttemptStatus.MANUAL_REVIEW
    if score >= threshold:
        return AttemptStatus.SAVED
    return AttemptStatus.DISCARDED


class SessionController:
    """Drive sampling, classification, recording and retention for one stream.

    Attributes:
        history: Sink receiving one AttemptRecord per completed run.
        recording: Recording buffer for the active run.
        retention_threshold: Lowest known score that is kept.
        error: Message of the last acquisition failure, if any.
    """

    def __init__(self,
                 mode: DetectionMode = DetectionMode.REMOTE,
                 classifier: Optional[FrameClassifier] = None,
                 history=None,
                 recording: Optional[RecordingBuffer] = None,
                 scheduler: Optional[TickScheduler] = None,
                 timing: Optional[TimingConfig] = None,
                 is_visible: Optional[Callable[[], bool]] = None,
                 on_state_change: Optional[StateListener] = None,
                 retention_threshold: int = RETENTION_THRESHOLD,
                 sampler_factory: Callable = FrameSampler):
        """Initialize session controller.

        Args:
            mode: Detection mode used by sessions of this controller.
            classifier: Classifier to use (default: built from mode on start).
            history: Object with append(record) (default: SessionHistory).
            recording: Recording buffer (default: RecordingBuffer).
            scheduler: Tick scheduler (default: TickScheduler).
            timing: Tick delays (default: get_timing_config()).
            is_visible: Returns False while the host is in the background.
            on_state_change: Called with (old_state, new_state) on each transition.
            retention_threshold: Lowest known score that is kept (default: 45).
            sampler_factory: Builds a frame sampler for a video source.

        Raises:
            ValueError: If classifier.mode does not match mode.
        """
        if classifier is not None and classifier.mode is not mode:
            raise ValueError(f"Classifier mode {classifier.mode.value} does not match {mode.value}")

        self.history = history if history is not None else SessionHistory()
        self.recording = recording or RecordingBuffer()
        self.retention_threshold = retention_threshold
        self.error: Optional[str] = None

        self._mode = mode
        self._classifier = classifier
        self._scheduler = scheduler or TickScheduler()
        self._timing = timing or get_timing_config()
        self._is_visible = is_visible or (lambda: True)
        self._on_state_change = on_state_change
        self._sampler_factory = sampler_factory

        self._lock = threading.RLock()
        self._idle = threading.Event()
        self._idle.set()
        self._state = SessionState.IDLE
        self._epoch = 0
        self._source = None
        self._sampler = None
        self._ended_listener = None
        self._frame_listener = self.recording.push_frame
        self._rate_limited = False
        self._last_result: Optional[ClassificationResult] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def mode(self) -> DetectionMode:
        return self._mode

    @property
    def is_active(self) -> bool:
        return self._state is not SessionState.IDLE

    @property
    def is_rate_limited(self) -> bool:
        return self._rate_limited

    @property
    def last_result(self) -> Optional[ClassificationResult]:
        return self._last_result

    def set_mode(self, mode: DetectionMode, classifier: Optional[FrameClassifier] = None) -> None:
        """Switch detection mode between sessions.

        Raises:
            SessionActiveError: If a session is running.
            ValueError: If classifier.mode does not match mode.
        """
        with self._lock:
            if self.is_active:
                raise SessionActiveError("Detection mode cannot change while a session is active")
            if classifier is not None and classifier.mode is not mode:
                raise ValueError(f"Classifier mode {classifier.mode.value} does not match {mode.value}")
            if mode is not self._mode or classifier is not None:
                self._classifier = classifier
            self._mode = mode

    def get_status(self) -> Dict:
        """Snapshot of what a status overlay shows."""
        with self._lock:
            return {
                'state': self._state.value,
                'mode': self._mode.value,
                'rate_limited': self._rate_limited,
                'recording': self.recording.is_open,
                'last_result': self._last_result.to_dict() if self._last_result else None,
                'error': self.error
            }

    def start(self, source) -> bool:
        """Attach a video source and start the tick loop.

        Args:
            source: Video source exposing open(), close(), latest_frame() and
                frame/ended listener registration (see VideoSource).

        Returns:
            True if the session started, False if the source could not be
            attached (the reason is stored in self.error).

        Raises:
            SessionActiveError: If a session is already running.
        """
        with self._lock:
            if self.is_active:
                raise SessionActiveError("A session is already active")

            self.error = None
            if self._classifier is None:
                self._classifier = build_classifier(self._mode)

            try:
                source.open()
            except CaptureError as e:
                self.error = str(e)
                logger.error(f"Could not start session: {e}")
                return False

            self._epoch += 1
            self._source = source
            self._sampler = self._sampler_factory(source)
            self._ended_listener = functools.partial(self._on_source_ended, self._epoch)
            source.add_ended_listener(self._ended_listener)
            source.add_frame_listener(self._frame_listener)

            self._rate_limited = False
            self._last_result = None
            self._idle.clear()
            self._set_state(SessionState.MONITORING)
            self._schedule(self._timing.initial_delay_ms)

        logger.info(f"Session started ({self._mode.value} mode)")
        return True

    def stop(self) -> None:
        """Return to IDLE: cancel the pending tick and discard any open recording."""
        with self._lock:
            if not self.is_active and self._source is None:
                return

            self._epoch += 1
            self._scheduler.cancel()
            self.recording.abort()

            source, ended_listener = self._source, self._ended_listener
            self._source = None
            self._sampler = None
            self._ended_listener = None
            self._rate_limited = False
            self._last_result = None
            self._set_state(SessionState.IDLE)
            self._idle.set()

        # Closed outside the lock so the capture thread can finish its own callbacks
        if source is not None:
            source.remove_ended_listener(ended_listener)
            source.remove_frame_listener(self._frame_listener)
            source.close()
        logger.info("Session stopped")

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the session stops. Returns False on timeout."""
        return self._idle.wait(timeout)

    def tick(self, epoch: Optional[int] = None) -> None:
        """Run one sample -> classify -> transition cycle.

        Args:
            epoch: Session epoch the tick was scheduled for. Ticks from a
                stopped session do nothing. Defaults to the current epoch.
        """
        with self._lock:
            if epoch is None:
                epoch = self._epoch
            if not self._is_current(epoch):
                return
            if self._state is SessionState.ANALYZING:
                logger.debug("Tick skipped while analyzing")
                return

            interval = self._timing.interval_for(self._mode)
            if not self._is_visible():
                self._schedule(interval * self._timing.background_multiplier)
                return

            sampler = self._sampler
            classifier = self._classifier

        try:
            frame = sampler.sample()
        except Exception:
            logger.exception("Could not sample frame")
            self._reschedule(epoch, interval)
            return
        if frame is None:
            logger.debug("No frame available yet")
            self._reschedule(epoch, interval)
            return

        try:
            result = classifier.classify(frame)
        except RateLimitedError as e:
            with self._lock:
                if not self._is_current(epoch):
                    return
                if self._mode is DetectionMode.REMOTE:
                    backoff = self._timing.rate_limit_backoff_ms
                    logger.warning(f"Rate limited, retrying in {backoff} ms: {e}")
                    self._rate_limited = True
                    self._schedule(backoff)
                else:
                    logger.warning(f"Analysis error: {e}")
                    self._schedule(interval)
            return
        except ClassificationError as e:
            logger.warning(f"Analysis error: {e}")
            self._reschedule(epoch, interval)
            return
        except Exception:
            logger.exception("Unexpected classifier failure")
            self._reschedule(epoch, interval)
            return

        with self._lock:
            if not self._is_current(epoch):
                logger.debug("Discarding result from a stopped session")
                return

            self._rate_limited = False
            self._last_result = result
            self._apply(result, frame)

            if self._is_current(epoch):
                self._schedule(interval)

    def _apply(self, result: ClassificationResult, frame: np.ndarray) -> None:
        state = self._state

        if state is SessionState.MONITORING:
            if result.is_game_over:
                self._set_state(SessionState.WAITING_FOR_START)
            else:
                self._begin_recording()

        elif state is SessionState.RECORDING:
            if result.is_game_over:
                self._finalize_attempt(result.score, frame)

        elif state is SessionState.WAITING_FOR_START:
            if not result.is_game_over:
                self._begin_recording()

    def _begin_recording(self) -> None:
        self.recording.open()
        self._set_state(SessionState.RECORDING)

    def _finalize_attempt(self, score: Optional[int], frame: np.ndarray) -> None:
        self._set_state(SessionState.ANALYZING)
        logger.info(f"Game over detected. Score: {score}")

        status = classify_retention(score, self.retention_threshold)
        try:
            media = self.recording.close()
        except RecordingError as e:
            logger.error(f"Could not flush recording: {e}")
            self.recording.abort()
            status = AttemptStatus.ERROR
            media = None

        record = AttemptRecord(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(),
            score=score,
            status=status,
            media=media if status.keeps_media else None,
            thumbnail=make_thumbnail(frame)
        )

        try:
            self.history.append(record)
        except Exception:
            logger.exception(f"History sink rejected attempt {record.id}")

        # The sink may have stopped the session
        if self._state is SessionState.ANALYZING:
            self._set_state(SessionState.WAITING_FOR_START)

    def _on_source_ended(self, epoch: int) -> None:
        with self._lock:
            if epoch != self._epoch:
                return
        logger.info("Video source ended")
        self.stop()

    def _is_current(self, epoch: int) -> bool:
        return epoch == self._epoch and self._state is not SessionState.IDLE

    def _reschedule(self, epoch: int, delay_ms: int) -> None:
        with self._lock:
            if self._is_current(epoch):
                self._schedule(delay_ms)

    def _schedule(self, delay_ms: int) -> None:
        self._scheduler.schedule(delay_ms, functools.partial(self.tick, self._epoch))

    def _set_state(self, new_state: SessionState) -> None:
        old_state = self._state
        if new_state is old_state:
            return
        self._state = new_state
        logger.info(f"State: {old_state.value} -> {new_state.value}")
        if self._on_state_change:
            try:
                self._on_state_change(old_state, new_state)
            except Exception:
                logger.exception("State change listener failed")
