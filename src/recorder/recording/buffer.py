"""
Recording Buffer
Accumulates encoded stream frames in memory while a run is being recorded.
"""

import logging
import threading
import time
from typing import Callable, List, Optional

import numpy as np

from ..config import CHUNK_DURATION
from ..errors import RecordingError
from .encoder import MjpegEncoder

logger = logging.getLogger(__name__)


class RecordingBuffer:
    """
    Owns the capture-to-buffer lifecycle for one run at a time.

    Frames pushed while the buffer is open are encoded and grouped into
    chunks of chunk_duration seconds. Frames pushed while closed are ignored.
    Safe to use from the capture thread and the controller thread at once.
    """

    def __init__(self,
                 encoder: Optional[MjpegEncoder] = None,
                 chunk_duration: float = CHUNK_DURATION,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize recording buffer.

        Args:
            encoder: Frame encoder (default: MjpegEncoder)
            chunk_duration: Seconds of stream per chunk (default: 1.0)
            clock: Time source used when push_frame gets no timestamp
        """
        if chunk_duration <= 0:
            raise ValueError(f"chunk_duration must be positive, got {chunk_duration}")

        self.encoder = encoder or MjpegEncoder()
        self.chunk_duration = chunk_duration
        self.clock = clock

        self._lock = threading.Lock()
        self._open = False
        self._chunks: List[bytes] = []
        self._current = bytearray()
        self._chunk_started: Optional[float] = None
        self._frame_count = 0

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def chunk_count(self) -> int:
        """Number of sealed chunks plus the chunk in progress, if any."""
        with self._lock:
            return len(self._chunks) + (1 if self._current else 0)

    def open(self) -> bool:
        """
        Begin accumulating frames.

        Returns:
            True if the buffer was opened, False if it was already open
        """
        with self._lock:
            if self._open:
                return False
            self._reset()
            self._open = True
        logger.info("Recording started")
        return True

    def push_frame(self, frame: np.ndarray, timestamp: Optional[float] = None) -> None:
        """Encode and append a frame if the buffer is open."""
        if not self._open:
            return

        if timestamp is None:
            timestamp = self.clock()

        try:
            data = self.encoder.encode(frame)
        except RecordingError as e:
            logger.warning(f"Dropping frame: {e}")
            return

        with self._lock:
            # Closed while encoding
            if not self._open:
                return
            if self._chunk_started is None:
                self._chunk_started = timestamp
            elif timestamp - self._chunk_started >= self.chunk_duration:
                self._chunks.append(bytes(self._current))
                self._current = bytearray()
                self._chunk_started = timestamp
            self._current.extend(data)
            self._frame_count += 1

    def close(self) -> bytes:
        """
        Stop accumulating and return everything recorded.

        Returns:
            Concatenated chunks, or b"" if the buffer was never opened
        """
        with self._lock:
            if not self._open:
                return b""
            chunks = self._chunks
            if self._current:
                chunks.append(bytes(self._current))
            frames = self._frame_count
            self._open = False
            self._reset()

        data = b"".join(chunks)
        logger.info(f"Recording stopped ({frames} frames, {len(chunks)} chunks, {len(data)} bytes)")
        return data

    def abort(self) -> None:
        """Stop accumulating and discard everything recorded."""
        with self._lock:
            was_open = self._open
            self._open = False
            self._reset()
        if was_open:
            logger.info("Recording aborted")

    def _reset(self):
        self._chunks = []
        self._current = bytearray()
        self._chunk_started = None
        self._frame_count = 0
