"""
Live Video Source
Attaches to a capture device, video file or stream URL and keeps the latest
frame available for sampling.
"""

import logging
import threading
import time
from typing import Callable, List, Optional, Union

import cv2
import numpy as np

from ..errors import CaptureError

logger = logging.getLogger(__name__)

FrameListener = Callable[[np.ndarray, float], None]
EndedListener = Callable[[], None]


class VideoSource:
    """Read frames from an OpenCV capture on a background thread.

    Frames are kept in BGR order as delivered by OpenCV. Every frame is passed
    to the registered frame listeners together with its capture timestamp, and
    the ended listeners are notified once when the stream runs out.
    """

    def __init__(self, source: Union[int, str], realtime: bool = True):
        """
        Initialize video source.

        Args:
            source: Capture device index, path to a video file or stream URL
            realtime: Pace file playback to the file's frame rate (default: True)
        """
        self.source = source
        self.realtime = realtime

        self.video = None
        self.fps = 0.0
        self.width = 0
        self.height = 0

        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None
        self._frame_listeners: List[FrameListener] = []
        self._ended_listeners: List[EndedListener] = []
        self._stop_event = threading.Event()
        self._ended = False
        self._thread: Optional[threading.Thread] = None

    @property
    def is_active(self) -> bool:
        return self._thread is not None and not self._ended and not self._stop_event.is_set()

    def open(self) -> None:
        """
        Open the capture and start the reader thread.

        Raises:
            CaptureError: If the source cannot be opened
        """
        if self._thread is not None:
            return

        self.video = cv2.VideoCapture(self.source)
        if not self.video.isOpened():
            self.video.release()
            self.video = None
            raise CaptureError(f"Could not open video source: {self.source}")

        # Set buffer size to 1 so reads stay close to live
        self.video.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self.fps = self.video.get(cv2.CAP_PROP_FPS) or 0.0
        self.width = int(self.video.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.video.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(f"Opened video source {self.source} ({self.width}x{self.height} @ {self.fps:.1f} fps)")

        self._stop_event.clear()
        self._ended = False
        self._thread = threading.Thread(target=self._read_loop, name='video-source', daemon=True)
        self._thread.start()

    def get_info(self) -> dict:
        """Get source information"""
        return {
            'source': self.source,
            'fps': self.fps,
            'width': self.width,
            'height': self.height,
            'active': self.is_active
        }

    def latest_frame(self) -> Optional[np.ndarray]:
        """Copy of the most recent frame (BGR), or None if nothing was read yet."""
        with self._lock:
            if self._latest is None:
                return None
            return self._latest.copy()

    def add_frame_listener(self, listener: FrameListener) -> None:
        with self._lock:
            self._frame_listeners.append(listener)

    def remove_frame_listener(self, listener: FrameListener) -> None:
        with self._lock:
            if listener in self._frame_listeners:
                self._frame_listeners.remove(listener)

    def add_ended_listener(self, listener: EndedListener) -> None:
        with self._lock:
            self._ended_listeners.append(listener)

    def remove_ended_listener(self, listener: EndedListener) -> None:
        with self._lock:
            if listener in self._ended_listeners:
                self._ended_listeners.remove(listener)

    def _read_loop(self):
        frame_period = 1.0 / self.fps if self.realtime and self.fps > 0 else 0.0

        while not self._stop_event.is_set():
            started = time.monotonic()
            success, frame = self.video.read()
            if not success:
                break

            timestamp = time.monotonic()
            with self._lock:
                self._latest = frame
                listeners = list(self._frame_listeners)

            for listener in listeners:
                try:
                    listener(frame, timestamp)
                except Exception as e:
                    logger.warning(f"Frame listener failed: {e}")

            if frame_period:
                remaining = frame_period - (time.monotonic() - started)
                if remaining > 0:
                    self._stop_event.wait(remaining)

        if self._stop_event.is_set():
            return

        self._ended = True
        logger.info(f"Video source ended: {self.source}")
        with self._lock:
            listeners = list(self._ended_listeners)
        for listener in listeners:
            listener()

    def close(self):
        """Stop the reader thread and release the capture."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._thread = None
        if self.video is not None:
            self.video.release()
            self.video = None
        with self._lock:
            self._latest = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def parse_source(value: str) -> Union[int, str]:
    """Interpret a CLI source argument: digits select a capture device."""
    return int(value) if value.isdigit() else value
