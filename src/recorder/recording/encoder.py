"""
Motion-JPEG frame encoder.

Each frame becomes one baseline JPEG; concatenated frames form a raw MJPEG
stream that ffmpeg and most players open directly.
"""

import cv2
import numpy as np

from ..errors import RecordingError


class MjpegEncoder:
    """Encode BGR frames to JPEG bytes."""

    mime_type = 'video/x-motion-jpeg'
    extension = '.mjpeg'

    def __init__(self, quality: int = 80):
        if not 1 <= quality <= 100:
            raise ValueError(f"JPEG quality must be between 1 and 100, got {quality}")
        self.quality = quality

    def encode(self, frame: np.ndarray) -> bytes:
        """
        Encode a single BGR frame.

        Raises:
            RecordingError: If OpenCV cannot encode the frame
        """
        try:
            ok, buffer = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, self.quality])
        except cv2.error as e:
            raise RecordingError(f"JPEG encoding failed: {e}") from e
        if not ok:
            raise RecordingError("JPEG encoding failed")
        return buffer.tobytes()
