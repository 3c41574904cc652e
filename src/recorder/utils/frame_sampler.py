"""
Frame Sampling Utility
Snapshots the current stream frame at the fixed classification resolution.
"""

import base64
import io
import logging
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from ..config import SAMPLE_HEIGHT, SAMPLE_WIDTH

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = (320, 180)


class FrameSampler:
    """Grab downscaled RGB snapshots from a video source on demand."""

    def __init__(self, source, width: int = SAMPLE_WIDTH, height: int = SAMPLE_HEIGHT):
        """
        Initialize frame sampler.

        Args:
            source: Object exposing latest_frame() -> BGR ndarray or None
            width: Sample width in pixels (default: 640)
            height: Sample height in pixels (default: 360)
        """
        self.source = source
        self.width = width
        self.height = height

    def sample(self) -> Optional[np.ndarray]:
        """
        Snapshot the latest frame.

        Returns:
            RGB frame of shape (height, width, 3), or None if the source has
            not produced a frame yet
        """
        frame = self.source.latest_frame()
        if frame is None:
            return None
        return downsample(frame, self.width, self.height)


def downsample(frame_bgr: np.ndarray, width: int = SAMPLE_WIDTH, height: int = SAMPLE_HEIGHT) -> np.ndarray:
    """Resize a BGR frame to the sample resolution and convert it to RGB."""
    if frame_bgr.shape[1] != width or frame_bgr.shape[0] != height:
        frame_bgr = cv2.resize(frame_bgr, (width, height), interpolation=cv2.INTER_AREA)
    return cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)


def encode_png_base64(frame_rgb: np.ndarray) -> str:
    """Encode an RGB frame as base64 PNG for API transmission."""
    ok, buffer = cv2.imencode('.png', cv2.cvtColor(frame_rgb, cv2.COLOR_RGB2BGR))
    if not ok:
        raise ValueError("Could not encode frame as PNG")
    return base64.b64encode(buffer.tobytes()).decode('utf-8')


def make_thumbnail(frame_rgb: np.ndarray, size: Tuple[int, int] = THUMBNAIL_SIZE) -> Optional[bytes]:
    """
    Render a PNG thumbnail of a frame.

    Args:
        frame_rgb: RGB frame
        size: Bounding box for the thumbnail (aspect ratio is preserved)

    Returns:
        PNG bytes, or None if the frame cannot be rendered
    """
    try:
        image = Image.fromarray(frame_rgb)
        image.thumbnail(size)
        output = io.BytesIO()
        image.save(output, format='PNG')
        return output.getvalue()
    except (TypeError, ValueError, OSError) as e:
        logger.warning(f"Could not create thumbnail: {e}")
        return None


def load_image_rgb(image_path: str, width: int = SAMPLE_WIDTH, height: int = SAMPLE_HEIGHT) -> np.ndarray:
    """
    Load a still image from disk at the sample resolution.

    Raises:
        FileNotFoundError: If the image cannot be read
    """
    frame = cv2.imread(image_path, cv2.IMREAD_COLOR)
    if frame is None:
        raise FileNotFoundError(f"Could not read image: {image_path}")
    return downsample(frame, width, height)
