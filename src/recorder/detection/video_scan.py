"""Offline End-of-Run Scan over Recorded Videos.

Runs a frame classifier over a recorded gameplay video at a fixed sampling
interval and reports every moment an end-of-run screen appears. Useful for
checking the local classifier against recordings before going live.

Typical usage example:

    from video_scan import scan_video_for_game_over
    from local_classifier import LocalFrameClassifier

    events = scan_video_for_game_over(
        video_path='session.mp4',
        classifier=LocalFrameClassifier(),
        interval_seconds=1.0
    )
"""

from typing import Dict, Generator, List, Optional, Tuple

import cv2
import numpy as np

from ..utils.frame_sampler import downsample
from .base import FrameClassifier


def extract_frames(video_path: str,
                   interval_seconds: float = 1.0,
                   max_frames: Optional[int] = None) -> Generator[Tuple[float, np.ndarray], None, None]:
    """Generator that yields frames from video at regular intervals.

    Args:
        video_path: Path to video file.
        interval_seconds: Time between frames in seconds.
        max_frames: Maximum frames to extract. None = all frames.

    Yields:
        Tuple of (timestamp, frame):
        - timestamp: Frame timestamp in seconds (float)
        - frame: Frame as numpy array in BGR format

    Raises:
        ValueError: If video cannot be opened.
    """
    cap = cv2.VideoCapture(video_path)

    if not cap.isOpened():
        raise ValueError(f"Could not open video: {video_path}")

    try:
        fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
        frame_interval = max(1, int(fps * interval_seconds))
        frame_count = 0
        frames_extracted = 0

        while True:
            ret, frame = cap.read()

            if not ret:
                break

            if frame_count % frame_interval == 0:
                yield frame_count / fps, frame

                frames_extracted += 1
                if max_frames and frames_extracted >= max_frames:
                    break

            frame_count += 1
    finally:
        cap.release()


def scan_video_for_game_over(video_path: str,
                             classifier: FrameClassifier,
                             interval_seconds: float = 1.0,
                             max_duration: Optional[float] = None,
                             verbose: bool = False) -> List[Dict]:
    """Scan video for the moments an end-of-run screen appears.

    Only the onset of each end screen is reported; consecutive end-screen
    frames belong to the same event.

    Args:
        video_path: Path to video file.
        classifier: Classifier applied to each sampled frame.
        interval_seconds: Frame sampling interval in seconds.
        max_duration: Maximum duration to scan in seconds. None = entire video.
        verbose: Print each detection.

    Returns:
        List of event dictionaries with 'timestamp', 'score', 'confidence'
        and 'end_screen_seconds' (how long the end screen stayed visible).
    """
    events = []
    current = None

    max_frames = None
    if max_duration:
        max_frames = int(max_duration / interval_seconds)

    for timestamp, frame in extract_frames(video_path, interval_seconds, max_frames):
        result = classifier.classify(downsample(frame))

        if result.is_game_over:
            if current is None:
                current = {
                    'timestamp': round(timestamp, 2),
                    'score': result.score,
                    'confidence': result.confidence,
                    'end_screen_seconds': 0.0
                }
                events.append(current)
                if verbose:
                    print(f"  ✓ End screen at {timestamp:.1f}s (score: {result.score if result.score is not None else 'N/A'})")
            else:
                current['end_screen_seconds'] = round(timestamp - current['timestamp'], 2)
        else:
            current = None

    return events
