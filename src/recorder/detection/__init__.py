"""
Detection Module

Decides whether a run has ended, in one of two interchangeable ways:
1. Local pixel-signature scan - free, fast, deterministic, cannot read the score
2. Remote vision model - reads the final score, rate limited

Also provides an offline scan of recorded videos with either classifier.

The remote classifier pulls in the OpenAI SDK, so it is not imported here.
Use build_classifier(DetectionMode.REMOTE) or import
detection.remote_classifier directly.
"""

from .base import FrameClassifier, build_classifier
from .local_classifier import LocalFrameClassifier
from .video_scan import extract_frames, scan_video_for_game_over

__all__ = [
    'FrameClassifier',
    'build_classifier',
    'LocalFrameClassifier',
    'extract_frames',
    'scan_video_for_game_over'
]
