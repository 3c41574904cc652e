"""Run Recorder Toolkit.

This package watches a live gameplay stream, decides when a run has ended,
reads (or estimates) the final score and keeps only the recordings of runs
that qualify.

Modules:
    detection: Local pixel-signature and remote vision classifiers
    recording: In-memory recording buffer and MJPEG frame encoder
    session: Session controller state machine, tick scheduler, history
    utils: Video source capture and frame sampling

Example:
    >>> from src.recorder.session import SessionController, SessionHistory
    >>> from src.recorder.models import DetectionMode
    >>> from src.recorder.utils import VideoSource
    >>>
    >>> history = SessionHistory()
    >>> controller = SessionController(mode=DetectionMode.LOCAL, history=history)
    >>> controller.start(VideoSource(0))
"""

__version__ = "1.0.0"
__author__ = "Run Recorder Toolkit"
__all__ = ['detection', 'recording', 'session', 'utils', 'models', 'errors', 'config']
