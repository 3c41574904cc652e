"""
Recording Module

In-memory capture of the stream while a run is in progress.
"""

from .buffer import RecordingBuffer
from .encoder import MjpegEncoder

__all__ = [
    'RecordingBuffer',
    'MjpegEncoder'
]
