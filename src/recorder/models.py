"""
Data model for the run recorder.

Classification results, session states and attempt records exchanged between
the classifiers, the session controller and the history sink.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class DetectionMode(str, Enum):
    """Which classifier drives a session. Fixed for the lifetime of a session."""
    REMOTE = 'remote'
    LOCAL = 'local'


class SessionState(str, Enum):
    IDLE = 'idle'
    MONITORING = 'monitoring'
    RECORDING = 'recording'
    ANALYZING = 'analyzing'
    WAITING_FOR_START = 'waiting_for_start'


class AttemptStatus(str, Enum):
    SAVED = 'saved'
    DISCARDED = 'discarded'
    MANUAL_REVIEW = 'manual_review'
    ERROR = 'error'

    @property
    def keeps_media(self) -> bool:
        """True if attempts with this status carry their recording."""
        return self in (AttemptStatus.SAVED, AttemptStatus.MANUAL_REVIEW)


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying a single sampled frame.

    Attributes:
        is_game_over: True if the frame shows the end-of-run screen.
        score: Final score if the classifier could read it, else None.
        confidence: Detection confidence between 0.0 and 1.0.
    """
    is_game_over: bool
    score: Optional[int] = None
    confidence: float = 0.0

    def __post_init__(self):
        if self.score is not None and self.score < 0:
            raise ValueError(f"score must be non-negative, got {self.score}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @classmethod
    def negative(cls) -> 'ClassificationResult':
        """Result used when nothing could be determined from the frame."""
        return cls(is_game_over=False, score=None, confidence=0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_game_over': self.is_game_over,
            'score': self.score,
            'confidence': self.confidence
        }


@dataclass(frozen=True)
class AttemptRecord:
    """One completed run, emitted exactly once by the session controller.

    Attributes:
        id: Unique token for the attempt.
        timestamp: When the end of the run was detected.
        score: Final score, or None when it could not be read.
        status: Retention decision for the attempt.
        media: Recorded stream bytes (only for retained attempts).
        thumbnail: PNG still of the end screen.
    """
    id: str
    timestamp: datetime
    score: Optional[int]
    status: AttemptStatus
    media: Optional[bytes] = field(default=None, repr=False)
    thumbnail: Optional[bytes] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe summary. Binary payloads are reported by size only."""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'score': self.score,
            'status': self.status.value,
            'media_bytes': len(self.media) if self.media is not None else None,
            'thumbnail_bytes': len(self.thumbnail) if self.thumbnail is not None else None
        }
