"""
Session Module

Provides the live recording session:
1. SessionController - state machine driving sampling, classification and retention
2. TickScheduler - single-flight timer for non-overlapping ticks
3. SessionHistory - newest-first sink for completed attempts
"""

from .controller import SessionController, classify_retention
from .history import SessionHistory
from .scheduler import TickScheduler

__all__ = [
    'SessionController',
    'classify_retention',
    'SessionHistory',
    'TickScheduler'
]
