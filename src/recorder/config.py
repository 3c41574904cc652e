"""
Centralized Recorder Configuration
Single source of truth for timing, sampling and retention constants.

Timing values can be overridden from the .env file, for example:
    REMOTE_TICK_INTERVAL_MS=4000
    LOCAL_TICK_INTERVAL_MS=1000
    RATE_LIMIT_BACKOFF_MS=10000
    BACKGROUND_MULTIPLIER=2
    INITIAL_TICK_DELAY_MS=1000
    REMOTE_MODEL=gpt-4o
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .models import DetectionMode

load_dotenv()

# Score strictly below this is discarded when known
RETENTION_THRESHOLD = 45

# Fixed resolution frames are downsampled to before classification
SAMPLE_WIDTH = 640
SAMPLE_HEIGHT = 360

# Recording chunk length in seconds
CHUNK_DURATION = 1.0

DEFAULT_REMOTE_MODEL = 'gpt-4o'


@dataclass(frozen=True)
class TimingConfig:
    """Tick delays in milliseconds."""
    remote_interval_ms: int = 4000
    local_interval_ms: int = 1000
    rate_limit_backoff_ms: int = 10000
    background_multiplier: int = 2
    initial_delay_ms: int = 1000

    def interval_for(self, mode: DetectionMode) -> int:
        """Base tick delay for a detection mode."""
        if mode is DetectionMode.LOCAL:
            return self.local_interval_ms
        return self.remote_interval_ms


def _read_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def get_timing_config() -> TimingConfig:
    """
    Build the timing configuration from environment overrides.

    Returns:
        TimingConfig with defaults for any variable that is not set

    Raises:
        ValueError: If a variable is set to a non-positive or non-integer value
    """
    defaults = TimingConfig()
    return TimingConfig(
        remote_interval_ms=_read_positive_int('REMOTE_TICK_INTERVAL_MS', defaults.remote_interval_ms),
        local_interval_ms=_read_positive_int('LOCAL_TICK_INTERVAL_MS', defaults.local_interval_ms),
        rate_limit_backoff_ms=_read_positive_int('RATE_LIMIT_BACKOFF_MS', defaults.rate_limit_backoff_ms),
        background_multiplier=_read_positive_int('BACKGROUND_MULTIPLIER', defaults.background_multiplier),
        initial_delay_ms=_read_positive_int('INITIAL_TICK_DELAY_MS', defaults.initial_delay_ms)
    )


def get_remote_model() -> str:
    """Model identifier used by the remote classifier."""
    return os.getenv('REMOTE_MODEL') or DEFAULT_REMOTE_MODEL
