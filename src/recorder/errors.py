"""Exception types shared across the recorder package."""


class CaptureError(Exception):
    """Raised when a video source cannot be attached (permission, missing device)."""


class ClassificationError(Exception):
    """A classifier could not produce a result for this tick."""


class RateLimitedError(ClassificationError):
    """The remote classifier rejected the call for quota/rate reasons."""


class RecordingError(Exception):
    """The recording buffer could not be flushed into a single media blob."""


class SessionActiveError(RuntimeError):
    """Operation is not allowed while a session is running."""
