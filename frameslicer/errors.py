"""Exception types raised by FrameSlicer."""


class FrameSlicerError(Exception):
    pass


class InvalidInterval(FrameSlicerError, ValueError):
    """Raised when a sampling interval is zero or negative."""

    def __init__(self, interval: float):
        super().__init__(f"Sampling interval must be positive, got {interval}")
        self.interval = interval


class MalformedTimeText(FrameSlicerError, ValueError):
    """Raised when a time string is not MM:SS or MM:SS.mmm."""

    def __init__(self, text: str):
        super().__init__(f"Cannot parse time {text!r}; expected MM:SS.mmm")
        self.text = text


class MediaSourceError(FrameSlicerError):
    """The media source could not seek or capture."""


class CaptureFailed(FrameSlicerError):
    """A sampling run stopped before finishing its plan.

    ``frames`` holds everything captured before the failure; ``last_ordinal``
    is the ordinal of the last good frame (0 when nothing was captured).
    """

    def __init__(self, message: str, last_ordinal: int, frames=None, timestamp: float | None = None):
        super().__init__(message)
        self.last_ordinal = last_ordinal
        self.frames = list(frames or [])
        self.timestamp = timestamp


class SeekTimeout(CaptureFailed):
    """The media source never reported that a seek landed."""
