"""Start/end time selection over the video duration."""

import logging
import re

from frameslicer.errors import MalformedTimeText
from frameslicer.models import MIN_GAP, TimeRange

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^(\d+):(\d+)(?:\.(\d+))?$")

START = "start"
END = "end"

# float noise allowed below a millisecond boundary, e.g. 0.7 * 3 * 1000
_MS_EPSILON = 1e-6


def _ms(seconds: float) -> int:
    return round(seconds * 1000)


def format_time(seconds: float) -> str:
    """Render seconds as ``MM:SS.mmm`` (minutes are not wrapped into hours).

    Milliseconds are truncated, not rounded: 0.9996s is ``00:00.999``.
    """
    total_ms = max(int(seconds * 1000 + _MS_EPSILON), 0)
    m, rem = divmod(total_ms, 60_000)
    s, ms = divmod(rem, 1000)
    return f"{m:02d}:{s:02d}.{ms:03d}"


def parse_time(text: str) -> float:
    """Parse ``MM:SS`` or ``MM:SS.mmm`` into seconds.

    Fraction digits beyond milliseconds are dropped; fewer than three are
    right-padded, so ``01:02.5`` is 62.5 seconds.
    """
    match = _TIME_RE.match(text.strip())
    if not match:
        raise MalformedTimeText(text)

    minutes = int(match.group(1))
    seconds = int(match.group(2))
    frac = match.group(3)
    ms = int(frac.ljust(3, "0")[:3]) if frac else 0
    return minutes * 60 + seconds + ms / 1000


class TimeRangeModel:
    """Two handles, ``start`` and ``end``, kept at least ``MIN_GAP`` apart.

    Handle positions are kept on whole milliseconds, the resolution of
    ``MM:SS.mmm``, and the gap is compared in integer milliseconds so that a
    range sitting exactly on the gap (0.9 to 1.0) is valid.
    """

    gap_ms = _ms(MIN_GAP)

    def __init__(self, duration: float):
        self.duration = duration
        self.start = 0.0
        self.end = duration

    def reset(self, duration: float | None = None) -> TimeRange:
        if duration is not None:
            self.duration = duration
        self.start = 0.0
        self.end = self.duration
        return self.snapshot()

    def snapshot(self) -> TimeRange:
        return TimeRange(self.start, self.end)

    def gap(self) -> int:
        """Current distance between the handles in milliseconds."""
        return _ms(self.end) - _ms(self.start)

    def set_start(self, t: float) -> float:
        self.start = max(min(_ms(t), _ms(self.end) - self.gap_ms), 0) / 1000
        return self.start

    def set_end(self, t: float) -> float:
        end_ms = max(_ms(t), _ms(self.start) + self.gap_ms)
        self.end = min(end_ms / 1000, self.duration)
        return self.end

    def set(self, which: str, t: float) -> float:
        if which == START:
            return self.set_start(t)
        if which == END:
            return self.set_end(t)
        raise ValueError(f"Unknown handle {which!r}; expected 'start' or 'end'")

    def set_from_fraction(self, fraction: float, which: str) -> float:
        """Place a handle at ``fraction`` of the track (clamped to [0, 1])."""
        fraction = max(0.0, min(1.0, fraction))
        return self.set(which, fraction * self.duration)

    def fractions(self) -> tuple[float, float]:
        return self.start / self.duration, self.end / self.duration

    def set_from_text(self, text: str, which: str) -> float | None:
        """Apply a typed time, or return None and leave the range unchanged.

        Unlike handle drags, typed values are never clamped: a value that
        would bring the handles closer than ``MIN_GAP`` is rejected.
        """
        if which not in (START, END):
            raise ValueError(f"Unknown handle {which!r}; expected 'start' or 'end'")
        try:
            t = parse_time(text)
        except MalformedTimeText as e:
            logger.debug("Ignoring time text: %s", e)
            return None

        if which == START:
            if _ms(self.end) - _ms(t) < self.gap_ms:
                return None
            self.start = t
        else:
            if _ms(t) - _ms(self.start) < self.gap_ms or t > self.duration:
                return None
            self.end = t
        return t
