"""Sequential seek -> capture loop that turns a time plan into frames."""

import asyncio
import logging
import math
from typing import Callable, Protocol

from frameslicer.errors import CaptureFailed, InvalidInterval, MediaSourceError, SeekTimeout
from frameslicer.models import CapturedFrame, ImageBuffer, Rect, TimeRange

logger = logging.getLogger(__name__)

DEFAULT_SEEK_TIMEOUT = 10.0

# absorbs float error in start + i * interval near the end of the range
_PLAN_EPSILON = 1e-9


class MediaSource(Protocol):
    """A decoder with one current frame, moved around by seeking."""

    async def seek(self, timestamp: float) -> None:
        """Return once the frame at ``timestamp`` is the current frame."""
        ...

    def frame_dimensions(self) -> tuple[int, int]:
        ...

    def capture_region(self, x: int, y: int, w: int, h: int) -> ImageBuffer:
        ...


def plan(time_range: TimeRange, interval: float) -> list[float]:
    """Timestamps ``start, start+interval, ...`` up to and including ``end``.

    The last timestamp may fall short of ``end``; it is never snapped to it.
    """
    if interval <= 0:
        raise InvalidInterval(interval)

    times: list[float] = []
    i = 0
    while True:
        t = time_range.start + i * interval
        if t > time_range.end + _PLAN_EPSILON:
            break
        times.append(t)
        i += 1
    return times


def estimate_frame_count(time_range: TimeRange, interval: float) -> int:
    if interval <= 0:
        raise InvalidInterval(interval)
    return math.floor(time_range.length / interval + _PLAN_EPSILON) + 1


class FrameSamplingPipeline:
    """Drives a :class:`MediaSource` through a plan, one timestamp at a time.

    Seek and capture of one timestamp never overlap with the next: the source
    has a single current frame. ``frames`` keeps whatever was captured, also
    after a failure or a cancellation.
    """

    def __init__(self, seek_timeout: float | None = DEFAULT_SEEK_TIMEOUT):
        self.seek_timeout = seek_timeout
        self.frames: list[CapturedFrame] = []
        self.cancelled = False
        self._cancel_requested = False
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def cancel(self) -> None:
        """Stop after the in-flight seek/capture completes."""
        self._cancel_requested = True

    async def run(
        self,
        timestamps: list[float],
        crop_rect: Rect,
        source: MediaSource,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> list[CapturedFrame]:
        if self._running:
            raise RuntimeError("A sampling run is already in progress")

        self._running = True
        self._cancel_requested = False
        self.cancelled = False
        self.frames = []
        total = len(timestamps)
        x, y, w, h = (int(v) for v in (crop_rect.x, crop_rect.y, crop_rect.w, crop_rect.h))
        logger.info("Sampling %d frames of region %dx%d+%d+%d", total, w, h, x, y)

        try:
            for t in timestamps:
                if self._cancel_requested:
                    self.cancelled = True
                    logger.info("Sampling cancelled after %d/%d frames", len(self.frames), total)
                    break

                pixels = await self._capture_at(source, t, x, y, w, h)
                frame = CapturedFrame(ordinal=len(self.frames) + 1, timestamp=t, pixels=pixels)
                self.frames.append(frame)

                if on_progress:
                    on_progress(len(self.frames), total)
        finally:
            self._running = False

        return list(self.frames)

    async def _capture_at(self, source: MediaSource, t: float, x: int, y: int, w: int, h: int) -> ImageBuffer:
        last = len(self.frames)
        try:
            if self.seek_timeout is None:
                await source.seek(t)
            else:
                await asyncio.wait_for(source.seek(t), timeout=self.seek_timeout)
        except asyncio.TimeoutError:
            logger.error("Seek to %.3fs timed out after %ss", t, self.seek_timeout)
            raise SeekTimeout(
                f"Seek to {t:.3f}s did not complete within {self.seek_timeout}s",
                last_ordinal=last,
                frames=self.frames,
                timestamp=t,
            ) from None
        except MediaSourceError as e:
            logger.error("Seek to %.3fs failed: %s", t, e)
            raise CaptureFailed(
                f"Seek to {t:.3f}s failed: {e}", last_ordinal=last, frames=self.frames, timestamp=t
            ) from e

        try:
            pixels = source.capture_region(x, y, w, h)
        except MediaSourceError as e:
            logger.error("Capture at %.3fs failed: %s", t, e)
            raise CaptureFailed(
                f"Capture at {t:.3f}s failed: {e}", last_ordinal=last, frames=self.frames, timestamp=t
            ) from e

        if (pixels.width, pixels.height) != (w, h):
            raise CaptureFailed(
                f"Capture at {t:.3f}s returned {pixels.width}x{pixels.height}, expected {w}x{h}",
                last_ordinal=last,
                frames=self.frames,
                timestamp=t,
            )
        return pixels
