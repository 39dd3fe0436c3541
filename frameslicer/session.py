"""One loaded video and everything the user has selected on it."""

import logging
from typing import Callable

from frameslicer.crop import AspectPolicy, CropModel
from frameslicer.errors import CaptureFailed, InvalidInterval
from frameslicer.export import ExportPackager, archive_name
from frameslicer.geometry import CoordinateMapper
from frameslicer.interaction import CropInteractionController
from frameslicer.models import CapturedFrame, MediaDimensions, Rect, SamplingSnapshot
from frameslicer.sampling import (
    DEFAULT_SEEK_TIMEOUT,
    FrameSamplingPipeline,
    MediaSource,
    estimate_frame_count,
    plan,
)
from frameslicer.timerange import TimeRangeModel

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0

Progress = Callable[[int, int], None]


class Session:
    """Owns the crop, time range, interval and preview frames for one video.

    Models are only touched through this object; a sampling run works on a
    :class:`SamplingSnapshot` taken when it starts, so edits made while it is
    in flight only show up in the next run.
    """

    def __init__(
        self,
        media: MediaDimensions,
        container_size: tuple[float, float] | None = None,
        seek_timeout: float | None = DEFAULT_SEEK_TIMEOUT,
    ):
        self.media = media
        self.crop = CropModel(media)
        self.time_range = TimeRangeModel(media.duration)
        self.mapper = CoordinateMapper(media, *(container_size or (media.width, media.height)))
        self.controller = CropInteractionController(self.crop, self.mapper)
        self.interval = DEFAULT_INTERVAL
        self.pipeline = FrameSamplingPipeline(seek_timeout=seek_timeout)
        self.packager = ExportPackager()
        self.preview_frames: list[CapturedFrame] = []

    def load(self, media: MediaDimensions) -> None:
        """Switch to a new video: full-frame crop, whole duration, no preview."""
        self.media = media
        self.crop.reset(media)
        self.time_range.reset(media.duration)
        self.resize_container(self.mapper.container_width, self.mapper.container_height)
        self.controller.cancel()
        self.preview_frames = []

    def resize_container(self, width: float, height: float) -> CoordinateMapper:
        self.mapper = CoordinateMapper(self.media, width, height)
        self.controller.mapper = self.mapper
        return self.mapper

    def pointer(self, event) -> Rect:
        return self.controller.handle(event)

    def set_aspect(self, policy: AspectPolicy) -> Rect:
        return self.crop.apply_ratio(policy)

    def set_interval(self, interval: float) -> float:
        if interval <= 0:
            raise InvalidInterval(interval)
        self.interval = interval
        return interval

    def frame_count(self) -> int:
        return estimate_frame_count(self.time_range.snapshot(), self.interval)

    def snapshot(self) -> SamplingSnapshot:
        return SamplingSnapshot(
            rect=self.crop.rect,
            time_range=self.time_range.snapshot(),
            interval=self.interval,
        )

    async def preview(self, source: MediaSource, on_progress: Progress | None = None) -> list[CapturedFrame]:
        """Sample the current selection; partial frames are kept on failure."""
        snap = self.snapshot()
        timestamps = plan(snap.time_range, snap.interval)
        try:
            frames = await self.pipeline.run(timestamps, snap.rect, source, on_progress=on_progress)
        except CaptureFailed as e:
            self.preview_frames = e.frames
            raise
        self.preview_frames = frames
        return frames

    async def export(
        self,
        source: MediaSource,
        on_progress: Progress | None = None,
        now: float | None = None,
    ) -> tuple[str, bytes]:
        """Zip the preview frames, sampling them first if there are none."""
        if not self.preview_frames:
            await self.preview(source, on_progress=on_progress)
        data = await self.packager.package(self.preview_frames, on_progress=on_progress)
        return archive_name(now), data

    def as_dict(self) -> dict:
        start, end = self.time_range.fractions()
        return {
            "media": {
                "width": self.media.width,
                "height": self.media.height,
                "duration": self.media.duration,
            },
            "crop": self.crop.rect.as_dict(),
            "aspect": self.crop.policy.name,
            "time_range": {
                "start": self.time_range.start,
                "end": self.time_range.end,
                "start_fraction": start,
                "end_fraction": end,
            },
            "interval": self.interval,
            "frame_count": self.frame_count(),
            "preview_count": len(self.preview_frames),
            "cursor": self.controller.cursor,
        }
