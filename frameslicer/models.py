"""Shared data types used across FrameSlicer."""

from dataclasses import dataclass, field

MIN_SIZE = 20
"""Smallest crop width/height in video pixels."""

MIN_GAP = 0.1
"""Smallest allowed span between time range start and end, in seconds."""


@dataclass(frozen=True)
class MediaDimensions:
    """Native size and duration of the loaded video."""

    width: int
    height: int
    duration: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid media size {self.width}x{self.height}")
        if self.duration <= 0:
            raise ValueError(f"Invalid media duration {self.duration}")

    @property
    def ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """A crop region in video-space pixels.

    Only the sign of the size is checked here. Frame-relative bounds and the
    minimum size are owned by :class:`frameslicer.crop.CropModel`.
    """

    x: float
    y: float
    w: float
    h: float

    def __post_init__(self) -> None:
        if self.w < 0 or self.h < 0:
            raise ValueError(f"Rect size must be non-negative, got {self.w}x{self.h}")

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Point:
        return Point(self.x + self.w / 2, self.y + self.h / 2)

    def contains(self, p: Point) -> bool:
        return self.x <= p.x <= self.right and self.y <= p.y <= self.bottom

    def as_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass(frozen=True)
class TimeRange:
    """A start/end time pair in seconds."""

    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class PresentationGeometry:
    """Where the contain-fitted video sits inside its container."""

    display_w: float
    display_h: float
    offset_x: float
    offset_y: float


@dataclass(frozen=True)
class ImageBuffer:
    """Encoded pixels of one captured region."""

    width: int
    height: int
    data: bytes = field(repr=False)
    format: str = "png"


@dataclass(frozen=True)
class CapturedFrame:
    """One sampled still, numbered in capture order starting at 1."""

    ordinal: int
    timestamp: float
    pixels: ImageBuffer

    @property
    def label(self) -> str:
        from frameslicer.timerange import format_time

        return f"#{self.ordinal} ({format_time(self.timestamp)})"


@dataclass(frozen=True)
class SamplingSnapshot:
    """Crop, time range and interval frozen at the start of a sampling run."""

    rect: Rect
    time_range: TimeRange
    interval: float


@dataclass
class ProbeResult:
    """Metadata extracted from a media file via ffprobe."""

    duration: float
    width: int
    height: int
    fps: float
    codec_video: str

    @property
    def dimensions(self) -> MediaDimensions:
        return MediaDimensions(self.width, self.height, self.duration)
