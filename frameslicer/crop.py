"""Crop rectangle state and its move/resize/ratio operations."""

import enum
from dataclasses import dataclass

from frameslicer.models import MIN_SIZE, MediaDimensions, Point, Rect

FREE = "free"
ORIGINAL = "original"
FIXED = "fixed"

RATIO_PRESETS = {
    "16:9": 16 / 9,
    "4:3": 4 / 3,
    "1:1": 1.0,
    "9:16": 9 / 16,
}


@dataclass(frozen=True)
class AspectPolicy:
    """Whether, and to which w/h ratio, the crop is locked."""

    kind: str = FREE
    ratio: float | None = None
    name: str = FREE

    @classmethod
    def free(cls) -> "AspectPolicy":
        return cls(FREE, None, FREE)

    @classmethod
    def original(cls) -> "AspectPolicy":
        return cls(ORIGINAL, None, ORIGINAL)

    @classmethod
    def fixed(cls, ratio: float, name: str | None = None) -> "AspectPolicy":
        if ratio <= 0:
            raise ValueError(f"Aspect ratio must be positive, got {ratio}")
        return cls(FIXED, ratio, name or f"{ratio:g}")

    @classmethod
    def parse(cls, value: str) -> "AspectPolicy":
        """Build a policy from ``free``, ``original``, a preset or ``W:H``."""
        value = value.strip().lower()
        if value == FREE:
            return cls.free()
        if value == ORIGINAL:
            return cls.original()
        if value in RATIO_PRESETS:
            return cls.fixed(RATIO_PRESETS[value], value)

        parts = value.split(":")
        if len(parts) != 2:
            raise ValueError(f"Unknown aspect ratio {value!r}")
        try:
            rw, rh = float(parts[0]), float(parts[1])
        except ValueError:
            raise ValueError(f"Unknown aspect ratio {value!r}") from None
        if rw <= 0 or rh <= 0:
            raise ValueError(f"Aspect ratio parts must be positive, got {value!r}")
        return cls.fixed(rw / rh, f"{parts[0]}:{parts[1]}")

    @property
    def locked(self) -> bool:
        return self.kind != FREE

    def ratio_for(self, media: MediaDimensions) -> float | None:
        if self.kind == ORIGINAL:
            return media.width / media.height
        if self.kind == FIXED:
            return self.ratio
        return None


class Corner(enum.Enum):
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"

    @property
    def west(self) -> bool:
        return self in (Corner.NW, Corner.SW)

    @property
    def north(self) -> bool:
        return self in (Corner.NW, Corner.NE)


class CropModel:
    """Owns the crop rectangle and keeps it inside the video frame.

    Every operation builds a float candidate and hands it to :meth:`set_rect`,
    which is the only place the stored rectangle changes. The stored rect is
    always integer valued, at least ``MIN_SIZE`` on each side (or the whole
    frame when the frame is smaller) and fully inside the frame.
    """

    def __init__(self, media: MediaDimensions, policy: AspectPolicy | None = None):
        self.media = media
        self.policy = policy or AspectPolicy.free()
        self.rect = Rect(0, 0, media.width, media.height)

    @property
    def min_w(self) -> int:
        return min(MIN_SIZE, self.media.width)

    @property
    def min_h(self) -> int:
        return min(MIN_SIZE, self.media.height)

    @property
    def ratio(self) -> float | None:
        return self.policy.ratio_for(self.media)

    def reset(self, media: MediaDimensions | None = None) -> Rect:
        if media is not None:
            self.media = media
        self.rect = Rect(0, 0, self.media.width, self.media.height)
        return self.rect

    def set_rect(self, candidate: Rect) -> Rect:
        width, height = self.media.width, self.media.height

        # min-size, then position, then size against the frame
        w = min(max(round(candidate.w), self.min_w), width)
        h = min(max(round(candidate.h), self.min_h), height)
        x = min(max(round(candidate.x), 0), width - w)
        y = min(max(round(candidate.y), 0), height - h)
        w = min(w, width - x)
        h = min(h, height - y)

        self.rect = Rect(x, y, w, h)
        return self.rect

    def apply_move(self, dx: float, dy: float, base: Rect) -> Rect:
        x = min(max(base.x + dx, 0), self.media.width - base.w)
        y = min(max(base.y + dy, 0), self.media.height - base.h)
        return self.set_rect(Rect(x, y, base.w, base.h))

    def apply_resize(self, corner: Corner, dx: float, dy: float, base: Rect) -> Rect:
        """Drag ``corner`` of ``base`` by (dx, dy); the opposite edges stay put."""
        width, height = self.media.width, self.media.height
        ratio = self.ratio

        if corner.west:
            fixed_x, w, room_w = base.right, base.w - dx, base.right
        else:
            fixed_x, w, room_w = base.x, base.w + dx, width - base.x
        if corner.north:
            fixed_y, h, room_h = base.bottom, base.h - dy, base.bottom
        else:
            fixed_y, h, room_h = base.y, base.h + dy, height - base.y

        if ratio is not None:
            # width wins; height follows
            h = w / ratio

        w, h = self._floor(w, h, ratio)
        w, h = self._fit(w, h, room_w, room_h, ratio)

        x = fixed_x - w if corner.west else fixed_x
        y = fixed_y - h if corner.north else fixed_y
        return self.set_rect(Rect(x, y, w, h))

    def apply_new_selection(self, start: Point, now: Point) -> Rect:
        width, height = self.media.width, self.media.height
        ratio = self.ratio

        x, y = min(start.x, now.x), min(start.y, now.y)
        w, h = abs(now.x - start.x), abs(now.y - start.y)
        if ratio is not None:
            h = w / ratio

        w, h = self._floor(w, h, ratio)
        x = min(max(x, 0), width - self.min_w)
        y = min(max(y, 0), height - self.min_h)
        w, h = self._fit(w, h, width - x, height - y, ratio)
        return self.set_rect(Rect(x, y, w, h))

    def apply_ratio(self, policy: AspectPolicy) -> Rect:
        """Switch policy and, if locked, reshape the rect around its center."""
        self.policy = policy
        ratio = self.ratio
        if ratio is None:
            return self.rect

        center = self.rect.center
        w, h = self.rect.w, self.rect.h
        if w / h > ratio:
            w = h * ratio
        else:
            h = w / ratio

        w, h = self._floor(w, h, ratio)
        w, h = self._fit(w, h, self.media.width, self.media.height, ratio)
        x = min(max(center.x - w / 2, 0), self.media.width - w)
        y = min(max(center.y - h / 2, 0), self.media.height - h)
        return self.set_rect(Rect(x, y, w, h))

    def set_custom_ratio(self, ratio_w: int, ratio_h: int) -> Rect:
        ratio_w = ratio_w if ratio_w and ratio_w > 0 else 16
        ratio_h = ratio_h if ratio_h and ratio_h > 0 else 9
        return self.apply_ratio(AspectPolicy.fixed(ratio_w / ratio_h, f"{ratio_w}:{ratio_h}"))

    def _floor(self, w: float, h: float, ratio: float | None) -> tuple[float, float]:
        if ratio is None:
            return max(w, self.min_w), max(h, self.min_h)
        if w < self.min_w:
            w, h = self.min_w, self.min_w / ratio
        if h < self.min_h:
            w, h = self.min_h * ratio, self.min_h
        return w, h

    @staticmethod
    def _fit(
        w: float, h: float, room_w: float, room_h: float, ratio: float | None
    ) -> tuple[float, float]:
        """Shrink (w, h) into the room left between the fixed edges and the frame."""
        if ratio is None:
            return min(w, room_w), min(h, room_h)
        if w > room_w:
            w, h = room_w, room_w / ratio
        if h > room_h:
            w, h = room_h * ratio, room_h
        return w, h
