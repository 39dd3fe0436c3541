"""Pointer-drag interpretation for the crop overlay.

The state machine is a pure function, :func:`transition`, mapping the current
state and one pointer event to the next state and a list of effects.
:class:`CropInteractionController` holds the state and applies those effects
to a :class:`~frameslicer.crop.CropModel`.
"""

import enum
from dataclasses import dataclass

from frameslicer.crop import Corner, CropModel
from frameslicer.geometry import CoordinateMapper
from frameslicer.models import Point, Rect

HANDLE_HIT = 16
"""Half-width of a corner handle's hit square, in presentation pixels."""


class DragMode(enum.Enum):
    MOVE = "move"
    RESIZE_NW = "nw"
    RESIZE_NE = "ne"
    RESIZE_SW = "sw"
    RESIZE_SE = "se"
    NEW_SELECTION = "new"

    @property
    def corner(self) -> Corner | None:
        try:
            return Corner(self.value)
        except ValueError:
            return None

    @property
    def cursor(self) -> str:
        return _CURSORS[self]


_CURSORS = {
    DragMode.RESIZE_NW: "nw-resize",
    DragMode.RESIZE_NE: "ne-resize",
    DragMode.RESIZE_SW: "sw-resize",
    DragMode.RESIZE_SE: "se-resize",
    DragMode.MOVE: "move",
    DragMode.NEW_SELECTION: "crosshair",
}


# --- events -----------------------------------------------------------------

@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    pass


@dataclass(frozen=True)
class PointerLeave:
    pass


# --- states -----------------------------------------------------------------

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class DragSession:
    """One active drag, alive from pointer-down to pointer-up."""

    mode: DragMode
    start_pointer: Point
    start_rect: Rect


# --- effects ----------------------------------------------------------------

@dataclass(frozen=True)
class SetCursor:
    cursor: str


@dataclass(frozen=True)
class ApplyMove:
    dx: float
    dy: float
    base: Rect


@dataclass(frozen=True)
class ApplyResize:
    corner: Corner
    dx: float
    dy: float
    base: Rect


@dataclass(frozen=True)
class ApplyNewSelection:
    start: Point
    now: Point


def classify(p: Point, mapper: CoordinateMapper, rect: Rect) -> DragMode:
    """Pick the drag mode for a presentation-space point.

    Corner handles are tested before the interior so a corner stays grabbable
    even where its hit square overlaps the rect. When a small rect puts the
    point inside several hit squares, the nearest corner wins.
    """
    r = mapper.rect_to_presentation(rect)
    corners = (
        (r.x, r.y, DragMode.RESIZE_NW),
        (r.right, r.y, DragMode.RESIZE_NE),
        (r.x, r.bottom, DragMode.RESIZE_SW),
        (r.right, r.bottom, DragMode.RESIZE_SE),
    )
    best = None
    for cx, cy, mode in corners:
        dist = max(abs(p.x - cx), abs(p.y - cy))
        if dist <= HANDLE_HIT and (best is None or dist < best[0]):
            best = (dist, mode)
    if best is not None:
        return best[1]

    if r.contains(p):
        return DragMode.MOVE
    return DragMode.NEW_SELECTION


def transition(state, event, mapper: CoordinateMapper, rect: Rect):
    """Return ``(next_state, effects)`` for one pointer event."""
    if isinstance(state, Idle):
        if isinstance(event, PointerDown):
            pointer = Point(event.x, event.y)
            mode = classify(pointer, mapper, rect)
            return DragSession(mode, pointer, rect), [SetCursor(mode.cursor)]
        if isinstance(event, PointerMove):
            mode = classify(Point(event.x, event.y), mapper, rect)
            return state, [SetCursor(mode.cursor)]
        return state, []

    if isinstance(state, DragSession):
        if isinstance(event, (PointerUp, PointerLeave)):
            return Idle(), []
        if isinstance(event, PointerMove):
            return state, [_drag_effect(state, Point(event.x, event.y), mapper)]
        return state, []

    raise TypeError(f"Unknown interaction state {state!r}")


def _drag_effect(session: DragSession, pointer: Point, mapper: CoordinateMapper):
    # deltas are measured from the drag's start, never from the previous move
    start = mapper.to_video(session.start_pointer)
    now = mapper.to_video(pointer)
    dx, dy = now.x - start.x, now.y - start.y

    if session.mode is DragMode.MOVE:
        return ApplyMove(dx, dy, session.start_rect)
    if session.mode is DragMode.NEW_SELECTION:
        return ApplyNewSelection(start, now)
    return ApplyResize(session.mode.corner, dx, dy, session.start_rect)


class CropInteractionController:
    """Feeds pointer events through :func:`transition` into a CropModel."""

    def __init__(self, crop: CropModel, mapper: CoordinateMapper):
        self.crop = crop
        self.mapper = mapper
        self.state = Idle()
        self.cursor = DragMode.NEW_SELECTION.cursor

    @property
    def dragging(self) -> bool:
        return isinstance(self.state, DragSession)

    def handle(self, event) -> Rect:
        self.state, effects = transition(self.state, event, self.mapper, self.crop.rect)
        for effect in effects:
            self._apply(effect)
        return self.crop.rect

    def cancel(self) -> None:
        self.state = Idle()

    def _apply(self, effect) -> None:
        if isinstance(effect, SetCursor):
            self.cursor = effect.cursor
        elif isinstance(effect, ApplyMove):
            self.crop.apply_move(effect.dx, effect.dy, effect.base)
        elif isinstance(effect, ApplyResize):
            self.crop.apply_resize(effect.corner, effect.dx, effect.dy, effect.base)
        elif isinstance(effect, ApplyNewSelection):
            self.crop.apply_new_selection(effect.start, effect.now)
