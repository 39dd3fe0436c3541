"""Tests for pointer-drag interpretation on the crop overlay."""

import pytest

from frameslicer.crop import AspectPolicy, Corner, CropModel
from frameslicer.geometry import CoordinateMapper
from frameslicer.interaction import (
    HANDLE_HIT,
    ApplyMove,
    ApplyNewSelection,
    ApplyResize,
    CropInteractionController,
    DragMode,
    DragSession,
    Idle,
    PointerDown,
    PointerLeave,
    PointerMove,
    PointerUp,
    SetCursor,
    classify,
    transition,
)
from frameslicer.models import Point, Rect

# 1920x1080 shown at half size in a 960x640 box: 50px bars top and bottom.
# Crop (200, 200, 400, 200) sits at (100, 150)-(300, 250) on screen.
CROP = Rect(200, 200, 400, 200)


@pytest.fixture
def mapper(media) -> CoordinateMapper:
    return CoordinateMapper(media, 960, 640)


@pytest.fixture
def crop(media) -> CropModel:
    model = CropModel(media)
    model.set_rect(CROP)
    return model


@pytest.fixture
def controller(crop, mapper) -> CropInteractionController:
    return CropInteractionController(crop, mapper)


class TestClassify:
    @pytest.mark.parametrize("point,mode", [
        ((100, 150), DragMode.RESIZE_NW),
        ((300, 150), DragMode.RESIZE_NE),
        ((100, 250), DragMode.RESIZE_SW),
        ((300, 250), DragMode.RESIZE_SE),
    ])
    def test_exact_corner(self, mapper, point, mode):
        assert classify(Point(*point), mapper, CROP) is mode

    def test_corner_beats_interior(self, mapper):
        # inside the rect and inside the NW handle square
        assert classify(Point(110, 160), mapper, CROP) is DragMode.RESIZE_NW

    def test_handle_reaches_outside_rect(self, mapper):
        assert classify(Point(100 - HANDLE_HIT, 150 - HANDLE_HIT), mapper, CROP) is DragMode.RESIZE_NW

    def test_interior_is_move(self, mapper):
        assert classify(Point(200, 200), mapper, CROP) is DragMode.MOVE

    def test_outside_is_new_selection(self, mapper):
        assert classify(Point(20, 60), mapper, CROP) is DragMode.NEW_SELECTION
        assert classify(Point(100 - HANDLE_HIT - 1, 200), mapper, CROP) is DragMode.NEW_SELECTION

    def test_tiny_rect_exact_corner_wins(self, mapper):
        tiny = Rect(200, 200, 20, 20)  # 10x10 on screen, handles overlap
        assert classify(Point(110, 160), mapper, tiny) is DragMode.RESIZE_SE
        assert classify(Point(100, 160), mapper, tiny) is DragMode.RESIZE_SW


class TestTransition:
    def test_down_starts_session(self, mapper):
        state, effects = transition(Idle(), PointerDown(200, 200), mapper, CROP)
        assert state == DragSession(DragMode.MOVE, Point(200, 200), CROP)
        assert effects == [SetCursor("move")]

    def test_hover_only_sets_cursor(self, mapper):
        state, effects = transition(Idle(), PointerMove(300, 250), mapper, CROP)
        assert state == Idle()
        assert effects == [SetCursor("se-resize")]

    def test_up_while_idle_is_noop(self, mapper):
        assert transition(Idle(), PointerUp(), mapper, CROP) == (Idle(), [])

    @pytest.mark.parametrize("event", [PointerUp(), PointerLeave()])
    def test_release_ends_session(self, mapper, event):
        session = DragSession(DragMode.MOVE, Point(200, 200), CROP)
        assert transition(session, event, mapper, CROP) == (Idle(), [])

    def test_move_effect_uses_video_delta(self, mapper):
        session = DragSession(DragMode.MOVE, Point(200, 200), CROP)
        state, (effect,) = transition(session, PointerMove(250, 225), mapper, CROP)
        assert state is session
        assert isinstance(effect, ApplyMove)
        assert (effect.dx, effect.dy) == pytest.approx((100, 50))
        assert effect.base == CROP

    def test_resize_effect_carries_corner(self, mapper):
        session = DragSession(DragMode.RESIZE_NE, Point(300, 150), CROP)
        _, (effect,) = transition(session, PointerMove(310, 140), mapper, CROP)
        assert isinstance(effect, ApplyResize)
        assert effect.corner is Corner.NE
        assert (effect.dx, effect.dy) == pytest.approx((20, -20))

    def test_new_selection_effect_in_video_space(self, mapper):
        session = DragSession(DragMode.NEW_SELECTION, Point(20, 60), CROP)
        _, (effect,) = transition(session, PointerMove(120, 110), mapper, CROP)
        assert isinstance(effect, ApplyNewSelection)
        assert (effect.start.x, effect.start.y) == pytest.approx((40, 20))
        assert (effect.now.x, effect.now.y) == pytest.approx((240, 120))

    def test_unknown_state(self, mapper):
        with pytest.raises(TypeError):
            transition(object(), PointerUp(), mapper, CROP)


class TestController:
    def test_move_drag(self, controller, crop):
        controller.handle(PointerDown(200, 200))
        assert controller.dragging
        controller.handle(PointerMove(250, 225))
        assert crop.rect == Rect(300, 250, 400, 200)

    def test_deltas_measured_from_drag_start(self, controller, crop):
        controller.handle(PointerDown(200, 200))
        controller.handle(PointerMove(250, 225))
        controller.handle(PointerMove(260, 225))
        assert crop.rect == Rect(320, 250, 400, 200)

    def test_resize_drag(self, controller, crop):
        controller.handle(PointerDown(300, 250))
        controller.handle(PointerMove(350, 275))
        assert crop.rect == Rect(200, 200, 500, 250)

    def test_locked_resize_drag(self, controller, crop):
        crop.policy = AspectPolicy.parse("1:1")
        controller.handle(PointerDown(300, 250))
        controller.handle(PointerMove(350, 400))
        assert crop.rect == Rect(200, 200, 500, 500)

    def test_new_selection_drag(self, controller, crop):
        controller.handle(PointerDown(20, 60))
        controller.handle(PointerMove(120, 110))
        assert crop.rect == Rect(40, 20, 200, 100)

    def test_release_then_hover_does_not_mutate(self, controller, crop):
        controller.handle(PointerDown(200, 200))
        controller.handle(PointerMove(250, 225))
        controller.handle(PointerUp())
        moved = crop.rect
        controller.handle(PointerMove(20, 60))
        assert not controller.dragging
        assert crop.rect == moved
        assert controller.cursor == "crosshair"

    def test_leave_keeps_last_commit(self, controller, crop):
        controller.handle(PointerDown(200, 200))
        controller.handle(PointerMove(250, 225))
        controller.handle(PointerLeave())
        assert not controller.dragging
        assert crop.rect == Rect(300, 250, 400, 200)

    def test_hover_cursor(self, controller, crop):
        controller.handle(PointerMove(100, 150))
        assert controller.cursor == "nw-resize"
        assert crop.rect == CROP
