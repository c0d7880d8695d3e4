"""Tests for frame geometry: normalization, move and corner resize."""

import pytest

from photobooth.core.contracts import Frame
from photobooth.templates.geometry import (
    MIN_FRAME_SIZE,
    DragMode,
    DragSnapshot,
    ResizeHandle,
    apply_drag,
    is_within_canvas,
    move_frame,
    normalize_frame,
    resize_frame,
    snap_value,
)


SURFACE = (100.0, 100.0)
ORIGIN = (50.0, 50.0)


@pytest.fixture
def frame():
    return Frame(id="a", x=0.2, y=0.2, width=0.4, height=0.4)


def snapshot(frame, mode=DragMode.MOVE, handle=None):
    return DragSnapshot(frame=frame, mode=mode, origin=ORIGIN, surface=SURFACE, handle=handle)


def pointer(dx_px, dy_px):
    return (ORIGIN[0] + dx_px, ORIGIN[1] + dy_px)


def opposite_corner(frame, handle):
    x = frame.right if handle.moves_left else frame.x
    y = frame.bottom if handle.moves_top else frame.y
    return x, y


class TestNormalize:
    def test_clamps_size_then_position(self):
        result = normalize_frame(Frame(id="a", x=0.987, y=-0.2, width=0.001, height=2.0))
        assert result.width == MIN_FRAME_SIZE
        assert result.height == 1.0
        assert result.x == pytest.approx(0.95)
        assert result.y == 0.0
        assert is_within_canvas(result)

    def test_snaps_to_hundredths(self):
        result = normalize_frame(Frame(id="a", x=0.123456, y=0.2049, width=0.33333, height=0.5))
        assert result.x == pytest.approx(0.12)
        assert result.y == pytest.approx(0.2)
        assert result.width == pytest.approx(0.33)

    def test_keeps_id_and_style(self):
        result = normalize_frame(Frame(id="keep", x=0.5, y=0.5, width=0.2, height=0.2, radius=8))
        assert result.id == "keep"
        assert result.radius == 8

    def test_snap_drops_float_noise(self):
        assert snap_value(0.1 + 0.2) == 0.3


class TestMove:
    def test_translates_by_normalized_delta(self, frame):
        result = move_frame(snapshot(frame), pointer(10, -5))
        assert result.x == pytest.approx(0.3)
        assert result.y == pytest.approx(0.15)
        assert result.width == frame.width

    @pytest.mark.parametrize("dx,dy,x,y", [
        (100, 100, 0.6, 0.6),
        (-100, -100, 0.0, 0.0),
        (100, -100, 0.6, 0.0),
    ])
    def test_stays_inside_canvas(self, frame, dx, dy, x, y):
        result = move_frame(snapshot(frame), pointer(dx, dy))
        assert result.x == pytest.approx(x)
        assert result.y == pytest.approx(y)
        assert is_within_canvas(result)

    def test_delta_scales_with_surface(self, frame):
        wide = DragSnapshot(frame=frame, mode=DragMode.MOVE, origin=(0, 0), surface=(200.0, 50.0))
        result = move_frame(wide, (20, 5))
        assert result.x == pytest.approx(0.3)
        assert result.y == pytest.approx(0.3)


class TestResize:
    @pytest.mark.parametrize("handle", list(ResizeHandle))
    @pytest.mark.parametrize("dx,dy", [(5, 5), (-10, 15), (30, -20)])
    def test_opposite_corner_stays_fixed(self, frame, handle, dx, dy):
        result = resize_frame(snapshot(frame, DragMode.RESIZE, handle), pointer(dx, dy))
        assert opposite_corner(result, handle) == pytest.approx(opposite_corner(frame, handle))
        assert is_within_canvas(result)

    def test_bottom_right_grows(self, frame):
        result = resize_frame(
            snapshot(frame, DragMode.RESIZE, ResizeHandle.BOTTOM_RIGHT), pointer(10, 20)
        )
        assert (result.x, result.y) == pytest.approx((0.2, 0.2))
        assert (result.width, result.height) == pytest.approx((0.5, 0.6))

    @pytest.mark.parametrize("handle,dx,dy", [
        (ResizeHandle.BOTTOM_RIGHT, -90, -90),
        (ResizeHandle.TOP_LEFT, 90, 90),
        (ResizeHandle.TOP_RIGHT, -90, 90),
        (ResizeHandle.BOTTOM_LEFT, 90, -90),
    ])
    def test_collapsing_drag_stops_at_minimum_size(self, frame, handle, dx, dy):
        result = resize_frame(snapshot(frame, DragMode.RESIZE, handle), pointer(dx, dy))
        assert result.width == pytest.approx(MIN_FRAME_SIZE)
        assert result.height == pytest.approx(MIN_FRAME_SIZE)
        assert opposite_corner(result, handle) == pytest.approx(opposite_corner(frame, handle))

    def test_growth_is_bounded_by_canvas(self, frame):
        grown = resize_frame(
            snapshot(frame, DragMode.RESIZE, ResizeHandle.BOTTOM_RIGHT), pointer(100, 100)
        )
        assert (grown.right, grown.bottom) == pytest.approx((1.0, 1.0))

        grown = resize_frame(
            snapshot(frame, DragMode.RESIZE, ResizeHandle.TOP_LEFT), pointer(-100, -100)
        )
        assert (grown.x, grown.y) == pytest.approx((0.0, 0.0))
        assert (grown.right, grown.bottom) == pytest.approx((0.6, 0.6))

    def test_resize_requires_handle(self, frame):
        with pytest.raises(ValueError):
            resize_frame(snapshot(frame, DragMode.RESIZE), pointer(1, 1))


def test_apply_drag_dispatches_on_mode(frame):
    moved = apply_drag(snapshot(frame), pointer(10, 0))
    resized = apply_drag(snapshot(frame, DragMode.RESIZE, ResizeHandle.BOTTOM_RIGHT), pointer(10, 0))
    assert moved.width == frame.width and moved.x == pytest.approx(0.3)
    assert resized.x == frame.x and resized.width == pytest.approx(0.5)


def test_invariants_hold_across_drag_sequence(frame):
    drags = [
        snapshot(frame, DragMode.RESIZE, ResizeHandle.TOP_LEFT),
        snapshot(frame, DragMode.RESIZE, ResizeHandle.BOTTOM_RIGHT),
        snapshot(frame),
    ]
    for drag in drags:
        for dx, dy in [(-300, 0), (0, 300), (137, -61), (-3, 7)]:
            assert is_within_canvas(apply_drag(drag, pointer(dx, dy)))
