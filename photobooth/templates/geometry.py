"""
Frame geometry.

Pure functions over normalized frames:
- normalize_frame: enforce size floor, canvas containment and 1% snapping
- move_frame / resize_frame: interactive edits computed from a DragSnapshot

Every drag delta is measured against the snapshot taken when the drag
started, never against the frame as it was last committed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple

from photobooth.core.contracts import Frame


MIN_FRAME_SIZE = 0.05
SNAP_STEP = 0.01

Point = Tuple[float, float]
Size = Tuple[float, float]


class DragMode(Enum):
    MOVE = "move"
    RESIZE = "resize"


class ResizeHandle(Enum):
    """Corner handles. Each one moves the two edges it touches."""
    TOP_LEFT = "tl"
    TOP_RIGHT = "tr"
    BOTTOM_LEFT = "bl"
    BOTTOM_RIGHT = "br"

    @property
    def moves_left(self) -> bool:
        return self in (ResizeHandle.TOP_LEFT, ResizeHandle.BOTTOM_LEFT)

    @property
    def moves_top(self) -> bool:
        return self in (ResizeHandle.TOP_LEFT, ResizeHandle.TOP_RIGHT)


@dataclass(frozen=True)
class DragSnapshot:
    """
    Immutable start-of-drag state.

    Attributes:
        frame: Frame geometry when the drag began
        mode: Move or resize
        origin: Pointer position when the drag began (surface pixels)
        surface: Editing surface size (pixels) used to normalize deltas
        handle: Corner being dragged (resize only)
    """
    frame: Frame
    mode: DragMode
    origin: Point
    surface: Size
    handle: ResizeHandle | None = None

    def delta(self, pointer: Point) -> Point:
        """Normalized pointer travel since the drag started."""
        width, height = self.surface
        return (
            (pointer[0] - self.origin[0]) / width,
            (pointer[1] - self.origin[1]) / height,
        )


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp01(value: float) -> float:
    return clamp(value, 0.0, 1.0)


def snap_value(value: float, step: float = SNAP_STEP) -> float:
    # Second round drops float noise such as 0.30000000000000004
    return round(round(value / step) * step, 6)


def normalize_frame(frame: Frame) -> Frame:
    """
    Enforce frame invariants.

    Size is clamped to [MIN_FRAME_SIZE, 1] and snapped first, then position
    is clamped so the frame stays inside the canvas, then snapped.
    """
    width = snap_value(clamp(frame.width, MIN_FRAME_SIZE, 1.0))
    height = snap_value(clamp(frame.height, MIN_FRAME_SIZE, 1.0))
    x = snap_value(clamp(frame.x, 0.0, 1.0 - width))
    y = snap_value(clamp(frame.y, 0.0, 1.0 - height))
    # Snapping can land a hair past the bound; clamp once more
    x = min(x, round(1.0 - width, 6))
    y = min(y, round(1.0 - height, 6))
    return replace(frame, x=x, y=y, width=width, height=height)


def is_within_canvas(frame: Frame, tolerance: float = 1e-9) -> bool:
    return (
        frame.x >= -tolerance
        and frame.y >= -tolerance
        and frame.x + frame.width <= 1.0 + tolerance
        and frame.y + frame.height <= 1.0 + tolerance
        and frame.width >= MIN_FRAME_SIZE - tolerance
        and frame.height >= MIN_FRAME_SIZE - tolerance
    )


def move_frame(snapshot: DragSnapshot, pointer: Point) -> Frame:
    """Translate the snapshot frame by the pointer delta, kept inside the canvas."""
    start = snapshot.frame
    dx, dy = snapshot.delta(pointer)
    x = clamp01(min(clamp01(start.x + dx), 1.0 - start.width))
    y = clamp01(min(clamp01(start.y + dy), 1.0 - start.height))
    return normalize_frame(replace(start, x=x, y=y))


def _resize_axis(origin: float, size: float, delta: float, moves_origin: bool) -> Tuple[float, float]:
    """
    Resize one axis, keeping the opposite edge fixed.

    The size is floored at MIN_FRAME_SIZE before the moving edge is solved,
    so the rectangle can never invert.
    """
    if moves_origin:
        far_edge = origin + size
        new_size = clamp(size - delta, MIN_FRAME_SIZE, far_edge)
        return far_edge - new_size, new_size
    new_size = clamp(size + delta, MIN_FRAME_SIZE, 1.0 - origin)
    return origin, new_size


def resize_frame(snapshot: DragSnapshot, pointer: Point) -> Frame:
    """Resize the snapshot frame from its dragged corner; the opposite corner stays put."""
    if snapshot.handle is None:
        raise ValueError("resize_frame needs a snapshot with a handle")

    start = snapshot.frame
    handle = snapshot.handle
    dx, dy = snapshot.delta(pointer)
    x, width = _resize_axis(start.x, start.width, dx, handle.moves_left)
    y, height = _resize_axis(start.y, start.height, dy, handle.moves_top)
    return normalize_frame(replace(start, x=x, y=y, width=width, height=height))


def apply_drag(snapshot: DragSnapshot, pointer: Point) -> Frame:
    if snapshot.mode is DragMode.MOVE:
        return move_frame(snapshot, pointer)
    return resize_frame(snapshot, pointer)
