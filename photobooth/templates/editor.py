"""
Direct-manipulation editing of the active template.

State machine:
    IDLE (nothing selected) -> SELECTED -> DRAGGING (move | resize) -> SELECTED

A drag captures a DragSnapshot when it starts. Pointer moves are resolved
against that snapshot and committed through the library; pointer release
always ends the drag, wherever it happens.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from loguru import logger

from photobooth.core.contracts import Frame
from photobooth.templates.geometry import (
    DragMode,
    DragSnapshot,
    Point,
    ResizeHandle,
    Size,
    apply_drag,
)
from photobooth.templates.library import TemplateLibrary


class EditorState(Enum):
    IDLE = "idle"
    SELECTED = "selected"
    DRAGGING = "dragging"


class TemplateEditor:
    """Pointer-driven move/resize of frames in the active template."""

    def __init__(self, library: TemplateLibrary, editing_enabled: bool = True):
        self.library = library
        self.editing_enabled = editing_enabled
        self._drag: Optional[DragSnapshot] = None

    @property
    def state(self) -> EditorState:
        if self._drag is not None:
            return EditorState.DRAGGING
        if self.library.selected_frame_id is not None:
            return EditorState.SELECTED
        return EditorState.IDLE

    @property
    def drag(self) -> Optional[DragSnapshot]:
        return self._drag

    @property
    def selected_frame(self) -> Optional[Frame]:
        template = self.library.active_template
        frame_id = self.library.selected_frame_id
        if template is None or frame_id is None:
            return None
        return template.find_frame(frame_id)

    def select(self, frame_id: Optional[str]) -> None:
        self.library.select_frame(frame_id)

    def begin_move(self, frame_id: str, pointer: Point, surface: Size) -> bool:
        return self._begin(frame_id, DragMode.MOVE, pointer, surface)

    def begin_resize(
        self,
        frame_id: str,
        handle: ResizeHandle,
        pointer: Point,
        surface: Size,
    ) -> bool:
        return self._begin(frame_id, DragMode.RESIZE, pointer, surface, handle)

    def _begin(
        self,
        frame_id: str,
        mode: DragMode,
        pointer: Point,
        surface: Size,
        handle: Optional[ResizeHandle] = None,
    ) -> bool:
        if not self.editing_enabled:
            return False

        template = self.library.active_template
        frame = template.find_frame(frame_id) if template is not None else None
        if frame is None:
            return False
        if surface[0] <= 0 or surface[1] <= 0:
            logger.warning(f"Cannot drag on an empty surface {surface}")
            return False

        self.library.select_frame(frame_id)
        self._drag = DragSnapshot(
            frame=frame,
            mode=mode,
            origin=pointer,
            surface=surface,
            handle=handle,
        )
        return True

    def pointer_move(self, pointer: Point) -> Optional[Frame]:
        """Resolve the pointer against the drag snapshot and commit the result."""
        drag = self._drag
        if drag is None:
            return None
        proposed = apply_drag(drag, pointer)
        committed = self.library.replace_frame_geometry(proposed)
        if committed is None:
            # Frame was removed mid-drag
            self._drag = None
        return committed

    def pointer_up(self) -> None:
        self._drag = None

    def cancel_drag(self) -> None:
        """End any drag without committing further updates."""
        self._drag = None
