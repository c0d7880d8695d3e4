"""
Template library.

Holds the template collection, the active template and the selected frame,
and performs every frame mutation through normalize_frame so stored frames
always satisfy the geometry invariants.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

from loguru import logger

from photobooth.core.contracts import Frame, Template, new_id
from photobooth.templates.geometry import normalize_frame
from photobooth.templates.presets import preset_templates


DEFAULT_FRAME = {"x": 0.1, "y": 0.1, "width": 0.3, "height": 0.3, "radius": 12}

_META_FIELDS = {"name", "canvas_width", "canvas_height", "background", "overlay"}
_FRAME_FIELDS = {"x", "y", "width", "height", "radius", "rotation"}


def _enforce_frame_invariants(template: Template) -> None:
    """Normalize incoming frames and give repeated frame ids fresh ones."""
    seen = set()
    frames = []
    for frame in template.frames:
        if frame.id in seen:
            fresh = new_id()
            logger.warning(f"Template '{template.name}': duplicate frame id '{frame.id}' -> {fresh}")
            frame = replace(frame, id=fresh)
        seen.add(frame.id)
        frames.append(normalize_frame(frame))
    template.frames = frames


class TemplateLibrary:
    """
    Template collection with one active template.

    Frame operations act on the active template and are no-ops (returning
    None) when there is no active template or the frame id is unknown.
    """

    def __init__(self, templates: Optional[List[Template]] = None):
        self._templates: List[Template] = (
            templates if templates is not None else preset_templates()
        )
        for template in self._templates:
            _enforce_frame_invariants(template)
        self._active_id: Optional[str] = self._templates[0].id if self._templates else None
        self._selected_frame_id: Optional[str] = None

    # ------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------

    @property
    def templates(self) -> List[Template]:
        return list(self._templates)

    @property
    def active_template_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_template(self) -> Optional[Template]:
        return self.get(self._active_id) if self._active_id else None

    def get(self, template_id: str) -> Optional[Template]:
        for template in self._templates:
            if template.id == template_id:
                return template
        return None

    def set_active(self, template_id: Optional[str]) -> None:
        if template_id is not None and self.get(template_id) is None:
            logger.warning(f"Unknown template '{template_id}'")
            return
        if template_id != self._active_id:
            self._selected_frame_id = None
        self._active_id = template_id

    def create_template(
        self,
        name: str,
        canvas_width: int,
        canvas_height: int,
        background: Optional[str] = "#ffffff",
        overlay: Optional[str] = None,
        frames: Optional[List[Frame]] = None,
    ) -> str:
        """Add a template and make it active. Returns its id."""
        template = Template(
            id=new_id(),
            name=name,
            canvas_width=canvas_width,
            canvas_height=canvas_height,
            background=background,
            overlay=overlay,
            frames=[normalize_frame(replace(f, id=new_id())) for f in frames or []],
        )
        self._templates.append(template)
        self.set_active(template.id)
        logger.debug(f"Template created: {name} ({template.id})")
        return template.id

    def duplicate_template(self, template_id: str) -> Optional[str]:
        """Deep-copy a template with fresh template and frame ids; the copy becomes active."""
        source = self.get(template_id)
        if source is None:
            return None

        clone = replace(
            source,
            id=new_id(),
            name=f"{source.name} (copy)",
            frames=[replace(frame, id=new_id()) for frame in source.frames],
        )
        self._templates.append(clone)
        self.set_active(clone.id)
        logger.debug(f"Template duplicated: {source.id} -> {clone.id}")
        return clone.id

    def delete_template(self, template_id: str) -> None:
        """Delete a template. If it was active, the first remaining one becomes active."""
        remaining = [t for t in self._templates if t.id != template_id]
        if len(remaining) == len(self._templates):
            return
        self._templates = remaining
        if self._active_id == template_id:
            self._selected_frame_id = None
            self._active_id = remaining[0].id if remaining else None

    def update_template_meta(self, **changes: Any) -> Optional[Template]:
        """Update name, canvas size, background or overlay of the active template."""
        template = self.active_template
        if template is None:
            return None
        unknown = set(changes) - _META_FIELDS
        if unknown:
            raise TypeError(f"Not template metadata: {', '.join(sorted(unknown))}")
        for key, value in changes.items():
            setattr(template, key, value)
        return template

    def reset_to_presets(self) -> None:
        self._templates = preset_templates()
        self._active_id = self._templates[0].id
        self._selected_frame_id = None

    # ------------------------------------------------------------
    # Frames (active template)
    # ------------------------------------------------------------

    @property
    def selected_frame_id(self) -> Optional[str]:
        return self._selected_frame_id

    def select_frame(self, frame_id: Optional[str]) -> None:
        template = self.active_template
        if frame_id is not None and (template is None or template.find_frame(frame_id) is None):
            return
        self._selected_frame_id = frame_id

    def add_frame(self, **geometry: Any) -> Optional[Frame]:
        """
        Add a frame to the active template and select it.

        Missing geometry falls back to x=0.1, y=0.1, w=0.3, h=0.3, radius=12.
        Any caller-supplied id is ignored.
        """
        template = self.active_template
        if template is None:
            return None

        unknown = set(geometry) - _FRAME_FIELDS - {"id"}
        if unknown:
            raise TypeError(f"Not frame fields: {', '.join(sorted(unknown))}")
        geometry.pop("id", None)

        frame = normalize_frame(Frame(id=new_id(), **{**DEFAULT_FRAME, **geometry}))
        template.frames.append(frame)
        self._selected_frame_id = frame.id
        return frame

    def remove_frame(self, frame_id: str) -> None:
        template = self.active_template
        if template is None:
            return
        template.frames = [f for f in template.frames if f.id != frame_id]
        if self._selected_frame_id == frame_id:
            self._selected_frame_id = None

    def update_frame(self, frame_id: str, **changes: Any) -> Optional[Frame]:
        """
        Apply a partial change to a frame and re-enforce its invariants.

        The frame id never changes.
        """
        template = self.active_template
        if template is None:
            return None

        unknown = set(changes) - _FRAME_FIELDS
        if unknown:
            raise TypeError(f"Not editable frame fields: {', '.join(sorted(unknown))}")

        for index, frame in enumerate(template.frames):
            if frame.id == frame_id:
                updated = normalize_frame(replace(frame, **changes))
                template.frames[index] = updated
                return updated
        return None

    def replace_frame_geometry(self, frame: Frame) -> Optional[Frame]:
        """Commit a full frame value (as produced by a drag) via update_frame."""
        return self.update_frame(
            frame.id, x=frame.x, y=frame.y, width=frame.width, height=frame.height
        )

    # ------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "templates": [t.to_dict() for t in self._templates],
            "activeTemplateId": self._active_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TemplateLibrary:
        templates = [Template.from_dict(t) for t in data.get("templates", [])]
        if not templates:
            return cls()
        library = cls(templates)
        active = data.get("activeTemplateId")
        if active is not None and library.get(active) is not None:
            library._active_id = active
        return library
