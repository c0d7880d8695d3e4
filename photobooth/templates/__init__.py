"""
Template Geometry Module.

Responsibilities:
- Frame invariants (containment, minimum size, snapping)
- Template collection and frame CRUD
- Interactive move/resize
"""

from .editor import EditorState, TemplateEditor
from .geometry import DragMode, DragSnapshot, ResizeHandle, normalize_frame
from .library import TemplateLibrary
from .presets import EXPORT_PRESETS, resolve_export_size
