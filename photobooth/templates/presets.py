"""
Built-in templates and export size presets.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import List, Tuple

from photobooth.core.contracts import Frame, Template


PRESET_TEMPLATES: Tuple[Template, ...] = (
    Template(
        id="preset-grid-2x2",
        name="Grid 2×2",
        canvas_width=1200,
        canvas_height=1200,
        background="#ffffff",
        frames=[
            Frame(id="f1", x=0.05, y=0.05, width=0.45, height=0.45, radius=12),
            Frame(id="f2", x=0.5, y=0.05, width=0.45, height=0.45, radius=12),
            Frame(id="f3", x=0.05, y=0.5, width=0.45, height=0.45, radius=12),
            Frame(id="f4", x=0.5, y=0.5, width=0.45, height=0.45, radius=12),
        ],
    ),
    Template(
        id="preset-strip-3",
        name="Strip 3",
        canvas_width=800,
        canvas_height=1600,
        background="#f8fafc",
        frames=[
            Frame(id="s1", x=0.08, y=0.05, width=0.84, height=0.28, radius=16),
            Frame(id="s2", x=0.08, y=0.36, width=0.84, height=0.28, radius=16),
            Frame(id="s3", x=0.08, y=0.67, width=0.84, height=0.28, radius=16),
        ],
    ),
    Template(
        id="preset-postcard",
        name="Postcard 2",
        canvas_width=1600,
        canvas_height=1000,
        background="#ffffff",
        frames=[
            Frame(id="p1", x=0.06, y=0.1, width=0.42, height=0.8, radius=18),
            Frame(id="p2", x=0.52, y=0.1, width=0.42, height=0.8, radius=18),
        ],
    ),
)


def preset_templates() -> List[Template]:
    """Fresh copies of the built-in templates."""
    return [copy.deepcopy(template) for template in PRESET_TEMPLATES]


@dataclass(frozen=True)
class ExportPreset:
    id: str
    label: str
    width: int
    height: int


EXPORT_PRESETS: Tuple[ExportPreset, ...] = (
    ExportPreset("2r", "2R (2.5×3.5 in)", 750, 1050),
    ExportPreset("3r", "3R (3.5×5 in)", 1050, 1500),
    ExportPreset("4r", "4R (4×6 in)", 1200, 1800),
    ExportPreset("5r", "5R (5×7 in)", 1500, 2100),
    ExportPreset("6r", "6R (6×8 in)", 1800, 2400),
)


def find_export_preset(preset_id: str) -> ExportPreset:
    """Look up an export preset, falling back to the first one."""
    for preset in EXPORT_PRESETS:
        if preset.id == preset_id:
            return preset
    return EXPORT_PRESETS[0]


def resolve_export_size(template: Template | None, preset: ExportPreset) -> Tuple[int, int]:
    """
    Raster size for an export: preset width, height from the template aspect.

    Without a template a 2:3 portrait aspect is assumed.
    """
    aspect = template.aspect_ratio if template is not None else 2 / 3
    return preset.width, round(preset.width / aspect)
