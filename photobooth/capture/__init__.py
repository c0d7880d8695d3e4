"""
Video Acquisition Module.

Responsibilities:
- Stream negotiation through ordered fallback tiers
- Track health monitoring and one-shot safe-mode recovery
- Render sink binding
- Device enumeration
"""

from .acquisition import AcquisitionController
from .constraints import VideoConstraints, build_fallback_plan
from .diagnostics import DiagnosticLog
from .host import MediaHost, MediaStream, MediaTrack, RenderSink
