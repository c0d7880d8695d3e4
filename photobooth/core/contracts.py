"""
Core data contracts for the photobooth.

Covers:
- Capture session state (acquisition controller snapshot)
- Still images (captured payloads)
- Templates and their normalized frames
- Result types returned across the session/capture boundary
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, List, Tuple, Dict, Any

from photobooth.core.errors import PhotoboothError


# ============================================================
# ENUMERATIONS
# ============================================================

class SessionState(Enum):
    """Lifecycle state of a capture session."""
    IDLE = "idle"
    NEGOTIATING = "negotiating"
    LIVE = "live"
    DEGRADED = "degraded"
    STOPPED = "stopped"


class ReadyState(Enum):
    """Readiness of a video track."""
    LIVE = "live"
    MUTED = "muted"
    ENDED = "ended"


class Severity(Enum):
    """Diagnostic log severity."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ResolutionPreference(Enum):
    """Requested capture resolution."""
    HIGH = "high"  # ~1280x720
    LOW = "low"    # ~640x480


class ConstraintTier(IntEnum):
    """Fallback tiers, in negotiation order."""
    HIGH_WITH_DEVICE = 1
    LOW_WITH_DEVICE = 2
    HIGH_ANY_DEVICE = 3
    LOW_ANY_DEVICE = 4
    MINIMAL = 5
    # Automatic recovery after a safe-mode track ends
    SAFE_RECOVERY = 6


class TrackEvent(Enum):
    """Lifecycle signals emitted by a video track."""
    ENDED = "ended"
    MUTED = "muted"
    UNMUTED = "unmuted"


# ============================================================
# CAPTURE SESSION
# ============================================================

@dataclass(frozen=True)
class Resolution:
    width: int
    height: int


@dataclass(frozen=True)
class TrackSettings:
    """Settings reported by a live track."""
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[float] = None
    device_label: Optional[str] = None


@dataclass(frozen=True)
class TrackHealth:
    label: str
    ready_state: ReadyState


@dataclass(frozen=True)
class LogEntry:
    """A single timestamped diagnostic entry."""
    timestamp: float
    severity: Severity
    message: str


@dataclass(frozen=True)
class DeviceInfo:
    """A video input device reported by the host."""
    device_id: str
    label: str
    kind: str = "videoinput"


@dataclass(frozen=True)
class SessionPreferences:
    """
    Inputs to a negotiation attempt.

    device_id None means "any camera".
    """
    device_id: Optional[str] = None
    resolution: ResolutionPreference = ResolutionPreference.HIGH
    ignore_device_id: bool = False
    minimal_constraints: bool = False


@dataclass(frozen=True)
class CaptureSession:
    """
    Read-only snapshot of the controller's session.

    Built at access time; presentation layers read it, never mutate it.
    """
    state: SessionState = SessionState.IDLE
    active_tier: Optional[ConstraintTier] = None
    track_health: Optional[TrackHealth] = None
    settings: Optional[TrackSettings] = None
    resolution: Optional[Resolution] = None
    fallback_path: Optional[str] = None
    constraint_label: Optional[str] = None
    safe_mode: bool = False
    diagnostics: Tuple[LogEntry, ...] = ()
    last_error: Optional[PhotoboothError] = None

    @property
    def is_streaming(self) -> bool:
        return self.state in (SessionState.LIVE, SessionState.DEGRADED)


# ============================================================
# STILL IMAGES
# ============================================================

@dataclass(frozen=True)
class StillImage:
    """An encoded still plus its capture timestamp."""
    data: bytes
    captured_at: float = field(default_factory=time.time)
    mime_type: str = "image/png"
    chroma_keyed: bool = False


# ============================================================
# TEMPLATES
# ============================================================

def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Frame:
    """
    A normalized rectangular slot inside a template canvas.

    Positional fields are fractions of the canvas, in [0, 1].
    """
    id: str
    x: float
    y: float
    width: float
    height: float
    radius: Optional[float] = None
    rotation: Optional[float] = None

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        if self.radius is not None:
            data["radius"] = self.radius
        if self.rotation is not None:
            data["rotation"] = self.rotation
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Frame:
        return cls(
            id=str(data["id"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            radius=data.get("radius"),
            rotation=data.get("rotation"),
        )


@dataclass
class Template:
    """A composable layout: canvas size, background and ordered frames."""
    id: str
    name: str
    canvas_width: int
    canvas_height: int
    background: Optional[str] = "#ffffff"
    overlay: Optional[str] = None
    frames: List[Frame] = field(default_factory=list)

    @property
    def aspect_ratio(self) -> float:
        return self.canvas_width / self.canvas_height

    def find_frame(self, frame_id: str) -> Optional[Frame]:
        for frame in self.frames:
            if frame.id == frame_id:
                return frame
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted template shape."""
        return {
            "id": self.id,
            "name": self.name,
            "canvasWidth": self.canvas_width,
            "canvasHeight": self.canvas_height,
            "background": self.background,
            "overlay": self.overlay,
            "frames": [frame.to_dict() for frame in self.frames],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Template:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            canvas_width=int(data["canvasWidth"]),
            canvas_height=int(data["canvasHeight"]),
            background=data.get("background"),
            overlay=data.get("overlay"),
            frames=[Frame.from_dict(f) for f in data.get("frames", [])],
        )


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass
class NegotiationResult:
    """Result of a session start request."""
    success: bool
    tier: Optional[ConstraintTier] = None
    attempted: List[str] = field(default_factory=list)

    # Stream was produced after stop() was requested and released at once
    cancelled: bool = False

    # Playback failure does not make the negotiation unsuccessful
    playback_error: Optional[PhotoboothError] = None

    error: Optional[PhotoboothError] = None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


@dataclass
class CaptureResult:
    """Result of a still capture."""
    still: Optional[StillImage] = None
    success: bool = True
    error: Optional[PhotoboothError] = None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None
