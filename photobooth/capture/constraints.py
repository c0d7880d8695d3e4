"""
Video constraints and the ordered fallback plan.

Negotiation walks a fixed list of (tier, tag, builder) steps; each builder
turns the caller's preferences into a constraint set. A step is skipped when
the preferences make it redundant (no device to pin, or low resolution
forced).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from photobooth.core.contracts import (
    ConstraintTier,
    ResolutionPreference,
    SessionPreferences,
)


@dataclass(frozen=True)
class ConstraintRange:
    ideal: float
    max: Optional[float] = None

    def describe(self) -> str:
        if self.max is None:
            return f"{self.ideal:g}"
        return f"{self.ideal:g}(max {self.max:g})"


@dataclass(frozen=True)
class VideoConstraints:
    """
    A video request. All fields None is the minimal request
    ("video enabled, nothing else").
    """
    device_id: Optional[str] = None
    width: Optional[ConstraintRange] = None
    height: Optional[ConstraintRange] = None
    frame_rate: Optional[ConstraintRange] = None

    @property
    def is_minimal(self) -> bool:
        return (
            self.device_id is None
            and self.width is None
            and self.height is None
            and self.frame_rate is None
        )

    def describe(self) -> str:
        if self.is_minimal:
            return "video:true"
        parts = []
        if self.width is not None and self.height is not None:
            parts.append(f"{self.width.describe()}x{self.height.describe()}")
        if self.frame_rate is not None:
            parts.append(f"@{self.frame_rate.describe()}fps")
        parts.append(f"device={self.device_id}" if self.device_id else "no deviceId")
        return " ".join(parts)


HIGH_RES = (ConstraintRange(1280), ConstraintRange(720), ConstraintRange(30, 30))
LOW_RES = (ConstraintRange(640, 640), ConstraintRange(480, 480), ConstraintRange(24, 30))

MINIMAL_CONSTRAINTS = VideoConstraints()

# Single automatic retry after a safe-mode track ends
SAFE_RECOVERY_CONSTRAINTS = VideoConstraints(
    width=ConstraintRange(320, 320),
    height=ConstraintRange(240, 240),
    frame_rate=ConstraintRange(15, 15),
)
SAFE_RECOVERY_TAG = "safe:320x240@15"


def _sized(size: Tuple[ConstraintRange, ...], device_id: Optional[str]) -> VideoConstraints:
    width, height, frame_rate = size
    return VideoConstraints(
        device_id=device_id,
        width=width,
        height=height,
        frame_rate=frame_rate,
    )


@dataclass(frozen=True)
class FallbackStep:
    """One tier of the fallback plan."""
    tier: ConstraintTier
    tag: str
    build: Callable[[SessionPreferences], VideoConstraints]
    resolution: Optional[ResolutionPreference] = None
    uses_device: bool = False

    def applies_to(self, prefs: SessionPreferences) -> bool:
        if self.uses_device and (prefs.ignore_device_id or not prefs.device_id):
            return False
        if (
            self.resolution is ResolutionPreference.HIGH
            and prefs.resolution is ResolutionPreference.LOW
        ):
            return False
        return True


FALLBACK_STEPS: Tuple[FallbackStep, ...] = (
    FallbackStep(
        ConstraintTier.HIGH_WITH_DEVICE,
        "hi-res deviceId",
        lambda prefs: _sized(HIGH_RES, prefs.device_id),
        ResolutionPreference.HIGH,
        uses_device=True,
    ),
    FallbackStep(
        ConstraintTier.LOW_WITH_DEVICE,
        "low-res deviceId",
        lambda prefs: _sized(LOW_RES, prefs.device_id),
        ResolutionPreference.LOW,
        uses_device=True,
    ),
    FallbackStep(
        ConstraintTier.HIGH_ANY_DEVICE,
        "hi-res no-deviceId",
        lambda prefs: _sized(HIGH_RES, None),
        ResolutionPreference.HIGH,
    ),
    FallbackStep(
        ConstraintTier.LOW_ANY_DEVICE,
        "low-res no-deviceId",
        lambda prefs: _sized(LOW_RES, None),
        ResolutionPreference.LOW,
    ),
)

SAFE_MODE_STEP = FallbackStep(
    ConstraintTier.MINIMAL,
    "safe:video:true",
    lambda prefs: MINIMAL_CONSTRAINTS,
)


def build_fallback_plan(
    prefs: SessionPreferences,
    safe_mode: bool = False,
) -> List[FallbackStep]:
    """
    Ordered steps for one negotiation.

    Safe mode, and the minimal-constraints override, start (and end) at the
    unconstrained tier.
    """
    if safe_mode or prefs.minimal_constraints:
        return [SAFE_MODE_STEP]
    return [step for step in FALLBACK_STEPS if step.applies_to(prefs)]
