"""Tests for constraint sets and the fallback plan."""

import pytest

from photobooth.capture.constraints import (
    FALLBACK_STEPS,
    MINIMAL_CONSTRAINTS,
    SAFE_MODE_STEP,
    SAFE_RECOVERY_CONSTRAINTS,
    build_fallback_plan,
)
from photobooth.core.contracts import ConstraintTier, ResolutionPreference, SessionPreferences


def tiers(plan):
    return [int(step.tier) for step in plan]


class TestFallbackPlan:
    def test_full_plan_with_device(self):
        plan = build_fallback_plan(SessionPreferences(device_id="cam-1"))
        assert tiers(plan) == [1, 2, 3, 4]
        assert [step.tag for step in plan] == [
            "hi-res deviceId",
            "low-res deviceId",
            "hi-res no-deviceId",
            "low-res no-deviceId",
        ]

    def test_no_device_skips_pinned_tiers(self):
        plan = build_fallback_plan(SessionPreferences())
        assert tiers(plan) == [3, 4]

    def test_ignore_device_skips_pinned_tiers(self):
        prefs = SessionPreferences(device_id="cam-1", ignore_device_id=True)
        assert tiers(build_fallback_plan(prefs)) == [3, 4]

    def test_low_resolution_skips_high_tiers(self):
        prefs = SessionPreferences(device_id="cam-1", resolution=ResolutionPreference.LOW)
        assert tiers(build_fallback_plan(prefs)) == [2, 4]

    @pytest.mark.parametrize("prefs,safe_mode", [
        (SessionPreferences(device_id="cam-1"), True),
        (SessionPreferences(device_id="cam-1", minimal_constraints=True), False),
    ])
    def test_safe_and_minimal_use_only_unconstrained_tier(self, prefs, safe_mode):
        plan = build_fallback_plan(prefs, safe_mode=safe_mode)
        assert plan == [SAFE_MODE_STEP]
        assert plan[0].tier is ConstraintTier.MINIMAL
        assert plan[0].build(prefs) == MINIMAL_CONSTRAINTS


class TestConstraintSets:
    def test_high_with_device(self):
        constraints = FALLBACK_STEPS[0].build(SessionPreferences(device_id="cam-1"))
        assert constraints.device_id == "cam-1"
        assert constraints.width.ideal == 1280
        assert constraints.height.ideal == 720
        assert constraints.frame_rate.ideal == 30
        assert constraints.frame_rate.max == 30

    def test_low_res_caps_dimensions(self):
        constraints = FALLBACK_STEPS[3].build(SessionPreferences(device_id="cam-1"))
        assert constraints.device_id is None
        assert (constraints.width.ideal, constraints.width.max) == (640, 640)
        assert (constraints.height.ideal, constraints.height.max) == (480, 480)
        assert (constraints.frame_rate.ideal, constraints.frame_rate.max) == (24, 30)

    def test_minimal_describes_as_video_true(self):
        assert MINIMAL_CONSTRAINTS.is_minimal
        assert MINIMAL_CONSTRAINTS.describe() == "video:true"

    def test_safe_recovery_is_small_and_unpinned(self):
        assert not SAFE_RECOVERY_CONSTRAINTS.is_minimal
        assert SAFE_RECOVERY_CONSTRAINTS.device_id is None
        assert SAFE_RECOVERY_CONSTRAINTS.width.max == 320
        assert SAFE_RECOVERY_CONSTRAINTS.height.max == 240
        assert SAFE_RECOVERY_CONSTRAINTS.frame_rate.max == 15

    def test_describe_mentions_device(self):
        constraints = FALLBACK_STEPS[0].build(SessionPreferences(device_id="cam-1"))
        assert constraints.describe() == "1280x720 @30(max 30)fps device=cam-1"
