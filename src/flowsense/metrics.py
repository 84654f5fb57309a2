"""Derived metrics: slacking index and energy level.

Both are additive point models over the detector outputs, clamped to
[0, 100] and rounded to whole points.
"""

from __future__ import annotations

import math
from typing import Sequence

from flowsense.models import IntensityLevel, PostureState

# ── Slacking index constants ──────────────────────────────────

EWTR_WINDOW_SECONDS = 600
_EWTR_LOOKAHEAD = 30
_EWTR_LOW = 0.30
_EWTR_HIGH = 0.70

_INACTIVITY_MAX = 40.0
_POSTURE_POINTS = {
    PostureState.WALKING: 25.0,
    PostureState.ACTIVE: 15.0,
    PostureState.RESTING: 10.0,
    PostureState.MOUSING: 5.0,
    PostureState.TYPING: 0.0,
}
_SEDENTARY_MAX = 20.0
_SEDENTARY_START_MINUTES = 20.0
_SEDENTARY_FULL_MINUTES = 60.0
_EDITOR_IDLE_MAX = 15.0
_EDITOR_IDLE_FULL_MINUTES = 10.0

_FLOW_DISCOUNT = 30.0
_HIGH_INTENSITY_DISCOUNT = 20.0
_HIGH_INTENSITY = (IntensityLevel.INTENSE, IntensityLevel.FURIOUS)

# ── Energy level constants ────────────────────────────────────

_INTENSITY_ENERGY = {
    IntensityLevel.FURIOUS: 15,
    IntensityLevel.INTENSE: 10,
    IntensityLevel.MODERATE: 5,
    IntensityLevel.LIGHT: 0,
    IntensityLevel.IDLE: -10,
}
_FLOW_ENERGY = 15
_FATIGUE_GRACE_HOURS = 2.0
_FATIGUE_PER_HOUR = 3.0
_FATIGUE_CAP = 18.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ── Slacking index ───────────────────────────────────────────


def effective_work_ratio(editor_rates: Sequence[float]) -> float | None:
    """Effective Work-Time Ratio over the trailing editor window.

    A zero-rate second still counts as work when activity resumes within
    the next 29 seconds (short thinking pauses).  ``None`` without data.
    """
    window = list(editor_rates[-EWTR_WINDOW_SECONDS:])
    if not window:
        return None

    effective = 0
    next_active: int | None = None
    for i in range(len(window) - 1, -1, -1):
        if window[i] > 0:
            effective += 1
            next_active = i
        elif next_active is not None and next_active - i < _EWTR_LOOKAHEAD:
            effective += 1
    return min(1.0, effective / len(window))


def inactivity_points(editor_rates: Sequence[float]) -> float:
    ewtr = effective_work_ratio(editor_rates)
    if ewtr is None:
        return 0.0
    return _clamp(_INACTIVITY_MAX * (_EWTR_HIGH - ewtr) / (_EWTR_HIGH - _EWTR_LOW), 0.0, _INACTIVITY_MAX)


def slacking_index(
    *,
    editor_rates: Sequence[float],
    posture: PostureState,
    has_motion: bool,
    sedentary_seconds: float,
    editor_idle_seconds: float,
    flow_active: bool,
    intensity: IntensityLevel,
) -> int:
    """Score 0–100 of how far the wearer appears to be from productive work."""
    inactivity = inactivity_points(editor_rates)
    posture_points = _POSTURE_POINTS[posture] if has_motion else 0.0

    sedentary_minutes = sedentary_seconds / 60
    sedentary = _SEDENTARY_MAX * _clamp(
        (sedentary_minutes - _SEDENTARY_START_MINUTES) / (_SEDENTARY_FULL_MINUTES - _SEDENTARY_START_MINUTES),
        0.0,
        1.0,
    )

    idle_minutes = max(0.0, editor_idle_seconds) / 60
    editor_idle = _EDITOR_IDLE_MAX * min(1.0, idle_minutes / _EDITOR_IDLE_FULL_MINUTES)

    total = inactivity + posture_points + sedentary + editor_idle
    if flow_active:
        total = max(0.0, total - _FLOW_DISCOUNT)
    if intensity in _HIGH_INTENSITY:
        total = max(0.0, total - _HIGH_INTENSITY_DISCOUNT)
    return int(_clamp(round(total), 0, 100))


# ── Energy level ─────────────────────────────────────────────


def circadian_alertness(hour: float) -> float:
    """Two-harmonic alertness model in [0, 1] for a fractional local hour.

    The 24 h cycle peaks at 10:00; the 12 h harmonic subtracts a
    post-lunch dip centred on 14:00.
    """
    primary = 0.5 * math.cos(2 * math.pi * (hour - 10) / 24)
    post_lunch = 0.2 * math.cos(2 * math.pi * (hour - 14) / 12)
    return _clamp(0.5 + primary - post_lunch, 0.0, 1.0)


def heart_rate_adjustment(heart_rate: float | None, baseline: float) -> int:
    if heart_rate is None or heart_rate <= 0 or baseline <= 0:
        return 0
    deviation = (heart_rate - baseline) / baseline
    if deviation < -0.15:
        return -20
    if deviation < -0.05:
        return -10
    if deviation < 0.10:
        return 0
    if deviation < 0.20:
        return 5
    return -5


def activity_adjustment(flow_active: bool, intensity: IntensityLevel, idle_seconds: float) -> int:
    points = _FLOW_ENERGY if flow_active else 0
    points += _INTENSITY_ENERGY[intensity]
    idle_minutes = idle_seconds / 60
    if idle_minutes >= 30:
        points -= 15
    elif idle_minutes >= 15:
        points -= 10
    return points


def fatigue_adjustment(session_seconds: float) -> float:
    hours = max(0.0, session_seconds) / 3600
    return -min(_FATIGUE_CAP, max(0.0, hours - _FATIGUE_GRACE_HOURS) * _FATIGUE_PER_HOUR)


def energy_level(
    *,
    hour: float,
    heart_rate: float | None,
    hr_baseline: float,
    flow_active: bool,
    intensity: IntensityLevel,
    idle_seconds: float,
    session_seconds: float,
) -> int:
    """Estimated energy 0–100: circadian baseline plus additive adjustments."""
    energy = (
        circadian_alertness(hour) * 100
        + heart_rate_adjustment(heart_rate, hr_baseline)
        + activity_adjustment(flow_active, intensity, idle_seconds)
        + fatigue_adjustment(session_seconds)
    )
    return int(_clamp(round(energy), 0, 100))
