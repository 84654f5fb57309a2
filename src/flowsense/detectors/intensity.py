"""Coding-intensity classification from acceleration magnitude and editor activity."""

from __future__ import annotations

import statistics
from typing import Sequence

from flowsense.models import IntensityLevel

# ── Constants ─────────────────────────────────────────────────

# Acceleration-magnitude tiers (g).  The comparison direction matters:
# every tier is "strictly below the next threshold".
NOISE_G = 0.004
SLIGHT_G = 0.010
MODERATE_G = 0.035
VIGOROUS_G = 0.100

# Number of most recent magnitude samples averaged per tick
INTENSITY_WINDOW = 3

# Editor activity: a second counts as "active" above this rate (chars/s)
EDITOR_ACTIVE_RATE = 0.5
EDITOR_WINDOW_SECONDS = 8

# Quiet wrist but busy editor → bump the motion tier
_BUMP_ACTIVE_RATIO = 0.3
_BUMP_MODERATE_RATE = 10.0
_BUMP_LIGHT_RATE = 3.0


# ── Shared helpers ────────────────────────────────────────────


def recent_mean(values: Sequence[float], count: int) -> float | None:
    """Mean of the newest *count* values, or ``None`` when empty."""
    window = list(values[-count:]) if count > 0 else []
    if not window:
        return None
    return statistics.fmean(window)


def editor_active_ratio(rates: Sequence[float]) -> float:
    """Fraction of per-second editor rates above :data:`EDITOR_ACTIVE_RATE`."""
    if not rates:
        return 0.0
    return sum(1 for r in rates if r > EDITOR_ACTIVE_RATE) / len(rates)


# ── Classifiers ───────────────────────────────────────────────


def classify_from_motion(mean_magnitude: float) -> IntensityLevel:
    if mean_magnitude < NOISE_G:
        return IntensityLevel.IDLE
    if mean_magnitude < SLIGHT_G:
        return IntensityLevel.LIGHT
    if mean_magnitude < MODERATE_G:
        return IntensityLevel.MODERATE
    if mean_magnitude < VIGOROUS_G:
        return IntensityLevel.INTENSE
    return IntensityLevel.FURIOUS


def classify_from_editor(chars_per_second: float) -> IntensityLevel:
    """Compatibility fallback used when no motion sample has ever arrived."""
    if chars_per_second < 1:
        return IntensityLevel.IDLE
    if chars_per_second < 5:
        return IntensityLevel.LIGHT
    if chars_per_second < 15:
        return IntensityLevel.MODERATE
    if chars_per_second < 30:
        return IntensityLevel.INTENSE
    return IntensityLevel.FURIOUS


def classify_intensity(
    magnitudes: Sequence[float],
    editor_rates: Sequence[float],
    current_rate: float,
    has_motion: bool,
) -> IntensityLevel:
    """Classify the current coding intensity.

    Parameters
    ----------
    magnitudes
        Recent acceleration magnitudes, oldest first.
    editor_rates
        Per-tick editor rates, oldest first.
    current_rate
        Latest editor rate, used in compatibility mode.
    has_motion
        Whether any motion sample was ever accepted.
    """
    if not has_motion:
        return classify_from_editor(current_rate)

    mean_magnitude = recent_mean(magnitudes, INTENSITY_WINDOW)
    if mean_magnitude is None:
        return IntensityLevel.IDLE

    level = classify_from_motion(mean_magnitude)
    if level not in (IntensityLevel.IDLE, IntensityLevel.LIGHT):
        return level

    # The wrist barely moves but the editor says work is happening
    recent_rates = list(editor_rates[-EDITOR_WINDOW_SECONDS:])
    if editor_active_ratio(recent_rates) > _BUMP_ACTIVE_RATIO:
        average_rate = statistics.fmean(recent_rates)
        if average_rate > _BUMP_MODERATE_RATE:
            return IntensityLevel.MODERATE
        if average_rate > _BUMP_LIGHT_RATE:
            return IntensityLevel.LIGHT
    return level
