"""Wrist posture classification and the sustained-motion (walking) detector."""

from __future__ import annotations

from typing import Sequence

from flowsense.detectors.intensity import (
    EDITOR_ACTIVE_RATE,
    EDITOR_WINDOW_SECONDS,
    INTENSITY_WINDOW,
    MODERATE_G,
    SLIGHT_G,
    editor_active_ratio,
    recent_mean,
)
from flowsense.models import PostureState

WALKING_G = 0.08
WALKING_SUSTAIN_SECONDS = 3.0

_TYPING_ACTIVE_RATIO = 0.2
_COMPAT_RECENT_EDIT_SECONDS = 8.0


class SustainedMotionDetector:
    """Track how long per-sample magnitude has stayed above a threshold.

    Uses the samples' own timestamps, so producer jitter relative to the
    tick does not shorten or stretch the sustain window.
    """

    def __init__(
        self,
        threshold: float = WALKING_G,
        min_duration: float = WALKING_SUSTAIN_SECONDS,
    ) -> None:
        self._threshold = threshold
        self._min_duration = min_duration
        self._started_at: float | None = None
        self._last_seen_at: float | None = None

    def feed(self, magnitude: float, timestamp: float) -> None:
        if magnitude > self._threshold:
            if self._started_at is None:
                self._started_at = timestamp
            self._last_seen_at = timestamp
        else:
            self._started_at = None
            self._last_seen_at = None

    @property
    def sustained_seconds(self) -> float:
        if self._started_at is None or self._last_seen_at is None:
            return 0.0
        return max(0.0, self._last_seen_at - self._started_at)

    def is_sustained(self) -> bool:
        return self._started_at is not None and self.sustained_seconds >= self._min_duration


def classify_posture(
    magnitudes: Sequence[float],
    editor_rates: Sequence[float],
    *,
    has_motion: bool,
    sustained_motion: bool,
    current_rate: float,
    seconds_since_edit: float,
) -> PostureState:
    """Classify wrist posture, highest-priority rule first."""
    if not has_motion:
        if current_rate > EDITOR_ACTIVE_RATE or seconds_since_edit <= _COMPAT_RECENT_EDIT_SECONDS:
            return PostureState.TYPING
        return PostureState.RESTING

    if sustained_motion:
        return PostureState.WALKING

    mean_magnitude = recent_mean(magnitudes, INTENSITY_WINDOW) or 0.0
    if mean_magnitude > MODERATE_G:
        return PostureState.ACTIVE

    typing = editor_active_ratio(list(editor_rates[-EDITOR_WINDOW_SECONDS:])) > _TYPING_ACTIVE_RATIO
    if typing:
        return PostureState.TYPING
    if mean_magnitude > SLIGHT_G:
        return PostureState.MOUSING
    return PostureState.RESTING
