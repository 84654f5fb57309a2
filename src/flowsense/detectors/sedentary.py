"""Bout-based sedentary detection with activity-break validation.

An *epoch* is one accepted motion sample (1 Hz producer); it is
*inactive* when its magnitude is below :data:`INACTIVE_G`.  A sedentary
bout is a trailing window of ``sedentary_minutes × 60`` epochs of which
at least 90 % are inactive, so brief fidgeting does not break it.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from flowsense.models import SedentaryAlert

logger = structlog.get_logger(__name__)

INACTIVE_G = 0.008

# Activity break: a trailing minute that is mostly real movement
BREAK_WINDOW_EPOCHS = 60
_BREAK_ACTIVE_RATIO = 0.80
_BREAK_MAGNITUDE_G = 0.03
_BREAK_HIGH_RATIO = 0.80

_BOUT_INACTIVE_RATIO = 0.90
HIGH_HEART_RATE_BPM = 100.0


def is_inactive_epoch(magnitude: float) -> bool:
    return magnitude < INACTIVE_G


def is_activity_break(epochs: Sequence[bool], magnitudes: Sequence[float]) -> bool:
    """Return ``True`` when the trailing minute is a genuine activity break.

    *epochs* and *magnitudes* must be aligned (same sample per index).
    At least 80 % of the epochs must be active and, among those active
    epochs, at least 80 % must exceed :data:`_BREAK_MAGNITUDE_G`.
    """
    if len(epochs) < BREAK_WINDOW_EPOCHS or len(magnitudes) < BREAK_WINDOW_EPOCHS:
        return False
    recent_epochs = list(epochs[-BREAK_WINDOW_EPOCHS:])
    recent_magnitudes = list(magnitudes[-BREAK_WINDOW_EPOCHS:])

    active = [m for inactive, m in zip(recent_epochs, recent_magnitudes) if not inactive]
    if len(active) / BREAK_WINDOW_EPOCHS < _BREAK_ACTIVE_RATIO:
        return False
    high = sum(1 for m in active if m > _BREAK_MAGNITUDE_G)
    return high / len(active) >= _BREAK_HIGH_RATIO


class SedentaryDetector:
    """Inactivity tracker with alert cooldown.

    Raising an alert does not reset the last-active timestamp: while the
    wearer stays put, alerts repeat once per cooldown window.
    """

    def __init__(self, started_at: float) -> None:
        self._last_active_at = started_at
        self._last_alert_at: float | None = None

    @property
    def last_active_at(self) -> float:
        return self._last_active_at

    @property
    def last_alert_at(self) -> float | None:
        return self._last_alert_at

    def mark_active(self, now: float) -> None:
        self._last_active_at = now

    def sedentary_seconds(self, now: float) -> float:
        return max(0.0, now - self._last_active_at)

    def check(
        self,
        now: float,
        *,
        sedentary_minutes: int,
        epochs: Sequence[bool],
        magnitudes: Sequence[float],
        has_motion: bool,
        heart_rate: float | None,
    ) -> SedentaryAlert | None:
        """Run one tick of sedentary detection; return an alert if one fires."""
        threshold_seconds = sedentary_minutes * 60

        if self._last_alert_at is not None and now - self._last_alert_at < threshold_seconds:
            return None

        if not has_motion:
            if now - self._last_active_at >= threshold_seconds:
                return self._fire(now, heart_rate)
            return None

        if is_activity_break(epochs, magnitudes):
            logger.debug("sedentary.activity_break", at=now)
            self.mark_active(now)
            return None

        if len(epochs) >= threshold_seconds:
            bout = list(epochs[-threshold_seconds:])
            inactive_ratio = sum(1 for inactive in bout if inactive) / len(bout)
            if inactive_ratio >= _BOUT_INACTIVE_RATIO:
                return self._fire(now, heart_rate)
        return None

    def _fire(self, now: float, heart_rate: float | None) -> SedentaryAlert:
        self._last_alert_at = now
        alert = SedentaryAlert(
            duration=self.sedentary_seconds(now),
            high_heart_rate=heart_rate is not None and heart_rate >= HIGH_HEART_RATE_BPM,
            timestamp=now,
        )
        logger.info(
            "sedentary.alert",
            duration=alert.duration,
            high_heart_rate=alert.high_heart_rate,
        )
        return alert
