"""Heart-rate helpers: personal baseline, history statistics and bpm alerts."""

from __future__ import annotations

import statistics
from typing import Sequence

import structlog

from flowsense.models import HeartRateAlert, HeartRateAlertKind, HeartRateStats, MotionConfig

logger = structlog.get_logger(__name__)

DEFAULT_BASELINE_BPM = 70.0
BASELINE_ALPHA = 0.01


class HeartRateBaseline:
    """Slow exponential moving average of resting heart rate."""

    def __init__(self, initial: float = DEFAULT_BASELINE_BPM, alpha: float = BASELINE_ALPHA) -> None:
        self._value = initial
        self._alpha = alpha

    @property
    def value(self) -> float:
        return self._value

    def update(self, bpm: float) -> float:
        self._value = self._alpha * bpm + (1 - self._alpha) * self._value
        return self._value


def heart_rate_stats(history: Sequence[float]) -> HeartRateStats | None:
    if not history:
        return None
    return HeartRateStats(
        current=history[-1],
        min=min(history),
        max=max(history),
        avg=round(statistics.fmean(history), 1),
        samples=len(history),
    )


class HeartRateAlertDetector:
    """High / low bpm alerts, each kind with its own cooldown."""

    def __init__(self) -> None:
        self._high_paused_until = 0.0
        self._low_paused_until = 0.0

    def check(self, now: float, bpm: float, config: MotionConfig) -> list[HeartRateAlert]:
        alerts: list[HeartRateAlert] = []
        cooldown = config.alert_cooldown_seconds

        if bpm >= config.alert_high_bpm and now > self._high_paused_until:
            self._high_paused_until = now + cooldown
            alerts.append(
                HeartRateAlert(
                    kind=HeartRateAlertKind.HIGH,
                    bpm=bpm,
                    threshold=config.alert_high_bpm,
                    timestamp=now,
                )
            )

        if bpm <= config.alert_low_bpm and now > self._low_paused_until:
            self._low_paused_until = now + cooldown
            alerts.append(
                HeartRateAlert(
                    kind=HeartRateAlertKind.LOW,
                    bpm=bpm,
                    threshold=config.alert_low_bpm,
                    timestamp=now,
                )
            )

        for alert in alerts:
            logger.info("heart_rate.alert", kind=alert.kind.value, bpm=bpm, threshold=alert.threshold)
        return alerts
