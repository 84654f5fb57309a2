"""Duration alarm for postures that mean "away from the keyboard"."""

from __future__ import annotations

import structlog

from flowsense.models import PostureAlert, PostureState

logger = structlog.get_logger(__name__)

AWAY_POSTURES = frozenset({PostureState.ACTIVE, PostureState.WALKING})


class PostureAlertDetector:
    def __init__(self) -> None:
        self._started_at: float | None = None

    def duration(self, now: float) -> float:
        if self._started_at is None:
            return 0.0
        return max(0.0, now - self._started_at)

    def check(self, now: float, posture: PostureState, threshold_seconds: int) -> PostureAlert | None:
        if posture not in AWAY_POSTURES:
            self._started_at = None
            return None

        if self._started_at is None:
            self._started_at = now

        duration = now - self._started_at
        if duration < threshold_seconds:
            return None

        # Restart the timer so the alert repeats every threshold while it persists
        self._started_at = now
        logger.info("posture.alert", duration=duration, state=posture.value)
        return PostureAlert(duration=duration, state=posture, timestamp=now)
