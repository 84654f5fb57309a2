"""Flow-state detection — five-signal score with asymmetric hysteresis.

Every 30 ticks a score in [0, 100] is computed from:

=======================  ======  ===========================================
Signal                   Weight  Full marks when
=======================  ======  ===========================================
Typing consistency       35      ≥70 % of the last 300 s had rate > 1
Motion stillness         20      mean < 0.010 g and std < 0.005 g
Heart-rate stability     15      coefficient of variation < 5 %
Duration bonus           20      ≥25 min of continuous flow candidacy
Interruption penalty     −10     ≥300 s since the last edit
=======================  ======  ===========================================

Entering flow needs the last 4 scores ≥ 70 (two minutes); leaving needs
the last 2 scores < 50 (one minute).
"""

from __future__ import annotations

import statistics
from typing import Sequence

import structlog

from flowsense.buffers import FLOW_SCORE_CAPACITY, RingBuffer
from flowsense.detectors.intensity import MODERATE_G, SLIGHT_G
from flowsense.models import FlowState, FlowStateChange

logger = structlog.get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────

WEIGHT_TYPING_CONSISTENCY = 35
WEIGHT_MOTION_STILLNESS = 20
WEIGHT_HR_STABILITY = 15
WEIGHT_DURATION_BONUS = 20
WEIGHT_INTERRUPTION_PENALTY = 10

ENTER_THRESHOLD = 70
EXIT_THRESHOLD = 50
ENTER_COUNT = 4
EXIT_COUNT = 2
SCORE_INTERVAL_TICKS = 30

TYPING_WINDOW_SECONDS = 300
_TYPING_ACTIVE_RATE = 1.0
_TYPING_FULL_COVERAGE = 0.7

STILLNESS_WINDOW = 300
_MIN_STILLNESS_SAMPLES = 30
_STILL_STD_G = 0.005
_STILL_STD_ZERO_G = 0.025

HR_WINDOW = 60
_MIN_HR_SAMPLES = 10
_CV_FULL = 0.05
_CV_ZERO = 0.10

_BONUS_START_MINUTES = 10.0
_BONUS_FULL_MINUTES = 25.0
_PENALTY_FULL_SECONDS = 300.0

NEUTRAL_SCORE = 0.5


# ── Signals (each in [0, 1]) ─────────────────────────────────


def typing_consistency(editor_rates: Sequence[float]) -> float:
    window = list(editor_rates[-TYPING_WINDOW_SECONDS:])
    if not window:
        return 0.0
    active = sum(1 for r in window if r > _TYPING_ACTIVE_RATE)
    return min(1.0, active / (len(window) * _TYPING_FULL_COVERAGE))


def motion_stillness(magnitudes: Sequence[float], has_motion: bool) -> float:
    """Score near-constant low wrist motion; neutral without enough data."""
    window = list(magnitudes[-STILLNESS_WINDOW:])
    if not has_motion or len(window) < _MIN_STILLNESS_SAMPLES:
        return NEUTRAL_SCORE

    mean = statistics.fmean(window)
    std = statistics.pstdev(window)

    if mean < SLIGHT_G:
        mean_factor = 1.0
    else:
        mean_factor = max(0.0, 1.0 - (mean - SLIGHT_G) / (MODERATE_G - SLIGHT_G))
    if std < _STILL_STD_G:
        std_factor = 1.0
    else:
        std_factor = max(0.0, 1.0 - (std - _STILL_STD_G) / (_STILL_STD_ZERO_G - _STILL_STD_G))
    return mean_factor * std_factor


def heart_rate_stability(heart_rates: Sequence[float]) -> float:
    """Map the coefficient of variation of recent heart rate onto [0, 1]."""
    if len(heart_rates) < _MIN_HR_SAMPLES:
        return NEUTRAL_SCORE
    window = list(heart_rates[-HR_WINDOW:])
    mean = statistics.fmean(window)
    if mean <= 0:
        return 0.0
    cv = statistics.pstdev(window) / mean
    if cv < _CV_FULL:
        return 1.0
    if cv >= _CV_ZERO:
        return 0.0
    return (_CV_ZERO - cv) / (_CV_ZERO - _CV_FULL)


def duration_bonus(candidate_seconds: float) -> float:
    minutes = candidate_seconds / 60
    return max(0.0, min(1.0, (minutes - _BONUS_START_MINUTES) / (_BONUS_FULL_MINUTES - _BONUS_START_MINUTES)))


def interruption_penalty(idle_seconds: float) -> float:
    return max(0.0, min(1.0, idle_seconds / _PENALTY_FULL_SECONDS))


def flow_score(
    consistency: float,
    stillness: float,
    hr_stability: float,
    bonus: float,
    penalty: float,
) -> int:
    raw = (
        WEIGHT_TYPING_CONSISTENCY * consistency
        + WEIGHT_MOTION_STILLNESS * stillness
        + WEIGHT_HR_STABILITY * hr_stability
        + WEIGHT_DURATION_BONUS * bonus
        - WEIGHT_INTERRUPTION_PENALTY * penalty
    )
    return max(0, min(100, round(raw)))


# ── Hysteresis state machine ─────────────────────────────────


class FlowDetector:
    """Hold flow state and apply enter/exit hysteresis to periodic scores."""

    def __init__(self) -> None:
        self._active = False
        self._duration = 0.0
        self._candidate_since: float | None = None
        self._scores: RingBuffer[int] = RingBuffer(FLOW_SCORE_CAPACITY)

    @property
    def active(self) -> bool:
        return self._active

    @property
    def scores(self) -> list[int]:
        return list(self._scores)

    def state(self) -> FlowState:
        return FlowState(active=self._active, duration=self._duration)

    def candidate_seconds(self, now: float) -> float:
        if self._candidate_since is None:
            return 0.0
        return max(0.0, now - self._candidate_since)

    def extend(self, now: float) -> None:
        """Between scoring ticks, only the running duration moves."""
        if self._active and self._candidate_since is not None:
            self._duration = now - self._candidate_since

    def update(self, now: float, score: int) -> FlowStateChange | None:
        """Record *score* and return a change event on a transition edge."""
        self._scores.append(score)

        if not self._active:
            if score < ENTER_THRESHOLD:
                self._candidate_since = None
                return None
            if self._candidate_since is None:
                self._candidate_since = now
            recent = self._scores.tail(ENTER_COUNT)
            if len(recent) >= ENTER_COUNT and all(s >= ENTER_THRESHOLD for s in recent):
                self._active = True
                self._duration = now - self._candidate_since
                logger.info("flow.entered", score=score, duration=self._duration)
                return FlowStateChange(active=True, duration=self._duration, timestamp=now)
            return None

        self.extend(now)
        recent = self._scores.tail(EXIT_COUNT)
        if len(recent) >= EXIT_COUNT and all(s < EXIT_THRESHOLD for s in recent):
            duration = self._duration
            self._active = False
            self._duration = 0.0
            self._candidate_since = None
            logger.info("flow.exited", score=score, duration=duration)
            return FlowStateChange(active=False, duration=duration, timestamp=now)
        return None
