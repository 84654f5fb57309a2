"""Pydantic models shared by the inference engine, its detectors and subscribers.

All timestamps are epoch seconds as returned by the engine clock and all
durations are seconds.
"""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# ── Enums ─────────────────────────────────────────────────────


class IntensityLevel(str, Enum):
    """Discrete coding intensity, from wrist motion or editor activity."""

    IDLE = "idle"
    LIGHT = "light"
    MODERATE = "moderate"
    INTENSE = "intense"
    FURIOUS = "furious"


class PostureState(str, Enum):
    """Wrist posture derived from motion level and editor activity."""

    RESTING = "resting"
    TYPING = "typing"
    MOUSING = "mousing"
    ACTIVE = "active"
    WALKING = "walking"


class EventKind(str, Enum):
    """Subscription channels offered by the engine."""

    INTENSITY_CHANGE = "intensity_change"
    POSTURE_CHANGE = "posture_change"
    ANALYSIS_RESULT = "analysis_result"
    SEDENTARY_ALERT = "sedentary_alert"
    POSTURE_ALERT = "posture_alert"
    FLOW_STATE_CHANGE = "flow_state_change"
    HEART_RATE_ALERT = "heart_rate_alert"


class HeartRateAlertKind(str, Enum):
    HIGH = "high"
    LOW = "low"


# ── Input samples ─────────────────────────────────────────────
#
# Built at the ingestion boundary only; a ValidationError means the raw
# values were non-finite or physically impossible and the sample is dropped.


class MotionSample(BaseModel):
    """Gravity-removed wrist acceleration, in g."""

    model_config = ConfigDict(allow_inf_nan=False, frozen=True)

    x: float = Field(ge=-16.0, le=16.0)
    y: float = Field(ge=-16.0, le=16.0)
    z: float = Field(ge=-16.0, le=16.0)
    timestamp: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)


class EditorActivitySample(BaseModel):
    """Characters changed per second plus the time of the last edit."""

    model_config = ConfigDict(allow_inf_nan=False, frozen=True)

    chars_per_second: float = Field(ge=0.0, le=10_000.0)
    last_edit_time: float


class HeartRateSample(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False, frozen=True)

    bpm: float = Field(ge=20.0, le=300.0)
    timestamp: float


class StepCountSample(BaseModel):
    """Cumulative step count reported by the wearable."""

    model_config = ConfigDict(allow_inf_nan=False, frozen=True)

    count: int = Field(ge=0)


# ── Configuration ─────────────────────────────────────────────


class MotionConfig(BaseModel):
    """Hot-swappable engine configuration.

    The ``show_*`` toggles are display preferences owned by the
    presentation layer; the engine carries them through untouched.
    """

    enable_motion: bool = True
    sedentary_minutes: int = Field(30, ge=1)
    posture_alert_seconds: int = Field(60, ge=1)
    show_coding_intensity: bool = True
    show_flow_state: bool = True
    show_slacking_index: bool = True
    alert_high_bpm: int = Field(150, ge=1)
    alert_low_bpm: int = Field(50, ge=1)
    alert_cooldown_seconds: int = Field(60, ge=0)


# ── Output snapshot ───────────────────────────────────────────


class FlowState(BaseModel):
    active: bool = False
    duration: float = 0.0


class HeartRateStats(BaseModel):
    """Summary of the retained heart-rate history."""

    current: float
    min: float
    max: float
    avg: float
    samples: int


class AnalysisResult(BaseModel):
    """Aggregated per-tick snapshot; the engine keeps only the latest one."""

    timestamp: float
    coding_intensity: IntensityLevel
    posture: PostureState
    flow_state: FlowState
    slacking_index: int = Field(ge=0, le=100)
    energy_level: int = Field(ge=0, le=100)
    posture_alert_duration: float = 0.0
    sedentary_duration: float = 0.0
    compat_mode: bool = True
    hr_baseline: float | None = None
    heart_rate: HeartRateStats | None = None


# ── Events ────────────────────────────────────────────────────


class IntensityChange(BaseModel):
    level: IntensityLevel
    timestamp: float


class PostureChange(BaseModel):
    posture: PostureState
    timestamp: float


class SedentaryAlert(BaseModel):
    """Fired when the wearer has been inactive for the configured bout."""

    duration: float
    high_heart_rate: bool
    timestamp: float


class PostureAlert(BaseModel):
    """Fired when an away-from-work posture has persisted too long."""

    duration: float
    state: PostureState
    timestamp: float


class FlowStateChange(BaseModel):
    active: bool
    duration: float
    timestamp: float


class HeartRateAlert(BaseModel):
    kind: HeartRateAlertKind
    bpm: float
    threshold: float
    timestamp: float
