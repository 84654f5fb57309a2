"""Inference engine: owns every buffer and detector and runs the 1 Hz tick.

Producers call the ``submit_*`` methods from any thread; those only
validate and append.  :meth:`InferenceEngine.tick` is the single place
derived state changes.  It computes under the engine lock, then delivers
the collected events after releasing it, so subscribers may call back
into the engine.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime
from typing import Any, Callable, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from flowsense.buffers import SampleBuffers
from flowsense.config import get_settings
from flowsense.detectors.flow import (
    SCORE_INTERVAL_TICKS,
    FlowDetector,
    duration_bonus,
    flow_score,
    heart_rate_stability,
    interruption_penalty,
    motion_stillness,
    typing_consistency,
)
from flowsense.detectors.heart_rate import HeartRateAlertDetector, HeartRateBaseline, heart_rate_stats
from flowsense.detectors.intensity import classify_intensity
from flowsense.detectors.posture import SustainedMotionDetector, classify_posture
from flowsense.detectors.posture_alert import PostureAlertDetector
from flowsense.detectors.sedentary import SedentaryDetector, is_inactive_epoch
from flowsense.events import EventBus, Subscriber
from flowsense.metrics import energy_level, slacking_index
from flowsense.models import (
    AnalysisResult,
    EditorActivitySample,
    EventKind,
    HeartRateSample,
    IntensityChange,
    IntensityLevel,
    MotionConfig,
    MotionSample,
    PostureChange,
    PostureState,
    StepCountSample,
)
from flowsense.scheduler import TickScheduler

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

# A step-count delta of at least this many steps counts as activity
STEP_ACTIVITY_THRESHOLD = 5

_BASELINE_INTENSITIES = (IntensityLevel.IDLE, IntensityLevel.LIGHT)


class InferenceEngine:
    """Behavioural-state inference over motion, heart-rate, step and editor signals.

    Parameters
    ----------
    config : MotionConfig | None
        Initial configuration; defaults come from :func:`get_settings`.
    clock : Callable[[], float]
        Returns the current time in epoch seconds.  Every timestamp the
        engine records comes from this one clock.
    auto_tick : bool
        When ``True`` the engine drives itself with a :class:`TickScheduler`
        on the running asyncio loop while enabled.  With ``False`` the host
        calls :meth:`tick` itself (replay, tests).
    tick_interval : float | None
        Seconds between automatic ticks; defaults to the settings value.
    """

    def __init__(
        self,
        config: MotionConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        auto_tick: bool = True,
        tick_interval: float | None = None,
    ) -> None:
        if config is None or (auto_tick and tick_interval is None):
            settings = get_settings()
            config = config or settings.motion_config()
            tick_interval = tick_interval or settings.tick_interval_seconds

        self._config = config
        self._clock = clock
        self._lock = threading.Lock()
        self._bus = EventBus()
        self._buffers = SampleBuffers()

        started_at = clock()
        self._session_started_at = started_at
        self._has_motion = False
        self._current_rate = 0.0
        self._last_edit_time = started_at
        self._last_step_count: int | None = None
        self._last_heart_rate: float | None = None
        self._unchecked_heart_rate: float | None = None

        self._hr_baseline = HeartRateBaseline()
        self._sustained_motion = SustainedMotionDetector()
        self._sedentary = SedentaryDetector(started_at)
        self._posture_alert = PostureAlertDetector()
        self._flow = FlowDetector()
        self._hr_alerts = HeartRateAlertDetector()

        self._intensity = IntensityLevel.IDLE
        self._posture = PostureState.RESTING
        self._tick_count = 0
        self._latest: AnalysisResult | None = None
        self._disposed = False

        self._scheduler = TickScheduler(self.tick, tick_interval) if auto_tick else None
        if config.enable_motion:
            self.start()

    # ── Lifecycle ─────────────────────────────────────────────

    def start(self) -> None:
        """Start automatic ticking if enabled; a no-op when already running.

        Outside a running event loop the scheduler cannot start; the engine
        logs a warning and the host may call :meth:`start` again later.
        """
        if self._scheduler is None or self._disposed or not self._config.enable_motion:
            return
        try:
            self._scheduler.start()
        except RuntimeError:
            logger.warning("engine.tick_deferred", reason="no running event loop")

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.stop()

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.is_running

    @property
    def config(self) -> MotionConfig:
        return self._config

    def update_config(self, config: MotionConfig) -> None:
        """Swap the configuration; start or stop the tick to match ``enable_motion``."""
        with self._lock:
            if self._disposed:
                return
            previous = self._config
            self._config = config

        if config.enable_motion and not previous.enable_motion:
            logger.info("engine.enabled")
        elif previous.enable_motion and not config.enable_motion:
            logger.info("engine.disabled")
        logger.debug(
            "engine.config_updated",
            sedentary_minutes=config.sedentary_minutes,
            posture_alert_seconds=config.posture_alert_seconds,
        )

        if config.enable_motion:
            self.start()
        else:
            self.stop()

    def dispose(self) -> None:
        """Stop ticking, drop subscribers and buffers.  Safe to call repeatedly."""
        self.stop()
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            self._buffers.clear()
        self._bus.clear()
        logger.info("engine.disposed", ticks=self._tick_count)

    # ── Ingestion ─────────────────────────────────────────────

    def submit_motion(self, x: float, y: float, z: float, timestamp: float | None = None) -> bool:
        """Ingest one gravity-removed acceleration vector (g).  Return ``True`` if accepted."""
        with self._lock:
            if not self._accepting():
                return False
            sample = self._validate(
                MotionSample,
                x=x,
                y=y,
                z=z,
                timestamp=self._clock() if timestamp is None else timestamp,
            )
            if sample is None:
                return False

            if not self._has_motion:
                self._has_motion = True
                logger.info("engine.motion_detected")

            magnitude = sample.magnitude
            self._buffers.magnitudes.append(magnitude)
            self._buffers.inactive_epochs.append(is_inactive_epoch(magnitude))
            self._sustained_motion.feed(magnitude, sample.timestamp)
            return True

    def submit_editor_activity(self, chars_per_second: float, last_edit_time: float | None = None) -> bool:
        """Ingest the editor's current rate (chars/s) and last-edit time.

        Without an explicit *last_edit_time*, a positive rate stamps the
        edit at the current time and a zero rate keeps the previous one.
        """
        with self._lock:
            if not self._accepting():
                return False
            now = self._clock()
            sample = self._validate(
                EditorActivitySample,
                chars_per_second=chars_per_second,
                last_edit_time=now if last_edit_time is None else last_edit_time,
            )
            if sample is None:
                return False

            self._current_rate = sample.chars_per_second
            if last_edit_time is not None or sample.chars_per_second > 0:
                self._last_edit_time = sample.last_edit_time
            if sample.chars_per_second > 0:
                self._sedentary.mark_active(now)
            return True

    def submit_step_count(self, count: int) -> bool:
        """Ingest a cumulative step count; only deltas matter."""
        with self._lock:
            if not self._accepting():
                return False
            sample = self._validate(StepCountSample, count=count)
            if sample is None:
                return False

            previous, self._last_step_count = self._last_step_count, sample.count
            if previous is None or sample.count < previous:
                # First reading or a device-side counter reset: rebase only
                return True
            if sample.count - previous >= STEP_ACTIVITY_THRESHOLD:
                self._sedentary.mark_active(self._clock())
            return True

    def submit_heart_rate(self, bpm: float) -> bool:
        with self._lock:
            if not self._accepting():
                return False
            sample = self._validate(HeartRateSample, bpm=bpm, timestamp=self._clock())
            if sample is None:
                return False

            self._last_heart_rate = sample.bpm
            self._unchecked_heart_rate = sample.bpm
            self._buffers.heart_rates.append(sample.bpm)
            # Track the personal baseline only while the wearer is at rest
            if self._intensity in _BASELINE_INTENSITIES:
                self._hr_baseline.update(sample.bpm)
            return True

    # ── Output ────────────────────────────────────────────────

    def get_latest_result(self) -> AnalysisResult | None:
        with self._lock:
            return self._latest

    def is_compat_mode(self) -> bool:
        """``True`` until the first motion sample has been accepted."""
        with self._lock:
            return not self._has_motion

    def subscribe(self, kind: EventKind | str, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for an event kind; return an unsubscribe function."""
        return self._bus.subscribe(kind, callback)

    @property
    def hr_baseline(self) -> float:
        with self._lock:
            return self._hr_baseline.value

    # ── Tick ──────────────────────────────────────────────────

    def tick(self) -> AnalysisResult | None:
        """Recompute every detector once and publish the resulting events.

        Returns the new snapshot, or ``None`` while disabled or disposed.
        """
        with self._lock:
            if self._disposed or not self._config.enable_motion:
                return None
            events = self._analyze(self._clock())
            result = self._latest

        for kind, payload in events:
            self._bus.publish(kind, payload)
        return result

    def _analyze(self, now: float) -> list[tuple[EventKind, Any]]:
        events: list[tuple[EventKind, Any]] = []
        config = self._config
        buffers = self._buffers
        self._tick_count += 1

        # A stalled producer keeps its last rate
        buffers.editor_rates.append(self._current_rate)
        magnitudes = buffers.magnitudes.tail(buffers.magnitudes.capacity)
        editor_rates = buffers.editor_rates.tail(buffers.editor_rates.capacity)
        seconds_since_edit = max(0.0, now - self._last_edit_time)

        # 1. Coding intensity
        intensity = classify_intensity(magnitudes, editor_rates, self._current_rate, self._has_motion)
        if intensity is not self._intensity:
            logger.info("engine.intensity_changed", previous=self._intensity.value, level=intensity.value)
            self._intensity = intensity
            events.append((EventKind.INTENSITY_CHANGE, IntensityChange(level=intensity, timestamp=now)))

        # 2. Posture
        posture = classify_posture(
            magnitudes,
            editor_rates,
            has_motion=self._has_motion,
            sustained_motion=self._sustained_motion.is_sustained(),
            current_rate=self._current_rate,
            seconds_since_edit=seconds_since_edit,
        )
        if posture is not self._posture:
            logger.info("engine.posture_changed", previous=self._posture.value, posture=posture.value)
            self._posture = posture
            events.append((EventKind.POSTURE_CHANGE, PostureChange(posture=posture, timestamp=now)))

        # 3. Sedentary bout
        sedentary_alert = self._sedentary.check(
            now,
            sedentary_minutes=config.sedentary_minutes,
            epochs=buffers.inactive_epochs.tail(config.sedentary_minutes * 60),
            magnitudes=magnitudes,
            has_motion=self._has_motion,
            heart_rate=self._last_heart_rate,
        )
        if sedentary_alert is not None:
            events.append((EventKind.SEDENTARY_ALERT, sedentary_alert))

        # 4. Away-from-work posture
        posture_alert = self._posture_alert.check(now, posture, config.posture_alert_seconds)
        if posture_alert is not None:
            events.append((EventKind.POSTURE_ALERT, posture_alert))

        # 5. Heart-rate thresholds, once per fresh reading
        if self._unchecked_heart_rate is not None:
            for alert in self._hr_alerts.check(now, self._unchecked_heart_rate, config):
                events.append((EventKind.HEART_RATE_ALERT, alert))
            self._unchecked_heart_rate = None

        # 6. Flow state, rescored every SCORE_INTERVAL_TICKS ticks
        if self._tick_count % SCORE_INTERVAL_TICKS == 0:
            score = self._flow_score(now, magnitudes, editor_rates, seconds_since_edit)
            logger.debug("engine.flow_scored", score=score, tick=self._tick_count)
            change = self._flow.update(now, score)
            if change is not None:
                events.append((EventKind.FLOW_STATE_CHANGE, change))
        else:
            self._flow.extend(now)

        # 7. Aggregated snapshot
        self._latest = self._build_result(now, editor_rates, seconds_since_edit)
        events.append((EventKind.ANALYSIS_RESULT, self._latest))
        return events

    def _flow_score(
        self,
        now: float,
        magnitudes: list[float],
        editor_rates: list[float],
        seconds_since_edit: float,
    ) -> int:
        return flow_score(
            consistency=typing_consistency(editor_rates),
            stillness=motion_stillness(magnitudes, self._has_motion),
            hr_stability=heart_rate_stability(self._buffers.heart_rates.tail(self._buffers.heart_rates.capacity)),
            bonus=duration_bonus(self._flow.candidate_seconds(now)),
            penalty=interruption_penalty(seconds_since_edit),
        )

    def _build_result(self, now: float, editor_rates: list[float], seconds_since_edit: float) -> AnalysisResult:
        sedentary_seconds = self._sedentary.sedentary_seconds(now)
        flow_state = self._flow.state()
        local_time = datetime.fromtimestamp(now)

        return AnalysisResult(
            timestamp=now,
            coding_intensity=self._intensity,
            posture=self._posture,
            flow_state=flow_state,
            slacking_index=slacking_index(
                editor_rates=editor_rates,
                posture=self._posture,
                has_motion=self._has_motion,
                sedentary_seconds=sedentary_seconds,
                editor_idle_seconds=seconds_since_edit,
                flow_active=flow_state.active,
                intensity=self._intensity,
            ),
            energy_level=energy_level(
                hour=local_time.hour + local_time.minute / 60,
                heart_rate=self._last_heart_rate,
                hr_baseline=self._hr_baseline.value,
                flow_active=flow_state.active,
                intensity=self._intensity,
                idle_seconds=sedentary_seconds,
                session_seconds=now - self._session_started_at,
            ),
            posture_alert_duration=self._posture_alert.duration(now),
            sedentary_duration=sedentary_seconds,
            compat_mode=not self._has_motion,
            hr_baseline=round(self._hr_baseline.value, 2),
            heart_rate=heart_rate_stats(self._buffers.heart_rates.tail(self._buffers.heart_rates.capacity)),
        )

    # ── Internal ──────────────────────────────────────────────

    def _accepting(self) -> bool:
        return not self._disposed and self._config.enable_motion

    @staticmethod
    def _validate(model: type[M], **values: Any) -> M | None:
        try:
            return model(**values)
        except ValidationError as exc:
            logger.debug("ingest.dropped", sample=model.__name__, errors=exc.error_count())
            return None
