"""End-to-end tests for the inference engine, driven by a fake clock."""

from __future__ import annotations

import math

import pytest

from flowsense.models import (
    EventKind,
    HeartRateAlertKind,
    IntensityLevel,
    MotionConfig,
    PostureState,
)


# ── Classification ───────────────────────────────────────────


class TestClassification:
    def test_idle_resting_wrist(self, engine):
        for _ in range(200):
            assert engine.submit_motion(0.001, 0.0, 0.0)
        for _ in range(3):
            result = engine.tick()

        assert result.coding_intensity == IntensityLevel.IDLE
        assert result.posture == PostureState.RESTING
        assert result.compat_mode is False

    def test_quiet_wrist_busy_editor(self, engine, simulate):
        result = simulate(engine, 10, magnitude=0.002, rate=12.0)[-1]
        assert result.coding_intensity in (IntensityLevel.LIGHT, IntensityLevel.MODERATE)
        assert result.posture == PostureState.TYPING

    def test_compat_mode_follows_editor(self, engine, simulate):
        result = simulate(engine, 3, rate=20.0)[-1]
        assert engine.is_compat_mode()
        assert result.compat_mode is True
        assert result.coding_intensity == IntensityLevel.INTENSE
        assert result.posture == PostureState.TYPING

    def test_zero_rate_keeps_last_edit_time(self, engine, simulate):
        assert simulate(engine, 1, rate=5.0)[-1].posture == PostureState.TYPING
        assert simulate(engine, 8, rate=0.0)[-1].posture == PostureState.TYPING
        assert simulate(engine, 1, rate=0.0)[-1].posture == PostureState.RESTING

    def test_intensity_events_only_on_change(self, engine, simulate, recorder):
        levels = recorder(engine, EventKind.INTENSITY_CHANGE)
        postures = recorder(engine, EventKind.POSTURE_CHANGE)

        simulate(engine, 5, magnitude=0.001)
        simulate(engine, 5, magnitude=0.05)

        assert [e.level for e in levels] == [IntensityLevel.MODERATE, IntensityLevel.INTENSE]
        assert [e.posture for e in postures] == [PostureState.MOUSING, PostureState.ACTIVE]


# ── Sedentary ────────────────────────────────────────────────


class TestSedentary:
    def test_half_hour_bout_alerts_twice_in_an_hour(self, make_engine, simulate, recorder):
        engine = make_engine(sedentary_minutes=30)
        alerts = recorder(engine, EventKind.SEDENTARY_ALERT)

        results = simulate(engine, 3600, magnitude=0.001)

        assert [a.timestamp for a in alerts] == [results[1799].timestamp, results[3599].timestamp]
        assert alerts[0].duration == pytest.approx(1800.0)
        assert alerts[1].duration == pytest.approx(3600.0)

    def test_compat_mode_alerts_on_elapsed_time(self, make_engine, simulate, recorder):
        engine = make_engine(sedentary_minutes=1)
        alerts = recorder(engine, EventKind.SEDENTARY_ALERT)

        simulate(engine, 120)

        assert [a.duration for a in alerts] == [pytest.approx(60.0), pytest.approx(120.0)]

    def test_activity_break_resets_bout(self, make_engine, simulate, recorder):
        engine = make_engine(sedentary_minutes=1)
        alerts = recorder(engine, EventKind.SEDENTARY_ALERT)

        simulate(engine, 60, magnitude=0.001)
        assert len(alerts) == 1

        result = simulate(engine, 60, magnitude=0.05)[-1]
        assert result.sedentary_duration == 0.0
        assert len(alerts) == 1

    def test_step_delta_marks_active(self, engine, simulate):
        simulate(engine, 10)

        # The first reading only sets the reference
        assert engine.submit_step_count(100)
        assert engine.tick().sedentary_duration == pytest.approx(10.0)

        assert engine.submit_step_count(103)
        assert engine.tick().sedentary_duration == pytest.approx(10.0)

        assert engine.submit_step_count(110)
        assert engine.tick().sedentary_duration == 0.0

        simulate(engine, 5)
        # A lower count is a device-side reset and rebases silently
        assert engine.submit_step_count(50)
        assert engine.tick().sedentary_duration == pytest.approx(5.0)


# ── Posture alert ────────────────────────────────────────────


class TestPostureAlert:
    def test_walking_alert_repeats(self, make_engine, simulate, recorder):
        engine = make_engine(posture_alert_seconds=5)
        alerts = recorder(engine, EventKind.POSTURE_ALERT)

        results = simulate(engine, 11, magnitude=0.1)

        assert [r.posture for r in results[:4]] == [PostureState.ACTIVE] * 3 + [PostureState.WALKING]
        assert [a.timestamp for a in alerts] == [results[5].timestamp, results[10].timestamp]
        assert alerts[0].duration == pytest.approx(5.0)
        assert alerts[0].state == PostureState.WALKING


# ── Flow ─────────────────────────────────────────────────────


class TestFlow:
    def test_enter_and_exit(self, engine, simulate, recorder):
        changes = recorder(engine, EventKind.FLOW_STATE_CHANGE)

        results = simulate(engine, 120, magnitude=0.002, rate=12.0, bpm=70.0)
        assert len(changes) == 1
        assert changes[0].active is True
        assert changes[0].duration == pytest.approx(90.0)
        assert changes[0].timestamp == results[-1].timestamp
        assert results[-1].flow_state.active is True
        assert not any(r.flow_state.active for r in results[:-1])

        results = simulate(
            engine,
            60,
            magnitude=0.5,
            rate=12.0,
            bpm=lambda i: 50.0 if i % 2 else 150.0,
        )
        assert len(changes) == 2
        assert changes[1].active is False
        assert changes[1].duration == pytest.approx(150.0)
        assert results[-1].flow_state.active is False
        assert results[-2].flow_state.duration == pytest.approx(149.0)

    def test_no_flow_without_editor_activity(self, engine, simulate, recorder):
        changes = recorder(engine, EventKind.FLOW_STATE_CHANGE)
        simulate(engine, 240, magnitude=0.002, bpm=70.0)
        assert changes == []


# ── Heart rate ───────────────────────────────────────────────


class TestHeartRate:
    def test_high_alert_once_per_cooldown(self, engine, simulate, recorder):
        alerts = recorder(engine, EventKind.HEART_RATE_ALERT)
        simulate(engine, 62, bpm=160.0)
        assert [a.kind for a in alerts] == [HeartRateAlertKind.HIGH] * 2

    def test_low_alert(self, engine, simulate, recorder):
        alerts = recorder(engine, EventKind.HEART_RATE_ALERT)
        simulate(engine, 1, bpm=45.0)
        assert [a.kind for a in alerts] == [HeartRateAlertKind.LOW]

    def test_reading_is_checked_once(self, engine, clock, recorder):
        alerts = recorder(engine, EventKind.HEART_RATE_ALERT)
        engine.submit_heart_rate(160.0)
        engine.tick()
        clock.advance(120.0)
        engine.tick()
        assert len(alerts) == 1

    def test_baseline_tracks_only_at_rest(self, engine, simulate):
        assert engine.submit_heart_rate(80.0)
        assert engine.hr_baseline == pytest.approx(70.1)

        simulate(engine, 3, magnitude=0.05)
        assert engine.get_latest_result().coding_intensity == IntensityLevel.INTENSE
        assert engine.submit_heart_rate(180.0)
        assert engine.hr_baseline == pytest.approx(70.1)

    def test_snapshot_carries_stats(self, engine, simulate):
        result = simulate(engine, 3, bpm=lambda i: 60.0 + 10 * i)[-1]
        assert result.heart_rate is not None
        assert result.heart_rate.current == 80.0
        assert result.heart_rate.samples == 3
        assert result.heart_rate.avg == 70.0


# ── Ingestion validation ─────────────────────────────────────


class TestValidation:
    @pytest.mark.parametrize("x", [math.nan, math.inf, -math.inf, 20.0, -16.5])
    def test_rejects_bad_motion(self, engine, x):
        assert engine.submit_motion(x, 0.0, 0.0) is False
        assert engine.is_compat_mode()

    @pytest.mark.parametrize("bpm", [0.0, 19.0, 400.0, math.nan])
    def test_rejects_bad_heart_rate(self, engine, bpm):
        assert engine.submit_heart_rate(bpm) is False
        assert engine.tick().heart_rate is None

    @pytest.mark.parametrize("rate", [-1.0, math.nan, math.inf])
    def test_rejects_bad_editor_rate(self, engine, rate):
        assert engine.submit_editor_activity(rate) is False

    def test_rejects_negative_steps(self, engine):
        assert engine.submit_step_count(-5) is False

    def test_accepts_valid_samples(self, engine):
        assert engine.submit_motion(0.01, -0.02, 0.005)
        assert engine.submit_heart_rate(72.0)
        assert engine.submit_editor_activity(3.5)
        assert engine.submit_step_count(0)
        assert not engine.is_compat_mode()


# ── Lifecycle & subscribers ──────────────────────────────────


class TestLifecycle:
    def test_no_result_before_first_tick(self, engine):
        assert engine.get_latest_result() is None

    def test_snapshot_is_within_bounds(self, engine, clock, simulate):
        result = simulate(engine, 5, magnitude=0.02, rate=4.0, bpm=75.0)[-1]
        assert result.timestamp == clock.now
        assert 0 <= result.slacking_index <= 100
        assert 0 <= result.energy_level <= 100
        assert engine.get_latest_result() == result

    def test_disabled_engine_ignores_everything(self, make_engine):
        engine = make_engine(enable_motion=False)
        assert engine.submit_motion(0.01, 0.0, 0.0) is False
        assert engine.tick() is None

        engine.update_config(MotionConfig(enable_motion=True))
        assert engine.submit_motion(0.01, 0.0, 0.0)
        assert engine.tick() is not None

    def test_update_config_applies_on_next_tick(self, engine, simulate, recorder):
        alerts = recorder(engine, EventKind.SEDENTARY_ALERT)
        simulate(engine, 90)
        assert alerts == []

        engine.update_config(MotionConfig(sedentary_minutes=1))
        simulate(engine, 1)
        assert len(alerts) == 1
        assert engine.config.sedentary_minutes == 1

    def test_dispose_is_idempotent(self, engine):
        engine.dispose()
        engine.dispose()
        assert engine.tick() is None
        assert engine.submit_heart_rate(70.0) is False
        assert not engine.is_running

    def test_failing_subscriber_does_not_block_others(self, engine, recorder):
        def broken(_result):
            raise RuntimeError("subscriber bug")

        engine.subscribe(EventKind.ANALYSIS_RESULT, broken)
        results = recorder(engine, EventKind.ANALYSIS_RESULT)

        engine.tick()
        engine.tick()
        assert len(results) == 2

    def test_subscriber_may_call_back_into_engine(self, engine):
        seen: list = []
        engine.subscribe(EventKind.ANALYSIS_RESULT, lambda _: seen.append(engine.get_latest_result()))
        result = engine.tick()
        assert seen == [result]

    def test_unsubscribe(self, engine):
        received: list = []
        unsubscribe = engine.subscribe("analysis_result", received.append)
        engine.tick()
        unsubscribe()
        engine.tick()
        assert len(received) == 1

    def test_manual_engine_never_auto_ticks(self, engine):
        engine.start()
        assert not engine.is_running
