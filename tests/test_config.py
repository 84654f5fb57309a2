"""Tests for environment-driven default settings."""

from __future__ import annotations

import pytest

from flowsense.config import Settings, get_settings
from flowsense.engine import InferenceEngine


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    config = Settings(_env_file=None).motion_config()
    assert config.enable_motion is True
    assert config.sedentary_minutes == 30
    assert config.posture_alert_seconds == 60
    assert (config.alert_high_bpm, config.alert_low_bpm) == (150, 50)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FLOWSENSE_SEDENTARY_MINUTES", "45")
    monkeypatch.setenv("FLOWSENSE_ENABLE_MOTION", "false")
    config = Settings(_env_file=None).motion_config()
    assert config.sedentary_minutes == 45
    assert config.enable_motion is False


def test_get_settings_is_cached(fresh_settings):
    assert get_settings() is get_settings()


def test_engine_defaults_come_from_settings(monkeypatch, fresh_settings):
    monkeypatch.setenv("FLOWSENSE_POSTURE_ALERT_SECONDS", "90")
    engine = InferenceEngine(auto_tick=False)
    try:
        assert engine.config.posture_alert_seconds == 90
    finally:
        engine.dispose()
