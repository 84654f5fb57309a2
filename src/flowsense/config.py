"""Centralised default settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowsense.models import MotionConfig

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Process-wide defaults for new :class:`~flowsense.engine.InferenceEngine` instances.

    Values are read from ``FLOWSENSE_``-prefixed environment variables first,
    then from a *.env* file at the project root.  An engine copies what it
    needs at construction time and never reads the settings again, so
    several engines can run side by side with different configurations.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWSENSE_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Motion analysis ───────────────────────────────────────
    enable_motion: bool = True
    sedentary_minutes: int = Field(30, ge=1)
    posture_alert_seconds: int = Field(60, ge=1)
    show_coding_intensity: bool = True
    show_flow_state: bool = True
    show_slacking_index: bool = True

    # ── Heart-rate alerts ─────────────────────────────────────
    alert_high_bpm: int = Field(150, ge=1)
    alert_low_bpm: int = Field(50, ge=1)
    alert_cooldown_seconds: int = Field(60, ge=0)

    # ── Scheduler ─────────────────────────────────────────────
    tick_interval_seconds: float = Field(1.0, gt=0)

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def motion_config(self) -> MotionConfig:
        """Build the default :class:`MotionConfig` from these settings."""
        return MotionConfig(
            enable_motion=self.enable_motion,
            sedentary_minutes=self.sedentary_minutes,
            posture_alert_seconds=self.posture_alert_seconds,
            show_coding_intensity=self.show_coding_intensity,
            show_flow_state=self.show_flow_state,
            show_slacking_index=self.show_slacking_index,
            alert_high_bpm=self.alert_high_bpm,
            alert_low_bpm=self.alert_low_bpm,
            alert_cooldown_seconds=self.alert_cooldown_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
