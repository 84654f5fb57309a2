"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Callable

import pytest

from flowsense.engine import InferenceEngine
from flowsense.models import EventKind, MotionConfig


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_767_261_600.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_engine(clock: FakeClock) -> Callable[..., InferenceEngine]:
    """Build manually ticked engines on the shared fake clock."""
    engines: list[InferenceEngine] = []

    def _factory(**overrides) -> InferenceEngine:
        engine = InferenceEngine(MotionConfig(**overrides), clock=clock, auto_tick=False)
        engines.append(engine)
        return engine

    yield _factory

    for engine in engines:
        engine.dispose()


@pytest.fixture
def engine(make_engine) -> InferenceEngine:
    return make_engine()


@pytest.fixture
def simulate(clock: FakeClock):
    """Drive an engine second by second.

    Each simulated second advances the clock, submits the given signals
    (``None`` skips that signal) and ticks once.  Returns the snapshots.
    """

    def _run(
        engine: InferenceEngine,
        seconds: int,
        *,
        magnitude: float | None = None,
        rate: float | None = None,
        bpm: float | Callable[[int], float] | None = None,
    ):
        results = []
        for i in range(seconds):
            clock.advance(1.0)
            if magnitude is not None:
                engine.submit_motion(magnitude, 0.0, 0.0)
            if rate is not None:
                engine.submit_editor_activity(rate)
            if bpm is not None:
                engine.submit_heart_rate(bpm(i) if callable(bpm) else bpm)
            results.append(engine.tick())
        return results

    return _run


@pytest.fixture
def recorder():
    """Subscribe a list-collector to an event kind."""

    def _record(engine: InferenceEngine, kind: EventKind) -> list:
        received: list = []
        engine.subscribe(kind, received.append)
        return received

    return _record
