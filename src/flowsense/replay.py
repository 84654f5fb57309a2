"""Offline replay of recorded samples through a manually ticked engine.

Input is JSON Lines, one sample per line, in chronological order::

    {"t": 1767261600.0, "type": "motion", "x": 0.001, "y": 0.0, "z": 0.002}
    {"t": 1767261600.4, "type": "editor", "rate": 6.5}
    {"t": 1767261601.0, "type": "heart_rate", "bpm": 72}
    {"t": 1767261630.0, "type": "steps", "count": 1204}

The replay clock follows the sample timestamps and the engine ticks once
per interval of recorded time, so a recording replays in seconds.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Literal

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from flowsense.engine import InferenceEngine
from flowsense.models import EventKind, MotionConfig

logger = structlog.get_logger(__name__)

Emit = Callable[[EventKind, BaseModel], None]


class ReplayRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    t: float
    type: Literal["motion", "editor", "heart_rate", "steps"]
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rate: float = 0.0
    last_edit: float | None = None
    bpm: float | None = None
    count: int | None = None


class ReplayClock:
    """Clock whose time is set by the replay loop."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def parse_records(lines: Iterable[str]) -> Iterable[ReplayRecord]:
    """Yield a record per valid line; blank and malformed lines are skipped."""
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            yield ReplayRecord.model_validate_json(line)
        except ValidationError as exc:
            logger.warning("replay.bad_record", line=lineno, errors=exc.error_count())


def run_replay(
    records: Iterable[ReplayRecord],
    emit: Emit,
    *,
    config: MotionConfig | None = None,
    interval: float = 1.0,
) -> int:
    """Feed *records* into a fresh engine and pass every event to *emit*.

    Returns the number of ticks run.
    """
    clock = ReplayClock()
    engine: InferenceEngine | None = None
    next_tick = 0.0
    ticks = 0

    try:
        for record in records:
            if engine is None:
                clock.now = record.t
                engine = InferenceEngine(config or MotionConfig(), clock=clock, auto_tick=False)
                for kind in EventKind:
                    engine.subscribe(kind, _forward(kind, emit))
                next_tick = record.t + interval
            elif record.t < clock.now:
                logger.warning("replay.out_of_order", t=record.t, now=clock.now)
                continue

            while record.t >= next_tick:
                clock.now = next_tick
                engine.tick()
                ticks += 1
                next_tick += interval

            clock.now = record.t
            _submit(engine, record)

        if engine is not None:
            clock.now = next_tick
            engine.tick()
            ticks += 1
    finally:
        if engine is not None:
            engine.dispose()

    logger.info("replay.finished", ticks=ticks)
    return ticks


def _forward(kind: EventKind, emit: Emit) -> Callable[[Any], None]:
    def _callback(payload: BaseModel) -> None:
        emit(kind, payload)

    return _callback


def _submit(engine: InferenceEngine, record: ReplayRecord) -> None:
    if record.type == "motion":
        engine.submit_motion(record.x, record.y, record.z, timestamp=record.t)
    elif record.type == "editor":
        engine.submit_editor_activity(record.rate, record.last_edit)
    elif record.type == "heart_rate" and record.bpm is not None:
        engine.submit_heart_rate(record.bpm)
    elif record.type == "steps" and record.count is not None:
        engine.submit_step_count(record.count)
