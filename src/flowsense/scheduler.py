"""Fixed-cadence tick driver built on an asyncio background task.

Integration::

    scheduler = TickScheduler(engine.tick, interval_seconds=1.0)
    scheduler.start()      # inside a running event loop
    ...
    await scheduler.aclose()
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)


class TickScheduler:
    """Call *callback* every *interval_seconds* until stopped.

    ``start`` and ``stop`` are idempotent.  A callback that raises is
    logged and the loop keeps ticking.
    """

    def __init__(self, callback: Callable[[], Any], interval_seconds: float = 1.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._callback = callback
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None
        self._stats = {"ticks": 0, "errors": 0}

    # ── Lifecycle ─────────────────────────────────────────────

    def start(self) -> None:
        """Start ticking on the running event loop.

        Raises ``RuntimeError`` when called outside a running loop.
        """
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run_loop())
        logger.info("tick_scheduler.started", interval_seconds=self._interval)

    def stop(self) -> None:
        """Cancel the tick task without waiting for it."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        logger.info("tick_scheduler.stopped", ticks=self._stats["ticks"])

    async def aclose(self) -> None:
        """Stop and wait for the tick task to finish."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    # ── Internal ──────────────────────────────────────────────

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._callback()
                self._stats["ticks"] += 1
            except Exception:
                self._stats["errors"] += 1
                logger.exception("tick_scheduler.tick_failed")
