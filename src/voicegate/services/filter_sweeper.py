"""Periodic removal of expired deny entries using an asyncio task."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Optional

from .filter_manager import FilterManager

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 60 * 60


class FilterSweeper:
    """Run ``FilterManager.sweep_expired`` on a fixed interval.

    The loop is owned by this object: ``start()`` schedules it on the
    running event loop, ``stop()`` cancels and awaits it, and ``run_once()``
    triggers a sweep by hand.
    """

    def __init__(
        self,
        manager: FilterManager,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._manager = manager
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Begin sweeping; a no-op while already running."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="filter-sweeper")
        logger.debug("Filter sweeper started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.debug("Filter sweeper stopped")

    def run_once(self) -> int:
        """Sweep immediately; returns the number of entries removed."""
        return self._manager.sweep_expired()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.run_once()
            except Exception as exc:
                logger.warning("Filter sweep failed: %s", exc)


__all__ = ["DEFAULT_SWEEP_INTERVAL_SECONDS", "FilterSweeper"]
