"""Autosave Scheduler — periodic flush of in-memory collections."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60.0

FlushFn = Callable[[], Awaitable[bool]]
SleepFn = Callable[[float], Awaitable[None]]


class AutosaveScheduler:
    """Flushes every registered collection once per ``interval`` seconds.

    Bounds data loss to one interval's worth of mutations. Each tick runs in
    its own task so a slow flush never delays the timer; a key whose previous
    flush is still in flight is skipped for that tick.
    """

    def __init__(self, interval: float = DEFAULT_INTERVAL, sleep: SleepFn = asyncio.sleep):
        self._interval = interval
        self._sleep = sleep
        self._flushers: dict[str, FlushFn] = {}
        self._in_flight: set[str] = set()
        self._running = False
        self._task: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()

    def register(self, key: str, flush: FlushFn) -> None:
        self._flushers[key] = flush

    @property
    def running(self) -> bool:
        return self._running

    def is_flushing(self, key: str) -> bool:
        return key in self._in_flight

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("AutosaveScheduler started (every %.0fs, keys=%s)", self._interval, list(self._flushers))

    async def stop(self) -> None:
        """Stop the timer; flushes already in flight are allowed to finish."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)
        logger.info("AutosaveScheduler stopped")

    async def _loop(self) -> None:
        while self._running:
            await self._sleep(self._interval)
            if not self._running:
                break
            tick = asyncio.create_task(self.tick())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)

    async def tick(self) -> dict[str, bool | None]:
        """Flush every registered key concurrently; returns per-key outcomes."""
        keys = list(self._flushers)
        outcomes = await asyncio.gather(*(self.flush_key(key) for key in keys))
        return dict(zip(keys, outcomes))

    async def flush_key(self, key: str) -> bool | None:
        """Run one flush. Returns None when skipped because one is in flight."""
        if key in self._in_flight:
            logger.debug("Autosave of %s skipped — previous flush still running", key)
            return None

        flush = self._flushers[key]
        self._in_flight.add(key)
        try:
            ok = await flush()
            if not ok:
                logger.warning("Autosave of %s failed", key)
            return ok
        except Exception:
            logger.exception("Autosave of %s raised", key)
            return False
        finally:
            self._in_flight.discard(key)
