"""Polling Orchestrator — periodic refresh of homelab resources.

Each resource class is polled by its own asyncio task at an independent
interval. Ticks only hit the network while the connection is ``connected``;
in ``mock`` / ``error`` the last good (or simulated) snapshot stays visible.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from eden.domain.entities import (
    ConnectionStateMachine,
    ConnectionStatus,
    HomelabSnapshot,
    ResourceClass,
)
from eden.domain.exceptions import RemoteServiceError

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_INTERVALS: dict[ResourceClass, float] = {
    ResourceClass.SYSTEM_METRICS: 5.0,
    ResourceClass.SERVICES: 30.0,
    ResourceClass.NETWORK_DEVICES: 60.0,
    ResourceClass.STORAGE: 120.0,
    ResourceClass.AUTOMATION_RULES: 60.0,
    ResourceClass.SECURITY_ALERTS: 10.0,
}


class HomelabSource(Protocol):
    """What the orchestrator needs from the remote client."""

    @property
    def connection(self) -> ConnectionStateMachine: ...

    async def fetch(self, resource: ResourceClass) -> Any: ...

    def simulate(self, resource: ResourceClass) -> Any: ...

    def mark_success(self) -> None: ...

    def mark_failure(self) -> None: ...


@dataclass
class RefreshResult:
    status: ConnectionStatus
    errors: dict[str, str]


class PollingOrchestrator:
    """Owns the polling timers and the aggregate HomelabSnapshot.

    ``stop_polling`` cancels timers immediately. A fetch already in flight
    is allowed to finish, but its result is discarded.
    """

    def __init__(
        self,
        source: HomelabSource,
        intervals: dict[ResourceClass, float] | None = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._source = source
        self._intervals = dict(DEFAULT_INTERVALS)
        if intervals:
            self._intervals.update(intervals)
        self._sleep = sleep
        self._snapshot = HomelabSnapshot()
        self._tasks: dict[ResourceClass, asyncio.Task] = {}
        self._generations: dict[ResourceClass, int] = defaultdict(int)
        self._in_flight: set[asyncio.Future] = set()

    @property
    def snapshot(self) -> HomelabSnapshot:
        return self._snapshot

    @property
    def resources(self) -> list[ResourceClass]:
        return list(self._intervals)

    def interval_for(self, resource: ResourceClass) -> float:
        return self._intervals[resource]

    def is_polling(self, resource: ResourceClass | None = None) -> bool:
        if resource is None:
            return bool(self._tasks)
        return resource in self._tasks

    # ── Lifecycle ───────────────────────────────────────────────────

    def start_polling(self, resource: ResourceClass | None = None) -> None:
        """Start the timer for one resource class, or for all of them."""
        for target in self._select(resource):
            if target in self._tasks:
                continue
            generation = self._generations[target]
            self._tasks[target] = asyncio.create_task(self._poll_loop(target, generation))
            logger.info("Polling %s every %.0fs", target.value, self._intervals[target])

    def stop_polling(self, resource: ResourceClass | None = None) -> None:
        """Cancel the timer(s) now; late results from in-flight fetches are dropped."""
        for target in self._select(resource):
            self._generations[target] += 1
            task = self._tasks.pop(target, None)
            if task is not None:
                task.cancel()
                logger.info("Stopped polling %s", target.value)

    async def shutdown(self) -> None:
        """Stop every timer and wait for cancelled tasks and in-flight fetches."""
        tasks = list(self._tasks.values())
        self.stop_polling()
        pending = [*tasks, *self._in_flight]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _select(self, resource: ResourceClass | None) -> list[ResourceClass]:
        return [resource] if resource is not None else self.resources

    # ── Polling ─────────────────────────────────────────────────────

    async def _poll_loop(self, resource: ResourceClass, generation: int) -> None:
        interval = self._intervals[resource]
        while self._generations[resource] == generation:
            await self._sleep(interval)
            if self._generations[resource] != generation:
                break
            if not self._source.connection.is_connected:
                continue
            try:
                await self.poll_once(resource, generation)
            except Exception:
                logger.exception("Polling %s failed; retrying next tick", resource.value)

    async def poll_once(self, resource: ResourceClass, generation: int | None = None) -> bool:
        """Fetch one resource; returns True when fresh data was applied."""
        fetch = asyncio.ensure_future(self._fetch(resource))
        self._in_flight.add(fetch)
        fetch.add_done_callback(self._in_flight.discard)

        data, error = await asyncio.shield(fetch)
        if generation is not None and generation != self._generations[resource]:
            logger.debug("Discarding late %s result — polling stopped", resource.value)
            return False

        if error is None:
            self._source.mark_success()
        else:
            self._source.mark_failure()
        return self._apply(resource, data, error)

    async def _fetch(self, resource: ResourceClass) -> tuple[Any, str | None]:
        try:
            data = await self._source.fetch(resource)
        except RemoteServiceError as exc:
            logger.warning("Fetching %s failed: %s", resource.value, exc)
            return None, str(exc)

        try:
            HomelabSnapshot.normalize(resource, data)
        except ValueError as exc:
            logger.warning("Unexpected %s payload: %s", resource.value, exc)
            return None, f"unexpected payload: {exc}"
        return data, None

    def _apply(self, resource: ResourceClass, data: Any, error: str | None) -> bool:
        if error is None:
            self._snapshot.apply(resource, data)
            return True

        if not self._snapshot.has_data(resource):
            self._snapshot.apply(resource, self._source.simulate(resource))
        self._snapshot.errors[resource.value] = error
        return False

    # ── Manual refresh ──────────────────────────────────────────────

    async def refresh_all(self) -> RefreshResult:
        """Fetch every resource class concurrently and settle the connection state.

        One healthy resource is enough for ``connected``; failing classes keep
        their previous data and get an entry in ``snapshot.errors``. When all
        fail the state becomes ``error`` (``mock`` is kept as is).
        """
        resources = self.resources
        outcomes = await asyncio.gather(*(self._fetch(resource) for resource in resources))

        succeeded = 0
        for resource, (data, error) in zip(resources, outcomes):
            if self._apply(resource, data, error):
                succeeded += 1

        connection = self._source.connection
        if succeeded:
            self._settle(connection, ConnectionStatus.CONNECTED)
        elif not connection.is_mock:
            self._settle(connection, ConnectionStatus.ERROR)

        logger.info(
            "Refreshed %d/%d resource classes — status=%s",
            succeeded, len(resources), connection.status.value,
        )
        return RefreshResult(status=connection.status, errors=dict(self._snapshot.errors))

    @staticmethod
    def _settle(connection: ConnectionStateMachine, target: ConnectionStatus) -> None:
        if connection.status is ConnectionStatus.DISCONNECTED:
            connection.transition(ConnectionStatus.CONNECTING)
        connection.transition(target)

    def seed_simulated(self) -> None:
        """Fill every empty resource class with simulated data."""
        for resource in self.resources:
            if not self._snapshot.has_data(resource):
                self._snapshot.apply(resource, self._source.simulate(resource))
