"""Unit tests for the PollingOrchestrator."""

import asyncio
import random
from typing import Any

import pytest

from eden.application.services import PollingOrchestrator
from eden.domain.entities import ConnectionStateMachine, ConnectionStatus, ResourceClass
from eden.domain.exceptions import RemoteServiceError
from eden.infrastructure.homelab import HomelabSimulator


class FakeSource:
    """Stands in for the HomelabApiClient; results per resource are configurable."""

    def __init__(self, status: ConnectionStatus = ConnectionStatus.DISCONNECTED):
        self.connection = ConnectionStateMachine(status)
        self.results: dict[ResourceClass, Any] = {}
        self.fetch_calls: list[ResourceClass] = []
        self.gate: asyncio.Event | None = None
        self.successes = 0
        self.failures = 0
        self._simulator = HomelabSimulator(random.Random(3))

    async def fetch(self, resource: ResourceClass) -> Any:
        self.fetch_calls.append(resource)
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.get(resource, {"live": resource.value} if resource is ResourceClass.SYSTEM_METRICS else [{"id": "live"}])
        if isinstance(result, Exception):
            raise result
        return result

    def simulate(self, resource: ResourceClass) -> Any:
        if resource is ResourceClass.SYSTEM_METRICS:
            return self._simulator.system_metrics()
        if resource is ResourceClass.SERVICES:
            return self._simulator.service_status()
        return [{"id": "simulated"}]

    def mark_success(self) -> None:
        self.successes += 1

    def mark_failure(self) -> None:
        self.failures += 1


def _yielding_sleep(counter: list[float]):
    async def _sleep(seconds: float) -> None:
        counter.append(seconds)
        await asyncio.sleep(0)
    return _sleep


# ── refresh_all ──


@pytest.mark.asyncio
async def test_partial_failure_is_connected_with_per_resource_error():
    source = FakeSource()
    source.results[ResourceClass.SYSTEM_METRICS] = {"cpu": {"percentage": 42}}
    source.results[ResourceClass.SERVICES] = RemoteServiceError("/services", "boom")
    orchestrator = PollingOrchestrator(source)

    result = await orchestrator.refresh_all()

    assert result.status is ConnectionStatus.CONNECTED
    assert list(result.errors) == ["services"]
    assert "boom" in result.errors["services"]
    assert orchestrator.snapshot.system_metrics == {"cpu": {"percentage": 42}}
    assert orchestrator.snapshot.services, "failed resource falls back to simulated data"
    assert "system_metrics" in orchestrator.snapshot.last_updated


@pytest.mark.asyncio
async def test_failed_resource_keeps_last_good_data():
    source = FakeSource(ConnectionStatus.CONNECTED)
    orchestrator = PollingOrchestrator(source)
    await orchestrator.refresh_all()
    assert orchestrator.snapshot.network_devices == [{"id": "live"}]

    source.results[ResourceClass.NETWORK_DEVICES] = RemoteServiceError("/network/devices", "down")
    await orchestrator.refresh_all()

    assert orchestrator.snapshot.network_devices == [{"id": "live"}]
    assert "network_devices" in orchestrator.snapshot.errors


@pytest.mark.asyncio
async def test_error_entry_clears_after_recovery():
    source = FakeSource(ConnectionStatus.CONNECTED)
    source.results[ResourceClass.STORAGE] = RemoteServiceError("/storage", "down")
    orchestrator = PollingOrchestrator(source)
    await orchestrator.refresh_all()
    assert "storage" in orchestrator.snapshot.errors

    del source.results[ResourceClass.STORAGE]
    result = await orchestrator.refresh_all()

    assert result.errors == {}


@pytest.mark.asyncio
async def test_all_failures_move_to_error():
    source = FakeSource(ConnectionStatus.CONNECTED)
    for resource in ResourceClass:
        source.results[resource] = RemoteServiceError("/x", "down")
    orchestrator = PollingOrchestrator(source)

    result = await orchestrator.refresh_all()

    assert result.status is ConnectionStatus.ERROR
    assert set(result.errors) == {resource.value for resource in ResourceClass}


@pytest.mark.asyncio
async def test_all_failures_in_mock_mode_stay_mock():
    source = FakeSource(ConnectionStatus.MOCK)
    for resource in ResourceClass:
        source.results[resource] = RemoteServiceError("/x", "down")
    orchestrator = PollingOrchestrator(source)

    result = await orchestrator.refresh_all()

    assert result.status is ConnectionStatus.MOCK


@pytest.mark.asyncio
async def test_refresh_fetches_all_resources_concurrently():
    source = FakeSource(ConnectionStatus.CONNECTED)
    source.gate = asyncio.Event()
    orchestrator = PollingOrchestrator(source)

    refresh = asyncio.create_task(orchestrator.refresh_all())
    for _ in range(5):
        await asyncio.sleep(0)
    assert len(source.fetch_calls) == len(ResourceClass)

    source.gate.set()
    await refresh


# ── Timers ──


@pytest.mark.asyncio
async def test_ticks_are_skipped_while_not_connected():
    source = FakeSource(ConnectionStatus.MOCK)
    sleeps: list[float] = []
    orchestrator = PollingOrchestrator(source, sleep=_yielding_sleep(sleeps))

    orchestrator.start_polling(ResourceClass.SYSTEM_METRICS)
    for _ in range(10):
        await asyncio.sleep(0)
    await orchestrator.shutdown()

    assert len(sleeps) > 1
    assert source.fetch_calls == []


@pytest.mark.asyncio
async def test_ticks_fetch_while_connected():
    source = FakeSource(ConnectionStatus.CONNECTED)
    sleeps: list[float] = []
    orchestrator = PollingOrchestrator(
        source,
        intervals={ResourceClass.SYSTEM_METRICS: 2.5},
        sleep=_yielding_sleep(sleeps),
    )

    orchestrator.start_polling(ResourceClass.SYSTEM_METRICS)
    assert orchestrator.is_polling(ResourceClass.SYSTEM_METRICS)
    assert not orchestrator.is_polling(ResourceClass.STORAGE)
    for _ in range(10):
        await asyncio.sleep(0)
    await orchestrator.shutdown()

    assert sleeps[0] == 2.5
    assert ResourceClass.SYSTEM_METRICS in source.fetch_calls
    assert orchestrator.snapshot.system_metrics == {"live": "system_metrics"}
    assert source.successes >= 1
    assert not orchestrator.is_polling()


@pytest.mark.asyncio
async def test_stop_discards_late_results():
    source = FakeSource(ConnectionStatus.CONNECTED)
    source.gate = asyncio.Event()
    orchestrator = PollingOrchestrator(source)

    in_flight = asyncio.create_task(orchestrator.poll_once(ResourceClass.SYSTEM_METRICS, generation=0))
    for _ in range(3):
        await asyncio.sleep(0)

    orchestrator.stop_polling(ResourceClass.SYSTEM_METRICS)
    source.gate.set()

    assert await in_flight is False
    assert orchestrator.snapshot.system_metrics == {}
    assert source.successes == 0


@pytest.mark.asyncio
async def test_poll_once_failure_marks_and_records_error():
    source = FakeSource(ConnectionStatus.CONNECTED)
    source.results[ResourceClass.SECURITY_ALERTS] = RemoteServiceError("/security/alerts", "down")
    orchestrator = PollingOrchestrator(source)

    assert await orchestrator.poll_once(ResourceClass.SECURITY_ALERTS) is False

    assert source.failures == 1
    assert "security_alerts" in orchestrator.snapshot.errors
    assert orchestrator.snapshot.security_alerts == [{"id": "simulated"}]


def test_default_intervals():
    orchestrator = PollingOrchestrator(FakeSource())
    assert orchestrator.interval_for(ResourceClass.SYSTEM_METRICS) == 5
    assert orchestrator.interval_for(ResourceClass.SERVICES) == 30
    assert orchestrator.interval_for(ResourceClass.NETWORK_DEVICES) == 60
    assert orchestrator.interval_for(ResourceClass.STORAGE) == 120
    assert orchestrator.interval_for(ResourceClass.SECURITY_ALERTS) == 10


def test_seed_simulated_fills_only_empty_resources():
    source = FakeSource(ConnectionStatus.MOCK)
    orchestrator = PollingOrchestrator(source)
    orchestrator.snapshot.storage = [{"id": "persisted"}]

    orchestrator.seed_simulated()

    assert orchestrator.snapshot.storage == [{"id": "persisted"}]
    assert orchestrator.snapshot.network_devices == [{"id": "simulated"}]
    assert len(orchestrator.snapshot.services) == 8


# ── Malformed payloads ──


@pytest.mark.asyncio
async def test_malformed_payloads_are_recorded_as_resource_errors():
    source = FakeSource(ConnectionStatus.CONNECTED)
    source.results[ResourceClass.SYSTEM_METRICS] = [1, 2, 3]
    source.results[ResourceClass.SERVICES] = {"services": None}
    orchestrator = PollingOrchestrator(source)
    orchestrator.snapshot.system_metrics = {"cpu": {"percentage": 20}}

    result = await orchestrator.refresh_all()

    assert result.status is ConnectionStatus.CONNECTED
    assert set(result.errors) == {"system_metrics", "services"}
    assert "unexpected payload" in result.errors["system_metrics"]
    assert orchestrator.snapshot.system_metrics == {"cpu": {"percentage": 20}}
    assert len(orchestrator.snapshot.services) == 8
    assert orchestrator.snapshot.storage == [{"id": "live"}]


@pytest.mark.asyncio
async def test_poll_once_rejects_list_items_that_are_not_objects():
    source = FakeSource(ConnectionStatus.CONNECTED)
    source.results[ResourceClass.STORAGE] = ["disk-1"]
    orchestrator = PollingOrchestrator(source)

    assert await orchestrator.poll_once(ResourceClass.STORAGE) is False

    assert source.failures == 1
    assert orchestrator.snapshot.storage == [{"id": "simulated"}]
    assert "storage" in orchestrator.snapshot.errors


class FailsOnceSource(FakeSource):
    """Raises an unexpected error on the first fetch, then behaves."""

    async def fetch(self, resource: ResourceClass) -> Any:
        if not self.fetch_calls:
            self.fetch_calls.append(resource)
            raise RuntimeError("decoder exploded")
        return await super().fetch(resource)


@pytest.mark.asyncio
async def test_poll_loop_keeps_running_after_unexpected_error():
    source = FailsOnceSource(ConnectionStatus.CONNECTED)
    sleeps: list[float] = []
    orchestrator = PollingOrchestrator(source, sleep=_yielding_sleep(sleeps))

    orchestrator.start_polling(ResourceClass.SYSTEM_METRICS)
    for _ in range(30):
        await asyncio.sleep(0)

    assert len(source.fetch_calls) >= 2
    assert orchestrator.snapshot.system_metrics == {"live": "system_metrics"}
    assert orchestrator.is_polling(ResourceClass.SYSTEM_METRICS)
    await orchestrator.shutdown()
