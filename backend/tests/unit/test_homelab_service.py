"""Unit tests for the HomelabService facade."""

import random

import httpx
import pytest

from eden.application.services import (
    EntityStore,
    HomelabService,
    PollingOrchestrator,
    build_default_registry,
)
from eden.domain import storage_keys
from eden.domain.entities import ConnectionStateMachine, ConnectionStatus
from eden.domain.exceptions import EntityNotFoundError
from eden.infrastructure.homelab import HomelabApiClient, HomelabSimulator, RetryPolicy
from eden.infrastructure.storage import InMemoryKeyValueBackend


# ── Helpers ──


def _offline_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    return httpx.MockTransport(handler)


def _routing_transport(routes: dict[tuple[str, str], httpx.Response]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        return routes.get((request.method, path), httpx.Response(404))

    return httpx.MockTransport(handler)


def _build(
    transport: httpx.MockTransport,
    backend: InMemoryKeyValueBackend | None = None,
    connection: ConnectionStateMachine | None = None,
) -> tuple[HomelabService, EntityStore]:
    store = EntityStore(backend or InMemoryKeyValueBackend(), build_default_registry())
    client = HomelabApiClient(
        base_url="http://homelab.test/api",
        http_client=httpx.AsyncClient(transport=transport),
        retry_policy=RetryPolicy(max_attempts=1),
        simulator=HomelabSimulator(random.Random(11)),
        connection=connection,
    )
    return HomelabService(client, PollingOrchestrator(client), store), store


# ── Initialize ──


@pytest.mark.asyncio
async def test_initialize_offline_seeds_simulated_snapshot():
    service, _ = _build(_offline_transport())
    try:
        result = await service.initialize()

        assert result.status is ConnectionStatus.MOCK
        assert service.get_connection_status() is ConnectionStatus.MOCK
        assert len(service.snapshot.services) == 8
        assert len(service.snapshot.network_devices) == 6
        assert service.snapshot.system_metrics["cpu"]["cores"] == 8
    finally:
        await service.shutdown()


@pytest.mark.asyncio
async def test_initialize_restores_persisted_rules():
    backend = InMemoryKeyValueBackend()
    seed_store = EntityStore(backend, build_default_registry())
    persisted = [{
        "id": "custom",
        "name": "Custom rule",
        "trigger": {"type": "time", "value": "07:00"},
        "action": {"type": "device"},
        "enabled": False,
    }]
    await seed_store.save(storage_keys.AUTOMATION_RULES, persisted)

    service, _ = _build(_offline_transport(), backend=backend)
    try:
        await service.initialize()
        assert service.snapshot.automation_rules == persisted
    finally:
        await service.shutdown()


@pytest.mark.asyncio
async def test_refresh_persists_live_services():
    services = [{"id": "plex", "name": "Plex", "status": "running"}]
    transport = _routing_transport({
        ("GET", "/services"): httpx.Response(200, json={"services": services, "metrics": {}}),
        ("GET", "/system/metrics"): httpx.Response(200, json={"cpu": {"percentage": 10}}),
    })
    service, store = _build(transport, connection=ConnectionStateMachine(ConnectionStatus.CONNECTED))

    result = await service.refresh_all()

    assert result.status is ConnectionStatus.CONNECTED
    assert "services" not in result.errors
    assert "network_devices" in result.errors
    assert await store.load(storage_keys.SERVICES) == services


# ── Actions ──


@pytest.mark.asyncio
async def test_service_action_in_mock_mode_updates_status():
    service, store = _build(_offline_transport())
    await service.initialize()
    try:
        result = await service.perform_service_action("jellyfin", "start")

        assert result == {"success": True}
        jellyfin = next(s for s in service.snapshot.services if s["id"] == "jellyfin")
        assert jellyfin["status"] == "running"
        persisted = await store.load(storage_keys.SERVICES)
        assert next(s for s in persisted if s["id"] == "jellyfin")["status"] == "running"
    finally:
        await service.shutdown()


@pytest.mark.asyncio
async def test_service_action_failure_is_reported_not_raised():
    transport = _routing_transport({
        ("POST", "/services/plex/restart"): httpx.Response(500),
    })
    service, _ = _build(transport, connection=ConnectionStateMachine(ConnectionStatus.CONNECTED))
    service.snapshot.services = [{"id": "plex", "name": "Plex", "status": "running"}]

    result = await service.perform_service_action("plex", "restart")

    assert result["success"] is False
    assert "500" in result["error"]
    assert service.snapshot.services[0]["status"] == "restarting"


@pytest.mark.asyncio
async def test_unknown_service_raises_not_found():
    service, _ = _build(_offline_transport())
    with pytest.raises(EntityNotFoundError):
        await service.perform_service_action("ghost", "start")


@pytest.mark.asyncio
async def test_unknown_action_is_rejected():
    service, _ = _build(_offline_transport())
    with pytest.raises(ValueError):
        await service.perform_service_action("plex", "explode")


@pytest.mark.asyncio
async def test_add_and_toggle_automation_rule_are_persisted():
    service, store = _build(_offline_transport())
    await service.initialize()
    try:
        created = await service.add_automation_rule({
            "name": "Morning lights",
            "trigger": {"type": "time", "value": "07:00"},
            "action": {"type": "device", "device": "all-lights", "action": "on"},
            "enabled": True,
        })
        assert created["success"] is True
        rule_id = created["rule"]["id"]

        toggled = await service.toggle_automation_rule(rule_id, False)
        assert toggled == {"success": True}

        persisted = await store.load(storage_keys.AUTOMATION_RULES)
        assert next(r for r in persisted if r["id"] == rule_id)["enabled"] is False
    finally:
        await service.shutdown()


@pytest.mark.asyncio
async def test_toggle_unknown_rule_raises_not_found():
    service, _ = _build(_offline_transport())
    with pytest.raises(EntityNotFoundError):
        await service.toggle_automation_rule("ghost", True)


@pytest.mark.asyncio
async def test_scan_network_replaces_devices():
    service, store = _build(_offline_transport(), connection=ConnectionStateMachine(ConnectionStatus.MOCK))

    devices = await service.scan_network()

    assert len(devices) == 6
    assert await store.load(storage_keys.NETWORK_DEVICES) == devices


@pytest.mark.asyncio
async def test_scan_network_ignores_malformed_result():
    transport = _routing_transport({("POST", "/network/scan"): httpx.Response(200, json={"devices": 3})})
    service, store = _build(transport, connection=ConnectionStateMachine(ConnectionStatus.CONNECTED))
    service.snapshot.network_devices = [{"id": "router", "name": "Router"}]

    devices = await service.scan_network()

    assert devices == [{"id": "router", "name": "Router"}]
    assert "network_devices" in service.snapshot.errors
    assert await store.load(storage_keys.NETWORK_DEVICES) is None


# ── Derived views ──


def test_system_alerts_follow_thresholds():
    service, _ = _build(_offline_transport())
    service.snapshot.system_metrics = {
        "cpu": {"percentage": 90, "temperature": 82},
        "memory": {"percentage": 91},
    }

    alerts = {alert["id"]: alert["severity"] for alert in service.system_alerts()}

    assert alerts == {
        "cpu-critical": "critical",
        "temp-critical": "critical",
        "memory-critical": "critical",
    }
    assert service.system_health() == "critical"


def test_cpu_warning_band():
    service, _ = _build(_offline_transport())
    service.snapshot.system_metrics = {"cpu": {"percentage": 72, "temperature": 60}, "memory": {"percentage": 50}}

    assert [alert["id"] for alert in service.system_alerts()] == ["cpu-warning"]
    assert service.system_health() == "warning"


def test_overall_stats():
    service, _ = _build(_offline_transport())
    service.snapshot.services = [
        {"id": "a", "name": "A", "status": "running"},
        {"id": "b", "name": "B", "status": "stopped"},
    ]
    service.snapshot.network_devices = [
        {"id": "r", "name": "R", "ip": "1", "status": "online", "ping": 2},
        {"id": "s", "name": "S", "ip": "2", "status": "online", "ping": 4},
        {"id": "t", "name": "T", "ip": "3", "status": "offline", "ping": 0},
    ]
    service.snapshot.automation_rules = [{"id": "x", "enabled": True}, {"id": "y", "enabled": False}]

    stats = service.overall_stats()

    assert stats["services"] == {"total": 2, "running": 1, "stopped": 1}
    assert stats["network"] == {"total": 3, "online": 2, "averagePing": 3}
    assert stats["automation"] == {"totalRules": 2, "activeRules": 1}
    assert stats["system"]["health"] == "healthy"
    assert stats["connection"] == "disconnected"
