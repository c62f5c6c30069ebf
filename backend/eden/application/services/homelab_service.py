"""Application service for the homelab panel — the consumer-facing facade."""

import logging
import time
from typing import Any

from eden.application.services.entity_store import EntityStore
from eden.application.services.polling_orchestrator import PollingOrchestrator, RefreshResult
from eden.domain import storage_keys
from eden.domain.entities import ConnectionStatus, HomelabSnapshot, ResourceClass
from eden.domain.exceptions import EntityNotFoundError, RemoteServiceError
from eden.infrastructure.homelab import HomelabApiClient, InitResult

logger = logging.getLogger(__name__)

# Alert thresholds in percent / °C.
SYSTEM_THRESHOLDS = {
    "cpu": {"warning": 70, "critical": 85},
    "memory": {"warning": 80, "critical": 90},
    "temperature": {"warning": 70, "critical": 80},
}

# Collections persisted as last-known-good state across restarts.
_PERSISTED = (
    (storage_keys.SERVICES, ResourceClass.SERVICES),
    (storage_keys.NETWORK_DEVICES, ResourceClass.NETWORK_DEVICES),
    (storage_keys.AUTOMATION_RULES, ResourceClass.AUTOMATION_RULES),
)

_ACTION_RESULT_STATUS = {"start": "running", "stop": "stopped", "restart": "running"}


class HomelabService:
    """Orchestrates the remote client, the poller and homelab persistence.

    Remote failures never escape this service: reads degrade to the last
    known or simulated snapshot, actions report ``{"success": False}``.
    """

    def __init__(
        self,
        client: HomelabApiClient,
        orchestrator: PollingOrchestrator,
        store: EntityStore,
    ):
        self._client = client
        self._orchestrator = orchestrator
        self._store = store

    @property
    def snapshot(self) -> HomelabSnapshot:
        return self._orchestrator.snapshot

    def get_connection_status(self) -> ConnectionStatus:
        return self._client.get_connection_status()

    async def initialize(self) -> InitResult:
        """Restore persisted state, probe the API and start polling."""
        for key, resource in _PERSISTED:
            persisted = await self._store.load(key)
            if persisted:
                self.snapshot.apply(resource, persisted)

        result = await self._client.initialize()
        if result.status is ConnectionStatus.CONNECTED:
            await self.refresh_all()
        else:
            self._orchestrator.seed_simulated()

        self._orchestrator.start_polling()
        return result

    async def shutdown(self) -> None:
        await self._orchestrator.shutdown()

    async def refresh_all(self) -> RefreshResult:
        result = await self._orchestrator.refresh_all()
        if ResourceClass.SERVICES.value not in result.errors:
            await self._store.save(storage_keys.SERVICES, self.snapshot.services)
        if ResourceClass.NETWORK_DEVICES.value not in result.errors:
            await self._store.save(storage_keys.NETWORK_DEVICES, self.snapshot.network_devices)
        return result

    async def test_connection(self) -> InitResult:
        return await self._client.test_connection()

    # ── Services ────────────────────────────────────────────────────

    async def perform_service_action(self, service_id: str, action: str) -> dict[str, Any]:
        handlers = {
            "start": self._client.start_service,
            "stop": self._client.stop_service,
            "restart": self._client.restart_service,
        }
        if action not in handlers:
            raise ValueError(f"Unknown action: {action}")
        if not any(s.get("id") == service_id for s in self.snapshot.services):
            raise EntityNotFoundError("Service", service_id)

        if action == "restart":
            self._set_service_status(service_id, "restarting")

        try:
            await handlers[action](service_id)
        except RemoteServiceError as exc:
            logger.error("Service %s on %s failed: %s", action, service_id, exc)
            return {"success": False, "error": str(exc)}

        self._set_service_status(service_id, _ACTION_RESULT_STATUS[action])
        await self._store.save(storage_keys.SERVICES, self.snapshot.services)
        return {"success": True}

    def _set_service_status(self, service_id: str, status: str) -> None:
        self.snapshot.services = [
            {**service, "status": status} if service.get("id") == service_id else service
            for service in self.snapshot.services
        ]

    # ── Network ─────────────────────────────────────────────────────

    async def scan_network(self) -> list[dict[str, Any]]:
        devices = await self._client.scan_network()
        try:
            self.snapshot.apply(ResourceClass.NETWORK_DEVICES, devices)
        except ValueError as exc:
            logger.warning("Ignoring network scan result: %s", exc)
            self.snapshot.errors[ResourceClass.NETWORK_DEVICES.value] = f"unexpected payload: {exc}"
            return self.snapshot.network_devices
        await self._store.save(storage_keys.NETWORK_DEVICES, self.snapshot.network_devices)
        return self.snapshot.network_devices

    # ── Automation ──────────────────────────────────────────────────

    async def add_automation_rule(self, rule: dict[str, Any]) -> dict[str, Any]:
        try:
            created = await self._client.create_automation_rule(rule)
        except RemoteServiceError as exc:
            logger.error("Creating automation rule failed: %s", exc)
            return {"success": False, "error": str(exc)}

        if not created.get("id"):
            created = {**created, "id": f"rule-{int(time.time() * 1000)}"}
        rules = [*self.snapshot.automation_rules, created]
        if not await self._store.save(storage_keys.AUTOMATION_RULES, rules):
            return {"success": False, "error": "Rule failed validation"}

        self.snapshot.automation_rules = rules
        return {"success": True, "rule": created}

    async def toggle_automation_rule(self, rule_id: str, enabled: bool) -> dict[str, Any]:
        if not any(r.get("id") == rule_id for r in self.snapshot.automation_rules):
            raise EntityNotFoundError("AutomationRule", rule_id)

        try:
            await self._client.toggle_automation_rule(rule_id, enabled)
        except RemoteServiceError as exc:
            logger.error("Toggling automation rule %s failed: %s", rule_id, exc)
            return {"success": False, "error": str(exc)}

        self.snapshot.automation_rules = [
            {**rule, "enabled": enabled} if rule.get("id") == rule_id else rule
            for rule in self.snapshot.automation_rules
        ]
        await self._store.save(storage_keys.AUTOMATION_RULES, self.snapshot.automation_rules)
        return {"success": True}

    # ── Derived views ───────────────────────────────────────────────

    def system_alerts(self) -> list[dict[str, Any]]:
        """Threshold alerts derived from the latest system metrics."""
        metrics = self.snapshot.system_metrics
        cpu = metrics.get("cpu") or {}
        memory = metrics.get("memory") or {}
        now = int(time.time() * 1000)
        alerts: list[dict[str, Any]] = []

        cpu_pct = cpu.get("percentage")
        if cpu_pct is not None:
            if cpu_pct >= SYSTEM_THRESHOLDS["cpu"]["critical"]:
                alerts.append(_alert("cpu-critical", "critical", f"CPU usage critically high: {cpu_pct}%", now))
            elif cpu_pct >= SYSTEM_THRESHOLDS["cpu"]["warning"]:
                alerts.append(_alert("cpu-warning", "medium", f"CPU usage high: {cpu_pct}%", now))

        temperature = cpu.get("temperature")
        if temperature is not None and temperature >= SYSTEM_THRESHOLDS["temperature"]["critical"]:
            alerts.append(_alert(
                "temp-critical", "critical", f"CPU temperature critically high: {temperature}°C", now
            ))

        mem_pct = memory.get("percentage")
        if mem_pct is not None and mem_pct >= SYSTEM_THRESHOLDS["memory"]["critical"]:
            alerts.append(_alert("memory-critical", "critical", f"Memory usage critically high: {mem_pct}%", now))

        return alerts

    def system_health(self) -> str:
        severities = {alert["severity"] for alert in self.system_alerts()}
        if "critical" in severities:
            return "critical"
        if "medium" in severities:
            return "warning"
        return "healthy"

    def overall_stats(self) -> dict[str, Any]:
        snapshot = self.snapshot
        online = [d for d in snapshot.network_devices if d.get("status") == "online"]
        average_ping = (
            round(sum(d.get("ping") or 0 for d in online) / len(online)) if online else 0
        )
        return {
            "services": {
                "total": len(snapshot.services),
                "running": sum(1 for s in snapshot.services if s.get("status") == "running"),
                "stopped": sum(1 for s in snapshot.services if s.get("status") == "stopped"),
            },
            "network": {
                "total": len(snapshot.network_devices),
                "online": len(online),
                "averagePing": average_ping,
            },
            "automation": {
                "totalRules": len(snapshot.automation_rules),
                "activeRules": sum(1 for r in snapshot.automation_rules if r.get("enabled")),
            },
            "system": {
                "health": self.system_health(),
                "alerts": len(self.system_alerts()),
                "uptime": snapshot.system_metrics.get("uptime", 0),
            },
            "connection": self.get_connection_status().value,
        }


def _alert(alert_id: str, severity: str, message: str, timestamp: int) -> dict[str, Any]:
    return {
        "id": alert_id,
        "type": "system",
        "severity": severity,
        "message": message,
        "timestamp": timestamp,
    }
