"""Homelab API client — resilient access to the remote homelab service.

Communicates with the homelab API (default http://localhost:3001/api) using
httpx. Every request attempt is bounded by a timeout and retried according
to a RetryPolicy. Read accessors never raise: after the retries are
exhausted they return simulated data of the same shape.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from eden.domain.entities import ConnectionStateMachine, ConnectionStatus, ResourceClass
from eden.domain.exceptions import RemoteHTTPError, RemoteServiceError, RemoteTimeoutError
from eden.infrastructure.homelab.retry_policy import RetryPolicy, linear_backoff
from eden.infrastructure.homelab.simulated_data import HomelabSimulator

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_BASE_URL = "http://localhost:3001/api"
DEFAULT_TIMEOUT = 10.0

RESOURCE_ENDPOINTS: dict[ResourceClass, str] = {
    ResourceClass.SYSTEM_METRICS: "/system/metrics",
    ResourceClass.SERVICES: "/services",
    ResourceClass.NETWORK_DEVICES: "/network/devices",
    ResourceClass.STORAGE: "/storage",
    ResourceClass.AUTOMATION_RULES: "/automation/rules",
    ResourceClass.SECURITY_ALERTS: "/security/alerts",
}


@dataclass
class InitResult:
    """Outcome of ``initialize()``.

    ``success`` is True in mock mode too: an unreachable API is a supported
    steady state, reported through ``status`` rather than as a failure.
    """

    success: bool
    status: ConnectionStatus
    data: Any = None
    error: str | None = None


class HomelabApiClient:
    """Infrastructure adapter for the homelab REST API.

    Owns the ConnectionStateMachine of the integration. ``request`` propagates
    the final error; resource accessors absorb it and fall back to the
    HomelabSimulator.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        retry_policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
        simulator: HomelabSimulator | None = None,
        connection: ConnectionStateMachine | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._retry = retry_policy or RetryPolicy(max_attempts=3, delay_fn=linear_backoff(1.0))
        self._http_client = http_client
        self._sleep = sleep
        self._simulator = simulator or HomelabSimulator()
        self._connection = connection or ConnectionStateMachine()

    @property
    def connection(self) -> ConnectionStateMachine:
        return self._connection

    @property
    def simulator(self) -> HomelabSimulator:
        return self._simulator

    def get_connection_status(self) -> ConnectionStatus:
        return self._connection.status

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    # ── Core request ────────────────────────────────────────────────

    async def request(self, method: str, endpoint: str, json: Any = None) -> Any:
        """Send one logical request, retrying per policy.

        Raises the last RemoteServiceError once every attempt has failed.
        """
        client = await self._get_client()
        should_close = self._http_client is None

        try:
            attempt = 1
            while True:
                try:
                    return await self._send_once(client, method, endpoint, json)
                except RemoteServiceError as exc:
                    if not self._retry.should_retry(attempt):
                        logger.warning(
                            "%s %s failed after %d attempt(s): %s",
                            method, endpoint, attempt, exc,
                        )
                        raise
                    delay = self._retry.delay_after(attempt)
                    logger.info(
                        "%s %s attempt %d/%d failed (%s) — retrying in %.1fs",
                        method, endpoint, attempt, self._retry.max_attempts, exc, delay,
                    )
                    await self._sleep(delay)
                    attempt += 1
        finally:
            if should_close:
                await client.aclose()

    async def _send_once(
        self, client: httpx.AsyncClient, method: str, endpoint: str, json: Any
    ) -> Any:
        url = f"{self._base_url}{endpoint}"
        try:
            response = await asyncio.wait_for(
                client.request(method, url, headers=self._get_headers(), json=json),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RemoteTimeoutError(endpoint, self._timeout) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RemoteServiceError(endpoint, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise RemoteHTTPError(endpoint, response.status_code, response.reason_phrase)

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError(endpoint, "response body is not valid JSON") from exc

    # ── Connection lifecycle ────────────────────────────────────────

    async def initialize(self) -> InitResult:
        """Probe ``/health``: success → connected, failure → mock. Never raises."""
        self._connection.transition(ConnectionStatus.CONNECTING)
        try:
            data = await self.request("GET", "/health")
        except RemoteServiceError as exc:
            logger.warning("Homelab API not available, using mock mode: %s", exc)
            self._connection.transition(ConnectionStatus.MOCK)
            return InitResult(success=True, status=ConnectionStatus.MOCK, error=str(exc))

        self._connection.transition(ConnectionStatus.CONNECTED)
        logger.info("Homelab API connected at %s", self._base_url)
        return InitResult(success=True, status=ConnectionStatus.CONNECTED, data=data)

    async def test_connection(self) -> InitResult:
        """Explicit retest: success → connected, failure → error."""
        if self._connection.status is ConnectionStatus.DISCONNECTED:
            self._connection.transition(ConnectionStatus.CONNECTING)
        try:
            data = await self.request("GET", "/health")
        except RemoteServiceError as exc:
            self._connection.transition(ConnectionStatus.ERROR)
            return InitResult(success=False, status=ConnectionStatus.ERROR, error=str(exc))

        self._connection.transition(ConnectionStatus.CONNECTED)
        return InitResult(success=True, status=ConnectionStatus.CONNECTED, data=data)

    def mark_success(self) -> None:
        if self._connection.status is ConnectionStatus.ERROR:
            self._connection.transition(ConnectionStatus.CONNECTED)

    def mark_failure(self) -> None:
        """Exhausted retries: connected (or never initialized) becomes error; mock stays mock."""
        status = self._connection.status
        if status is ConnectionStatus.DISCONNECTED:
            self._connection.transition(ConnectionStatus.CONNECTING)
            self._connection.transition(ConnectionStatus.ERROR)
        elif status is ConnectionStatus.CONNECTED:
            self._connection.transition(ConnectionStatus.ERROR)

    # ── Resource reads ──────────────────────────────────────────────

    async def fetch(self, resource: ResourceClass) -> Any:
        """Raw live read of one resource class; raises on failure."""
        return await self.request("GET", RESOURCE_ENDPOINTS[resource])

    def simulate(self, resource: ResourceClass) -> Any:
        generators: dict[ResourceClass, Callable[[], Any]] = {
            ResourceClass.SYSTEM_METRICS: self._simulator.system_metrics,
            ResourceClass.SERVICES: self._simulator.service_status,
            ResourceClass.NETWORK_DEVICES: self._simulator.network_devices,
            ResourceClass.STORAGE: self._simulator.storage_status,
            ResourceClass.AUTOMATION_RULES: self._simulator.automation_rules,
            ResourceClass.SECURITY_ALERTS: self._simulator.security_alerts,
        }
        return generators[resource]()

    async def _read(self, resource: ResourceClass) -> Any:
        if self._connection.is_mock:
            return self.simulate(resource)

        try:
            data = await self.fetch(resource)
        except RemoteServiceError as exc:
            logger.warning("Failed to fetch %s, using simulated data: %s", resource.value, exc)
            self.mark_failure()
            return self.simulate(resource)

        self.mark_success()
        return data

    async def get_system_metrics(self) -> dict[str, Any]:
        return await self._read(ResourceClass.SYSTEM_METRICS)

    async def get_service_status(self) -> dict[str, Any]:
        return await self._read(ResourceClass.SERVICES)

    async def get_network_devices(self) -> list[dict[str, Any]]:
        return await self._read(ResourceClass.NETWORK_DEVICES)

    async def get_storage_status(self) -> list[dict[str, Any]]:
        return await self._read(ResourceClass.STORAGE)

    async def get_automation_rules(self) -> list[dict[str, Any]]:
        return await self._read(ResourceClass.AUTOMATION_RULES)

    async def get_security_alerts(self) -> list[dict[str, Any]]:
        return await self._read(ResourceClass.SECURITY_ALERTS)

    async def scan_network(self) -> list[dict[str, Any]]:
        """Ask the API for a fresh device scan; simulated devices on failure."""
        if self._connection.is_mock:
            return self._simulator.network_devices()

        try:
            data = await self.request("POST", "/network/scan")
        except RemoteServiceError as exc:
            logger.warning("Network scan failed, using simulated devices: %s", exc)
            self.mark_failure()
            return self._simulator.network_devices()

        self.mark_success()
        return data

    # ── Actions ─────────────────────────────────────────────────────
    # Acknowledged locally in mock mode; otherwise failures propagate.

    async def _service_action(self, service_id: str, action: str) -> dict[str, Any]:
        if self._connection.is_mock:
            return {"success": True, "serviceId": service_id}
        return await self.request("POST", f"/services/{service_id}/{action}")

    async def start_service(self, service_id: str) -> dict[str, Any]:
        return await self._service_action(service_id, "start")

    async def stop_service(self, service_id: str) -> dict[str, Any]:
        return await self._service_action(service_id, "stop")

    async def restart_service(self, service_id: str) -> dict[str, Any]:
        return await self._service_action(service_id, "restart")

    async def create_automation_rule(self, rule: dict[str, Any]) -> dict[str, Any]:
        if self._connection.is_mock:
            return {**rule, "id": f"rule-{int(time.time() * 1000)}"}
        return await self.request("POST", "/automation/rules", json=rule)

    async def toggle_automation_rule(self, rule_id: str, enabled: bool) -> dict[str, Any]:
        if self._connection.is_mock:
            return {"success": True, "ruleId": rule_id, "enabled": enabled}
        return await self.request(
            "PATCH", f"/automation/rules/{rule_id}", json={"enabled": enabled}
        )
