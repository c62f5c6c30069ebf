"""Simulated homelab data — plausible substitutes when the API is unavailable.

Every generator mirrors the shape of the real endpoint and keeps numbers in
bounded, realistic ranges (e.g. CPU 30–60 %, never negative, never > 100).
"""

import random
import time
from typing import Any

_SERVICES = (
    ("docker", "Docker", "running", 2376, "infrastructure"),
    ("pihole", "Pi-hole", "running", 80, "network"),
    ("plex", "Plex Media Server", "running", 32400, "media"),
    ("homeassistant", "Home Assistant", "running", 8123, "automation"),
    ("nginx", "Nginx Proxy", "running", 443, "infrastructure"),
    ("portainer", "Portainer", "running", 9000, "management"),
    ("jellyfin", "Jellyfin", "stopped", 8096, "media"),
    ("nextcloud", "NextCloud", "running", 8080, "storage"),
)

_DEVICES = (
    ("router", "Main Router", "192.168.1.1", 1, "00:1A:2B:3C:4D:5E"),
    ("switch", "Network Switch", "192.168.1.2", 2, "00:1A:2B:3C:4D:5F"),
    ("nas", "NAS Server", "192.168.1.100", 3, "00:1A:2B:3C:4D:60"),
    ("server", "Main Server", "192.168.1.101", 2, "00:1A:2B:3C:4D:61"),
    ("pihole", "Pi-hole", "192.168.1.102", 4, "00:1A:2B:3C:4D:62"),
    ("smart-tv", "Smart TV", "192.168.1.105", 8, "00:1A:2B:3C:4D:63"),
)

_THIRTY_DAYS = 30 * 24 * 3600


class HomelabSimulator:
    """Generates simulated payloads; inject ``rng`` for deterministic tests."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def _between(self, low: int, high: int) -> int:
        """Integer in ``[low, high)``."""
        return self._rng.randrange(low, high)

    def system_metrics(self) -> dict[str, Any]:
        return {
            "cpu": {
                "percentage": self._between(30, 60),
                "temperature": self._between(50, 70),
                "cores": 8,
            },
            "memory": {
                "used": self._between(6, 10),
                "total": 16,
                "percentage": self._between(40, 65),
            },
            "network": {
                "download": self._between(30, 50),
                "upload": self._between(10, 20),
                "latency": self._between(15, 25),
            },
            "power": {
                "consumption": self._between(150, 200),
                "efficiency": self._between(85, 95),
            },
            "uptime": int(time.time()) - self._between(0, _THIRTY_DAYS),
        }

    def service_status(self) -> dict[str, Any]:
        services = [
            {"id": sid, "name": name, "status": status, "port": port, "category": category}
            for sid, name, status, port, category in _SERVICES
        ]
        metrics = {
            service["id"]: {
                "cpu": self._between(5, 25),
                "memory": self._between(100, 600),
                "uptime": self._between(3600, 90000),
                "requests": self._between(100, 1100),
            }
            for service in services
        }
        return {"services": services, "metrics": metrics}

    def network_devices(self) -> list[dict[str, Any]]:
        return [
            {"id": did, "name": name, "ip": ip, "status": "online", "ping": ping, "mac": mac}
            for did, name, ip, ping, mac in _DEVICES
        ]

    def storage_status(self) -> list[dict[str, Any]]:
        return [
            {"id": "main", "name": "Main Drive", "path": "/", "used": 120, "total": 500, "percentage": 24, "type": "SSD"},
            {"id": "data", "name": "Data Drive", "path": "/data", "used": 800, "total": 2000, "percentage": 40, "type": "HDD"},
            {"id": "backup", "name": "Backup Drive", "path": "/backup", "used": 450, "total": 1000, "percentage": 45, "type": "HDD"},
        ]

    def automation_rules(self) -> list[dict[str, Any]]:
        return [
            {
                "id": "lights-off",
                "name": "Turn off lights at night",
                "trigger": {"type": "time", "value": "23:00"},
                "action": {"type": "device", "device": "all-lights", "action": "off"},
                "enabled": True,
            },
            {
                "id": "backup-daily",
                "name": "Daily backup",
                "trigger": {"type": "time", "value": "02:00"},
                "action": {"type": "service", "service": "backup", "action": "start"},
                "enabled": True,
            },
        ]

    def security_alerts(self) -> list[dict[str, Any]]:
        return [
            {
                "id": "alert-1",
                "type": "intrusion",
                "severity": "medium",
                "message": "Multiple failed login attempts detected",
                "timestamp": int(time.time() * 1000) - 300_000,
                "source": "192.168.1.150",
            }
        ]
