"""Aggregate read model of the homelab panel and the error-log entry type."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ResourceClass(str, Enum):
    """Independently refreshed slices of homelab state."""

    SYSTEM_METRICS = "system_metrics"
    SERVICES = "services"
    NETWORK_DEVICES = "network_devices"
    STORAGE = "storage"
    AUTOMATION_RULES = "automation_rules"
    SECURITY_ALERTS = "security_alerts"


def _as_object(value: Any, label: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{label}: expected an object, got {type(value).__name__}")
    return dict(value)


def _as_records(value: Any, label: str) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        raise ValueError(f"{label}: expected a list, got {type(value).__name__}")
    if not all(isinstance(item, dict) for item in value):
        raise ValueError(f"{label}: every item must be an object")
    return list(value)


@dataclass
class HomelabSnapshot:
    """Last known-good (or simulated) state of every resource class.

    ``errors`` only carries entries for resource classes whose most recent
    fetch failed; healthy resources never inherit another resource's error.
    """

    system_metrics: dict[str, Any] = field(default_factory=dict)
    services: list[dict[str, Any]] = field(default_factory=list)
    service_metrics: dict[str, Any] = field(default_factory=dict)
    network_devices: list[dict[str, Any]] = field(default_factory=list)
    storage: list[dict[str, Any]] = field(default_factory=list)
    automation_rules: list[dict[str, Any]] = field(default_factory=list)
    security_alerts: list[dict[str, Any]] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    last_updated: dict[str, datetime] = field(default_factory=dict)

    @staticmethod
    def normalize(resource: ResourceClass, data: Any) -> dict[str, Any]:
        """Map a raw payload onto snapshot fields.

        Raises ValueError when the payload does not have the shape expected
        for ``resource``.
        """
        if resource is ResourceClass.SYSTEM_METRICS:
            return {"system_metrics": _as_object(data, resource.value)}
        if resource is ResourceClass.SERVICES:
            if isinstance(data, dict):
                return {
                    "services": _as_records(data.get("services", []), "services"),
                    "service_metrics": _as_object(data.get("metrics", {}), "services.metrics"),
                }
            return {"services": _as_records(data, "services")}
        return {resource.value: _as_records(data, resource.value)}

    def apply(self, resource: ResourceClass, data: Any) -> None:
        """Store a fresh payload for ``resource`` and clear its error entry.

        A payload of the wrong shape raises ValueError and changes nothing.
        """
        for name, value in self.normalize(resource, data).items():
            setattr(self, name, value)

        self.errors.pop(resource.value, None)
        self.last_updated[resource.value] = datetime.now(timezone.utc)

    def has_data(self, resource: ResourceClass) -> bool:
        if resource is ResourceClass.SERVICES:
            return bool(self.services)
        return bool(getattr(self, resource.value))

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["last_updated"] = {k: v.isoformat() for k, v in self.last_updated.items()}
        return result


@dataclass
class ErrorLogEntry:
    """One best-effort record in the persisted ``error_log`` collection."""

    operation: str
    key: str
    error: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, str]:
        return asdict(self)
