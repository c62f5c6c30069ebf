"""Persisted envelope and in-memory cache entries for entity collections."""

import json
import time
from dataclasses import dataclass, field
from typing import Any

STORAGE_VERSION = "1.0.0"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class StorageRecord:
    """Envelope written under a logical key: ``{data, timestamp, version}``.

    ``timestamp`` is epoch milliseconds; ``version`` is the storage format
    version and allows forward migration of older payloads.
    """

    data: list[dict[str, Any]]
    timestamp: int = field(default_factory=_now_ms)
    version: str = STORAGE_VERSION

    def to_json(self) -> str:
        """Serialize the envelope. Raises ValueError/TypeError for bad payloads."""
        return json.dumps(
            {"data": self.data, "timestamp": self.timestamp, "version": self.version},
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str) -> "StorageRecord":
        """Parse a stored payload, accepting the legacy bare-array format.

        Raises ValueError when the payload is not JSON, has no list of
        objects or carries a non-numeric timestamp.
        """
        parsed = json.loads(raw)

        # Legacy format: the collection itself was stored without an envelope
        if isinstance(parsed, list):
            parsed = {"data": parsed, "timestamp": 0, "version": "0"}

        if not isinstance(parsed, dict) or "data" not in parsed:
            raise ValueError("payload has no 'data' field")

        data = parsed["data"]
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise ValueError("'data' must be a list of objects")

        try:
            timestamp = int(parsed.get("timestamp") or 0)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid 'timestamp': {exc}") from exc

        return cls(data=data, timestamp=timestamp, version=str(parsed.get("version") or "0"))


@dataclass
class CacheEntry:
    """In-process copy of a collection, trusted for ``ttl`` seconds."""

    data: list[dict[str, Any]]
    timestamp: float = field(default_factory=time.monotonic)

    def is_fresh(self, ttl: float, now: float | None = None) -> bool:
        current = time.monotonic() if now is None else now
        return current - self.timestamp < ttl
