"""Best-effort persisted log of storage failures."""

import json
import logging

from eden.application.interfaces import KeyValueBackend
from eden.domain import storage_keys
from eden.domain.entities import ErrorLogEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100


class ErrorLog:
    """Appends ``{timestamp, operation, key, error}`` entries to ``error_log``.

    The log is a ring buffer of at most ``max_entries`` items; the oldest
    entries are dropped first. Every failure inside the log itself is logged
    and swallowed so it never masks the original error.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        key: str = storage_keys.ERROR_LOG,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self._backend = backend
        self._key = key
        self._max_entries = max(1, max_entries)

    async def record(self, operation: str, key: str, error: Exception | str) -> None:
        message = str(error)
        entry = ErrorLogEntry(operation=operation, key=key, error=message)
        logger.error("Storage %s failed for key %s: %s", operation, key, message)

        try:
            entries = await self.entries()
            entries.append(entry.to_dict())
            entries = entries[-self._max_entries:]
            await self._backend.set(self._key, json.dumps(entries))
        except Exception as exc:
            logger.error("Error logging failed: %s", exc)

    async def entries(self) -> list[dict]:
        raw = await self._backend.get(self._key)
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning("Discarding corrupt %s payload", self._key)
            return []
        return parsed if isinstance(parsed, list) else []

    async def clear(self) -> None:
        await self._backend.delete(self._key)
