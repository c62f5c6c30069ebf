"""Entity Store — validated, backed-up persistence of entity collections.

Storage layout per logical key:
    <key>          — primary StorageRecord ``{data, timestamp, version}``
    <key>_backup   — identical copy written after every primary write
    error_log      — best-effort ring buffer of failures (see ErrorLog)

Reads go through an in-process cache that is trusted for ``cache_ttl``
seconds. Stale entries are only served when the backend itself raises.
"""

import copy
import json
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from eden.application.interfaces import KeyValueBackend
from eden.application.services.error_log import ErrorLog
from eden.application.services.validation import ValidatorRegistry
from eden.domain.entities import STORAGE_VERSION, CacheEntry, StorageRecord
from eden.domain.exceptions import EntityValidationError, StorageError
from eden.domain.storage_keys import backup_key

logger = logging.getLogger(__name__)

Collection = list[dict[str, Any]]

DEFAULT_CACHE_TTL = 300.0


def iso_now() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ImportResult:
    """Outcome of ``EntityStore.import_data``."""

    success: bool
    imported: int = 0
    results: dict[str, bool] = field(default_factory=dict)
    error: str | None = None


class EntityStore:
    """Owns entity collections on top of a KeyValueBackend.

    ``save`` and ``load`` never raise for validation or storage failures;
    they report them as ``False`` / ``None`` and record them in the error log.
    Same-key writes are not serialized here: callers await each save before
    issuing the next one for that key.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        registry: ValidatorRegistry,
        error_log: ErrorLog | None = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backend = backend
        self._registry = registry
        self._error_log = error_log or ErrorLog(backend)
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}

    @property
    def error_log(self) -> ErrorLog:
        return self._error_log

    def validate(self, key: str, collection: Collection) -> None:
        """Raise EntityValidationError if ``collection`` cannot be saved under ``key``."""
        self._registry.validate(key, collection)

    # ── Save / Load ─────────────────────────────────────────────────

    async def save(self, key: str, collection: Collection) -> bool:
        """Validate and write ``collection`` to the primary and backup slots."""
        try:
            self._registry.validate(key, collection)
        except EntityValidationError as exc:
            await self._error_log.record("save", key, exc)
            return False

        try:
            serialized = StorageRecord(data=collection).to_json()
        except (TypeError, ValueError) as exc:
            await self._error_log.record("save", key, StorageError("serialize", key, str(exc)))
            return False

        try:
            await self._backend.set(key, serialized)
        except StorageError as exc:
            await self._error_log.record("save", key, exc)
            return False

        try:
            await self._backend.set(backup_key(key), serialized)
        except StorageError as exc:
            logger.warning("Backup write failed for %s: %s", key, exc)
            await self._error_log.record("backup", key, exc)

        self.cache_put(key, collection)
        logger.debug("Saved %d entities under %s", len(collection), key)
        return True

    async def load(self, key: str) -> Collection | None:
        """Return the collection for ``key``, recovering from backup if needed."""
        entry = self._cache.get(key)
        if entry is not None and entry.is_fresh(self._cache_ttl, now=self._clock()):
            return copy.deepcopy(entry.data)

        try:
            found = await self._read_slot(key, key)
            if found is None:
                found = await self._read_slot(backup_key(key), key)
                if found is not None:
                    logger.warning("Primary slot for %s unusable — recovered from backup", key)
                    await self._restore_primary(key, found[1])
        except StorageError as exc:
            await self._error_log.record("load", key, exc)
            if entry is not None:
                logger.warning("Backend unavailable — serving stale cache for %s", key)
                return copy.deepcopy(entry.data)
            return None

        if found is None:
            return None

        data, _ = found
        self.cache_put(key, data)
        return copy.deepcopy(data)

    async def _read_slot(self, slot: str, key: str) -> tuple[Collection, str] | None:
        """Read one slot; None when absent, corrupt or failing validation."""
        raw = await self._backend.get(slot)
        if raw is None:
            return None

        try:
            record = StorageRecord.from_json(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Corrupt payload in %s: %s", slot, exc)
            return None

        if not self._registry.is_valid(key, record.data):
            logger.warning("Payload in %s failed validation for %s", slot, key)
            return None

        return record.data, raw

    async def _restore_primary(self, key: str, raw: str) -> None:
        try:
            await self._backend.set(key, raw)
        except StorageError as exc:
            await self._error_log.record("restore", key, exc)

    async def clear(self, key: str) -> bool:
        """Remove the primary and backup slots and forget the cache entry."""
        self._cache.pop(key, None)
        try:
            await self._backend.delete(key)
            await self._backend.delete(backup_key(key))
        except StorageError as exc:
            await self._error_log.record("clear", key, exc)
            return False
        return True

    # ── Pure collection transforms ──────────────────────────────────

    @staticmethod
    def update(
        collection: Collection,
        entity_id: str,
        patch: dict[str, Any],
        now: str | None = None,
    ) -> Collection:
        """Return a new collection with ``patch`` merged over the matching entity.

        ``id`` in the patch is ignored and ``updatedAt`` is always refreshed.
        A missing id returns an equal collection.
        """
        timestamp = now or iso_now()
        return [
            {**entity, **patch, "id": entity["id"], "updatedAt": timestamp}
            if entity.get("id") == entity_id
            else entity
            for entity in collection
        ]

    @staticmethod
    def delete(collection: Collection, entity_id: str) -> Collection:
        """Return a new collection without ``entity_id``; missing id is a no-op."""
        return [entity for entity in collection if entity.get("id") != entity_id]

    # ── Cache ───────────────────────────────────────────────────────

    def cache_put(self, key: str, data: Collection) -> None:
        self._cache[key] = CacheEntry(data=copy.deepcopy(data), timestamp=self._clock())

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def apply_external(self, key: str, collection: Collection) -> None:
        """Adopt a collection another context already persisted; never writes."""
        if collection:
            self.cache_put(key, collection)
        else:
            self.invalidate(key)

    def cache_stats(self) -> dict[str, Any]:
        return {"size": len(self._cache), "keys": list(self._cache)}

    # ── Export / Import ─────────────────────────────────────────────

    async def export_data(self, keys: Iterable[str]) -> str:
        """Serialize every available collection into one JSON document."""
        data: dict[str, Collection] = {}
        for key in keys:
            loaded = await self.load(key)
            if loaded is not None:
                data[key] = loaded

        return json.dumps(
            {"version": STORAGE_VERSION, "timestamp": int(time.time() * 1000), "data": data},
            indent=2,
            ensure_ascii=False,
        )

    async def import_data(self, payload: str) -> ImportResult:
        """Save every collection from an export document through ``save``."""
        try:
            parsed = json.loads(payload)
        except ValueError as exc:
            logger.error("Import rejected: %s", exc)
            return ImportResult(success=False, error=f"Invalid JSON: {exc}")

        if not isinstance(parsed, dict) or not isinstance(parsed.get("data"), dict):
            return ImportResult(success=False, error="Invalid import data format")

        results: dict[str, bool] = {}
        for key, collection in parsed["data"].items():
            results[key] = await self.save(key, collection)

        logger.info("Imported %d collection(s): %s", len(results), results)
        return ImportResult(
            success=all(results.values()),
            imported=sum(1 for ok in results.values() if ok),
            results=results,
        )
