"""Application service (use case) exposing one entity collection to consumers."""

import asyncio
import copy
import logging
import uuid
from typing import Any

from eden.application.services.entity_store import Collection, EntityStore, iso_now
from eden.domain.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)


class CollectionService:
    """In-memory state of one collection, persisted through the EntityStore.

    Mutations are copy-on-write: every change produces a new list snapshot.
    With ``persist=True`` (the default) the snapshot is saved immediately;
    otherwise the collection is marked dirty and left for the autosave
    scheduler. A mutation that would make the collection invalid raises
    EntityValidationError and leaves the state untouched; a failed save keeps
    the new in-memory state and the dirty flag.
    """

    def __init__(self, key: str, store: EntityStore, entity_type: str = "Entity"):
        self._key = key
        self._store = store
        self._entity_type = entity_type
        self._items: Collection = []
        self._dirty = False
        self._save_lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self._key

    @property
    def entity_type(self) -> str:
        return self._entity_type

    @property
    def dirty(self) -> bool:
        return self._dirty

    async def load(self) -> Collection:
        """Populate in-memory state from the store (empty when nothing is stored)."""
        loaded = await self._store.load(self._key)
        self._items = loaded or []
        self._dirty = False
        logger.info("Loaded %d %s entities from %s", len(self._items), self._entity_type, self._key)
        return self.list_entities()

    def list_entities(self) -> Collection:
        return copy.deepcopy(self._items)

    def get_entity(self, entity_id: str) -> dict[str, Any]:
        for entity in self._items:
            if entity.get("id") == entity_id:
                return copy.deepcopy(entity)
        raise EntityNotFoundError(self._entity_type, entity_id)

    async def add_entity(self, fields: dict[str, Any], persist: bool = True) -> dict[str, Any]:
        """Append a new entity with a generated id and fresh timestamps."""
        timestamp = iso_now()
        entity = {
            **fields,
            "id": uuid.uuid4().hex,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }
        await self._commit([*self._items, entity], persist)
        return copy.deepcopy(entity)

    async def update_entity(
        self, entity_id: str, patch: dict[str, Any], persist: bool = True
    ) -> dict[str, Any] | None:
        """Merge ``patch`` over the entity. Returns None when the id is unknown."""
        if not any(entity.get("id") == entity_id for entity in self._items):
            logger.debug("update_entity: %s not in %s (no-op)", entity_id, self._key)
            return None

        updated = EntityStore.update(self._items, entity_id, patch)
        await self._commit(updated, persist)
        return next(
            copy.deepcopy(entity) for entity in updated if entity.get("id") == entity_id
        )

    async def delete_entity(self, entity_id: str, persist: bool = True) -> bool:
        """Remove the entity. Returns False when the id was already gone."""
        remaining = EntityStore.delete(self._items, entity_id)
        if len(remaining) == len(self._items):
            return False
        await self._commit(remaining, persist)
        return True

    async def save(self) -> bool:
        """Write the current snapshot; saves of this collection run one at a time."""
        async with self._save_lock:
            snapshot = self._items
            ok = await self._store.save(self._key, snapshot)
            if ok and self._items is snapshot:
                self._dirty = False
            return ok

    async def flush(self) -> bool:
        """Autosave hook — writes the current snapshot if it has unsaved changes."""
        if not self._dirty:
            return True
        return await self.save()

    async def clear(self) -> bool:
        self._items = []
        self._dirty = False
        return await self._store.clear(self._key)

    async def _commit(self, items: Collection, persist: bool) -> None:
        self._store.validate(self._key, items)
        self._items = items
        self._dirty = True
        if persist and not await self.save():
            logger.warning("Save of %s failed — keeping unsaved changes in memory", self._key)

    # ── Reconciliation target ───────────────────────────────────────

    def current(self) -> Collection:
        return self._items

    def replace(self, data: Collection) -> None:
        """Adopt a collection written by another context, without re-writing it."""
        self._items = copy.deepcopy(data)
        self._dirty = False
        self._store.apply_external(self._key, data)
