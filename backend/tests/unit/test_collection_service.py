"""Unit tests for the CollectionService."""

import asyncio

import pytest

from eden.application.services import CollectionService, EntityStore, build_default_registry
from eden.domain import storage_keys
from eden.domain.exceptions import EntityNotFoundError, EntityValidationError, StorageError
from eden.infrastructure.storage import InMemoryKeyValueBackend


class CountingBackend(InMemoryKeyValueBackend):
    def __init__(self, quota_bytes: int | None = None):
        super().__init__(quota_bytes=quota_bytes)
        self.set_calls: list[str] = []

    async def set(self, key: str, value: str) -> None:
        self.set_calls.append(key)
        await super().set(key, value)


@pytest.fixture
def backend() -> CountingBackend:
    return CountingBackend()


@pytest.fixture
def service(backend: CountingBackend) -> CollectionService:
    store = EntityStore(backend, build_default_registry())
    return CollectionService(storage_keys.TASKS, store, "Task")


@pytest.mark.asyncio
async def test_add_entity_generates_id_and_timestamps(service: CollectionService):
    task = await service.add_entity({"title": "Buy milk"})

    assert task["id"]
    assert task["createdAt"] == task["updatedAt"]
    assert task["createdAt"].endswith("Z")
    assert service.list_entities() == [task]
    assert service.dirty is False


@pytest.mark.asyncio
async def test_add_entity_persists_immediately(service: CollectionService, backend: CountingBackend):
    await service.add_entity({"title": "Buy milk"})
    assert storage_keys.TASKS in backend.set_calls
    assert storage_keys.backup_key(storage_keys.TASKS) in backend.set_calls


@pytest.mark.asyncio
async def test_deferred_add_marks_dirty_until_flush(service: CollectionService, backend: CountingBackend):
    await service.add_entity({"title": "Buy milk"}, persist=False)

    assert service.dirty is True
    assert backend.set_calls == []

    assert await service.flush() is True
    assert service.dirty is False
    assert storage_keys.TASKS in backend.set_calls


@pytest.mark.asyncio
async def test_flush_without_changes_does_not_write(service: CollectionService, backend: CountingBackend):
    assert await service.flush() is True
    assert backend.set_calls == []


@pytest.mark.asyncio
async def test_invalid_entity_is_rejected_without_state_change(service: CollectionService):
    await service.add_entity({"title": "Buy milk"})

    with pytest.raises(EntityValidationError):
        await service.add_entity({"title": "Too much", "progress": 500})

    assert len(service.list_entities()) == 1


@pytest.mark.asyncio
async def test_update_entity_merges_patch(service: CollectionService):
    task = await service.add_entity({"title": "Buy milk"})

    updated = await service.update_entity(task["id"], {"title": "Buy oat milk", "id": "hijack"})

    assert updated["id"] == task["id"]
    assert updated["title"] == "Buy oat milk"
    assert updated["updatedAt"] >= task["updatedAt"]


@pytest.mark.asyncio
async def test_update_missing_entity_is_noop(service: CollectionService, backend: CountingBackend):
    await service.add_entity({"title": "Buy milk"})
    backend.set_calls.clear()

    assert await service.update_entity("missing", {"title": "x"}) is None
    assert backend.set_calls == []


@pytest.mark.asyncio
async def test_delete_entity(service: CollectionService):
    task = await service.add_entity({"title": "Buy milk"})

    assert await service.delete_entity(task["id"]) is True
    assert await service.delete_entity(task["id"]) is False
    assert service.list_entities() == []


def test_get_entity_not_found(service: CollectionService):
    with pytest.raises(EntityNotFoundError):
        service.get_entity("missing")


@pytest.mark.asyncio
async def test_load_restores_persisted_state(backend: CountingBackend, service: CollectionService):
    task = await service.add_entity({"title": "Buy milk"})

    fresh = CollectionService(
        storage_keys.TASKS, EntityStore(backend, build_default_registry()), "Task"
    )
    assert await fresh.load() == [task]


@pytest.mark.asyncio
async def test_failed_save_keeps_changes_in_memory():
    backend = CountingBackend(quota_bytes=800)
    store = EntityStore(backend, build_default_registry())
    service = CollectionService(storage_keys.NOTES, store, "Note")

    await service.add_entity({"title": "Short"})
    await service.add_entity({"title": "Long", "content": "x" * 1000})

    assert len(service.list_entities()) == 2
    assert service.dirty is True
    entries = await store.error_log.entries()
    assert any("quota exceeded" in entry["error"] for entry in entries)


@pytest.mark.asyncio
async def test_replace_adopts_state_without_writing(service: CollectionService, backend: CountingBackend):
    task = await service.add_entity({"title": "Buy milk"})
    backend.set_calls.clear()

    service.replace([])

    assert service.current() == []
    assert service.dirty is False
    assert backend.set_calls == []
    assert task not in service.list_entities()


@pytest.mark.asyncio
async def test_quota_exceeded_raises_storage_error():
    backend = InMemoryKeyValueBackend(quota_bytes=10)
    with pytest.raises(StorageError):
        await backend.set("tasks", "x" * 20)
    assert await backend.get("tasks") is None


# ── Saves racing with mutations ──


class GatedBackend(CountingBackend):
    """Blocks every write until ``gate`` is set."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.gate.set()

    async def set(self, key: str, value: str) -> None:
        await self.gate.wait()
        await super().set(key, value)


async def _stored_titles(backend: CountingBackend) -> list[str]:
    stored = await EntityStore(backend, build_default_registry()).load(storage_keys.TASKS)
    return [task["title"] for task in stored or []]


@pytest.mark.asyncio
async def test_change_during_flush_keeps_collection_dirty():
    backend = GatedBackend()
    service = CollectionService(storage_keys.TASKS, EntityStore(backend, build_default_registry()), "Task")
    await service.add_entity({"title": "A"}, persist=False)

    backend.gate.clear()
    flushing = asyncio.create_task(service.flush())
    await asyncio.sleep(0)
    await service.add_entity({"title": "B"}, persist=False)
    backend.gate.set()

    assert await flushing is True
    assert await _stored_titles(backend) == ["A"]
    assert service.dirty is True

    assert await service.flush() is True
    assert await _stored_titles(backend) == ["A", "B"]
    assert service.dirty is False


@pytest.mark.asyncio
async def test_queued_save_lands_after_the_one_in_flight():
    backend = GatedBackend()
    service = CollectionService(storage_keys.TASKS, EntityStore(backend, build_default_registry()), "Task")
    await service.add_entity({"title": "A"}, persist=False)

    backend.gate.clear()
    flushing = asyncio.create_task(service.flush())
    await asyncio.sleep(0)
    adding = asyncio.create_task(service.add_entity({"title": "B"}))
    await asyncio.sleep(0)
    backend.gate.set()
    await asyncio.gather(flushing, adding)

    assert await _stored_titles(backend) == ["A", "B"]
    assert service.dirty is False
