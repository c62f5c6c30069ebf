"""Dependency wiring — builds the object graph and exposes FastAPI dependencies."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from eden.application.interfaces import ChangeChannel, KeyValueBackend
from eden.application.services import (
    AutosaveScheduler,
    ChangeNotifier,
    CollectionService,
    EntityStore,
    ErrorLog,
    HomelabService,
    PollingOrchestrator,
    build_default_registry,
)
from eden.config import Settings, get_settings
from eden.domain import storage_keys
from eden.domain.entities import ResourceClass
from eden.infrastructure.database import (
    SQLAlchemyKeyValueBackend,
    build_engine,
    build_session_factory,
    create_tables,
)
from eden.infrastructure.homelab import HomelabApiClient, RetryPolicy, linear_backoff
from eden.infrastructure.storage import NotifyingBackend
from eden.infrastructure.sync import InProcessChangeChannel

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

# Consumer-facing collections: logical key → entity type label.
USER_COLLECTIONS = {
    storage_keys.TASKS: "Task",
    storage_keys.NOTES: "Note",
}


def polling_intervals(settings: Settings) -> dict[ResourceClass, float]:
    return {
        ResourceClass.SYSTEM_METRICS: settings.poll_system_metrics_seconds,
        ResourceClass.SERVICES: settings.poll_services_seconds,
        ResourceClass.NETWORK_DEVICES: settings.poll_network_devices_seconds,
        ResourceClass.STORAGE: settings.poll_storage_seconds,
        ResourceClass.AUTOMATION_RULES: settings.poll_automation_rules_seconds,
        ResourceClass.SECURITY_ALERTS: settings.poll_security_alerts_seconds,
    }


class EdenContainer:
    """One execution context: its stores, notifier, scheduler and homelab stack.

    ``backend`` is the shared raw backend; every write made through this
    container is announced on ``channel`` under ``origin``.
    """

    def __init__(
        self,
        settings: Settings,
        backend: KeyValueBackend,
        channel: ChangeChannel | None = None,
        origin: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
        engine: AsyncEngine | None = None,
    ):
        self.settings = settings
        self.origin = origin or f"context-{uuid.uuid4().hex[:8]}"
        self.channel = channel or InProcessChangeChannel()
        self.backend = NotifyingBackend(backend, self.channel, self.origin)
        self._engine = engine

        self.registry = build_default_registry()
        self.error_log = ErrorLog(self.backend, max_entries=settings.error_log_max_entries)
        self.store = EntityStore(
            self.backend,
            self.registry,
            error_log=self.error_log,
            cache_ttl=settings.cache_ttl_seconds,
        )

        self.collections: dict[str, CollectionService] = {
            key: CollectionService(key, self.store, entity_type)
            for key, entity_type in USER_COLLECTIONS.items()
        }

        self.notifier = ChangeNotifier(self.channel, self.origin, self.registry)
        self.autosave = AutosaveScheduler(interval=settings.autosave_interval_seconds, sleep=sleep)
        for key, collection in self.collections.items():
            self.notifier.watch(key, collection)
            self.autosave.register(key, collection.flush)

        self.homelab_client = HomelabApiClient(
            base_url=settings.homelab_api_url,
            api_key=settings.homelab_api_key,
            timeout=settings.homelab_timeout_seconds,
            retry_policy=RetryPolicy(
                max_attempts=settings.homelab_retry_attempts,
                delay_fn=linear_backoff(settings.homelab_retry_delay_seconds),
            ),
            http_client=http_client,
            sleep=sleep,
        )
        self.orchestrator = PollingOrchestrator(
            self.homelab_client,
            intervals=polling_intervals(settings),
            sleep=sleep,
        )
        self.homelab = HomelabService(self.homelab_client, self.orchestrator, self.store)

    def collection(self, name: str) -> CollectionService | None:
        return self.collections.get(name)

    async def start(self, initialize_homelab: bool = True) -> None:
        """Create tables, load collections and start background tasks."""
        if self._engine is not None:
            await create_tables(self._engine)

        for collection in self.collections.values():
            await collection.load()

        await self.notifier.start()
        await self.autosave.start()

        if initialize_homelab:
            result = await self.homelab.initialize()
            logger.info("Homelab integration started in %s mode", result.status.value)

    async def stop(self) -> None:
        """Stop background tasks and flush unsaved collections."""
        await self.homelab.shutdown()
        await self.autosave.stop()
        for collection in self.collections.values():
            await collection.flush()
        await self.notifier.stop()

        if self._engine is not None:
            await self._engine.dispose()


def build_container(
    settings: Settings | None = None,
    backend: KeyValueBackend | None = None,
    http_client: httpx.AsyncClient | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> EdenContainer:
    """Build a container; without an explicit backend, persist to ``database_url``."""
    settings = settings or get_settings()
    engine = None
    if backend is None:
        engine = build_engine(settings.database_url)
        backend = SQLAlchemyKeyValueBackend(build_session_factory(engine))

    return EdenContainer(
        settings,
        backend,
        http_client=http_client,
        sleep=sleep,
        engine=engine,
    )


# ── FastAPI dependencies ─────────────────────────────────────────────


def get_container(request: Request) -> EdenContainer:
    return request.app.state.container


def get_entity_store(request: Request) -> EntityStore:
    return get_container(request).store


def get_homelab_service(request: Request) -> HomelabService:
    return get_container(request).homelab
