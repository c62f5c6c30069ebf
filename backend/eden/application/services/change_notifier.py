"""Change Notifier — reconciles in-memory state after writes from other contexts."""

import asyncio
import logging
from typing import Any, Protocol

from eden.application.interfaces import ChangeChannel, ChangeSubscription
from eden.application.services.validation import ValidatorRegistry
from eden.domain.entities import ChangeEvent, StorageRecord
from eden.domain.exceptions import ReconciliationParseError

logger = logging.getLogger(__name__)


class ReconciliationTarget(Protocol):
    """In-memory owner of a collection (e.g. a CollectionService)."""

    def current(self) -> list[dict[str, Any]]: ...

    def replace(self, data: list[dict[str, Any]]) -> None: ...


class ChangeNotifier:
    """Listens on a ChangeChannel and resynchronizes watched targets.

    Events published by this notifier's own ``origin`` are ignored so a
    context never reacts to its own writes. A target is only replaced when
    the incoming collection is structurally different from its current
    state, and reconciliation never writes back to the backend.
    """

    def __init__(
        self,
        channel: ChangeChannel,
        origin: str,
        registry: ValidatorRegistry | None = None,
    ):
        self._channel = channel
        self._origin = origin
        self._registry = registry
        self._targets: dict[str, list[ReconciliationTarget]] = {}
        self._subscription: ChangeSubscription | None = None
        self._task: asyncio.Task | None = None

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def watch(self, key: str, target: ReconciliationTarget) -> None:
        self._targets.setdefault(key, []).append(target)

    async def start(self) -> None:
        """Subscribe and start the listener task."""
        if self.running:
            return
        self._subscription = self._channel.subscribe()
        self._task = asyncio.create_task(self._listen())
        logger.info("ChangeNotifier started (origin=%s, keys=%s)", self._origin, list(self._targets))

    async def stop(self) -> None:
        if self._subscription is not None:
            await self._subscription.close()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._subscription = None
        logger.info("ChangeNotifier stopped (origin=%s)", self._origin)

    async def _listen(self) -> None:
        assert self._subscription is not None
        async for event in self._subscription:
            try:
                self.handle(event)
            except Exception:
                logger.exception("Reconciliation of %s failed", event.key)

    def handle(self, event: ChangeEvent) -> bool:
        """Apply one event. Returns True when any target state was replaced."""
        if event.origin == self._origin:
            return False

        targets = self._targets.get(event.key)
        if not targets:
            return False

        try:
            incoming = self._parse(event)
        except ReconciliationParseError as exc:
            logger.warning("Ignoring change signal: %s", exc)
            return False

        changed = False
        for target in targets:
            if target.current() != incoming:
                target.replace(incoming)
                changed = True

        if changed:
            logger.info(
                "Reconciled %s from %s (%d entities)", event.key, event.origin, len(incoming)
            )
        return changed

    def _parse(self, event: ChangeEvent) -> list[dict[str, Any]]:
        if event.is_removal:
            return []

        try:
            data = StorageRecord.from_json(event.value).data
        except (TypeError, ValueError) as exc:
            raise ReconciliationParseError(event.key, str(exc)) from exc

        if self._registry is not None and not self._registry.is_valid(event.key, data):
            raise ReconciliationParseError(event.key, "collection failed validation")
        return data
