"""Backend decorator that announces every successful write on a ChangeChannel."""

import logging

from eden.application.interfaces import ChangeChannel, KeyValueBackend
from eden.domain.entities import ChangeEvent

logger = logging.getLogger(__name__)


class NotifyingBackend(KeyValueBackend):
    """Wraps a shared backend for one execution context.

    Each context gets its own NotifyingBackend with a distinct ``origin`` so
    listeners can ignore their own writes. Events are published only after
    the inner write succeeded.
    """

    def __init__(self, backend: KeyValueBackend, channel: ChangeChannel, origin: str):
        self._backend = backend
        self._channel = channel
        self._origin = origin

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def inner(self) -> KeyValueBackend:
        return self._backend

    async def get(self, key: str) -> str | None:
        return await self._backend.get(key)

    async def set(self, key: str, value: str) -> None:
        await self._backend.set(key, value)
        await self._channel.publish(ChangeEvent(key=key, value=value, origin=self._origin))

    async def delete(self, key: str) -> bool:
        existed = await self._backend.delete(key)
        if existed:
            await self._channel.publish(ChangeEvent(key=key, value=None, origin=self._origin))
        return existed

    async def keys(self) -> list[str]:
        return await self._backend.keys()
