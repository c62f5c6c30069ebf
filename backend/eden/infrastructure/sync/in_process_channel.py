"""In-process change channel — asyncio.Queue fan-out between contexts."""

import asyncio
import logging
from collections.abc import AsyncIterator

from eden.application.interfaces import ChangeChannel, ChangeSubscription
from eden.domain.entities import ChangeEvent

logger = logging.getLogger(__name__)


class QueueSubscription(ChangeSubscription):
    """One subscriber's queue. A ``None`` sentinel ends iteration."""

    def __init__(self, channel: "InProcessChangeChannel", maxsize: int = 0):
        self._channel = channel
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, event: ChangeEvent | None) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    async def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                break
            yield event

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel._detach(self)
        # Drop anything pending so the sentinel always fits.
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)


class InProcessChangeChannel(ChangeChannel):
    """Broadcasts ChangeEvents to every subscriber in this event loop.

    Each subscriber gets its own asyncio.Queue. A subscriber whose queue is
    full is disconnected rather than allowed to block publishers.
    """

    def __init__(self, queue_size: int = 0) -> None:
        self._queue_size = queue_size
        self._subscriptions: list[QueueSubscription] = []

    def subscribe(self) -> QueueSubscription:
        subscription = QueueSubscription(self, maxsize=self._queue_size)
        self._subscriptions.append(subscription)
        return subscription

    async def publish(self, event: ChangeEvent) -> None:
        dead: list[QueueSubscription] = []
        for subscription in self._subscriptions:
            if not subscription._offer(event):
                dead.append(subscription)
                logger.warning("Change subscriber queue full — disconnecting")

        for subscription in dead:
            await subscription.close()

    async def shutdown(self) -> None:
        """Close every subscription."""
        for subscription in list(self._subscriptions):
            await subscription.close()

    def _detach(self, subscription: QueueSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
