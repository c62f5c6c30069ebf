"""Abstract change channel interface (port) for cross-context signalling."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from eden.domain.entities import ChangeEvent


class ChangeSubscription(ABC):
    """A registered listener. Events published after creation are delivered."""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Stop receiving events and end iteration."""
        ...


class ChangeChannel(ABC):
    """Publish/subscribe transport between execution contexts.

    Contexts may be browser tabs, threads or OS processes; the reconciliation
    logic only depends on this port.
    """

    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        """Deliver ``event`` to every current subscriber."""
        ...

    @abstractmethod
    def subscribe(self) -> ChangeSubscription:
        """Register a new subscriber immediately and return its handle."""
        ...
