"""Abstract key/value backend interface (port) — the unit every store builds on."""

from abc import ABC, abstractmethod


class KeyValueBackend(ABC):
    """Persistent, string-keyed store of serialized values.

    Shared process-wide: any context may read or write any key. There is no
    locking primitive; implementations raise StorageError on failure.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw value stored under ``key``, or None if absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it existed."""
        ...

    @abstractmethod
    async def keys(self) -> list[str]:
        """Return every key currently stored."""
        ...
