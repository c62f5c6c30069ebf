"""In-memory key/value backend — process-local storage with an optional quota."""

import logging

from eden.application.interfaces import KeyValueBackend
from eden.domain.exceptions import StorageError

logger = logging.getLogger(__name__)


class InMemoryKeyValueBackend(KeyValueBackend):
    """Dict-backed KeyValueBackend.

    ``quota_bytes`` caps the total UTF-8 size of keys plus values, mirroring
    the hard limit of browser storage. A write that would exceed it raises
    StorageError and leaves the previous value untouched.
    """

    def __init__(self, quota_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            projected = self.used_bytes - self._entry_size(key, self._data.get(key))
            projected += self._entry_size(key, value)
            if projected > self._quota_bytes:
                logger.warning(
                    "Quota exceeded writing '%s' (%d > %d bytes)",
                    key, projected, self._quota_bytes,
                )
                raise StorageError("write", key, "quota exceeded")
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self) -> list[str]:
        return list(self._data)

    @property
    def used_bytes(self) -> int:
        return sum(self._entry_size(k, v) for k, v in self._data.items())

    @staticmethod
    def _entry_size(key: str, value: str | None) -> int:
        if value is None:
            return 0
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))
