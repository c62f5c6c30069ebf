"""Key/value storage backends."""

from .in_memory_backend import InMemoryKeyValueBackend
from .notifying_backend import NotifyingBackend

__all__ = [
    "InMemoryKeyValueBackend",
    "NotifyingBackend",
]
