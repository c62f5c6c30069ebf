from .change_event import ChangeEvent
from .connection import ConnectionStateMachine, ConnectionStatus
from .homelab import ErrorLogEntry, HomelabSnapshot, ResourceClass
from .storage_record import STORAGE_VERSION, CacheEntry, StorageRecord

__all__ = [
    "ChangeEvent",
    "ConnectionStateMachine",
    "ConnectionStatus",
    "ErrorLogEntry",
    "HomelabSnapshot",
    "ResourceClass",
    "STORAGE_VERSION",
    "CacheEntry",
    "StorageRecord",
]
