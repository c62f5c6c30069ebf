from .autosave_scheduler import AutosaveScheduler
from .change_notifier import ChangeNotifier, ReconciliationTarget
from .collection_service import CollectionService
from .entity_store import EntityStore, ImportResult, iso_now
from .error_log import ErrorLog
from .homelab_service import HomelabService
from .polling_orchestrator import PollingOrchestrator, RefreshResult
from .validation import ValidatorRegistry, build_default_registry, is_valid_collection, is_valid_entity

__all__ = [
    "AutosaveScheduler",
    "ChangeNotifier",
    "ReconciliationTarget",
    "CollectionService",
    "EntityStore",
    "ImportResult",
    "iso_now",
    "ErrorLog",
    "HomelabService",
    "PollingOrchestrator",
    "RefreshResult",
    "ValidatorRegistry",
    "build_default_registry",
    "is_valid_collection",
    "is_valid_entity",
]
