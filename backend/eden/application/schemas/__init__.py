from .entities import (
    AutomationRuleSchema,
    EntitySchema,
    NetworkDeviceSchema,
    NoteSchema,
    ServiceDescriptorSchema,
    TaskPriority,
    TaskSchema,
    TaskStatus,
)
from .collections import (
    EntityCreate,
    EntityPatch,
    ImportRequest,
    ImportResultResponse,
    SaveResultResponse,
)
from .homelab import (
    AutomationRuleCreate,
    AutomationRuleToggle,
    ConnectionStatusResponse,
    OperationResponse,
    RefreshResponse,
    ServiceActionResponse,
)

__all__ = [
    "AutomationRuleSchema",
    "EntitySchema",
    "NetworkDeviceSchema",
    "NoteSchema",
    "ServiceDescriptorSchema",
    "TaskPriority",
    "TaskSchema",
    "TaskStatus",
    "EntityCreate",
    "EntityPatch",
    "ImportRequest",
    "ImportResultResponse",
    "SaveResultResponse",
    "AutomationRuleCreate",
    "AutomationRuleToggle",
    "ConnectionStatusResponse",
    "OperationResponse",
    "RefreshResponse",
    "ServiceActionResponse",
]
