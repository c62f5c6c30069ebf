"""Pydantic schemas for persisted entity variants.

Each logical store key is bound to one of these models in the validator
registry. Extra fields are allowed so that records round-trip untouched; the
schemas only enforce the structural minimum of each variant.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _parse_iso8601(value: str) -> str:
    """Accept ISO-8601 strings (including a trailing 'Z'), return them unchanged."""
    candidate = value[:-1] + "+00:00" if value.endswith("Z") else value
    datetime.fromisoformat(candidate)
    return value


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class EntitySchema(BaseModel):
    """Minimal shape shared by every user-owned entity."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        return _parse_iso8601(value)


class TaskSchema(EntitySchema):
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = "General"
    due_date: str | None = Field(None, alias="dueDate")
    progress: int = Field(0, ge=0, le=100)


class NoteSchema(EntitySchema):
    content: str = ""
    category: str = "General"


class InfraEntitySchema(BaseModel):
    """Homelab records are identified by ``id`` and labelled by ``name``."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class ServiceDescriptorSchema(InfraEntitySchema):
    status: str = Field(..., min_length=1)
    port: int | None = None
    category: str | None = None


class NetworkDeviceSchema(InfraEntitySchema):
    ip: str = Field(..., min_length=1)
    status: str | None = None
    ping: float | None = None
    mac: str | None = None


class RuleTrigger(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    value: Any = None


class AutomationRuleSchema(InfraEntitySchema):
    trigger: RuleTrigger
    action: dict[str, Any]
    enabled: bool = True
