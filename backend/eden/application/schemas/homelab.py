"""Pydantic DTOs for the homelab endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from eden.domain.entities import ConnectionStatus


class ConnectionStatusResponse(BaseModel):
    status: ConnectionStatus


class RefreshResponse(BaseModel):
    status: ConnectionStatus
    errors: dict[str, str]


class ServiceActionResponse(BaseModel):
    success: bool
    service_id: str
    action: Literal["start", "stop", "restart"]
    error: str | None = None


class AutomationRuleCreate(BaseModel):
    name: str = Field(..., min_length=1, examples=["Turn off lights at night"])
    trigger: dict[str, Any] = Field(..., examples=[{"type": "time", "value": "23:00"}])
    action: dict[str, Any] = Field(
        ..., examples=[{"type": "device", "device": "all-lights", "action": "off"}]
    )
    enabled: bool = True


class AutomationRuleToggle(BaseModel):
    enabled: bool


class OperationResponse(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None
