"""Homelab panel endpoints — status, snapshot, service actions and automation."""

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, status

from eden.application.schemas import (
    AutomationRuleCreate,
    AutomationRuleToggle,
    ConnectionStatusResponse,
    OperationResponse,
    RefreshResponse,
    ServiceActionResponse,
)
from eden.application.services import HomelabService
from eden.domain.exceptions import EntityNotFoundError
from eden.infrastructure.dependencies import get_homelab_service

router = APIRouter(prefix="/homelab", tags=["Homelab"])


@router.get("/status", response_model=ConnectionStatusResponse)
async def get_status(
    service: HomelabService = Depends(get_homelab_service),
) -> ConnectionStatusResponse:
    return ConnectionStatusResponse(status=service.get_connection_status())


@router.get("/snapshot")
async def get_snapshot(
    service: HomelabService = Depends(get_homelab_service),
) -> dict[str, Any]:
    """Last known-good (or simulated) state of every resource class."""
    return {
        **service.snapshot.to_dict(),
        "connection_status": service.get_connection_status().value,
    }


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_all(
    service: HomelabService = Depends(get_homelab_service),
) -> RefreshResponse:
    """Fetch every resource class concurrently."""
    result = await service.refresh_all()
    return RefreshResponse(status=result.status, errors=result.errors)


@router.post("/test-connection", response_model=OperationResponse)
async def test_connection(
    service: HomelabService = Depends(get_homelab_service),
) -> OperationResponse:
    """Re-probe the homelab API and update the connection status."""
    result = await service.test_connection()
    return OperationResponse(
        success=result.success,
        data={"status": result.status.value},
        error=result.error,
    )


@router.post("/services/{service_id}/{action}", response_model=ServiceActionResponse)
async def perform_service_action(
    service_id: str,
    action: Literal["start", "stop", "restart"],
    service: HomelabService = Depends(get_homelab_service),
) -> ServiceActionResponse:
    try:
        result = await service.perform_service_action(service_id, action)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ServiceActionResponse(
        success=result["success"],
        service_id=service_id,
        action=action,
        error=result.get("error"),
    )


@router.post("/network/scan")
async def scan_network(
    service: HomelabService = Depends(get_homelab_service),
) -> list[dict[str, Any]]:
    return await service.scan_network()


@router.get("/automation/rules")
async def list_automation_rules(
    service: HomelabService = Depends(get_homelab_service),
) -> list[dict[str, Any]]:
    return service.snapshot.automation_rules


@router.post(
    "/automation/rules",
    response_model=OperationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_automation_rule(
    data: AutomationRuleCreate,
    service: HomelabService = Depends(get_homelab_service),
) -> OperationResponse:
    result = await service.add_automation_rule(data.model_dump())
    return OperationResponse(
        success=result["success"],
        data=result.get("rule"),
        error=result.get("error"),
    )


@router.patch("/automation/rules/{rule_id}", response_model=OperationResponse)
async def toggle_automation_rule(
    rule_id: str,
    data: AutomationRuleToggle,
    service: HomelabService = Depends(get_homelab_service),
) -> OperationResponse:
    try:
        result = await service.toggle_automation_rule(rule_id, data.enabled)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return OperationResponse(success=result["success"], error=result.get("error"))


@router.get("/alerts")
async def get_alerts(
    service: HomelabService = Depends(get_homelab_service),
) -> list[dict[str, Any]]:
    """Threshold alerts followed by security alerts from the API."""
    return [*service.system_alerts(), *service.snapshot.security_alerts]


@router.get("/stats")
async def get_stats(
    service: HomelabService = Depends(get_homelab_service),
) -> dict[str, Any]:
    return service.overall_stats()
