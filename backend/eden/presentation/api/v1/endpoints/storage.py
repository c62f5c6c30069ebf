"""Storage maintenance endpoints — export, import and the error log."""

from fastapi import APIRouter, Depends, Response

from eden.application.schemas import ImportRequest, ImportResultResponse
from eden.domain import storage_keys
from eden.infrastructure.dependencies import EdenContainer, get_container

router = APIRouter(prefix="/storage", tags=["Storage"])


@router.get("/export")
async def export_data(container: EdenContainer = Depends(get_container)) -> Response:
    """Download every collection as one JSON document."""
    for collection in container.collections.values():
        await collection.flush()
    payload = await container.store.export_data(storage_keys.COLLECTION_KEYS)
    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="eden-export.json"'},
    )


@router.post("/import", response_model=ImportResultResponse)
async def import_data(
    data: ImportRequest,
    container: EdenContainer = Depends(get_container),
) -> ImportResultResponse:
    """Restore collections from an export document and reload them."""
    result = await container.store.import_data(data.payload)
    for key, collection in container.collections.items():
        if result.results.get(key):
            await collection.load()
    return ImportResultResponse(
        success=result.success,
        imported=result.imported,
        results=result.results,
        error=result.error,
    )


@router.get("/error-log")
async def get_error_log(container: EdenContainer = Depends(get_container)) -> list[dict]:
    return await container.error_log.entries()


@router.delete("/error-log", status_code=204)
async def clear_error_log(container: EdenContainer = Depends(get_container)) -> Response:
    await container.error_log.clear()
    return Response(status_code=204)
