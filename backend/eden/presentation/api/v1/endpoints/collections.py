"""Task and note collection endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status

from eden.application.schemas import EntityCreate, EntityPatch, SaveResultResponse
from eden.application.services import CollectionService
from eden.domain.exceptions import EntityNotFoundError, EntityValidationError
from eden.infrastructure.dependencies import EdenContainer, get_container

router = APIRouter(prefix="/collections", tags=["Collections"])


def get_collection(name: str, container: EdenContainer = Depends(get_container)) -> CollectionService:
    collection = container.collection(name)
    if collection is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown collection '{name}'",
        )
    return collection


def _unprocessable(exc: EntityValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.get("/{name}")
async def list_entities(
    collection: CollectionService = Depends(get_collection),
) -> list[dict[str, Any]]:
    """Return every entity in the collection."""
    return collection.list_entities()


@router.post("/{name}", status_code=status.HTTP_201_CREATED)
async def create_entity(
    data: EntityCreate,
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    """Create an entity; id and timestamps are generated."""
    try:
        return await collection.add_entity(data.model_dump())
    except EntityValidationError as e:
        raise _unprocessable(e)


@router.delete("/{name}", response_model=SaveResultResponse)
async def clear_collection(
    collection: CollectionService = Depends(get_collection),
) -> SaveResultResponse:
    """Remove the collection and its backup."""
    success = await collection.clear()
    return SaveResultResponse(success=success, key=collection.key)


@router.post("/{name}/save", response_model=SaveResultResponse)
async def save_collection(
    collection: CollectionService = Depends(get_collection),
) -> SaveResultResponse:
    """Persist the in-memory collection now instead of waiting for autosave."""
    success = await collection.save()
    return SaveResultResponse(success=success, key=collection.key)


@router.get("/{name}/{entity_id}")
async def get_entity(
    entity_id: str,
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    """Retrieve a single entity by ID."""
    try:
        return collection.get_entity(entity_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{name}/{entity_id}")
async def update_entity(
    entity_id: str,
    data: EntityPatch,
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    """Merge the given fields over an existing entity."""
    try:
        updated = await collection.update_entity(entity_id, data.to_patch())
    except EntityValidationError as e:
        raise _unprocessable(e)
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(EntityNotFoundError(collection.entity_type, entity_id)),
        )
    return updated


@router.delete("/{name}/{entity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entity(
    entity_id: str,
    collection: CollectionService = Depends(get_collection),
) -> Response:
    """Delete an entity by ID."""
    if not await collection.delete_entity(entity_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(EntityNotFoundError(collection.entity_type, entity_id)),
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
