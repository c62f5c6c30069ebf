"""Pydantic DTOs for the collection (tasks / notes) endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EntityCreate(BaseModel):
    """Fields for a new entity — id and timestamps are generated server-side."""

    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1, max_length=255, examples=["Buy milk"])


class EntityPatch(BaseModel):
    """Partial update merged over the stored entity."""

    model_config = ConfigDict(extra="allow")

    title: str | None = Field(None, min_length=1, max_length=255)

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, by_alias=True)


class SaveResultResponse(BaseModel):
    success: bool
    key: str


class ImportRequest(BaseModel):
    payload: str = Field(..., description="JSON produced by the export endpoint")


class ImportResultResponse(BaseModel):
    success: bool
    imported: int
    results: dict[str, bool]
    error: str | None = None
