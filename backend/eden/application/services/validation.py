"""Entity shape validation — pure predicates plus a registry keyed by store key."""

import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from eden.application.schemas.entities import (
    AutomationRuleSchema,
    NetworkDeviceSchema,
    NoteSchema,
    ServiceDescriptorSchema,
    TaskSchema,
)
from eden.domain import storage_keys
from eden.domain.exceptions import EntityValidationError

logger = logging.getLogger(__name__)


def is_valid_entity(schema: type[BaseModel], record: Any) -> bool:
    """True when ``record`` is an object that satisfies ``schema``."""
    if not isinstance(record, dict):
        return False
    try:
        schema.model_validate(record)
    except ValidationError:
        return False
    return True


def is_valid_collection(schema: type[BaseModel], collection: Any) -> bool:
    """True when ``collection`` is a list whose every item satisfies ``schema``."""
    return isinstance(collection, list) and all(
        is_valid_entity(schema, record) for record in collection
    )


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ())) or "record"
    return f"{location}: {error.get('msg', 'invalid')}"


class ValidatorRegistry:
    """Maps logical store keys to entity schemas, resolved at call time.

    Keys without a registered schema only require a list of objects that each
    carry a non-empty string ``id``.
    """

    def __init__(self, schemas: dict[str, type[BaseModel]] | None = None):
        self._schemas: dict[str, type[BaseModel]] = dict(schemas or {})

    def register(self, key: str, schema: type[BaseModel]) -> None:
        self._schemas[key] = schema

    def schema_for(self, key: str) -> type[BaseModel] | None:
        return self._schemas.get(key)

    @property
    def keys(self) -> list[str]:
        return list(self._schemas)

    def validate(self, key: str, collection: Any) -> None:
        """Raise EntityValidationError unless the whole collection is acceptable."""
        if not isinstance(collection, list):
            raise EntityValidationError(key, f"expected a list, got {type(collection).__name__}")

        schema = self.schema_for(key)
        seen: set[str] = set()

        for index, record in enumerate(collection):
            if not isinstance(record, dict):
                raise EntityValidationError(key, "record is not an object", index)

            if schema is not None:
                try:
                    schema.model_validate(record)
                except ValidationError as exc:
                    raise EntityValidationError(key, _first_error(exc), index) from exc

            entity_id = record.get("id")
            if not isinstance(entity_id, str) or not entity_id:
                raise EntityValidationError(key, "missing string 'id'", index)
            if entity_id in seen:
                raise EntityValidationError(key, f"duplicate id '{entity_id}'", index)
            seen.add(entity_id)

    def is_valid(self, key: str, collection: Any) -> bool:
        try:
            self.validate(key, collection)
        except EntityValidationError as exc:
            logger.debug("Validation rejected: %s", exc)
            return False
        return True


def build_default_registry() -> ValidatorRegistry:
    """Registry with the schemas of every built-in collection."""
    return ValidatorRegistry({
        storage_keys.TASKS: TaskSchema,
        storage_keys.NOTES: NoteSchema,
        storage_keys.SERVICES: ServiceDescriptorSchema,
        storage_keys.NETWORK_DEVICES: NetworkDeviceSchema,
        storage_keys.AUTOMATION_RULES: AutomationRuleSchema,
    })
