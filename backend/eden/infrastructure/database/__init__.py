from .base import Base
from .session import build_engine, build_session_factory, create_tables
from .models import KeyValueEntryModel
from .repositories import SQLAlchemyKeyValueBackend

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "create_tables",
    "KeyValueEntryModel",
    "SQLAlchemyKeyValueBackend",
]
