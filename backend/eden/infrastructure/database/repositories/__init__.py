from .kv_backend import SQLAlchemyKeyValueBackend

__all__ = [
    "SQLAlchemyKeyValueBackend",
]
