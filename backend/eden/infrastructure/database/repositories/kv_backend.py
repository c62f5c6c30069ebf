"""Concrete key/value backend backed by SQLAlchemy."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eden.application.interfaces import KeyValueBackend
from eden.domain.exceptions import StorageError
from eden.infrastructure.database.models import KeyValueEntryModel


class SQLAlchemyKeyValueBackend(KeyValueBackend):
    """Implements the KeyValueBackend port on the 'kv_entries' table.

    Each operation runs in its own session and transaction, so a write is
    durable once the call returns. Driver errors surface as StorageError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str, key: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        except SQLAlchemyError as exc:
            raise StorageError(operation, key, str(exc)) from exc

    async def get(self, key: str) -> str | None:
        async with self._session("read", key) as session:
            model = await session.get(KeyValueEntryModel, key)
            return model.value if model else None

    async def set(self, key: str, value: str) -> None:
        async with self._session("write", key) as session:
            model = await session.get(KeyValueEntryModel, key)
            if model is None:
                session.add(KeyValueEntryModel(key=key, value=value))
            else:
                model.value = value

    async def delete(self, key: str) -> bool:
        async with self._session("delete", key) as session:
            result = await session.execute(
                delete(KeyValueEntryModel).where(KeyValueEntryModel.key == key)
            )
            return result.rowcount > 0

    async def keys(self) -> list[str]:
        async with self._session("read", "*") as session:
            result = await session.execute(
                select(KeyValueEntryModel.key).order_by(KeyValueEntryModel.key)
            )
            return list(result.scalars().all())
