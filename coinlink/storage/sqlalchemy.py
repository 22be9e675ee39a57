"""SQLAlchemy storage backend for CoinLink."""

from __future__ import annotations

import copy
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence

from sqlalchemy import JSON, Integer, String, delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .base import Store, StoreUnavailable, Unchanged, UpdateFn

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class KeyValueTable(Base):
    __tablename__ = "coinlink_kv"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON)
    version: Mapped[int] = mapped_column(Integer, default=1)


class AsyncSQLAlchemyStore(Store):
    """Key-value store on a single table with optimistic versioned updates."""

    def __init__(self, dsn: str, *, echo: bool = False, max_retries: int = 10) -> None:
        self._engine = create_async_engine(dsn, echo=echo, future=True)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        self._max_retries = max_retries

    @asynccontextmanager
    async def _guard(self, action: str, key: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Store {action} failed for {key!r}") from exc

    async def init_models(self) -> None:
        async with self._guard("init", "*"):
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def get(self, key: str) -> Any | None:
        async with self._guard("get", key):
            async with self._session_factory() as session:
                row = await session.get(KeyValueTable, key)
                return copy.deepcopy(row.value) if row else None

    async def set(self, key: str, value: Any) -> None:
        async with self._guard("set", key):
            for _ in range(self._max_retries):
                async with self._session_factory() as session:
                    stmt = (
                        update(KeyValueTable)
                        .where(KeyValueTable.key == key)
                        .values(value=value, version=KeyValueTable.version + 1)
                    )
                    result = await session.execute(stmt)
                    if result.rowcount == 0:
                        session.add(KeyValueTable(key=key, value=value, version=1))
                    try:
                        await session.commit()
                    except IntegrityError:
                        # concurrent insert of the same key, retry as an update
                        await session.rollback()
                        continue
                    return
        raise StoreUnavailable(f"Could not write {key!r} after {self._max_retries} attempts")

    async def remove(self, key: str) -> None:
        async with self._guard("remove", key):
            async with self._session_factory() as session:
                await session.execute(delete(KeyValueTable).where(KeyValueTable.key == key))
                await session.commit()

    async def update(self, key: str, fn: UpdateFn) -> Any:
        async with self._guard("update", key):
            for attempt in range(1, self._max_retries + 1):
                async with self._session_factory() as session:
                    row = await session.get(KeyValueTable, key)
                    current = copy.deepcopy(row.value) if row else None
                    try:
                        new_value = fn(current)
                    except Unchanged:
                        return current

                    if row is None:
                        session.add(KeyValueTable(key=key, value=new_value, version=1))
                        try:
                            await session.commit()
                        except IntegrityError:
                            await session.rollback()
                            logger.debug("Insert race on %s (attempt %d)", key, attempt)
                            continue
                        return new_value

                    stmt = (
                        update(KeyValueTable)
                        .where(KeyValueTable.key == key, KeyValueTable.version == row.version)
                        .values(value=new_value, version=row.version + 1)
                    )
                    result = await session.execute(stmt)
                    if result.rowcount == 1:
                        await session.commit()
                        return new_value
                    await session.rollback()
                    logger.debug("Version conflict on %s (attempt %d)", key, attempt)
        raise StoreUnavailable(f"Update of {key!r} kept conflicting after {self._max_retries} attempts")

    async def items(self, prefix: str) -> Sequence[tuple[str, Any]]:
        async with self._guard("scan", prefix):
            async with self._session_factory() as session:
                stmt = (
                    select(KeyValueTable)
                    .where(KeyValueTable.key.startswith(prefix, autoescape=True))
                    .order_by(KeyValueTable.key)
                )
                rows = (await session.execute(stmt)).scalars().all()
                return [(row.key, copy.deepcopy(row.value)) for row in rows]
