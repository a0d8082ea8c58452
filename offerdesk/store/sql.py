import logging
from typing import List, Optional

from sqlalchemy import Integer, cast, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from offerdesk.core.db import build_engine
from offerdesk.core.errors import StorageError
from offerdesk.core.models_core import Entity, metadata
from offerdesk.store.base import RecordStore
from offerdesk.store.filters import FilterSpec

logger = logging.getLogger("record_store.sql")


class SqlRecordStore(RecordStore):
    """One table per entity (SQLAlchemy Core on an async engine)."""

    backend = "sql"

    def __init__(self, db_url: str):
        super().__init__()
        self.engine = build_engine(db_url)

    async def init(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"create tables failed: {exc}") from exc

    async def close(self) -> None:
        await self.engine.dispose()

    async def _fetch(self, entity: Entity, record_id: str) -> Optional[dict]:
        t = entity.table
        try:
            async with self.engine.begin() as conn:
                res = await conn.execute(select(t).where(t.c.id == record_id))
                row = res.mappings().first()
                record = dict(row) if row else None
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"read {entity.name} failed: {exc}") from exc
        return record

    async def _fetch_all(self, entity: Entity, filters: FilterSpec) -> List[dict]:
        t = entity.table
        stmt = select(t).where(filters.where(t)).order_by(cast(t.c.id, Integer))
        try:
            async with self.engine.begin() as conn:
                res = await conn.execute(stmt)
                rows = [dict(r) for r in res.mappings().all()]
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"list {entity.name} failed: {exc}") from exc
        return rows

    async def _all_ids(self, entity: Entity) -> List[str]:
        t = entity.table
        try:
            async with self.engine.begin() as conn:
                res = await conn.execute(select(t.c.id))
                return [r[0] for r in res.fetchall()]
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"read {entity.name} ids failed: {exc}") from exc

    async def _insert(self, entity: Entity, record: dict) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.execute(insert(entity.table).values(**record))
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"insert {entity.name} failed: {exc}") from exc

    async def _replace(self, entity: Entity, record: dict) -> bool:
        t = entity.table
        values = {k: v for k, v in record.items() if k != "id"}
        try:
            async with self.engine.begin() as conn:
                res = await conn.execute(update(t).where(t.c.id == record["id"]).values(**values))
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"update {entity.name} failed: {exc}") from exc
        return res.rowcount > 0

    async def _remove(self, entity: Entity, record_id: str) -> bool:
        t = entity.table
        try:
            async with self.engine.begin() as conn:
                res = await conn.execute(delete(t).where(t.c.id == record_id))
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"delete {entity.name} failed: {exc}") from exc
        return res.rowcount > 0

    async def _clear(self, entity: Entity) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.execute(delete(entity.table))
        except (SQLAlchemyError, ValueError) as exc:
            raise StorageError(f"clear {entity.name} failed: {exc}") from exc
