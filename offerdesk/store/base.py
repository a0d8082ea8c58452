import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional

from offerdesk.core.errors import NotFoundError
from offerdesk.core.models_core import Entity
from offerdesk.store.filters import FilterSpec

logger = logging.getLogger("record_store")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def next_id(existing_ids: Iterable[Any]) -> str:
    """Highest numeric id + 1, or "1" for an empty collection."""
    highest = 0
    for raw in existing_ids:
        try:
            n = int(raw)
        except (TypeError, ValueError):
            continue
        highest = max(highest, n)
    return str(highest + 1)


def merge_fields(entity: Entity, current: Mapping[str, Any], fields: Mapping[str, Any], skip_empty: bool = True) -> dict:
    """
    Overlay `fields` on `current`.
    With skip_empty, omitted and falsy values ("" / None / 0 / []) keep the old value.
    """
    merged = dict(current)
    writable = entity.writable_fields
    for key, value in fields.items():
        if key not in writable:
            continue
        if skip_empty and not value:
            continue
        merged[key] = value
    if entity.updated_field:
        merged[entity.updated_field] = utc_now_iso()
    return merged


class KeyedLocks:
    """asyncio locks created on demand per key and dropped once unused."""

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
            self._holders[key] = 0
        self._holders[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]


class RecordStore(ABC):
    """
    Async CRUD over the four record types.

    Subclasses provide the storage primitives; the id assignment, timestamps,
    merge rule and locking live here so both backends behave identically.
    Single-record operations are serialized per record; there are no
    cross-record transactions.
    """

    backend = "abstract"

    def __init__(self):
        self._entity_locks = KeyedLocks()
        self._record_locks = KeyedLocks()

    async def init(self) -> None:
        """Prepare tables/files. Safe to call more than once."""

    async def close(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------
    @abstractmethod
    async def _fetch(self, entity: Entity, record_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    async def _fetch_all(self, entity: Entity, filters: FilterSpec) -> List[dict]:
        ...

    @abstractmethod
    async def _all_ids(self, entity: Entity) -> List[str]:
        ...

    @abstractmethod
    async def _insert(self, entity: Entity, record: dict) -> None:
        ...

    @abstractmethod
    async def _replace(self, entity: Entity, record: dict) -> bool:
        """Overwrite an existing record; False when it no longer exists."""

    @abstractmethod
    async def _remove(self, entity: Entity, record_id: str) -> bool:
        ...

    @abstractmethod
    async def _clear(self, entity: Entity) -> None:
        ...

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    async def create(self, entity: Entity, fields: Mapping[str, Any]) -> dict:
        async with self._entity_locks.hold(entity.name):
            record = entity.blank()
            record.update({k: v for k, v in fields.items() if k in entity.writable_fields})
            record["id"] = next_id(await self._all_ids(entity))
            now = utc_now_iso()
            if entity.created_field:
                record[entity.created_field] = now
            if entity.updated_field:
                record[entity.updated_field] = now
            await self._insert(entity, record)
        logger.debug("created %s id=%s", entity.name, record["id"])
        return record

    async def get(self, entity: Entity, record_id: str) -> dict:
        record = await self._fetch(entity, str(record_id))
        if record is None:
            raise NotFoundError(f"{entity.label} not found")
        return record

    async def list(self, entity: Entity, filters: Optional[FilterSpec] = None) -> List[dict]:
        rows = await self._fetch_all(entity, filters or FilterSpec())
        return sorted(rows, key=_id_sort_key)

    async def find(self, entity: Entity, filters: FilterSpec) -> Optional[dict]:
        rows = await self.list(entity, filters)
        return rows[0] if rows else None

    async def update(self, entity: Entity, record_id: str, fields: Mapping[str, Any]) -> dict:
        """Merge `fields` into the record; empty values keep the stored ones."""
        record_id = str(record_id)
        async with self._record_locks.hold((entity.name, record_id)):
            current = await self._fetch(entity, record_id)
            if current is None:
                raise NotFoundError(f"{entity.label} not found")
            merged = merge_fields(entity, current, fields)
            if not await self._replace(entity, merged):
                raise NotFoundError(f"{entity.label} not found")
        return merged

    async def modify(self, entity: Entity, record_id: str, mutator: Callable[[dict], Mapping[str, Any]]) -> dict:
        """
        Read-modify-write one record under its lock.
        `mutator` receives a copy of the record and returns the fields to
        overwrite, empty values included; it may raise to abort without writing.
        """
        record_id = str(record_id)
        async with self._record_locks.hold((entity.name, record_id)):
            current = await self._fetch(entity, record_id)
            if current is None:
                raise NotFoundError(f"{entity.label} not found")
            changes = mutator(dict(current))
            merged = merge_fields(entity, current, changes, skip_empty=False)
            if not await self._replace(entity, merged):
                raise NotFoundError(f"{entity.label} not found")
        return merged

    async def delete(self, entity: Entity, record_id: str) -> dict:
        record_id = str(record_id)
        async with self._record_locks.hold((entity.name, record_id)):
            current = await self._fetch(entity, record_id)
            if current is None or not await self._remove(entity, record_id):
                raise NotFoundError(f"{entity.label} not found")
        logger.debug("deleted %s id=%s", entity.name, record_id)
        return current

    async def reset(self, entity: Entity, records: Iterable[Mapping[str, Any]]) -> List[dict]:
        """Replace the whole collection (seeding). Records carry their own ids."""
        async with self._entity_locks.hold(entity.name):
            await self._clear(entity)
            for rec in records:
                row = entity.blank()
                row.update({k: v for k, v in rec.items() if k in entity.fields})
                await self._insert(entity, row)
        return await self.list(entity)


def _id_sort_key(record: Mapping[str, Any]):
    raw = record.get("id")
    try:
        return (0, int(raw), "")
    except (TypeError, ValueError):
        return (1, 0, str(raw))
