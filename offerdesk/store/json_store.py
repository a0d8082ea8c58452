import asyncio
import json
import logging
import os
import uuid
from typing import List, Optional

from offerdesk.core.errors import StorageError
from offerdesk.core.models_core import ENTITIES, Entity
from offerdesk.store.base import KeyedLocks, RecordStore
from offerdesk.store.filters import FilterSpec

logger = logging.getLogger("record_store.json")


class JsonRecordStore(RecordStore):
    """
    One JSON array document per entity under `data_dir`.
    A missing file reads as an empty collection; every write rewrites the
    whole file (temp file + os.replace), serialized per file.
    """

    backend = "json"

    def __init__(self, data_dir: str):
        super().__init__()
        self.data_dir = data_dir
        self._file_locks = KeyedLocks()

    def _path(self, entity: Entity) -> str:
        return os.path.join(self.data_dir, f"{entity.name}.json")

    async def init(self) -> None:
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot create data dir {self.data_dir}: {exc}") from exc
        for entity in ENTITIES.values():
            if not os.path.exists(self._path(entity)):
                await self._save(entity, [])

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------
    def _read_sync(self, path: str) -> list:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"error reading {path}: {exc}") from exc
        if not isinstance(data, list):
            raise StorageError(f"invalid data format in {path}: expected an array")
        return data

    def _write_sync(self, path: str, rows: list) -> None:
        tmp = f"{path}.{uuid.uuid4().hex}.tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise StorageError(f"error writing {path}: {exc}") from exc

    async def _load(self, entity: Entity) -> list:
        return await asyncio.to_thread(self._read_sync, self._path(entity))

    async def _save(self, entity: Entity, rows: list) -> None:
        await asyncio.to_thread(self._write_sync, self._path(entity), rows)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------
    async def _fetch(self, entity: Entity, record_id: str) -> Optional[dict]:
        for row in await self._load(entity):
            if str(row.get("id")) == record_id:
                return _complete(entity, row)
        return None

    async def _fetch_all(self, entity: Entity, filters: FilterSpec) -> List[dict]:
        rows = [_complete(entity, r) for r in await self._load(entity)]
        return [r for r in rows if filters.matches(r)]

    async def _all_ids(self, entity: Entity) -> List[str]:
        return [r.get("id") for r in await self._load(entity)]

    async def _insert(self, entity: Entity, record: dict) -> None:
        async with self._file_locks.hold(entity.name):
            rows = await self._load(entity)
            rows.append(record)
            await self._save(entity, rows)

    async def _replace(self, entity: Entity, record: dict) -> bool:
        async with self._file_locks.hold(entity.name):
            rows = await self._load(entity)
            for i, row in enumerate(rows):
                if str(row.get("id")) == str(record["id"]):
                    rows[i] = record
                    await self._save(entity, rows)
                    return True
        return False

    async def _remove(self, entity: Entity, record_id: str) -> bool:
        async with self._file_locks.hold(entity.name):
            rows = await self._load(entity)
            kept = [r for r in rows if str(r.get("id")) != record_id]
            if len(kept) == len(rows):
                return False
            await self._save(entity, kept)
        return True

    async def _clear(self, entity: Entity) -> None:
        async with self._file_locks.hold(entity.name):
            await self._save(entity, [])


def _complete(entity: Entity, row: dict) -> dict:
    # hand-edited files may omit columns or use numeric ids
    record = entity.blank()
    record.update(row)
    record["id"] = str(record["id"])
    return record
