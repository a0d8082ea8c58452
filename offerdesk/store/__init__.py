"""Record store backends and the factory that picks one from settings."""

from offerdesk.core.settings import Settings
from offerdesk.store.base import RecordStore
from offerdesk.store.filters import (
    Contains,
    Equals,
    FilterSpec,
    IEquals,
    NumberEquals,
    build_filters,
)
from offerdesk.store.json_store import JsonRecordStore
from offerdesk.store.sql import SqlRecordStore


def build_store(settings: Settings) -> RecordStore:
    backend = (settings.STORE_BACKEND or "sql").lower()
    if backend == "sql":
        return SqlRecordStore(settings.DB_URL)
    if backend == "json":
        return JsonRecordStore(settings.DATA_DIR)
    raise RuntimeError(f"Unknown STORE_BACKEND {settings.STORE_BACKEND!r} (expected 'sql' or 'json')")


__all__ = [
    "RecordStore",
    "SqlRecordStore",
    "JsonRecordStore",
    "build_store",
    "FilterSpec",
    "Contains",
    "Equals",
    "IEquals",
    "NumberEquals",
    "build_filters",
]
