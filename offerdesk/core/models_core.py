# offerdesk/core/models_core.py
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import Table, Column, MetaData, String, Text, Float, JSON

metadata = MetaData()

# Offer lifecycle states; any state may move to any other.
VALID_STATUSES = ["Draft", "In Progress", "Active", "On Ice"]

customers = Table(
    "customers",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String),
    Column("email", String),
    Column("address", String),
    Column("contact", String),
    Column("createdAt", String),
    Column("updatedAt", String),
)

offers = Table(
    "offers",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String),
    Column("description", Text),
    Column("price", Float),
    Column("currency", String),
    # ------------------------------------------------------
    # Not a declared foreign key: dangling ids are removed by the sweeper
    # ------------------------------------------------------
    Column("customerId", String),
    Column("status", String),
    Column("createdAt", String),
    Column("updatedAt", String),
)

comments = Table(
    "comments",
    metadata,
    Column("id", String, primary_key=True),
    Column("offerId", String),
    Column("text", Text),
    Column("createdAt", String),
    Column("updatedAt", String),
)

textdata = Table(
    "textdata",
    metadata,
    Column("id", String, primary_key=True),
    Column("originalName", String),
    Column("storedName", String),
    Column("url", String),
    Column("offerId", String),
    Column("uploadedAt", String),
    Column("tags", JSON),  # ordered [{"id": ..., "text": ...}]
)


@dataclass(frozen=True)
class Entity:
    """Describes one record type for both store backends."""

    name: str
    table: Table
    label: str = "Record"
    numeric_fields: Tuple[str, ...] = ()
    created_field: Optional[str] = "createdAt"
    updated_field: Optional[str] = "updatedAt"

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.table.columns)

    @property
    def writable_fields(self) -> Tuple[str, ...]:
        stamps = {"id", self.created_field, self.updated_field}
        return tuple(f for f in self.fields if f not in stamps)

    def blank(self) -> dict:
        return {f: None for f in self.fields}


CUSTOMERS = Entity("customers", customers, label="Customer")
OFFERS = Entity("offers", offers, label="Offer", numeric_fields=("price",))
COMMENTS = Entity("comments", comments, label="Comment")
TEXTDATA = Entity("textdata", textdata, label="File", created_field="uploadedAt", updated_field=None)

ENTITIES = {e.name: e for e in (CUSTOMERS, OFFERS, COMMENTS, TEXTDATA)}
