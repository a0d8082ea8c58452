"""
Filter predicates shared by both store backends.

A FilterSpec is an AND of predicates. Every predicate can test a plain record
dict (json backend) and render itself as a SQLAlchemy clause (sql backend), so
the same filter means the same thing whichever backend serves the request.
"""
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy import and_, func, true
from sqlalchemy.sql.elements import ColumnElement

from offerdesk.core.errors import ValidationError
from offerdesk.core.models_core import Entity


class Predicate:
    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value

    def matches(self, record: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def clause(self, table) -> ColumnElement:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.field!r}, {self.value!r})"


class Contains(Predicate):
    """Case-insensitive substring match."""

    def __init__(self, field: str, value: str):
        super().__init__(field, str(value))

    def matches(self, record):
        current = record.get(self.field)
        if current is None:
            return False
        return self.value.lower() in str(current).lower()

    def clause(self, table):
        return func.lower(table.c[self.field]).contains(self.value.lower(), autoescape=True)


class Equals(Predicate):
    def matches(self, record):
        return record.get(self.field) == self.value

    def clause(self, table):
        return table.c[self.field] == self.value


class IEquals(Predicate):
    """Case-insensitive equality, used for name lookups."""

    def __init__(self, field: str, value: str):
        super().__init__(field, str(value))

    def matches(self, record):
        current = record.get(self.field)
        return isinstance(current, str) and current.lower() == self.value.lower()

    def clause(self, table):
        return func.lower(table.c[self.field]) == self.value.lower()


class NumberEquals(Predicate):
    """Exact numeric match after coercion; rejects non-numeric input."""

    def __init__(self, field: str, value: Any):
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Filter '{field}' must be numeric, got {value!r}")
        super().__init__(field, number)

    def matches(self, record):
        current = record.get(self.field)
        if current is None or current == "":
            return False
        try:
            return float(current) == self.value
        except (TypeError, ValueError):
            return False

    def clause(self, table):
        return table.c[self.field] == self.value


class FilterSpec:
    def __init__(self, predicates: Iterable[Predicate] = ()):
        self.predicates: List[Predicate] = list(predicates)

    def __len__(self) -> int:
        return len(self.predicates)

    def __iter__(self):
        return iter(self.predicates)

    def and_(self, predicate: Predicate) -> "FilterSpec":
        return FilterSpec(self.predicates + [predicate])

    def matches(self, record: Mapping[str, Any]) -> bool:
        return all(p.matches(record) for p in self.predicates)

    def where(self, table) -> ColumnElement:
        if not self.predicates:
            return true()
        return and_(*(p.clause(table) for p in self.predicates))


def build_filters(entity: Entity, params: Dict[str, Any]) -> FilterSpec:
    """
    Translate query parameters into a FilterSpec.
    Absent or empty values impose no constraint.
    """
    preds: List[Predicate] = []
    for field, value in params.items():
        if value is None or value == "":
            continue
        if field not in entity.fields:
            raise ValidationError(f"Unknown filter '{field}'")
        if field in entity.numeric_fields:
            preds.append(NumberEquals(field, value))
        else:
            preds.append(Contains(field, value))
    return FilterSpec(preds)
