"""Dynamic lookup query construction."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from flowlookup.errors import ValidationError
from flowlookup.query_hash import query_hash


ID_FIELD = "Id"
DEFAULT_CAP = 10
MAX_CAP = 50

_ENTITY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
# one relationship hop at most, e.g. Owner.Name
_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


@dataclass(frozen=True)
class QuerySpec:
    entity_type: str
    fields: tuple[str, ...]
    condition: str = ""
    order_by: str = ID_FIELD
    limit: int = DEFAULT_CAP

    def to_query(self) -> str:
        parts = [f"SELECT {', '.join(self.fields)}", f"FROM {self.entity_type}"]
        if self.condition:
            parts.append(f"WHERE {self.condition}")
        parts.append(f"ORDER BY {self.order_by} ASC")
        parts.append(f"LIMIT {self.limit}")
        return " ".join(parts)

    def to_dict(self) -> dict:
        return {
            "entity_type": self.entity_type,
            "fields": list(self.fields),
            "condition": self.condition,
            "order_by": self.order_by,
            "limit": self.limit,
        }

    def fingerprint(self) -> str:
        return query_hash(self.to_dict())


def resolve_cap(cap: int | None) -> int:
    if not isinstance(cap, int) or isinstance(cap, bool):
        cap = DEFAULT_CAP
    return max(1, min(cap, MAX_CAP))


def escape_literal(value: str) -> str:
    """Escape text for use inside a single-quoted literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def escape_like(value: str) -> str:
    """Escape text for use inside a LIKE pattern; wildcards become literals."""
    return escape_literal(value).replace("%", "\\%").replace("_", "\\_")


def _require_entity(entity_type: str | None) -> str:
    if not isinstance(entity_type, str) or not entity_type.strip():
        raise ValidationError("Object API Name is required", "entity_type")
    entity_type = entity_type.strip()
    if not _ENTITY_RE.match(entity_type):
        raise ValidationError(f"Invalid object name: {entity_type}", "entity_type")
    return entity_type


def _project(fields: Sequence[str] | None) -> tuple[str, ...]:
    if fields is not None and not isinstance(fields, (list, tuple)):
        raise ValidationError("Fields to return must be a list of field names", "fields")
    names: list[str] = []
    for field in fields or []:
        if not isinstance(field, str) or not field.strip():
            continue
        name = field.strip()
        if not _FIELD_RE.match(name):
            raise ValidationError(f"Invalid field name: {name}", "fields")
        names.append(name)
    if not names:
        raise ValidationError("At least one field to return is required", "fields")
    if ID_FIELD not in names:
        names.append(ID_FIELD)
    return tuple(dict.fromkeys(names))


def _search_condition(term: str, fields: tuple[str, ...]) -> str:
    searchable = [f for f in fields if f != ID_FIELD]
    if not searchable:
        return ""
    pattern = escape_like(term)
    clauses = [f"{field} LIKE '%{pattern}%'" for field in searchable]
    return "(" + " OR ".join(clauses) + ")"


def build_query(
    entity_type: str,
    search_term: str | None,
    fields: Sequence[str] | None,
    cap: int | None = None,
    extra_filter: str | None = None,
) -> QuerySpec:
    entity_type = _require_entity(entity_type)
    projected = _project(fields)

    conditions: list[str] = []
    term = search_term.strip() if isinstance(search_term, str) else ""
    if term:
        search = _search_condition(term, projected)
        if search:
            conditions.append(search)
    extra = extra_filter.strip() if isinstance(extra_filter, str) else ""
    if extra:
        conditions.append(f"({extra})")

    order_by = next((f for f in projected if f != ID_FIELD), ID_FIELD)
    return QuerySpec(
        entity_type=entity_type,
        fields=projected,
        condition=" AND ".join(conditions),
        order_by=order_by,
        limit=resolve_cap(cap),
    )


def build_detail_query(entity_type: str, record_ids: Iterable[str] | None, fields: Sequence[str] | None) -> QuerySpec:
    entity_type = _require_entity(entity_type)
    projected = _project(fields)
    ids = [str(rid).strip() for rid in record_ids or [] if rid is not None and str(rid).strip()]
    ids = list(dict.fromkeys(ids))
    if not ids:
        raise ValidationError("At least one record id is required", "record_ids")
    literals = ", ".join(f"'{escape_literal(rid)}'" for rid in ids)
    order_by = next((f for f in projected if f != ID_FIELD), ID_FIELD)
    return QuerySpec(
        entity_type=entity_type,
        fields=projected,
        condition=f"{ID_FIELD} IN ({literals})",
        order_by=order_by,
        limit=resolve_cap(len(ids)),
    )
