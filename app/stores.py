"""In-memory record store that executes lookup query specs."""

from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List

from query_builder import ID_FIELD, QuerySpec
from where_clause import check_fields, eval_where, get_field, parse_where


class RecordAccessError(Exception):
    pass


def _sort_key(value: Any) -> tuple:
    # numbers, then text, then nulls last
    if value is None:
        return (2, 0.0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, float(value), "")
    if isinstance(value, bool):
        value = "true" if value else "false"
    return (1, 0.0, str(value).lower())


def validate_spec(catalog, spec: QuerySpec, condition: dict | None) -> None:
    """Reject entities and fields the catalog does not know."""
    if catalog is None:
        return
    known = catalog.field_paths(spec.entity_type)
    if known is None:
        raise RecordAccessError(f"Invalid object: {spec.entity_type}")
    known = known | {ID_FIELD}
    for name in spec.fields:
        if name not in known:
            raise RecordAccessError(f"Unknown field: {spec.entity_type}.{name}")
    check_fields(condition, known)


class MemoryRecordStore:
    def __init__(self, catalog=None) -> None:
        self._catalog = catalog
        self._records: Dict[str, Dict[str, dict]] = {}

    def _bucket(self, entity_id: str) -> Dict[str, dict]:
        return self._records.setdefault(entity_id, {})

    def create(self, entity_id: str, data: dict) -> dict:
        record = copy.deepcopy(data)
        record_id = str(record.get(ID_FIELD) or uuid.uuid4())
        record[ID_FIELD] = record_id
        self._bucket(entity_id)[record_id] = record
        return copy.deepcopy(record)

    def get(self, entity_id: str, record_id: str) -> dict | None:
        record = self._bucket(entity_id).get(record_id)
        return copy.deepcopy(record) if record else None

    def delete(self, entity_id: str, record_id: str) -> None:
        bucket = self._bucket(entity_id)
        if record_id in bucket:
            del bucket[record_id]

    def run(self, spec: QuerySpec) -> list[dict]:
        condition = parse_where(spec.condition)
        validate_spec(self._catalog, spec, condition)
        matched: List[dict] = [
            rec for rec in self._bucket(spec.entity_type).values() if eval_where(condition, rec)
        ]
        matched.sort(key=lambda rec: (_sort_key(get_field(rec, spec.order_by)), str(rec.get(ID_FIELD))))
        return [{name: copy.deepcopy(get_field(rec, name)) for name in spec.fields} for rec in matched[: spec.limit]]
