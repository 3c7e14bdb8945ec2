"""Postgres-backed record store for lookup queries.

Records live in the ``records_generic`` table::

    tenant_id text, entity_id text, id text, data jsonb,
    created_at timestamptz, updated_at timestamptz

Condition trees from ``where_clause`` are compiled to parameterized SQL over
the ``data`` column; no condition text is ever interpolated.
"""

from __future__ import annotations

import copy
import logging
from contextvars import ContextVar
from typing import Any, List, Tuple

from app.db import fetch_all, get_conn
from app.stores import validate_spec
from query_builder import ID_FIELD, QuerySpec
from where_clause import Node, WhereSyntaxError, get_field, parse_where


logger = logging.getLogger("lookup.records")

_ORG_ID: ContextVar[str] = ContextVar("org_id", default="default")

_SQL_CMP = {"eq": "=", "neq": "<>", "lt": "<", "lte": "<=", "gt": ">", "gte": ">="}


def get_org_id() -> str:
    return _ORG_ID.get()


def set_org_id(value: str):
    return _ORG_ID.set(value)


def reset_org_id(token) -> None:
    _ORG_ID.reset(token)


def _json_path(field: str) -> str:
    return "{" + ",".join(field.split(".")) + "}"


def _field_expr(field: str) -> Tuple[str, list]:
    if field == ID_FIELD:
        return "id::text", []
    return "(data #>> %s::text[])", [_json_path(field)]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _param_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def like_pattern(raw: str) -> str:
    """Translate a grammar LIKE pattern into a Postgres ILIKE pattern."""
    out: List[str] = []
    idx = 0
    while idx < len(raw):
        ch = raw[idx]
        if ch == "\\" and idx + 1 < len(raw):
            nxt = raw[idx + 1]
            out.append("\\" + nxt if nxt in "%_\\" else nxt)
            idx += 2
            continue
        out.append(ch)
        idx += 1
    return "".join(out)


def compile_where(node: Node | None) -> Tuple[str, list]:
    if node is None:
        return "true", []
    op = node.get("op")
    if op in {"and", "or"}:
        parts, params = [], []
        for child in node["children"]:
            sql, child_params = compile_where(child)
            parts.append(f"({sql})")
            params.extend(child_params)
        return f" {op} ".join(parts), params
    if op == "not":
        sql, params = compile_where(node["children"][0])
        return f"not ({sql})", params

    expr, params = _field_expr(node["field"])
    params = list(params)
    if op == "like":
        pattern = like_pattern(node["pattern"])
        if node.get("negate"):
            return f"({expr} is null or {expr} not ilike %s)", params + params + [pattern]
        return f"{expr} ilike %s", params + [pattern]
    if op == "in":
        values = [_param_text(v) for v in node["values"] if v is not None]
        if node.get("negate"):
            return f"({expr} is null or not ({expr} = any(%s)))", params + params + [values]
        return f"{expr} = any(%s)", params + [values]
    if op in _SQL_CMP:
        value = node["value"]
        if value is None:
            if op == "eq":
                return f"{expr} is null", params
            if op == "neq":
                return f"{expr} is not null", params
            return "false", []
        if _is_number(value):
            return f"({expr})::numeric {_SQL_CMP[op]} %s", params + [value]
        return f"{expr} {_SQL_CMP[op]} %s", params + [_param_text(value)]
    raise WhereSyntaxError(f"Unknown op: {op}")


class DbRecordStore:
    def __init__(self, catalog=None) -> None:
        self._catalog = catalog

    def run(self, spec: QuerySpec, tenant_id: str | None = None) -> list[dict]:
        tenant_id = tenant_id or get_org_id()
        condition = parse_where(spec.condition)
        validate_spec(self._catalog, spec, condition)

        select_params: list = []
        parts = []
        for field in spec.fields:
            if field == ID_FIELD:
                continue
            parts.append("%s, data #> %s::text[]")
            select_params.extend([field, _json_path(field)])
        data_expr = f"jsonb_build_object({', '.join(parts)})" if parts else "'{}'::jsonb"

        where_sql, where_params = compile_where(condition)
        order_expr, order_params = _field_expr(spec.order_by)
        params = (
            select_params
            + [tenant_id, spec.entity_type]
            + where_params
            + order_params
            + [spec.limit]
        )
        with get_conn() as conn:
            rows = fetch_all(
                conn,
                f"""
                select id, {data_expr} as data
                from records_generic
                where tenant_id=%s and entity_id=%s and ({where_sql})
                order by {order_expr} asc nulls last, id asc
                limit %s
                """,
                params,
                query_name="records_generic.lookup",
            )
        items: list[dict] = []
        for row in rows:
            data = row.get("data") or {}
            record = {name: copy.deepcopy(get_field(data, name)) for name in spec.fields if name != ID_FIELD}
            record[ID_FIELD] = str(row.get("id"))
            items.append({name: record.get(name) for name in spec.fields})
        logger.debug("records_lookup entity=%s rows=%s", spec.entity_type, len(items))
        return items
