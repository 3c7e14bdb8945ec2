"""Shape raw lookup rows into display records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List

from query_builder import ID_FIELD


SEPARATOR = " • "
FALLBACK_ICON = "standard:record"


@dataclass(frozen=True)
class FieldRoleConfig:
    primary: str
    secondary: tuple[str, ...] = ()
    tertiary: tuple[str, ...] = ()
    table_fields: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        primary: str,
        secondary: Any = None,
        tertiary: Any = None,
        table_fields: Any = None,
    ) -> "FieldRoleConfig":
        return cls(
            primary=(primary or "").strip(),
            secondary=tuple(parse_field_list(secondary)),
            tertiary=tuple(parse_field_list(tertiary)),
            table_fields=tuple(parse_field_list(table_fields)),
        )


@dataclass(frozen=True)
class DisplayRecord:
    id: str
    primary_text: str = ""
    secondary_text: str = ""
    tertiary_text: str = ""
    icon: str = FALLBACK_ICON
    extra: dict = field(default_factory=dict, compare=False)

    @property
    def display_label(self) -> str:
        return self.primary_text or self.id

    def to_dict(self) -> dict:
        return {
            "Id": self.id,
            "primary_text": self.primary_text,
            "secondary_text": self.secondary_text,
            "tertiary_text": self.tertiary_text,
            "icon": self.icon,
            "display_label": self.display_label,
            "fields": dict(self.extra),
        }


def parse_field_list(value: Any) -> list[str]:
    """Accept a list of names or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    return [str(item).strip() for item in items if item is not None and str(item).strip()]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _row_value(row: dict, name: str) -> Any:
    if name in row:
        return row.get(name)
    cur: Any = row
    for part in name.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur.get(part)
        else:
            return None
    return cur


def join_values(row: dict, fields: Iterable[str]) -> str:
    values = [_text(_row_value(row, name)) for name in fields]
    return SEPARATOR.join(v for v in values if v)


def shape_row(row: dict, roles: FieldRoleConfig, icon: str | None = None) -> DisplayRecord:
    return DisplayRecord(
        id=_text(row.get(ID_FIELD)),
        primary_text=_text(_row_value(row, roles.primary)) if roles.primary else "",
        secondary_text=join_values(row, roles.secondary),
        tertiary_text=join_values(row, roles.tertiary),
        icon=icon or FALLBACK_ICON,
        extra=dict(row),
    )


def shape(rows: Iterable[dict], roles: FieldRoleConfig, icon: str | None = None) -> list[DisplayRecord]:
    return [shape_row(row, roles, icon) for row in rows or []]


def exclude_selected(records: Iterable[DisplayRecord], selected_ids: Iterable[str] | None) -> list[DisplayRecord]:
    selected = {str(rid) for rid in selected_ids or []}
    return [rec for rec in records if rec.id not in selected]


def field_label(field_name: str) -> str:
    label = re.sub(r"__c$", "", field_name).replace("_", " ")
    return re.sub(r"\b\w", lambda m: m.group().upper(), label)


def table_columns(roles: FieldRoleConfig) -> list[dict]:
    names = list(roles.table_fields) or [roles.primary]
    return [{"label": field_label(name), "field_name": name, "type": "text"} for name in names if name]


def table_rows(records: Iterable[DisplayRecord], primary_field: str) -> list[dict]:
    rows: List[dict] = []
    for rec in records:
        data = {ID_FIELD: rec.id}
        data.update(rec.extra)
        if primary_field:
            data[primary_field] = rec.primary_text
        rows.append(data)
    return rows


def pill_items(records: Iterable[DisplayRecord], icon: str | None = None) -> list[dict]:
    return [
        {
            "type": "icon",
            "label": rec.display_label,
            "name": rec.id,
            "icon_name": icon or rec.icon,
            "fallback_icon_name": FALLBACK_ICON,
        }
        for rec in records
    ]
