"""Selection state transitions and the selection output contract."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Iterable, List

from query_builder import ID_FIELD
from result_shaper import DisplayRecord, FieldRoleConfig


@dataclass(frozen=True)
class SelectionOutput:
    record_id: str = ""
    primary_field_value: str = ""
    secondary_field_value: str = ""
    tertiary_field_value: str = ""
    selected_record_ids: List[str] = field(default_factory=list)
    selected_records: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def select_record(selected: Iterable[DisplayRecord], record: DisplayRecord, multiple: bool) -> list[DisplayRecord]:
    current = list(selected or [])
    if not multiple:
        return [record]
    if any(rec.id == record.id for rec in current):
        return current
    return current + [record]


def remove_record(selected: Iterable[DisplayRecord], record_id: str) -> list[DisplayRecord]:
    return [rec for rec in selected or [] if rec.id != record_id]


def _output_record(rec: DisplayRecord, roles: FieldRoleConfig) -> dict:
    out = {ID_FIELD: rec.id, "Name": rec.primary_text}
    if roles.primary and rec.primary_text:
        out[roles.primary] = rec.primary_text
    if rec.secondary_text:
        for name in roles.secondary:
            out[name] = rec.secondary_text
    if rec.tertiary_text:
        for name in roles.tertiary:
            out[name] = rec.tertiary_text
    return out


def build_selection_output(selected: Iterable[DisplayRecord], roles: FieldRoleConfig, multiple: bool) -> SelectionOutput:
    records = list(selected or [])
    if multiple:
        return SelectionOutput(
            selected_record_ids=[rec.id for rec in records],
            selected_records=[_output_record(rec, roles) for rec in records],
        )
    if not records:
        return SelectionOutput()
    first = records[0]
    return SelectionOutput(
        record_id=first.id,
        primary_field_value=first.primary_text,
        secondary_field_value=first.secondary_text,
        tertiary_field_value=first.tertiary_text,
    )
