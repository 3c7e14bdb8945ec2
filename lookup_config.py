"""Lookup configuration surface edited by the property editor."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List

from result_shaper import FieldRoleConfig, parse_field_list


DISPLAY_FORMATS = ("pills", "datatable")
NONE_OPTION = {"label": "-- None --", "value": ""}

DEFAULT_OBJECT = "Account"
DEFAULT_PRIMARY_FIELD = "Name"
DEFAULT_PLACEHOLDER = "Search..."
DEFAULT_TITLE = "Selected Records"

# Keys accepted as-is plus the camelCase names the flow designer sends.
_KEY_ALIASES = {
    "object_api_name": "object_api_name",
    "objectApiName": "object_api_name",
    "primary_field": "primary_field",
    "primaryField": "primary_field",
    "secondary_fields": "secondary_fields",
    "secondaryFields": "secondary_fields",
    "tertiary_fields": "tertiary_fields",
    "tertiaryFields": "tertiary_fields",
    "allow_multiple_selection": "allow_multiple_selection",
    "allowMultipleSelection": "allow_multiple_selection",
    "display_format": "display_format",
    "displayFormat": "display_format",
    "table_fields": "table_fields",
    "tableFields": "table_fields",
    "placeholder": "placeholder",
    "selected_records_title": "selected_records_title",
    "selectedRecordsTitle": "selected_records_title",
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def data_type(value: Any) -> str:
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, (int, float)):
        return "Number"
    if isinstance(value, (list, tuple)):
        return "String[]"
    return "String"


@dataclass(frozen=True)
class LookupConfig:
    object_api_name: str = DEFAULT_OBJECT
    primary_field: str = DEFAULT_PRIMARY_FIELD
    secondary_fields: tuple[str, ...] = ()
    tertiary_fields: tuple[str, ...] = ()
    allow_multiple_selection: bool = False
    display_format: str = "pills"
    table_fields: tuple[str, ...] = ()
    placeholder: str = DEFAULT_PLACEHOLDER
    selected_records_title: str = DEFAULT_TITLE

    @classmethod
    def from_inputs(cls, inputs: dict | None, apply_defaults: bool = True) -> "LookupConfig":
        values: Dict[str, Any] = {}
        for key, value in (inputs or {}).items():
            name = _KEY_ALIASES.get(key)
            if name:
                values[name] = value

        def _str(name: str, default: str) -> str:
            raw = values.get(name)
            text = raw.strip() if isinstance(raw, str) else ""
            return text or (default if apply_defaults else "")

        return cls(
            object_api_name=_str("object_api_name", DEFAULT_OBJECT),
            primary_field=_str("primary_field", DEFAULT_PRIMARY_FIELD),
            secondary_fields=tuple(parse_field_list(values.get("secondary_fields"))),
            tertiary_fields=tuple(parse_field_list(values.get("tertiary_fields"))),
            allow_multiple_selection=_as_bool(values.get("allow_multiple_selection", False)),
            display_format=_str("display_format", "pills"),
            table_fields=tuple(parse_field_list(values.get("table_fields"))),
            placeholder=_str("placeholder", DEFAULT_PLACEHOLDER),
            selected_records_title=_str("selected_records_title", DEFAULT_TITLE),
        )

    def to_inputs(self) -> dict:
        return {
            "object_api_name": self.object_api_name,
            "primary_field": self.primary_field,
            "secondary_fields": ",".join(self.secondary_fields),
            "tertiary_fields": ",".join(self.tertiary_fields),
            "allow_multiple_selection": self.allow_multiple_selection,
            "display_format": self.display_format,
            "table_fields": ",".join(self.table_fields),
            "placeholder": self.placeholder,
            "selected_records_title": self.selected_records_title,
        }

    def validate(self) -> list[dict]:
        issues: List[dict] = []
        if not self.object_api_name:
            issues.append({"key": "object_api_name", "error_string": "Object API Name is required"})
        if not self.primary_field:
            issues.append({"key": "primary_field", "error_string": "Primary Field is required"})
        if self.display_format and self.display_format not in DISPLAY_FORMATS:
            issues.append({"key": "display_format", "error_string": "Display Format must be pills or datatable"})
        return issues

    def with_object(self, object_api_name: str) -> "LookupConfig":
        return replace(
            self,
            object_api_name=(object_api_name or "").strip(),
            primary_field=DEFAULT_PRIMARY_FIELD,
            secondary_fields=(),
            tertiary_fields=(),
        )

    def with_multiple_selection(self, enabled: bool) -> "LookupConfig":
        if enabled:
            return replace(self, allow_multiple_selection=True)
        return replace(self, allow_multiple_selection=False, display_format="pills", table_fields=())

    def role_config(self) -> FieldRoleConfig:
        return FieldRoleConfig(
            primary=self.primary_field,
            secondary=self.secondary_fields,
            tertiary=self.tertiary_fields,
            table_fields=self.table_fields,
        )

    def query_fields(self) -> list[str]:
        names = [self.primary_field, *self.secondary_fields, *self.tertiary_fields]
        if self.allow_multiple_selection and self.display_format == "datatable":
            names.extend(self.table_fields)
        return list(dict.fromkeys(n for n in names if n))

    def _role_options(self, options: List[dict], other: tuple[str, ...]) -> list[dict]:
        excluded = {self.primary_field, *other}
        return [dict(NONE_OPTION)] + [opt for opt in options if opt.get("value") not in excluded]

    def secondary_field_options(self, options: List[dict]) -> list[dict]:
        return self._role_options(options, self.tertiary_fields)

    def tertiary_field_options(self, options: List[dict]) -> list[dict]:
        return self._role_options(options, self.secondary_fields)
