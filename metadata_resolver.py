"""Entity and field metadata for the lookup configuration surface.

A resolver exposes four operations:

- ``list_searchable_entities()`` -> entity options sorted by label
- ``list_searchable_fields(entity_type)`` -> text-like field options, never raises
- ``get_field_labels(entity_type)`` -> field name -> label, raises NotFoundError
- ``get_entity_icon(entity_type)`` -> icon identifier, never raises

The query builder and the result shaper never call a resolver; the
orchestration layer does.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from entity_catalog import EntityCatalog, relationship_name
from flowlookup.errors import NotFoundError


logger = logging.getLogger("lookup.metadata")

FALLBACK_ICON = "standard:record"

TEXT_LIKE_TYPES = {"string", "text", "email", "phone", "url", "enum", "multi_enum", "tags", "lookup"}

STANDARD_ICONS = {
    "Account": "standard:account",
    "Contact": "standard:contact",
    "Lead": "standard:lead",
    "Opportunity": "standard:opportunity",
    "Case": "standard:case",
    "Task": "standard:task",
    "Event": "standard:event",
    "User": "standard:user",
    "Product2": "standard:product",
    "Pricebook2": "standard:pricebook",
    "Campaign": "standard:campaign",
    "Contract": "standard:contract",
    "Order": "standard:orders",
    "Asset": "standard:asset",
}

# Used by the configuration editor when the resolver cannot be reached.
FALLBACK_ENTITY_OPTIONS = [
    {"label": "Account", "value": "Account"},
    {"label": "Contact", "value": "Contact"},
    {"label": "Lead", "value": "Lead"},
    {"label": "Opportunity", "value": "Opportunity"},
    {"label": "Case", "value": "Case"},
    {"label": "User", "value": "User"},
]

FALLBACK_FIELD_OPTIONS = [
    {"label": "Name", "value": "Name"},
    {"label": "Type", "value": "Type"},
    {"label": "Description", "value": "Description"},
    {"label": "Owner", "value": "Owner.Name"},
    {"label": "Created Date", "value": "CreatedDate"},
]


def _option(label: str, value: str) -> dict:
    return {"label": label, "value": value}


def _sorted_options(options: List[dict]) -> List[dict]:
    return sorted(options, key=lambda opt: opt["label"])


def _reference_label(field: dict, rel: str) -> str:
    label = field.get("label")
    if isinstance(label, str) and label.strip():
        label = label.strip()
        if label.endswith(" ID"):
            label = label[: -len(" ID")]
        return label or rel
    return rel


class CatalogMetadataResolver:
    def __init__(self, catalog: EntityCatalog) -> None:
        self._catalog = catalog

    def _entity(self, entity_type: str | None) -> dict | None:
        if not isinstance(entity_type, str) or not entity_type.strip():
            return None
        return self._catalog.get(entity_type.strip())

    def list_searchable_entities(self) -> list[dict]:
        options = []
        for entity in self._catalog.list():
            if not entity.get("enabled"):
                continue
            if entity.get("hidden") or entity.get("searchable") is False:
                continue
            options.append(_option(entity.get("label") or entity["id"], entity["id"]))
        return _sorted_options(options)

    def _reference_option(self, field: dict) -> dict | None:
        rel = relationship_name(field)
        target = field.get("entity")
        if not rel or not isinstance(target, str) or not target:
            return None
        display = field.get("display_field")
        if not isinstance(display, str) or not display:
            display = self._catalog.display_field(target)
        return _option(_reference_label(field, rel), f"{rel}.{display}")

    def list_searchable_fields(self, entity_type: str | None) -> list[dict]:
        try:
            entity = self._entity(entity_type)
            if entity is None:
                return []
            options = []
            for field in entity["fields"]:
                ftype = field.get("type")
                if ftype not in TEXT_LIKE_TYPES:
                    continue
                if ftype == "lookup":
                    option = self._reference_option(field)
                    if option:
                        options.append(option)
                    continue
                options.append(_option(field.get("label") or field["id"], field["id"]))
            return _sorted_options(options)
        except Exception:
            logger.exception("field_options_failed entity=%s", entity_type)
            return []

    def get_field_labels(self, entity_type: str | None) -> dict:
        entity = self._entity(entity_type)
        if entity is None:
            raise NotFoundError(f"Invalid object: {entity_type}", "entity_type")
        labels: Dict[str, str] = {}
        for field in entity["fields"]:
            labels[field["id"]] = field.get("label") or field["id"]
            if field.get("type") == "lookup":
                option = self._reference_option(field)
                if option:
                    labels[option["value"]] = option["label"]
        return labels

    def get_entity_icon(self, entity_type: str | None) -> str:
        try:
            entity = self._entity(entity_type)
            if entity is None:
                return FALLBACK_ICON
            icon = entity.get("icon")
            if isinstance(icon, str) and icon.strip():
                return icon.strip()
            return STANDARD_ICONS.get(entity["id"], FALLBACK_ICON)
        except Exception:
            logger.exception("entity_icon_failed entity=%s", entity_type)
            return FALLBACK_ICON
