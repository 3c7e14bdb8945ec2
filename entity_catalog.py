"""In-memory catalog of entity definitions for lookup metadata."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List


logger = logging.getLogger("lookup.catalog")

ENTITY_PREFIX = "entity."


def _field(field_id: str, ftype: str, label: str, **extra: Any) -> dict:
    return {"id": field_id, "type": ftype, "label": label, **extra}


STANDARD_ENTITIES: list[dict] = [
    {
        "id": "Account",
        "label": "Account",
        "display_field": "Name",
        "fields": [
            _field("Id", "id", "Account ID"),
            _field("Name", "string", "Account Name"),
            _field("Industry", "enum", "Industry"),
            _field("Type", "enum", "Account Type"),
            _field("Phone", "phone", "Account Phone"),
            _field("Website", "url", "Website"),
            _field("AnnualRevenue", "number", "Annual Revenue"),
            _field("OwnerId", "lookup", "Owner ID", entity="User"),
            _field("CreatedDate", "datetime", "Created Date"),
        ],
    },
    {
        "id": "Contact",
        "label": "Contact",
        "display_field": "Name",
        "fields": [
            _field("Id", "id", "Contact ID"),
            _field("Name", "string", "Full Name"),
            _field("Email", "email", "Email"),
            _field("Phone", "phone", "Business Phone"),
            _field("Title", "string", "Title"),
            _field("AccountId", "lookup", "Account ID", entity="Account"),
            _field("OwnerId", "lookup", "Owner ID", entity="User"),
        ],
    },
    {
        "id": "Lead",
        "label": "Lead",
        "display_field": "Name",
        "fields": [
            _field("Id", "id", "Lead ID"),
            _field("Name", "string", "Full Name"),
            _field("Company", "string", "Company"),
            _field("Email", "email", "Email"),
            _field("Status", "enum", "Lead Status"),
        ],
    },
    {
        "id": "Opportunity",
        "label": "Opportunity",
        "display_field": "Name",
        "fields": [
            _field("Id", "id", "Opportunity ID"),
            _field("Name", "string", "Name"),
            _field("StageName", "enum", "Stage"),
            _field("Amount", "number", "Amount"),
            _field("AccountId", "lookup", "Account ID", entity="Account"),
        ],
    },
    {
        "id": "Case",
        "label": "Case",
        "display_field": "CaseNumber",
        "fields": [
            _field("Id", "id", "Case ID"),
            _field("CaseNumber", "string", "Case Number"),
            _field("Subject", "string", "Subject"),
            _field("Status", "enum", "Status"),
            _field("ContactId", "lookup", "Contact ID", entity="Contact"),
        ],
    },
    {
        "id": "User",
        "label": "User",
        "display_field": "Name",
        "fields": [
            _field("Id", "id", "User ID"),
            _field("Name", "string", "Full Name"),
            _field("Email", "email", "Email"),
            _field("IsActive", "bool", "Active"),
        ],
    },
]


def normalize_entity_id(entity_id: str) -> str:
    entity_id = entity_id.strip("/").strip()
    if entity_id.startswith(ENTITY_PREFIX):
        return entity_id[len(ENTITY_PREFIX) :]
    return entity_id


def entities_from_manifest(manifest: dict) -> list[dict]:
    entities = manifest.get("entities") if isinstance(manifest, dict) else None
    if isinstance(entities, list):
        return [e for e in entities if isinstance(e, dict)]
    if isinstance(entities, dict):
        return [{"id": ent_id, **ent} if isinstance(ent, dict) else {"id": ent_id} for ent_id, ent in entities.items()]
    return []


def entity_fields(entity: dict) -> list[dict]:
    fields = entity.get("fields") or []
    if isinstance(fields, dict):
        fields = [{"id": fid, **fdef} if isinstance(fdef, dict) else {"id": fid} for fid, fdef in fields.items()]
    return [f for f in fields if isinstance(f, dict) and isinstance(f.get("id"), str) and f.get("id")]


def relationship_name(field: dict) -> str | None:
    explicit = field.get("relationship_name")
    if isinstance(explicit, str) and explicit.strip():
        return explicit.strip()
    field_id = field.get("id") or ""
    if field_id.endswith("__c"):
        return field_id[: -len("__c")] + "__r"
    if field_id.endswith("Id") and len(field_id) > 2:
        return field_id[: -len("Id")]
    return None


class CatalogError(Exception):
    pass


class EntityCatalog:
    def __init__(self) -> None:
        self._entities: Dict[str, dict] = {}
        self._enabled: Dict[str, bool] = {}

    @classmethod
    def standard(cls) -> "EntityCatalog":
        catalog = cls()
        catalog.load_manifest({"entities": STANDARD_ENTITIES})
        return catalog

    @classmethod
    def from_file(cls, path: str | Path) -> "EntityCatalog":
        raw = Path(path).read_text(encoding="utf-8")
        try:
            manifest = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CatalogError(f"Invalid catalog file {path}: {exc}") from exc
        catalog = cls()
        count = catalog.load_manifest(manifest)
        logger.info("catalog_loaded path=%s entities=%s", path, count)
        return catalog

    def load_manifest(self, manifest: dict) -> int:
        entities = entities_from_manifest(manifest)
        for entity in entities:
            self.register(entity, enabled=entity.get("enabled", True) is not False)
        return len(entities)

    def register(self, entity: dict, enabled: bool = True) -> dict:
        entity_id = entity.get("id") if isinstance(entity, dict) else None
        if not isinstance(entity_id, str) or not entity_id.strip():
            raise CatalogError("entity id is required")
        entity_id = normalize_entity_id(entity_id)
        record = copy.deepcopy(entity)
        record["id"] = entity_id
        record["fields"] = entity_fields(entity)
        record.setdefault("label", entity_id)
        self._entities[entity_id] = record
        self._enabled[entity_id] = bool(enabled)
        return copy.deepcopy(record)

    def set_enabled(self, entity_id: str, enabled: bool) -> None:
        entity_id = normalize_entity_id(entity_id)
        if entity_id not in self._entities:
            raise CatalogError(f"Unknown entity: {entity_id}")
        self._enabled[entity_id] = bool(enabled)

    def get(self, entity_id: str) -> dict | None:
        if not isinstance(entity_id, str):
            return None
        entity_id = normalize_entity_id(entity_id)
        if not self._enabled.get(entity_id):
            return None
        record = self._entities.get(entity_id)
        return copy.deepcopy(record) if record else None

    def list(self) -> list[dict]:
        items = []
        for entity_id in sorted(self._entities.keys()):
            record = copy.deepcopy(self._entities[entity_id])
            record["enabled"] = self._enabled.get(entity_id, False)
            items.append(record)
        return items

    def display_field(self, entity_id: str) -> str:
        entity = self.get(entity_id)
        value = entity.get("display_field") if entity else None
        return value if isinstance(value, str) and value else "Name"

    def field_paths(self, entity_id: str) -> set[str] | None:
        """Queryable field names of an entity, relationship paths included."""
        entity = self.get(entity_id)
        if entity is None:
            return None
        paths: set[str] = set()
        for field in entity["fields"]:
            paths.add(field["id"])
            if field.get("type") != "lookup":
                continue
            rel = relationship_name(field)
            target = field.get("entity")
            if not rel or not isinstance(target, str):
                continue
            target_entity = self.get(target)
            if target_entity is None:
                continue
            for target_field in target_entity["fields"]:
                paths.add(f"{rel}.{target_field['id']}")
        return paths
