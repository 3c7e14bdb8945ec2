import json
import os
import sys
import tempfile
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from entity_catalog import CatalogError, EntityCatalog, relationship_name
from flowlookup.errors import NotFoundError
from metadata_resolver import FALLBACK_ICON, CatalogMetadataResolver


def _custom_catalog() -> EntityCatalog:
    catalog = EntityCatalog.standard()
    catalog.register(
        {
            "id": "entity.Invoice__c",
            "label": "Invoice",
            "icon": "custom:custom17",
            "fields": {
                "Id": {"type": "id", "label": "Invoice ID"},
                "Name": {"type": "string", "label": "Invoice Number"},
                "Total__c": {"type": "number", "label": "Total"},
                "Account__c": {"type": "lookup", "label": "Account", "entity": "Account"},
            },
        }
    )
    catalog.register({"id": "Hidden__c", "label": "Hidden", "hidden": True, "fields": []})
    return catalog


class TestEntityOptions(unittest.TestCase):
    def test_sorted_by_label(self) -> None:
        resolver = CatalogMetadataResolver(_custom_catalog())
        options = resolver.list_searchable_entities()
        labels = [opt["label"] for opt in options]
        self.assertEqual(labels, sorted(labels))
        self.assertIn({"label": "Invoice", "value": "Invoice__c"}, options)
        self.assertNotIn("Hidden__c", [opt["value"] for opt in options])

    def test_disabled_entity_excluded(self) -> None:
        catalog = EntityCatalog.standard()
        catalog.set_enabled("Lead", False)
        resolver = CatalogMetadataResolver(catalog)
        self.assertNotIn("Lead", [opt["value"] for opt in resolver.list_searchable_entities()])
        self.assertEqual(resolver.list_searchable_fields("Lead"), [])

    def test_set_enabled_unknown(self) -> None:
        with self.assertRaises(CatalogError):
            EntityCatalog.standard().set_enabled("Nope", True)


class TestFieldOptions(unittest.TestCase):
    def test_text_like_only(self) -> None:
        resolver = CatalogMetadataResolver(EntityCatalog.standard())
        values = [opt["value"] for opt in resolver.list_searchable_fields("Account")]
        self.assertIn("Name", values)
        self.assertIn("Industry", values)
        self.assertIn("Owner.Name", values)
        self.assertNotIn("AnnualRevenue", values)
        self.assertNotIn("CreatedDate", values)
        self.assertNotIn("Id", values)
        self.assertNotIn("OwnerId", values)

    def test_reference_label_and_custom_relationship(self) -> None:
        resolver = CatalogMetadataResolver(_custom_catalog())
        options = resolver.list_searchable_fields("Invoice__c")
        self.assertIn({"label": "Account", "value": "Account__r.Name"}, options)
        owner = [o for o in resolver.list_searchable_fields("Account") if o["value"] == "Owner.Name"]
        self.assertEqual(owner[0]["label"], "Owner")

    def test_unknown_entity_is_empty(self) -> None:
        resolver = CatalogMetadataResolver(EntityCatalog.standard())
        self.assertEqual(resolver.list_searchable_fields("Nope"), [])
        self.assertEqual(resolver.list_searchable_fields(None), [])


class TestLabelsAndIcons(unittest.TestCase):
    def test_labels(self) -> None:
        resolver = CatalogMetadataResolver(EntityCatalog.standard())
        labels = resolver.get_field_labels("Account")
        self.assertEqual(labels["Name"], "Account Name")
        self.assertEqual(labels["Owner.Name"], "Owner")

    def test_labels_unknown_entity(self) -> None:
        resolver = CatalogMetadataResolver(EntityCatalog.standard())
        with self.assertRaises(NotFoundError) as ctx:
            resolver.get_field_labels("Nope")
        self.assertEqual(ctx.exception.message, "Invalid object: Nope")

    def test_icons(self) -> None:
        resolver = CatalogMetadataResolver(_custom_catalog())
        self.assertEqual(resolver.get_entity_icon("Account"), "standard:account")
        self.assertEqual(resolver.get_entity_icon("Invoice__c"), "custom:custom17")
        self.assertEqual(resolver.get_entity_icon("Hidden__c"), FALLBACK_ICON)
        self.assertEqual(resolver.get_entity_icon("Nope"), FALLBACK_ICON)
        self.assertEqual(resolver.get_entity_icon(None), FALLBACK_ICON)


    def test_icon_map_covers_loaded_entities(self) -> None:
        catalog = EntityCatalog()
        catalog.load_manifest(
            {
                "entities": [
                    {"id": "Product2", "fields": [{"id": "Name", "type": "string"}]},
                    {"id": "Order", "fields": [{"id": "OrderNumber", "type": "string"}]},
                    {"id": "Task", "fields": [{"id": "Subject", "type": "string"}]},
                ]
            }
        )
        resolver = CatalogMetadataResolver(catalog)
        self.assertEqual(resolver.get_entity_icon("Product2"), "standard:product")
        self.assertEqual(resolver.get_entity_icon("Order"), "standard:orders")
        self.assertEqual(resolver.get_entity_icon("Task"), "standard:task")


class TestCatalog(unittest.TestCase):
    def test_relationship_name(self) -> None:
        self.assertEqual(relationship_name({"id": "OwnerId"}), "Owner")
        self.assertEqual(relationship_name({"id": "Account__c"}), "Account__r")
        self.assertEqual(relationship_name({"id": "Parent", "relationship_name": "Boss"}), "Boss")
        self.assertIsNone(relationship_name({"id": "Name"}))

    def test_field_paths(self) -> None:
        paths = EntityCatalog.standard().field_paths("Contact")
        self.assertIn("Account.Name", paths)
        self.assertIn("Owner.Email", paths)
        self.assertIsNone(EntityCatalog.standard().field_paths("Nope"))

    def test_from_file(self) -> None:
        manifest = {"entities": [{"id": "Widget", "fields": [{"id": "Name", "type": "string"}]}]}
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "catalog.json")
            with open(path, "w", encoding="utf-8") as handle:
                json.dump(manifest, handle)
            catalog = EntityCatalog.from_file(path)
        self.assertEqual(catalog.get("Widget")["label"], "Widget")
        self.assertIsNone(catalog.get("Account"))

    def test_from_file_invalid(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "catalog.json")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write("{not json")
            with self.assertRaises(CatalogError):
                EntityCatalog.from_file(path)


if __name__ == "__main__":
    unittest.main()
