import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.stores import MemoryRecordStore, RecordAccessError
from entity_catalog import EntityCatalog
from query_builder import QuerySpec, build_query
from where_clause import WhereFieldError


class TestMemoryRecordStore(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryRecordStore(EntityCatalog.standard())

    def test_create_assigns_id(self) -> None:
        rec = self.store.create("Lead", {"Name": "Pat"})
        self.assertTrue(rec["Id"])
        self.assertEqual(self.store.get("Lead", rec["Id"])["Name"], "Pat")
        self.store.delete("Lead", rec["Id"])
        self.assertIsNone(self.store.get("Lead", rec["Id"]))

    def test_order_numbers_then_text_then_nulls(self) -> None:
        for rid, amount in (("a", 5), ("b", None), ("c", -2), ("d", 10)):
            self.store.create("Opportunity", {"Id": rid, "Name": rid, "Amount": amount})
        spec = QuerySpec(entity_type="Opportunity", fields=("Amount", "Id"), order_by="Amount", limit=10)
        self.assertEqual([row["Id"] for row in self.store.run(spec)], ["c", "a", "d", "b"])

    def test_ties_break_on_id(self) -> None:
        self.store.create("Lead", {"Id": "2", "Name": "Same"})
        self.store.create("Lead", {"Id": "1", "Name": "same"})
        rows = self.store.run(build_query("Lead", None, ["Name"]))
        self.assertEqual([row["Id"] for row in rows], ["1", "2"])

    def test_projection_only(self) -> None:
        self.store.create("Lead", {"Id": "1", "Name": "Pat", "Email": "p@example.com"})
        rows = self.store.run(build_query("Lead", "pat", ["Name"]))
        self.assertEqual(rows, [{"Name": "Pat", "Id": "1"}])

    def test_rejects_unknown_entity_and_field(self) -> None:
        with self.assertRaises(RecordAccessError):
            self.store.run(build_query("Nope", None, ["Name"]))
        with self.assertRaises(RecordAccessError):
            self.store.run(build_query("Lead", None, ["Bogus"]))
        with self.assertRaises(WhereFieldError):
            self.store.run(build_query("Lead", None, ["Name"], None, "Bogus = 1"))

    def test_without_catalog_accepts_anything(self) -> None:
        store = MemoryRecordStore()
        store.create("Anything", {"Id": "1", "Whatever": "x"})
        rows = store.run(build_query("Anything", "x", ["Whatever"]))
        self.assertEqual(rows, [{"Whatever": "x", "Id": "1"}])


if __name__ == "__main__":
    unittest.main()
