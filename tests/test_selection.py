import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from result_shaper import DisplayRecord, FieldRoleConfig
from selection import build_selection_output, remove_record, select_record


def _rec(rid: str, primary: str = "", secondary: str = "", tertiary: str = "") -> DisplayRecord:
    return DisplayRecord(id=rid, primary_text=primary, secondary_text=secondary, tertiary_text=tertiary)


class TestSelectionTransitions(unittest.TestCase):
    def test_single_replaces(self) -> None:
        selected = select_record([_rec("1")], _rec("2"), multiple=False)
        self.assertEqual([r.id for r in selected], ["2"])

    def test_multi_appends_once(self) -> None:
        selected = select_record([], _rec("1"), multiple=True)
        selected = select_record(selected, _rec("2"), multiple=True)
        selected = select_record(selected, _rec("1"), multiple=True)
        self.assertEqual([r.id for r in selected], ["1", "2"])

    def test_remove(self) -> None:
        selected = remove_record([_rec("1"), _rec("2")], "1")
        self.assertEqual([r.id for r in selected], ["2"])
        self.assertEqual(remove_record([], "1"), [])


class TestSelectionOutput(unittest.TestCase):
    roles = FieldRoleConfig.build("Name", ["Industry", "Phone"], ["Website"])

    def test_multi_output(self) -> None:
        records = [_rec("001", "Acme", "Tech • 555"), _rec("002", "Globex", "", "globex.com")]
        out = build_selection_output(records, self.roles, multiple=True).to_dict()
        self.assertEqual(out["selected_record_ids"], ["001", "002"])
        self.assertEqual(
            out["selected_records"][0],
            {"Id": "001", "Name": "Acme", "Industry": "Tech • 555", "Phone": "Tech • 555"},
        )
        self.assertEqual(
            out["selected_records"][1],
            {"Id": "002", "Name": "Globex", "Website": "globex.com"},
        )
        self.assertEqual(out["record_id"], "")
        self.assertEqual(out["primary_field_value"], "")

    def test_single_output(self) -> None:
        out = build_selection_output([_rec("001", "Acme", "Tech", "acme.com")], self.roles, multiple=False)
        self.assertEqual(out.record_id, "001")
        self.assertEqual(out.primary_field_value, "Acme")
        self.assertEqual(out.secondary_field_value, "Tech")
        self.assertEqual(out.tertiary_field_value, "acme.com")
        self.assertEqual(out.selected_record_ids, [])
        self.assertEqual(out.selected_records, [])

    def test_cleared_single_output(self) -> None:
        out = build_selection_output([], self.roles, multiple=False)
        self.assertEqual(out.record_id, "")
        self.assertEqual(out.primary_field_value, "")

    def test_custom_primary_field(self) -> None:
        roles = FieldRoleConfig.build("CaseNumber")
        out = build_selection_output([_rec("5", "00001")], roles, multiple=True)
        self.assertEqual(out.selected_records, [{"Id": "5", "Name": "00001", "CaseNumber": "00001"}])


if __name__ == "__main__":
    unittest.main()
