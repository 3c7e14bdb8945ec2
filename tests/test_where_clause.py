import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from query_builder import build_query
from where_clause import (
    WhereFieldError,
    WhereSyntaxError,
    WhereTypeError,
    check_fields,
    condition_fields,
    eval_where,
    parse_where,
)


class TestParseWhere(unittest.TestCase):
    def test_blank_is_none(self) -> None:
        self.assertIsNone(parse_where(""))
        self.assertIsNone(parse_where("   "))
        self.assertIsNone(parse_where(None))

    def test_precedence(self) -> None:
        node = parse_where("A = 1 OR B = 2 AND C = 3")
        self.assertEqual(node["op"], "or")
        self.assertEqual(node["children"][1]["op"], "and")

    def test_keywords_case_insensitive(self) -> None:
        node = parse_where("name like '%a%' and not (Type in ('x', 'y'))")
        self.assertEqual(node["op"], "and")
        self.assertEqual(node["children"][0]["op"], "like")
        self.assertEqual(node["children"][1]["op"], "not")

    def test_values(self) -> None:
        node = parse_where("A = 'x' AND B = 2 AND C = 2.5 AND D = TRUE AND E = NULL")
        values = [child["value"] for child in node["children"]]
        self.assertEqual(values, ["x", 2, 2.5, True, None])

    def test_syntax_errors(self) -> None:
        for text in ("Name =", "Name LIKE 5", "(Name = 'a'", "Name = 'a' junk", "Name ~ 'a'", "Name NOT = 'a'"):
            with self.assertRaises(WhereSyntaxError, msg=text):
                parse_where(text)

    def test_condition_fields(self) -> None:
        node = parse_where("Name LIKE '%a%' OR (Owner.Name = 'Ann' AND Name != 'b')")
        self.assertEqual(condition_fields(node), ["Name", "Owner.Name"])

    def test_check_fields(self) -> None:
        node = parse_where("Name = 'a' OR Bogus = 'b'")
        with self.assertRaises(WhereFieldError) as ctx:
            check_fields(node, {"Name", "Id"})
        self.assertIn("Bogus", ctx.exception.message)
        check_fields(node, {"Name", "Bogus"})


class TestEvalWhere(unittest.TestCase):
    row = {"Id": "1", "Name": "Acme Corp", "Industry": "Tech", "Amount": 10, "Owner": {"Name": "Ann"}}

    def test_like_is_case_insensitive_substring(self) -> None:
        self.assertTrue(eval_where(parse_where("Name LIKE '%acme%'"), self.row))
        self.assertTrue(eval_where(parse_where("Name LIKE 'ACME%'"), self.row))
        self.assertFalse(eval_where(parse_where("Name LIKE 'corp%'"), self.row))
        self.assertTrue(eval_where(parse_where("Name LIKE 'Acme C_rp'"), self.row))

    def test_escaped_wildcards_are_literal(self) -> None:
        row = {"Name": "50% off"}
        self.assertTrue(eval_where(parse_where("Name LIKE '%50\\%%'"), row))
        self.assertFalse(eval_where(parse_where("Name LIKE '%50\\%x%'"), row))
        self.assertFalse(eval_where(parse_where("Name LIKE '%a\\_b%'"), {"Name": "axb"}))

    def test_built_condition_matches(self) -> None:
        spec = build_query("Account", "O'Brien", ["Name", "Industry"])
        node = parse_where(spec.condition)
        self.assertTrue(eval_where(node, {"Name": "Pat O'Brien", "Industry": None}))
        self.assertFalse(eval_where(node, {"Name": "Pat OBrien", "Industry": None}))

    def test_null_field_never_likes(self) -> None:
        node = parse_where("Industry LIKE '%a%'")
        self.assertFalse(eval_where(node, {"Industry": None}))
        self.assertFalse(eval_where(node, {}))
        self.assertTrue(eval_where(parse_where("Industry NOT LIKE '%a%'"), {}))

    def test_comparisons(self) -> None:
        self.assertTrue(eval_where(parse_where("Amount >= 10"), self.row))
        self.assertFalse(eval_where(parse_where("Amount > 10"), self.row))
        self.assertTrue(eval_where(parse_where("Industry != 'Retail'"), self.row))
        self.assertTrue(eval_where(parse_where("Missing = NULL"), self.row))
        self.assertFalse(eval_where(parse_where("Missing < 5"), self.row))

    def test_in_and_dotted_path(self) -> None:
        self.assertTrue(eval_where(parse_where("Industry IN ('Retail', 'Tech')"), self.row))
        self.assertTrue(eval_where(parse_where("Industry NOT IN ('Retail')"), self.row))
        self.assertTrue(eval_where(parse_where("Owner.Name = 'Ann'"), self.row))
        self.assertTrue(eval_where(parse_where("Owner.Name = 'Ann'"), {"Owner.Name": "Ann"}))

    def test_type_mismatch(self) -> None:
        with self.assertRaises(WhereTypeError):
            eval_where(parse_where("Name > 5"), self.row)


if __name__ == "__main__":
    unittest.main()
