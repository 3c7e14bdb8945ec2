"""Where-clause grammar for lookup query conditions.

Parses the condition text carried by a QuerySpec into a condition tree of
plain dicts and evaluates that tree against a record row. Grammar::

    expr       := and_expr (OR and_expr)*
    and_expr   := not_expr (AND not_expr)*
    not_expr   := NOT not_expr | '(' expr ')' | comparison
    comparison := FIELD cmp value
                | FIELD [NOT] LIKE STRING
                | FIELD [NOT] IN '(' value (',' value)* ')'
    cmp        := = | != | <> | < | <= | > | >=
    value      := STRING | NUMBER | TRUE | FALSE | NULL

Keywords are case-insensitive. String literals use single quotes with
backslash escapes; LIKE patterns use % and _ as wildcards, and a backslash
makes the next character literal. LIKE matching ignores case.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List


Node = Dict[str, Any]


@dataclass
class WhereError(Exception):
    code: str
    message: str
    position: int | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (at={self.position})" if self.position is not None else base


class WhereSyntaxError(WhereError):
    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__("WHERE_SYNTAX_ERROR", message, position)


class WhereFieldError(WhereError):
    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__("WHERE_UNKNOWN_FIELD", message, position)


class WhereTypeError(WhereError):
    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__("WHERE_TYPE_ERROR", message, position)


KEYWORDS = {"AND", "OR", "NOT", "LIKE", "IN", "TRUE", "FALSE", "NULL"}
CMP_OPS = {"=": "eq", "!=": "neq", "<>": "neq", "<": "lt", "<=": "lte", ">": "gt", ">=": "gte"}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>'(?:\\.|[^'\\])*')
  | (?P<number>-?\d+(?:\.\d+)?)
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
  | (?P<op><=|>=|!=|<>|=|<|>)
  | (?P<punct>[(),])
    """,
    re.VERBOSE,
)


@dataclass
class Token:
    kind: str
    text: str
    pos: int


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if not match:
            raise WhereSyntaxError(f"Unexpected character {text[pos]!r}", pos)
        kind = match.lastgroup
        value = match.group()
        if kind == "name" and value.upper() in KEYWORDS:
            tokens.append(Token("keyword", value.upper(), pos))
        elif kind != "ws":
            tokens.append(Token(kind, value, pos))
        pos = match.end()
    return tokens


def unescape(raw: str) -> str:
    return re.sub(r"\\(.)", r"\1", raw, flags=re.DOTALL)


class _Parser:
    def __init__(self, text: str) -> None:
        self.tokens = tokenize(text)
        self.idx = 0
        self.end = len(text)

    def _peek(self) -> Token | None:
        return self.tokens[self.idx] if self.idx < len(self.tokens) else None

    def _next(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise WhereSyntaxError("Unexpected end of condition", self.end)
        self.idx += 1
        return tok

    def _accept(self, kind: str, text: str | None = None) -> Token | None:
        tok = self._peek()
        if tok is not None and tok.kind == kind and (text is None or tok.text == text):
            self.idx += 1
            return tok
        return None

    def _expect(self, kind: str, text: str | None = None) -> Token:
        tok = self._accept(kind, text)
        if tok is None:
            found = self._peek()
            expected = text or kind
            if found is None:
                raise WhereSyntaxError(f"Expected {expected} at end of condition", self.end)
            raise WhereSyntaxError(f"Expected {expected}, found {found.text!r}", found.pos)
        return tok

    def parse(self) -> Node:
        node = self._or()
        tok = self._peek()
        if tok is not None:
            raise WhereSyntaxError(f"Unexpected token {tok.text!r}", tok.pos)
        return node

    def _or(self) -> Node:
        children = [self._and()]
        while self._accept("keyword", "OR"):
            children.append(self._and())
        return children[0] if len(children) == 1 else {"op": "or", "children": children}

    def _and(self) -> Node:
        children = [self._not()]
        while self._accept("keyword", "AND"):
            children.append(self._not())
        return children[0] if len(children) == 1 else {"op": "and", "children": children}

    def _not(self) -> Node:
        if self._accept("keyword", "NOT"):
            return {"op": "not", "children": [self._not()]}
        if self._accept("punct", "("):
            node = self._or()
            self._expect("punct", ")")
            return node
        return self._comparison()

    def _value(self) -> Any:
        tok = self._next()
        if tok.kind == "string":
            return unescape(tok.text[1:-1])
        if tok.kind == "number":
            return float(tok.text) if "." in tok.text else int(tok.text)
        if tok.kind == "keyword" and tok.text in {"TRUE", "FALSE"}:
            return tok.text == "TRUE"
        if tok.kind == "keyword" and tok.text == "NULL":
            return None
        raise WhereSyntaxError(f"Expected a value, found {tok.text!r}", tok.pos)

    def _comparison(self) -> Node:
        field_tok = self._next()
        if field_tok.kind != "name":
            raise WhereSyntaxError(f"Expected a field name, found {field_tok.text!r}", field_tok.pos)
        field = field_tok.text
        negate = bool(self._accept("keyword", "NOT"))
        if self._accept("keyword", "LIKE"):
            pattern = self._expect("string")
            return {"op": "like", "field": field, "pattern": pattern.text[1:-1], "negate": negate}
        if self._accept("keyword", "IN"):
            self._expect("punct", "(")
            values = [self._value()]
            while self._accept("punct", ","):
                values.append(self._value())
            self._expect("punct", ")")
            return {"op": "in", "field": field, "values": values, "negate": negate}
        if negate:
            tok = self._peek()
            raise WhereSyntaxError("NOT must be followed by LIKE or IN", tok.pos if tok else self.end)
        op_tok = self._expect("op")
        return {"op": CMP_OPS[op_tok.text], "field": field, "value": self._value()}


def parse_where(text: str | None) -> Node | None:
    """Parse condition text; blank text means no condition."""
    if not isinstance(text, str) or not text.strip():
        return None
    return _Parser(text).parse()


def condition_fields(node: Node | None) -> list[str]:
    if node is None:
        return []
    if node["op"] in {"and", "or", "not"}:
        out: list[str] = []
        for child in node["children"]:
            out.extend(condition_fields(child))
        return list(dict.fromkeys(out))
    return [node["field"]]


def like_to_regex(pattern: str) -> re.Pattern:
    out: list[str] = []
    idx = 0
    while idx < len(pattern):
        ch = pattern[idx]
        if ch == "\\" and idx + 1 < len(pattern):
            out.append(re.escape(pattern[idx + 1]))
            idx += 2
            continue
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
        idx += 1
    return re.compile("".join(out), re.IGNORECASE | re.DOTALL)


def get_field(row: dict, path: str) -> Any:
    if not isinstance(row, dict):
        return None
    if path in row:
        return row.get(path)
    cur: Any = row
    for part in path.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur.get(part)
        else:
            return None
    return cur


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ";".join(str(v) for v in value)
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _ordered(op: str, left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    if not ((_is_number(left) and _is_number(right)) or (isinstance(left, str) and isinstance(right, str))):
        raise WhereTypeError(f"Cannot compare {type(left).__name__} with {type(right).__name__}")
    if op == "lt":
        return left < right
    if op == "lte":
        return left <= right
    if op == "gt":
        return left > right
    return left >= right


def eval_where(node: Node | None, row: dict) -> bool:
    if node is None:
        return True
    op = node.get("op")
    if op == "and":
        return all(eval_where(child, row) for child in node["children"])
    if op == "or":
        return any(eval_where(child, row) for child in node["children"])
    if op == "not":
        return not eval_where(node["children"][0], row)

    left = get_field(row, node["field"])
    if op == "like":
        text = _as_text(left)
        matched = text is not None and like_to_regex(node["pattern"]).fullmatch(text) is not None
        return not matched if node.get("negate") else matched
    if op == "in":
        found = left in node["values"] or (
            left is not None and _as_text(left) in [_as_text(v) for v in node["values"]]
        )
        return not found if node.get("negate") else found
    if op == "eq":
        return left == node["value"]
    if op == "neq":
        return left != node["value"]
    if op in {"lt", "lte", "gt", "gte"}:
        return _ordered(op, left, node["value"])
    raise WhereSyntaxError(f"Unknown op: {op}")


def check_fields(node: Node | None, known: set[str]) -> None:
    for field in condition_fields(node):
        if field not in known:
            raise WhereFieldError(f"No such column '{field}'")
