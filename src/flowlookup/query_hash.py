"""Stable hashing for query specs."""

from __future__ import annotations

import hashlib
from typing import Any

from .canonical_json import canonical_dumps


def query_hash(query_obj: Any) -> str:
    """Return the canonical SHA-256 hash for a query description."""
    data = canonical_dumps(query_obj).encode("utf-8")
    return f"sha256:{hashlib.sha256(data).hexdigest()}"
