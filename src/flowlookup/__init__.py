"""Flow lookup kernel utilities."""

from .canonical_json import CanonicalJsonTypeError, canonical_dumps
from .errors import ExecutionError, LookupFailure, NotFoundError, ValidationError
from .query_hash import query_hash

__all__ = [
    "CanonicalJsonTypeError",
    "ExecutionError",
    "LookupFailure",
    "NotFoundError",
    "ValidationError",
    "canonical_dumps",
    "query_hash",
]
