"""Error kinds shared by the lookup core and its orchestration layer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class LookupFailure(Exception):
    code: str
    message: str
    path: str | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (path={self.path})" if self.path else base

    def as_issue(self) -> dict:
        return {"code": self.code, "message": self.message, "path": self.path, "detail": None}


class ValidationError(LookupFailure):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__("VALIDATION_ERROR", message, path)


class NotFoundError(LookupFailure):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__("NOT_FOUND", message, path)


class ExecutionError(LookupFailure):
    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__("EXECUTION_ERROR", message, path)
