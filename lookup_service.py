"""Lookup orchestration: build, execute, wrap failures, shape."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from flowlookup.errors import ExecutionError, LookupFailure, NotFoundError, ValidationError
from lookup_config import LookupConfig
from query_builder import DEFAULT_CAP, QuerySpec, build_detail_query, build_query
from result_shaper import DisplayRecord, exclude_selected, shape


logger = logging.getLogger("lookup.service")


def user_message(error: Exception, entity_type: str | None = None) -> str:
    """Single inline message shown by the widget for a failed search."""
    message = getattr(error, "message", None) or str(error)
    if "Invalid object" in message:
        return f'The object "{entity_type}" is not accessible or does not exist.'
    if "Object API Name is required" in message:
        return "Please configure the object to search."
    if "Primary Field is required" in message:
        return "Please configure the primary field to display."
    if "At least one field to return is required" in message:
        return "Please select at least one field to display."
    if "must be a list of field names" in message:
        return "The fields to display must be a list of field names."
    if "field" in message or "column" in message:
        return "One or more selected fields are not accessible. Please check your configuration."
    return message or "An error occurred while searching. Please try again or contact your administrator."


class LookupService:
    def __init__(self, executor, resolver) -> None:
        self._executor = executor
        self._resolver = resolver

    def execute(self, spec: QuerySpec) -> list[dict]:
        try:
            rows = self._executor.run(spec)
        except Exception as exc:
            logger.warning("lookup_execute_failed entity=%s error=%s", spec.entity_type, exc)
            raise ExecutionError(getattr(exc, "message", None) or str(exc), "query") from exc
        return [dict(row) for row in rows or []]

    def search_records(
        self,
        entity_type: str,
        search_term: str | None,
        fields: Sequence[str] | None,
        limit: int | None = None,
        where: str | None = None,
    ) -> list[dict]:
        spec = build_query(entity_type, search_term, fields, limit, where)
        rows = self.execute(spec)
        logger.info("lookup_search entity=%s limit=%s rows=%s", spec.entity_type, spec.limit, len(rows))
        return rows

    def get_record_details(self, entity_type: str, record_ids: Iterable[str] | None, fields: Sequence[str] | None) -> list[dict]:
        spec = build_detail_query(entity_type, record_ids, fields)
        rows = self.execute(spec)
        logger.info("lookup_details entity=%s rows=%s", spec.entity_type, len(rows))
        return rows

    def icon_for(self, entity_type: str) -> str:
        return self._resolver.get_entity_icon(entity_type)

    def search(self, config: LookupConfig, search_term: str | None, selected_ids: Iterable[str] | None = None) -> dict:
        if not config.object_api_name:
            raise ValidationError("Object API Name is required", "object_api_name")
        if not config.primary_field:
            raise ValidationError("Primary Field is required", "primary_field")
        icon = self.icon_for(config.object_api_name)
        rows = self.search_records(config.object_api_name, search_term, config.query_fields(), DEFAULT_CAP)
        records = shape(rows, config.role_config(), icon)
        return {"records": exclude_selected(records, selected_ids), "icon": icon}

    def load_selected(self, config: LookupConfig, record_id: str | None) -> DisplayRecord | None:
        if not record_id:
            return None
        try:
            rows = self.get_record_details(config.object_api_name, [record_id], config.query_fields())
        except LookupFailure as exc:
            logger.warning("lookup_preselect_failed entity=%s record_id=%s error=%s", config.object_api_name, record_id, exc)
            return None
        if not rows:
            return None
        icon = self.icon_for(config.object_api_name)
        return shape(rows[:1], config.role_config(), icon)[0]

    def field_labels(self, entity_type: str) -> dict:
        return self._resolver.get_field_labels(entity_type)


def failure_status(error: LookupFailure) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ExecutionError):
        return 502
    return 500


def describe(error: LookupFailure, entity_type: Any = None) -> dict:
    issue = error.as_issue()
    issue["detail"] = {"user_message": user_message(error, entity_type)}
    return issue
