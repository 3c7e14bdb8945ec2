"""FastAPI app serving the flow lookup widget and its property editor."""

from __future__ import annotations

import os
import re
import sys
import time
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


_load_env_file(ROOT / "app" / ".env")

from app.db import get_db_stats, reset_db_stats
from app.stores import MemoryRecordStore
from entity_catalog import EntityCatalog
from flowlookup.errors import LookupFailure, ValidationError
from lookup_config import LookupConfig, data_type
from lookup_service import LookupService, describe, failure_status
from metadata_resolver import FALLBACK_ENTITY_OPTIONS, FALLBACK_FIELD_OPTIONS, CatalogMetadataResolver
from query_builder import build_query
from result_shaper import FALLBACK_ICON, DisplayRecord, pill_items, shape, table_columns, table_rows
from selection import build_selection_output


app = FastAPI(title="Flow Lookup")
logger = logging.getLogger("lookup")
logging.basicConfig(level=logging.INFO)

_LOCAL_CORS_REGEX = re.compile(r"^http://(localhost|127\.0\.0\.1):\d+$")
_CORS_ORIGINS = {
    origin.strip().rstrip("/")
    for origin in os.getenv("LOOKUP_CORS_ORIGINS", "").split(",")
    if origin.strip()
}

USE_DB = os.getenv("USE_DB", "").strip() == "1"
APP_ENV = os.getenv("APP_ENV", os.getenv("ENV", "dev")).strip().lower() or "dev"
IS_DEV = APP_ENV == "dev"
REQ_SLOW_MS = float(os.getenv("LOOKUP_REQ_SLOW_MS", "250"))
CATALOG_PATH = os.getenv("LOOKUP_CATALOG_PATH", "").strip()
_RESPONSE_TTL_S = float(os.getenv("LOOKUP_RESPONSE_TTL_S", "0"))

catalog = EntityCatalog.from_file(CATALOG_PATH) if CATALOG_PATH else EntityCatalog.standard()
if USE_DB:
    from app.stores_db import DbRecordStore, get_org_id

    records = DbRecordStore(catalog)
else:
    records = MemoryRecordStore(catalog)

    def get_org_id() -> str:
        return "default"

resolver = CatalogMetadataResolver(catalog)
service = LookupService(records, resolver)
_response_cache: dict[str, dict] = {}
logger.info("lookup_startup use_db=%s catalog=%s app_env=%s", USE_DB, CATALOG_PATH or "standard", APP_ENV)


@app.middleware("http")
async def local_cors_fallback_middleware(request: Request, call_next):
    origin = request.headers.get("origin")
    if request.method == "OPTIONS":
        response = JSONResponse({}, status_code=200)
    else:
        response = await call_next(request)
    normalized_origin = origin.rstrip("/") if isinstance(origin, str) else origin
    if normalized_origin and (normalized_origin in _CORS_ORIGINS or _LOCAL_CORS_REGEX.match(normalized_origin)):
        response.headers.setdefault("Access-Control-Allow-Origin", origin)
        response.headers.setdefault("Access-Control-Allow-Credentials", "true")
        response.headers.setdefault("Access-Control-Allow-Headers", "*")
        response.headers.setdefault("Access-Control-Allow-Methods", "*")
        response.headers.setdefault("Vary", "Origin")
    return response


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    reset_db_stats()
    start = time.perf_counter()
    response = await call_next(request)
    total_ms = (time.perf_counter() - start) * 1000
    db_stats = get_db_stats()
    route = request.scope.get("route")
    route_name = getattr(route, "name", None) or "unknown"
    logger.info(
        "%s %s %s route=%s total_ms=%.1f db_ms=%.1f db_q=%s",
        request.method,
        request.url.path,
        response.status_code,
        route_name,
        total_ms,
        db_stats.get("total_ms", 0.0),
        db_stats.get("queries", 0),
    )
    if total_ms >= REQ_SLOW_MS:
        logger.warning(
            "slow_request method=%s path=%s route=%s total_ms=%.1f status=%s",
            request.method,
            request.url.path,
            route_name,
            total_ms,
            response.status_code,
        )
    if IS_DEV:
        response.headers["X-Req-MS"] = f"{total_ms:.1f}"
        response.headers["X-Queries"] = str(db_stats.get("queries", 0))
    return response


def _error_response(code: str, message: str, path: str | None = None, detail: dict | None = None, status: int = 400) -> JSONResponse:
    body = {
        "ok": False,
        "errors": [{"code": code, "message": message, "path": path, "detail": detail}],
        "warnings": [],
    }
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _ok_response(payload: dict, warnings: list | None = None, status: int = 200) -> JSONResponse:
    body = {"ok": True, **payload, "errors": [], "warnings": warnings or []}
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _failure_response(error: LookupFailure, entity_type: str | None = None) -> JSONResponse:
    body = {"ok": False, "errors": [describe(error, entity_type)], "warnings": []}
    return JSONResponse(jsonable_encoder(body), status_code=failure_status(error))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error path=%s", request.url.path)
    return _error_response("INTERNAL_ERROR", "Unexpected server error", detail={"error": str(exc)}, status=500)


async def _safe_json(request: Request) -> dict:
    try:
        body = await request.json()
    except Exception:
        return {}
    return body if isinstance(body, dict) else {}


def _resp_cache_get(key: str):
    if _RESPONSE_TTL_S <= 0:
        return None
    entry = _response_cache.get(key)
    if entry and time.time() - entry["ts"] < _RESPONSE_TTL_S:
        return entry["value"]
    return None


def _resp_cache_set(key: str, value) -> None:
    if _RESPONSE_TTL_S <= 0:
        return
    _response_cache[key] = {"value": value, "ts": time.time()}


def _display_records(items) -> list[DisplayRecord]:
    out = []
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        out.append(
            DisplayRecord(
                id=str(item.get("Id") or ""),
                primary_text=str(item.get("primary_text") or ""),
                secondary_text=str(item.get("secondary_text") or ""),
                tertiary_text=str(item.get("tertiary_text") or ""),
                icon=str(item.get("icon") or FALLBACK_ICON),
                extra=item.get("fields") if isinstance(item.get("fields"), dict) else {},
            )
        )
    return out


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


@app.get("/lookup/entities")
async def list_entities() -> JSONResponse:
    return _ok_response({"entities": resolver.list_searchable_entities()})


@app.get("/lookup/{entity_id}/fields")
async def list_fields(entity_id: str) -> JSONResponse:
    return _ok_response({"fields": resolver.list_searchable_fields(entity_id)})


@app.get("/lookup/{entity_id}/labels")
async def field_labels(entity_id: str) -> JSONResponse:
    try:
        labels = resolver.get_field_labels(entity_id)
    except LookupFailure as exc:
        return _failure_response(exc, entity_id)
    return _ok_response({"labels": labels})


@app.get("/lookup/{entity_id}/icon")
async def entity_icon(entity_id: str) -> JSONResponse:
    return _ok_response({"icon": resolver.get_entity_icon(entity_id)})


@app.post("/lookup/{entity_id}/records")
async def search_records(request: Request, entity_id: str) -> JSONResponse:
    body = await _safe_json(request)
    q = body.get("q")
    limit = body.get("limit")
    where = body.get("where")
    try:
        spec = build_query(entity_id, q if isinstance(q, str) else None, body.get("fields"), limit, where if isinstance(where, str) else None)
    except LookupFailure as exc:
        return _failure_response(exc, entity_id)
    cache_key = f"lookup:{get_org_id()}:{spec.fingerprint()}"
    cached = _resp_cache_get(cache_key)
    if cached is not None:
        logger.info("cache_hit=lookup key=%s", cache_key)
        return _ok_response(cached)
    try:
        rows = service.execute(spec)
    except LookupFailure as exc:
        return _failure_response(exc, entity_id)
    payload = {"records": rows, "limit": spec.limit}
    _resp_cache_set(cache_key, payload)
    return _ok_response(payload)


@app.post("/lookup/{entity_id}/details")
async def record_details(request: Request, entity_id: str) -> JSONResponse:
    body = await _safe_json(request)
    try:
        rows = service.get_record_details(entity_id, body.get("record_ids"), body.get("fields"))
    except LookupFailure as exc:
        return _failure_response(exc, entity_id)
    return _ok_response({"records": rows})


@app.post("/lookup/search")
async def lookup_search(request: Request) -> JSONResponse:
    body = await _safe_json(request)
    config = LookupConfig.from_inputs(body.get("config") if isinstance(body.get("config"), dict) else {})
    q = body.get("q")
    selected_ids = body.get("selected_ids") if isinstance(body.get("selected_ids"), list) else []
    try:
        result = service.search(config, q if isinstance(q, str) else None, selected_ids)
    except LookupFailure as exc:
        return _failure_response(exc, config.object_api_name)
    return _ok_response(
        {
            "records": [rec.to_dict() for rec in result["records"]],
            "icon": result["icon"],
        }
    )


@app.post("/lookup/selection")
async def lookup_selection(request: Request) -> JSONResponse:
    body = await _safe_json(request)
    config = LookupConfig.from_inputs(body.get("config") if isinstance(body.get("config"), dict) else {})
    roles = config.role_config()
    if isinstance(body.get("rows"), list):
        icon = resolver.get_entity_icon(config.object_api_name)
        selected = shape([r for r in body["rows"] if isinstance(r, dict)], roles, icon)
    else:
        selected = _display_records(body.get("records"))
    if not config.allow_multiple_selection:
        selected = selected[:1]
    output = build_selection_output(selected, roles, config.allow_multiple_selection)
    payload = {"selection": output.to_dict()}
    if config.allow_multiple_selection and config.display_format == "datatable":
        payload["columns"] = table_columns(roles)
        payload["rows"] = table_rows(selected, config.primary_field)
    elif config.allow_multiple_selection:
        payload["pills"] = pill_items(selected, resolver.get_entity_icon(config.object_api_name))
    return _ok_response(payload)


@app.post("/lookup/config/validate")
async def validate_config(request: Request) -> JSONResponse:
    body = await _safe_json(request)
    raw = body.get("config") if isinstance(body.get("config"), dict) else {}
    issues = LookupConfig.from_inputs(raw, apply_defaults=False).validate()
    normalized = LookupConfig.from_inputs(raw)
    inputs = [
        {"name": name, "value": value, "data_type": data_type(value)}
        for name, value in normalized.to_inputs().items()
    ]
    return _ok_response({"valid": not issues, "issues": issues, "inputs": inputs})


@app.post("/lookup/config/options")
async def config_options(request: Request) -> JSONResponse:
    body = await _safe_json(request)
    config = LookupConfig.from_inputs(body.get("config") if isinstance(body.get("config"), dict) else {})
    warnings = []
    entities = resolver.list_searchable_entities()
    if not entities:
        entities = FALLBACK_ENTITY_OPTIONS
        warnings.append({"code": "ENTITY_OPTIONS_FALLBACK", "message": "using fallback object list", "path": "entities"})
    fields = resolver.list_searchable_fields(config.object_api_name)
    if not fields:
        fields = FALLBACK_FIELD_OPTIONS
        warnings.append({"code": "FIELD_OPTIONS_FALLBACK", "message": "using fallback field list", "path": "fields"})
    return _ok_response(
        {
            "entities": entities,
            "fields": fields,
            "secondary_options": config.secondary_field_options(fields),
            "tertiary_options": config.tertiary_field_options(fields),
        },
        warnings=warnings,
    )


@app.post("/lookup/config/object")
async def change_object(request: Request) -> JSONResponse:
    body = await _safe_json(request)
    config = LookupConfig.from_inputs(body.get("config") if isinstance(body.get("config"), dict) else {})
    entity_id = body.get("object_api_name")
    if not isinstance(entity_id, str) or not entity_id.strip():
        return _failure_response(ValidationError("Object API Name is required", "object_api_name"))
    updated = config.with_object(entity_id)
    if "allow_multiple_selection" in body:
        updated = updated.with_multiple_selection(bool(body.get("allow_multiple_selection")))
    return _ok_response({"config": updated.to_inputs()})
