"""FastAPI backend for the plugin-maker web form."""

from __future__ import annotations

import importlib.metadata
import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, ValidationError

from apps import config
from apps.clients.build_service import HttpBuildService
from core.rules.builder import CUSTOM_DEFAULT_SETTINGS, build_flavor_rules, list_supported_flavors
from core.rules.classifier import CRLF, LF, classify_lines, decide_outcome, join_lines, split_lines
from core.submission.interactive import PluginMaker
from core.submission.models import (
    REQUEST_ENDPOINTS,
    PluginRequest,
    supported_request_types,
    visible_fields,
)
from core.utils.errors import NoValidLinesError, TransportError

app = FastAPI(title="plugin-maker API", version="0.1.0")
logger = logging.getLogger("plugin_maker.api")

_REQUEST_ID_HEADER = "X-Plugin-Maker-Request-Id"


class ClassifyRequest(BaseModel):
    """Body of a classification request from the web form."""

    model_config = ConfigDict(extra="forbid")

    text: str
    flavor: str = "custom_default_settings"
    separator: Literal["lf", "crlf"] = "lf"
    extract: bool = False


@dataclass
class _MakerCache:
    build_url: str
    timeout_seconds: float | None
    build_service: HttpBuildService
    maker: PluginMaker


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


_maker_lock = threading.Lock()
_maker_cache: _MakerCache | None = None
_retired_services: list[HttpBuildService] = []


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(_REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint for the web form: request types and their fields."""

    request_id = _request_id_from_request(request)
    payload = {
        "request_types": {
            request_type: {
                "fields": visible_fields(request_type),
                "endpoint": REQUEST_ENDPOINTS[request_type],
            }
            for request_type in supported_request_types()
        },
        "flavors": list_supported_flavors(),
        "settings": build_flavor_rules(CUSTOM_DEFAULT_SETTINGS).names(),
        "documentation_url": config.documentation_url(),
        "version": app.version,
        "build": {"version": _package_version()},
    }
    return JSONResponse(
        status_code=200,
        headers={_REQUEST_ID_HEADER: request_id},
        content=payload,
    )


@app.post("/v1/classify", response_model=None)
async def classify_v1(request: Request) -> JSONResponse:
    """Classify submitted text without sending anything to the build service."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "parse"

    try:
        raw = await _read_json_body(request)
        try:
            body = ClassifyRequest.model_validate(raw)
        except ValidationError as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message="classify request validation failed",
                detail={"error": str(exc)},
            ) from exc
        _check_text_size(body.text, field_name="text")

        failure_stage = "build_rules"
        if body.flavor not in list_supported_flavors():
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message="unsupported flavor",
                detail={
                    "field": "flavor",
                    "value": body.flavor,
                    "supported_flavors": list_supported_flavors(),
                },
            )
        try:
            rule_set = build_flavor_rules(body.flavor, extract=body.extract)
        except ValueError as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message=str(exc),
                detail={"field": "extract", "flavor": body.flavor},
            ) from exc

        failure_stage = "classify"
        result = classify_lines(
            split_lines(body.text, CRLF if body.separator == "crlf" else LF), rule_set
        )
        outcome = decide_outcome(result)
        _log_event(
            logging.INFO,
            "done",
            request_id,
            route="classify",
            outcome=outcome,
            status_code=200,
            timing={"total_ms": _elapsed_ms(request_started)},
        )
        return JSONResponse(
            status_code=200,
            headers={_REQUEST_ID_HEADER: request_id},
            content={
                "flavor": body.flavor,
                "outcome": outcome,
                "kept": result.kept,
                "useless": result.useless,
                "normalized_text": join_lines(result.kept),
                "extractions": [
                    {"name": item.name, "type": item.type, "call": item.call}
                    for item in result.extractions
                ],
            },
        )
    except ApiRequestError as exc:
        return _request_error_response(exc, request_id, failure_stage)


@app.post("/v1/plugin", response_model=None)
async def plugin_v1(request: Request) -> Response:
    """Validate one form submission, forward it, and return the plugin archive."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "parse"

    try:
        raw = await _read_json_body(request)
        try:
            plugin_request = PluginRequest.model_validate(raw)
        except ValidationError as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message="plugin request validation failed",
                detail={"error": str(exc)},
            ) from exc
        if plugin_request.request_type == "custom_default_settings":
            _check_text_size(plugin_request.payload["lines"], field_name="payload.lines")

        _log_event(
            logging.INFO,
            "start",
            request_id,
            route="plugin",
            request_type=plugin_request.request_type,
        )

        failure_stage = "build"
        maker = _get_plugin_maker()
        await _close_retired_services()
        build = await maker.make_plugin(plugin_request)
        if build is None:
            raise ApiRequestError(
                status_code=429,
                error_code="BUSY",
                message="a plugin is already being made",
                detail={"request_type": plugin_request.request_type},
            )

        failure_stage = "respond"
        headers = {
            _REQUEST_ID_HEADER: request_id,
            "Content-Disposition": f'attachment; filename="{build.file_name}"',
        }
        if build.normalized_text is not None:
            headers["X-Plugin-Maker-Kept-Lines"] = str(len(split_lines(build.normalized_text)))
        _log_event(
            logging.INFO,
            "done",
            request_id,
            route="plugin",
            request_type=plugin_request.request_type,
            status_code=200,
            archive_bytes=len(build.archive),
            timing={"total_ms": _elapsed_ms(request_started)},
        )
        return Response(content=build.archive, media_type="application/zip", headers=headers)
    except ApiRequestError as exc:
        return _request_error_response(exc, request_id, failure_stage)
    except NoValidLinesError as exc:
        return _request_error_response(
            ApiRequestError(
                status_code=400,
                error_code="NO_VALID_LINES",
                message=str(exc),
                detail={"useless_count": len(exc.useless_lines)},
            ),
            request_id,
            failure_stage,
        )
    except TransportError as exc:
        return _request_error_response(
            ApiRequestError(
                status_code=502,
                error_code="BUILD_SERVICE_ERROR",
                message="build service request failed",
                detail={"operation": exc.operation, "upstream_status": exc.status_code},
            ),
            request_id,
            failure_stage,
        )
    except Exception as exc:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage=failure_stage,
        )
        return _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"error": str(exc), "total_ms": _elapsed_ms(request_started)},
        )


def _get_plugin_maker() -> PluginMaker:
    """Return the process-wide plugin maker, rebuilt when its config changes.

    A maker with a build in flight is kept until that build finishes. The
    replaced build service is closed by ``_close_retired_services``.
    """

    global _maker_cache

    build_url = config.build_service_url()
    timeout_seconds = config.build_timeout_seconds()

    with _maker_lock:
        if _maker_cache is not None and (
            _maker_cache.maker.submitting
            or (
                _maker_cache.build_url == build_url
                and _maker_cache.timeout_seconds == timeout_seconds
            )
        ):
            return _maker_cache.maker

        if _maker_cache is not None:
            _retired_services.append(_maker_cache.build_service)
        build_service = HttpBuildService(build_url, timeout_seconds=timeout_seconds)
        _maker_cache = _MakerCache(
            build_url=build_url,
            timeout_seconds=timeout_seconds,
            build_service=build_service,
            maker=PluginMaker(build_service),
        )
        return _maker_cache.maker


async def _close_retired_services() -> None:
    with _maker_lock:
        retired = list(_retired_services)
        _retired_services.clear()
    for build_service in retired:
        await build_service.aclose()


async def _read_json_body(request: Request) -> Any:
    raw_body = await request.body()
    try:
        return json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_JSON",
            message="request body must be valid JSON",
            detail={"error": str(exc)},
        ) from exc


def _check_text_size(text: str, *, field_name: str) -> None:
    max_bytes = config.max_text_bytes()
    received = len(text.encode("utf-8"))
    if received > max_bytes:
        raise ApiRequestError(
            status_code=413,
            error_code="TEXT_TOO_LARGE",
            message=f"{field_name} exceeds size limit",
            detail={"field": field_name, "max_bytes": max_bytes, "received_bytes": received},
        )


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _request_error_response(
    exc: ApiRequestError, request_id: str, failure_stage: str
) -> JSONResponse:
    _log_event(
        logging.ERROR,
        "error",
        request_id,
        error_code=exc.error_code,
        status_code=exc.status_code,
        failure_stage=failure_stage,
    )
    return _error_response(
        status_code=exc.status_code,
        error_code=exc.error_code,
        message=exc.message,
        request_id=request_id,
        detail=exc.detail,
    )


def _package_version() -> str:
    try:
        return importlib.metadata.version("plugin-maker")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={_REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
