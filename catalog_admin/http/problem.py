"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and the handler callables registered by
``create_app``. Ordering failures are rendered from
``catalog_admin.http.error_mapping``; a store failure carries ``reload: true``
so the admin UI discards its optimistic order and re-fetches the list.
"""

from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog_admin.http.error_mapping import DEFAULT_ORDERING_ERROR, ORDERING_ERROR_MAP
from catalog_admin.logic.errors import OrderingError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(status: int, title: str, **fields: Any) -> JSONResponse:
    body: Dict[str, Any] = {"title": title, "status": int(status), **fields}
    return JSONResponse(jsonable_encoder(body), status_code=int(status), media_type=PROBLEM_MEDIA_TYPE)


async def handle_ordering_error(request: Request, exc: OrderingError) -> JSONResponse:
    mapping = ORDERING_ERROR_MAP.get(exc.code, DEFAULT_ORDERING_ERROR)
    status = int(mapping["status"])
    log = logger.error if status >= 500 else logger.info
    log(
        "ordering_error code=%s status=%s method=%s path=%s",
        exc.code,
        status,
        request.method,
        request.url.path,
    )
    return problem_response(status, str(mapping["title"]), **exc.to_dict())


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        body = {"status": status, **exc.detail}
    else:
        body = {"title": "Error", "status": status, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(
        jsonable_encoder(body),
        status_code=status,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers or None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    logger.info("request_validation_failed path=%s errors=%s", request.url.path, len(exc.errors()))
    return problem_response(
        422,
        "Invalid Request",
        detail="Request validation failed",
        code="REQUEST_VALIDATION_FAILED",
        errors=list(exc.errors()),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(500, "Internal Server Error")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_ordering_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
