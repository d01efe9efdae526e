"""Problem+JSON utilities and global exception handlers.

Defines the RFC 7807 media type and handler callables that produce
application/problem+json responses with a stable `code` member.
"""

from __future__ import annotations

import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from fastapi.responses import JSONResponse

from formflow.errors import FormflowError

PROBLEM_MEDIA_TYPE = "application/problem+json"
REQUEST_INVALID = "REQUEST_INVALID"

logger = logging.getLogger(__name__)


def problem(status: int, title: str, detail: str = "", code: str | None = None, **extra: object) -> JSONResponse:
    body: dict = {"title": title, "status": status}
    if detail:
        body["detail"] = detail
    if code:
        body["code"] = code
    body.update(extra)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_formflow_error(request: Request, exc: FormflowError) -> JSONResponse:  # noqa: D401
    logger.info("problem code=%s path=%s detail=%s", exc.code, request.url.path, exc.detail)
    return problem(exc.status, exc.title, exc.detail, exc.code)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        return JSONResponse(exc.detail, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=exc.headers)
    response = problem(status, "Error", str(exc.detail or ""))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", "")), "type": str(err.get("type", ""))}
        for err in exc.errors()
    ]
    return problem(422, "Invalid Request", "Request validation failed", REQUEST_INVALID, errors=errors)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem(500, "Internal Server Error")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "REQUEST_INVALID",
    "problem",
    "handle_formflow_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
