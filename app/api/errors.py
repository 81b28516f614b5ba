from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.schemas_common import ErrorEnvelope
from app.core.errors import MarketError

logger = logging.getLogger(__name__)


def _envelope(status_code: int, message: str, error: str, field: str | None = None) -> JSONResponse:
    body = ErrorEnvelope(message=message, error=error, field=field)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def market_error_handler(request: Request, exc: MarketError) -> JSONResponse:
    return _envelope(exc.status_code, exc.message, exc.category, getattr(exc, "field", None))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    field = ".".join(loc) or None
    msg = first.get("msg", "Invalid request")
    message = f"{field}: {msg}" if field else msg
    return _envelope(status.HTTP_400_BAD_REQUEST, message, "validation_error", field)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    category = {
        401: "authentication_error",
        403: "authorization_error",
        404: "not_found",
    }.get(exc.status_code, "error")
    response = _envelope(exc.status_code, str(exc.detail), category)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"unhandled error | {request.method} {request.url.path}", exc_info=exc)
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Something went wrong. Please try again.",
        "internal_error",
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketError, market_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
