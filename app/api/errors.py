"""
Exception handlers: every error leaves the API in the response envelope
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.responses import error_envelope
from app.config import get_settings
from app.domain.errors import AppError

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong!"


def _field_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        # drop the "body"/"query"/"path" prefix
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc)
        msg = error.get("msg", "is invalid")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f'Field "{field}" {msg}' if field else msg)
    return messages


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, exc.message, exc.details),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_envelope(400, "Validation failed", _field_messages(exc)),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    if get_settings().DEBUG:
        return JSONResponse(
            status_code=500,
            content=error_envelope(500, str(exc) or GENERIC_ERROR, error=type(exc).__name__),
        )
    return JSONResponse(status_code=500, content=error_envelope(500, GENERIC_ERROR))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
