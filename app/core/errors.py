"""
Error responses.

Every error leaves the API as ``{"status": ..., "message": ...}`` where
status is ``fail`` for client errors and ``error`` for server errors.
Services raise ``HTTPException`` with a readable detail; anything else that
escapes a route ends up in ``unhandled_exception_handler``.
"""
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger("errors")

def error_body(status_code: int, message) -> dict:
    return {
        "status": "fail" if 400 <= status_code < 500 else "error",
        "message": message,
    }

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content=error_body(400, f"Invalid input data. {'. '.join(errors)}"),
    )

async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    content = error_body(500, "Something went wrong")
    if settings.is_development:
        content["error"] = type(exc).__name__
        content["detail"] = str(exc)
        content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=content)

def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
