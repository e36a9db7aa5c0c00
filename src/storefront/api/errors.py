"""Exception handlers mapping domain errors onto the response envelope.

Every error body has the shape ``{"success": false, "message": ...}``;
field-level messages are added under ``errors`` when available.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException

from storefront.config import get_settings
from storefront.shared.errors import OutOfStock

logger = structlog.get_logger(__name__)


def _messages(exc):
    """Return the payload an exception was raised with.

    ValidationError exposes it as ``messages``; other Protean exceptions only
    carry it as their first argument.
    """
    messages = getattr(exc, "messages", None)
    if messages:
        return messages
    if exc.args:
        return exc.args[0]
    return str(exc)


def _first_message(messages, field=None) -> str:
    """Pull a human-readable message out of a Protean ``messages`` payload.

    Field-level fragments such as "is required" are prefixed with the field
    name; full sentences are returned unchanged.
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            return _first_message(value, key)
        return "Request failed"
    if isinstance(messages, (list, tuple)):
        return _first_message(messages[0], field) if messages else "Request failed"
    message = str(messages)
    if field and not str(field).startswith("_") and message[:1].islower():
        return f"{field}: {message}"
    return message


def _body(message, errors=None, **extra):
    body = {"success": False, "message": message}
    if isinstance(errors, dict):
        body["errors"] = errors
    body.update(extra)
    return body


async def out_of_stock_handler(request: Request, exc: OutOfStock):
    return JSONResponse(
        status_code=400,
        content=_body("Some items are out of stock", unavailableItems=exc.unavailable_items),
    )


async def validation_error_handler(request: Request, exc: ValidationError):
    messages = _messages(exc)
    return JSONResponse(status_code=400, content=_body(_first_message(messages), messages))


async def not_found_handler(request: Request, exc: ObjectNotFoundError):
    messages = _messages(exc)
    return JSONResponse(status_code=404, content=_body(_first_message(messages), messages))


async def invalid_operation_handler(request: Request, exc: InvalidOperationError):
    messages = _messages(exc)
    return JSONResponse(status_code=400, content=_body(_first_message(messages), messages))


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content=_body(str(exc.detail)), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content=_body("Invalid request"))
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first['msg']}" if field else first["msg"]
    return JSONResponse(status_code=400, content=_body(message))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc,
    )
    message = "Internal server error" if get_settings().is_production else str(exc)
    return JSONResponse(status_code=500, content=_body(message))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the storefront's error handlers on ``app``.

    Starlette picks the handler registered for the closest class in the
    exception's MRO, so OutOfStock wins over ValidationError.
    """
    app.add_exception_handler(OutOfStock, out_of_stock_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(InvalidOperationError, invalid_operation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
