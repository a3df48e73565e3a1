# File: backend/carmarket/core/errors.py

import logging
import traceback
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from carmarket.core.config import DEV_MODE

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "Validation error"
INTERNAL_ERROR = "Internal server error"


class AppError(Exception):
    """
    Base class for every failure that maps onto a known HTTP status.
    Route handlers raise these and let the handlers below render them.
    """
    status_code = 500

    def __init__(self, message: str, details: Optional[List[dict]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(AppError):
    status_code = 400

    def __init__(self, message: str = VALIDATION_ERROR, details: Optional[List[dict]] = None):
        super().__init__(message, details)


class Unauthenticated(AppError):
    status_code = 401


class InvalidSignature(Unauthenticated):
    pass


class TokenExpired(Unauthenticated):
    pass


class MalformedToken(Unauthenticated):
    pass


class Forbidden(AppError):
    status_code = 403


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409


def error_body(message: str, details: Optional[List[dict]] = None) -> dict:
    body = {"success": False, "message": message}
    if details:
        body["details"] = details
    return body


def _field_path(loc) -> str:
    # Drop FastAPI's "body"/"query"/"path" prefix, keep the field path.
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    return ".".join(parts)


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": _field_path(err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.debug("Validation failed on %s %s: %s", request.method, request.url.path, details)
    return JSONResponse(status_code=400, content=error_body(VALIDATION_ERROR, details))


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    key_value = (exc.details or {}).get("keyValue") or {}
    field = next(iter(key_value), "record")
    message = f"{field[:1].upper()}{field[1:]} already exists"
    logger.info("Duplicate key on %s %s: %s", request.method, request.url.path, field)
    return JSONResponse(status_code=409, content=error_body(message))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(message), headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = error_body(INTERNAL_ERROR)
    if DEV_MODE:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
