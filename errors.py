"""
Error taxonomy for the API.

Handlers raise these; the exception handlers registered in main.py turn
every one of them into ``{"success": false, "message": ...}``.
"""

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=400, detail=message)


class NotFoundError(HTTPException):
    def __init__(self, message: str = "Not found"):
        super().__init__(status_code=404, detail=message)


class ConflictError(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=409, detail=message)


class UpstreamError(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=500, detail=message)


class StoreConnectionError(RuntimeError):
    """The document store could not be reached at startup."""


def error_body(message):
    return {"success": False, "message": message}


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        first = errors[0]
        # drop the leading "body" segment FastAPI adds to every location
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        field = ".".join(loc)
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    return JSONResponse(status_code=400, content=error_body(message))


async def store_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database operation failed on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Database error"))


def register_error_handlers(app):
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PyMongoError, store_error_handler)
