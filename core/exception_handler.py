import logging
from typing import Any

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError

from core.exceptions import BaseCustomException

logger = logging.getLogger("chain_explorer")

# Locations FastAPI prefixes to every error; clients only need the field name
REQUEST_PARTS = ("body", "query", "path")


def failure(status_code: int, error: Any, **extra: Any) -> JSONResponse:
    """
    Build the failure envelope shared by every handler.

    Parameters
    ----------
    status_code : int
        HTTP status code
    error : Any
        Error key or message shown to the client
    **extra : Any
        Additional top-level fields

    Returns
    -------
    JSONResponse
        ``{"success": false, "error": ...}`` response
    """
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, **extra}
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation errors.

    Malformed addresses, hashes, block identifiers and unknown networks
    all end up here.

    Parameters
    ----------
    request : Request
        FastAPI request
    exc : RequestValidationError
        Validation error

    Returns
    -------
    JSONResponse
        422 response listing the offending fields
    """
    errors = []
    for error in exc.errors():
        field_path = ".".join(
            str(part) for part in error["loc"]
            if not isinstance(part, int) and part not in REQUEST_PARTS
        )
        errors.append({
            "field": field_path or "body",
            "message": error["msg"],
            "type": error["type"]
        })

    return failure(422, "Validation error", errors=errors)


async def http_exception_handler(request: Request, exc: HTTPException):
    return failure(exc.status_code, exc.detail)


async def starlette_exception_handler(request: Request, exc: StarletteHTTPException):
    return failure(exc.status_code, exc.detail)


async def custom_exception_handler(request: Request, exc: Exception):
    """
    Handler for domain and unexpected exceptions.

    Domain exceptions carry their own status and error key. Node and
    explorer failures (5xx) are logged; anything else is logged with its
    traceback and reported as a generic 500.

    Parameters
    ----------
    request : Request
        FastAPI request
    exc : Exception
        Exception

    Returns
    -------
    JSONResponse
        Failure envelope
    """
    if isinstance(exc, BaseCustomException):
        status_code = exc.get_status_code()
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return failure(status_code, exc.message)

    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return failure(500, "Internal server error")
