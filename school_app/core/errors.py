# school_app/core/errors.py
import re
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError
from pymongo.errors import ConnectionFailure, DuplicateKeyError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from school_app.core.rate_limiter import rate_limit_exception_handler
from school_app.core.sequences import SequenceAllocationError

_DUP_KEY_PATTERN = re.compile(r"dup key: \{\s*:?\s*\"?([\w.]+)\"?\s*:\s*\"?([^\"}]*)\"?\s*\}")


def duplicate_key_field(exc: DuplicateKeyError) -> Tuple[str, Optional[Any]]:
    """Field name and value of the unique index that rejected the write."""
    details: Dict[str, Any] = exc.details or {}
    key_value = details.get("keyValue")
    if isinstance(key_value, dict) and key_value:
        field, value = next(iter(key_value.items()))
        return field, value
    match = _DUP_KEY_PATTERN.search(str(details.get("errmsg") or exc))
    if match:
        return match.group(1), match.group(2).strip()
    return "unknown", None


async def duplicate_key_exception_handler(request: Request, exc: DuplicateKeyError):
    field, value = duplicate_key_field(exc)
    logger.warning(f"Duplicate key on '{field}' ({value!r}) for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": f"{field} '{value}' already exists.", "field": field},
    )


async def sequence_allocation_exception_handler(request: Request, exc: SequenceAllocationError):
    logger.error(f"Identifier allocation failed for {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Could not allocate an identifier. Please retry later."},
    )


async def database_unavailable_exception_handler(request: Request, exc: ConnectionFailure):
    logger.error(f"Database unavailable for {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database is unavailable."},
    )


async def validation_exception_handler(request: Request, exc: ValidationError):
    logger.error(f"Validation Error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation Error", "errors": _jsonable_errors(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP Exception: Status={exc.status_code}, Detail={exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled Exception: {exc}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "An internal server error occurred."})


def _jsonable_errors(errors):
    # ctx may hold exception instances (e.g. ValueError from validators)
    cleaned = []
    for err in errors:
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        err.pop("url", None)
        cleaned.append(err)
    return jsonable_encoder(cleaned)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_exception_handler)
    app.add_exception_handler(SequenceAllocationError, sequence_allocation_exception_handler)
    app.add_exception_handler(ConnectionFailure, database_unavailable_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
