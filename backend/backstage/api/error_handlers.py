"""Error Handlers — every failure leaves the API in the BackstageError envelope.

Invariants:
    - Domain errors keep their own status and code
    - Schema validation failures → 400 VALIDATION_ERROR with one detail per field
    - Unique index violations → 409 CONFLICT; other driver failures → 503
    - Anything else → 500 INTERNAL_ERROR, traceback in the log only

Design Decisions:
    - Non-domain exceptions are converted into BackstageError instances, so
      one renderer owns logging and the response shape
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from backstage.core.errors import (
    BackstageError, ConflictError, DatabaseError, RequestValidationFailed,
)

logger = logging.getLogger(__name__)


def _render(request: Request, error: BackstageError, exc_info: bool = False) -> JSONResponse:
    log = logger.error if error.http_status >= 500 else logger.warning
    log(
        f"{error.code} on {request.method} {request.url.path}: {error.message}",
        extra={
            "error_code": error.code,
            "path": request.url.path,
            "resource": error.resource,
            "resource_id": error.resource_id,
        },
        exc_info=exc_info,
    )
    return JSONResponse(status_code=error.http_status, content=error.to_response())


def _field_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(part) for part in issue["loc"]),
            "message": issue["msg"],
            "type": issue["type"],
        }
        for issue in exc.errors()
    ]


def register_error_handlers(app: FastAPI) -> None:
    """Attach the envelope-producing handlers to `app`."""

    @app.exception_handler(BackstageError)
    async def on_backstage_error(request: Request, exc: BackstageError):
        return _render(request, exc)

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError):
        return _render(request, RequestValidationFailed(details=_field_errors(exc)))

    @app.exception_handler(DuplicateKeyError)
    async def on_duplicate_key(request: Request, exc: DuplicateKeyError):
        return _render(
            request, ConflictError("A document with the same unique value already exists"),
        )

    @app.exception_handler(PyMongoError)
    async def on_database_error(request: Request, exc: PyMongoError):
        logger.error(f"MongoDB failure: {exc}")
        return _render(request, DatabaseError())

    @app.exception_handler(Exception)
    async def on_unexpected_error(request: Request, exc: Exception):
        return _render(request, BackstageError(), exc_info=True)
