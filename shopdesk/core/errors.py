"""Domain exceptions and the JSON error envelope returned by every endpoint.

Three failure classes exist and each is terminal for the attempt that raised
it: the caller retries the whole action by hand.

* ``StoreError``: a fetch, insert or update against the data store failed.
* ``ValidationFailed``: a payload was rejected before any store call was made.
* ``WriteFailed``: one step of a multi-step write failed after earlier steps
  had already been applied.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ShopDeskError(Exception):
    """Base class for every error raised by the service layer."""


class StoreError(ShopDeskError):
    """The data store could not complete a fetch, insert or update."""

    def __init__(self, message: str, *, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class RecordNotFound(StoreError):
    def __init__(self, table: str, record_id: Any) -> None:
        super().__init__(f"{table} record {record_id} not found", table=table)
        self.record_id = record_id


class ValidationFailed(ShopDeskError):
    """Form-level validation failure with one message per offending field."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {message}" for field, message in self.errors.items()))


class WriteFailed(ShopDeskError):
    """A step of a multi-step write failed."""

    def __init__(
        self,
        operation: str,
        step: str,
        *,
        completed: Sequence[str] = (),
        rolled_back: Sequence[str] = (),
        cause: BaseException | None = None,
    ) -> None:
        self.operation = operation
        self.step = step
        self.completed = list(completed)
        self.rolled_back = list(rolled_back)
        self.cause = cause
        super().__init__(f"{operation} failed at step '{step}'")


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, details=details)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_errors(exc.errors())},
    )


async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Please fix the highlighted fields",
        details={"fields": exc.errors},
    )


async def not_found_handler(request: Request, exc: RecordNotFound):
    return ErrorEnvelope(status_code=status.HTTP_404_NOT_FOUND, code="not_found", message=str(exc))


async def write_failed_handler(request: Request, exc: WriteFailed):
    logger.error(
        "write.failed",
        extra={
            "extra_data": {
                "operation": exc.operation,
                "step": exc.step,
                "completed": exc.completed,
                "rolled_back": exc.rolled_back,
            }
        },
    )
    return ErrorEnvelope(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code="write_failed",
        message=str(exc),
        details={"step": exc.step, "completed": exc.completed, "rolled_back": exc.rolled_back},
    )


async def store_error_handler(request: Request, exc: StoreError):
    logger.error("store.failed", extra={"extra_data": {"table": exc.table, "error": str(exc)}})
    return ErrorEnvelope(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code="store_unavailable",
        message="The data store could not complete the request",
    )


def jsonable_errors(errors: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    # pydantic may place exception instances in ``ctx``; keep only their text.
    cleaned = []
    for error in errors:
        item = dict(error)
        ctx = item.get("ctx")
        if isinstance(ctx, Mapping):
            item["ctx"] = {key: str(value) for key, value in ctx.items()}
        cleaned.append(item)
    return cleaned


def register_exception_handlers(app) -> None:
    # Starlette resolves handlers along the exception MRO, so RecordNotFound
    # is matched before its StoreError parent.
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationFailed, validation_failed_handler)
    app.add_exception_handler(RecordNotFound, not_found_handler)
    app.add_exception_handler(WriteFailed, write_failed_handler)
    app.add_exception_handler(StoreError, store_error_handler)
