"""
Reservation error taxonomy and the FastAPI handlers that map it to HTTP.

Services raise these instead of HTTPException so that the same code paths
can be driven from tests and background jobs without a request in scope.
"""

from typing import Any, Callable, Coroutine, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.responses import Response

from tourism_api.core.logging import get_logger

logger = get_logger(__name__)

ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]


class ReservationError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ReservationError):
    """Malformed or missing input. Carries field-level detail."""

    def __init__(self, message: str, errors: Optional[list[dict]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class InvalidArgumentError(ReservationError):
    pass


class InvalidTransitionError(ReservationError):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot change reservation status from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class AvailabilityError(ReservationError):
    pass


class NotFoundError(ReservationError):
    status_code = status.HTTP_404_NOT_FOUND


class PersistenceError(ReservationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Reservation storage failure") -> None:
        super().__init__(message)


class NotificationError(Exception):
    """Email delivery failed. Logged by the lifecycle, never returned to clients."""


async def reservation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, ReservationError) else PersistenceError()
    content: dict[str, Any] = {"detail": error.message}
    if isinstance(error, ValidationError) and error.errors:
        content["errors"] = error.errors
    return JSONResponse(status_code=error.status_code, content=content)


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(errors)},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    ReservationError: reservation_error_handler,
    RequestValidationError: request_validation_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
