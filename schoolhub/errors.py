"""Domain errors and the FastAPI handlers that turn them into responses."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class SchoolHubError(Exception):
    """Base class for errors raised by the booking core."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BookingValidationError(SchoolHubError):
    """
    A candidate booking was rejected before any write.

    Attributes
    ----------
    errors : Dict[str, List[str]]
        Messages keyed by the form field they belong to.
    """

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, errors: Mapping[str, List[str]], message: str = "Booking validation failed") -> None:
        super().__init__(message)
        self.errors: Dict[str, List[str]] = {field: list(msgs) for field, msgs in errors.items()}

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "BookingValidationError":
        errors: Dict[str, List[str]] = {}
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "__root__"
            errors.setdefault(field, []).append(error["msg"])
        return cls(errors)


class AuthorizationError(SchoolHubError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(SchoolHubError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidStatusTransition(SchoolHubError):
    status_code = status.HTTP_409_CONFLICT


class StorageError(SchoolHubError):
    """The backing store failed; the original exception is chained."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, public_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.public_message = public_message or "The operation could not be completed. Please try again."


def install_error_handlers(app: FastAPI, service_name: str) -> None:
    """Register JSON handlers for every domain error on ``app``."""

    @app.exception_handler(BookingValidationError)
    async def _validation_handler(request: Request, exc: BookingValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "errors": exc.errors},
        )

    @app.exception_handler(StorageError)
    async def _storage_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(
            "%s %s failed in %s: %s", request.method, request.url.path, service_name, exc.message
        )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})

    @app.exception_handler(SchoolHubError)
    async def _domain_handler(request: Request, exc: SchoolHubError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
