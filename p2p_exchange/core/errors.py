"""Error taxonomy and FastAPI exception handlers.

Domain code raises one of the ``ExchangeError`` subclasses below; the
handlers registered in ``create_app`` turn them into JSON responses of the
form ``{"error": <kind>, "detail": <message>}``.
"""

from enum import Enum
from typing import Optional
import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("p2p_exchange.errors")


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    DUPLICATE_ENTITY = "duplicate_entity"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


HTTP_STATUS = {
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATE_ENTITY: status.HTTP_409_CONFLICT,
    ErrorKind.CONCURRENT_MODIFICATION: status.HTTP_409_CONFLICT,
    ErrorKind.STORAGE_UNAVAILABLE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.UPSTREAM_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
}

# Kinds whose message is replaced by a generic one in responses.
GENERIC_MESSAGES = {
    ErrorKind.CONCURRENT_MODIFICATION: "The resource was modified concurrently; retry the request.",
    ErrorKind.STORAGE_UNAVAILABLE: "Storage is currently unavailable.",
    ErrorKind.UPSTREAM_UNAVAILABLE: "Exchange rate provider is currently unavailable.",
}


class ExchangeError(Exception):
    kind: ErrorKind

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.kind.value.replace("_", " ")
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    @property
    def public_message(self) -> str:
        return GENERIC_MESSAGES.get(self.kind, self.message)


class InvalidArgument(ExchangeError):
    kind = ErrorKind.INVALID_ARGUMENT


class DuplicateEntity(ExchangeError):
    kind = ErrorKind.DUPLICATE_ENTITY


class ConcurrentModification(ExchangeError):
    kind = ErrorKind.CONCURRENT_MODIFICATION


class StorageUnavailable(ExchangeError):
    kind = ErrorKind.STORAGE_UNAVAILABLE


class UpstreamUnavailable(ExchangeError):
    kind = ErrorKind.UPSTREAM_UNAVAILABLE


def exchange_error_handler(request: Request, exc: ExchangeError):  # type: ignore
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s",
            exc.kind.value,
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
    else:
        logger.warning(
            "%s on %s %s: %s",
            exc.kind.value,
            request.method,
            request.url.path,
            exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind.value, "detail": exc.public_message},
    )


def http_error_handler(request: Request, exc: StarletteHTTPException):  # type: ignore
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "error": "not_found",
                "detail": f"No route for {request.method} {request.url.path}",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": ErrorKind.INVALID_ARGUMENT.value,
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
