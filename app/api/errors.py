"""Exception handlers mapping the error taxonomy onto HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.exceptions import (
    CredentialNotFoundError,
    InvalidPublishRequestError,
    ReelayError,
    UnauthenticatedError,
)
from app.core.logging import get_logger

logger = get_logger(__name__)

# Error classes with a non-500 status
STATUS_BY_ERROR: dict[type[ReelayError], int] = {
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    CredentialNotFoundError: status.HTTP_401_UNAUTHORIZED,
    InvalidPublishRequestError: status.HTTP_400_BAD_REQUEST,
}


def status_for_error(error: ReelayError) -> int:
    """Return the HTTP status for a classified error."""
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(error: ReelayError) -> dict:
    body: dict = {"error": error.message}
    if error.details is not None:
        body["details"] = error.details
    return body


async def reelay_error_handler(request: Request, exc: ReelayError) -> JSONResponse:
    code = status_for_error(exc)
    if code >= 500:
        logger.error("Request failed", path=request.url.path, **exc.to_dict())
    else:
        logger.info("Request rejected", path=request.url.path, status=code, error=exc.message)
    return JSONResponse(status_code=code, content=error_body(exc))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": jsonable_errors(exc)},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Internal server error"},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on an application."""
    app.add_exception_handler(ReelayError, reelay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


__all__ = [
    "STATUS_BY_ERROR",
    "error_body",
    "register_exception_handlers",
    "status_for_error",
]
