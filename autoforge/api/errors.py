"""Exception handlers mapping the error hierarchy onto JSON responses."""
from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from autoforge.core.errors import AutoForgeError, InvalidInputError, NotFoundError, RepositoryError
from autoforge.logging import get_logger

logger = get_logger(__name__)


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return error_response(status.HTTP_404_NOT_FOUND, str(exc))


async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    logger.warning("invalid_input", path=request.url.path, error=str(exc))
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.warning("request_validation_failed", path=request.url.path, errors=details)
    return error_response(status.HTTP_400_BAD_REQUEST, "Request validation failed", details=details)


async def repository_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    return error_response(status.HTTP_502_BAD_GATEWAY, str(exc))


async def internal_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(RequestValidationError, validation_handler)
    app.add_exception_handler(RepositoryError, repository_handler)
    app.add_exception_handler(AutoForgeError, internal_handler)
    app.add_exception_handler(Exception, internal_handler)
