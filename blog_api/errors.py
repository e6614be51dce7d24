"""
Application error taxonomy.

Services raise these exceptions instead of returning sentinel values;
``register_exception_handlers`` translates them into JSON responses so
routers stay free of error-mapping code.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code: int = 500

    def __init__(self, detail: str = "Internal Server Error") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return self.detail


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class UnauthorizedError(AppError):
    """No identified caller."""

    status_code = 401


class ForbiddenError(UnauthorizedError):
    """Identified caller that does not own the resource."""

    status_code = 403


class ValidationFailure(AppError):
    status_code = 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.warning(
        "%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.detail
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # Reached only when a uniqueness race escapes the service layer.
    logger.warning("%s %s -> 409: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Resource already exists"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
