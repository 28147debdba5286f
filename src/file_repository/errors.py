"""
Error taxonomy for the file repository and the FastAPI handlers that render it.
"""

import logging
from typing import Optional

import pydantic
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FileRepositoryError(Exception):
    """Base class for errors raised by the file repository."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ClientInputError(FileRepositoryError):
    """Raised when request parameters are invalid. Nothing is attempted."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(FileRepositoryError):
    """Raised when an identifier lookup matches no stored entry."""
    status_code = status.HTTP_404_NOT_FOUND


class StorageIOError(FileRepositoryError):
    """Raised when reading, writing or deleting a storage entry fails."""

    def __init__(self, message: str, path: Optional[str] = None, identifier: Optional[str] = None):
        self.path = path
        self.identifier = identifier
        super().__init__(message)


async def handle_file_repository_errors(request: Request, exc: FileRepositoryError) -> JSONResponse:
    """Render repository errors as `{"message": ...}` with the matching status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Invalid query parameters or bodies are client errors."""
    errors = exc.errors()
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}" for error in errors
    )
    logger.info(f"{request.method} {request.url.path} rejected: {details}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": f"Invalid request: {details}"},
    )


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Validation errors raised while building responses or models inside a handler."""
    errors = exc.errors()
    return JSONResponse(
        status_code=422,
        content={
            "message": "Validation error",
            "detail": [
                {"msg": error["msg"], "input": str(error.get("input"))}
                for error in errors
            ],
        },
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Middleware that turns any unhandled exception into a 500 response."""
    try:
        return await call_next(request)
    except Exception:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )
