import logging
from textwrap import dedent

import pydantic
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from file_repository.config.settings import Settings
from file_repository.errors import (
    FileRepositoryError,
    handle_broad_exceptions,
    handle_file_repository_errors,
    handle_pydantic_validation_errors,
    handle_request_validation_errors,
)
from file_repository.repository import FileRepository
from file_repository.routers.files import router as files_router
from file_repository.routers.health import router as health_router

# Set up logging
logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or Settings()

    app = FastAPI(
        title="File Repository",
        summary="Upload, list, download and delete files",
        version="v1",
        description=dedent(
            """\
        Files are stored in a single directory under names of the form
        `<id>-<original filename>`; the directory is the only state.

        | Route | Notes |
        | --- | --- |
        | `POST /upload` | multipart field `file` |
        | `GET /files` | `page`, `pageSize`, `sortField`, `sortOrder` |
        | `GET /files/{id}` | download with the original filename |
        | `DELETE /files` | body `{"fileIds": [...]}` |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    repository = FileRepository(
        storage_dir=settings.storage_dir,
        staging_dir_name=settings.staging_dir_name,
        max_delete_workers=settings.max_delete_workers,
    )
    repository.init_storage()

    app.state.settings = settings
    app.state.repository = repository

    app.include_router(files_router, tags=["files"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(FileRepositoryError, handle_file_repository_errors)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)
