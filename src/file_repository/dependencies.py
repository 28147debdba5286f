from fastapi import Request

from file_repository.config.settings import Settings
from file_repository.repository import FileRepository


def get_repository(request: Request) -> FileRepository:
    """Repository dependency."""
    return request.app.state.repository


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings
