import os

from fastapi import APIRouter, Depends

from file_repository.dependencies import get_repository
from file_repository.repository import FileRepository

router = APIRouter()

@router.get("/health")
async def health_check(repository: FileRepository = Depends(get_repository)):
    """
    Health check endpoint for monitoring API status and storage readiness.

    Storage is ready when the storage directory exists and is writable.
    """
    health_status = {
        "status": "ok",
        "components": {
            "api": "ready",
            "storage": "ready"
        },
        "ready": False
    }

    storage_dir = repository.storage_dir
    if not storage_dir.is_dir():
        health_status["components"]["storage"] = f"error: {storage_dir} does not exist"
        health_status["status"] = "degraded"
    elif not os.access(storage_dir, os.W_OK):
        health_status["components"]["storage"] = f"error: {storage_dir} is not writable"
        health_status["status"] = "degraded"

    health_status["ready"] = all(
        value == "ready" for value in health_status["components"].values()
    )
    return health_status
