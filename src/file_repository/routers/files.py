import json
import logging
import mimetypes
import os
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Path,
    Query,
    Request,
    UploadFile,
    status
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse

from file_repository import codec
from file_repository.config.settings import Settings
from file_repository.dependencies import get_app_settings, get_repository
from file_repository.errors import ClientInputError, NotFoundError, StorageIOError
from file_repository.repository import FileRepository, SortField, SortOrder
from file_repository.schemas import (
    DEFAULT_GET_FILES_PAGE,
    DeleteFilesResponse,
    GetFilesResponse,
    MessageResponse,
    UploadFileResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/upload",
    response_model=UploadFileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_file(
    file: Optional[UploadFile] = File(None, description="The file to upload"),
    repository: FileRepository = Depends(get_repository),
) -> UploadFileResponse:
    """
    Store an uploaded file under a freshly generated identifier.

    Args:
        file: The file to upload, sent as multipart field `file`

    Returns:
        UploadFileResponse: The generated identifier and storage key
    """
    if not file:
        raise ClientInputError("No file provided")

    try:
        storage_key = await run_in_threadpool(repository.store, file.file, file.filename)
    finally:
        await file.close()

    return UploadFileResponse(
        message="File uploaded successfully!",
        id=codec.decode(storage_key).identifier,
        storage_key=storage_key,
    )


@router.get("/files", response_model=GetFilesResponse)
async def get_files(
    page: int = Query(DEFAULT_GET_FILES_PAGE, ge=0, description="Zero-based page number"),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1, description="Files per page"),
    sort_field: SortField = Query(SortField.DATE_UPLOADED, alias="sortField"),
    sort_order: SortOrder = Query(SortOrder.ASC, alias="sortOrder"),
    repository: FileRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> GetFilesResponse:
    """
    Retrieve a page of stored files.

    Returns:
        GetFilesResponse: Total number of files and the requested page
    """
    result = await run_in_threadpool(
        repository.list,
        page,
        page_size or settings.default_page_size,
        sort_field.value,
        sort_order.value,
    )
    return GetFilesResponse.from_result(result)


@router.get(
    "/files/{file_id}",
    responses={status.HTTP_404_NOT_FOUND: {"model": MessageResponse}},
)
async def get_file(
    file_id: str = Path(..., description="Identifier of the file to download"),
    repository: FileRepository = Depends(get_repository),
):
    """
    Download a file, suggesting its original filename as the save name.

    Returns:
        FileResponse: The file content, with the save name percent-encoded
    """
    found = await run_in_threadpool(repository.fetch, file_id)
    if found is None:
        raise NotFoundError("File not found!")

    try:
        stat_result = await run_in_threadpool(os.stat, found.path)
    except FileNotFoundError:
        # Deleted after it was resolved.
        raise NotFoundError("File not found!")
    except OSError as e:
        raise StorageIOError(f"Unable to read file: {found.storage_key}", path=str(found.path), identifier=file_id) from e

    media_type = mimetypes.guess_type(found.filename)[0] or "application/octet-stream"
    return FileResponse(
        found.path,
        filename=found.filename,
        media_type=media_type,
        stat_result=stat_result,
    )


@router.delete(
    "/files",
    response_model=DeleteFilesResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": MessageResponse},
        status.HTTP_404_NOT_FOUND: {"model": MessageResponse},
    },
)
async def delete_files(
    request: Request,
    repository: FileRepository = Depends(get_repository),
):
    """
    Delete the files stored under the identifiers in `{"fileIds": [...]}`.

    Identifiers that match nothing are reported in `notFound`; a file that
    could not be deleted is reported in `failed` and does not stop the rest.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ClientInputError("Invalid file IDs.")

    file_ids = payload.get("fileIds") if isinstance(payload, dict) else None
    if not isinstance(file_ids, list) or not file_ids or not all(isinstance(i, str) for i in file_ids):
        raise ClientInputError("Invalid file IDs.")

    result = await run_in_threadpool(repository.delete_many, file_ids)
    if result.resolved_count == 0:
        raise NotFoundError("No files found.")

    response = DeleteFilesResponse.from_result(result)
    if result.deleted_count == 0:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response.model_dump(mode="json", by_alias=True),
        )
    return response
