####################################
# --- Request/response schemas --- #
####################################

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from file_repository.repository import DeleteResult, FileRecord, ListResult

DEFAULT_GET_FILES_PAGE = 0
DEFAULT_GET_FILES_PAGE_SIZE = 10


class FileMetadata(BaseModel):
    """Metadata of a stored file."""
    id: Optional[str] = Field(
        description="Identifier of the file, null for entries not created by an upload.",
        json_schema_extra={"example": "1b9d6bcd-bbfd-4b2d-9b5d-ab8dfbbd4bed"},
    )
    filename: str = Field(
        description="The original filename.",
        json_schema_extra={"example": "report.pdf"},
    )
    size: int = Field(description="The size of the file in bytes.")
    date_uploaded: datetime = Field(
        alias="dateUploaded",
        description="When the file was stored.",
    )

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileMetadata":
        return cls(
            id=record.identifier,
            filename=record.filename,
            size=record.size_bytes,
            date_uploaded=record.uploaded_at,
        )


class GetFilesResponse(BaseModel):
    """Response model for `GET /files`."""
    total_files_count: int = Field(alias="totalFilesCount", description="Number of files before pagination.")
    files: List[FileMetadata]

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "totalFilesCount": 1,
                "files": [
                    {
                        "id": "1b9d6bcd-bbfd-4b2d-9b5d-ab8dfbbd4bed",
                        "filename": "report.pdf",
                        "size": 512,
                        "dateUploaded": "2024-01-01T00:00:00Z",
                    }
                ],
            }
        },
    )

    @classmethod
    def from_result(cls, result: ListResult) -> "GetFilesResponse":
        return cls(
            total_files_count=result.total_count,
            files=[FileMetadata.from_record(record) for record in result.items],
        )


class UploadFileResponse(BaseModel):
    """Response model for `POST /upload`."""
    message: str = Field(description="A message about the operation.")
    id: str = Field(description="The identifier generated for the file.")
    storage_key: str = Field(alias="storageKey", description="The name the file is stored under.")

    model_config = ConfigDict(populate_by_name=True)


class DeleteFilesResponse(BaseModel):
    """Response model for `DELETE /files`."""
    message: str
    deleted_count: int = Field(alias="deletedCount")
    not_found: List[str] = Field(alias="notFound", default_factory=list)
    failed: Dict[str, str] = Field(
        default_factory=dict,
        description="Identifiers whose file could not be deleted, with the reason.",
    )

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: DeleteResult) -> "DeleteFilesResponse":
        return cls(
            message=f"{result.deleted_count} file(s) deleted successfully.",
            deleted_count=result.deleted_count,
            not_found=sorted(result.not_found),
            failed=result.failed,
        )


class MessageResponse(BaseModel):
    message: str
