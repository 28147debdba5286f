import errno
import os

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from tests.consts import KNOWN_ID, MISSING_ID
from tests.fixtures.storage_fixtures import write_entry


def test__upload_file__missing_file(client: TestClient):
    response = client.post("/upload", data={"other": "field"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"message": "No file provided"}


def test__upload_file__filename_too_long(client: TestClient, storage_dir):
    response = client.post(
        "/upload",
        files={"file": ("a" * 300 + ".txt", b"content", "text/plain")},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"].startswith("Filename is too long")
    assert client.get("/files").json()["totalFilesCount"] == 0


@pytest.mark.parametrize(
    "params",
    [
        {"page": -1},
        {"page": "abc"},
        {"pageSize": 0},
        {"sortField": "owner"},
        {"sortOrder": "up"},
    ],
)
def test__list_files__invalid_query(client: TestClient, params):
    response = client.get("/files", params=params)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"].startswith("Invalid request")


def test__get_file__not_found(client: TestClient, storage_dir):
    write_entry(storage_dir, "stray.txt")

    for file_id in (MISSING_ID, "stray.txt"):
        response = client.get(f"/files/{file_id}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"message": "File not found!"}


@pytest.mark.parametrize(
    "body",
    [
        {"fileIds": []},
        {"fileIds": KNOWN_ID},
        {"fileIds": [KNOWN_ID, 7]},
        {"ids": [KNOWN_ID]},
        [KNOWN_ID],
    ],
)
def test__delete_files__invalid_body(client: TestClient, body):
    response = client.request("DELETE", "/files", json=body)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"message": "Invalid file IDs."}


def test__delete_files__malformed_json(client: TestClient):
    response = client.request(
        "DELETE",
        "/files",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test__delete_files__nothing_matched(client: TestClient, storage_dir):
    write_entry(storage_dir, "stray.txt")

    response = client.request("DELETE", "/files", json={"fileIds": [MISSING_ID, "stray.txt"]})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "No files found."}
    assert (storage_dir / "stray.txt").exists()


def test__delete_files__all_resolved_deletions_failed(client: TestClient, storage_dir, monkeypatch):
    write_entry(storage_dir, f"{KNOWN_ID}-locked.txt")

    def unlink(path, *args, **kwargs):
        raise PermissionError(errno.EACCES, "Permission denied")

    monkeypatch.setattr(os, "unlink", unlink)

    response = client.request("DELETE", "/files", json={"fileIds": [KNOWN_ID]})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    data = response.json()
    assert data["deletedCount"] == 0
    assert list(data["failed"]) == [KNOWN_ID]


def test__list_files__storage_missing(client: TestClient, storage_dir):
    os.rename(storage_dir, storage_dir.with_name("moved"))

    response = client.get("/files")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["message"].startswith("Unable to scan files")

    health = client.get("/health").json()
    assert health["status"] == "degraded"
    assert health["ready"] is False
