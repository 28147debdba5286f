from fastapi import status
from fastapi.testclient import TestClient

from file_repository import codec
from tests.consts import (
    KNOWN_ID,
    MISSING_ID,
    OTHER_ID,
    TEST_FILE_CONTENT,
    TEST_FILE_CONTENT_TYPE,
    TEST_FILE_NAME,
)
from tests.fixtures.storage_fixtures import write_entry


def upload(client: TestClient, filename: str = TEST_FILE_NAME, content: bytes = TEST_FILE_CONTENT):
    return client.post(
        "/upload",
        files={"file": (filename, content, TEST_FILE_CONTENT_TYPE)},
    )


def test__upload_file__happy_path(client: TestClient, storage_dir):
    response = upload(client)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["message"] == "File uploaded successfully!"
    assert codec.is_identifier(data["id"])
    assert data["storageKey"] == codec.encode(data["id"], TEST_FILE_NAME)
    assert (storage_dir / data["storageKey"]).read_bytes() == TEST_FILE_CONTENT


def test__list_files__defaults(client: TestClient):
    upload(client)

    response = client.get("/files")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["totalFilesCount"] == 1
    [file] = data["files"]
    assert set(file) == {"id", "filename", "size", "dateUploaded"}
    assert file["filename"] == TEST_FILE_NAME
    assert file["size"] == len(TEST_FILE_CONTENT)
    assert codec.is_identifier(file["id"])
    assert "T" in file["dateUploaded"]


def test__list_files__pagination_and_sorting(client: TestClient, storage_dir):
    for size in (10, 5, 20, 1, 15):
        write_entry(storage_dir, codec.encode(codec_id(size), f"{size}.bin"), b"x" * size)

    first = client.get("/files", params={"page": 0, "pageSize": 2, "sortField": "size", "sortOrder": "desc"}).json()
    second = client.get("/files", params={"page": 1, "pageSize": 2, "sortField": "size", "sortOrder": "desc"}).json()
    third = client.get("/files", params={"page": 2, "pageSize": 2, "sortField": "size", "sortOrder": "desc"}).json()

    assert first["totalFilesCount"] == second["totalFilesCount"] == third["totalFilesCount"] == 5
    sizes = [f["size"] for page in (first, second, third) for f in page["files"]]
    assert sizes == [20, 15, 10, 5, 1]


def test__list_files__foreign_entry_has_null_id(client: TestClient, storage_dir):
    write_entry(storage_dir, "stray.txt", b"abc")

    data = client.get("/files").json()

    assert data["files"] == [
        {
            "id": None,
            "filename": "stray.txt",
            "size": 3,
            "dateUploaded": data["files"][0]["dateUploaded"],
        }
    ]


def test__get_file__happy_path(client: TestClient):
    file_id = upload(client, filename="quarterly-report.pdf").json()["id"]

    response = client.get(f"/files/{file_id}")

    assert response.status_code == status.HTTP_200_OK
    assert response.content == TEST_FILE_CONTENT
    assert response.headers["content-disposition"] == 'attachment; filename="quarterly-report.pdf"'
    assert response.headers["content-type"] == "application/pdf"


def test__get_file__non_latin_filename(client: TestClient, storage_dir):
    write_entry(storage_dir, f"{KNOWN_ID}-отчёт.txt", b"hi")

    response = client.get(f"/files/{KNOWN_ID}")

    assert response.status_code == status.HTTP_200_OK
    assert "filename*=utf-8''%D0%BE%D1%82%D1%87%D1%91%D1%82.txt" in response.headers["content-disposition"]


def test__get_file__control_characters_in_filename(client: TestClient, storage_dir):
    write_entry(storage_dir, f"{KNOWN_ID}-a\r\nX-Injected: 1\r\nb.txt", b"hi")

    response = client.get(f"/files/{KNOWN_ID}")

    assert response.status_code == status.HTTP_200_OK
    assert response.content == b"hi"
    header = response.headers["content-disposition"]
    assert "\r" not in header and "\n" not in header
    assert "a%0D%0AX-Injected%3A%201%0D%0Ab.txt" in header
    assert "x-injected" not in response.headers


def test__delete_files__identifier_in_two_cases(client: TestClient, storage_dir):
    write_entry(storage_dir, f"{KNOWN_ID}-a.txt")

    response = client.request("DELETE", "/files", json={"fileIds": [KNOWN_ID, KNOWN_ID.upper()]})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "message": "1 file(s) deleted successfully.",
        "deletedCount": 1,
        "notFound": [],
        "failed": {},
    }


def test__delete_files__happy_path(client: TestClient, storage_dir):
    write_entry(storage_dir, f"{KNOWN_ID}-a.txt")
    write_entry(storage_dir, f"{OTHER_ID}-b.txt")

    response = client.request("DELETE", "/files", json={"fileIds": [KNOWN_ID, OTHER_ID, MISSING_ID]})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "message": "2 file(s) deleted successfully.",
        "deletedCount": 2,
        "notFound": [MISSING_ID],
        "failed": {},
    }
    assert client.get("/files").json()["totalFilesCount"] == 0


def test__health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "status": "ok",
        "components": {"api": "ready", "storage": "ready"},
        "ready": True,
    }


def codec_id(n: int) -> str:
    return f"00000000-0000-4000-8000-{n:012x}"
