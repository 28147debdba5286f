"""
Directory-backed file repository.

The storage directory is the only source of truth: there is no index, so
every operation re-scans the directory and decodes entry names with the
identifier codec. Entries that do not decode are still listed but can never
be fetched or deleted by identifier.
"""

import errno
import logging
import os
import shutil
import tempfile
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Iterator, List, Optional, Set

from file_repository import codec
from file_repository.errors import ClientInputError, StorageIOError
from file_repository.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024
DEFAULT_NAME_MAX = 255

_NO_HARD_LINK_ERRNOS = {
    errno.EPERM,
    errno.EMLINK,
    getattr(errno, "ENOTSUP", errno.EPERM),
    getattr(errno, "EOPNOTSUPP", errno.EPERM),
}


class SortField(str, Enum):
    FILENAME = "filename"
    SIZE = "size"
    DATE_UPLOADED = "dateUploaded"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class FileRecord:
    """Listing view of a directory entry. `identifier` is None for foreign entries."""
    identifier: Optional[str]
    filename: str
    size_bytes: int
    uploaded_at: datetime


@dataclass(frozen=True)
class ListResult:
    total_count: int
    items: List[FileRecord]


@dataclass(frozen=True)
class FetchResult:
    identifier: str
    storage_key: str
    path: Path
    filename: str


@dataclass
class DeleteResult:
    """Per-identifier outcome of a batch delete."""
    deleted: Set[str] = field(default_factory=set)
    not_found: Set[str] = field(default_factory=set)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def deleted_count(self) -> int:
        # Identifiers differing only in case name the same entry.
        return len({identifier.lower() for identifier in self.deleted})

    @property
    def resolved_count(self) -> int:
        return self.deleted_count + len({identifier.lower() for identifier in self.failed})


_SORT_KEYS = {
    SortField.FILENAME.value: lambda record: record.filename,
    SortField.SIZE.value: lambda record: record.size_bytes,
    SortField.DATE_UPLOADED.value: lambda record: record.uploaded_at,
}


def generate_identifier() -> str:
    """A fresh random 128-bit identifier in canonical 8-4-4-4-12 form."""
    return str(uuid.uuid4())


def _uploaded_at(stat_result: os.stat_result) -> datetime:
    # Birth time is only reported on some platforms; fall back to mtime.
    timestamp = getattr(stat_result, "st_birthtime", None) or stat_result.st_mtime
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class FileRepository:
    """
    Stores uploaded files in a single directory under identifier-encoded names.

    Uploads are first written to a staging sub-directory and then published
    under their final name with an exclusive hard link, so a reader never
    observes a partially written file. Where the filesystem has no hard
    links, the name is claimed with O_EXCL and the content renamed over it.

    Only regular files are entries; sub-directories and symbolic links are
    not listed and cannot be fetched or deleted.
    """

    def __init__(self, storage_dir: str | os.PathLike, staging_dir_name: str = ".incoming", max_delete_workers: int = 8):
        self.storage_dir = Path(storage_dir)
        self.staging_dir = self.storage_dir / staging_dir_name
        self.max_delete_workers = max_delete_workers

    def init_storage(self) -> None:
        """Create the storage and staging directories if they do not exist."""
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            self.staging_dir.mkdir(exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Unable to initialise storage: {e}", path=str(self.storage_dir)) from e
        logger.info(f"Storage initialised at {self.storage_dir.resolve()}")

    def _scan(self) -> Iterator[os.DirEntry]:
        """Yield regular-file entries of the storage directory in enumeration order. Symlinks are skipped."""
        try:
            with os.scandir(self.storage_dir) as entries:
                for entry in entries:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            yield entry
                    except OSError:
                        continue
        except OSError as e:
            raise StorageIOError(f"Unable to scan files: {e}", path=str(self.storage_dir)) from e

    def _resolve(self, identifiers: Iterable[str]) -> Dict[str, str]:
        """
        Map each requested identifier to the first entry name that decodes to it.

        Matching ignores case, so every spelling of the same identifier
        resolves to the same entry.
        """
        wanted: Dict[str, Set[str]] = {}
        for identifier in identifiers:
            if codec.is_identifier(identifier):
                wanted.setdefault(identifier.lower(), set()).add(identifier)
        if not wanted:
            return {}

        matches: Dict[str, str] = {}
        for entry in self._scan():
            decoded = codec.decode(entry.name)
            if decoded is None or decoded.identifier not in wanted:
                continue
            matches.setdefault(decoded.identifier, entry.name)
            if len(matches) == len(wanted):
                break

        return {
            spelling: storage_key
            for normalized, storage_key in matches.items()
            for spelling in wanted[normalized]
        }

    def _max_name_length(self) -> int:
        try:
            limit = os.pathconf(self.storage_dir, "PC_NAME_MAX")
        except (AttributeError, OSError, ValueError):
            return DEFAULT_NAME_MAX
        # -1 means the filesystem reports no limit.
        return limit if limit > 0 else DEFAULT_NAME_MAX

    @staticmethod
    def _publish(temp_path: str, destination: Path) -> None:
        """Move a fully written staging file to its final name without overwriting."""
        try:
            # Hard-linking fails if the destination exists.
            os.link(temp_path, destination)
            return
        except OSError as e:
            if e.errno not in _NO_HARD_LINK_ERRNOS:
                raise
            logger.debug(f"Hard links unsupported for {destination}, claiming the name exclusively")

        # Claim the name with O_EXCL, then atomically swap the content in.
        fd = os.open(destination, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        os.close(fd)
        try:
            os.replace(temp_path, destination)
        except OSError:
            os.unlink(destination)
            raise

    @log_execution_time
    def store(self, content: BinaryIO, original_filename: str) -> str:
        """
        Persist an uploaded stream under a freshly generated identifier.

        Args:
            content: Readable binary stream with the file content
            original_filename: Client-declared filename

        Returns:
            The storage key the content was published under
        """
        # Client-declared names may carry path components; keep the base name only.
        filename = os.path.basename(str(original_filename or "").replace("\\", "/"))
        if not filename.strip():
            raise ClientInputError("A non-empty filename is required.")
        if "\x00" in filename:
            raise ClientInputError("Filename must not contain NUL characters.")

        storage_key = codec.encode(generate_identifier(), filename)
        if len(os.fsencode(storage_key)) > self._max_name_length():
            raise ClientInputError(f"Filename is too long: {len(os.fsencode(filename))} bytes.")
        destination = self.storage_dir / storage_key
        self.staging_dir.mkdir(parents=True, exist_ok=True)

        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(dir=self.staging_dir, prefix=".tmp_")
            with os.fdopen(fd, "wb") as temp_file:
                shutil.copyfileobj(content, temp_file, COPY_CHUNK_SIZE)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            self._publish(temp_path, destination)
        except OSError as e:
            logger.error(f"Failed to store {filename!r}: {e}")
            raise StorageIOError(f"Unable to store file: {filename}", path=str(destination)) from e
        finally:
            if temp_path is not None:
                try:
                    os.unlink(temp_path)
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.warning(f"Could not remove staging file {temp_path}: {e}")

        logger.info(f"Stored {filename!r} as {storage_key}")
        return storage_key

    def _records(self) -> List[FileRecord]:
        records = []
        for entry in self._scan():
            try:
                stat_result = entry.stat(follow_symlinks=False)
            except FileNotFoundError:
                # Removed between enumeration and stat.
                continue
            except OSError as e:
                raise StorageIOError(f"Unable to read file metadata: {e}", path=entry.path) from e

            decoded = codec.decode(entry.name)
            records.append(
                FileRecord(
                    identifier=decoded.identifier if decoded else None,
                    filename=decoded.filename if decoded else entry.name,
                    size_bytes=stat_result.st_size,
                    uploaded_at=_uploaded_at(stat_result),
                )
            )
        return records

    @log_execution_time
    def list(
        self,
        page: int = 0,
        page_size: int = 10,
        sort_field: str = SortField.DATE_UPLOADED.value,
        sort_order: str = SortOrder.ASC.value,
    ) -> ListResult:
        """
        List stored entries, sorted and paginated.

        Sorting is stable, so ties keep directory enumeration order. An
        unknown sort field leaves the enumeration order untouched.
        """
        sort_field = getattr(sort_field, "value", sort_field)
        sort_order = getattr(sort_order, "value", sort_order)
        if isinstance(page, bool) or not isinstance(page, int) or page < 0:
            raise ClientInputError(f"page must be a non-negative integer, got {page!r}")
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise ClientInputError(f"page_size must be a positive integer, got {page_size!r}")
        if sort_order not in (SortOrder.ASC.value, SortOrder.DESC.value):
            raise ClientInputError(f"sort_order must be 'asc' or 'desc', got {sort_order!r}")

        records = self._records()
        sort_key = _SORT_KEYS.get(sort_field)
        if sort_key is not None:
            records.sort(key=sort_key, reverse=sort_order == SortOrder.DESC.value)

        start = page * page_size
        return ListResult(total_count=len(records), items=records[start:start + page_size])

    @log_execution_time
    def fetch(self, identifier: str) -> Optional[FetchResult]:
        """Find the entry stored under `identifier`, or None when there is none."""
        storage_key = self._resolve([identifier]).get(identifier)
        if storage_key is None:
            logger.info(f"No file stored under {identifier}")
            return None

        decoded = codec.decode(storage_key)
        return FetchResult(
            identifier=decoded.identifier,
            storage_key=storage_key,
            path=self.storage_dir / storage_key,
            filename=decoded.filename,
        )

    def _delete_entry(self, storage_key: str) -> Optional[str]:
        """Delete one entry, returning an error message on failure."""
        path = self.storage_dir / storage_key
        try:
            os.unlink(path)
        except OSError as e:
            logger.error(f"Unable to delete file {storage_key}: {e}")
            return f"Unable to delete file: {storage_key}. {e.strerror or e}"
        logger.info(f"Deleted {storage_key}")
        return None

    @log_execution_time
    def delete_many(self, identifiers: Iterable[str]) -> DeleteResult:
        """
        Delete every entry stored under one of `identifiers`.

        Each resolved entry is deleted independently; a failure is recorded
        against its identifier and does not stop the other deletions.
        """
        if isinstance(identifiers, (str, bytes)):
            raise ClientInputError("identifiers must be a collection of identifier strings")
        requested = set(identifiers)
        if not requested:
            raise ClientInputError("At least one identifier is required.")
        if not all(isinstance(identifier, str) for identifier in requested):
            raise ClientInputError("identifiers must be a collection of identifier strings")

        resolved = self._resolve(requested)
        result = DeleteResult(not_found=requested - resolved.keys())
        if not resolved:
            return result

        # Spellings of one identifier share an entry; delete it once.
        by_entry: Dict[str, List[str]] = {}
        for identifier, storage_key in resolved.items():
            by_entry.setdefault(storage_key, []).append(identifier)

        workers = min(self.max_delete_workers, len(by_entry))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                storage_key: executor.submit(self._delete_entry, storage_key)
                for storage_key in by_entry
            }
            for storage_key, future in futures.items():
                error = future.result()
                for identifier in by_entry[storage_key]:
                    if error is None:
                        result.deleted.add(identifier)
                    else:
                        result.failed[identifier] = error

        logger.info(
            f"Batch delete: {result.deleted_count} deleted, "
            f"{len(result.not_found)} not found, {len(result.failed)} failed"
        )
        return result
