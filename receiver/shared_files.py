"""Read-side helpers over the shared directory: listing, ranged reads, batch archives."""

import tarfile
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterable, List

from common.logging_config import get_logger
from common.types import SharedFile, UploadedFile
from receiver.exceptions import InvalidInputError, SharedFileNotFoundError
from receiver.utils import sanitize_filename

logger = get_logger(__name__)

ARCHIVE_SPOOL_LIMIT_BYTES = 8 * 1024 * 1024


def list_shared_files(shared_path: Path) -> List[SharedFile]:
    """
    List regular files in the shared directory, most recently modified first.

    Args:
        shared_path: Shared directory root

    Returns:
        List of SharedFile; empty if the directory does not exist yet
    """
    shared_path = Path(shared_path)
    if not shared_path.exists():
        return []

    files = []
    for entry in shared_path.iterdir():
        if not entry.is_file():
            continue
        stat = entry.stat()
        files.append(
            SharedFile(
                name=entry.name,
                size=stat.st_size,
                modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            )
        )

    files.sort(key=lambda f: f.modified_at, reverse=True)
    return files


def read_file_chunk(shared_path: Path, filename: str, index: int, chunk_size: int) -> bytes:
    """
    Read the ``index``-th ``chunk_size`` slice of a stored file.

    An empty file has exactly one chunk, at index 0, which is empty.

    Raises:
        InvalidInputError: On a bad name, size or index past the end
        SharedFileNotFoundError: If the file does not exist
    """
    name = sanitize_filename(filename)
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
        raise InvalidInputError("chunk_size must be greater than 0")
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise InvalidInputError("index must be >= 0")

    path = Path(shared_path) / name
    if not path.is_file():
        raise SharedFileNotFoundError(f"File not found: {name}")

    size = path.stat().st_size
    offset = index * chunk_size
    if offset >= size and not (size == 0 and index == 0):
        raise InvalidInputError(f"Chunk index {index} is past the end of {name}")

    with open(path, 'rb') as f:
        f.seek(offset)
        return f.read(chunk_size)


def build_batch_archive(shared_path: Path, files: Iterable[UploadedFile]) -> BinaryIO:
    """
    Pack the batch members still on disk into a gzip'd tar.

    Args:
        shared_path: Shared directory root
        files: Batch members from the batch index

    Returns:
        Spooled temporary file positioned at 0; the caller closes it
    """
    spool = tempfile.SpooledTemporaryFile(max_size=ARCHIVE_SPOOL_LIMIT_BYTES)
    added = set()
    with tarfile.open(fileobj=spool, mode='w:gz') as archive:
        for member in files:
            if member.name in added:
                continue
            path = Path(shared_path) / member.name
            if not path.is_file():
                logger.warning(f"Batch member {member.name} is no longer in the shared directory")
                continue
            archive.add(str(path), arcname=member.name)
            added.add(member.name)
    spool.seek(0)
    return spool
