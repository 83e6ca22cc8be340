"""Upload log and the batch view derived from it."""

import threading
from typing import Dict, Iterable, List

from common.types import CompletedUpload, UploadBatch, UploadedFile


class UploadLog:
    """
    Append-only, process-wide record of completed uploads.
    Readers get a copy so listing never holds the lock while grouping.
    """

    def __init__(self):
        self._uploads: List[CompletedUpload] = []
        self._lock = threading.Lock()

    def append(self, upload: CompletedUpload) -> None:
        with self._lock:
            self._uploads.append(upload)

    def snapshot(self) -> List[CompletedUpload]:
        """
        Copy of the log in completion order.
        """
        with self._lock:
            return list(self._uploads)

    def __len__(self) -> int:
        with self._lock:
            return len(self._uploads)


def _to_uploaded_file(upload: CompletedUpload) -> UploadedFile:
    return UploadedFile(
        name=upload.name,
        size=upload.size,
        uploaded_at=upload.uploaded_at,
        checksum=upload.checksum,
    )


def build_batches(uploads: Iterable[CompletedUpload]) -> List[UploadBatch]:
    """
    Group completed uploads by batch id.

    Members are ordered by upload time ascending; a batch's timestamp is that
    of its last member, and batches are returned most recent first. Sorting
    is stable, so equal timestamps keep completion order.

    Args:
        uploads: Completed uploads in completion order

    Returns:
        List of UploadBatch, newest first
    """
    grouped: Dict[str, List[CompletedUpload]] = {}
    for upload in uploads:
        grouped.setdefault(upload.batch_id, []).append(upload)

    batches = []
    for batch_id, members in grouped.items():
        members.sort(key=lambda u: u.uploaded_at)
        batches.append(
            UploadBatch(
                batch_id=batch_id,
                uploaded_at=members[-1].uploaded_at,
                files=[_to_uploaded_file(u) for u in members],
            )
        )

    batches.sort(key=lambda b: b.uploaded_at, reverse=True)
    return batches


def files_for_batch(uploads: Iterable[CompletedUpload], batch_id: str) -> List[UploadedFile]:
    """
    Members of one batch in upload order; empty if the batch is unknown.
    """
    members = [u for u in uploads if u.batch_id == batch_id]
    members.sort(key=lambda u: u.uploaded_at)
    return [_to_uploaded_file(u) for u in members]
