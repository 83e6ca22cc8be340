"""Shared data type definitions (TransferMetadata, CompletedUpload, UploadBatch, etc.)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class TransferMetadata:
    """
    Immutable description of one chunked upload, fixed at init time.
    """
    transfer_id: str
    filename: str
    total_size: int
    chunk_size: int
    total_chunks: int
    batch_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class ChunkInfo:
    """
    Bookkeeping for a single received chunk.
    """
    index: int
    size: int
    checksum: str


@dataclass(frozen=True)
class ChunkReceipt:
    """
    Result of accepting a chunk: progress so far.
    """
    transfer_id: str
    chunk_index: int
    received_count: int
    total_chunks: int


@dataclass(frozen=True)
class TransferStatus:
    """
    Point-in-time progress of an active transfer.
    """
    transfer_id: str
    filename: str
    status: str
    progress_percent: int
    received_chunks: int
    total_chunks: int


@dataclass(frozen=True)
class CompletedUpload:
    """
    Record appended to the upload log when a transfer completes.
    """
    transfer_id: str
    batch_id: str
    name: str
    size: int
    uploaded_at: datetime
    checksum: Optional[str] = None


@dataclass(frozen=True)
class UploadedFile:
    """
    Member of an upload batch as shown in listings.
    """
    name: str
    size: int
    uploaded_at: datetime
    checksum: Optional[str] = None


@dataclass(frozen=True)
class UploadBatch:
    """
    Completed uploads sharing a batch id.
    """
    batch_id: str
    uploaded_at: datetime
    files: List[UploadedFile] = field(default_factory=list)


@dataclass(frozen=True)
class SharedFile:
    """
    A file present in the shared directory.
    """
    name: str
    size: int
    modified_at: datetime
