"""Pydantic schemas for listing shared files and upload batches."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class SharedFileResponse(BaseModel):
    name: str
    size: int
    modified_at: datetime


class ListSharedFilesResponse(BaseModel):
    """Response model for the shared directory listing."""
    files: List[SharedFileResponse]


class UploadedFileResponse(BaseModel):
    name: str
    size: int
    uploaded_at: datetime
    checksum: Optional[str] = None


class UploadBatchResponse(BaseModel):
    """One batch of completed uploads, members oldest first."""
    batch_id: str
    uploaded_at: datetime
    files: List[UploadedFileResponse]


class ListUploadBatchesResponse(BaseModel):
    """Response model for the batch listing, newest batch first."""
    batches: List[UploadBatchResponse]
