"""Pydantic schemas for the chunked transfer endpoints."""

from typing import Optional
from pydantic import BaseModel


class InitTransferRequest(BaseModel):
    """Request model for starting a transfer."""
    filename: str
    total_size: int
    chunk_size: int
    batch_id: Optional[str] = None


class InitTransferResponse(BaseModel):
    """Response model for a started transfer."""
    transfer_id: str
    total_chunks: int


class ChunkResponse(BaseModel):
    """Response model for an accepted chunk."""
    transfer_id: str
    chunk_index: int
    received_count: int
    total_chunks: int


class CompleteTransferRequest(BaseModel):
    """Request model for completing a transfer."""
    transfer_id: str


class CompleteTransferResponse(BaseModel):
    """Response model for a completed transfer."""
    transfer_id: str
    filename: str
    status: str
    batch_id: str
    size: int


class TransferStatusResponse(BaseModel):
    """Response model for transfer progress."""
    transfer_id: str
    filename: str
    status: str
    progress_percent: int
    received_chunks: int
    total_chunks: int


class CancelTransferResponse(BaseModel):
    """Response model for a cancelled transfer."""
    transfer_id: str
    status: str
