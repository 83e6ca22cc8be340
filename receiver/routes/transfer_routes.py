"""Chunked transfer API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from common.constants import STATUS_CANCELLED, STATUS_COMPLETED
from receiver.dependencies import get_transfer_manager
from receiver.schemas.common import ErrorResponse
from receiver.schemas.transfer import (
    InitTransferRequest,
    InitTransferResponse,
    ChunkResponse,
    CompleteTransferRequest,
    CompleteTransferResponse,
    TransferStatusResponse,
    CancelTransferResponse
)
from receiver.transfer_manager import TransferManager

router = APIRouter(
    prefix="/transfer",
    tags=["Transfer"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.post("/init", response_model=InitTransferResponse)
async def init_transfer(
    request: InitTransferRequest,
    manager: TransferManager = Depends(get_transfer_manager)
):
    """
    Start a chunked upload.

    Parameters:
        - filename: Name to store the file under (reduced to a base name)
        - total_size: File length in bytes
        - chunk_size: Length of every chunk but the last, in bytes
        - batch_id: Optional key grouping several files into one batch

    Returns:
        - transfer_id: Id to use for the chunk, complete and status calls
        - total_chunks: Number of chunks expected

    Raises:
        - 400: Invalid filename, size or chunk size
        - 500: Chunk storage could not be allocated
    """
    metadata = await manager.init_transfer(
        filename=request.filename,
        total_size=request.total_size,
        chunk_size=request.chunk_size,
        batch_id=request.batch_id,
    )
    return InitTransferResponse(
        transfer_id=metadata.transfer_id,
        total_chunks=metadata.total_chunks,
    )


@router.post("/chunk", response_model=ChunkResponse)
async def receive_chunk(
    transfer_id: str = Form(...),
    chunk_index: int = Form(...),
    chunk: UploadFile = File(...),
    checksum: Optional[str] = Form(None),
    manager: TransferManager = Depends(get_transfer_manager)
):
    """
    Upload one chunk (multipart/form-data). Chunks may arrive in any order
    and re-sending an index replaces it.

    Parameters:
        - transfer_id: Id returned by /transfer/init
        - chunk_index: Zero-based chunk index
        - chunk: Chunk bytes
        - checksum: Optional SHA-256 hex digest the chunk must match

    Raises:
        - 400: Index out of range, or checksum mismatch
        - 404: Unknown transfer
        - 500: Chunk could not be written
    """
    payload = await chunk.read()

    if checksum:
        receipt = await manager.accept_verified_chunk(transfer_id, chunk_index, payload, checksum)
    else:
        receipt = await manager.accept_chunk(transfer_id, chunk_index, payload)

    return ChunkResponse(
        transfer_id=receipt.transfer_id,
        chunk_index=receipt.chunk_index,
        received_count=receipt.received_count,
        total_chunks=receipt.total_chunks,
    )


@router.post("/complete", response_model=CompleteTransferResponse)
async def complete_transfer(
    request: CompleteTransferRequest,
    manager: TransferManager = Depends(get_transfer_manager)
):
    """
    Reassemble the file once every chunk has arrived. This response, not a
    later status poll, is the completion signal: completed transfers are
    no longer tracked.

    Raises:
        - 400: Chunks are missing
        - 404: Unknown transfer
        - 500: Reassembly failed
    """
    upload = await manager.complete_transfer(request.transfer_id)
    return CompleteTransferResponse(
        transfer_id=upload.transfer_id,
        filename=upload.name,
        status=STATUS_COMPLETED,
        batch_id=upload.batch_id,
        size=upload.size,
    )


@router.get("/{transfer_id}/status", response_model=TransferStatusResponse)
async def get_status(
    transfer_id: str,
    manager: TransferManager = Depends(get_transfer_manager)
):
    """
    Progress of an active transfer.

    Raises:
        - 404: Unknown (or already completed) transfer
    """
    status = await manager.get_transfer_status(transfer_id)
    return TransferStatusResponse(
        transfer_id=status.transfer_id,
        filename=status.filename,
        status=status.status,
        progress_percent=status.progress_percent,
        received_chunks=status.received_chunks,
        total_chunks=status.total_chunks,
    )


@router.delete("/{transfer_id}", response_model=CancelTransferResponse)
async def cancel_transfer(
    transfer_id: str,
    manager: TransferManager = Depends(get_transfer_manager)
):
    """
    Abandon an active transfer and discard its chunks.

    Raises:
        - 404: Unknown transfer
    """
    await manager.cancel_transfer(transfer_id)
    return CancelTransferResponse(transfer_id=transfer_id, status=STATUS_CANCELLED)
