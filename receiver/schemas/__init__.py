"""Pydantic schemas for API requests and responses."""

from receiver.schemas.transfer import (
    InitTransferRequest,
    InitTransferResponse,
    ChunkResponse,
    CompleteTransferRequest,
    CompleteTransferResponse,
    TransferStatusResponse,
    CancelTransferResponse
)
from receiver.schemas.uploads import (
    SharedFileResponse,
    ListSharedFilesResponse,
    UploadedFileResponse,
    UploadBatchResponse,
    ListUploadBatchesResponse
)
from receiver.schemas.common import ErrorResponse, HealthResponse

__all__ = [
    "InitTransferRequest",
    "InitTransferResponse",
    "ChunkResponse",
    "CompleteTransferRequest",
    "CompleteTransferResponse",
    "TransferStatusResponse",
    "CancelTransferResponse",
    "SharedFileResponse",
    "ListSharedFilesResponse",
    "UploadedFileResponse",
    "UploadBatchResponse",
    "ListUploadBatchesResponse",
    "ErrorResponse",
    "HealthResponse"
]
