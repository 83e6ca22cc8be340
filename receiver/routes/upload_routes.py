"""Routes for browsing and downloading what has been received."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response, StreamingResponse

from receiver.dependencies import get_transfer_manager
from receiver.exceptions import BatchNotFoundError
from receiver.schemas.common import ErrorResponse
from receiver.schemas.uploads import (
    SharedFileResponse,
    ListSharedFilesResponse,
    UploadedFileResponse,
    UploadBatchResponse,
    ListUploadBatchesResponse
)
from receiver.shared_files import build_batch_archive, list_shared_files, read_file_chunk
from receiver.transfer_manager import TransferManager

router = APIRouter(tags=["Uploads"], responses={404: {"model": ErrorResponse}})


@router.get("/files", response_model=ListSharedFilesResponse)
async def list_files(manager: TransferManager = Depends(get_transfer_manager)):
    """
    List files in the shared directory, most recently modified first.
    """
    files = list_shared_files(manager.shared_path)
    return ListSharedFilesResponse(
        files=[
            SharedFileResponse(name=f.name, size=f.size, modified_at=f.modified_at)
            for f in files
        ]
    )


@router.get("/uploads", response_model=ListUploadBatchesResponse)
async def list_uploads(manager: TransferManager = Depends(get_transfer_manager)):
    """
    List completed uploads grouped by batch, newest batch first.
    """
    batches = manager.list_upload_batches()
    return ListUploadBatchesResponse(
        batches=[
            UploadBatchResponse(
                batch_id=batch.batch_id,
                uploaded_at=batch.uploaded_at,
                files=[
                    UploadedFileResponse(
                        name=f.name,
                        size=f.size,
                        uploaded_at=f.uploaded_at,
                        checksum=f.checksum,
                    )
                    for f in batch.files
                ],
            )
            for batch in batches
        ]
    )


@router.get("/download/batch/{batch_id}")
async def download_batch(
    batch_id: str,
    manager: TransferManager = Depends(get_transfer_manager)
):
    """
    Download every file of a batch as a .tar.gz archive.

    Raises:
        - 404: No completed upload carries this batch id
    """
    files = manager.files_for_batch(batch_id)
    if not files:
        raise BatchNotFoundError(f"Batch not found: {batch_id}")

    archive = build_batch_archive(manager.shared_path, files)

    def iter_archive():
        try:
            while True:
                piece = archive.read(64 * 1024)
                if not piece:
                    break
                yield piece
        finally:
            archive.close()

    return StreamingResponse(
        iter_archive(),
        media_type="application/gzip",
        headers={"Content-Disposition": f'attachment; filename="upload-{quote(batch_id)}.tar.gz"'}
    )


@router.get("/download/chunk/{filename}")
async def download_chunk(
    filename: str,
    index: int = Query(..., description="Zero-based chunk index"),
    chunk_size: int = Query(..., description="Chunk size in bytes"),
    manager: TransferManager = Depends(get_transfer_manager)
):
    """
    Download one chunk of a stored file.

    Raises:
        - 400: Invalid index or chunk size
        - 404: File not found
    """
    data = read_file_chunk(manager.shared_path, filename, index, chunk_size)
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{quote(filename)}.part{index}"'}
    )
