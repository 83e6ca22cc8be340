"""Entry point for the receiver service."""

import time
import uuid
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from receiver.cleanup_task import IdleTransferSweeper
from receiver.config import (
    RECEIVER_HOST,
    RECEIVER_PORT,
    SHARED_STORAGE_PATH,
    TRANSFER_IDLE_TIMEOUT_SECONDS,
    TRANSFER_SWEEP_INTERVAL_SECONDS,
    TRANSFER_TEMP_PATH,
)
from receiver.exceptions import (
    TransferException,
    InvalidInputError,
    TransferNotFoundError,
    IncompleteTransferError,
    StorageFailureError,
    ChecksumMismatchError,
    BatchNotFoundError,
    SharedFileNotFoundError
)
from receiver.routes.transfer_routes import router as transfer_router
from receiver.routes.upload_routes import router as upload_router
from receiver.schemas.common import HealthResponse
from receiver.transfer_manager import TransferManager

logger = setup_logging('receiver')


def create_app(
    shared_path: Optional[str] = None,
    temp_path: Optional[str] = None,
    idle_timeout_seconds: Optional[float] = None,
    sweep_interval_seconds: Optional[float] = None,
) -> FastAPI:
    """
    Build the receiver application with its own TransferManager.

    Args:
        shared_path: Directory for reassembled files (SHARED_STORAGE_PATH if None)
        temp_path: Root for chunk scratch directories (TRANSFER_TEMP_PATH if None)
        idle_timeout_seconds: Evict transfers idle this long; <= 0 disables
        sweep_interval_seconds: Time between idle sweeps

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="LinkShare Receiver",
        description="Chunked file transfer receiver for local network sharing",
        version="1.0.0"
    )

    manager = TransferManager(
        shared_path=Path(shared_path or SHARED_STORAGE_PATH),
        temp_path=Path(temp_path or TRANSFER_TEMP_PATH),
    )
    sweeper = IdleTransferSweeper(
        manager,
        idle_timeout_seconds=(
            TRANSFER_IDLE_TIMEOUT_SECONDS if idle_timeout_seconds is None else idle_timeout_seconds
        ),
        interval_seconds=(
            TRANSFER_SWEEP_INTERVAL_SECONDS if sweep_interval_seconds is None else sweep_interval_seconds
        ),
    )
    app.state.transfer_manager = manager
    app.state.sweeper = sweeper

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
        )

        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )

        response.headers["X-Request-ID"] = request_id

        return response

    @app.on_event("startup")
    async def startup_event():
        """
        Create storage directories and start the idle sweeper.
        """
        logger.info("Receiver service starting up...")
        manager.shared_path.mkdir(parents=True, exist_ok=True)
        manager.temp_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Shared directory: {manager.shared_path.resolve()}")
        logger.info(f"Chunk scratch directory: {manager.temp_path.resolve()}")

        await sweeper.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Receiver service shutting down...")
        await sweeper.stop()

    _register_exception_handlers(app)

    app.include_router(transfer_router)
    app.include_router(upload_router)

    @app.get("/")
    async def root():
        """
        Root endpoint for health check.
        """
        return {"message": "LinkShare Receiver API", "status": "running"}

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """
        Health check endpoint. Returns 200 if service is alive.
        """
        return HealthResponse(status="healthy", service="receiver")

    return app


def _error_response(request: Request, exc: Exception, status_code: int, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    if status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=exc
        )
    else:
        logger.warning(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
        )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code}
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_INPUT")

    @app.exception_handler(TransferNotFoundError)
    async def transfer_not_found_handler(request: Request, exc: TransferNotFoundError):
        return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "TRANSFER_NOT_FOUND")

    @app.exception_handler(IncompleteTransferError)
    async def incomplete_transfer_handler(request: Request, exc: IncompleteTransferError):
        response = _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INCOMPLETE_TRANSFER")
        response.headers["X-Missing-Chunks"] = str(len(exc.missing_chunks))
        return response

    @app.exception_handler(ChecksumMismatchError)
    async def checksum_mismatch_handler(request: Request, exc: ChecksumMismatchError):
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "CHECKSUM_MISMATCH")

    @app.exception_handler(BatchNotFoundError)
    async def batch_not_found_handler(request: Request, exc: BatchNotFoundError):
        return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "BATCH_NOT_FOUND")

    @app.exception_handler(SharedFileNotFoundError)
    async def file_not_found_handler(request: Request, exc: SharedFileNotFoundError):
        return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "FILE_NOT_FOUND")

    @app.exception_handler(StorageFailureError)
    async def storage_failure_handler(request: Request, exc: StorageFailureError):
        return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "STORAGE_FAILURE")

    @app.exception_handler(TransferException)
    async def transfer_exception_handler(request: Request, exc: TransferException):
        return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")


app = create_app()


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "receiver.main:app",
        host=RECEIVER_HOST,
        port=RECEIVER_PORT,
    )


if __name__ == "__main__":
    main()
