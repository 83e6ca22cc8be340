"""HTTP client that uploads files to a receiver with the chunked transfer protocol."""

import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import httpx

from chunkstore.checksum_validator import compute_checksum
from common.constants import BATCH_ID_PREFIX, DEFAULT_CHUNK_SIZE_BYTES
from common.logging_config import get_logger
from sender.config import RECEIVER_BASE_URL, SENDER_MAX_RETRIES, SENDER_RETRY_BACKOFF, SENDER_TIMEOUT
from sender.utils import format_file_size, read_file_chunk

logger = get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]


class TransferClientError(Exception):
    """
    Raised when the receiver rejects a request or cannot be reached.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


@dataclass(frozen=True)
class SendResult:
    """Outcome of one successfully sent file."""
    transfer_id: str
    filename: str
    size: int
    total_chunks: int
    batch_id: str


def generate_batch_id() -> str:
    return f"{BATCH_ID_PREFIX}{int(time.time() * 1000)}"


class TransferClient:
    """HTTP client for the receiver API with retry logic and error handling."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_backoff_multiplier: Optional[float] = None,
        session: Optional[httpx.Client] = None,
    ):
        """
        Initialize transfer client.

        Args:
            base_url: Receiver URL (RECEIVER_BASE_URL if None)
            timeout: Request timeout in seconds
            max_retries: Retries for 5xx responses and network errors
            retry_backoff_multiplier: Base of the exponential backoff
            session: Pre-built httpx.Client to use instead of creating one
        """
        self.base_url = base_url or RECEIVER_BASE_URL
        self.max_retries = SENDER_MAX_RETRIES if max_retries is None else max_retries
        self.retry_backoff_multiplier = (
            SENDER_RETRY_BACKOFF if retry_backoff_multiplier is None else retry_backoff_multiplier
        )
        self._owns_session = session is None
        self.session = session or httpx.Client(
            base_url=self.base_url,
            timeout=timeout or SENDER_TIMEOUT
        )
        self.request_id = None
        logger.info(f"Initialized TransferClient [base_url={self.base_url}]")

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _request_with_retry(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object (4xx responses are returned, not retried)

        Raises:
            TransferClientError: If the receiver cannot be reached after all retries
        """
        self.request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        last_exception = None
        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.request(method, endpoint, headers=headers, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self.retry_backoff_multiplier ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{self.max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s "
                        f"[request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue
                break

            if response.status_code >= 500 and attempt < self.max_retries:
                delay = self.retry_backoff_multiplier ** attempt
                logger.warning(
                    f"Server error (attempt {attempt + 1}/{self.max_retries + 1}): "
                    f"{method} {endpoint} status={response.status_code}, retrying in {delay}s "
                    f"[request_id={self.request_id}]"
                )
                time.sleep(delay)
                continue

            return response

        logger.error(
            f"Network error (max retries exceeded): {method} {endpoint} error={last_exception} "
            f"[request_id={self.request_id}]"
        )
        raise TransferClientError(f"Cannot reach receiver at {self.base_url}: {last_exception}")

    def _call(self, method: str, endpoint: str, **kwargs) -> dict:
        response = self._request_with_retry(method, endpoint, **kwargs)
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            detail = body.get("detail", response.text) if isinstance(body, dict) else response.text
            code = body.get("code") if isinstance(body, dict) else None
            raise TransferClientError(
                f"{method} {endpoint} failed ({response.status_code}): {detail}",
                status_code=response.status_code,
                code=code,
            )
        return response.json()

    def init_transfer(self, filename: str, total_size: int, chunk_size: int,
                      batch_id: Optional[str] = None) -> dict:
        payload = {"filename": filename, "total_size": total_size, "chunk_size": chunk_size}
        if batch_id is not None:
            payload["batch_id"] = batch_id
        return self._call("POST", "/transfer/init", json=payload)

    def send_chunk(self, transfer_id: str, chunk_index: int, data: bytes,
                   checksum: Optional[str] = None) -> dict:
        form = {"transfer_id": transfer_id, "chunk_index": str(chunk_index)}
        if checksum:
            form["checksum"] = checksum
        return self._call(
            "POST",
            "/transfer/chunk",
            data=form,
            files={"chunk": (f"chunk_{chunk_index}", data, "application/octet-stream")},
        )

    def complete_transfer(self, transfer_id: str) -> dict:
        return self._call("POST", "/transfer/complete", json={"transfer_id": transfer_id})

    def get_status(self, transfer_id: str) -> dict:
        return self._call("GET", f"/transfer/{transfer_id}/status")

    def cancel_transfer(self, transfer_id: str) -> dict:
        return self._call("DELETE", f"/transfer/{transfer_id}")

    def list_uploads(self) -> List[dict]:
        return self._call("GET", "/uploads")["batches"]

    def send_file(
        self,
        path: Path,
        chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES,
        batch_id: Optional[str] = None,
        chunk_order: Optional[Sequence[int]] = None,
        verify: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SendResult:
        """
        Upload one file: init, every chunk, complete.

        Args:
            path: Local file to send
            chunk_size: Chunk length in bytes
            batch_id: Batch to file the upload under
            chunk_order: Permutation of chunk indices to send in (ascending if None)
            verify: Send each chunk's SHA-256 so the receiver checks it
            on_progress: Called with (filename, received_count, total_chunks) after each chunk

        Returns:
            SendResult for the completed transfer

        Raises:
            TransferClientError: If any step is rejected; the transfer is cancelled
            ValueError: If chunk_order is not a permutation of the chunk indices
        """
        path = Path(path)
        size = path.stat().st_size
        init = self.init_transfer(path.name, size, chunk_size, batch_id)
        transfer_id = init["transfer_id"]
        total_chunks = init["total_chunks"]

        order = list(range(total_chunks)) if chunk_order is None else list(chunk_order)
        if sorted(order) != list(range(total_chunks)):
            self._abandon(transfer_id)
            raise ValueError(f"chunk_order must be a permutation of range({total_chunks})")

        logger.info(
            f"Sending {path.name} ({format_file_size(size)}, {total_chunks} chunks) "
            f"[transfer_id={transfer_id}]"
        )

        try:
            for index in order:
                data = read_file_chunk(path, index, chunk_size)
                checksum = compute_checksum(data) if verify else None
                receipt = self.send_chunk(transfer_id, index, data, checksum)
                if on_progress:
                    on_progress(path.name, receipt["received_count"], receipt["total_chunks"])

            done = self.complete_transfer(transfer_id)
        except TransferClientError:
            self._abandon(transfer_id)
            raise

        logger.info(f"Sent {done['filename']} [transfer_id={transfer_id}]")
        return SendResult(
            transfer_id=transfer_id,
            filename=done["filename"],
            size=done["size"],
            total_chunks=total_chunks,
            batch_id=done["batch_id"],
        )

    def send_files(
        self,
        paths: Sequence[Path],
        chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES,
        batch_id: Optional[str] = None,
        verify: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[SendResult]:
        """
        Upload several files as one batch, one after another.
        """
        batch_id = batch_id or generate_batch_id()
        results = []
        for path in paths:
            results.append(
                self.send_file(path, chunk_size=chunk_size, batch_id=batch_id,
                               verify=verify, on_progress=on_progress)
            )
        logger.info(f"Batch {batch_id} complete ({len(results)} file(s))")
        return results

    def _abandon(self, transfer_id: str) -> None:
        try:
            self.cancel_transfer(transfer_id)
        except TransferClientError as e:
            logger.warning(f"Could not cancel transfer {transfer_id}: {e}")
