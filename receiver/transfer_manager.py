"""Owns every in-flight transfer and drives the init -> chunk -> complete life cycle."""

import asyncio
import os
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from chunkstore.checksum_validator import IncrementalChecksumCalculator, compute_checksum, verify_checksum
from chunkstore.chunk_storage import ChunkStore
from common.constants import STATUS_COMPLETED, STATUS_IN_PROGRESS
from common.logging_config import get_logger
from common.types import (
    ChunkInfo,
    ChunkReceipt,
    CompletedUpload,
    TransferMetadata,
    TransferStatus,
    UploadBatch,
    UploadedFile,
)
from receiver.batch_index import UploadLog, build_batches, files_for_batch
from receiver.exceptions import (
    ChecksumMismatchError,
    IncompleteTransferError,
    InvalidInputError,
    StorageFailureError,
    TransferNotFoundError,
)
from receiver.utils import (
    compute_total_chunks,
    generate_transfer_id,
    normalize_batch_id,
    sanitize_filename,
    single_batch_id,
    utc_now,
    validate_size,
)

logger = get_logger(__name__)


class TransferState:
    """
    Mutable state of one active transfer. Only the TransferManager touches
    it, and only while holding ``lock``.
    """

    def __init__(self, metadata: TransferMetadata, chunk_store: ChunkStore):
        self.metadata = metadata
        self.chunk_store = chunk_store
        self.received_chunks: Dict[int, ChunkInfo] = {}
        self.lock = asyncio.Lock()
        # Set once the transfer has been completed, cancelled or evicted.
        self.closed = False
        self.last_activity = time.monotonic()

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    @property
    def received_count(self) -> int:
        return len(self.received_chunks)

    def missing_chunks(self) -> List[int]:
        return [i for i in range(self.metadata.total_chunks) if i not in self.received_chunks]

    def progress_percent(self) -> int:
        if self.metadata.total_chunks == 0:
            return 0
        return self.received_count * 100 // self.metadata.total_chunks


class TransferManager:
    """
    Registry of active transfers plus the upload log of finished ones.

    The active map is guarded by one lock and each transfer by its own, so
    chunks for different transfers never wait on each other. The only state
    lock taken while the map lock is held is that of a transfer still being
    registered, which nobody else can hold.
    """

    def __init__(self, shared_path, temp_path, upload_log: Optional[UploadLog] = None):
        """
        Args:
            shared_path: Directory that receives reassembled files
            temp_path: Root for per-transfer chunk directories
            upload_log: Log of completed uploads (a fresh one if None)
        """
        self.shared_path = Path(shared_path)
        self.temp_path = Path(temp_path)
        self.upload_log = upload_log if upload_log is not None else UploadLog()
        self._transfers: Dict[str, TransferState] = {}
        self._lock = asyncio.Lock()

    async def init_transfer(
        self,
        filename: str,
        total_size,
        chunk_size,
        batch_id: Optional[str] = None,
    ) -> TransferMetadata:
        """
        Register a new transfer and allocate its chunk directory.

        Args:
            filename: Client-supplied name, reduced to a base name
            total_size: Declared file length in bytes (>= 0)
            chunk_size: Declared chunk length in bytes (> 0)
            batch_id: Optional grouping key for the batch view

        Returns:
            TransferMetadata with the new transfer id and chunk count

        Raises:
            InvalidInputError: If any argument is invalid
            StorageFailureError: If the chunk directory cannot be created
        """
        name = sanitize_filename(filename)
        total_size = validate_size(total_size, "total_size", allow_zero=True)
        chunk_size = validate_size(chunk_size, "chunk_size", allow_zero=False)
        if batch_id is not None and not isinstance(batch_id, str):
            raise InvalidInputError("batch_id must be a string")

        loop = asyncio.get_running_loop()
        async with self._lock:
            transfer_id = generate_transfer_id()
            while transfer_id in self._transfers:
                transfer_id = generate_transfer_id()

            metadata = TransferMetadata(
                transfer_id=transfer_id,
                filename=name,
                total_size=total_size,
                chunk_size=chunk_size,
                total_chunks=compute_total_chunks(total_size, chunk_size),
                batch_id=normalize_batch_id(batch_id),
                created_at=utc_now(),
            )
            state = TransferState(metadata, ChunkStore(self.temp_path / transfer_id))
            # Nobody else can see this lock yet, so acquiring it never waits.
            await state.lock.acquire()
            self._transfers[transfer_id] = state

        try:
            await loop.run_in_executor(None, state.chunk_store.create)
        except OSError as e:
            state.closed = True
            async with self._lock:
                self._transfers.pop(transfer_id, None)
            logger.error(f"Cannot create chunk directory {state.chunk_store.root}: {e}")
            raise StorageFailureError(f"Cannot allocate storage for transfer: {e}") from e
        finally:
            state.lock.release()

        logger.info(
            f"Initialized transfer {transfer_id} for {name} "
            f"({total_size} bytes, {metadata.total_chunks} chunks of {chunk_size})"
        )
        return metadata

    async def accept_chunk(self, transfer_id: str, chunk_index, payload: bytes) -> ChunkReceipt:
        """
        Store one chunk. Re-sending an index replaces the earlier payload and
        does not change the received count.

        Raises:
            TransferNotFoundError: If the transfer is not active
            InvalidInputError: If chunk_index is outside [0, total_chunks)
            StorageFailureError: If the chunk cannot be written
        """
        return await self._store_chunk(transfer_id, chunk_index, payload, None)

    async def accept_verified_chunk(
        self,
        transfer_id: str,
        chunk_index,
        payload: bytes,
        expected_checksum: str,
    ) -> ChunkReceipt:
        """
        Like accept_chunk, but the payload must hash to ``expected_checksum``
        (SHA-256 hex) or nothing is stored.

        Raises:
            ChecksumMismatchError: If the payload does not match
        """
        if not isinstance(expected_checksum, str) or not expected_checksum.strip():
            raise InvalidInputError("expected_checksum must be a non-empty string")
        return await self._store_chunk(transfer_id, chunk_index, payload, expected_checksum)

    async def _store_chunk(
        self,
        transfer_id: str,
        chunk_index,
        payload: bytes,
        expected_checksum: Optional[str],
    ) -> ChunkReceipt:
        state = await self._get_state(transfer_id)
        index = self._validate_chunk_index(state, chunk_index)
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise InvalidInputError("chunk payload must be bytes")
        payload = bytes(payload)

        loop = asyncio.get_running_loop()
        async with state.lock:
            if state.closed:
                raise TransferNotFoundError(f"Transfer not found: {transfer_id}")

            try:
                checksum = await loop.run_in_executor(
                    None, _hash_and_write, state.chunk_store, index, payload, expected_checksum
                )
            except OSError as e:
                logger.error(f"Failed to write chunk {index} for transfer {transfer_id}: {e}")
                raise StorageFailureError(f"Failed to store chunk {index}: {e}") from e

            info = ChunkInfo(index=index, size=len(payload), checksum=checksum)
            state.received_chunks[index] = info
            state.touch()
            received = state.received_count

        logger.debug(
            f"Received chunk {index} for transfer {transfer_id} "
            f"({info.size} bytes, hash {info.checksum[:16]}, {received}/{state.metadata.total_chunks})"
        )
        return ChunkReceipt(
            transfer_id=transfer_id,
            chunk_index=index,
            received_count=received,
            total_chunks=state.metadata.total_chunks,
        )

    async def complete_transfer(self, transfer_id: str) -> CompletedUpload:
        """
        Concatenate all chunks in index order into the shared directory, drop
        the transfer and record the upload.

        If the filesystem fails part way, the partial destination is removed
        and the transfer stays active so completion can be retried.

        Raises:
            TransferNotFoundError: If the transfer is not active
            IncompleteTransferError: If any chunk index is missing
            StorageFailureError: If reassembly fails
        """
        state = await self._get_state(transfer_id)
        metadata = state.metadata
        loop = asyncio.get_running_loop()

        async with state.lock:
            if state.closed:
                raise TransferNotFoundError(f"Transfer not found: {transfer_id}")

            if state.received_count != metadata.total_chunks:
                missing = state.missing_chunks()
                raise IncompleteTransferError(
                    f"Transfer {transfer_id} is missing {len(missing)} of "
                    f"{metadata.total_chunks} chunks",
                    missing_chunks=missing,
                )

            try:
                damaged = await loop.run_in_executor(
                    None, _find_damaged_chunks, state.chunk_store, dict(state.received_chunks)
                )
            except OSError as e:
                logger.error(f"Cannot inspect chunks of transfer {transfer_id}: {e}")
                raise StorageFailureError(f"Cannot read chunks for {metadata.filename}: {e}") from e

            if damaged:
                for index in damaged:
                    state.received_chunks.pop(index, None)
                logger.warning(
                    f"Transfer {transfer_id} has {len(damaged)} chunk(s) missing or truncated "
                    f"on disk: {damaged}"
                )
                raise IncompleteTransferError(
                    f"Transfer {transfer_id} must re-send {len(damaged)} damaged chunk(s)",
                    missing_chunks=state.missing_chunks(),
                )

            destination = self.shared_path / metadata.filename
            try:
                checksum, written = await loop.run_in_executor(
                    None, _assemble, state.chunk_store, metadata.total_chunks, destination
                )
            except OSError as e:
                logger.error(f"Failed to reassemble transfer {transfer_id} into {destination}: {e}")
                raise StorageFailureError(f"Failed to write {metadata.filename}: {e}") from e

            state.closed = True
            _discard_chunk_store(state.chunk_store, transfer_id)
            async with self._lock:
                self._transfers.pop(transfer_id, None)

        upload = CompletedUpload(
            transfer_id=transfer_id,
            batch_id=metadata.batch_id or single_batch_id(transfer_id),
            name=metadata.filename,
            size=metadata.total_size,
            uploaded_at=utc_now(),
            checksum=checksum,
        )
        self.upload_log.append(upload)

        logger.info(
            f"Transfer {transfer_id} completed. File: {metadata.filename} "
            f"({written} bytes written, hash {checksum[:16]}, batch {upload.batch_id})"
        )
        return upload

    async def get_transfer_status(self, transfer_id: str) -> TransferStatus:
        """
        Progress of an active transfer. Completed transfers are no longer
        active, so this raises TransferNotFoundError for them.
        """
        state = await self._get_state(transfer_id)
        received = state.received_count
        total = state.metadata.total_chunks
        return TransferStatus(
            transfer_id=transfer_id,
            filename=state.metadata.filename,
            status=STATUS_COMPLETED if received == total else STATUS_IN_PROGRESS,
            progress_percent=state.progress_percent(),
            received_chunks=received,
            total_chunks=total,
        )

    async def cancel_transfer(self, transfer_id: str) -> None:
        """
        Abandon an active transfer and delete its chunks.

        Raises:
            TransferNotFoundError: If the transfer is not active
        """
        state = await self._get_state(transfer_id)
        async with state.lock:
            if state.closed:
                raise TransferNotFoundError(f"Transfer not found: {transfer_id}")
            state.closed = True
            async with self._lock:
                self._transfers.pop(transfer_id, None)
            _discard_chunk_store(state.chunk_store, transfer_id)

        logger.info(f"Cancelled transfer: {transfer_id}")

    async def evict_idle_transfers(self, max_idle_seconds: float) -> List[str]:
        """
        Drop transfers with no activity for at least ``max_idle_seconds``
        and delete their chunk directories.

        Returns:
            Ids of the evicted transfers
        """
        async with self._lock:
            candidates = list(self._transfers.items())

        evicted = []
        for transfer_id, state in candidates:
            async with state.lock:
                if state.closed:
                    continue
                if time.monotonic() - state.last_activity < max_idle_seconds:
                    continue
                state.closed = True
                async with self._lock:
                    self._transfers.pop(transfer_id, None)
                _discard_chunk_store(state.chunk_store, transfer_id)
            evicted.append(transfer_id)
            logger.info(
                f"Evicted idle transfer {transfer_id} ({state.metadata.filename}, "
                f"{state.received_count}/{state.metadata.total_chunks} chunks)"
            )
        return evicted

    async def active_transfer_ids(self) -> List[str]:
        async with self._lock:
            return list(self._transfers)

    def list_upload_batches(self) -> List[UploadBatch]:
        return build_batches(self.upload_log.snapshot())

    def files_for_batch(self, batch_id: str) -> List[UploadedFile]:
        return files_for_batch(self.upload_log.snapshot(), batch_id)

    async def _get_state(self, transfer_id: str) -> TransferState:
        async with self._lock:
            state = self._transfers.get(transfer_id)
        if state is None:
            raise TransferNotFoundError(f"Transfer not found: {transfer_id}")
        return state

    @staticmethod
    def _validate_chunk_index(state: TransferState, chunk_index) -> int:
        if isinstance(chunk_index, bool) or not isinstance(chunk_index, int):
            raise InvalidInputError("chunk_index must be an integer")
        total = state.metadata.total_chunks
        if chunk_index < 0 or chunk_index >= total:
            raise InvalidInputError(
                f"chunk_index {chunk_index} out of range for transfer with {total} chunks"
            )
        return chunk_index


def _hash_and_write(chunk_store: ChunkStore, index: int, payload: bytes, expected_checksum: Optional[str]) -> str:
    checksum = compute_checksum(payload)
    if expected_checksum is not None and not verify_checksum(payload, expected_checksum):
        raise ChecksumMismatchError(
            f"Chunk {index} checksum mismatch: expected {expected_checksum}, got {checksum}"
        )
    chunk_store.write_chunk(index, payload)
    return checksum


def _find_damaged_chunks(chunk_store: ChunkStore, received: Dict[int, ChunkInfo]) -> List[int]:
    """Recorded indices whose chunk file is gone or has a different size."""
    on_disk = set(chunk_store.list_chunk_indices())
    return [
        index for index, info in sorted(received.items())
        if index not in on_disk or chunk_store.get_chunk_size(index) != info.size
    ]


def _assemble(chunk_store: ChunkStore, total_chunks: int, destination: Path) -> Tuple[str, int]:
    """
    Stream chunks 0..total_chunks-1 into ``destination``; peak memory is one
    stream piece. Returns the SHA-256 of the written file and its length.

    A destination that could not be opened is left alone, since it may be an
    earlier upload of the same name.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    calculator = IncrementalChecksumCalculator()
    out = open(destination, 'wb')
    try:
        with out:
            for index in range(total_chunks):
                for piece in chunk_store.read_chunk_streaming(index):
                    out.write(piece)
                    calculator.update(piece)
            out.flush()
            os.fsync(out.fileno())
    except OSError:
        try:
            destination.unlink()
        except FileNotFoundError:
            pass
        raise
    return calculator.finalize(), calculator.bytes_processed


def _discard_chunk_store(chunk_store: ChunkStore, transfer_id: str) -> None:
    try:
        chunk_store.destroy()
    except OSError as e:
        logger.warning(f"Could not delete chunk directory for transfer {transfer_id}: {e}")
