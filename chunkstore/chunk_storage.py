"""Manages chunk payload files for one in-flight transfer."""

import os
import shutil
from pathlib import Path
from typing import Iterator, List, Optional

from common.constants import STREAM_PIECE_SIZE_BYTES

PARTIAL_SUFFIX = ".part"


class ChunkStore:
    """
    Scratch directory holding the chunks received for a single transfer,
    keyed by chunk index. The owning transfer decides when it is created
    and destroyed; this class only does file I/O.
    """

    def __init__(self, root: Path):
        """
        Args:
            root: Directory exclusively owned by one transfer
        """
        self.root = Path(root)

    def create(self) -> None:
        """Ensure the chunk directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_chunk_path(self, index: int) -> Path:
        """
        Get file path for a chunk.

        Args:
            index: Zero-based chunk index

        Returns:
            Path object for chunk file
        """
        return self.root / f"chunk_{index}.tmp"

    def write_chunk(self, index: int, data: bytes) -> str:
        """
        Write chunk data to disk, replacing any previous payload for the index.

        The payload goes to a sibling ``.part`` file that is renamed over the
        chunk file once it is synced, so a failed write leaves the previous
        payload intact.

        Args:
            index: Zero-based chunk index
            data: Raw chunk bytes

        Returns:
            String path to written file

        Raises:
            OSError: If write operation fails
        """
        filepath = self.get_chunk_path(index)
        partial = filepath.with_name(filepath.name + PARTIAL_SUFFIX)
        try:
            with open(partial, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(partial, filepath)
        except OSError:
            try:
                partial.unlink()
            except FileNotFoundError:
                pass
            raise
        return str(filepath)

    def read_chunk_streaming(self, index: int, piece_size: int = STREAM_PIECE_SIZE_BYTES) -> Iterator[bytes]:
        """
        Stream chunk data in pieces.

        Args:
            index: Zero-based chunk index
            piece_size: Size of each piece in bytes (default 64KB)

        Yields:
            Chunk data pieces

        Raises:
            FileNotFoundError: If chunk does not exist
            OSError: If read operation fails
        """
        with open(self.get_chunk_path(index), 'rb') as f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def get_chunk_size(self, index: int) -> Optional[int]:
        """
        Get size of chunk file in bytes.

        Returns:
            Size in bytes, or None if chunk doesn't exist
        """
        filepath = self.get_chunk_path(index)
        if filepath.exists():
            return filepath.stat().st_size
        return None

    def list_chunk_indices(self) -> List[int]:
        """
        List the indices of all chunks present on disk.

        Returns:
            Sorted list of chunk indices
        """
        if not self.root.exists():
            return []

        indices = []
        for filepath in self.root.glob("chunk_*.tmp"):
            suffix = filepath.stem[len("chunk_"):]
            if suffix.isdigit():
                indices.append(int(suffix))
        return sorted(indices)

    def destroy(self) -> bool:
        """
        Delete the chunk directory and everything in it.

        Returns:
            True if the directory was deleted, False if it didn't exist
        """
        if not self.root.exists():
            return False
        shutil.rmtree(self.root)
        return True
