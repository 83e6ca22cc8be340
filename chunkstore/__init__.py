"""Per-transfer chunk scratch storage and checksum helpers."""

from chunkstore.chunk_storage import ChunkStore
from chunkstore.checksum_validator import (
    IncrementalChecksumCalculator,
    compute_checksum,
    verify_checksum,
)

__all__ = [
    "ChunkStore",
    "IncrementalChecksumCalculator",
    "compute_checksum",
    "verify_checksum",
]
