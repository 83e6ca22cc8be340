"""SHA-256 digests for chunk payloads and reassembled files.

Digests are advisory: they are recorded and logged, and only the explicitly
verified chunk path compares them against a caller-supplied value.
"""

import hashlib


def compute_checksum(data: bytes) -> str:
    """
    Compute SHA-256 checksum for given data.

    Args:
        data: Bytes to compute checksum for

    Returns:
        Lowercase hexadecimal SHA-256 digest
    """
    return hashlib.sha256(data).hexdigest()


def verify_checksum(data: bytes, expected: str) -> bool:
    """
    Check data against an expected hex digest (case-insensitive).
    """
    return compute_checksum(data) == expected.strip().lower()


class IncrementalChecksumCalculator:
    """
    SHA-256 over data that arrives in pieces, e.g. while chunks are
    concatenated into the destination file.

    Usage:
        calculator = IncrementalChecksumCalculator()
        calculator.update(piece1)
        calculator.update(piece2)
        digest = calculator.finalize()
    """

    def __init__(self):
        self._hasher = hashlib.sha256()
        self._finalized = False
        self.bytes_processed = 0

    def update(self, data: bytes) -> None:
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)
        self.bytes_processed += len(data)

    def finalize(self) -> str:
        self._finalized = True
        return self._hasher.hexdigest()
