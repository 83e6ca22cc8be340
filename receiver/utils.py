"""Utility helper functions for the receiver."""

import math
import secrets
import time
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional

from common.constants import SINGLE_BATCH_PREFIX, TRANSFER_ID_PREFIX
from receiver.exceptions import InvalidInputError


def generate_transfer_id() -> str:
    """
    Generate a transfer id unique within the process lifetime.

    Returns:
        String of the form ``trans_<epoch millis>_<8 hex chars>``
    """
    return f"{TRANSFER_ID_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def single_batch_id(transfer_id: str) -> str:
    return f"{SINGLE_BATCH_PREFIX}{transfer_id}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sanitize_filename(filename: str) -> str:
    """
    Reduce a client-supplied filename to a safe base name.

    Both ``/`` and ``\\`` count as separators; only the last component is
    kept.

    Args:
        filename: Name as sent by the client

    Returns:
        Base name safe to join onto the shared directory

    Raises:
        InvalidInputError: If nothing usable remains
    """
    if not isinstance(filename, str):
        raise InvalidInputError("filename must be a string")

    name = PurePosixPath(filename.replace("\\", "/")).name.strip()

    if not name or name in (".", "..") or "\x00" in name:
        raise InvalidInputError(f"Invalid filename: {filename!r}")
    return name


def validate_size(value, name: str, allow_zero: bool) -> int:
    """
    Validate a byte count supplied by a caller.

    Integral floats are accepted and converted; bools, NaN, infinities and
    fractional values are rejected.

    Raises:
        InvalidInputError: If the value is not an acceptable size
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be a number")

    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise InvalidInputError(f"{name} must be a finite whole number")
        value = int(value)

    if value < 0 or (value == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "greater than 0"
        raise InvalidInputError(f"{name} must be {bound}")
    return value


def compute_total_chunks(total_size: int, chunk_size: int) -> int:
    """ceil(total_size / chunk_size) in integer arithmetic."""
    return -(-total_size // chunk_size)


def normalize_batch_id(batch_id: Optional[str]) -> Optional[str]:
    """Blank batch ids are treated as absent."""
    if batch_id is None:
        return None
    batch_id = batch_id.strip()
    return batch_id or None
