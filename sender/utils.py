"""Utility functions for the sender."""

from pathlib import Path


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB")
    """
    size = float(size_bytes)
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"


def read_file_chunk(path: Path, index: int, chunk_size: int) -> bytes:
    """Read the ``index``-th ``chunk_size`` slice of a local file."""
    with open(path, 'rb') as f:
        f.seek(index * chunk_size)
        return f.read(chunk_size)
