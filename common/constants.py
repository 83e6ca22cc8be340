"""Project-wide constants (chunk sizes, default paths, ports, timeouts)."""

import tempfile
from pathlib import Path

DEFAULT_CHUNK_SIZE_BYTES: int = 1024 * 1024  # 1 MiB, matches the web uploader
STREAM_PIECE_SIZE_BYTES: int = 64 * 1024

DEFAULT_SHARED_STORAGE_PATH = "./shared"
DEFAULT_TRANSFER_TEMP_PATH = str(Path(tempfile.gettempdir()) / "linkshare-chunks")

DEFAULT_RECEIVER_HOST = "0.0.0.0"
DEFAULT_RECEIVER_PORT = 3030

TRANSFER_ID_PREFIX = "trans_"
SINGLE_BATCH_PREFIX = "single_"
BATCH_ID_PREFIX = "batch_"

DEFAULT_IDLE_TIMEOUT_SECONDS = 3600
DEFAULT_SWEEP_INTERVAL_SECONDS = 300

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
