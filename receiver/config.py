"""Configuration settings for the receiver service."""

import os
from common.constants import (
    DEFAULT_IDLE_TIMEOUT_SECONDS,
    DEFAULT_RECEIVER_HOST,
    DEFAULT_RECEIVER_PORT,
    DEFAULT_SHARED_STORAGE_PATH,
    DEFAULT_SWEEP_INTERVAL_SECONDS,
    DEFAULT_TRANSFER_TEMP_PATH,
)


SHARED_STORAGE_PATH = os.environ.get("SHARED_STORAGE_PATH", DEFAULT_SHARED_STORAGE_PATH)

TRANSFER_TEMP_PATH = os.environ.get("TRANSFER_TEMP_PATH", DEFAULT_TRANSFER_TEMP_PATH)

RECEIVER_HOST = os.environ.get("RECEIVER_HOST", DEFAULT_RECEIVER_HOST)

RECEIVER_PORT = int(os.environ.get("RECEIVER_PORT", str(DEFAULT_RECEIVER_PORT)))

# 0 disables the idle-transfer sweeper
TRANSFER_IDLE_TIMEOUT_SECONDS = int(
    os.environ.get("TRANSFER_IDLE_TIMEOUT_SECONDS", str(DEFAULT_IDLE_TIMEOUT_SECONDS))
)

TRANSFER_SWEEP_INTERVAL_SECONDS = int(
    os.environ.get("TRANSFER_SWEEP_INTERVAL_SECONDS", str(DEFAULT_SWEEP_INTERVAL_SECONDS))
)
