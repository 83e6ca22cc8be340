"""Configuration settings for the sender client."""

import os
from common.constants import DEFAULT_RECEIVER_PORT


RECEIVER_BASE_URL = os.environ.get("RECEIVER_BASE_URL", f"http://127.0.0.1:{DEFAULT_RECEIVER_PORT}")

SENDER_TIMEOUT = float(os.environ.get("SENDER_TIMEOUT", "30"))

SENDER_MAX_RETRIES = int(os.environ.get("SENDER_MAX_RETRIES", "3"))

SENDER_RETRY_BACKOFF = float(os.environ.get("SENDER_RETRY_BACKOFF", "2"))
