"""Sending side of the chunked transfer protocol."""

from sender.transfer_client import SendResult, TransferClient, TransferClientError

__all__ = ["SendResult", "TransferClient", "TransferClientError"]
