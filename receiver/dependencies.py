"""FastAPI dependencies that hand the app's TransferManager to routes."""

from fastapi import Request

from receiver.transfer_manager import TransferManager


def get_transfer_manager(request: Request) -> TransferManager:
    """
    Return the TransferManager owned by the running app.
    """
    return request.app.state.transfer_manager
