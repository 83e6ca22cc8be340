"""API routes package."""

from receiver.routes.transfer_routes import router as transfer_router
from receiver.routes.upload_routes import router as upload_router

__all__ = ["transfer_router", "upload_router"]
