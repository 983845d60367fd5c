"""HTTP API routers."""

from app.api.auth import router as auth_router
from app.api.upload import router as upload_router

__all__ = ["auth_router", "upload_router"]
