"""API routers."""

from marketplace.routers.admin import router as admin_router
from marketplace.routers.auth import router as auth_router

__all__ = ["auth_router", "admin_router"]
