"""
app/api/routers package marker.
"""

from app.api.routers.admin import router as admin_router
from app.api.routers.kols import router as kols_router

__all__ = [
    "admin_router",
    "kols_router",
]
