"""API routes and endpoints."""

from fastapi import APIRouter

from notico.server.api.folders import router as folders_router
from notico.server.api.health import router as health_router
from notico.server.api.items import router as items_router
from notico.server.api.sync import router as sync_router

# Main API router
api_router = APIRouter()

# Include sub-routers
api_router.include_router(health_router, tags=["health"])
api_router.include_router(items_router, tags=["items"])
api_router.include_router(folders_router, tags=["folders"])
api_router.include_router(sync_router, tags=["sync"])

__all__ = ["api_router"]
