"""Health check endpoints."""

from fastapi import APIRouter

from notico import __version__
from notico.server.schemas.common import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns current service status and version information. Devices poll this
    to detect offline-to-online transitions.
    """
    return HealthResponse(status="healthy", version=__version__)
