"""Health check endpoint.

Learn: No dependencies to check. The relay is healthy while the
process is up. Reports how many clients are connected right now.
"""

from fastapi import APIRouter, Depends

from wsrelay import __version__
from wsrelay.config import Settings
from wsrelay.dependencies import get_registry, get_settings
from wsrelay.realtime.registry import ConnectionRegistry
from wsrelay.schemas.relay import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    registry: ConnectionRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
):
    """Report service name, version and connected client count."""
    return HealthResponse(
        service=settings.service_name,
        version=__version__,
        clients=registry.size(),
    )
