"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from deployhub import __version__
from deployhub.api.deps import ConsoleDep

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    environment: str
    strategy: str
    timestamp: datetime
    running_deployments: int
    channels: int
    observers: int


@router.get("/health", response_model=HealthResponse)
async def health_check(console: ConsoleDep) -> HealthResponse:
    """Check API health status."""
    stats = console.registry.get_stats()
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=console.settings.app_env,
        strategy="provider" if console.settings.vercel_deploy_real else "simulated",
        timestamp=datetime.now(timezone.utc),
        running_deployments=console.running,
        channels=stats["channels"],
        observers=stats["observers"],
    )
