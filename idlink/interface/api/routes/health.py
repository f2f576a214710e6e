"""Health check routes."""

from datetime import datetime, timezone

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter
from pydantic import BaseModel

from idlink.config import Settings
from idlink.domain.service import ProviderRegistry
from idlink.domain.value import AuthProvider

router = APIRouter(tags=["health"], route_class=DishkaRoute)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    version: str
    environment: str
    providers: list[AuthProvider]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: FromDishka[Settings], provider_registry: FromDishka[ProviderRegistry]
) -> HealthResponse:
    """Basic health check endpoint.

    Returns:
        Health status and the providers this instance has credentials for
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version="0.1.0",
        environment=settings.environment,
        providers=provider_registry.enabled(),
    )
