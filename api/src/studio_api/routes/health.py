"""Health check endpoints."""

import datetime as dt
from typing import Any

from fastapi import APIRouter, Depends

from studio import __version__
from studio.config import Settings
from studio_api.dependencies import get_app_settings

router = APIRouter(tags=["health"])


@router.get("/health", summary="Service health")
async def health(settings: Settings = Depends(get_app_settings)) -> dict[str, Any]:
    """Liveness check; does not touch DynamoDB or Mercado Pago."""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": __version__,
        "timestamp": dt.datetime.now(dt.UTC).isoformat(),
    }
