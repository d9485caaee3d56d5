"""FastAPI application for the studio payment reconciliation API.

This package provides REST endpoints for:
- Health checks
- Mercado Pago payment notifications (webhook)
- Payment links, credential test and manual payment sync

Deployed to AWS Lambda behind API Gateway through Mangum.
"""

import datetime as dt
import logging
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from mangum import Mangum

from studio import __version__
from studio.config import get_settings
from studio.utils.logging import configure_logging
from studio_api.exceptions import register_exception_handlers
from studio_api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from studio_api.routes.health import router as health_router
from studio_api.routes.payments import router as payments_router
from studio_api.routes.webhooks import cors_preflight_response
from studio_api.routes.webhooks import router as webhooks_router

logger = logging.getLogger(__name__)
configure_logging(logging.INFO)

settings = get_settings()

app = FastAPI(
    title="Studio Payments API",
    description="Mercado Pago payment reconciliation for photography studios",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials="*" not in settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_ID_HEADER],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

# API Gateway forwards /api/* to this function
app.include_router(health_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
app.include_router(payments_router, prefix="/api")

# Webhook URLs registered with Mercado Pago before the /api prefix existed
app.include_router(webhooks_router, include_in_schema=False)


@app.options("/{full_path:path}", include_in_schema=False)
async def preflight(full_path: str) -> Response:
    """Answer any CORS preflight the middleware did not handle."""
    return cors_preflight_response()


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Liveness probe that skips dependency injection."""
    return {
        "status": "ok",
        "timestamp": dt.datetime.now(dt.UTC).isoformat(),
        "service": "studio-payments-api",
    }


# Lambda entry point
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Serve the app with uvicorn for local development."""
    import uvicorn

    if reload:
        uvicorn.run(
            "studio_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
