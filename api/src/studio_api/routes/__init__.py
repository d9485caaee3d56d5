"""API routes package.

Routers are organized by domain:

- health: Health check endpoints
- webhooks: Mercado Pago payment notifications
- payments: Payment links, credential test, manual sync

All routers are registered in main.py with /api prefix; the webhook router
is also mounted at the root.
"""

from studio_api.routes.health import router as health_router
from studio_api.routes.payments import router as payments_router
from studio_api.routes.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "payments_router",
    "webhooks_router",
]
