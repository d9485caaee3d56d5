"""FastAPI dependency injection providers for shared services.

Services are lazily instantiated and cached with @lru_cache so a warm
Lambda container reuses them across invocations. None of them hold
per-request state.

Usage in routes:
    from studio_api.dependencies import get_webhook_handler

    @router.post("/webhooks/mercadopago")
    async def receive(
        handler: PaymentWebhookHandler = Depends(get_webhook_handler),
    ):
        ...

Service Dependency Graph:
    Settings (get_settings)
    DynamoDBService (singleton via get_dynamodb_service)
        ├── PaymentWebhookHandler
        └── PaymentLinkService

Testing:
    Use reset_services() to clear cached instances between tests, or
    override the providers with app.dependency_overrides.
"""

from functools import lru_cache

from studio.config import Settings, get_settings
from studio.services.credentials import ClientFactory, make_client_factory
from studio.services.dynamodb import get_dynamodb_service
from studio.services.payment_links import PaymentLinkService
from studio.services.webhook_handler import PaymentWebhookHandler


def get_app_settings() -> Settings:
    """Get the cached Settings instance."""
    return get_settings()


def get_client_factory() -> ClientFactory:
    """Get a Mercado Pago client factory configured from settings."""
    return make_client_factory(get_settings())


@lru_cache
def get_webhook_handler() -> PaymentWebhookHandler:
    """Get cached PaymentWebhookHandler instance.

    Returns:
        PaymentWebhookHandler configured with DynamoDB singleton and settings.
    """
    return PaymentWebhookHandler(db=get_dynamodb_service(), settings=get_settings())


@lru_cache
def get_payment_link_service() -> PaymentLinkService:
    """Get cached PaymentLinkService instance.

    Returns:
        PaymentLinkService configured with DynamoDB singleton.
    """
    return PaymentLinkService(
        db=get_dynamodb_service(),
        client_factory=get_client_factory(),
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the settings cache and the underlying DynamoDB singleton.
    """
    from studio.services.dynamodb import reset_dynamodb_service

    get_webhook_handler.cache_clear()
    get_payment_link_service.cache_clear()
    get_settings.cache_clear()

    reset_dynamodb_service()
