"""Backend services for studio payment reconciliation."""

from .credentials import CredentialMatch, load_tenant_credentials, resolve_credential
from .dynamodb import DynamoDBService, get_dynamodb_service
from .mercadopago_client import MercadoPagoClient, MercadoPagoError
from .notifications import NotificationOutcome, PaymentConfirmationNotifier
from .payment_links import PaymentLinkResult, PaymentLinkService
from .transaction_resolver import ResolvedTransaction, TransactionResolver
from .transactions import PaymentTransactionRepository
from .webhook_handler import PaymentWebhookHandler
from .webhook_log import WebhookLogService
from .whatsapp import EvolutionClient, EvolutionError, payment_phone_variants

__all__ = [
    "CredentialMatch",
    "load_tenant_credentials",
    "resolve_credential",
    "DynamoDBService",
    "get_dynamodb_service",
    "MercadoPagoClient",
    "MercadoPagoError",
    "NotificationOutcome",
    "PaymentConfirmationNotifier",
    "PaymentLinkResult",
    "PaymentLinkService",
    "ResolvedTransaction",
    "TransactionResolver",
    "PaymentTransactionRepository",
    "PaymentWebhookHandler",
    "WebhookLogService",
    "EvolutionClient",
    "EvolutionError",
    "payment_phone_variants",
]
