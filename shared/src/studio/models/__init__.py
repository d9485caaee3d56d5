"""Pydantic models for the studio payment reconciliation service."""

from .enums import (
    PaymentStatus,
    ProcessorEnvironment,
    ResolutionStrategy,
    WebhookLogStatus,
)
from .errors import ERROR_HTTP_STATUS, ERROR_MESSAGES, ErrorCode, StudioError
from .payment import PaymentDetail, PaymentTransaction, normalize_amount, parse_timestamp
from .tenant import MessagingConfig, Student, TenantCredential
from .webhook import (
    PAYMENT_EVENT_TYPE,
    WEBHOOK_LOG_EVENT_TYPE,
    PaymentNotification,
    WebhookLogEntry,
    WebhookResult,
)

__all__ = [
    # Enums
    "PaymentStatus",
    "ProcessorEnvironment",
    "ResolutionStrategy",
    "WebhookLogStatus",
    # Errors
    "ERROR_HTTP_STATUS",
    "ERROR_MESSAGES",
    "ErrorCode",
    "StudioError",
    # Payment
    "PaymentDetail",
    "PaymentTransaction",
    "normalize_amount",
    "parse_timestamp",
    # Tenant
    "MessagingConfig",
    "Student",
    "TenantCredential",
    # Webhook
    "PAYMENT_EVENT_TYPE",
    "WEBHOOK_LOG_EVENT_TYPE",
    "PaymentNotification",
    "WebhookLogEntry",
    "WebhookResult",
]
