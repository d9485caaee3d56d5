"""Enumeration types for studio data models."""

from enum import Enum


class PaymentStatus(str, Enum):
    """Payment statuses reported by the processor.

    The processor owns this vocabulary and may add values; transaction
    records store the status as a plain string. Only APPROVED changes
    local behaviour.
    """

    PENDING = "pending"
    APPROVED = "approved"
    AUTHORIZED = "authorized"
    IN_PROCESS = "in_process"
    IN_MEDIATION = "in_mediation"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    CHARGED_BACK = "charged_back"


class WebhookLogStatus(str, Enum):
    """Lifecycle of a webhook audit record."""

    RECEIVED = "received"
    SUCCESS = "success"
    FAILED = "failed"


class ProcessorEnvironment(str, Enum):
    """Mercado Pago credential environment."""

    SANDBOX = "sandbox"
    PRODUCTION = "production"


class ResolutionStrategy(str, Enum):
    """How a notification was matched to a local transaction."""

    PROCESSOR_PAYMENT_ID = "processor_payment_id"
    EXTERNAL_REFERENCE = "external_reference"
    PAYER_EMAIL_AMOUNT = "payer_email_amount"
    CREATED = "created"
