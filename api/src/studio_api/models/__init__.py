"""API request/response models."""

from studio_api.models.payments import (
    ConnectionTestResponse,
    PaymentLinkRequest,
    PaymentLinkResponse,
    PaymentSyncResponse,
)

__all__ = [
    "ConnectionTestResponse",
    "PaymentLinkRequest",
    "PaymentLinkResponse",
    "PaymentSyncResponse",
]
