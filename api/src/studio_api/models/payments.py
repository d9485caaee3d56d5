"""API models for payment link and operator endpoints.

Domain models (PaymentTransaction, PaymentLinkResult) live in studio.models
and studio.services; this module holds the HTTP request/response formats.
"""

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BackUrls(BaseModel):
    """Where the checkout redirects the payer afterwards."""

    success: str
    failure: str
    pending: str


class PaymentLinkRequest(BaseModel):
    """Request to create a payment link for a student."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "tenant_id": "tenant-01",
                    "student_id": "b7e1c2d4",
                    "amount": 500.00,
                    "title": "Pacote Ouro",
                }
            ]
        },
    )

    tenant_id: str = Field(..., min_length=1, description="Tenant receiving the payment")
    student_id: str = Field(..., min_length=1, description="Student paying")
    amount: float = Field(..., gt=0, description="Package price in BRL")
    title: str = Field(
        default="Pacote Fotográfico",
        min_length=1,
        max_length=256,
        description="Package name shown at checkout",
    )
    notification_url: str | None = Field(
        default=None,
        description="Webhook URL; defaults to this API's Mercado Pago webhook",
    )
    back_urls: BackUrls | None = None


class PaymentLinkResponse(BaseModel):
    """A created payment link."""

    transaction_id: str
    preference_id: str
    external_reference: str
    payment_link: str | None
    amount: float
    expires_at: dt.datetime


class ConnectionTestResponse(BaseModel):
    """Result of validating a tenant's Mercado Pago credential."""

    success: bool = True
    tenant_id: str
    environment: str
    payment_methods_count: int
    account_info: dict[str, Any] | None = None


class PaymentSyncResponse(BaseModel):
    """Result of a manual payment sync."""

    success: bool = True
    payment_id: str
    transaction_id: str
    status: str
    message: str
