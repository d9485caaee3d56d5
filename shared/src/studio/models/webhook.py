"""Webhook notification, audit log and result models."""

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import WebhookLogStatus

PAYMENT_EVENT_TYPE = "payment"

# Tag stored on every audit record written by this integration
WEBHOOK_LOG_EVENT_TYPE = "mercadopago_payment"


class PaymentNotification(BaseModel):
    """Typed projection of the processor's notification envelope.

    Envelope shape: ``{"type": "payment", "action": "...", "data": {"id": ...}}``.
    Older IPN deliveries use ``topic`` instead of ``type``.
    """

    model_config = ConfigDict(frozen=True)

    event_type: str | None = None
    action: str | None = None
    payment_id: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "PaymentNotification":
        """Project a decoded JSON body; unknown shapes yield empty fields."""
        if not isinstance(payload, dict):
            return cls()

        data = payload.get("data")
        raw_id = data.get("id") if isinstance(data, dict) else None
        payment_id = None
        if raw_id is not None and not isinstance(raw_id, (bool, dict, list)):
            payment_id = str(raw_id).strip() or None

        event_type = payload.get("type") or payload.get("topic")
        action = payload.get("action")
        return cls(
            event_type=str(event_type) if event_type else None,
            action=str(action) if action else None,
            payment_id=payment_id,
        )

    @property
    def is_payment_event(self) -> bool:
        return self.event_type == PAYMENT_EVENT_TYPE


class WebhookLogEntry(BaseModel):
    """One inbound webhook call, as stored in the ``webhook-logs`` table."""

    log_id: str
    event_type: str = WEBHOOK_LOG_EVENT_TYPE
    payload: Any = None
    response: dict[str, Any] | None = None
    status: WebhookLogStatus = WebhookLogStatus.RECEIVED
    created_at: dt.datetime
    completed_at: dt.datetime | None = None


class WebhookResult(BaseModel):
    """HTTP outcome of one webhook invocation."""

    status_code: int = Field(..., ge=100, le=599)
    body: dict[str, Any]

    @property
    def succeeded(self) -> bool:
        return self.status_code < 400
