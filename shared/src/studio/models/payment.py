"""Payment models: the local transaction record and the processor's view."""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, Field

from studio.utils.serialization import from_dynamodb_value, to_dynamodb_value

from .enums import PaymentStatus

_CENTS = Decimal("0.01")


def normalize_amount(value: Any) -> Decimal | None:
    """Normalise a money amount to a two-place Decimal.

    Amounts are compared for equality when correlating notifications, so
    500, 500.0 and "500.00" must all produce the same value.

    Returns:
        Quantized Decimal, or None if the value is missing or not numeric
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


def parse_timestamp(value: Any) -> dt.datetime | None:
    """Parse an ISO-8601 timestamp as sent by the processor."""
    if isinstance(value, dt.datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class PaymentDetail(BaseModel):
    """Typed projection of the processor's payment document.

    Built once from the GET /v1/payments/{id} response; business logic only
    reads these fields. The verbatim document is kept in ``raw`` for storage
    as ``webhook_data``.
    """

    id: str
    status: str
    status_detail: str | None = None
    transaction_amount: Decimal | None = None
    currency_id: str | None = None
    payment_method_id: str | None = None
    payment_type_id: str | None = None
    installments: int | None = None
    payer_email: str | None = None
    external_reference: str | None = None
    date_approved: dt.datetime | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_api(cls, document: dict[str, Any]) -> "PaymentDetail":
        """Project a raw payment document into a PaymentDetail."""
        payer = document.get("payer") or {}
        installments = document.get("installments")

        return cls(
            id=str(document.get("id", "")),
            status=_clean_str(document.get("status")) or "unknown",
            status_detail=_clean_str(document.get("status_detail")),
            transaction_amount=normalize_amount(document.get("transaction_amount")),
            currency_id=_clean_str(document.get("currency_id")),
            payment_method_id=_clean_str(document.get("payment_method_id")),
            payment_type_id=_clean_str(document.get("payment_type_id")),
            installments=installments if isinstance(installments, int) else None,
            payer_email=_clean_str(payer.get("email") if isinstance(payer, dict) else None),
            external_reference=_clean_str(document.get("external_reference")),
            date_approved=parse_timestamp(document.get("date_approved")),
            raw=document,
        )

    @property
    def is_approved(self) -> bool:
        return self.status == PaymentStatus.APPROVED.value


class PaymentTransaction(BaseModel):
    """The authoritative local record of one payment attempt.

    Amounts are two-place Decimals. ``status`` mirrors the processor's
    vocabulary and is never reinterpreted locally.
    """

    transaction_id: str = Field(..., description="Locally generated primary key")
    tenant_id: str | None = Field(default=None, description="Owning tenant")
    student_id: str | None = Field(
        default=None, description="Weak reference to the student, display only"
    )
    processor_payment_id: str | None = Field(
        default=None, description="Mercado Pago payment ID, known after first webhook"
    )
    external_reference: str | None = Field(
        default=None, description="Locally chosen correlation string"
    )
    preference_id: str | None = Field(
        default=None, description="Checkout preference that produced this payment"
    )
    amount: Decimal = Field(..., ge=0)
    status: str = Field(default=PaymentStatus.PENDING.value)
    payment_method: str | None = None
    payer_email: str | None = None
    payment_date: dt.datetime | None = Field(
        default=None, description="Set only when the payment is approved"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)
    webhook_data: dict[str, Any] | None = Field(
        default=None, description="Last payment document received, fully replaced"
    )
    created_at: dt.datetime
    updated_at: dt.datetime | None = None

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "PaymentTransaction":
        """Build a transaction from a DynamoDB item."""
        data = dict(item)
        data["metadata"] = from_dynamodb_value(data.get("metadata") or {})
        if data.get("webhook_data") is not None:
            data["webhook_data"] = from_dynamodb_value(data["webhook_data"])
        return cls.model_validate(data)

    def to_item(self) -> dict[str, Any]:
        """Render as a DynamoDB item.

        Empty attributes are omitted: GSI key attributes may not be NULL.
        """
        item: dict[str, Any] = {
            "transaction_id": self.transaction_id,
            "amount": normalize_amount(self.amount),
            "status": self.status,
            "metadata": to_dynamodb_value(self.metadata),
            "created_at": self.created_at.isoformat(),
        }
        optional: dict[str, Any] = {
            "tenant_id": self.tenant_id,
            "student_id": self.student_id,
            "processor_payment_id": self.processor_payment_id,
            "external_reference": self.external_reference,
            "preference_id": self.preference_id,
            "payment_method": self.payment_method,
            "payer_email": self.payer_email,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "webhook_data": (
                to_dynamodb_value(self.webhook_data)
                if self.webhook_data is not None
                else None
            ),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        item.update({key: value for key, value in optional.items() if value is not None})
        return item
