"""Payment link creation (proactive transaction creation).

A payment link is a Mercado Pago checkout preference. The pending
transaction stored next to it carries the same external reference, which
is how the webhook later finds it.
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from studio.models import (
    ErrorCode,
    PaymentStatus,
    PaymentTransaction,
    ProcessorEnvironment,
    Student,
    StudioError,
    TenantCredential,
    normalize_amount,
)
from studio.utils.logging import get_logger, log_payment_operation

from .credentials import ClientFactory, load_tenant_credential
from .students import get_student
from .transactions import PaymentTransactionRepository

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

CURRENCY_ID = "BRL"
STATEMENT_DESCRIPTOR = "FOTO FORMATURA"
LINK_VALIDITY = dt.timedelta(hours=24)
DEFAULT_TITLE = "Pacote Fotográfico"


class PaymentLinkResult(BaseModel):
    """A created payment link and its pending transaction."""

    transaction_id: str
    preference_id: str
    external_reference: str
    payment_link: str | None
    amount: Decimal
    expires_at: dt.datetime


def split_payer_name(full_name: str) -> tuple[str, str]:
    """Split a full name into first name and surname."""
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def build_external_reference(student_id: str, now: dt.datetime) -> str:
    """Reference in the ``student-<id>-<epoch millis>`` scheme."""
    return f"student-{student_id}-{int(now.timestamp() * 1000)}"


def build_preference(
    *,
    student: Student,
    title: str,
    amount: Decimal,
    external_reference: str,
    notification_url: str | None,
    back_urls: dict[str, str] | None,
    now: dt.datetime,
) -> dict[str, Any]:
    """Build the checkout preference body for one package purchase."""
    first_name, surname = split_payer_name(student.full_name)
    payer: dict[str, Any] = {"name": first_name, "surname": surname}
    if student.email:
        payer["email"] = student.email

    preference: dict[str, Any] = {
        "items": [
            {
                "id": f"photo-package-{int(now.timestamp() * 1000)}",
                "title": title,
                "description": f"Sessão fotográfica de formatura - {title}",
                "category_id": "services",
                "quantity": 1,
                "unit_price": float(amount),
                "currency_id": CURRENCY_ID,
            }
        ],
        "payer": payer,
        "external_reference": external_reference,
        "statement_descriptor": STATEMENT_DESCRIPTOR,
        "expires": True,
        "expiration_date_from": now.isoformat(),
        "expiration_date_to": (now + LINK_VALIDITY).isoformat(),
    }
    if notification_url:
        preference["notification_url"] = notification_url
    if back_urls:
        preference["back_urls"] = back_urls
        preference["auto_return"] = "approved"
    return preference


class PaymentLinkService:
    """Creates checkout links and the pending transactions behind them."""

    def __init__(self, db: "DynamoDBService", client_factory: ClientFactory) -> None:
        self.db = db
        self.client_factory = client_factory
        self.repository = PaymentTransactionRepository(db)

    def create_payment_link(
        self,
        tenant_id: str,
        student_id: str,
        amount: Decimal | float | str,
        title: str = DEFAULT_TITLE,
        notification_url: str | None = None,
        back_urls: dict[str, str] | None = None,
        now: dt.datetime | None = None,
    ) -> PaymentLinkResult:
        """Create a payment link for a student and record it as pending.

        Args:
            tenant_id: Tenant whose Mercado Pago account receives the payment
            student_id: Student paying
            amount: Package price
            title: Package name shown at checkout
            notification_url: Webhook URL the processor should notify
            back_urls: Optional success/failure/pending redirect URLs
            now: Creation time (defaults to the current time)

        Returns:
            PaymentLinkResult with the link and the new transaction ID

        Raises:
            StudioError: If the tenant has no credential or the student is
                unknown to that tenant
            MercadoPagoError: If the preference cannot be created
        """
        normalized = normalize_amount(amount)
        if normalized is None or normalized <= 0:
            raise ValueError(f"Invalid payment amount: {amount!r}")

        credential = load_tenant_credential(self.db, tenant_id)
        if credential is None:
            raise StudioError(ErrorCode.TENANT_NOT_CONFIGURED, details={"tenant_id": tenant_id})

        student = get_student(self.db, student_id)
        if student is None or (student.tenant_id and student.tenant_id != tenant_id):
            raise StudioError(ErrorCode.STUDENT_NOT_FOUND, details={"student_id": student_id})

        created_at = now or dt.datetime.now(dt.UTC)
        external_reference = build_external_reference(student_id, created_at)
        preference = build_preference(
            student=student,
            title=title,
            amount=normalized,
            external_reference=external_reference,
            notification_url=notification_url,
            back_urls=back_urls,
            now=created_at,
        )

        client = self.client_factory(credential)
        try:
            created = client.create_preference(
                preference,
                idempotency_key=f"pref-{uuid.uuid4().hex}",
            )
        finally:
            client.close()

        transaction = self.repository.create(
            PaymentTransaction(
                transaction_id=self.repository.generate_transaction_id(),
                tenant_id=tenant_id,
                student_id=student_id,
                external_reference=external_reference,
                preference_id=str(created.get("id")) if created.get("id") else None,
                amount=normalized,
                status=PaymentStatus.PENDING.value,
                payer_email=student.email,
                metadata={"package_name": title, "student_name": student.full_name},
                created_at=created_at,
            )
        )

        log_payment_operation(
            logger,
            "create_payment_link",
            transaction_id=transaction.transaction_id,
            tenant_id=tenant_id,
            status=transaction.status,
            external_reference=external_reference,
        )

        return PaymentLinkResult(
            transaction_id=transaction.transaction_id,
            preference_id=transaction.preference_id or "",
            external_reference=external_reference,
            payment_link=_checkout_url(created, credential),
            amount=normalized,
            expires_at=created_at + LINK_VALIDITY,
        )


def _checkout_url(preference: dict[str, Any], credential: TenantCredential) -> str | None:
    if credential.environment == ProcessorEnvironment.SANDBOX:
        return preference.get("sandbox_init_point") or preference.get("init_point")
    return preference.get("init_point") or preference.get("sandbox_init_point")
