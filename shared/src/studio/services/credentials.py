"""Credential resolution: find the tenant whose account owns a payment.

Notifications carry no tenant hint, so each configured credential is probed
in turn with GET /v1/payments/{id}. A payment belongs to exactly one
processor account, so the first credential that can read it wins.
"""

import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from studio.config import Settings
from studio.models import ErrorCode, PaymentDetail, StudioError, TenantCredential
from studio.utils.logging import get_logger

from .mercadopago_client import MercadoPagoClient, MercadoPagoError

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

TENANT_SETTINGS_TABLE = "tenant-settings"

ClientFactory = Callable[[TenantCredential], MercadoPagoClient]


class CredentialMatch(BaseModel):
    """The tenant that can read a payment, plus the payment it read."""

    tenant: TenantCredential
    detail: PaymentDetail

    @property
    def tenant_id(self) -> str:
        return self.tenant.tenant_id


def make_client_factory(settings: Settings) -> ClientFactory:
    """Build a factory producing clients configured from settings."""

    def factory(credential: TenantCredential) -> MercadoPagoClient:
        return MercadoPagoClient(
            credential.access_token,
            base_url=settings.processor_base_url,
            timeout=settings.processor_timeout_seconds,
        )

    return factory


def load_tenant_credentials(db: "DynamoDBService") -> list[TenantCredential]:
    """Load every tenant that has a Mercado Pago access token.

    Called once per invocation; the result is passed explicitly to
    resolve_credential.

    Returns:
        Credentials ordered by tenant ID
    """
    credentials = []
    for item in db.scan(TENANT_SETTINGS_TABLE):
        credential = TenantCredential.from_settings_item(item)
        if credential is not None:
            credentials.append(credential)

    credentials.sort(key=lambda c: c.tenant_id)
    logger.info("Loaded %d tenant credential(s)", len(credentials))
    return credentials


def load_tenant_credential(
    db: "DynamoDBService",
    tenant_id: str,
) -> TenantCredential | None:
    """Load a single tenant's credential, or None if it has none."""
    item = db.get_item(TENANT_SETTINGS_TABLE, {"tenant_id": tenant_id})
    if not item:
        return None
    return TenantCredential.from_settings_item(item)


def fetch_payment_detail(
    payment_id: str,
    credential: TenantCredential,
    client_factory: ClientFactory,
) -> PaymentDetail:
    """Read one payment with one credential.

    Raises:
        MercadoPagoError: If the credential cannot read the payment
    """
    client = client_factory(credential)
    try:
        document = client.get_payment(payment_id)
    finally:
        client.close()
    return PaymentDetail.from_api(document)


def resolve_credential(
    payment_id: str,
    credentials: Sequence[TenantCredential],
    client_factory: ClientFactory,
    *,
    budget_seconds: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> CredentialMatch | None:
    """Find the first credential that can read the payment.

    Args:
        payment_id: Processor payment ID from the notification
        credentials: Candidate tenant credentials, in probe order
        client_factory: Builds a client for a credential
        budget_seconds: Stop probing once this much time has elapsed
        clock: Monotonic clock (injectable for tests)

    Returns:
        The matching tenant and payment detail, or None if no credential
        could read the payment
    """
    started = clock()

    for attempt, credential in enumerate(credentials, start=1):
        if budget_seconds is not None and clock() - started >= budget_seconds:
            logger.warning(
                "Credential probe budget of %.1fs exhausted for payment %s "
                "after %d of %d tenant(s)",
                budget_seconds,
                payment_id,
                attempt - 1,
                len(credentials),
            )
            return None

        try:
            detail = fetch_payment_detail(payment_id, credential, client_factory)
        except MercadoPagoError as e:
            if e.is_not_accessible:
                logger.info(
                    "Payment %s not readable by tenant %s (status %s)",
                    payment_id,
                    credential.tenant_id,
                    e.status_code,
                )
            else:
                logger.warning(
                    "Probe of payment %s with tenant %s failed: %s",
                    payment_id,
                    credential.tenant_id,
                    e,
                )
            continue

        logger.info("Payment %s belongs to tenant %s", payment_id, credential.tenant_id)
        return CredentialMatch(tenant=credential, detail=detail)

    return None


def check_tenant_connection(
    db: "DynamoDBService",
    tenant_id: str,
    client_factory: ClientFactory,
) -> dict[str, Any]:
    """Validate a tenant's stored credential against the processor.

    Returns:
        The client's connection report plus ``tenant_id`` and ``environment``

    Raises:
        StudioError: If the tenant has no credential
        MercadoPagoError: If the processor rejects the credential
    """
    credential = load_tenant_credential(db, tenant_id)
    if credential is None:
        raise StudioError(ErrorCode.TENANT_NOT_CONFIGURED, details={"tenant_id": tenant_id})

    client = client_factory(credential)
    try:
        report = client.test_connection()
    finally:
        client.close()

    logger.info(
        "Credential for tenant %s is valid (%s)",
        tenant_id,
        credential.environment.value,
    )
    return {
        "tenant_id": tenant_id,
        "environment": credential.environment.value,
        **report,
    }
