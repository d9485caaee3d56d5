"""Payment endpoints used by the studio application.

Provides REST endpoints for:
- Creating a Mercado Pago payment link for a student
- Validating a tenant's Mercado Pago credential
- Manually re-syncing one payment (operator debug tool)
"""

from fastapi import APIRouter, Depends, Request
from starlette.status import HTTP_201_CREATED

from studio.services.credentials import ClientFactory, check_tenant_connection
from studio.services.dynamodb import get_dynamodb_service
from studio.services.payment_links import PaymentLinkService
from studio.services.webhook_handler import PaymentWebhookHandler
from studio_api.dependencies import (
    get_client_factory,
    get_payment_link_service,
    get_webhook_handler,
)
from studio_api.models.payments import (
    ConnectionTestResponse,
    PaymentLinkRequest,
    PaymentLinkResponse,
    PaymentSyncResponse,
)

router = APIRouter(tags=["payments"])

WEBHOOK_PATH = "/api/webhooks/mercadopago"


@router.post(
    "/payment-links",
    summary="Create payment link",
    description="""
Create a Mercado Pago checkout link for a student's package and record a
`pending` transaction for it.

The transaction's external reference (`student-<id>-<millis>`) is sent to
Mercado Pago with the preference, so the payment notification can be
matched back to it. The link expires after 24 hours.
""",
    response_model=PaymentLinkResponse,
    status_code=HTTP_201_CREATED,
    responses={
        201: {"description": "Payment link created"},
        400: {"description": "Tenant has no Mercado Pago credential"},
        404: {"description": "Student not found"},
        502: {"description": "Mercado Pago rejected the preference"},
    },
)
def create_payment_link(
    body: PaymentLinkRequest,
    request: Request,
    service: PaymentLinkService = Depends(get_payment_link_service),
) -> PaymentLinkResponse:
    """Create a payment link and its pending transaction."""
    notification_url = body.notification_url or (
        str(request.base_url).rstrip("/") + WEBHOOK_PATH
    )
    result = service.create_payment_link(
        tenant_id=body.tenant_id,
        student_id=body.student_id,
        amount=str(body.amount),
        title=body.title,
        notification_url=notification_url,
        back_urls=body.back_urls.model_dump() if body.back_urls else None,
    )
    return PaymentLinkResponse(
        transaction_id=result.transaction_id,
        preference_id=result.preference_id,
        external_reference=result.external_reference,
        payment_link=result.payment_link,
        amount=float(result.amount),
        expires_at=result.expires_at,
    )


@router.post(
    "/tenants/{tenant_id}/mercadopago/test-connection",
    summary="Test Mercado Pago credential",
    description="""
Validate the tenant's stored access token by listing payment methods, and
report the account profile when it can be read.
""",
    response_model=ConnectionTestResponse,
    responses={
        400: {"description": "Tenant has no Mercado Pago credential"},
        502: {"description": "Mercado Pago rejected the credential"},
    },
)
def check_mercadopago_connection(
    tenant_id: str,
    client_factory: ClientFactory = Depends(get_client_factory),
) -> ConnectionTestResponse:
    """Check a tenant's Mercado Pago credential."""
    report = check_tenant_connection(get_dynamodb_service(), tenant_id, client_factory)
    return ConnectionTestResponse(**report)


@router.post(
    "/tenants/{tenant_id}/payments/{payment_id}/sync",
    summary="Sync payment from Mercado Pago",
    description="""
Operator tool: read the payment with the tenant's credential and run the
same transaction resolution, status update and confirmation as the webhook.
""",
    response_model=PaymentSyncResponse,
    responses={
        400: {"description": "Tenant has no Mercado Pago credential"},
        404: {"description": "Payment or transaction not found"},
        502: {"description": "Mercado Pago request failed"},
    },
)
def sync_payment(
    tenant_id: str,
    payment_id: str,
    handler: PaymentWebhookHandler = Depends(get_webhook_handler),
) -> PaymentSyncResponse:
    """Reconcile one payment on demand."""
    result = handler.sync_payment(tenant_id, payment_id)
    return PaymentSyncResponse(**result.body)
