"""Webhook endpoint for Mercado Pago payment notifications.

These endpoints do NOT require authentication: Mercado Pago calls them
directly. The response status is part of the delivery contract: any 2xx
acknowledges the notification, anything else makes Mercado Pago redeliver
it later.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_200_OK

from studio.services.webhook_handler import PaymentWebhookHandler
from studio.utils.logging import get_logger
from studio_api.dependencies import get_webhook_handler

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


# === Response Models ===


class WebhookSuccessResponse(BaseModel):
    """Payment reconciled."""

    success: bool = True
    payment_id: str
    transaction_id: str
    status: str
    message: str


class WebhookErrorResponse(BaseModel):
    """Error body; extra diagnostic fields depend on the failure."""

    error: str
    payment_id: str | None = None


def cors_preflight_response() -> Response:
    """Empty 200 carrying only the CORS headers."""
    return Response(status_code=HTTP_200_OK, headers=CORS_HEADERS)


@router.options("/webhooks/mercadopago", include_in_schema=False)
async def mercadopago_webhook_preflight() -> Response:
    return cors_preflight_response()


@router.post(
    "/webhooks/mercadopago",
    summary="Receive Mercado Pago payment notifications",
    description="""
Endpoint for Mercado Pago notifications (`{"type": "payment", "data": {"id": ...}}`).

The payment is read back from Mercado Pago with each configured tenant
credential until one can see it, matched to a local transaction (processor
payment ID, external reference, then payer email + amount), and its status
is copied onto that transaction. Approved payments trigger a best-effort
WhatsApp confirmation to the student.

**No authentication required.**

**Idempotent**: redelivering a notification leaves the transaction unchanged.
""",
    responses={
        200: {
            "description": "Payment reconciled, or event ignored",
            "model": WebhookSuccessResponse,
        },
        400: {
            "description": "Malformed notification or no processor account configured",
            "model": WebhookErrorResponse,
        },
        404: {
            "description": "Payment or transaction could not be resolved",
            "model": WebhookErrorResponse,
        },
        500: {"description": "Unexpected failure", "model": WebhookErrorResponse},
    },
)
async def receive_mercadopago_webhook(
    request: Request,
    handler: PaymentWebhookHandler = Depends(get_webhook_handler),
) -> JSONResponse:
    """Run the reconciliation pipeline for one notification."""
    body = await request.body()
    result = await run_in_threadpool(handler.handle, body)

    return JSONResponse(
        status_code=result.status_code,
        content=jsonable_encoder(result.body),
        headers=CORS_HEADERS,
    )
