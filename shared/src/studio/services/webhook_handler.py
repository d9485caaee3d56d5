"""Webhook handler for Mercado Pago payment notifications.

Provides the business logic of the webhook separate from HTTP routing, so
the pipeline can be unit tested without a server and reused by the manual
sync endpoint:

    ingress -> credential resolution -> transaction resolution
            -> state application -> confirmation dispatch

Every call is recorded in the webhook log on receipt and completed with the
outcome. Stage failures become 4xx responses so the processor's redelivery
can react; a failed confirmation message never changes the response.
"""

import json
from typing import TYPE_CHECKING, Any

from studio.config import Settings
from studio.models import (
    ErrorCode,
    PaymentDetail,
    PaymentNotification,
    PaymentStatus,
    StudioError,
    TenantCredential,
    WebhookLogStatus,
    WebhookResult,
)
from studio.utils.logging import get_logger, log_webhook_event

from .credentials import (
    ClientFactory,
    fetch_payment_detail,
    load_tenant_credential,
    load_tenant_credentials,
    make_client_factory,
    resolve_credential,
)
from .mercadopago_client import MercadoPagoError
from .notifications import MessengerFactory, NotificationOutcome, PaymentConfirmationNotifier
from .reconciliation import apply_payment_state
from .transaction_resolver import TransactionResolver
from .transactions import PaymentTransactionRepository
from .webhook_log import WebhookLogService

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

SUCCESS_MESSAGE = "Payment processed successfully"


class PaymentWebhookHandler:
    """Runs the reconciliation pipeline for one notification.

    Holds no state between invocations; tenant credentials are loaded on
    every call.
    """

    def __init__(
        self,
        db: "DynamoDBService",
        settings: Settings,
        *,
        client_factory: ClientFactory | None = None,
        messenger_factory: MessengerFactory | None = None,
    ) -> None:
        self._db = db
        self.settings = settings
        self.client_factory = client_factory or make_client_factory(settings)
        self.repository = PaymentTransactionRepository(db)
        self.resolver = TransactionResolver(self.repository, db)
        self.notifier = PaymentConfirmationNotifier(db, settings, messenger_factory)
        self.webhook_log = WebhookLogService(db)

    def handle(self, body: bytes) -> WebhookResult:
        """Handle one inbound webhook body.

        Args:
            body: Raw request body

        Returns:
            Status code and JSON body to send back to the processor
        """
        payload, is_json = self._decode(body)
        log_id: str | None = None
        notification: NotificationOutcome | None = None

        try:
            log_id = self.webhook_log.record_received(payload).log_id
            result, notification = self._process(payload, is_json)
        except StudioError as e:
            result = WebhookResult(status_code=e.status_code, body=e.to_body())
        except Exception as e:
            logger.exception("Unhandled error while processing webhook: %s", e)
            error = StudioError(ErrorCode.INTERNAL, details={"details": str(e)})
            result = WebhookResult(status_code=error.status_code, body=error.to_body())

        self._complete_log(log_id, result, notification)
        return result

    def sync_payment(self, tenant_id: str, payment_id: str) -> WebhookResult:
        """Reconcile one payment for a known tenant (operator tool).

        Runs the same resolution, state application and dispatch as the
        webhook, skipping credential probing.

        Raises:
            StudioError: If the tenant has no credential, the payment cannot
                be read, or no transaction can be resolved
        """
        credential = load_tenant_credential(self._db, tenant_id)
        if credential is None:
            raise StudioError(ErrorCode.TENANT_NOT_CONFIGURED, details={"tenant_id": tenant_id})

        try:
            detail = fetch_payment_detail(payment_id, credential, self.client_factory)
        except MercadoPagoError as e:
            if e.is_not_accessible:
                raise StudioError(
                    ErrorCode.PAYMENT_NOT_FOUND,
                    details={"payment_id": payment_id},
                ) from e
            raise StudioError(
                ErrorCode.PROCESSOR_API_ERROR,
                details={"payment_id": payment_id, "details": str(e)},
            ) from e

        result, _ = self._reconcile(detail, credential)
        return result

    @staticmethod
    def _decode(body: bytes) -> tuple[Any, bool]:
        try:
            return json.loads(body), True
        except ValueError:
            return {"raw": body.decode("utf-8", errors="replace")}, False

    def _process(
        self,
        payload: Any,
        is_json: bool,
    ) -> tuple[WebhookResult, NotificationOutcome | None]:
        if not is_json:
            raise StudioError(ErrorCode.INVALID_JSON)

        notification = PaymentNotification.from_payload(payload)
        log_webhook_event(
            logger,
            notification.event_type or "unknown",
            notification.payment_id,
            result="received",
            action=notification.action,
        )

        if not notification.payment_id:
            raise StudioError(ErrorCode.INVALID_WEBHOOK)

        if not notification.is_payment_event:
            log_webhook_event(
                logger,
                notification.event_type or "unknown",
                notification.payment_id,
                result="ignored",
            )
            return (
                WebhookResult(
                    status_code=200,
                    body={
                        "message": "Event ignored: only payment notifications are processed",
                        "type": notification.event_type,
                    },
                ),
                None,
            )

        payment_id = notification.payment_id
        credentials = load_tenant_credentials(self._db)
        if not credentials:
            raise StudioError(ErrorCode.NO_PROCESSOR_ACCOUNTS, details={"payment_id": payment_id})

        match = resolve_credential(
            payment_id,
            credentials,
            self.client_factory,
            budget_seconds=self.settings.credential_probe_budget_seconds,
        )
        if match is None:
            raise StudioError(ErrorCode.PAYMENT_NOT_FOUND, details={"payment_id": payment_id})

        return self._reconcile(match.detail, match.tenant)

    def _reconcile(
        self,
        detail: PaymentDetail,
        tenant: TenantCredential,
    ) -> tuple[WebhookResult, NotificationOutcome | None]:
        resolved = self.resolver.resolve(detail, tenant.tenant_id)
        previous_status = resolved.transaction.status
        transaction = apply_payment_state(self.repository, resolved.transaction, detail)

        notification = None
        became_approved = resolved.created or previous_status != PaymentStatus.APPROVED.value
        if detail.is_approved and became_approved:
            notification = self.notifier.notify_approved(transaction, detail, tenant.messaging)

        log_webhook_event(
            logger,
            "payment",
            detail.id,
            transaction_id=transaction.transaction_id,
            result="success",
            strategy=resolved.strategy.value,
            status=detail.status,
        )
        return (
            WebhookResult(
                status_code=200,
                body={
                    "success": True,
                    "payment_id": detail.id,
                    "transaction_id": transaction.transaction_id,
                    "status": transaction.status,
                    "message": SUCCESS_MESSAGE,
                },
            ),
            notification,
        )

    def _complete_log(
        self,
        log_id: str | None,
        result: WebhookResult,
        notification: NotificationOutcome | None,
    ) -> None:
        if log_id is None:
            return

        response: dict[str, Any] = {"status_code": result.status_code, **result.body}
        if notification is not None:
            response["notification"] = notification.model_dump()

        status = WebhookLogStatus.SUCCESS if result.succeeded else WebhookLogStatus.FAILED
        try:
            self.webhook_log.record_outcome(log_id, status, response)
        except Exception as e:
            logger.error("Failed to record outcome for webhook log %s: %s", log_id, e)
