"""Payment confirmation messages sent after an approval.

Dispatch is best-effort: every failure is logged and reported in the
returned outcome, never raised. The payment state has already been
persisted by the time this runs.
"""

import datetime as dt
from collections.abc import Callable
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel

from studio.config import Settings
from studio.models import MessagingConfig, PaymentDetail, PaymentTransaction, Student
from studio.utils.logging import get_logger

from .students import get_student
from .whatsapp import EvolutionClient, payment_phone_variants, send_until_success

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

MessengerFactory = Callable[[MessagingConfig], EvolutionClient]

PAYMENT_METHOD_LABELS = {
    "pix": "PIX",
    "credit_card": "Cartão de Crédito",
    "debit_card": "Cartão de Débito",
    "ticket": "Boleto",
    "bank_transfer": "Transferência",
    "account_money": "Saldo Mercado Pago",
}


class NotificationOutcome(BaseModel):
    """What happened to a confirmation message."""

    sent: bool = False
    number: str | None = None
    attempts: int = 0
    reason: str | None = None


def format_brl(amount: Decimal | None) -> str:
    """Format an amount as Brazilian reais, e.g. ``R$ 1.234,50``."""
    if amount is None:
        return "R$ —"
    text = f"{amount:,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


def payment_method_label(detail: PaymentDetail) -> str:
    for key in (detail.payment_method_id, detail.payment_type_id):
        if key and key in PAYMENT_METHOD_LABELS:
            return PAYMENT_METHOD_LABELS[key]
    return detail.payment_method_id or detail.payment_type_id or "—"


def build_confirmation_message(
    student: Student,
    detail: PaymentDetail,
    now: dt.datetime | None = None,
) -> str:
    """Render the confirmation text sent to the student."""
    moment = detail.date_approved or now or dt.datetime.now(dt.UTC)
    lines = [
        "*PAGAMENTO CONFIRMADO!*",
        "",
        f"Olá {student.full_name or 'formando(a)'}!",
        "",
        "Confirmamos o recebimento do seu pagamento.",
        "",
        "*DETALHES:*",
        f"• Valor: {format_brl(detail.transaction_amount)}",
        f"• Método: {payment_method_label(detail)}",
        f"• Data: {moment.strftime('%d/%m/%Y às %H:%M')}",
        f"• ID da Transação: {detail.id}",
        "",
        "Sua sessão fotográfica está confirmada. Em breve entraremos em contato "
        "para combinar data e horário.",
        "",
        "Obrigado pela confiança!",
    ]
    return "\n".join(lines)


def make_messenger_factory(settings: Settings) -> MessengerFactory:
    def factory(config: MessagingConfig) -> EvolutionClient:
        return EvolutionClient(config, timeout=settings.messaging_timeout_seconds)

    return factory


class PaymentConfirmationNotifier:
    """Sends the approval confirmation to the transaction's student."""

    def __init__(
        self,
        db: "DynamoDBService",
        settings: Settings,
        messenger_factory: MessengerFactory | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.messenger_factory = messenger_factory or make_messenger_factory(settings)

    def notify_approved(
        self,
        transaction: PaymentTransaction,
        detail: PaymentDetail,
        messaging: MessagingConfig,
    ) -> NotificationOutcome:
        """Send the confirmation, trying each phone variant in turn.

        Never raises.
        """
        try:
            return self._notify(transaction, detail, messaging)
        except Exception as e:
            logger.exception(
                "Confirmation for transaction %s failed: %s",
                transaction.transaction_id,
                e,
            )
            return NotificationOutcome(reason=f"error: {e}")

    def _notify(
        self,
        transaction: PaymentTransaction,
        detail: PaymentDetail,
        messaging: MessagingConfig,
    ) -> NotificationOutcome:
        if not transaction.student_id:
            return NotificationOutcome(reason="no linked student")

        student = get_student(self.db, transaction.student_id)
        if student is None or not student.phone:
            logger.info(
                "Student %s has no phone on record, skipping confirmation",
                transaction.student_id,
            )
            return NotificationOutcome(reason="student has no phone")

        if not messaging.is_configured:
            logger.info("WhatsApp not configured for tenant, skipping confirmation")
            return NotificationOutcome(reason="messaging not configured")

        variants = payment_phone_variants(student.phone, self.settings.phone_country_code)
        if not variants:
            return NotificationOutcome(reason="student has no phone")

        text = build_confirmation_message(student, detail)
        attempts = 0

        messenger = self.messenger_factory(messaging)
        try:

            def send(number: str) -> bool:
                nonlocal attempts
                attempts += 1
                return messenger.send_text(number, text)

            number = send_until_success(variants, send)
        finally:
            messenger.close()

        if number is None:
            logger.warning(
                "Confirmation for transaction %s failed for all %d phone variant(s)",
                transaction.transaction_id,
                len(variants),
            )
            return NotificationOutcome(attempts=attempts, reason="all phone variants failed")

        logger.info(
            "Confirmation for transaction %s sent to %s (attempt %d)",
            transaction.transaction_id,
            number,
            attempts,
        )
        return NotificationOutcome(sent=True, number=number, attempts=attempts)
