"""State application: copy the processor's view onto the local transaction.

The update is a plain overwrite with the freshly fetched detail, so applying
the same detail twice leaves the row unchanged apart from ``updated_at``.
The processor is the source of truth: a later notification with a
different status always wins.
"""

from typing import Any

from studio.models import PaymentDetail, PaymentTransaction
from studio.utils.logging import get_logger, log_payment_operation
from studio.utils.serialization import to_dynamodb_value

from .transactions import PaymentTransactionRepository

logger = get_logger(__name__)


def build_state_update(detail: PaymentDetail) -> dict[str, Any]:
    """Fields to overwrite on the transaction for this payment detail.

    ``payment_date`` is only written for an approval that carries an
    approval timestamp.
    """
    fields: dict[str, Any] = {
        "processor_payment_id": detail.id,
        "status": detail.status,
        "webhook_data": to_dynamodb_value(detail.raw),
    }
    if detail.payment_method_id:
        fields["payment_method"] = detail.payment_method_id
    if detail.is_approved and detail.date_approved is not None:
        fields["payment_date"] = detail.date_approved.isoformat()
    return fields


def apply_payment_state(
    repository: PaymentTransactionRepository,
    transaction: PaymentTransaction,
    detail: PaymentDetail,
) -> PaymentTransaction:
    """Persist the processor's state onto the transaction.

    Returns:
        The transaction as stored after the update
    """
    updated = repository.update_fields(transaction.transaction_id, build_state_update(detail))
    log_payment_operation(
        logger,
        "apply_payment_state",
        payment_id=detail.id,
        transaction_id=transaction.transaction_id,
        status=detail.status,
        previous_status=transaction.status,
    )
    return updated
