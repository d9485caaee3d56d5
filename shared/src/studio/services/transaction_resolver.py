"""Transaction resolution: map a processor payment to one local transaction.

Correlation signals are tried in strict priority order and the first hit
wins:

1. ``processor_payment_id`` - only set once a notification has been
   processed, so this catches redeliveries.
2. ``external_reference`` - chosen locally when the payment link was
   created; the common first-delivery case.
3. payer email + amount on a ``pending`` row - heuristic for rows that
   predate external references. Newest row wins.
4. Creation - an approved payment with a payer email and no local row gets
   one, since money has moved. Anything else is reported as not found and
   nothing is created, so a later-surfacing initiating row is not
   duplicated.
"""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from studio.models import (
    ErrorCode,
    PaymentDetail,
    PaymentTransaction,
    ResolutionStrategy,
    StudioError,
)
from studio.utils.logging import get_logger, log_payment_operation

from .students import get_student, student_id_from_reference
from .transactions import PaymentTransactionRepository, TransactionExistsError

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class ResolvedTransaction(BaseModel):
    """A transaction found (or created) for a payment, and how."""

    transaction: PaymentTransaction
    strategy: ResolutionStrategy

    @property
    def created(self) -> bool:
        return self.strategy == ResolutionStrategy.CREATED


class TransactionResolver:
    """Finds or creates exactly one PaymentTransaction per payment."""

    def __init__(
        self,
        repository: PaymentTransactionRepository,
        db: "DynamoDBService",
    ) -> None:
        self.repository = repository
        self.db = db

    def resolve(self, detail: PaymentDetail, tenant_id: str) -> ResolvedTransaction:
        """Resolve the payment to a local transaction.

        Args:
            detail: Payment detail fetched from the processor
            tenant_id: Tenant whose credential could read the payment

        Returns:
            The resolved transaction and the strategy that matched

        Raises:
            StudioError: TRANSACTION_NOT_FOUND when nothing matches and the
                payment does not qualify for creation
        """
        transaction = self.repository.find_by_processor_payment_id(detail.id)
        if transaction is not None:
            return self._matched(detail, transaction, ResolutionStrategy.PROCESSOR_PAYMENT_ID)

        if detail.external_reference:
            transaction = self.repository.find_by_external_reference(detail.external_reference)
            if transaction is not None:
                return self._matched(detail, transaction, ResolutionStrategy.EXTERNAL_REFERENCE)

        if detail.payer_email and detail.transaction_amount is not None:
            transaction = self.repository.find_pending_by_payer(
                detail.payer_email,
                detail.transaction_amount,
                tenant_id=tenant_id,
            )
            if transaction is not None:
                return self._matched(detail, transaction, ResolutionStrategy.PAYER_EMAIL_AMOUNT)

        if detail.is_approved and detail.payer_email:
            return self._create(detail, tenant_id)

        log_payment_operation(
            logger,
            "resolve_transaction",
            payment_id=detail.id,
            tenant_id=tenant_id,
            status=detail.status,
            error="no matching transaction and payment is not approved",
            payer_email=detail.payer_email,
            amount=detail.transaction_amount,
            external_reference=detail.external_reference,
        )
        raise StudioError(
            ErrorCode.TRANSACTION_NOT_FOUND,
            details={
                "payment_id": detail.id,
                "status": detail.status,
                "payer_email": detail.payer_email,
                "amount": (
                    float(detail.transaction_amount)
                    if detail.transaction_amount is not None
                    else None
                ),
                "external_reference": detail.external_reference,
            },
        )

    def _matched(
        self,
        detail: PaymentDetail,
        transaction: PaymentTransaction,
        strategy: ResolutionStrategy,
    ) -> ResolvedTransaction:
        log_payment_operation(
            logger,
            "resolve_transaction",
            payment_id=detail.id,
            transaction_id=transaction.transaction_id,
            strategy=strategy.value,
        )
        return ResolvedTransaction(transaction=transaction, strategy=strategy)

    def _create(self, detail: PaymentDetail, tenant_id: str) -> ResolvedTransaction:
        """Insert the row for an unmatched approved payment.

        A concurrent delivery of the same payment may have inserted it first;
        the deterministic key makes that insert fail, and the stored row is
        used instead.
        """
        candidate = self._build_from_detail(detail, tenant_id)
        try:
            transaction = self.repository.create(candidate)
        except TransactionExistsError:
            existing = self.repository.get(candidate.transaction_id)
            if existing is None:
                raise
            return self._matched(detail, existing, ResolutionStrategy.PROCESSOR_PAYMENT_ID)

        log_payment_operation(
            logger,
            "create_transaction_from_webhook",
            payment_id=detail.id,
            transaction_id=transaction.transaction_id,
            tenant_id=tenant_id,
            status=detail.status,
        )
        return ResolvedTransaction(transaction=transaction, strategy=ResolutionStrategy.CREATED)

    def _linked_student_id(self, external_reference: str | None, tenant_id: str) -> str | None:
        student_id = student_id_from_reference(external_reference)
        if student_id is None:
            return None
        student = get_student(self.db, student_id)
        if student is None or (student.tenant_id and student.tenant_id != tenant_id):
            return None
        return student.student_id

    def _build_from_detail(self, detail: PaymentDetail, tenant_id: str) -> PaymentTransaction:
        metadata: dict[str, Any] = {"created_by_webhook": True}
        optional = {
            "currency": detail.currency_id,
            "installments": detail.installments,
            "payment_type": detail.payment_type_id,
        }
        metadata.update({key: value for key, value in optional.items() if value is not None})

        return PaymentTransaction(
            transaction_id=self.repository.webhook_transaction_id(detail.id),
            tenant_id=tenant_id,
            student_id=self._linked_student_id(detail.external_reference, tenant_id),
            processor_payment_id=detail.id,
            external_reference=detail.external_reference,
            amount=detail.transaction_amount or Decimal("0.00"),
            status=detail.status,
            payment_method=detail.payment_method_id,
            payer_email=detail.payer_email,
            payment_date=detail.date_approved,
            metadata=metadata,
            webhook_data=detail.raw,
            created_at=dt.datetime.now(dt.UTC),
        )
