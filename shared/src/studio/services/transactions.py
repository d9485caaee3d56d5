"""Persistence for PaymentTransaction records."""

import datetime as dt
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from boto3.dynamodb.conditions import Attr

from studio.models import PaymentStatus, PaymentTransaction, normalize_amount

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


class TransactionExistsError(Exception):
    """Raised when inserting a transaction whose ID is already stored."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction {transaction_id} already exists")
        self.transaction_id = transaction_id


class PaymentTransactionRepository:
    """Reads and writes the ``payment-transactions`` table.

    Lookups go through one GSI per correlation signal. Rows are never
    deleted here.
    """

    TRANSACTIONS_TABLE = "payment-transactions"
    PROCESSOR_PAYMENT_ID_INDEX = "processor_payment_id-index"
    EXTERNAL_REFERENCE_INDEX = "external_reference-index"
    PAYER_EMAIL_INDEX = "payer_email-index"

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    @staticmethod
    def generate_transaction_id() -> str:
        """Generate a unique transaction ID like TXN-ABC123DEF456."""
        return f"TXN-{uuid.uuid4().hex[:12].upper()}"

    @staticmethod
    def webhook_transaction_id(payment_id: str) -> str:
        """ID of the row created for a processor payment with no local match.

        Derived from the payment so concurrent deliveries collide on the
        primary key instead of inserting two rows.
        """
        return f"TXN-MP-{payment_id}"

    def get(self, transaction_id: str) -> PaymentTransaction | None:
        item = self.db.get_item(self.TRANSACTIONS_TABLE, {"transaction_id": transaction_id})
        return PaymentTransaction.from_item(item) if item else None

    def _most_recent(self, items: list[dict[str, Any]]) -> PaymentTransaction | None:
        if not items:
            return None
        newest = max(items, key=lambda item: item.get("created_at", ""))
        return PaymentTransaction.from_item(newest)

    def find_by_processor_payment_id(self, payment_id: str) -> PaymentTransaction | None:
        items = self.db.query_by_gsi(
            self.TRANSACTIONS_TABLE,
            self.PROCESSOR_PAYMENT_ID_INDEX,
            "processor_payment_id",
            payment_id,
        )
        return self._most_recent(items)

    def find_by_external_reference(self, external_reference: str) -> PaymentTransaction | None:
        items = self.db.query_by_gsi(
            self.TRANSACTIONS_TABLE,
            self.EXTERNAL_REFERENCE_INDEX,
            "external_reference",
            external_reference,
        )
        return self._most_recent(items)

    def find_pending_by_payer(
        self,
        payer_email: str,
        amount: Decimal,
        tenant_id: str | None = None,
    ) -> PaymentTransaction | None:
        """Find the newest pending transaction for a payer email and amount.

        Heuristic match: assumes a payer has at most one pending transaction
        per amount. Nothing enforces that, so two concurrent purchases of
        the same package by the same payer can be attributed to the wrong
        row.

        Args:
            payer_email: Payer email reported by the processor
            amount: Transaction amount reported by the processor
            tenant_id: Restrict to this tenant's rows when given

        Returns:
            The most recently created matching transaction, or None
        """
        target = normalize_amount(amount)
        if target is None:
            return None

        items = self.db.query_by_gsi(
            self.TRANSACTIONS_TABLE,
            self.PAYER_EMAIL_INDEX,
            "payer_email",
            payer_email,
            filter_expression=Attr("status").eq(PaymentStatus.PENDING.value),
            scan_index_forward=False,
        )

        for item in items:
            if normalize_amount(item.get("amount")) != target:
                continue
            if tenant_id is not None and item.get("tenant_id") != tenant_id:
                continue
            return PaymentTransaction.from_item(item)
        return None

    def create(self, transaction: PaymentTransaction) -> PaymentTransaction:
        """Insert a new transaction row.

        Raises:
            TransactionExistsError: If a row with the same ID is already stored
        """
        inserted = self.db.put_item(
            self.TRANSACTIONS_TABLE,
            transaction.to_item(),
            condition_expression="attribute_not_exists(transaction_id)",
        )
        if not inserted:
            raise TransactionExistsError(transaction.transaction_id)
        return transaction

    def update_fields(
        self,
        transaction_id: str,
        fields: dict[str, Any],
    ) -> PaymentTransaction:
        """Overwrite fields on an existing transaction and stamp updated_at.

        Returns:
            The transaction as stored after the update
        """
        changes = dict(fields)
        changes["updated_at"] = dt.datetime.now(dt.UTC).isoformat()
        attrs = self.db.update_fields(
            self.TRANSACTIONS_TABLE,
            {"transaction_id": transaction_id},
            changes,
            condition_expression="attribute_exists(transaction_id)",
        )
        if attrs is None:
            raise KeyError(f"Transaction {transaction_id} does not exist")
        return PaymentTransaction.from_item(attrs)
