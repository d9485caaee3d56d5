"""Unit tests for applying the processor's payment state to a transaction."""

import datetime as dt
from decimal import Decimal

import pytest

from studio.models import PaymentDetail, PaymentTransaction
from studio.services.reconciliation import apply_payment_state, build_state_update
from studio.services.transactions import PaymentTransactionRepository


@pytest.fixture
def repository(db) -> PaymentTransactionRepository:
    return PaymentTransactionRepository(db)


class TestBuildStateUpdate:
    def test_approved_payment_sets_payment_date(self, make_payment):
        detail = PaymentDetail.from_api(make_payment("555"))

        fields = build_state_update(detail)

        assert fields["processor_payment_id"] == "555"
        assert fields["status"] == "approved"
        assert fields["payment_method"] == "pix"
        assert fields["payment_date"] == detail.date_approved.isoformat()
        assert fields["webhook_data"]["transaction_amount"] == 500

    def test_non_approved_payment_leaves_payment_date(self, make_payment):
        detail = PaymentDetail.from_api(make_payment("555", status="in_process"))

        assert "payment_date" not in build_state_update(detail)

    def test_approved_without_timestamp_leaves_payment_date(self, make_payment):
        detail = PaymentDetail.from_api(make_payment("555", date_approved=None))

        assert "payment_date" not in build_state_update(detail)

    def test_float_amounts_in_payload_become_decimals(self, make_payment):
        detail = PaymentDetail.from_api(make_payment("555", amount=199.9))

        fields = build_state_update(detail)

        assert fields["webhook_data"]["transaction_amount"] == Decimal("199.9")


class TestApplyPaymentState:
    def test_overwrites_mutable_fields(self, repository, seed_transaction, make_payment):
        transaction = seed_transaction(
            payer_email="a@b.com",
            webhook_data={"status": "pending", "stale": True},
        )
        detail = PaymentDetail.from_api(make_payment("555"))

        updated = apply_payment_state(repository, transaction, detail)

        assert updated.status == "approved"
        assert updated.processor_payment_id == "555"
        assert updated.payment_date == detail.date_approved
        assert "stale" not in updated.webhook_data
        assert updated.updated_at is not None
        assert repository.get(transaction.transaction_id).status == "approved"

    def test_applying_twice_is_idempotent(self, repository, seed_transaction, make_payment):
        transaction = seed_transaction()
        detail = PaymentDetail.from_api(make_payment("555"))

        first = apply_payment_state(repository, transaction, detail)
        second = apply_payment_state(repository, first, detail)

        ignore = {"updated_at"}
        assert first.model_dump(exclude=ignore) == second.model_dump(exclude=ignore)

    def test_later_status_overwrites(self, repository, seed_transaction, make_payment):
        transaction = seed_transaction()
        apply_payment_state(
            repository, transaction, PaymentDetail.from_api(make_payment("555"))
        )

        refunded = apply_payment_state(
            repository,
            transaction,
            PaymentDetail.from_api(make_payment("555", status="refunded")),
        )

        assert refunded.status == "refunded"
        # payment_date from the approval is kept
        assert refunded.payment_date == dt.datetime.fromisoformat(
            "2026-03-14T10:30:00.000-03:00"
        )

    def test_missing_transaction_raises(self, repository, make_payment):
        ghost = PaymentTransaction(
            transaction_id="TXN-GHOST",
            amount=Decimal("1"),
            created_at=dt.datetime.now(dt.UTC),
        )

        with pytest.raises(KeyError):
            apply_payment_state(
                repository, ghost, PaymentDetail.from_api(make_payment("555"))
            )
