"""Unit tests for the typed projections of processor and tenant documents."""

import datetime as dt
from decimal import Decimal

import pytest

from studio.models import (
    ErrorCode,
    PaymentDetail,
    PaymentNotification,
    PaymentTransaction,
    ProcessorEnvironment,
    StudioError,
    TenantCredential,
    normalize_amount,
)
from studio.utils.serialization import from_dynamodb_value, to_dynamodb_value


class TestNormalizeAmount:
    @pytest.mark.parametrize("value", [500, 500.0, "500", "500.00", Decimal("500.000")])
    def test_equivalent_amounts_normalize_equal(self, value):
        assert normalize_amount(value) == Decimal("500.00")

    def test_rounds_half_up(self):
        assert normalize_amount("10.005") == Decimal("10.01")

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity"])
    def test_invalid_amounts(self, value):
        assert normalize_amount(value) is None


class TestPaymentNotification:
    def test_payment_envelope(self):
        notification = PaymentNotification.from_payload(
            {"type": "payment", "action": "payment.updated", "data": {"id": "555"}}
        )

        assert notification.payment_id == "555"
        assert notification.action == "payment.updated"
        assert notification.is_payment_event

    def test_numeric_id_is_stringified(self):
        notification = PaymentNotification.from_payload({"type": "payment", "data": {"id": 555}})
        assert notification.payment_id == "555"

    def test_topic_used_when_type_missing(self):
        notification = PaymentNotification.from_payload({"topic": "payment", "data": {"id": "1"}})
        assert notification.is_payment_event

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "payment"},
            {"type": "payment", "data": {}},
            {"type": "payment", "data": {"id": ""}},
            {"type": "payment", "data": {"id": "   "}},
            {"type": "payment", "data": "555"},
            ["payment"],
            None,
        ],
    )
    def test_missing_payment_id(self, payload):
        assert PaymentNotification.from_payload(payload).payment_id is None

    def test_other_event_types_are_not_payments(self):
        notification = PaymentNotification.from_payload(
            {"type": "merchant_order", "data": {"id": "9"}}
        )
        assert not notification.is_payment_event


class TestPaymentDetail:
    def test_projects_processor_document(self):
        document = {
            "id": 555,
            "status": "approved",
            "transaction_amount": 500,
            "currency_id": "BRL",
            "payment_method_id": "pix",
            "payment_type_id": "bank_transfer",
            "installments": 1,
            "payer": {"email": "a@b.com"},
            "external_reference": "student-42-1736950000000",
            "date_approved": "2026-03-14T10:30:00.000-03:00",
        }

        detail = PaymentDetail.from_api(document)

        assert detail.id == "555"
        assert detail.is_approved
        assert detail.transaction_amount == Decimal("500.00")
        assert detail.payer_email == "a@b.com"
        assert detail.date_approved == dt.datetime(
            2026, 3, 14, 10, 30, tzinfo=dt.timezone(dt.timedelta(hours=-3))
        )
        assert detail.raw == document

    def test_sparse_document(self):
        detail = PaymentDetail.from_api({"id": "1", "payer": None})

        assert detail.status == "unknown"
        assert detail.payer_email is None
        assert detail.transaction_amount is None
        assert not detail.is_approved


class TestTenantCredential:
    def test_from_settings_item(self):
        credential = TenantCredential.from_settings_item(
            {
                "tenant_id": "tenant-a",
                "settings": {
                    "mercadopago": {
                        "access_token": "APP_USR-1",
                        "environment": "production",
                        "is_configured": True,
                    },
                    "whatsapp": {
                        "api_url": "https://evo.example.com/",
                        "api_key": "k",
                        "instance_name": "studio",
                    },
                },
            }
        )

        assert credential is not None
        assert credential.environment == ProcessorEnvironment.PRODUCTION
        assert credential.messaging.api_url == "https://evo.example.com"
        assert credential.messaging.is_configured
        assert "APP_USR-1" not in repr(credential)

    @pytest.mark.parametrize(
        "settings",
        [{}, {"mercadopago": {}}, {"mercadopago": {"access_token": "  "}}],
    )
    def test_no_access_token(self, settings):
        item = {"tenant_id": "tenant-a", "settings": settings}
        assert TenantCredential.from_settings_item(item) is None

    def test_messaging_needs_url_key_and_instance(self):
        credential = TenantCredential.from_settings_item(
            {
                "tenant_id": "tenant-a",
                "settings": {
                    "mercadopago": {"access_token": "APP_USR-1"},
                    "whatsapp": {"api_url": "https://evo.example.com", "api_key": "k"},
                },
            }
        )
        assert credential is not None
        assert not credential.messaging.is_configured


class TestPaymentTransactionItem:
    def test_to_item_omits_empty_attributes(self):
        transaction = PaymentTransaction(
            transaction_id="TXN-1",
            amount=Decimal("500"),
            created_at=dt.datetime(2026, 3, 1, tzinfo=dt.UTC),
        )

        item = transaction.to_item()

        assert item["amount"] == Decimal("500.00")
        assert item["status"] == "pending"
        assert "processor_payment_id" not in item
        assert "payer_email" not in item
        assert "payment_date" not in item

    def test_item_round_trip_keeps_maps(self):
        transaction = PaymentTransaction(
            transaction_id="TXN-1",
            amount=Decimal("10.5"),
            metadata={"created_by_webhook": True, "installments": 3},
            webhook_data={"transaction_amount": 10.5, "payer": {"email": "a@b.com"}},
            created_at=dt.datetime(2026, 3, 1, tzinfo=dt.UTC),
        )

        item = transaction.to_item()
        assert item["webhook_data"]["transaction_amount"] == Decimal("10.5")

        restored = PaymentTransaction.from_item(item)
        assert restored.metadata == {"created_by_webhook": True, "installments": 3}
        assert restored.webhook_data == {
            "transaction_amount": 10.5,
            "payer": {"email": "a@b.com"},
        }


class TestSerialization:
    def test_floats_become_decimals(self):
        assert to_dynamodb_value({"a": [0.1, 2, True, None]}) == {
            "a": [Decimal("0.1"), 2, True, None]
        }

    @pytest.mark.parametrize(
        ("value", "stored"),
        [
            (float("inf"), "inf"),
            (float("nan"), "nan"),
            (1e-200, "1e-200"),
            (1.2e-150, "1.2e-150"),
            (10**40, str(10**40)),
        ],
    )
    def test_numbers_dynamodb_cannot_hold_become_strings(self, value, stored):
        assert to_dynamodb_value({"fee_details": [{"amount": value}]}) == {
            "fee_details": [{"amount": stored}]
        }

    def test_numbers_at_the_range_limits_stay_numeric(self):
        assert to_dynamodb_value([1e-130, 9.5e125]) == [Decimal("1e-130"), Decimal("9.5e125")]

    def test_decimals_become_numbers(self):
        assert from_dynamodb_value({"a": Decimal("2"), "b": [Decimal("0.5")]}) == {
            "a": 2,
            "b": [0.5],
        }


class TestStudioError:
    def test_internal_error_maps_to_500(self):
        error = StudioError(ErrorCode.INTERNAL, details={"details": "boom"})

        assert error.status_code == 500
        assert error.to_body() == {"error": "Internal server error", "details": "boom"}

    def test_body_merges_details(self):
        error = StudioError(ErrorCode.PAYMENT_NOT_FOUND, details={"payment_id": "555"})

        assert error.status_code == 404
        assert error.to_body() == {
            "error": "Payment not found in any configured account",
            "payment_id": "555",
        }
