"""Pytest configuration and fixtures for the studio payments backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (all four tables and their GSIs)
- Seed helpers for tenants, students and transactions
- A fake Mercado Pago keyed by access token, and a fake WhatsApp sender
"""

import datetime as dt
import os
from decimal import Decimal
from typing import Any, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-studio")
os.environ.setdefault("ENVIRONMENT", "test")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from studio.config import Settings, get_settings  # noqa: E402
from studio.models import MessagingConfig, PaymentTransaction, TenantCredential  # noqa: E402
from studio.services.dynamodb import (  # noqa: E402
    DynamoDBService,
    get_dynamodb_service,
    reset_dynamodb_service,
)
from studio.services.mercadopago_client import MercadoPagoClient, MercadoPagoError  # noqa: E402
from studio.services.transactions import PaymentTransactionRepository  # noqa: E402
from studio.services.whatsapp import EvolutionClient  # noqa: E402

TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"
TOKEN_A = "APP_USR-token-a"
TOKEN_B = "APP_USR-token-b"


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset DynamoDB and settings singletons before and after each test.

    Tests using mock_aws need a fresh service instance created inside the
    mock context rather than one left over from a previous test.
    """
    reset_dynamodb_service()
    get_settings.cache_clear()
    yield
    reset_dynamodb_service()
    get_settings.cache_clear()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"


@pytest.fixture
def dynamodb_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB client."""
    with mock_aws():
        yield boto3.client("dynamodb", region_name=os.environ["AWS_DEFAULT_REGION"])


def _simple_table(name: str, key: str) -> dict[str, Any]:
    return {
        "TableName": f"{TABLE_PREFIX}-{name}",
        "KeySchema": [{"AttributeName": key, "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": key, "AttributeType": "S"}],
        "BillingMode": "PAY_PER_REQUEST",
    }


@pytest.fixture
def create_tables(dynamodb_client: Any) -> None:
    """Create all required DynamoDB tables for testing."""
    tables = [
        {
            "TableName": f"{TABLE_PREFIX}-payment-transactions",
            "KeySchema": [{"AttributeName": "transaction_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "transaction_id", "AttributeType": "S"},
                {"AttributeName": "processor_payment_id", "AttributeType": "S"},
                {"AttributeName": "external_reference", "AttributeType": "S"},
                {"AttributeName": "payer_email", "AttributeType": "S"},
                {"AttributeName": "created_at", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "processor_payment_id-index",
                    "KeySchema": [
                        {"AttributeName": "processor_payment_id", "KeyType": "HASH"}
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "external_reference-index",
                    "KeySchema": [
                        {"AttributeName": "external_reference", "KeyType": "HASH"}
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "payer_email-index",
                    "KeySchema": [
                        {"AttributeName": "payer_email", "KeyType": "HASH"},
                        {"AttributeName": "created_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        _simple_table("webhook-logs", "log_id"),
        _simple_table("tenant-settings", "tenant_id"),
        _simple_table("students", "student_id"),
    ]

    for table_config in tables:
        dynamodb_client.create_table(**table_config)


@pytest.fixture
def db(create_tables: None) -> DynamoDBService:
    """DynamoDBService bound to the mocked tables."""
    return get_dynamodb_service()


# === Settings ===


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test")


# === Seed Helpers ===


@pytest.fixture
def seed_tenant(db: DynamoDBService):
    """Insert a tenant-settings row."""

    def _seed(
        tenant_id: str = TENANT_A,
        access_token: str = TOKEN_A,
        whatsapp: bool = True,
    ) -> dict[str, Any]:
        settings_map: dict[str, Any] = {
            "mercadopago": {
                "access_token": access_token,
                "public_key": f"APP_USR-public-{tenant_id}",
                "environment": "sandbox",
                "is_configured": bool(access_token),
            },
        }
        if whatsapp:
            settings_map["whatsapp"] = {
                "api_url": "https://evolution.example.com",
                "api_key": f"evo-key-{tenant_id}",
                "instance_name": f"studio-{tenant_id}",
                "is_connected": True,
            }
        item = {"tenant_id": tenant_id, "settings": settings_map}
        db.put_item("tenant-settings", item)
        return item

    return _seed


@pytest.fixture
def seed_student(db: DynamoDBService):
    """Insert a students row."""

    def _seed(
        student_id: str = "42",
        tenant_id: str = TENANT_A,
        full_name: str = "Ana Souza",
        email: str | None = "a@b.com",
        phone: str | None = "(11) 98765-4321",
    ) -> dict[str, Any]:
        item: dict[str, Any] = {
            "student_id": student_id,
            "tenant_id": tenant_id,
            "full_name": full_name,
        }
        if email:
            item["email"] = email
        if phone:
            item["phone"] = phone
        db.put_item("students", item)
        return item

    return _seed


@pytest.fixture
def seed_transaction(db: DynamoDBService):
    """Insert a payment-transactions row."""

    def _seed(**overrides: Any) -> PaymentTransaction:
        fields: dict[str, Any] = {
            "transaction_id": PaymentTransactionRepository.generate_transaction_id(),
            "tenant_id": TENANT_A,
            "amount": Decimal("500.00"),
            "status": "pending",
            "created_at": dt.datetime.now(dt.UTC),
        }
        fields.update(overrides)
        transaction = PaymentTransaction(**fields)
        return PaymentTransactionRepository(db).create(transaction)

    return _seed


@pytest.fixture
def make_payment():
    """Build a Mercado Pago payment document."""

    def _make(
        payment_id: str | int = "555",
        status: str = "approved",
        amount: float | int | None = 500,
        email: str | None = "a@b.com",
        external_reference: str | None = None,
        date_approved: str | None = "2026-03-14T10:30:00.000-03:00",
        **extra: Any,
    ) -> dict[str, Any]:
        document: dict[str, Any] = {
            "id": int(payment_id) if str(payment_id).isdigit() else payment_id,
            "status": status,
            "status_detail": "accredited" if status == "approved" else "pending_contingency",
            "transaction_amount": amount,
            "currency_id": "BRL",
            "payment_method_id": "pix",
            "payment_type_id": "bank_transfer",
            "installments": 1,
            "payer": {"email": email} if email else {},
            "external_reference": external_reference,
            "date_approved": date_approved if status == "approved" else None,
        }
        document.update(extra)
        return document

    return _make


# === Fake Mercado Pago ===


class FakeProcessor:
    """In-memory Mercado Pago: each access token can read its own payments."""

    def __init__(self) -> None:
        self.payments: dict[str, dict[str, dict[str, Any]]] = {}
        self.probed_tokens: list[str] = []
        self.clients: list[MagicMock] = []

    def add(self, access_token: str, document: dict[str, Any]) -> None:
        self.payments.setdefault(access_token, {})[str(document["id"])] = document

    def factory(self, credential: TenantCredential) -> MagicMock:
        client = MagicMock(spec=MercadoPagoClient)
        token = credential.access_token

        def get_payment(payment_id: str) -> dict[str, Any]:
            self.probed_tokens.append(token)
            document = self.payments.get(token, {}).get(str(payment_id))
            if document is None:
                raise MercadoPagoError(
                    "Mercado Pago API error (404): Payment not found",
                    status_code=404,
                )
            return document

        client.get_payment.side_effect = get_payment
        self.clients.append(client)
        return client


@pytest.fixture
def processor() -> FakeProcessor:
    return FakeProcessor()


# === Fake WhatsApp ===


@pytest.fixture
def messenger() -> MagicMock:
    """Evolution client that accepts every message."""
    client = MagicMock(spec=EvolutionClient)
    client.send_text.return_value = True
    return client


@pytest.fixture
def messenger_factory(messenger: MagicMock):
    def _factory(config: MessagingConfig) -> MagicMock:
        return messenger

    return _factory
