"""Unit tests for the Evolution API (WhatsApp) client."""

import json

import httpx
import pytest

from studio.models import MessagingConfig
from studio.services.whatsapp import EvolutionClient, EvolutionError

CONFIG = MessagingConfig(
    api_url="https://evolution.example.com",
    api_key="evo-key",
    instance_name="studio-a",
)


def _client(handler) -> EvolutionClient:
    return EvolutionClient(CONFIG, transport=httpx.MockTransport(handler))


def test_send_text_posts_to_instance():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"key": {"id": "msg-1"}})

    client = _client(handler)
    try:
        assert client.send_text("5511987654321", "Olá") is True
    finally:
        client.close()

    request = seen[0]
    assert request.url == httpx.URL(
        "https://evolution.example.com/message/sendText/studio-a"
    )
    assert request.headers["apikey"] == "evo-key"
    assert json.loads(request.content) == {
        "number": "5511987654321@s.whatsapp.net",
        "text": "Olá",
    }


def test_rejected_message_returns_false():
    client = _client(lambda request: httpx.Response(400, json={"error": "not on WhatsApp"}))

    assert client.send_text("1187654321", "Olá") is False


def test_unreachable_provider_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(EvolutionError):
        client.send_text("5511987654321", "Olá")
