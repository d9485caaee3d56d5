"""Mercado Pago REST client.

One client per tenant credential. Used to read payment details (credential
probing and reconciliation), to create checkout preferences for payment
links, and to validate a credential from the settings screen.
"""

import logging
import uuid
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.mercadopago.com"


class MercadoPagoError(Exception):
    """Raised when a Mercado Pago request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    @property
    def is_not_accessible(self) -> bool:
        """The credential cannot see the resource (wrong tenant or bad token)."""
        return self.status_code in {401, 403, 404}


class MercadoPagoClient:
    """Synchronous Mercado Pago API client bound to one access token.

    Usage:
        with MercadoPagoClient(access_token) as client:
            payment = client.get_payment("1234567890")
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            access_token: Tenant's Mercado Pago access token
            base_url: API base URL
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._access_token = access_token
        self._transport = transport
        self._client: httpx.Client | None = None

    def __enter__(self) -> "MercadoPagoClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        self._client = None

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make a request and decode the JSON response.

        Raises:
            MercadoPagoError: On transport failure or a non-2xx response
        """
        client = self._get_client()
        try:
            response = client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            raise MercadoPagoError(f"Request timeout: {method} {path}") from e
        except httpx.RequestError as e:
            raise MercadoPagoError(f"Request failed: {method} {path}: {e}") from e

        if response.status_code >= 400:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            message = body.get("message") if isinstance(body, dict) else None
            raise MercadoPagoError(
                f"Mercado Pago API error ({response.status_code}): "
                f"{message or response.reason_phrase}",
                status_code=response.status_code,
                response_body=body,
            )

        try:
            return response.json()
        except ValueError as e:
            raise MercadoPagoError(
                f"Invalid JSON in response to {method} {path}",
                status_code=response.status_code,
            ) from e

    def get_payment(self, payment_id: str) -> dict[str, Any]:
        """Fetch one payment document.

        Args:
            payment_id: Mercado Pago payment ID

        Returns:
            The payment document as returned by GET /v1/payments/{id}
        """
        payment = self._request("GET", f"/v1/payments/{payment_id}")
        if not isinstance(payment, dict):
            raise MercadoPagoError(f"Unexpected payment document for {payment_id}")
        return payment

    def create_preference(
        self,
        preference: dict[str, Any],
        *,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Create a checkout preference (payment link).

        Args:
            preference: Preference body
            idempotency_key: X-Idempotency-Key value; generated when omitted

        Returns:
            The created preference, including ``id`` and ``init_point``
        """
        key = idempotency_key or f"pref-{uuid.uuid4().hex}"
        logger.info(
            "Creating checkout preference (external_reference=%s)",
            preference.get("external_reference"),
        )
        created = self._request(
            "POST",
            "/checkout/preferences",
            json=preference,
            headers={"X-Idempotency-Key": key},
        )
        if not isinstance(created, dict):
            raise MercadoPagoError("Unexpected preference response")
        return created

    def test_connection(self) -> dict[str, Any]:
        """Validate the credential.

        Lists payment methods (must succeed) and then reads the account
        profile (best-effort).

        Returns:
            Dict with ``payment_methods_count`` and ``account_info`` (or None)
        """
        payment_methods = self._request("GET", "/v1/payment_methods")

        account_info: dict[str, Any] | None = None
        try:
            account = self._request("GET", "/users/me")
        except MercadoPagoError as e:
            logger.warning("Could not read Mercado Pago account profile: %s", e)
        else:
            if isinstance(account, dict):
                account_info = {
                    "id": account.get("id"),
                    "email": account.get("email"),
                    "nickname": account.get("nickname"),
                    "country_id": account.get("country_id"),
                }

        return {
            "payment_methods_count": (
                len(payment_methods) if isinstance(payment_methods, list) else 0
            ),
            "account_info": account_info,
        }
