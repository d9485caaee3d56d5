"""WhatsApp messaging through a tenant's Evolution API instance.

Student phone numbers are stored however they were typed, and WhatsApp
accounts may be registered with or without the mobile ninth digit, so a
send is attempted against several normalised variants of the number until
one is accepted.
"""

import logging
import re
from collections.abc import Callable, Iterable

import httpx

from studio.models import MessagingConfig

logger = logging.getLogger(__name__)

WHATSAPP_JID_SUFFIX = "@s.whatsapp.net"

_NON_DIGITS = re.compile(r"\D")


class EvolutionError(Exception):
    """Raised when the Evolution API cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def payment_phone_variants(raw_phone: str | None, country_code: str = "55") -> list[str]:
    """Build the ordered, de-duplicated list of numbers to try.

    Order: international form, the raw digits, the national form, then the
    international and national forms with the mobile ninth digit added
    (10-digit national numbers) or removed (11-digit national numbers).

    Args:
        raw_phone: Phone number as stored on the student record
        country_code: Country calling code, without "+"

    Returns:
        Candidate digit strings; empty if the input has no digits
    """
    digits = _NON_DIGITS.sub("", raw_phone or "")
    if not digits:
        return []

    national = digits
    if digits.startswith(country_code) and len(digits) - len(country_code) in (10, 11):
        national = digits[len(country_code):]

    candidates = [country_code + national, digits, national]

    if len(national) == 10:
        with_ninth = national[:2] + "9" + national[2:]
        candidates += [country_code + with_ninth, with_ninth]
    elif len(national) == 11 and national[2] == "9":
        without_ninth = national[:2] + national[3:]
        candidates += [country_code + without_ninth, without_ninth]

    return list(dict.fromkeys(candidates))


def send_until_success(
    candidates: Iterable[str],
    sender: Callable[[str], bool],
) -> str | None:
    """Try each candidate until the sender reports success.

    A sender exception counts as a failed attempt.

    Returns:
        The candidate that was accepted, or None if all failed
    """
    for candidate in candidates:
        try:
            if sender(candidate):
                return candidate
        except Exception as e:
            logger.warning("Send attempt to %s raised: %s", candidate, e)
            continue
        logger.info("Send attempt to %s was rejected", candidate)
    return None


class EvolutionClient:
    """Minimal Evolution API client for text messages."""

    def __init__(
        self,
        config: MessagingConfig,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self._client = httpx.Client(
            base_url=config.api_url.rstrip("/"),
            headers={"apikey": config.api_key, "Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def send_text(self, number: str, text: str) -> bool:
        """Send a text message.

        Args:
            number: Digits only; the WhatsApp JID suffix is appended here
            text: Message body

        Returns:
            True if the provider accepted the message (2xx)

        Raises:
            EvolutionError: If the request could not be made
        """
        try:
            response = self._client.post(
                f"/message/sendText/{self.config.instance_name}",
                json={"number": f"{number}{WHATSAPP_JID_SUFFIX}", "text": text},
            )
        except httpx.RequestError as e:
            raise EvolutionError(f"Evolution API request failed: {e}") from e

        if not response.is_success:
            logger.info(
                "Evolution API rejected message to %s (%s): %s",
                number,
                response.status_code,
                response.text[:200],
            )
        return response.is_success
