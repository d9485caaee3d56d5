"""Standard error codes for the payment reconciliation service.

Every failure the webhook reports to the processor, and every failure the
operator endpoints report to callers, is expressed as a StudioError carrying
one of these codes.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes with a stable wire representation."""

    INVALID_WEBHOOK = "ERR_WEBHOOK_001"
    INVALID_JSON = "ERR_WEBHOOK_002"
    NO_PROCESSOR_ACCOUNTS = "ERR_WEBHOOK_003"
    PAYMENT_NOT_FOUND = "ERR_WEBHOOK_004"
    TRANSACTION_NOT_FOUND = "ERR_WEBHOOK_005"

    TENANT_NOT_CONFIGURED = "ERR_PAY_001"
    STUDENT_NOT_FOUND = "ERR_PAY_002"
    PROCESSOR_API_ERROR = "ERR_PAY_003"

    INTERNAL = "ERR_INTERNAL"


# Messages are part of the webhook's response contract; do not reword.
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_WEBHOOK: "Invalid webhook: missing data.id",
    ErrorCode.INVALID_JSON: "Invalid webhook: body is not valid JSON",
    ErrorCode.NO_PROCESSOR_ACCOUNTS: "No payment processor accounts configured",
    ErrorCode.PAYMENT_NOT_FOUND: "Payment not found in any configured account",
    ErrorCode.TRANSACTION_NOT_FOUND: "Transaction not found and cannot create new one",
    ErrorCode.TENANT_NOT_CONFIGURED: "Payment processor is not configured for this account",
    ErrorCode.STUDENT_NOT_FOUND: "Student not found",
    ErrorCode.PROCESSOR_API_ERROR: "Payment processor request failed",
    ErrorCode.INTERNAL: "Internal server error",
}

ERROR_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_WEBHOOK: 400,
    ErrorCode.INVALID_JSON: 400,
    ErrorCode.NO_PROCESSOR_ACCOUNTS: 400,
    ErrorCode.PAYMENT_NOT_FOUND: 404,
    ErrorCode.TRANSACTION_NOT_FOUND: 404,
    ErrorCode.TENANT_NOT_CONFIGURED: 400,
    ErrorCode.STUDENT_NOT_FOUND: 404,
    ErrorCode.PROCESSOR_API_ERROR: 502,
    ErrorCode.INTERNAL: 500,
}


class StudioError(Exception):
    """Exception raised by service operations.

    Carries the error code plus diagnostic details that are merged into the
    JSON error body.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """HTTP status this error is reported with."""
        return ERROR_HTTP_STATUS.get(self.code, 400)

    def to_body(self) -> dict[str, Any]:
        """Render the JSON error body: ``{"error": message, **details}``."""
        body: dict[str, Any] = {"error": self.message}
        body.update(self.details)
        return body
