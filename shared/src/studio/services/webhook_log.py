"""Append-only audit trail of inbound webhook calls.

One row per HTTP call, written on receipt before any processing and
completed once with the outcome. Only operators read these rows.
"""

import datetime as dt
import uuid
from typing import TYPE_CHECKING, Any

from studio.models import WEBHOOK_LOG_EVENT_TYPE, WebhookLogEntry, WebhookLogStatus
from studio.utils.serialization import to_dynamodb_value

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


class WebhookLogService:
    """Writes the ``webhook-logs`` table."""

    WEBHOOK_LOGS_TABLE = "webhook-logs"

    def __init__(self, db: "DynamoDBService") -> None:
        self._db = db

    def record_received(self, payload: Any) -> WebhookLogEntry:
        """Persist the verbatim request body with status ``received``.

        Args:
            payload: Decoded JSON body (or ``{"raw": text}`` when undecodable)

        Returns:
            The stored entry
        """
        entry = WebhookLogEntry(
            log_id=f"WHL-{uuid.uuid4().hex}",
            event_type=WEBHOOK_LOG_EVENT_TYPE,
            payload=payload,
            status=WebhookLogStatus.RECEIVED,
            created_at=dt.datetime.now(dt.UTC),
        )
        self._db.put_item(
            self.WEBHOOK_LOGS_TABLE,
            {
                "log_id": entry.log_id,
                "event_type": entry.event_type,
                "payload": to_dynamodb_value(payload),
                "status": entry.status.value,
                "created_at": entry.created_at.isoformat(),
            },
        )
        return entry

    def record_outcome(
        self,
        log_id: str,
        status: WebhookLogStatus,
        response: dict[str, Any],
    ) -> None:
        """Complete an entry with the handling outcome."""
        self._db.update_fields(
            self.WEBHOOK_LOGS_TABLE,
            {"log_id": log_id},
            {
                "status": status.value,
                "response": to_dynamodb_value(response),
                "completed_at": dt.datetime.now(dt.UTC).isoformat(),
            },
        )
