"""Logging helpers that tag every record with the request's correlation ID.

The API middleware sets the ID from ``X-Correlation-ID`` (or generates one),
so all stages of a single webhook delivery can be grepped together in
CloudWatch:

    logger = get_logger(__name__)
    log_webhook_event(logger, "payment", "555", result="received")
    # [3f1c...] INFO studio.services.webhook_handler: Webhook event: payment (555) | result=received

Structured fields are also passed as ``extra`` so JSON log processors can
index them.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating one if needed.

    Returns:
        The ID now in effect
    """
    value = correlation_id or generate_correlation_id()
    _correlation_id.set(value)
    return value


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Copies the context's correlation ID onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes formatted records with ``[correlation_id]``."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is None:
            correlation_id = get_correlation_id() or NO_CORRELATION_ID
            record.correlation_id = correlation_id
        return f"[{correlation_id}] {super().format(record)}"


def configure_logging(level: int = logging.INFO) -> None:
    """Set the root level and install StructuredFormatter on its handlers.

    Idempotent, since Lambda reuses the interpreter between invocations.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level)
    root.setLevel(level)
    for handler in root.handlers:
        if not isinstance(handler.formatter, StructuredFormatter):
            handler.setFormatter(StructuredFormatter(LOG_FORMAT))


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with a CorrelationIdFilter attached once."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def _emit(
    logger: logging.Logger,
    level: int,
    headline: str,
    context: dict[str, Any],
    hidden: tuple[str, ...] = (),
) -> None:
    shown = {key: value for key, value in context.items() if key not in hidden}
    fields = " | ".join(f"{key}={value}" for key, value in shown.items())
    message = f"{headline} | {fields}" if fields else headline
    logger.log(level, message, extra=context)


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    payment_id: str | None = None,
    transaction_id: str | None = None,
    tenant_id: str | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log one step of payment handling; ERROR when ``error`` is set.

    Args:
        logger: Target logger
        operation: Step name, e.g. ``resolve_transaction``
        payment_id: Mercado Pago payment ID
        transaction_id: Local transaction ID
        tenant_id: Tenant owning the payment
        status: Processor payment status
        error: Failure description
        **extra: Further fields, logged as given
    """
    known = {
        "payment_id": payment_id,
        "transaction_id": transaction_id,
        "tenant_id": tenant_id,
        "status": status,
        "error": error,
    }
    context = {key: value for key, value in known.items() if value}
    context.update(extra)

    level = logging.ERROR if error else logging.INFO
    _emit(
        logger,
        level,
        f"Payment operation: {operation}",
        {"operation": operation} | context,
        hidden=("operation",),
    )


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    payment_id: str | None,
    *,
    transaction_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a webhook pipeline milestone.

    ``result`` is one of received, success, ignored or failed; ignored
    events log at WARNING and failures at ERROR.
    """
    context: dict[str, Any] = {"event_type": event_type, "payment_id": payment_id}
    for key, value in (("result", result), ("transaction_id", transaction_id), ("error", error)):
        if value:
            context[key] = value
    context.update(extra)

    if result == "failed":
        level = logging.ERROR
    elif result == "ignored":
        level = logging.WARNING
    else:
        level = logging.INFO

    _emit(
        logger,
        level,
        f"Webhook event: {event_type} ({payment_id})",
        context,
        hidden=("event_type", "payment_id"),
    )
