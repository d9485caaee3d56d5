"""FastAPI exception handlers for converting domain errors to HTTP responses.

StudioError carries its own HTTP status (see studio.models.errors); its
body is ``{"error": message, **details}``, the same shape the webhook
answers with. A Mercado Pago failure that escapes a service surfaces as
502 Bad Gateway.

Usage:
    Register handlers in FastAPI app:

    from studio_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_502_BAD_GATEWAY

from studio.models.errors import ERROR_MESSAGES, ErrorCode, StudioError
from studio.services.mercadopago_client import MercadoPagoError

logger = logging.getLogger(__name__)


async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    """Convert a StudioError to its JSON response.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The StudioError exception

    Returns:
        JSONResponse with the mapped status code and error body.
    """
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def processor_error_handler(request: Request, exc: MercadoPagoError) -> JSONResponse:
    """Report an upstream Mercado Pago failure as 502."""
    logger.warning("Mercado Pago request failed on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=HTTP_502_BAD_GATEWAY,
        content={
            "error": ERROR_MESSAGES[ErrorCode.PROCESSOR_API_ERROR],
            "details": str(exc),
            "processor_status": exc.status_code,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(StudioError, studio_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(MercadoPagoError, processor_error_handler)  # type: ignore[arg-type]
