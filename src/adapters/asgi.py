"""FastAPI/Starlette adapter for webhook endpoints."""

import logging
from typing import Awaitable, Callable, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from src.adapters.base import INTERNAL_ERROR, ErrorCallback, error_message, report_error
from src.router.router import WebhookRouter
from src.verifiers.base import Verifier, normalize_headers, run_verifier

logger = logging.getLogger(__name__)


def fastapi_adapter(
    router: WebhookRouter,
    verifier: Verifier,
    on_error: Optional[ErrorCallback] = None,
) -> Callable[[Request], Awaitable[JSONResponse]]:
    """Create a FastAPI endpoint that verifies and dispatches webhooks.

    The endpoint reads the unparsed body, so it must not be declared with a
    pydantic body model. Mount it with
    ``app.add_api_route("/webhook", endpoint, methods=["POST"])``.

    Responses:
        200 ``{"received": true}`` when every handler succeeded
        400 ``{"error": ...}`` when the body is empty or verification failed
        500 ``{"error": "Internal server error"}`` when dispatch failed

    Args:
        router: Router to dispatch verified events to
        verifier: Verifier for the provider sending the webhooks
        on_error: Optional callback for dispatch failures

    Returns:
        Async endpoint function
    """

    async def webhook_endpoint(request: Request) -> JSONResponse:
        client_ip = request.client.host if request.client else "unknown"
        body = await request.body()
        if not body:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Request body is required"},
            )

        headers = normalize_headers(request.headers)

        try:
            result = await run_verifier(verifier, body, headers)
        except Exception as e:
            logger.warning(
                f"AUDIT: Webhook rejected from {client_ip}: {e}",
                extra={
                    "event_type": "webhook_rejected",
                    "client_ip": client_ip,
                    "path": request.url.path,
                    "reason": type(e).__name__,
                },
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": error_message(e)},
            )

        event = result.event
        logger.info(
            f"AUDIT: Webhook {event.type} ({event.id}) accepted from {client_ip}",
            extra={
                "event_type": "webhook_accepted",
                "webhook_type": event.type,
                "event_id": event.id,
                "client_ip": client_ip,
            },
        )

        try:
            await router.dispatch(event)
        except Exception as e:
            logger.error(
                f"Dispatch failed for {event.type} ({event.id}): {e}",
                extra={"event_type": "webhook_dispatch_failed", "event_id": event.id},
            )
            await report_error(on_error, e, event)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": INTERNAL_ERROR},
            )

        return JSONResponse(status_code=status.HTTP_200_OK, content={"received": True})

    return webhook_endpoint
