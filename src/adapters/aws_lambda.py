"""AWS Lambda adapter for API Gateway proxy integrations."""

import asyncio
import base64
import binascii
import json
import logging
from typing import Any, Callable, Optional

from src.adapters.base import INTERNAL_ERROR, ErrorCallback, error_message, report_error
from src.router.router import WebhookRouter
from src.verifiers.base import Verifier, normalize_headers, run_verifier

logger = logging.getLogger(__name__)

LambdaHandler = Callable[[dict, Any], dict]


def _response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "body": json.dumps(body),
        "headers": {"Content-Type": "application/json"},
    }


async def handle_api_gateway_event(
    router: WebhookRouter,
    verifier: Verifier,
    lambda_event: dict,
    on_error: Optional[ErrorCallback] = None,
) -> dict:
    """Verify and dispatch one API Gateway proxy event.

    Bodies flagged ``isBase64Encoded`` are decoded first so the verifier
    sees the bytes the sender signed.
    """
    body = lambda_event.get("body")
    if not body:
        return _response(400, {"error": "Request body is required"})

    if lambda_event.get("isBase64Encoded"):
        try:
            raw_body = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            return _response(400, {"error": "Request body is not valid base64"})
    else:
        raw_body = body

    headers = normalize_headers(lambda_event.get("headers"))

    try:
        result = await run_verifier(verifier, raw_body, headers)
    except Exception as e:
        logger.warning(f"Webhook verification failed: {e}")
        return _response(400, {"error": error_message(e)})

    event = result.event
    try:
        await router.dispatch(event)
    except Exception as e:
        logger.error(f"Dispatch failed for {event.type} ({event.id}): {e}")
        await report_error(on_error, e, event)
        return _response(500, {"error": INTERNAL_ERROR})

    return _response(200, {"received": True})


def lambda_adapter(
    router: WebhookRouter,
    verifier: Verifier,
    on_error: Optional[ErrorCallback] = None,
) -> LambdaHandler:
    """Create a Lambda handler function.

    Example:
        handler = lambda_adapter(router, StripeVerifier(os.environ["STRIPE_WEBHOOK_SECRET"]))
    """

    def handler(lambda_event: dict, context: Any) -> dict:
        return asyncio.run(
            handle_api_gateway_event(router, verifier, lambda_event, on_error)
        )

    return handler
