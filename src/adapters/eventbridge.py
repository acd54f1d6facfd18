"""AWS EventBridge adapter.

EventBridge guarantees where its events come from, so no signature is
checked; only the shape of ``detail`` is validated.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from src.adapters.base import ErrorCallback, report_error
from src.events.exceptions import PayloadError
from src.events.models import WebhookEvent, parse_event
from src.router.router import WebhookRouter

logger = logging.getLogger(__name__)


def event_from_detail(eventbridge_event: dict) -> WebhookEvent:
    """Extract the webhook event carried in an EventBridge ``detail``.

    Raises:
        PayloadError: If detail is not an object or lacks id/type/data
    """
    detail = eventbridge_event.get("detail") if isinstance(eventbridge_event, dict) else None
    if not isinstance(detail, dict):
        raise PayloadError("Invalid event detail: must be an object", field="detail")
    try:
        return parse_event(detail)
    except PayloadError as e:
        raise PayloadError(f"Invalid event detail: {e}", field=e.field) from e


async def handle_eventbridge_event(
    router: WebhookRouter,
    eventbridge_event: dict,
    on_error: Optional[ErrorCallback] = None,
) -> None:
    """Validate and dispatch one EventBridge event, re-raising failures."""
    event = event_from_detail(eventbridge_event)
    try:
        await router.dispatch(event)
    except Exception as e:
        logger.error(f"Dispatch failed for {event.type} ({event.id}): {e}")
        await report_error(on_error, e, event)
        raise


def eventbridge_adapter(
    router: WebhookRouter,
    on_error: Optional[ErrorCallback] = None,
) -> Callable[[dict, Any], None]:
    """Create a Lambda handler for EventBridge-delivered webhook events.

    Failures propagate so Lambda's retry and dead-letter policy applies.
    """

    def handler(eventbridge_event: dict, context: Any) -> None:
        asyncio.run(handle_eventbridge_event(router, eventbridge_event, on_error))

    return handler
