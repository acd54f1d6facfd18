"""Helpers shared by transport adapters."""

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from src.events.models import WebhookEvent

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Exception, Optional[WebhookEvent]], Union[Awaitable[None], None]]

INTERNAL_ERROR = "Internal server error"


async def report_error(
    on_error: Optional[ErrorCallback],
    error: Exception,
    event: Optional[WebhookEvent],
) -> None:
    """Pass a dispatch failure to the adapter's error callback.

    Failures inside the callback are logged and dropped so the original
    error still decides the transport response.
    """
    if on_error is None:
        return
    try:
        result = on_error(error, event)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Error callback raised while handling {error!r}: {e}")


def error_message(error: Exception, default: str = "Verification failed") -> str:
    message = str(error)
    return message or default
