"""Middleware pipeline for webhook dispatch."""

import logging
import time
from typing import Awaitable, Callable, Optional, Sequence

from src.events.exceptions import HandlerError, MiddlewareError
from src.events.models import WebhookEvent
from src.router.registry import callable_name

logger = logging.getLogger(__name__)

Next = Callable[..., Awaitable[None]]
Middleware = Callable[[WebhookEvent, Next], Awaitable[None]]
Terminal = Callable[[WebhookEvent], Awaitable[None]]


async def run_pipeline(
    middlewares: Sequence[Middleware],
    event: WebhookEvent,
    terminal: Terminal,
) -> None:
    """Run middleware in order, then the terminal step with the final event.

    Each middleware gets the current event and a ``next`` coroutine. Calling
    ``next(replacement)`` continues with a different event. A middleware
    that returns without calling ``next`` or raises aborts the pipeline with
    MiddlewareError. Errors raised by the terminal step pass through
    untouched.

    Args:
        middlewares: Middleware in registration order
        event: Event entering the pipeline
        terminal: Coroutine run once after the last middleware

    Raises:
        MiddlewareError: If a stage aborts or raises
    """

    async def step(index: int, current: WebhookEvent) -> None:
        if index == len(middlewares):
            await terminal(current)
            return

        middleware = middlewares[index]
        name = callable_name(middleware)
        called = False

        async def next_(replacement: Optional[WebhookEvent] = None) -> None:
            nonlocal called
            if called:
                raise MiddlewareError(
                    f"Middleware {name} called next() multiple times", middleware=name
                )
            called = True
            if replacement is not None and not isinstance(replacement, WebhookEvent):
                raise MiddlewareError(
                    f"Middleware {name} passed a non-event to next()", middleware=name
                )
            await step(index + 1, replacement if replacement is not None else current)

        try:
            await middleware(current, next_)
        except (HandlerError, MiddlewareError):
            raise
        except Exception as e:
            raise MiddlewareError(
                f"Middleware {name} failed: {e}", middleware=name
            ) from e

        if not called:
            raise MiddlewareError(
                f"Middleware {name} aborted processing of {current.type}",
                middleware=name,
            )

    await step(0, event)


def logging_middleware(log: Optional[logging.Logger] = None) -> Middleware:
    """Create a middleware that logs every event and its outcome."""
    log = log or logger

    async def log_event(event: WebhookEvent, next: Next) -> None:
        started = time.monotonic()
        log.info(
            f"Received webhook {event.type} ({event.id})",
            extra={"event_type": event.type, "event_id": event.id},
        )
        try:
            await next()
        except Exception as e:
            elapsed_ms = (time.monotonic() - started) * 1000
            log.warning(
                f"Webhook {event.type} ({event.id}) failed after {elapsed_ms:.1f}ms: {e}",
                extra={"event_type": event.type, "event_id": event.id},
            )
            raise
        elapsed_ms = (time.monotonic() - started) * 1000
        log.info(
            f"Processed webhook {event.type} ({event.id}) in {elapsed_ms:.1f}ms",
            extra={"event_type": event.type, "event_id": event.id},
        )

    return log_event
