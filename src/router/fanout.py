"""Concurrent fan-out of one event to several handlers."""

import asyncio
import inspect
import logging
from typing import Callable, Literal, Optional, Sequence

from src.events.models import WebhookEvent
from src.router.registry import Handler, callable_name, invoke

logger = logging.getLogger(__name__)

FanoutStrategy = Literal["all-or-nothing", "best-effort"]
STRATEGIES = ("all-or-nothing", "best-effort")


def make_fanout_handler(
    handlers: Sequence[Handler],
    strategy: FanoutStrategy = "all-or-nothing",
    on_error: Optional[Callable[[Exception], object]] = None,
) -> Handler:
    """Wrap several handlers into one handler that runs them concurrently.

    With ``all-or-nothing`` the first failure fails the wrapper. With
    ``best-effort`` failures are passed to ``on_error`` and swallowed.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown fanout strategy: {strategy}")

    inner = list(handlers)

    async def fanout_handler(event: WebhookEvent) -> None:
        if strategy == "all-or-nothing":
            await asyncio.gather(*(invoke(h, event) for h in inner))
            return

        results = await asyncio.gather(
            *(invoke(h, event) for h in inner), return_exceptions=True
        )
        for handler, result in zip(inner, results):
            if not isinstance(result, Exception):
                continue
            logger.warning(
                f"Fanout handler {callable_name(handler)} failed for {event.type}: {result}"
            )
            if on_error is not None:
                outcome = on_error(result)
                if inspect.isawaitable(outcome):
                    await outcome

    fanout_handler.__name__ = fanout_handler.__qualname__ = (
        f"fanout[{', '.join(callable_name(h) for h in inner)}]"
    )
    return fanout_handler
