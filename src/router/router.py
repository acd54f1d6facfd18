"""Webhook event router."""

import logging
from typing import Callable, Generic, Optional, Sequence, TypeVar, Union

from src.events.exceptions import HandlerError, HandlerFailure
from src.events.models import WebhookEvent
from src.router.fanout import FanoutStrategy, make_fanout_handler
from src.router.middleware import Middleware, run_pipeline
from src.router.registry import (
    Handler,
    HandlerRegistry,
    callable_name,
    invoke,
    validate_event_type,
)

logger = logging.getLogger(__name__)

EventTypeT = TypeVar("EventTypeT", bound=str)


def _validate_prefix(prefix: str, kind: str) -> str:
    if not isinstance(prefix, str) or not prefix.strip():
        raise ValueError(f"{kind} prefix cannot be an empty string or whitespace")
    return prefix


class WebhookRouter(Generic[EventTypeT]):
    """Routes verified webhook events to the handlers registered for their type.

    Handlers for one event run one after another in registration order. A
    failing handler does not stop the ones after it; once all have run,
    dispatch raises HandlerError listing every failure.

    Registration (``on``, ``use``, ``route``, ``group``, ``fanout``) is meant
    to finish before the first dispatch. After that the router is only read,
    so concurrent dispatches need no locking.
    """

    def __init__(self):
        self._registry = HandlerRegistry()
        self._middlewares: list[Middleware] = []

    def on(
        self,
        event_type: Union[EventTypeT, Sequence[EventTypeT]],
        handler: Optional[Handler] = None,
    ):
        """Register a handler for one or more event types.

        Can be used directly, ``router.on("invoice.paid", handler)``, or as a
        decorator, ``@router.on("invoice.paid")``.

        Args:
            event_type: Event type or list of event types
            handler: Handler coroutine function (omit to use as decorator)

        Returns:
            The router for chaining, or a decorator when handler is omitted
        """
        if handler is None:
            def decorator(fn: Handler) -> Handler:
                self.on(event_type, fn)
                return fn
            return decorator

        if isinstance(event_type, str):
            types = [event_type]
        else:
            types = list(event_type)
            if not types:
                logger.warning("WebhookRouter.on(): empty event type list, no handlers registered")
                return self

        for name in types:
            validate_event_type(name)
        for name in types:
            self._registry.add(name, handler)
            logger.debug(f"Registered handler {callable_name(handler)} for {name}")
        return self

    def use(self, middleware: Middleware) -> "WebhookRouter[EventTypeT]":
        """Append a middleware to the pipeline."""
        if not callable(middleware):
            raise TypeError("Middleware must be callable")
        self._middlewares.append(middleware)
        return self

    def route(self, prefix: str, router: "WebhookRouter") -> "WebhookRouter[EventTypeT]":
        """Mount the handlers of another router under ``prefix``.

        Handlers registered on ``router`` for ``created`` become handlers for
        ``<prefix>.created`` here. The nested router's middleware is not
        mounted, and later registrations on it are not picked up.
        """
        _validate_prefix(prefix, "Route")
        for event_type, handlers in router._registry.items():
            self._registry.extend(f"{prefix}.{event_type}", list(handlers))
        return self

    def group(
        self,
        prefix: str,
        callback: Callable[["PrefixedRouter"], object],
    ) -> "WebhookRouter[EventTypeT]":
        """Register several handlers that share a type prefix."""
        _validate_prefix(prefix, "Group")
        callback(PrefixedRouter(prefix, self))
        return self

    def fanout(
        self,
        event_type: EventTypeT,
        handlers: Sequence[Handler],
        strategy: FanoutStrategy = "all-or-nothing",
        on_error: Optional[Callable[[Exception], object]] = None,
    ) -> "WebhookRouter[EventTypeT]":
        """Register handlers that run concurrently as a single handler."""
        validate_event_type(event_type)
        self._registry.add(event_type, make_fanout_handler(handlers, strategy, on_error))
        return self

    def handlers_for(self, event_type: str) -> tuple[Handler, ...]:
        """Return the handlers registered for an event type."""
        return self._registry.get(event_type)

    def event_types(self) -> list[str]:
        """Return every event type with at least one handler."""
        return self._registry.event_types()

    @property
    def middlewares(self) -> tuple[Middleware, ...]:
        return tuple(self._middlewares)

    async def dispatch(self, event: WebhookEvent) -> int:
        """Run an event through the middleware and its handlers.

        Args:
            event: Verified webhook event

        Returns:
            Number of handlers invoked

        Raises:
            MiddlewareError: If a middleware aborted; no handler ran
            HandlerError: If one or more handlers failed; all of them ran
        """
        if not isinstance(event, WebhookEvent):
            raise TypeError(f"dispatch() expects a WebhookEvent, got {type(event).__name__}")

        invoked = 0

        async def run_handlers(current: WebhookEvent) -> None:
            nonlocal invoked
            handlers = self._registry.get(current.type)
            if not handlers:
                logger.debug(f"No handlers registered for {current.type} ({current.id})")
                return

            failures: list[HandlerFailure] = []
            for handler in handlers:
                invoked += 1
                try:
                    await invoke(handler, current)
                except Exception as e:
                    name = callable_name(handler)
                    logger.error(f"Handler {name} failed for {current.type} ({current.id}): {e}")
                    failures.append(HandlerFailure(handler=name, error=e))

            if failures:
                raise HandlerError(current.type, failures)

        await run_pipeline(self._middlewares, event, run_handlers)
        return invoked


class PrefixedRouter:
    """View of a WebhookRouter that prefixes every event type it registers."""

    def __init__(self, prefix: str, parent: WebhookRouter):
        self.prefix = prefix
        self.parent = parent

    def on(self, event_type: Union[str, Sequence[str]], handler: Optional[Handler] = None):
        """Register a handler for ``<prefix>.<event_type>``."""
        if isinstance(event_type, str):
            full = f"{self.prefix}.{validate_event_type(event_type)}"
        else:
            full = [f"{self.prefix}.{validate_event_type(t)}" for t in event_type]
        result = self.parent.on(full, handler)
        return self if handler is not None else result

    def use(self, middleware: Middleware) -> "PrefixedRouter":
        """Add middleware to the parent router; it applies to every event."""
        self.parent.use(middleware)
        return self
