"""Handler registry keyed by event type."""

import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Iterator, Union

from src.events.models import WebhookEvent

Handler = Callable[[WebhookEvent], Union[Awaitable[None], None]]


def callable_name(fn: Any) -> str:
    """Best-effort readable name for a handler or middleware."""
    name = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None)
    return name or type(fn).__name__


def validate_event_type(event_type: Any) -> str:
    """Reject event types that are not non-empty strings."""
    if not isinstance(event_type, str):
        raise TypeError(f"Event type must be a string, got {type(event_type).__name__}")
    if not event_type.strip():
        raise ValueError("Event type cannot be an empty string or whitespace")
    return event_type


async def invoke(handler: Handler, event: WebhookEvent) -> None:
    """Call a handler, awaiting it if it is a coroutine function."""
    result = handler(event)
    if inspect.isawaitable(result):
        await result


class HandlerRegistry:
    """Ordered mapping of event type to handlers.

    Entries are created on first registration. Looking up a type that was
    never registered returns an empty tuple and does not create an entry.
    """

    def __init__(self):
        self._handlers: defaultdict[str, list[Handler]] = defaultdict(list)

    def add(self, event_type: str, handler: Handler) -> None:
        """Append a handler for an event type."""
        if not callable(handler):
            raise TypeError(f"Handler for {event_type} is not callable")
        self._handlers[validate_event_type(event_type)].append(handler)

    def extend(self, event_type: str, handlers: list[Handler]) -> None:
        """Append several handlers, preserving their order."""
        for handler in handlers:
            self.add(event_type, handler)

    def get(self, event_type: str) -> tuple[Handler, ...]:
        """Return the handlers for an event type in registration order."""
        return tuple(self._handlers.get(event_type, ()))

    def event_types(self) -> list[str]:
        """Return all event types with at least one handler."""
        return [t for t, handlers in self._handlers.items() if handlers]

    def items(self) -> Iterator[tuple[str, tuple[Handler, ...]]]:
        for event_type, handlers in self._handlers.items():
            yield event_type, tuple(handlers)

    def __contains__(self, event_type: object) -> bool:
        return bool(self._handlers.get(event_type))  # type: ignore[arg-type]

    def __len__(self) -> int:
        return sum(len(h) for h in self._handlers.values())
