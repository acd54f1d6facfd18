"""Per-event-type payload validation with pydantic models."""

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Mapping, NamedTuple, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from src.events.exceptions import UnknownEventTypeError, WebhookValidationError
from src.events.models import WebhookEvent
from src.router.middleware import Middleware, Next
from src.router.registry import validate_event_type

logger = logging.getLogger(__name__)

ValidationErrorCallback = Callable[
    [Union[WebhookValidationError, UnknownEventTypeError]],
    Union[Awaitable[None], None],
]


class EventSchema(NamedTuple):
    """An event type paired with the model for its ``data``."""

    type: str
    model: Type[BaseModel]


def define_event(event_type: str, model: Type[BaseModel]) -> EventSchema:
    """Pair an event type with the pydantic model describing its data.

    Example:
        class IssueOpened(BaseModel):
            id: int
            title: str

        issue_opened = define_event("issue.opened", IssueOpened)
    """
    validate_event_type(event_type)
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise TypeError(f"Schema for {event_type} must be a pydantic model class")
    return EventSchema(event_type, model)


@dataclass(frozen=True)
class ParseResult:
    """Outcome of SchemaRegistry.safe_parse."""

    success: bool
    event: Optional[WebhookEvent] = None
    error: Optional[WebhookValidationError] = None


class SchemaRegistry:
    """Maps event types to the pydantic models their data must satisfy.

    Validated data is dumped back to a dict, so defaults, coercions and
    dropped extra keys show up in the event handlers receive. Types
    without a model pass through unchanged.
    """

    def __init__(self):
        self._schemas: dict[str, Type[BaseModel]] = {}

    def register(self, event_type: str, model: Type[BaseModel]) -> "SchemaRegistry":
        schema = define_event(event_type, model)
        self._schemas[schema.type] = schema.model
        return self

    def register_all(
        self,
        definitions: Union[Mapping[str, Type[BaseModel]], Iterable[EventSchema]],
    ) -> "SchemaRegistry":
        """Register several schemas from a type-to-model mapping or EventSchema list."""
        items = definitions.items() if isinstance(definitions, Mapping) else definitions
        for event_type, model in items:
            self.register(event_type, model)
        return self

    def get(self, event_type: str) -> Optional[Type[BaseModel]]:
        return self._schemas.get(event_type)

    def has(self, event_type: str) -> bool:
        return event_type in self._schemas

    __contains__ = has

    def __len__(self) -> int:
        return len(self._schemas)

    def validate(self, event: WebhookEvent) -> WebhookEvent:
        """Validate an event's data against its model.

        Returns:
            The event with validated data, or the same event if no model is registered

        Raises:
            WebhookValidationError: If the data does not match the model
        """
        model = self._schemas.get(event.type)
        if model is None:
            return event
        try:
            validated = model.model_validate(event.data)
        except ValidationError as e:
            raise WebhookValidationError(event.type, e) from e
        return event.replace(data=validated.model_dump())

    def safe_parse(self, event: WebhookEvent) -> ParseResult:
        """Like validate(), but report failure in the result instead of raising."""
        try:
            return ParseResult(success=True, event=self.validate(event))
        except WebhookValidationError as e:
            return ParseResult(success=False, error=e)


def check_known(registry: SchemaRegistry, event: WebhookEvent, allow_unknown_events: bool) -> bool:
    """Return whether a model is registered for the event type.

    Raises:
        UnknownEventTypeError: If none is and unknown types are not allowed
    """
    if registry.has(event.type):
        return True
    if not allow_unknown_events:
        raise UnknownEventTypeError(event.type)
    return False


def validation_middleware(
    registry: SchemaRegistry,
    allow_unknown_events: bool = True,
    on_error: Optional[ValidationErrorCallback] = None,
) -> Middleware:
    """Create a middleware that validates events before handlers run.

    Handlers receive the validated event through ``next(validated)``. A
    validation failure, or an unregistered type when ``allow_unknown_events``
    is False, is passed to ``on_error`` and then raised, which aborts the
    dispatch.

    Example:
        router.use(validation_middleware(SchemaRegistry().register_all([issue_opened])))
    """

    async def validate_event(event: WebhookEvent, next: Next) -> None:
        try:
            known = check_known(registry, event, allow_unknown_events)
            validated = registry.validate(event) if known else event
        except (WebhookValidationError, UnknownEventTypeError) as e:
            logger.warning(f"Rejected {event.type} ({event.id}): {e}")
            if on_error is not None:
                result = on_error(e)
                if inspect.isawaitable(result):
                    await result
            raise
        await next(validated)

    return validate_event
