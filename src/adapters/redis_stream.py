"""Event-bus adapter: dispatches webhook events read from a Redis stream."""

import asyncio
import logging
from typing import Optional

from src.adapters.base import ErrorCallback, report_error
from src.events.exceptions import PayloadError, VerificationError
from src.events.models import WebhookEvent, parse_event
from src.redis_streams.consumer import StreamConsumer
from src.redis_streams.models import EventMessage
from src.router.router import WebhookRouter
from src.verifiers.base import Verifier, normalize_headers, run_verifier

logger = logging.getLogger(__name__)


class StreamWebhookConsumer:
    """Feeds stream entries through an optional verifier into a router.

    Entries whose body fails verification or validation are acknowledged
    and logged, since redelivering them cannot succeed. A dispatch failure
    is re-raised to the StreamConsumer, which leaves the entry pending for
    redelivery.
    """

    def __init__(
        self,
        router: WebhookRouter,
        consumer: StreamConsumer,
        verifier: Optional[Verifier] = None,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.router = router
        self.consumer = consumer
        self.verifier = verifier
        self.on_error = on_error
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def _event_from_message(self, message: EventMessage) -> WebhookEvent:
        if self.verifier is None:
            return parse_event(message.payload)
        result = await run_verifier(
            self.verifier, message.payload, normalize_headers(message.headers)
        )
        return result.event

    async def handle_message(self, message: EventMessage) -> bool:
        """Verify and dispatch one entry.

        Returns:
            True when the entry should be acknowledged

        Raises:
            Exception: The dispatch failure, after on_error has seen it
        """
        try:
            event = await self._event_from_message(message)
        except (PayloadError, VerificationError) as e:
            logger.error(f"Discarding message {message.id} from {message.stream}: {e}")
            return True

        try:
            await self.router.dispatch(event)
        except Exception as e:
            logger.error(f"Dispatch failed for {event.type} ({event.id}), message {message.id}: {e}")
            await report_error(self.on_error, e, event)
            raise
        return True

    def __call__(self, message: EventMessage) -> bool:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(self.handle_message(message))

    def run(self) -> None:
        """Consume until close() is called."""
        self.consumer.subscribe(self)

    def close(self) -> None:
        self.consumer.close()
        if self._loop is not None and not self._loop.is_closed():
            self._loop.close()
