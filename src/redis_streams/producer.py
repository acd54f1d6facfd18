"""Publishes webhook events onto a Redis stream."""

import logging
from typing import Optional

import redis

from src.events.models import WebhookEvent
from src.redis_streams.connection import RedisConnection
from src.redis_streams.exceptions import PayloadTooLargeError, RedisStreamsError
from src.redis_streams.models import EventMessage

logger = logging.getLogger(__name__)

# Maximum payload size: 1MB
MAX_PAYLOAD_SIZE = 1024 * 1024


class StreamProducer:
    """Produces webhook events to a Redis stream."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        stream_name: str = "webhooks",
        max_length: int = 10000,
        client: Optional[redis.Redis] = None,
    ):
        """Initialize StreamProducer.

        Args:
            redis_url: Redis connection URL
            stream_name: Name of the stream to produce to
            max_length: Approximate maximum stream length
            client: Optional pre-built Redis client
        """
        self._connection = RedisConnection(redis_url, client=client)
        self.stream_name = stream_name
        self.max_length = max_length

    @property
    def client(self) -> redis.Redis:
        return self._connection.client

    def publish_raw(
        self,
        event_type: str,
        payload: str,
        headers: Optional[dict] = None,
    ) -> str:
        """Publish an unverified webhook body with its headers.

        The consumer is then expected to run a verifier over it.

        Returns:
            Redis message ID

        Raises:
            PayloadTooLargeError: If payload exceeds 1MB
        """
        if len(payload.encode("utf-8")) > MAX_PAYLOAD_SIZE:
            raise PayloadTooLargeError(len(payload.encode("utf-8")), MAX_PAYLOAD_SIZE)

        message = EventMessage(
            id="",
            stream=self.stream_name,
            event_type=event_type,
            payload=payload,
            metadata={"headers": headers} if headers else {},
        )
        return self._xadd(message)

    def publish(self, event: WebhookEvent) -> str:
        """Publish a verified webhook event.

        Returns:
            Redis message ID
        """
        message = EventMessage.from_webhook_event(event, stream=self.stream_name)
        if len(message.payload) > MAX_PAYLOAD_SIZE:
            raise PayloadTooLargeError(len(message.payload), MAX_PAYLOAD_SIZE)
        return self._xadd(message)

    def _xadd(self, message: EventMessage) -> str:
        try:
            message_id = self.client.xadd(
                self.stream_name,
                message.to_dict(),
                maxlen=self.max_length,
                approximate=True,
            )
        except redis.ResponseError as e:
            raise RedisStreamsError(f"Failed to publish event: {e}") from e
        logger.debug(f"Published {message.event_type} to {self.stream_name} as {message_id}")
        return message_id

    def close(self):
        """Close connection."""
        self._connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
