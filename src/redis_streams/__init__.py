"""Redis Streams transport for webhook events."""

from src.redis_streams.connection import RedisConnection
from src.redis_streams.consumer import StreamConsumer
from src.redis_streams.exceptions import (
    GroupNotFoundError,
    PayloadTooLargeError,
    RedisStreamsError,
)
from src.redis_streams.models import EventMessage, PendingMessage
from src.redis_streams.producer import StreamProducer

__all__ = [
    "RedisConnection",
    "StreamConsumer",
    "StreamProducer",
    "EventMessage",
    "PendingMessage",
    "RedisStreamsError",
    "GroupNotFoundError",
    "PayloadTooLargeError",
]
