"""Redis Streams consumer built on consumer groups."""

import logging
import threading
import time
from typing import Callable, List, Optional

import redis
from redis.exceptions import ResponseError

from src.redis_streams.connection import RedisConnection
from src.redis_streams.exceptions import GroupNotFoundError, RedisStreamsError
from src.redis_streams.models import EventMessage, PendingMessage

logger = logging.getLogger(__name__)

MessageCallback = Callable[[EventMessage], bool]


class StreamConsumer:
    """Consumes entries from a Redis stream as a member of a consumer group.

    The callback returns True to acknowledge an entry. Returning False or
    raising leaves the entry pending; entries idle longer than
    ``reclaim_min_idle_ms`` are claimed again and redelivered, up to
    ``max_deliveries`` times.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        stream: str = "webhooks",
        group: str = "webhook-routers",
        consumer: str = "consumer-1",
        block_ms: int = 5000,
        count: int = 10,
        reclaim_interval_ms: int = 30000,
        reclaim_min_idle_ms: int = 60000,
        max_deliveries: int = 5,
        client: Optional[redis.Redis] = None,
    ):
        """Initialize StreamConsumer.

        Args:
            redis_url: Redis connection URL
            stream: Stream name
            group: Consumer group name
            consumer: Consumer name (unique within group)
            block_ms: Blocking timeout in milliseconds
            count: Max messages to fetch at once
            reclaim_interval_ms: How often to look for stale entries (0 = never)
            reclaim_min_idle_ms: Min idle time before an entry is reclaimed
            max_deliveries: Entries delivered this many times are dropped
            client: Optional pre-built Redis client
        """
        self._connection = RedisConnection(redis_url, client=client)
        self.stream = stream
        self.group = group
        self.consumer = consumer
        self.block_ms = block_ms
        self.count = count
        self.reclaim_interval_ms = reclaim_interval_ms
        self.reclaim_min_idle_ms = reclaim_min_idle_ms
        self.max_deliveries = max_deliveries

        self._base_retry_delay = 1.0
        self._max_retry_delay = 30.0
        self._last_reclaim = 0.0
        self._running = False
        self._stop_event = threading.Event()

    @property
    def client(self) -> redis.Redis:
        return self._connection.client

    def ping(self) -> bool:
        """Check that Redis is reachable, retrying transient errors."""
        return self._connection.ping()

    def ensure_group(self, start_id: str = "$") -> bool:
        """Create the consumer group (and stream) if missing.

        Returns:
            True if created, False if it already existed
        """
        try:
            self.client.xgroup_create(self.stream, self.group, id=start_id, mkstream=True)
            logger.info(f"Created consumer group {self.group} on {self.stream}")
            return True
        except ResponseError as e:
            if "BUSYGROUP" in str(e).upper():
                return False
            raise RedisStreamsError(f"Failed to create group: {e}") from e

    def _handle(self, message_id: str, values: dict, stream: str, callback: MessageCallback) -> None:
        try:
            message = EventMessage.from_redis(stream, message_id, values)
            if callback(message):
                self.acknowledge(message_id)
        except Exception as e:
            logger.error(f"Error processing message {message_id}: {e}")

    def poll(self, callback: MessageCallback) -> int:
        """Read one batch of new entries and hand each to the callback.

        Returns:
            Number of entries read
        """
        try:
            response = self.client.xreadgroup(
                groupname=self.group,
                consumername=self.consumer,
                streams={self.stream: ">"},
                count=self.count,
                block=self.block_ms,
            )
        except ResponseError as e:
            if "NOGROUP" in str(e).upper():
                raise GroupNotFoundError(self.group, self.stream) from e
            raise RedisStreamsError(f"Failed to read from stream: {e}") from e

        processed = 0
        for stream_name, entries in response or []:
            for message_id, values in entries:
                self._handle(message_id, values, stream_name, callback)
                processed += 1
        return processed

    def subscribe(self, callback: MessageCallback) -> None:
        """Consume entries until close() is called.

        Args:
            callback: Called with each EventMessage; return True to acknowledge
        """
        self._running = True
        self._stop_event.clear()
        logger.info(
            f"Starting consumer {self.consumer} in group {self.group} on stream {self.stream}"
        )

        retry_delay = self._base_retry_delay
        group_ready = False
        while self._running and not self._stop_event.is_set():
            try:
                if not group_ready:
                    self.ensure_group()
                    group_ready = True
                self._maybe_reclaim(callback)
                self.poll(callback)
                retry_delay = self._base_retry_delay
            except redis.exceptions.TimeoutError:
                continue
            except GroupNotFoundError as e:
                logger.warning(f"{e}, recreating")
                group_ready = False
            except (redis.exceptions.ConnectionError, RedisStreamsError) as e:
                logger.error(f"Consumer error: {e}")
                if self._running:
                    logger.info(f"Retrying in {retry_delay}s...")
                    self._stop_event.wait(timeout=retry_delay)
                    retry_delay = min(retry_delay * 2, self._max_retry_delay)

        logger.info(f"Consumer {self.consumer} stopped")

    def _maybe_reclaim(self, callback: MessageCallback) -> None:
        if self.reclaim_interval_ms <= 0:
            return
        now = time.monotonic()
        if (now - self._last_reclaim) * 1000 < self.reclaim_interval_ms:
            return
        self._last_reclaim = now
        reclaimed = self.reclaim_stale_messages(callback)
        if reclaimed:
            logger.info(f"Redelivered {reclaimed} stale messages")

    def acknowledge(self, message_id: str) -> int:
        """Acknowledge a processed entry.

        Raises:
            RedisStreamsError: If acknowledgment fails
        """
        try:
            result = self.client.xack(self.stream, self.group, message_id)
            logger.debug(f"Acknowledged message {message_id}")
            return result
        except ResponseError as e:
            raise RedisStreamsError(f"Failed to acknowledge message: {e}") from e

    def get_pending(self, count: int = 100) -> List[PendingMessage]:
        """List pending (delivered but unacknowledged) entries for the group."""
        try:
            pending = self.client.xpending_range(
                self.stream, self.group, min="-", max="+", count=count
            )
        except ResponseError as e:
            if "NOGROUP" in str(e).upper():
                raise GroupNotFoundError(self.group, self.stream) from e
            logger.error(f"Failed to get pending messages: {e}")
            return []
        return [PendingMessage.from_redis(p) for p in pending]

    def reclaim_stale_messages(self, callback: MessageCallback) -> int:
        """Claim entries idle too long and process them again.

        Entries already delivered ``max_deliveries`` times are acknowledged
        and logged instead, so one bad entry cannot block the group forever.

        Returns:
            Number of entries redelivered to the callback
        """
        stale = [p for p in self.get_pending() if p.idle_ms >= self.reclaim_min_idle_ms]
        if not stale:
            return 0

        retry_ids = []
        for pending in stale:
            if self.max_deliveries and pending.delivered >= self.max_deliveries:
                logger.error(
                    f"Dropping message {pending.id} after {pending.delivered} deliveries"
                )
                self.acknowledge(pending.id)
            else:
                retry_ids.append(pending.id)

        if not retry_ids:
            return 0

        try:
            claimed = self.client.xclaim(
                self.stream,
                self.group,
                self.consumer,
                min_idle_time=self.reclaim_min_idle_ms,
                message_ids=retry_ids,
            )
        except ResponseError as e:
            logger.error(f"Failed to claim stale messages: {e}")
            return 0

        for message_id, values in claimed:
            if values is None:
                continue
            self._handle(message_id, values, self.stream, callback)
        return len(claimed)

    def close(self):
        """Gracefully stop consuming and close connection."""
        self._running = False
        self._stop_event.set()
        self._connection.close()
        logger.info(f"Consumer {self.consumer} closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
