"""Redis connection management with retry on transient errors."""

import functools
import logging
import time
from typing import Any, Callable, Optional

import redis
from redis.connection import ConnectionPool
from redis.exceptions import ConnectionError, TimeoutError as RedisTimeoutError

logger = logging.getLogger(__name__)


def retry_with_exponential_backoff(
    max_retries: int = 5,
    base_delay: float = 0.1,
    max_delay: float = 30.0,
    retryable_exceptions: tuple = (ConnectionError, RedisTimeoutError),
) -> Callable:
    """Decorator for retrying Redis calls with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        retryable_exceptions: Exceptions that trigger a retry
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt >= max_retries:
                        logger.error(f"Max retries ({max_retries}) reached for {func.__name__}")
                        raise
                    delay = min(base_delay * (2 ** attempt), max_delay)
                    logger.warning(
                        f"Retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {delay:.2f}s delay. Error: {e}"
                    )
                    time.sleep(delay)
        return wrapper
    return decorator


class RedisConnection:
    """Lazily creates a pooled Redis client.

    An existing client can be passed in, which is how tests inject a mock.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        max_connections: int = 10,
        client: Optional[redis.Redis] = None,
    ):
        self.url = url
        self._max_connections = max_connections
        self._pool: Optional[ConnectionPool] = None
        self._client = client
        self._owns_client = client is None

    def connect(self) -> redis.Redis:
        """Create and return a Redis client."""
        if self._client is None:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=self._max_connections,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)
        return self._client

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            return self.connect()
        return self._client

    @retry_with_exponential_backoff(max_retries=3, base_delay=0.1, max_delay=5.0)
    def ping(self) -> bool:
        """Check if Redis is available."""
        return self.client.ping()

    def close(self):
        """Close the client and pool if this connection created them."""
        if not self._owns_client:
            return
        if self._client:
            self._client.close()
            self._client = None
        if self._pool:
            self._pool.disconnect()
            self._pool = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
