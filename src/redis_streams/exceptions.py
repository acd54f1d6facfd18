"""Redis Streams exception classes."""


class RedisStreamsError(Exception):
    """Base exception for Redis Streams errors."""
    pass


class GroupNotFoundError(RedisStreamsError):
    """Raised when a consumer group does not exist."""
    def __init__(self, group: str, stream: str = None):
        self.group = group
        self.stream = stream
        msg = f"Consumer group not found: {group}"
        if stream:
            msg += f" (stream: {stream})"
        super().__init__(msg)


class PayloadTooLargeError(RedisStreamsError):
    """Raised when a webhook body exceeds the stream entry size limit."""
    def __init__(self, size: int, max_size: int = 1024 * 1024):
        self.size = size
        self.max_size = max_size
        super().__init__(f"Payload size {size} exceeds maximum {max_size} bytes")

