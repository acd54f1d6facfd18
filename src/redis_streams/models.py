"""Stream entry models for webhook events carried on Redis Streams."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from src.events.models import WebhookEvent


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class EventMessage:
    """A webhook event as stored in a stream entry.

    ``payload`` is the JSON body exactly as received so a verifier can still
    check its signature on the consuming side; ``metadata["headers"]`` holds
    the headers that came with it.
    """

    id: str
    stream: str
    event_type: str
    payload: str
    timestamp: str = field(default_factory=_now)
    metadata: dict = field(default_factory=dict)

    @classmethod
    def from_redis(cls, stream: str, message_id: str, values: dict) -> "EventMessage":
        """Create EventMessage from Redis message format.

        Args:
            stream: Stream name
            message_id: Redis message ID
            values: Message values dict

        Returns:
            EventMessage instance
        """
        try:
            metadata = json.loads(values.get("metadata") or "{}")
        except json.JSONDecodeError:
            metadata = {}
        return cls(
            id=message_id,
            stream=stream,
            event_type=values.get("event_type", ""),
            payload=values.get("payload", ""),
            timestamp=values.get("timestamp") or _now(),
            metadata=metadata if isinstance(metadata, dict) else {},
        )

    @classmethod
    def from_webhook_event(
        cls,
        event: WebhookEvent,
        stream: str = "",
        headers: Optional[dict] = None,
    ) -> "EventMessage":
        """Wrap an already-verified event for publishing."""
        metadata = {"headers": headers} if headers else {}
        return cls(
            id="",
            stream=stream,
            event_type=event.type,
            payload=json.dumps(event.to_dict()),
            metadata=metadata,
        )

    @property
    def headers(self) -> dict:
        headers = self.metadata.get("headers")
        return headers if isinstance(headers, dict) else {}

    def to_dict(self) -> dict:
        """Convert to dictionary for Redis storage."""
        return {
            "event_type": self.event_type,
            "timestamp": self.timestamp,
            "payload": self.payload,
            "metadata": json.dumps(self.metadata),
        }


@dataclass
class PendingMessage:
    """Represents a pending (unacknowledged) message."""

    id: str
    consumer: str
    idle_ms: int
    delivered: int

    @classmethod
    def from_redis(cls, pending: dict) -> "PendingMessage":
        """Create PendingMessage from an XPENDING range entry."""
        return cls(
            id=pending["message_id"],
            consumer=pending["consumer"],
            idle_ms=pending["time_since_delivered"],
            delivered=pending["times_delivered"],
        )
