"""Data models for verified webhook events."""

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from src.events.exceptions import PayloadError


@dataclass(frozen=True)
class WebhookEvent:
    """A verified webhook occurrence.

    Frozen so that handlers and middleware cannot change ``type`` and with it
    the routing decision. Middleware that needs a different event passes a
    new instance to ``next``.
    """

    id: str
    type: str
    data: dict = field(default_factory=dict)

    def replace(self, **changes: Any) -> "WebhookEvent":
        """Return a copy with the given fields changed."""
        values = {"id": self.id, "type": self.type, "data": self.data}
        values.update(changes)
        return WebhookEvent(**values)

    def to_dict(self) -> dict:
        """Convert to a JSON-serialisable dictionary."""
        return {"id": self.id, "type": self.type, "data": self.data}


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a successful verification."""

    event: WebhookEvent
    raw: Optional[Any] = None


def parse_event(payload: Union[bytes, str, dict, Any]) -> WebhookEvent:
    """Build a WebhookEvent from a raw body or an already-decoded object.

    Args:
        payload: Raw JSON bytes/str, or a decoded mapping

    Returns:
        WebhookEvent

    Raises:
        PayloadError: If the body is not JSON or a required field is
            missing or has the wrong type
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadError(f"Payload is not valid UTF-8: {e}") from e

    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise PayloadError(f"Payload is not valid JSON: {e.msg}") from e

    if not isinstance(payload, dict):
        raise PayloadError("Invalid payload: must be a JSON object")

    for name in ("id", "type"):
        value = payload.get(name)
        if not isinstance(value, str) or not value:
            raise PayloadError(
                f'Invalid payload: missing or invalid "{name}" field', field=name
            )

    data = payload.get("data")
    if not isinstance(data, dict):
        raise PayloadError(
            'Invalid payload: missing or invalid "data" field', field="data"
        )

    return WebhookEvent(id=payload["id"], type=payload["type"], data=data)
