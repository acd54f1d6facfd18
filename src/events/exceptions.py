"""Webhook routing exception classes."""

from dataclasses import dataclass
from typing import Optional


class WebhookError(Exception):
    """Base exception for webhook routing errors."""
    pass


class VerificationError(WebhookError):
    """Raised when a signature is missing, malformed or does not match."""
    def __init__(self, message: str = "Signature verification failed"):
        super().__init__(message)


class PayloadError(WebhookError):
    """Raised when a payload is not JSON or lacks a required field."""
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class MiddlewareError(WebhookError):
    """Raised when a middleware stage aborts the pipeline."""
    def __init__(self, message: str, middleware: Optional[str] = None):
        self.middleware = middleware
        super().__init__(message)


@dataclass
class HandlerFailure:
    """A single handler that raised during dispatch."""

    handler: str
    error: BaseException


class HandlerError(WebhookError):
    """Raised after dispatch when one or more handlers failed."""
    def __init__(self, event_type: str, failures: list[HandlerFailure]):
        self.event_type = event_type
        self.failures = failures
        names = ", ".join(f"{f.handler} ({f.error!r})" for f in failures)
        super().__init__(
            f"{len(failures)} handler(s) failed for {event_type}: {names}"
        )


class WebhookValidationError(PayloadError):
    """Raised when an event's data does not match its registered schema."""
    def __init__(self, event_type: str, errors: Exception):
        self.event_type = event_type
        self.errors = errors
        super().__init__(
            f'Validation failed for event type "{event_type}": {errors}', field="data"
        )


class UnknownEventTypeError(PayloadError):
    """Raised when no schema is registered for an event type and unknown types are rejected."""
    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f'Unknown event type: "{event_type}"', field="type")
