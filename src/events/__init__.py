"""Webhook event model and error types."""

from src.events.exceptions import (
    HandlerError,
    HandlerFailure,
    MiddlewareError,
    PayloadError,
    UnknownEventTypeError,
    VerificationError,
    WebhookError,
    WebhookValidationError,
)
from src.events.models import VerifyResult, WebhookEvent, parse_event

__all__ = [
    "WebhookEvent",
    "VerifyResult",
    "parse_event",
    "WebhookError",
    "VerificationError",
    "PayloadError",
    "MiddlewareError",
    "HandlerError",
    "HandlerFailure",
    "WebhookValidationError",
    "UnknownEventTypeError",
]
