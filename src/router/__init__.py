"""Event router, middleware pipeline and handler registry."""

from src.router.fanout import FanoutStrategy, make_fanout_handler
from src.router.middleware import Middleware, Next, logging_middleware, run_pipeline
from src.router.registry import Handler, HandlerRegistry
from src.router.router import PrefixedRouter, WebhookRouter
from src.router.stripe import STRIPE_EVENT_TYPES, StripeEventName, StripeWebhookRouter
from src.router.validation import EventSchema, SchemaRegistry, define_event, validation_middleware

__all__ = [
    "WebhookRouter",
    "PrefixedRouter",
    "StripeWebhookRouter",
    "StripeEventName",
    "STRIPE_EVENT_TYPES",
    "HandlerRegistry",
    "Handler",
    "Middleware",
    "Next",
    "FanoutStrategy",
    "make_fanout_handler",
    "logging_middleware",
    "run_pipeline",
    "SchemaRegistry",
    "EventSchema",
    "define_event",
    "validation_middleware",
]
