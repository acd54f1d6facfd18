"""Transport adapters translating native calls into verify/dispatch."""

from src.adapters.asgi import fastapi_adapter
from src.adapters.aws_lambda import handle_api_gateway_event, lambda_adapter
from src.adapters.eventbridge import event_from_detail, eventbridge_adapter, handle_eventbridge_event
from src.adapters.redis_stream import StreamWebhookConsumer

__all__ = [
    "fastapi_adapter",
    "lambda_adapter",
    "handle_api_gateway_event",
    "eventbridge_adapter",
    "handle_eventbridge_event",
    "event_from_detail",
    "StreamWebhookConsumer",
]
