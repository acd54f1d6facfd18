#!/usr/bin/env python3
"""Command line entry point.

Usage:
    webhook-router serve --router myapp.hooks:router          # HTTP endpoint
    webhook-router consume --router myapp.hooks:router        # Redis stream consumer
    webhook-router sign --secret whsec_x '{"id": "evt_1", ...}'
"""

import argparse
import json
import logging
import socket
import sys
from typing import Optional

from src.config import WebhookSettings, load_settings, verifier_from_settings
from src.router.router import WebhookRouter
from src.utils import import_from_string
from src.verifiers.hmac_verifier import HMACVerifier
from src.verifiers.stripe import StripeVerifier

logger = logging.getLogger("webhook_router")


def load_router(target: str) -> WebhookRouter:
    """Import a router instance, or a zero-argument factory returning one."""
    obj = import_from_string(target)
    if not isinstance(obj, WebhookRouter) and callable(obj):
        obj = obj()
    if not isinstance(obj, WebhookRouter):
        raise ValueError(f"{target} is not a WebhookRouter")
    return obj


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from src.webhook.server import create_app

    settings = load_settings(args.config, host=args.host, port=args.port, path=args.path)
    router = load_router(args.router)
    app = create_app(router, settings=settings)
    uvicorn.run(app, host=settings.host, port=settings.port)
    return 0


def consume_settings(args: argparse.Namespace) -> WebhookSettings:
    """Resolve consumer settings; the hostname names the consumer unless configured."""
    settings = load_settings(
        args.config,
        consumer=args.consumer,
        stream=args.stream,
        redis_url=args.redis_url,
    )
    if settings.consumer == WebhookSettings.model_fields["consumer"].default:
        settings = settings.model_copy(update={"consumer": socket.gethostname()})
    return settings


def cmd_consume(args: argparse.Namespace) -> int:
    from src.adapters.redis_stream import StreamWebhookConsumer
    from src.redis_streams.consumer import StreamConsumer

    settings = consume_settings(args)
    router = load_router(args.router)
    verifier = verifier_from_settings(settings) if args.verify else None

    consumer = StreamConsumer(
        redis_url=settings.redis_url,
        stream=settings.stream,
        group=settings.group,
        consumer=settings.consumer,
        block_ms=settings.block_ms,
    )
    consumer.ping()
    adapter = StreamWebhookConsumer(router, consumer, verifier=verifier)
    try:
        adapter.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        adapter.close()
    return 0


def cmd_sign(args: argparse.Namespace) -> int:
    try:
        json.loads(args.payload)
    except json.JSONDecodeError:
        print("Error: Payload must be valid JSON", file=sys.stderr)
        return 1

    if args.scheme == "stripe":
        print(StripeVerifier(args.secret).sign(args.payload))
    else:
        print(HMACVerifier(args.secret, prefix=args.prefix).sign_payload(args.payload))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webhook-router",
        description="Verify webhooks and dispatch them to registered handlers",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Serve the HTTP webhook endpoint")
    serve.add_argument("-r", "--router", required=True, help="Router as module:attribute")
    serve.add_argument("-c", "--config", default="config.yaml", help="Path to config file")
    serve.add_argument("--host", default=None, help="Bind host")
    serve.add_argument("--port", type=int, default=None, help="Bind port")
    serve.add_argument("--path", default=None, help="Webhook endpoint path")
    serve.set_defaults(func=cmd_serve)

    consume = sub.add_parser("consume", help="Consume webhook events from a Redis stream")
    consume.add_argument("-r", "--router", required=True, help="Router as module:attribute")
    consume.add_argument("-c", "--config", default="config.yaml", help="Path to config file")
    consume.add_argument("--consumer", default=None, help="Consumer name (default: config, then hostname)")
    consume.add_argument("--stream", default=None, help="Stream name")
    consume.add_argument("--redis-url", default=None, help="Redis connection URL")
    consume.add_argument("--verify", action="store_true", help="Verify signatures carried in entry metadata")
    consume.set_defaults(func=cmd_consume)

    sign = sub.add_parser("sign", help="Print a signature header value for a payload")
    sign.add_argument("payload", help="JSON payload to sign")
    sign.add_argument("--secret", required=True, help="Signing secret")
    sign.add_argument("--scheme", choices=["hmac", "stripe"], default="hmac")
    sign.add_argument("--prefix", default="", help="Prefix for hmac signatures, e.g. sha256=")
    sign.set_defaults(func=cmd_sign)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    try:
        return args.func(args)
    except ValueError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
