"""HTTP server exposing the webhook endpoint."""

from src.webhook.server import create_app

__all__ = ["create_app"]
