"""FastAPI webhook server."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from src.adapters.asgi import fastapi_adapter
from src.adapters.base import ErrorCallback
from src.config import WebhookSettings, verifier_from_settings
from src.router.router import WebhookRouter
from src.verifiers.base import Verifier

logger = logging.getLogger(__name__)


def create_app(
    router: WebhookRouter,
    verifier: Optional[Verifier] = None,
    settings: Optional[WebhookSettings] = None,
    on_error: Optional[ErrorCallback] = None,
) -> FastAPI:
    """Create the FastAPI application serving a webhook endpoint.

    Args:
        router: Router with handlers already registered
        verifier: Verifier to use; built from settings when omitted
        settings: Server settings (endpoint path, secret, scheme)
        on_error: Optional callback for dispatch failures

    Returns:
        Configured FastAPI application
    """
    settings = settings or WebhookSettings()
    verifier = verifier or verifier_from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Starting webhook server on {settings.path} "
            f"({len(router.event_types())} event types registered)"
        )
        yield
        logger.info("Shutting down webhook server")

    app = FastAPI(
        title="Webhook Router",
        description="Verifies incoming webhooks and dispatches them to handlers",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "event_types": sorted(router.event_types())}

    app.add_api_route(
        settings.path,
        fastapi_adapter(router, verifier, on_error=on_error),
        methods=["POST"],
        name="webhook",
    )
    return app
