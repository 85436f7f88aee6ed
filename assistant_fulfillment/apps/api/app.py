"""FastAPI application factory for the fulfillment webhooks."""

from __future__ import annotations

from fastapi import FastAPI

from assistant_fulfillment.apps.api.middleware import CorrelationIdMiddleware
from assistant_fulfillment.core.logging import get_logger
from assistant_fulfillment.services import FulfillmentHandlers

logger = get_logger(__name__)


def create_app(handlers: FulfillmentHandlers | None = None) -> FastAPI:
    """Build the FastAPI application with the health and webhook routers."""
    app = FastAPI(title="assistant-fulfillment")
    app.state.handlers = handlers or FulfillmentHandlers()
    app.add_middleware(CorrelationIdMiddleware)

    # Import lazily to avoid potential circular imports when routers grow.
    from .routes import health, webhooks  # pylint: disable=import-outside-toplevel

    app.include_router(health.router)
    app.include_router(webhooks.router)
    logger.info(
        "fulfillment app created",
        extra={
            "actions_sdk": app.state.handlers.actions_sdk is not None,
            "dialogflow": app.state.handlers.dialogflow is not None,
        },
    )
    return app


__all__ = ["create_app"]
