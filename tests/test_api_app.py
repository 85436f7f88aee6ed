"""Tests for FastAPI app factory."""
# pylint: disable=missing-function-docstring

import asyncio

from fastapi.testclient import TestClient

from assistant_fulfillment.apps.api.app import create_app
from assistant_fulfillment.apps.api.middleware import CorrelationIdMiddleware
from assistant_fulfillment.services import FulfillmentHandlers, build_default_handlers


def test_create_app_has_routes():
    app = create_app()
    paths = {
        path
        for route in app.router.routes
        if (path := getattr(route, "path", getattr(route, "path_format", "")))
    }
    assert "/alive" in paths
    assert "/actions-sdk" in paths
    assert "/dialogflow" in paths
    assert isinstance(app.state.handlers, FulfillmentHandlers)


def test_create_app_keeps_supplied_handlers():
    handlers = build_default_handlers(actions_sdk=lambda assistant: assistant.tell("hi"))
    app = create_app(handlers)
    assert app.state.handlers is handlers
    assert app.state.handlers.intent_router is not None


def test_alive_echoes_correlation_id():
    client = TestClient(create_app())

    resp = client.get("/alive", headers={"X-Request-ID": "req-123"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.headers["X-Correlation-ID"] == "req-123"


def test_generated_correlation_id_when_absent():
    client = TestClient(create_app())

    resp = client.get("/")

    assert resp.status_code == 200
    assert len(resp.headers["X-Request-ID"]) == 32


def test_middleware_records_actions_api_version():
    seen = {}

    async def inner(scope, receive, send):
        seen["context"] = scope["state"]["request_context"]
        await send({"type": "http.response.start", "status": 204, "headers": []})
        await send({"type": "http.response.body", "body": b""})

    sent = []

    async def send(message):
        sent.append(message)

    async def receive():
        return {"type": "http.request", "body": b""}

    scope = {
        "type": "http",
        "path": "/actions-sdk",
        "method": "POST",
        "headers": [(b"google-actions-api-version", b"2"), (b"x-correlation-id", b"abc")],
    }
    asyncio.run(CorrelationIdMiddleware(inner)(scope, receive, send))

    context = seen["context"]
    assert context.actions_api_version == "2"
    assert context.correlation_id == "abc"
    assert (b"X-Request-ID", b"abc") in sent[0]["headers"]
