"""ASGI middleware binding per-turn logging metadata."""

from __future__ import annotations

import time
import uuid
from typing import Any, Iterable

from assistant_fulfillment.core.logging import (
    correlation_id_context,
    get_logger,
)
from assistant_fulfillment.core.models import RequestContext
from assistant_fulfillment.services.normalizer import ACTIONS_API_VERSION_HEADER

logger = get_logger(__name__)

RawHeaders = Iterable[tuple[bytes, bytes]]


def _decode_headers(raw_headers: RawHeaders) -> dict[str, str]:
    return {key.decode("latin-1").lower(): value.decode("latin-1") for key, value in raw_headers}


def _echo_headers(raw_headers: RawHeaders, names: Iterable[str], value: str) -> list[tuple[bytes, bytes]]:
    """Return ``raw_headers`` plus ``names`` set to ``value`` unless already present."""

    echoed = list(raw_headers)
    present = {key.decode("latin-1").lower() for key, _ in echoed}
    echoed.extend((name.encode("latin-1"), value.encode("latin-1")) for name in names if name.lower() not in present)
    return echoed


class CorrelationIdMiddleware:  # pylint: disable=too-few-public-methods
    """Tag every webhook call with a correlation id and log how the turn went.

    The id is taken from ``X-Request-ID`` / ``X-Correlation-ID`` when the
    caller sends one and echoed on the response either way. The request
    context (including the Actions API version header) is kept in
    ``request.state.request_context`` for route handlers.
    """

    header_names = ("X-Request-ID", "X-Correlation-ID")

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        headers = _decode_headers(scope.get("headers", []))
        context = RequestContext(
            correlation_id=self._resolve_correlation_id(headers),
            path=scope.get("path", ""),
            method=scope.get("method", ""),
            user_agent=headers.get("user-agent"),
            actions_api_version=headers.get(ACTIONS_API_VERSION_HEADER.lower()),
        )
        scope.setdefault("state", {})["request_context"] = context
        outcome: dict[str, Any] = {"status_code": None}
        started = time.perf_counter()

        async def send_with_correlation(message: dict[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                outcome["status_code"] = message.get("status")
                message["headers"] = _echo_headers(
                    message.get("headers", []), self.header_names, context.correlation_id
                )
            await send(message)

        with correlation_id_context(context.correlation_id):
            try:
                await self.app(scope, receive, send_with_correlation)
            finally:
                logger.info(
                    "%s %s completed",
                    context.method,
                    context.path,
                    extra={
                        "event": "http_request",
                        "status_code": outcome["status_code"] or 500,
                        "actions_api_version": context.actions_api_version or "-",
                        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
                    },
                )

    def _resolve_correlation_id(self, headers: dict[str, str]) -> str:
        for header in self.header_names:
            if headers.get(header.lower()):
                return headers[header.lower()]
        return uuid.uuid4().hex


__all__ = ["CorrelationIdMiddleware"]
