"""HTTP adapters implementing the request/response ports over Starlette types."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Mapping, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse, PlainTextResponse, Response


class RequestAdapter:
    """Read-only request view: decoded JSON body plus case-insensitive headers."""

    def __init__(self, body: Any, headers: Optional[Mapping[str, str]] = None) -> None:
        self._body = body
        self._headers = Headers(headers=dict(headers or {}))

    @property
    def body(self) -> Any:
        return self._body

    def get(self, header: str) -> Optional[str]:
        return self._headers.get(header)


class BufferedResponse:
    """Capture the status, headers, and body a conversation app writes."""

    def __init__(self) -> None:
        self.status_code: int = HTTPStatus.OK
        self.headers = MutableHeaders()
        self.body: Any = None
        self.sent = False

    def status(self, code: int) -> "BufferedResponse":
        self.status_code = int(code)
        return self

    def send(self, body: Any) -> Any:
        self.body = body
        self.sent = True
        return body

    def append(self, header: str, value: str) -> "BufferedResponse":
        self.headers.append(header, str(value))
        return self

    def to_response(self) -> Response:
        """Render the captured response for FastAPI to return."""

        headers = {
            key: value for key, value in self.headers.items() if key.lower() != "content-type"
        }
        if isinstance(self.body, str):
            return PlainTextResponse(self.body, status_code=self.status_code, headers=headers)
        return JSONResponse(self.body, status_code=self.status_code, headers=headers)


__all__ = ["BufferedResponse", "RequestAdapter"]
