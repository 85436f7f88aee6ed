"""Protocol definitions for the HTTP collaborators of a turn."""

# pylint: disable=unnecessary-ellipsis

from __future__ import annotations

from typing import Any, Optional, Protocol


class HttpRequestPort(Protocol):
    """Inbound HTTP request as seen by the conversation layer."""

    @property
    def body(self) -> Any:
        """Return the decoded JSON body."""
        ...

    def get(self, header: str) -> Optional[str]:
        """Return the value of ``header`` or ``None`` if absent."""
        ...


class HttpResponsePort(Protocol):
    """Outbound HTTP response the conversation layer writes exactly once."""

    def status(self, code: int) -> "HttpResponsePort":
        """Set the status code and return ``self`` for chaining."""
        ...

    def send(self, body: Any) -> Any:
        """Send ``body`` (JSON object or error string)."""
        ...

    def append(self, header: str, value: str) -> Any:
        """Append a response header."""
        ...


__all__ = ["HttpRequestPort", "HttpResponsePort"]
