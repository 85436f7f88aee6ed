"""Core data transfer objects shared across layers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from assistant_fulfillment.core.exceptions import DialogStateError
from assistant_fulfillment.core.intents import State, state_name


@dataclass(slots=True)
class RequestContext:
    """Metadata describing an inbound API request."""

    correlation_id: str
    path: str
    method: str
    user_agent: Optional[str] = None
    actions_api_version: Optional[str] = None


@dataclass(slots=True)
class DialogState:
    """Developer-defined dialog position plus data carried in the conversation token."""

    state: Union[State, str, None] = None
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.state = state_name(self.state)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object stored in the conversation token."""
        return {"state": self.state, "data": self.data}

    def to_token(self) -> str:
        """Serialize to the compact JSON string the platform echoes back."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_token(cls, token: str) -> "DialogState":
        """Parse a conversation token produced by :meth:`to_token`."""
        try:
            parsed = json.loads(token)
        except (TypeError, ValueError) as exc:
            raise DialogStateError("conversation token is not valid JSON") from exc
        if not isinstance(parsed, Mapping):
            raise DialogStateError("conversation token must hold a JSON object")
        state = parsed.get("state")
        if state is not None and not isinstance(state, str):
            raise DialogStateError("dialog state identifier must be a string")
        data = parsed.get("data")
        return cls(state=state, data=dict(data) if isinstance(data, Mapping) else {})


@dataclass(slots=True)
class Context:
    """Dialogflow output context attached to a response."""

    name: str
    lifespan: int = 1
    parameters: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation used in ``contextOut``."""
        payload: dict[str, Any] = {"name": self.name, "lifespan": self.lifespan}
        if self.parameters is not None:
            payload["parameters"] = self.parameters
        return payload


__all__ = ["RequestContext", "DialogState", "Context"]
