"""Intent router resolving handler tables against the active intent and dialog state."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Union

from assistant_fulfillment.core.exceptions import (
    IntentHandlerError,
    IntentHandlerNotFoundError,
    InvalidHandlerError,
)
from assistant_fulfillment.core.intents import HandlerKey, State, handler_key_name, state_name
from assistant_fulfillment.core.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .conversation import AssistantApp


Handler = Callable[["AssistantApp"], Union[Any, Awaitable[Any]]]
HandlerTable = Mapping[HandlerKey, Union[Handler, "HandlerTable"]]

logger = get_logger(__name__)


class IntentRouter:
    """Dispatch a turn to exactly one developer callback."""

    def resolve(
        self, table: HandlerTable, intent: Optional[str], state: Union[State, str, None]
    ) -> Optional[Handler]:
        """Return the callback matching ``intent`` under ``state``, or ``None``.

        Iteration order decides ties. A nested table is entered only when its key
        names the active state (or is the no-state key while no state is set),
        and resolution does not backtrack out of it.
        """

        state = state_name(state)
        for key, value in table.items():
            name = handler_key_name(key)
            if isinstance(value, Mapping):
                if name == state:
                    logger.debug("entering handler table for state=%s", state)
                    return self.resolve(value, intent, state)
                continue
            if name is not None and name == intent:
                if callable(value):
                    return value
                logger.error("handler for intent %s is not callable", intent)
                return None
        return None

    async def invoke(self, handler: Handler, app: "AssistantApp") -> Any:
        """Call ``handler`` with ``app``, awaiting its result when it is awaitable."""

        try:
            result = handler(app)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:  # pylint: disable=broad-except
            message = str(exc)
            logger.error("intent handler failed: %s", message, exc_info=True)
            raise IntentHandlerError(message) from exc
        return result

    async def dispatch(
        self,
        handler: Union[Handler, HandlerTable],
        intent: Optional[str],
        app: "AssistantApp",
    ) -> Any:
        """Route one turn; raises :class:`IntentRouterError` subclasses on failure."""

        if isinstance(handler, Mapping):
            selected = self.resolve(handler, intent, app.state)
            if selected is None:
                raise IntentHandlerNotFoundError(f"no matching intent handler for: {intent}")
            return await self.invoke(selected, app)
        if callable(handler):
            return await self.invoke(handler, app)
        raise InvalidHandlerError(f"invalid intent handler type: {type(handler).__name__}")


__all__ = ["Handler", "HandlerTable", "IntentRouter"]
