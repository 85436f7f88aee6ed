"""Application service layer: conversation apps, dispatch, and builders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .intent_router import Handler, HandlerTable, IntentRouter

FulfillmentHandler = Union[Handler, HandlerTable]


@dataclass(slots=True)
class FulfillmentHandlers:
    """Developer handlers mounted by the HTTP app, one per webhook protocol."""

    actions_sdk: Optional[FulfillmentHandler] = None
    dialogflow: Optional[FulfillmentHandler] = None
    intent_router: Optional[IntentRouter] = None


def build_default_handlers(
    *,
    actions_sdk: Optional[FulfillmentHandler] = None,
    dialogflow: Optional[FulfillmentHandler] = None,
) -> FulfillmentHandlers:
    """Return a handler container with the default intent router wiring."""

    return FulfillmentHandlers(
        actions_sdk=actions_sdk,
        dialogflow=dialogflow,
        intent_router=IntentRouter(),
    )


__all__ = ["FulfillmentHandler", "FulfillmentHandlers", "build_default_handlers"]
