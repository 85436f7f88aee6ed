"""Webhook fulfillment library for Actions SDK and Dialogflow conversations."""

from assistant_fulfillment.core.intents import (
    NO_STATE,
    BuiltInArgName,
    Intent,
    SignInStatus,
    StandardIntent,
    State,
    SupportedPermission,
    SurfaceCapability,
)
from assistant_fulfillment.core.models import Context, DialogState
from assistant_fulfillment.services import FulfillmentHandlers
from assistant_fulfillment.services.actions_sdk import ActionsSdkApp
from assistant_fulfillment.services.dialogflow import DialogflowApp
from assistant_fulfillment.services.response_builder import (
    BasicCard,
    Carousel,
    MediaObject,
    MediaResponse,
    OptionItem,
    OptionList,
    RichResponse,
)

__all__ = [
    "ActionsSdkApp",
    "BasicCard",
    "BuiltInArgName",
    "Carousel",
    "Context",
    "DialogState",
    "DialogflowApp",
    "FulfillmentHandlers",
    "Intent",
    "MediaObject",
    "MediaResponse",
    "NO_STATE",
    "OptionItem",
    "OptionList",
    "RichResponse",
    "SignInStatus",
    "StandardIntent",
    "State",
    "SupportedPermission",
    "SurfaceCapability",
]
