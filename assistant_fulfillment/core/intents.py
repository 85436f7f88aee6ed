"""Intent identifiers, built-in argument names, and handler-table keys."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional, Union

from assistant_fulfillment.core.exceptions import InvalidHandlerError


class StandardIntent(str, Enum):
    """Intents fired by the Assistant platform itself."""

    MAIN = "actions.intent.MAIN"
    TEXT = "actions.intent.TEXT"
    PERMISSION = "actions.intent.PERMISSION"
    OPTION = "actions.intent.OPTION"
    TRANSACTION_REQUIREMENTS_CHECK = "actions.intent.TRANSACTION_REQUIREMENTS_CHECK"
    DELIVERY_ADDRESS = "actions.intent.DELIVERY_ADDRESS"
    TRANSACTION_DECISION = "actions.intent.TRANSACTION_DECISION"
    PLACE = "actions.intent.PLACE"
    CONFIRMATION = "actions.intent.CONFIRMATION"
    DATETIME = "actions.intent.DATETIME"
    SIGN_IN = "actions.intent.SIGN_IN"
    NO_INPUT = "actions.intent.NO_INPUT"
    CANCEL = "actions.intent.CANCEL"
    NEW_SURFACE = "actions.intent.NEW_SURFACE"
    REGISTER_UPDATE = "actions.intent.REGISTER_UPDATE"
    CONFIGURE_UPDATES = "actions.intent.CONFIGURE_UPDATES"
    LINK = "actions.intent.LINK"
    MEDIA_STATUS = "actions.intent.MEDIA_STATUS"


# Conversation API v1 used different ids for the three intents it knew about.
LEGACY_STANDARD_INTENTS: Final[dict[StandardIntent, str]] = {
    StandardIntent.MAIN: "assistant.intent.action.MAIN",
    StandardIntent.TEXT: "assistant.intent.action.TEXT",
    StandardIntent.PERMISSION: "assistant.intent.action.PERMISSION",
}


class BuiltInArgName(str, Enum):
    """Argument names the platform attaches to system intents."""

    PERMISSION_GRANTED = "PERMISSION"
    OPTION = "OPTION"
    TRANSACTION_REQ_CHECK_RESULT = "TRANSACTION_REQUIREMENTS_CHECK_RESULT"
    DELIVERY_ADDRESS_VALUE = "DELIVERY_ADDRESS_VALUE"
    TRANSACTION_DECISION_VALUE = "TRANSACTION_DECISION_VALUE"
    PLACE = "PLACE"
    CONFIRMATION = "CONFIRMATION"
    DATETIME = "DATETIME"
    SIGN_IN = "SIGN_IN"
    REPROMPT_COUNT = "REPROMPT_COUNT"
    IS_FINAL_REPROMPT = "IS_FINAL_REPROMPT"
    NEW_SURFACE = "NEW_SURFACE"
    REGISTER_UPDATE = "REGISTER_UPDATE"
    LINK = "LINK"
    MEDIA_STATUS = "MEDIA_STATUS"


LEGACY_BUILT_IN_ARG_NAMES: Final[dict[BuiltInArgName, str]] = {
    BuiltInArgName.PERMISSION_GRANTED: "permission_granted",
}


class SupportedPermission(str, Enum):
    """Permissions an action may request from the user."""

    NAME = "NAME"
    DEVICE_PRECISE_LOCATION = "DEVICE_PRECISE_LOCATION"
    DEVICE_COARSE_LOCATION = "DEVICE_COARSE_LOCATION"
    UPDATE = "UPDATE"


class SurfaceCapability(str, Enum):
    """Capabilities a user surface can advertise."""

    AUDIO_OUTPUT = "actions.capability.AUDIO_OUTPUT"
    SCREEN_OUTPUT = "actions.capability.SCREEN_OUTPUT"
    MEDIA_RESPONSE_AUDIO = "actions.capability.MEDIA_RESPONSE_AUDIO"
    WEB_BROWSER = "actions.capability.WEB_BROWSER"


class SignInStatus(str, Enum):
    """Result values of the sign-in helper."""

    UNSPECIFIED = "SIGN_IN_STATUS_UNSPECIFIED"
    OK = "OK"
    CANCELLED = "CANCELLED"
    ERROR = "ERROR"


class InputValueDataType(str, Enum):
    """``@type`` tags of the value specs attached to system intents."""

    PERMISSION = "type.googleapis.com/google.actions.v2.PermissionValueSpec"
    OPTION = "type.googleapis.com/google.actions.v2.OptionValueSpec"
    TRANSACTION_REQ_CHECK = "type.googleapis.com/google.actions.v2.TransactionRequirementsCheckSpec"
    DELIVERY_ADDRESS = "type.googleapis.com/google.actions.v2.DeliveryAddressValueSpec"
    TRANSACTION_DECISION = "type.googleapis.com/google.actions.v2.TransactionDecisionValueSpec"
    PLACE = "type.googleapis.com/google.actions.v2.PlaceValueSpec"
    CONFIRMATION = "type.googleapis.com/google.actions.v2.ConfirmationValueSpec"
    DATETIME = "type.googleapis.com/google.actions.v2.DateTimeValueSpec"
    NEW_SURFACE = "type.googleapis.com/google.actions.v2.NewSurfaceValueSpec"
    REGISTER_UPDATE = "type.googleapis.com/google.actions.v2.RegisterUpdateValueSpec"
    LINK = "type.googleapis.com/google.actions.v2.LinkValueSpec"


class DialogSpecType(str, Enum):
    """``@type`` tags of dialog spec extensions."""

    PLACE = "type.googleapis.com/google.actions.v2.PlaceValueSpec.PlaceDialogSpec"
    LINK = "type.googleapis.com/google.actions.v2.LinkValueSpec.LinkDialogSpec"


ANY_TYPE_PROPERTY: Final = "@type"


class EntitlementSkuType(str, Enum):
    """SKU types for Play package entitlements."""

    IN_APP = "IN_APP"
    SUBSCRIPTION = "SUBSCRIPTION"
    APP = "APP"


@dataclass(frozen=True, slots=True)
class Intent:
    """Handler-table key naming an intent explicitly."""

    name: str


@dataclass(frozen=True, slots=True)
class State:
    """Handler-table key naming a dialog state; ``None`` means no active state."""

    name: Optional[str]


# Key for the sub-table used while no dialog state is active.
NO_STATE: Final = None

HandlerKey = Union[Intent, State, str, None]


def handler_key_name(key: HandlerKey) -> Optional[str]:
    """Return the comparable name carried by a handler-table key."""

    if key is None:
        return None
    if isinstance(key, (Intent, State)):
        return key.name
    if isinstance(key, str):
        return key
    raise InvalidHandlerError(f"unsupported handler key type: {type(key).__name__}")


def state_name(state: Union[State, str, None]) -> Optional[str]:
    """Return the dialog state identifier, unwrapping a :class:`State` key."""

    if isinstance(state, State):
        return state.name
    return state


__all__ = [
    "ANY_TYPE_PROPERTY",
    "BuiltInArgName",
    "DialogSpecType",
    "EntitlementSkuType",
    "HandlerKey",
    "InputValueDataType",
    "Intent",
    "LEGACY_BUILT_IN_ARG_NAMES",
    "LEGACY_STANDARD_INTENTS",
    "NO_STATE",
    "SignInStatus",
    "StandardIntent",
    "State",
    "SupportedPermission",
    "SurfaceCapability",
    "handler_key_name",
    "state_name",
]
