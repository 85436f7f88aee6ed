"""Protocol-independent conversation app: accessors, helpers, dispatch, and response writing."""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from http import HTTPStatus
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from assistant_fulfillment.core.config import settings
from assistant_fulfillment.core.exceptions import (
    IntentHandlerError,
    IntentHandlerNotFoundError,
    InvalidHandlerError,
)
from assistant_fulfillment.core.intents import (
    ANY_TYPE_PROPERTY,
    LEGACY_BUILT_IN_ARG_NAMES,
    LEGACY_STANDARD_INTENTS,
    BuiltInArgName,
    DialogSpecType,
    InputValueDataType,
    StandardIntent,
    State,
    SupportedPermission,
    state_name,
)
from assistant_fulfillment.core.logging import get_logger
from assistant_fulfillment.core.models import DialogState
from assistant_fulfillment.core.ports import HttpRequestPort, HttpResponsePort
from assistant_fulfillment.services.intent_router import Handler, HandlerTable, IntentRouter
from assistant_fulfillment.services.normalizer import (
    ACTIONS_API_VERSION_HEADER,
    ASSISTANT_API_VERSION_HEADER,
    denormalize_outbound,
    is_not_api_version_one,
    normalize_inbound,
    resolve_actions_api_version,
    to_snake_case_keys,
)
from assistant_fulfillment.services.response_builder import (
    BasicCard,
    BrowseCarousel,
    BrowseItem,
    Carousel,
    MediaObject,
    MediaResponse,
    OptionItem,
    OptionList,
    RichResponse,
    serialize,
)
from assistant_fulfillment.services.transactions import (
    Cart,
    DeliveryAddressDecision,
    InvalidTransactionConfig,
    LineItem,
    Order,
    OrderUpdate,
    TransactionConfig,
    build_order_options,
    build_payment_options,
    parse_transaction_config,
)

INPUTS_MAX = 3
CONTENT_TYPE_HEADER = "Content-Type"
CONTENT_TYPE_JSON = "application/json"
DAILY_FREQUENCY = "DAILY"

PLACEHOLDER_FOR_PERMISSION = "PLACEHOLDER_FOR_PERMISSION"
PLACEHOLDER_FOR_TXN_REQUIREMENTS = "PLACEHOLDER_FOR_TXN_REQUIREMENTS"
PLACEHOLDER_FOR_TXN_DECISION = "PLACEHOLDER_FOR_TXN_DECISION"
PLACEHOLDER_FOR_DELIVERY_ADDRESS = "PLACEHOLDER_FOR_DELIVERY_ADDRESS"
PLACEHOLDER_FOR_PLACE = "PLACEHOLDER_FOR_PLACE"
PLACEHOLDER_FOR_CONFIRMATION = "PLACEHOLDER_FOR_CONFIRMATION"
PLACEHOLDER_FOR_DATETIME = "PLACEHOLDER_FOR_DATETIME"
PLACEHOLDER_FOR_SIGN_IN = "PLACEHOLDER_FOR_SIGN_IN"
PLACEHOLDER_FOR_NEW_SURFACE = "PLACEHOLDER_FOR_NEW_SURFACE"
PLACEHOLDER_FOR_REGISTER_UPDATE = "PLACEHOLDER_FOR_REGISTER_UPDATE"

ASKABLE_PERMISSIONS = frozenset(
    {
        SupportedPermission.NAME.value,
        SupportedPermission.DEVICE_PRECISE_LOCATION.value,
        SupportedPermission.DEVICE_COARSE_LOCATION.value,
    }
)

Prompt = Union[str, Mapping[str, Any], RichResponse]
DialogStateLike = Union[DialogState, Mapping[str, Any], None]

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ConversationTypes:
    """Conversation type values; integers on API v1, names on v2."""

    UNSPECIFIED: Union[int, str]
    NEW: Union[int, str]
    ACTIVE: Union[int, str]

    @classmethod
    def for_api(cls, modern: bool) -> "ConversationTypes":
        if modern:
            return cls("UNSPECIFIED", "NEW", "ACTIVE")
        return cls(0, 1, 2)


@dataclass(frozen=True, slots=True)
class InputTypes:
    """Raw input modality values; integers on API v1, names on v2."""

    UNSPECIFIED: Union[int, str]
    TOUCH: Union[int, str]
    VOICE: Union[int, str]
    KEYBOARD: Union[int, str]

    @classmethod
    def for_api(cls, modern: bool) -> "InputTypes":
        if modern:
            return cls("UNSPECIFIED", "TOUCH", "VOICE", "KEYBOARD")
        return cls(0, 1, 2, 3)


def lookup(mapping: Any, *path: str) -> Any:
    """Walk ``path`` through nested mappings, returning ``None`` on any gap."""

    current = mapping
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


class AssistantApp(ABC):  # pylint: disable=too-many-public-methods
    """State and behaviour shared by the Actions SDK and Dialogflow apps.

    One instance serves exactly one turn. It deep-copies the request body,
    resolves the Conversation API version, normalizes legacy payloads to
    camelCase, restores dialog state, and writes at most one HTTP response.
    """

    #: Whether legacy normalization touches only ``originalRequest``.
    dialogflow_envelope = False

    def __init__(
        self,
        request: HttpRequestPort,
        response: HttpResponsePort,
        session_started: Optional[Callable[[], Any]] = None,
        *,
        router: Optional[IntentRouter] = None,
    ) -> None:
        if request is None:
            raise ValueError("Request can NOT be empty.")
        if response is None:
            raise ValueError("Response can NOT be empty.")
        self._request = request
        self._response = response
        self._session_started = session_started
        self._router = router or IntentRouter()
        self._responded = False
        self._last_error_message: Optional[str] = None
        self._contexts: dict[str, dict[str, Any]] = {}

        raw_body = request.body if isinstance(request.body, Mapping) else {}
        if settings.LOG_PAYLOADS:
            logger.debug("Request from Assistant: %s", json.dumps(raw_body, default=str))
        self.actions_api_version: Optional[str] = resolve_actions_api_version(
            request.get(ACTIONS_API_VERSION_HEADER), raw_body
        )
        self.api_version: Optional[str] = request.get(ASSISTANT_API_VERSION_HEADER)
        self._body: dict[str, Any] = normalize_inbound(
            copy.deepcopy(dict(raw_body)),
            legacy=not self.is_not_api_version_one(),
            dialogflow=self.dialogflow_envelope,
        )

        self.conversation_types = ConversationTypes.for_api(self.is_not_api_version_one())
        self.input_types = InputTypes.for_api(self.is_not_api_version_one())
        self.state: Union[State, str, None] = None
        self.data: dict[str, Any] = {}
        self.user_storage: dict[str, Any] = {}
        self._extract_data()
        self._extract_user_storage()
        self._notify_session_started()

    # ------------------------------------------------------------------
    # Version helpers
    # ------------------------------------------------------------------
    def is_not_api_version_one(self) -> bool:
        """Return True when the request uses Conversation API v2 or later."""
        return is_not_api_version_one(self.actions_api_version)

    def standard_intent(self, intent: StandardIntent) -> str:
        """Return the wire id of ``intent`` for the request's API version."""
        intent = StandardIntent(intent)
        if not self.is_not_api_version_one() and intent in LEGACY_STANDARD_INTENTS:
            return LEGACY_STANDARD_INTENTS[intent]
        return intent.value

    def built_in_arg_name(self, name: BuiltInArgName) -> str:
        """Return the wire name of ``name`` for the request's API version."""
        name = BuiltInArgName(name)
        if not self.is_not_api_version_one() and name in LEGACY_BUILT_IN_ARG_NAMES:
            return LEGACY_BUILT_IN_ARG_NAMES[name]
        return name.value

    @property
    def body(self) -> dict[str, Any]:
        """Normalized request body."""
        return self._body

    @property
    def responded(self) -> bool:
        """Whether this turn has already written its HTTP response."""
        return self._responded

    @property
    def last_error_message(self) -> Optional[str]:
        return self._last_error_message

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    async def handle_request(self, handler: Union[Handler, HandlerTable]) -> Any:
        """Invoke the developer's callback, or the table entry matching this turn."""

        if not handler:
            self._handle_error("request handler can NOT be empty.")
            raise InvalidHandlerError("request handler can NOT be empty.")
        intent = self.get_intent() if isinstance(handler, Mapping) else None
        try:
            return await self._router.dispatch(handler, intent, self)
        except InvalidHandlerError as exc:
            self._handle_error(str(exc))
            raise
        except IntentHandlerNotFoundError as exc:
            logger.error("%s", exc)
            self._last_error_message = str(exc)
            self.tell(settings.DEFAULT_ERROR_MESSAGE)
            raise
        except IntentHandlerError as exc:
            self._last_error_message = str(exc) or None
            self.tell(str(exc) or settings.DEFAULT_ERROR_MESSAGE)
            raise

    # ------------------------------------------------------------------
    # Shared accessors
    # ------------------------------------------------------------------
    @abstractmethod
    def request_data(self) -> Optional[dict[str, Any]]:
        """Return the Actions-on-Google payload of the request."""

    @abstractmethod
    def get_intent(self) -> Optional[str]:
        """Return the intent or action that triggered this turn."""

    @abstractmethod
    def get_argument(self, arg_name: str) -> Any:
        """Return the value of the named argument or parameter."""

    def get_user(self) -> Optional[dict[str, Any]]:
        """Return the user descriptor with ``userName`` copied from the profile."""

        user = lookup(self.request_data(), "user")
        if not isinstance(user, Mapping):
            logger.error("No user object")
            return None
        result = dict(user)
        result["user_id"] = user.get("userId")
        result["access_token"] = user.get("accessToken")
        profile = user.get("profile")
        result["userName"] = dict(profile) if isinstance(profile, Mapping) else None
        return result

    def get_user_name(self) -> Optional[dict[str, Any]]:
        user = self.get_user()
        return user.get("userName") if user else None

    def get_user_locale(self) -> Optional[str]:
        user = self.get_user()
        return user.get("locale") if user else None

    def get_last_seen(self) -> Optional[datetime]:
        """Return when the user last interacted with the action, if known."""

        last_seen = lookup(self.request_data(), "user", "lastSeen")
        if not last_seen:
            return None
        try:
            return datetime.fromisoformat(str(last_seen).replace("Z", "+00:00"))
        except ValueError:
            logger.error("Unable to parse lastSeen timestamp: %s", last_seen)
            return None

    def get_package_entitlements(self) -> Optional[list[dict[str, Any]]]:
        return lookup(self.request_data(), "user", "packageEntitlements") or None

    def get_device_location(self) -> Optional[dict[str, Any]]:
        """Return the device location with ``address`` mirroring ``formattedAddress``."""

        location = lookup(self.request_data(), "device", "location")
        if not isinstance(location, Mapping):
            return None
        result = dict(location)
        result["address"] = location.get("formattedAddress")
        return result

    def get_input_type(self) -> Union[int, str, None]:
        for input_ in lookup(self.request_data(), "inputs") or []:
            for raw_input in input_.get("rawInputs") or []:
                if raw_input.get("inputType") is not None:
                    return raw_input["inputType"]
        logger.error("No input type in incoming request")
        return None

    def get_argument_common(self, arg_name: str) -> Any:
        """Return the text value of ``arg_name`` or its structured argument."""

        if not arg_name:
            logger.error("Invalid argument name")
            return None
        argument = self._find_argument(arg_name)
        if argument is None:
            logger.debug("Failed to get argument value: %s", arg_name)
            return None
        if argument.get("textValue"):
            return argument["textValue"]
        if not self.is_not_api_version_one():
            return to_snake_case_keys(argument)
        return argument

    def get_transaction_requirements_result(self) -> Optional[str]:
        argument = self._find_argument(BuiltInArgName.TRANSACTION_REQ_CHECK_RESULT)
        result = lookup(argument, "extension", "resultType")
        if result:
            return result
        logger.debug("Failed to get transaction requirements result")
        return None

    def get_delivery_address(self) -> Optional[dict[str, Any]]:
        """Return the accepted delivery location, or ``None`` when declined or absent."""

        argument = self._find_argument(
            BuiltInArgName.DELIVERY_ADDRESS_VALUE, BuiltInArgName.TRANSACTION_DECISION_VALUE
        )
        extension = lookup(argument, "extension")
        if not isinstance(extension, Mapping):
            logger.debug("Failed to get order delivery address")
            return None
        if extension.get("userDecision") != DeliveryAddressDecision.ACCEPTED.value:
            logger.debug("User rejected giving delivery address")
            return None
        location = extension.get("location")
        if not lookup(location, "postalAddress"):
            logger.debug("User accepted, but may not have configured address in app")
            return None
        return location

    def get_transaction_decision(self) -> Optional[dict[str, Any]]:
        extension = lookup(self._find_argument(BuiltInArgName.TRANSACTION_DECISION_VALUE), "extension")
        if extension:
            return extension
        logger.debug("Failed to get order decision information")
        return None

    def get_place(self) -> Optional[dict[str, Any]]:
        place = lookup(self._find_argument(BuiltInArgName.PLACE), "placeValue")
        if not isinstance(place, Mapping):
            logger.debug("Failed to get place information")
            return None
        result = dict(place)
        result["address"] = place.get("formattedAddress")
        return result

    def get_user_confirmation(self) -> Optional[bool]:
        argument = self._find_argument(BuiltInArgName.CONFIRMATION)
        if argument is None:
            logger.debug("Failed to get confirmation decision information")
            return None
        return argument.get("boolValue")

    def get_date_time(self) -> Optional[dict[str, Any]]:
        argument = self._find_argument(BuiltInArgName.DATETIME)
        if argument is None:
            logger.debug("Failed to get date/time information")
            return None
        return argument.get("datetimeValue")

    def get_sign_in_status(self) -> Optional[str]:
        status = lookup(self._find_argument(BuiltInArgName.SIGN_IN), "extension", "status")
        if status:
            return status
        logger.debug("Failed to get sign in status")
        return None

    def get_media_status(self) -> Optional[str]:
        status = lookup(self._find_argument(BuiltInArgName.MEDIA_STATUS), "extension", "status")
        if status:
            return status
        logger.debug("Failed to get media status")
        return None

    def get_surface_capabilities(self) -> Optional[list[str]]:
        capabilities = lookup(self.request_data(), "surface", "capabilities")
        if capabilities is None:
            logger.error("No surface capabilities in incoming request")
            return None
        return [capability.get("name") for capability in capabilities]

    def has_surface_capability(self, capability: str) -> bool:
        capabilities = self.get_surface_capabilities()
        if capabilities is None:
            return False
        return capability in capabilities

    def get_available_surfaces(self) -> list[dict[str, Any]]:
        return list(lookup(self.request_data(), "availableSurfaces") or [])

    def has_available_surface_capabilities(self, capabilities: Union[str, Iterable[str]]) -> bool:
        """Return True when one available surface has every requested capability."""

        wanted = [capabilities] if isinstance(capabilities, str) else list(capabilities)
        for surface in self.get_available_surfaces():
            names = {capability.get("name") for capability in surface.get("capabilities") or []}
            if all(capability in names for capability in wanted):
                return True
        return False

    def is_new_surface(self) -> bool:
        return lookup(self._find_argument(BuiltInArgName.NEW_SURFACE), "extension", "status") == "OK"

    def is_in_sandbox(self) -> bool:
        return bool(lookup(self.request_data(), "isInSandbox"))

    def get_reprompt_count(self) -> Optional[int]:
        argument = self.get_argument_common(BuiltInArgName.REPROMPT_COUNT)
        if not isinstance(argument, Mapping):
            return None
        value = argument.get("intValue", argument.get("int_value"))
        return int(value) if value is not None else None

    def is_final_reprompt(self) -> bool:
        argument = self.get_argument_common(BuiltInArgName.IS_FINAL_REPROMPT)
        if not isinstance(argument, Mapping):
            return False
        return bool(argument.get("boolValue", argument.get("bool_value")))

    def is_update_registered(self) -> bool:
        return lookup(self._find_argument(BuiltInArgName.REGISTER_UPDATE), "extension", "status") == "OK"

    def get_link_status(self) -> Optional[int]:
        return lookup(self._find_argument(BuiltInArgName.LINK), "status", "code")

    def is_permission_granted(self) -> bool:
        return self.get_argument_common(self.built_in_arg_name(BuiltInArgName.PERMISSION_GRANTED)) == "true"

    # ------------------------------------------------------------------
    # Response builders
    # ------------------------------------------------------------------
    def build_rich_response(self, rich_response: Optional[Mapping[str, Any]] = None) -> RichResponse:
        return RichResponse.from_dict(rich_response) if rich_response else RichResponse()

    def build_list(self, title: Optional[str] = None) -> OptionList:
        return OptionList(title=title)

    def build_carousel(self) -> Carousel:
        return Carousel()

    def build_basic_card(self, body_text: Optional[str] = None) -> BasicCard:
        card = BasicCard()
        if body_text:
            card.set_body_text(body_text)
        return card

    def build_option_item(
        self, key: Optional[str] = None, synonyms: Union[str, Iterable[str], None] = None
    ) -> OptionItem:
        """Return an option item; ``key`` comes back as the selected option."""

        item = OptionItem()
        if key:
            item.set_key(key)
        if synonyms:
            item.add_synonyms(synonyms)
        return item

    def build_browse_carousel(self) -> BrowseCarousel:
        return BrowseCarousel()

    def build_browse_item(self, title: Optional[str] = None, url: Optional[str] = None) -> BrowseItem:
        item = BrowseItem()
        if title:
            item.set_title(title)
        if url:
            item.set_open_url_action(url)
        return item

    def build_media_response(self) -> MediaResponse:
        return MediaResponse()

    def build_media_object(self, name: str, content_url: str) -> MediaObject:
        return MediaObject(name=name, content_url=content_url)

    def build_order(self, order_id: str) -> Order:
        return Order(id=order_id)

    def build_cart(self, cart_id: Optional[str] = None) -> Cart:
        return Cart(id=cart_id)

    def build_line_item(self, name: str, item_id: str) -> LineItem:
        """Return a line item; note the name comes first here, unlike ``LineItem``."""
        return LineItem(id=item_id, name=name)

    def build_order_update(self, order_id: str, is_google_order_id: bool) -> OrderUpdate:
        return OrderUpdate(order_id=order_id, is_google_order_id=is_google_order_id)

    @abstractmethod
    def ask(self, prompt: Prompt, *args: Any, **kwargs: Any) -> Any:
        """Speak ``prompt`` and keep the conversation open."""

    @abstractmethod
    def tell(self, speech: Prompt) -> Any:
        """Speak ``speech`` and end the conversation."""

    def ask_for_permissions(
        self,
        context: str,
        permissions: Sequence[Union[SupportedPermission, str]],
        dialog_state: DialogStateLike = None,
    ) -> Any:
        """Request one or more user permissions, explained by ``context``."""

        if not context:
            self._handle_error("Assistant context can NOT be empty.")
            return None
        if not permissions:
            self._handle_error("At least one permission needed.")
            return None
        for permission in permissions:
            if getattr(permission, "value", permission) not in ASKABLE_PERMISSIONS:
                self._handle_error(
                    "Assistant permission must be one of "
                    "[NAME, DEVICE_PRECISE_LOCATION, DEVICE_COARSE_LOCATION]"
                )
                return None
        spec = {
            "optContext": context,
            "permissions": [SupportedPermission(permission).value for permission in permissions],
        }
        return self._fulfill_system_intent(
            StandardIntent.PERMISSION,
            InputValueDataType.PERMISSION,
            spec,
            PLACEHOLDER_FOR_PERMISSION,
            dialog_state,
            legacy_spec_key="permissionValueSpec",
        )

    def ask_for_permission(
        self,
        context: str,
        permission: Union[SupportedPermission, str],
        dialog_state: DialogStateLike = None,
    ) -> Any:
        return self.ask_for_permissions(context, [permission], dialog_state)

    def ask_for_update_permission(
        self,
        intent: str,
        intent_arguments: Optional[list[dict[str, Any]]] = None,
        dialog_state: DialogStateLike = None,
    ) -> Any:
        """Ask to push updates that trigger ``intent``."""

        if not intent:
            self._handle_error("Name of intent to trigger on update must be specified")
            return None
        update_spec: dict[str, Any] = {"intent": intent}
        if intent_arguments:
            update_spec["arguments"] = intent_arguments
        spec = {
            "permissions": [SupportedPermission.UPDATE.value],
            "updatePermissionValueSpec": update_spec,
        }
        return self._fulfill_system_intent(
            StandardIntent.PERMISSION,
            InputValueDataType.PERMISSION,
            spec,
            PLACEHOLDER_FOR_PERMISSION,
            dialog_state,
            legacy_spec_key="permissionValueSpec",
        )

    def ask_for_transaction_requirements(
        self,
        transaction_config: Union[TransactionConfig, Mapping[str, Any], None] = None,
        dialog_state: DialogStateLike = None,
    ) -> Any:
        config = self._parse_transaction_config(transaction_config)
        if config is False:
            return None
        spec: dict[str, Any] = {}
        if config is not None and config.delivery_address_required:
            spec["orderOptions"] = {"requestDeliveryAddress": True}
        if config is not None and _has_payment(config):
            spec["paymentOptions"] = build_payment_options(config)
        return self._fulfill_system_intent(
            StandardIntent.TRANSACTION_REQUIREMENTS_CHECK,
            InputValueDataType.TRANSACTION_REQ_CHECK,
            spec,
            PLACEHOLDER_FOR_TXN_REQUIREMENTS,
            dialog_state,
        )

    def ask_for_transaction_decision(
        self,
        order: Union[Order, Mapping[str, Any]],
        transaction_config: Union[TransactionConfig, Mapping[str, Any], None] = None,
        dialog_state: DialogStateLike = None,
    ) -> Any:
        if not order:
            self._handle_error("Invalid order")
            return None
        config = self._parse_transaction_config(transaction_config)
        if config is False:
            return None
        spec: dict[str, Any] = {"proposedOrder": serialize(order)}
        order_options = build_order_options(config)
        if config is not None and _has_payment(config):
            spec["paymentOptions"] = build_payment_options(config)
        if order_options:
            spec["orderOptions"] = order_options
        return self._fulfill_system_intent(
            StandardIntent.TRANSACTION_DECISION,
            InputValueDataType.TRANSACTION_DECISION,
            spec,
            PLACEHOLDER_FOR_TXN_DECISION,
            dialog_state,
        )

    def ask_for_delivery_address(self, reason: str, dialog_state: DialogStateLike = None) -> Any:
        if not reason:
            self._handle_error("reason cannot be empty")
            return None
        return self._fulfill_system_intent(
            StandardIntent.DELIVERY_ADDRESS,
            InputValueDataType.DELIVERY_ADDRESS,
            {"addressOptions": {"reason": reason}},
            PLACEHOLDER_FOR_DELIVERY_ADDRESS,
            dialog_state,
        )

    def ask_for_place(
        self, request_prompt: str, permission_context: str, dialog_state: DialogStateLike = None
    ) -> Any:
        if not request_prompt:
            self._handle_error("requestPrompt cannot be empty")
            return None
        if not permission_context:
            self._handle_error("permissionContext cannot be empty")
            return None
        spec = {
            "dialogSpec": {
                "extension": {
                    ANY_TYPE_PROPERTY: DialogSpecType.PLACE.value,
                    "requestPrompt": request_prompt,
                    "permissionContext": permission_context,
                }
            }
        }
        return self._fulfill_system_intent(
            StandardIntent.PLACE, InputValueDataType.PLACE, spec, PLACEHOLDER_FOR_PLACE, dialog_state
        )

    def ask_for_confirmation(
        self, prompt: Optional[str] = None, dialog_state: DialogStateLike = None
    ) -> Any:
        spec: dict[str, Any] = {}
        if prompt:
            spec["dialogSpec"] = {"requestConfirmationText": prompt}
        return self._fulfill_system_intent(
            StandardIntent.CONFIRMATION,
            InputValueDataType.CONFIRMATION,
            spec,
            PLACEHOLDER_FOR_CONFIRMATION,
            dialog_state,
        )

    def ask_for_date_time(
        self,
        initial_prompt: Optional[str] = None,
        date_prompt: Optional[str] = None,
        time_prompt: Optional[str] = None,
        dialog_state: DialogStateLike = None,
    ) -> Any:
        spec: dict[str, Any] = {}
        dialog_spec = {
            key: value
            for key, value in (
                ("requestDatetimeText", initial_prompt),
                ("requestDateText", date_prompt),
                ("requestTimeText", time_prompt),
            )
            if value
        }
        if dialog_spec:
            spec["dialogSpec"] = dialog_spec
        return self._fulfill_system_intent(
            StandardIntent.DATETIME,
            InputValueDataType.DATETIME,
            spec,
            PLACEHOLDER_FOR_DATETIME,
            dialog_state,
        )

    def ask_for_sign_in(self, dialog_state: DialogStateLike = None) -> Any:
        return self._fulfill_system_intent(
            StandardIntent.SIGN_IN, None, None, PLACEHOLDER_FOR_SIGN_IN, dialog_state
        )

    def ask_for_new_surface(
        self,
        context: str,
        notification_title: str,
        capabilities: Sequence[str],
        dialog_state: DialogStateLike = None,
    ) -> Any:
        spec = {
            "context": context,
            "notificationTitle": notification_title,
            "capabilities": list(capabilities),
        }
        return self._fulfill_system_intent(
            StandardIntent.NEW_SURFACE,
            InputValueDataType.NEW_SURFACE,
            spec,
            PLACEHOLDER_FOR_NEW_SURFACE,
            dialog_state,
        )

    def ask_to_register_daily_update(
        self,
        intent: str,
        intent_arguments: Optional[list[dict[str, Any]]] = None,
        dialog_state: DialogStateLike = None,
    ) -> Any:
        if not intent:
            self._handle_error("Name of intent to trigger on update must be specified")
            return None
        spec: dict[str, Any] = {
            "intent": intent,
            "triggerContext": {"timeContext": {"frequency": DAILY_FREQUENCY}},
        }
        if intent_arguments:
            spec["arguments"] = intent_arguments
        return self._fulfill_system_intent(
            StandardIntent.REGISTER_UPDATE,
            InputValueDataType.REGISTER_UPDATE,
            spec,
            PLACEHOLDER_FOR_REGISTER_UPDATE,
            dialog_state,
        )

    def ask_to_deep_link(  # pylint: disable=too-many-arguments
        self,
        prompt: Prompt,
        destination_name: str,
        url: str,
        package_name: str,
        reason: Optional[str] = None,
        dialog_state: DialogStateLike = None,
    ) -> Any:
        """Offer to open ``url`` in the Android app ``package_name``."""

        extension: dict[str, Any] = {
            ANY_TYPE_PROPERTY: DialogSpecType.LINK.value,
            "destinationName": destination_name,
        }
        if reason:
            extension["requestLinkReason"] = reason
        spec = {
            "openUrlAction": {"url": url, "androidApp": {"packageName": package_name}},
            "dialogSpec": {"extension": extension},
        }
        return self._fulfill_system_intent(
            StandardIntent.LINK, InputValueDataType.LINK, spec, prompt, dialog_state
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @abstractmethod
    def _fulfill_system_intent(  # pylint: disable=too-many-arguments
        self,
        intent: StandardIntent,
        value_type: Optional[InputValueDataType],
        value_spec: Optional[Mapping[str, Any]],
        prompt: Prompt,
        dialog_state: DialogStateLike,
        legacy_spec_key: Optional[str] = None,
    ) -> Any:
        """Ask for a system intent, answering with its value spec and ``prompt``."""

    def _system_intent_payload(
        self,
        value_type: Optional[InputValueDataType],
        value_spec: Optional[Mapping[str, Any]],
        legacy_spec_key: Optional[str],
    ) -> tuple[str, dict[str, Any]]:
        """Return the (field suffix, payload) pair describing a helper's value spec.

        Legacy requests that have a named spec key use ``spec``-style payloads;
        everything else is an ``@type``-tagged ``data`` payload.
        """

        spec = serialize(dict(value_spec or {}))
        if legacy_spec_key and not self.is_not_api_version_one():
            return "spec", {legacy_spec_key: spec}
        if value_type is None:
            return "data", spec
        return "data", {ANY_TYPE_PROPERTY: value_type.value, **spec}

    def _option_payload(self, container: Any, kind: str, label: str) -> Optional[dict[str, Any]]:
        """Validate a list or carousel and return its wire form."""

        if isinstance(container, Mapping):
            container = (OptionList if kind == "listSelect" else Carousel).from_dict(container)
        if not isinstance(container, (OptionList, Carousel)):
            self._handle_error(f"Invalid {label.lower()}")
            return None
        if len(container.items) < 2:
            self._handle_error(f"{label} requires at least 2 items")
            return None
        return container.to_dict()

    def _parse_transaction_config(self, raw: Any) -> Any:
        try:
            return parse_transaction_config(raw)
        except InvalidTransactionConfig as exc:
            self._handle_error(str(exc))
            return False

    def _resolve_dialog_state(self, dialog_state: DialogStateLike) -> Optional[DialogState]:
        if dialog_state is None:
            return self._default_dialog_state()
        if isinstance(dialog_state, DialogState):
            return DialogState(state=state_name(dialog_state.state), data=dialog_state.data)
        if isinstance(dialog_state, Mapping):
            data = dialog_state.get("data")
            return DialogState(
                state=state_name(dialog_state.get("state")),
                data=dict(data) if isinstance(data, Mapping) else {},
            )
        self._handle_error("Invalid dialog state")
        return None

    def _default_dialog_state(self) -> DialogState:
        return DialogState(state=state_name(self.state), data=self.data)

    def _find_argument(self, *names: str) -> Optional[dict[str, Any]]:
        """Return the first argument across all inputs whose name is in ``names``."""

        for input_ in lookup(self.request_data(), "inputs") or []:
            for argument in input_.get("arguments") or []:
                if argument.get("name") in names:
                    return argument
        return None

    def _prompts(self, texts: Iterable[str], ssml: bool) -> list[dict[str, str]]:
        key = "ssml" if ssml else "textToSpeech"
        return [{key: text} for text in texts]

    def _check_no_inputs(self, no_inputs: Optional[Sequence[str]]) -> Optional[list[str]]:
        if not no_inputs:
            return []
        if len(no_inputs) > INPUTS_MAX:
            self._handle_error("Invalid number of no inputs")
            return None
        return list(no_inputs)

    def _extract_data(self) -> None:
        self.data = {}

    def _extract_user_storage(self) -> None:
        storage = lookup(self.request_data(), "user", "userStorage")
        if not storage:
            return
        try:
            parsed = json.loads(storage)
        except (TypeError, ValueError):
            logger.error("Unable to parse userStorage")
            return
        data = parsed.get("data") if isinstance(parsed, Mapping) else None
        self.user_storage = dict(data) if isinstance(data, Mapping) else {}

    def _user_storage_update(self) -> Optional[str]:
        """Return the serialized user storage when it differs from what was received."""

        if lookup(self.request_data(), "user") is None:
            return None
        serialized = json.dumps({"data": self.user_storage}, separators=(",", ":"))
        if serialized == lookup(self.request_data(), "user", "userStorage"):
            return None
        if not self.user_storage and not lookup(self.request_data(), "user", "userStorage"):
            return None
        return serialized

    def _conversation_type(self) -> Any:
        return lookup(self.request_data(), "conversation", "type")

    def _notify_session_started(self) -> None:
        if self._session_started is None:
            return
        if not callable(self._session_started):
            self._handle_error("session_started must be callable")
            return
        if self._conversation_type() == self.conversation_types.NEW:
            self._session_started()

    def _reject_empty(self, message: str) -> None:
        """Log an empty prompt without writing a response, so the turn can still answer."""
        logger.error(message)
        self._last_error_message = message

    def _handle_error(self, text: str, *args: Any) -> None:
        """Log a local validation error and answer 400 if nothing was sent yet."""

        if not text:
            logger.error("Missing text")
            return
        message = text % args if args else text
        logger.error(message)
        self._last_error_message = message
        if self._responded:
            return
        self._response.status(int(HTTPStatus.BAD_REQUEST)).send(
            f"{settings.API_ERROR_MESSAGE_PREFIX}{message}"
        )
        self._responded = True

    def _do_response(self, response: Mapping[str, Any], code: int = HTTPStatus.OK) -> Any:
        """Write the turn's response; later calls in the same turn are dropped."""

        if self._responded:
            logger.warning("Response already sent for this turn; dropping duplicate")
            return None
        if not response:
            self._handle_error("Response can NOT be empty.")
            return None
        if self.api_version is not None:
            self._response.append(ASSISTANT_API_VERSION_HEADER, self.api_version)
        self._response.append(CONTENT_TYPE_HEADER, CONTENT_TYPE_JSON)
        payload = denormalize_outbound(serialize(response), legacy=not self.is_not_api_version_one())
        if settings.LOG_PAYLOADS:
            logger.debug("Response to Assistant: %s", json.dumps(payload, default=str))
        self._response.status(int(code)).send(payload)
        self._responded = True
        return payload


def _has_payment(config: Any) -> bool:
    return bool(getattr(config, "type", None) or getattr(config, "card_networks", None))


__all__ = [
    "AssistantApp",
    "lookup",
    "ConversationTypes",
    "DialogStateLike",
    "INPUTS_MAX",
    "InputTypes",
    "Prompt",
]
