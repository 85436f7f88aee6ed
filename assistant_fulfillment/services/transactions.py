"""Transaction configuration models and payment option builders."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from assistant_fulfillment.core.logging import get_logger
from assistant_fulfillment.services.response_builder import build_image, serialize

logger = get_logger(__name__)


class ResultType(str, Enum):
    """Outcome of a transaction requirements check."""

    UNSPECIFIED = "RESULT_TYPE_UNSPECIFIED"
    OK = "OK"
    USER_ACTION_REQUIRED = "USER_ACTION_REQUIRED"
    ASSISTANT_SURFACE_NOT_SUPPORTED = "ASSISTANT_SURFACE_NOT_SUPPORTED"
    REGION_NOT_SUPPORTED = "REGION_NOT_SUPPORTED"


class TransactionUserDecision(str, Enum):
    """User decision on a proposed order."""

    UNKNOWN = "UNKNOWN_USER_DECISION"
    ACCEPTED = "ORDER_ACCEPTED"
    REJECTED = "ORDER_REJECTED"
    DELIVERY_ADDRESS_UPDATED = "DELIVERY_ADDRESS_UPDATED"
    CART_CHANGE_REQUESTED = "CART_CHANGE_REQUESTED"


class DeliveryAddressDecision(str, Enum):
    """User decision on sharing a delivery address."""

    UNKNOWN = "UNKNOWN_USER_DECISION"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class PaymentType(str, Enum):
    """Action-provided payment method kinds."""

    UNSPECIFIED = "PAYMENT_TYPE_UNSPECIFIED"
    PAYMENT_CARD = "PAYMENT_CARD"
    BANK = "BANK"
    LOYALTY_PROGRAM = "LOYALTY_PROGRAM"
    ON_FULFILLMENT = "ON_FULFILLMENT"
    GIFT_CARD = "GIFT_CARD"


class CardNetwork(str, Enum):
    """Card networks accepted through Google-provided payment."""

    UNSPECIFIED = "UNSPECIFIED_CARD_NETWORK"
    AMEX = "AMEX"
    DISCOVER = "DISCOVER"
    MASTERCARD = "MASTERCARD"
    VISA = "VISA"
    JCB = "JCB"


class PaymentMethodTokenizationType(str, Enum):
    """How Google-provided payment credentials are tokenized."""

    UNSPECIFIED = "UNSPECIFIED_TOKENIZATION_TYPE"
    PAYMENT_GATEWAY = "PAYMENT_GATEWAY"
    DIRECT = "DIRECT"


class _TransactionConfig(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, use_enum_values=True
    )

    delivery_address_required: bool = False
    customer_info_options: Optional[dict[str, Any]] = None


class ActionPaymentTransactionConfig(_TransactionConfig):
    """Payment handled by the action itself."""

    type: PaymentType
    display_name: str


class GooglePaymentTransactionConfig(_TransactionConfig):
    """Payment handled by Google with the listed card networks."""

    card_networks: list[CardNetwork] = Field(min_length=1)
    prepaid_card_disallowed: bool = False
    tokenization_parameters: Optional[dict[str, Any]] = None
    tokenization_type: PaymentMethodTokenizationType = PaymentMethodTokenizationType.PAYMENT_GATEWAY


TransactionConfig = Union[ActionPaymentTransactionConfig, GooglePaymentTransactionConfig]


class InvalidTransactionConfig(ValueError):
    """Raised when a transaction config mixes both payment styles or is malformed."""


def parse_transaction_config(
    raw: Union[TransactionConfig, Mapping[str, Any], None],
) -> Optional[TransactionConfig]:
    """Return a typed config from a model or camelCase/snake_case mapping."""

    if raw is None or isinstance(raw, (ActionPaymentTransactionConfig, GooglePaymentTransactionConfig)):
        return raw
    has_type = bool(raw.get("type"))
    has_networks = bool(raw.get("cardNetworks") or raw.get("card_networks"))
    if has_type and has_networks:
        raise InvalidTransactionConfig(
            "Invalid transaction configuration. Must be of type "
            "ActionPaymentTransactionConfig or GooglePaymentTransactionConfig"
        )
    try:
        if has_type:
            return ActionPaymentTransactionConfig.model_validate(raw)
        if has_networks:
            return GooglePaymentTransactionConfig.model_validate(raw)
        return _TransactionConfig.model_validate(raw)  # type: ignore[return-value]
    except ValidationError as exc:
        raise InvalidTransactionConfig(str(exc)) from exc


def build_payment_options(config: TransactionConfig) -> dict[str, Any]:
    """Return the ``paymentOptions`` payload for ``config``."""

    if isinstance(config, ActionPaymentTransactionConfig):
        return {
            "actionProvidedOptions": {
                "paymentType": config.type,
                "displayName": config.display_name,
            }
        }
    google: dict[str, Any] = {
        "supportedCardNetworks": list(config.card_networks),
        "prepaidCardDisallowed": config.prepaid_card_disallowed,
    }
    if config.tokenization_parameters:
        google["tokenizationParameters"] = {
            "tokenizationType": config.tokenization_type,
            "parameters": config.tokenization_parameters,
        }
    return {"googleProvidedOptions": google}


def build_order_options(config: Optional[_TransactionConfig]) -> Optional[dict[str, Any]]:
    """Return ``orderOptions`` for delivery address and customer info requests."""

    if config is None:
        return None
    options: dict[str, Any] = {}
    if config.delivery_address_required:
        options["requestDeliveryAddress"] = True
    if config.customer_info_options:
        options["customerInfoOptions"] = config.customer_info_options
    return options or None


# ---------------------------------------------------------------------------
# Order builders
# ---------------------------------------------------------------------------

GENERIC_EXTENSION_TYPE = "type.googleapis.com/google.actions.v2.orders.GenericExtension"
ORDER_LOCATION_MAX = 2


class PriceType(str, Enum):
    """Whether a price is final."""

    UNKNOWN = "UNKNOWN"
    ESTIMATE = "ESTIMATE"
    ACTUAL = "ACTUAL"


class ItemType(str, Enum):
    """Kind of a cart line item."""

    UNSPECIFIED = "UNSPECIFIED"
    REGULAR = "REGULAR"
    TAX = "TAX"
    DISCOUNT = "DISCOUNT"
    GRATUITY = "GRATUITY"
    DELIVERY = "DELIVERY"
    SUBTOTAL = "SUBTOTAL"
    FEE = "FEE"


class LocationType(str, Enum):
    """Role of a location attached to an order."""

    UNKNOWN = "UNKNOWN"
    DELIVERY = "DELIVERY"
    BUSINESS = "BUSINESS"
    ORIGIN = "ORIGIN"
    DESTINATION = "DESTINATION"
    PICK_UP = "PICK_UP"


class TimeType(str, Enum):
    """Meaning of the time attached to an order."""

    UNKNOWN = "UNKNOWN"
    DELIVERY_DATE = "DELIVERY_DATE"
    ETA = "ETA"
    RESERVATION_SLOT = "RESERVATION_SLOT"


class OrderState(str, Enum):
    """Lifecycle state reported in an order update."""

    CREATED = "CREATED"
    REJECTED = "REJECTED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    IN_TRANSIT = "IN_TRANSIT"
    RETURNED = "RETURNED"
    FULFILLED = "FULFILLED"
    CHANGE_REQUESTED = "CHANGE_REQUESTED"


class OrderAction(str, Enum):
    """Order management buttons offered to the user."""

    VIEW_DETAILS = "VIEW_DETAILS"
    MODIFY = "MODIFY"
    CANCEL = "CANCEL"
    RETURN = "RETURN"
    EXCHANGE = "EXCHANGE"
    EMAIL = "EMAIL"
    CALL = "CALL"
    REORDER = "REORDER"
    REVIEW = "REVIEW"
    CUSTOMER_SERVICE = "CUSTOMER_SERVICE"
    FIX_ISSUE = "FIX_ISSUE"


class OrderStateInfo(str, Enum):
    """Order update field carrying the details of the current state."""

    RECEIPT = "receipt"
    REJECTION = "rejectionInfo"
    CANCELLATION = "cancellationInfo"
    IN_TRANSIT = "inTransitInfo"
    FULFILLMENT = "fulfillmentInfo"
    RETURN = "returnInfo"


def build_price(
    price_type: Union[PriceType, str], currency_code: str, units: int, nanos: int = 0
) -> dict[str, Any]:
    """Return a ``{type, amount}`` price payload."""

    return {
        "type": getattr(price_type, "value", price_type),
        "amount": {"currencyCode": currency_code, "units": units, "nanos": nanos},
    }


def _extend(target: list[Any], items: Any) -> None:
    if isinstance(items, (list, tuple)):
        target.extend(items)
    else:
        target.append(items)


@dataclass(slots=True)
class LineItem:
    """Single priced entry of a cart."""

    id: str
    name: str
    sublines: Optional[list[Any]] = None
    image: Optional[dict[str, Any]] = None
    price: Optional[dict[str, Any]] = None
    type: Optional[ItemType] = None
    quantity: Optional[int] = None
    description: Optional[str] = None
    offer_id: Optional[str] = None

    def add_sublines(self, items: Any) -> "LineItem":
        if not items:
            logger.error("Invalid sublines")
            return self
        if self.sublines is None:
            self.sublines = []
        _extend(self.sublines, items)
        return self

    def set_image(
        self,
        url: str,
        accessibility_text: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> "LineItem":
        if not url or not accessibility_text:
            logger.error("image url and accessibility text cannot be empty")
            return self
        self.image = build_image(url, accessibility_text, width, height)
        return self

    def set_price(
        self, price_type: Union[PriceType, str], currency_code: str, units: int, nanos: int = 0
    ) -> "LineItem":
        if not price_type or not currency_code:
            logger.error("priceType and currencyCode cannot be empty")
            return self
        self.price = build_price(price_type, currency_code, units, nanos)
        return self

    def set_type(self, item_type: Union[ItemType, str]) -> "LineItem":
        try:
            self.type = ItemType(item_type)
        except ValueError:
            logger.error("Invalid line item type: %s", item_type)
        return self

    def set_quantity(self, quantity: int) -> "LineItem":
        if not quantity:
            logger.error("quantity cannot be empty")
            return self
        self.quantity = quantity
        return self

    def set_description(self, description: str) -> "LineItem":
        if not description:
            logger.error("description cannot be empty")
            return self
        self.description = description
        return self

    def set_offer_id(self, offer_id: str) -> "LineItem":
        if not offer_id:
            logger.error("offerId cannot be empty")
            return self
        self.offer_id = offer_id
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "name": self.name}
        optional = (
            ("sublines", serialize(self.sublines) if self.sublines is not None else None),
            ("image", self.image),
            ("price", self.price),
            ("type", self.type.value if self.type else None),
            ("quantity", self.quantity),
            ("description", self.description),
            ("offerId", self.offer_id),
        )
        payload.update((key, value) for key, value in optional if value is not None)
        return payload


@dataclass(slots=True)
class Cart:
    """Merchant, notes, and line items of a proposed order."""

    id: Optional[str] = None
    merchant: Optional[dict[str, str]] = None
    notes: Optional[str] = None
    line_items: list[Any] = field(default_factory=list)
    other_items: list[Any] = field(default_factory=list)

    def set_merchant(self, merchant_id: str, name: str) -> "Cart":
        if not merchant_id or not name:
            logger.error("merchant id and name cannot be empty")
            return self
        self.merchant = {"id": merchant_id, "name": name}
        return self

    def set_notes(self, notes: str) -> "Cart":
        if not notes:
            logger.error("notes cannot be empty")
            return self
        self.notes = notes
        return self

    def add_line_items(
        self, items: Union[LineItem, Iterable[LineItem], Mapping[str, Any]]
    ) -> "Cart":
        if not items:
            logger.error("Invalid line items")
            return self
        _extend(self.line_items, items)
        return self

    def add_other_items(self, items: Any) -> "Cart":
        if not items:
            logger.error("Invalid other items")
            return self
        _extend(self.other_items, items)
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "lineItems": serialize(self.line_items),
            "otherItems": serialize(self.other_items),
        }
        if self.id:
            payload["id"] = self.id
        if self.merchant:
            payload["merchant"] = self.merchant
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass(slots=True)
class Order:
    """Proposed order sent with a transaction decision request."""

    id: str
    cart: Optional[Any] = None
    other_items: list[Any] = field(default_factory=list)
    image: Optional[dict[str, Any]] = None
    terms_of_service_url: Optional[str] = None
    total_price: Optional[dict[str, Any]] = None
    extension: Optional[dict[str, Any]] = None

    def set_cart(self, cart: Union[Cart, Mapping[str, Any]]) -> "Order":
        if not cart:
            logger.error("cart cannot be empty")
            return self
        self.cart = cart
        return self

    def add_other_items(self, items: Any) -> "Order":
        if not items:
            logger.error("Invalid other items")
            return self
        _extend(self.other_items, items)
        return self

    def set_image(
        self,
        url: str,
        accessibility_text: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> "Order":
        if not url or not accessibility_text:
            logger.error("image url and accessibility text cannot be empty")
            return self
        self.image = build_image(url, accessibility_text, width, height)
        return self

    def set_terms_of_service(self, url: str) -> "Order":
        if not url:
            logger.error("Invalid TOS url")
            return self
        self.terms_of_service_url = url
        return self

    def set_total_price(
        self, price_type: Union[PriceType, str], currency_code: str, units: int, nanos: int = 0
    ) -> "Order":
        if not price_type or not currency_code:
            logger.error("priceType and currencyCode cannot be empty")
            return self
        self.total_price = build_price(price_type, currency_code, units, nanos)
        return self

    def set_time(self, time_type: Union[TimeType, str], time: str) -> "Order":
        """Attach an ISO 8601 time of the given kind to the order extension."""

        if not time_type or not time:
            logger.error("time type and time cannot be empty")
            return self
        self._generic_extension()["time"] = {
            "type": getattr(time_type, "value", time_type),
            "time_iso8601": time,
        }
        return self

    def add_location(
        self, location_type: Union[LocationType, str], location: Mapping[str, Any]
    ) -> "Order":
        if not location_type or not location:
            logger.error("location type and location cannot be empty")
            return self
        locations = self._generic_extension().setdefault("locations", [])
        if len(locations) >= ORDER_LOCATION_MAX:
            logger.error("Order can have no more than %d locations", ORDER_LOCATION_MAX)
            return self
        locations.append(
            {"type": getattr(location_type, "value", location_type), "location": location}
        )
        return self

    def _generic_extension(self) -> dict[str, Any]:
        if self.extension is None:
            self.extension = {"@type": GENERIC_EXTENSION_TYPE}
        return self.extension

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "otherItems": serialize(self.other_items)}
        if self.cart:
            payload["cart"] = serialize(self.cart)
        if self.image:
            payload["image"] = self.image
        if self.terms_of_service_url:
            payload["termsOfServiceUrl"] = self.terms_of_service_url
        if self.total_price:
            payload["totalPrice"] = self.total_price
        if self.extension:
            payload["extension"] = self.extension
        return payload


@dataclass(slots=True)
class OrderUpdate:
    """Status change for an order, sent in a rich response after purchase."""

    order_id: str
    is_google_order_id: bool = False
    line_item_updates: dict[str, dict[str, Any]] = field(default_factory=dict)
    order_management_actions: list[dict[str, Any]] = field(default_factory=list)
    total_price: Optional[dict[str, Any]] = None
    order_state: Optional[dict[str, str]] = None
    update_time: Optional[dict[str, int]] = None
    user_notification: Optional[dict[str, str]] = None
    info: Optional[tuple[OrderStateInfo, dict[str, Any]]] = None

    def set_total_price(
        self, price_type: Union[PriceType, str], currency_code: str, units: int, nanos: int = 0
    ) -> "OrderUpdate":
        if not price_type or not currency_code:
            logger.error("priceType and currencyCode cannot be empty")
            return self
        self.total_price = build_price(price_type, currency_code, units, nanos)
        return self

    def set_order_state(self, state: Union[OrderState, str], label: str) -> "OrderUpdate":
        if not state or not label:
            logger.error("state and label cannot be empty")
            return self
        self.order_state = {"state": getattr(state, "value", state), "label": label}
        return self

    def add_order_management_action(
        self, action_type: Union[OrderAction, str], label: str, url: str
    ) -> "OrderUpdate":
        if not action_type or not label or not url:
            logger.error("action type, label and url cannot be empty")
            return self
        self.order_management_actions.append(
            {
                "type": getattr(action_type, "value", action_type),
                "button": {"title": label, "openUrlAction": {"url": url}},
            }
        )
        return self

    def set_user_notification(self, title: str, text: str) -> "OrderUpdate":
        if not title or not text:
            logger.error("title and text cannot be empty")
            return self
        self.user_notification = {"title": title, "text": text}
        return self

    def set_info(self, kind: Union[OrderStateInfo, str], info: Mapping[str, Any]) -> "OrderUpdate":
        """Replace any previously set state details with ``info`` under ``kind``."""

        try:
            field_kind = OrderStateInfo(kind)
        except ValueError:
            logger.error("Invalid order state info type: %s", kind)
            return self
        self.info = (field_kind, dict(info))
        return self

    def set_update_time(self, seconds: int, nanos: int = 0) -> "OrderUpdate":
        if not seconds:
            logger.error("seconds cannot be empty")
            return self
        self.update_time = {"seconds": seconds, "nanos": nanos}
        return self

    def add_line_item_price_update(  # pylint: disable=too-many-arguments
        self,
        item_id: str,
        price_type: Union[PriceType, str],
        currency_code: str,
        units: int,
        nanos: int = 0,
        reason: Optional[str] = None,
    ) -> "OrderUpdate":
        """Record a price change for ``item_id``; a reason is required."""

        if not item_id:
            logger.error("itemId cannot be empty")
            return self
        if not reason:
            logger.error("reason cannot be empty for a line item price update")
            return self
        update = self.line_item_updates.setdefault(item_id, {})
        update["price"] = build_price(price_type, currency_code, units, nanos)
        update["reason"] = reason
        return self

    def add_line_item_state_update(
        self,
        item_id: str,
        state: Union[OrderState, str],
        label: str,
        reason: Optional[str] = None,
    ) -> "OrderUpdate":
        if not item_id or not state or not label:
            logger.error("itemId, state and label cannot be empty")
            return self
        update = self.line_item_updates.setdefault(item_id, {})
        update["orderState"] = {"state": getattr(state, "value", state), "label": label}
        if reason:
            update["reason"] = reason
        return self

    def to_dict(self) -> dict[str, Any]:
        id_key = "googleOrderId" if self.is_google_order_id else "actionOrderId"
        payload: dict[str, Any] = {
            id_key: self.order_id,
            "lineItemUpdates": {key: dict(value) for key, value in self.line_item_updates.items()},
            "orderManagementActions": list(self.order_management_actions),
        }
        if self.total_price:
            payload["totalPrice"] = self.total_price
        if self.order_state:
            payload["orderState"] = self.order_state
        if self.update_time:
            payload["updateTime"] = self.update_time
        if self.user_notification:
            payload["userNotification"] = self.user_notification
        if self.info:
            kind, info = self.info
            payload[kind.value] = info
        return payload


__all__ = [
    "ActionPaymentTransactionConfig",
    "CardNetwork",
    "Cart",
    "DeliveryAddressDecision",
    "GENERIC_EXTENSION_TYPE",
    "GooglePaymentTransactionConfig",
    "InvalidTransactionConfig",
    "ItemType",
    "LineItem",
    "LocationType",
    "Order",
    "OrderAction",
    "OrderState",
    "OrderStateInfo",
    "OrderUpdate",
    "PaymentMethodTokenizationType",
    "PaymentType",
    "PriceType",
    "ResultType",
    "TimeType",
    "TransactionConfig",
    "TransactionUserDecision",
    "build_order_options",
    "build_payment_options",
    "build_price",
    "parse_transaction_config",
]
