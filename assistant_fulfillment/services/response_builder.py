"""Chainable builders for rich responses, cards, option lists, and media."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from assistant_fulfillment.core.logging import get_logger

logger = get_logger(__name__)

_SSML = re.compile(r"\s*<speak\b[^>]*>.*?</speak>\s*", re.IGNORECASE | re.DOTALL)


class Limits:  # pylint: disable=too-few-public-methods
    """Platform limits enforced by the builders."""

    LIST_ITEM_MAX = 30
    CAROUSEL_ITEM_MAX = 10
    OPTIONS_MIN = 2
    SIMPLE_RESPONSE_MAX = 2
    SUGGESTION_TEXT_MAX = 25


class ImageDisplays(str, Enum):
    """Image display options for cards and carousels."""

    DEFAULT = "DEFAULT"
    WHITE = "WHITE"
    CROPPED = "CROPPED"


class MediaType(str, Enum):
    """Media response content types."""

    MEDIA_TYPE_UNSPECIFIED = "MEDIA_TYPE_UNSPECIFIED"
    AUDIO = "AUDIO"


class MediaStatus(str, Enum):
    """Playback status reported by ``actions.intent.MEDIA_STATUS``."""

    UNSPECIFIED = "STATUS_UNSPECIFIED"
    FINISHED = "FINISHED"


class UrlTypeHint(str, Enum):
    """How the target of a browse carousel item should be opened."""

    UNSPECIFIED = "URL_TYPE_HINT_UNSPECIFIED"
    AMP_CONTENT = "AMP_CONTENT"


class MediaImageType(str, Enum):
    """Which image slot a media object image fills."""

    ICON = "ICON"
    LARGE = "LARGE_IMAGE"


class MediaValues:  # pylint: disable=too-few-public-methods
    """Namespace bundling the media value enums."""

    Type = MediaType
    Status = MediaStatus
    ImageType = MediaImageType


def is_ssml(text: Any) -> bool:
    """Return True when ``text`` is a ``<speak>`` document, optionally padded by whitespace."""

    if not isinstance(text, str) or not text:
        return False
    return _SSML.fullmatch(text) is not None


def build_image(
    url: str, accessibility_text: str, width: Optional[int] = None, height: Optional[int] = None
) -> dict[str, Any]:
    """Return an image payload; zero or missing dimensions are left out."""
    image: dict[str, Any] = {"url": url, "accessibilityText": accessibility_text}
    if width:
        image["width"] = width
    if height:
        image["height"] = height
    return image


def serialize(value: Any) -> Any:
    """Render builders (and containers holding them) into plain JSON-ready values."""

    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {key: serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    return value


def build_simple_response(response: Union[str, Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    """Turn a string or ``{"speech", "displayText"}`` mapping into a simple response."""

    if not response:
        logger.error("Invalid simple response")
        return None
    if isinstance(response, str):
        return {"ssml": response} if is_ssml(response) else {"textToSpeech": response}
    speech = response.get("speech") if isinstance(response, Mapping) else None
    if not speech:
        logger.error("SimpleResponse requires a speech parameter.")
        return None
    simple: dict[str, Any] = {"ssml": speech} if is_ssml(speech) else {"textToSpeech": speech}
    if response.get("displayText"):
        simple["displayText"] = response["displayText"]
    return simple


@dataclass(slots=True)
class BasicCard:
    """Card with title, body text, image, and link buttons."""

    title: Optional[str] = None
    subtitle: Optional[str] = None
    formatted_text: str = ""
    image: Optional[dict[str, Any]] = None
    image_display_options: Optional[ImageDisplays] = None
    buttons: list[dict[str, Any]] = field(default_factory=list)

    def set_title(self, title: str) -> "BasicCard":
        if not title:
            logger.error("title cannot be empty")
            return self
        self.title = title
        return self

    def set_subtitle(self, subtitle: str) -> "BasicCard":
        if not subtitle:
            logger.error("subtitle cannot be empty")
            return self
        self.subtitle = subtitle
        return self

    def set_body_text(self, body_text: str) -> "BasicCard":
        if not body_text:
            logger.error("bodyText cannot be empty")
            return self
        self.formatted_text = body_text
        return self

    def set_image(
        self,
        url: str,
        accessibility_text: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> "BasicCard":
        if not url or not accessibility_text:
            logger.error("image url and accessibility text cannot be empty")
            return self
        self.image = build_image(url, accessibility_text, width, height)
        return self

    def set_image_display(self, option: Union[ImageDisplays, str]) -> "BasicCard":
        try:
            self.image_display_options = ImageDisplays(option)
        except ValueError:
            logger.error("Image display option %s is invalid", option)
        return self

    def add_button(self, text: str, url: str) -> "BasicCard":
        if not text or not url:
            logger.error("button text and url cannot be empty")
            return self
        self.buttons.append({"title": text, "openUrlAction": {"url": url}})
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"formattedText": self.formatted_text, "buttons": self.buttons}
        if self.title:
            payload["title"] = self.title
        if self.subtitle:
            payload["subtitle"] = self.subtitle
        if self.image:
            payload["image"] = self.image
        if self.image_display_options:
            payload["imageDisplayOptions"] = self.image_display_options.value
        return payload


@dataclass(slots=True)
class OptionItem:
    """Selectable entry of a list or carousel."""

    key: str = ""
    synonyms: list[str] = field(default_factory=list)
    title: str = ""
    description: Optional[str] = None
    image: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OptionItem":
        """Build an item from its wire representation."""
        info = raw.get("optionInfo") or {}
        return cls(
            key=info.get("key") or "",
            synonyms=list(info.get("synonyms") or []),
            title=raw.get("title") or "",
            description=raw.get("description"),
            image=raw.get("image"),
        )

    def set_key(self, key: str) -> "OptionItem":
        if not key:
            logger.error("key cannot be empty")
            return self
        self.key = key
        return self

    def add_synonyms(self, synonyms: Union[str, Iterable[str]]) -> "OptionItem":
        if not synonyms:
            logger.error("Invalid synonyms")
            return self
        if isinstance(synonyms, str):
            self.synonyms.append(synonyms)
        else:
            self.synonyms.extend(synonyms)
        return self

    def set_title(self, title: str) -> "OptionItem":
        if not title:
            logger.error("title cannot be empty")
            return self
        self.title = title
        return self

    def set_description(self, description: str) -> "OptionItem":
        if not description:
            logger.error("description cannot be empty")
            return self
        self.description = description
        return self

    def set_image(
        self,
        url: str,
        accessibility_text: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> "OptionItem":
        if not url or not accessibility_text:
            logger.error("image url and accessibility text cannot be empty")
            return self
        self.image = build_image(url, accessibility_text, width, height)
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "optionInfo": {"key": self.key, "synonyms": self.synonyms},
            "title": self.title,
        }
        if self.description:
            payload["description"] = self.description
        if self.image:
            payload["image"] = self.image
        return payload


def _coerce_items(items: Any) -> list[OptionItem]:
    if isinstance(items, OptionItem):
        return [items]
    if isinstance(items, Mapping):
        return [OptionItem.from_dict(items)]
    coerced = []
    for item in items:
        coerced.append(item if isinstance(item, OptionItem) else OptionItem.from_dict(item))
    return coerced


class _OptionContainer:
    """Shared item handling for lists and carousels."""

    max_items: int = Limits.LIST_ITEM_MAX
    label: str = "List"
    items: list[OptionItem]

    def add_items(self, option_items: Any):
        if not option_items:
            logger.error("optionItems cannot be empty")
            return self
        self.items.extend(_coerce_items(option_items))
        if len(self.items) > self.max_items:
            self.items = self.items[: self.max_items]
            logger.warning("%s can have no more than %d items", self.label, self.max_items)
        return self


@dataclass(slots=True)
class OptionList(_OptionContainer):
    """Vertical list of selectable options."""

    title: Optional[str] = None
    items: list[OptionItem] = field(default_factory=list)

    max_items = Limits.LIST_ITEM_MAX
    label = "List"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OptionList":
        return cls(title=raw.get("title"), items=_coerce_items(raw.get("items") or []))

    def set_title(self, title: str) -> "OptionList":
        if not title:
            logger.error("title cannot be empty")
            return self
        self.title = title
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"items": [item.to_dict() for item in self.items]}
        if self.title:
            payload["title"] = self.title
        return payload


@dataclass(slots=True)
class Carousel(_OptionContainer):
    """Horizontally scrolling set of option cards."""

    items: list[OptionItem] = field(default_factory=list)
    image_display_options: Optional[ImageDisplays] = None

    max_items = Limits.CAROUSEL_ITEM_MAX
    label = "Carousel"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Carousel":
        carousel = cls(items=_coerce_items(raw.get("items") or []))
        if raw.get("imageDisplayOptions"):
            carousel.set_image_display(raw["imageDisplayOptions"])
        return carousel

    def set_image_display(self, option: Union[ImageDisplays, str]) -> "Carousel":
        try:
            self.image_display_options = ImageDisplays(option)
        except ValueError:
            logger.error("Image display option %s is invalid", option)
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"items": [item.to_dict() for item in self.items]}
        if self.image_display_options:
            payload["imageDisplayOptions"] = self.image_display_options.value
        return payload


@dataclass(slots=True)
class BrowseItem:
    """Card of a browse carousel that opens a web page when tapped."""

    title: str = ""
    url: Optional[str] = None
    url_type_hint: UrlTypeHint = UrlTypeHint.UNSPECIFIED
    description: Optional[str] = None
    footer: Optional[str] = None
    image: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "BrowseItem":
        action = raw.get("openUrlAction") or {}
        item = cls(
            title=raw.get("title") or "",
            url=action.get("url"),
            description=raw.get("description"),
            footer=raw.get("footer"),
            image=raw.get("image"),
        )
        if action.get("urlTypeHint"):
            item.set_url_type_hint(action["urlTypeHint"])
        return item

    def set_title(self, title: str) -> "BrowseItem":
        if not title:
            logger.error("title cannot be empty")
            return self
        self.title = title
        return self

    def set_description(self, description: str) -> "BrowseItem":
        if not description:
            logger.error("description cannot be empty")
            return self
        self.description = description
        return self

    def set_footer(self, footer_text: str) -> "BrowseItem":
        if not footer_text:
            logger.error("footer cannot be empty")
            return self
        self.footer = footer_text
        return self

    def set_image(
        self,
        url: str,
        accessibility_text: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> "BrowseItem":
        if not url or not accessibility_text:
            logger.error("image url and accessibility text cannot be empty")
            return self
        self.image = build_image(url, accessibility_text, width, height)
        return self

    def set_open_url_action(
        self, url: str, url_type_hint: Union[UrlTypeHint, str, None] = None
    ) -> "BrowseItem":
        self.set_url(url)
        return self.set_url_type_hint(url_type_hint) if url_type_hint else self

    def set_url(self, url: str) -> "BrowseItem":
        if not url:
            logger.error("url cannot be empty")
            return self
        self.url = url
        return self

    def set_url_type_hint(self, url_type_hint: Union[UrlTypeHint, str]) -> "BrowseItem":
        try:
            self.url_type_hint = UrlTypeHint(url_type_hint)
        except ValueError:
            logger.error("URL type hint must be valid: %s", url_type_hint)
        return self

    def to_dict(self) -> dict[str, Any]:
        action: dict[str, Any] = {"urlTypeHint": self.url_type_hint.value}
        if self.url:
            action["url"] = self.url
        payload: dict[str, Any] = {"title": self.title, "openUrlAction": action}
        if self.description:
            payload["description"] = self.description
        if self.footer:
            payload["footer"] = self.footer
        if self.image:
            payload["image"] = self.image
        return payload


@dataclass(slots=True)
class BrowseCarousel:
    """Carousel of web page cards; unlike :class:`Carousel` it fires no option intent."""

    items: list[BrowseItem] = field(default_factory=list)
    image_display_options: Optional[ImageDisplays] = None

    @classmethod
    def from_dict(cls, raw: Union[Mapping[str, Any], Iterable[Any]]) -> "BrowseCarousel":
        """Build a carousel from its wire form or from a sequence of items."""
        entries = (raw.get("items") or []) if isinstance(raw, Mapping) else raw
        items = [
            item if isinstance(item, BrowseItem) else BrowseItem.from_dict(item) for item in entries
        ]
        carousel = cls(items=items)
        if isinstance(raw, Mapping) and raw.get("imageDisplayOptions"):
            carousel.set_image_display(raw["imageDisplayOptions"])
        return carousel

    def add_items(self, browse_items: Union[BrowseItem, Iterable[BrowseItem]]) -> "BrowseCarousel":
        if not browse_items:
            logger.error("browseItems cannot be empty")
            return self
        if isinstance(browse_items, BrowseItem):
            self.items.append(browse_items)
        else:
            self.items.extend(browse_items)
        if len(self.items) > Limits.CAROUSEL_ITEM_MAX:
            self.items = self.items[: Limits.CAROUSEL_ITEM_MAX]
            logger.warning("Carousel can have no more than %d items", Limits.CAROUSEL_ITEM_MAX)
        return self

    def set_image_display(self, option: Union[ImageDisplays, str]) -> "BrowseCarousel":
        try:
            self.image_display_options = ImageDisplays(option)
        except ValueError:
            logger.error("Image display option %s is invalid", option)
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"items": [item.to_dict() for item in self.items]}
        if self.image_display_options:
            payload["imageDisplayOptions"] = self.image_display_options.value
        return payload


@dataclass(slots=True)
class MediaObject:
    """Single playable item of a media response."""

    name: str
    content_url: str
    description: Optional[str] = None
    large_image: Optional[dict[str, str]] = None
    icon: Optional[dict[str, str]] = None

    def set_description(self, description: str) -> "MediaObject":
        if not description:
            logger.error("description cannot be empty")
            return self
        self.description = description
        return self

    def set_image(self, url: str, image_type: Union[MediaImageType, str]) -> "MediaObject":
        if not url:
            logger.error("url cannot be empty")
            return self
        try:
            kind = MediaImageType(image_type)
        except ValueError:
            logger.error("Invalid media image type: %s", image_type)
            return self
        if kind is MediaImageType.ICON:
            self.icon, self.large_image = {"url": url}, None
        else:
            self.large_image, self.icon = {"url": url}, None
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "contentUrl": self.content_url}
        if self.description:
            payload["description"] = self.description
        if self.large_image:
            payload["largeImage"] = self.large_image
        if self.icon:
            payload["icon"] = self.icon
        return payload


@dataclass(slots=True)
class MediaResponse:
    """Audio playback card."""

    media_type: MediaType = MediaType.AUDIO
    media_objects: list[MediaObject] = field(default_factory=list)

    def add_media_objects(self, items: Union[MediaObject, Iterable[MediaObject]]) -> "MediaResponse":
        if not items:
            logger.error("media objects cannot be empty")
            return self
        if isinstance(items, MediaObject):
            self.media_objects.append(items)
        else:
            self.media_objects.extend(items)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "mediaType": MediaType(self.media_type).value,
            "mediaObjects": [item.to_dict() for item in self.media_objects],
        }


@dataclass(slots=True)
class RichResponse:
    """Ordered visual/spoken response items plus suggestion chips."""

    items: list[dict[str, Any]] = field(default_factory=list)
    suggestions: list[dict[str, str]] = field(default_factory=list)
    link_out_suggestion: Optional[dict[str, str]] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RichResponse":
        """Rebuild a rich response from its wire representation."""
        return cls(
            items=[dict(item) for item in raw.get("items") or []],
            suggestions=list(raw.get("suggestions") or []),
            link_out_suggestion=raw.get("linkOutSuggestion"),
        )

    def _count(self, kind: str) -> int:
        return sum(1 for item in self.items if kind in item)

    def add_simple_response(self, simple_response: Union[str, Mapping[str, Any]]) -> "RichResponse":
        """Add spoken text; a leading card or order update stays after it."""

        if self._count("simpleResponse") >= Limits.SIMPLE_RESPONSE_MAX:
            logger.error(
                "Cannot include >%d SimpleResponses in RichResponse", Limits.SIMPLE_RESPONSE_MAX
            )
            return self
        simple = build_simple_response(simple_response)
        if simple is None:
            return self
        entry = {"simpleResponse": simple}
        if self.items and ("basicCard" in self.items[0] or "structuredResponse" in self.items[0]):
            self.items.insert(0, entry)
        else:
            self.items.append(entry)
        return self

    def add_basic_card(self, basic_card: BasicCard) -> "RichResponse":
        if not basic_card:
            logger.error("Invalid basicCard")
            return self
        if self._count("basicCard"):
            logger.error("Cannot include >1 BasicCard in RichResponse")
            return self
        self.items.append({"basicCard": basic_card})
        return self

    def add_media_response(self, media_response: MediaResponse) -> "RichResponse":
        if not media_response:
            logger.error("Invalid MediaResponse")
            return self
        if self._count("mediaResponse"):
            logger.error("Cannot include >1 MediaResponse in RichResponse")
            return self
        self.items.append({"mediaResponse": media_response})
        return self

    def add_browse_carousel(self, browse_carousel: BrowseCarousel) -> "RichResponse":
        if not browse_carousel:
            logger.error("Invalid browse carousel")
            return self
        self.items.append({"carouselBrowse": browse_carousel})
        return self

    def add_suggestions(self, suggestions: Union[str, Iterable[str]]) -> "RichResponse":
        if not suggestions:
            logger.error("Invalid suggestions")
            return self
        for suggestion in [suggestions] if isinstance(suggestions, str) else suggestions:
            if suggestion and len(suggestion) <= Limits.SUGGESTION_TEXT_MAX:
                self.suggestions.append({"title": suggestion})
            else:
                logger.warning(
                    "Suggestion text can't be longer than %d characters: %s",
                    Limits.SUGGESTION_TEXT_MAX,
                    suggestion,
                )
        return self

    def add_suggestion_link(self, destination_name: str, suggestion_url: str) -> "RichResponse":
        if not destination_name or not suggestion_url:
            logger.error("destinationName and suggestionUrl cannot be empty")
            return self
        self.link_out_suggestion = {"destinationName": destination_name, "url": suggestion_url}
        return self

    def add_order_update(self, order_update: Any) -> "RichResponse":
        """Attach an order update (an ``OrderUpdate`` or its wire mapping) once."""
        if not order_update:
            logger.error("Invalid orderUpdate")
            return self
        if self._count("structuredResponse"):
            return self
        self.items.append({"structuredResponse": {"orderUpdate": order_update}})
        return self

    def first_simple_response(self) -> Optional[dict[str, Any]]:
        """Return the first simple response item's payload, if any."""
        if self.items and "simpleResponse" in self.items[0]:
            return self.items[0]["simpleResponse"]
        return None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "items": serialize(self.items),
            "suggestions": list(self.suggestions),
        }
        if self.link_out_suggestion:
            payload["linkOutSuggestion"] = self.link_out_suggestion
        return payload


__all__ = [
    "BasicCard",
    "BrowseCarousel",
    "BrowseItem",
    "Carousel",
    "ImageDisplays",
    "Limits",
    "MediaImageType",
    "MediaObject",
    "MediaResponse",
    "MediaStatus",
    "MediaType",
    "MediaValues",
    "OptionItem",
    "OptionList",
    "RichResponse",
    "UrlTypeHint",
    "build_image",
    "build_simple_response",
    "is_ssml",
    "serialize",
]
