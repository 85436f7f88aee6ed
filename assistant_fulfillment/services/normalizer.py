"""Request/response normalization between legacy and current Conversation API shapes."""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping, Optional

from pydantic.alias_generators import to_camel, to_snake

from assistant_fulfillment.core.logging import get_logger

ACTIONS_API_VERSION_HEADER = "Google-Actions-API-Version"
ASSISTANT_API_VERSION_HEADER = "Google-Assistant-API-Version"
ACTIONS_API_VERSION_TWO = 2

_IDENTIFIER_KEY = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

logger = get_logger(__name__)


def transform_keys(value: Any, convert: Callable[[str], str]) -> Any:
    """Return a deep copy of ``value`` with every identifier-like key converted.

    Keys that are not plain identifiers (``@type``, ``city.original``) are
    copied unchanged, as are non-container values.
    """

    if isinstance(value, Mapping):
        return {
            (convert(key) if isinstance(key, str) and _IDENTIFIER_KEY.match(key) else key):
                transform_keys(item, convert)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [transform_keys(item, convert) for item in value]
    return value


def to_camel_case_keys(value: Any) -> Any:
    """Convert snake_case keys to camelCase recursively."""
    return transform_keys(value, to_camel)


def to_snake_case_keys(value: Any) -> Any:
    """Convert camelCase keys to snake_case recursively."""
    return transform_keys(value, to_snake)


def resolve_actions_api_version(header_value: Optional[str], body: Any) -> Optional[str]:
    """Return the Actions API version, preferring a Dialogflow body's own declaration."""

    version = header_value or None
    if isinstance(body, Mapping):
        original = body.get("originalRequest")
        if isinstance(original, Mapping) and original.get("version"):
            version = str(original["version"])
            logger.debug("Actions API version from Dialogflow body: %s", version)
    return version


def is_not_api_version_one(version: Optional[str]) -> bool:
    """Return True when ``version`` names Conversation API v2 or later."""

    if version is None:
        return False
    match = _LEADING_INT.match(str(version))
    if not match:
        return False
    return int(match.group(1)) >= ACTIONS_API_VERSION_TWO


def normalize_inbound(body: Any, *, legacy: bool, dialogflow: bool) -> Any:
    """Return the request body in the camelCase shape the accessors read."""

    if not legacy or not isinstance(body, Mapping):
        return body
    if dialogflow:
        normalized = dict(body)
        if "originalRequest" in normalized:
            normalized["originalRequest"] = to_camel_case_keys(normalized["originalRequest"])
        return normalized
    return to_camel_case_keys(body)


def denormalize_outbound(response: Mapping[str, Any], *, legacy: bool) -> Any:
    """Return the response body in the wire shape expected by the platform version."""

    if not legacy:
        return response
    if response.get("data"):
        outbound = dict(response)
        outbound["data"] = to_snake_case_keys(response["data"])
        return outbound
    return to_snake_case_keys(response)


__all__ = [
    "ACTIONS_API_VERSION_HEADER",
    "ASSISTANT_API_VERSION_HEADER",
    "transform_keys",
    "to_camel_case_keys",
    "to_snake_case_keys",
    "resolve_actions_api_version",
    "is_not_api_version_one",
    "normalize_inbound",
    "denormalize_outbound",
]
