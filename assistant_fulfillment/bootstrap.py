"""Application bootstrap helpers for assembling the fulfillment handlers."""

from __future__ import annotations

import importlib
from typing import Optional

from assistant_fulfillment.core.config import settings
from assistant_fulfillment.core.logging import get_logger
from assistant_fulfillment.services import FulfillmentHandlers, build_default_handlers

logger = get_logger(__name__)


def load_handlers(import_path: str) -> FulfillmentHandlers:
    """Import ``package.module:attribute`` and return it as fulfillment handlers.

    The attribute may be a :class:`FulfillmentHandlers` instance or a
    zero-argument callable returning one.
    """

    module_name, _, attribute = import_path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Handler path must look like 'package.module:attribute', got {import_path!r}")
    target = getattr(importlib.import_module(module_name), attribute)
    if callable(target) and not isinstance(target, FulfillmentHandlers):
        target = target()
    if not isinstance(target, FulfillmentHandlers):
        raise TypeError(f"{import_path} did not resolve to FulfillmentHandlers")
    if target.intent_router is None:
        target.intent_router = build_default_handlers().intent_router
    return target


def build_default_fulfillment_handlers(import_path: Optional[str] = None) -> FulfillmentHandlers:
    """Return handlers from ``FULFILLMENT_HANDLERS``, or an empty container."""

    path = import_path or settings.FULFILLMENT_HANDLERS
    if not path:
        logger.warning("FULFILLMENT_HANDLERS is not set; webhooks will answer 404")
        return build_default_handlers()
    logger.info("Loading fulfillment handlers from %s", path)
    return load_handlers(path)


__all__ = ["build_default_fulfillment_handlers", "load_handlers"]
