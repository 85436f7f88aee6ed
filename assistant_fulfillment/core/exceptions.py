"""Core exception types shared across layers."""


class FulfillmentError(Exception):
    """Base error for a turn that could not be fulfilled."""


class InvalidHandlerError(FulfillmentError):
    """Raised when the request handler is missing or of an unsupported type."""


class IntentRouterError(FulfillmentError):
    """Base error for dispatch failures."""


class IntentHandlerNotFoundError(IntentRouterError):
    """Raised when no handler in the table matches the incoming intent."""


class IntentHandlerError(IntentRouterError):
    """Raised when a developer handler raised or its awaitable failed."""


class DialogStateError(ValueError):
    """Raised when a conversation token cannot be parsed into a dialog state."""


__all__ = [
    "FulfillmentError",
    "InvalidHandlerError",
    "IntentRouterError",
    "IntentHandlerNotFoundError",
    "IntentHandlerError",
    "DialogStateError",
]
