"""Custom exceptions for eventry."""


class EventryError(Exception):
    """Base exception for all eventry errors."""


class ConfigurationError(EventryError):
    """Raised when a registry, listener or event type is configured wrongly."""


class InvalidHandlerError(ConfigurationError):
    """Raised when a handler is neither callable nor has a handle_event() method."""

    def __init__(self, message: str, handler: object = None) -> None:
        super().__init__(message)
        self.handler = handler


class InvalidEventTypeError(ConfigurationError):
    """Raised when an event type value cannot be turned into tokens."""

    def __init__(self, message: str, event_types: object = None) -> None:
        super().__init__(message)
        self.event_types = event_types


class ArgumentCountError(ConfigurationError):
    """Raised when a listener factory gets the wrong number of arguments."""
