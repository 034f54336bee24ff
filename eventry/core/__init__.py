"""Core module for eventry - dispatch engine, configuration and errors."""

from eventry.core.config import ExtendOptions, RegistryOptions, TraceConfig
from eventry.core.exceptions import (
    ArgumentCountError,
    ConfigurationError,
    EventryError,
    InvalidEventTypeError,
    InvalidHandlerError,
)

__all__ = [
    "ArgumentCountError",
    "ConfigurationError",
    "EventryError",
    "ExtendOptions",
    "InvalidEventTypeError",
    "InvalidHandlerError",
    "RegistryOptions",
    "TraceConfig",
]
