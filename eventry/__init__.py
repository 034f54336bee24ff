"""
eventry - synchronous event registration and dispatch.

Main Features:
- One registry, many target objects
- Space-separated and Symbol event types, plus a wildcard type
- once listeners and multi_match delivery
- Stateful event types replaying history to late listeners
- Optional proxy attributes on targets (target.on / target.emit)

Quick Start:
    >>> import eventry
    >>> registry = eventry.register([button])
    >>> button.on("click", lambda event: print(event.data))
    >>> registry.emit("click", {"x": 10, "y": 20})
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

__version__ = "0.1.0"

from eventry.core.config import RegistryOptions
from eventry.core.events import (
    EmitContext,
    EmitStatus,
    Event,
    EventHandler,
    Listener,
    Registry,
    Symbol,
    TypeData,
    event_listener,
)
from eventry.core.exceptions import ConfigurationError, EventryError
from eventry.extension import KNOWN_TRIGGERS, has_trigger


def register(
    targets: Any, options: RegistryOptions | Mapping[str, Any] | None = None, **overrides: Any
) -> Registry:
    """Create a Registry; arguments are passed to the Registry constructor."""
    return Registry(targets, options, **overrides)


def extend(
    target: Any, options: RegistryOptions | Mapping[str, Any] | None = None, **overrides: Any
) -> Any:
    """Create a Registry for a single target, then return the target."""
    register([target], options, **overrides)
    return target


__all__ = [
    "KNOWN_TRIGGERS",
    "ConfigurationError",
    "EmitContext",
    "EmitStatus",
    "Event",
    "EventHandler",
    "EventryError",
    "Listener",
    "Registry",
    "RegistryOptions",
    "Symbol",
    "TypeData",
    "__version__",
    "event_listener",
    "extend",
    "has_trigger",
    "register",
]
