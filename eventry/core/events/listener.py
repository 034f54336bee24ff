"""
Listener - a handler bound to a set of event types inside one Registry.

Handlers are validated once, when the Listener is built:
- any callable is called as ``handler(event)``
- any object with a callable ``handle_event`` gets ``handle_event(event)``
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any

from eventry.core.exceptions import ConfigurationError, InvalidHandlerError

from .base import Event

if TYPE_CHECKING:
    from .registry import Registry
    from .status import EmitContext
    from .tokens import EventType

logger = logging.getLogger(__name__)

RESERVED_SPEC_KEYS = ("listener", "handler", "event_names", "event_types", "options")


class HandlerKind(Enum):
    """How a Listener invokes its handler."""

    FUNCTION = "function"
    OBJECT = "object"


def handler_kind(value: object) -> HandlerKind | None:
    """Classify a handler, or None if it is not a valid one."""
    if callable(value):
        return HandlerKind.FUNCTION
    if callable(getattr(value, "handle_event", None)):
        return HandlerKind.OBJECT
    return None


def is_listener(value: object) -> bool:
    """Is ``value`` usable as an event handler?"""
    return handler_kind(value) is not None


def make_options(spec: Mapping[str, Any]) -> dict[str, Any]:
    """Inline spec keys, overridden by ``spec["options"]``, minus reserved keys."""
    options = {key: value for key, value in spec.items() if key not in RESERVED_SPEC_KEYS}
    nested = spec.get("options")
    if nested:
        options.update(nested)
    for key in RESERVED_SPEC_KEYS:
        options.pop(key, None)
    return options


class Listener:
    """
    An event listener owned by a Registry.

    Attributes:
        registry: The Registry this listener belongs to
        handler: The handler callable or object
        kind: HandlerKind chosen when the listener was built
        event_types: Types this listener handles, in the order given
            (an insertion-ordered dict used as a set)
        options: Listener options (``once``, ``setup_event``, custom keys)
    """

    def __init__(self, registry: Registry, spec: Mapping[str, Any]):
        handler = spec.get("listener")
        kind = handler_kind(handler)
        if kind is None:
            handler = spec.get("handler")
            kind = handler_kind(handler)
        if kind is None:
            logger.error(f"Invalid listener/handler in spec: {dict(spec)!r}")
            raise InvalidHandlerError("Invalid listener/handler in spec", handler)

        self.registry = registry
        self.handler = handler
        self.kind = kind
        self.options = make_options(spec)

        event_types = spec.get("event_types")
        if event_types is None:
            event_types = spec.get("event_names")
        self.event_types: dict[EventType, None] = dict.fromkeys(
            registry.get_event_types(event_types)
        )
        if not self.event_types:
            logger.error(f"Listener spec has no event types: {event_types!r}")
            raise ConfigurationError("A listener needs at least one event type")

        setup = self.options.get("setup_listener", registry.options.setup_listener)
        if callable(setup):
            setup(registry, self)

    @property
    def event_names(self) -> dict[EventType, None]:
        """Alias of ``event_types``."""
        return self.event_types

    @property
    def has_events(self) -> bool:
        return len(self.event_types) > 0

    @property
    def once(self) -> bool:
        return bool(self.options.get("once"))

    @property
    def handler_name(self) -> str:
        """Human-readable name for logging/debugging."""
        if self.kind is HandlerKind.OBJECT:
            return getattr(self.handler, "handler_name", type(self.handler).__name__)
        return getattr(self.handler, "__qualname__", repr(self.handler))

    def dispatch(
        self, event_type: EventType, target: Any, args: tuple[Any, ...], context: EmitContext
    ) -> Event:
        """
        Build an Event for one type and target, and hand it to the handler.

        Called by the Registry; a listener that must only be used once is
        queued in ``context.once_removed`` rather than removed here.

        Returns:
            The Event that was delivered
        """
        event = Event.build(self, target, event_type, args, context)

        if self.kind is HandlerKind.FUNCTION:
            self.handler(event)
        else:
            self.handler.handle_event(event)

        if event.options.get("once") or self._one_time_match(event):
            context.once_removed.add(self)

        return event

    def _one_time_match(self, event: Event) -> bool:
        # wildcard matches never consume a listener
        type_data = event.type_data
        return type_data is not None and type_data.one_time and event.type in self.event_types

    def remove(self) -> None:
        """Remove this listener from its registry."""
        self.registry.remove_listeners(self)

    def __repr__(self) -> str:
        types = [repr(et) for et in self.event_types]
        return f"Listener({self.handler_name}, types=[{', '.join(types)}])"
