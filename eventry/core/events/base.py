"""
Base Event System - the records handed to listeners.

Core Concepts:
- Event: Immutable record of one listener receiving one type on one target
- EventHandler: Object handler exposing handle_event()
- event_listener: Decorator registering a function on a Registry

Design Principles:
- Events are immutable (frozen dataclass)
- One Event per (listener, target, type) match
- Forwarding an Event keeps the chain (prev_event / orig_event)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from .tokens import display_name

if TYPE_CHECKING:
    from .listener import Listener
    from .registry import Registry
    from .status import EmitContext
    from .tokens import EventType
    from .typedata import TypeData

SCALAR_TYPES = (str, bytes, bytearray, int, float, complex, bool)


def is_data_object(value: object) -> bool:
    """Can ``value`` be used as an Event's data payload?"""
    return value is not None and not isinstance(value, SCALAR_TYPES) and not callable(value)


@dataclass(frozen=True, kw_only=True, eq=False)
class Event:
    """
    An event delivered to a single listener.

    Attributes:
        listener: The Listener this event was dispatched from; None for
            the history snapshots of stateful types
        target: Target object for this event
        type: The event type that was emitted
        name: ``type`` itself for strings, the description for Symbols
        args: Arguments passed to emit(), minus a forwarded Event
        options: Composed options (registry < type < listener < call)
        data: The first argument when it is a data object, else None
        prev_event: The Event passed as first argument, if any
        context: The EmitContext of the pass that built this event
        type_data: TypeData for ``type``, if any was set
        event_id: Unique identifier for this event instance
        timestamp: When the event was built
    """

    listener: Listener | None
    target: Any
    type: EventType
    name: str
    args: tuple[Any, ...]
    options: Mapping[str, Any]
    data: Any = None
    prev_event: Event | None = None
    context: EmitContext | None = field(default=None, repr=False)
    type_data: TypeData | None = field(default=None, repr=False)
    event_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=datetime.now)
    _origin: Event | None = field(default=None, repr=False)

    @property
    def orig_event(self) -> Event:
        """The first Event of a forwarding chain; ``self`` when not forwarded."""
        return self._origin if self._origin is not None else self

    @property
    def registry(self) -> Registry:
        if self.listener is None:
            return self.context.registry
        return self.listener.registry

    @classmethod
    def build(
        cls,
        listener: Listener,
        target: Any,
        event_type: EventType,
        args: tuple[Any, ...] | list[Any],
        context: EmitContext,
    ) -> Event:
        """
        Build the Event for one dispatch and run the setup_event callback.

        Args:
            listener: Listener being dispatched
            target: Target object
            event_type: A single event type
            args: Arguments passed to emit()
            context: Current emit context

        Returns:
            The new Event
        """
        event = cls._compose(listener.registry, listener, target, event_type, args, context)

        setup = event.options.get("setup_event")
        if callable(setup):
            setup(listener, event)

        return event

    @classmethod
    def snapshot(
        cls,
        registry: Registry,
        target: Any,
        event_type: EventType,
        args: tuple[Any, ...] | list[Any],
        context: EmitContext,
    ) -> Event:
        """
        Build a listener-less Event recording one emit on one target.

        Stateful types keep these in their history; setup_event is not run.
        """
        return cls._compose(registry, None, target, event_type, args, context)

    @classmethod
    def _compose(
        cls,
        registry: Registry,
        listener: Listener | None,
        target: Any,
        event_type: EventType,
        args: tuple[Any, ...] | list[Any],
        context: EmitContext,
    ) -> Event:
        type_data = registry.type_data_for.get(event_type)

        options: dict[str, Any] = registry.options.as_dict()
        if type_data is not None:
            options.update(type_data.options)
        if listener is not None:
            options.update(listener.options)
        options.update(context.options)

        args = tuple(args)
        data = None
        prev_event = None
        origin = None

        if args and is_data_object(args[0]):
            first = args[0]
            if isinstance(first, Event):
                prev_event = first
                origin = first.orig_event
                data = first.data
                args = args[1:]
            else:
                data = first

        return cls(
            listener=listener,
            target=target,
            type=event_type,
            name=display_name(event_type),
            args=args,
            options=MappingProxyType(options),
            data=data,
            prev_event=prev_event,
            context=context,
            type_data=type_data,
            _origin=origin,
        )

    def to_trace_data(self) -> dict[str, Any]:
        """Summary used for trace marks."""
        return {
            "event_id": str(self.event_id),
            "event_type": self.name,
            "timestamp": self.timestamp.isoformat(),
            "forwarded": self.prev_event is not None,
        }


class EventHandler(ABC):
    """
    Base class for object handlers.

    Any object with a callable ``handle_event`` attribute is accepted as a
    handler; subclassing this just documents the contract.
    """

    @abstractmethod
    def handle_event(self, event: Event) -> None:
        """
        Process an event.

        Args:
            event: The event to process

        Raises:
            Exception: Propagated unchanged to the emit() caller
        """

    @property
    def handler_name(self) -> str:
        """Human-readable name for logging/debugging."""
        return self.__class__.__name__


def event_listener(registry: Registry, event_types: Any, **options: Any):
    """
    Decorator registering a function as a listener.

    Usage:
        @event_listener(registry, "saved deleted")
        def on_change(event):
            pass

    Args:
        registry: Registry to listen on
        event_types: Event type(s), as accepted by Registry.get_event_types()
        **options: Listener options (``once=True`` etc.)

    Returns:
        Decorator returning the function unchanged
    """

    def decorator(func: Callable[[Event], Any]) -> Callable[[Event], Any]:
        registry.listen(event_types, func, options)
        return func

    return decorator


__all__ = [
    "Event",
    "EventHandler",
    "event_listener",
    "is_data_object",
]
