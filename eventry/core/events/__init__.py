"""
Event System - synchronous in-process dispatch.

Core Components:
- Registry: Listener tables, targets and the emit() pass
- Listener: A handler bound to a set of event types
- Event: Immutable record handed to a handler
- EmitContext / EmitStatus: Per-call state and its snapshot
- TypeData: Per-type settings and stateful history

Quick Start:
    from eventry.core.events import Registry

    registry = Registry([window])
    registry.listen("resize", lambda event: print(event.target, event.data))
    registry.emit("resize", {"width": 800})
"""

from .base import Event, EventHandler, event_listener, is_data_object
from .listener import HandlerKind, Listener, is_listener
from .registry import Registry
from .status import EmitContext, EmitStatus
from .targets import TargetIndex, TargetRecord, get_target_index, set_target_index
from .tokens import EventType, Symbol, display_name
from .typedata import TypeData, TypeSettings

__all__ = [
    "EmitContext",
    "EmitStatus",
    "Event",
    "EventHandler",
    "EventType",
    "HandlerKind",
    "Listener",
    "Registry",
    "Symbol",
    "TargetIndex",
    "TargetRecord",
    "TypeData",
    "TypeSettings",
    "display_name",
    "event_listener",
    "get_target_index",
    "is_data_object",
    "is_listener",
    "set_target_index",
]
