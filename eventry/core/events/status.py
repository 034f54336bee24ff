"""Per-call bookkeeping for Registry.emit() and the snapshot it returns."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .base import Event
    from .listener import Listener
    from .registry import Registry
    from .tokens import EventType
    from .typedata import TypeData


class EmitContext:
    """
    Mutable state of one emit() pass, shared by every Event it builds.

    Handlers reach it through ``event.context`` and may steer the pass:

    - ``skip_type()``: no more listeners for the current type on the
      current target.
    - ``skip_target()``: no more listeners for the current target.
    - ``stop()``: abort the rest of the pass; stays set afterwards.

    Attributes:
        registry: Registry running the pass
        event_types: Requested types, in order
        args: Arguments passed to emit()
        multi_match: Snapshot of the registry option
        targets: Resolved targets (set by the registry)
        target_listeners: Listeners already called for the current target;
            None outside of target iteration
        emitted: Events built so far
        once_removed: Listeners to remove once the pass is over
        options: Per-call options, highest precedence
        replay: True when delivering stored history to a new listener
    """

    def __init__(
        self,
        registry: Registry,
        event_types: tuple[EventType, ...],
        args: tuple[Any, ...],
        options: Mapping[str, Any] | None = None,
        replay: bool = False,
    ):
        self.registry = registry
        self.event_types = event_types
        self.args = args
        self.multi_match = registry.options.multi_match
        self.targets: tuple[Any, ...] = ()
        self.target_listeners: set[Listener] | None = None
        self.emitted: list[Event] = []
        self.once_removed: set[Listener] = set()
        self.options: dict[str, Any] = dict(options or {})
        self.replay = replay
        self.done_type = False
        self.done_target = False
        self.done_emitting = False

    @property
    def event_names(self) -> tuple[EventType, ...]:
        """Alias of ``event_types``."""
        return self.event_types

    @property
    def stopped(self) -> bool:
        return self.done_emitting

    def stop(self) -> None:
        self.done_emitting = True

    def skip_type(self) -> None:
        self.done_type = True

    def skip_target(self) -> None:
        self.done_target = True

    def get_event_data(self, event_type: EventType | None = None):
        """
        Get TypeData for the requested types.

        Args:
            event_type: A single type; omit it to get every requested type

        Returns:
            The TypeData (or None) for ``event_type``, or a dict of the
            requested types that have TypeData
        """
        type_data_for = self.registry.type_data_for
        if event_type is not None:
            return type_data_for.get(event_type)
        return type_data_map(type_data_for, self.event_types)

    def snapshot(self) -> EmitStatus:
        """Freeze the pass results; the dedupe set is left out."""
        return EmitStatus(
            registry=self.registry,
            event_types=self.event_types,
            args=self.args,
            multi_match=self.multi_match,
            targets=self.targets,
            emitted=tuple(self.emitted),
            once_removed=frozenset(self.once_removed),
            options=MappingProxyType(dict(self.options)),
            stopped=self.done_emitting,
            replay=self.replay,
        )

    def __repr__(self) -> str:
        return (
            f"EmitContext(event_types={self.event_types!r}, "
            f"emitted={len(self.emitted)}, stopped={self.done_emitting})"
        )


@dataclass(frozen=True, eq=False)
class EmitStatus:
    """Immutable result of Registry.emit()."""

    registry: Registry = field(repr=False)
    event_types: tuple[EventType, ...]
    args: tuple[Any, ...]
    multi_match: bool
    targets: tuple[Any, ...] = field(repr=False)
    emitted: tuple[Event, ...] = field(repr=False)
    once_removed: frozenset[Listener] = field(repr=False)
    options: Mapping[str, Any] = field(repr=False)
    stopped: bool = False
    replay: bool = False

    @property
    def event_names(self) -> tuple[EventType, ...]:
        return self.event_types

    @property
    def count(self) -> int:
        return len(self.emitted)

    def get_event_data(self, event_type: EventType | None = None):
        """Same lookup as EmitContext.get_event_data()."""
        type_data_for = self.registry.type_data_for
        if event_type is not None:
            return type_data_for.get(event_type)
        return type_data_map(type_data_for, self.event_types)

    def events_for(self, target: Any) -> list[Event]:
        """Emitted events delivered to ``target``."""
        return [event for event in self.emitted if event.target is target]


def type_data_map(
    type_data_for: Mapping[EventType, TypeData], event_types: tuple[EventType, ...]
) -> dict[EventType, TypeData]:
    return {et: type_data_for[et] for et in event_types if et in type_data_for}
