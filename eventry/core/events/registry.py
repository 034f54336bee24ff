"""
Registry - listener tables, target resolution and the emit() pass.

Responsibilities:
- Build, add and remove Listeners
- Normalize event type values into tokens
- Resolve targets (fixed collection or provider callback)
- Dispatch events synchronously, honouring wildcard, multi_match and once
- Keep per-type settings and replay stateful history to new listeners

Everything runs on the caller's stack: handlers are called in order, an
exception raised by a handler propagates out of emit() unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Set
import inspect
import logging
from typing import Any
import weakref

from pydantic import ValidationError

from eventry.core.config import RegistryOptions
from eventry.core.exceptions import (
    ArgumentCountError,
    ConfigurationError,
    InvalidEventTypeError,
)
from eventry.core.tracing import trace_mark
from eventry.extension import TargetExtender

from .base import Event
from .listener import Listener
from .status import EmitContext, EmitStatus
from .targets import TargetList, TargetRecord, get_target_index
from .tokens import EventType, Symbol, is_event_type
from .typedata import TypeData, TypeSettings

logger = logging.getLogger(__name__)

TargetProvider = Callable[..., Iterable[Any]]


def is_target_collection(value: object) -> bool:
    """Is ``value`` a collection of targets rather than a single target?"""
    return isinstance(value, (list, tuple, Set, TargetList, Iterator))


def accepts_context(provider: Callable[..., Any]) -> bool:
    """Does a target provider take the EmitContext argument?"""
    try:
        signature = inspect.signature(provider)
    except (TypeError, ValueError):
        return False
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return any(param.kind in positional for param in signature.parameters.values())


class Registry:
    """
    Handles events for one or more target objects.

    Usage:
        registry = Registry([window, document])
        registry.listen("load ready", on_load)
        status = registry.emit("ready", {"at": now})

    Attributes:
        options: Compiled RegistryOptions
        all_listeners: Every registered Listener
        listeners_for: Event type -> insertion-ordered Listeners
        type_data_for: Event type -> TypeData
        fun_targets: True when targets come from a provider callback
    """

    def __init__(
        self,
        targets: Any,
        options: RegistryOptions | Mapping[str, Any] | None = None,
        **overrides: Any,
    ):
        """
        Create a registry.

        Args:
            targets: A provider callable returning targets, a collection of
                targets (list, tuple, set, iterator), or a single target.
                Wrap a callable target in a list.
            options: Base options
            **overrides: Option keys overriding ``options``
        """
        self.options = RegistryOptions.compile(options, **overrides)

        if callable(targets) and not is_target_collection(targets):
            self.fun_targets = True
            self._provider: TargetProvider | None = targets
            self._provider_takes_context = accepts_context(targets)
            self._targets: TargetList | None = None
            initial = self.get_targets()
            default_extend = False
        else:
            if not is_target_collection(targets):
                targets = [targets]
            self.fun_targets = False
            self._provider = None
            self._provider_takes_context = False
            self._targets = TargetList(targets)
            initial = tuple(self._targets)
            default_extend = True

        if self.options.extend.targets is None:
            self.options.extend = self.options.extend.model_copy(
                update={"targets": default_extend}
            )

        self.all_listeners: set[Listener] = set()
        self.listeners_for: dict[EventType, dict[Listener, None]] = {}
        self.type_data_for: dict[EventType, TypeData] = {}

        self._index = get_target_index()
        weakref.finalize(self, self._index.registry_released)
        self._extender = TargetExtender(self, self._index)
        self._setup_targets(initial)

    @staticmethod
    def is_registered(target: Any) -> bool:
        """Has ``target`` been registered with any registry?"""
        return get_target_index().is_registered(target)

    @staticmethod
    def get_metadata(target: Any, create: bool = False) -> TargetRecord | None:
        """Registration record of ``target`` from the shared TargetIndex."""
        return get_target_index().get(target, create=create)

    def get_targets(self, context: EmitContext | None = None) -> tuple[Any, ...]:
        """
        Resolve the current targets.

        Args:
            context: Passed to providers that accept an argument

        Returns:
            Targets in resolution order, unique by identity
        """
        if self._provider is None:
            return tuple(self._targets)

        if self._provider_takes_context:
            found = self._provider(context)
        else:
            found = self._provider()
        return tuple(TargetList(found))

    def _setup_targets(self, targets: Iterable[Any]) -> None:
        for target in targets:
            record = self._index.get(target, create=True)
            if self in record.registries:
                continue
            if self.options.extend.targets:
                self._extender.extend(target, record)
            else:
                record.registries[self] = []
            logger.debug(f"Set up target {type(target).__name__} for {self!r}")

    def register(self, *targets: Any) -> Registry:
        """
        Register additional targets.

        Targets of a provider-based registry are set up, but the provider
        decides whether they are emitted to.
        """
        if self._targets is not None:
            for target in targets:
                self._targets.add(target)
        else:
            logger.warning(f"Cannot add targets to a target provider ({len(targets)} given)")

        self._setup_targets(targets)
        logger.info(f"Registered {len(targets)} target(s)")
        return self

    def unregister(self, *targets: Any) -> Registry:
        """
        Remove targets, along with the proxy attributes this registry added.

        Args:
            *targets: Targets to unregister; none means ALL targets
        """
        if not targets:
            if self._targets is not None:
                targets = tuple(self._targets)
            else:
                targets = tuple(self._index.targets_of(self))

        if self._targets is None:
            logger.warning("Cannot remove targets from a target provider")

        for target in targets:
            if self._targets is not None:
                self._targets.discard(target)

            record = self._index.get(target)
            if record is None or self not in record.registries:
                continue

            self._extender.retract(target, record)
            del record.registries[self]
            if not record.registries:
                self._index.discard(target)

        logger.info(f"Unregistered {len(targets)} target(s)")
        return self

    def make_listener(self, *args: Any) -> Listener:
        """
        Build a new Listener without adding it.

        Accepted forms:
            make_listener(spec)
            make_listener(event_types, handler)
            make_listener(event_types, handler, spec)

        ``spec`` is a mapping with ``event_types`` (or ``event_names``),
        ``handler`` (or ``listener``), an optional ``options`` mapping, and
        any inline options. Keys in ``options`` win over inline ones.

        Raises:
            ArgumentCountError: For zero or more than three arguments
            InvalidHandlerError: If the handler is not usable
            InvalidEventTypeError: If the event types are not usable
        """
        if len(args) == 0 or len(args) > 3:
            logger.error(f"make_listener() got {len(args)} arguments")
            raise ArgumentCountError("Invalid number of arguments")

        if len(args) == 1 and isinstance(args[0], Mapping):
            spec = dict(args[0])
        else:
            spec = dict(args[2]) if len(args) == 3 and args[2] else {}
            spec["event_types"] = args[0]
            if len(args) > 1:
                spec["handler"] = args[1]

        return Listener(self, spec)

    def listen(self, *args: Any) -> Listener:
        """Build a Listener with make_listener() and add it."""
        listener = self.make_listener(*args)
        self.add(listener)
        return listener

    def once(self, *args: Any) -> Listener:
        """Like listen(), but the listener is removed after the pass that uses it."""
        listener = self.make_listener(*args)
        listener.options["once"] = True
        self.add(listener)
        return listener

    def add(self, listener: Listener) -> Registry:
        """
        Add a Listener instance.

        Adding the same instance twice has no effect. A newly added listener
        receives the stored history of any stateful type it listens to
        before this method returns.

        Raises:
            ConfigurationError: If ``listener`` is not a Listener of this registry
        """
        if not isinstance(listener, Listener):
            logger.error(f"Invalid listener instance: {listener!r}")
            raise ConfigurationError("Invalid listener instance")
        if listener.registry is not self:
            logger.error(f"{listener!r} belongs to another registry")
            raise ConfigurationError("Listener belongs to another registry")

        if listener in self.all_listeners:
            return self

        self.all_listeners.add(listener)
        for event_type in listener.event_types:
            self.listeners_for.setdefault(event_type, {})[listener] = None

        logger.info(f"Added {listener!r}")
        self._replay_state(listener)
        return self

    def remove_all(self) -> Registry:
        """Remove ALL registered listeners."""
        count = len(self.all_listeners)
        self.all_listeners.clear()
        self.listeners_for.clear()
        logger.info(f"Removed all {count} listener(s)")
        return self

    def remove_events(self, *event_types: EventType) -> Registry:
        """
        Remove event types from every listener that handles them.

        A listener left without event types is removed entirely. The
        wildcard token only removes wildcard listeners here.
        """
        for event_type in event_types:
            listeners = self.listeners_for.pop(event_type, None)
            if not listeners:
                continue
            for listener in list(listeners):
                listener.event_types.pop(event_type, None)
                if not listener.has_events:
                    self.remove_listeners(listener)
            logger.info(f"Removed event type {event_type!r} from {len(listeners)} listener(s)")
        return self

    def remove_listeners(self, *listeners: Listener) -> Registry:
        """Remove specific listeners; unknown ones are ignored."""
        for listener in listeners:
            if listener not in self.all_listeners:
                continue
            self.all_listeners.discard(listener)
            for event_type in listener.event_types:
                registered = self.listeners_for.get(event_type)
                if registered is None:
                    continue
                registered.pop(listener, None)
                if not registered:
                    del self.listeners_for[event_type]
            logger.info(f"Removed {listener!r}")
        return self

    def remove(self, what: EventType | Listener) -> Registry:
        """
        Remove listeners according to the type of ``what``.

        - the wildcard string: remove_all()
        - any other string: split_names(), then remove_events()
        - a Symbol: remove_events()
        - a Listener: remove_listeners()

        Raises:
            ConfigurationError: For any other value
        """
        if isinstance(what, str):
            if what == self.options.wildcard:
                return self.remove_all()
            return self.remove_events(*self.split_names(what))
        if isinstance(what, Symbol):
            return self.remove_events(what)
        if isinstance(what, Listener):
            return self.remove_listeners(what)

        logger.error(f"remove() got {what!r}")
        raise ConfigurationError("Invalid event name or listener instance")

    def set(self, event_type: EventType, opts: Mapping[str, Any] | None = None, **kwargs: Any):
        """
        Set advanced options for an event type.

        Args:
            event_type: Event type to configure
            opts: Mapping of the keyword options below
            one_time: Listeners matched through this type are used once
            keep_state: History size; > 0 makes the type stateful
            stateful: Shortcut, True → ``default_state_capacity``, False → 0
            options: Custom options composed into Event.options

        Returns:
            ``self``

        Raises:
            InvalidEventTypeError: If ``event_type`` is not a str or Symbol
            ConfigurationError: If the options fail validation
        """
        if not is_event_type(event_type):
            logger.error(f"set() got invalid event type {event_type!r}")
            raise InvalidEventTypeError("Invalid event type", event_type)

        try:
            settings = TypeSettings(**{**(opts or {}), **kwargs})
        except ValidationError as e:
            logger.error(f"Invalid options for event type {event_type!r}: {e}")
            raise ConfigurationError(f"Invalid options for event type {event_type!r}") from e

        type_data = self.type_data_for.get(event_type)
        if type_data is None:
            type_data = self.type_data_for[event_type] = TypeData(event_type)
        type_data.apply(settings, self.options.default_state_capacity)
        return self

    def get_type_data(self, event_type: EventType) -> TypeData | None:
        return self.type_data_for.get(event_type)

    def get_event_types(self, event_types: Any) -> tuple[EventType, ...]:
        """
        Normalize event type values into an ordered, duplicate-free tuple.

        - a string is passed to split_names()
        - a Symbol becomes a single token
        - any other iterable of strings/Symbols is copied as-is

        Raises:
            InvalidEventTypeError: For any other value
        """
        if isinstance(event_types, str):
            return self.split_names(event_types)
        if isinstance(event_types, Symbol):
            return (event_types,)
        if isinstance(event_types, Iterable):
            tokens = list(event_types)
            if all(is_event_type(token) for token in tokens):
                return tuple(dict.fromkeys(tokens))

        logger.error(f"Invalid event names: {event_types!r}")
        raise InvalidEventTypeError("Invalid event names", event_types)

    get_event_names = get_event_types

    def split_names(self, names: str) -> tuple[str, ...]:
        """Split a trimmed string on the delimiter; empty pieces are dropped."""
        pieces = self.options.delimiter.split(names.strip())
        return tuple(dict.fromkeys(piece for piece in pieces if piece))

    def _candidates(self, event_type: EventType) -> list[Listener]:
        listeners = self.listeners_for.get(event_type)
        wilds = self.listeners_for.get(self.options.wildcard)
        if not listeners and not wilds:
            return []
        candidates = dict(listeners or {})
        if wilds:
            candidates.update(wilds)
        return list(candidates)

    def emit(
        self, event_types: Any, *args: Any, options: Mapping[str, Any] | None = None
    ) -> EmitStatus:
        """
        Emit one or more event types to every target.

        Args:
            event_types: Types to emit; see get_event_types()
            *args: Arguments for the events; a leading data object (a dict,
                say) becomes ``event.data``, a leading Event is forwarded
            options: Per-call options, composed last into Event.options

        Returns:
            Immutable EmitStatus of the pass
        """
        context = EmitContext(self, self.get_event_types(event_types), args, options)
        context.targets = self.get_targets(context)
        if self.fun_targets and self.options.extend.on_demand:
            self._setup_targets(context.targets)

        self._track(
            "registry.emit.started",
            event_types=[repr(et) for et in context.event_types],
            targets=len(context.targets),
        )

        for target in context.targets:
            called = context.target_listeners = set()
            context.done_target = False

            for event_type in context.event_types:
                self._record_state(event_type, target, context)

                candidates = self._candidates(event_type)
                if not candidates:
                    continue

                context.done_type = False
                for listener in candidates:
                    if listener not in self.all_listeners:
                        continue
                    if not context.multi_match and listener in called:
                        continue

                    called.add(listener)
                    event = listener.dispatch(event_type, target, args, context)
                    context.emitted.append(event)
                    self._track(
                        "listener.dispatched",
                        listener=listener.handler_name,
                        **event.to_trace_data(),
                    )

                    if context.done_emitting or context.done_type or context.done_target:
                        break

                if context.done_emitting or context.done_target:
                    break

            if context.done_emitting:
                break

        context.target_listeners = None

        if context.once_removed:
            self.remove_listeners(*context.once_removed)

        if not context.emitted:
            logger.debug(f"No listeners matched {context.event_types!r}")

        self._track(
            "registry.emit.completed",
            emitted=len(context.emitted),
            removed=len(context.once_removed),
            stopped=context.done_emitting,
        )
        return context.snapshot()

    def _record_state(self, event_type: EventType, target: Any, context: EmitContext) -> None:
        """Store one snapshot per (emit, target) of a stateful type, matched or not."""
        type_data = self.type_data_for.get(event_type)
        if type_data is not None and type_data.stateful:
            type_data.record(Event.snapshot(self, target, event_type, context.args, context))

    def _replay_state(self, listener: Listener) -> None:
        """Deliver stored history, newest first, to a newly added listener."""
        current: TargetList | None = None

        for event_type in list(listener.event_types):
            if listener not in self.all_listeners:
                return

            type_data = self.type_data_for.get(event_type)
            if type_data is None or not type_data.has_history:
                continue

            context = EmitContext(self, (event_type,), (), replay=True)
            if current is None:
                current = TargetList(self.get_targets(context))
            # entries of targets unregistered since they were stored are skipped
            history = [stored for stored in type_data.history if stored.target in current]
            if not history:
                continue
            context.targets = tuple(TargetList(stored.target for stored in history))

            for stored in history:
                event = listener.dispatch(
                    event_type, stored.target, (stored, *stored.args), context
                )
                context.emitted.append(event)
                if context.done_emitting:
                    break

            replayed = len(context.emitted)
            logger.debug(f"Replayed {replayed} event(s) of {event_type!r} to {listener!r}")
            self._track("registry.replay", event_type=repr(event_type), replayed=replayed)

            if context.once_removed:
                self.remove_listeners(*context.once_removed)

    def _track(self, stage: str, **extra: Any) -> None:
        if self.options.trace:
            trace_mark(stage, **extra)

    def get_handler_count(self, event_type: EventType) -> int:
        """Number of listeners registered for an event type."""
        return len(self.listeners_for.get(event_type, {}))

    def get_stats(self) -> dict[str, Any]:
        """Registry statistics for monitoring."""
        return {
            "total_listeners": len(self.all_listeners),
            "total_event_types": len(self.listeners_for),
            "listeners_by_type": {
                repr(event_type): len(listeners)
                for event_type, listeners in self.listeners_for.items()
            },
            "stateful_types": [
                repr(event_type)
                for event_type, type_data in self.type_data_for.items()
                if type_data.stateful
            ],
            "targets": len(self.get_targets()) if self._targets is not None else None,
        }

    def __repr__(self) -> str:
        source = "provider" if self.fun_targets else f"{len(self._targets)} target(s)"
        return f"Registry({source}, listeners={len(self.all_listeners)})"


__all__ = [
    "Registry",
    "accepts_context",
    "is_target_collection",
]
