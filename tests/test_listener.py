"""Tests for Listener construction, validation and removal."""

import pytest

from eventry.core.events import EventHandler, HandlerKind, Listener, Registry, event_listener
from eventry.core.exceptions import (
    ArgumentCountError,
    ConfigurationError,
    InvalidEventTypeError,
    InvalidHandlerError,
)


class Counter(EventHandler):
    def __init__(self):
        self.count = 0

    def handle_event(self, event):
        self.count += 1


class DuckHandler:
    """Not an EventHandler subclass, but has handle_event()."""

    def __init__(self):
        self.names = []

    def handle_event(self, event):
        self.names.append(event.name)


def test_function_handler_kind(registry):
    listener = registry.listen("x", lambda event: None)

    assert listener.kind is HandlerKind.FUNCTION
    assert list(listener.event_types) == ["x"]


def test_object_handlers_use_handle_event(registry):
    counter, duck = Counter(), DuckHandler()
    first = registry.listen("x", counter)
    second = registry.listen("x y", duck)

    registry.emit("x")

    assert first.kind is HandlerKind.OBJECT
    assert second.kind is HandlerKind.OBJECT
    assert counter.count == 1
    assert duck.names == ["x"]
    assert first.handler_name == "Counter"


def test_callable_object_is_a_function_handler(registry, recorder):
    listener = registry.listen("x", recorder)

    assert listener.kind is HandlerKind.FUNCTION


@pytest.mark.parametrize("handler", [None, 42, "handler", object()])
def test_invalid_handler_rejected(registry, handler):
    with pytest.raises(InvalidHandlerError):
        registry.make_listener("x", handler)


def test_invalid_handler_is_a_configuration_error(registry):
    with pytest.raises(ConfigurationError):
        registry.listen("x", 42)


@pytest.mark.parametrize("count", [0, 4])
def test_wrong_argument_count(registry, count):
    args = ["x", lambda event: None, {}, "extra"][:count]

    with pytest.raises(ArgumentCountError):
        registry.make_listener(*args)


def test_spec_mapping_form(registry):
    handler = lambda event: None  # noqa: E731
    listener = registry.make_listener(
        {
            "event_names": "a b",
            "listener": handler,
            "once": True,
            "tag": "inline",
            "options": {"once": False, "color": "red"},
        }
    )

    assert listener.handler is handler
    assert list(listener.event_types) == ["a", "b"]
    assert listener.options == {"once": False, "tag": "inline", "color": "red"}
    assert listener not in registry.all_listeners


def test_spec_as_third_argument(registry):
    listener = registry.listen("a", lambda event: None, {"options": {"priority": 3}})

    assert listener.options == {"priority": 3}
    assert listener in registry.all_listeners


def test_empty_event_types_rejected(registry):
    with pytest.raises(ConfigurationError):
        registry.listen("   ", lambda event: None)


@pytest.mark.parametrize("types", [42, None, ["ok", 7]])
def test_invalid_event_types_rejected(registry, types):
    with pytest.raises(InvalidEventTypeError):
        registry.listen(types, lambda event: None)


def test_add_rejects_non_listener(registry):
    with pytest.raises(ConfigurationError):
        registry.add(lambda event: None)


def test_add_rejects_listener_of_other_registry(registry, make_target):
    other = Registry([make_target("other")])
    listener = other.make_listener("x", lambda event: None)

    with pytest.raises(ConfigurationError):
        registry.add(listener)


def test_add_is_idempotent(registry, recorder):
    listener = registry.make_listener("x", recorder)
    registry.add(listener)
    registry.add(listener)

    registry.emit("x")

    assert len(registry.all_listeners) == 1
    assert len(recorder.events) == 1


def test_removing_last_type_removes_listener(registry):
    listener = registry.listen("x y", lambda event: None)

    registry.remove("x")
    assert listener in registry.all_listeners
    assert list(listener.event_types) == ["y"]

    registry.remove("y")
    assert listener not in registry.all_listeners
    assert not listener.has_events

    registry.remove("y")
    registry.remove_listeners(listener)
    assert registry.all_listeners == set()


def test_remove_listener_instance(registry, recorder):
    listener = registry.listen("x", recorder)

    listener.remove()
    registry.emit("x")

    assert recorder.events == []
    assert registry.listeners_for == {}


def test_remove_wildcard_via_remove_events_only_drops_wildcards(registry):
    wild = registry.listen("*", lambda event: None)
    plain = registry.listen("x", lambda event: None)

    registry.remove_events("*")

    assert wild not in registry.all_listeners
    assert plain in registry.all_listeners


def test_remove_rejects_other_values(registry):
    with pytest.raises(ConfigurationError):
        registry.remove(42)


def test_setup_listener_registry_level(make_target):
    built = []
    registry = Registry(
        [make_target("t")], setup_listener=lambda reg, listener: built.append((reg, listener))
    )

    listener = registry.listen("x", lambda event: None)

    assert built == [(registry, listener)]


def test_setup_listener_listener_level_wins(make_target):
    calls = []
    registry = Registry([make_target("t")], setup_listener=lambda reg, lsnr: calls.append("reg"))

    own_setup = lambda reg, lsnr: calls.append("own")  # noqa: E731
    registry.listen("x", lambda event: None, {"setup_listener": own_setup})

    assert calls == ["own"]


def test_event_listener_decorator(registry):
    @event_listener(registry, "saved", once=True)
    def on_saved(event):
        on_saved.calls += 1

    on_saved.calls = 0
    registry.emit("saved")
    registry.emit("saved")

    assert on_saved.calls == 1
    assert registry.all_listeners == set()


def test_listener_repr_names_handler(registry):
    def on_change(event):
        pass

    listener = registry.listen("b a", on_change)

    assert isinstance(listener, Listener)
    assert "on_change" in repr(listener)
    assert "'b', 'a'" in repr(listener)


def test_event_types_keep_the_order_given(registry):
    listener = registry.listen("zeta alpha mid alpha", lambda event: None)

    assert list(listener.event_types) == ["zeta", "alpha", "mid"]

    registry.remove("alpha")

    assert list(listener.event_types) == ["zeta", "mid"]
