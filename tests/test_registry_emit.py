"""Tests for Registry.emit(): fan-out, matching rules and pass control."""

import pytest

from eventry.core.events import EmitStatus, Registry, Symbol


def test_greet_reaches_every_target(pair_registry, recorder, target_a, target_b):
    pair_registry.listen("greet", recorder)

    status = pair_registry.emit("greet", {"who": "world"})

    assert isinstance(status, EmitStatus)
    assert len(status.emitted) == 2
    assert recorder.targets == [target_a, target_b]
    assert all(event.data["who"] == "world" for event in status.emitted)


def test_no_matching_listener_is_a_noop(registry):
    status = registry.emit("nothing here")

    assert status.emitted == ()
    assert status.event_types == ("nothing", "here")


def test_listener_called_once_per_target_without_multi_match(registry, recorder):
    registry.listen("x y", recorder)

    status = registry.emit("x y")

    assert recorder.types == ["x"]
    assert status.count == 1


def test_listener_called_per_type_with_multi_match(target_a, recorder):
    registry = Registry([target_a], multi_match=True)
    registry.listen("x y", recorder)

    registry.emit("x y")

    assert recorder.types == ["x", "y"]


def test_multi_match_counts_per_target(recorder, target_a, target_b):
    registry = Registry([target_a, target_b], multi_match=True)
    registry.listen("x y", recorder)

    registry.emit("y x")

    assert [(e.target, e.type) for e in recorder.events] == [
        (target_a, "y"),
        (target_a, "x"),
        (target_b, "y"),
        (target_b, "x"),
    ]


def test_wildcard_listener_gets_unregistered_types(registry, recorder):
    registry.listen("*", recorder)

    registry.emit("x")

    assert len(recorder.events) == 1
    assert recorder.events[0].type == "x"
    assert recorder.events[0].name == "x"


def test_wildcard_and_specific_listener_both_run(registry, make_recorder):
    specific, wild = make_recorder(), make_recorder()
    registry.listen("save", specific)
    registry.listen("*", wild)

    status = registry.emit("save load")

    assert specific.types == ["save"]
    assert wild.types == ["save"]
    assert len(status.emitted) == 2


def test_custom_wildcard_token(target_a, recorder):
    registry = Registry([target_a], wildcard="all")
    registry.listen("all", recorder)

    registry.emit("anything")

    assert recorder.types == ["anything"]


def test_remove_wildcard_removes_everything(registry, recorder):
    registry.listen("a", recorder)
    registry.listen("b c", recorder)
    registry.listen("*", recorder)

    registry.remove("*")
    status = registry.emit("a b c")

    assert registry.all_listeners == set()
    assert status.emitted == ()


def test_once_listener_present_during_pass_and_gone_after(target_a, target_b):
    registry = Registry([target_a, target_b], multi_match=True)
    seen = []

    def handler(event):
        seen.append((event.target, event.type, event.listener in registry.all_listeners))

    listener = registry.once("x y", handler)
    status = registry.emit("x y")

    assert len(seen) == 4
    assert all(present for _, _, present in seen)
    assert listener not in registry.all_listeners
    assert status.once_removed == frozenset({listener})

    registry.emit("x y")
    assert len(seen) == 4


def test_symbol_types(registry, recorder):
    ready = Symbol("ready")
    nameless = Symbol()
    registry.listen([ready, nameless], recorder)

    registry.emit(ready)
    registry.emit(Symbol("ready"))
    registry.emit(nameless)

    assert [event.name for event in recorder.events] == ["ready", "‽"]
    assert recorder.events[0].type is ready


def test_handler_exception_propagates_and_stops_the_pass(registry, recorder):
    def boom(event):
        raise ValueError("handler failed")

    registry.listen("go", boom)
    registry.listen("go", recorder)

    with pytest.raises(ValueError, match="handler failed"):
        registry.emit("go")

    assert recorder.events == []


def test_stop_aborts_remaining_targets_and_types(pair_registry, recorder):
    pair_registry.listen("x", lambda event: event.context.stop())
    pair_registry.listen("x y", recorder)

    status = pair_registry.emit("x y")

    assert status.stopped is True
    assert len(status.emitted) == 1
    assert recorder.events == []


def test_skip_target_moves_to_next_target(pair_registry, recorder, target_a, target_b):
    pair_registry.listen("x", lambda event: event.context.skip_target())
    pair_registry.listen("x y", recorder)

    status = pair_registry.emit("x y")

    assert [event.target for event in status.emitted] == [target_a, target_b]
    assert recorder.events == []
    assert status.stopped is False


def test_skip_type_moves_to_next_type(registry, make_recorder):
    second, other = make_recorder(), make_recorder()
    registry.listen("x", lambda event: event.context.skip_type())
    registry.listen("x", second)
    registry.listen("y", other)

    registry.emit("x y")

    assert second.events == []
    assert other.types == ["y"]


def test_nested_emit_uses_its_own_context(registry, recorder):
    inner_status = []

    def outer(event):
        inner_status.append(registry.emit("inner", {"from": "outer"}))

    registry.listen("outer", outer)
    registry.listen("inner", recorder)

    status = registry.emit("outer")

    assert len(status.emitted) == 1
    assert status.emitted[0].type == "outer"
    assert len(inner_status[0].emitted) == 1
    assert recorder.events[0].context is not status.emitted[0].context


def test_listener_removed_mid_pass_is_skipped(registry, make_recorder):
    later = make_recorder()
    holder = {}

    registry.listen("x", lambda event: registry.remove(holder["later"]))
    holder["later"] = registry.listen("x", later)

    status = registry.emit("x")

    assert later.events == []
    assert len(status.emitted) == 1


def test_provider_targets_resolved_on_every_emit(make_target, recorder):
    items = [make_target("one")]
    registry = Registry(lambda: items)
    registry.listen("ping", recorder)

    registry.emit("ping")
    items.append(make_target("two"))
    registry.emit("ping")

    assert [t.name for t in recorder.targets] == ["one", "one", "two"]
    assert registry.fun_targets is True


def test_provider_receives_emit_context(make_target):
    target = make_target("only")
    contexts = []

    def provider(context):
        contexts.append(context)
        return {target}

    registry = Registry(provider)
    registry.listen("ping", lambda event: None)
    status = registry.emit("ping")

    assert contexts[0] is None
    assert contexts[1] is status.emitted[0].context
    assert status.targets == (target,)


def test_single_non_collection_target(make_target, recorder):
    target = make_target("solo")
    registry = Registry(target)
    registry.listen("x", recorder)

    registry.emit("x")

    assert recorder.targets == [target]


def test_unhashable_targets_are_supported(recorder):
    first, second = {"id": 1}, {"id": 2}
    registry = Registry([first, second, first])
    registry.listen("x", recorder)

    registry.emit("x")

    assert recorder.targets == [first, second]


def test_register_and_unregister_targets(registry, recorder, make_target, target_a):
    extra = make_target("extra")
    registry.listen("x", recorder)

    registry.register(extra)
    registry.emit("x")
    registry.unregister(target_a)
    registry.emit("x")

    assert recorder.targets == [target_a, extra, extra]


def test_get_stats(registry):
    registry.listen("a b", lambda event: None)
    registry.listen("b", lambda event: None)
    registry.set("a", stateful=True)

    stats = registry.get_stats()

    assert stats["total_listeners"] == 2
    assert stats["listeners_by_type"] == {"'a'": 1, "'b'": 2}
    assert stats["stateful_types"] == ["'a'"]
    assert registry.get_handler_count("b") == 2
    assert registry.get_handler_count("missing") == 0
