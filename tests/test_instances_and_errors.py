from __future__ import annotations

import pytest

from nsbus import Bus, BusConfig, new_instance


def test_instances_do_not_share_subscriptions():
    shared = new_instance()
    private = shared.new_instance()
    counts = {"shared": 0, "private": 0}

    def on_shared():
        counts["shared"] += 1

    def on_private():
        counts["private"] += 1

    handle = shared.subscribe("hello/world", on_shared)
    private_handle = private.subscribe("hello/world", on_private)

    shared.publish("hello/world")
    assert counts == {"shared": 1, "private": 0}
    private.publish("hello/world")
    assert counts == {"shared": 1, "private": 1}

    private.unsubscribe(private_handle)
    private.publish("hello/world")
    shared.unsubscribe(handle)
    shared.publish("hello/world")
    assert counts == {"shared": 1, "private": 1}


def test_instances_do_not_share_replay_cache():
    first = new_instance()
    second = new_instance()
    seen = []

    first.publish("x", [1], replay=True)
    second.subscribe("x", seen.append, replay=True)

    assert seen == []


def test_new_instance_uses_its_own_config_not_the_parents():
    dotted = new_instance(separator=".")
    child = dotted.new_instance()

    assert child.config.separator == "/"
    assert isinstance(child, Bus)


def test_new_instance_merges_overrides_over_config():
    base = BusConfig(separator=".", recurrent=True)

    bus = new_instance(base, depth=2)

    assert bus.config.separator == "."
    assert bus.config.recurrent is True
    assert bus.config.depth == 2
    assert base.depth is None


def test_new_instance_rejects_unknown_options():
    with pytest.raises(TypeError):
        new_instance(async_mode=True)


def test_failing_callback_does_not_block_later_ones(bus, sink, calls):
    def explode():
        raise ValueError("bad subscriber")

    bus.subscribe("a", lambda: calls.append("before"))
    bus.subscribe("a", explode)
    bus.subscribe("a", lambda: calls.append("after"))

    bus.publish("a")

    assert calls == ["before", "after"]
    errors = sink.messages("error")
    assert len(errors) == 1
    assert "ValueError" in errors[0]
    assert bus.dispatcher.stats.failed == 1
    assert bus.dispatcher.stats.notified == 2


def test_failing_callback_propagates_when_isolation_disabled(calls):
    strict = new_instance(isolate_errors=False)

    def explode():
        raise ValueError("bad subscriber")

    strict.subscribe("a", lambda: calls.append("before"))
    strict.subscribe("a", explode)
    strict.subscribe("a", lambda: calls.append("after"))

    with pytest.raises(ValueError):
        strict.publish("a")

    assert calls == ["before"]


def test_deferred_failures_are_isolated_too(bus, sink, calls):
    def explode():
        raise KeyError("missing")

    bus.subscribe("a", explode)
    bus.subscribe("a", lambda: calls.append("ok"))

    bus.publish("a", deferred=True)
    bus.flush()

    assert calls == ["ok"]
    assert len(sink.messages("error")) == 1
