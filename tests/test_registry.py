"""
Tests for ObserverRegistry: shared watch per fingerprint, listener fan-out,
teardown on last unsubscribe.
"""

from __future__ import annotations

import asyncio

import pytest

from chainwatch.watcher.registry import Listener, ObserverRegistry


class FactorySpy:
    def __init__(self) -> None:
        self.created = 0
        self.torn_down = 0
        self.emitters = []

    def __call__(self, emitter):
        self.created += 1
        self.emitters.append(emitter)

        def teardown():
            self.torn_down += 1

        return teardown


def _noop(_):
    return None


def test_join_same_fingerprint_creates_watch_once():
    registry = ObserverRegistry()
    factory = FactorySpy()
    registry.join("fp", Listener(_noop), factory)
    registry.join("fp", Listener(_noop), factory)
    assert factory.created == 1
    assert registry.listener_count("fp") == 2
    assert len(registry) == 1


def test_distinct_fingerprints_are_independent():
    registry = ObserverRegistry()
    factory = FactorySpy()
    registry.join("a", Listener(_noop), factory)
    registry.join("b", Listener(_noop), factory)
    assert factory.created == 2
    assert sorted(registry.fingerprints()) == ["a", "b"]


def test_teardown_only_after_last_unsubscribe():
    registry = ObserverRegistry()
    factory = FactorySpy()
    first = registry.join("fp", Listener(_noop), factory)
    second = registry.join("fp", Listener(_noop), factory)

    first()
    assert factory.torn_down == 0
    assert "fp" in registry

    second()
    assert factory.torn_down == 1
    assert "fp" not in registry


def test_unsubscribe_is_idempotent():
    registry = ObserverRegistry()
    factory = FactorySpy()
    first = registry.join("fp", Listener(_noop), factory)
    registry.join("fp", Listener(_noop), factory)

    first()
    first()
    assert registry.listener_count("fp") == 1
    assert factory.torn_down == 0


def test_identical_callbacks_are_separate_listeners():
    registry = ObserverRegistry()
    factory = FactorySpy()
    first = registry.join("fp", Listener(_noop), factory)
    registry.join("fp", Listener(_noop), factory)
    first()
    assert registry.listener_count("fp") == 1


def test_rejoin_after_teardown_creates_new_watch():
    registry = ObserverRegistry()
    factory = FactorySpy()
    registry.join("fp", Listener(_noop), factory)()
    registry.join("fp", Listener(_noop), factory)
    assert factory.created == 2
    assert factory.torn_down == 1


def test_failing_teardown_does_not_reach_caller():
    registry = ObserverRegistry()

    def factory(emitter):
        def teardown():
            raise RuntimeError("release failed")

        return teardown

    unsubscribe = registry.join("fp", Listener(_noop), factory)
    unsubscribe()
    assert "fp" not in registry


def test_factory_error_propagates_and_leaves_no_entry():
    registry = ObserverRegistry()

    def factory(emitter):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        registry.join("fp", Listener(_noop), factory)
    assert len(registry) == 0


def test_close_tears_down_everything():
    registry = ObserverRegistry()
    factory = FactorySpy()
    unsubscribe = registry.join("a", Listener(_noop), factory)
    registry.join("b", Listener(_noop), factory)
    registry.close()
    assert factory.torn_down == 2
    assert len(registry) == 0
    unsubscribe()
    assert factory.torn_down == 2


def test_emitter_fans_out_in_registration_order():
    registry = ObserverRegistry()
    factory = FactorySpy()
    seen = []

    async def async_listener(records):
        seen.append(("async", records))

    registry.join("fp", Listener(lambda r: seen.append(("first", r))), factory)
    registry.join("fp", Listener(async_listener), factory)
    registry.join("fp", Listener(lambda r: seen.append(("third", r))), factory)

    asyncio.run(factory.emitters[0].on_data([1, 2]))

    assert seen == [("first", [1, 2]), ("async", [1, 2]), ("third", [1, 2])]


def test_errors_reach_only_listeners_with_on_error():
    registry = ObserverRegistry()
    factory = FactorySpy()
    errors = []
    registry.join("fp", Listener(_noop), factory)
    registry.join("fp", Listener(_noop, on_error=errors.append), factory)

    error = RuntimeError("tick failed")
    asyncio.run(factory.emitters[0].on_error(error))

    assert errors == [error]


def test_raising_listener_does_not_block_others():
    registry = ObserverRegistry()
    factory = FactorySpy()
    seen = []

    def broken(records):
        raise ValueError("consumer bug")

    registry.join("fp", Listener(broken), factory)
    registry.join("fp", Listener(seen.append), factory)

    asyncio.run(factory.emitters[0].on_data(["log"]))

    assert seen == [["log"]]


def test_unsubscribed_listener_receives_nothing():
    registry = ObserverRegistry()
    factory = FactorySpy()
    gone, kept = [], []
    unsubscribe = registry.join("fp", Listener(gone.append), factory)
    registry.join("fp", Listener(kept.append), factory)
    unsubscribe()

    asyncio.run(factory.emitters[0].on_data(["log"]))

    assert gone == []
    assert kept == [["log"]]


def test_stale_emitter_does_not_reach_new_watch():
    registry = ObserverRegistry()
    factory = FactorySpy()
    fresh = []
    registry.join("fp", Listener(_noop), factory)()
    registry.join("fp", Listener(fresh.append), factory)

    stale, current = factory.emitters
    asyncio.run(stale.on_data(["late"]))
    asyncio.run(current.on_data(["new"]))

    assert fresh == [["new"]]


def test_emitter_listeners_snapshot_follows_unsubscribe():
    registry = ObserverRegistry()
    factory = FactorySpy()
    first, second = Listener(_noop), Listener(_noop)
    unsubscribe = registry.join("fp", first, factory)
    registry.join("fp", second, factory)
    emitter = factory.emitters[0]

    assert emitter.listeners() == [first, second]
    unsubscribe()
    assert emitter.listeners() == [second]
