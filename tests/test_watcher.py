from unittest.mock import Mock

import pytest

from watchful import proxy, watch
from watchful.watcher import MAX_RERUNS, Watcher


def test_watch_runs_initially(reactive):
    fn = Mock()
    unwatch = reactive.watch(fn)
    fn.assert_called_once()
    unwatch()


def test_watch_rerun_on_change(reactive):
    state = proxy({"count": 0})
    data = []

    unwatch = reactive.watch(lambda: data.append(state["count"]))
    assert data == [0]

    state["count"] += 1
    assert data == [0, 1]
    state["count"] += 1
    assert data == [0, 1, 2]

    unwatch()
    state["count"] += 1
    assert data == [0, 1, 2]


def test_watch_module_level(reactive):
    state = proxy({"count": 0})
    data = []

    unwatch = watch(lambda: data.append(state["count"]))
    state["count"] = 3
    assert data == [0, 3]
    unwatch()


def test_watch_nested_object(reactive):
    state = proxy(
        {
            "count": 0,
            "nested": {"count": 0, "another_count": 0, "another_object": {"count2": 0}},
        }
    )
    data = []

    unwatch = reactive.watch(lambda: data.append(state["nested"]["count"]))
    assert data == [0]

    state["nested"]["count"] += 1
    assert data == [0, 1]
    state["count"] += 1
    assert data == [0, 1]
    state["nested"]["another_count"] += 1
    assert data == [0, 1]
    state["nested"]["another_object"]["count2"] += 1
    assert data == [0, 1]
    unwatch()


def test_watch_list_length(reactive):
    state = proxy({"items": []})
    data = []

    unwatch = reactive.watch(lambda: data.append(len(state["items"])))
    assert data == [0]

    state["items"].append(1)
    assert data == [0, 1]
    state["items"].append(2)
    assert data == [0, 1, 2]
    unwatch()


def test_watch_dict_structure(reactive):
    fn = Mock()
    state = proxy({"todos": {}})

    unwatch = reactive.watch(lambda: fn(state["todos"]))
    fn.reset_mock()

    state["todos"]["1"] = {"title": "Buy milk"}
    fn.assert_called_once()
    assert fn.call_args.args[0] == {"1": {"title": "Buy milk"}}

    fn.reset_mock()
    state["todos"]["2"] = {"title": "Buy coffee"}
    fn.assert_called_once()
    assert fn.call_args.args[0] == {
        "1": {"title": "Buy milk"},
        "2": {"title": "Buy coffee"},
    }

    fn.reset_mock()
    del state["todos"]["1"]
    fn.assert_called_once()
    assert fn.call_args.args[0] == {"2": {"title": "Buy coffee"}}
    unwatch()


def test_watch_list_structure(reactive):
    fn = Mock()
    state = proxy({"items": []})

    unwatch = reactive.watch(lambda: fn(state["items"]))
    fn.reset_mock()

    state["items"].append(1)
    fn.assert_called_once()
    assert fn.call_args.args[0] == [1]

    fn.reset_mock()
    state["items"].append(2)
    fn.assert_called_once()
    assert fn.call_args.args[0] == [1, 2]

    state["items"].pop(0)
    assert fn.call_args.args[0] == [2]
    unwatch()


def test_watch_parent_and_child_keys(reactive):
    state = proxy({"count": 0, "nested": {"text": "hello"}})
    fn = Mock()

    def read():
        state["count"]
        state["nested"]["text"]
        fn()

    unwatch = reactive.watch(read)
    assert fn.call_count == 1

    state["count"] += 1
    assert fn.call_count == 2

    state["nested"]["text"] = "world"
    assert fn.call_count == 3
    unwatch()


def test_watch_object_replacement(reactive):
    state = proxy({"nested": {"text": "initial"}})
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state["nested"]["text"]))
    fn.assert_called_once_with("initial")

    state["nested"] = {"text": "replaced"}
    assert fn.call_count == 2
    fn.assert_called_with("replaced")
    unwatch()


def test_watch_swapped_references(reactive):
    state = proxy({"a": {"value": 1}, "b": {"value": 2}})
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state["a"]["value"], state["b"]["value"]))
    a, b = state["a"], state["b"]

    state.update(a=b, b=a)
    fn.assert_called_with(2, 1)
    assert fn.call_count == 2
    unwatch()


def test_watch_multiple_watchers(reactive):
    state = proxy({"count": 0})
    fn1 = Mock()
    fn2 = Mock()

    unwatch1 = reactive.watch(lambda: fn1(state["count"]))
    unwatch2 = reactive.watch(lambda: fn2(state["count"]))

    state["count"] += 1
    assert fn1.call_count == 2
    assert fn2.call_count == 2

    unwatch1()
    state["count"] += 1
    assert fn1.call_count == 2
    assert fn2.call_count == 3
    unwatch2()


def test_watch_conditional_access(reactive):
    state = proxy({"flag": True, "a": 1, "b": 2})
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state["a"] if state["flag"] else state["b"]))
    fn.assert_called_with(1)

    # currently watching a
    state["a"] = 10
    fn.assert_called_with(10)

    # not watching b
    state["b"] = 20
    assert fn.call_count == 2

    # now watching b instead of a
    state["flag"] = False
    fn.assert_called_with(20)
    state["b"] = 30
    fn.assert_called_with(30)

    call_count = fn.call_count
    state["a"] = 100
    assert fn.call_count == call_count
    unwatch()


def test_watch_same_value(reactive):
    state = proxy({"count": 0, "name": "watch"})
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state["count"], state["name"]))
    state["count"] = 0
    state["name"] = "".join(["wat", "ch"])
    fn.assert_called_once()
    unwatch()


def test_watch_unrelated_key(reactive):
    state = proxy({"count": 0, "other": 0})
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state["count"]))
    state["other"] = 1
    state["new"] = 1
    fn.assert_called_once()
    unwatch()


def test_watch_missing_key(reactive):
    state = proxy({})
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state.get("value")))
    fn.assert_called_with(None)

    state["value"] = 42
    fn.assert_called_with(42)

    del state["value"]
    fn.assert_called_with(None)
    assert fn.call_count == 3
    unwatch()


def test_watch_rapid_changes(reactive):
    state = proxy({"count": 0})
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state["count"]))
    fn.reset_mock()

    for _ in range(10):
        state["count"] += 1

    assert fn.call_count == 10
    fn.assert_called_with(10)
    unwatch()


def test_watch_circular_reference(reactive):
    state = proxy({"count": 0})
    state["self"] = state
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state["self"]["self"]["count"]))
    assert fn.call_count == 1

    state["count"] += 1
    assert fn.call_count == 2
    fn.assert_called_with(1)
    unwatch()


def test_unwatch_repeatedly(reactive):
    state = proxy({"count": 0})
    fn = Mock()

    unwatch = reactive.watch(lambda: fn(state["count"]))
    unwatch()
    unwatch()
    unwatch()

    state["count"] += 1
    fn.assert_called_once()


def test_watch_writes_own_dependency(reactive):
    state = proxy({"count": 15})
    mirror = []

    def clamp():
        mirror.append(state["count"])
        # adjust the same value that triggered the run
        if state["count"] > 10:
            state["count"] = 10

    unwatch = reactive.watch(clamp)
    assert state["count"] == 10
    assert mirror == [15, 10]

    state["count"] = 12
    assert state["count"] == 10
    assert mirror == [15, 10, 12, 10]

    state["count"] = 5
    assert mirror == [15, 10, 12, 10, 5]
    unwatch()


def test_watch_writes_own_dependency_in_batch(reactive):
    state = proxy({"count": 15})
    mirror = []

    def clamp():
        mirror.append(state["count"])
        if state["count"] > 10:
            state["count"] = 10

    def body():
        unwatch = reactive.watch(clamp)
        assert mirror == [15]
        return unwatch

    unwatch = reactive.batch(body)
    assert mirror == [15, 10]
    unwatch()


def test_watch_runaway_self_update(reactive):
    state = proxy({"count": 0})

    def bump():
        state["count"] += 1

    with pytest.raises(RecursionError):
        reactive.watch(bump)
    assert state["count"] == MAX_RERUNS
    assert not reactive.is_tracking()

    # the watcher is gone
    state["count"] = 0
    assert state["count"] == 0


def test_watch_rerun_on_change_by_other_watcher(reactive):
    state = proxy({"a": 0, "b": 0})
    seen = []

    def derive():
        seen.append(state["a"])
        state["b"] = state["a"] + 1

    def reset():
        if state["b"] == 6:
            state["a"] = 100

    unwatch_derive = reactive.watch(derive)
    unwatch_reset = reactive.watch(reset)

    # derive triggers reset, which changes what derive has just read
    state["a"] = 5
    assert seen == [0, 5, 100]
    assert seen[-1] == state["a"]
    assert state["b"] == 101

    unwatch_reset()
    unwatch_derive()


def test_watch_sibling_raises(reactive):
    state = proxy({"count": 0})
    seen = []

    def boom():
        if state["count"] == 1:
            raise ValueError("boom")

    unwatch_boom = reactive.watch(boom)
    unwatch = reactive.watch(lambda: seen.append(state["count"]))

    with pytest.raises(ValueError, match="boom"):
        state["count"] = 1
    assert seen == [0, 1]

    unwatch()
    unwatch_boom()


def test_watch_raises_initially(reactive):
    state = proxy({"count": 0})
    calls = 0

    def boom():
        nonlocal calls
        calls += 1
        state["count"]
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        reactive.watch(boom)

    assert not reactive.is_tracking()
    # the failed watcher does not linger
    state["count"] += 1
    assert calls == 1


def test_watch_raises_on_rerun(reactive):
    state = proxy({"count": 0})
    data = []

    def fn():
        data.append(state["count"])
        if state["count"] == 1:
            raise ValueError("one")

    unwatch = reactive.watch(fn)
    with pytest.raises(ValueError, match="one"):
        state["count"] = 1
    assert not reactive.is_tracking()

    # still tracking everything read before the error
    state["count"] = 2
    assert data == [0, 1, 2]
    unwatch()


def test_watcher_subscriptions_follow_dependencies(reactive):
    state = proxy({"flag": True, "a": {"value": 1}, "b": {"value": 2}})

    def fn():
        key = "a" if state["flag"] else "b"
        state[key]["value"]

    watcher = Watcher(fn)
    a, b = state["a"], state["b"]
    assert len(watcher._subscriptions) == 2
    assert id(a) in watcher._subscriptions
    assert len(a.__listeners__) == 1

    state["flag"] = False
    assert len(watcher._subscriptions) == 2
    assert id(a) not in watcher._subscriptions
    assert id(b) in watcher._subscriptions
    assert a.__listeners__ == []

    watcher.dispose()
    assert watcher._subscriptions == {}
    assert watcher._deps == {}
    assert b.__listeners__ == []


def test_watcher_is_changed(reactive):
    state = proxy({"items": [1, 2], "count": 0})
    watcher = Watcher(lambda: (state["items"], state["count"]))

    assert not watcher.is_changed()
    # bypasses notification through the target
    state.__target__["count"] = 1
    assert watcher.is_changed()
    state.__target__["count"] = 0
    assert not watcher.is_changed()

    def mutate():
        # in place change of a value that is not tracked any deeper
        state["items"].append(3)
        assert watcher.is_changed()

    reactive.batch(mutate)
    # the rerun took a fresh snapshot
    assert not watcher.is_changed()
    watcher.dispose()
