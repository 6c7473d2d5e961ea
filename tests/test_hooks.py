import logging

import pytest

from sia.build import prepare_hooks
from sia.config import config_from_dict
from sia.hooks import HookError, HookRegistry


def test_run_calls_handlers_in_order():
    calls = []
    hooks = HookRegistry()
    hooks.register("before_build", lambda cfg: calls.append(("a", cfg)), name="a")
    hooks.register("before_build", lambda cfg: calls.append(("b", cfg)), name="b")

    results = hooks.run("before_build", "cfg")

    assert calls == [("a", "cfg"), ("b", "cfg")]
    assert [r.name for r in results] == ["a", "b"]
    assert hooks.run("unknown") == []


def test_failing_handler_is_isolated(caplog):
    calls = []

    def boom(payload):
        raise RuntimeError("broken plugin")

    hooks = HookRegistry()
    hooks.register("evt", boom, name="bad")
    hooks.register("evt", calls.append, name="good")

    with caplog.at_level(logging.ERROR):
        results = hooks.run("evt", 1)

    assert calls == [1]
    assert isinstance(results[0].error, RuntimeError)
    assert results[1].error is None
    assert "broken plugin" in caplog.text


def test_strict_mode_raises_hook_error():
    hooks = HookRegistry(strict=True)
    hooks.register("evt", lambda: 1 / 0, name="divider")
    with pytest.raises(HookError) as excinfo:
        hooks.run("evt")
    assert excinfo.value.handler_name == "divider"
    assert isinstance(excinfo.value.original_error, ZeroDivisionError)


def test_run_with_result_threads_value():
    hooks = HookRegistry()
    hooks.register("collections_loaded", lambda value: value + [1])
    hooks.register("collections_loaded", lambda value: None)
    hooks.register("collections_loaded", lambda value: [*value, 2])
    hooks.register("collections_loaded", lambda value: 1 / 0)
    assert hooks.run_with_result("collections_loaded", []) == [1, 2]


def test_register_plugin_and_queries(caplog):
    class Plugin:
        name = "seo"
        hooks = {"before_build": lambda cfg: None, "after_build": "not callable"}

    hooks = HookRegistry()
    with caplog.at_level(logging.WARNING):
        hooks.register_plugin(Plugin())
    assert "not a function" in caplog.text
    assert hooks.has("before_build")
    assert not hooks.has("after_build")
    assert hooks.events_for("seo") == ["before_build"]
    hooks.clear()
    assert not hooks.has("before_build")

    with pytest.raises(TypeError):
        hooks.register("evt", "nope")


def test_reorder_by_name():
    hooks = HookRegistry()
    for name in ["a", "b", "c"]:
        hooks.register("evt", lambda: None, name=name)
    hooks.reorder(["c", "a"])
    assert [name for name, _ in hooks.handlers("evt")] == ["c", "a", "b"]


def test_prepare_hooks_applies_plugin_config(tmp_path):
    hooks = HookRegistry()
    hooks.register("evt", lambda: None, name="a")
    hooks.register("evt", lambda: None, name="b")

    config = config_from_dict(
        {"plugins": {"strict_mode": True, "order": ["b"]}}, root_dir=tmp_path
    )
    prepared = prepare_hooks(config, hooks)
    assert prepared is hooks
    assert prepared.strict is True
    assert [name for name, _ in prepared.handlers("evt")] == ["b", "a"]

    disabled = config_from_dict({"plugins": {"enabled": False}}, root_dir=tmp_path)
    assert not prepare_hooks(disabled, hooks).has("evt")
