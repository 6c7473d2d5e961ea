"""Hook registry for Sia plugins.

A ``HookRegistry`` is created per build and passed into the pipeline. Each
event holds an ordered list of (name, handler) pairs. Handlers either observe
a payload (``run``) or transform an accumulator (``run_with_result``). A
failing handler is logged and skipped, like a file that fails to parse; in
strict mode the failure is raised as ``HookError`` instead.

Events emitted by the build:
- before_build(config)
- before_collections(config)
- collections_loaded(collections) -> collections
- site_data_ready(site_data) -> site_data
- after_build(result)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class HookError(Exception):
    """Raised in strict mode when a hook handler fails.

    Attributes:
        event: Event name.
        handler_name: Name of the failing handler.
        original_error: The exception raised by the handler.
    """

    def __init__(self, event: str, handler_name: str, original_error: Exception):
        self.event = event
        self.handler_name = handler_name
        self.original_error = original_error
        super().__init__(f'Hook "{event}" of {handler_name} failed: {original_error}')


@dataclass
class HookResult:
    name: str
    value: Any = None
    error: Exception | None = None


class HookRegistry:
    """Ordered registry of event handlers.

    Attributes:
        strict: Raise HookError instead of logging handler failures.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._hooks: dict[str, list[tuple[str, Handler]]] = {}

    def register(self, event: str, handler: Handler, name: str | None = None) -> None:
        """Append a handler to an event.

        Args:
            event: Event name.
            handler: Callable invoked with the event payload.
            name: Handler name used in logs and ordering; defaults to the
                callable's qualified name.
        """
        if not callable(handler):
            raise TypeError(f'Handler for "{event}" is not callable')
        label = name or getattr(handler, "__qualname__", repr(handler))
        self._hooks.setdefault(event, []).append((label, handler))

    def register_plugin(self, plugin: Any) -> None:
        """Register every entry of ``plugin.hooks`` under the plugin's name.

        Non-callable entries are skipped with a warning.
        """
        name = str(getattr(plugin, "name", type(plugin).__name__))
        hooks = getattr(plugin, "hooks", None) or {}
        for event, handler in hooks.items():
            if not callable(handler):
                logger.warning('Plugin %s: hook "%s" is not a function, skipping', name, event)
                continue
            self.register(event, handler, name=name)

    def reorder(self, names: Iterable[str]) -> None:
        """Move handlers with the given names to the front, in that order.

        Handlers not named keep their relative registration order after them.
        """
        rank = {name: index for index, name in enumerate(names)}
        for event, handlers in self._hooks.items():
            self._hooks[event] = sorted(
                handlers, key=lambda pair: rank.get(pair[0], len(rank))
            )

    def handlers(self, event: str) -> list[tuple[str, Handler]]:
        return list(self._hooks.get(event, []))

    def has(self, event: str) -> bool:
        return bool(self._hooks.get(event))

    def events_for(self, name: str) -> list[str]:
        """Events a named handler is registered for."""
        return [
            event
            for event, handlers in self._hooks.items()
            if any(label == name for label, _ in handlers)
        ]

    def clear(self) -> None:
        self._hooks.clear()

    def _fail(self, event: str, name: str, exc: Exception) -> None:
        if self.strict:
            raise HookError(event, name, exc) from exc
        logger.error('Plugin %s hook "%s" failed: %s', name, event, exc)

    def run(self, event: str, *args: Any, **kwargs: Any) -> list[HookResult]:
        """Call every handler of an event for its side effects.

        Returns:
            One HookResult per handler, in order.
        """
        results: list[HookResult] = []
        for name, handler in self.handlers(event):
            try:
                results.append(HookResult(name, handler(*args, **kwargs)))
            except Exception as exc:
                self._fail(event, name, exc)
                results.append(HookResult(name, error=exc))
        return results

    def run_with_result(self, event: str, value: Any, *args: Any, **kwargs: Any) -> Any:
        """Thread ``value`` through every handler of an event.

        A handler returning something other than None replaces the value
        passed to the next handler.

        Returns:
            The final value.
        """
        for name, handler in self.handlers(event):
            try:
                result = handler(value, *args, **kwargs)
            except Exception as exc:
                self._fail(event, name, exc)
                continue
            if result is not None:
                value = result
        return value
