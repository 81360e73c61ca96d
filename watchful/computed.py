"""
Computed state: every key of the result is kept up to date by its own
watcher, so keys are tracked and recomputed independently.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, NamedTuple

from .watcher import Watcher


class ConfigurationError(RuntimeError):
    """
    Raised when computed state is requested before a constructor
    for the result state has been bound.
    """

    pass


class ComputedResult(NamedTuple):
    state: Any
    dispose: Callable[[], None]


class ComputedBinding:
    """
    Creates computed state with the constructor that was bound to it,
    usually the proxy factory a reactive plugin is attached to.
    """

    __slots__ = ("constructor", "make_watcher")

    def __init__(self, make_watcher: Callable[[Callable[[], Any]], Watcher] = Watcher):
        self.constructor: Callable[[dict], Any] | None = None
        self.make_watcher = make_watcher

    def bind(self, constructor: Callable[[dict], Any]) -> None:
        self.constructor = constructor

    def __call__(self, getters: Mapping[str, Callable[[], Any]]) -> ComputedResult:
        if self.constructor is None:
            raise ConfigurationError(
                "Reactive plugin must be attached to a proxy before using computed()"
            )

        state = self.constructor({})
        watchers: list[Watcher] = []

        def dispose():
            for watcher in watchers:
                watcher.dispose()
            watchers.clear()

        try:
            for key, getter in getters.items():

                def assign(key=key, getter=getter):
                    state[key] = getter()

                watchers.append(self.make_watcher(assign))
        except BaseException:
            dispose()
            raise

        return ComputedResult(state, dispose)
