"""
Capabilities the engine expects from an observable container, and the hooks
a container offers to plugins.
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Protocol


class ObservedContainer(Protocol):
    """
    What a watcher needs from the container system.

    `subscribe` is optional: watchers fall back to the global change signal
    for containers that cannot notify per object.
    """

    def peek(self, owner: Any, key: Hashable) -> Any:
        """Current value at owner[key], read without being tracked"""
        ...

    def version(self, value: Any) -> int | None:
        """Monotonic change counter of value, None if it is not observable"""
        ...


class ProxyPlugin(Protocol):
    """
    Hooks called by a proxy factory. All of them are optional; a factory
    only calls the ones a plugin defines.
    """

    def on_attach(self, factory: Callable[[Any], Any]) -> None: ...

    def on_get(self, owner: Any, key: Hashable, value: Any) -> None: ...

    def after_change(self, owner: Any) -> None: ...
