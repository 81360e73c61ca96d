"""
watchers perform dependency tracking via functions acting on
observable datastructures, and rerun those functions when a value
they read has actually changed.
"""

from __future__ import annotations

import logging
from itertools import count
from typing import Any, Callable, Hashable, Optional

from .hooks import ObservedContainer
from .object_utils import same_value
from .proxy import proxy as default_container
from .signals import ChangeSignal, change_signal as default_signal
from .tracking import Tracker, tracker as default_tracker

logger = logging.getLogger(__name__)

# Every Watcher gets a unique ID, which makes it easy
# to tell watchers apart in logs and hooks
_ids = count()

# Reruns a single run may cause by changing its own dependencies
MAX_RERUNS = 100

Snapshot = tuple[Any, Optional[int]]


def watch(fn: Callable[[], Any], container: ObservedContainer | None = None):
    """
    Runs fn right away and reruns it whenever a value it read changes.
    Returns a function that stops watching.
    """
    return Watcher(fn, container=container).dispose


def effect(
    fn: Callable[[], Any],
    cleanup: Callable[[], Any] | None = None,
    container: ObservedContainer | None = None,
):
    """
    Same as watch, but the returned dispose function also calls cleanup
    (once) after the watcher has stopped.
    """
    watcher = Watcher(fn, container=container)

    def dispose():
        if watcher.disposed:
            return
        watcher.dispose()
        if cleanup is not None:
            cleanup()

    return dispose


class Watcher:
    __slots__ = (
        "__weakref__",
        "_deps",
        "_subscriptions",
        "container",
        "dirty",
        "disposed",
        "fn",
        "id",
        "running",
        "signal",
        "tracker",
    )
    on_created: Optional[Callable[[Watcher], None]] = None
    on_disposed: Optional[Callable[[Watcher], None]] = None

    def __init__(
        self,
        fn: Callable[[], Any],
        container: ObservedContainer | None = None,
        tracker: Tracker | None = None,
        signal: ChangeSignal | None = None,
    ) -> None:
        """
        container: the observable container system the function reads from
        tracker: collector stack to collect reads on
        signal: bridge that hands change notifications to the batching path
        """
        self.id = next(_ids)
        self.fn = fn
        self.container = container if container is not None else default_container
        self.tracker = tracker if tracker is not None else default_tracker
        self.signal = signal if signal is not None else default_signal
        # id(owner) -> (owner, {key: (value, version)})
        self._deps: dict[int, tuple[Any, dict[Hashable, Snapshot]]] = {}
        # id(owner) -> (owner, unsubscribe)
        self._subscriptions: dict[int, tuple[Any, Callable[[], None]]] = {}
        self.disposed = False
        self.dirty = False
        self.running = False

        if Watcher.on_created:
            Watcher.on_created(self)

        if not self.per_owner:
            self.signal.connect(self.check)
        try:
            self.run()
        except BaseException:
            # nobody gets a handle to a watcher that failed to start
            self.dispose()
            raise

    @property
    def per_owner(self) -> bool:
        """Whether the container notifies changes per observed object"""
        return callable(getattr(self.container, "subscribe", None))

    def add(self, owner: Any, key: Hashable, value: Any) -> None:
        """Called by the tracker for every read while this watcher runs"""
        entry = self._deps.get(id(owner))
        if entry is None:
            entry = self._deps[id(owner)] = (owner, {})
        entry[1][key] = (value, self.container.version(value))

    def run(self) -> None:
        rounds = 0
        while True:
            rounds += 1
            if rounds > MAX_RERUNS:
                raise RecursionError(
                    f"Infinite update loop detected in watcher {self.fn_fqn}"
                )
            self.dirty = False
            self._run_once()
            if not self.dirty or self.disposed:
                return
            if self.signal.batcher.stack:
                # decide once the enclosing batch ends
                self.signal.batcher.register(self.check)
                return
            if not self.is_changed():
                return

    def _run_once(self) -> None:
        self._deps = {}
        self.running = True
        try:
            with self.tracker.collecting(self):
                self.fn()
        finally:
            self.running = False
            if self.reconcile():
                # writes to these owners during the run went unnoticed
                self.dirty = True

    def is_changed(self) -> bool:
        deps = self._deps
        peek = self.container.peek
        version = self.container.version
        for owner, keys in deps.values():
            for key, (prev_value, prev_version) in keys.items():
                value = peek(owner, key)
                if not same_value(value, prev_value):
                    return True
                # its own keys are compared on their own
                if id(value) in deps:
                    continue
                current_version = version(value)
                if (
                    isinstance(current_version, int)
                    and isinstance(prev_version, int)
                    and current_version != prev_version
                ):
                    return True
        return False

    def check(self) -> None:
        """Rerun candidate: reruns only if a dependency actually changed"""
        if self.disposed:
            return
        if self.running:
            # the current run picks this up once it is done
            self.dirty = True
            return
        if self.is_changed():
            self.run()

    def reconcile(self) -> bool:
        """
        Makes sure there is exactly one subscription for every owner
        that was touched during the last run. Returns whether any new
        owners were subscribed to.
        """
        if self.disposed or not self.per_owner:
            return False
        added = False
        subscriptions = self._subscriptions
        for owner_id in [key for key in subscriptions if key not in self._deps]:
            _, unsubscribe = subscriptions.pop(owner_id)
            unsubscribe()
        for owner_id, (owner, _) in self._deps.items():
            if owner_id not in subscriptions:
                added = True
                subscriptions[owner_id] = (
                    owner,
                    self.container.subscribe(
                        owner, self.signal.forward(self.check), True
                    ),
                )
        return added

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        for _, unsubscribe in self._subscriptions.values():
            unsubscribe()
        self._subscriptions.clear()
        self._deps.clear()
        self.signal.disconnect(self.check)
        logger.debug("Disposed watcher %d (%s)", self.id, self.fn_fqn)

        if Watcher.on_disposed:
            Watcher.on_disposed(self)

    @property
    def fn_fqn(self) -> str:
        module = getattr(self.fn, "__module__", None)
        name = getattr(self.fn, "__qualname__", None) or repr(self.fn)
        return f"{module}.{name}" if module else name
