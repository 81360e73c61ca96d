"""
The reactive plugin connects a proxy factory to the tracking engine: reads
reported by the factory are collected by the active watcher, and changes
are forwarded to watchers relying on the global change signal.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Callable, Hashable, Mapping, TypeVar

from .batch import Batcher, batcher as default_batcher
from .computed import ComputedBinding, ComputedResult
from .signals import ChangeSignal, change_signal as default_signal
from .tracking import Tracker, tracker as default_tracker
from .watcher import Watcher

R = TypeVar("R")

logger = logging.getLogger(__name__)


class ReactivePlugin:
    id = "reactive"
    name = "Reactive Plugin"

    def __init__(
        self,
        tracker: Tracker | None = None,
        batcher: Batcher | None = None,
        signal: ChangeSignal | None = None,
    ) -> None:
        self.tracker = tracker if tracker is not None else default_tracker
        self.batcher = batcher if batcher is not None else default_batcher
        if signal is None:
            signal = default_signal if batcher is None else ChangeSignal(batcher)
        self.signal = signal
        # the factory this plugin is attached to
        self.factory = None
        self._computed = ComputedBinding(self._make_watcher)

    def _make_watcher(self, fn: Callable[[], Any]) -> Watcher:
        return Watcher(
            fn, container=self.factory, tracker=self.tracker, signal=self.signal
        )

    # Hooks called by the proxy factory

    def on_attach(self, factory) -> None:
        self.factory = factory
        self._computed.bind(factory)
        logger.debug("Reactive plugin attached to %r", factory)

    def on_get(self, owner: Any, key: Hashable, value: Any) -> None:
        self.tracker.report_read(owner, key, value)

    def after_change(self, owner: Any) -> None:
        self.signal.report_change()

    # API

    def watch(self, fn: Callable[[], Any]) -> Callable[[], None]:
        return self._make_watcher(fn).dispose

    def unstable_watch(self, fn: Callable[[], Any]) -> Callable[[], None]:
        warnings.warn(
            "unstable_watch is deprecated, please use effect instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.watch(fn)

    def effect(
        self, fn: Callable[[], Any], cleanup: Callable[[], Any] | None = None
    ) -> Callable[[], None]:
        watcher = self._make_watcher(fn)

        def dispose():
            if watcher.disposed:
                return
            watcher.dispose()
            if cleanup is not None:
                cleanup()

        return dispose

    def batch(self, fn: Callable[[], R]) -> R:
        return self.batcher.batch(fn)

    def is_tracking(self) -> bool:
        return self.tracker.is_tracking()

    def computed(self, getters: Mapping[str, Callable[[], Any]]) -> ComputedResult:
        """
        Create computed state that updates when dependencies change.
        Every key of getters becomes a key of the returned state,
        use the dispose function of the result to stop updating.
        """
        return self._computed(getters)
