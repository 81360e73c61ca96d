"""
Bridges "container changed" notifications into the batching path.

Containers that can notify per object get a listener from `forward` for
each subscription. Containers that only know that *something* changed call
`report_change`, which fans out to every connected callback.
"""

from __future__ import annotations

import functools
from typing import Any, Callable

from .batch import Batcher, batcher as default_batcher, call_all


class ChangeSignal:
    __slots__ = ("__weakref__", "batcher", "callbacks")

    def __init__(self, batcher: Batcher | None = None) -> None:
        self.batcher = batcher if batcher is not None else default_batcher
        self.callbacks: dict[Callable[[], None], None] = {}

    def connect(self, callback: Callable[[], None]) -> None:
        self.callbacks[callback] = None

    def disconnect(self, callback: Callable[[], None]) -> None:
        self.callbacks.pop(callback, None)

    def report_change(self) -> None:
        # callbacks may disconnect themselves while running
        call_all(
            [functools.partial(self.batcher.register, cb) for cb in self.callbacks]
        )

    def forward(self, callback: Callable[[], None]) -> Callable[..., None]:
        """
        Returns a listener that can be handed to a per-object subscription.
        Whatever arguments the container passes along are ignored.
        """

        def listener(*args: Any) -> None:
            self.batcher.register(callback)

        return listener


# Construct global instance
change_signal = ChangeSignal()


def report_change() -> None:
    change_signal.report_change()
