"""
The tracker keeps a stack of collectors. Observable containers report every
read through `report_read`, which hands it to the innermost collector.
Collectors are pushed and popped around a single watcher run.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Hashable, Iterator, Protocol


class Collector(Protocol):
    def add(self, owner: Any, key: Hashable, value: Any) -> None: ...


class Tracker(threading.local):
    """
    Stack of active collectors. Every thread gets its own stack, so
    tracking never leaks between threads.
    """

    def __init__(self) -> None:
        self.stack: list[Collector] = []

    def report_read(self, owner: Any, key: Hashable, value: Any) -> None:
        if self.stack:
            self.stack[-1].add(owner, key, value)

    def is_tracking(self) -> bool:
        return bool(self.stack)

    @contextmanager
    def collecting(self, collector: Collector) -> Iterator[Collector]:
        self.stack.append(collector)
        try:
            yield collector
        finally:
            self.stack.pop()


# Construct global instance
tracker = Tracker()


def report_read(owner: Any, key: Hashable, value: Any) -> None:
    tracker.report_read(owner, key, value)


def is_tracking() -> bool:
    return tracker.is_tracking()
