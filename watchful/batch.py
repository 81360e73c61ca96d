"""
The batcher coalesces rerun requests. While a batch scope is active,
callbacks registered through `register_batch_callback` are collected in the
innermost scope instead of being called. Nested scopes hand their callbacks
to the enclosing scope; the outermost scope calls every distinct callback
once, in the order it was first registered.
"""

from __future__ import annotations

import functools
import threading
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")


def call_all(callbacks: Iterable[Callable[[], None]]) -> None:
    """
    Calls every callback, even when some of them raise. The first error
    is raised again once all callbacks have been called.
    """
    error = None
    for callback in callbacks:
        try:
            callback()
        except Exception as e:
            if error is None:
                error = e
    if error is not None:
        raise error


class Batcher(threading.local):
    def __init__(self) -> None:
        # dicts are used as insertion ordered sets
        self.stack: list[dict[Callable[[], None], None]] = []

    def register(self, callback: Callable[[], None]) -> None:
        if self.stack:
            self.stack[-1][callback] = None
        else:
            callback()

    @contextmanager
    def scope(self) -> Iterator[None]:
        pending: dict[Callable[[], None], None] = {}
        self.stack.append(pending)
        try:
            yield
        finally:
            self.stack.pop()
            if self.stack:
                self.stack[-1].update(pending)
            else:
                call_all(pending)

    def batch(self, fn: Callable[[], R]) -> R:
        with self.scope():
            return fn()


# Construct global instance
batcher = Batcher()


def register_batch_callback(callback: Callable[[], None]) -> None:
    batcher.register(callback)


def batch(fn: Callable[[], R]) -> R:
    """
    Run fn and defer all reruns it causes until it returns. The return
    value of fn is passed through.
    """
    return batcher.batch(fn)


def transaction():
    """
    Context manager for batching mutations.

    Usage:
        with transaction():
            state["a"] = 1
            state["b"] = 2
            # watchers rerun here, after both are set
    """
    return batcher.scope()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all mutations done by fn."""

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with batcher.scope():
            return fn(*args, **kwargs)

    return wrapper
