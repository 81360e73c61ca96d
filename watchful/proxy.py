"""
A small observable container system for dicts and lists.

Proxies report every read to the plugins of the factory that created them,
and on every change they bump a version counter on themselves and on all
the proxies they were read from, then notify subscribers.
"""

from __future__ import annotations

import logging
from itertools import count
from typing import Any, Callable, Generic, Hashable, TypeVar, cast
from weakref import WeakValueDictionary

from .batch import call_all
from .hooks import ProxyPlugin
from .proxy_db import ProxyDb
from .scheduler import scheduler

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Sentinel:
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name


# Reported as the value of a key that is not present
MISSING = Sentinel("MISSING")
# Key under which reads of the shape of a container are reported:
# the tuple of keys of a dict, the length of a list
KEYS = Sentinel("KEYS")

# Versions are handed out from one counter so that a single change can be
# recognized while it propagates through a graph with cycles
_versions = count(1)


class Proxy(Generic[T]):
    """
    Proxy for a target.

    Please call a ProxyFactory to get a proxy for a certain object instead
    of directly creating one yourself. The factory will either create or
    return an existing proxy and makes sure that its db stays consistent.
    """

    __hash__ = None
    # the slots have to be very unique since the names may be
    # looked up next to the methods of the proxied type
    __slots__ = (
        "__factory__",
        "__listeners__",
        "__parents__",
        "__target__",
        "__version__",
        "__weakref__",
    )

    def __init__(self, target: T, factory: ProxyFactory) -> None:
        self.__target__ = target
        self.__factory__ = factory
        self.__version__ = 0
        self.__listeners__: list[Listener] = []
        self.__parents__: WeakValueDictionary[int, Proxy] = WeakValueDictionary()
        factory._db.reference(self)


class Listener:
    __slots__ = ("active", "callback", "notify_in_sync")

    def __init__(self, callback: Callable[[], None], notify_in_sync: bool) -> None:
        self.callback = callback
        self.notify_in_sync = notify_in_sync
        self.active = True

    def deliver(self) -> None:
        if not self.active:
            return
        if self.notify_in_sync:
            self.callback()
        else:
            scheduler.queue(self.callback)


# Lookup dict for mapping a type test to the proxy type
# that will wrap objects passing that test
TYPE_LOOKUP: dict[Callable[[Any], bool], type[Proxy]] = {}


def link(child: Proxy, parent: Proxy) -> None:
    """Changes to child will from now on also count as changes to parent"""
    child.__parents__[id(parent)] = parent


def unlink(child: Proxy, parent: Proxy) -> None:
    child.__parents__.pop(id(parent), None)


def relink(parent: Proxy, old_values, new_values) -> None:
    """
    Unlinks the children that are no longer held by parent and links
    the proxies that were newly put into it.
    """
    old_values = list(old_values)
    new_values = list(new_values)
    present = {id(value) for value in new_values}
    previous = {id(value) for value in old_values}
    for value in old_values:
        if id(value) in present:
            continue
        if isinstance(value, Proxy):
            child = value
        else:
            child = parent.__factory__._db.get_proxy(value)
        if child is not None:
            unlink(child, parent)
    for value in new_values:
        if isinstance(value, Proxy) and id(value) not in previous:
            link(value, parent)


def notify(changed: Proxy) -> int:
    """
    Bumps the version of the changed proxy and of every proxy it is
    (transitively) linked to, then delivers their listeners.
    Returns the new version.
    """
    version = next(_versions)
    affected = []
    pending = [changed]
    while pending:
        current = pending.pop()
        if current.__version__ == version:
            continue
        current.__version__ = version
        affected.append(current)
        pending.extend(current.__parents__.values())

    call_all(
        [listener.deliver for current in affected for listener in current.__listeners__]
    )
    return version


def wrap(owner: Proxy, value: Any) -> Any:
    """
    Returns the proxy for a value read from owner (or the value itself when
    it can't be proxied) and links that proxy to owner.
    """
    if value is MISSING:
        return value
    child = owner.__factory__(value)
    if isinstance(child, Proxy):
        link(child, owner)
    return child


def get_version(value: Any) -> int | None:
    if isinstance(value, Proxy):
        return value.__version__
    return None


def peek(owner: Proxy, key: Hashable) -> Any:
    """
    Returns the current value at owner[key] without reporting the read.
    Absent keys give MISSING, the KEYS key gives the shape of the owner.
    """
    if not isinstance(owner, Proxy):
        raise TypeError(f"Can't peek into non-proxy object of type {type(owner)}")
    return owner._peek(key)


def subscribe(
    owner: Proxy, callback: Callable[[], None], notify_in_sync: bool = False
) -> Callable[[], None]:
    """
    Calls callback whenever owner or anything linked to it changes.
    Unless notify_in_sync is set, the call is queued on the scheduler.
    Returns a function that ends the subscription.
    """
    if not isinstance(owner, Proxy):
        raise TypeError(f"Can't subscribe to non-proxy object of type {type(owner)}")
    listener = Listener(callback, notify_in_sync)
    owner.__listeners__.append(listener)

    def unsubscribe():
        if not listener.active:
            return
        listener.active = False
        owner.__listeners__.remove(listener)

    return unsubscribe


class ProxyFactory:
    """
    Creates proxies and dispatches their reads and changes to the
    plugins that are in use.
    """

    __slots__ = ("__weakref__", "_db", "plugins")

    peek = staticmethod(peek)
    version = staticmethod(get_version)
    subscribe = staticmethod(subscribe)

    def __init__(self) -> None:
        self._db = ProxyDb()
        self.plugins: list[ProxyPlugin] = []

    def __call__(self, target: T) -> T:
        """
        Returns a Proxy for the given object. If this factory created a
        proxy for it before which is still alive, that one is returned.

        Please be aware: this only works on plain data types: dict, list
        and tuple!
        """
        if isinstance(target, Proxy):
            return target

        existing_proxy = self._db.get_proxy(target)
        if existing_proxy is not None:
            return existing_proxy

        for type_test, proxy_type in TYPE_LOOKUP.items():
            if type_test(target):
                return cast(T, proxy_type(target, self))

        if isinstance(target, tuple):
            return cast(T, tuple(self(x) for x in target))

        # We can't proxy a plain value
        return target

    def use(self, *plugins: ProxyPlugin) -> ProxyFactory:
        for plugin in plugins:
            self.plugins.append(plugin)
            on_attach = getattr(plugin, "on_attach", None)
            if on_attach is not None:
                on_attach(self)
            logger.debug(
                "Plugin %r attached to %r", getattr(plugin, "id", plugin), self
            )
        return self

    def clear_plugins(self) -> None:
        self.plugins.clear()

    def create_instance(self) -> ProxyFactory:
        """Returns a new factory with its own plugins and proxies"""
        return ProxyFactory()

    def dispose(self) -> None:
        self.clear_plugins()
        self._db.clear()

    def report_get(self, owner: Proxy, key: Hashable, value: Any) -> None:
        for plugin in self.plugins:
            on_get = getattr(plugin, "on_get", None)
            if on_get is not None:
                on_get(owner, key, value)

    def report_change(self, owner: Proxy) -> None:
        for plugin in self.plugins:
            after_change = getattr(plugin, "after_change", None)
            if after_change is not None:
                after_change(owner)


# Construct global instance
proxy = ProxyFactory()


def to_raw(target: Proxy[T] | T) -> T:
    """
    Returns a raw object from which any trace of proxy has been replaced
    with its wrapped target value.
    """
    if isinstance(target, Proxy):
        return to_raw(target.__target__)

    if isinstance(target, list):
        return cast(T, [to_raw(t) for t in target])

    if isinstance(target, dict):
        return cast(T, {key: to_raw(value) for key, value in target.items()})

    if isinstance(target, tuple):
        return cast(T, tuple(to_raw(t) for t in target))

    return target
