from weakref import WeakValueDictionary


class ProxyDb:
    """
    Collection of proxies created by one factory, tracked by the id of the
    object that they wrap. A proxy keeps its target alive, so an id can only
    be reused after the proxy (and with it the entry) is gone.
    """

    __slots__ = ("db",)

    def __init__(self):
        self.db = WeakValueDictionary()

    def reference(self, proxy):
        """
        Adds the proxy to the collection for the wrapped object's id
        """
        result = self.db.setdefault(id(proxy.__target__), proxy)
        if result is not proxy:
            raise RuntimeError("Proxy for target already in db")

    def get_proxy(self, target):
        """
        Returns the proxy for the given object, or None if there is none.
        """
        return self.db.get(id(target))

    def clear(self):
        self.db.clear()
