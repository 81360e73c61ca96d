from functools import wraps

from .proxy import Proxy, notify, relink, wrap


def unwrap(args):
    return [arg.__target__ if isinstance(arg, Proxy) else arg for arg in args]


def read_key_trap(method, obj_cls):
    fn = getattr(obj_cls, method)

    @wraps(fn)
    def trap(self, *args, **kwargs):
        if self.__factory__.plugins:
            self._report_key(args[0])
        value = fn(self.__target__, *args, **kwargs)
        if isinstance(args[0], slice):
            # a slice is a new list, not something held by self
            return self.__factory__(value)
        return wrap(self, value)

    return trap


def read_shape_trap(method, obj_cls):
    fn = getattr(obj_cls, method)

    @wraps(fn)
    def trap(self, *args, **kwargs):
        if self.__factory__.plugins:
            self._report_shape()
        return fn(self.__target__, *args, **kwargs)

    return trap


def read_trap(method, obj_cls):
    fn = getattr(obj_cls, method)

    @wraps(fn)
    def trap(self, *args, **kwargs):
        if self.__factory__.plugins:
            self._report_all()
        value = fn(self.__target__, *unwrap(args), **kwargs)
        return self.__factory__(value)

    return trap


def iterate_trap(method, obj_cls):
    fn = getattr(obj_cls, method)

    @wraps(fn)
    def trap(self, *args, **kwargs):
        if self.__factory__.plugins:
            self._report_all()
        iterator = fn(self.__target__, *args, **kwargs)
        if method == "items":
            return ((key, wrap(self, value)) for key, value in iterator)
        return (wrap(self, value) for value in iterator)

    return trap


def write_trap(method, obj_cls):
    fn = getattr(obj_cls, method)
    copy = getattr(obj_cls, "copy")

    @wraps(fn)
    def trap(self, *args, **kwargs):
        target = self.__target__
        old = copy(target)
        retval = fn(target, *args, **kwargs)
        if self._changed(old):
            relink(self, self._values(old), self._values(target))
            try:
                notify(self)
            finally:
                self.__factory__.report_change(self)

        if retval is target:
            # in-place operators should keep returning the proxy
            return self
        if method == "setdefault":
            return wrap(self, retval)
        return retval

    return trap


trap_map = {
    "KEYREADERS": read_key_trap,
    "SHAPEREADERS": read_shape_trap,
    "READERS": read_trap,
    "ITERATORS": iterate_trap,
    "WRITERS": write_trap,
}


def construct_methods_traps_dict(obj_cls, traps, trap_map):
    return {
        method: trap_map[trap_type](method, obj_cls)
        for trap_type, methods in traps.items()
        for method in methods
    }
