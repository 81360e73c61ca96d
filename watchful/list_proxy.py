from operator import index as as_index

from .object_utils import same_value
from .proxy import KEYS, MISSING, TYPE_LOOKUP, Proxy, wrap
from .traps import construct_methods_traps_dict, trap_map

list_traps = {
    "KEYREADERS": {
        "__getitem__",
    },
    "SHAPEREADERS": {
        "__len__",
    },
    "READERS": {
        "count",
        "index",
        "copy",
        "__add__",
        "__contains__",
        "__eq__",
        "__ge__",
        "__gt__",
        "__le__",
        "__lt__",
        "__mul__",
        "__ne__",
        "__rmul__",
        "__repr__",
        "__str__",
        "__format__",
        "__sizeof__",
    },
    "ITERATORS": {
        "__iter__",
        "__reversed__",
    },
    "WRITERS": {
        "append",
        "clear",
        "extend",
        "insert",
        "pop",
        "remove",
        "reverse",
        "sort",
        "__setitem__",
        "__delitem__",
        "__iadd__",
        "__imul__",
    },
}


class ListProxyBase(Proxy[list]):
    def _shape(self):
        return len(self.__target__)

    def _peek(self, key):
        if key is KEYS:
            return self._shape()
        target = self.__target__
        if 0 <= key < len(target):
            return wrap(self, target[key])
        return MISSING

    def _report_shape(self):
        self.__factory__.report_get(self, KEYS, self._shape())

    def _report_key(self, key):
        if isinstance(key, slice):
            self._report_all()
            return
        key = as_index(key)
        if key < 0:
            # negative indexes move along with the length
            self._report_shape()
            key += len(self.__target__)
        self.__factory__.report_get(self, key, self._peek(key))

    def _report_all(self):
        self._report_shape()
        for key in range(len(self.__target__)):
            self.__factory__.report_get(self, key, self._peek(key))

    def _changed(self, old):
        target = self.__target__
        if len(old) != len(target):
            return True
        return any(not same_value(a, b) for a, b in zip(old, target))

    @staticmethod
    def _values(snapshot):
        return snapshot


ListProxy = type(
    "ListProxy",
    (ListProxyBase,),
    construct_methods_traps_dict(list, list_traps, trap_map),
)


def type_test(target):
    return isinstance(target, list)


TYPE_LOOKUP[type_test] = ListProxy
