from .object_utils import same_value
from .proxy import KEYS, MISSING, TYPE_LOOKUP, Proxy, wrap
from .traps import construct_methods_traps_dict, trap_map

dict_traps = {
    "KEYREADERS": {
        "get",
        "__contains__",
        "__getitem__",
    },
    "SHAPEREADERS": {
        "keys",
        "__iter__",
        "__len__",
        "__reversed__",
    },
    "READERS": {
        "copy",
        "__eq__",
        "__format__",
        "__ne__",
        "__repr__",
        "__sizeof__",
        "__str__",
        "__or__",
        "__ror__",
    },
    "ITERATORS": {
        "items",
        "values",
    },
    "WRITERS": {
        "clear",
        "pop",
        "popitem",
        "setdefault",
        "update",
        "__delitem__",
        "__ior__",
        "__setitem__",
    },
}


class DictProxyBase(Proxy[dict]):
    def _shape(self):
        return tuple(self.__target__)

    def _peek(self, key):
        if key is KEYS:
            return self._shape()
        return wrap(self, self.__target__.get(key, MISSING))

    def _report_shape(self):
        self.__factory__.report_get(self, KEYS, self._shape())

    def _report_key(self, key):
        self.__factory__.report_get(self, key, self._peek(key))

    def _report_all(self):
        self._report_shape()
        for key in self.__target__:
            self._report_key(key)

    def _changed(self, old):
        target = self.__target__
        if old.keys() != target.keys():
            return True
        return any(not same_value(old[key], value) for key, value in target.items())

    @staticmethod
    def _values(snapshot):
        return snapshot.values()


DictProxy = type(
    "DictProxy",
    (DictProxyBase,),
    construct_methods_traps_dict(dict, dict_traps, trap_map),
)


def type_test(target):
    return isinstance(target, dict)


TYPE_LOOKUP[type_test] = DictProxy
