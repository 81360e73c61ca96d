"""utilities for comparing values read from observable containers"""

from numbers import Number

# values of these types are compared by equality instead of identity
PRIMITIVES = (str, bytes, Number, type(None), tuple, frozenset)


def is_primitive(value):
    return isinstance(value, PRIMITIVES)


def same_value(a, b):
    """
    Returns whether two values read at different moments should be
    considered the same: identical objects, or equal immutable
    primitives of the same type. NaN is considered equal to itself.
    """
    if a is b:
        return True
    if type(a) is not type(b) or not is_primitive(a):
        return False
    if isinstance(a, tuple):
        # tuples may hold mutable (proxied) objects which are
        # compared by identity again
        return len(a) == len(b) and all(map(same_value, a, b))
    # a != a only holds for NaN
    return bool(a == b or (a != a and b != b))
