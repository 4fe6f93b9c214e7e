# -*- coding: utf-8; -*-
"""Bridge for values that are not constructed by formality.

Dispatch needs the class of each argument. For an `Instance`, that is simply
its class. Any other Python value (a number, a string, a list, an object of
some Python class...) is a *foreign value*, and its class is reported by a
`ForeignBridge`, as an ordered *class chain*: the names of the classes the
value belongs to, most specific first.

A Python type can opt in by defining a method `report_class_chain()`, which
returns such a chain::

    class Grid:
        def __init__(self, rows):
            self.rows = rows
        def report_class_chain(self):
            return ["matrix", "character", "ANY"]

Otherwise the bridge looks up the value's Python type (walking its MRO) in its
type table. Values of unknown types report an empty chain, so only methods
specialized on `ANY` can accept them.

The classes named in the chains must be registered in the class registry
(see `ClassRegistry.register_foreign_class`) to take part in dispatch.
Each `formality.Runtime` registers the `basic_classes` listed here.
"""

__all__ = ["ForeignBridge", "basic_classes", "basic_types"]

import threading

from .classes import ANY

# Not strictly part of "the" public API, but stealthily public (with the usual
# public-API guarantees), so that an occasional user may customize the set of
# basic classes that each new `Runtime` starts with.
#
# Each item is `(name, parents, default)`, where `default` is a zero-argument
# callable producing the empty value of the class (or `None`).
basic_classes = [("logical", (), bool),
                 ("numeric", (), float),
                 ("integer", ("numeric",), int),
                 ("double", ("numeric",), float),
                 ("complex", (), complex),
                 ("character", (), str),
                 ("raw", (), bytes),
                 ("list", (), list),
                 ("function", (), None),
                 ("NULL", (), None)]

# Each item is `(python_type, class_chain)`. Note `bool` is a subclass of `int`
# in Python, so it must be found first in the MRO walk; which it is, because
# the walk starts from the most specific type.
basic_types = [(bool, ("logical",)),
               (int, ("integer",)),
               (float, ("double",)),
               (complex, ("complex",)),
               (str, ("character",)),
               (bytes, ("raw",)),
               (list, ("list",)),
               (tuple, ("list",)),
               (dict, ("list",)),
               (type(None), ("NULL",))]

class ForeignBridge:
    """Report the class chains of foreign values.

    `types`: iterable of `(python_type, class_chain)`. Default `basic_types`.

    Callables with no more specific mapping are reported as `("function",)`.
    """
    def __init__(self, types=None):
        self._types = {}
        self._lock = threading.Lock()
        for pytype, chain in (basic_types if types is None else types):
            self.register(pytype, chain)

    def register(self, pytype, chain):
        """Map the Python type `pytype` (and its Python subclasses) to `chain`.

        `chain`: a class name, or a sequence of class names, most specific first.
        """
        if not isinstance(pytype, type):
            raise TypeError(f"Expected a Python type, got {type(pytype)} with value {repr(pytype)}")
        chain = _canonize_chain(chain)
        with self._lock:
            self._types = {**self._types, pytype: chain}

    def class_chain(self, value):
        """Return the class chain of the foreign value `value`, as a tuple of class names.

        `ANY` is never included; it is implicitly at the end of every chain.
        """
        report = getattr(type(value), "report_class_chain", None)
        if report is not None:
            return _canonize_chain(value.report_class_chain())
        types = self._types
        for pytype in type(value).__mro__:
            if pytype in types:
                return types[pytype]
        if callable(value):
            return ("function",)
        return ()

def _canonize_chain(chain):
    if isinstance(chain, str):
        chain = (chain,)
    return tuple(name for name in chain if name != ANY)
