# -*- coding: utf-8; -*-
"""Generic functions and their methods.

Terminology:

  - A *generic function* (or *generic*) is a named dispatch point. It has a
    formal parameter list, some of whose parameters participate in dispatch.
    The number of those is the *dispatch arity* of the generic.
  - A *method* is an implementation attached to a generic, tagged with a
    *signature*: a tuple of class names, one per dispatch parameter. Besides
    real class names, a signature may use the pseudo-classes `ANY` (matches
    anything) and `MISSING` (matches an omitted argument).

This module only stores generics and methods. Choosing which method to run
for a given call is the job of `formality.resolver`; running it is the job
of `formality.dispatch`.
"""

__all__ = ["VARARGS", "POSONLY", "GenericDefinition", "MethodEntry", "GenericRegistry"]

from collections.abc import Mapping
import inspect
import threading

from .classes import ANY, MISSING
from .errors import (UnknownClassError, UnknownGenericError, ArityMismatchError)

VARARGS = "..."  # in a formal parameter list: any further arguments pass through
POSONLY = "/"  # in a formal parameter list: the parameters before this bind only positionally

class MethodEntry:
    """A method of a generic function: a `signature` and a callable `body`."""
    def __init__(self, generic, signature, body):
        self.generic = generic
        self.signature = tuple(signature)
        self.body = body

    def __repr__(self):  # pragma: no cover
        return f"<method {self.generic}({', '.join(self.signature)})>"

class GenericDefinition:
    """The definition of a generic function, as stored in a `GenericRegistry`.

    `name`: str, the unique name of the generic.
    `params`: tuple of str, the formal parameters, in order. May contain
              `VARARGS`; positional arguments beyond those bound to the
              parameters preceding it are passed through to the methods.
              May contain `POSONLY`, like `/` in a Python signature; the
              parameters before it bind only positionally, so a keyword
              argument of the same name passes through to the methods.
    `dispatch`: tuple of str, the parameters that participate in dispatch.
    `value_class`: `None`, or the class that every value returned by a
                   method must belong to.

    The method table is replaced, never mutated in place, when methods are
    added or removed; `generation` counts these replacements.
    """
    def __init__(self, name, params, dispatch, value_class=None):
        self.name = name
        self.params = tuple(params)
        if POSONLY in self.params:
            self.positional_only = self.params[:self.params.index(POSONLY)]
        else:
            self.positional_only = ()
        self.dispatch = tuple(dispatch)
        self.value_class = value_class
        self._methods = {}  # signature -> MethodEntry
        self.generation = 0

    @property
    def arity(self):
        """The dispatch arity, i.e. the number of parameters participating in dispatch."""
        return len(self.dispatch)

    @property
    def methods(self):
        """All methods, as a tuple of `MethodEntry`, in registration order."""
        return tuple(self._methods.values())

    def bind(self, args, kwargs):
        """Bind call arguments to the dispatch parameters.

        Return a dict of parameter name -> value, for those dispatch parameters
        that received an argument. Positional arguments bind in order; any left
        over pass through unconsidered, as do keyword arguments that do not
        name a formal parameter, or that name a positional-only one.
        """
        params = tuple(p for p in self.params if p != POSONLY)
        if VARARGS in params:
            positional = params[:params.index(VARARGS)]
        else:
            positional = params
        bound = dict(zip(positional, args))
        for k, v in kwargs.items():
            if k in self.positional_only:
                continue
            if k in bound:
                raise TypeError(f"{self.name}(): got multiple values for argument {repr(k)}")
            if k in self.params:
                bound[k] = v
        return {p: bound[p] for p in self.dispatch if p in bound}

    def __repr__(self):  # pragma: no cover
        return f"<generic {self.name}({', '.join(self.params)}), dispatching on ({', '.join(self.dispatch)})>"

class GenericRegistry:
    """Table of generic functions.

    `classes`: the `ClassRegistry` whose classes the method signatures refer to.

    Like the class registry, this starts empty, and registrations take effect
    immediately.
    """
    def __init__(self, classes):
        self.classes = classes
        self._generics = {}  # name -> GenericDefinition
        self._lock = threading.RLock()

    def register_generic(self, name, params=None, *, dispatch=None, default=None, value_class=None):
        """Create the generic function `name`, replacing any existing one.

        `params`: sequence of formal parameter names. May contain `VARARGS`
                  and `POSONLY`.
                  If omitted, taken from the call signature of `default`;
                  this is how an ordinary function becomes a generic function.
        `dispatch`: the parameters that participate in dispatch. Default:
                    all of `params` except `VARARGS` and `POSONLY`.
        `default`: optional callable, registered as the method for the
                   signature `(ANY, ..., ANY)`.
        `value_class`: optional class name; values returned by the methods
                       must belong to it.

        Replacing a generic drops all of its methods.

        Return the new `GenericDefinition`.
        """
        if not isinstance(name, str) or not name:
            raise TypeError(f"generic function name must be a nonempty string, got {type(name)} with value {repr(name)}")
        if params is None:
            if default is None:
                raise TypeError(f"generic function {repr(name)}: need `params`, or a `default` to take them from")
            params = _params_of(default)
        params = _canonize_names(params)
        if dispatch is None:
            dispatch = tuple(p for p in params if p not in (VARARGS, POSONLY))
        else:
            dispatch = _canonize_names(dispatch)
            for p in dispatch:
                if p not in params or p in (VARARGS, POSONLY):
                    raise TypeError(f"generic function {repr(name)}: cannot dispatch on {repr(p)}, it is not a formal parameter")
        if value_class is not None and value_class != ANY:
            self.classes.lookup_class(value_class)
        if default is not None and not callable(default):
            raise TypeError(f"default of generic function {repr(name)} must be callable, got {type(default)} with value {repr(default)}")
        generic = GenericDefinition(name, params, dispatch, value_class)
        if default is not None:
            signature = (ANY,) * generic.arity
            generic._methods = {signature: MethodEntry(name, signature, default)}
        with self._lock:
            self._generics = {**self._generics, name: generic}
        return generic

    def lookup_generic(self, name):
        """Return the `GenericDefinition` for `name`. Raise `UnknownGenericError` if none."""
        try:
            return self._generics[name]
        except KeyError:
            raise UnknownGenericError(name) from None

    def is_generic(self, name):
        """Return whether `name` is a registered generic function."""
        return name in self._generics

    def generic_names(self):
        """Return a list of the names of all generic functions, in registration order."""
        return list(self._generics)

    def register_method(self, generic, signature, body):
        """Attach the method `body` to the generic function `generic`.

        `signature`: the classes to specialize on. One of:

          - a sequence of class names, one for each dispatch parameter;
          - a single class name, for a generic that dispatches on one parameter;
          - a mapping of dispatch parameter name -> class name, where
            any unmentioned dispatch parameter gets `ANY`.

        Each class name must be a registered class, `ANY`, or `MISSING`.

        A method registered earlier with the same signature is replaced.

        Return the new `MethodEntry`.
        """
        if not callable(body):
            raise TypeError(f"method body must be callable, got {type(body)} with value {repr(body)}")
        with self._lock:
            thegeneric = self.lookup_generic(generic)
            signature = self.canonize_signature(thegeneric, signature)
            entry = MethodEntry(thegeneric.name, signature, body)
            thegeneric._methods = {**thegeneric._methods, signature: entry}
            thegeneric.generation += 1
            return entry

    def remove_method(self, generic, signature):
        """Remove the method of `generic` with exactly `signature`. Return whether there was one."""
        with self._lock:
            thegeneric = self.lookup_generic(generic)
            signature = self.canonize_signature(thegeneric, signature)
            if signature not in thegeneric._methods:
                return False
            thegeneric._methods = {k: v for k, v in thegeneric._methods.items() if k != signature}
            thegeneric.generation += 1
            return True

    def exists_method(self, generic, signature):
        """Return whether `generic` has a method for exactly `signature` (no inheritance)."""
        thegeneric = self.lookup_generic(generic)
        return self.canonize_signature(thegeneric, signature) in thegeneric._methods

    def get_method(self, generic, signature):
        """Return the `MethodEntry` of `generic` for exactly `signature`, or `None`."""
        thegeneric = self.lookup_generic(generic)
        return thegeneric._methods.get(self.canonize_signature(thegeneric, signature))

    def list_methods(self, generic=None, *, for_class=None):
        """Return a list of `MethodEntry`.

        `generic`: if given, list only the methods of this generic function.
        `for_class`: if given, list only methods whose signature mentions this class.

        Methods are listed by generic (in registration order), and within a
        generic, in registration order.
        """
        if generic is not None:
            generics = [self.lookup_generic(generic)]
        else:
            generics = list(self._generics.values())
        out = []
        for thegeneric in generics:
            for entry in thegeneric.methods:
                if for_class is None or for_class in entry.signature:
                    out.append(entry)
        return out

    def canonize_signature(self, generic, signature):
        """Convert `signature` into a tuple of class names for `generic` (a `GenericDefinition`)."""
        if isinstance(signature, str):
            signature = (signature,)
        elif isinstance(signature, Mapping):
            for p in signature:
                if p not in generic.dispatch:
                    raise TypeError(f"generic function {repr(generic.name)} does not dispatch on {repr(p)}; "
                                    f"dispatch parameters are {generic.dispatch}")
            signature = tuple(signature.get(p, ANY) for p in generic.dispatch)
        else:
            signature = tuple(signature)
        if len(signature) != generic.arity:
            raise ArityMismatchError(generic.name, signature, generic.arity)
        for c in signature:
            if c not in (ANY, MISSING) and c not in self.classes:
                raise UnknownClassError(c, f"method signature for {repr(generic.name)} names unknown class {repr(c)}")
        return signature

# --------------------------------------------------------------------------------

def _canonize_names(names):
    if isinstance(names, str):
        return (names,)
    return tuple(names)

def _params_of(f):
    """Return the formal parameter names of callable `f`.

    `*args` and `**kwargs` become `VARARGS`, and the end of the positional-only
    parameters is marked with `POSONLY`.
    """
    out = []
    params = list(inspect.signature(f).parameters.values())
    for k, param in enumerate(params):
        if param.kind is not inspect.Parameter.POSITIONAL_ONLY and k > 0 and \
           params[k - 1].kind is inspect.Parameter.POSITIONAL_ONLY:
            out.append(POSONLY)
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            if VARARGS not in out:
                out.append(VARARGS)
        else:
            out.append(param.name)
    if params and params[-1].kind is inspect.Parameter.POSITIONAL_ONLY:
        out.append(POSONLY)
    return out
