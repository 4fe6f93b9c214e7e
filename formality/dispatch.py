# -*- coding: utf-8; -*-
"""Call-time entry point of generic functions, with next-method continuation.

`Dispatcher.invoke` determines the class of each argument that participates in
dispatch, asks the `MethodResolver` which method applies, and calls it with the
original arguments.

Inside a method body, `call_next_method()` runs the next most specific
applicable method for the same arguments (like `callNextMethod` in S4, or
`call-next-method` in CLOS). This is what lets an initializer of a subclass
delegate to that of its parent::

    @rt.method("initialize", "Employee")
    def initialize_employee(obj, /, *args, **slots):
        obj = call_next_method()  # let the Person initializer do its thing
        set_slot(obj, "boss", default_boss)
        return obj

The continuation is passed to the method body in dynamic scope (see
`unpythonic.dynassign`), so method bodies are plain functions with no
extra parameters.

When the dispatch is ambiguous, `AmbiguousDispatchWarning` is signaled using
`unpythonic.conditions.warn` before the selected method runs. If no handler
muffles it, it is emitted as a regular Python warning, and execution proceeds
with the method chosen by the tie-break. To detect or silence it::

    from unpythonic.conditions import handlers, muffle

    with handlers((AmbiguousDispatchWarning, muffle)):
        rt.invoke("describe", x)
"""

__all__ = ["Dispatcher", "call_next_method"]

from unpythonic.conditions import warn
from unpythonic.dynassign import dyn, make_dynvar

from .classes import ANY, MISSING
from .errors import (NoApplicableMethodError, NoNextMethodError,
                     AmbiguousDispatchWarning, TypeMismatchError, ArityMismatchError)
from .instances import belongs

make_dynvar(formality_dispatch_frame=None)

class _Frame:
    """The state of one running method, for `call_next_method`.

    `visited` holds the methods already run in this chain of next-method calls,
    the currently running one last.
    """
    def __init__(self, dispatcher, generic, tokens, args, kwargs, visited):
        self.dispatcher = dispatcher
        self.generic = generic
        self.tokens = tokens
        self.args = args
        self.kwargs = kwargs
        self.visited = visited

class Dispatcher:
    """Invoke generic functions of a `Runtime`."""
    def __init__(self, runtime):
        self.runtime = runtime

    def tokens_for(self, generic, args, kwargs):
        """Return the class tokens of a call to `generic` (a `GenericDefinition`)."""
        bound = generic.bind(args, kwargs)
        class_chain = self.runtime.class_chain
        return tuple(class_chain(bound[p]) if p in bound else (MISSING,)
                     for p in generic.dispatch)

    def invoke(self, generic, /, *args, **kwargs):
        """Call the generic function named `generic` with the given arguments.

        Raise `NoApplicableMethodError` if no method accepts the arguments.
        """
        thegeneric = self.runtime.generics.lookup_generic(generic)
        tokens = self.tokens_for(thegeneric, args, kwargs)
        resolution = self.runtime.resolver.resolve(thegeneric, tokens)
        if not resolution:
            raise NoApplicableMethodError(thegeneric.name, _describe(tokens))
        if resolution.ambiguous:
            _signal_ambiguity(resolution)
        frame = _Frame(self, thegeneric, tokens, args, kwargs, (resolution.method,))
        return self._run(frame, resolution.method)

    def call_next(self, frame, args, kwargs):
        """Run the next method after those visited in `frame`.

        Arguments are as in `call_next_method`.
        """
        if not args and not kwargs:
            args, kwargs = frame.args, frame.kwargs
        resolution = self.runtime.resolver.resolve(frame.generic, frame.tokens, exclude=frame.visited)
        if not resolution:
            current = frame.visited[-1]
            raise NoNextMethodError(f"no next method available for {repr(frame.generic.name)} "
                                    f"after the method for ({', '.join(current.signature)})")
        if resolution.ambiguous:
            _signal_ambiguity(resolution)
        nextframe = _Frame(self, frame.generic, frame.tokens, args, kwargs,
                           frame.visited + (resolution.method,))
        return self._run(nextframe, resolution.method)

    def _run(self, frame, method):
        with dyn.let(formality_dispatch_frame=frame):
            value = method.body(*frame.args, **frame.kwargs)
        value_class = frame.generic.value_class
        if value_class is not None and not belongs(self.runtime, value, value_class):
            raise TypeMismatchError(f"value of generic function {repr(frame.generic.name)}",
                                    value, value_class, self.runtime.class_chain(value))
        return value

    def select_method(self, generic, classes):
        """Resolve, without invoking, the method of `generic` for the given argument classes.

        `classes`: sequence, one item per dispatch parameter. Each item is
                   a class name, `MISSING` for an omitted argument, `ANY`
                   for an argument of no known class, or a class chain
                   (sequence of class names, most specific first).

        Return a `Resolution`. Raise `NoApplicableMethodError` if no method
        applies.
        """
        thegeneric = self.runtime.generics.lookup_generic(generic)
        if isinstance(classes, str):
            classes = (classes,)
        classes = tuple(classes)
        if len(classes) != thegeneric.arity:
            raise ArityMismatchError(thegeneric.name, classes, thegeneric.arity)
        tokens = tuple(_as_token(c) for c in classes)
        resolution = self.runtime.resolver.resolve(thegeneric, tokens)
        if not resolution:
            raise NoApplicableMethodError(thegeneric.name, _describe(tokens))
        return resolution

def call_next_method(*args, **kwargs):
    """Run the next most specific method of the currently running generic function.

    Call this only from inside a method body. With no arguments, the
    arguments of the current call are passed on as-is; otherwise the given
    arguments are passed instead. Either way, the next method is selected
    based on the classes of the *original* arguments.

    Each method runs at most once in a chain of next-method calls.

    Return the value returned by the next method. Raise `NoNextMethodError`
    if there is none.
    """
    frame = dyn.formality_dispatch_frame
    if frame is None:
        raise NoNextMethodError("call_next_method() called outside a method body")
    return frame.dispatcher.call_next(frame, args, kwargs)

# --------------------------------------------------------------------------------

def _signal_ambiguity(resolution):
    warn(AmbiguousDispatchWarning(resolution.generic, _describe(resolution.classes),
                                  resolution.method.signature,
                                  [m.signature for m in resolution.candidates]))

def _as_token(c):
    if c == ANY:
        return ()
    if isinstance(c, str):
        return (c,)
    return tuple(x for x in c if x != ANY)

def _describe(tokens):
    """Human-readable class names of tokens: the most specific class of each."""
    return tuple(token[0] if token else ANY for token in tokens)
