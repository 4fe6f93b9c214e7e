# -*- coding: utf-8; -*-
"""Exception types raised by formality.

Every error type inherits from `FormalityError`, and additionally from the
builtin exception type that best describes it, so that code that only knows
about builtins (`except TypeError:`, `except LookupError:`) still catches them.

The one non-fatal condition, `AmbiguousDispatchWarning`, is not raised but
*signaled*, using `unpythonic.conditions.warn`. See `formality.dispatch`.
"""

__all__ = ["FormalityError",
           "UnknownClassError", "UnknownParentError",
           "SealedClassError", "CyclicInheritanceError", "VirtualClassError",
           "UnknownSlotError", "TypeMismatchError", "InvalidObjectError",
           "UnknownGenericError", "ArityMismatchError",
           "NoApplicableMethodError", "NoNextMethodError",
           "AmbiguousDispatchWarning"]

def _format_signature(classes):
    return f"({', '.join(str(c) for c in classes)})"

class FormalityError(Exception):
    """Base type for errors raised by formality."""

# --------------------------------------------------------------------------------
# Classes

class UnknownClassError(FormalityError, LookupError):
    """A class name was not found in the class registry."""
    def __init__(self, name, msg=None):
        self.name = name
        super().__init__(msg or f"no definition for class {repr(name)}")

class UnknownParentError(UnknownClassError):
    """A class declaration names a parent that is not (yet) registered.

    There are no forward references; parents must be registered first.
    """
    def __init__(self, name, parent):
        self.parent = parent
        super().__init__(name, f"cannot define class {repr(name)}: unknown parent class {repr(parent)}")

class SealedClassError(FormalityError, TypeError):
    """Attempted to redefine a sealed class."""
    def __init__(self, name):
        self.name = name
        super().__init__(f"class {repr(name)} is sealed and cannot be redefined")

class CyclicInheritanceError(FormalityError, TypeError):
    """A class (re)definition would make the class graph cyclic."""
    def __init__(self, name, parent):
        self.name = name
        self.parent = parent
        super().__init__(f"cannot define class {repr(name)} with parent {repr(parent)}: "
                         f"{repr(parent)} already inherits from {repr(name)}")

class VirtualClassError(FormalityError, TypeError):
    """Attempted to construct an instance of a virtual class."""
    def __init__(self, name):
        self.name = name
        super().__init__(f"cannot construct an instance of virtual class {repr(name)}")

# --------------------------------------------------------------------------------
# Instances

class UnknownSlotError(FormalityError, AttributeError):
    """A slot name is not declared by the class or any of its ancestors."""
    def __init__(self, class_name, slot):
        self.class_name = class_name
        self.slot = slot
        super().__init__(f"class {repr(class_name)} has no slot {repr(slot)}")

class TypeMismatchError(FormalityError, TypeError):
    """A value does not belong to the class that was expected."""
    def __init__(self, what, value, expected, got):
        self.value = value
        self.expected = expected
        self.got = got
        got_str = got[0] if got else "<unknown class>"
        super().__init__(f"{what}: expected an object of class {repr(expected)}, "
                         f"got {repr(value)} of class {repr(got_str)}")

class InvalidObjectError(FormalityError, ValueError):
    """An instance failed validation. `problems` lists the messages."""
    def __init__(self, class_name, problems):
        self.class_name = class_name
        self.problems = list(problems)
        problems_str = "; ".join(self.problems)
        super().__init__(f"invalid {repr(class_name)} object: {problems_str}")

# --------------------------------------------------------------------------------
# Generics and dispatch

class UnknownGenericError(FormalityError, LookupError):
    """A generic function name was not found in the generic registry."""
    def __init__(self, name):
        self.name = name
        super().__init__(f"no generic function {repr(name)}")

class ArityMismatchError(FormalityError, TypeError):
    """A method signature does not match the dispatch arity of its generic."""
    def __init__(self, generic, signature, arity):
        self.generic = generic
        self.signature = tuple(signature)
        self.arity = arity
        super().__init__(f"generic {repr(generic)} dispatches on {arity} argument(s), "
                         f"but the method signature {_format_signature(signature)} has {len(self.signature)}")

class NoApplicableMethodError(FormalityError, TypeError):
    """No registered method accepts the classes of the arguments."""
    def __init__(self, generic, classes):
        self.generic = generic
        self.classes = tuple(classes)
        super().__init__(f"unable to find an inherited method for {repr(generic)} "
                         f"for signature {_format_signature(self.classes)}")

class NoNextMethodError(FormalityError, RuntimeError):
    """`call_next_method` found no further applicable method."""

class AmbiguousDispatchWarning(Warning):
    """Several applicable methods tied for the minimum total distance.

    Dispatch still succeeds; `selected` is the signature chosen by the
    tie-break (lexicographic by class name, in parameter order), and
    `candidates` lists the signatures of all tied methods.
    """
    def __init__(self, generic, classes, selected, candidates):
        self.generic = generic
        self.classes = tuple(classes)
        self.selected = tuple(selected)
        self.candidates = [tuple(c) for c in candidates]
        others = ", ".join(_format_signature(c) for c in self.candidates if c != self.selected)
        super().__init__(f"ambiguous dispatch for {repr(generic)} with signature {_format_signature(self.classes)}: "
                         f"selected {_format_signature(self.selected)}, also tied: {others}")
