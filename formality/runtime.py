# -*- coding: utf-8; -*-
"""A runtime: one class registry, one generic function registry, and dispatch over them.

Each `Runtime` is an isolated world of classes and generic functions. Most
programs need just one; for that case, this module creates `default_runtime`,
and the package exports module-level functions bound to it::

    from formality import register_class, construct, register_generic, register_method, invoke

    register_class("Person", slots={"name": "character", "age": "numeric"})
    register_class("Employee", parents=["Person"], slots={"boss": "Person"})

    register_generic("describe", ["x"])
    register_method("describe", ["Person"], lambda x: f"{x.name}, {x.age}")

    hadley = construct("Employee", name="Hadley", age=37)
    invoke("describe", hadley)  # --> "Hadley, 37", via the Person method

Creating separate runtimes is useful for isolation, e.g. in tests.
"""

__all__ = ["Runtime", "default_runtime",
           "register_class", "register_foreign_class", "register_class_union",
           "lookup_class", "exists_class", "ancestors_of", "is_subclass_of", "class_of",
           "construct", "is_instance",
           "register_generic", "generic", "method",
           "register_method", "remove_method", "exists_method", "has_method",
           "is_generic", "list_methods", "select_method", "invoke"]

from functools import wraps

from .bridge import ForeignBridge, basic_classes
from .classes import ANY, ClassRegistry
from .dispatch import Dispatcher
from .errors import VirtualClassError, TypeMismatchError, NoApplicableMethodError
from .generics import VARARGS, POSONLY, GenericRegistry
from .instances import (Instance, make_instance, initialize, belongs, check_slot_value,
                        get_slot, set_slot, slot_names, validate)
from .resolver import MethodResolver

class Runtime:
    """An isolated object system: classes, instances, generic functions, and dispatch.

    `cache`: whether to cache method resolutions. Default `True`.
    `bridge`: the `ForeignBridge` that reports classes of non-`Instance`
              values. Default is a new `ForeignBridge` with the basic types.
    `basic`: whether to register the `formality.bridge.basic_classes`.
             Default `True`.

    The generic function `initialize` is predefined; see `construct`.
    """
    def __init__(self, *, cache=True, bridge=None, basic=True):
        self.classes = ClassRegistry()
        self.bridge = bridge if bridge is not None else ForeignBridge()
        self.generics = GenericRegistry(self.classes)
        self.resolver = MethodResolver(self.classes, cache=cache)
        self.dispatcher = Dispatcher(self)
        if basic:
            for name, parents, default in basic_classes:
                self.classes.register_foreign_class(name, parents, default=default)
        self.generics.register_generic("initialize", ["object", POSONLY, VARARGS], default=initialize)

    # --------------------------------------------------------------------------------
    # Classes

    def register_class(self, name, parents=(), slots=None, *, sealed=False, virtual=False,
                       prototype=None, validity=None):
        """Define or redefine the class `name`. See `ClassRegistry.register_class`.

        Additionally, each prototype value must belong to the type of its slot;
        else `TypeMismatchError` is raised, and nothing is registered.
        """
        if prototype:
            self._check_prototype(name, parents, slots or {}, prototype)
        return self.classes.register_class(name, parents, slots, sealed=sealed, virtual=virtual,
                                           prototype=prototype, validity=validity)

    def _check_prototype(self, name, parents, slots, prototype):
        slot_types = self.classes.slot_types_if_defined(name, parents, slots)
        for slot, value in prototype.items():
            slot_type = slot_types.get(slot)
            if slot_type is None or slot_type == name or (slot_type != ANY and slot_type not in self.classes):
                continue  # unknown slots and types are reported by the registry; self-typed slots are checked at construction
            check_slot_value(self, name, slot, slot_type, value)

    def register_foreign_class(self, name, parents=(), *, default=None):
        """Bridge an external class. See `ClassRegistry.register_foreign_class`."""
        return self.classes.register_foreign_class(name, parents, default=default)

    def register_class_union(self, name, members):
        """Define a class union. See `ClassRegistry.register_class_union`."""
        return self.classes.register_class_union(name, members)

    def lookup_class(self, name):
        """Return the `ClassDefinition` of `name`."""
        return self.classes.lookup_class(name)

    def exists_class(self, name):
        """Return whether `name` is a registered class."""
        return self.classes.exists_class(name)

    def ancestors_of(self, name):
        """Return the ancestors of `name` with their distances. See `ClassRegistry.ancestors_of`."""
        return self.classes.ancestors_of(name)

    def is_subclass_of(self, name, candidate):
        """Return whether class `name` is `candidate` or inherits from it."""
        return self.classes.is_subclass_of(name, candidate)

    def class_chain(self, value):
        """Return the class chain of `value`: a tuple of class names, most specific first.

        For an `Instance`, this is its class. For any other value, the chain
        comes from the foreign bridge, exactly once per call.
        """
        if isinstance(value, Instance):
            return (value._formality_definition.name,)
        return self.bridge.class_chain(value)

    def class_of(self, value):
        """Return the most specific class name of `value`, or `ANY` if it has no known class."""
        chain = self.class_chain(value)
        return chain[0] if chain else ANY

    # --------------------------------------------------------------------------------
    # Instances

    def construct(self, class_name, /, *args, **slots):
        """Construct an instance of the class `class_name`.

        `args`: at most one unnamed argument, the base value, allowed if the
                class extends a basic class (such as `numeric`).
        `slots`: initial slot values.

        First, an instance with every slot at its default value is created
        (see `formality.instances.make_instance`). Then the generic function
        `initialize` is called with the instance and the arguments. Its
        default method fills in the slots, checking their names and types,
        and, if anything was supplied, runs the validity functions.

        A class may customize this by registering its own `initialize` method,
        e.g. `def initialize_person(obj, /, *args, **slots)`. It must return
        the instance, and usually does so by delegating to the next method
        with `call_next_method`.

        Raise `VirtualClassError` if `class_name` is virtual. If construction
        fails, no instance is returned.
        """
        definition = self.classes.lookup_class(class_name)
        if definition.virtual:
            raise VirtualClassError(class_name)
        instance = make_instance(self, definition)
        result = self.invoke("initialize", instance, *args, **slots)
        if not (isinstance(result, Instance) and self.is_instance(result, class_name)):
            raise TypeMismatchError(f"initialize method for class {repr(class_name)}",
                                    result, class_name, self.class_chain(result))
        return result

    def default_instance(self, class_name):
        """Return an instance of `class_name` with all slots at their defaults, skipping `initialize`."""
        definition = self.classes.lookup_class(class_name)
        if definition.virtual:
            raise VirtualClassError(class_name)
        return make_instance(self, definition)

    get_slot = staticmethod(get_slot)
    set_slot = staticmethod(set_slot)
    slot_names = staticmethod(slot_names)
    validate = staticmethod(validate)

    def is_instance(self, value, class_name):
        """Return whether `value` is an object of class `class_name`, directly or by inheritance.

        Works also for foreign values, e.g. `rt.is_instance(42, "numeric")`.
        """
        return belongs(self, value, class_name)

    # --------------------------------------------------------------------------------
    # Generic functions

    def register_generic(self, name, params=None, *, dispatch=None, default=None, value_class=None):
        """Create (or replace) the generic function `name`. See `GenericRegistry.register_generic`.

        Return a dispatcher function; calling it is the same as `invoke(name, ...)`.
        """
        generic = self.generics.register_generic(name, params, dispatch=dispatch,
                                                 default=default, value_class=value_class)
        return self._make_entrypoint(generic.name, default)

    def _make_entrypoint(self, name, f=None):
        def dispatcher(*args, **kwargs):
            return self.invoke(name, *args, **kwargs)
        if f is not None:
            dispatcher = wraps(f)(dispatcher)
        else:
            dispatcher.__name__ = dispatcher.__qualname__ = name
            dispatcher.__doc__ = f"Generic function {repr(name)}."
        dispatcher._formality_generic = name
        dispatcher._formality_runtime = self
        return dispatcher

    def generic(self, f=None, *, name=None, dispatch=None, value_class=None):
        """Decorator. Make `f` a generic function, with `f` itself as its default method.

        The formal parameters are taken from `f`. The generic is registered
        under `name`, default `f.__name__`. Usage::

            @rt.generic
            def area(shape):
                raise NotImplementedError(f"area: not defined for {rt.class_of(shape)}")

            @rt.method(area, "Circle")
            def area(shape):
                return math.pi * shape.r**2

        The return value is the dispatcher, so the name `area` can be called
        like a regular function.
        """
        def register(f):
            return self.register_generic(name or f.__name__, default=f,
                                         dispatch=dispatch, value_class=value_class)
        if f is None:
            return register
        return register(f)

    def method(self, generic, *signature):
        """Parametric decorator. Register the decorated function as a method of `generic`.

        `generic`: name of the generic function, or its dispatcher.
        `signature`: the class names, one per dispatch parameter; or a single
                     sequence or mapping, as accepted by `register_method`.

        The return value is the dispatcher of the generic function, so the
        decorated name can be reused for each method, like with `@generic`.
        """
        name = self._generic_name(generic)
        if len(signature) == 1 and not isinstance(signature[0], str):
            signature = signature[0]
        def register(body):
            self.register_method(name, signature, body)
            return self._make_entrypoint(name)
        return register

    def _generic_name(self, generic):
        if isinstance(generic, str):
            return generic
        if getattr(generic, "_formality_runtime", None) is not self:
            raise TypeError(f"{repr(generic)} is not a generic function of this runtime")
        return generic._formality_generic

    def register_method(self, generic, signature, body):
        """Attach `body` to the generic `generic` (name or dispatcher). See `GenericRegistry.register_method`."""
        return self.generics.register_method(self._generic_name(generic), signature, body)

    def remove_method(self, generic, signature):
        """Remove the method of `generic` for exactly `signature`. Return whether there was one."""
        return self.generics.remove_method(self._generic_name(generic), signature)

    def exists_method(self, generic, signature):
        """Return whether `generic` has a method for exactly `signature`."""
        return self.generics.exists_method(self._generic_name(generic), signature)

    def has_method(self, generic, classes):
        """Return whether a call of `generic` with arguments of `classes` would find a method.

        Unlike `exists_method`, this accounts for inheritance and `ANY`.
        """
        try:
            self.select_method(generic, classes)
        except NoApplicableMethodError:
            return False
        return True

    def is_generic(self, f):
        """Return whether `f` (a name or a callable) is a generic function of this runtime."""
        if isinstance(f, str):
            return self.generics.is_generic(f)
        return getattr(f, "_formality_runtime", None) is self and self.generics.is_generic(f._formality_generic)

    def lookup_generic(self, name):
        """Return the `GenericDefinition` of `name`."""
        return self.generics.lookup_generic(self._generic_name(name))

    def list_methods(self, generic=None, *, for_class=None):
        """Return a list of `MethodEntry`. See `GenericRegistry.list_methods`."""
        if generic is not None:
            generic = self._generic_name(generic)
        return self.generics.list_methods(generic, for_class=for_class)

    def select_method(self, generic, classes):
        """Resolve, without calling, a method of `generic`. See `Dispatcher.select_method`."""
        return self.dispatcher.select_method(self._generic_name(generic), classes)

    def invoke(self, generic, /, *args, **kwargs):
        """Call the generic function `generic` (name or dispatcher) with the given arguments."""
        return self.dispatcher.invoke(self._generic_name(generic), *args, **kwargs)

default_runtime = Runtime()

# The module-level API: the operations of the default runtime.
register_class = default_runtime.register_class
register_foreign_class = default_runtime.register_foreign_class
register_class_union = default_runtime.register_class_union
lookup_class = default_runtime.lookup_class
exists_class = default_runtime.exists_class
ancestors_of = default_runtime.ancestors_of
is_subclass_of = default_runtime.is_subclass_of
class_of = default_runtime.class_of
construct = default_runtime.construct
is_instance = default_runtime.is_instance
register_generic = default_runtime.register_generic
generic = default_runtime.generic
method = default_runtime.method
register_method = default_runtime.register_method
remove_method = default_runtime.remove_method
exists_method = default_runtime.exists_method
has_method = default_runtime.has_method
is_generic = default_runtime.is_generic
list_methods = default_runtime.list_methods
select_method = default_runtime.select_method
invoke = default_runtime.invoke
