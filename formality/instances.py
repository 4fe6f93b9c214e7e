# -*- coding: utf-8; -*-
"""Instances of formally declared classes.

An `Instance` has a class (a `ClassDefinition`) and a value for each of the
slots declared by that class and its ancestors. Instances are created by
`Runtime.construct`, which see; this module provides the data type itself,
slot access, and validation.

Slot types are checked when values are supplied at construction time, and by
`set_slot`. Validity functions (see `ClassRegistry.register_class`) are run at
construction time if any slot values were supplied, and by `validate`; never
automatically upon mutation.

**CAUTION**: An instance refers to the `ClassDefinition` it was constructed
against, and keeps the slot table it was built with. If the class is later
redefined, the instance is not migrated or revalidated.
"""

__all__ = ["Instance", "isinstanceobject",
           "get_slot", "set_slot", "slot_names", "base_value",
           "validate"]

import copy

from unpythonic.symbol import sym

from .classes import ANY
from .errors import UnknownSlotError, TypeMismatchError, InvalidObjectError

nodata = sym("nodata")  # no base value, for classes not extending a basic class

class Instance:
    """An object of a formally declared class.

    Slots can be accessed with `get_slot` and `set_slot`, or as attributes::

        hadley = rt.construct("Person", name="Hadley", age=37)
        assert hadley.age == 37
        hadley.age = 38  # same as set_slot(hadley, "age", 38)

    Attribute access is a convenience; a slot whose name collides with the
    internals of this Python class (any name beginning with `_formality`)
    is accessible only via `get_slot` and `set_slot`.
    """
    __slots__ = ("_formality_runtime", "_formality_definition", "_formality_slot_types",
                 "_formality_values", "_formality_data")

    def __init__(self, runtime, definition, slot_types, values, data=nodata):
        object.__setattr__(self, "_formality_runtime", runtime)
        object.__setattr__(self, "_formality_definition", definition)
        object.__setattr__(self, "_formality_slot_types", slot_types)
        object.__setattr__(self, "_formality_values", values)
        object.__setattr__(self, "_formality_data", data)

    def __getattr__(self, name):
        if name.startswith("__") or name.startswith("_formality"):
            raise AttributeError(name)
        return get_slot(self, name)

    def __setattr__(self, name, value):
        if name in Instance.__slots__:
            object.__setattr__(self, name, value)
        else:
            set_slot(self, name, value)

    # The slot values live in a dict, so the default copy protocol would share it.
    def __copy__(self):
        return Instance(self._formality_runtime, self._formality_definition, self._formality_slot_types,
                        dict(self._formality_values), self._formality_data)

    def __deepcopy__(self, memo):
        data = self._formality_data
        if data is not nodata:
            data = copy.deepcopy(data, memo)
        return Instance(self._formality_runtime, self._formality_definition, self._formality_slot_types,
                        copy.deepcopy(self._formality_values, memo), data)

    def __repr__(self):
        slots = [f"{k}={repr(v)}" for k, v in self._formality_values.items()]
        if self._formality_data is not nodata:
            slots.insert(0, repr(self._formality_data))
        return f"<{self._formality_definition.name} object: {', '.join(slots)}>"

def isinstanceobject(x):
    """Return whether `x` is an `Instance` of some formally declared class."""
    return isinstance(x, Instance)

def class_name_of(instance):
    return instance._formality_definition.name

def get_slot(instance, name):
    """Return the value of slot `name` of `instance`."""
    try:
        return instance._formality_values[name]
    except KeyError:
        raise UnknownSlotError(class_name_of(instance), name) from None

def set_slot(instance, name, value, check=True):
    """Set the value of slot `name` of `instance`.

    If `check` is true (default), `value` must belong to the declared type of
    the slot; else `TypeMismatchError` is raised. The validity functions of
    the class are not run; use `validate` for that.
    """
    slot_types = instance._formality_slot_types
    if name not in slot_types:
        raise UnknownSlotError(class_name_of(instance), name)
    if check:
        check_slot_value(instance._formality_runtime, class_name_of(instance), name, slot_types[name], value)
    instance._formality_values[name] = value

def slot_names(instance):
    """Return the names of all slots of `instance`, own and inherited, as a list."""
    return list(instance._formality_slot_types)

def base_value(instance):
    """Return the base value of `instance`, for classes that extend a basic class.

    For example, an instance of a class `Temperature` that extends `numeric`
    may carry the number itself as its base value. If the instance has
    no base value, return `None`.
    """
    data = instance._formality_data
    return None if data is nodata else data

# --------------------------------------------------------------------------------
# Type checking

def belongs(runtime, value, class_name):
    """Return whether `value` is an object of class `class_name` (or of a subclass)."""
    if class_name == ANY:
        return True
    classes = runtime.classes
    for c in runtime.class_chain(value):
        if c == class_name or (c in classes and classes.is_subclass_of(c, class_name)):
            return True
    return False

def check_slot_value(runtime, class_name, slot, slot_type, value):
    if not belongs(runtime, value, slot_type):
        raise TypeMismatchError(f"slot {repr(slot)} of class {repr(class_name)}",
                                value, slot_type, runtime.class_chain(value))

# --------------------------------------------------------------------------------
# Construction support

def make_instance(runtime, definition, _building=None):
    """Create an instance of `definition`, with all slots at their default values.

    The default of a slot is, in order of preference:

      - its prototype value (copied), from the nearest class declaring one;
      - the empty value of a foreign class (`""` for `character`, ...);
      - a default-constructed instance of the slot's class;
      - `None`, for `ANY`, virtual classes, and slots whose type is
        already being default-constructed (recursive structures).
    """
    building = (_building or set()) | {definition.name}
    classes = runtime.classes
    slot_types = classes.slot_types(definition.name)
    prototype = classes.prototype_of(definition.name)
    values = {}
    for slot, slot_type in slot_types.items():
        if slot in prototype:
            values[slot] = copy.copy(prototype[slot])
        else:
            values[slot] = _default_value(runtime, slot_type, building)
    return Instance(runtime, definition, slot_types, values)

def _default_value(runtime, class_name, building):
    if class_name == ANY or class_name in building:
        return None
    definition = runtime.classes.lookup_class(class_name)
    if definition.foreign:
        return definition.default() if definition.default is not None else None
    if definition.virtual:
        return None
    return make_instance(runtime, definition, building)

def initialize(instance, /, *args, **slots):
    """The default method of the `initialize` generic function.

    Fill in the supplied slot values, checking that each slot exists and that
    each value belongs to the slot's type. An unnamed argument, if any, becomes
    the base value; this requires the class to extend a basic (foreign) class,
    and the value to belong to it.

    If anything was supplied, the validity functions are then run.

    Custom initializers (methods of `initialize` specialized on a class)
    should take the instance as a positional-only parameter, so that any slot
    name can be passed as a keyword argument. They should delegate to this
    eventually, via `call_next_method`.
    """
    runtime = instance._formality_runtime
    name = class_name_of(instance)
    if len(args) > 1:
        raise TypeError(f"initialize for class {repr(name)}: expected at most one unnamed argument, got {len(args)}")
    slot_types = instance._formality_slot_types
    for slot, value in slots.items():
        if slot not in slot_types:
            raise UnknownSlotError(name, slot)
        check_slot_value(runtime, name, slot, slot_types[slot], value)
    if args:
        value, = args
        basic = _basic_ancestor(runtime, name)
        if basic is None:
            raise TypeError(f"class {repr(name)} does not extend a basic class, so it takes no unnamed arguments; got {repr(value)}")
        if not belongs(runtime, value, basic):
            raise TypeMismatchError(f"base value of class {repr(name)}", value, basic, runtime.class_chain(value))
        object.__setattr__(instance, "_formality_data", value)
    instance._formality_values.update(slots)
    if args or slots:
        _run_validity(runtime, instance)
    return instance

def _basic_ancestor(runtime, name):
    classes = runtime.classes
    for ancestor in classes.ancestors_of(name):
        if classes.lookup_class(ancestor).foreign:
            return ancestor
    return None

# --------------------------------------------------------------------------------
# Validation

def validate(instance, complete=False):
    """Check that `instance` is valid. Raise `InvalidObjectError` if not.

    First, each slot value must belong to its declared slot type. If `complete`
    is true, slot values that are themselves instances are validated, too
    (recursively); by default the check is shallow. Each instance is visited
    at most once, so cyclic structures are fine.

    Then the validity functions are run, starting from the most general
    ancestor and ending with the class of `instance` itself. The first
    class whose validity function reports problems stops the check.

    Return `instance`, to allow chaining.
    """
    _validate(instance, complete, set())
    return instance

def _validate(instance, complete, seen):
    seen.add(id(instance))
    runtime = instance._formality_runtime
    name = class_name_of(instance)
    problems = []
    for slot, slot_type in instance._formality_slot_types.items():
        value = instance._formality_values[slot]
        if not belongs(runtime, value, slot_type):
            chain = runtime.class_chain(value)
            got = chain[0] if chain else "<unknown class>"
            problems.append(f"invalid object for slot {repr(slot)}: got class {repr(got)}, should be or extend class {repr(slot_type)}")
        elif complete and isinstanceobject(value) and id(value) not in seen:
            try:
                _validate(value, complete, seen)
            except InvalidObjectError as err:
                problems.extend(f"in slot {repr(slot)}: {problem}" for problem in err.problems)
    if problems:
        raise InvalidObjectError(name, problems)
    _run_validity(runtime, instance)

def _run_validity(runtime, instance):
    classes = runtime.classes
    name = class_name_of(instance)
    for ancestor in reversed(list(classes.ancestors_of(name))):
        validity = classes.lookup_class(ancestor).validity
        if validity is None:
            continue
        result = validity(instance)
        if result is True or result is None:
            continue
        if result is False:
            problems = [f"validity method of class {repr(ancestor)} returned False"]
        elif isinstance(result, str):
            problems = [result]
        else:
            problems = [str(x) for x in result]
        raise InvalidObjectError(name, problems)
