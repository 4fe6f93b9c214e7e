# -*- coding: utf-8; -*-
"""Formally declared classes with multiple inheritance.

A *class* here is not a Python class. It is a named record in a `ClassRegistry`,
with an ordered list of parent class names and a table of *slots*, i.e. named,
typed fields. The parents relation defines the class graph, which must be
acyclic. For each class, the registry computes the distance (in edges, along
the shortest path) to every ancestor; this distance table drives the method
dispatch in `formality.resolver`.

Two pseudo-classes are reserved, and can never be registered:

  - `ANY` matches any object. It is an ancestor of every class, at a distance
    larger than that of any real ancestor.
  - `MISSING` matches an omitted argument in a generic function call.

Registration is all-or-nothing: every check runs before the registry is
modified. The tables are replaced (copy-on-write), never mutated in place,
so readers need no lock.
"""

__all__ = ["ANY", "MISSING",
           "ClassDefinition", "ClassRegistry"]

from collections import deque
import threading

from unpythonic.collections import frozendict

from .errors import (UnknownClassError, UnknownParentError, UnknownSlotError,
                     SealedClassError, CyclicInheritanceError)

ANY = "ANY"
MISSING = "MISSING"
reserved_names = (ANY, MISSING)

class ClassDefinition:
    """The definition of a class, as stored in a `ClassRegistry`.

    `name`: str, the unique name of the class.
    `parents`: tuple of str, the direct parents, in declaration order.
    `slots`: `frozendict` of slot name -> class name (or `ANY`), as declared
             by this class itself. The inherited slots are not included;
             see `ClassRegistry.slot_types`.
    `prototype`: `frozendict` of slot name -> default value, own declarations only.
    `validity`: `None`, or a callable `validity(instance)` that returns `True`
                (or `None`) when the instance is valid, and otherwise a message
                (`str`) or a list of messages.
    `sealed`: bool. A sealed class cannot be redefined.
    `virtual`: bool. A virtual class has no direct instances; it exists as
               an ancestor only.
    `foreign`: bool. The class stands for values that are not constructed by
               formality (see `formality.bridge`). Foreign classes are virtual
               and sealed.
    `default`: for foreign classes, a zero-argument callable that produces
               the empty value of that class, or `None`.
    `members`: for class unions, the tuple of member class names; else `None`.

    Definitions are never modified after creation. Redefining a class creates
    a new `ClassDefinition`; existing instances keep referring to the old one.
    """
    def __init__(self, name, parents=(), slots=None, *, prototype=None, validity=None,
                 sealed=False, virtual=False, foreign=False, default=None, members=None):
        self.name = name
        self.parents = tuple(parents)
        self.slots = frozendict(slots or {})
        self.prototype = frozendict(prototype or {})
        self.validity = validity
        self.sealed = sealed
        self.virtual = virtual
        self.foreign = foreign
        self.default = default
        self.members = tuple(members) if members is not None else None

    @property
    def isunion(self):
        return self.members is not None

    def __repr__(self):  # pragma: no cover
        flags = [flag for flag in ("sealed", "virtual", "foreign") if getattr(self, flag)]
        if self.isunion:
            flags.append("union")
        flags_str = f" [{', '.join(flags)}]" if flags else ""
        return f"<ClassDefinition {repr(self.name)}({', '.join(self.parents)}){flags_str}>"

class ClassRegistry:
    """Table of class definitions.

    A registry starts empty. Everything registered into it is immediately
    visible to all subsequent lookups; there is no transaction isolation.

    Each mutation increments `generation`, which lets caches built on top of
    the registry (such as the dispatch cache in `formality.resolver`) notice
    that they are stale.
    """
    def __init__(self):
        self._classes = {}  # name -> ClassDefinition
        self._unions = {}  # member name -> tuple of union names
        self._derived = {}  # memo of computed tables, reset on each mutation
        self._lock = threading.RLock()
        self.generation = 0

    # --------------------------------------------------------------------------------
    # Registration

    def register_class(self, name, parents=(), slots=None, *, sealed=False, virtual=False,
                       prototype=None, validity=None):
        """Define the class `name`, or redefine it if it already exists.

        `parents`: the names of the direct parents, in order. Each must already
                   be registered. A single name may be passed as a bare `str`.
        `slots`: mapping of slot name -> class name (or `ANY`). A slot type may
                 name the class being defined, for recursive structures.
        `prototype`: mapping of slot name -> default value. The slot may be
                     declared by this class or inherited.
        `validity`: see `ClassDefinition`.

        Returns the new `ClassDefinition`.

        **CAUTION**: Redefining a class does not migrate existing instances.
        They keep pointing to the definition they were constructed against.
        """
        parents = _canonize_names(parents)
        slots = dict(slots or {})
        prototype = dict(prototype or {})
        if validity is not None and not callable(validity):
            raise TypeError(f"validity of class {repr(name)} must be callable, got {type(validity)} with value {repr(validity)}")
        with self._lock:
            self._check_definable(name)
            for parent in parents:
                if parent not in self._classes:
                    raise UnknownParentError(name, parent)
            for slot, slot_type in slots.items():
                if not isinstance(slot, str):
                    raise TypeError(f"slot names must be strings, got {type(slot)} with value {repr(slot)}")
                if slot_type != ANY and slot_type != name and slot_type not in self._classes:
                    raise UnknownClassError(slot_type, f"slot {repr(slot)} of class {repr(name)} has unknown type {repr(slot_type)}")
            definition = ClassDefinition(name, parents, slots, prototype=prototype, validity=validity,
                                         sealed=sealed, virtual=virtual)
            classes = {**self._classes, name: definition}
            unions = _without_union(self._unions, name)
            self._check_acyclic(name, classes, unions)
            known_slots = self._merge_along(name, "slots", classes, unions)
            for slot in prototype:
                if slot not in known_slots:
                    raise UnknownSlotError(name, slot)
            self._commit(classes, unions)
            return definition

    def register_foreign_class(self, name, parents=(), *, default=None):
        """Bridge an externally defined class into the registry.

        Afterward, `name` is a real class for the purposes of dispatch and
        slot type checking, but it has no slots, and it cannot be constructed
        or redefined. The values belonging to it are reported by a
        `formality.bridge.ForeignBridge`.

        `default`: zero-argument callable producing the empty value of this
                   class, used to fill slots of this type; or `None`.
        """
        parents = _canonize_names(parents)
        if default is not None and not callable(default):
            raise TypeError(f"default of foreign class {repr(name)} must be callable, got {type(default)} with value {repr(default)}")
        with self._lock:
            self._check_definable(name)
            for parent in parents:
                if parent not in self._classes:
                    raise UnknownParentError(name, parent)
            definition = ClassDefinition(name, parents, sealed=True, virtual=True,
                                         foreign=True, default=default)
            classes = {**self._classes, name: definition}
            unions = _without_union(self._unions, name)
            self._check_acyclic(name, classes, unions)
            self._commit(classes, unions)
            return definition

    def register_class_union(self, name, members):
        """Define `name` as a virtual class that is a direct parent of each of `members`.

        The members themselves are not redefined, so this works also for
        sealed and foreign classes. Redefining a union replaces its member list.

        Useful e.g. for a slot that accepts either of two unrelated classes.
        """
        members = _canonize_names(members)
        with self._lock:
            self._check_definable(name)
            for member in members:
                if member not in self._classes:
                    raise UnknownClassError(member, f"cannot define class union {repr(name)}: unknown member class {repr(member)}")
            definition = ClassDefinition(name, virtual=True, members=members)
            classes = {**self._classes, name: definition}
            unions = _without_union(self._unions, name)
            for member in members:
                unions[member] = unions.get(member, ()) + (name,)
            for member in members:
                self._check_acyclic(member, classes, unions)
            self._commit(classes, unions)
            return definition

    def _check_definable(self, name):
        if not isinstance(name, str) or not name:
            raise TypeError(f"class name must be a nonempty string, got {type(name)} with value {repr(name)}")
        if name in reserved_names:
            raise SealedClassError(name)
        existing = self._classes.get(name)
        if existing is not None and existing.sealed:
            raise SealedClassError(name)

    def _check_acyclic(self, name, classes, unions):
        # If `name` can reach itself via the parents relation, the offending
        # edge is the first step of that path.
        for first in _direct_parents(name, classes, unions):
            if first == name:
                raise CyclicInheritanceError(name, first)
            seen = {first}
            queue = deque([first])
            while queue:
                current = queue.popleft()
                for parent in _direct_parents(current, classes, unions):
                    if parent == name:
                        raise CyclicInheritanceError(name, first)
                    if parent not in seen:
                        seen.add(parent)
                        queue.append(parent)

    def _commit(self, classes, unions):
        self._classes = classes
        self._unions = unions
        self._derived = {}
        self.generation += 1

    # --------------------------------------------------------------------------------
    # Queries

    def __contains__(self, name):
        return name in self._classes

    def exists_class(self, name):
        """Return whether `name` is a registered class."""
        return name in self._classes

    def class_names(self):
        """Return a list of the names of all registered classes, in registration order."""
        return list(self._classes)

    def lookup_class(self, name):
        """Return the `ClassDefinition` for `name`. Raise `UnknownClassError` if none."""
        try:
            return self._classes[name]
        except KeyError:
            raise UnknownClassError(name) from None

    def parents_of(self, name):
        """Return the direct parents of `name`, including any class unions it is a member of."""
        self.lookup_class(name)
        return _direct_parents(name, self._classes, self._unions)

    def ancestors_of(self, name):
        """Return the ancestors of class `name`, with their distances.

        The return value is a `dict` of class name -> minimum distance, i.e. the
        length, in edges, of the shortest path along the parents relation.
        The class itself is included, at distance 0.

        The entries are ordered breadth-first, parents in declaration order
        (class unions after the declared parents). This ordering is the
        linearization used for slot inheritance.

        The pseudo-classes `ANY` and `MISSING` are not included; they are
        handled by the method resolver.
        """
        return dict(self._ancestors(name))

    def _ancestors(self, name):
        derived = self._derived  # snapshot; a concurrent commit replaces, never mutates, it
        key = ("ancestors", name)
        if key not in derived:
            classes, unions = self._classes, self._unions
            if name not in classes:
                raise UnknownClassError(name)
            distances = {name: 0}
            queue = deque([name])
            while queue:
                current = queue.popleft()
                for parent in _direct_parents(current, classes, unions):
                    if parent not in distances:
                        distances[parent] = distances[current] + 1
                        queue.append(parent)
            derived[key] = frozendict(distances)
        return derived[key]

    def is_subclass_of(self, name, candidate):
        """Return whether `candidate` is `name` itself or one of its ancestors.

        `ANY` is considered an ancestor of every class.
        """
        ancestors = self._ancestors(name)
        return candidate == ANY or candidate in ancestors

    def slot_types(self, name):
        """Return all slots of class `name` (own and inherited), as a dict of slot name -> type.

        The class's own slots come first, then those of the ancestors in
        linearization order. When several classes declare the same slot,
        the nearest declaration determines its type.
        """
        return dict(self._merged(name, "slots"))

    def slot_types_if_defined(self, name, parents=(), slots=None):
        """Return the slot table class `name` would have if defined with `parents` and `slots`.

        Like `slot_types`, but nothing is registered. Raises the same errors
        `register_class` would for an undefinable name, an unknown parent, or a cycle.
        """
        parents = _canonize_names(parents)
        with self._lock:
            self._check_definable(name)
            for parent in parents:
                if parent not in self._classes:
                    raise UnknownParentError(name, parent)
            classes = {**self._classes, name: ClassDefinition(name, parents, slots)}
            unions = _without_union(self._unions, name)
            self._check_acyclic(name, classes, unions)
            return self._merge_along(name, "slots", classes, unions)

    def prototype_of(self, name):
        """Return the default slot values of class `name` (own and inherited)."""
        return dict(self._merged(name, "prototype"))

    def _merged(self, name, attr):
        derived = self._derived
        key = (attr, name)
        if key not in derived:
            derived[key] = frozendict(self._merge_along(name, attr, self._classes, self._unions))
        return derived[key]

    def _merge_along(self, name, attr, classes, unions):
        merged = {}
        for ancestor in _linearize(name, classes, unions):
            for k, v in getattr(classes[ancestor], attr).items():
                if k not in merged:
                    merged[k] = v
        return merged

# --------------------------------------------------------------------------------

def _canonize_names(names):
    if isinstance(names, str):
        return (names,)
    out = []
    for name in names:
        if name not in out:
            out.append(name)
    return tuple(out)

def _without_union(unions, name):
    """Copy the member -> unions table, dropping the union `name`."""
    out = {}
    for member, theunions in unions.items():
        theunions = tuple(u for u in theunions if u != name)
        if theunions:
            out[member] = theunions
    return out

def _direct_parents(name, classes, unions):
    definition = classes.get(name)
    declared = definition.parents if definition is not None else ()
    return declared + unions.get(name, ())

def _linearize(name, classes, unions):
    """Breadth-first ancestor order of `name` in the given tables, `name` first."""
    if name not in classes:
        raise UnknownClassError(name)
    out = [name]
    seen = {name}
    queue = deque([name])
    while queue:
        current = queue.popleft()
        for parent in _direct_parents(current, classes, unions):
            if parent not in seen:
                seen.add(parent)
                out.append(parent)
                queue.append(parent)
    return out
