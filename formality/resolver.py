# -*- coding: utf-8; -*-
"""Method resolution: which method of a generic function applies to given argument classes.

The arguments are described by *class tokens*, one per dispatch parameter.
A class token is a tuple of class names, most specific first (the *class chain*
of the argument; see `formality.bridge`). An instance of a formally declared
class has the one-element chain `(its_class_name,)`. An omitted argument has
the token `(MISSING,)`.

**The algorithm**:

  1. For each dispatch position, compute the distance table of its class token:
     each class in the chain, and each of their ancestors, tagged with its
     minimum distance. `MISSING` is at distance 0 if the argument was omitted.
     `ANY` is, at every position, at one more than the sum over all positions
     of the largest real distance. So a signature with any `ANY` in it is
     farther than every signature made of real classes only.

  2. A method is *applicable* if each class in its signature appears in the
     distance table of the corresponding position. Its *total distance* is
     the sum of those distances.

  3. The applicable method with the smallest total distance wins.

  4. If several methods tie, the dispatch is *ambiguous*. The tie is broken
     deterministically, by comparing the signatures lexicographically by
     class name, position by position; but the resolution is flagged as
     ambiguous, so that the dispatcher can signal `AmbiguousDispatchWarning`.

  5. If no method applies, there is no resolution.

Hence a method specialized on `ANY` is chosen only if no method with real
classes at all positions applies, and `ANY` methods never tie with those.
Among `ANY` methods, those with fewer `ANY` positions win.

The ranking of applicable methods is cached per generic function and exact
class token tuple. The cache of a generic is dropped whenever its method table
changes, or any class is (re)defined.
"""

__all__ = ["Resolution", "MethodResolver"]

import threading

from .classes import ANY

class Resolution:
    """The result of method resolution.

    `generic`: name of the generic function.
    `classes`: the class tokens resolution was performed for.
    `applicable`: list of `(total_distance, MethodEntry)` of all applicable
                  methods not excluded, best first.
    `method`: the selected `MethodEntry`, or `None` if none applies.
    `distance`: total distance of `method` (or `None`).
    `candidates`: list of `MethodEntry` tied at the minimum distance,
                  `method` first. Longer than one iff `ambiguous`.
    `ambiguous`: bool.

    A `Resolution` is truthy iff a method was selected.
    """
    def __init__(self, generic, classes, applicable):
        self.generic = generic
        self.classes = tuple(classes)
        self.applicable = list(applicable)
        if self.applicable:
            self.distance, self.method = self.applicable[0]
            self.candidates = [m for d, m in self.applicable if d == self.distance]
        else:
            self.distance, self.method = None, None
            self.candidates = []
        self.ambiguous = len(self.candidates) > 1

    def __bool__(self):
        return self.method is not None

    def __repr__(self):  # pragma: no cover
        return (f"<Resolution of {self.generic} for {self.classes}: {self.method}, distance {self.distance}"
                f"{', ambiguous' if self.ambiguous else ''}>")

class MethodResolver:
    """Resolve methods of generic functions against a class registry.

    `classes`: a `ClassRegistry`.
    `cache`: whether to cache the rankings. Default `True`.
    """
    def __init__(self, classes, cache=True):
        self.classes = classes
        self.cache = cache
        self._cache = {}  # generic name -> (generic, generation, class generation, {tokens: ranking})
        self._lock = threading.Lock()

    def distance_table(self, token):
        """Return the distance table of a class token, as a dict of class name -> distance.

        Class names in the chain that are not registered are included as-is,
        at their position in the chain; they simply have no further ancestors.

        `ANY` is not included, because its distance depends on all positions
        of the call; see `distance_tables`.
        """
        table = {}
        for offset, name in enumerate(token):
            if name in self.classes:
                ancestors = self.classes.ancestors_of(name)
            else:
                ancestors = {name: 0}
            for ancestor, d in ancestors.items():
                if ancestor not in table or offset + d < table[ancestor]:
                    table[ancestor] = offset + d
        return table

    def distance_tables(self, tokens):
        """Return the distance tables of a call, one per dispatch position, including `ANY`."""
        tables = [self.distance_table(token) for token in tokens]
        any_distance = sum(max(table.values(), default=0) for table in tables) + 1
        for table in tables:
            table[ANY] = any_distance
        return tables

    def rank(self, generic, tokens):
        """Return all applicable methods of `generic` for `tokens`, best first.

        `generic`: a `GenericDefinition`.
        `tokens`: tuple of class tokens, one per dispatch parameter.

        Return value is a list of `(total_distance, MethodEntry)`, sorted by
        total distance, then lexicographically by signature.
        """
        tokens = tuple(tuple(token) for token in tokens)
        if not self.cache:
            return self._rank(generic, tokens)
        table = self._cache_for(generic)
        if tokens not in table:
            table[tokens] = self._rank(generic, tokens)
        return table[tokens]

    def _cache_for(self, generic):
        key = (generic, generic.generation, self.classes.generation)
        with self._lock:
            entry = self._cache.get(generic.name)
            if entry is None or entry[:3] != key:
                entry = self._cache[generic.name] = key + ({},)
            return entry[3]

    def _rank(self, generic, tokens):
        tables = self.distance_tables(tokens)
        ranking = []
        for entry in generic.methods:
            total = 0
            for selector, table in zip(entry.signature, tables):
                if selector not in table:
                    break
                total += table[selector]
            else:
                ranking.append((total, entry))
        ranking.sort(key=lambda item: (item[0], item[1].signature))
        return ranking

    def resolve(self, generic, tokens, exclude=()):
        """Resolve the method of `generic` for `tokens`.

        `exclude`: `MethodEntry` objects to skip (the methods already visited
                   in a chain of `call_next_method` calls).

        Return a `Resolution`; check it for truthiness to see whether any
        method applies.
        """
        ranking = self.rank(generic, tokens)
        if exclude:
            ranking = [(d, m) for d, m in ranking if not any(m is x for x in exclude)]
        return Resolution(generic.name, tokens, ranking)

    def clear_cache(self):
        """Drop all cached rankings."""
        with self._lock:
            self._cache = {}
