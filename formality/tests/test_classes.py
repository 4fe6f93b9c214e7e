# -*- coding: utf-8; -*-

from unpythonic.syntax import macros, test, test_raises, the  # noqa: F401
from unpythonic.test.fixtures import session, testset

from ..classes import ANY, MISSING, ClassRegistry
from ..errors import (UnknownClassError, UnknownParentError, UnknownSlotError,
                      SealedClassError, CyclicInheritanceError)

def runtests():
    with testset("registration and lookup"):
        reg = ClassRegistry()
        test[reg.class_names() == []]
        person = reg.register_class("Person", slots={"name": ANY, "age": ANY})
        test[reg.lookup_class("Person") is the[person]]
        test["Person" in reg]
        test[reg.exists_class("Person")]
        test[not reg.exists_class("Robot")]
        test[person.parents == ()]
        test[dict(person.slots) == {"name": ANY, "age": ANY}]
        test_raises[UnknownClassError, reg.lookup_class("Robot")]
        test_raises[LookupError, reg.lookup_class("Robot"), "should be catchable as a builtin LookupError"]

        employee = reg.register_class("Employee", "Person", {"boss": "Person"})
        test[employee.parents == ("Person",)]
        test[reg.class_names() == ["Person", "Employee"]]

    with testset("no forward references"):
        reg = ClassRegistry()
        test_raises[UnknownParentError, reg.register_class("Employee", ["Person"])]
        test[not reg.exists_class("Employee")]  # nothing registered on failure
        test_raises[UnknownClassError, reg.register_class("Node", slots={"value": "Thing"})]
        test[not reg.exists_class("Node")]
        # A slot may refer to the class being defined.
        reg.register_class("Node", slots={"next": "Node"})
        test[reg.slot_types("Node") == {"next": "Node"}]

    with testset("reserved names"):
        reg = ClassRegistry()
        test_raises[SealedClassError, reg.register_class(ANY)]
        test_raises[SealedClassError, reg.register_class(MISSING)]
        test_raises[TypeError, reg.register_class("")]

    with testset("ancestors and distances"):
        reg = ClassRegistry()
        #     A
        #    / \
        #   B   C
        #   |   |
        #   D   |
        #    \ /
        #     E
        reg.register_class("A")
        reg.register_class("B", ["A"])
        reg.register_class("C", ["A"])
        reg.register_class("D", ["B"])
        reg.register_class("E", ["D", "C"])
        test[reg.ancestors_of("A") == {"A": 0}]
        test[reg.ancestors_of("E") == {"E": 0, "D": 1, "C": 1, "B": 2, "A": 2}]  # shortest path to A is via C
        test[list(reg.ancestors_of("E")) == ["E", "D", "C", "B", "A"]]  # breadth-first, parents in declaration order
        test[reg.is_subclass_of("E", "A")]
        test[reg.is_subclass_of("E", "E")]
        test[reg.is_subclass_of("E", ANY)]
        test[not reg.is_subclass_of("A", "E")]
        test[not reg.is_subclass_of("B", "C")]
        test_raises[UnknownClassError, reg.ancestors_of("Z")]

        # The returned table is a copy.
        table = reg.ancestors_of("E")
        table["Z"] = 42
        test["Z" not in reg.ancestors_of("E")]

        # The distance to an ancestor is one more than that from the nearest parent.
        for name in reg.class_names():
            for ancestor, distance in reg.ancestors_of(name).items():
                test[reg.is_subclass_of(name, the[ancestor])]
                if ancestor != name:
                    nearest = min(reg.ancestors_of(p)[ancestor] for p in reg.parents_of(name)
                                  if reg.is_subclass_of(p, ancestor))
                    test[the[distance] == 1 + the[nearest]]

    with testset("redefinition"):
        reg = ClassRegistry()
        reg.register_class("Person", slots={"name": ANY})
        old = reg.lookup_class("Person")
        g0 = reg.generation
        new = reg.register_class("Person", slots={"name": ANY, "age": ANY})
        test[reg.lookup_class("Person") is the[new]]
        test[the[new] is not the[old]]
        test[dict(old.slots) == {"name": ANY}]  # definitions are never mutated
        test[reg.generation > g0]

        reg.register_class("Robot", sealed=True)
        sealed = reg.lookup_class("Robot")
        test_raises[SealedClassError, reg.register_class("Robot", slots={"model": ANY})]
        test[reg.lookup_class("Robot") is the[sealed]]  # original remains intact

    with testset("acyclicity"):
        reg = ClassRegistry()
        reg.register_class("A")
        reg.register_class("B", ["A"])
        reg.register_class("C", ["B"])
        old = reg.lookup_class("A")
        test_raises[CyclicInheritanceError, reg.register_class("A", ["C"])]
        test_raises[CyclicInheritanceError, reg.register_class("A", ["A"])]
        test[reg.lookup_class("A") is the[old]]
        test[reg.ancestors_of("C") == {"C": 0, "B": 1, "A": 2}]

    with testset("slot inheritance"):
        reg = ClassRegistry()
        reg.register_class("Named", slots={"name": "Named", "id": ANY})
        reg.register_class("Aged", slots={"age": ANY})
        reg.register_class("Person", ["Named", "Aged"], {"email": ANY, "id": "Person"})
        slots = reg.slot_types("Person")
        test[list(slots) == ["email", "id", "name", "age"]]  # own slots first, then in linearization order
        test[slots["id"] == "Person"]  # nearest declaration wins
        test[slots["name"] == "Named"]

        # Slots of a class not defined yet, without defining it.
        reg.register_class("Root", slots={"id": ANY})
        reg.register_class("Middle", ["Root"])
        reg.register_class("Side", slots={"id": "Person"})
        gen = reg.generation
        test[reg.slot_types_if_defined("Leaf", ["Middle", "Side"], {"tag": ANY}) == {"tag": ANY, "id": "Person"}]
        test[not reg.exists_class("Leaf")]
        test[reg.generation == the[gen]]
        test_raises[UnknownParentError, reg.slot_types_if_defined("Leaf", ["Nowhere"])]
        test_raises[CyclicInheritanceError, reg.slot_types_if_defined("Root", ["Middle"])]

    with testset("prototypes"):
        reg = ClassRegistry()
        reg.register_class("Person", slots={"name": ANY, "age": ANY}, prototype={"name": "anonymous"})
        reg.register_class("Child", ["Person"], prototype={"age": 5})
        test[reg.prototype_of("Child") == {"age": 5, "name": "anonymous"}]
        test_raises[UnknownSlotError, reg.register_class("Pet", ["Person"], prototype={"owner": "x"})]
        test[not reg.exists_class("Pet")]

    with testset("foreign classes"):
        reg = ClassRegistry()
        reg.register_foreign_class("numeric", default=float)
        integer = reg.register_foreign_class("integer", ["numeric"], default=int)
        test[integer.foreign and integer.virtual and integer.sealed]
        test[integer.default() == 0]
        test[reg.is_subclass_of("integer", "numeric")]
        test_raises[SealedClassError, reg.register_foreign_class("integer")]
        test_raises[SealedClassError, reg.register_class("integer")]
        test_raises[TypeError, reg.register_foreign_class("character", default="")]  # must be a factory

        reg.register_class("Temperature", ["numeric"], {"unit": ANY})
        test[reg.ancestors_of("Temperature") == {"Temperature": 0, "numeric": 1}]

    with testset("class unions"):
        reg = ClassRegistry()
        reg.register_foreign_class("NULL")
        reg.register_class("Person")
        reg.register_class("Employee", ["Person"])
        union = reg.register_class_union("MaybePerson", ["Person", "NULL"])
        test[union.isunion and union.virtual]
        test[union.members == ("Person", "NULL")]
        test[reg.parents_of("Person") == ("MaybePerson",)]
        test[reg.is_subclass_of("NULL", "MaybePerson")]
        test[reg.ancestors_of("Employee") == {"Employee": 0, "Person": 1, "MaybePerson": 2}]
        test[reg.lookup_class("Person").parents == ()]  # the members are not redefined

        # Redefining a union replaces its member list.
        reg.register_class_union("MaybePerson", ["Employee", "NULL"])
        test[reg.parents_of("Person") == ()]
        test[reg.ancestors_of("Employee") == {"Employee": 0, "Person": 1, "MaybePerson": 1}]

        test_raises[UnknownClassError, reg.register_class_union("Whatever", ["Robot"])]

        # Unions of unions.
        reg.register_class_union("Human", ["Person"])
        reg.register_class_union("Creature", ["Human"])
        test[reg.ancestors_of("Person") == {"Person": 0, "Human": 1, "Creature": 2}]
        test_raises[CyclicInheritanceError, reg.register_class_union("Human", ["Creature"])]
        test[reg.lookup_class("Human").members == ("Person",)]
        test[reg.ancestors_of("Person") == {"Person": 0, "Human": 1, "Creature": 2}]

if __name__ == '__main__':  # pragma: no cover
    with session(__file__):
        runtests()
