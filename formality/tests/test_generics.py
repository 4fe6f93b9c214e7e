# -*- coding: utf-8; -*-

from unpythonic.syntax import macros, test, test_raises, the  # noqa: F401
from unpythonic.test.fixtures import session, testset

from ..classes import ANY, MISSING, ClassRegistry
from ..errors import UnknownClassError, UnknownGenericError, ArityMismatchError
from ..generics import VARARGS, POSONLY, GenericRegistry

def registry():
    classes = ClassRegistry()
    classes.register_class("Person")
    classes.register_class("Employee", ["Person"])
    classes.register_class("Robot")
    return GenericRegistry(classes)

def runtests():
    with testset("registering generics"):
        reg = registry()
        g = reg.register_generic("greet", ["x", "y"])
        test[reg.lookup_generic("greet") is the[g]]
        test[reg.is_generic("greet")]
        test[not reg.is_generic("wave")]
        test[g.params == ("x", "y")]
        test[g.dispatch == ("x", "y")]
        test[g.arity == 2]
        test[g.methods == ()]
        test_raises[UnknownGenericError, reg.lookup_generic("wave")]
        test_raises[LookupError, reg.lookup_generic("wave")]

        g = reg.register_generic("show", ["x", VARARGS])
        test[g.dispatch == ("x",)]
        g = reg.register_generic("combine", ["x", "y", "how"], dispatch=["x", "y"])
        test[g.arity == 2]
        test_raises[TypeError, reg.register_generic("bad", ["x"], dispatch=["z"])]
        test_raises[TypeError, reg.register_generic("bad", ["x", VARARGS], dispatch=[VARARGS])]
        test_raises[TypeError, reg.register_generic("bad")]  # no params, no default
        test_raises[UnknownClassError, reg.register_generic("bad", ["x"], value_class="Thing")]
        test[not reg.is_generic("bad")]
        test[reg.generic_names() == ["greet", "show", "combine"]]

    with testset("converting a function into a generic"):
        reg = registry()
        def describe(x, verbose=False, *args, **kwargs):
            return "something"
        g = reg.register_generic("describe", default=describe)
        test[g.params == ("x", "verbose", VARARGS)]
        test[g.dispatch == ("x", "verbose")]
        test[len(g.methods) == 1]
        test[g.methods[0].signature == (ANY, ANY)]
        test[g.methods[0].body is the[describe]]

        # Re-registering replaces the generic wholesale.
        reg.register_method("describe", ["Person", ANY], lambda x, verbose=False: "a person")
        g2 = reg.register_generic("describe", ["x"])
        test[reg.lookup_generic("describe") is the[g2]]
        test[g2.methods == ()]

        # Positional-only parameters.
        def initializer(obj, /, *args, **slots):
            return obj
        g = reg.register_generic("setup", default=initializer)
        test[g.params == ("obj", POSONLY, VARARGS)]
        test[g.dispatch == ("obj",)]
        test[g.positional_only == ("obj",)]
        def mixed(x, /, y, z=None):
            pass
        test[reg.register_generic("mixed", default=mixed).params == ("x", POSONLY, "y", "z")]
        def onlypos(x, y, /):
            pass
        test[reg.register_generic("onlypos", default=onlypos).params == ("x", "y", POSONLY)]
        test_raises[TypeError, reg.register_generic("bad", ["x", POSONLY], dispatch=[POSONLY])]

    with testset("registering methods"):
        reg = registry()
        reg.register_generic("greet", ["x", "y"])
        hello = lambda x, y: "hello"  # noqa: E731
        entry = reg.register_method("greet", ["Person", "Person"], hello)
        test[entry.signature == ("Person", "Person")]
        test[entry.body is the[hello]]
        test[reg.exists_method("greet", ["Person", "Person"])]
        test[not reg.exists_method("greet", ["Employee", "Person"])]  # exact signatures only

        # A mapping signature: unspecified positions become ANY.
        reg.register_method("greet", {"y": "Robot"}, lambda x, y: "beep")
        test[reg.exists_method("greet", [ANY, "Robot"])]
        test[reg.get_method("greet", {"y": "Robot"}).signature == (ANY, "Robot")]
        test_raises[TypeError, reg.register_method("greet", {"z": "Robot"}, hello)]

        test_raises[ArityMismatchError, reg.register_method("greet", ["Person"], hello)]
        test_raises[ArityMismatchError, reg.register_method("greet", ["Person", "Person", "Person"], hello)]
        test_raises[UnknownClassError, reg.register_method("greet", ["Person", "Alien"], hello)]
        test_raises[UnknownGenericError, reg.register_method("wave", ["Person"], hello)]
        test_raises[TypeError, reg.register_method("greet", ["Person", "Person"], "hello")]

        # MISSING is a valid selector.
        reg.register_method("greet", ["Person", MISSING], lambda x: "hello, you")
        test[reg.exists_method("greet", ["Person", MISSING])]

        # Re-registering the same signature replaces the method.
        g = reg.lookup_generic("greet")
        generation = g.generation
        howdy = lambda x, y: "howdy"  # noqa: E731
        reg.register_method("greet", ["Person", "Person"], howdy)
        test[g.generation > the[generation]]
        test[reg.get_method("greet", ["Person", "Person"]).body is the[howdy]]
        test[len(g.methods) == 3]

    with testset("single-dispatch shorthand"):
        reg = registry()
        reg.register_generic("name_of", ["x"])
        reg.register_method("name_of", "Person", lambda x: "person")
        test[reg.exists_method("name_of", ["Person"])]
        test[reg.exists_method("name_of", "Person")]

    with testset("removing and listing methods"):
        reg = registry()
        reg.register_generic("greet", ["x", "y"])
        reg.register_generic("name_of", ["x"])
        reg.register_method("greet", ["Person", "Person"], lambda x, y: "hello")
        reg.register_method("greet", ["Robot", ANY], lambda x, y: "beep")
        reg.register_method("name_of", "Robot", lambda x: "robot")
        test[[m.signature for m in reg.list_methods("greet")] == [("Person", "Person"), ("Robot", ANY)]]
        test[[m.generic for m in reg.list_methods()] == ["greet", "greet", "name_of"]]
        test[[m.generic for m in reg.list_methods(for_class="Robot")] == ["greet", "name_of"]]
        test[reg.list_methods("greet", for_class="Employee") == []]

        test[reg.remove_method("greet", ["Robot", ANY])]
        test[not reg.remove_method("greet", ["Robot", ANY])]
        test[[m.signature for m in reg.list_methods("greet")] == [("Person", "Person")]]

    with testset("binding arguments"):
        reg = registry()
        g = reg.register_generic("combine", ["x", "y", VARARGS], dispatch=["x", "y"])
        test[g.bind((1, 2), {}) == {"x": 1, "y": 2}]
        test[g.bind((1, 2, 3, 4), {}) == {"x": 1, "y": 2}]  # the rest passes through
        test[g.bind((1,), {"y": 2}) == {"x": 1, "y": 2}]
        test[g.bind((1,), {}) == {"x": 1}]
        test[g.bind((), {"y": 2, "how": "fast"}) == {"y": 2}]
        test_raises[TypeError, g.bind((1,), {"x": 2})]

        # A keyword argument naming a positional-only parameter passes through.
        g = reg.register_generic("setup", ["object", POSONLY, VARARGS])
        test[g.bind(("it",), {"object": "a slot value"}) == {"object": "it"}]
        test[g.bind((), {"object": "a slot value"}) == {}]
        g = reg.register_generic("mixed", ["x", POSONLY, "y"])
        test[g.dispatch == ("x", "y")]
        test[g.bind((1,), {"x": 2, "y": 3}) == {"x": 1, "y": 3}]
        test[g.bind((1, 2), {}) == {"x": 1, "y": 2}]
        test_raises[TypeError, g.bind((1, 2), {"y": 3})]

if __name__ == '__main__':  # pragma: no cover
    with session(__file__):
        runtests()
