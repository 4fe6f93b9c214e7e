# -*- coding: utf-8 -*-
"""pytest plumbing for the macro-enabled `unpythonic.test.fixtures` test modules.

Each `formality/tests/test_*.py` exposes a `runtests()` function and must be
imported through the `mcpyrate` macro expander, so pytest's own module import
cannot be used. This collects each such module as a single pytest item that
imports it with macros enabled and runs its `runtests()` inside a session,
failing if any test in it failed or errored.
"""

import os
import sys
import tempfile

# Bytecode compiled without the macro expander (e.g. by `compileall` or by pip
# at install time) would be picked up instead of the macro-expanded code.
# Keep bytecode for this run in a separate location.
sys.pycache_prefix = os.path.join(tempfile.gettempdir(), "formality-pytest-pycache")

import mcpyrate.activate  # noqa: E402, F401

from importlib import import_module  # noqa: E402

import pytest  # noqa: E402

_TESTDIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "formality", "tests")


def pytest_pycollect_makemodule(module_path, parent):
    if os.path.dirname(str(module_path)) == _TESTDIR:
        return MacroTestModule.from_parent(parent, path=module_path)


def _import_with_macros(modname):
    # pytest's assertion-rewriting import hook would load the module without
    # the macro expander; bypass it for this import.
    from _pytest.assertion.rewrite import AssertionRewritingHook
    hooks = [h for h in sys.meta_path if isinstance(h, AssertionRewritingHook)]
    for h in hooks:
        sys.meta_path.remove(h)
    try:
        return import_module(modname)
    finally:
        sys.meta_path[0:0] = hooks


class MacroTestModule(pytest.File):
    def collect(self):
        yield MacroTestItem.from_parent(self, name="runtests")


class MacroTestItem(pytest.Item):
    def runtest(self):
        from unpythonic.collections import unbox
        from unpythonic.test.fixtures import session, testset, tests_errored, tests_failed

        modname = "formality.tests." + self.path.stem
        failed0, errored0 = unbox(tests_failed), unbox(tests_errored)
        with session(modname):
            with testset(modname):
                mod = _import_with_macros(modname)
                mod.runtests()
        failed = unbox(tests_failed) - failed0
        errored = unbox(tests_errored) - errored0
        if failed or errored:
            raise AssertionError(f"{modname}: {failed} failed, {errored} errored")

    def reportinfo(self):
        return self.path, None, f"{self.path.stem}::runtests"
