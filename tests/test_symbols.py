import ast
import textwrap
import unittest

from pycover.coverage.model import ClassType, NO_SYMBOL
from pycover.instrumentation.symbols import (
    Resolution, SymbolKind, buildSymbolTable, dottedName, isStubBody, symbolOf,
)


def build(code, module_name="pkg.mod"):
    tree = ast.parse(textwrap.dedent(code))
    return tree, buildSymbolTable(tree, module_name)


class TestScopeGraph(unittest.TestCase):
    def setUp(self):
        self.tree, self.table = build(
            """
            import os.path
            from collections import OrderedDict as OD
            from . import sibling
            from ..base import Base

            LIMIT = 3

            class Shape(Base):
                sides = 0

                def area(self):
                    return [s for s in range(self.sides)]

            def outer(x):
                def inner():
                    nonlocal x
                    return x
                return inner
            """
        )

    def testSymbolsAttached(self):
        module = symbolOf(self.tree)
        self.assertIs(module, self.table.module)
        self.assertEqual(module.kind, SymbolKind.MODULE)
        self.assertEqual(module.class_type, ClassType.OBJECT)
        self.assertEqual(module.package, "pkg")

        names = [s.full_name for s in self.table.symbols]
        self.assertEqual(
            names,
            [
                "pkg.mod",
                "pkg.mod.Shape",
                "pkg.mod.Shape.area",
                "pkg.mod.Shape.area.<locals>.<listcomp>",
                "pkg.mod.outer",
                "pkg.mod.outer.<locals>.inner",
            ],
        )

    def testGraphEdges(self):
        shape = self.table.lookup("pkg.mod.Shape")
        area = self.table.lookup("pkg.mod.Shape.area")

        self.assertEqual(self.table.children(shape), [area])
        self.assertEqual(len(self.table.nested(shape)), 2)
        self.assertEqual(
            [s.name for s in self.table.ownerPath(area)], ["pkg.mod", "Shape", "area"]
        )
        self.assertIsNone(self.table.lookup("pkg.mod.missing"))

    def testImports(self):
        module = self.table.module
        self.assertEqual(module.imports["os"], "os")
        self.assertEqual(module.imports["OD"], "collections.OrderedDict")
        self.assertEqual(module.imports["sibling"], ".sibling")
        self.assertEqual(module.imports["Base"], "..base.Base")
        self.assertIn("LIMIT", module.declared)
        self.assertIn("Shape", module.declared)

    def testResolution(self):
        module = self.table.module
        shape = self.table.lookup("pkg.mod.Shape")
        area = self.table.lookup("pkg.mod.Shape.area")
        inner = self.table.lookup("pkg.mod.outer.<locals>.inner")
        outer = self.table.lookup("pkg.mod.outer")

        self.assertEqual(self.table.resolve(module, "LIMIT"), (Resolution.MEMBER, module))
        self.assertEqual(self.table.resolve(shape, "sides"), (Resolution.MEMBER, shape))
        # Class bodies are not visible from their methods.
        self.assertEqual(self.table.resolve(area, "sides"), (Resolution.BUILTIN, None))
        self.assertEqual(self.table.resolve(area, "self"), (Resolution.LOCAL, area))
        self.assertEqual(self.table.resolve(inner, "x"), (Resolution.LOCAL, outer))
        self.assertEqual(self.table.resolve(area, "OD"), (Resolution.IMPORT, module))
        self.assertEqual(self.table.resolve(area, "len"), (Resolution.BUILTIN, None))

    def testSymbolNames(self):
        module = self.table.module
        area = self.table.lookup("pkg.mod.Shape.area")

        def name(code, scope=module):
            return self.table.symbol_name(scope, ast.parse(code, mode="eval").body)

        self.assertEqual(name("os.path.join"), "os.path.join")
        self.assertEqual(name("OD()"), "collections.OrderedDict")
        self.assertEqual(name("LIMIT"), "pkg.mod.LIMIT")
        self.assertEqual(name("len"), "builtins.len")
        self.assertEqual(name("__name__"), "pkg.mod.__name__")
        self.assertEqual(name("__file__", area), "pkg.mod.__file__")
        self.assertEqual(name("undefined_name"), NO_SYMBOL)
        self.assertEqual(name("self.sides", area), "pkg.mod.Shape.area.self.sides")
        self.assertEqual(name("a[1]"), "operator.getitem")
        self.assertEqual(name("a + 1"), "operator.add")
        self.assertEqual(name("a in b"), "operator.contains")
        self.assertEqual(name("1 < a < 2"), NO_SYMBOL)
        self.assertEqual(self.table.symbol_name(module, None), NO_SYMBOL)

    def testMemberReferences(self):
        shape = self.table.lookup("pkg.mod.Shape")
        load = ast.Name(id="sides", ctx=ast.Load())
        store = ast.Name(id="sides", ctx=ast.Store())

        self.assertTrue(self.table.isMemberReference(shape, load))
        self.assertFalse(self.table.isMemberReference(shape, store))
        self.assertFalse(self.table.isMemberReference(shape, ast.Constant(1)))


def test_global_and_walrus_bindings():
    tree, table = build(
        """
        def setup():
            global registry
            registry = {}

        def scan(items):
            found = [y for x in items if (y := x)]
            return y
        """
    )
    setup = table.lookup("pkg.mod.setup")
    scan = table.lookup("pkg.mod.scan")
    comprehension = table.lookup("pkg.mod.scan.<locals>.<listcomp>")

    assert table.resolve(setup, "registry") == (Resolution.MEMBER, table.module)
    assert "y" in scan.declared
    assert "y" not in comprehension.declared
    assert table.resolve(comprehension, "y") == (Resolution.LOCAL, scan)
    assert table.resolve(comprehension, "x") == (Resolution.LOCAL, comprehension)


def test_first_iterable_belongs_to_the_enclosing_scope():
    tree, table = build("def f(rows):\n    return [c for r in rows for c in r]\n")
    comprehension = table.lookup("pkg.mod.f.<locals>.<listcomp>")

    assert comprehension.declared == {"r", "c"}
    assert table.resolve(comprehension, "rows") == (Resolution.LOCAL, table.lookup("pkg.mod.f"))


def test_handler_and_pattern_names_are_bound():
    tree, table = build(
        """
        def f(v):
            try:
                pass
            except ValueError as err:
                pass
            match v:
                case [first, *others]:
                    pass
                case {"k": value, **rest}:
                    pass
        """
    )
    f = table.lookup("pkg.mod.f")

    assert {"err", "first", "others", "value", "rest"} <= f.declared


def test_declaration_flags():
    tree, table = build(
        """
        import abc
        import typing
        from dataclasses import dataclass

        class Base(metaclass=abc.ABCMeta):
            @abc.abstractmethod
            def run(self): ...

        class Reader(typing.Protocol):
            def read(self) -> bytes:
                \"\"\"Read everything.\"\"\"

            def close(self):
                return None

        @dataclass(frozen=True)
        class Record:
            name: str

        class Pair(typing.NamedTuple):
            left: int

        @typing.overload
        def parse(v: int) -> int: ...
        """
    )

    lookup = table.lookup
    assert lookup("pkg.mod.Base").class_type is ClassType.TRAIT
    assert lookup("pkg.mod.Base.run").is_abstract
    assert lookup("pkg.mod.Reader").class_type is ClassType.TRAIT
    assert lookup("pkg.mod.Reader.read").is_stub
    assert not lookup("pkg.mod.Reader.close").is_deferred
    assert lookup("pkg.mod.Record").is_record
    assert lookup("pkg.mod.Record").class_type is ClassType.CLASS
    assert lookup("pkg.mod.Pair").is_record
    assert lookup("pkg.mod.parse").is_overload
    assert lookup("pkg.mod.parse").is_deferred


def test_lambda_scopes():
    tree, table = build("key = lambda item: item[0]\n", module_name="mod")
    lam = table.lookup("mod.<lambda>")

    assert lam.kind is SymbolKind.LAMBDA
    assert lam.is_function_scope
    assert lam.declared == {"item"}
    assert table.module.package == "<empty>"


def test_helpers():
    assert dottedName(ast.parse("a.b.c", mode="eval").body) == "a.b.c"
    assert dottedName(ast.parse("dataclass(frozen=True)", mode="eval").body) == "dataclass"
    assert dottedName(ast.parse("Protocol[T]", mode="eval").body) == "Protocol"
    assert dottedName(ast.parse("f().x", mode="eval").body) == "f.x"
    assert isStubBody(ast.parse("'doc'\npass\n...").body)
    assert not isStubBody(ast.parse("return 1").body)
