import ast
import io
import os
import unittest

from pycover.coverage.model import UNKNOWN
from pycover.language.origin import Origin, originOf, originString
from pycover.language.source import SourceText
from pycover.util.application.compilerexceptions import CompilerAbort
from pycover.util.application.console import Console, elapsedTime
from pycover.util.application.errorhandler import ErrorHandler
from pycover.util.io.filesystem import moduleNameForPath
from pycover.util.typedispatch import *


class TestTypeDisbatch(unittest.TestCase):
    def testTD(self):
        def visitNumber(self, node):
            return "number"

        def visitDefault(self, node):
            return "default"

        class FooBar(TypeDispatcher):
            num = dispatch(int)(visitNumber)
            default = defaultdispatch(visitDefault)

        self.assertEqual(FooBar.__dict__["num"], visitNumber)
        self.assertEqual(FooBar.__dict__["default"], visitDefault)

        foo = FooBar()

        self.assertEqual(foo(1), "number")
        self.assertEqual(foo(2**70), "number")
        self.assertEqual(foo(True), "number")
        self.assertEqual(foo(1.0), "default")

        self.assertEqual(FooBar.handledTypes(), frozenset([int]))
        self.assertIs(FooBar.handlerFor(bool), visitNumber)
        self.assertIs(FooBar.handlerFor(str), visitDefault)

    def testOptionalTypes(self):
        class Optional(TypeDispatcher):
            @dispatch(int, None, [str, None])
            def visitKnown(self, node):
                return "known"

            @defaultdispatch
            def visitDefault(self, node):
                return "default"

        self.assertEqual(Optional.handledTypes(), frozenset([int, str]))
        self.assertEqual(Optional()("x"), "known")

    def testDeclarationErrors(self):
        with self.assertRaises(TypeDispatchDeclarationError):
            class Twice(TypeDispatcher):
                @dispatch(int)
                def visitA(self, node):
                    return node

                @dispatch(int)
                def visitB(self, node):
                    return node

                @defaultdispatch
                def visitDefault(self, node):
                    return node

        with self.assertRaises(TypeDispatchDeclarationError):
            dispatch("int")(lambda self, node: node)

    def testInheritedDefaultRaises(self):
        class OnlyInts(TypeDispatcher):
            @dispatch(int)
            def visitInt(self, node):
                return node

        self.assertEqual(OnlyInts()(3), 3)
        with self.assertRaises(TypeDispatchError):
            OnlyInts()("3")


class TestConsole(unittest.TestCase):
    def testScopesAndReports(self):
        out = io.StringIO()
        console = Console(out=out)

        with console.scope("namer"):
            console.report("Begin")
            console.output("detail")
            console.verbose_output("hidden")

        lines = out.getvalue().splitlines()
        self.assertEqual(lines[0], "begin [ namer ]")
        self.assertEqual(lines[1], "[pycover]: Begin")
        self.assertEqual(lines[2], "\tdetail")
        self.assertTrue(lines[3].startswith("end   [ namer ]"))
        self.assertEqual(len(lines), 4)
        self.assertIs(console.current, console.root)

    def testElapsedTime(self):
        self.assertEqual(elapsedTime(0.05).strip(), "50 ms")
        self.assertTrue(elapsedTime(125.5).endswith(" m"))


class TestErrorHandler(unittest.TestCase):
    def testDeferredDiagnostics(self):
        out = io.StringIO()
        errors = ErrorHandler(out)

        errors.warn("instrumentation", "odd node", [Origin("f", "m.py", 3, 4)])
        self.assertEqual(out.getvalue(), "")

        errors.flush()
        self.assertEqual(out.getvalue(), 'instrumentation: odd node\nFile "m.py", line 3:4 in f\n')
        self.assertEqual(errors.statusString(), "0 errors, 1 warnings")
        errors.finalize()

    def testFinalizeRaises(self):
        errors = ErrorHandler(io.StringIO())
        errors.error("configuration", "Bad option: 'x'")

        with self.assertRaises(CompilerAbort):
            errors.finalize()
        with self.assertRaises(KeyError):
            errors.finalize(KeyError)

    def testStatusManagerSuppressesAborts(self):
        out = io.StringIO()
        errors = ErrorHandler(out)

        with errors.statusManager():
            errors.error("syntax", "invalid syntax")
            errors.finalize()

        self.assertIn("Compilation Aborted - 1 errors, 0 warnings", out.getvalue())

        with self.assertRaises(ValueError):
            with errors.statusManager():
                raise ValueError("not an abort")

    def testScopes(self):
        errors = ErrorHandler(io.StringIO())
        errors.warn("a", "outer")

        with errors.scope():
            errors.error("b", "inner")
            self.assertEqual(errors.errorCount, 1)
            self.assertEqual(errors.warningCount, 0)

        self.assertEqual(errors.statusString(), "1 errors, 1 warnings")
        self.assertEqual([d.message for d in errors.errors()], ["inner"])


class TestOrigin(unittest.TestCase):
    def testOriginString(self):
        self.assertEqual(originString(None), "<unknown origin>")
        self.assertEqual(Origin("f", "m.py", 2, None).originString(), 'File "m.py", line 2 in f')
        self.assertEqual(Origin("f", None, None, None).originString(), "in f")

    def testOriginOfNodeWithoutPosition(self):
        origin = originOf(ast.Constant(value=1), "m.py")

        self.assertEqual(origin, Origin("Constant", "m.py", None, None))


class TestSourceText(unittest.TestCase):
    def testUnicodeOffsets(self):
        text = "s = 'héllo'\nt = s + 'ü'\n"
        source = SourceText("m.py", text)
        tree = ast.parse(text)
        binop = tree.body[1].value

        start, end = source.span(binop)
        self.assertEqual(text[start:end], "s + 'ü'")
        self.assertEqual(source.segment(binop), "s + 'ü'")
        self.assertEqual(source.lineOf(start), 2)

    def testMultiLineSpan(self):
        text = "if x:\n    a = 1\n    b = 2\n"
        source = SourceText("m.py", text)
        body = ast.parse(text).body[0].body

        start, end = source.span(body[0], body[-1])
        self.assertEqual(source.segmentBetween(start, end), "a = 1\n    b = 2")

    def testOnlyNewlinesEndLines(self):
        text = "x = 1\n\x0c\ny = 'a\u2028b'\r\nz = 'after'\n"
        source = SourceText("m.py", text)
        tree = ast.parse(text)

        self.assertEqual(len(source.lines), 4)
        for stmt, expected in zip(tree.body, ["1", "'a\u2028b'", "'after'"]):
            start, end = source.span(stmt.value)
            self.assertEqual(source.segmentBetween(start, end), expected)
        self.assertEqual(source.lineOf(text.index("z")), 4)

    def testUnknownPositions(self):
        source = SourceText("m.py", "x = 1\n")

        self.assertEqual(source.offset(None, 0), UNKNOWN)
        self.assertEqual(source.offset(9, 0), UNKNOWN)
        self.assertEqual(source.lineOf(UNKNOWN), UNKNOWN)
        self.assertEqual(source.segmentBetween(UNKNOWN, 3), "")
        self.assertEqual(source.segment(ast.Name(id="x", ctx=ast.Load())), "x")


class TestModuleNames(unittest.TestCase):
    def testModuleNameForPath(self):
        root = os.path.join("src")
        self.assertEqual(moduleNameForPath(os.path.join("src", "app", "util", "io.py"), root), "app.util.io")
        self.assertEqual(moduleNameForPath(os.path.join("src", "app", "__init__.py"), root), "app")
        self.assertEqual(moduleNameForPath(os.path.join("elsewhere", "tool.py"), root), "tool")
        self.assertEqual(moduleNameForPath(os.path.join("scripts", "run.py")), "run")
