"""
Coverage instrumentation transformer.

The transformer walks a named compilation unit once, top-down, and decides
for every node whether it is a countable statement, a structural node to
descend through, or code that must be left exactly as written. Countable
nodes are registered in the coverage model and rewritten with
`sequence.sequence` so that a probe call runs before them.

**Applications:**
Calls, operator applications, subscripts, displays and f-strings are
treated alike. When every argument is a literal or a plain identifier the
whole application is instrumented as one statement. Otherwise each argument
is processed first, the head (callee or receiver) is descended without ever
being instrumented itself, and the rebuilt application is then instrumented.

**Branches:**
The two arms of ``if`` statements and conditional expressions, the body of a
``try`` and its ``finally`` block are registered as branches. An ``if``
without ``else`` gets a probe-only ``else`` arm.

**Declarations:**
Modules and classes rejected by the coverage filter are left untouched with
everything they contain. Functions update the location tracker; abstract,
overload and protocol stub declarations are skipped entirely.
"""

import ast
import contextlib
import logging

from pycover.coverage.filters import Position
from pycover.coverage.model import Statement, UNKNOWN
from pycover.instrumentation.location import LocationTracker
from pycover.instrumentation.sequence import (
    insert_invoker_import, isDocstring, isProbe, probe_call, sequence,
)
from pycover.instrumentation.symbols import SymbolKind, symbolOf
from pycover.language.origin import originOf
from pycover.util.typedispatch import TypeDispatcher, defaultdispatch, dispatch

LOG = logging.getLogger(__name__)

# Node classes that only exist on some interpreter versions.
TryStar = getattr(ast, "TryStar", None)
TypeAlias = getattr(ast, "TypeAlias", None)
TemplateStr = getattr(ast, "TemplateStr", None)
Interpolation = getattr(ast, "Interpolation", None)
type_param = getattr(ast, "type_param", None)


class EndMarker(ast.AST):
    """Zero-width position at the end of a node, used for synthesised arms."""
    _fields = ()
    _attributes = ("lineno", "col_offset", "end_lineno", "end_col_offset")

    def __init__(self, node):
        super().__init__()
        self.lineno = self.end_lineno = node.end_lineno
        self.col_offset = self.end_col_offset = node.end_col_offset


class Transformer(TypeDispatcher):
    """
    Instruments one compilation unit.

    Attributes:
        compiler: CompilerContext holding the coverage registry, id counter,
            filter and error handler shared by the run
        unit: CompilationUnit being instrumented (parsed and named)
        tracker: LocationTracker of the unit
        scope: Symbol of the innermost scope being visited
        registered: Number of statements this transformer registered
    """

    def __init__(self, compiler, unit):
        self.compiler = compiler
        self.unit = unit
        self.source = unit.source
        self.table = unit.symbols
        self.filter = compiler.filter
        self.dataDir = compiler.options.data_dir

        self.tracker = LocationTracker(self.table.module)
        self.scope = self.table.module
        self.registered = 0

    @contextlib.contextmanager
    def enterScope(self, symbol):
        saved = self.scope
        self.scope = symbol
        try:
            yield symbol
        finally:
            self.scope = saved

    ### Instrumentation ###

    def instrument(self, node, branch=False, origin=None, kind=None):
        """
        Register a statement for `node` and rewrite it to report its execution.

        Args:
            node: Expression, statement or (possibly empty) statement list to
                rewrite
            branch: Register the statement as a branch
            origin: Node or statement list whose position and text describe
                the statement. Defaults to `node`.
            kind: Node kind recorded in the statement. Defaults to the class
                name of the origin.

        Returns:
            The rewritten expression or statement list, or `node` unchanged
            when it has no usable position
        """
        if origin is None:
            origin = node
        if isinstance(origin, list):
            first, last = origin[0], origin[-1]
        else:
            first = last = origin
        if kind is None:
            kind = type(first).__name__

        line = getattr(first, "lineno", None)
        if line is None:
            self.compiler.errors.warn(
                "instrumentation",
                "Could not instrument [%s]. No position." % kind,
                [originOf(first, self.unit.path, self.scope.full_name)],
            )
            return node

        start, end = self.source.span(first, last)
        if not self.filter.is_position_included(Position(self.unit.path, line, start, end)):
            return node

        if start != UNKNOWN and end != UNKNOWN:
            text = self.source.segmentBetween(start, end)
        else:
            text = self.source.segment(first)

        if isinstance(origin, list) or isinstance(origin, EndMarker):
            symbol = self.table.symbol_name(self.scope, None)
        else:
            symbol = self.table.symbol_name(self.scope, origin)

        statement = Statement(
            self.unit.path,
            self.tracker.current_location(),
            self.compiler.ids.next_id(),
            start,
            end,
            line,
            text,
            symbol,
            kind,
            branch,
        )
        self.compiler.coverage.add(statement)
        self.registered += 1

        return sequence(probe_call(statement.id, self.dataDir, first), node)

    def instrumentBlock(self, statements, branch=False, kind=None):
        """Process a statement list, then instrument it as one statement."""
        original = list(statements)
        return self.instrument(self.processStatements(statements), branch, original, kind)

    ### Traversal helpers ###

    def processStatements(self, statements):
        result = []
        for stmt in statements:
            processed = self(stmt)
            if isinstance(processed, list):
                result.extend(processed)
            else:
                result.append(processed)
        return result

    def processBody(self, body):
        if body and isDocstring(body[0]):
            return body[:1] + self.processStatements(body[1:])
        return self.processStatements(body)

    def processOptional(self, node):
        if node is None:
            return None
        return self(node)

    def processSlice(self, node):
        # A tuple holding slices is only valid directly inside a subscript.
        if isinstance(node, ast.Tuple) and any(isinstance(e, ast.Slice) for e in node.elts):
            node.elts = [self(e) for e in node.elts]
            return node
        return self(node)

    def isMember(self, node):
        return self.table.isMemberReference(self.scope, node)

    def isConstArg(self, arg):
        """Literal or plain identifier argument."""
        if isinstance(arg, (ast.Starred, ast.keyword, ast.FormattedValue)):
            return self.isConstArg(arg.value)
        if isinstance(arg, ast.Constant):
            return True
        if isinstance(arg, ast.Name):
            return not self.isMember(arg)
        if isinstance(arg, ast.Slice):
            return all(p is None or self.isConstArg(p) for p in (arg.lower, arg.upper, arg.step))
        return False

    def allConstArgs(self, args):
        return all(self.isConstArg(arg) for arg in args)

    def traverseApplication(self, node):
        """Descend into the head of an application without instrumenting it."""
        if isinstance(node, ast.Call) and not isProbe(node):
            node.func = self.traverseApplication(node.func)
            node.args = [self(a) for a in node.args]
            node.keywords = [self(k) for k in node.keywords]
            return node
        if isinstance(node, ast.Attribute):
            node.value = self.traverseApplication(node.value)
            return node
        if isinstance(node, ast.Subscript):
            node.value = self.traverseApplication(node.value)
            node.slice = self.processSlice(node.slice)
            return node
        if isinstance(node, ast.Name):
            return node
        return self(node)

    ### Declarations ###

    @dispatch(ast.Module)
    def visitModule(self, node):
        symbol = symbolOf(node)
        if not self.filter.is_class_included(symbol.full_name):
            LOG.debug("%s excluded from instrumentation", symbol.full_name)
            return node
        with self.tracker.enter_declaration(symbol):
            node.body = self.processBody(node.body)
        return node

    @dispatch(ast.ClassDef)
    def visitClassDef(self, node):
        symbol = symbolOf(node)
        if not self.filter.is_class_included(symbol.full_name):
            LOG.debug("%s excluded from instrumentation with %d nested scopes",
                      symbol.full_name, len(self.table.nested(symbol)))
            return node
        with self.tracker.enter_declaration(symbol), self.enterScope(symbol):
            node.body = self.processBody(node.body)
        return node

    @dispatch(ast.FunctionDef, ast.AsyncFunctionDef)
    def visitFunctionDef(self, node):
        symbol = symbolOf(node)
        if symbol.is_deferred:
            return node
        with self.tracker.enter_declaration(symbol), self.enterScope(symbol):
            node.body = self.processBody(node.body)
        return node

    @dispatch(ast.Lambda)
    def visitLambda(self, node):
        with self.enterScope(symbolOf(node)):
            node.body = self(node.body)
        return node

    ### Statements ###

    @dispatch(ast.Expr)
    def visitExpr(self, node):
        if isProbe(node):
            return node
        node.value = self(node.value)
        return node

    @dispatch(ast.Assign, ast.AugAssign)
    def visitAssign(self, node):
        node.value = self(node.value)
        return node

    @dispatch(ast.AnnAssign)
    def visitAnnAssign(self, node):
        if self.scope.kind is SymbolKind.CLASS and self.scope.is_record:
            # Field declarations of generated initialisers.
            return node
        node.value = self.processOptional(node.value)
        return node

    @dispatch(ast.Return)
    def visitReturn(self, node):
        node.value = self.processOptional(node.value)
        return node

    @dispatch(ast.Raise)
    def visitRaise(self, node):
        return self.instrument(node)

    @dispatch(ast.If)
    def visitIf(self, node):
        node.test = self(node.test)
        node.body = self.instrumentBlock(node.body, branch=True, kind="If")
        if node.orelse:
            node.orelse = self.instrumentBlock(node.orelse, branch=True, kind="If")
        else:
            node.orelse = self.instrument([], branch=True, origin=EndMarker(node), kind="If")
        return node

    @dispatch(ast.For, ast.AsyncFor)
    def visitFor(self, node):
        node.iter = self(node.iter)
        node.body = self.processStatements(node.body)
        node.orelse = self.processStatements(node.orelse)
        return node

    @dispatch(ast.While)
    def visitWhile(self, node):
        node.test = self(node.test)
        node.body = self.processStatements(node.body)
        node.orelse = self.processStatements(node.orelse)
        return node

    @dispatch(ast.With, ast.AsyncWith)
    def visitWith(self, node):
        node.items = [self(item) for item in node.items]
        node.body = self.processStatements(node.body)
        return node

    @dispatch(ast.withitem)
    def visitWithItem(self, node):
        node.context_expr = self(node.context_expr)
        return node

    @dispatch(ast.Match)
    def visitMatch(self, node):
        node.subject = self.instrument(node.subject)
        node.cases = [self(case) for case in node.cases]
        return node

    @dispatch(ast.match_case)
    def visitMatchCase(self, node):
        node.guard = self.processOptional(node.guard)
        node.body = self.instrumentBlock(node.body, kind="match_case")
        return node

    @dispatch(ast.Try, TryStar)
    def visitTry(self, node):
        node.body = self.instrumentBlock(node.body, branch=True, kind=type(node).__name__)
        node.handlers = [self(handler) for handler in node.handlers]
        node.orelse = self.processStatements(node.orelse)
        if node.finalbody:
            node.finalbody = self.instrumentBlock(node.finalbody, branch=True, kind=type(node).__name__)
        return node

    @dispatch(ast.ExceptHandler)
    def visitExceptHandler(self, node):
        node.body = self.instrumentBlock(node.body, kind="ExceptHandler")
        return node

    @dispatch(ast.Assert)
    def visitAssert(self, node):
        node.test = self(node.test)
        node.msg = self.processOptional(node.msg)
        return node

    @dispatch(ast.Delete, ast.Import, ast.ImportFrom, ast.Global, ast.Nonlocal,
              ast.Pass, ast.Break, ast.Continue, TypeAlias)
    def visitUntouchedStatement(self, node):
        return node

    ### Applications ###

    @dispatch(ast.Call)
    def visitCall(self, node):
        if isProbe(node):
            return node
        if self.allConstArgs(node.args + node.keywords):
            return self.instrument(node)
        node.func = self.traverseApplication(node.func)
        node.args = [self(a) for a in node.args]
        node.keywords = [self(k) for k in node.keywords]
        return self.instrument(node)

    @dispatch(ast.BinOp)
    def visitBinOp(self, node):
        if self.allConstArgs([node.right]):
            return self.instrument(node)
        node.left = self.traverseApplication(node.left)
        node.right = self(node.right)
        return self.instrument(node)

    @dispatch(ast.BoolOp)
    def visitBoolOp(self, node):
        head, args = node.values[0], node.values[1:]
        if self.allConstArgs(args):
            return self.instrument(node)
        node.values = [self.traverseApplication(head)] + [self(a) for a in args]
        return self.instrument(node)

    @dispatch(ast.Compare)
    def visitCompare(self, node):
        if self.allConstArgs(node.comparators):
            return self.instrument(node)
        node.left = self.traverseApplication(node.left)
        node.comparators = [self(c) for c in node.comparators]
        return self.instrument(node)

    @dispatch(ast.UnaryOp)
    def visitUnaryOp(self, node):
        return self.instrument(node)

    @dispatch(ast.Subscript)
    def visitSubscript(self, node):
        if isProbe(node) or not isinstance(node.ctx, ast.Load):
            return node
        if self.allConstArgs([node.slice]):
            return self.instrument(node)
        node.value = self.traverseApplication(node.value)
        node.slice = self.processSlice(node.slice)
        return self.instrument(node)

    @dispatch(ast.List, ast.Tuple, ast.Set)
    def visitDisplay(self, node):
        if not isinstance(getattr(node, "ctx", ast.Load()), ast.Load):
            return node
        if self.allConstArgs(node.elts):
            return self.instrument(node)
        node.elts = [self(e) for e in node.elts]
        return self.instrument(node)

    @dispatch(ast.Dict)
    def visitDict(self, node):
        args = [k for k in node.keys if k is not None] + node.values
        if self.allConstArgs(args):
            return self.instrument(node)
        node.keys = [self.processOptional(k) for k in node.keys]
        node.values = [self(v) for v in node.values]
        return self.instrument(node)

    @dispatch(ast.JoinedStr)
    def visitJoinedStr(self, node):
        formatted = [v for v in node.values if isinstance(v, ast.FormattedValue)]
        if self.allConstArgs(formatted):
            return self.instrument(node)
        for value in formatted:
            self(value)
        return self.instrument(node)

    @dispatch(ast.FormattedValue)
    def visitFormattedValue(self, node):
        node.value = self(node.value)
        return node

    @dispatch(TemplateStr)
    def visitTemplateStr(self, node):
        return self.instrument(node)

    @dispatch(ast.ListComp, ast.SetComp, ast.GeneratorExp, ast.DictComp)
    def visitComprehension(self, node):
        first, rest = node.generators[0], node.generators[1:]
        first.iter = self(first.iter)
        with self.enterScope(symbolOf(node)):
            first.ifs = [self(cond) for cond in first.ifs]
            for generator in rest:
                self(generator)
            if isinstance(node, ast.DictComp):
                node.key = self(node.key)
                node.value = self(node.value)
            else:
                node.elt = self(node.elt)
        return self.instrument(node)

    @dispatch(ast.comprehension)
    def visitGenerator(self, node):
        node.iter = self(node.iter)
        node.ifs = [self(cond) for cond in node.ifs]
        return node

    @dispatch(ast.keyword)
    def visitKeyword(self, node):
        node.value = self(node.value)
        return node

    ### Other expressions ###

    @dispatch(ast.IfExp)
    def visitIfExp(self, node):
        node.test = self(node.test)
        node.body = self.instrument(self(node.body), branch=True, origin=node.body)
        node.orelse = self.instrument(self(node.orelse), branch=True, origin=node.orelse)
        return node

    @dispatch(ast.NamedExpr)
    def visitNamedExpr(self, node):
        node.value = self(node.value)
        return node

    @dispatch(ast.Await, ast.Yield, ast.YieldFrom)
    def visitAwait(self, node):
        node.value = self.processOptional(node.value)
        return node

    @dispatch(ast.Starred)
    def visitStarred(self, node):
        if isinstance(node.ctx, ast.Load):
            node.value = self(node.value)
        return node

    @dispatch(ast.Constant)
    def visitConstant(self, node):
        return self.instrument(node)

    @dispatch(ast.Attribute)
    def visitAttribute(self, node):
        if not isinstance(node.ctx, ast.Load):
            return node
        node.value = self.traverseApplication(node.value)
        return self.instrument(node)

    @dispatch(ast.Name)
    def visitName(self, node):
        if self.isMember(node):
            return self.instrument(node)
        return node

    @dispatch(ast.Slice)
    def visitSlice(self, node):
        node.lower = self.processOptional(node.lower)
        node.upper = self.processOptional(node.upper)
        node.step = self.processOptional(node.step)
        return node

    @dispatch(ast.pattern, ast.arguments, ast.arg, ast.alias, Interpolation, type_param)
    def visitUntouched(self, node):
        return node

    @defaultdispatch
    def visitDefault(self, node):
        self.compiler.errors.warn(
            "instrumentation",
            "Unexpected node %s; descending without instrumenting it" % type(node).__name__,
            [originOf(node, self.unit.path, self.scope.full_name)],
        )
        for field, value in ast.iter_fields(node):
            if isinstance(value, list):
                if value and all(isinstance(v, ast.stmt) for v in value):
                    setattr(node, field, self.processStatements(value))
                else:
                    setattr(node, field, [self(v) if isinstance(v, ast.AST) else v for v in value])
            elif isinstance(value, ast.AST):
                setattr(node, field, self(value))
        return node


def instrumentUnit(compiler, unit):
    """Instrument a parsed and named compilation unit in place.

    The invoker import is added only when at least one statement was
    registered.

    Returns:
        The number of statements registered for the unit
    """
    transformer = Transformer(compiler, unit)
    unit.tree = transformer(unit.tree)
    if transformer.registered:
        insert_invoker_import(unit.tree)
    unit.statements = transformer.registered
    LOG.debug("%s: %d statements", unit.path, transformer.registered)
    return transformer.registered
