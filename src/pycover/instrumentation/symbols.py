"""Symbol table and scope graph construction.

This module implements the naming phase that runs before instrumentation.
It plays the part the symbol and type phases of a compiler play for the
instrumentation pass:

- Scopes: every module, class, function, lambda and comprehension gets a
  `Symbol`, attached to its node as ``_pycover_symbol``
- Scope graph: a networkx DiGraph with an edge from each owner scope to the
  scopes declared directly inside it
- Declarations: names bound in each scope, imports and global/nonlocal
  declarations
- Resolution: classifies a name reference as a local identifier, a member
  of a module or class, an import or a builtin

Only as much structure as the instrumentation needs is recorded; no types are
inferred.
"""

import ast
import builtins
import enum
import logging

import networkx as nx

from pycover.coverage.model import ClassType, EMPTY_PACKAGE, NO_SYMBOL

LOG = logging.getLogger(__name__)

SYMBOL_ATTR = "_pycover_symbol"

ABSTRACT_DECORATORS = frozenset(
    ["abstractmethod", "abstractproperty", "abstractclassmethod", "abstractstaticmethod"]
)
OVERLOAD_DECORATORS = frozenset(["overload"])
RECORD_DECORATORS = frozenset(["dataclass", "s", "attrs", "define", "frozen", "mutable"])
RECORD_BASES = frozenset(["NamedTuple", "TypedDict"])
TRAIT_BASES = frozenset(["Protocol", "ABC"])
TRAIT_METACLASSES = frozenset(["ABCMeta"])

# Implicit module attributes; never user bindings.
MODULE_DUNDERS = frozenset(
    ["__name__", "__file__", "__doc__", "__package__", "__spec__", "__loader__",
     "__builtins__", "__path__", "__cached__", "__annotations__", "__dict__"]
)

COMPREHENSION_NAMES = {
    ast.ListComp: "<listcomp>",
    ast.SetComp: "<setcomp>",
    ast.DictComp: "<dictcomp>",
    ast.GeneratorExp: "<genexpr>",
}


class SymbolKind(enum.Enum):
    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"
    LAMBDA = "lambda"
    COMPREHENSION = "comprehension"


class Resolution(enum.Enum):
    """How a name reference is bound."""
    LOCAL = "local"
    MEMBER = "member"
    IMPORT = "import"
    BUILTIN = "builtin"


def dottedName(node):
    """Dotted name of a Name/Attribute chain, ignoring calls and subscripts.

    Example:
        ``abc.abstractmethod`` -> "abc.abstractmethod"
        ``dataclass(frozen=True)`` -> "dataclass"
        ``Protocol[T]`` -> "Protocol"
    """
    if isinstance(node, (ast.Call, ast.Subscript)):
        return dottedName(node.func if isinstance(node, ast.Call) else node.value)
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = dottedName(node.value)
        return "%s.%s" % (base, node.attr) if base else None
    return None


def lastName(node):
    name = dottedName(node)
    return name.rpartition(".")[2] if name else None


def isStubBody(body):
    """True for bodies made only of a docstring, ``...`` and ``pass``."""
    for stmt in body:
        if isinstance(stmt, ast.Pass):
            continue
        if isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant):
            if stmt.value.value is Ellipsis or isinstance(stmt.value.value, str):
                continue
        return False
    return True


class Symbol(object):
    """
    A declaration scope.

    Attributes:
        name: Simple name ("<lambda>" and "<listcomp>" style for anonymous scopes)
        kind: SymbolKind of the declaration
        owner: Enclosing Symbol, None for the module
        node: AST node declaring the scope
        full_name: Dotted qualified name, following ``__qualname__`` rules
        class_type: ClassType for modules and classes, None otherwise
        is_abstract: Function is declared abstract
        is_overload: Function is a typing.overload declaration
        is_stub: Function is a body-less protocol member
        is_record: Class generates its own initializer from field declarations
        declared: Names bound in this scope (imports excluded)
        imports: Mapping of names bound by imports to their dotted targets
        globals: Names declared ``global`` in this scope
        nonlocals: Names declared ``nonlocal`` in this scope
    """
    __slots__ = (
        "name", "kind", "owner", "node", "full_name", "class_type",
        "is_abstract", "is_overload", "is_stub", "is_record",
        "declared", "imports", "globals", "nonlocals", "package",
    )

    def __init__(self, name, kind, owner, node):
        self.name = name
        self.kind = kind
        self.owner = owner
        self.node = node
        self.class_type = None
        self.is_abstract = False
        self.is_overload = False
        self.is_stub = False
        self.is_record = False
        self.declared = set()
        self.imports = {}
        self.globals = set()
        self.nonlocals = set()
        self.package = owner.package if owner is not None else EMPTY_PACKAGE

        if owner is None:
            self.full_name = name
        elif owner.is_function_scope:
            self.full_name = "%s.<locals>.%s" % (owner.full_name, name)
        else:
            self.full_name = "%s.%s" % (owner.full_name, name)

    @property
    def is_function_scope(self):
        return self.kind in (SymbolKind.FUNCTION, SymbolKind.LAMBDA, SymbolKind.COMPREHENSION)

    @property
    def is_class_like(self):
        return self.kind in (SymbolKind.MODULE, SymbolKind.CLASS)

    @property
    def is_deferred(self):
        return self.is_abstract or self.is_overload or self.is_stub

    @property
    def module(self):
        symbol = self
        while symbol.owner is not None:
            symbol = symbol.owner
        return symbol

    def binds(self, name):
        return name in self.declared or name in self.imports

    def __repr__(self):
        return "Symbol(%s %s)" % (self.kind.value, self.full_name)


def symbolOf(node):
    return getattr(node, SYMBOL_ATTR, None)


class SymbolTable(object):
    """Symbols of one compilation unit and the scope graph linking them."""

    def __init__(self, module):
        self.module = module
        self.graph = nx.DiGraph()
        self.graph.add_node(module)

    def add(self, symbol):
        self.graph.add_node(symbol)
        if symbol.owner is not None:
            self.graph.add_edge(symbol.owner, symbol)

    @property
    def symbols(self):
        return list(nx.dfs_preorder_nodes(self.graph, self.module))

    def children(self, symbol):
        return list(self.graph.successors(symbol))

    def nested(self, symbol):
        """Every scope declared, at any depth, inside `symbol`."""
        return nx.descendants(self.graph, symbol)

    def ownerPath(self, symbol):
        """Scopes from the module down to `symbol`, both included."""
        return nx.shortest_path(self.graph, self.module, symbol)

    def lookup(self, full_name):
        for symbol in self.graph.nodes:
            if symbol.full_name == full_name:
                return symbol
        return None

    def resolve(self, scope, name):
        """
        Classify a load of `name` occurring in `scope`.

        Follows Python's scoping rules: function scopes bind their assigned
        names locally unless declared global or nonlocal, and class scopes
        are invisible to the functions nested in them.

        Returns:
            (Resolution, Symbol) pair; the symbol is the scope that binds the
            name, or None for builtins and unresolved names.
        """
        if name in scope.globals:
            return self._resolveInModule(name)

        if scope.is_function_scope:
            if name in scope.nonlocals:
                return self._resolveEnclosing(scope.owner, name)
            if scope.binds(name):
                return Resolution.LOCAL, scope
        elif scope.kind is SymbolKind.CLASS:
            if name in scope.declared:
                return Resolution.MEMBER, scope
            if name in scope.imports:
                return Resolution.IMPORT, scope
        else:
            return self._resolveInModule(name)

        return self._resolveEnclosing(scope.owner, name)

    def _resolveEnclosing(self, scope, name):
        while scope is not None and scope.kind is not SymbolKind.MODULE:
            if scope.is_function_scope and (scope.binds(name) or name in scope.nonlocals):
                return Resolution.LOCAL, scope
            scope = scope.owner
        return self._resolveInModule(name)

    def _resolveInModule(self, name):
        module = self.module
        if name in module.declared:
            return Resolution.MEMBER, module
        if name in module.imports:
            return Resolution.IMPORT, module
        return Resolution.BUILTIN, None

    def isMemberReference(self, scope, node):
        """True for Name loads that read a module or class binding."""
        if not isinstance(node, ast.Name) or not isinstance(node.ctx, ast.Load):
            return False
        resolution, _ = self.resolve(scope, node.id)
        return resolution is Resolution.MEMBER

    def nameSymbol(self, scope, name):
        resolution, owner = self.resolve(scope, name)
        if resolution is Resolution.IMPORT:
            return owner.imports[name]
        if resolution is Resolution.BUILTIN:
            if name in MODULE_DUNDERS:
                return "%s.%s" % (self.module.full_name, name)
            if hasattr(builtins, name):
                return "builtins.%s" % name
            return NO_SYMBOL
        return "%s.%s" % (owner.full_name, name)

    def symbol_name(self, scope, node):
        """Fully qualified name of the symbol `node` denotes, or NO_SYMBOL."""
        if isinstance(node, ast.Name):
            return self.nameSymbol(scope, node.id)
        if isinstance(node, ast.Attribute):
            base = self.symbol_name(scope, node.value)
            if base == NO_SYMBOL:
                return NO_SYMBOL
            return "%s.%s" % (base, node.attr)
        if isinstance(node, ast.Call):
            return self.symbol_name(scope, node.func)
        if isinstance(node, ast.Subscript):
            return "operator.getitem"
        if isinstance(node, ast.BinOp):
            return OPERATOR_SYMBOLS.get(type(node.op), NO_SYMBOL)
        if isinstance(node, ast.UnaryOp):
            return OPERATOR_SYMBOLS.get(type(node.op), NO_SYMBOL)
        if isinstance(node, ast.Compare) and len(node.ops) == 1:
            return OPERATOR_SYMBOLS.get(type(node.ops[0]), NO_SYMBOL)
        symbol = symbolOf(node)
        if symbol is not None:
            return symbol.full_name
        return NO_SYMBOL


OPERATOR_SYMBOLS = {
    ast.Add: "operator.add",
    ast.Sub: "operator.sub",
    ast.Mult: "operator.mul",
    ast.MatMult: "operator.matmul",
    ast.Div: "operator.truediv",
    ast.FloorDiv: "operator.floordiv",
    ast.Mod: "operator.mod",
    ast.Pow: "operator.pow",
    ast.LShift: "operator.lshift",
    ast.RShift: "operator.rshift",
    ast.BitOr: "operator.or_",
    ast.BitXor: "operator.xor",
    ast.BitAnd: "operator.and_",
    ast.UAdd: "operator.pos",
    ast.USub: "operator.neg",
    ast.Not: "operator.not_",
    ast.Invert: "operator.invert",
    ast.Eq: "operator.eq",
    ast.NotEq: "operator.ne",
    ast.Lt: "operator.lt",
    ast.LtE: "operator.le",
    ast.Gt: "operator.gt",
    ast.GtE: "operator.ge",
    ast.Is: "operator.is_",
    ast.IsNot: "operator.is_not",
    ast.In: "operator.contains",
    ast.NotIn: "operator.contains",
}


class SymbolTableBuilder(ast.NodeVisitor):
    """Builds the SymbolTable of a module.

    Traverses the module once, creating a Symbol for every scope and
    recording the names bound in it. Expressions evaluated in the enclosing
    scope (decorators, defaults, base classes, the first comprehension
    iterable) are visited before the new scope is entered.
    """

    def __init__(self, module_name, is_package=False):
        self.module_name = module_name
        self.is_package = is_package
        self.table = None
        self.scope = None

    def build(self, tree):
        module = Symbol(self.module_name, SymbolKind.MODULE, None, tree)
        module.class_type = ClassType.OBJECT
        if self.is_package:
            module.package = self.module_name
        else:
            module.package = self.module_name.rpartition(".")[0] or EMPTY_PACKAGE
        setattr(tree, SYMBOL_ATTR, module)

        self.table = SymbolTable(module)
        self.scope = module
        for stmt in getattr(tree, "body", ()):
            self.visit(stmt)
        return self.table

    def enter(self, name, kind, node):
        symbol = Symbol(name, kind, self.scope, node)
        setattr(node, SYMBOL_ATTR, symbol)
        self.table.add(symbol)
        return symbol

    def visitScope(self, symbol, nodes):
        saved = self.scope
        self.scope = symbol
        try:
            for node in nodes:
                if node is not None:
                    self.visit(node)
        finally:
            self.scope = saved

    def declare(self, name):
        self.scope.declared.add(name)

    def declareArguments(self, symbol, args):
        for arg in args.posonlyargs + args.args + args.kwonlyargs:
            symbol.declared.add(arg.arg)
        if args.vararg is not None:
            symbol.declared.add(args.vararg.arg)
        if args.kwarg is not None:
            symbol.declared.add(args.kwarg.arg)

    def visitArgumentDefaults(self, args):
        for default in args.defaults:
            self.visit(default)
        for default in args.kw_defaults:
            if default is not None:
                self.visit(default)
        for arg in args.posonlyargs + args.args + args.kwonlyargs:
            if arg.annotation is not None:
                self.visit(arg.annotation)

    def visit_FunctionDef(self, node):
        self.declare(node.name)
        for decorator in node.decorator_list:
            self.visit(decorator)
        self.visitArgumentDefaults(node.args)
        if node.returns is not None:
            self.visit(node.returns)

        symbol = self.enter(node.name, SymbolKind.FUNCTION, node)
        decorators = set(lastName(d) for d in node.decorator_list)
        symbol.is_abstract = bool(decorators & ABSTRACT_DECORATORS)
        symbol.is_overload = bool(decorators & OVERLOAD_DECORATORS)
        owner = symbol.owner
        symbol.is_stub = (
            owner.kind is SymbolKind.CLASS
            and owner.class_type is ClassType.TRAIT
            and isStubBody(node.body)
        )
        self.declareArguments(symbol, node.args)
        self.visitScope(symbol, node.body)

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_ClassDef(self, node):
        self.declare(node.name)
        for expr in node.decorator_list + node.bases + [k.value for k in node.keywords]:
            self.visit(expr)

        symbol = self.enter(node.name, SymbolKind.CLASS, node)
        bases = set(lastName(b) for b in node.bases)
        metaclasses = set(lastName(k.value) for k in node.keywords if k.arg == "metaclass")
        decorators = set(lastName(d) for d in node.decorator_list)

        if bases & TRAIT_BASES or metaclasses & TRAIT_METACLASSES:
            symbol.class_type = ClassType.TRAIT
        else:
            symbol.class_type = ClassType.CLASS
        symbol.is_record = bool(bases & RECORD_BASES or decorators & RECORD_DECORATORS)
        self.visitScope(symbol, node.body)

    def visit_Lambda(self, node):
        self.visitArgumentDefaults(node.args)
        symbol = self.enter("<lambda>", SymbolKind.LAMBDA, node)
        self.declareArguments(symbol, node.args)
        self.visitScope(symbol, [node.body])

    def visitComprehension(self, node):
        first, rest = node.generators[0], node.generators[1:]
        self.visit(first.iter)

        symbol = self.enter(COMPREHENSION_NAMES[type(node)], SymbolKind.COMPREHENSION, node)
        saved = self.scope
        self.scope = symbol
        try:
            self.visit(first.target)
            for cond in first.ifs:
                self.visit(cond)
            for generator in rest:
                self.visit(generator)
            if isinstance(node, ast.DictComp):
                self.visit(node.key)
                self.visit(node.value)
            else:
                self.visit(node.elt)
        finally:
            self.scope = saved

    visit_ListComp = visitComprehension
    visit_SetComp = visitComprehension
    visit_DictComp = visitComprehension
    visit_GeneratorExp = visitComprehension

    def visit_Name(self, node):
        if isinstance(node.ctx, (ast.Store, ast.Del)):
            self.declare(node.id)

    def visit_NamedExpr(self, node):
        # Assignment expressions bind in the nearest non-comprehension scope.
        scope = self.scope
        while scope.kind is SymbolKind.COMPREHENSION:
            scope = scope.owner
        scope.declared.add(node.target.id)
        self.visit(node.value)

    def visit_Global(self, node):
        self.scope.globals.update(node.names)
        self.table.module.declared.update(node.names)

    def visit_Nonlocal(self, node):
        self.scope.nonlocals.update(node.names)

    def visit_Import(self, node):
        for alias in node.names:
            if alias.asname is not None:
                self.scope.imports[alias.asname] = alias.name
            else:
                top = alias.name.partition(".")[0]
                self.scope.imports[top] = top

    def visit_ImportFrom(self, node):
        module = "." * node.level + (node.module or "")
        for alias in node.names:
            if alias.name == "*":
                continue
            if module.endswith("."):
                target = module + alias.name
            else:
                target = "%s.%s" % (module, alias.name)
            self.scope.imports[alias.asname or alias.name] = target

    def visit_ExceptHandler(self, node):
        if node.type is not None:
            self.visit(node.type)
        if node.name:
            self.declare(node.name)
        for stmt in node.body:
            self.visit(stmt)

    def visit_MatchAs(self, node):
        if node.name:
            self.declare(node.name)
        if node.pattern is not None:
            self.visit(node.pattern)

    def visit_MatchStar(self, node):
        if node.name:
            self.declare(node.name)

    def visit_MatchMapping(self, node):
        if node.rest:
            self.declare(node.rest)
        self.generic_visit(node)


def buildSymbolTable(tree, module_name, is_package=False):
    """Run the naming phase over a module tree.

    Args:
        tree: ast.Module of the compilation unit
        module_name: Dotted name of the module
        is_package: True when the unit is a package ``__init__`` module

    Returns:
        SymbolTable of the unit
    """
    table = SymbolTableBuilder(module_name, is_package).build(tree)
    LOG.debug("%s: %d scopes", module_name, table.graph.number_of_nodes())
    return table
