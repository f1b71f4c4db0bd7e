"""
Probe construction and the sequence rewrite.

Every instrumented node is rewritten by `sequence`, which evaluates a probe
call before the original code:

- expressions become ``(probe, expr)[1]``
- statements and statement lists become ``[probe, *statements]``

The probe is ``_pycover_invoker.invoked(<id>, <data_dir>)``. Generated nodes
are flagged with ``_pycover_probe`` so later traversals leave them alone.
"""

import ast

INVOKER_MODULE = "pycover.runtime.invoker"
INVOKER_ALIAS = "_pycover_invoker"
INVOKER_FUNCTION = "invoked"

PROBE_ATTR = "_pycover_probe"


def markProbe(node):
    setattr(node, PROBE_ATTR, True)
    return node


def isProbe(node):
    return getattr(node, PROBE_ATTR, False)


def probe_call(statement_id, data_dir, origin=None):
    """Build the call reporting `statement_id`, positioned at `origin`."""
    call = ast.Call(
        func=ast.Attribute(
            value=ast.Name(id=INVOKER_ALIAS, ctx=ast.Load()),
            attr=INVOKER_FUNCTION,
            ctx=ast.Load(),
        ),
        args=[ast.Constant(value=statement_id), ast.Constant(value=str(data_dir))],
        keywords=[],
    )
    if origin is not None:
        copyLocationDeep(call, origin)
    return markProbe(call)


def copyLocationDeep(node, origin):
    for child in ast.walk(node):
        if "lineno" in child._attributes:
            ast.copy_location(child, origin)
    return node


def sequence(probe, node):
    """Evaluate `probe`, then `node`, keeping the value of `node`.

    Args:
        probe: Call expression built by `probe_call`
        node: Expression, statement or list of statements

    Returns:
        An expression for expression input, a list of statements otherwise
    """
    if isinstance(node, list) or isinstance(node, ast.stmt):
        statements = node if isinstance(node, list) else [node]
        origin = statements[0] if statements else probe
        probeStatement = markProbe(ast.copy_location(ast.Expr(value=probe), origin))
        return [probeStatement] + statements

    pair = ast.Tuple(elts=[probe, node], ctx=ast.Load())
    wrapped = ast.Subscript(value=pair, slice=ast.Constant(value=1), ctx=ast.Load())
    ast.copy_location(pair, node)
    ast.copy_location(wrapped.slice, node)
    ast.copy_location(wrapped, node)
    return markProbe(wrapped)


def isDocstring(stmt):
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def importInsertionPoint(body):
    """Index after the module docstring and ``from __future__`` imports."""
    index = 0
    if body and isDocstring(body[0]):
        index = 1
    while index < len(body):
        stmt = body[index]
        if isinstance(stmt, ast.ImportFrom) and stmt.module == "__future__":
            index += 1
        else:
            break
    return index


def insert_invoker_import(module):
    """Insert the invoker import into `module` where the compiler accepts it."""
    node = ast.Import(names=[ast.alias(name=INVOKER_MODULE, asname=INVOKER_ALIAS)])
    index = importInsertionPoint(module.body)
    if index < len(module.body):
        origin = module.body[index]
    elif module.body:
        origin = module.body[-1]
    else:
        origin = None

    if origin is not None:
        copyLocationDeep(node, origin)
    else:
        node.lineno = node.end_lineno = 1
        node.col_offset = node.end_col_offset = 0
        for alias in node.names:
            ast.copy_location(alias, node)
    module.body.insert(index, markProbe(node))
    return node
