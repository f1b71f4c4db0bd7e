"""
Source origin tracking for AST nodes.

This module provides utilities for tracking and formatting the source
location (file, line, column) and context (name) of AST nodes, used when
reporting diagnostics about nodes the instrumentation could not handle.
"""

from collections import namedtuple


def originString(origin):
    """Format an Origin object as a human-readable string.

    Args:
        origin: Origin object, or None.

    Returns:
        Formatted string like 'File "file.py", line 10:5 in function_name'
        or "<unknown origin>" if origin is None.
    """
    if origin is None:
        return "<unknown origin>"

    parts = []
    if origin.filename:
        parts.append('File "%s"' % origin.filename)

    if origin.lineno is not None and origin.lineno >= 0:
        if origin.col is not None and origin.col >= 0:
            parts.append("line %d:%d" % (origin.lineno, origin.col))
        else:
            parts.append("line %d" % origin.lineno)

    s = ", ".join(parts)
    if origin.name:
        s = "%s in %s" % (s, origin.name) if s else "in %s" % origin.name
    return s


class Origin(namedtuple("Origin", "name filename lineno col")):
    """Source origin of a node.

    Fields:
        name: Contextual name (node kind, function or class name)
        filename: Source filename
        lineno: Line number (1-indexed, or None if unknown)
        col: Column number (0-indexed, or None if unknown)
    """
    __slots__ = ()

    def originString(self):
        return originString(self)


def originOf(node, filename, name=None):
    """Build the Origin of an AST node, tolerating nodes without positions."""
    if name is None:
        name = type(node).__name__
    return Origin(
        name,
        filename,
        getattr(node, "lineno", None),
        getattr(node, "col_offset", None),
    )
