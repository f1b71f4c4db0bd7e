"""
Pre-instrumentation phase.

Removes ``typing.Final`` qualifiers from annotated bindings so that the
instrumentation may wrap their right-hand sides:

    x: Final[int] = 3          ->  x: int = 3
    x: Final = 3               ->  x = 3
    x: ClassVar[Final[int]] = 3 -> x: ClassVar[int] = 3

Nothing else in the tree changes.
"""

import ast
import logging

LOG = logging.getLogger(__name__)


def isFinal(annotation):
    if isinstance(annotation, ast.Name):
        return annotation.id == "Final"
    if isinstance(annotation, ast.Attribute):
        return annotation.attr == "Final"
    return False


def stripFinal(annotation):
    """Annotation with its Final qualifier removed, or None for a bare ``Final``.

    Returns the annotation itself when it carries no qualifier.
    """
    if isFinal(annotation):
        return None
    if isinstance(annotation, ast.Subscript):
        if isFinal(annotation.value):
            return annotation.slice
        if isinstance(annotation.value, (ast.Name, ast.Attribute)) and isinstance(annotation.slice, ast.Subscript):
            inner = annotation.slice
            if isFinal(inner.value):
                return ast.copy_location(
                    ast.Subscript(value=annotation.value, slice=inner.slice, ctx=annotation.ctx),
                    annotation,
                )
    return annotation


class FinalStripper(ast.NodeTransformer):
    def __init__(self):
        self.stripped = 0

    def visit_AnnAssign(self, node):
        annotation = stripFinal(node.annotation)
        if annotation is node.annotation:
            return node

        if annotation is None:
            if node.value is None:
                # A bare declaration has no value to protect.
                return node
            self.stripped += 1
            return ast.copy_location(ast.Assign(targets=[node.target], value=node.value), node)

        self.stripped += 1
        node.annotation = annotation
        return node


def stripFinalQualifiers(tree):
    """Run the pre-instrumentation phase over `tree` in place.

    Returns:
        The number of bindings rewritten
    """
    stripper = FinalStripper()
    stripper.visit(tree)
    if stripper.stripped:
        LOG.debug("stripped %d Final qualifiers", stripper.stripped)
    return stripper.stripped
