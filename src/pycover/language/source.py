"""
Source text of a compilation unit.

AST positions count columns in UTF-8 bytes; statements record character
offsets into the decoded text. `SourceText` converts between the two and
extracts the text of a node.
"""

import ast
import bisect
import io

from pycover.coverage.model import UNKNOWN


class SourceText(object):
    __slots__ = "path", "text", "lines", "lineStarts"

    def __init__(self, path, text):
        self.path = path
        self.text = text
        # Line ends as ast counts them: \n, \r\n and \r only.
        self.lines = list(io.StringIO(text, newline=""))

        self.lineStarts = []
        offset = 0
        for line in self.lines:
            self.lineStarts.append(offset)
            offset += len(line)

    def offset(self, lineno, col):
        """Character offset of the byte column `col` on 1-based line `lineno`."""
        if lineno is None or col is None or not (1 <= lineno <= len(self.lines)):
            return UNKNOWN
        line = self.lines[lineno - 1]
        chars = len(line.encode("utf-8")[:col].decode("utf-8", errors="replace"))
        return self.lineStarts[lineno - 1] + chars

    def lineOf(self, offset):
        """1-based line containing the character `offset`."""
        if offset < 0:
            return UNKNOWN
        return bisect.bisect_right(self.lineStarts, offset)

    def span(self, first, last=None):
        """(start, end) offsets covering `first` through `last` (inclusive)."""
        if last is None:
            last = first
        start = self.offset(getattr(first, "lineno", None), getattr(first, "col_offset", None))
        end = self.offset(getattr(last, "end_lineno", None), getattr(last, "end_col_offset", None))
        return start, end

    def segment(self, node):
        """Source text of `node`, or its unparsed form when the text is unavailable."""
        text = None
        if getattr(node, "end_lineno", None) is not None:
            text = ast.get_source_segment(self.text, node)
        if text is None:
            try:
                text = ast.unparse(node)
            except (AttributeError, ValueError, TypeError):
                text = ""
        return text

    def segmentBetween(self, start, end):
        if start == UNKNOWN or end == UNKNOWN:
            return ""
        return self.text[start:end]
