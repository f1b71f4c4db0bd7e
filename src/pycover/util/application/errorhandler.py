"""
Error handling and reporting for compilation.

This module provides error collection, reporting, and management utilities
for the compiler, including support for error scoping and deferred error
display.
"""

import sys
import threading
from collections import namedtuple

from . import compilerexceptions

# One reported diagnostic.
Diagnostic = namedtuple("Diagnostic", "severity classification message trace")


class ErrorScopeManager(object):
    """Context manager for error scoping.

    Allows isolating error counts within a scope, useful for tracking errors
    in specific compilation phases. Errors are accumulated hierarchically.

    Example:
        with error_handler.scope():
            # Errors in this block are tracked separately
            error_handler.error(...)
    """

    __slots__ = "handler"

    def __init__(self, handler):
        self.handler = handler

    def __enter__(self):
        self.handler._push()

    def __exit__(self, type, value, tb):
        self.handler._pop()


class ShowStatusManager(object):
    """Context manager for showing compilation status.

    Automatically displays compilation status (success/failure) and error
    counts when exiting the context. Suppresses CompilerAbort exceptions
    if they occur.

    Example:
        with error_handler.statusManager():
            # ... compilation code ...
            pass  # Status printed automatically on exit
    """

    __slots__ = "handler"

    def __init__(self, handler):
        self.handler = handler

    def __enter__(self):
        pass

    def __exit__(self, type, value, tb):
        """Exit status context and show status.

        Returns:
            True if a CompilerAbort was raised (to suppress it), False otherwise.
        """
        self.handler.flush()

        if type is not None:
            self.handler.write("Compilation Aborted - %s" % self.handler.statusString())
            if str(value):
                self.handler.write("\t%s" % value)
        else:
            self.handler.write("Compilation Successful - %s" % self.handler.statusString())

        return type is not None and issubclass(type, compilerexceptions.CompilerAbort)


class ErrorHandler(object):
    """Collects and manages compilation errors and warnings.

    Provides error collection, deferred display, and hierarchical error
    scoping. Supports both immediate and deferred error reporting modes.
    Reporting methods may be called from several unit workers at once.

    Attributes:
        stack: Stack for nested error scopes.
        errorCount: Number of errors collected in the current scope.
        warningCount: Number of warnings collected in the current scope.
        defered: If True, buffer diagnostics for later display.
        buffer: Buffered Diagnostic records.
        diagnostics: Every Diagnostic reported, in order.
        out: Stream diagnostics are written to.
    """

    def __init__(self, out=None):
        self.stack = []

        self.errorCount = 0
        self.warningCount = 0

        self.defered = True
        self.buffer = []
        self.diagnostics = []

        self.out = out if out is not None else sys.stdout
        self._lock = threading.RLock()

    def _report(self, severity, classification, message, trace):
        diagnostic = Diagnostic(severity, classification, message, tuple(trace or ()))
        with self._lock:
            self.diagnostics.append(diagnostic)
            if self.defered:
                self.buffer.append(diagnostic)
            else:
                self.displayError(diagnostic)

    def error(self, classification, message, trace=()):
        """Record a compilation error.

        Args:
            classification: Error classification/category.
            message: Error message.
            trace: Sequence of Origin objects representing the error trace.
        """
        self._report("error", classification, message, trace)
        with self._lock:
            self.errorCount += 1

    def warn(self, classification, message, trace=()):
        """Record a compilation warning.

        Args:
            classification: Warning classification/category.
            message: Warning message.
            trace: Sequence of Origin objects representing the warning trace.
        """
        self._report("warning", classification, message, trace)
        with self._lock:
            self.warningCount += 1

    def write(self, line):
        self.out.write(line)
        self.out.write("\n")

    def displayError(self, diagnostic):
        """Display a single error or warning."""
        self.write("%s: %s" % (diagnostic.classification, diagnostic.message))
        for origin in diagnostic.trace:
            if origin is None:
                self.write("<unknown origin>")
            else:
                self.write(origin.originString())

    def warnings(self):
        return [d for d in self.diagnostics if d.severity == "warning"]

    def errors(self):
        return [d for d in self.diagnostics if d.severity == "error"]

    def statusString(self):
        """Get formatted status string.

        Returns:
            String describing error and warning counts.
        """
        return "%d errors, %d warnings" % (self.errorCount, self.warningCount)

    def finalize(self, exception=compilerexceptions.CompilerAbort):
        """Raise `exception` if any errors were collected.

        Raises:
            CompilerAbort: If any errors were collected.
        """
        if self.errorCount > 0:
            raise exception(self.statusString())

    def flush(self):
        """Flush buffered errors and warnings to output."""
        with self._lock:
            buffered, self.buffer = self.buffer, []
        for diagnostic in buffered:
            self.displayError(diagnostic)

    def _push(self):
        """Push a new error scope onto the stack.

        Saves current error/warning counts and resets them for the new scope.
        """
        self.stack.append((self.errorCount, self.warningCount))
        self.errorCount = 0
        self.warningCount = 0

    def _pop(self):
        """Pop an error scope from the stack.

        Restores error/warning counts from the previous scope and adds
        current counts to them.
        """
        errorCount, warningCount = self.stack.pop()
        self.errorCount += errorCount
        self.warningCount += warningCount

    def scope(self):
        return ErrorScopeManager(self)

    def statusManager(self):
        return ShowStatusManager(self)
