"""
Console output and timing utilities for compilation phases.

This module provides a hierarchical console output system with timing
capabilities, allowing structured logging of compilation phases with
nested scopes and elapsed time tracking.
"""

import sys
import threading
import time


def elapsedTime(t):
    """
    Format a time duration in seconds as a human-readable string.

    Example:
        elapsedTime(0.05) -> "   50 ms"
        elapsedTime(125.5) -> "2.092 m"
    """
    if t < 1.0:
        return "%5.4g ms" % (t * 1000.0)
    elif t < 60.0:
        return "%5.4g s" % (t)
    elif t < 3600.0:
        return "%5.4g m" % (t / 60.0)
    else:
        return "%5.4g h" % (t / 3600.0)


class Scope(object):
    """Represents a hierarchical scope for timing and logging.

    Attributes:
        parent: Parent scope, or None for root scope.
        name: Name of this scope.
    """

    def __init__(self, parent, name):
        self.parent = parent
        self.name = name
        self._start = None
        self._end = None

    def begin(self):
        self._start = time.perf_counter()

    def end(self):
        self._end = time.perf_counter()

    @property
    def elapsed(self):
        return self._end - self._start

    def path(self):
        """Get the full path from root to this scope.

        Returns:
            Tuple of scope names from root to this scope.
        """
        if self.parent is None:
            return ()
        else:
            return self.parent.path() + (self.name,)

    def child(self, name):
        return Scope(self, name)


class ConsoleScopeManager(object):
    """Context manager for console scopes.

    Example:
        with console.scope("pycover-instrumentation"):
            # ... phase body ...
            pass  # Scope automatically ends here
    """

    __slots__ = "console", "name"

    def __init__(self, console, name):
        self.console = console
        self.name = name

    def __enter__(self):
        self.console.begin(self.name)

    def __exit__(self, type, value, tb):
        self.console.end()


class Console(object):
    """Hierarchical console output with timing and scoping.

    Provides structured console output with nested scopes, timing information,
    and optional verbose mode. Used to report phase progress of the
    instrumentation pipeline.

    Attributes:
        out: Output stream (default: sys.stdout).
        root: Root scope of the hierarchy.
        current: Currently active scope.
        verbose: If True, enable verbose output mode.
        tag: Prefix written in front of `report` lines.
    """

    def __init__(self, out=None, verbose=False, tag="[pycover]"):
        if out is None:
            out = sys.stdout
        self.out = out

        self.root = Scope(None, "root")
        self.current = self.root

        self.verbose = verbose
        self.tag = tag
        self._lock = threading.Lock()

    def path(self):
        """Get formatted path string for current scope.

        Returns:
            String representation of current scope path, e.g., "[ pycover-pre ]".
        """
        return "[ %s ]" % " | ".join(self.current.path())

    def begin(self, name):
        """Begin a new nested scope, start timing and output a begin message."""
        scope = self.current.child(name)
        scope.begin()
        self.current = scope

        self.output("begin %s" % self.path(), 0)

    def end(self):
        """End the current scope and output its elapsed time."""
        self.current.end()
        self.output("end   %s %s" % (self.path(), elapsedTime(self.current.elapsed)), 0)
        self.current = self.current.parent

    def scope(self, name):
        return ConsoleScopeManager(self, name)

    def output(self, s, tabs=1):
        """Write output to console.

        Args:
            s: String to output.
            tabs: Number of tab characters to indent (0 for no indentation).
        """
        with self._lock:
            if tabs:
                self.out.write("\t" * tabs)
            self.out.write(s)
            self.out.write("\n")

    def report(self, s):
        """Write an unindented progress line prefixed with the console tag."""
        self.output("%s: %s" % (self.tag, s), 0)

    def verbose_output(self, s, tabs=1):
        """Output only when verbose mode is enabled."""
        if self.verbose:
            self.output(s, tabs)
