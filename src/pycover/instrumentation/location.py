"""
Location tracking during instrumentation.

The tracker holds the (package, class, class kind, method) attribution that
is stamped onto every statement registered while the transformer descends a
compilation unit. Entering a class or function replaces the active location;
leaving it restores the enclosing one.
"""

from pycover.coverage.model import EMPTY_PACKAGE, NO_METHOD, Location
from pycover.instrumentation.symbols import SymbolKind


def classOwner(symbol):
    """First class or module at or above `symbol`, skipping functions and anonymous scopes."""
    while not symbol.is_class_like:
        symbol = symbol.owner
    return symbol


def methodOwner(symbol):
    """First named function at or above `symbol` inside its class, or None."""
    while symbol is not None and not symbol.is_class_like:
        if symbol.kind is SymbolKind.FUNCTION:
            return symbol
        symbol = symbol.owner
    return None


def className(symbol):
    """
    Class name relative to the package.

    Module-level code belongs to an object named after the module, so the
    name always begins with the module's own name:

        module ``app.greet``          -> "greet"
        class ``app.greet.Outer.Inner`` -> "greet.Outer.Inner"
    """
    package = symbol.package
    if package != EMPTY_PACKAGE and symbol.full_name.startswith(package + "."):
        return symbol.full_name[len(package) + 1:]
    return symbol.full_name


def locationOf(symbol):
    owner = classOwner(symbol)
    method = methodOwner(symbol)
    return Location(
        symbol.package,
        className(owner),
        owner.class_type,
        method.name if method is not None else NO_METHOD,
    )


class DeclarationScope(object):
    """Context manager restoring the tracker's previous location on exit."""

    __slots__ = "tracker", "previous"

    def __init__(self, tracker, previous):
        self.tracker = tracker
        self.previous = previous

    def __enter__(self):
        return self.tracker.current_location()

    def __exit__(self, type, value, tb):
        self.tracker._location = self.previous


class LocationTracker(object):
    """
    Traversal-scoped location state for one compilation unit.

    Example:
        tracker = LocationTracker(table.module)
        with tracker.enter_declaration(classSymbol):
            ...  # statements here are attributed to the class
        # and here to the module again
    """

    def __init__(self, module_symbol):
        self.module = module_symbol
        self._location = locationOf(module_symbol)

    def current_location(self):
        return self._location

    def enter_declaration(self, symbol):
        """Make `symbol` the active declaration.

        The new location is in effect as soon as this returns. Use the result
        as a context manager to restore the enclosing location afterwards.
        """
        previous = self._location
        self._location = locationOf(symbol)
        return DeclarationScope(self, previous)
