import ast
import textwrap

from pycover.coverage.model import ClassType, Location, NO_METHOD
from pycover.instrumentation.location import (
    LocationTracker, className, classOwner, locationOf, methodOwner,
)
from pycover.instrumentation.symbols import buildSymbolTable

SOURCE = textwrap.dedent(
    """
    class Outer:
        class Inner:
            def method(self):
                return [x for x in range(3)]

    def outer():
        class Local:
            def method(self):
                helper = lambda: 1
                return helper
        return 2
    """
)


def table_for(module_name, is_package=False):
    return buildSymbolTable(ast.parse(SOURCE), module_name, is_package)


def test_module_location():
    table = table_for("app.greet")

    assert locationOf(table.module) == Location("app", "greet", ClassType.OBJECT, NO_METHOD)


def test_nested_class_names_are_relative_to_the_package():
    table = table_for("app.greet")
    inner = table.lookup("app.greet.Outer.Inner")
    method = table.lookup("app.greet.Outer.Inner.method")

    assert className(inner) == "greet.Outer.Inner"
    assert locationOf(method) == Location("app", "greet.Outer.Inner", ClassType.CLASS, "method")


def test_top_level_module_has_empty_package():
    table = table_for("greet")

    location = locationOf(table.lookup("greet.Outer"))
    assert location.package_name == "<empty>"
    assert location.class_name == "greet.Outer"
    assert location.fully_qualified_class_name == "greet.Outer"


def test_package_module_is_its_own_package():
    table = table_for("app", is_package=True)

    location = locationOf(table.module)
    assert location.package_name == "app"
    assert location.class_name == "app"


def test_anonymous_scopes_walk_up_to_the_method():
    table = table_for("greet")
    comprehension = table.lookup("greet.Outer.Inner.method.<locals>.<listcomp>")
    lam = table.lookup("greet.outer.<locals>.Local.method.<locals>.<lambda>")

    assert methodOwner(comprehension).name == "method"
    assert classOwner(comprehension).full_name == "greet.Outer.Inner"
    assert locationOf(lam).class_name == "greet.outer.<locals>.Local"
    assert locationOf(lam).method == "method"


def test_method_stops_at_class_boundary():
    table = table_for("greet")

    local = table.lookup("greet.outer.<locals>.Local")
    assert methodOwner(local) is None
    assert locationOf(local).method == NO_METHOD


def test_tracker_restores_enclosing_location():
    table = table_for("greet")
    tracker = LocationTracker(table.module)
    outer = table.lookup("greet.outer")
    local = table.lookup("greet.outer.<locals>.Local")

    module_location = tracker.current_location()
    with tracker.enter_declaration(outer):
        assert tracker.current_location().method == "outer"
        with tracker.enter_declaration(local) as location:
            assert location.class_name == "greet.outer.<locals>.Local"
            assert location.method == NO_METHOD
        assert tracker.current_location() == Location("<empty>", "greet", ClassType.OBJECT, "outer")
    assert tracker.current_location() == module_location


def test_enter_declaration_applies_immediately():
    table = table_for("greet")
    tracker = LocationTracker(table.module)

    tracker.enter_declaration(table.lookup("greet.Outer"))
    assert tracker.current_location().class_name == "greet.Outer"


def test_statements_are_stamped_with_locations(instrument):
    res = instrument(
        """
        def outer():
            class Inner:
                def method(self):
                    return 1
            return 2

        value = 3
        """
    )

    locations = [s.location for s in res.statements]
    assert locations == [
        Location("<empty>", "sample.outer.<locals>.Inner", ClassType.CLASS, "method"),
        Location("<empty>", "sample", ClassType.OBJECT, "outer"),
        Location("<empty>", "sample", ClassType.OBJECT, NO_METHOD),
    ]
