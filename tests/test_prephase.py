import ast

from pycover.instrumentation.prephase import isFinal, stripFinal, stripFinalQualifiers


def strip(code):
    tree = ast.parse(code)
    count = stripFinalQualifiers(tree)
    return count, ast.unparse(tree)


def annotation(code):
    return ast.parse(code, mode="eval").body


def test_bare_final_becomes_assignment():
    count, source = strip("x: Final = 3\n")

    assert count == 1
    assert source == "x = 3"


def test_parameterised_final_keeps_its_type():
    count, source = strip("x: typing.Final[int] = 3\n")

    assert count == 1
    assert source == "x: int = 3"


def test_final_inside_classvar():
    count, source = strip("class C:\n    x: ClassVar[Final[int]] = 3\n")

    assert count == 1
    assert "x: ClassVar[int] = 3" in source


def test_declaration_without_value_is_unchanged():
    count, source = strip("x: Final\ny: int = 2\n")

    assert count == 0
    assert source == "x: Final\ny: int = 2"


def test_nested_scopes_are_rewritten():
    count, _ = strip(
        "def f():\n"
        "    limit: Final = 10\n"
        "    return limit\n"
        "class C:\n"
        "    name: Final[str] = 'c'\n"
    )

    assert count == 2


def test_rewritten_assignment_keeps_position():
    tree = ast.parse("\n\nx: Final = 3\n")
    stripFinalQualifiers(tree)

    assign = tree.body[0]
    assert isinstance(assign, ast.Assign)
    assert (assign.lineno, assign.col_offset) == (3, 0)
    compile(tree, "<test>", "exec")


def test_helpers():
    assert isFinal(annotation("Final"))
    assert isFinal(annotation("typing.Final"))
    assert not isFinal(annotation("Final[int]"))
    assert stripFinal(annotation("Final")) is None
    plain = annotation("List[int]")
    assert stripFinal(plain) is plain
