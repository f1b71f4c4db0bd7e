"""
Tests for the pycover command line.
"""

import io
import json

import pytest

from pycover.cli.instrument import run_instrument
from pycover.cli.main import build_parser, list_phases, main
from pycover.cli.run import run_script
from pycover.cli.summary import percent, run_summary, summarise
from pycover.coverage import serialize

SCRIPT = """\
import sys

def grade(score):
    if score >= 50:
        return "pass"
    return "fail"

print(grade(int(sys.argv[1])))
"""


@pytest.fixture()
def script(tmp_path):
    path = tmp_path / "grade.py"
    path.write_text(SCRIPT)
    return path


def parse(*argv):
    return build_parser().parse_args(list(argv))


def test_phases_are_listed():
    out = io.StringIO()

    assert list_phases(out) == 0
    names = [line.split()[0] for line in out.getvalue().splitlines()]
    assert names == ["parser", "pycover-pre", "namer", "pycover-instrumentation", "codegen"]


def test_parser_requires_a_command(capsys):
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_instrument_command(tmp_path, script):
    out = io.StringIO()
    data = tmp_path / "data"
    output = tmp_path / "out"
    args = parse("instrument", str(script), "--data-dir", str(data), "-o", str(output))

    assert run_instrument(args, out) == 0

    text = out.getvalue()
    assert "[pycover]: Begin instrumentation phase" in text
    assert "Compilation Successful" in text
    assert (output / "grade.py").exists()
    document = json.loads((data / "pycover.coverage.json").read_text())
    assert [s["node_kind"] for s in document["statements"]] == [
        "Compare", "Constant", "If", "If", "Constant", "Subscript", "Call", "Call", "Call",
    ]


def test_exclusion_options(tmp_path, script):
    out = io.StringIO()
    data = tmp_path / "data"
    args = parse(
        "instrument", str(script), "--data-dir", str(data),
        "--exclude", "^nothing$", "--excluded-packages", "other;^grade$",
    )

    assert run_instrument(args, out) == 0
    assert args.exclude == ["^nothing$"]
    assert len(serialize.deserialize(serialize.coverage_file(data))) == 0


def test_bad_plugin_option_aborts(tmp_path, script):
    out = io.StringIO()
    args = parse("instrument", str(script), "--data-dir", str(tmp_path), "-P", "colour:red")

    assert run_instrument(args, out) == 1
    text = out.getvalue()
    assert args.plugin_options == ["colour:red"]
    assert "Bad option: 'colour:red'" in text
    assert "Compilation Aborted" in text


def test_missing_target(tmp_path, capsys):
    args = parse("instrument", str(tmp_path / "missing.py"))

    assert run_instrument(args, io.StringIO()) == 1
    assert "not found" in capsys.readouterr().err


def test_run_and_summary(tmp_path, script, capsys):
    data = tmp_path / "data"
    out = io.StringIO()
    args = parse("run", str(script), "75", "--data-dir", str(data))

    assert run_script(args, out) == 0
    assert capsys.readouterr().out == "pass\n"
    assert "[pycover]: 7 of 9 statements invoked, data in %s" % data in out.getvalue()

    summary = io.StringIO()
    assert run_summary(parse("summary", str(data)), summary) == 0
    assert "Statement coverage: 77.78% (7/9), branch coverage: 50.00% (1/2)" in summary.getvalue()


def test_run_propagates_exit_status(tmp_path):
    path = tmp_path / "exits.py"
    path.write_text("import sys\nsys.exit(3)\n")
    args = parse("run", str(path), "--data-dir", str(tmp_path / "data"))

    assert run_script(args, io.StringIO()) == 3


def test_summary_without_coverage_file(tmp_path, capsys):
    assert main(["summary", str(tmp_path)]) == 1
    assert "No coverage file" in capsys.readouterr().err


def test_summary_helpers():
    assert percent(0, 0) == 100.0
    assert percent(1, 4) == 25.0
    assert summarise([], set()) == {}
