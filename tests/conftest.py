from __future__ import annotations

import ast
import io
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

from pycover.application.context import CompilerContext
from pycover.application.options import PyCoverOptions
from pycover.application.pipeline import instrumentSource
from pycover.coverage.model import Statement
from pycover.runtime import invoker
from pycover.util.application.console import Console


def _normalize_code(code: str) -> str:
    # Allow indented triple-quoted snippets in tests.
    code = textwrap.dedent(code)
    # Trim leading blank line to keep expected line numbers stable.
    code = code.lstrip("\n")
    if code and not code.endswith("\n"):
        code += "\n"
    return code


@dataclass
class InstrumentResult:
    compiler: CompilerContext
    unit: Any
    data_dir: str

    @property
    def statements(self) -> List[Statement]:
        return self.compiler.coverage.statements_for(self.unit.path)

    @property
    def count(self) -> int:
        return len(self.statements)

    @property
    def tree(self) -> ast.Module:
        return self.unit.tree

    @property
    def output(self) -> str:
        return self.compiler.console.out.getvalue()

    def kinds(self) -> List[str]:
        return [s.node_kind for s in self.statements]

    def texts(self) -> List[str]:
        return [s.text for s in self.statements]

    def branches(self) -> List[Statement]:
        return [s for s in self.statements if s.is_branch]

    def one(self, kind: str) -> Statement:
        found = [s for s in self.statements if s.node_kind == kind]
        assert len(found) == 1, found
        return found[0]

    def source(self) -> str:
        return ast.unparse(self.tree)

    def execute(self, **names) -> Dict[str, Any]:
        namespace = {"__name__": self.unit.module_name}
        namespace.update(names)
        exec(self.unit.code, namespace)
        return namespace

    def invoked(self) -> set:
        return invoker.invoked_ids(self.data_dir)


class Instrumenter:
    """
    Small harness around the pipeline that:
    - writes the snippet to a temporary module file
    - runs every phase with a data directory under tmp_path
    - captures console output
    """

    def __init__(self, tmp_path: Path):
        self._tmp_path = tmp_path
        self.data_dir = str(tmp_path / "data")

    def instrument(
        self,
        code: str,
        *,
        module_name: str = "sample",
        excluded: Sequence[str] = (),
        compiler: Optional[CompilerContext] = None,
    ) -> InstrumentResult:
        text = _normalize_code(code)
        path = self._tmp_path / "src" / (module_name.replace(".", "/") + ".py")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

        if compiler is None:
            options = PyCoverOptions(data_dir=self.data_dir, excluded_packages=list(excluded))
            compiler = CompilerContext(Console(out=io.StringIO()), options=options)
        compiler, unit = instrumentSource(text, module_name, path=str(path), compiler=compiler)
        return InstrumentResult(compiler, unit, compiler.options.data_dir)


@pytest.fixture()
def instrument(tmp_path: Path):
    instrumenter = Instrumenter(tmp_path)
    return instrumenter.instrument


@pytest.fixture(autouse=True)
def _close_measurements():
    yield
    invoker.close()
