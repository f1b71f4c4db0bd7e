"""
Standard phases of the pycover pipeline.

Each phase is a pass processing every unit of the program:

- parser: ``ast.parse`` of each unit
- pycover-pre: strips ``typing.Final`` qualifiers (after parser, before namer)
- namer: symbol tables and scope graphs
- pycover-instrumentation: the coverage transformer (after namer, before
  codegen); serializes the coverage model once all units are done
- codegen: ``compile`` of each unit, and optional output of instrumented
  sources

The pycover phases report their progress on the console together with the
number of statements registered so far.
"""

import ast
import logging
import os
from concurrent.futures import ThreadPoolExecutor

from pycover.application.passmanager import AnalysisPass, PassResult, TransformationPass, UtilityPass
from pycover.coverage import serialize
from pycover.instrumentation.prephase import stripFinalQualifiers
from pycover.instrumentation.symbols import buildSymbolTable
from pycover.instrumentation.transformer import instrumentUnit
from pycover.language.origin import Origin
from pycover.util.io import filesystem

LOG = logging.getLogger(__name__)

PARSER = "parser"
PREPHASE = "pycover-pre"
NAMER = "namer"
INSTRUMENTATION = "pycover-instrumentation"
CODEGEN = "codegen"

STANDARD_PHASES = [PARSER, PREPHASE, NAMER, INSTRUMENTATION, CODEGEN]


class ParserPass(AnalysisPass):
    """Parses every unit; syntax errors abort compilation."""

    def __init__(self):
        super().__init__(PARSER, "Parse source files into syntax trees")

    def run(self, compiler, program) -> PassResult:
        for unit in program.units:
            try:
                unit.tree = ast.parse(unit.text, filename=unit.path)
            except SyntaxError as e:
                compiler.errors.error(
                    "syntax", e.msg, [Origin(unit.module_name, unit.path, e.lineno, e.offset)]
                )
        compiler.errors.finalize()
        return PassResult(success=True, changed=True)


class PrePhasePass(TransformationPass):
    """Removes Final qualifiers so bindings can be rewritten."""

    def __init__(self):
        super().__init__(PREPHASE, "Strip typing.Final qualifiers",
                         dependencies=[PARSER], runs_before=[NAMER])

    def run(self, compiler, program) -> PassResult:
        compiler.console.report(
            "Begin pre-instrumentation phase: %d statements instrumented" % compiler.coverage.statement_count()
        )
        stripped = sum(stripFinalQualifiers(unit.tree) for unit in program.units)
        compiler.console.report(
            "Pre-instrumentation completed: %d Final qualifiers removed, %d statements instrumented"
            % (stripped, compiler.coverage.statement_count())
        )
        return PassResult(success=True, changed=stripped > 0, data=stripped)


class NamerPass(AnalysisPass):
    """Builds the symbol table of every unit."""

    def __init__(self):
        super().__init__(NAMER, "Build symbol tables and scope graphs", dependencies=[PREPHASE])

    def run(self, compiler, program) -> PassResult:
        for unit in program.units:
            unit.symbols = buildSymbolTable(unit.tree, unit.module_name, unit.is_package)
        return PassResult(success=True, changed=False)


class InstrumentationPass(TransformationPass):
    """Instruments every unit, then writes the coverage file."""

    def __init__(self):
        super().__init__(INSTRUMENTATION, "Insert coverage probes",
                         dependencies=[NAMER], runs_before=[CODEGEN])

    def run(self, compiler, program) -> PassResult:
        console = compiler.console
        console.report("Begin instrumentation phase: %d statements instrumented" % compiler.coverage.statement_count())

        jobs = compiler.options.jobs
        if jobs > 1 and len(program.units) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                counts = list(executor.map(lambda unit: instrumentUnit(compiler, unit), program.units))
        else:
            counts = [instrumentUnit(compiler, unit) for unit in program.units]

        for unit, count in zip(program.units, counts):
            console.verbose_output("%s: %d statements" % (unit.path, count))

        console.report(
            "Instrumentation completed: %d statements instrumented" % compiler.coverage.statement_count()
        )

        path = serialize.coverage_file(compiler.options.data_dir)
        serialize.serialize(compiler.coverage, path)
        console.report("Wrote coverage file to %s" % path)
        return PassResult(success=True, changed=sum(counts) > 0, data=path)


class CodegenPass(UtilityPass):
    """Compiles every unit and optionally writes the instrumented sources."""

    def __init__(self):
        super().__init__(CODEGEN, "Compile instrumented trees", dependencies=[INSTRUMENTATION])

    def run(self, compiler, program) -> PassResult:
        outputDir = compiler.options.output_dir
        for unit in program.units:
            ast.fix_missing_locations(unit.tree)
            unit.code = compile(unit.tree, unit.path, "exec")

            if outputDir is not None:
                unit.output_path = outputPath(outputDir, unit, program.root)
                filesystem.ensureDirectoryExists(os.path.dirname(unit.output_path))
                filesystem.writeText(unit.output_path, ast.unparse(unit.tree) + "\n")
                LOG.debug("wrote %s", unit.output_path)
        return PassResult(success=True, changed=False)


def outputPath(outputDir, unit, root):
    if root is not None:
        rel = filesystem.relative(os.path.abspath(unit.path), os.path.abspath(root))
        if not rel.startswith(os.pardir):
            return os.path.join(outputDir, rel)
    return os.path.join(outputDir, os.path.basename(unit.path))


def register_standard_passes(manager):
    """Register the standard phases with a pass manager."""
    for pass_instance in (ParserPass(), PrePhasePass(), NamerPass(), InstrumentationPass(), CodegenPass()):
        manager.register_pass(pass_instance)
    return manager
