"""Instrumentation pipeline for pycover.

This module defines the pipeline that validates the configuration and runs
the standard phases over a program, plus helpers used by the command line
and the tests to instrument files or source snippets.
"""

import logging

from pycover.application.context import CompilerContext
from pycover.application.options import PyCoverOptions
from pycover.application.passes import STANDARD_PHASES, register_standard_passes
from pycover.application.passmanager import PassManager
from pycover.application.program import Program

LOG = logging.getLogger(__name__)


class Pipeline(object):
    """Runs the pycover phases on a Program."""

    def __init__(self):
        self.pass_manager = PassManager()
        register_standard_passes(self.pass_manager)

    def phases(self):
        return self.pass_manager.list_passes()

    def run(self, compiler, program, phases=None):
        """Run `phases` (all standard phases by default) on `program`.

        The configuration is validated before any phase runs.

        Returns:
            Dict mapping phase names to PassResult objects

        Raises:
            CompilerAbort: On configuration errors, syntax errors, failed
                phases, or when the coverage file cannot be written
        """
        if phases is None:
            phases = STANDARD_PHASES

        compiler.program = program
        compiler.configure()

        pipeline = self.pass_manager.build_pipeline(phases)
        results = self.pass_manager.run_pipeline(compiler, program, pipeline)

        for name, result in results.items():
            if not result.success:
                compiler.errors.error("internal", "Phase %s failed: %s" % (name, result.error))
        compiler.errors.finalize()

        successful = sum(1 for r in results.values() if r.success)
        total_time = sum(r.time for r in results.values())
        LOG.debug("%d/%d phases successful in %.3fs", successful, len(results), total_time)
        return results


def evaluate(compiler, program, phases=None):
    return Pipeline().run(compiler, program, phases)


def instrumentFiles(targets, options=None, console=None, recursive=False):
    """Instrument the files named by `targets`.

    Returns:
        (compiler, program) after all phases ran
    """
    if options is None:
        options = PyCoverOptions()
    compiler = CompilerContext(console, options=options)
    program = Program(options.source_root)
    program.discover(targets, recursive)
    evaluate(compiler, program)
    return compiler, program


def instrumentSource(text, module_name="snippet", path=None, options=None, console=None, compiler=None):
    """Instrument one source snippet.

    Passing an existing `compiler` adds the unit to that run's coverage
    model and id sequence.

    Returns:
        (compiler, unit) after all phases ran
    """
    if compiler is None:
        compiler = CompilerContext(console, options=options)
    if path is None:
        path = "<%s>" % module_name
    program = Program()
    unit = program.addSource(path, text, module_name)
    evaluate(compiler, program)
    return compiler, unit
