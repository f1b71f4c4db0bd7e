"""
Run command for the pycover CLI.

Instruments a script and executes it as ``__main__``. Only the script
itself is instrumented; the modules it imports run unchanged.
"""

import builtins
import os
import sys

from pycover.application.pipeline import evaluate
from pycover.application.program import Program
from pycover.cli.instrument import add_instrumentation_arguments, create_compiler, setup_logging
from pycover.runtime import invoker


def add_run_parser(subparsers):
    """Add run subcommand parser."""
    parser = subparsers.add_parser("run", help="Instrument a script and run it")
    parser.add_argument("script", help="Python script to run")
    parser.add_argument("script_args", nargs="*", help="Arguments passed to the script")
    add_instrumentation_arguments(parser)
    return parser


def execute(code, path, argv):
    """Execute `code` as the ``__main__`` module.

    Returns:
        The script's exit status
    """
    namespace = {
        "__name__": "__main__",
        "__file__": path,
        "__builtins__": builtins,
    }
    savedArgv, savedPath = sys.argv, list(sys.path)
    sys.argv = [path] + list(argv)
    sys.path.insert(0, os.path.dirname(os.path.abspath(path)))
    try:
        exec(code, namespace)
    except SystemExit as e:
        if e.code is None:
            return 0
        if isinstance(e.code, int):
            return e.code
        print(e.code, file=sys.stderr)
        return 1
    finally:
        sys.argv = savedArgv
        sys.path[:] = savedPath
    return 0


def run_script(args, out=None):
    """Run the run command.

    Returns:
        int: The script's exit status, or 1 if instrumentation was aborted.
    """
    setup_logging(args)
    if not os.path.isfile(args.script):
        print(f"Error: Script '{args.script}' not found", file=sys.stderr)
        return 1

    compiler = create_compiler(args, out)
    with compiler.errors.statusManager():
        program = Program()
        unit = program.addFile(args.script)
        evaluate(compiler, program)
        status = execute(unit.code, args.script, args.script_args)

        dataDir = compiler.options.data_dir
        ran = len(invoker.invoked_ids(dataDir) & set(s.id for s in compiler.coverage))
        compiler.console.report(
            "%d of %d statements invoked, data in %s" % (ran, compiler.coverage.statement_count(), dataDir)
        )
        return status
    return 1
