"""
Instrument command for the pycover CLI.

Instruments Python files for coverage measurement: writes the coverage file
to the data directory and, with ``--output``, the instrumented sources.
"""

import logging
import os
import sys

from pycover.application.context import CompilerContext
from pycover.application.options import PyCoverOptions, process_options, split_patterns
from pycover.application.pipeline import evaluate
from pycover.application.program import Program
from pycover.util.application.console import Console
from pycover.util.application.errorhandler import ErrorHandler


def add_instrumentation_arguments(parser):
    """Options shared by the commands that instrument code."""
    parser.add_argument("--data-dir", help="Directory receiving the coverage file and measurements")
    parser.add_argument(
        "--exclude", action="append", default=[], metavar="PATTERN",
        help="Regex of fully qualified class or module names to leave uninstrumented (repeatable)",
    )
    parser.add_argument(
        "--excluded-packages", metavar="PATTERNS",
        help="Semicolon-separated exclusion regexes",
    )
    parser.add_argument(
        "-P", "--plugin-option", dest="plugin_options", action="append", default=[], metavar="KEY:VALUE",
        help="Option in plugin form, e.g. dataDir:/tmp/cov or excludedPackages:a;b",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-d", "--debug", action="store_true", help="Debug output")


def add_instrument_parser(subparsers):
    """Add instrument subcommand parser."""
    parser = subparsers.add_parser("instrument", help="Instrument Python files for coverage")
    parser.add_argument("targets", nargs="+", help="Files or directories to instrument")
    parser.add_argument("-o", "--output", help="Directory receiving the instrumented sources")
    parser.add_argument("-r", "--recursive", action="store_true", help="Instrument directories recursively")
    parser.add_argument("-j", "--jobs", type=int, default=1, help="Number of units instrumented concurrently")
    parser.add_argument("--source-root", help="Directory module names are computed from")
    add_instrumentation_arguments(parser)
    return parser


def setup_logging(args):
    level = logging.DEBUG if args.debug else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def options_from_args(args, errors):
    """Build PyCoverOptions from parsed arguments, reporting bad plugin options."""
    options = PyCoverOptions(
        data_dir=args.data_dir,
        jobs=getattr(args, "jobs", 1),
        output_dir=getattr(args, "output", None),
        source_root=getattr(args, "source_root", None),
    )
    patterns = list(args.exclude)
    if args.excluded_packages:
        patterns.extend(split_patterns(args.excluded_packages))
    options.excluded_packages = patterns

    process_options(args.plugin_options, errors, options)
    return options


def create_compiler(args, out=None):
    console = Console(out=out, verbose=args.verbose)
    errors = ErrorHandler(console.out)
    options = options_from_args(args, errors)
    return CompilerContext(console, errors, options)


def run_instrument(args, out=None):
    """Run the instrument command.

    Returns:
        int: Exit code (0 for success, 1 if compilation was aborted).
    """
    setup_logging(args)
    compiler = create_compiler(args, out)

    for target in args.targets:
        if not os.path.exists(target):
            print(f"Error: Path '{target}' not found", file=sys.stderr)
            return 1

    with compiler.errors.statusManager():
        program = Program(compiler.options.source_root)
        program.discover(args.targets, recursive=args.recursive)
        evaluate(compiler, program)

        for unit in program.units:
            if unit.output_path is not None:
                compiler.console.verbose_output("%s -> %s" % (unit.path, unit.output_path))
        return 0
    return 1
