"""Main CLI dispatcher for pycover.

This module provides the main command-line interface for pycover,
dispatching commands to the modules implementing them.
"""

import argparse
import sys

from pycover import __version__
from pycover.application.pipeline import Pipeline
from .instrument import add_instrument_parser, run_instrument
from .run import add_run_parser, run_script
from .summary import add_summary_parser, run_summary


def add_phases_parser(subparsers):
    return subparsers.add_parser("phases", help="List the compilation phases in execution order")


def list_phases(out=None):
    if out is None:
        out = sys.stdout
    manager = Pipeline().pass_manager
    for name in manager.list_passes():
        info = manager.get_pass_info(name)
        after = ", ".join(sorted(info.dependencies)) or "-"
        out.write("%-26s %-15s after: %-26s %s\n" % (name, info.kind.value, after, info.description))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description="pycover - statement and branch coverage instrumentation for Python", prog="pycover"
    )
    parser.add_argument("--version", action="version", version="pycover %s" % __version__)

    subparsers = parser.add_subparsers(
        dest="command", help="Available commands", required=True
    )
    add_instrument_parser(subparsers)
    add_run_parser(subparsers)
    add_phases_parser(subparsers)
    add_summary_parser(subparsers)
    return parser


def main(argv=None):
    """Main entry point for the pycover CLI.

    Returns:
        int: Exit code (0 for success, non-zero for error).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "instrument":
        return run_instrument(args)
    elif args.command == "run":
        return run_script(args)
    elif args.command == "phases":
        return list_phases()
    elif args.command == "summary":
        return run_summary(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
