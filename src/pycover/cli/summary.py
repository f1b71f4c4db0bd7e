"""
Summary command for the pycover CLI.

Loads the coverage file and the measurements of a data directory and prints
statement and branch counts per source file. Detailed report rendering is
left to dedicated report tools reading the same files.
"""

import collections
import os
import sys

from pycover.coverage import serialize
from pycover.runtime import invoker
from pycover.util.application.console import Console


def add_summary_parser(subparsers):
    """Add summary subcommand parser."""
    parser = subparsers.add_parser("summary", help="Summarise measured coverage in a data directory")
    parser.add_argument("data_dir", help="Data directory of an instrumented run")
    return parser


def percent(part, whole):
    if whole == 0:
        return 100.0
    return 100.0 * part / whole


def summarise(coverage, ids):
    """Per-file (statements, invoked, branches, invoked branches) counts."""
    counts = collections.OrderedDict()
    for statement in coverage:
        row = counts.setdefault(statement.source_path, [0, 0, 0, 0])
        hit = statement.id in ids
        row[0] += 1
        row[1] += hit
        if statement.is_branch:
            row[2] += 1
            row[3] += hit
    return counts


def run_summary(args, out=None):
    path = serialize.coverage_file(args.data_dir)
    if not os.path.exists(path):
        print(f"Error: No coverage file in '{args.data_dir}'", file=sys.stderr)
        return 1

    coverage = serialize.deserialize(path)
    ids = invoker.invoked_ids(args.data_dir)
    console = Console(out=out)

    totals = [0, 0, 0, 0]
    for source, row in summarise(coverage, ids).items():
        console.output(
            "%-50s %5d/%-5d %6.1f%%   branches %d/%d" % (source, row[1], row[0], percent(row[1], row[0]), row[3], row[2]),
            0,
        )
        totals = [t + r for t, r in zip(totals, row)]

    console.report(
        "Statement coverage: %.2f%% (%d/%d), branch coverage: %.2f%% (%d/%d)"
        % (percent(totals[1], totals[0]), totals[1], totals[0],
           percent(totals[3], totals[2]), totals[3], totals[2])
    )
    return 0
