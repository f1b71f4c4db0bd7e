"""
Serialized form of the coverage model.

The coverage file is a JSON document holding every field of every statement,
in id order::

    {
      "format": "pycover-coverage",
      "version": 1,
      "statements": [{"id": 1, "source_path": "...", "location": {...}, ...}]
    }

It is written once per run under the data directory and read back by the
report tool without re-running the instrumentation.
"""

import json
import logging
import os

from pycover.coverage.model import Coverage, Statement
from pycover.util.application.compilerexceptions import CoverageWriteError
from pycover.util.io import filesystem

LOG = logging.getLogger(__name__)

COVERAGE_FILE_NAME = "pycover.coverage.json"
FORMAT_TAG = "pycover-coverage"
FORMAT_VERSION = 1


def coverage_file(data_dir) -> str:
    """Path of the coverage file inside a data directory."""
    return os.path.join(str(data_dir), COVERAGE_FILE_NAME)


def to_document(coverage: Coverage):
    return {
        "format": FORMAT_TAG,
        "version": FORMAT_VERSION,
        "statements": [s.to_dict() for s in coverage.statements],
    }


def from_document(document) -> Coverage:
    if document.get("format") != FORMAT_TAG:
        raise ValueError("not a pycover coverage document")
    if document.get("version") != FORMAT_VERSION:
        raise ValueError("unsupported coverage format version %r" % document.get("version"))

    coverage = Coverage()
    for data in document["statements"]:
        coverage.add(Statement.from_dict(data))
    return coverage


def serialize(coverage: Coverage, path) -> None:
    """
    Write the whole registry to `path`, replacing any previous file.

    Raises:
        CoverageWriteError: If the file cannot be written
    """
    path = str(path)
    try:
        filesystem.ensureDirectoryExists(os.path.dirname(path) or ".")
        filesystem.writeText(path, json.dumps(to_document(coverage), indent=1))
    except OSError as e:
        raise CoverageWriteError("Could not write coverage file %s: %s" % (path, e)) from e
    LOG.debug("wrote %d statements to %s", coverage.statement_count(), path)


def deserialize(path) -> Coverage:
    """Load a coverage file written by `serialize`."""
    with open(str(path), "r", encoding="utf-8") as f:
        return from_document(json.load(f))
