"""
Instrumentation options.

Options arrive as ``<key>:<value>`` strings, the way compiler plugins receive
them, or directly from the command line:

- ``dataDir:<path>``: directory receiving the coverage file and measurements
- ``excludedPackages:<re1>;<re2>``: classes and modules whose fully
  qualified name matches one of the patterns are not instrumented

Problems are reported on the error handler; option processing continues so
that every bad option is reported at once.
"""

import logging
import re
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional

from pycover.coverage.filters import create_filter
from pycover.util.io import filesystem

LOG = logging.getLogger(__name__)

DATA_DIR_OPTION = "dataDir"
EXCLUDED_PACKAGES_OPTION = "excludedPackages"


@dataclass
class PyCoverOptions:
    """
    Attributes:
        data_dir: Data directory, created on demand. A fresh temporary
            directory is used when none is given.
        excluded_packages: Exclusion patterns
        jobs: Number of units instrumented concurrently
        output_dir: Where instrumented sources are written, if anywhere
        source_root: Directory module names are computed from
    """
    data_dir: Optional[str] = None
    excluded_packages: List[str] = field(default_factory=list)
    jobs: int = 1
    output_dir: Optional[str] = None
    source_root: Optional[str] = None

    def resolve_data_dir(self):
        if self.data_dir is None:
            self.data_dir = tempfile.mkdtemp(prefix="pycover-")
        return self.data_dir


def split_patterns(value):
    return [p for p in value.split(";") if p.strip()]


def process_options(opts, errors, options=None):
    """
    Apply ``key:value`` option strings.

    Args:
        opts: Iterable of option strings
        errors: ErrorHandler receiving "Bad option" errors
        options: PyCoverOptions to update. A new one is created by default.

    Returns:
        The updated PyCoverOptions
    """
    if options is None:
        options = PyCoverOptions()

    for opt in opts:
        key, sep, value = opt.partition(":")
        if sep and key == DATA_DIR_OPTION:
            options.data_dir = value
        elif sep and key == EXCLUDED_PACKAGES_OPTION:
            options.excluded_packages = split_patterns(value)
        else:
            errors.error("configuration", "Bad option: '%s'" % opt)
    return options


def validate_options(options, errors):
    """
    Check that the options can be used for a run.

    Reports uncompilable patterns, an unwritable data directory and a bad
    job count as configuration errors.

    Returns:
        The coverage filter built from the patterns, or None if they were
        rejected
    """
    coverageFilter = None
    try:
        coverageFilter = create_filter(options.excluded_packages)
    except re.error as e:
        errors.error(
            "configuration",
            "Invalid exclusion pattern %r: %s" % (getattr(e, "pattern", None), e),
        )

    dataDir = options.resolve_data_dir()
    if not filesystem.isWritableDirectory(dataDir):
        errors.error("configuration", "Data directory %s is not writable" % dataDir)

    if options.jobs < 1:
        errors.error("configuration", "jobs must be at least 1, got %d" % options.jobs)

    LOG.debug("options: %r", options)
    return coverageFilter
