"""
Coverage filters.

A filter decides whether a class (by fully qualified name) or a source
position is eligible for instrumentation. Filters are consulted during the
traversal and therefore never raise: patterns are compiled when the filter is
constructed, so malformed patterns surface at configuration time.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections import namedtuple
from typing import Iterable, List, Pattern

LOG = logging.getLogger(__name__)

# Source position handed to `is_position_included`.
Position = namedtuple("Position", "source_path line start end")


class CoverageFilter(ABC):
    """Inclusion policy applied before instrumentation."""

    @abstractmethod
    def is_class_included(self, fully_qualified_name: str) -> bool:
        pass

    @abstractmethod
    def is_position_included(self, position) -> bool:
        pass


class AllCoverageFilter(CoverageFilter):
    """Includes every class and every position."""

    def is_class_included(self, fully_qualified_name: str) -> bool:
        return True

    def is_position_included(self, position) -> bool:
        return True

    def __repr__(self):
        return "AllCoverageFilter()"


class RegexCoverageFilter(CoverageFilter):
    """
    Excludes classes whose fully qualified name matches any pattern.

    Patterns are searched, not anchored: ``"secret"`` excludes
    ``pkg.secret.Thing`` as well as ``secret_tools.Helper``.
    Blank patterns are ignored.

    Raises:
        re.error: If any pattern fails to compile
    """

    def __init__(self, excluded_packages: Iterable[str]):
        self.patterns: List[Pattern] = [
            re.compile(p.strip()) for p in excluded_packages if p and p.strip()
        ]

    def is_class_included(self, fully_qualified_name: str) -> bool:
        for pattern in self.patterns:
            if pattern.search(fully_qualified_name):
                LOG.debug("excluding %s (matched %r)", fully_qualified_name, pattern.pattern)
                return False
        return True

    def is_position_included(self, position) -> bool:
        # Reserved for per-line policies.
        return True

    def __repr__(self):
        return "RegexCoverageFilter(%r)" % [p.pattern for p in self.patterns]


def create_filter(excluded_packages) -> CoverageFilter:
    """Build the filter matching a list of exclusion patterns."""
    if excluded_packages:
        return RegexCoverageFilter(excluded_packages)
    return AllCoverageFilter()
