"""
Coverage model, filters and the serialized coverage file.
"""

from .filters import AllCoverageFilter, CoverageFilter, RegexCoverageFilter, create_filter
from .model import ClassType, Coverage, IdCounter, Location, Statement
from . import serialize
from .serialize import coverage_file, deserialize

__all__ = [
    "AllCoverageFilter",
    "ClassType",
    "Coverage",
    "CoverageFilter",
    "IdCounter",
    "Location",
    "RegexCoverageFilter",
    "Statement",
    "coverage_file",
    "create_filter",
    "deserialize",
    "serialize",
]
