"""pycover - statement and branch coverage instrumentation for Python.

The instrumentation pass lives in `pycover.instrumentation`, the driver in
`pycover.application` and the runtime recorder called by instrumented code in
`pycover.runtime.invoker`. This package itself only exposes the coverage
model, so that importing the recorder stays cheap.
"""

__version__ = "0.1.0"

from .coverage.model import ClassType, Coverage, Location, Statement

__all__ = [
    "ClassType",
    "Coverage",
    "Location",
    "Statement",
    "__version__",
]
