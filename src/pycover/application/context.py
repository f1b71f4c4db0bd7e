"""
Compilation context for pycover.

The CompilerContext carries the state shared by every phase of one run:
console output, the error handler, options, the coverage registry and the
statement id counter. It is created once per run and passed to all passes.
"""

from pycover.application.options import PyCoverOptions, validate_options
from pycover.coverage.model import Coverage, IdCounter
from pycover.util.application.compilerexceptions import ConfigurationError
from pycover.util.application.console import Console
from pycover.util.application.errorhandler import ErrorHandler


class CompilerContext(object):
    """
    Context for one instrumentation run.

    Attributes:
        console: Console object for structured output
        errors: ErrorHandler collecting diagnostics of the run
        options: PyCoverOptions in effect
        coverage: Coverage registry shared by all units
        ids: IdCounter shared by all units, never reset between them
        filter: CoverageFilter built from the options by `configure`
        program: Program being instrumented (set by the pipeline)
    """
    __slots__ = "console", "errors", "options", "coverage", "ids", "filter", "program"

    def __init__(self, console=None, errors=None, options=None):
        # Provide defaults for anything not supplied
        self.console = console if console is not None else Console()
        self.errors = errors if errors is not None else ErrorHandler(self.console.out)
        self.options = options if options is not None else PyCoverOptions()
        self.coverage = Coverage()
        self.ids = IdCounter()
        self.filter = None
        self.program = None

    def configure(self):
        """Validate the options and build the coverage filter.

        Raises:
            ConfigurationError: If any configuration error was reported
        """
        self.filter = validate_options(self.options, self.errors)
        self.errors.finalize(ConfigurationError)
        return self
