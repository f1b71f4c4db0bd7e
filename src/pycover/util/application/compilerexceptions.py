"""
Exception classes for compiler error handling.

This module defines exceptions used to signal compilation errors and abort
the compilation process when unrecoverable errors are encountered.
"""


class CompilerAbort(Exception):
    """Exception raised when compilation must be aborted.

    This exception is raised when the compiler encounters errors that prevent
    successful compilation. It is typically raised by the ErrorHandler after
    collecting and reporting all compilation errors.

    Example:
        if error_count > 0:
            raise CompilerAbort()
    """
    pass


class ConfigurationError(CompilerAbort):
    """Raised when the instrumentation options cannot be used.

    Covers unknown options, malformed exclusion patterns and data
    directories that cannot be written.
    """
    pass


class CoverageWriteError(CompilerAbort):
    """Raised when the coverage model cannot be written to disk.

    Downstream reporting is meaningless without the coverage file, so this
    always aborts compilation.
    """
    pass
