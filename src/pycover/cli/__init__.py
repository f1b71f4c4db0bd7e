"""
pycover CLI tools.

This package contains the command-line tools for pycover:
- instrument: instrument files, writing the coverage file and instrumented sources
- run: instrument a script and run it
- phases: list the compilation phases
- summary: summarise measured coverage of a data directory
"""

from .main import main

__all__ = ["main"]
