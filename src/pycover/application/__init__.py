"""
pycover Application Layer.

This package contains the driver running the instrumentation pass over
Python source files.

**Core Components:**

1. **Program Representation** (`program.py`):
   - `Program`: The compilation units of one run
   - `CompilationUnit`: One source file and what the phases produced for it

2. **Pipeline Management** (`pipeline.py`):
   - `Pipeline`: Validates the configuration and runs the phases
   - `instrumentFiles`, `instrumentSource`: convenience entry points

3. **Pass Manager System** (`passmanager.py`):
   - `PassManager`: Dependency-ordered pass registration and execution
   - `Pass`, `AnalysisPass`, `TransformationPass`, `UtilityPass`

4. **Standard Passes** (`passes.py`):
   - parser, pycover-pre, namer, pycover-instrumentation, codegen

5. **Context and Options** (`context.py`, `options.py`):
   - `CompilerContext`: console, error handler, options, coverage model
   - `PyCoverOptions`, `process_options`: plugin-style options
"""

from .context import CompilerContext
from .options import PyCoverOptions, process_options
from .passmanager import PassManager, PassResult
from .pipeline import Pipeline, evaluate, instrumentFiles, instrumentSource
from .program import CompilationUnit, Program

__all__ = [
    "CompilationUnit",
    "CompilerContext",
    "PassManager",
    "PassResult",
    "Pipeline",
    "Program",
    "PyCoverOptions",
    "evaluate",
    "instrumentFiles",
    "instrumentSource",
    "process_options",
]
