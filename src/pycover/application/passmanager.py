"""
Pass Manager system for pycover.

This module provides a small LLVM-inspired pass manager:
- Pass registration with metadata and dependencies
- Automatic dependency resolution and ordering (topological sort)
- Pipeline construction and execution with an execution log

**Key Concepts:**

1. **Pass Types:**
   - AnalysisPass: Information-gathering passes (parsing, naming)
   - TransformationPass: Passes rewriting the syntax trees (pre-phase,
     instrumentation)
   - UtilityPass: Passes producing output (code generation)

2. **Dependency Management:**
   - `dependencies`: passes that must run before this one (runs after)
   - `runs_before`: passes that must run after this one
   - Circular dependencies are detected and reported

3. **Aborts:**
   A CompilerAbort raised by a pass is never turned into a failed result; it
   propagates to the caller so the run stops with its diagnostics. Any other
   exception becomes a failed PassResult and stops the pipeline.

**Usage:**
```python
from pycover.application.passmanager import PassManager
from pycover.application.passes import register_standard_passes

manager = PassManager()
register_standard_passes(manager)

pipeline = manager.build_pipeline(manager.list_passes())
results = manager.run_pipeline(compiler, program, pipeline)
```
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pycover.util.application.compilerexceptions import CompilerAbort

LOG = logging.getLogger(__name__)


class PassKind(Enum):
    """Types of passes in the system."""
    ANALYSIS = "analysis"
    TRANSFORMATION = "transformation"
    UTILITY = "utility"


class PassResult:
    """Result of running a pass."""

    def __init__(self, success: bool = True, changed: bool = False,
                 data: Any = None, error: Optional[str] = None):
        self.success = success
        self.changed = changed
        self.data = data
        self.error = error
        self.timestamp = time.time()
        self.time = 0.0

    def __bool__(self):
        return self.success

    def __repr__(self):
        return "PassResult(success=%r, changed=%r, error=%r)" % (self.success, self.changed, self.error)


@dataclass
class PassInfo:
    """Metadata for a registered pass."""
    name: str
    kind: PassKind
    description: str = ""
    dependencies: Set[str] = field(default_factory=set)  # Passes this one runs after
    runs_before: Set[str] = field(default_factory=set)   # Passes this one runs before

    def __post_init__(self):
        self.dependencies = set(self.dependencies)
        self.runs_before = set(self.runs_before)


class Pass(ABC):
    """Base class for all passes in the pass manager system."""

    def __init__(self, name: str, kind: PassKind, description: str = "",
                 dependencies=(), runs_before=()):
        self.name = name
        self.kind = kind
        self.description = description
        self.info = PassInfo(name, kind, description, set(dependencies), set(runs_before))

    @abstractmethod
    def run(self, compiler, program) -> PassResult:
        """Run the pass on the given program.

        Args:
            compiler: The CompilerContext of the run
            program: The Program whose units are processed

        Returns:
            PassResult indicating success/failure and whether the program changed
        """
        pass

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name})"


class AnalysisPass(Pass):
    """Base class for analysis passes."""

    def __init__(self, name: str, description: str = "", dependencies=(), runs_before=()):
        super().__init__(name, PassKind.ANALYSIS, description, dependencies, runs_before)


class TransformationPass(Pass):
    """Base class for transformation passes."""

    def __init__(self, name: str, description: str = "", dependencies=(), runs_before=()):
        super().__init__(name, PassKind.TRANSFORMATION, description, dependencies, runs_before)


class UtilityPass(Pass):
    """Base class for passes producing output."""

    def __init__(self, name: str, description: str = "", dependencies=(), runs_before=()):
        super().__init__(name, PassKind.UTILITY, description, dependencies, runs_before)


class PassManager:
    """LLVM-inspired pass manager for pycover."""

    def __init__(self):
        self.passes: Dict[str, Pass] = {}
        self.pass_order: List[str] = []
        self.execution_log: List[Dict[str, Any]] = []

    def register_pass(self, pass_instance: Pass) -> None:
        """Register a pass instance."""
        if pass_instance.name in self.passes:
            raise ValueError(f"Pass '{pass_instance.name}' already registered")

        self.passes[pass_instance.name] = pass_instance
        self.pass_order.append(pass_instance.name)

        # Recompute pass ordering based on dependencies
        self._resolve_dependencies()

    def unregister_pass(self, pass_name: str) -> None:
        """Unregister a pass."""
        if pass_name in self.passes:
            del self.passes[pass_name]
            self.pass_order = [p for p in self.pass_order if p != pass_name]
            self._resolve_dependencies()

    def _predecessors(self, pass_name: str) -> Set[str]:
        """Passes that must run before `pass_name`."""
        before = set(self.passes[pass_name].info.dependencies)
        for other_name, other_pass in self.passes.items():
            if pass_name in other_pass.info.runs_before:
                before.add(other_name)
        return before

    def _resolve_dependencies(self) -> None:
        """Resolve pass execution order based on dependencies."""
        # Simple topological sort based on dependencies
        visited = set()
        temp_visited = set()
        order = []

        def visit(pass_name: str):
            if pass_name in temp_visited:
                raise ValueError(f"Circular dependency detected involving '{pass_name}'")
            if pass_name not in visited and pass_name in self.passes:
                temp_visited.add(pass_name)

                # Visit dependencies first
                for dep in sorted(self._predecessors(pass_name), key=self._registration_index):
                    if dep in self.passes:
                        visit(dep)

                temp_visited.remove(pass_name)
                visited.add(pass_name)
                order.append(pass_name)

        # Visit all passes
        for pass_name in list(self.pass_order):
            if pass_name not in visited:
                visit(pass_name)

        self.pass_order = order

    def _registration_index(self, pass_name: str) -> int:
        names = list(self.passes)
        return names.index(pass_name) if pass_name in self.passes else len(names)

    def build_pipeline(self, pass_names: List[str]) -> "PassPipeline":
        """Build a pipeline from a list of pass names, in dependency order."""
        for pass_name in pass_names:
            if pass_name not in self.passes:
                raise ValueError(f"Unknown pass '{pass_name}' in pipeline")
        ordered = [p for p in self.pass_order if p in pass_names]
        return PassPipeline(self, ordered)

    def run_pipeline(self, compiler, program, pipeline: "PassPipeline") -> Dict[str, PassResult]:
        """Run a pipeline of passes, stopping at the first failed pass.

        Raises:
            CompilerAbort: If a pass aborts compilation
        """
        results = {}

        for pass_name in pipeline.passes:
            if pass_name not in self.passes:
                raise ValueError(f"Unknown pass '{pass_name}' in pipeline")

            pass_obj = self.passes[pass_name]
            result = self._run_pass(pass_obj, compiler, program)
            results[pass_name] = result

            if not result.success:
                LOG.warning("pass %s failed: %s", pass_name, result.error)
                break

        return results

    def run_passes(self, compiler, program, pass_names: List[str]) -> Dict[str, PassResult]:
        """Run a specific set of passes."""
        pipeline = self.build_pipeline(pass_names)
        return self.run_pipeline(compiler, program, pipeline)

    def run_all_passes(self, compiler, program) -> Dict[str, PassResult]:
        """Run all registered passes in dependency order."""
        return self.run_passes(compiler, program, self.pass_order)

    def _run_pass(self, pass_obj: Pass, compiler, program) -> PassResult:
        """Run a single pass and log the execution."""
        start_time = time.perf_counter()

        try:
            with compiler.console.scope(pass_obj.name):
                result = pass_obj.run(compiler, program)
        except CompilerAbort as e:
            self._log(pass_obj.name, False, False, time.perf_counter() - start_time, str(e) or type(e).__name__)
            raise
        except Exception as e:
            LOG.debug("pass %s raised", pass_obj.name, exc_info=True)
            result = PassResult(success=False, error="%s: %s" % (type(e).__name__, e))

        result.time = time.perf_counter() - start_time
        self._log(pass_obj.name, result.success, result.changed, result.time, result.error)
        return result

    def _log(self, name, success, changed, elapsed, error):
        self.execution_log.append({
            'pass': name,
            'success': success,
            'changed': changed,
            'time': elapsed,
            'error': error,
            'timestamp': time.time()
        })

    def get_pass_info(self, pass_name: str) -> Optional[PassInfo]:
        """Get metadata for a registered pass."""
        if pass_name in self.passes:
            return self.passes[pass_name].info
        return None

    def list_passes(self) -> List[str]:
        """List all registered passes in execution order."""
        return list(self.pass_order)

    def get_execution_log(self) -> List[Dict[str, Any]]:
        """Get the execution log."""
        return self.execution_log.copy()


class PassPipeline:
    """Represents a specific sequence of passes to run."""

    def __init__(self, manager: PassManager, passes: List[str]):
        self.manager = manager
        self.passes = passes.copy()

    def run(self, compiler, program) -> Dict[str, PassResult]:
        """Run this pipeline."""
        return self.manager.run_pipeline(compiler, program, self)
