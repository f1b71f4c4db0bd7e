"""
Program representation for pycover.

A Program is the set of compilation units (Python source files) handed to
the pipeline. Each CompilationUnit carries what the phases produce for its
file: source text, syntax tree, symbol table, and compiled code.
"""

import logging
import os

from pycover.language.source import SourceText
from pycover.util.io import filesystem

LOG = logging.getLogger(__name__)


class CompilationUnit(object):
    """
    One Python source file.

    Attributes:
        path: Source path as given
        module_name: Dotted module name
        is_package: True for package ``__init__`` modules
        source: SourceText of the file
        tree: ast.Module, set by the parser phase
        symbols: SymbolTable, set by the naming phase
        code: Code object, set by the codegen phase
        statements: Number of statements registered for the unit
        output_path: Where the instrumented source was written, if anywhere
    """

    def __init__(self, path, module_name, text, is_package=False):
        self.path = path
        self.module_name = module_name
        self.is_package = is_package
        self.source = SourceText(path, text)
        self.tree = None
        self.symbols = None
        self.code = None
        self.statements = 0
        self.output_path = None

    @property
    def text(self):
        return self.source.text

    def __repr__(self):
        return "CompilationUnit(%s)" % self.module_name


class Program(object):
    """
    The units of one instrumentation run.

    Attributes:
        units: CompilationUnits in the order they were added
        root: Source root used for module names and output paths
    """

    def __init__(self, root=None):
        self.units = []
        self.root = root

    def addSource(self, path, text, module_name=None):
        if module_name is None:
            module_name = filesystem.moduleNameForPath(path, self.root)
        isPackage = os.path.basename(path) == "__init__.py"
        unit = CompilationUnit(path, module_name, text, isPackage)
        self.units.append(unit)
        return unit

    def addFile(self, path):
        return self.addSource(path, filesystem.readText(path))

    def discover(self, targets, recursive=False):
        """Add the ``.py`` files named by `targets`.

        Directories contribute the files directly inside them, or every file
        below them when `recursive` is set.
        """
        for target in targets:
            if os.path.isdir(target):
                if self.root is None:
                    # A package directory is named from its parent.
                    if os.path.isfile(os.path.join(target, "__init__.py")):
                        self.root = os.path.dirname(os.path.abspath(target))
                    else:
                        self.root = target
                for path in sorted(sourceFiles(target, recursive)):
                    self.addFile(path)
            else:
                self.addFile(target)
        LOG.debug("discovered %d units", len(self.units))
        return self.units


def sourceFiles(directory, recursive):
    if not recursive:
        for name in os.listdir(directory):
            path = os.path.join(directory, name)
            if name.endswith(".py") and os.path.isfile(path):
                yield path
        return

    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = [d for d in dirnames if not d.startswith(".") and d != "__pycache__"]
        for name in filenames:
            if name.endswith(".py"):
                yield os.path.join(dirpath, name)
