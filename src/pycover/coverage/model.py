"""
In-memory coverage model.

This module defines the records produced by the instrumentation pass:

- `Location`: (package, class, class kind, enclosing method) attribution
- `Statement`: one individually countable unit of code with a unique id
- `Coverage`: the id-ordered registry of statements for one run
- `IdCounter`: the process-wide statement id allocator

**Lifecycle:**
A single `Coverage` and a single `IdCounter` are created per compilation run
and shared by every compilation unit. Units append statements while they are
transformed; the registry is serialized once after the last unit completes.
Both objects are safe to use from several unit workers at once.
"""

import bisect
import enum
import itertools
import threading
from dataclasses import dataclass, asdict
from typing import Dict, Iterator, List, Optional

# Sentinel for offsets and lines that cannot be resolved.
UNKNOWN = -1

NO_SYMBOL = "<nosymbol>"
NO_METHOD = "<none>"
EMPTY_PACKAGE = "<empty>"


class ClassType(enum.Enum):
    """Kind of the class a statement is attributed to."""
    CLASS = "Class"
    TRAIT = "Trait"
    OBJECT = "Object"


@dataclass(frozen=True)
class Location:
    """Attribution of a statement to its enclosing declarations."""
    package_name: str
    class_name: str
    class_type: ClassType
    method: str = NO_METHOD

    @property
    def fully_qualified_class_name(self) -> str:
        if self.package_name == EMPTY_PACKAGE:
            return self.class_name
        return "%s.%s" % (self.package_name, self.class_name)

    def to_dict(self) -> Dict[str, str]:
        return {
            "package_name": self.package_name,
            "class_name": self.class_name,
            "class_type": self.class_type.value,
            "method": self.method,
        }

    @classmethod
    def from_dict(cls, data) -> "Location":
        return cls(
            data["package_name"],
            data["class_name"],
            ClassType(data["class_type"]),
            data["method"],
        )


@dataclass(frozen=True)
class Statement:
    """
    A single instrumented unit of code.

    Attributes:
        source_path: Path of the source file containing the node
        location: Location snapshot in effect when the node was visited
        id: Process-unique statement id, strictly increasing in visit order
        start: Character offset of the node start, or UNKNOWN
        end: Character offset of the node end, or UNKNOWN
        line: 1-based line of the node, or UNKNOWN
        text: Source text of the node (best effort)
        symbol_name: Fully qualified name of the denoted symbol, or NO_SYMBOL
        node_kind: Name of the structural category that produced the entry
        is_branch: True for conditional arms and try/finally bodies
    """
    source_path: str
    location: Location
    id: int
    start: int
    end: int
    line: int
    text: str
    symbol_name: str
    node_kind: str
    is_branch: bool = False

    def to_dict(self):
        data = asdict(self)
        data["location"] = self.location.to_dict()
        return data

    @classmethod
    def from_dict(cls, data) -> "Statement":
        fields = dict(data)
        fields["location"] = Location.from_dict(fields["location"])
        return cls(**fields)


class IdCounter(object):
    """Atomically incrementing statement id allocator.

    Ids start at 1 and are never reused within one counter. The counter is
    not reset between compilation units.
    """
    __slots__ = "_counter", "_lock", "_last"

    def __init__(self, start=1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()
        self._last = start - 1

    def next_id(self) -> int:
        with self._lock:
            self._last = next(self._counter)
            return self._last

    @property
    def last(self) -> int:
        """The most recently allocated id (0 if none was allocated)."""
        return self._last


class Coverage(object):
    """Registry of every statement instrumented during one run."""

    def __init__(self):
        self._statements: List[Statement] = []
        self._lock = threading.Lock()

    def add(self, statement: Statement) -> None:
        with self._lock:
            # Concurrent units can add out of allocation order.
            if self._statements and statement.id < self._statements[-1].id:
                bisect.insort(self._statements, statement, key=lambda s: s.id)
            else:
                self._statements.append(statement)

    @property
    def statements(self) -> List[Statement]:
        with self._lock:
            return list(self._statements)

    def statement_count(self) -> int:
        return len(self._statements)

    def branches(self) -> List[Statement]:
        return [s for s in self.statements if s.is_branch]

    def statements_for(self, source_path: str) -> List[Statement]:
        return [s for s in self.statements if s.source_path == source_path]

    def get(self, statement_id: int) -> Optional[Statement]:
        for statement in self.statements:
            if statement.id == statement_id:
                return statement
        return None

    def __iter__(self) -> Iterator[Statement]:
        return iter(self.statements)

    def __len__(self):
        return self.statement_count()
