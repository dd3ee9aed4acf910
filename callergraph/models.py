"""Core data models shared by the parser, gateway, crawler and renderer."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

# gopls names closures after their enclosing function, e.g. "Run.func()" or "Run.func2".
ANONYMOUS_SUFFIX = re.compile(r"(\.func\d*(\(\))?)+$")


@dataclass(frozen=True)
class Location:
    """An identifier occurrence: 1-based line, start/end columns on that line."""

    file: str
    line: int
    start_col: int
    end_col: int

    @property
    def position(self) -> str:
        """Anchor accepted by ``gopls call_hierarchy``."""
        return f"{self.file}:{self.line}:{self.start_col}"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.start_col}-{self.end_col}"


@dataclass(frozen=True)
class Function:
    name: str
    location: Location

    @property
    def position(self) -> str:
        return self.location.position

    @property
    def is_test(self) -> bool:
        return "test" in self.name.lower()

    @property
    def enclosing_name(self) -> Optional[str]:
        """Name of the enclosing function if this is a closure, else None."""
        match = ANONYMOUS_SUFFIX.search(self.name)
        if match is None or match.start() == 0:
            return None
        return self.name[: match.start()]

    @property
    def is_anonymous(self) -> bool:
        return self.enclosing_name is not None

    def __str__(self) -> str:
        return f"{self.name}:{self.location}"


@dataclass(frozen=True)
class Symbol:
    """One entry of a ``gopls symbols`` listing."""

    name: str
    kind: str
    location: Location


@dataclass(frozen=True)
class CallSite:
    """Calls to one target made from within one function.

    For callers, ``function`` is the function containing the calls; for
    callees it is the function being called. ``locations`` keeps every call
    occurrence reported by gopls.
    """

    function: Function
    locations: Tuple[Location, ...]

    @property
    def location(self) -> Location:
        return self.locations[0]


@dataclass
class QueryResult:
    """Parsed answer to one call-hierarchy query."""

    function: Optional[Function] = None
    callers: List[CallSite] = field(default_factory=list)
    callees: List[CallSite] = field(default_factory=list)


@dataclass(frozen=True)
class Edge:
    """``caller.function`` calls ``callee`` at ``caller.locations``."""

    caller: CallSite
    callee: Function


@dataclass
class Graph:
    edges: List[Edge] = field(default_factory=list)

    def add(self, edge: Edge) -> None:
        self.edges.append(edge)

    def functions(self) -> List[Function]:
        """Every function touched by an edge, in first-seen order."""
        seen: Dict[Function, None] = {}
        for edge in self.edges:
            seen.setdefault(edge.caller.function, None)
            seen.setdefault(edge.callee, None)
        return list(seen)

    def __iter__(self) -> Iterator[Edge]:
        return iter(self.edges)

    def __len__(self) -> int:
        return len(self.edges)


@dataclass(frozen=True)
class SkippedNode:
    function: Function
    reason: str


@dataclass
class CrawlReport:
    """Outcome of one crawl: the graph plus what was visited and skipped."""

    start: Function
    graph: Graph = field(default_factory=Graph)
    visited: Set[Function] = field(default_factory=set)
    skipped: List[SkippedNode] = field(default_factory=list)
    lineage_limit_reached: bool = False

    @property
    def complete(self) -> bool:
        return not self.skipped and not self.lineage_limit_reached
