"""Parsers for the line-oriented text that gopls prints.

Two responses are understood:

``gopls symbols FILE``::

    Invoke Function 47:6-47:12
    (*executorSuite).TestPendingTasks Method 2392:48-2392:78

``gopls call_hierarchy FILE:LINE:COL``::

    caller[0]: ranges 174:18-31 in /src/reset.go from/to function Reset in /src/reset.go:157:21-26
    identifier: function reapply in /src/reset.go:715:32-39
    callee[0]: ranges 735:30-77, 742:30-77 in /src/reset.go from/to function Add in /src/state.go:162:3-6

Every call-hierarchy line is first classified by its prefix, then handed to
the extractor registered for that kind.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple, Union

from .errors import MalformedResponse
from .models import CallSite, Function, Location, QueryResult, Symbol

FUNCTION_KINDS = ("Function", "Method")

# Receiver prefixes such as "(*T)." are not part of \w+, so methods match by bare name.
SYMBOL_RE = re.compile(r"(\w+) (\w+) (\d+):(\d+)-(\d+):(\d+)")

IDENTIFIER_RE = re.compile(
    r"^identifier: function (?P<name>.+?) in (?P<file>.+):(?P<line>\d+):(?P<start>\d+)-(?P<end>\d+)$"
)

CALL_RE = re.compile(
    r"^(?P<kind>caller|callee)\[\d+\]: ranges (?P<ranges>.+?) in (?P<file>.+?)"
    r" from/to function (?P<name>.+?)"
    r" in (?P<def_file>.+):(?P<line>\d+):(?P<start>\d+)-(?P<end>\d+)$"
)

RANGE_RE = re.compile(r"^(\d+):(\d+)-(\d+)$")


class LineKind(str, Enum):
    IDENTIFIER = "identifier"
    CALLER = "caller"
    CALLEE = "callee"


def classify_line(line: str) -> LineKind:
    """Return the kind of a call-hierarchy line from its prefix."""
    if line.startswith("identifier:"):
        return LineKind.IDENTIFIER
    if line.startswith("caller["):
        return LineKind.CALLER
    if line.startswith("callee["):
        return LineKind.CALLEE
    raise MalformedResponse(line, "unexpected line")


# ------------------------------------------------------------------
# gopls symbols
# ------------------------------------------------------------------


def parse_symbol_line(line: str, file: str) -> Optional[Symbol]:
    """Parse one symbols line; lines that are not symbol entries yield None."""
    match = SYMBOL_RE.search(line)
    if match is None:
        return None
    name, kind, line_num, start_col, end_line, end_col = match.groups()
    if int(end_line) != int(line_num):
        raise MalformedResponse(
            line,
            f"start and end line numbers differ ({line_num} vs {end_line}) "
            "in response for symbols query",
        )
    return Symbol(
        name=name,
        kind=kind,
        location=Location(file=file, line=int(line_num), start_col=int(start_col), end_col=int(end_col)),
    )


def parse_symbols_response(output: str, file: str) -> Iterator[Symbol]:
    """Yield symbols lazily, so a malformed line after a match is never reached."""
    for line in output.strip().splitlines():
        symbol = parse_symbol_line(line, file)
        if symbol is not None:
            yield symbol


def find_function(symbols: Iterable[Symbol], name: str) -> Optional[Function]:
    """First Function or Method named *name*, or None."""
    for symbol in symbols:
        if symbol.kind in FUNCTION_KINDS and symbol.name == name:
            return Function(name=symbol.name, location=symbol.location)
    return None


# ------------------------------------------------------------------
# gopls call_hierarchy
# ------------------------------------------------------------------


def parse_ranges(ranges: str, file: str, line: str) -> Tuple[Location, ...]:
    """Parse ``"735:30-77, 742:30-77"`` into one Location per range."""
    locations = []
    for part in ranges.split(","):
        match = RANGE_RE.match(part.strip())
        if match is None:
            raise MalformedResponse(line, f"bad range '{part.strip()}'")
        line_num, start_col, end_col = (int(g) for g in match.groups())
        locations.append(Location(file=file, line=line_num, start_col=start_col, end_col=end_col))
    return tuple(locations)


def parse_identifier_line(line: str) -> Function:
    match = IDENTIFIER_RE.match(line)
    if match is None:
        raise MalformedResponse(line)
    return Function(
        name=match["name"],
        location=Location(
            file=match["file"],
            line=int(match["line"]),
            start_col=int(match["start"]),
            end_col=int(match["end"]),
        ),
    )


def parse_call_site_line(line: str) -> CallSite:
    match = CALL_RE.match(line)
    if match is None:
        raise MalformedResponse(line)
    function = Function(
        name=match["name"],
        location=Location(
            file=match["def_file"],
            line=int(match["line"]),
            start_col=int(match["start"]),
            end_col=int(match["end"]),
        ),
    )
    return CallSite(function=function, locations=parse_ranges(match["ranges"], match["file"], line))


ParsedLine = Union[Function, CallSite]

_EXTRACTORS: Dict[LineKind, Callable[[str], ParsedLine]] = {
    LineKind.IDENTIFIER: parse_identifier_line,
    LineKind.CALLER: parse_call_site_line,
    LineKind.CALLEE: parse_call_site_line,
}


def parse_line(line: str) -> Tuple[LineKind, ParsedLine]:
    kind = classify_line(line)
    return kind, _EXTRACTORS[kind](line)


def parse_call_hierarchy(output: str) -> QueryResult:
    """Parse a full call-hierarchy response.

    Raises:
        MalformedResponse: on the first line that cannot be parsed.
    """
    result = QueryResult()
    for raw in output.strip().splitlines():
        line = raw.strip()
        if not line:
            continue
        kind, parsed = parse_line(line)
        if kind is LineKind.IDENTIFIER:
            result.function = parsed  # type: ignore[assignment]
        elif kind is LineKind.CALLER:
            result.callers.append(parsed)  # type: ignore[arg-type]
        else:
            result.callees.append(parsed)  # type: ignore[arg-type]
    return result
