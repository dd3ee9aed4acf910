"""Pytest configuration and fixtures for CallerGraph tests."""

import threading
from pathlib import Path
from typing import Dict, List, Sequence, Union

import pytest

from callergraph.errors import CallGraphError
from callergraph.models import CallSite, Function, Location, QueryResult

SRC = "/src/history/ndc"


def fn(name: str, file: str = f"{SRC}/resetter.go", line: int = 1) -> Function:
    """Build a Function whose identifier starts at column 6."""
    return Function(name=name, location=Location(file=file, line=line, start_col=6, end_col=6 + len(name)))


def caller_of(function: Function, *lines: int) -> CallSite:
    """A CallSite in *function* with one call location per line number."""
    lines = lines or (function.location.line + 1,)
    return CallSite(
        function=function,
        locations=tuple(Location(function.location.file, n, 4, 10) for n in lines),
    )


class FakeGateway:
    """In-memory stand-in for GoplsGateway keyed by function position.

    Functions with no entry have no callers.
    """

    def __init__(self, callers: Dict[Function, List[CallSite]] = None):
        self.callers = callers or {}
        self.failures: Dict[Function, CallGraphError] = {}
        self.queries: List[str] = []
        self._lock = threading.Lock()

    def call_hierarchy(self, position: str, cancel: threading.Event = None) -> QueryResult:
        with self._lock:
            self.queries.append(position)
        for function, error in self.failures.items():
            if function.position == position:
                raise error
        for function, call_sites in self.callers.items():
            if function.position == position:
                return QueryResult(function=function, callers=list(call_sites))
        return QueryResult()


class FakeRunner:
    """Replays canned gopls output, recording each command line."""

    def __init__(self, responses: Dict[str, Union[str, Exception]]):
        self.responses = responses
        self.calls: List[List[str]] = []

    def __call__(self, args: Sequence[str], timeout: float, cancel: threading.Event = None) -> str:
        self.calls.append(list(args))
        response = self.responses[args[1] + " " + args[2]]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def call_hierarchy_output() -> str:
    """A gopls call_hierarchy response with an anonymous and a test caller."""
    return f"""caller[0]: ranges 174:18-31 in {SRC}/resetter.go from/to function ResetWorkflow.func() in {SRC}/resetter.go:157:21-25
caller[1]: ranges 333:11-24 in {SRC}/resetter.go from/to function reapplyEventsToReset in {SRC}/resetter.go:312:32-52
caller[2]: ranges 701:15-28, 705:15-28 in {SRC}/resetter.go from/to function reapplyWorkflowEvents in {SRC}/resetter.go:673:32-53
caller[3]: ranges 833:28-41 in {SRC}/resetter_test.go from/to function TestReapplyEvents in {SRC}/resetter_test.go:790:33-50
identifier: function reapplyEvents in {SRC}/resetter.go:715:32-45
callee[0]: ranges 721:16-28 in {SRC}/resetter.go from/to function GetEventType in /src/api/message.pb.go:4541:24-36
callee[1]: ranges 735:30-77, 742:30-77 in {SRC}/resetter.go from/to function AddReappliedEvent in /src/history/state.go:162:3-20
"""


@pytest.fixture
def resetter_symbols_output() -> str:
    """A gopls symbols listing for resetter.go."""
    return """workflowResetterImpl Struct 40:6-40:26
\tshard Field 41:2-41:7
newWorkflowResetter Function 60:6-60:25
(*workflowResetterImpl).ResetWorkflow Method 150:32-150:45
(*workflowResetterImpl).reapplyEvents Method 715:32-715:45
"""


@pytest.fixture
def temp_config_file(tmp_path: Path, monkeypatch) -> Path:
    """Point the config module at a throwaway config.toml."""
    config_file = tmp_path / "config.toml"
    monkeypatch.setattr("callergraph.config.BASE_DIR", tmp_path)
    monkeypatch.setattr("callergraph.config.CONFIG_FILE", config_file)
    return config_file
