"""Tests for the gopls gateway."""

import sys
import threading
import time

import pytest

from callergraph.errors import (
    GatewayError,
    MalformedResponse,
    NotFoundError,
    QueryCancelled,
    SubprocessFailure,
)
from callergraph.gopls import GoplsGateway, run_command

from conftest import SRC, FakeRunner

POSITION = f"{SRC}/resetter.go:715:32"
SLEEP_30 = "import time; time.sleep(30)"


class TestLookupFunction:
    def test_finds_method(self, resetter_symbols_output: str):
        runner = FakeRunner({"symbols /a/resetter.go": resetter_symbols_output})
        gateway = GoplsGateway(executable="gopls", runner=runner)

        function = gateway.lookup_function("ResetWorkflow", "/a/resetter.go")

        assert function.name == "ResetWorkflow"
        assert function.location.line == 150
        assert runner.calls == [["gopls", "symbols", "/a/resetter.go"]]

    def test_not_found(self, resetter_symbols_output: str):
        runner = FakeRunner({"symbols /a/resetter.go": resetter_symbols_output})
        gateway = GoplsGateway(runner=runner)

        with pytest.raises(NotFoundError) as excinfo:
            gateway.lookup_function("Nope", "/a/resetter.go")
        assert "Nope" in str(excinfo.value)

    def test_subprocess_failure_propagates(self):
        failure = SubprocessFailure(["gopls", "symbols", "/a.go"], 2, "no such file")
        gateway = GoplsGateway(runner=FakeRunner({"symbols /a.go": failure}))

        with pytest.raises(SubprocessFailure):
            gateway.lookup_function("f", "/a.go")

    def test_stops_at_first_match(self):
        # The struct spans several lines, which is an error only if it is parsed.
        output = "Foo Function 10:6-10:9\nBar Struct 20:6-25:1"
        gateway = GoplsGateway(runner=FakeRunner({"symbols /a.go": output}))

        function = gateway.lookup_function("Foo", "/a.go")

        assert function.name == "Foo"
        assert function.location.line == 10

    def test_malformed_line_before_match_is_an_error(self):
        output = "Bar Struct 20:6-25:1\nFoo Function 30:6-30:9"
        gateway = GoplsGateway(runner=FakeRunner({"symbols /a.go": output}))

        with pytest.raises(MalformedResponse):
            gateway.lookup_function("Foo", "/a.go")


class TestCallHierarchy:
    def test_anonymous_caller_is_replaced_by_enclosing_function(
        self, call_hierarchy_output: str, resetter_symbols_output: str
    ):
        runner = FakeRunner({
            f"call_hierarchy {POSITION}": call_hierarchy_output,
            f"symbols {SRC}/resetter.go": resetter_symbols_output,
        })
        gateway = GoplsGateway(executable="gopls", runner=runner)

        result = gateway.call_hierarchy(POSITION)

        names = [c.function.name for c in result.callers]
        assert names[0] == "ResetWorkflow"
        assert not any(c.function.is_anonymous for c in result.callers)
        assert result.callers[0].function.location.line == 150
        # Call locations still point at the closure body.
        assert result.callers[0].location.line == 174
        assert ["gopls", "symbols", f"{SRC}/resetter.go"] in runner.calls

    def test_named_callers_need_no_lookup(self):
        output = f"caller[0]: ranges 3:1-4 in {SRC}/x.go from/to function run in {SRC}/x.go:1:6-9\n"
        runner = FakeRunner({"call_hierarchy /x.go:1:6": output})
        gateway = GoplsGateway(runner=runner)

        result = gateway.call_hierarchy("/x.go:1:6")

        assert [c.function.name for c in result.callers] == ["run"]
        assert len(runner.calls) == 1

    def test_parse_error_is_wrapped(self):
        gateway = GoplsGateway(runner=FakeRunner({"call_hierarchy /x.go:1:6": "garbage"}))

        with pytest.raises(GatewayError) as excinfo:
            gateway.call_hierarchy("/x.go:1:6")
        assert isinstance(excinfo.value.cause, MalformedResponse)
        assert excinfo.value.position == "/x.go:1:6"

    def test_unresolvable_anonymous_caller_is_wrapped(self, call_hierarchy_output: str):
        runner = FakeRunner({
            f"call_hierarchy {POSITION}": call_hierarchy_output,
            f"symbols {SRC}/resetter.go": "newWorkflowResetter Function 60:6-60:25\n",
        })
        gateway = GoplsGateway(runner=runner)

        with pytest.raises(GatewayError) as excinfo:
            gateway.call_hierarchy(POSITION)
        assert isinstance(excinfo.value.cause, NotFoundError)


class TestRunCommand:
    """run_command against a real interpreter subprocess."""

    def test_returns_stdout(self):
        assert run_command([sys.executable, "-c", "print('ok')"], 10) == "ok\n"

    def test_non_zero_exit_includes_stderr(self):
        script = "import sys; sys.stderr.write('no package for file'); sys.exit(1)"
        with pytest.raises(SubprocessFailure) as excinfo:
            run_command([sys.executable, "-c", script], 10)
        assert excinfo.value.returncode == 1
        assert "no package for file" in str(excinfo.value)

    def test_missing_executable(self):
        with pytest.raises(SubprocessFailure):
            run_command(["definitely-not-a-real-gopls-binary"], 5)

    def test_timeout_kills_process(self):
        started = time.monotonic()
        with pytest.raises(SubprocessFailure) as excinfo:
            run_command([sys.executable, "-c", SLEEP_30], 0.3)
        assert "timed out" in str(excinfo.value)
        assert time.monotonic() - started < 10

    def test_cancel_kills_process(self):
        cancel = threading.Event()
        timer = threading.Timer(0.2, cancel.set)
        timer.start()
        started = time.monotonic()
        try:
            with pytest.raises(QueryCancelled) as excinfo:
                run_command([sys.executable, "-c", SLEEP_30], 60, cancel)
        finally:
            timer.cancel()
        assert time.monotonic() - started < 10
        assert "cancelled" in str(excinfo.value)
