"""Gateway to the gopls command-line tool.

Each public method is one round trip to a ``gopls`` subprocess whose stdout is
handed to :mod:`callergraph.parser`. A ``cancel`` event, when given and set,
kills the running subprocess.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from dataclasses import replace
from typing import Callable, Iterator, Optional, Sequence

from . import config
from .errors import CallGraphError, GatewayError, NotFoundError, QueryCancelled, SubprocessFailure
from .models import Function, QueryResult, Symbol
from .parser import find_function, parse_call_hierarchy, parse_symbols_response

logger = logging.getLogger(__name__)

Runner = Callable[[Sequence[str], float, Optional[threading.Event]], str]

# How often a running subprocess checks for cancellation, in seconds.
POLL_INTERVAL = 0.1


def run_command(args: Sequence[str], timeout: float, cancel: Optional[threading.Event] = None) -> str:
    """Run *args* and return stdout.

    Raises:
        QueryCancelled: *cancel* was set before the process exited.
        SubprocessFailure: the process could not start, timed out, or exited non-zero.
    """
    try:
        process = subprocess.Popen(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError as exc:
        raise SubprocessFailure(args, None, str(exc)) from exc

    deadline = time.monotonic() + timeout
    while True:
        try:
            stdout, stderr = process.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if cancel is not None and cancel.is_set():
                process.kill()
                process.communicate()
                raise QueryCancelled(args)
            if time.monotonic() >= deadline:
                process.kill()
                process.communicate()
                raise SubprocessFailure(args, None, f"timed out after {timeout}s")

    if process.returncode != 0:
        raise SubprocessFailure(args, process.returncode, stderr)
    return stdout


class GoplsGateway:
    """Runs ``gopls symbols`` and ``gopls call_hierarchy`` queries."""

    def __init__(
        self,
        executable: Optional[str] = None,
        timeout: Optional[float] = None,
        runner: Optional[Runner] = None,
    ):
        self.executable = executable or config.GOPLS_PATH
        self.timeout = timeout if timeout is not None else config.QUERY_TIMEOUT
        self._run = runner or run_command

    def _gopls(self, *args: str, cancel: Optional[threading.Event] = None) -> str:
        return self._run([self.executable, *args], self.timeout, cancel)

    def symbols(self, file: str, cancel: Optional[threading.Event] = None) -> Iterator[Symbol]:
        """Symbols of *file*, parsed one line at a time as they are consumed."""
        return parse_symbols_response(self._gopls("symbols", file, cancel=cancel), file)

    def lookup_function(self, name: str, file: str, cancel: Optional[threading.Event] = None) -> Function:
        """Resolve the Function or Method *name* defined in *file*.

        Lines after the first match are never parsed.

        Raises:
            NotFoundError: if no such symbol is listed.
            MalformedResponse, SubprocessFailure: from the underlying query.
        """
        logger.debug("GetFunction: %s %s", name, file)
        function = find_function(self.symbols(file, cancel=cancel), name)
        if function is None:
            raise NotFoundError(name, file)
        return function

    def call_hierarchy(self, position: str, cancel: Optional[threading.Event] = None) -> QueryResult:
        """Callers and callees of the function at *position* (``file:line:col``).

        Anonymous callers are replaced by their enclosing named function,
        since gopls cannot report incoming calls to a closure.
        """
        logger.debug("CallHierarchy: %s", position)
        try:
            result = parse_call_hierarchy(self._gopls("call_hierarchy", position, cancel=cancel))
            for i, call_site in enumerate(result.callers):
                enclosing = call_site.function.enclosing_name
                if enclosing is None:
                    continue
                named = self.lookup_function(enclosing, call_site.function.location.file, cancel=cancel)
                logger.debug("Resolved anonymous caller %s to %s", call_site.function.name, named.name)
                result.callers[i] = replace(call_site, function=named)
        except CallGraphError as exc:
            raise GatewayError(position, exc) from exc
        return result
