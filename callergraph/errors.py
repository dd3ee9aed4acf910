"""Exception hierarchy shared by the parser, gateway, crawler and CLI."""

from __future__ import annotations

from typing import Optional, Sequence


class CallGraphError(Exception):
    """Base class for every error raised by callergraph."""


class MalformedResponse(CallGraphError):
    """A line of gopls output could not be parsed."""

    def __init__(self, line: str, reason: str = "unexpected format"):
        self.line = line
        self.reason = reason
        super().__init__(f"{reason}: '{line}'")


class NotFoundError(CallGraphError):
    """No Function or Method symbol with the given name exists in the file."""

    def __init__(self, name: str, file: str):
        self.name = name
        self.file = file
        super().__init__(f"failed to locate symbol {name} in file {file}")


class SubprocessFailure(CallGraphError):
    """gopls could not be started, timed out, or exited non-zero."""

    def __init__(self, command: Sequence[str], returncode: Optional[int], stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        message = " ".join(self.command)
        if returncode is not None:
            message += f" exited with status {returncode}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)


class GatewayError(CallGraphError):
    """A call-hierarchy query failed; wraps the underlying cause."""

    def __init__(self, position: str, cause: CallGraphError):
        self.position = position
        self.cause = cause
        super().__init__(f"call hierarchy query at {position} failed: {cause}")


class QueryCancelled(SubprocessFailure):
    """The crawl finished while this gopls process was still running; it was killed."""

    def __init__(self, command: Sequence[str]):
        super().__init__(command, None, "cancelled")
