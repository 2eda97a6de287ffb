"""Error taxonomy for the MCP Git worktree server.

Validators and repository primitives do not raise these; they return them
wrapped in an ``Err`` value (see ``results``). The dispatcher collapses
them into failure text and the transport turns protocol errors into
JSON-RPC error responses.
"""

from typing import Optional

# JSON-RPC error codes used on the wire
PARSE_ERROR = -32700
REQUEST_ERROR = -32000


class GitServerError(Exception):
    """Base class for all errors surfaced by the server."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(GitServerError):
    """Malformed or dangerous input, detected before any mutation."""


class OperationError(GitServerError):
    """A git primitive failed; carries git's own message."""

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.command = command


class RepositoryInitError(OperationError):
    """The configured root could not be bound to a git repository."""


class UnknownToolError(GitServerError):
    """Tool name not present in the registry."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ProtocolError(GitServerError):
    """Unparseable line or unsupported JSON-RPC method."""

    def __init__(self, message: str, code: int = REQUEST_ERROR):
        super().__init__(message)
        self.code = code

    @classmethod
    def parse_error(cls) -> "ProtocolError":
        return cls("Parse error", code=PARSE_ERROR)

    @classmethod
    def unknown_method(cls, method: object) -> "ProtocolError":
        return cls(f"Unknown method: {method}", code=REQUEST_ERROR)


def describe_error(error: BaseException) -> str:
    """Human-readable message for any exception, never a traceback."""
    message = str(error)
    if not message:
        return type(error).__name__
    return message
