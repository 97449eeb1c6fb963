"""
Exception hierarchy for MemSH.

Store operations raise these; built-in programs catch them and report a
single human-readable line so a failing command never ends the session.
"""

from __future__ import annotations

from memsh.types import ErrorKind


class MemshError(Exception):
    """Base exception for all MemSH errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path


# =============================================================================
# Filesystem errors
# =============================================================================


class NotFoundError(MemshError, FileNotFoundError):
    """A path does not resolve to an existing node of the expected kind."""

    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(MemshError, FileExistsError):
    """A same-named entry already exists where a node would be created."""

    kind = ErrorKind.ALREADY_EXISTS


class NotEmptyError(MemshError, OSError):
    """A folder still has children and cannot be removed."""

    kind = ErrorKind.NOT_EMPTY


class InvalidNameError(MemshError, ValueError):
    """A bare name is empty or contains a path separator."""

    kind = ErrorKind.INVALID_NAME


# =============================================================================
# Dispatch errors
# =============================================================================


class DispatchNotFoundError(MemshError):
    """No built-in, script or PATH entry matched a command."""

    kind = ErrorKind.DISPATCH_NOT_FOUND

    def __init__(self, command: str):
        super().__init__(f"Command not found: {command}")
        self.command = command


class ScriptFailureError(MemshError):
    """A hosted program or command script failed while running."""

    kind = ErrorKind.SCRIPT_FAILURE

    def __init__(self, message: str, path: str | None = None, cause: BaseException | None = None):
        super().__init__(message, path=path)
        self.cause = cause
