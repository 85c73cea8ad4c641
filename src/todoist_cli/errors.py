"""Exception taxonomy shared by the client, the batch layer and the CLI."""

from __future__ import annotations

import enum


class TodoistCLIError(Exception):
    """Base class for every error the CLI reports to the user."""


class ConfigError(TodoistCLIError):
    """The local configuration cannot support the requested command."""


class ErrorKind(str, enum.Enum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    SERVER = "server"
    UNKNOWN = "unknown"

    @classmethod
    def from_status(cls, status: int | None) -> "ErrorKind":
        if status in (401, 403):
            return cls.UNAUTHORIZED
        if status == 404:
            return cls.NOT_FOUND
        if status == 429:
            return cls.RATE_LIMITED
        if status is not None and status >= 500:
            return cls.SERVER
        if status is not None and status >= 400:
            return cls.VALIDATION
        return cls.UNKNOWN


class TodoistAPIError(TodoistCLIError):
    """A remote call failed, either with an HTTP error status or in transport."""

    def __init__(self, message: str, *, status: int | None = None, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.kind = kind or ErrorKind.from_status(status)


class NoTargetsError(TodoistCLIError):
    """Batch target resolution produced an empty set."""

    def __init__(self, message: str = "No tasks matched: pass task IDs or a --filter/--project/--label scope.") -> None:
        super().__init__(message)


class NoUpdatesError(TodoistCLIError):
    """An update was requested without any field to change."""

    def __init__(self, message: str = "No updates provided.") -> None:
        super().__init__(message)
