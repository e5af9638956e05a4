"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients.
  The global handler logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``EnvironmentLifecycleError`` subclasses: user-facing lifecycle failures.
  Each carries a stable ``kind`` and HTTP status; the global handler returns
  ``{"detail": str(exc), "error": kind}``.
- ``ConfigurationError``: fatal at startup, never handled.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients."""


class ConfigurationError(RuntimeError):
    """Required configuration is missing; the process must not start."""


class EnvironmentLifecycleError(Exception):
    """Base class for named-environment lifecycle failures."""

    kind = "environment_error"
    status_code = 400

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class InvalidEnvironmentNameError(EnvironmentLifecycleError):
    kind = "invalid_environment_name"
    status_code = 400


class InvalidTtlError(EnvironmentLifecycleError):
    kind = "invalid_ttl"
    status_code = 400


class EnvironmentConflictError(EnvironmentLifecycleError):
    """A live environment with the requested name already exists."""

    kind = "environment_conflict"
    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Environment '{name}' already exists")


class EnvironmentNotFoundError(EnvironmentLifecycleError):
    """No live environment with this name: never created, deleted, or expired."""

    kind = "environment_not_found"
    status_code = 404

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Unknown or expired environment '{name}'")


class EnvironmentGoneError(EnvironmentLifecycleError):
    """Delete target does not exist (already deleted or swept)."""

    kind = "environment_gone"
    status_code = 410

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Environment '{name}' does not exist")


class NotionApiError(Exception):
    """The Notion API call failed.

    ``retryable`` is True for rate limiting, server errors, and transport
    failures; callers may wrap a sync pass in their own retry policy.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500
