"""Exception hierarchy for the gerry core.

Transport errors are recoverable by the dual-backend client (REST falls back
to SSH). Everything else propagates to the caller as a terminal error.
"""

from __future__ import annotations


class GerryError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(GerryError):
    pass


class TransportError(GerryError):
    """One backend (``rest`` or ``ssh``) failed to answer a request."""

    def __init__(self, message: str, backend: str = "rest") -> None:
        self.backend = backend
        super().__init__(message)


class AuthenticationError(TransportError):
    pass


class PermissionDeniedError(TransportError):
    pass


class EndpointNotFoundError(TransportError):
    pass


class SchemaError(TransportError):
    pass


class QueryFailedError(GerryError):
    """Both backends failed. The SSH error is the primary cause."""

    def __init__(self, operation: str, ssh_error: Exception, rest_error: Exception | None = None) -> None:
        self.operation = operation
        self.ssh_error = ssh_error
        self.rest_error = rest_error
        super().__init__(f"failed to {operation}: {ssh_error}")


class RefResolutionError(GerryError):
    def __init__(self, message: str, change_number: str) -> None:
        self.change_number = change_number
        super().__init__(message)
