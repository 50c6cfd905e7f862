"""Automation execution exceptions."""

from __future__ import annotations


class ParameterCollectionCancelled(Exception):  # noqa: N818
    # Not an error - control flow mechanism (like StopIteration)
    """
    The user dismissed a parameter-collection prompt.

    This is NOT an error. It signals that the person who fired the trigger
    chose not to continue, so the orchestrator must abort the remaining
    executors and every action without showing a failure notification.

    The orchestrator detects it by type, never by message text.
    """

    def __init__(self, message: str = "Parameter collection was cancelled"):
        super().__init__(message)


class ParameterCollectionFailed(Exception):
    """
    Parameter collection failed for a reason other than cancellation.

    Raised by the parameter-builder executor when field construction or input
    validation fails. The orchestrator aborts the chain and reports it.
    """


class ExecutorNotFoundError(KeyError):
    """No executor registered under the requested key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Executor with key '{key}' not found")

    def __str__(self) -> str:
        return str(self.args[0])


class ActionNotFoundError(KeyError):
    """No action registered under the requested key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Action with key '{key}' not found")

    def __str__(self) -> str:
        return str(self.args[0])


class UnsafeCodeError(ValueError):
    """User-authored code was rejected before execution."""


class RemoteDataError(Exception):
    """
    Status-coded failure from the remote data service.

    Attributes:
        status: HTTP-style status code (400 bad request, 404 missing, 500 upstream)
        message: Human-readable reason
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"[{status}] {message}")

    def __repr__(self) -> str:
        return f"RemoteDataError(status={self.status}, message={self.message!r})"
