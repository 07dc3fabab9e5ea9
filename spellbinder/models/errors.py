"""
Error classification.

Every failure the service reports is one of a small number of kinds,
each mapped to an HTTP status. The API layer renders them as
``{"success": false, "error": ..., "kind": ...}``.

Client-side sync errors (network and job failures) never leave the
poller; they are surfaced through its ``error`` field.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of failure types."""

    INVALID_PARAMETER = "invalid_parameter"
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    QUERY_EXECUTION_FAILURE = "query_execution_failure"
    NETWORK_FAILURE = "network_failure"
    JOB_FAILURE = "job_failure"


class SpellBinderError(Exception):
    """
    Base class for known, explainable failures.

    Subclasses fix the kind and the HTTP status code.
    """

    kind: ErrorKind = ErrorKind.JOB_FAILURE
    status_code: int = 500

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidParameterError(SpellBinderError):
    """A request parameter is malformed or out of range."""

    kind = ErrorKind.INVALID_PARAMETER
    status_code = 400

    def __init__(self, parameter: str, message: str) -> None:
        super().__init__(f"Invalid parameter '{parameter}': {message}")
        self.parameter = parameter


class UnauthenticatedError(SpellBinderError):
    """No valid credentials were supplied."""

    kind = ErrorKind.UNAUTHENTICATED
    status_code = 401


class UnauthorizedError(SpellBinderError):
    """The caller is authenticated but lacks the required capability."""

    kind = ErrorKind.UNAUTHORIZED
    status_code = 403


class NotFoundError(SpellBinderError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class QueryExecutionError(SpellBinderError):
    """The underlying store failed while executing a query."""

    kind = ErrorKind.QUERY_EXECUTION_FAILURE
    status_code = 500


class SyncNetworkError(SpellBinderError):
    """Transport or decoding failure talking to the sync endpoints."""

    kind = ErrorKind.NETWORK_FAILURE
    status_code = 502


class SyncJobError(SpellBinderError):
    """The sync endpoint answered with ``success: false``."""

    kind = ErrorKind.JOB_FAILURE
    status_code = 500
