"""
Exception taxonomy for lifecycle operations.
"""

from typing import Any, Optional

from botocore.exceptions import ClientError


class RekonError(Exception):
    """Base class for all rekon errors."""

    context = None

    def with_context(self, context: str) -> "RekonError":
        """Prefix the message with the operation and subject that failed."""
        self.context = context
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.context:
            return f"{self.context}: {message}"
        return message


class ResourceValidationError(RekonError):
    """A configuration value was rejected before any remote call."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}" if field else message)


class RemoteError(RekonError):
    """A remote API call failed."""

    def __init__(self, operation: str, subject: Optional[str], cause: Exception):
        self.operation = operation
        self.subject = subject
        self.cause = cause
        if subject:
            message = f"{operation} ({subject}): {cause}"
        else:
            message = f"{operation}: {cause}"
        super().__init__(message)

    @property
    def code(self) -> str:
        return error_code(self.cause)


class NotFoundError(RekonError):
    """The remote subject does not exist."""

    def __init__(self, message: str = "couldn't find resource", last_request: Any = None):
        self.message = message
        self.last_request = last_request
        super().__init__(message)


class EmptyResultError(NotFoundError):
    """The remote call succeeded but returned nothing."""

    def __init__(self, last_request: Any = None):
        super().__init__("empty result", last_request)


class WaitTimeoutError(RekonError):
    """The condition poller ran out of time."""

    def __init__(self, last_state: str, timeout: float, detail: Optional[str] = None):
        self.last_state = last_state
        self.timeout = timeout
        self.detail = detail
        message = f"timeout while waiting for state to become target (last state: {last_state!r}, timeout: {timeout:g}s)"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnexpectedStateError(RekonError):
    """The condition poller saw a state outside pending and target."""

    def __init__(self, state: str, expected: list, detail: Optional[str] = None):
        self.state = state
        self.expected = list(expected)
        self.detail = detail
        message = f"unexpected state {state!r}, wanted target {', '.join(repr(s) for s in self.expected)}"
        if detail:
            message = f"{message}. last error: {detail}"
        super().__init__(message)


class WaitCancelledError(RekonError):
    """The caller cancelled a wait."""


def error_code(err: Exception) -> str:
    """
    Get the AWS error code from a botocore exception.

    Args:
        err: Any exception

    Returns:
        str: Error code, or "" when the exception carries none
    """
    if isinstance(err, RemoteError):
        err = err.cause
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Code", "")
    return ""


def error_message(err: Exception) -> str:
    if isinstance(err, RemoteError):
        err = err.cause
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Message", "")
    return str(err)


def err_code_contains(err: Exception, code: str) -> bool:
    return code in error_code(err)


def err_message_contains(err: Exception, code: str, fragment: str) -> bool:
    """True when the error has the given code and its message contains fragment."""
    return error_code(err) == code and fragment in error_message(err)
