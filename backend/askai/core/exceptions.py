"""
Error taxonomy for the chat core.

Every error carries an ErrorKind so callers can switch on the kind instead
of parsing human-readable messages.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Structured error kinds."""
    INVALID_INPUT = "invalid_input"
    MISSING_CREDENTIAL = "missing_credential"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN = "forbidden"
    REQUEST_FAILED = "request_failed"
    EMPTY_RESPONSE = "empty_response"
    NETWORK = "network"
    INVALID_CREDENTIALS = "invalid_credentials"
    USER_EXISTS = "user_exists"
    NOT_FOUND = "not_found"
    NO_ACTIVE_USER = "no_active_user"
    PERSISTENCE_UNAVAILABLE = "persistence_unavailable"
    STORAGE_CORRUPTED = "storage_corrupted"


class AskAIError(Exception):
    """Base exception for Ask AI."""

    kind: ErrorKind = ErrorKind.REQUEST_FAILED

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


# Completion errors

class CompletionError(AskAIError):
    """Failure of a chat-completion request."""

    retryable: bool = False


class InvalidInputError(CompletionError):
    kind = ErrorKind.INVALID_INPUT


class MissingCredentialError(CompletionError):
    kind = ErrorKind.MISSING_CREDENTIAL


class CompletionTimeoutError(CompletionError):
    kind = ErrorKind.TIMEOUT
    retryable = True


class RateLimitedError(CompletionError):
    kind = ErrorKind.RATE_LIMITED
    retryable = True


class ForbiddenError(CompletionError):
    kind = ErrorKind.FORBIDDEN


class RequestFailedError(CompletionError):
    """Non-2xx response other than 403/429."""

    kind = ErrorKind.REQUEST_FAILED

    def __init__(self, message: str, status_code: Optional[int] = None,
                 server_message: Optional[str] = None):
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code
        self.server_message = server_message

    @property
    def retryable(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


class EmptyResponseError(CompletionError):
    kind = ErrorKind.EMPTY_RESPONSE


class NetworkError(CompletionError):
    kind = ErrorKind.NETWORK
    retryable = True


# Persistence errors

class PersistenceError(AskAIError):
    """Failure reported by the persistence gateway."""
    pass


class InvalidCredentialsError(PersistenceError):
    kind = ErrorKind.INVALID_CREDENTIALS


class UserExistsError(PersistenceError):
    kind = ErrorKind.USER_EXISTS


class NotFoundError(PersistenceError):
    kind = ErrorKind.NOT_FOUND


class NoActiveUserError(PersistenceError):
    kind = ErrorKind.NO_ACTIVE_USER


class PersistenceUnavailableError(PersistenceError):
    """Remote store unreachable or rejected the call. Recovered locally."""

    kind = ErrorKind.PERSISTENCE_UNAVAILABLE


class StorageCorruptedError(PersistenceError):
    """A local record could not be parsed."""

    kind = ErrorKind.STORAGE_CORRUPTED
