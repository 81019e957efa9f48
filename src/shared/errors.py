"""
Shared error types and messages.

User-visible errors must be clear and actionable.
"""
from dataclasses import dataclass
from enum import Enum


class AppErrors:
    """Centralized actionable error messages."""

    REDIS_UNREACHABLE = (
        "Redis server is not reachable. Check the URI and that the server is running."
    )

    REDIS_AUTH_FAILED = (
        "Redis authentication failed. Check the username and password in the URI."
    )

    REDIS_TIMEOUT = (
        "Redis did not answer in time. Check the network or raise the socket timeout."
    )

    NOT_CONNECTED = (
        "Connection is not open. Expand the connection first."
    )

    UNKNOWN_CONNECTION = (
        "Connection no longer exists. Refresh the connection list."
    )

    INVALID_URI = (
        "URI must start with redis:// or rediss://"
    )


class ErrorKind(str, Enum):
    """Structured classification of a failed operation."""
    BACKEND = "BACKEND"
    NOT_CONNECTED = "NOT_CONNECTED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    STALE_REFERENCE = "STALE_REFERENCE"
    UNEXPECTED = "UNEXPECTED"


class BackendCallError(Exception):
    """A round-trip to the backend data service failed."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.BACKEND):
        super().__init__(message)
        self.message = message
        self.kind = kind


class StaleReferenceError(BackendCallError):
    """Operation targets a connection that is no longer in the registry."""

    def __init__(self, connection_id: int):
        super().__init__(
            f"{AppErrors.UNKNOWN_CONNECTION} (id={connection_id})",
            kind=ErrorKind.STALE_REFERENCE,
        )
        self.connection_id = connection_id


@dataclass(frozen=True)
class StoreError:
    """Error value kept in store state: a kind plus a human-readable message."""
    kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, error: Exception) -> "StoreError":
        if isinstance(error, BackendCallError):
            return cls(kind=error.kind, message=error.message)
        return cls(kind=ErrorKind.UNEXPECTED, message=str(error))

    def __str__(self) -> str:
        return self.message


def format_redis_error(error: Exception) -> str:
    """Format a redis-py error as an actionable message."""
    from redis.exceptions import (
        AuthenticationError,
        ConnectionError as RedisConnectionError,
        TimeoutError as RedisTimeoutError,
    )

    if isinstance(error, AuthenticationError):
        return AppErrors.REDIS_AUTH_FAILED

    if isinstance(error, RedisTimeoutError):
        return AppErrors.REDIS_TIMEOUT

    if isinstance(error, RedisConnectionError):
        error_str = str(error).lower()
        if "refused" in error_str or "connect" in error_str:
            return AppErrors.REDIS_UNREACHABLE
        return f"Redis connection error: {error}"

    return f"Redis error: {error}"
