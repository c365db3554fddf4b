"""
Custom exception hierarchy for the ESI resource clients.

All exceptions inherit from ESIError, which provides optional context
for structured error handling and logging.

Propagation rules used by ResourceClient:
- TransportError and its subclasses are always propagated verbatim.
- DecodeError is fatal on the live path; on the cache path a bad payload
  is treated as a miss and the entry is deleted (no exception escapes).
- PersistenceError is always logged and ignored by ResourceClient.
"""

from __future__ import annotations

from typing import Any


class ESIError(Exception):
    """Base exception for all ESI client errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(ESIError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Resource type with no TTL in the expiration policy
        - Descriptor using a backend that was not configured
    """

    pass


class InvalidRequestError(ESIError):
    """Raised when a request cannot be built.

    Context should include:
        - resource: The resource type being requested
        - path: The URL template or the offending URL
        - missing: Missing path parameters, if any
    """

    pass


class TransportError(ESIError):
    """Base class for network-level failures from the fetcher.

    Timeouts, connection errors and HTTP error statuses all surface as a
    TransportError subclass. This layer never retries them.
    """

    pass


class InvalidResponseError(TransportError):
    """Raised when the origin returns something that is not an HTTP response
    we can use (connection dropped, protocol error, timeout)."""

    pass


class HttpError(TransportError):
    """Raised when ESI answers with a non-success status.

    Attributes:
        status: HTTP status code.
        body: Response body text (the ESI error message), possibly empty.
    """

    def __init__(
        self,
        status: int,
        body: str = "",
        context: dict[str, Any] | None = None,
    ) -> None:
        message = f"HTTP {status}: {body}" if body else f"HTTP {status}"
        super().__init__(message, context={"status": status, **(context or {})})
        self.status = status
        self.body = body


class PageOutOfRangeError(HttpError):
    """Raised when a paginated request asks for a page past the end.

    The fetcher raises this instead of a plain HttpError when the error body
    matches one of the caller's end signatures.
    """

    pass


class ForbiddenError(HttpError):
    """Raised for a 403 that was remembered in the forbidden cache."""

    def __init__(self, body: str = "Forbidden", context: dict[str, Any] | None = None) -> None:
        super().__init__(403, body, context=context)


class DecodeError(ESIError):
    """Raised when a live payload does not match the expected schema.

    Context should include:
        - resource: The resource type
        - error: The underlying validation or JSON error
    """

    pass


class PersistenceError(ESIError):
    """Raised when a cache write fails.

    Context should include:
        - namespace: The cache namespace
        - key: The cache key
        - error: The underlying I/O or database error
    """

    pass
