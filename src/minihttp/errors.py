"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the server knows about has its own exception class. Where the
exception is caught decides what the client sees:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        WHO HANDLES WHAT                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPError (carries .status)        → ConnectionHandler turns it   │
    │     ├── ProtocolError         400       into an error response,     │
    │     │     └── MethodNotAllowedError 405 then closes the connection  │
    │     ├── PathError             400                                    │
    │     ├── NotFoundError         404                                    │
    │     └── ForbiddenError        403                                    │
    │                                                                      │
    │   TransportError                     → ConnectionHandler aborts the │
    │     └── ConnectionTimeoutError          response and closes         │
    │                                                                      │
    │   StartupError                       → fatal, CLI exits non-zero    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Per-request errors never escape a single connection. Only StartupError is
allowed to stop the process.

=============================================================================
"""

from typing import Sequence

from .http.status_codes import HTTPStatus


class HTTPError(Exception):
    """
    Base class for errors that map onto an HTTP error response.

    Subclasses set a class-level ``status``; the message is for logs only
    and is never sent to the client.
    """

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message or self.status.phrase)


class ProtocolError(HTTPError):
    """The request line could not be parsed (Malformed)."""

    status = HTTPStatus.BAD_REQUEST


class MethodNotAllowedError(ProtocolError):
    """The request used a method other than the supported ones."""

    status = HTTPStatus.METHOD_NOT_ALLOWED

    def __init__(self, method: str, allowed: Sequence[str]):
        super().__init__(f"Method not allowed: {method}")
        self.method = method
        self.allowed = tuple(allowed)


class PathError(HTTPError):
    """The decoded request target cannot be turned into a safe path."""

    status = HTTPStatus.BAD_REQUEST


class NotFoundError(HTTPError):
    """Nothing openable exists at the resolved path."""

    status = HTTPStatus.NOT_FOUND


class ForbiddenError(HTTPError):
    """The resolved path exists but is not a regular file."""

    status = HTTPStatus.FORBIDDEN


class TransportError(Exception):
    """Reading from or writing to the client socket failed."""


class ConnectionTimeoutError(TransportError, TimeoutError):
    """The per-connection deadline expired before the exchange finished."""


class StartupError(Exception):
    """The server could not start (bad config, bind or listen failure)."""
