"""
=============================================================================
HTTP RESPONSE FRAMING
=============================================================================

Builds HTTP/1.1 responses and writes them to a client, streaming file
bodies in bounded chunks.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                        ← status line           │
    │  Content-Type: text/css\r\n                 ┐                       │
    │  Content-Length: 1532\r\n                   │                       │
    │  Connection: close\r\n                      │ headers               │
    │  Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n    │                       │
    │  Server: minihttp/1.0\r\n                   ┘                       │
    │  \r\n                                       ← end of head           │
    │  body { margin: 0; } ...                    ← exactly 1532 bytes    │
    └─────────────────────────────────────────────────────────────────────┘

Three headers are ALWAYS present:

    Content-Type    - how to interpret the body
    Content-Length  - where the body ends (we never use chunked encoding)
    Connection      - always "close": one request per connection

=============================================================================
STREAMING VS BUFFERING
=============================================================================

Error responses have tiny literal bodies, so they are plain bytes.

File bodies are NOT read into memory. The response holds the open file
and ResponseWriter copies it to the socket chunk by chunk:

        file ──read(8192)──► chunk ──send()──► socket
          ▲                                       │
          └────────────── until Content-Length ───┘

Memory use is bounded by the chunk size regardless of the file size.

If a send fails halfway, the response is abandoned. We cannot take back
the status line that already went out, so the client sees a truncated
body and the connection is closed. That is the honest failure mode for
Content-Length framing.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Optional, Sequence, Union

from ..errors import TransportError
from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "minihttp/1.0"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written.

    The body is either literal bytes or an open binary file. A file body
    must come with content_length, taken from fstat() when the file was
    opened.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler builds           ResponseWriter            Socket
        HTTPResponse    ─────►   head_bytes() + body ────► sendall()
                                  then close()

    A response is written exactly once. ResponseWriter closes a file
    body when it is done, whether or not the write succeeded.

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: Union[bytes, BinaryIO] = b""
    content_length: Optional[int] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def is_streamed(self) -> bool:
        """True when the body is a file to be copied in chunks."""
        return not isinstance(self.body, (bytes, bytearray))

    @property
    def body_length(self) -> int:
        """Number of body bytes announced in Content-Length."""
        if self.content_length is not None:
            return self.content_length
        if self.is_streamed:
            raise ValueError("Streamed response needs an explicit content_length")
        return len(self.body)

    def head_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the status line and headers.

        Content-Length, Connection, Date and Server are filled in when the
        handler did not set them. Connection is always "close".

        Returns:
            Everything up to and including the blank line after the headers.
        """
        # Copy headers to avoid modifying original
        response_headers = dict(self.headers)

        response_headers.setdefault("Content-Type", "application/octet-stream")
        response_headers.setdefault("Content-Length", str(self.body_length))
        response_headers["Connection"] = "close"
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        # Header values are ASCII in practice; latin-1 is the HTTP/1.1 charset
        return "\r\n".join(lines).encode("iso-8859-1") + b"\r\n"

    def close(self) -> None:
        """Release the file body, if any."""
        if self.is_streamed:
            self.body.close()


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.METHOD_NOT_ALLOWED)
            .header("Allow", "GET")
            .html(error_page(HTTPStatus.METHOD_NOT_ALLOWED))
            .build())

    Each method returns ``self`` except build().
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: Union[bytes, BinaryIO] = b""
        self._content_length: Optional[int] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a literal body (strings are encoded as UTF-8)."""
        self._body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        self._content_length = None
        return self

    def html(self, html: str) -> "ResponseBuilder":
        """Set an HTML body and its Content-Type."""
        self._headers["Content-Type"] = HTML_CONTENT_TYPE
        return self.body(html)

    def file(self, source: BinaryIO, size: int, content_type: str) -> "ResponseBuilder":
        """
        Stream the body from an open binary file.

        Args:
            source: File opened for reading, positioned at the start.
            size: Exact number of bytes to send (from fstat).
            content_type: Content-Type header value.
        """
        self._body = source
        self._content_length = size
        self._headers["Content-Type"] = content_type
        return self

    def build(self) -> HTTPResponse:
        """Build the HTTPResponse."""
        response = HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
            content_length=self._content_length,
        )
        response.headers.setdefault("Content-Length", str(response.body_length))
        response.headers["Connection"] = "close"
        return response


class ResponseWriter:
    """
    Writes HTTPResponse objects to a transport.

    A transport is anything with a ``send(data: bytes)`` method that sends
    all of ``data`` or raises TransportError (core.connection.Connection
    in the server, a recording fake in tests).

    =========================================================================
    WRITE SEQUENCE
    =========================================================================

        1. send(head)                  status line + headers + blank line
        2. literal body?  send(body)
           file body?     loop: read(chunk_size) → send(chunk)
                          stop after Content-Length bytes or at EOF
        3. close the file body

    Any TransportError from step 1 or 2 propagates to the caller after the
    file is closed. Nothing is retried.

    =========================================================================
    """

    def __init__(self, chunk_size: int = 8192, server_name: str = DEFAULT_SERVER_NAME):
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.chunk_size = chunk_size
        self.server_name = server_name

    def write(self, transport, response: HTTPResponse) -> int:
        """
        Send a complete response.

        Returns:
            Number of body bytes sent.

        Raises:
            TransportError: If the transport fails or the file body cannot
                            be read.
        """
        try:
            transport.send(response.head_bytes(self.server_name))

            if response.is_streamed:
                return self._stream(transport, response.body, response.body_length)

            if response.body:
                transport.send(bytes(response.body))
            return len(response.body)
        finally:
            response.close()

    def _stream(self, transport, source: BinaryIO, length: int) -> int:
        """Copy at most ``length`` bytes from ``source`` in chunks."""
        remaining = length
        while remaining > 0:
            try:
                chunk = source.read(min(self.chunk_size, remaining))
            except OSError as e:
                raise TransportError(f"Failed to read file body: {e}") from e

            if not chunk:
                # File shrank after fstat(); the client gets a short body
                break

            transport.send(chunk)
            remaining -= len(chunk)

        return length - remaining


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 01 Jan 2026 12:00:00 GMT

    HTTP dates are ALWAYS in GMT (UTC), never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_page(status: HTTPStatus) -> str:
    """
    The minimal HTML body used for every error response.

        >>> error_page(HTTPStatus.NOT_FOUND)
        '<html><body><h1>404 Not Found</h1></body></html>\\n'
    """
    return f"<html><body><h1>{int(status)} {status.phrase}</h1></body></html>\n"


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def file_response(source: BinaryIO, size: int, content_type: str) -> HTTPResponse:
    """Create a 200 OK response that streams an open file."""
    return ResponseBuilder().status(HTTPStatus.OK).file(source, size, content_type).build()


def error_response(
    status: HTTPStatus,
    headers: Optional[Dict[str, str]] = None,
) -> HTTPResponse:
    """
    Create an error response with the standard HTML body.

    Args:
        status: The error status.
        headers: Extra headers, written before the standard ones.
    """
    builder = ResponseBuilder().status(status)
    for name, value in (headers or {}).items():
        builder.header(name, value)
    return builder.html(error_page(status)).build()


def bad_request() -> HTTPResponse:
    """Create a 400 Bad Request response."""
    return error_response(HTTPStatus.BAD_REQUEST)


def forbidden() -> HTTPResponse:
    """Create a 403 Forbidden response."""
    return error_response(HTTPStatus.FORBIDDEN)


def not_found() -> HTTPResponse:
    """Create a 404 Not Found response."""
    return error_response(HTTPStatus.NOT_FOUND)


def method_not_allowed(allowed_methods: Sequence[str]) -> HTTPResponse:
    """
    Create a 405 Method Not Allowed response.

    Includes the Allow header listing valid methods (RFC 7231 requirement).
    """
    return error_response(
        HTTPStatus.METHOD_NOT_ALLOWED,
        headers={"Allow": ", ".join(allowed_methods)},
    )
