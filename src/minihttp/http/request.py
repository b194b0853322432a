"""
=============================================================================
HTTP REQUEST LINE PARSING
=============================================================================

Parses the first line of an HTTP request into its three parts.

    GET /css/site.css HTTP/1.1\r\n
    ─┬─ ──────┬────── ────┬───
     │        │           │
   Method   Target     Version

=============================================================================
WHAT WE DELIBERATELY DO NOT PARSE
=============================================================================

A full HTTP parser also reads headers and a body. This server does not:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET / HTTP/1.1\r\n          ← parsed                               │
    │  Host: localhost:8080\r\n    ← ignored                              │
    │  Accept: */*\r\n             ← ignored                              │
    │  \r\n                                                                │
    └─────────────────────────────────────────────────────────────────────┘

Only the bytes from a single receive are looked at, and only up to the
first line feed. Headers never influence the response, which keeps the
parser small enough to reason about completely.

=============================================================================
TOKEN RULES
=============================================================================

    - The line is split on ASCII whitespace (space, tab, CR, ...).
    - EXACTLY three tokens, otherwise the request is malformed.
    - Each token has a maximum length:
          method   15 bytes
          target   1023 bytes
          version  31 bytes
      Longer tokens are malformed. The limits are configurable.
    - The method is NOT validated here. "BREW" parses fine and is rejected
      later with 405, which is more useful to the client than a 400.

=============================================================================
"""

from dataclasses import dataclass

from ..errors import ProtocolError


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request line.

    Frozen: once parsed, a request is never modified. It lives for exactly
    one connection.

    Attributes:
        method:  The HTTP method, exactly as sent ("GET", "get", "POST").
        target:  The raw request target, still percent-encoded.
        version: The protocol version token ("HTTP/1.1").
    """

    method: str
    target: str
    version: str = "HTTP/1.1"

    @property
    def request_line(self) -> str:
        """The request line as it would appear on the wire (without CRLF)."""
        return f"{self.method} {self.target} {self.version}"


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    Usage:
        parser = RequestParser()
        request = parser.parse(b"GET /index.html HTTP/1.1\\r\\n\\r\\n")
        request.target   # "/index.html"
    """

    def __init__(
        self,
        max_method_length: int = 15,
        max_target_length: int = 1023,
        max_version_length: int = 31,
    ):
        self.max_method_length = max_method_length
        self.max_target_length = max_target_length
        self.max_version_length = max_version_length

    def parse(self, buffer: bytes) -> HTTPRequest:
        """
        Parse the request line out of a receive buffer.

        Args:
            buffer: Bytes from one receive call.

        Returns:
            The parsed request.

        Raises:
            ProtocolError: If the line does not split into exactly three
                           tokens or a token is too long.
        """
        # ─────────────────────────────────────────────────────────────────
        # ISOLATE THE REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        line = buffer.split(b"\n", 1)[0]

        # bytes.split() with no argument splits on runs of ASCII whitespace
        # and drops empty strings, so leading/trailing blanks are harmless.
        tokens = line.split()
        if len(tokens) != 3:
            raise ProtocolError(
                f"Malformed request line: expected 3 tokens, got {len(tokens)}"
            )

        method, target, version = tokens
        self._check_length("method", method, self.max_method_length)
        self._check_length("target", target, self.max_target_length)
        self._check_length("version", version, self.max_version_length)

        # ISO-8859-1 maps every byte to one character, so decoding never
        # fails and the original bytes can be recovered exactly later.
        return HTTPRequest(
            method=method.decode("iso-8859-1"),
            target=target.decode("iso-8859-1"),
            version=version.decode("iso-8859-1"),
        )

    @staticmethod
    def _check_length(name: str, token: bytes, limit: int) -> None:
        if len(token) > limit:
            raise ProtocolError(f"Request {name} too long: {len(token)} > {limit} bytes")


def parse_request(buffer: bytes) -> HTTPRequest:
    """
    Parse a request line with the default limits.

    Convenience function for one-off parsing (tests, scripts).
    """
    return RequestParser().parse(buffer)
