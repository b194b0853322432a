"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can emit, as an IntEnum with reason phrases.

    HTTP/1.1 404 Not Found\r\n
             ─── ─────────
              │      │
              │      └── Reason phrase (HTTPStatus.NOT_FOUND.phrase)
              └───────── Status code   (int(HTTPStatus.NOT_FOUND))

A static file server only needs a handful of codes. The request either
succeeds (200) or fails for one of four client-side reasons:

    400 Bad Request         - request line or path could not be used
    403 Forbidden           - the path exists but is not a regular file
    404 Not Found           - nothing openable at that path
    405 Method Not Allowed  - anything other than GET

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    Being an IntEnum, members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
    """

    # 2xx SUCCESS
    OK = 200

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx (success) status code."""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """Check if this is a 4xx (client error) status code."""
        return 400 <= self < 500


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
