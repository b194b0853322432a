"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The pure, socket-free half of the server:

    http/
    ├── status_codes.py  # HTTPStatus enum with reason phrases
    ├── mime_types.py    # extension → Content-Type table
    ├── request.py       # request line parsing (RequestParser)
    ├── paths.py         # percent-decoding + traversal-safe resolution
    └── response.py      # response framing and chunked file streaming

Nothing in here opens a socket, so everything can be unit tested with
plain bytes and strings.

Only the leaf modules are re-exported here. request, paths and response
depend on minihttp.errors, which itself imports status_codes; import them
by their module path.

=============================================================================
"""

from .status_codes import HTTPStatus
from .mime_types import get_mime_type, DEFAULT_MIME_TYPE

__all__ = [
    "HTTPStatus",
    "get_mime_type",
    "DEFAULT_MIME_TYPE",
]
