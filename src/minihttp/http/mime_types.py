"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

MIME types tell the browser how to interpret the response body. We pick
one from the file extension with a small static table.

    ┌────────────────────────────────────────────────────────────────────┐
    │  style.css       → text/css                                        │
    │  app.js          → application/javascript                          │
    │  index.html      → text/html; charset=utf-8                        │
    │  photo.JPG       → application/octet-stream  (lookup is exact!)    │
    │  Makefile        → application/octet-stream  (no extension)        │
    │  archive.        → application/octet-stream  (empty extension)     │
    └────────────────────────────────────────────────────────────────────┘

Text types carry an explicit charset so browsers do not have to sniff.

The lookup is CASE-SENSITIVE on purpose: "PAGE.HTML" is not in the table
and is served as binary. Only the last path segment is considered, so a
dot in a directory name ("/v1.2/README") never counts as an extension.

=============================================================================
"""

from pathlib import PurePath
from typing import Union


# Extension (without the dot) → Content-Type header value.
MIME_TYPES = {
    # TEXT
    "html": "text/html; charset=utf-8",
    "htm": "text/html; charset=utf-8",
    "css": "text/css",
    "js": "application/javascript",
    "txt": "text/plain; charset=utf-8",
    "json": "application/json",

    # IMAGES
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
}

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_extension(path: Union[str, PurePath]) -> str:
    """
    Return the text after the last "." of the final path segment.

    Returns an empty string when the segment has no dot.

        >>> get_extension("/a/b/app.min.js")
        'js'
        >>> get_extension("/v1.2/README")
        ''
    """
    name = str(path).replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1]


def get_mime_type(path: Union[str, PurePath]) -> str:
    """
    Get the Content-Type for a file path.

    Pure and total: every input maps to some string, and the same
    extension always maps to the same string.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'

        >>> get_mime_type("/srv/www/index.html")
        'text/html; charset=utf-8'

        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    return MIME_TYPES.get(get_extension(path), DEFAULT_MIME_TYPE)
