"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps a parsed request onto a file beneath the served root and builds the
response that streams it.

=============================================================================
FROM TARGET TO FILE
=============================================================================

    GET /css/site.css HTTP/1.1
              │
              ▼  check_method()      anything but GET → 405
              │
              ▼  resolve()           PathResolver, no filesystem access
    /srv/www/css/site.css            bad path → 400
              │
              ▼  open()              os.open + os.fstat
    (file, FileMetadata)             cannot open → 404
              │                      not a regular file → 403
              ▼  build_response()
    200 OK, Content-Type from MimeResolver, Content-Length from fstat

=============================================================================
WHY OPEN FIRST AND STAT SECOND?
=============================================================================

Checking with os.path.isfile() and then opening leaves a window where the
file can be swapped. We open once and fstat() the DESCRIPTOR we hold, so
the size we announce and the bytes we send come from the same file.

The open uses O_NONBLOCK where available. Opening a FIFO for reading
normally blocks until a writer shows up, which would stall a server that
handles one connection at a time. With O_NONBLOCK the open returns at once,
fstat() reports a FIFO, and we answer 403. For regular files the flag has
no effect.

=============================================================================
"""

import os
import stat
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Sequence, Tuple, Union

from ..errors import ForbiddenError, MethodNotAllowedError, NotFoundError
from ..http.mime_types import get_mime_type
from ..http.paths import PathResolver
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, file_response


logger = logging.getLogger(__name__)


_OPEN_FLAGS = os.O_RDONLY | getattr(os, "O_NONBLOCK", 0) | getattr(os, "O_BINARY", 0)


@dataclass(frozen=True)
class FileMetadata:
    """What we need to know about an opened file."""

    size: int
    is_regular_file: bool

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileMetadata":
        return cls(size=st.st_size, is_regular_file=stat.S_ISREG(st.st_mode))


def open_file(path: Union[str, Path]) -> Tuple[BinaryIO, FileMetadata]:
    """
    Open a file for streaming.

    Returns:
        The open binary file (caller closes it) and its metadata.

    Raises:
        NotFoundError: The path cannot be opened (missing, permission
                       denied, a parent is not a directory, ...).
        ForbiddenError: The path is a directory, device, FIFO or socket.
    """
    try:
        fd = os.open(path, _OPEN_FLAGS)
    except IsADirectoryError as e:
        # Platforms that refuse to open directories at all
        raise ForbiddenError(f"Not a regular file: {path}") from e
    except OSError as e:
        raise NotFoundError(f"Cannot open {path}: {e.strerror}") from e

    try:
        metadata = FileMetadata.from_stat(os.fstat(fd))
    except OSError as e:
        os.close(fd)
        raise NotFoundError(f"Cannot stat {path}: {e.strerror}") from e

    if not metadata.is_regular_file:
        os.close(fd)
        raise ForbiddenError(f"Not a regular file: {path}")

    return os.fdopen(fd, "rb"), metadata


class StaticFileHandler:
    """
    Handler for serving static files from one root directory.

    =========================================================================
    FEATURES
    =========================================================================

    - GET only; everything else is 405 with an Allow header
    - Root requests serve the index file
    - Traversal-proof path resolution (see http/paths.py)
    - Content-Type from a fixed extension table
    - Exact Content-Length from fstat(), body streamed by ResponseWriter

    NOT supported: directory listing, caching headers, range requests.

    =========================================================================
    USAGE
    =========================================================================

        static = StaticFileHandler("/srv/www")
        response = static.handle(request)   # may raise an HTTPError

    ConnectionHandler calls the individual steps instead of handle() so it
    can record each state transition.

    =========================================================================
    """

    def __init__(
        self,
        root: Union[str, Path],
        index_file: str = "index.html",
        max_path_length: int = 1023,
        allowed_methods: Sequence[str] = ("GET",),
    ):
        self.resolver = PathResolver(root, index_file=index_file, max_path_length=max_path_length)
        self.allowed_methods = tuple(allowed_methods)

    @property
    def root(self) -> Path:
        return self.resolver.root

    def check_method(self, request: HTTPRequest) -> None:
        """Raise MethodNotAllowedError unless the method is supported (case-sensitive)."""
        if request.method not in self.allowed_methods:
            raise MethodNotAllowedError(request.method, self.allowed_methods)

    def resolve(self, request: HTTPRequest) -> Path:
        """Resolve the request target. Raises PathError."""
        return self.resolver.resolve(request.target)

    def open(self, path: Path) -> Tuple[BinaryIO, FileMetadata]:
        """Open the resolved path. Raises NotFoundError or ForbiddenError."""
        return open_file(path)

    def build_response(self, path: Path, source: BinaryIO, metadata: FileMetadata) -> HTTPResponse:
        """Build the 200 response that streams ``source``."""
        return file_response(source, metadata.size, get_mime_type(path))

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run every step for one request.

        Raises:
            HTTPError: The matching subclass for 400/403/404/405 outcomes.
        """
        self.check_method(request)
        path = self.resolve(request)
        source, metadata = self.open(path)
        logger.debug(f"Serving {path} ({metadata.size} bytes)")
        return self.build_response(path, source, metadata)
