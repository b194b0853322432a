"""
=============================================================================
MINIHTTP - Single-File-At-A-Time Static HTTP/1.1 Server
=============================================================================

A small static file server on raw Python sockets. It reads one request
line per connection, maps the target to a file under a root directory,
streams the file back and closes the connection.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttp PORT)
    ├── server.py            # HTTPServer: wires everything together
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # Exception taxonomy
    ├── core/                # Sockets
    │   ├── socket_server.py # Listening socket + accept loop
    │   ├── connection.py    # One client socket
    │   └── thread_pool.py   # Optional worker threads
    ├── http/                # Protocol (no sockets)
    │   ├── request.py       # Request line parsing
    │   ├── paths.py         # Percent-decoding + traversal-safe paths
    │   ├── response.py      # Response framing + file streaming
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/
        ├── static.py              # Target → file
        └── connection_handler.py  # One exchange per connection

=============================================================================
QUICK START
=============================================================================

    $ python -m minihttp 8080 --root ./public

    from minihttp import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=8080, root="./public"))
    server.run()

=============================================================================
WHAT IT DOES NOT DO
=============================================================================

No keep-alive, no methods besides GET, no TLS, no caching headers, no
range requests, no directory listings, no virtual hosts, no config files.

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
