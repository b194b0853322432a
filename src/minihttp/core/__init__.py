"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The socket half of the server:

    core/
    ├── socket_server.py  # listening socket + accept loop
    ├── connection.py     # one client socket: receive, send, close
    └── thread_pool.py    # optional worker threads (workers > 1)

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Accepts connections
    "Connection",       # Wrapper for client socket
    "ConnectionState",  # Connection lifecycle states
    "ThreadPool",       # Worker threads for concurrent handling
]
