"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: one receive, any number of sends, one
close. Socket failures are translated into the server's TransportError.

=============================================================================
ONE RECEIVE, NO MORE
=============================================================================

TCP is a byte stream and does not preserve message boundaries. A full HTTP
server buffers until it sees "\r\n\r\n". This server does not need to:

    recv() → b"GET /index.html HTTP/1.1\r\nHost: ...\r\n..."
             └──────── request line ────────┘

The request line is the first thing a client sends and is far smaller
than the receive buffer, so one receive is enough. Whatever else the
client sent (headers, a body) is never looked at.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    RECEIVING_REQUEST ──► PARSED ──► PATH_RESOLVED ──► FILE_CHECKED
            │               │              │                │
            │               │              │                ▼
            │               │              │           RESPONDING
            │               │              │                │
            ▼               ▼              ▼                ▼
          CLOSED ◄──────────┴──────────────┴────────────────┘

Every path ends in CLOSED. There is no keep-alive state: after one
response the connection is always closed.

=============================================================================
DEADLINES
=============================================================================

With timeout=None (the default) every socket call blocks for as long as
it needs. With a timeout, the connection gets ONE deadline measured from
accept. Each receive/send gets whatever time is left, so a client cannot
stretch the exchange by trickling bytes:

    accept          recv            send head      send chunk ...
      │──────────────│───────────────│──────────────│────────► deadline
      └────────────── total time allowed = timeout ────────────┘

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from ..errors import TransportError, ConnectionTimeoutError


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, in the order a successful exchange visits them."""

    RECEIVING_REQUEST = "receiving_request"
    PARSED = "parsed"
    PATH_RESOLVED = "path_resolved"
    FILE_CHECKED = "file_checked"
    RESPONDING = "responding"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier (for logging).
        state: Current connection state.
        created_at: Monotonic timestamp of accept.
        buffer_size: Maximum bytes read by receive().
        timeout: Per-connection deadline in seconds, or None for no deadline.
        linger_timeout: How long close() drains unread client data.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.RECEIVING_REQUEST
    created_at: float = field(default_factory=time.monotonic)

    buffer_size: int = 8192
    timeout: Optional[float] = None
    linger_timeout: float = 0.5

    bytes_sent: int = 0

    def __post_init__(self):
        # Blocking mode; deadlines are applied per call in _apply_deadline()
        self.socket.settimeout(None)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return str(self.address[0]) if self.address else ""

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return int(self.address[1]) if len(self.address) > 1 else 0

    @property
    def peer(self) -> str:
        """Client address formatted as ip:port."""
        return f"{self.client_ip}:{self.client_port}"

    @property
    def deadline(self) -> Optional[float]:
        """Monotonic time after which socket calls fail, or None."""
        if self.timeout is None:
            return None
        return self.created_at + self.timeout

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def _apply_deadline(self) -> None:
        """Set the socket timeout to the time left before the deadline."""
        deadline = self.deadline
        if deadline is None:
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ConnectionTimeoutError(f"[{self.id}] Connection deadline expired")
        self.socket.settimeout(remaining)

    # =========================================================================
    # READING
    # =========================================================================

    def receive(self) -> bytes:
        """
        Read once from the socket.

        Returns:
            Up to buffer_size bytes. Empty bytes mean the peer closed the
            connection or the read failed; either way there is nobody to
            answer.

        Raises:
            ConnectionTimeoutError: If the deadline expires while waiting.
        """
        self.state = ConnectionState.RECEIVING_REQUEST
        self._apply_deadline()

        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout as e:
            raise ConnectionTimeoutError(f"[{self.id}] Timed out waiting for request") from e
        except OSError as e:
            logger.debug(f"[{self.id}] Receive failed: {e}")
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> None:
        """
        Send all of ``data``.

        sendall() loops over partial sends internally, so either every byte
        is handed to the kernel or an exception is raised.

        Raises:
            ConnectionTimeoutError: If the deadline expires mid-send.
            TransportError: If the client went away or the send failed.
        """
        self._apply_deadline()

        try:
            self.socket.sendall(data)
        except socket.timeout as e:
            raise ConnectionTimeoutError(f"[{self.id}] Timed out sending response") from e
        except OSError as e:
            # BrokenPipeError, ConnectionResetError, ...
            raise TransportError(f"[{self.id}] Send failed: {e}") from e

        self.bytes_sent += len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, the client sees end of response
        2. drain: read what the client sent that we never looked at, so the
           kernel does not answer the unread data with a RST that could
           discard our response before the client reads it
        3. close(): release the file descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            stop_at = time.monotonic() + self.linger_timeout
            self.socket.settimeout(self.linger_timeout)
            while time.monotonic() < stop_at and self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout; we are closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed ({self.bytes_sent} bytes sent)")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Ensure the connection is closed."""
        self.close()
        return False  # Don't suppress exceptions
