"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop. Everything HTTP-specific
happens in the callback it is given.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    socket() ──► setsockopt() ──► bind() ──► listen() ──► accept() loop
                  SO_REUSEADDR     host:port  backlog        │
                                                             ▼
                                               Connection(client_socket)
                                                             │
                                                             ▼
                                                 connection_handler(conn)

bind() and listen() failures are STARTUP errors: the port is taken, or we
lack permission for a port below 1024. They are raised as StartupError and
the process exits. Errors after startup only ever affect one connection.

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() blocks until a client connects. To notice shutdown() we give the
LISTENING socket a 1 second timeout and loop:

    while running:
        try:
            accept()            # returns a client, or times out after 1s
        except timeout:
            continue            # check the running flag again

Client sockets do not inherit this timeout; Connection sets their own.

=============================================================================
"""

import socket
import signal
import threading
import logging
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from ..errors import StartupError
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP server: bind, listen, accept, hand off.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        The socket is created lazily in start().
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        With port=0 this is the port the OS picked, once the server is ready.
        """
        return self._bound_address or (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the IPv4 listening socket with its options."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting the server should not fail with "Address already in use"
        # while old connections sit in TIME_WAIT.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.settimeout(self.ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self) -> None:
        """
        Turn SIGINT (Ctrl+C) and SIGTERM into a graceful shutdown.

        Python only allows signal handlers on the main thread; a server
        started from another thread (tests, embedding) skips this step and
        is stopped with shutdown().
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]) -> None:
        """
        Bind, listen and run the accept loop.

        Blocks until shutdown() is called.

        Raises:
            StartupError: If the socket cannot be created, bound or put
                          into listening mode.
        """
        try:
            self._socket = self._create_socket()
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            self._close_socket()
            raise StartupError(
                f"Failed to listen on {self.config.host}:{self.config.port}: {e}"
            ) from e

        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]) -> None:
        """Accept connections and hand each one to the callback."""
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                    continue
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )
            connection_handler(conn)

    def shutdown(self) -> None:
        """
        Ask the accept loop to stop.

        Safe to call from any thread, a signal handler, or more than once.
        The loop notices within ACCEPT_POLL_INTERVAL seconds.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _close_socket(self) -> None:
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

    def _cleanup(self) -> None:
        self._restore_signals()
        self._close_socket()
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
