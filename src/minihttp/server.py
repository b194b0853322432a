"""
=============================================================================
HTTP SERVER
=============================================================================

Glues the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ServerConfig ──► HTTPServer                                        │
    │                       │                                              │
    │                       ├── SocketServer        accept loop            │
    │                       ├── ConnectionHandler   one exchange per conn  │
    │                       └── ThreadPool          only if workers > 1    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    workers == 1                         workers > 1
    ────────────                         ───────────
    accept → handle → close → accept     accept → submit → accept → ...
    (one connection in flight)           (up to `workers` in flight)

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .handlers import ConnectionHandler


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Static file server.

    Usage:
        server = HTTPServer(ServerConfig(port=8080, root="./public"))
        server.run()            # blocks until Ctrl+C / SIGTERM / shutdown()

    In tests, run it on a background thread with port=0:

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready()
        host, port = server.address
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the server.

        Raises:
            StartupError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._handler = ConnectionHandler.from_config(self.config)
        self._thread_pool: Optional[ThreadPool] = None
        if self.config.workers > 1:
            self._thread_pool = ThreadPool(
                workers=self.config.workers,
                queue_size=self.config.queue_size,
            )
        self._running = False

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port once the server is ready."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def handler(self) -> ConnectionHandler:
        return self._handler

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self) -> None:
        """
        Start serving (blocking).

        Raises:
            StartupError: If the listening socket cannot be set up.
        """
        self._setup_logging()
        self._running = True

        if self._thread_pool:
            self._thread_pool.start()

        logger.info(
            f"Serving {self._handler.static.root} on "
            f"{self.config.host}:{self.config.port} "
            f"({self.config.workers} worker{'s' if self.config.workers > 1 else ''})"
        )

        try:
            self._socket_server.start(self._dispatch)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Stop accepting connections. Safe to call from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up. Returns False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # basicConfig is a no-op when the application already configured
        # the root logger, so embedding apps keep their own handlers.
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    def _shutdown(self) -> None:
        """Wait for in-flight connections, then stop."""
        self._running = False
        if self._thread_pool:
            self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION DISPATCH
    # =========================================================================

    def _dispatch(self, conn: Connection) -> None:
        """Called by SocketServer for every accepted connection."""
        if self._thread_pool:
            self._thread_pool.submit(self._handler, conn)
        else:
            self._handler(conn)
