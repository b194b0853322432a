"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one dataclass. The CLI builds one from its arguments;
tests build them directly.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION GROUPS                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NETWORK     host, port, backlog, buffer_size, timeout             │
    │   FILES       root, index_file, chunk_size                          │
    │   LIMITS      max_method_length, max_target_length,                 │
    │               max_version_length, max_path_length                   │
    │   THREADING   workers, queue_size                                   │
    │   LOGGING     log_level                                             │
    │   IDENTITY    server_name                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no config file and no environment lookup: what you see in the
dataclass (or pass on the command line) is what runs.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .errors import StartupError


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    Development:
        ServerConfig(port=8080, root="./public", log_level="DEBUG")

    Tests:
        ServerConfig(host="127.0.0.1", port=0, root=tmp_path)   # OS picks port
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" listens on every IPv4 interface."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 10
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Size of the single receive that reads the request."""

    timeout: Optional[float] = None
    """
    Per-connection deadline in seconds.
    None = no deadline: a silent client can hold the server indefinitely.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILE SERVING
    # ─────────────────────────────────────────────────────────────────────

    root: str = "."
    """Served root directory. Every resolved path stays beneath it."""

    index_file: str = "index.html"
    """File served for "/" and for targets that collapse to the root."""

    chunk_size: int = 8192
    """Bytes per read/send when streaming a file."""

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_method_length: int = 15
    max_target_length: int = 1023
    max_version_length: int = 31
    max_path_length: int = 1023

    # ─────────────────────────────────────────────────────────────────────
    # THREADING
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 1
    """
    1 = handle each connection inline, one at a time.
    N > 1 = hand connections to a pool of N worker threads.
    """

    queue_size: int = 64
    """Connections waiting for a worker before accept() blocks."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = "minihttp/1.0"

    def validate(self) -> None:
        """
        Validate configuration values.

        Runs at server construction, so a bad value fails before any
        socket is opened.

        Raises:
            StartupError: On the first invalid value.
        """
        if not 0 <= self.port <= 65535:
            raise StartupError(f"Invalid port: {self.port}. Must be 0-65535.")
        if not os.path.isdir(self.root):
            raise StartupError(f"Root directory does not exist: {self.root}")
        if self.backlog < 1:
            raise StartupError("backlog must be >= 1")
        if self.buffer_size < 1:
            raise StartupError("buffer_size must be >= 1")
        if self.chunk_size < 1:
            raise StartupError("chunk_size must be >= 1")
        if self.timeout is not None and self.timeout <= 0:
            raise StartupError("timeout must be > 0")
        if self.workers < 1:
            raise StartupError("workers must be >= 1")
        if self.queue_size < 1:
            raise StartupError("queue_size must be >= 1")
        if not self.index_file or "/" in self.index_file:
            raise StartupError(f"Invalid index file name: {self.index_file!r}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise StartupError(f"Invalid log level: {self.log_level}")
        for name in ("max_method_length", "max_target_length",
                     "max_version_length", "max_path_length"):
            if getattr(self, name) < 1:
                raise StartupError(f"{name} must be >= 1")
