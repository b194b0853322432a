"""
=============================================================================
MINIHTTP CLI ENTRY POINT
=============================================================================

    # Serve the current directory on port 8080
    python -m minihttp 8080

    # Serve ./public, only on localhost
    python -m minihttp 8080 --root ./public --host 127.0.0.1

    # Close connections that take longer than 10 seconds
    python -m minihttp 8080 --timeout 10

    # Four connections in flight at once
    python -m minihttp 8080 --workers 4

=============================================================================
EXIT STATUS
=============================================================================

    0   server stopped normally (Ctrl+C, SIGTERM)
    1   startup failed (root missing, port in use, permission denied)
    2   bad command line (missing or invalid PORT, unknown option)

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .errors import StartupError
from .server import HTTPServer


def port_number(value: str) -> int:
    """argparse type for a TCP port in 1-65535."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 < port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535, got {port}")
    return port


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Serve static files from a directory over HTTP/1.1",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  minihttp 8080                        # Serve the current directory
  minihttp 8080 --root ./public        # Serve ./public
  minihttp 8080 --host 127.0.0.1       # Localhost only
  minihttp 8080 --timeout 10 -w 4      # Deadline + 4 worker threads
        """,
    )

    parser.add_argument(
        "port",
        type=port_number,
        help="TCP port to listen on (1-65535)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default="0.0.0.0",
        help="Address to bind (default: 0.0.0.0, all interfaces)",
    )
    parser.add_argument(
        "--timeout", "-t",
        type=positive_float,
        default=None,
        help="Per-connection deadline in seconds (default: none)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES / PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=".",
        help="Directory to serve (default: current directory)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=positive_int,
        default=1,
        help="Connections handled at once (default: 1)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Parse arguments, build the server and run it.

    argparse exits with status 2 (usage on stderr) for a bad command line.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        root=args.root,
        timeout=args.timeout,
        workers=args.workers,
        log_level=args.log_level,
    )

    try:
        server = HTTPServer(config)
        server.run()
    except StartupError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
