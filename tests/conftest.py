"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig
from minihttp.core.connection import Connection
from minihttp.handlers import ConnectionHandler
from minihttp.http.status_codes import HTTPStatus


INDEX_HTML = b"<p>hi</p>\n"                         # 10 bytes
APP_JS = b"console.log('minihttp');\n" * 20         # 500 bytes
NOTES_TXT = b"plain text notes\n"


@dataclass
class ParsedResponse:
    """A response read back off the wire."""

    status: int
    reason: str
    headers: Dict[str, str]
    header_names: List[str]
    body: bytes
    raw: bytes


def parse_response(raw: bytes) -> ParsedResponse:
    """Split raw response bytes into status, headers and body."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    _version, code, reason = lines[0].split(" ", 2)

    headers: Dict[str, str] = {}
    names: List[str] = []
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()
        names.append(name.strip())

    return ParsedResponse(int(code), reason, headers, names, body, raw)


def recv_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    sock.settimeout(5.0)
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """
    A served root directory:

        index.html      10 bytes
        app.js          500 bytes
        notes.txt
        style.css/      a DIRECTORY named like a file
        docs/guide.txt
    """
    (tmp_path / "index.html").write_bytes(INDEX_HTML)
    (tmp_path / "app.js").write_bytes(APP_JS)
    (tmp_path / "notes.txt").write_bytes(NOTES_TXT)
    (tmp_path / "style.css").mkdir()
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "guide.txt").write_bytes(b"read me\n")
    return tmp_path


@pytest.fixture
def handler(site_root: Path) -> ConnectionHandler:
    """A connection handler serving site_root with default limits."""
    return ConnectionHandler.from_config(ServerConfig(root=str(site_root)))


@pytest.fixture
def exchange(handler: ConnectionHandler) -> Callable[..., Tuple[Optional[HTTPStatus], bytes]]:
    """
    Run one request through a ConnectionHandler over a socketpair.

    Returns a function: run(request_bytes) -> (status, raw_response_bytes)
    """

    def run(
        request: bytes,
        handler: ConnectionHandler = handler,
    ) -> Tuple[Optional[HTTPStatus], bytes]:
        client, server_side = socket.socketpair()
        with client:
            if request:
                client.sendall(request)
            client.shutdown(socket.SHUT_WR)

            conn = Connection(
                socket=server_side,
                address=("127.0.0.1", 54321),
                linger_timeout=0.1,
            )
            status = handler.handle(conn)
            return status, recv_all(client)

    return run


@pytest.fixture
def start_server(site_root: Path) -> Generator[Callable[..., HTTPServer], None, None]:
    """
    Start real servers on ephemeral ports in background threads.

    Returns a function: start(**config_overrides) -> HTTPServer
    Every server started is shut down after the test.
    """
    started: List[Tuple[HTTPServer, threading.Thread]] = []

    def start(**overrides) -> HTTPServer:
        options = dict(
            host="127.0.0.1",
            port=0,  # Let OS pick a free port
            root=str(site_root),
            log_level="WARNING",
        )
        options.update(overrides)

        server = HTTPServer(ServerConfig(**options))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        started.append((server, thread))

        if not server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")
        return server

    yield start

    for server, thread in started:
        server.shutdown()
        thread.join(timeout=5.0)


@pytest.fixture
def send_raw() -> Callable[..., bytes]:
    """
    Send raw bytes to a server address and read the whole response.

    Returns a function: send(address, request_bytes) -> raw_response_bytes
    """

    def send(address: Tuple[str, int], request: bytes) -> bytes:
        with socket.create_connection(address, timeout=5.0) as sock:
            sock.sendall(request)
            sock.shutdown(socket.SHUT_WR)
            return recv_all(sock)

    return send
