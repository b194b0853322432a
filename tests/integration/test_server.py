"""
End-to-end tests against a real listening server.

Each test starts an HTTPServer on an ephemeral port in a background thread
(see the start_server fixture) and talks to it over TCP.
"""

import socket
import threading
import time

import pytest

from conftest import APP_JS, INDEX_HTML, NOTES_TXT, parse_response, recv_all
from minihttp import HTTPServer, ServerConfig
from minihttp.errors import StartupError


class TestServing:
    """Single requests over TCP."""

    def test_index(self, start_server, send_raw):
        server = start_server()
        response = parse_response(send_raw(server.address, b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n"))

        assert response.status == 200
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.headers["Content-Length"] == "10"
        assert response.headers["Connection"] == "close"
        assert response.body == INDEX_HTML

    def test_javascript(self, start_server, send_raw):
        server = start_server()
        response = parse_response(send_raw(server.address, b"GET /app.js HTTP/1.1\r\n\r\n"))

        assert response.status == 200
        assert response.headers["Content-Type"] == "application/javascript"
        assert response.body == APP_JS

    def test_traversal(self, start_server, send_raw):
        server = start_server()
        raw = send_raw(server.address, b"GET /../../../etc/passwd HTTP/1.1\r\n\r\n")

        assert parse_response(raw).status == 404
        assert b"root:" not in raw

    def test_encoded_traversal(self, start_server, send_raw):
        server = start_server()
        response = parse_response(send_raw(server.address, b"GET /..%2f..%2fnotes.txt HTTP/1.1\r\n\r\n"))

        assert response.status == 200
        assert response.body == NOTES_TXT

    def test_directory(self, start_server, send_raw):
        server = start_server()
        assert parse_response(send_raw(server.address, b"GET /style.css HTTP/1.1\r\n\r\n")).status == 403

    def test_post(self, start_server, send_raw):
        server = start_server()
        response = parse_response(send_raw(server.address, b"POST /index.html HTTP/1.1\r\n\r\n"))

        assert response.status == 405
        assert response.headers["Allow"] == "GET"

    def test_malformed(self, start_server, send_raw):
        server = start_server()
        assert parse_response(send_raw(server.address, b"HELLO\r\n\r\n")).status == 400

    def test_large_file(self, start_server, send_raw, site_root):
        data = bytes(range(256)) * 4096  # 1 MiB
        (site_root / "big.bin").write_bytes(data)
        server = start_server()

        response = parse_response(send_raw(server.address, b"GET /big.bin HTTP/1.1\r\n\r\n"))

        assert response.headers["Content-Length"] == str(len(data))
        assert response.body == data

    def test_sequential_requests(self, start_server, send_raw):
        """One connection per request: the server keeps accepting after each close."""
        server = start_server()
        for _ in range(5):
            assert parse_response(send_raw(server.address, b"GET / HTTP/1.1\r\n\r\n")).status == 200


class TestConnectionHandling:
    """Misbehaving clients, deadlines and concurrency."""

    def test_client_that_closes_immediately(self, start_server, send_raw):
        server = start_server()

        with socket.create_connection(server.address, timeout=5.0):
            pass

        assert parse_response(send_raw(server.address, b"GET / HTTP/1.1\r\n\r\n")).status == 200

    def test_client_that_leaves_mid_response(self, start_server, send_raw, site_root):
        (site_root / "big.bin").write_bytes(b"x" * (4 * 1024 * 1024))
        server = start_server()

        with socket.create_connection(server.address, timeout=5.0) as sock:
            sock.sendall(b"GET /big.bin HTTP/1.1\r\n\r\n")
            sock.recv(1024)

        assert parse_response(send_raw(server.address, b"GET / HTTP/1.1\r\n\r\n")).status == 200

    def test_silent_client_is_dropped_after_timeout(self, start_server, send_raw):
        server = start_server(timeout=0.5)

        with socket.create_connection(server.address, timeout=5.0) as sock:
            started = time.monotonic()
            assert recv_all(sock) == b""
            assert time.monotonic() - started < 4.0

        assert parse_response(send_raw(server.address, b"GET / HTTP/1.1\r\n\r\n")).status == 200

    def test_workers_serve_while_one_client_stalls(self, start_server, send_raw):
        server = start_server(workers=2, timeout=3.0)

        with socket.create_connection(server.address, timeout=5.0):
            # The silent client occupies one worker; the other still answers.
            response = parse_response(send_raw(server.address, b"GET /notes.txt HTTP/1.1\r\n\r\n"))

        assert response.body == NOTES_TXT

    def test_concurrent_clients(self, start_server, send_raw, site_root):
        for i in range(16):
            (site_root / f"file{i}.txt").write_bytes(f"content {i}\n".encode() * 100)
        server = start_server(workers=4)

        results = {}
        errors = []

        def fetch(i):
            try:
                raw = send_raw(server.address, f"GET /file{i}.txt HTTP/1.1\r\n\r\n".encode())
                results[i] = parse_response(raw).body
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=fetch, args=(i,)) for i in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10.0)

        assert errors == []
        for i in range(16):
            assert results[i] == f"content {i}\n".encode() * 100


class TestLifecycle:
    """Startup and shutdown."""

    def test_ephemeral_port(self, start_server):
        server = start_server()
        host, port = server.address

        assert host == "127.0.0.1"
        assert port != 0
        assert server.is_running

    def test_invalid_root(self, tmp_path):
        with pytest.raises(StartupError):
            HTTPServer(ServerConfig(root=str(tmp_path / "missing")))

    def test_port_in_use(self, site_root):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            server = HTTPServer(ServerConfig(host="127.0.0.1", port=port, root=str(site_root)))
            with pytest.raises(StartupError):
                server.run()
            assert not server.is_running

    def test_shutdown_stops_accepting(self, site_root):
        server = HTTPServer(ServerConfig(host="127.0.0.1", port=0, root=str(site_root), log_level="WARNING"))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        assert server.wait_until_ready(timeout=5.0)
        address = server.address

        server.shutdown()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        with pytest.raises(OSError):
            socket.create_connection(address, timeout=1.0)
