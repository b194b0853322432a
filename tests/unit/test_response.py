"""
Unit tests for response framing and file streaming.
"""

import io
from datetime import datetime, timezone

import pytest

from minihttp.errors import TransportError
from minihttp.http.response import (
    HTTPResponse,
    ResponseBuilder,
    ResponseWriter,
    bad_request,
    error_page,
    error_response,
    file_response,
    format_http_date,
    method_not_allowed,
    not_found,
)
from minihttp.http.status_codes import HTTPStatus


class RecordingTransport:
    """Collects every send() call; optionally fails after N calls."""

    def __init__(self, fail_after=None):
        self.sent = []
        self.fail_after = fail_after

    def send(self, data: bytes) -> None:
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            raise TransportError("Connection reset by peer")
        self.sent.append(bytes(data))

    @property
    def data(self) -> bytes:
        return b"".join(self.sent)

    def split(self):
        head, _, body = self.data.partition(b"\r\n\r\n")
        return head.decode("iso-8859-1").split("\r\n"), body


class TestHTTPResponse:
    """Tests for HTTPResponse serialization."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_head_fills_in_standard_headers(self):
        response = HTTPResponse(body=b"hello", headers={"Content-Type": "text/plain; charset=utf-8"})
        lines = response.head_bytes().decode("iso-8859-1").split("\r\n")

        assert lines[0] == "HTTP/1.1 200 OK"
        assert "Content-Type: text/plain; charset=utf-8" in lines
        assert "Content-Length: 5" in lines
        assert "Connection: close" in lines
        assert "Server: minihttp/1.0" in lines
        assert any(line.startswith("Date: ") and line.endswith(" GMT") for line in lines)
        assert response.head_bytes().endswith(b"\r\n\r\n")

    def test_connection_is_always_close(self):
        response = HTTPResponse(headers={"Connection": "keep-alive"})
        assert b"Connection: close\r\n" in response.head_bytes()
        assert b"keep-alive" not in response.head_bytes()

    def test_custom_server_name(self):
        assert b"Server: test/0.1\r\n" in HTTPResponse().head_bytes(server_name="test/0.1")

    def test_streamed_body_needs_length(self):
        response = HTTPResponse(body=io.BytesIO(b"abc"))
        assert response.is_streamed
        with pytest.raises(ValueError):
            response.body_length

    def test_close_releases_file_body(self):
        source = io.BytesIO(b"abc")
        HTTPResponse(body=source, content_length=3).close()
        assert source.closed


class TestResponseBuilder:
    """Tests for ResponseBuilder."""

    def test_literal_body(self):
        response = ResponseBuilder().status(HTTPStatus.OK).body("héllo").build()

        assert response.body == "héllo".encode("utf-8")
        assert response.headers["Content-Length"] == "6"
        assert response.headers["Connection"] == "close"

    def test_file_body(self):
        source = io.BytesIO(b"x" * 100)
        response = ResponseBuilder().file(source, 100, "text/css").build()

        assert response.is_streamed
        assert response.headers["Content-Type"] == "text/css"
        assert response.headers["Content-Length"] == "100"

    def test_file_response(self):
        response = file_response(io.BytesIO(b"{}"), 2, "application/json")
        assert response.status == HTTPStatus.OK
        assert response.body_length == 2


class TestErrorResponses:
    """Tests for the standard error responses."""

    def test_error_page(self):
        assert error_page(HTTPStatus.NOT_FOUND) == "<html><body><h1>404 Not Found</h1></body></html>\n"

    @pytest.mark.parametrize("status", [
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.FORBIDDEN,
        HTTPStatus.NOT_FOUND,
        HTTPStatus.METHOD_NOT_ALLOWED,
    ])
    def test_error_response_has_html_body(self, status):
        response = error_response(status)
        body = error_page(status).encode("utf-8")

        assert response.status == status
        assert response.body == body
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.headers["Content-Length"] == str(len(body))

    def test_shortcuts(self):
        assert bad_request().status == HTTPStatus.BAD_REQUEST
        assert not_found().status == HTTPStatus.NOT_FOUND

    def test_method_not_allowed_lists_methods(self):
        response = method_not_allowed(["GET"])
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"
        assert list(response.headers)[0] == "Allow"


class TestResponseWriter:
    """Tests for ResponseWriter."""

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            ResponseWriter(chunk_size=0)

    def test_literal_body(self):
        transport = RecordingTransport()
        sent = ResponseWriter().write(transport, not_found())

        lines, body = transport.split()
        assert lines[0] == "HTTP/1.1 404 Not Found"
        assert body == error_page(HTTPStatus.NOT_FOUND).encode("utf-8")
        assert sent == len(body)

    def test_file_is_streamed_in_chunks(self):
        data = bytes(range(256)) * 10
        source = io.BytesIO(data)
        transport = RecordingTransport()

        sent = ResponseWriter(chunk_size=1000).write(
            transport, file_response(source, len(data), "application/octet-stream")
        )

        assert sent == len(data)
        assert transport.split()[1] == data
        # head, then 1000 + 1000 + 560
        assert [len(chunk) for chunk in transport.sent[1:]] == [1000, 1000, 560]
        assert source.closed

    def test_never_sends_more_than_content_length(self):
        """A file that grew after fstat() is cut at the announced size."""
        source = io.BytesIO(b"a" * 50)
        transport = RecordingTransport()

        sent = ResponseWriter(chunk_size=16).write(transport, file_response(source, 20, "text/plain"))

        assert sent == 20
        assert transport.split()[1] == b"a" * 20

    def test_short_file_stops_at_eof(self):
        """A file that shrank after fstat() ends the body early."""
        source = io.BytesIO(b"a" * 5)
        transport = RecordingTransport()

        sent = ResponseWriter().write(transport, file_response(source, 20, "text/plain"))

        assert sent == 5
        assert transport.split()[1] == b"a" * 5

    def test_empty_file(self):
        transport = RecordingTransport()
        sent = ResponseWriter().write(transport, file_response(io.BytesIO(b""), 0, "text/plain"))

        assert sent == 0
        assert b"Content-Length: 0\r\n" in transport.data
        assert len(transport.sent) == 1

    def test_transport_failure_aborts_and_closes_file(self):
        source = io.BytesIO(b"z" * 10000)
        transport = RecordingTransport(fail_after=2)

        with pytest.raises(TransportError):
            ResponseWriter(chunk_size=1000).write(transport, file_response(source, 10000, "text/plain"))

        # head + one chunk made it out, nothing after the failure
        assert len(transport.sent) == 2
        assert source.closed

    def test_read_failure_becomes_transport_error(self):
        class BrokenFile(io.BytesIO):
            def read(self, size=-1):
                raise OSError("I/O error")

        source = BrokenFile(b"data")
        with pytest.raises(TransportError):
            ResponseWriter().write(RecordingTransport(), file_response(source, 4, "text/plain"))
        assert source.closed


class TestHTTPDate:
    """Tests for format_http_date()."""

    def test_format(self):
        dt = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 01 Jan 2026 12:00:00 GMT"

    def test_zero_padding(self):
        dt = datetime(2026, 3, 5, 4, 3, 2, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 05 Mar 2026 04:03:02 GMT"
