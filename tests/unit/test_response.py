"""
Unit tests for HTTP response building and writing.
"""

import io
from datetime import datetime, timezone, timedelta

import pytest

from staticserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    ResponseWriter,
    METHOD_NOT_ALLOWED_BODY,
    error_page,
    method_not_allowed,
    file_headers,
    format_http_date,
)
from staticserver.http.status_codes import HTTPStatus
from staticserver.handlers.static import ResolvedFile


FIXED_NOW = datetime(2024, 10, 21, 7, 28, 0, tzinfo=timezone.utc)


def header_lines(raw: bytes):
    """Split serialized headers into lines (without the final blank line)."""
    head = raw.split(b"\r\n\r\n", 1)[0].decode("latin-1")
    return head.split("\r\n")


class FakeConnection:
    """Records what would have been sent to the client."""

    def __init__(self, fail_after: int = None):
        self.sent = []
        self.bytes_sent = 0
        self.fail_after = fail_after

    def send(self, data: bytes) -> bool:
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            return False
        self.sent.append(data)
        self.bytes_sent += len(data)
        return True

    @property
    def data(self) -> bytes:
        return b"".join(self.sent)


def make_resolved(content: bytes, mime_type: str = "text/plain") -> ResolvedFile:
    return ResolvedFile(
        absolute_path="/srv/www/file",
        size=len(content),
        mime_type=mime_type,
        file=io.BytesIO(content),
    )


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_custom_reason(self):
        """Test that reason overrides the standard phrase."""
        response = HTTPResponse(status=HTTPStatus.NOT_FOUND, reason="Gone Fishing")
        assert response.status_line == "HTTP/1.1 404 Gone Fishing"

    def test_header_order(self):
        """Test the fixed header order with Connection last."""
        response = HTTPResponse(
            headers={"Connection": "close", "Content-Type": "text/html"},
            body=b"hello1234\n",
        )
        lines = header_lines(response.to_bytes(now=FIXED_NOW))
        names = [line.split(":", 1)[0] for line in lines[1:]]

        assert names == ["Content-Type", "Content-Length", "Date", "Server", "Connection"]

    def test_header_values(self):
        """Test the generated header values."""
        response = HTTPResponse(headers={"Content-Type": "text/html"}, body=b"abc")
        lines = header_lines(response.to_bytes("TestServer/2", now=FIXED_NOW))

        assert "Content-Length: 3" in lines
        assert "Date: Mon, 21 Oct 2024 07:28:00 GMT" in lines
        assert "Server: TestServer/2" in lines

    def test_explicit_content_length_kept(self):
        """Test that a streamed response keeps its declared length."""
        response = HTTPResponse(headers={"Content-Length": "5000"})
        assert "Content-Length: 5000" in header_lines(response.header_bytes())

    def test_header_block_terminator(self):
        """Test that headers end with an empty line."""
        raw = HTTPResponse(body=b"x").to_bytes()

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert raw.endswith(b"\r\n\r\nx")


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_default_status(self):
        """Test that default status is 200 OK."""
        response = ResponseBuilder().build()
        assert response.status == HTTPStatus.OK

    def test_set_status(self):
        """Test setting status code."""
        response = ResponseBuilder().status(HTTPStatus.FORBIDDEN).build()
        assert response.status == HTTPStatus.FORBIDDEN

    def test_string_body(self):
        """Test that string bodies are encoded."""
        response = ResponseBuilder().body("héllo").build()
        assert response.body == "héllo".encode("utf-8")

    def test_close_connection(self):
        """Test connection close header."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_method_chaining(self):
        """Test fluent API chaining."""
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/css")
            .content_length(42)
            .header("X-Custom", "value")
            .build())

        assert response.headers["Content-Type"] == "text/css"
        assert response.headers["Content-Length"] == "42"
        assert response.headers["X-Custom"] == "value"


class TestResponseFactories:
    """Tests for the error, 405 and file response factories."""

    @pytest.mark.parametrize("status,expected", [
        (HTTPStatus.FORBIDDEN, b"<html><body><h1>403 Forbidden</h1></body></html>"),
        (HTTPStatus.NOT_FOUND, b"<html><body><h1>404 Not Found</h1></body></html>"),
        (HTTPStatus.INTERNAL_SERVER_ERROR,
         b"<html><body><h1>500 Internal Server Error</h1></body></html>"),
    ])
    def test_error_page(self, status, expected):
        """Test the HTML error page body and headers."""
        response = error_page(status)

        assert response.status == status
        assert response.body == expected
        assert response.headers["Content-Type"] == "text/html"
        assert response.headers["Connection"] == "close"

    def test_error_page_custom_message(self):
        """Test that the message is used in both the status line and body."""
        response = error_page(HTTPStatus.NOT_FOUND, "Nothing Here")

        assert response.status_line == "HTTP/1.1 404 Nothing Here"
        assert response.body == b"<html><body><h1>404 Nothing Here</h1></body></html>"

    def test_method_not_allowed(self):
        """Test the fixed 405 reply."""
        response = method_not_allowed()
        raw = response.to_bytes()

        assert response.status_line == "HTTP/1.1 405 Method Not Allowed"
        assert response.body == b"Method Not Supported\n"
        assert "Content-Length: 21" in header_lines(raw)
        assert "Content-Type: text/plain" in header_lines(raw)
        assert raw.endswith(b"\r\n\r\n" + METHOD_NOT_ALLOWED_BODY)

    def test_file_headers(self):
        """Test the 200 header block for a resolved file."""
        response = file_headers(make_resolved(b"x" * 1234, "image/png"))

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "image/png"
        assert response.headers["Content-Length"] == "1234"
        assert response.body == b""


class TestResponseWriter:
    """Tests for ResponseWriter class."""

    def test_send_file_streams_in_chunks(self):
        """Test that file bodies are sent chunk by chunk."""
        content = bytes(range(256)) * 40  # 10240 bytes
        conn = FakeConnection()

        sent = ResponseWriter(chunk_size=4096).send_file(conn, make_resolved(content))

        assert sent == len(content)
        # Headers, then 4096 + 4096 + 2048
        assert [len(chunk) for chunk in conn.sent[1:]] == [4096, 4096, 2048]
        assert conn.data.endswith(b"\r\n\r\n" + content)

    def test_send_file_headers(self):
        """Test the header block sent before a file."""
        conn = FakeConnection()
        ResponseWriter(server_name="Test/1").send_file(conn, make_resolved(b"hello1234\n", "text/html"))
        lines = header_lines(conn.data)

        assert lines[0] == "HTTP/1.1 200 OK"
        assert "Content-Type: text/html" in lines
        assert "Content-Length: 10" in lines
        assert "Server: Test/1" in lines
        assert lines[-1] == "Connection: close"

    def test_send_empty_file(self):
        """Test a zero-length file."""
        conn = FakeConnection()
        sent = ResponseWriter().send_file(conn, make_resolved(b""))

        assert sent == 0
        assert "Content-Length: 0" in header_lines(conn.data)
        assert conn.data.endswith(b"\r\n\r\n")

    def test_send_file_stops_when_client_gone(self):
        """Test that streaming stops at the first failed send."""
        conn = FakeConnection(fail_after=2)  # Headers + one chunk
        sent = ResponseWriter(chunk_size=10).send_file(conn, make_resolved(b"a" * 100))

        assert sent == 10
        assert len(conn.sent) == 2

    def test_send_file_header_failure(self):
        """Test that nothing is streamed if the headers can't be sent."""
        conn = FakeConnection(fail_after=0)
        assert ResponseWriter().send_file(conn, make_resolved(b"abc")) == 0

    def test_send_error(self):
        """Test sending an error page."""
        conn = FakeConnection()
        sent = ResponseWriter().send_error(conn, HTTPStatus.NOT_FOUND)

        assert conn.data.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert sent == len(b"<html><body><h1>404 Not Found</h1></body></html>")

    def test_send_method_not_allowed(self):
        """Test sending the 405 reply."""
        conn = FakeConnection()
        sent = ResponseWriter().send_method_not_allowed(conn)

        assert sent == 21
        assert conn.data.startswith(b"HTTP/1.1 405 Method Not Allowed\r\n")


class TestFormatHttpDate:
    """Tests for format_http_date()."""

    def test_utc(self):
        """Test formatting of a UTC datetime."""
        assert format_http_date(FIXED_NOW) == "Mon, 21 Oct 2024 07:28:00 GMT"

    def test_converts_to_gmt(self):
        """Test that aware datetimes are converted to GMT."""
        local = datetime(2024, 10, 21, 9, 28, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_http_date(local) == "Mon, 21 Oct 2024 07:28:00 GMT"

    def test_zero_padding(self):
        """Test two-digit day and time fields."""
        dt = datetime(2023, 1, 5, 3, 4, 5, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 05 Jan 2023 03:04:05 GMT"


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test that all statuses have phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.FORBIDDEN.phrase == "Forbidden"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.METHOD_NOT_ALLOWED.phrase == "Method Not Allowed"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_is_error(self):
        """Test error classification."""
        assert HTTPStatus.OK.is_error is False
        assert HTTPStatus.NOT_FOUND.is_error is True
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error is True

    def test_int_comparison(self):
        """Test that statuses compare equal to plain ints."""
        assert HTTPStatus.METHOD_NOT_ALLOWED == 405
