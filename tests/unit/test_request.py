"""
Unit tests for HTTP request line parsing.
"""

import pytest

from staticserver.http.request import (
    HTTPRequest,
    RequestParser,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(b"GET /index.html HTTP/1.1\r\n", ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/index.html"
        assert request.protocol == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_headers_are_ignored(self):
        """Test that only the request line is looked at."""
        raw = (
            b"GET /css/site.css HTTP/1.1\r\n"
            b"Host: localhost:8080\r\n"
            b"User-Agent: pytest\r\n"
            b"\r\n"
        )
        request = parse_request(raw)

        assert request.method == "GET"
        assert request.path == "/css/site.css"
        assert request.protocol == "HTTP/1.1"

    def test_bare_lf_line_ending(self):
        """Test a request line terminated by LF only."""
        request = parse_request(b"GET /a.txt HTTP/1.0\nHost: x\n\n")

        assert request.path == "/a.txt"
        assert request.protocol == "HTTP/1.0"

    def test_no_line_terminator(self):
        """Test a request line that never got its newline."""
        request = parse_request(b"GET /partial")

        assert request.method == "GET"
        assert request.path == "/partial"
        assert request.protocol == ""

    def test_path_is_verbatim(self):
        """Test that the path is not decoded or stripped of its query."""
        request = parse_request(b"GET /a%20b.txt?x=1 HTTP/1.1\r\n")
        assert request.path == "/a%20b.txt?x=1"

    def test_extra_tokens_ignored(self):
        """Test that tokens after the third are dropped."""
        request = parse_request(b"GET /a HTTP/1.1 trailing junk\r\n")

        assert request.method == "GET"
        assert request.path == "/a"
        assert request.protocol == "HTTP/1.1"

    def test_repeated_whitespace(self):
        """Test tokens separated by several spaces and tabs."""
        request = parse_request(b"GET   /a\tHTTP/1.1\r\n")

        assert request.path == "/a"
        assert request.protocol == "HTTP/1.1"

    @pytest.mark.parametrize("raw,expected", [
        (b"", ("", "", "")),
        (b"\r\n", ("", "", "")),
        (b"GET\r\n", ("GET", "", "")),
        (b"GET /\r\n", ("GET", "/", "")),
        (b"   \r\n", ("", "", "")),
    ])
    def test_missing_tokens_are_empty(self, raw, expected):
        """Test that malformed lines never raise and yield empty fields."""
        request = parse_request(raw)
        assert (request.method, request.path, request.protocol) == expected

    def test_non_ascii_bytes_do_not_raise(self):
        """Test that arbitrary bytes decode without error."""
        request = parse_request(b"GET /caf\xe9.txt HTTP/1.1\r\n")
        assert request.path == "/caf\xe9.txt"

    def test_method_is_case_sensitive(self):
        """Test that lowercase 'get' is not treated as GET."""
        request = parse_request(b"get / HTTP/1.1\r\n")

        assert request.method == "get"
        assert request.is_retrieval is False


class TestHTTPRequest:
    """Tests for HTTPRequest class."""

    def test_is_retrieval(self):
        """Test that only GET is a retrieval."""
        assert HTTPRequest(method="GET").is_retrieval is True
        assert HTTPRequest(method="POST").is_retrieval is False
        assert HTTPRequest(method="HEAD").is_retrieval is False
        assert HTTPRequest().is_retrieval is False

    def test_request_line(self):
        """Test reassembled request line for logging."""
        assert HTTPRequest("GET", "/", "HTTP/1.1").request_line == "GET / HTTP/1.1"
        assert HTTPRequest("GET").request_line == "GET"
        assert HTTPRequest().request_line == ""

    def test_is_immutable(self):
        """Test that parsed requests cannot be modified."""
        request = HTTPRequest("GET", "/")

        with pytest.raises(AttributeError):
            request.path = "/other"
