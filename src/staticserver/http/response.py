"""
=============================================================================
HTTP RESPONSE BUILDING AND WRITING
=============================================================================

Builds HTTP/1.1 responses and writes them to a client connection.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  HTTP/1.1 200 OK\r\n                      ← status line             │
    │  Content-Type: text/html\r\n                                        │
    │  Content-Length: 10\r\n                   ← exact body size         │
    │  Date: Wed, 21 Oct 2024 07:28:00 GMT\r\n  ← always GMT              │
    │  Server: StaticServer/1.0\r\n                                       │
    │  Connection: close\r\n                    ← one request per conn    │
    │  \r\n                                     ← end of headers          │
    │  hello1234\n                              ← body                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every response this server sends has the same header set, in the same
order. Only Content-Type, Content-Length and the body differ.

=============================================================================
THE THREE KINDS OF REPLY
=============================================================================

    send_file()                 200, body streamed from disk in chunks
    send_error()                403 / 404 / 500, small generated HTML page
    send_method_not_allowed()   405, plain text "Method Not Supported\\n"

Content-Length is ALWAYS computed from the actual body (or the file size),
never typed in by hand, so header and body cannot drift apart.

=============================================================================
STREAMING FILES
=============================================================================

Files are not loaded into memory. The header block goes out first, then
the file is copied to the socket chunk_size bytes at a time:

    header_bytes() ──► sendall()
    read(4096)     ──► sendall()
    read(4096)     ──► sendall()
    ...
    read() == b""  ──► done

If the client disconnects midway, streaming stops at the failed send.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Union, TYPE_CHECKING

from .status_codes import HTTPStatus

if TYPE_CHECKING:
    from ..core.connection import Connection
    from ..handlers.static import ResolvedFile


DEFAULT_SERVER_NAME = "StaticServer/1.0"

# Body of the fixed 405 reply. Its Content-Length is computed, not hardcoded.
METHOD_NOT_ALLOWED_BODY = b"Method Not Supported\n"

ERROR_PAGE_TEMPLATE = "<html><body><h1>{code} {message}</h1></body></html>"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    ``body`` holds in-memory bodies (error pages). File responses leave it
    empty and set Content-Length explicitly; the writer streams the file
    after header_bytes().
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"
    reason: Optional[str] = None     # Overrides status.phrase in the status line

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {self.reason or self.status.phrase}"

    def header_bytes(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        now: Optional[datetime] = None,
    ) -> bytes:
        """
        Serialize the status line and headers, up to and including the
        blank line that ends the header block.

        Content-Length, Date and Server are filled in when missing.
        Connection, if set, is always emitted last.

        Args:
            server_name: Value for the Server header.
            now: Timestamp for the Date header (current UTC time if None).
        """
        response_headers = dict(self.headers)

        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(now or datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        connection = response_headers.pop("Connection", None)
        if connection is not None:
            response_headers["Connection"] = connection

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")

        return "\r\n".join(lines).encode("latin-1") + b"\r\n"

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME, now: Optional[datetime] = None) -> bytes:
        """Complete response (headers + in-memory body) ready for sendall()."""
        return self.header_bytes(server_name, now) + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .content_type("text/html")
            .body("<html>...</html>")
            .close_connection()
            .build())

    Each method returns ``self`` except build().
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._reason: Optional[str] = None
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus, reason: Optional[str] = None) -> "ResponseBuilder":
        """Set the status code, optionally with a custom reason phrase."""
        self._status = status
        self._reason = reason
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    def content_length(self, length: int) -> "ResponseBuilder":
        """Declare the body size up front (for streamed bodies)."""
        return self.header("Content-Length", str(length))

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set an in-memory body (strings are UTF-8 encoded)."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Set Connection: close. Every response from this server has it."""
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        """Build and return the HTTPResponse object."""
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
            reason=self._reason,
        )


# =============================================================================
# RESPONSE FACTORIES
# =============================================================================

def error_page(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """
    Build the HTML error reply for ``status``.

    The reason phrase in the status line and the text in the <h1> are both
    ``message`` (defaulting to the standard phrase):

        HTTP/1.1 404 Not Found
        ...
        <html><body><h1>404 Not Found</h1></body></html>
    """
    message = message or status.phrase
    page = ERROR_PAGE_TEMPLATE.format(code=int(status), message=message)

    return (ResponseBuilder()
        .status(status, message)
        .content_type("text/html")
        .body(page)
        .close_connection()
        .build())


def method_not_allowed() -> HTTPResponse:
    """The fixed 405 reply sent for every non-GET request."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .content_type("text/plain")
        .body(METHOD_NOT_ALLOWED_BODY)
        .close_connection()
        .build())


def file_headers(resolved: "ResolvedFile") -> HTTPResponse:
    """200 response header block for a resolved file (body is streamed)."""
    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .content_type(resolved.mime_type)
        .content_length(resolved.size)
        .close_connection()
        .build())


class ResponseWriter:
    """
    Sends complete replies over a Connection.

    Every method writes one full response and returns the number of BODY
    bytes that reached the socket (used by the access log). The caller is
    responsible for closing the connection afterwards.
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME, chunk_size: int = 4096):
        self.server_name = server_name
        self.chunk_size = chunk_size

    def send_file(self, conn: "Connection", resolved: "ResolvedFile") -> int:
        """Send 200 headers, then stream the file in chunk_size pieces."""
        response = file_headers(resolved)
        if not conn.send(response.header_bytes(self.server_name)):
            return 0

        sent = 0
        while True:
            chunk = resolved.file.read(self.chunk_size)
            if not chunk:
                break
            if not conn.send(chunk):
                break  # Client went away mid-body
            sent += len(chunk)

        return sent

    def send_error(self, conn: "Connection", status: HTTPStatus, message: Optional[str] = None) -> int:
        """Send the HTML error page for ``status``."""
        return self._send(conn, error_page(status, message))

    def send_method_not_allowed(self, conn: "Connection") -> int:
        """Send the fixed 405 reply."""
        return self._send(conn, method_not_allowed())

    def _send(self, conn: "Connection", response: HTTPResponse) -> int:
        if conn.send(response.to_bytes(self.server_name)):
            return len(response.body)
        return 0


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 1123).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 21 Oct 2024 07:28:00 GMT

    Names are spelled out by hand instead of using strftime("%a %b"),
    which follows the process locale.

    Args:
        dt: Datetime to format. Aware datetimes are converted to UTC;
            naive ones are assumed to already be UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
