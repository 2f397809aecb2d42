"""
=============================================================================
HTTP REQUEST LINE PARSING
=============================================================================

This module turns the raw bytes read from a client into an HTTPRequest.

Only the REQUEST LINE is looked at. Headers and bodies are ignored: the
server answers every connection from the method and path alone.

    ┌─────────────────────────────────────────────────────────────────┐
    │  REQUEST LINE                                                    │
    │  ─────────────────────────────────────────────────────────────  │
    │  GET /css/site.css HTTP/1.1\r\n                                 │
    │  └─┘ └───────────┘ └──────┘                                     │
    │  Method    Path     Protocol                                     │
    ├─────────────────────────────────────────────────────────────────┤
    │  HEADERS (ignored)                                               │
    │  Host: localhost:8080\r\n                                       │
    │  \r\n                                                            │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING RULES
=============================================================================

1. Everything before the first "\n" is the request line.
   A trailing "\r" is dropped, so both CRLF and bare LF work.

2. The line is split on runs of whitespace. The first three tokens
   are method, path and protocol. Extra tokens are ignored.

3. Missing tokens become empty strings. Parsing NEVER raises:

       b""                  → method="",    path="",  protocol=""
       b"GET\r\n"           → method="GET", path="",  protocol=""
       b"GET /a b c d\r\n"  → method="GET", path="/a", protocol="b"

   A malformed request therefore degrades into something the handler
   answers with a 404 or 405, never into a crash.

4. The path is used VERBATIM. No percent-decoding, no query stripping.
   "/a%20b.txt" looks for a file literally named "a%20b.txt".

=============================================================================
"""

from dataclasses import dataclass
from typing import Tuple


# The only method this server serves files for
RETRIEVAL_METHOD = "GET"


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request line.

    Attributes:
        method:         "GET", "POST", ... or "" if missing
        path:           Request target exactly as sent, or ""
        protocol:       "HTTP/1.1", "HTTP/1.0", ... or ""
        client_address: (ip, port) of the peer, for logging
    """

    method: str = ""
    path: str = ""
    protocol: str = ""
    client_address: Tuple[str, int] = ("", 0)

    @property
    def is_retrieval(self) -> bool:
        """True for GET, the only method that reaches the file resolver."""
        return self.method == RETRIEVAL_METHOD

    @property
    def request_line(self) -> str:
        """Reassembled request line, for log messages."""
        return " ".join(part for part in (self.method, self.path, self.protocol) if part)


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    Usage:
        parser = RequestParser()
        request = parser.parse(b"GET / HTTP/1.1\\r\\n", ("127.0.0.1", 5000))
        request.method   # "GET"
    """

    # ISO-8859-1 maps every byte to a character, so decoding cannot fail
    encoding = "iso-8859-1"

    def parse(self, raw: bytes, client_address: Tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse the request line out of ``raw``.

        Args:
            raw: Bytes received from the client (may be partial).
            client_address: Peer address, carried along for logging.

        Returns:
            HTTPRequest; fields that could not be parsed are empty.
        """
        line = raw.split(b"\n", 1)[0]
        if line.endswith(b"\r"):
            line = line[:-1]

        tokens = line.decode(self.encoding).split()
        method, path, protocol = (tokens + ["", "", ""])[:3]

        return HTTPRequest(
            method=method,
            path=path,
            protocol=protocol,
            client_address=client_address,
        )


def parse_request(raw: bytes) -> HTTPRequest:
    """Convenience wrapper: ``RequestParser().parse(raw)``."""
    return RequestParser().parse(raw)
