"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The small slice of HTTP/1.1 this server speaks.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP Request-Response Cycle                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   CLIENT                                         SERVER              │
    │      │   GET /index.html HTTP/1.1                  │                │
    │      │  ─────────────────────────────────────────►  │                │
    │      │                                              │                │
    │      │               HTTP/1.1 200 OK               │                │
    │      │               Content-Type: text/html        │                │
    │      │               Connection: close              │                │
    │      │  ◄─────────────────────────────────────────  │                │
    │      │                                          close()             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MODULE COMPONENTS
=============================================================================

    request.py       Request line → HTTPRequest (never raises)
    response.py      HTTPResponse, ResponseBuilder, ResponseWriter
    status_codes.py  HTTPStatus with reason phrases
    mime_types.py    File extension → Content-Type

=============================================================================
"""

from .request import HTTPRequest, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ResponseWriter,
    error_page,          # 403 / 404 / 500 HTML page
    method_not_allowed,  # Fixed 405 reply
    format_http_date,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, DEFAULT_MIME_TYPE

# Public API - what you get when you do:
# from staticserver.http import *
__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ResponseWriter",
    "error_page",
    "method_not_allowed",
    "format_http_date",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "DEFAULT_MIME_TYPE",
]
