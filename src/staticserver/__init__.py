"""
=============================================================================
STATICSERVER - Minimal Concurrent Static File Server
=============================================================================

Serves files from one document root over HTTP/1.1, using raw Python
sockets and one thread per connection.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    STATICSERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. RAW SOCKET PROGRAMMING                                         │
    │      - TCP socket creation, bind, listen, accept                    │
    │      - Bounded reading of the request line                          │
    │                                                                      │
    │   2. CONCURRENCY                                                    │
    │      - A fresh thread for every accepted connection                 │
    │      - Graceful shutdown on SIGINT/SIGTERM                          │
    │                                                                      │
    │   3. HTTP/1.1 (a deliberately small subset)                         │
    │      - GET only, one request per connection                         │
    │      - 200 / 403 / 404 / 405 / 500                                  │
    │                                                                      │
    │   4. SANDBOXING                                                     │
    │      - Canonical paths must stay inside the document root           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MODULE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point
    ├── config.py            # ServerConfig
    ├── server.py            # StaticFileServer, ConnectionHandler
    ├── access_log.py        # Access records + logging setup
    │
    ├── core/                # Networking
    │   ├── socket_server.py # Accept loop, thread per connection
    │   └── connection.py    # Per-client read/send/close
    │
    ├── http/                # Protocol
    │   ├── request.py       # Request line parsing
    │   ├── response.py      # Response building and writing
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # Extension → Content-Type
    │
    └── handlers/
        └── static.py        # Path resolution and sandbox check

=============================================================================
QUICK START
=============================================================================

    from staticserver import StaticFileServer, ServerConfig

    server = StaticFileServer(ServerConfig(port=8080, document_root="./www"))
    server.serve_forever()

Or from the shell:

    python -m staticserver 8080 ./www

=============================================================================
"""

__version__ = "1.0.0"

from .server import StaticFileServer, ConnectionHandler
from .config import ServerConfig

__all__ = ["StaticFileServer", "ConnectionHandler", "ServerConfig", "__version__"]
