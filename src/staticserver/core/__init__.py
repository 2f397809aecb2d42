"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking layer: the listening socket and the accepted connections.
Nothing in here knows about HTTP.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Creates, binds and listens on the TCP socket                     │
    │  • Runs the accept() loop                                           │
    │  • Starts one thread per accepted connection                        │
    │  • Stops on stop(), SIGINT or SIGTERM and joins its threads         │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ One thread per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Wraps a client socket                                            │
    │  • Reads the request line (TCP is a stream, not messages!)          │
    │  • Sends bytes and counts them                                      │
    │  • Closes gracefully, exactly once                                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer, SocketSetupError
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",      # Accept loop + thread per connection
    "SocketSetupError",  # Socket could not be created/bound/listened on
    "Connection",        # Wrapper for client socket - handles I/O
    "ConnectionState",   # Enum for connection lifecycle states
]
