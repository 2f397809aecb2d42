"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the small API the
connection handler needs: read a request line, send bytes, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    GET /index.html HTTP/1.1\r\n

in one call may still be read as several pieces:

    recv() → "GET /ind"
    recv() → "ex.html HTTP/1.1\r\n"

A single recv() is therefore not enough to get a request line. We keep
reading until one of these happens:

    ┌─────────────────────────────────────────────────────────────────┐
    │                 read_request_line() stops when                   │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   1. A "\n" has arrived            → line complete               │
    │   2. max_request_line bytes read   → give up, parse what we have │
    │   3. Peer closed / reset           → parse what we have          │
    │   4. Read deadline passed          → parse what we have          │
    │                                                                  │
    │   Nothing at all received          → None (no response is sent)  │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

The timeout is ONE deadline for the whole line, not a fresh timeout per
recv(). A client dribbling a byte every second would otherwise hold its
thread forever.

Whatever follows the request line (headers, body) is never read as part
of the request. It is drained and discarded when the connection closes.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

One request per connection, so there is no keep-alive loop:

    NEW ──────► READING ──────► PROCESSING ──────► WRITING
                   │                                   │
                   ▼                                   ▼
                CLOSING ◄──────────────────────────────┘
                   │
                   ▼
                 CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and close bookkeeping."""
    NEW = "new"              # Just accepted, haven't read anything yet
    READING = "reading"      # Reading the request line
    PROCESSING = "processing"  # Request parsed, resolving the file
    WRITING = "writing"      # Sending response data
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents one accepted client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BOUNDED READING                                                  │
    │     └── Accumulate bytes until a full request line is in            │
    │     └── Never buffer more than max_request_line bytes               │
    │                                                                      │
    │  2. WRITING                                                          │
    │     └── sendall() so partial sends are never an issue               │
    │     └── Count bytes sent for the access log                         │
    │                                                                      │
    │  3. GRACEFUL CLOSE                                                   │
    │     └── FIN first, drain unread input, then release the fd          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique id for log correlation.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_sent: Total bytes written to the peer.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 4096           # How much to recv() at once
    max_request_line: int = 4096      # Upper bound on buffered request bytes
    timeout: Optional[float] = 30.0   # Deadline for the request line and per send, None = block

    # Most unread input we discard on close, and for how long, before giving up
    MAX_DRAIN = 64 * 1024
    DRAIN_TIMEOUT = 0.5

    def __post_init__(self):
        # settimeout(None) puts the socket in plain blocking mode
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0] if self.address else ""

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1] if len(self.address) > 1 else 0

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request_line(self) -> Optional[bytes]:
        """
        Read from the socket until a request line is available.

        Returns:
            The bytes received (at most max_request_line of them, normally
            ending in the request line's "\\n"), or None if the peer sent
            nothing before closing, resetting or timing out.
        """
        self.state = ConnectionState.READING
        buffer = b""
        deadline = None if self.timeout is None else time.monotonic() + self.timeout

        try:
            while b"\n" not in buffer and len(buffer) < self.max_request_line:
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise socket.timeout("request line deadline passed")
                    self.socket.settimeout(remaining)

                wanted = min(self.buffer_size, self.max_request_line - len(buffer))
                chunk = self._recv(wanted)
                if not chunk:
                    break  # Peer closed
                buffer += chunk
        except socket.timeout:
            logger.debug(f"[{self.id}] Read timed out after {len(buffer)} bytes")
        finally:
            # Sends get the plain per-operation timeout again
            self.socket.settimeout(self.timeout)

        if not buffer:
            return None

        return buffer

    def _recv(self, size: int) -> bytes:
        """
        socket.recv() that maps an abrupt disconnect to end-of-stream.

        Timeouts are NOT caught here; read_request_line() handles them.
        """
        try:
            return self.socket.recv(size)
        except (ConnectionResetError, ConnectionAbortedError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send ``data`` to the client.

        Returns:
            True if every byte was handed to the kernel, False if the
            connection is gone.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
        except OSError as e:
            # Reset, broken pipe, or send timeout
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully. Safe to call more than once.

        1. shutdown(SHUT_WR): send FIN, the client sees end-of-response
        2. Drain: read and discard what the client sent and we never read
           (headers after the request line), for at most DRAIN_TIMEOUT
           seconds in total. Closing with unread input
           makes the kernel send RST, which can destroy the response
           before the client reads it.
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        deadline = time.monotonic() + self.DRAIN_TIMEOUT
        try:
            drained = 0
            while drained < self.MAX_DRAIN:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                data = self.socket.recv(4096)
                if not data:
                    break
                drained += len(data)
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
