"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the static file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m staticserver 3000 ./public                      │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── STATIC_PORT=3000 python -m staticserver                   │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The config is FROZEN: once the server starts, nothing can change it.
Connection handlers on many threads read it without any locking.
Use replace() to derive a modified copy:

    config = ServerConfig.from_env().replace(port=3000)

=============================================================================
"""

import os
import dataclasses
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, accept_poll_interval

    REQUEST / RESPONSE
    - buffer_size, max_request_line, chunk_size, timeout

    FILES
    - document_root, index_file, segment_containment

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port
    (handy in tests; read the real one from SocketServer.address).
    """

    backlog: int = 10
    """Maximum number of queued, not yet accepted connections."""

    accept_poll_interval: float = 1.0
    """
    How often (seconds) a blocked accept() wakes up to check whether
    the server has been stopped.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST / RESPONSE
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 4096
    """Bytes per recv() call while reading the request line."""

    max_request_line: int = 4096
    """
    Most bytes buffered while waiting for the request line's newline.
    Longer lines are cut off here and parsed as-is.
    """

    chunk_size: int = 4096
    """Bytes per read()/send() when streaming a file."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout for client reads and writes, in seconds.
    None = block forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "./www"
    """Directory files are served from. Nothing outside it is reachable."""

    index_file: str = "index.html"
    """File served for "/"."""

    segment_containment: bool = True
    """
    True: path-component containment check (rejects /srv/www-secrets
    for root /srv/www). False: legacy string-prefix check.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (one line per request) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "StaticServer/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        STATIC_HOST        Bind address (default: 0.0.0.0)
        STATIC_PORT        Port (default: 8080)
        STATIC_ROOT        Document root (default: ./www)
        STATIC_TIMEOUT     Client socket timeout in seconds, "none" to
                           disable (default: 30)
        STATIC_LOG_LEVEL   Logging level (default: INFO)
        STATIC_LOG_FORMAT  text or json (default: text)

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        timeout = os.getenv("STATIC_TIMEOUT", "30")

        return cls(
            host=os.getenv("STATIC_HOST", "0.0.0.0"),
            port=int(os.getenv("STATIC_PORT", "8080")),
            document_root=os.getenv("STATIC_ROOT", "./www"),
            timeout=None if timeout.lower() == "none" else float(timeout),
            log_level=os.getenv("STATIC_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("STATIC_LOG_FORMAT", "text").lower(),
        )

    def replace(self, **changes) -> "ServerConfig":
        """Return a copy with ``changes`` applied. None values are skipped."""
        changes = {name: value for name, value in changes.items() if value is not None}
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails immediately with a clear
        message instead of surfacing on the first request.

        Raises:
            ValueError: Describing the first invalid field.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        for name in ("buffer_size", "max_request_line", "chunk_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.accept_poll_interval <= 0:
            raise ValueError("accept_poll_interval must be > 0")

        if not self.document_root:
            raise ValueError("document_root must not be empty")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Use one of {LOG_FORMATS}.")
