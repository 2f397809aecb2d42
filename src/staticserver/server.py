"""
=============================================================================
STATIC FILE SERVER
=============================================================================

This is the orchestrator that ties the components together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                      ┌──────────────────┐                           │
    │                      │ StaticFileServer │                           │
    │                      └────────┬─────────┘                           │
    │                               │                                      │
    │              ┌────────────────┴────────────────┐                    │
    │              ▼                                 ▼                    │
    │      ┌──────────────┐                 ┌──────────────────┐          │
    │      │ SocketServer │ ── conn ──────► │ConnectionHandler │          │
    │      │ (accept loop)│  (new thread)   └────────┬─────────┘          │
    │      └──────────────┘                          │                    │
    │                          ┌─────────────┬───────┴──────┐             │
    │                          ▼             ▼              ▼             │
    │                   RequestParser  PathResolver  ResponseWriter       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE (one connection, one thread)
=============================================================================

    1. READ        Connection.read_request_line()
                   └── nothing received → close, no response

    2. PARSE       RequestParser.parse() → method, path, protocol

    3. DISPATCH    method == GET ?
                   ├── no  → 405 Method Not Allowed
                   └── yes → PathResolver.resolve(path)
                              ├── ResolvedFile   → 200 + file bytes
                              ├── NotFoundError  → 404 page
                              └── ForbiddenError → 403 page

    4. CLOSE       Always. Even when something raised.

    5. LOG         One access log record.

No step is retried. Every per-request failure ends as an HTTP status for
the client; nothing propagates back to the accept loop.

=============================================================================
"""

import logging
import time
from typing import Optional, Tuple

from .config import ServerConfig
from .access_log import RequestLog, log_request, setup_logging
from .core import SocketServer, Connection, ConnectionState
from .handlers import PathResolver, ResolveError
from .http import HTTPRequest, RequestParser, ResponseWriter, HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Handles exactly one request on one connection, then closes it.

    Instances hold only immutable configuration and stateless helpers, so
    a single handler is shared by every connection thread.
    """

    def __init__(
        self,
        config: ServerConfig,
        resolver: Optional[PathResolver] = None,
        writer: Optional[ResponseWriter] = None,
        parser: Optional[RequestParser] = None,
    ):
        self.config = config
        self.resolver = resolver or PathResolver(
            config.document_root,
            index_file=config.index_file,
            segment_containment=config.segment_containment,
        )
        self.writer = writer or ResponseWriter(
            server_name=config.server_name,
            chunk_size=config.chunk_size,
        )
        self.parser = parser or RequestParser()

    def __call__(self, conn: Connection) -> Optional[HTTPStatus]:
        return self.handle(conn)

    def handle(self, conn: Connection) -> Optional[HTTPStatus]:
        """
        Run the parse → resolve → respond → close sequence.

        Returns:
            The status sent, or None if the client never sent anything.
        """
        started = time.perf_counter()

        with conn:  # Context manager guarantees close
            raw = conn.read_request_line()
            if raw is None:
                logger.debug(
                    f"[{conn.id}] No request received from "
                    f"{conn.client_ip}:{conn.client_port}"
                )
                return None

            request = self.parser.parse(raw, conn.address)
            conn.state = ConnectionState.PROCESSING

            try:
                status, body_bytes = self._respond(conn, request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Error handling {request.request_line!r}: {e}")
                status, body_bytes = HTTPStatus.INTERNAL_SERVER_ERROR, 0
                if conn.bytes_sent == 0:
                    body_bytes = self.writer.send_error(conn, status)

        self._log(conn, request, status, body_bytes, started)
        return status

    def _respond(self, conn: Connection, request: HTTPRequest) -> Tuple[HTTPStatus, int]:
        """Send the one reply for ``request``; return (status, body bytes sent)."""
        if not request.is_retrieval:
            return HTTPStatus.METHOD_NOT_ALLOWED, self.writer.send_method_not_allowed(conn)

        try:
            resolved = self.resolver.resolve(request.path)
        except ResolveError as e:
            logger.debug(f"[{conn.id}] {e}")
            return e.status, self.writer.send_error(conn, e.status)

        with resolved:
            return HTTPStatus.OK, self.writer.send_file(conn, resolved)

    def _log(
        self,
        conn: Connection,
        request: HTTPRequest,
        status: HTTPStatus,
        body_bytes: int,
        started: float,
    ):
        record = RequestLog.now(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            method=request.method,
            path=request.path,
            protocol=request.protocol,
            status_code=int(status),
            bytes_sent=body_bytes,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        # 4xx/5xx stand out in the access log
        level = logging.WARNING if status.is_error else logging.INFO
        log_request(record, self.config.log_format, level)


class StaticFileServer:
    """
    Concurrent static file server.

    =========================================================================
    USAGE
    =========================================================================

        server = StaticFileServer(ServerConfig(port=8080, document_root="./www"))
        server.serve_forever()      # Blocks until Ctrl+C / SIGTERM

    From another thread (tests, embedding):

        thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"install_signal_handlers": False},
        )
        thread.start()
        server.wait_until_ready(5.0)
        ...
        server.stop()
        thread.join()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self.handler = ConnectionHandler(self.config)

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def active_connections(self) -> int:
        """Connections currently being handled."""
        return self._socket_server.active_connections

    def serve_forever(self, install_signal_handlers: bool = True):
        """
        Listen and serve until stop() (or SIGINT/SIGTERM).

        Returns only after every in-flight connection has been handled.

        Raises:
            SocketSetupError: If the listening socket cannot be set up.
        """
        setup_logging(self.config.log_level)

        logger.info(f"Serving files from {self.config.document_root}")
        if not self.config.segment_containment:
            logger.warning("Legacy string-prefix containment check is enabled")

        self._socket_server.start(self.handler, install_signal_handlers)
        logger.info("Server stopped")

    def stop(self):
        """
        Request shutdown. Idempotent and thread-safe.

        Also works before serve_forever() has started: it then returns
        without serving. A stopped server cannot be started again.
        """
        self._socket_server.stop()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() has been called (or a signal asked for it)."""
        return self._socket_server.wait_for_shutdown(timeout)
