"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

This module owns the listening socket: it accepts connections and hands
each one to its own handler thread.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. setsockopt  SO_REUSEADDR, so a restart can rebind immediately
    3. bind()      Associate the socket with host:port
    4. listen()    Start queueing incoming connections (backlog)
    5. accept()    Wait for a client, get a NEW socket for it
    6. close()     Release the listening socket on shutdown

Steps 1-4 are startup. If any of them fails the server cannot run at all,
so the error is raised as SocketSetupError and the process exits.

=============================================================================
THREAD PER CONNECTION
=============================================================================

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── accept loop, main thread
                    └───────────┬───────────┘
                                │
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Thread 1  │         │ Thread 2  │         │ Thread 3  │
    │ conn A    │         │ conn B    │         │ conn C    │
    └───────────┘         └───────────┘         └───────────┘

Every accepted connection gets a brand-new thread. There is no pool, no
queue and no upper limit: a burst of N clients means N threads. This is
simple and matches one-request-per-connection well, but it is a
SCALABILITY LIMIT. Under heavy load memory grows with the number of
concurrent clients.

Threads are not joined while the server runs. They are tracked and all
joined once the accept loop ends, so start() only returns after every
in-flight response is finished.

=============================================================================
SHUTDOWN
=============================================================================

    stop()  ──►  running = False
            ──►  shutdown() + close() the listening socket

    accept loop:  accept() fails (or its poll timeout fires), the loop
                  sees running == False and exits

    cleanup:      restore signal handlers, join handler threads

stop() also sets a shutdown event that is never cleared. If it runs before
or during start(), start() closes the socket right after listen() and
returns without serving. A SocketServer is single-use.

stop() only flips a flag and closes a socket, so it is safe from a signal
handler or any other thread, and calling it twice is harmless. A client
that connects in the instant between the flag flip and the close may
still be accepted and served; that race is benign.

The listening socket also has a short accept timeout. Closing a socket
from another thread does not interrupt a blocked accept() on every
platform; the timeout guarantees the flag is rechecked regularly anyway.

=============================================================================
SIGNAL HANDLING
=============================================================================

SIGINT (2):   Ctrl+C
SIGTERM (15): kill, docker stop, systemd stop

Both call stop(). The previous handlers are saved and restored on exit.
Python only allows installing handlers from the main thread; elsewhere
(tests running the server in a background thread) this step is skipped.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, List, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketSetupError(OSError):
    """Creating, binding or listening on the server socket failed."""


class SocketServer:
    """
    Listener/dispatcher: accept loop plus one handler thread per connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   socket + SO_REUSEADDR                 │
    │        ├──► bind() / listen()                                        │
    │        ├──► _setup_signals()   SIGTERM/SIGINT → stop()              │
    │        ├──► _accept_loop()     blocks here                           │
    │        │        └──► accept() → Connection → _dispatch()            │
    │        │                              └──► Thread(handler, conn)    │
    │        └──► _cleanup()         close socket, join threads            │
    │                                                                      │
    │    stop()          running = False, shutdown event, close socket     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle)  # Blocks until stop()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        # Created in start()
        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        # The one piece of state shared with other threads
        self._running = False

        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()

        # Handler threads, joined in _cleanup()
        self._threads: List[threading.Thread] = []
        self._threads_lock = threading.Lock()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if the accept loop is (still) supposed to run."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound, once listening.

        Differs from the config when port 0 was requested.
        """
        return self._bound_address or (self.config.host, self.config.port)

    @property
    def active_connections(self) -> int:
        """Number of handler threads still running."""
        with self._threads_lock:
            return sum(1 for thread in self._threads if thread.is_alive())

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket (not yet bound)."""
        # AF_INET = IPv4, SOCK_STREAM = TCP
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Avoid "Address already in use" while old connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Wake up periodically so stop() is noticed even if close() does
        # not interrupt accept() on this platform
        sock.settimeout(self.config.accept_poll_interval)

        return sock

    def _setup_signals(self):
        """Route SIGTERM and SIGINT to stop()."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, leaving signal handlers alone")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.stop()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(
        self,
        connection_handler: Callable[[Connection], None],
        install_signal_handlers: bool = True,
    ):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until stop() is called and every dispatched
        handler thread has finished.

        Args:
            connection_handler: Called on a fresh thread for every accepted
                connection. The connection is closed after it returns,
                whatever happens inside.
            install_signal_handlers: Route SIGINT/SIGTERM to stop().

        Raises:
            SocketSetupError: If the socket cannot be created, bound or
                put into listening mode.
        """
        try:
            sock = self._create_socket()
        except OSError as e:
            raise SocketSetupError(f"Failed to create socket: {e}") from e

        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise SocketSetupError(
                f"Failed to listen on {self.config.host}:{self.config.port}: {e}"
            ) from e

        self._socket = sock
        self._bound_address = sock.getsockname()[:2]
        self._running = True

        # stop() may already have run, before start() or while binding.
        # The event is never cleared, so a stopped server stays stopped.
        if self._shutdown_event.is_set():
            logger.info("Stop requested before the server started, not serving")
            self._running = False
            self._socket = None
            sock.close()
            return

        if install_signal_handlers:
            self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """Accept connections and dispatch them until stop() is called."""
        while self._running:
            sock = self._socket
            if sock is None:
                break

            try:
                client_socket, client_address = sock.accept()
            except socket.timeout:
                continue  # Poll interval elapsed, recheck the flag
            except OSError as e:
                if not self._running or sock.fileno() == -1:
                    break  # stop() closed the socket under us
                # Transient (e.g. EMFILE): report and keep serving
                logger.error(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                max_request_line=self.config.max_request_line,
                timeout=self.config.timeout,
            )
            self._dispatch(connection_handler, conn)

    def _dispatch(self, connection_handler: Callable[[Connection], None], conn: Connection):
        """Start a handler thread for ``conn`` and remember it for shutdown."""
        thread = threading.Thread(
            target=self._run_handler,
            args=(connection_handler, conn),
            name=f"conn-{conn.id}",
            daemon=True,
        )

        with self._threads_lock:
            # Finished threads need no join; drop them so the list stays small
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)

        thread.start()

    def _run_handler(self, connection_handler: Callable[[Connection], None], conn: Connection):
        """Thread body: run the handler, then close the connection no matter what."""
        try:
            connection_handler(conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Unhandled error in connection handler: {e}")
        finally:
            conn.close()

    def stop(self):
        """
        Stop accepting connections. Idempotent, safe from any thread and
        from signal handlers.
        """
        if self._running:
            logger.info("Shutting down socket server...")

        self._running = False
        self._shutdown_event.set()

        sock = self._socket
        if sock is not None:
            try:
                # Wakes a blocked accept() on Linux
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                sock.close()
            except OSError:
                pass

    def _cleanup(self):
        """Release the socket and wait for in-flight connections."""
        self._running = False
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        with self._threads_lock:
            threads = list(self._threads)

        if threads:
            logger.info(f"Waiting for {len(threads)} connection(s) to finish...")
        for thread in threads:
            thread.join()

        with self._threads_lock:
            self._threads.clear()

        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the socket is listening.

        Returns:
            True if ready, False on timeout.
        """
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until stop() has been requested.

        Returns:
            True if shutdown was requested, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
