"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import dataclass, field
from typing import Dict, Generator, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import StaticFileServer, ServerConfig


INDEX_BODY = b"hello1234\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 40


@dataclass
class RawResponse:
    """A response read off the wire, split into its parts."""

    raw: bytes
    status_code: int = 0
    reason: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    header_names: list = field(default_factory=list)
    body: bytes = b""


def parse_raw_response(raw: bytes) -> RawResponse:
    """Split raw response bytes into status, headers and body."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")

    response = RawResponse(raw=raw, body=body)
    if not lines or not lines[0]:
        return response

    _, code, reason = lines[0].split(" ", 2)
    response.status_code = int(code)
    response.reason = reason

    for line in lines[1:]:
        name, _, value = line.partition(": ")
        response.headers[name] = value
        response.header_names.append(name)

    return response


def send_raw(address: Tuple[str, int], *parts: bytes, timeout: float = 5.0) -> bytes:
    """Send ``parts`` as separate writes, then read until the server closes."""
    with socket.create_connection(address, timeout=timeout) as sock:
        for part in parts:
            sock.sendall(part)

        chunks = []
        while True:
            data = sock.recv(65536)
            if not data:
                break
            chunks.append(data)

    return b"".join(chunks)


def http_request(address: Tuple[str, int], method: str, path: str) -> RawResponse:
    """Send one request and parse the reply."""
    request = f"{method} {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode("latin-1")
    return parse_raw_response(send_raw(address, request))


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """
    Populated document root at tmp/srv/www.

    tmp/etc/passwd exists, so "/../../etc/passwd" points at a real file
    outside the root.
    """
    root = tmp_path / "srv" / "www"
    root.mkdir(parents=True)

    (tmp_path / "etc").mkdir()
    (tmp_path / "etc" / "passwd").write_bytes(b"root:x:0:0::/root:/bin/sh\n")

    (root / "index.html").write_bytes(INDEX_BODY)
    (root / "notes.txt").write_bytes(b"plain notes\n")
    (root / "css").mkdir()
    (root / "css" / "site.css").write_bytes(b"body { margin: 0; }\n")
    (root / "js").mkdir()
    (root / "js" / "app.js").write_bytes(b"console.log('hi');\n")
    (root / "img").mkdir()
    (root / "img" / "logo.png").write_bytes(PNG_BYTES)
    (root / "README").write_bytes(b"no extension\n")

    return root


@pytest.fixture
def config(docroot: Path) -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        document_root=str(docroot),
        timeout=5.0,
        accept_poll_interval=0.1,
        log_level="WARNING",
    )


class RunningServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: StaticFileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.serve_forever,
            kwargs={"install_signal_handlers": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server and wait for serve_forever() to return."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def get(self, path: str) -> RawResponse:
        return http_request(self.address, "GET", path)

    def request(self, method: str, path: str) -> RawResponse:
        return http_request(self.address, method, path)

    def send(self, *parts: bytes) -> RawResponse:
        """Send raw bytes (one write per part) and parse whatever comes back."""
        return parse_raw_response(send_raw(self.address, *parts))


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """A server on an ephemeral port, serving ``docroot``."""
    test_srv = RunningServer(StaticFileServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
