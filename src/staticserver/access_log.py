"""
=============================================================================
ACCESS LOGGING
=============================================================================

One structured record per handled connection, plus the process-wide
logging setup.

=============================================================================
WHAT GETS LOGGED
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  text:                                                              │
    │  127.0.0.1 - - [21/Oct/2024:07:28:00 +0000] "GET / HTTP/1.1"       │
    │      200 10 0.41ms                                                  │
    │                                                                      │
    │  json:                                                              │
    │  {"connection_id": "a1b2c3d4", "method": "GET", "path": "/",       │
    │   "status_code": 200, "bytes_sent": 10, ...}                        │
    └─────────────────────────────────────────────────────────────────────┘

Connections that close without sending anything (the client never sent a
request line) produce no access record, only a DEBUG message.

We use a namespaced logger for granular control:

    logging.getLogger("staticserver.access").setLevel(logging.WARNING)

silences per-request lines without touching server messages.

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone


logger = logging.getLogger("staticserver.access")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    Fields:
        connection_id:  Connection.id, to correlate with debug messages
        client_ip:      Peer address
        method, path, protocol:  The parsed request line
        status_code:    Status sent to the client
        bytes_sent:     Body bytes actually written
        duration_ms:    Accept-to-close processing time
        timestamp:      When the record was made (UTC)
    """

    connection_id: str
    client_ip: str
    method: str
    path: str
    protocol: str
    status_code: int
    bytes_sent: int
    duration_ms: float
    timestamp: str

    @classmethod
    def now(cls, **fields) -> "RequestLog":
        """Create a record stamped with the current UTC time."""
        stamp = datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S +0000")
        return cls(timestamp=stamp, **fields)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line: ip - - [time] "request line" status bytes duration."""
        request_line = " ".join(p for p in (self.method, self.path, self.protocol) if p)
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{request_line}" {self.status_code} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


def log_request(record: RequestLog, fmt: str = "text", level: int = logging.INFO) -> None:
    """Emit ``record`` on the access logger at ``level`` in the configured format."""
    if fmt == "json":
        logger.log(level, json.dumps(record.to_dict()))
    else:
        logger.log(level, record.to_text())


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger and the staticserver logger hierarchy.

    Safe to call more than once; basicConfig only acts the first time.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )

    logging.getLogger("staticserver").setLevel(numeric_level)
