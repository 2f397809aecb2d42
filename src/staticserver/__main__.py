"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

This module provides the command-line interface for running the server.

=============================================================================
USAGE
=============================================================================

    # Defaults: port 8080, files from ./www
    python -m staticserver

    # Custom port and document root
    python -m staticserver 3000 ./public

    # Localhost only, JSON access log
    python -m staticserver --host 127.0.0.1 --log-format json

The document root is created if it does not exist, and a small welcome
index.html is written into it unless one is already there.

=============================================================================
EXIT CODES
=============================================================================

    0   Server ran and shut down cleanly (Ctrl+C / SIGTERM)
    1   Startup failed: bad port, invalid option, socket error

=============================================================================
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .server import StaticFileServer
from .config import ServerConfig, LOG_FORMATS, LOG_LEVELS
from .core import SocketSetupError


logger = logging.getLogger(__name__)


DEFAULT_INDEX_PAGE = (
    "<html>\n"
    "<head><title>Welcome</title></head>\n"
    "<body>\n"
    "<h1>Welcome to StaticServer</h1>\n"
    "<p>Server is running successfully!</p>\n"
    "</body>\n"
    "</html>"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Minimal concurrent static file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver                     # Port 8080, ./www
  python -m staticserver 3000 ./public       # Custom port and root
  python -m staticserver --host 127.0.0.1    # Localhost only
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # POSITIONAL ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────
    # Parsed as strings so a bad port can be reported with exit code 1
    # instead of argparse's usage error.

    parser.add_argument(
        "port",
        nargs="?",
        default=None,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "document_root",
        nargs="?",
        default=None,
        help="Directory to serve files from (default: ./www)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # OPTIONS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Client socket timeout in seconds (default: 30)"
    )

    parser.add_argument(
        "--legacy-prefix-check",
        action="store_true",
        help="Use the string-prefix document root check instead of the "
             "path-component check"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"StaticServer {__version__}"
    )

    return parser


def parse_port(value: str) -> int:
    """
    Parse a port argument.

    Raises:
        ValueError: If ``value`` is not an integer in 0-65535.
    """
    try:
        port = int(value)
    except ValueError:
        raise ValueError(f"Invalid port: {value!r}")

    if not 0 <= port <= 65535:
        raise ValueError(f"Invalid port: {port}. Must be 0-65535.")

    return port


def ensure_document_root(document_root: str, index_file: str = "index.html") -> bool:
    """
    Create the document root (and parents) and seed a default index page.

    An existing index file is never overwritten.

    Returns:
        True if the index page was written.
    """
    root = Path(document_root)
    root.mkdir(parents=True, exist_ok=True)

    index_path = root / index_file
    if index_path.exists():
        return False

    index_path.write_text(DEFAULT_INDEX_PAGE, encoding="utf-8")
    logger.info(f"Created default {index_path}")
    return True


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Combine environment variables and CLI arguments (CLI wins).

    Raises:
        ValueError: On a bad port or an invalid resulting configuration.
    """
    config = ServerConfig.from_env().replace(
        port=parse_port(args.port) if args.port is not None else None,
        document_root=args.document_root,
        host=args.host,
        log_level=args.log_level,
        log_format=args.log_format,
        timeout=args.timeout,
    )

    if args.legacy_prefix_check:
        config = config.replace(segment_containment=False)

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    # =========================================================================
    # CREATE CONFIGURATION
    # =========================================================================

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # =========================================================================
    # BOOTSTRAP DOCUMENT ROOT
    # =========================================================================

    try:
        ensure_document_root(config.document_root, config.index_file)
    except OSError as e:
        print(f"Error: cannot prepare {config.document_root}: {e}", file=sys.stderr)
        return 1

    # =========================================================================
    # RUN SERVER
    # =========================================================================
    # This blocks until Ctrl+C / SIGTERM

    server = StaticFileServer(config)

    try:
        server.serve_forever()
    except SocketSetupError as e:
        logger.error(f"Server failed to start: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================
# This allows running: python -m staticserver

if __name__ == "__main__":
    sys.exit(main())
