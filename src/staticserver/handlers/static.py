"""
=============================================================================
STATIC FILE RESOLUTION
=============================================================================

Turns a request path into an open file inside the document root, or
refuses with NotFoundError / ForbiddenError.

=============================================================================
SECURITY: PATH TRAVERSAL ATTACK
=============================================================================

Path traversal is an attack where a client tries to read files outside
the document root:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../etc/passwd HTTP/1.1                                     │
    │                                                                      │
    │  Naive join:   /srv/www + /../../etc/passwd                         │
    │                → /etc/passwd  (SECURITY BREACH!)                    │
    │                                                                      │
    │  Our protection:                                                    │
    │  1. Canonicalize root and candidate (resolve .. and symlinks)      │
    │  2. Check the candidate is still inside the root                   │
    │  3. If not, ForbiddenError (403) BEFORE anything is opened         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONTAINMENT: SEGMENTS VS. STRING PREFIX
=============================================================================

There are two ways to ask "is /a/b inside /srv/www?":

    PREFIX CHECK (legacy)            str(candidate).startswith(str(root))
    SEGMENT CHECK (default)          root is candidate, or one of its parents

They disagree on sibling directories that share the root's name as a
prefix:

    root       = /srv/www
    candidate  = /srv/www-secrets/key.pem

    prefix  check → "/srv/www-secrets/key.pem".startswith("/srv/www")
                  → True   (file is served! known weakness)
    segment check → /srv/www not in parents of candidate
                  → False  (403)

The segment check is the default. The prefix check is still available
(segment_containment=False) for deployments that depend on the exact
historical behaviour; it keeps the weakness on purpose.

=============================================================================
RESOLUTION STEPS
=============================================================================

    request path "/"            → "/index.html"
    candidate                   = document_root + request path   (verbatim)
    canonical root              = resolve(root, strict)      ─┐ NotFoundError
    canonical candidate         = resolve(candidate, strict) ─┘ on failure
                                   (missing file, broken symlink, loop)
    contained?                  no  → ForbiddenError
    open(canonical, "rb")       fails → NotFoundError
                                   (directory, no permission)
    size                        = seek to end
    mime type                   = get_mime_type(candidate)

=============================================================================
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Union

from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)


class ResolveError(Exception):
    """
    Raised when a request path cannot be turned into a servable file.

    ``status`` is the HTTP status the connection handler answers with.
    """

    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, request_path: str = ""):
        super().__init__(message)
        self.request_path = request_path


class NotFoundError(ResolveError):
    """File missing, unreadable, a directory, or the root itself is gone."""

    status = HTTPStatus.NOT_FOUND


class ForbiddenError(ResolveError):
    """Canonical path lies outside the document root."""

    status = HTTPStatus.FORBIDDEN


@dataclass
class ResolvedFile:
    """
    A file that passed the sandbox check and is open for reading.

    Use as a context manager so the file is always closed:

        with resolver.resolve("/index.html") as resolved:
            writer.send_file(conn, resolved)
    """

    absolute_path: str
    size: int
    mime_type: str
    file: BinaryIO = field(repr=False, compare=False)

    def close(self):
        self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class PathResolver:
    """
    Maps request paths to files under a document root.

    The root is canonicalized on EVERY call, so replacing or removing the
    root directory while the server runs is picked up immediately.

    Usage:
        resolver = PathResolver("./www")
        try:
            with resolver.resolve("/css/site.css") as resolved:
                ...
        except ResolveError as e:
            status = e.status
    """

    def __init__(
        self,
        document_root: Union[str, Path],
        index_file: str = "index.html",
        segment_containment: bool = True,
    ):
        """
        Args:
            document_root: Directory files are served from.
            index_file: File served for a request for "/".
            segment_containment: True for the path-component check,
                False for the legacy string-prefix check.
        """
        self.document_root = str(document_root)
        self.index_file = index_file
        self.segment_containment = segment_containment

    def candidate_path(self, request_path: str) -> str:
        """Root and request path glued together, before canonicalization."""
        if request_path == "/":
            request_path = "/" + self.index_file
        return self.document_root + request_path

    def resolve(self, request_path: str) -> ResolvedFile:
        """
        Resolve ``request_path`` to an open file.

        Raises:
            ForbiddenError: The canonical path escapes the document root.
            NotFoundError: Canonicalization failed or the file can't be opened.
        """
        candidate = self.candidate_path(request_path)

        # ─────────────────────────────────────────────────────────────────
        # CANONICALIZE
        # ─────────────────────────────────────────────────────────────────
        # Both must exist. Anything that doesn't canonicalize is a 404,
        # wherever it would have pointed.
        try:
            root = Path(self.document_root).resolve(strict=True)
        except (OSError, RuntimeError, ValueError) as e:
            logger.error(f"Document root unavailable: {self.document_root}: {e}")
            raise NotFoundError(f"Document root unavailable: {e}", request_path)

        try:
            target = Path(candidate).resolve(strict=True)
        except (OSError, RuntimeError, ValueError) as e:
            # Missing file, broken symlink, symlink loop, embedded NUL byte
            logger.debug(f"Cannot canonicalize {candidate!r}: {e}")
            raise NotFoundError(f"File not found: {request_path}", request_path)

        # ─────────────────────────────────────────────────────────────────
        # SECURITY: CONTAINMENT CHECK
        # ─────────────────────────────────────────────────────────────────
        if not self.is_contained(root, target):
            logger.warning(f"Path traversal attempt: {request_path!r} -> {target}")
            raise ForbiddenError(f"Outside document root: {request_path}", request_path)

        # ─────────────────────────────────────────────────────────────────
        # OPEN
        # ─────────────────────────────────────────────────────────────────
        # open() on a directory raises IsADirectoryError, so a directory
        # without an explicit file name is a 404.
        try:
            file = open(target, "rb")
        except OSError as e:
            logger.debug(f"Cannot open {target}: {e}")
            raise NotFoundError(f"File not found: {request_path}", request_path)

        try:
            size = file.seek(0, os.SEEK_END)
            file.seek(0)
        except OSError as e:
            file.close()
            raise NotFoundError(f"Cannot size {target}: {e}", request_path)

        return ResolvedFile(
            absolute_path=str(target),
            size=size,
            mime_type=get_mime_type(candidate),
            file=file,
        )

    def is_contained(self, root: Path, target: Path) -> bool:
        """Containment test for two canonical paths (see module docstring)."""
        if self.segment_containment:
            return target == root or root in target.parents
        return str(target).startswith(str(root))


def resolve(document_root: Union[str, Path], request_path: str, **kwargs) -> ResolvedFile:
    """
    One-shot resolution without keeping a PathResolver around.

    Example:
        with resolve("/srv/www", "/") as resolved:
            print(resolved.mime_type)    # text/html
    """
    return PathResolver(document_root, **kwargs).resolve(request_path)
