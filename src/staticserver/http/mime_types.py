"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type value sent with a file.

=============================================================================
WHAT IS A MIME TYPE?
=============================================================================

MIME types tell the client how to interpret the response body.
They follow the format: type/subtype

    ┌────────────────────────────────────────────────────────────────────┐
    │                    SUPPORTED MIME TYPES                            │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  .html             → text/html                                     │
    │  .css              → text/css                                      │
    │  .js               → application/javascript                        │
    │  .json             → application/json                              │
    │  .txt              → text/plain                                    │
    │  .png              → image/png                                     │
    │  .jpg / .jpeg      → image/jpeg                                    │
    │  .gif              → image/gif                                     │
    │                                                                     │
    │  anything else     → application/octet-stream                      │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

The table is deliberately small and fixed. Content types are sent
without a charset parameter, exactly as listed.

=============================================================================
HOW THE EXTENSION IS FOUND
=============================================================================

The extension is everything after the LAST dot in the whole path:

    /css/site.css          → "css"         → text/css
    /archive.tar.gz        → "gz"          → application/octet-stream
    /v1.2/readme           → "2/readme"    → application/octet-stream
    /Makefile              → (no dot)      → application/octet-stream
    /photo.PNG             → "PNG"         → application/octet-stream

The match is case-sensitive: only the lowercase extensions in the table
are recognised.

=============================================================================
"""

from pathlib import PurePath
from typing import Optional, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions WITHOUT the leading dot, matched exactly.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT TYPES
    # -------------------------------------------------------------------------
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "txt": "text/plain",

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
}

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_extension(path: Union[str, PurePath]) -> Optional[str]:
    """
    Return the text after the last dot in ``path``, or None if there is none.

    Examples:
        >>> get_extension("/index.html")
        'html'
        >>> get_extension("/LICENSE") is None
        True
    """
    path = str(path)
    dot = path.rfind(".")
    if dot == -1:
        return None
    return path[dot + 1:]


def get_mime_type(path: Union[str, PurePath], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Never fails: unknown or missing extensions fall back to ``default``
    (application/octet-stream if not given).

    Args:
        path: File path or name with extension
        default: MIME type to use when the extension is not in the table

    Returns:
        The MIME type string

    Examples:
        >>> get_mime_type("/www/style.css")
        'text/css'

        >>> get_mime_type("photo.JPG")
        'application/octet-stream'

        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    extension = get_extension(path)
    if extension is None:
        return default or DEFAULT_MIME_TYPE

    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)
