"""
=============================================================================
HANDLERS MODULE
=============================================================================

Maps request paths onto the filesystem.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   "/css/site.css"  ──►  PathResolver  ──►  ResolvedFile (200)       │
    │                                       ──►  NotFoundError  (404)     │
    │                                       ──►  ForbiddenError (403)     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .static import (
    PathResolver,
    ResolvedFile,
    ResolveError,
    NotFoundError,
    ForbiddenError,
    resolve,
)

__all__ = [
    "PathResolver",
    "ResolvedFile",
    "ResolveError",
    "NotFoundError",
    "ForbiddenError",
    "resolve",
]
