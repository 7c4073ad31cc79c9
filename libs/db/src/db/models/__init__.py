"""Shared SQLAlchemy models registry for the workspace database.

Currently holds the generic document table used by ``asset_tracker``.
"""

from .documents import AtDocument, Base

__all__ = [
    "Base",
    "AtDocument",
]
