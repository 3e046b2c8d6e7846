"""
Source store boundary.

The Firestore implementation is imported lazily by callers
(``lyric_sync.source.firestore_store``) so the engine and its tests do not
need a Firebase client.
"""

from .base import SourceStore, APPROVED_STATUS

__all__ = ["SourceStore", "APPROVED_STATUS"]
