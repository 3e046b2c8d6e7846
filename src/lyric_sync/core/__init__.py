"""
Core utilities shared across the sync engine: exceptions and logging.
"""

from .exceptions import (
    SyncError,
    SyncConfigError,
    SourceStoreError,
    ArtifactWriteError,
    PublishBackError,
)
from .logging import configure_logging, RunContext

__all__ = [
    "SyncError",
    "SyncConfigError",
    "SourceStoreError",
    "ArtifactWriteError",
    "PublishBackError",
    "configure_logging",
    "RunContext",
]
