"""
Custom exceptions for the lyric sync engine.
"""


class SyncError(Exception):
    """Base exception for all sync engine errors."""
    pass


class SyncConfigError(SyncError):
    """
    Error in sync configuration.

    Raised when:
    - Configuration file is missing or invalid
    - Service account credentials are missing or cannot be decoded
    - Configuration values are out of valid range
    """
    pass


class SourceStoreError(SyncError):
    """
    Error reading from the source store.

    Raised when the approved-records query fails. Nothing has been
    written locally when this is raised.
    """

    def __init__(self, message: str, collection: str = None):
        super().__init__(message)
        self.collection = collection


class ArtifactWriteError(SyncError):
    """
    Error persisting a delta artifact, manifest or registry file.

    Files written earlier in the run are left in place.
    """

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path


class PublishBackError(SyncError):
    """
    Error marking records as delivered in the source store.

    Local artifacts are already durable when this is raised; the next
    run retries the mark.
    """

    def __init__(self, message: str, pending_ids: list = None):
        super().__init__(message)
        self.pending_ids = pending_ids or []
