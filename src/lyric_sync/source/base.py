"""
Source store interface for the moderation queue.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..delta.models import CommitResult, RecordRef, SourceRecord


APPROVED_STATUS = "approved"


class SourceStore(ABC):
    """
    Abstract base class for the record store the engine syncs from.

    Implementations own the client/connection for one run. The engine
    reads through ``fetch_records`` and writes only the delivery flag
    through ``mark_delivered``.
    """

    @abstractmethod
    def fetch_records(self, only_undelivered: bool = False) -> List[SourceRecord]:
        """
        Fetch approved records in the store's natural order.

        Args:
            only_undelivered: Also restrict to records whose delivery flag
                is false

        Raises:
            SourceStoreError: If the query fails
        """
        pass

    @abstractmethod
    def mark_delivered(self, refs: Sequence[RecordRef]) -> CommitResult:
        """
        Set the delivery flag on exactly the given records in a batch.

        Raises:
            PublishBackError: If the batch commit fails
        """
        pass

    def close(self) -> None:
        """Release the store client."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
