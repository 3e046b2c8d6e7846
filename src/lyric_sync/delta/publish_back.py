"""
Publish-back: marks source records as delivered once their content is
durable in a delta artifact.
"""

import logging
from typing import Sequence

from ..core.exceptions import PublishBackError
from .models import CommitResult, RecordRef

logger = logging.getLogger(__name__)


class PublishBackCoordinator:
    """Sets the delivery flag for exactly the given records."""

    def __init__(self, store):
        """
        Args:
            store: SourceStore whose ``mark_delivered`` performs the batch write
        """
        self.store = store

    def mark_delivered(self, refs: Sequence[RecordRef]) -> CommitResult:
        """
        Commit the delivery flag for the given refs.

        Empty input is a no-op and never reaches the store.

        Raises:
            PublishBackError: If the store's batch commit fails
        """
        refs = list(refs)
        if not refs:
            return CommitResult()

        logger.info(f"Marking {len(refs)} records as delivered...")
        try:
            result = self.store.mark_delivered(refs)
        except PublishBackError:
            raise
        except Exception as e:
            raise PublishBackError(
                f"Failed to mark records as delivered: {e}",
                pending_ids=[r.record_id for r in refs],
            ) from e

        logger.info(f"Marked {result.count} records as delivered in {result.batches} batch(es)")
        return result
