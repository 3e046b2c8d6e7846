"""
Diff engine: partitions source records into changed and unchanged.

Two query modes are served by the same engine:

- ``full``: every approved record is fetched and compared against the
  change registry by fingerprint. Detects edits to already-delivered
  content as well as new records.
- ``undelivered``: only approved, not-yet-delivered records are fetched and
  all of them are treated as changed. Cheaper, but silent edits to
  delivered content are never seen.
"""

import logging
from enum import Enum
from typing import Dict, Iterable

from .fingerprint import fingerprint
from .models import DiffResult, SourceRecord

logger = logging.getLogger(__name__)


class QueryMode(str, Enum):
    """Which slice of the source store a run reads."""
    FULL_HASH = "full"
    UNDELIVERED_ONLY = "undelivered"

    @property
    def only_undelivered(self) -> bool:
        return self is QueryMode.UNDELIVERED_ONLY


class DiffEngine:
    """Compares source records against the change registry."""

    def __init__(self, mode: QueryMode = QueryMode.FULL_HASH):
        self.mode = QueryMode(mode)

    def diff(self, records: Iterable[SourceRecord], registry: Dict[str, str]) -> DiffResult:
        """
        Classify records as changed or unchanged.

        Args:
            records: Approved records in source query order
            registry: Identity -> last synced fingerprint

        Returns:
            DiffResult whose ``changed`` list keeps source order
        """
        result = DiffResult()

        for record in records:
            current = fingerprint(record)
            stored = registry.get(record.record_id)

            if self.mode is QueryMode.FULL_HASH and stored == current:
                result.unchanged_count += 1
                if not record.published:
                    result.pending_delivery.append(record.to_ref())
                continue

            if stored is None:
                logger.info(f"New record: {record.title} ({record.record_id})")
            elif stored != current:
                logger.info(f"Change detected in record: {record.title} ({record.record_id})")
            else:
                logger.debug(f"Undelivered record: {record.title} ({record.record_id})")

            result.changed.append(record)
            result.fingerprints[record.record_id] = current

            if not record.published:
                result.to_mark_delivered.append(record.to_ref())

        logger.info(
            f"Diff ({self.mode.value}): {len(result.changed)} changed, "
            f"{result.unchanged_count} unchanged, "
            f"{len(result.to_mark_delivered)} to mark delivered"
        )
        return result

    @staticmethod
    def updated_registry(registry: Dict[str, str], result: DiffResult) -> Dict[str, str]:
        """Return a copy of the registry with every changed record's fingerprint."""
        updated = dict(registry)
        updated.update(result.fingerprints)
        return updated
