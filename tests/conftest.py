"""
Shared test fixtures and configuration for pytest.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lyric_sync.config.config_loader import SyncConfig
from lyric_sync.delta.models import CommitResult, RecordRef, SourceRecord
from lyric_sync.source.base import SourceStore


logger = logging.getLogger(__name__)


# ============================================================================
# In-memory source store
# ============================================================================

class InMemorySourceStore(SourceStore):
    """
    Source store fake holding documents in a dict.

    Documents keep insertion order, which stands in for the store's
    natural query order.
    """

    def __init__(self, docs: Optional[Dict[str, dict]] = None):
        self.docs: Dict[str, dict] = {}
        for record_id, data in (docs or {}).items():
            self.put(record_id, **data)
        self.fetch_calls: List[bool] = []
        self.commits: List[List[str]] = []
        self.fail_fetch: Optional[Exception] = None
        self.fail_commit: Optional[Exception] = None
        self.closed = False

    def put(self, record_id: str, status: str = "approved", published: bool = False, **fields) -> None:
        self.docs[record_id] = {"status": status, "published": published, **fields}

    def edit(self, record_id: str, **fields) -> None:
        self.docs[record_id].update(fields)

    def fetch_records(self, only_undelivered: bool = False) -> List[SourceRecord]:
        self.fetch_calls.append(only_undelivered)
        if self.fail_fetch is not None:
            raise self.fail_fetch

        records = []
        for record_id, data in self.docs.items():
            if data.get("status") != "approved":
                continue
            if only_undelivered and data.get("published") is not False:
                continue
            records.append(SourceRecord.from_dict(record_id, dict(data), ref=record_id))
        return records

    def mark_delivered(self, refs: Sequence[RecordRef]) -> CommitResult:
        if self.fail_commit is not None:
            raise self.fail_commit

        ids = [ref.record_id for ref in refs]
        self.commits.append(ids)
        for record_id in ids:
            self.docs[record_id]["published"] = True
        return CommitResult(marked_ids=ids, batches=1)

    def close(self) -> None:
        self.closed = True


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (requires Firestore emulator)")


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def store() -> InMemorySourceStore:
    """Fixture providing an empty in-memory source store."""
    return InMemorySourceStore()


@pytest.fixture
def sync_config(tmp_path: Path) -> SyncConfig:
    """Fixture providing a config rooted in a temp directory."""
    return SyncConfig(base_dir=tmp_path)


@pytest.fixture
def make_record():
    """Factory fixture for SourceRecords."""
    def _make(record_id: str = "abc1", **fields) -> SourceRecord:
        published = fields.pop("published", False)
        return SourceRecord(record_id=record_id, published=published, ref=record_id, **fields)
    return _make
