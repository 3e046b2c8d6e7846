"""
Incremental delta publishing.

This package provides:
- Fingerprinting: content hashing used for change detection
- ChangeRegistry: last synced fingerprint per record
- DiffEngine: new/edited record detection in two query modes
- PayloadBuilder: immutable delta artifact serialization
- ManifestLedger: capacity-bounded, integrity-hashed artifact index
- PublishBackCoordinator: delivery flag write-back

The run orchestrator lives in ``lyric_sync.delta.sync_engine``.
"""

from .models import SourceRecord, RecordRef, Manifest, ManifestEntry, DiffResult
from .fingerprint import fingerprint, fingerprint_fields
from .registry import ChangeRegistry
from .diff_engine import DiffEngine, QueryMode
from .payload import PayloadBuilder
from .manifest import ManifestLedger, GenerationClock, verify_manifest
from .publish_back import PublishBackCoordinator

__all__ = [
    "SourceRecord",
    "RecordRef",
    "Manifest",
    "ManifestEntry",
    "DiffResult",
    "fingerprint",
    "fingerprint_fields",
    "ChangeRegistry",
    "DiffEngine",
    "QueryMode",
    "PayloadBuilder",
    "ManifestLedger",
    "GenerationClock",
    "verify_manifest",
    "PublishBackCoordinator",
]
