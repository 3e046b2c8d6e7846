"""
Core data models for the incremental sync engine.

Defines the source record as read from the moderation queue, the manifest
that indexes every published delta artifact, and the per-run results that
flow between the diff, payload and publish-back steps.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


DEFAULT_CATEGORY = "Nohay"
DEFAULT_SUBCATEGORY = "General"
DEFAULT_GROUP = "General"
DEFAULT_AUTHOR = "unknown"

MANIFEST_VERSION = 1


@dataclass
class RecordRef:
    """
    Reference to a source record for write-back.

    Attributes:
        record_id: Store-assigned identity of the record
        handle: Opaque store handle (e.g. a Firestore DocumentReference)
    """
    record_id: str
    handle: Any = None


@dataclass
class SourceRecord:
    """
    A single approved entry read from the source store.

    Optional content fields are None when absent in the store; projection
    defaults are applied only when building the delta payload.

    Attributes:
        record_id: Store-assigned, stable, unique identity
        title: Entry title
        body: Entry body text
        category: Top-level category
        subcategory: Second-level category
        group: Grouping within the subcategory
        created_by: Author identity
        published: Delivery flag; True once captured in a delta artifact
        ref: Opaque store handle used by publish-back
    """
    record_id: str
    title: Optional[str] = None
    body: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    group: Optional[str] = None
    created_by: Optional[str] = None
    published: bool = False
    ref: Any = None

    @classmethod
    def from_dict(cls, record_id: str, data: Optional[Dict[str, Any]], ref: Any = None) -> "SourceRecord":
        """Create from a raw store document body."""
        data = data or {}
        return cls(
            record_id=record_id,
            title=data.get("title"),
            body=data.get("body"),
            category=data.get("category"),
            subcategory=data.get("subcategory"),
            group=data.get("group"),
            created_by=data.get("createdBy"),
            published=data.get("published") is True,
            ref=ref,
        )

    def to_ref(self) -> RecordRef:
        return RecordRef(record_id=self.record_id, handle=self.ref)

    def to_projection(self, source_tag: str) -> Dict[str, Any]:
        """Project the record into the delta artifact item shape."""
        return {
            "remoteId": self.record_id,
            "title": self.title if self.title is not None else "",
            "body": self.body if self.body is not None else "",
            "category": self.category or DEFAULT_CATEGORY,
            "subcategory": self.subcategory or DEFAULT_SUBCATEGORY,
            "group": self.group or DEFAULT_GROUP,
            "createdBy": self.created_by or DEFAULT_AUTHOR,
            "source": source_tag,
        }


@dataclass
class ManifestEntry:
    """One published delta artifact, integrity-hashed."""
    id: str
    asset_name: str
    sha256: str
    release_tag: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "assetName": self.asset_name,
            "sha256": self.sha256,
            "releaseTag": self.release_tag,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ManifestEntry":
        """
        Raises:
            ValueError: If any field is not a string
        """
        for key in ("id", "assetName", "sha256", "releaseTag"):
            if not isinstance(data[key], str):
                raise ValueError(f"manifest entry field '{key}' must be a string")
        return cls(
            id=data["id"],
            asset_name=data["assetName"],
            sha256=data["sha256"],
            release_tag=data["releaseTag"],
        )


@dataclass
class Manifest:
    """
    Index of every delta artifact published, oldest first.

    The entry list is capped by the ledger; the oldest entries fall off
    the front when it overflows.
    """
    manifest_version: int = MANIFEST_VERSION
    latest_release_tag: str = ""
    updates: List[ManifestEntry] = field(default_factory=list)

    @classmethod
    def default(cls) -> "Manifest":
        return cls(manifest_version=MANIFEST_VERSION, latest_release_tag="", updates=[])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "manifestVersion": self.manifest_version,
            "latestReleaseTag": self.latest_release_tag,
            "updates": [entry.to_dict() for entry in self.updates],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        """
        Create from dictionary.

        Raises:
            ValueError: If the structure does not look like a manifest
        """
        if not isinstance(data, dict):
            raise ValueError("manifest root must be a JSON object")

        updates = data.get("updates", [])
        if not isinstance(updates, list):
            raise ValueError("manifest 'updates' must be a list")

        try:
            entries = [ManifestEntry.from_dict(item) for item in updates]
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed manifest entry: {e}") from e

        version = data.get("manifestVersion", MANIFEST_VERSION)
        if isinstance(version, bool) or not isinstance(version, int):
            raise ValueError("manifest 'manifestVersion' must be an integer")

        latest = data.get("latestReleaseTag", "") or ""
        if not isinstance(latest, str):
            raise ValueError("manifest 'latestReleaseTag' must be a string")

        return cls(
            manifest_version=version,
            latest_release_tag=latest,
            updates=entries,
        )


@dataclass
class DiffResult:
    """
    Outcome of diffing source records against the change registry.

    Attributes:
        changed: New or edited records, in source query order
        to_mark_delivered: Refs of changed records not yet delivered
        fingerprints: Current fingerprint of every changed record
        unchanged_count: Records whose fingerprint matched the registry
        pending_delivery: Refs of unchanged records whose delivery flag is
            still false (content already captured in an earlier artifact)
    """
    changed: List[SourceRecord] = field(default_factory=list)
    to_mark_delivered: List[RecordRef] = field(default_factory=list)
    fingerprints: Dict[str, str] = field(default_factory=dict)
    unchanged_count: int = 0
    pending_delivery: List[RecordRef] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


@dataclass
class BuiltPayload:
    """Serialized delta artifact, ready to be written."""
    artifact_id: str
    filename: str
    data: bytes


@dataclass
class CommitResult:
    """Result of a publish-back batch commit."""
    marked_ids: List[str] = field(default_factory=list)
    batches: int = 0
    committed_at: Optional[datetime] = None

    @property
    def count(self) -> int:
        return len(self.marked_ids)
