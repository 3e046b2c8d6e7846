"""
Manifest ledger for published delta artifacts.

The manifest is an append-only, capacity-bounded index of delta artifacts.
Each entry carries the SHA-256 of the exact bytes written for its
artifact, so consumers can verify downloads.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .models import Manifest, ManifestEntry
from .payload import ARTIFACT_PREFIX, serialize_json
from .sinks import FileSink, publish_to_sinks

logger = logging.getLogger(__name__)


DEFAULT_MAX_ENTRIES = 50
DEFAULT_RELEASE_TAG_PREFIX = "v1.0."


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class ManifestLedger:
    """Loads, extends and persists the manifest."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries

    def append(self, manifest: Manifest, entry: ManifestEntry) -> Manifest:
        """
        Return a new manifest with the entry appended.

        The input manifest is not modified. When the entry count exceeds
        ``max_entries`` the oldest entries are dropped from the front.
        """
        updates = list(manifest.updates) + [entry]
        if len(updates) > self.max_entries:
            dropped = len(updates) - self.max_entries
            logger.debug(f"Dropping {dropped} oldest manifest entries")
            updates = updates[-self.max_entries:]

        return Manifest(
            manifest_version=manifest.manifest_version,
            latest_release_tag=entry.release_tag,
            updates=updates,
        )

    def load_or_default(self, path: Path) -> Manifest:
        """Load the manifest, falling back to a fresh one if absent or corrupt."""
        path = Path(path)
        if not path.exists():
            logger.debug(f"Manifest does not exist yet: {path}")
            return Manifest.default()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            manifest = Manifest.from_dict(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Existing manifest {path} is invalid, starting fresh: {e}")
            return Manifest.default()

        logger.info(f"Loaded manifest with {len(manifest.updates)} entries from: {path}")
        return manifest

    @staticmethod
    def serialize(manifest: Manifest) -> bytes:
        return serialize_json(manifest.to_dict())

    def persist(self, manifest: Manifest, sinks: Iterable[FileSink]) -> bytes:
        """
        Serialize once and write the same bytes to every sink.

        Returns:
            The bytes written
        """
        sinks = list(sinks)
        data = self.serialize(manifest)
        publish_to_sinks(data, sinks)
        logger.info(f"Saved manifest to {len(sinks)} location(s): {', '.join(str(s.path) for s in sinks)}")
        return data


def make_entry(artifact_id: str, filename: str, data: bytes, release_tag: str) -> ManifestEntry:
    """Create a manifest entry hashed from the artifact's in-memory bytes."""
    return ManifestEntry(
        id=artifact_id,
        asset_name=filename,
        sha256=sha256_hex(data),
        release_tag=release_tag,
    )


def generation_of(entry: ManifestEntry) -> Optional[int]:
    """Extract the numeric generation id from an entry id, if it has one."""
    if not entry.id.startswith(ARTIFACT_PREFIX):
        return None
    try:
        return int(entry.id[len(ARTIFACT_PREFIX):])
    except ValueError:
        return None


class GenerationClock:
    """
    Hands out generation ids: epoch milliseconds, strictly increasing.

    If the wall clock has not moved past the newest generation already in
    the manifest (two runs in the same millisecond, or clock skew), the id
    is bumped to one past it.
    """

    def __init__(self, now_ms: Optional[Callable[[], int]] = None):
        self._now_ms = now_ms or (lambda: time.time_ns() // 1_000_000)

    def next_id(self, manifest: Optional[Manifest] = None) -> int:
        candidate = self._now_ms()
        if manifest is not None:
            previous = [g for g in (generation_of(e) for e in manifest.updates) if g is not None]
            if previous and candidate <= max(previous):
                logger.warning(
                    f"Generation id {candidate} does not advance past {max(previous)}, bumping"
                )
                candidate = max(previous) + 1
        return candidate


def release_tag_for(generation_id: int, prefix: str = DEFAULT_RELEASE_TAG_PREFIX) -> str:
    return f"{prefix}{generation_id}"


@dataclass
class VerificationResult:
    """Integrity check of one manifest entry against the file on disk."""
    asset_name: str
    expected_sha256: str
    actual_sha256: Optional[str]
    status: str  # 'ok', 'mismatch', 'missing'

    def to_dict(self):
        return {
            "assetName": self.asset_name,
            "expected": self.expected_sha256,
            "actual": self.actual_sha256,
            "status": self.status,
        }


def verify_manifest(manifest: Manifest, artifact_dir: Path) -> List[VerificationResult]:
    """
    Re-hash every artifact listed in the manifest.

    Args:
        manifest: The manifest to check
        artifact_dir: Directory holding the delta artifact files

    Returns:
        One VerificationResult per manifest entry, in manifest order
    """
    results = []
    for entry in manifest.updates:
        path = Path(artifact_dir) / entry.asset_name
        if not path.exists():
            results.append(VerificationResult(entry.asset_name, entry.sha256, None, "missing"))
            continue

        actual = sha256_hex(path.read_bytes())
        status = "ok" if actual == entry.sha256 else "mismatch"
        if status == "mismatch":
            logger.warning(f"Hash mismatch for {entry.asset_name}")
        results.append(VerificationResult(entry.asset_name, entry.sha256, actual, status))

    return results
