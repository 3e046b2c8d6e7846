"""
Sync engine for incremental delta publishing.

Runs one pass of: source query -> diff against the change registry ->
delta artifact -> manifest -> registry -> publish-back. Each step starts
only after the previous one completed, so a failure partway leaves every
earlier write intact and later steps simply not attempted.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config.config_loader import SyncConfig
from ..core.exceptions import SourceStoreError
from ..core.logging import RunContext
from .diff_engine import DiffEngine, QueryMode
from .manifest import GenerationClock, ManifestLedger, make_entry, release_tag_for
from .models import DiffResult, RecordRef
from .payload import PayloadBuilder
from .publish_back import PublishBackCoordinator
from .registry import ChangeRegistry
from .sinks import FileSink

logger = logging.getLogger(__name__)


class SyncOutcome:
    """Possible results of a run."""
    PUBLISHED = "published"
    NO_CHANGES = "no_changes"
    DELIVERY_ONLY = "delivery_only"
    DRY_RUN = "dry_run"


@dataclass
class SyncReport:
    """Report of a sync run."""
    run_id: str
    query_mode: str
    dry_run: bool
    started_at: datetime
    completed_at: Optional[datetime] = None
    outcome: str = ""

    fetched: int = 0
    changed: int = 0
    unchanged: int = 0
    marked_delivered: int = 0
    pending_delivery: int = 0

    generation_id: Optional[int] = None
    artifact_name: Optional[str] = None
    artifact_sha256: Optional[str] = None
    release_tag: Optional[str] = None
    manifest_entries: int = 0
    manifest_paths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "run_id": self.run_id,
            "query_mode": self.query_mode,
            "dry_run": self.dry_run,
            "outcome": self.outcome,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "records": {
                "fetched": self.fetched,
                "changed": self.changed,
                "unchanged": self.unchanged,
                "marked_delivered": self.marked_delivered,
                "pending_delivery": self.pending_delivery,
            },
            "artifact": {
                "generation_id": self.generation_id,
                "name": self.artifact_name,
                "sha256": self.artifact_sha256,
                "release_tag": self.release_tag,
            },
            "manifest": {
                "entries": self.manifest_entries,
                "paths": self.manifest_paths,
            },
        }

    def summary(self) -> str:
        """Get a human-readable summary."""
        lines = [
            f"Sync Report ({self.query_mode})",
            f"  Outcome: {self.outcome}",
            f"  Dry run: {self.dry_run}",
        ]
        if self.completed_at:
            lines.append(f"  Duration: {(self.completed_at - self.started_at).total_seconds():.1f}s")
        lines.extend([
            "",
            f"  Fetched: {self.fetched}",
            f"  Changed: {self.changed}",
            f"  Unchanged: {self.unchanged}",
            f"  Marked delivered: {self.marked_delivered}",
        ])
        if self.pending_delivery:
            lines.append(f"  Pending delivery retried: {self.pending_delivery}")
        if self.artifact_name:
            lines.extend([
                "",
                f"  Artifact: {self.artifact_name}",
                f"  SHA-256: {self.artifact_sha256}",
                f"  Release tag: {self.release_tag}",
                f"  Manifest entries: {self.manifest_entries}",
            ])
        return "\n".join(lines)


class SyncEngine:
    """
    Incremental sync from the source store to delta artifacts.

    The store is constructed once per run by the caller and passed in;
    the engine holds no global state.
    """

    def __init__(
        self,
        store,
        config: SyncConfig,
        registry: Optional[ChangeRegistry] = None,
        ledger: Optional[ManifestLedger] = None,
        clock: Optional[GenerationClock] = None,
        payload_builder: Optional[PayloadBuilder] = None,
    ):
        """
        Initialize the sync engine.

        Args:
            store: SourceStore to read records from and publish back to
            config: Resolved sync configuration
            registry: Change registry (default: from config.registry_path)
            ledger: Manifest ledger (default: config.max_manifest_entries)
            clock: Generation id source (default: wall clock, milliseconds)
            payload_builder: Delta payload builder (default: config.source_tag)
        """
        self.store = store
        self.config = config
        self.registry = registry or ChangeRegistry(config.registry_path)
        self.ledger = ledger or ManifestLedger(max_entries=config.max_manifest_entries)
        self.clock = clock or GenerationClock()
        self.payload_builder = payload_builder or PayloadBuilder(source_tag=config.source_tag)
        self.diff_engine = DiffEngine(config.query_mode)
        self.publisher = PublishBackCoordinator(store)

    @property
    def manifest_sinks(self) -> List[FileSink]:
        return [FileSink(path) for path in self.config.manifest_paths]

    def run(self, dry_run: bool = False) -> SyncReport:
        """
        Perform one sync pass.

        Args:
            dry_run: If True, read and diff only; write nothing anywhere

        Returns:
            SyncReport describing what was done

        Raises:
            SourceStoreError: If the source query fails
            ArtifactWriteError: If a local file cannot be written
            PublishBackError: If the delivery-flag batch fails
        """
        mode = self.config.query_mode
        report = SyncReport(
            run_id=uuid.uuid4().hex[:12],
            query_mode=mode.value,
            dry_run=dry_run,
            started_at=datetime.now(timezone.utc),
        )

        with RunContext(run_id=report.run_id, query_mode=mode.value) as ctx:
            logger.info("Starting sync (content hashing)..." if mode is QueryMode.FULL_HASH
                        else "Starting sync (undelivered records only)...")

            records = self._fetch(mode)
            report.fetched = len(records)

            registry = self.registry.load()
            diff = self.diff_engine.diff(records, registry)
            report.changed = len(diff.changed)
            report.unchanged = diff.unchanged_count

            pending = self._pending_retry(diff)

            if dry_run:
                report.outcome = SyncOutcome.DRY_RUN
                report.marked_delivered = len(diff.to_mark_delivered)
                report.pending_delivery = len(pending)
                logger.info("Dry run: no files written, no records marked")
                return self._finish(report)

            if not diff.has_changes:
                if not pending:
                    report.outcome = SyncOutcome.NO_CHANGES
                    logger.info("No changes detected since last sync.")
                    return self._finish(report)

                logger.info(f"No content changes; retrying delivery mark for {len(pending)} records")
                commit = self.publisher.mark_delivered(pending)
                report.pending_delivery = len(pending)
                report.marked_delivered = commit.count
                report.outcome = SyncOutcome.DELIVERY_ONLY
                return self._finish(report)

            logger.info(f"Syncing {len(diff.changed)} changes (new/edits).")
            self._publish(diff, registry, report, ctx)

            refs = list(diff.to_mark_delivered) + pending
            report.pending_delivery = len(pending)
            if refs:
                commit = self.publisher.mark_delivered(refs)
                report.marked_delivered = commit.count

            report.outcome = SyncOutcome.PUBLISHED
            logger.info(
                f"Success! Created {report.artifact_name}, updated manifest and registry."
            )
            return self._finish(report)

    def _fetch(self, mode: QueryMode):
        try:
            return self.store.fetch_records(only_undelivered=mode.only_undelivered)
        except SourceStoreError:
            raise
        except Exception as e:
            raise SourceStoreError(f"Source query failed: {e}") from e

    def _pending_retry(self, diff: DiffResult) -> List[RecordRef]:
        if not self.config.retry_pending_delivery:
            return []
        return list(diff.pending_delivery)

    def _publish(self, diff: DiffResult, registry: Dict[str, str], report: SyncReport, ctx: RunContext) -> None:
        """Write artifact, then manifest, then registry, in that order."""
        primary_manifest = self.config.manifest_paths[0]
        manifest = self.ledger.load_or_default(primary_manifest)

        generation_id = self.clock.next_id(manifest)
        ctx.update(generation_id=generation_id)
        payload = self.payload_builder.build(diff.changed, generation_id)

        FileSink(self.config.output_dir / payload.filename).write(payload.data)
        logger.info(f"Wrote {payload.filename} ({len(payload.data)} bytes)")

        release_tag = release_tag_for(generation_id, self.config.release_tag_prefix)
        entry = make_entry(payload.artifact_id, payload.filename, payload.data, release_tag)
        manifest = self.ledger.append(manifest, entry)
        self.ledger.persist(manifest, self.manifest_sinks)

        self.registry.save(self.diff_engine.updated_registry(registry, diff))

        report.generation_id = generation_id
        report.artifact_name = payload.filename
        report.artifact_sha256 = entry.sha256
        report.release_tag = release_tag
        report.manifest_entries = len(manifest.updates)
        report.manifest_paths = [str(p) for p in self.config.manifest_paths]

    @staticmethod
    def _finish(report: SyncReport) -> SyncReport:
        report.completed_at = datetime.now(timezone.utc)
        return report
