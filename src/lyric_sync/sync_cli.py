#!/usr/bin/env python3
"""
CLI for incremental delta sync.

Usage:
    lyric-sync sync   [--config sync.yaml] [--mode full|undelivered] [--dry-run] [--json]
    lyric-sync verify [--config sync.yaml] [--json]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config.config_loader import SyncConfig, load_config
from .core.exceptions import SyncError
from .core.logging import configure_logging
from .delta.diff_engine import QueryMode
from .delta.manifest import ManifestLedger, verify_manifest
from .delta.sync_engine import SyncEngine


logger = logging.getLogger("lyric_sync.cli")


def open_store(config: SyncConfig):
    """Create the source store client for this run."""
    from .source.firestore_store import FirestoreSourceStore

    return FirestoreSourceStore.from_config(config)


def _load(args) -> SyncConfig:
    config_path = Path(args.config) if args.config else None
    return load_config(config_path)


def cmd_sync(args) -> int:
    """Run one incremental sync pass."""
    config = _load(args)
    if args.mode:
        config.query_mode = QueryMode(args.mode)

    with open_store(config) as store:
        engine = SyncEngine(store=store, config=config)
        report = engine.run(dry_run=args.dry_run)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(report.summary())

    return 0


def cmd_verify(args) -> int:
    """Check every manifest entry's hash against the artifact on disk."""
    config = _load(args)
    manifest_path = config.manifest_paths[0]
    if not manifest_path.exists():
        logger.error(f"Manifest not found: {manifest_path}")
        return 1

    manifest = ManifestLedger(config.max_manifest_entries).load_or_default(manifest_path)
    results = verify_manifest(manifest, config.output_dir)

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        for result in results:
            print(f"  {result.status:<8} {result.asset_name}")
        counts = {status: sum(1 for r in results if r.status == status) for status in ("ok", "mismatch", "missing")}
        print(f"Verified {len(results)} entries: {counts['ok']} ok, "
              f"{counts['mismatch']} mismatch, {counts['missing']} missing")

    return 1 if any(r.status == "mismatch" for r in results) else 0


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="lyric-sync",
        description="Incremental sync of approved submissions into delta artifacts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--structured-logs",
        action="store_true",
        help="Emit JSON log lines",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    sync_parser = subparsers.add_parser("sync", help="Publish a delta artifact for changed records")
    sync_parser.add_argument("--config", help="Path to YAML config file")
    sync_parser.add_argument("--mode", choices=[m.value for m in QueryMode],
                             help="Query mode (default from config: full)")
    sync_parser.add_argument("--dry-run", action="store_true", help="Report without writing anything")
    sync_parser.add_argument("--json", action="store_true", help="Output report as JSON")

    verify_parser = subparsers.add_parser("verify", help="Verify manifest hashes against artifacts")
    verify_parser.add_argument("--config", help="Path to YAML config file")
    verify_parser.add_argument("--json", action="store_true", help="Output results as JSON")

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        structured=args.structured_logs,
    )

    commands = {
        "sync": cmd_sync,
        "verify": cmd_verify,
    }
    command = commands.get(args.command)
    if command is None:
        print("No command specified. Use --help for usage.", file=sys.stderr)
        return 1

    try:
        return command(args)
    except SyncError as e:
        logger.error(f"Error during {args.command}: {e}")
        return 1
    except Exception:
        logger.exception(f"Unexpected error during {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
