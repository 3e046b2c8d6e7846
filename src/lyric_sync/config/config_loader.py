"""
Configuration loader for the sync engine.

Values are resolved in three layers: built-in defaults, an optional YAML
file, then environment variable overrides.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..core.exceptions import SyncConfigError
from ..delta.diff_engine import QueryMode


logger = logging.getLogger(__name__)


ENV_PREFIX = "LYRIC_SYNC_"
SERVICE_ACCOUNT_ENV = "FIREBASE_SERVICE_ACCOUNT"
SERVICE_ACCOUNT_FILE_ENV = "FIREBASE_SERVICE_ACCOUNT_FILE"

# Firestore rejects write batches larger than this
MAX_FIRESTORE_BATCH = 500


def _default_config() -> Dict[str, Any]:
    """Return default configuration."""
    return {
        "source": {
            "collection": "submissions",
            "project_id": None,
        },
        "sync": {
            "query_mode": QueryMode.FULL_HASH.value,
            "retry_pending_delivery": True,
            "batch_size": MAX_FIRESTORE_BATCH,
        },
        "output": {
            "output_dir": "output",
            "registry_path": "lyric_registry.json",
            "manifest_paths": ["manifest.json", "output/manifest.json"],
            "max_manifest_entries": 50,
            "release_tag_prefix": "v1.0.",
            "source_tag": "firestore",
        },
    }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise SyncConfigError(f"Invalid boolean value: {value!r}")


@dataclass
class SyncConfig:
    """
    Resolved configuration for one sync run.

    Attributes:
        base_dir: Directory relative paths are resolved against
        collection: Source store collection holding the records
        project_id: Optional project id override for the store client
        query_mode: Which records to fetch (full hash diff or undelivered only)
        retry_pending_delivery: Re-mark unchanged-but-undelivered records
        batch_size: Maximum updates per publish-back batch
        output_dir: Directory delta artifacts are written to
        registry_path: Change registry file
        manifest_paths: Every location the manifest is written to; the
            first one is the canonical copy read at the start of a run
        max_manifest_entries: Manifest sliding-window size
        release_tag_prefix: Prefix for generated release tags
        source_tag: Constant ``source`` value stamped on artifact items
        service_account_b64: Base64-encoded service account JSON
        service_account_file: Path to a service account JSON file
    """
    base_dir: Path = field(default_factory=Path.cwd)
    collection: str = "submissions"
    project_id: Optional[str] = None
    query_mode: QueryMode = QueryMode.FULL_HASH
    retry_pending_delivery: bool = True
    batch_size: int = MAX_FIRESTORE_BATCH
    output_dir: Path = Path("output")
    registry_path: Path = Path("lyric_registry.json")
    manifest_paths: List[Path] = field(
        default_factory=lambda: [Path("manifest.json"), Path("output/manifest.json")]
    )
    max_manifest_entries: int = 50
    release_tag_prefix: str = "v1.0."
    source_tag: str = "firestore"
    service_account_b64: Optional[str] = field(default=None, repr=False)
    service_account_file: Optional[Path] = None

    def __post_init__(self):
        self.base_dir = Path(self.base_dir)
        self.output_dir = self._resolve(self.output_dir)
        self.registry_path = self._resolve(self.registry_path)
        self.manifest_paths = [self._resolve(p) for p in self.manifest_paths]
        if self.service_account_file is not None:
            self.service_account_file = self._resolve(self.service_account_file)
        self.validate()

    def _resolve(self, path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.base_dir / path

    def validate(self) -> None:
        """
        Validate value ranges.

        Raises:
            SyncConfigError: If any value is invalid
        """
        try:
            self.query_mode = QueryMode(self.query_mode)
        except ValueError:
            choices = ", ".join(m.value for m in QueryMode)
            raise SyncConfigError(f"Invalid query_mode {self.query_mode!r} (expected one of: {choices})")

        if not self.collection:
            raise SyncConfigError("collection must not be empty")
        if not self.manifest_paths:
            raise SyncConfigError("At least one manifest path is required")
        if not 1 <= int(self.max_manifest_entries):
            raise SyncConfigError("max_manifest_entries must be at least 1")
        if not 1 <= int(self.batch_size) <= MAX_FIRESTORE_BATCH:
            raise SyncConfigError(f"batch_size must be between 1 and {MAX_FIRESTORE_BATCH}")

    @property
    def has_credentials(self) -> bool:
        return bool(self.service_account_b64 or self.service_account_file)

    @classmethod
    def from_dict(cls, config: Dict[str, Any], base_dir: Optional[Path] = None) -> "SyncConfig":
        """Build from a nested config dictionary (defaults already merged)."""
        source = config.get("source") or {}
        sync = config.get("sync") or {}
        output = config.get("output") or {}
        credentials = config.get("credentials") or {}

        retry = sync.get("retry_pending_delivery", True)
        if isinstance(retry, str):
            retry = _parse_bool(retry)

        manifest_paths = output.get("manifest_paths")
        if isinstance(manifest_paths, str):
            manifest_paths = [manifest_paths]

        try:
            return cls(
                base_dir=base_dir or Path.cwd(),
                collection=source.get("collection", "submissions"),
                project_id=source.get("project_id"),
                query_mode=sync.get("query_mode", QueryMode.FULL_HASH.value),
                retry_pending_delivery=bool(retry),
                batch_size=int(sync.get("batch_size", MAX_FIRESTORE_BATCH)),
                output_dir=output.get("output_dir", "output"),
                registry_path=output.get("registry_path", "lyric_registry.json"),
                manifest_paths=manifest_paths or [],
                max_manifest_entries=int(output.get("max_manifest_entries", 50)),
                release_tag_prefix=output.get("release_tag_prefix", "v1.0."),
                source_tag=output.get("source_tag", "firestore"),
                service_account_b64=credentials.get("service_account_b64"),
                service_account_file=credentials.get("service_account_file"),
            )
        except (TypeError, ValueError) as e:
            raise SyncConfigError(f"Invalid configuration: {e}") from e


def _apply_env_overrides(config: Dict[str, Any], environ: Dict[str, str]) -> Dict[str, Any]:
    """Apply environment variable overrides to loaded config."""
    config = _merge(config, {})
    source = config.setdefault("source", {})
    sync = config.setdefault("sync", {})
    output = config.setdefault("output", {})
    credentials = config.setdefault("credentials", {})

    if environ.get(f"{ENV_PREFIX}COLLECTION"):
        source["collection"] = environ[f"{ENV_PREFIX}COLLECTION"]
    if environ.get(f"{ENV_PREFIX}PROJECT_ID"):
        source["project_id"] = environ[f"{ENV_PREFIX}PROJECT_ID"]
    if environ.get(f"{ENV_PREFIX}QUERY_MODE"):
        sync["query_mode"] = environ[f"{ENV_PREFIX}QUERY_MODE"]
    if environ.get(f"{ENV_PREFIX}RETRY_PENDING_DELIVERY"):
        sync["retry_pending_delivery"] = _parse_bool(environ[f"{ENV_PREFIX}RETRY_PENDING_DELIVERY"])
    if environ.get(f"{ENV_PREFIX}OUTPUT_DIR"):
        output["output_dir"] = environ[f"{ENV_PREFIX}OUTPUT_DIR"]
    if environ.get(f"{ENV_PREFIX}REGISTRY_PATH"):
        output["registry_path"] = environ[f"{ENV_PREFIX}REGISTRY_PATH"]
    if environ.get(f"{ENV_PREFIX}MANIFEST_PATHS"):
        output["manifest_paths"] = [
            p.strip() for p in environ[f"{ENV_PREFIX}MANIFEST_PATHS"].split(os.pathsep) if p.strip()
        ]

    if environ.get(SERVICE_ACCOUNT_ENV):
        credentials["service_account_b64"] = environ[SERVICE_ACCOUNT_ENV]
    if environ.get(SERVICE_ACCOUNT_FILE_ENV):
        credentials["service_account_file"] = environ[SERVICE_ACCOUNT_FILE_ENV]

    return config


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> SyncConfig:
    """
    Load sync configuration.

    Args:
        config_path: Optional YAML config file; relative paths inside it
            resolve against its directory
        environ: Environment mapping (default: os.environ)

    Returns:
        Resolved SyncConfig

    Raises:
        SyncConfigError: If the file is missing, unparsable or invalid
    """
    environ = os.environ if environ is None else environ
    config = _default_config()
    base_dir = Path.cwd()

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise SyncConfigError(f"Config file not found: {config_path}")

        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise SyncConfigError(f"Failed to read config {config_path}: {e}") from e

        if loaded is not None and not isinstance(loaded, dict):
            raise SyncConfigError(f"Config file {config_path} must contain a mapping")

        config = _merge(config, loaded or {})
        base_dir = config_path.resolve().parent

    config = _apply_env_overrides(config, environ)
    return SyncConfig.from_dict(config, base_dir=base_dir)
