"""
Change registry for incremental sync.

The registry maps each record identity to the fingerprint it had when it
was last captured in a delta artifact. It is backed by a flat JSON object
and is the basis for deciding what changed since the previous run.
Entries are never pruned; identities deleted from the source store keep
their last fingerprint.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict

from ..core.exceptions import ArtifactWriteError

logger = logging.getLogger(__name__)


class ChangeRegistry:
    """
    File-backed identity -> fingerprint mapping.

    Loading fails soft: a missing, unreadable or malformed registry yields
    an empty mapping, which makes every record look new. Saving replaces
    the whole file via a temp file in the same directory.
    """

    def __init__(self, path: Path):
        """
        Initialize the registry.

        Args:
            path: Path to the registry JSON file
        """
        self.path = Path(path)

    def load(self) -> Dict[str, str]:
        """Load the registry, falling back to an empty mapping."""
        if not self.path.exists():
            logger.debug(f"Registry file does not exist: {self.path}")
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Registry {self.path} is unreadable, starting fresh: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Registry {self.path} is not a JSON object, starting fresh")
            return {}

        registry = {}
        for record_id, fp in data.items():
            if not isinstance(fp, str):
                logger.warning(
                    f"Registry {self.path} has a non-string fingerprint for {record_id}, starting fresh"
                )
                return {}
            registry[record_id] = fp

        logger.info(f"Loaded {len(registry)} entries from registry")
        return registry

    def save(self, registry: Dict[str, str]) -> None:
        """
        Overwrite the persisted registry with the given mapping.

        Raises:
            ArtifactWriteError: If the file cannot be written
        """
        content = json.dumps(registry, indent=2, ensure_ascii=False)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise ArtifactWriteError(f"Failed to save registry: {e}", path=str(self.path)) from e

        logger.info(f"Saved {len(registry)} entries to registry")
