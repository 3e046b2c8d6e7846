"""
Output sinks for published files.

The release pipeline picks files up from more than one location (a staging
output directory and the repository root). Every location receives the
same byte buffer; none of them is read back.
"""

import logging
from pathlib import Path
from typing import Iterable

from ..core.exceptions import ArtifactWriteError

logger = logging.getLogger(__name__)


class FileSink:
    """Writes a byte buffer to a fixed path, creating parent directories."""

    def __init__(self, path: Path, create_dirs: bool = True):
        self.path = Path(path)
        self.create_dirs = create_dirs

    def write(self, data: bytes) -> None:
        """
        Write the exact bytes to the sink path.

        Raises:
            ArtifactWriteError: If the file cannot be written
        """
        try:
            if self.create_dirs:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise ArtifactWriteError(f"Failed to write {self.path}: {e}", path=str(self.path)) from e

        logger.debug(f"Wrote {len(data)} bytes to {self.path}")

    def __repr__(self) -> str:
        return f"FileSink({str(self.path)!r})"


def publish_to_sinks(data: bytes, sinks: Iterable[FileSink]) -> int:
    """
    Write identical bytes to every sink, in order.

    Stops at the first failing sink; sinks written before it keep the new
    content.

    Returns:
        Number of sinks written
    """
    count = 0
    for sink in sinks:
        sink.write(data)
        count += 1
    return count
