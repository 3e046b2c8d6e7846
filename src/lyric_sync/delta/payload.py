"""
Delta payload construction.

Serializes changed records into the byte buffer of one immutable delta
artifact. The same bytes are written to disk and hashed for the manifest.
"""

import json
import logging
from typing import Sequence

from .models import BuiltPayload, SourceRecord

logger = logging.getLogger(__name__)


DEFAULT_SOURCE_TAG = "firestore"
ARTIFACT_PREFIX = "update_"


def artifact_id_for(generation_id: int) -> str:
    return f"{ARTIFACT_PREFIX}{generation_id}"


def serialize_json(obj) -> bytes:
    """Pretty-print (2-space indent) and encode as UTF-8."""
    return json.dumps(obj, indent=2, ensure_ascii=False).encode("utf-8")


class PayloadBuilder:
    """Builds delta artifacts from changed records."""

    def __init__(self, source_tag: str = DEFAULT_SOURCE_TAG):
        self.source_tag = source_tag

    def build(self, records: Sequence[SourceRecord], generation_id: int) -> BuiltPayload:
        """
        Build the delta artifact for a run.

        Args:
            records: Changed records, in the order they should appear
            generation_id: Timestamp-derived identity of this run

        Returns:
            BuiltPayload holding the full serialized buffer and filename
        """
        payload = {"items": [record.to_projection(self.source_tag) for record in records]}
        artifact_id = artifact_id_for(generation_id)
        data = serialize_json(payload)

        logger.debug(f"Built {artifact_id} with {len(records)} items ({len(data)} bytes)")
        return BuiltPayload(
            artifact_id=artifact_id,
            filename=f"{artifact_id}.json",
            data=data,
        )
