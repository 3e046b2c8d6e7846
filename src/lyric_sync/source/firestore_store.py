"""
Firestore implementation of the source store.

Reads approved submissions from a Firestore collection and flips their
``published`` flag through write batches. Each instance owns a dedicated
firebase_admin app, created for one run and deleted on close.
"""

import base64
import binascii
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore_v1.base_query import FieldFilter

from ..config.config_loader import MAX_FIRESTORE_BATCH, SyncConfig
from ..core.exceptions import PublishBackError, SourceStoreError, SyncConfigError
from ..delta.models import CommitResult, RecordRef, SourceRecord
from .base import APPROVED_STATUS, SourceStore


logger = logging.getLogger(__name__)


STATUS_FIELD = "status"
DELIVERY_FIELD = "published"


def decode_service_account(encoded: str) -> Dict[str, Any]:
    """
    Decode a base64-encoded service account JSON document.

    Raises:
        SyncConfigError: If the value is not base64 of a JSON object
    """
    try:
        raw = base64.b64decode(encoded.strip(), validate=True)
        info = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise SyncConfigError(f"Service account credentials could not be decoded: {e}") from e

    if not isinstance(info, dict):
        raise SyncConfigError("Service account credentials must be a JSON object")
    return info


def load_credentials(config: SyncConfig) -> credentials.Certificate:
    """
    Build firebase_admin credentials from the config.

    Prefers the base64 environment value over a service account file.

    Raises:
        SyncConfigError: If no credentials are configured or they are invalid
    """
    if config.service_account_b64:
        source: Any = decode_service_account(config.service_account_b64)
    elif config.service_account_file:
        path = Path(config.service_account_file)
        if not path.exists():
            raise SyncConfigError(f"Service account file not found: {path}")
        source = str(path)
    else:
        raise SyncConfigError(
            "No Firestore credentials configured. Set FIREBASE_SERVICE_ACCOUNT "
            "(base64 service account JSON) or FIREBASE_SERVICE_ACCOUNT_FILE."
        )

    try:
        return credentials.Certificate(source)
    except (ValueError, IOError) as e:
        raise SyncConfigError(f"Invalid service account credentials: {e}") from e


class FirestoreSourceStore(SourceStore):
    """
    Source store backed by a Firestore collection.

    Documents are expected to carry ``status``, ``published`` and the
    content fields (title, body, category, subcategory, group, createdBy).
    """

    def __init__(
        self,
        client,
        collection: str = "submissions",
        batch_size: int = MAX_FIRESTORE_BATCH,
        app: Optional[firebase_admin.App] = None,
    ):
        """
        Initialize the store.

        Args:
            client: Firestore client
            collection: Collection holding the submissions
            batch_size: Maximum updates per write batch
            app: firebase_admin app owned by this store, deleted on close
        """
        if not 1 <= batch_size <= MAX_FIRESTORE_BATCH:
            raise ValueError(f"batch_size must be between 1 and {MAX_FIRESTORE_BATCH}")
        self.client = client
        self.collection = collection
        self.batch_size = batch_size
        self._app = app

    @classmethod
    def from_config(cls, config: SyncConfig) -> "FirestoreSourceStore":
        """
        Create a store with its own firebase_admin app.

        Raises:
            SyncConfigError: If credentials are missing or invalid
        """
        cred = load_credentials(config)
        options = {"projectId": config.project_id} if config.project_id else None
        app_name = f"lyric-sync-{uuid.uuid4().hex[:8]}"

        try:
            app = firebase_admin.initialize_app(cred, options, name=app_name)
        except ValueError as e:
            raise SyncConfigError(f"Failed to initialize Firebase app: {e}") from e

        logger.info(f"Connected to Firestore collection '{config.collection}'")
        return cls(
            client=firestore.client(app=app),
            collection=config.collection,
            batch_size=config.batch_size,
            app=app,
        )

    def fetch_records(self, only_undelivered: bool = False) -> List[SourceRecord]:
        query = self.client.collection(self.collection).where(
            filter=FieldFilter(STATUS_FIELD, "==", APPROVED_STATUS)
        )
        if only_undelivered:
            query = query.where(filter=FieldFilter(DELIVERY_FIELD, "==", False))

        scope = "approved, undelivered" if only_undelivered else "all approved"
        logger.info(f"Fetching {scope} records from Firestore...")

        try:
            records = [
                SourceRecord.from_dict(doc.id, doc.to_dict(), ref=doc.reference)
                for doc in query.stream()
            ]
        except GoogleAPIError as e:
            raise SourceStoreError(
                f"Failed to query collection '{self.collection}': {e}",
                collection=self.collection,
            ) from e

        logger.info(f"Fetched {len(records)} records")
        return records

    def mark_delivered(self, refs: Sequence[RecordRef]) -> CommitResult:
        refs = list(refs)
        result = CommitResult()
        if not refs:
            return result

        if len(refs) > self.batch_size:
            logger.warning(
                f"{len(refs)} updates exceed the batch limit of {self.batch_size}; "
                f"committing in {-(-len(refs) // self.batch_size)} batches"
            )

        for start in range(0, len(refs), self.batch_size):
            chunk = refs[start:start + self.batch_size]
            batch = self.client.batch()
            for ref in chunk:
                handle = ref.handle
                if handle is None:
                    handle = self.client.collection(self.collection).document(ref.record_id)
                batch.update(handle, {DELIVERY_FIELD: True})

            try:
                batch.commit()
            except GoogleAPIError as e:
                pending = [r.record_id for r in refs[start:]]
                raise PublishBackError(
                    f"Failed to mark {len(pending)} records as delivered: {e}",
                    pending_ids=pending,
                ) from e

            result.marked_ids.extend(r.record_id for r in chunk)
            result.batches += 1

        result.committed_at = datetime.now(timezone.utc)
        return result

    def close(self) -> None:
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
