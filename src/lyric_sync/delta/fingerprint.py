"""
Content fingerprinting for change detection.

The fingerprint is an MD5 hex digest over the pipe-joined content fields
of a record. It is used only to decide whether a record changed since the
last run and is never exposed to consumers; collision resistance is not
required.

The hash input uses the raw stored values (absent fields become empty
strings, projection defaults are not applied) so fingerprints written by
earlier runs remain comparable. Non-string scalars are rendered the way a
JavaScript `value || ""` template renders them: false, zero and NaN give
an empty string, true gives "true" and whole-number floats drop their
fractional part. Lists and maps are stringified with Python's `str` and
are not guaranteed to match.
"""

import hashlib
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SourceRecord


FIELD_SEPARATOR = "|"


def _field_text(value: Any) -> str:
    # Mirrors `String(value || "")` for the scalar types Firestore returns
    if isinstance(value, str):
        return value
    if value is None or value is False or value == 0 or value != value:
        return ""
    if value is True:
        return "true"
    if isinstance(value, float):
        if value in (float("inf"), float("-inf")):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def build_hash_input(
    title: Optional[str] = None,
    body: Optional[str] = None,
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    group: Optional[str] = None,
) -> str:
    """
    Build the hash input string from content fields.

    This is the content identity of a record: two records with the same
    hash input are content-identical for sync purposes.
    """
    return FIELD_SEPARATOR.join(
        _field_text(value) for value in (title, body, category, subcategory, group)
    )


def fingerprint_fields(
    title: Optional[str] = None,
    body: Optional[str] = None,
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    group: Optional[str] = None,
) -> str:
    """Compute the fingerprint of raw content fields."""
    hash_input = build_hash_input(title, body, category, subcategory, group)
    return hashlib.md5(hash_input.encode("utf-8")).hexdigest()


def fingerprint(record: "SourceRecord") -> str:
    """
    Compute the fingerprint of a source record.

    Args:
        record: The record to fingerprint

    Returns:
        32-character lowercase hex digest
    """
    return fingerprint_fields(
        title=record.title,
        body=record.body,
        category=record.category,
        subcategory=record.subcategory,
        group=record.group,
    )
