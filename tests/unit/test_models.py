"""
Unit tests for sync data models.

These tests verify the data models without external dependencies.
"""

import pytest

from lyric_sync.delta.models import Manifest, ManifestEntry, SourceRecord


class TestSourceRecord:
    """Tests for SourceRecord."""

    def test_from_store_document(self):
        record = SourceRecord.from_dict(
            "abc1",
            {
                "title": "T",
                "body": "B",
                "category": "Qasida",
                "subcategory": "Eid",
                "group": "G",
                "createdBy": "uid-1",
                "published": True,
                "status": "approved",
            },
            ref="handle",
        )

        assert record.record_id == "abc1"
        assert record.created_by == "uid-1"
        assert record.published is True
        assert record.ref == "handle"

    def test_missing_fields_are_none(self):
        record = SourceRecord.from_dict("abc1", None)

        assert record.title is None
        assert record.category is None
        assert record.published is False

    def test_only_true_counts_as_published(self):
        assert SourceRecord.from_dict("a", {"published": "yes"}).published is False
        assert SourceRecord.from_dict("a", {"published": 1}).published is False

    def test_to_ref(self):
        ref = SourceRecord("abc1", ref="handle").to_ref()
        assert ref.record_id == "abc1"
        assert ref.handle == "handle"

    def test_empty_category_falls_back_to_default(self):
        projection = SourceRecord("abc1", category="").to_projection("firestore")
        assert projection["category"] == "Nohay"


class TestManifest:
    """Tests for Manifest parsing."""

    def test_from_dict(self):
        manifest = Manifest.from_dict({
            "manifestVersion": 1,
            "latestReleaseTag": "v1.0.2",
            "updates": [
                {"id": "update_1", "assetName": "update_1.json", "sha256": "aa", "releaseTag": "v1.0.1"},
                {"id": "update_2", "assetName": "update_2.json", "sha256": "bb", "releaseTag": "v1.0.2"},
            ],
        })

        assert manifest.latest_release_tag == "v1.0.2"
        assert [e.id for e in manifest.updates] == ["update_1", "update_2"]
        assert manifest.updates[1] == ManifestEntry("update_2", "update_2.json", "bb", "v1.0.2")

    def test_missing_keys_use_defaults(self):
        manifest = Manifest.from_dict({})
        assert manifest == Manifest.default()

    @pytest.mark.parametrize("data", [
        [],
        {"updates": {}},
        {"updates": [{"id": "update_1"}]},
        {"updates": ["update_1"]},
        {"updates": [{"id": 123, "assetName": None, "sha256": "aa", "releaseTag": "v1.0.1"}]},
        {"updates": [{"id": "update_1", "assetName": "update_1.json", "sha256": None, "releaseTag": "v1.0.1"}]},
        {"manifestVersion": "1"},
        {"manifestVersion": True},
        {"latestReleaseTag": 5},
    ])
    def test_malformed(self, data):
        with pytest.raises(ValueError):
            Manifest.from_dict(data)

    def test_to_dict_key_order(self):
        data = Manifest.default().to_dict()
        assert list(data) == ["manifestVersion", "latestReleaseTag", "updates"]
