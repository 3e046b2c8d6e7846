"""
Unit tests for the manifest ledger, output sinks and generation ids.
"""

import hashlib
import json

import pytest

from lyric_sync.core.exceptions import ArtifactWriteError
from lyric_sync.delta.manifest import (
    GenerationClock,
    ManifestLedger,
    make_entry,
    release_tag_for,
    verify_manifest,
)
from lyric_sync.delta.models import Manifest, ManifestEntry
from lyric_sync.delta.sinks import FileSink, publish_to_sinks


def _entry(n: int) -> ManifestEntry:
    return ManifestEntry(
        id=f"update_{n}",
        asset_name=f"update_{n}.json",
        sha256=f"{n:064x}",
        release_tag=f"v1.0.{n}",
    )


class TestAppend:
    """Tests for ManifestLedger.append."""

    def test_append_to_empty(self):
        manifest = ManifestLedger().append(Manifest.default(), _entry(1))

        assert manifest.updates == [_entry(1)]
        assert manifest.latest_release_tag == "v1.0.1"
        assert manifest.manifest_version == 1

    def test_append_does_not_mutate_input(self):
        original = Manifest.default()
        ManifestLedger().append(original, _entry(1))
        assert original.updates == []
        assert original.latest_release_tag == ""

    def test_cap_drops_oldest(self):
        ledger = ManifestLedger()
        manifest = Manifest(updates=[_entry(n) for n in range(1, 51)], latest_release_tag="v1.0.50")

        result = ledger.append(manifest, _entry(51))

        assert len(result.updates) == 50
        assert result.updates[0] == _entry(2)
        assert result.updates[-1] == _entry(51)
        assert result.latest_release_tag == "v1.0.51"
        assert [e.id for e in result.updates] == [f"update_{n}" for n in range(2, 52)]

    def test_custom_cap(self):
        ledger = ManifestLedger(max_entries=2)
        manifest = Manifest.default()
        for n in range(1, 5):
            manifest = ledger.append(manifest, _entry(n))
        assert [e.id for e in manifest.updates] == ["update_3", "update_4"]

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            ManifestLedger(max_entries=0)


class TestLoadOrDefault:
    """Tests for fail-soft manifest loading."""

    def test_missing_file(self, tmp_path):
        manifest = ManifestLedger().load_or_default(tmp_path / "manifest.json")
        assert manifest == Manifest.default()

    @pytest.mark.parametrize("content", [
        "{broken",
        "[]",
        '{"updates": "nope"}',
        '{"updates": [{"id": "update_1"}]}',
        '{"updates": [{"id": 123, "assetName": null, "sha256": "aa", "releaseTag": "v1.0.1"}]}',
        '{"manifestVersion": "1", "updates": []}',
        '{"latestReleaseTag": 5, "updates": []}',
    ])
    def test_corrupt_file(self, tmp_path, content):
        path = tmp_path / "manifest.json"
        path.write_text(content, encoding="utf-8")

        assert ManifestLedger().load_or_default(path) == Manifest.default()

    def test_round_trip_through_file(self, tmp_path):
        ledger = ManifestLedger()
        manifest = ledger.append(ledger.append(Manifest.default(), _entry(1)), _entry(2))
        path = tmp_path / "manifest.json"
        ledger.persist(manifest, [FileSink(path)])

        assert ledger.load_or_default(path) == manifest


class TestPersist:
    """Tests for serialization and fan-out."""

    def test_wire_format(self):
        manifest = ManifestLedger().append(Manifest.default(), _entry(7))
        data = json.loads(ManifestLedger.serialize(manifest))

        assert data == {
            "manifestVersion": 1,
            "latestReleaseTag": "v1.0.7",
            "updates": [{
                "id": "update_7",
                "assetName": "update_7.json",
                "sha256": f"{7:064x}",
                "releaseTag": "v1.0.7",
            }],
        }

    def test_all_sinks_byte_identical(self, tmp_path):
        ledger = ManifestLedger()
        manifest = ledger.append(Manifest.default(), _entry(1))
        sinks = [FileSink(tmp_path / "manifest.json"), FileSink(tmp_path / "output" / "manifest.json")]

        data = ledger.persist(manifest, sinks)

        assert (tmp_path / "manifest.json").read_bytes() == data
        assert (tmp_path / "output" / "manifest.json").read_bytes() == data

    def test_sink_failure_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        good = FileSink(tmp_path / "a.json")

        with pytest.raises(ArtifactWriteError):
            publish_to_sinks(b"data", [good, FileSink(blocker / "b.json")])

        assert (tmp_path / "a.json").read_bytes() == b"data"


class TestEntries:
    """Tests for manifest entry helpers."""

    def test_entry_hash_matches_bytes(self):
        data = b'{\n  "items": []\n}'
        entry = make_entry("update_1", "update_1.json", data, "v1.0.1")
        assert entry.sha256 == hashlib.sha256(data).hexdigest()

    def test_release_tag(self):
        assert release_tag_for(1700000000000) == "v1.0.1700000000000"
        assert release_tag_for(5, prefix="v2.") == "v2.5"


class TestGenerationClock:
    """Tests for monotonic generation ids."""

    def test_uses_clock(self):
        assert GenerationClock(now_ms=lambda: 1000).next_id() == 1000

    def test_advances_past_newest_entry(self):
        manifest = Manifest(updates=[_entry(1000), _entry(2000)])
        assert GenerationClock(now_ms=lambda: 2000).next_id(manifest) == 2001
        assert GenerationClock(now_ms=lambda: 1500).next_id(manifest) == 2001

    def test_clock_ahead_is_used(self):
        manifest = Manifest(updates=[_entry(1000)])
        assert GenerationClock(now_ms=lambda: 5000).next_id(manifest) == 5000

    def test_ignores_foreign_ids(self):
        manifest = Manifest(updates=[ManifestEntry("custom", "custom.json", "00", "v1")])
        assert GenerationClock(now_ms=lambda: 10).next_id(manifest) == 10


class TestVerifyManifest:
    """Tests for integrity verification against files on disk."""

    def test_statuses(self, tmp_path):
        good = b"good bytes"
        (tmp_path / "update_1.json").write_bytes(good)
        (tmp_path / "update_2.json").write_bytes(b"tampered")
        manifest = Manifest(updates=[
            make_entry("update_1", "update_1.json", good, "v1.0.1"),
            make_entry("update_2", "update_2.json", b"original", "v1.0.2"),
            make_entry("update_3", "update_3.json", b"gone", "v1.0.3"),
        ])

        results = verify_manifest(manifest, tmp_path)

        assert [r.status for r in results] == ["ok", "mismatch", "missing"]
        assert results[2].actual_sha256 is None
