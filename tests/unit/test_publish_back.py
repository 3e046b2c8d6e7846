"""
Unit tests for the publish-back coordinator.
"""

from unittest.mock import Mock

import pytest

from lyric_sync.core.exceptions import PublishBackError
from lyric_sync.delta.models import CommitResult, RecordRef
from lyric_sync.delta.publish_back import PublishBackCoordinator


class TestPublishBackCoordinator:
    """Tests for PublishBackCoordinator."""

    def test_empty_refs_never_reach_store(self):
        store = Mock()

        result = PublishBackCoordinator(store).mark_delivered([])

        store.mark_delivered.assert_not_called()
        assert result.count == 0

    def test_marks_exactly_given_refs(self):
        store = Mock()
        store.mark_delivered.return_value = CommitResult(marked_ids=["a", "b"], batches=1)
        refs = [RecordRef("a"), RecordRef("b")]

        result = PublishBackCoordinator(store).mark_delivered(refs)

        store.mark_delivered.assert_called_once_with(refs)
        assert result.marked_ids == ["a", "b"]

    def test_store_error_is_wrapped(self):
        store = Mock()
        store.mark_delivered.side_effect = RuntimeError("deadline exceeded")

        with pytest.raises(PublishBackError) as exc_info:
            PublishBackCoordinator(store).mark_delivered([RecordRef("a")])

        assert exc_info.value.pending_ids == ["a"]

    def test_publish_back_error_passes_through(self):
        store = Mock()
        original = PublishBackError("batch rejected", pending_ids=["a"])
        store.mark_delivered.side_effect = original

        with pytest.raises(PublishBackError) as exc_info:
            PublishBackCoordinator(store).mark_delivered([RecordRef("a")])

        assert exc_info.value is original
