"""Unit tests for ProgressTracker and ProgressStatus."""

import pytest
from pydantic import ValidationError

from lifecycle.models.progress import ProgressStatus
from lifecycle.services.progress import ProgressTracker


@pytest.mark.unit
class TestProgressTracker:
    """Test ProgressTracker in isolation."""

    def test_defaults(self):
        status = ProgressTracker("update").get()
        assert status == ProgressStatus(running=False, progress=0, description="", error=False)

    def test_update_is_shallow_merge(self):
        tracker = ProgressTracker("update")
        tracker.update(running=True, progress=5, description="Updating...")
        tracker.update(progress=40)

        status = tracker.get()
        assert status.running is True
        assert status.progress == 40
        assert status.description == "Updating..."

    def test_update_replaces_record(self):
        tracker = ProgressTracker("update")
        before = tracker.get()
        tracker.update(progress=10)
        assert before.progress == 0
        assert tracker.get() is not before

    def test_update_rejects_out_of_range(self):
        tracker = ProgressTracker("update")
        with pytest.raises(ValidationError):
            tracker.update(progress=101)
        assert tracker.get().progress == 0

    def test_error_accepts_message_or_false(self):
        tracker = ProgressTracker("update")
        tracker.update(error="Update failed")
        assert tracker.get().error == "Update failed"
        tracker.update(error=False)
        assert tracker.get().error is False

    def test_error_rejects_true(self):
        with pytest.raises(ValidationError):
            ProgressStatus(error=True)

    def test_merge_valid_mapping(self):
        tracker = ProgressTracker("update")
        assert tracker.merge({"description": "Downloading", "progress": 20}) is True
        assert tracker.get().description == "Downloading"

    def test_merge_ignores_unknown_keys(self):
        tracker = ProgressTracker("update")
        assert tracker.merge({"progress": 30, "eta": 12}) is True
        assert tracker.get().progress == 30
        assert "eta" not in tracker.get().model_dump()

    @pytest.mark.parametrize("value", [None, 5, "text", [1], {"progress": -1}])
    def test_merge_rejects_invalid(self, value):
        tracker = ProgressTracker("update")
        assert tracker.merge(value) is False
        assert tracker.get() == ProgressStatus()

    def test_reset(self):
        tracker = ProgressTracker("reset")
        tracker.update(running=True, progress=50, description="x", error="boom")
        tracker.reset()
        assert tracker.get() == ProgressStatus()

    def test_serializes_false_error(self):
        assert ProgressStatus().model_dump(mode="json") == {
            "running": False,
            "progress": 0,
            "description": "",
            "error": False,
        }
