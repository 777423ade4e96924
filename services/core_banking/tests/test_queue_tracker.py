"""
Tests for the integration queue lifecycle.
"""
import pytest

from corebank.exceptions import InvalidQueueTransition, QueueItemNotFound
from corebank.models.enums import QueueStatus
from corebank.services.queue_tracker import IntegrationQueueTracker


@pytest.fixture
def tracker(repository):
    return IntegrationQueueTracker(repository)


@pytest.fixture
def item(tracker, temenos_config):
    return tracker.enqueue(temenos_config, "create_payment", {"amount": 50.5})


class TestIntegrationQueueTracker:
    """Test suite for IntegrationQueueTracker."""

    def test_enqueue_creates_pending_item(self, item, temenos_config):
        """Test that new items start pending with no lifecycle timestamps."""
        assert item.status == QueueStatus.PENDING
        assert item.config_id == temenos_config
        assert item.payload == {"amount": 50.5}
        assert item.created_at is not None
        assert item.started_at is None
        assert item.completed_at is None

    def test_processing_stamps_started_at(self, tracker, item):
        """Test pending -> processing."""
        updated = tracker.mark_processing(item.id)

        assert updated.status == QueueStatus.PROCESSING
        assert updated.started_at is not None
        assert updated.completed_at is None

    def test_completed_stores_result(self, tracker, item):
        """Test processing -> completed stores the canonical result."""
        tracker.mark_processing(item.id)
        updated = tracker.mark_completed(item.id, {"amount": 50.5})

        assert updated.status == QueueStatus.COMPLETED
        assert updated.result == {"amount": 50.5}
        assert updated.error_message is None
        assert updated.completed_at >= updated.started_at

    def test_failed_stores_error(self, tracker, item):
        """Test processing -> failed stores the error detail."""
        tracker.mark_processing(item.id)
        updated = tracker.mark_failed(item.id, "Vendor returned HTTP 503 after 4 attempts")

        assert updated.status == QueueStatus.FAILED
        assert updated.error_message == "Vendor returned HTTP 503 after 4 attempts"
        assert updated.result is None
        assert updated.completed_at is not None

    def test_cannot_complete_pending_item(self, tracker, item):
        """Test that pending -> completed skips a state and is rejected."""
        with pytest.raises(InvalidQueueTransition) as exc_info:
            tracker.mark_completed(item.id, {})

        assert exc_info.value.current == "pending"
        assert exc_info.value.target == "completed"
        assert tracker.get(item.id).status == QueueStatus.PENDING

    @pytest.mark.parametrize("terminal", ["completed", "failed"])
    def test_terminal_states_are_final(self, tracker, item, terminal):
        """Test that terminal items cannot be reprocessed or re-finalized."""
        tracker.mark_processing(item.id)
        if terminal == "completed":
            tracker.mark_completed(item.id, {})
        else:
            tracker.mark_failed(item.id, "boom")

        with pytest.raises(InvalidQueueTransition):
            tracker.mark_processing(item.id)
        with pytest.raises(InvalidQueueTransition):
            tracker.mark_failed(item.id, "again")

        assert tracker.get(item.id).status.is_terminal

    def test_processing_twice_is_rejected(self, tracker, item):
        """Test that an item already processing cannot be claimed again."""
        tracker.mark_processing(item.id)
        with pytest.raises(InvalidQueueTransition):
            tracker.mark_processing(item.id)

    def test_unknown_item(self, tracker):
        """Test that unknown ids raise QueueItemNotFound."""
        with pytest.raises(QueueItemNotFound):
            tracker.get("missing")
        with pytest.raises(QueueItemNotFound):
            tracker.mark_processing("missing")

    def test_updates_are_point_patches(self, tracker, item, repository):
        """Test that each transition patches only lifecycle fields of one item."""
        tracker.mark_processing(item.id)
        tracker.mark_completed(item.id, {"ok": True})

        assert [update["status"] for update in repository.queue_updates] == [
            QueueStatus.PROCESSING,
            QueueStatus.COMPLETED,
        ]
        assert all(update["id"] == item.id for update in repository.queue_updates)
        assert "payload" not in repository.queue_updates[-1]
