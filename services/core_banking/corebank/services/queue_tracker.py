"""
Integration queue lifecycle tracker.

States: pending -> processing -> {completed, failed}. Transitions are
monotonic; processing stamps started_at, terminal states stamp completed_at
and store the result or the error detail.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from corebank.exceptions import InvalidQueueTransition, QueueItemNotFound
from corebank.models.enums import QueueStatus
from corebank.obs.logging import get_logger
from corebank.obs.metrics import metrics
from corebank.schemas.integration import QueueItemSchema
from corebank.services.integration_repository import IntegrationRepository

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    QueueStatus.PENDING: {QueueStatus.PROCESSING},
    QueueStatus.PROCESSING: {QueueStatus.COMPLETED, QueueStatus.FAILED},
    QueueStatus.COMPLETED: set(),
    QueueStatus.FAILED: set(),
}


class IntegrationQueueTracker:
    """
    Service for tracking integration queue items.

    Responsibilities:
    - Create pending items for submitted operations
    - Enforce the lifecycle state machine
    - Stamp lifecycle timestamps and store result / error detail
    """

    def __init__(self, repository: IntegrationRepository):
        self.repository = repository

    def enqueue(self, config_id: str, operation: str, payload: Optional[Dict[str, Any]] = None) -> QueueItemSchema:
        item = self.repository.create_queue_item(config_id, operation, payload or {})
        metrics.record_queue_transition(QueueStatus.PENDING.value)

        logger.info(
            f"Created integration queue item {item.id}",
            extra={"queue_id": item.id, "config_id": config_id, "operation": operation}
        )
        return item

    def get(self, queue_id: str) -> QueueItemSchema:
        item = self.repository.get_queue_item(queue_id)
        if item is None:
            raise QueueItemNotFound(queue_id)
        return item

    def mark_processing(self, queue_id: str) -> QueueItemSchema:
        return self._transition(
            queue_id,
            QueueStatus.PROCESSING,
            started_at=datetime.utcnow(),
        )

    def mark_completed(self, queue_id: str, result: Dict[str, Any]) -> QueueItemSchema:
        return self._transition(
            queue_id,
            QueueStatus.COMPLETED,
            completed_at=datetime.utcnow(),
            result=result,
        )

    def mark_failed(self, queue_id: str, error_message: str) -> QueueItemSchema:
        return self._transition(
            queue_id,
            QueueStatus.FAILED,
            completed_at=datetime.utcnow(),
            error_message=error_message,
        )

    def _transition(self, queue_id: str, target: QueueStatus, **fields) -> QueueItemSchema:
        current = self.get(queue_id)
        if target not in ALLOWED_TRANSITIONS[current.status]:
            raise InvalidQueueTransition(queue_id, current.status.value, target.value)

        item = self.repository.update_queue_item(queue_id, {"status": target, **fields})
        metrics.record_queue_transition(target.value)

        log = logger.warning if target == QueueStatus.FAILED else logger.info
        log(
            f"Integration queue item {queue_id} {current.status.value} -> {target.value}",
            extra={"queue_id": queue_id, "config_id": item.config_id, "operation": item.operation}
        )
        return item
