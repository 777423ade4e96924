"""
IntegrationQueueItem model for tracking core banking exchanges.

Tracks the lifecycle pending -> processing -> completed/failed. Rows are never
deleted by this service.
"""
from datetime import datetime
import uuid

from sqlalchemy import Column, String, Text, JSON, DateTime, Enum, Index

from corebank.database import Base
from corebank.models.enums import QueueStatus


class IntegrationQueueItem(Base):
    __tablename__ = "integration_queue"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    config_id = Column(String, nullable=False, index=True)
    operation = Column(String, nullable=False)
    payload = Column(JSON, nullable=True, comment="Canonical record submitted with the operation")

    status = Column(
        Enum(QueueStatus, native_enum=False),
        nullable=False,
        index=True,
        default=QueueStatus.PENDING,
    )

    result = Column(JSON, nullable=True, comment="Canonical result, success only")
    error_message = Column(Text, nullable=True, comment="Failure detail, failure only")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index('ix_integration_queue_config_status', 'config_id', 'status'),
    )

    def __repr__(self):
        return f"<IntegrationQueueItem(id={self.id}, operation={self.operation}, status={self.status})>"
