"""
Audit Log model for integration compliance tracking.
One row per core banking adapter invocation.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, Index
from corebank.database import Base
from datetime import datetime
import uuid


class AuditLog(Base):
    """
    Append-only record of one core banking exchange.

    Features:
    - Immutable (never updated or deleted by this service)
    - Request context capture (trace id)
    - Outcome captured for success and failure alike
    """
    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Action Details
    action = Column(String, nullable=False, index=True)
    # Examples: "core_banking_operation"

    resource_type = Column(String, nullable=False)
    # Examples: "integration_queue"

    resource_id = Column(String, nullable=True, index=True)
    # Queue item id; null for exchanges submitted without a queue item

    # Exchange details
    operation = Column(String, nullable=False)
    config_id = Column(String, nullable=False, index=True)
    core_type = Column(String, nullable=False)
    success = Column(Boolean, nullable=False)
    status_code = Column(Integer, nullable=True)

    category = Column(String, nullable=False, default="integration")
    severity = Column(String, nullable=False, default="info")  # "info" or "warn"

    details = Column(JSON, nullable=True)
    # Additional context: {"attempts": 2, "missing_required": ["amount"]}

    request_id = Column(String, nullable=True)  # Correlation with logs

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('ix_audit_resource', 'resource_type', 'resource_id'),
        Index('ix_audit_request', 'request_id'),
    )
