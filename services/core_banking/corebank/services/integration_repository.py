"""
Record-store access for the adapter layer.

The orchestrator only talks to ``IntegrationRepository``; the SQLAlchemy
implementation backs the API and an in-memory implementation backs tests.
Configuration and mapping rows are validated here, at load time, and
malformed rows raise ConfigurationError before any network call.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from corebank.exceptions import ConfigurationError, QueueItemNotFound
from corebank.models.audit_log import AuditLog
from corebank.models.enums import QueueStatus
from corebank.models.integration_config import IntegrationConfig
from corebank.models.integration_mapping import IntegrationMapping
from corebank.models.integration_queue import IntegrationQueueItem
from corebank.obs.logging import get_logger
from corebank.schemas.integration import (
    AuditRecordSchema,
    FieldMappingSchema,
    IntegrationConfigSchema,
    QueueItemSchema,
)
from corebank.services.transformations import has_inverse

logger = get_logger(__name__)

QUEUE_PATCH_FIELDS = {"status", "started_at", "completed_at", "result", "error_message"}


def _summarize(error: ValidationError) -> str:
    # Field locations and messages only; inputs may hold credentials
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


def parse_config(data: Dict[str, Any]) -> Optional[IntegrationConfigSchema]:
    """Validate a config row. Inactive configs are treated as not found."""
    if not data.get("is_active", True):
        return None
    try:
        return IntegrationConfigSchema.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration {data.get('id')}: {_summarize(e)}") from e


def parse_mappings(config_id: str, rows: Iterable[Dict[str, Any]]) -> List[FieldMappingSchema]:
    """Validate mapping rows for a config, preserving their order."""
    mappings = []
    for row in rows:
        try:
            mapping = FieldMappingSchema.model_validate(row)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid field mapping {row.get('id')} for config {config_id}: {_summarize(e)}") from e

        if mapping.direction.is_inbound and mapping.direction.is_outbound and not has_inverse(mapping.transformation_rule):
            logger.warning(
                f"Bidirectional mapping {mapping.obelixia_field} uses a rule without an inverse; inbound pass is identity",
                extra={"config_id": config_id, "field": mapping.obelixia_field},
            )
        mappings.append(mapping)
    return mappings


class IntegrationRepository(ABC):
    """Narrow record-store interface consumed by the adapter layer."""

    @abstractmethod
    def get_config(self, config_id: str) -> Optional[IntegrationConfigSchema]:
        """Active config by id, or None."""

    @abstractmethod
    def list_mappings(self, config_id: str) -> List[FieldMappingSchema]:
        """Ordered field mappings for a config (possibly empty)."""

    @abstractmethod
    def get_queue_item(self, queue_id: str) -> Optional[QueueItemSchema]:
        ...

    @abstractmethod
    def create_queue_item(self, config_id: str, operation: str, payload: Dict[str, Any]) -> QueueItemSchema:
        ...

    @abstractmethod
    def update_queue_item(self, queue_id: str, patch: Dict[str, Any]) -> QueueItemSchema:
        """Point update keyed by id; raises QueueItemNotFound."""

    @abstractmethod
    def insert_audit(self, record: AuditRecordSchema) -> AuditRecordSchema:
        ...


class SqlIntegrationRepository(IntegrationRepository):
    """SQLAlchemy-backed repository; commits each write on its own."""

    def __init__(self, db: Session):
        self.db = db

    def get_config(self, config_id: str) -> Optional[IntegrationConfigSchema]:
        row = self.db.query(IntegrationConfig).filter(IntegrationConfig.id == config_id).first()
        if row is None:
            return None
        return parse_config(row.to_dict())

    def list_mappings(self, config_id: str) -> List[FieldMappingSchema]:
        rows = (
            self.db.query(IntegrationMapping)
            .filter(IntegrationMapping.config_id == config_id)
            .order_by(IntegrationMapping.position, IntegrationMapping.created_at)
            .all()
        )
        return parse_mappings(config_id, (row.to_dict() for row in rows))

    def get_queue_item(self, queue_id: str) -> Optional[QueueItemSchema]:
        row = self.db.get(IntegrationQueueItem, queue_id)
        if row is None:
            return None
        return QueueItemSchema.model_validate(row)

    def create_queue_item(self, config_id: str, operation: str, payload: Dict[str, Any]) -> QueueItemSchema:
        row = IntegrationQueueItem(
            config_id=config_id,
            operation=operation,
            payload=payload,
            status=QueueStatus.PENDING,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return QueueItemSchema.model_validate(row)

    def update_queue_item(self, queue_id: str, patch: Dict[str, Any]) -> QueueItemSchema:
        unknown = set(patch) - QUEUE_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch queue item fields: {sorted(unknown)}")

        row = self.db.get(IntegrationQueueItem, queue_id)
        if row is None:
            raise QueueItemNotFound(queue_id)

        for field, value in patch.items():
            setattr(row, field, value)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return QueueItemSchema.model_validate(row)

    def insert_audit(self, record: AuditRecordSchema) -> AuditRecordSchema:
        row = AuditLog(**record.model_dump(exclude_none=True))
        try:
            self.db.add(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return AuditRecordSchema.model_validate(row)
