"""
FieldMapping model: one canonical field <-> vendor field pairing per row.
"""
from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, Boolean, JSON, DateTime, ForeignKey, Index

from corebank.database import Base
from corebank.models.enums import MappingDirection


class IntegrationMapping(Base):
    __tablename__ = "integration_mappings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    config_id = Column(String, ForeignKey("core_banking_configs.id"), nullable=False, index=True)

    obelixia_field = Column(String, nullable=False, comment="Canonical field name")
    core_field = Column(String, nullable=False, comment="Vendor field path, dot separated")
    transformation_rule = Column(JSON, nullable=True)
    direction = Column(String, nullable=False, default=MappingDirection.BIDIRECTIONAL.value)
    is_required = Column(Boolean, nullable=False, default=False)
    default_value = Column(JSON, nullable=True)

    # Mappings are applied in this order; later mappings win on collisions
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('ix_integration_mappings_config_position', 'config_id', 'position'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "config_id": self.config_id,
            "obelixia_field": self.obelixia_field,
            "core_field": self.core_field,
            "transformation_rule": self.transformation_rule,
            "direction": self.direction,
            "is_required": self.is_required,
            "default_value": self.default_value,
        }
