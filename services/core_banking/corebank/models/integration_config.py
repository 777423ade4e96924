"""
IntegrationConfig model: one row per configured core banking vendor connection.

Rows are created by administrative tooling outside this service; the adapter
layer only reads them.
"""
from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, Boolean, JSON, DateTime

from corebank.database import Base
from corebank.models.enums import CoreType, AuthType


class IntegrationConfig(Base):
    __tablename__ = "core_banking_configs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=True)

    # Free-form so unknown vendor types still load and fall back to the baseline adapter
    core_type = Column(String, nullable=False, default=CoreType.CUSTOM.value)
    api_endpoint = Column(String, nullable=False)
    api_version = Column(String, nullable=True, default="")

    # Validated when the config is loaded, see IntegrationConfigSchema
    auth_type = Column(String, nullable=False, default=AuthType.API_KEY.value)
    auth_config = Column(JSON, nullable=True, comment="Credentials, interpreted per auth_type")

    timeout_ms = Column(Integer, nullable=True)
    retry_config = Column(JSON, nullable=True, comment="{maxRetries, backoffMs}")

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "core_type": self.core_type,
            "api_endpoint": self.api_endpoint,
            "api_version": self.api_version,
            "auth_type": self.auth_type,
            "auth_config": self.auth_config,
            "timeout_ms": self.timeout_ms,
            "retry_config": self.retry_config,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<IntegrationConfig(id={self.id}, core_type={self.core_type}, active={self.is_active})>"
