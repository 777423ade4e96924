"""
Test configuration and fixtures for the core banking adapter tests.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from corebank.database import Base
from corebank.exceptions import QueueItemNotFound
from corebank.main import app
from corebank.models.enums import QueueStatus
from corebank.routes.core_banking import get_integration_repository, get_orchestrator
from corebank.schemas.integration import AuditRecordSchema, QueueItemSchema
from corebank.services.integration_orchestrator import CoreBankingOrchestrator
from corebank.services.integration_repository import (
    QUEUE_PATCH_FIELDS,
    IntegrationRepository,
    parse_config,
    parse_mappings,
)


class InMemoryIntegrationRepository(IntegrationRepository):
    """Dict-backed repository; stores raw rows so load-time validation still runs."""

    def __init__(self):
        self.configs: Dict[str, Dict[str, Any]] = {}
        self.mappings: Dict[str, List[Dict[str, Any]]] = {}
        self.queue: Dict[str, QueueItemSchema] = {}
        self.audits: List[AuditRecordSchema] = []
        self.queue_updates: List[Dict[str, Any]] = []

    def add_config(self, **row) -> str:
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("is_active", True)
        self.configs[row["id"]] = row
        return row["id"]

    def add_mapping(self, config_id: str, **row) -> None:
        self.mappings.setdefault(config_id, []).append(row)

    def get_config(self, config_id: str):
        data = self.configs.get(config_id)
        if data is None:
            return None
        return parse_config(data)

    def list_mappings(self, config_id: str):
        return parse_mappings(config_id, self.mappings.get(config_id, []))

    def get_queue_item(self, queue_id: str) -> Optional[QueueItemSchema]:
        return self.queue.get(queue_id)

    def create_queue_item(self, config_id: str, operation: str, payload: Dict[str, Any]) -> QueueItemSchema:
        item = QueueItemSchema(
            id=str(uuid.uuid4()),
            config_id=config_id,
            operation=operation,
            payload=payload,
            status=QueueStatus.PENDING,
            created_at=datetime.utcnow(),
        )
        self.queue[item.id] = item
        return item

    def update_queue_item(self, queue_id: str, patch: Dict[str, Any]) -> QueueItemSchema:
        unknown = set(patch) - QUEUE_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch queue item fields: {sorted(unknown)}")
        item = self.queue.get(queue_id)
        if item is None:
            raise QueueItemNotFound(queue_id)
        updated = item.model_copy(update=patch)
        self.queue[queue_id] = updated
        self.queue_updates.append({"id": queue_id, **patch})
        return updated

    def insert_audit(self, record: AuditRecordSchema) -> AuditRecordSchema:
        stored = record.model_copy(update={"id": str(uuid.uuid4())})
        self.audits.append(stored)
        return stored


class VendorStub:
    """
    Scripted vendor endpoint for httpx.MockTransport.

    Each step is an exception to raise or a (status, body) pair; dict bodies
    are sent as JSON, str bodies as text. The last step repeats.
    """

    def __init__(self, *steps):
        self.steps = list(steps) or [(200, {})]
        self.requests: List[httpx.Request] = []

    def script(self, *steps) -> "VendorStub":
        self.steps = list(steps)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, Exception):
            raise step
        status_code, body = step
        if isinstance(body, (dict, list)):
            return httpx.Response(status_code, json=body)
        return httpx.Response(status_code, text=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def repository():
    """Fresh in-memory repository for each test."""
    return InMemoryIntegrationRepository()


@pytest.fixture
def temenos_config(repository):
    """Active temenos config with basic auth, 3 retries and 100ms backoff."""
    return repository.add_config(
        id="cfg-temenos",
        name="Temenos sandbox",
        core_type="temenos",
        api_endpoint="https://core.example.com/api/",
        api_version="v1",
        auth_type="basic",
        auth_config={"username": "svc-user", "password": "s3cret"},
        timeout_ms=5000,
        retry_config={"maxRetries": 3, "backoffMs": 100},
    )


@pytest.fixture
def amount_mapping(repository, temenos_config):
    """amount <-> Amount, scaled by 100."""
    repository.add_mapping(
        temenos_config,
        obelixia_field="amount",
        core_field="Amount",
        transformation_rule={"type": "number_scale", "scale": 100},
        direction="bidirectional",
        is_required=False,
    )


@pytest.fixture
def vendor():
    """Vendor stub answering 200 with an empty body until re-scripted."""
    return VendorStub((200, {}))


@pytest.fixture
def sleep():
    """Backoff sleep replacement that records delays without waiting."""
    return AsyncMock()


@pytest.fixture
def orchestrator(repository, vendor, sleep):
    return CoreBankingOrchestrator(repository, transport=vendor.transport, sleep=sleep)


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer caller-token"}


@pytest.fixture
def client(repository, orchestrator):
    """Test client wired to the in-memory repository and scripted vendor."""
    app.dependency_overrides[get_integration_repository] = lambda: repository
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """SQLite in-memory session with all tables created."""
    # Register models with Base.metadata
    from corebank.models import audit_log, integration_config, integration_mapping, integration_queue  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
