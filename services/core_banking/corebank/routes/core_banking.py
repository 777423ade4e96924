"""
Core banking adapter endpoints.

- POST /api/v1/core-banking/execute         run one exchange against a vendor
- POST /api/v1/core-banking/queue           submit an operation as a pending queue item
- GET  /api/v1/core-banking/queue/{id}      read a queue item's lifecycle state
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from corebank.config import settings
from corebank.database import get_db
from corebank.exceptions import ConfigNotFound
from corebank.obs.logging import get_logger
from corebank.schemas.integration import (
    ErrorResponse,
    ExchangeResult,
    ExecuteRequest,
    QueueCreateRequest,
    QueueItemSchema,
)
from corebank.services.integration_orchestrator import CoreBankingOrchestrator
from corebank.services.integration_repository import IntegrationRepository, SqlIntegrationRepository
from corebank.services.queue_tracker import IntegrationQueueTracker

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/core-banking", tags=["core-banking"])

ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing Authorization header"},
    404: {"model": ErrorResponse, "description": "Configuration or queue item not found"},
    409: {"model": ErrorResponse, "description": "Queue item is not pending"},
    422: {"model": ErrorResponse, "description": "Invalid configuration or request"},
}


def require_authorization(authorization: Optional[str] = Header(None)) -> None:
    """Presence check only; caller authentication happens upstream."""
    if settings.REQUIRE_AUTH_HEADER and not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_integration_repository(db: Session = Depends(get_db)) -> IntegrationRepository:
    return SqlIntegrationRepository(db)


def get_orchestrator(
    repository: IntegrationRepository = Depends(get_integration_repository),
) -> CoreBankingOrchestrator:
    return CoreBankingOrchestrator(repository)


def http_status_for(result: ExchangeResult) -> int:
    """200 on success, the vendor's error status when it is one, else 502."""
    if result.success:
        return status.HTTP_200_OK
    if 400 <= result.status_code <= 599:
        return result.status_code
    return status.HTTP_502_BAD_GATEWAY


@router.post(
    "/execute",
    response_model=ExchangeResult,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_authorization)],
)
async def execute_operation(
    body: ExecuteRequest,
    request: Request,
    orchestrator: CoreBankingOrchestrator = Depends(get_orchestrator),
):
    """Execute one core banking operation and return the canonical result."""
    result = await orchestrator.execute(
        operation=body.operation,
        config_id=body.config_id,
        payload=body.payload,
        queue_id=body.queue_id,
        request_id=getattr(request.state, "trace_id", None),
    )
    return JSONResponse(status_code=http_status_for(result), content=jsonable_encoder(result))


@router.post(
    "/queue",
    response_model=QueueItemSchema,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_authorization)],
)
async def submit_operation(
    body: QueueCreateRequest,
    repository: IntegrationRepository = Depends(get_integration_repository),
):
    """Create a pending queue item to be passed as queue_id to /execute."""
    if repository.get_config(body.config_id) is None:
        raise ConfigNotFound(body.config_id)
    return IntegrationQueueTracker(repository).enqueue(body.config_id, body.operation, body.payload)


@router.get(
    "/queue/{queue_id}",
    response_model=QueueItemSchema,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_authorization)],
)
async def get_queue_item(
    queue_id: str,
    repository: IntegrationRepository = Depends(get_integration_repository),
):
    return IntegrationQueueTracker(repository).get(queue_id)
