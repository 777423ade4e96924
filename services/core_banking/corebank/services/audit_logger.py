"""
Audit logging service for core banking exchanges.
Writes one append-only audit record per adapter invocation.
"""
from typing import Any, Dict, Optional

from corebank.obs.logging import get_logger
from corebank.obs.metrics import metrics
from corebank.schemas.integration import AuditRecordSchema
from corebank.services.integration_repository import IntegrationRepository

logger = get_logger(__name__)

CORE_BANKING_ACTION = "core_banking_operation"


class AuditLogger:
    """
    Service for logging audit events.

    Usage:
        audit = AuditLogger(repository, request_id=request.state.trace_id)
        audit.log_integration_operation(
            operation="create_payment",
            config_id=config.id,
            core_type=config.core_type,
            success=True,
            status_code=200,
            queue_id=queue_id,
        )
    """

    def __init__(self, repository: IntegrationRepository, request_id: Optional[str] = None):
        self.repository = repository
        self.request_id = request_id

    def log_integration_operation(
        self,
        operation: str,
        config_id: str,
        core_type: str,
        success: bool,
        status_code: Optional[int],
        queue_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditRecordSchema:
        """
        Log one core banking exchange.

        Args:
            operation: Vendor operation that was executed
            config_id: IntegrationConfig used
            core_type: Vendor type of the config
            success: Whether the vendor accepted the request (2xx)
            status_code: Final HTTP status, None if the call raised unexpectedly
            queue_id: Queue item the exchange updated, if any
            details: Additional context (attempts, missing required fields, errors)

        Returns:
            Stored audit record
        """
        record = AuditRecordSchema(
            action=CORE_BANKING_ACTION,
            resource_type="integration_queue",
            resource_id=queue_id,
            operation=operation,
            config_id=config_id,
            core_type=core_type,
            success=success,
            status_code=status_code,
            category="integration",
            severity="info" if success else "warn",
            details=details or {},
            request_id=self.request_id,
        )

        try:
            stored = self.repository.insert_audit(record)
        except Exception as e:
            logger.error(
                f"Failed to create audit log: {str(e)}",
                extra={
                    "operation": operation,
                    "config_id": config_id,
                    "queue_id": queue_id,
                    "trace_id": self.request_id,
                }
            )
            raise

        metrics.record_audit_record(CORE_BANKING_ACTION, record.severity)
        logger.info(
            "Audit log created",
            extra={
                "operation": operation,
                "config_id": config_id,
                "queue_id": queue_id,
                "trace_id": self.request_id,
            }
        )
        return stored
