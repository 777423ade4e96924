"""
Core banking integration orchestrator.

Drives one end-to-end exchange:
config + mappings -> adapter outbound -> retry executor (HTTP) ->
adapter inbound -> queue update -> audit record -> result.

Configuration problems abort before any network call. Once a request has been
dispatched, every outcome (success, vendor failure, exhausted retries or an
unexpected error) moves the queue item to a terminal state and writes exactly
one audit record.
"""
import json
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from corebank.exceptions import (
    ClientProtocolError,
    ConfigNotFound,
    QueueItemConfigMismatch,
    TransientTransportError,
)
from corebank.obs.logging import get_logger, log_exchange
from corebank.obs.metrics import metrics
from corebank.schemas.integration import ExchangeResult, FieldMappingSchema, IntegrationConfigSchema
from corebank.services.adapter_registry import AdapterRegistry, adapter_registry
from corebank.services.audit_logger import AuditLogger
from corebank.services.core_banking_adapters import CoreBankingAdapter, VendorRequest, build_url
from corebank.services.field_mapping import find_missing_required
from corebank.services.integration_repository import IntegrationRepository
from corebank.services.queue_tracker import IntegrationQueueTracker
from corebank.services.retry_executor import RetryExecutor

logger = get_logger(__name__)

# Status reported when no vendor response was ever received
GATEWAY_TIMEOUT = 504
BAD_GATEWAY = 502


class CoreBankingOrchestrator:
    """
    Entry point of the adapter layer.

    Usage:
        orchestrator = CoreBankingOrchestrator(SqlIntegrationRepository(db))
        result = await orchestrator.execute("create_payment", config_id, {"amount": 50.5})
    """

    def __init__(
        self,
        repository: IntegrationRepository,
        registry: AdapterRegistry = adapter_registry,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.repository = repository
        self.registry = registry
        self.transport = transport
        self.sleep = sleep
        self.queue = IntegrationQueueTracker(repository)

    async def execute(
        self,
        operation: str,
        config_id: str,
        payload: Dict[str, Any],
        queue_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> ExchangeResult:
        config = self.repository.get_config(config_id)
        if config is None:
            raise ConfigNotFound(config_id)
        mappings = self.repository.list_mappings(config_id)

        adapter = self.registry.resolve(config.core_type)
        vendor_payload = adapter.transform_outbound(payload, mappings)
        vendor_request = adapter.build_request(operation, vendor_payload, config)
        url = build_url(config, operation)

        details: Dict[str, Any] = {"method": vendor_request.method, "url": url}
        missing = find_missing_required(payload, mappings)
        if missing:
            details["missing_required"] = missing

        # Raises before dispatch when the item is unknown, belongs to another config or is not pending
        if queue_id:
            item = self.queue.get(queue_id)
            if item.config_id != config.id:
                raise QueueItemConfigMismatch(queue_id, item.config_id, config.id)
            self.queue.mark_processing(queue_id)

        executor = RetryExecutor(
            config.retry_config,
            config.timeout_ms,
            core_type=config.core_type,
            method=vendor_request.method,
            sleep=self.sleep,
        )
        audit = AuditLogger(self.repository, request_id=request_id)
        start_time = time.time()

        try:
            try:
                response = await self._dispatch(executor, vendor_request, url, config)
            except TransientTransportError as e:
                result, error_detail = self._exhausted_outcome(adapter, e, mappings)
            else:
                result, failure = self._response_outcome(adapter, response, mappings)
                error_detail = failure.detail if failure is not None else None
        except Exception as e:
            details.update(attempts=executor.attempts, error=f"{type(e).__name__}: {e}")
            self._record(audit, operation, config, queue_id, None, False, None, str(e), details)
            raise

        details["attempts"] = executor.attempts
        self._record(
            audit,
            operation,
            config,
            queue_id,
            result.data,
            result.success,
            result.status_code,
            error_detail,
            details,
        )

        log_exchange(
            logger,
            operation=operation,
            config_id=config.id,
            core_type=config.core_type,
            success=result.success,
            status_code=result.status_code,
            latency_ms=(time.time() - start_time) * 1000,
            trace_id=request_id,
            queue_id=queue_id,
            attempt=executor.attempts,
        )
        return result

    async def _dispatch(
        self,
        executor: RetryExecutor,
        vendor_request: VendorRequest,
        url: str,
        config: IntegrationConfigSchema,
    ) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport, timeout=config.timeout_ms / 1000) as client:
            return await executor.execute(
                lambda: client.request(
                    vendor_request.method,
                    url,
                    headers=vendor_request.headers,
                    json=vendor_request.body,
                )
            )

    def _response_outcome(
        self,
        adapter: CoreBankingAdapter,
        response: httpx.Response,
        mappings: List[FieldMappingSchema],
    ) -> Tuple[ExchangeResult, Optional[ClientProtocolError]]:
        """Build the result for a response below 500; a non-2xx comes back with its ClientProtocolError."""
        parsed = adapter.parse_response(response)
        data = adapter.transform_inbound(parsed, mappings)
        success = response.is_success

        failure = None
        if not success:
            failure = ClientProtocolError(response.status_code, parsed)
            logger.warning(
                f"Vendor rejected request with HTTP {response.status_code}",
                extra={"core_type": adapter.core_type, "status_code": response.status_code}
            )

        result = ExchangeResult(
            success=success,
            data=data,
            raw_response=parsed,
            status_code=response.status_code,
        )
        return result, failure

    def _exhausted_outcome(self, adapter: CoreBankingAdapter, error: TransientTransportError, mappings: List[FieldMappingSchema]):
        if error.response is not None:
            parsed = adapter.parse_response(error.response)
            result = ExchangeResult(
                success=False,
                data=adapter.transform_inbound(parsed, mappings),
                raw_response=parsed,
                status_code=error.response.status_code,
            )
            return result, json.dumps(parsed, default=str)

        result = ExchangeResult(
            success=False,
            data={},
            raw_response={"error": error.message},
            status_code=GATEWAY_TIMEOUT if error.timed_out else BAD_GATEWAY,
        )
        return result, error.message

    def _record(
        self,
        audit: AuditLogger,
        operation: str,
        config: IntegrationConfigSchema,
        queue_id: Optional[str],
        result_data: Optional[Dict[str, Any]],
        success: bool,
        status_code: Optional[int],
        error_detail: Optional[str],
        details: Dict[str, Any],
    ) -> None:
        """Move the queue item to its terminal state and write the audit record."""
        metrics.record_exchange(config.core_type, success)
        try:
            if queue_id:
                if success:
                    self.queue.mark_completed(queue_id, result_data or {})
                else:
                    self.queue.mark_failed(queue_id, error_detail or "Unknown error")
        finally:
            audit.log_integration_operation(
                operation=operation,
                config_id=config.id,
                core_type=config.core_type,
                success=success,
                status_code=status_code,
                queue_id=queue_id,
                details=details,
            )
