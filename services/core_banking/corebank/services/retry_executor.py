"""
Retry executor for core banking HTTP exchanges.

Each attempt is bounded by a timeout. Responses below 500 are accepted (client
errors indicate a request-shape problem, not a transient fault). 5xx responses,
timeouts and transport errors are retried with exponential backoff
(backoff_ms * 2**attempt) up to max_retries extra attempts, after which
TransientTransportError is raised carrying the last response, if any.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional

import httpx

from corebank.exceptions import TransientTransportError
from corebank.obs.logging import get_logger
from corebank.obs.metrics import metrics
from corebank.schemas.integration import RetryPolicy

logger = get_logger(__name__)

RequestFactory = Callable[[], Awaitable[httpx.Response]]


class RetryExecutor:
    """
    Wraps a single HTTP exchange with a per-attempt timeout and bounded retries.

    Usage:
        executor = RetryExecutor(config.retry_config, config.timeout_ms, core_type="temenos")
        response = await executor.execute(lambda: client.request("POST", url, json=body))
    """

    def __init__(
        self,
        policy: RetryPolicy,
        timeout_ms: int,
        core_type: str = "unknown",
        method: str = "POST",
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.policy = policy
        self.timeout_ms = timeout_ms
        self.core_type = core_type
        self.method = method
        self._sleep = sleep or asyncio.sleep
        self.attempts = 0

    @property
    def max_attempts(self) -> int:
        return self.policy.max_retries + 1

    def backoff_seconds(self, attempt: int) -> float:
        """Delay after the given zero-based attempt."""
        return self.policy.backoff_ms * (2 ** attempt) / 1000

    async def execute(self, request_factory: RequestFactory) -> httpx.Response:
        last_response: Optional[httpx.Response] = None
        last_error: Optional[Exception] = None
        timed_out = False
        self.attempts = 0

        for attempt in range(self.max_attempts):
            self.attempts = attempt + 1
            start_time = time.time()

            try:
                response = await asyncio.wait_for(request_factory(), timeout=self.timeout_ms / 1000)
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                last_response, last_error, timed_out = None, e, True
                reason = "timeout"
                status_code = 0
            except httpx.HTTPError as e:
                last_response, last_error, timed_out = None, e, False
                reason = "transport_error"
                status_code = 0
            else:
                status_code = response.status_code
                if status_code < 500:
                    self._record_attempt(status_code, start_time)
                    return response
                last_response, last_error, timed_out = response, None, False
                reason = "server_error"

            self._record_attempt(status_code, start_time)

            if attempt + 1 < self.max_attempts:
                delay = self.backoff_seconds(attempt)
                logger.warning(
                    f"Core banking attempt failed ({reason}), retrying in {delay:.3f}s",
                    extra={
                        "core_type": self.core_type,
                        "method": self.method,
                        "attempt": self.attempts,
                        "status_code": status_code or None,
                    }
                )
                metrics.record_core_banking_retry(self.core_type, reason)
                await self._sleep(delay)

        metrics.record_core_banking_exhausted(self.core_type)
        message = self._exhausted_message(last_response, last_error, timed_out)
        logger.error(
            message,
            extra={"core_type": self.core_type, "method": self.method, "attempt": self.attempts}
        )
        raise TransientTransportError(
            message,
            attempts=self.attempts,
            response=last_response,
            timed_out=timed_out,
        )

    def _record_attempt(self, status_code: int, start_time: float) -> None:
        latency_ms = (time.time() - start_time) * 1000
        metrics.record_core_banking_request(self.core_type, self.method, status_code, latency_ms)

    def _exhausted_message(
        self,
        last_response: Optional[httpx.Response],
        last_error: Optional[Exception],
        timed_out: bool,
    ) -> str:
        if last_response is not None:
            return f"Vendor returned HTTP {last_response.status_code} after {self.attempts} attempts"
        if timed_out:
            return f"Request timed out after {self.timeout_ms}ms on each of {self.attempts} attempts"
        return f"{type(last_error).__name__}: {last_error} after {self.attempts} attempts"
