"""
Exception taxonomy for the core banking adapter layer.

Every error carries the HTTP status the API surfaces for it; the handlers in
corebank.obs.errors turn them into ``{"error": ...}`` JSON responses.
"""
import json
from typing import Any, Optional

import httpx


class CoreBankingError(Exception):
    """Base exception for core banking adapter errors."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(CoreBankingError):
    """Integration configuration or mapping rows are unusable."""
    status_code = 422


class ConfigNotFound(ConfigurationError):
    """Integration configuration is missing or inactive."""
    status_code = 404

    def __init__(self, config_id: str):
        self.config_id = config_id
        super().__init__("Configuration not found")


class TransientTransportError(CoreBankingError):
    """
    Network failure, timeout or 5xx response that survived every retry.

    ``response`` holds the last vendor response when one was received
    (a 5xx); it is None when every attempt failed at the transport level.
    """
    status_code = 502

    def __init__(
        self,
        message: str,
        attempts: int,
        response: Optional[httpx.Response] = None,
        timed_out: bool = False,
    ):
        self.attempts = attempts
        self.response = response
        self.timed_out = timed_out
        super().__init__(message)

    @property
    def last_status_code(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None


class ClientProtocolError(CoreBankingError):
    """A vendor rejected the request with a 4xx; never retried."""
    status_code = 400

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        super().__init__(self.detail)

    @property
    def detail(self) -> str:
        return json.dumps(self.body, default=str)


class QueueItemNotFound(CoreBankingError):
    status_code = 404

    def __init__(self, queue_id: str):
        self.queue_id = queue_id
        super().__init__("Queue item not found")


class InvalidQueueTransition(CoreBankingError):
    """A queue item was asked to move to a state its lifecycle forbids."""
    status_code = 409

    def __init__(self, queue_id: str, current: str, target: str):
        self.queue_id = queue_id
        self.current = current
        self.target = target
        super().__init__(f"Queue item {queue_id} cannot move from {current} to {target}")


class QueueItemConfigMismatch(CoreBankingError):
    """A queue item was executed against a config other than the one it was created for."""
    status_code = 409

    def __init__(self, queue_id: str, expected_config_id: str, config_id: str):
        self.queue_id = queue_id
        self.expected_config_id = expected_config_id
        self.config_id = config_id
        super().__init__(f"Queue item {queue_id} belongs to config {expected_config_id}, not {config_id}")
