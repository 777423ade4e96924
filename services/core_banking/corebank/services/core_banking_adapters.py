"""
Vendor adapters for core banking systems.

Each adapter binds one vendor protocol family: it composes the field mapping
engine with that vendor's request construction (headers, auth, body envelope)
and response parsing (envelope unwrapping).

Supported families:
- temenos: ``{"body": {...}}`` envelope, also the baseline for custom/unknown vendors
- finastra: JSON:API ``{"data": {"attributes": {...}}}`` envelope
- mambu: flat payload, vendor-specific accept header
- thought_machine: flat payload carrying a generated ``request_id``

Authentication is chosen by the config's auth type, never by vendor, so every
adapter supports basic, api_key and oauth2.
"""
import base64
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from corebank.models.enums import CoreType
from corebank.schemas.integration import (
    ApiKeyAuth,
    BasicAuth,
    FieldMappingSchema,
    IntegrationConfigSchema,
    OAuth2Auth,
)
from corebank.services import field_mapping

# Operation-name prefix -> HTTP verb; anything else is a POST
METHOD_PREFIXES = (
    (("get", "pull", "fetch"), "GET"),
    (("delete", "remove"), "DELETE"),
    (("update", "patch"), "PATCH"),
)

BODYLESS_METHODS = ("GET", "DELETE")
IDEMPOTENCY_KEY_METHODS = ("POST", "PATCH")


class VendorRequest(BaseModel):
    """An HTTP request ready to be sent to a vendor, minus the URL."""
    method: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None


def http_method_for(operation: str) -> str:
    """Derive the HTTP verb from the operation name (last path segment)."""
    name = operation.rsplit("/", 1)[-1].lower()
    for prefixes, method in METHOD_PREFIXES:
        if name.startswith(prefixes):
            return method
    return "POST"


def build_url(config: IntegrationConfigSchema, operation: str) -> str:
    """{api_endpoint}/{api_version}/{operation}, without doubled or empty segments."""
    segments = [config.api_endpoint.rstrip("/")]
    for segment in (config.api_version, operation):
        segment = (segment or "").strip("/")
        if segment:
            segments.append(segment)
    return "/".join(segments)


def decode_body(response: httpx.Response) -> Dict[str, Any]:
    """Decode a JSON object body; anything else becomes ``{"raw": ...}``."""
    try:
        data = response.json()
    except ValueError:
        return {"raw": response.text}
    if isinstance(data, dict):
        return data
    return {"raw": data}


def _first_object(data: Dict[str, Any], paths: List[str]) -> Dict[str, Any]:
    for path in paths:
        candidate = field_mapping.get_nested_value(data, path)
        if isinstance(candidate, dict):
            return candidate
    return data


class CoreBankingAdapter(ABC):
    """Base adapter: one vendor protocol family behind a common interface."""

    core_type: str = ""
    content_type: str = "application/json"
    accept: str = "application/json"
    api_key_header: str = "X-API-Key"

    def transform_outbound(self, record: Dict[str, Any], mappings: List[FieldMappingSchema]) -> Dict[str, Any]:
        return field_mapping.transform_outbound(record, mappings)

    def transform_inbound(self, payload: Dict[str, Any], mappings: List[FieldMappingSchema]) -> Dict[str, Any]:
        return field_mapping.transform_inbound(payload, mappings)

    def build_request(
        self,
        operation: str,
        payload: Dict[str, Any],
        config: IntegrationConfigSchema,
    ) -> VendorRequest:
        """
        Build the vendor request for an operation.

        POST and PATCH requests carry an Idempotency-Key generated once here, so
        every retry of the same exchange repeats the same key.
        """
        method = http_method_for(operation)
        request_id = str(uuid.uuid4())

        headers = {
            "Content-Type": self.content_type,
            "Accept": self.accept,
        }
        headers.update(self.auth_headers(config))
        headers.update(self.extra_headers(request_id))
        if method in IDEMPOTENCY_KEY_METHODS:
            headers.setdefault("Idempotency-Key", request_id)

        body = None
        if method not in BODYLESS_METHODS:
            body = self.wrap_payload(payload, request_id)

        return VendorRequest(method=method, headers=headers, body=body)

    def auth_headers(self, config: IntegrationConfigSchema) -> Dict[str, str]:
        auth = config.auth_config
        if isinstance(auth, BasicAuth):
            token = base64.b64encode(f"{auth.username}:{auth.password}".encode("utf-8")).decode("ascii")
            return {"Authorization": f"Basic {token}"}
        if isinstance(auth, ApiKeyAuth):
            return {auth.header_name or self.api_key_header: auth.api_key}
        if isinstance(auth, OAuth2Auth):
            return {"Authorization": f"Bearer {auth.access_token}"}
        return {}

    def extra_headers(self, request_id: str) -> Dict[str, str]:
        return {}

    def parse_response(self, response: httpx.Response) -> Dict[str, Any]:
        """Decode the response and strip the vendor envelope. Never raises."""
        return self.unwrap_payload(decode_body(response))

    @abstractmethod
    def wrap_payload(self, payload: Dict[str, Any], request_id: str) -> Dict[str, Any]:
        """Put a vendor-shaped payload into this vendor's request envelope."""

    @abstractmethod
    def unwrap_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Recover the vendor-shaped record from a decoded response."""

    def __repr__(self):
        return f"<{type(self).__name__}(core_type={self.core_type})>"


class TemenosAdapter(CoreBankingAdapter):
    core_type = CoreType.TEMENOS.value

    def wrap_payload(self, payload: Dict[str, Any], request_id: str) -> Dict[str, Any]:
        return {"body": payload}

    def unwrap_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return _first_object(data, ["body", "data"])


class FinastraAdapter(CoreBankingAdapter):
    core_type = CoreType.FINASTRA.value
    content_type = "application/vnd.api+json"
    accept = "application/vnd.api+json"

    def wrap_payload(self, payload: Dict[str, Any], request_id: str) -> Dict[str, Any]:
        return {"data": {"attributes": payload}}

    def unwrap_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return _first_object(data, ["data.attributes", "data"])


class MambuAdapter(CoreBankingAdapter):
    core_type = CoreType.MAMBU.value
    accept = "application/vnd.mambu.v2+json"
    api_key_header = "apiKey"

    def wrap_payload(self, payload: Dict[str, Any], request_id: str) -> Dict[str, Any]:
        return dict(payload)

    def unwrap_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return data


class ThoughtMachineAdapter(CoreBankingAdapter):
    core_type = CoreType.THOUGHT_MACHINE.value

    def wrap_payload(self, payload: Dict[str, Any], request_id: str) -> Dict[str, Any]:
        return {**payload, "request_id": request_id}

    def extra_headers(self, request_id: str) -> Dict[str, str]:
        return {"X-Request-ID": request_id}

    def unwrap_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return _first_object(data, ["result"])
