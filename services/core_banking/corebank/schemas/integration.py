"""
Pydantic schemas for core banking integration configuration, queue items,
audit records and the execute API.

Configuration blobs stored as JSON (auth parameters, transformation rules,
retry policy) are parsed into tagged unions here, when a config is loaded,
so a malformed row fails before any network call instead of degrading deep
inside a transform.
"""
from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from corebank.config import settings
from corebank.models.enums import AuthType, MappingDirection, QueueStatus


# ============================================================================
# Transformation rules
# ============================================================================

DATE_PATTERNS: Dict[str, str] = {
    "YYYYMMDD": "%Y%m%d",
    "DDMMYYYY": "%d%m%Y",
    "YYYY-MM-DD": "%Y-%m-%d",
    "DD-MM-YYYY": "%d-%m-%Y",
    "DD/MM/YYYY": "%d/%m/%Y",
    "MM/DD/YYYY": "%m/%d/%Y",
}


class DateFormatRule(BaseModel):
    type: Literal["date_format"]
    format: str = Field("YYYYMMDD", description="Vendor date pattern")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in DATE_PATTERNS:
            raise ValueError(f"unsupported date format {v!r}, expected one of {sorted(DATE_PATTERNS)}")
        return v


class NumberScaleRule(BaseModel):
    type: Literal["number_scale"]
    scale: float = Field(1, description="Outbound multiplier, inbound divisor")

    @field_validator("scale")
    @classmethod
    def validate_scale(cls, v: float) -> float:
        if v == 0:
            raise ValueError("scale must be non-zero")
        return v


class LookupRule(BaseModel):
    type: Literal["lookup"]
    values: Dict[str, Any] = Field(default_factory=dict, description="Canonical value -> vendor code")


class StringPadRule(BaseModel):
    type: Literal["string_pad"]
    length: int = Field(..., ge=0)
    char: str = Field("0", min_length=1, max_length=1)


class CaseFoldRule(BaseModel):
    type: Literal["uppercase", "lowercase"]


TransformationRule = Annotated[
    Union[DateFormatRule, NumberScaleRule, LookupRule, StringPadRule, CaseFoldRule],
    Field(discriminator="type"),
]


# ============================================================================
# Authentication parameters (selected by IntegrationConfig.auth_type)
# ============================================================================

class BasicAuth(BaseModel):
    mode: Literal["basic"] = "basic"
    username: str
    password: str


class ApiKeyAuth(BaseModel):
    mode: Literal["api_key"] = "api_key"
    api_key: str
    header_name: Optional[str] = Field(None, description="Overrides the vendor's default API key header")


class OAuth2Auth(BaseModel):
    mode: Literal["oauth2"] = "oauth2"
    access_token: str


AuthParams = Annotated[Union[BasicAuth, ApiKeyAuth, OAuth2Auth], Field(discriminator="mode")]


# ============================================================================
# Integration configuration
# ============================================================================

class RetryPolicy(BaseModel):
    """Bounded exponential backoff: attempt n waits backoff_ms * 2**n."""
    model_config = ConfigDict(populate_by_name=True)

    max_retries: int = Field(
        default_factory=lambda: settings.CORE_BANKING_DEFAULT_MAX_RETRIES,
        alias="maxRetries",
        ge=0,
    )
    backoff_ms: int = Field(
        default_factory=lambda: settings.CORE_BANKING_DEFAULT_BACKOFF_MS,
        alias="backoffMs",
        ge=0,
    )

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v > settings.CORE_BANKING_MAX_RETRIES_CAP:
            raise ValueError(f"maxRetries may not exceed {settings.CORE_BANKING_MAX_RETRIES_CAP}")
        return v


ALLOWED_ENDPOINT_SCHEMES = ("http", "https")


class IntegrationConfigSchema(BaseModel):
    id: str
    name: Optional[str] = None
    core_type: str = Field(..., description="Vendor protocol family; unknown values use the baseline adapter")
    api_endpoint: str = Field(..., min_length=1)
    api_version: str = ""
    auth_type: AuthType
    auth_config: AuthParams
    timeout_ms: int = Field(default_factory=lambda: settings.CORE_BANKING_DEFAULT_TIMEOUT_MS, gt=0)
    retry_config: RetryPolicy = Field(default_factory=RetryPolicy)
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def tag_auth_config(cls, data: Any) -> Any:
        """Drop NULL columns and tag auth_config with the config's auth mode."""
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        auth_config = data.get("auth_config") or {}
        mode = data.get("auth_type")
        if isinstance(mode, AuthType):
            mode = mode.value
        if isinstance(auth_config, dict) and mode is not None:
            data["auth_config"] = {**auth_config, "mode": mode}
        return data

    @field_validator("core_type")
    @classmethod
    def normalize_core_type(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("api_endpoint")
    @classmethod
    def validate_api_endpoint(cls, v: str) -> str:
        try:
            url = httpx.URL(v.strip())
        except httpx.InvalidURL as e:
            raise ValueError("api_endpoint is not a valid URL") from e
        if url.scheme not in ALLOWED_ENDPOINT_SCHEMES or not url.host:
            raise ValueError("api_endpoint must be an absolute http(s) URL with a host")
        return v.strip()


class FieldMappingSchema(BaseModel):
    id: Optional[str] = None
    obelixia_field: str = Field(..., min_length=1, description="Canonical field name")
    core_field: str = Field(..., min_length=1, description="Vendor field path, dot separated")
    transformation_rule: Optional[TransformationRule] = None
    direction: MappingDirection = MappingDirection.BIDIRECTIONAL
    is_required: bool = False
    default_value: Any = None

    @field_validator("transformation_rule", mode="before")
    @classmethod
    def empty_rule_is_none(cls, v: Any) -> Any:
        if not v:
            return None
        if isinstance(v, dict) and v.get("type") in (None, "none"):
            return None
        return v

    @field_validator("direction", mode="before")
    @classmethod
    def default_direction(cls, v: Any) -> Any:
        return v or MappingDirection.BIDIRECTIONAL


# ============================================================================
# Queue items and audit records
# ============================================================================

class QueueItemSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    config_id: str
    operation: str
    payload: Optional[Dict[str, Any]] = None
    status: QueueStatus
    result: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AuditRecordSchema(BaseModel):
    """Write-once record of one adapter invocation."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: Optional[str] = None
    action: str = "core_banking_operation"
    resource_type: str = "integration_queue"
    resource_id: Optional[str] = None
    operation: str
    config_id: str
    core_type: str
    success: bool
    status_code: Optional[int] = None
    category: str = "integration"
    severity: Literal["info", "warn"] = "info"
    details: Dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


# ============================================================================
# API contracts
# ============================================================================

OPERATION_PATTERN = r"^[A-Za-z0-9_\-]+(/[A-Za-z0-9_\-]+)*$"


class ExecuteRequest(BaseModel):
    """Request body for POST /api/v1/core-banking/execute."""
    operation: str = Field(
        ...,
        min_length=1,
        max_length=200,
        pattern=OPERATION_PATTERN,
        description="Vendor operation, e.g. get_account_balance or create_payment",
    )
    config_id: str = Field(..., min_length=1, description="IntegrationConfig identifier")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Canonical, vendor-agnostic record")
    queue_id: Optional[str] = Field(None, description="Pre-created queue item to update")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "operation": "create_payment",
                "config_id": "cfg_123",
                "payload": {"amount": 50.5, "currency": "EUR"},
            }
        }
    )


class QueueCreateRequest(BaseModel):
    config_id: str = Field(..., min_length=1)
    operation: str = Field(..., min_length=1, max_length=200, pattern=OPERATION_PATTERN)
    payload: Dict[str, Any] = Field(default_factory=dict)


class ExchangeResult(BaseModel):
    """Outcome of one orchestrated exchange."""
    success: bool
    data: Dict[str, Any] = Field(default_factory=dict, description="Canonical record, transformed inbound")
    raw_response: Dict[str, Any] = Field(default_factory=dict, description="Vendor-shaped response before inbound mapping")
    status_code: int


class ErrorResponse(BaseModel):
    error: str
    trace_id: Optional[str] = None
