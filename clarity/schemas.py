"""Pydantic schemas for request/response payloads."""

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator

from .models import ConnectionTypeEnum, ProcessingStatusEnum
from .services.connection_config import MetaConfig, ShopifyConfig, TikTokConfig

_DECIMAL_TEXT = re.compile(r"^-?[0-9]+(\.[0-9]+)?$")
_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")
_http_url = TypeAdapter(AnyHttpUrl)


def _currency_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    code = value.strip().upper()
    if not _CURRENCY_CODE.match(code):
        raise ValueError("must be a 3-letter ISO 4217 currency code")
    return code


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(description="Error message", examples=["Not authenticated"])


class ValidationErrorResponse(BaseModel):
    """Validation failure with a field-level error tree mirroring the input."""

    detail: str = Field(default="Validation failed")
    errors: Dict[str, Any] = Field(
        description="Nested {errors: [...], properties: {field: {...}}} tree",
        examples=[{"errors": [], "properties": {"email": {"errors": ["value is not a valid email address"]}}}],
    )


class SuccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status", examples=["ok"])


class PublicConfigResponse(BaseModel):
    """Client-exposed configuration; never contains secrets."""

    clerk_publishable_key: str
    posthog_key: str
    posthog_host: str


# =============================================================================
# EXAMPLE RPC
# =============================================================================

class HelloResponse(BaseModel):
    greeting: str = Field(examples=["Hello world, welcome to ClarityTracking v2!"])


class ExampleUserCreate(BaseModel):
    """Payload for the test-user mutation."""

    email: EmailStr


# =============================================================================
# USERS
# =============================================================================

class UserRegister(BaseModel):
    """Register the signed-in identity as a local user."""

    email: EmailStr = Field(description="User email address", examples=["owner@store.com"])
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)


class UserOut(BaseModel):
    """Public representation of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    clerk_id: str
    email: str
    name: Optional[str] = None
    registered_at: datetime
    is_onboarded: bool = False

    @field_validator("is_onboarded", mode="before")
    @classmethod
    def _null_is_false(cls, value: Any) -> Any:
        return False if value is None else value


class OnboardingUpdate(BaseModel):
    is_onboarded: bool = True


# =============================================================================
# CONNECTIONS
# =============================================================================

class _ConnectionCreateBase(BaseModel):
    type: Optional[ConnectionTypeEnum] = Field(
        default=None,
        description="source or destination; defaults to the platform's usual role",
    )
    access_token: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Platform access token; stored encrypted and never returned",
    )


class MetaConnectionCreate(_ConnectionCreateBase):
    platform: Literal["meta"]
    config: MetaConfig


class ShopifyConnectionCreate(_ConnectionCreateBase):
    platform: Literal["shopify"]
    config: ShopifyConfig


class TikTokConnectionCreate(_ConnectionCreateBase):
    platform: Literal["tiktok"]
    config: TikTokConfig


ConnectionCreate = Annotated[
    Union[MetaConnectionCreate, ShopifyConnectionCreate, TikTokConnectionCreate],
    Field(discriminator="platform"),
]


class ConnectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    website_id: int
    platform: str
    type: ConnectionTypeEnum
    config: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool
    created_at: datetime
    has_access_token: bool = False

    @classmethod
    def from_model(cls, connection) -> "ConnectionOut":
        out = cls.model_validate(connection)
        out.has_access_token = bool(connection.encrypted_access_token)
        return out


# =============================================================================
# WEBSITES
# =============================================================================

class WebsiteCreate(BaseModel):
    url: str = Field(description="Storefront URL", examples=["https://shop.example.com"])
    name: str = Field(min_length=1, description="Display name")
    currency: str = Field(default="USD", description="Reporting currency")
    timezone: str = Field(default="UTC", description="Reporting timezone (IANA)")

    @field_validator("url")
    @classmethod
    def _valid_url(cls, value: str) -> str:
        try:
            _http_url.validate_python(value)
        except ValueError as exc:
            raise ValueError("Must be a valid URL") from exc
        return value

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()

    @field_validator("currency")
    @classmethod
    def _valid_currency(cls, value: str) -> str:
        return _currency_code(value)

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


class WebsiteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    url: str
    name: str
    currency: str
    timezone: str
    created_at: datetime


class WebsiteDetail(WebsiteOut):
    connections: List[ConnectionOut] = Field(default_factory=list)


# =============================================================================
# EVENTS
# =============================================================================

class EventIngest(BaseModel):
    """One inbound commerce event, as handed to the dedup gate.

    `value` is exact decimal text. Floats are refused outright because
    revenue summed from binary floats drifts.
    """

    website_id: int
    event_id: str = Field(min_length=1, description="Source-assigned id; the dedup key within a website")
    event_name: str = Field(min_length=1, examples=["Purchase", "AddToCart"])
    event_time: datetime = Field(description="When the event happened according to the source")

    event_source_url: Optional[str] = None
    user_ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    fbp: Optional[str] = None
    fbc: Optional[str] = None
    hashed_email: Optional[str] = None
    hashed_phone: Optional[str] = None

    value: Optional[str] = Field(default=None, examples=["49.99"])
    currency: Optional[str] = None

    original_payload: Optional[Dict[str, Any]] = None

    @field_validator("value", mode="before")
    @classmethod
    def _decimal_text(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (bool, float)):
            raise ValueError("value must be a decimal string, not a float")
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise ValueError("value must be a finite decimal")
            return format(value, "f")
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            text = value.strip()
            if not _DECIMAL_TEXT.match(text):
                raise ValueError("value must be a fixed-point decimal string such as '19.99'")
            return text
        raise ValueError("value must be a decimal string")

    @field_validator("currency")
    @classmethod
    def _valid_currency(cls, value: Optional[str]) -> Optional[str]:
        return _currency_code(value)

    @field_validator("event_time")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class EventLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    website_id: int
    event_id: str
    event_name: str
    event_source_url: Optional[str] = None
    value: Optional[str] = None
    currency: Optional[str] = None
    status: ProcessingStatusEnum
    match_quality_score: Optional[str] = None
    platform_response: Optional[Any] = None
    received_at: datetime
    event_time: datetime


class EventLogListResponse(BaseModel):
    events: List[EventLogOut]
    total: int
