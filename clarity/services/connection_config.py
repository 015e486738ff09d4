"""Per-platform connection configuration.

WHAT:
    One pydantic model per supported platform describing the shape of
    `Connection.config`, plus the registry that maps a platform id to its
    model and default direction.

WHY:
    The `connections.config` column is an opaque JSON document so new platforms
    need no migration. The price is that nothing in the database checks
    its shape, so every write goes through `validate_config` first.

Adding a platform:
    1. Define a `<Platform>Config` model below
    2. Register it in PLATFORMS
    3. Add a `<Platform>ConnectionCreate` variant in clarity.schemas
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import ConnectionTypeEnum

_SHOPIFY_DOMAIN = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")


class MetaConfig(BaseModel):
    """Meta Conversions API destination.

    Example: {"pixel_id": "123456789012345", "test_event_code": "TEST1234"}
    """
    model_config = ConfigDict(extra="forbid")

    pixel_id: str = Field(pattern=r"^\d+$", description="Meta Pixel / dataset ID")
    test_event_code: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Events Manager test code; routes events to the Test Events tab",
    )


class ShopifyConfig(BaseModel):
    """Shopify store acting as an order source.

    Example: {"shop_domain": "qk-123.myshopify.com"}
    """
    model_config = ConfigDict(extra="forbid")

    shop_domain: str = Field(description="The store's permanent myshopify.com domain")

    @field_validator("shop_domain", mode="before")
    @classmethod
    def _normalize_domain(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        domain = value.strip().lower()
        for prefix in ("https://", "http://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        domain = domain.rstrip("/")
        if not _SHOPIFY_DOMAIN.match(domain):
            raise ValueError("must be a *.myshopify.com domain")
        return domain


class TikTokConfig(BaseModel):
    """TikTok Events API destination."""
    model_config = ConfigDict(extra="forbid")

    pixel_code: str = Field(min_length=1, description="TikTok pixel code")
    test_event_code: Optional[str] = Field(default=None, min_length=1)


@dataclass(frozen=True)
class PlatformDefinition:
    config_model: Type[BaseModel]
    default_direction: ConnectionTypeEnum


PLATFORMS: Dict[str, PlatformDefinition] = {
    "meta": PlatformDefinition(MetaConfig, ConnectionTypeEnum.destination),
    "shopify": PlatformDefinition(ShopifyConfig, ConnectionTypeEnum.source),
    "tiktok": PlatformDefinition(TikTokConfig, ConnectionTypeEnum.destination),
}


class UnsupportedPlatformError(ValueError):
    """No config model is registered for this platform id."""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform!r}")


def get_platform(platform: str) -> PlatformDefinition:
    try:
        return PLATFORMS[platform]
    except KeyError:
        raise UnsupportedPlatformError(platform) from None


def validate_config(platform: str, config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a raw config document and return its normalized JSON form.

    Raises:
        UnsupportedPlatformError: unknown platform id.
        pydantic.ValidationError: config does not match the platform model.
    """
    model = get_platform(platform).config_model.model_validate(config)
    return model.model_dump(mode="json", exclude_none=True)


def default_direction(platform: str) -> ConnectionTypeEnum:
    return get_platform(platform).default_direction
