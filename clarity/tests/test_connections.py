"""Tests for per-platform connection config and the connection service."""

import pytest
from pydantic import ValidationError

from clarity.exceptions import CredentialError
from clarity.models import ConnectionTypeEnum
from clarity.security import decrypt_secret, encrypt_secret
from clarity.services.connection_config import (
    UnsupportedPlatformError,
    default_direction,
    validate_config,
)
from clarity.services.connection_service import create_connection, set_connection_active


def test_meta_config_requires_numeric_pixel_id():
    assert validate_config("meta", {"pixel_id": "123456789012345"}) == {"pixel_id": "123456789012345"}

    with pytest.raises(ValidationError):
        validate_config("meta", {"pixel_id": "px-abc"})
    with pytest.raises(ValidationError):
        validate_config("meta", {})


def test_config_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        validate_config("meta", {"pixel_id": "123", "pixelId": "123"})


def test_shopify_domain_is_normalized():
    config = validate_config("shopify", {"shop_domain": "https://QK-123.myshopify.com/"})
    assert config == {"shop_domain": "qk-123.myshopify.com"}

    with pytest.raises(ValidationError):
        validate_config("shopify", {"shop_domain": "store.example.com"})


def test_unknown_platform():
    with pytest.raises(UnsupportedPlatformError):
        validate_config("snapchat", {})


def test_default_directions():
    assert default_direction("meta") is ConnectionTypeEnum.destination
    assert default_direction("tiktok") is ConnectionTypeEnum.destination
    assert default_direction("shopify") is ConnectionTypeEnum.source


def test_encrypt_decrypt_secret():
    ciphertext = encrypt_secret("EAAB-live-token", context="test")
    assert ciphertext != "EAAB-live-token"
    assert decrypt_secret(ciphertext, context="test") == "EAAB-live-token"


def test_decrypt_rejects_tampered_ciphertext():
    with pytest.raises(CredentialError):
        decrypt_secret("not-a-fernet-token", context="test")
    with pytest.raises(CredentialError):
        encrypt_secret("", context="test")


def test_create_connection_encrypts_token(test_db_session, test_website):
    connection = create_connection(
        test_db_session,
        test_website,
        platform="meta",
        config={"pixel_id": "987654321", "test_event_code": "TEST1234"},
        access_token="EAAB-live-token",
    )

    assert connection.type == ConnectionTypeEnum.destination
    assert connection.config == {"pixel_id": "987654321", "test_event_code": "TEST1234"}
    assert connection.encrypted_access_token
    assert "EAAB-live-token" not in connection.encrypted_access_token
    assert decrypt_secret(connection.encrypted_access_token, context="test") == "EAAB-live-token"


def test_deactivate_clears_token_and_reactivate_needs_one(test_db_session, test_website):
    connection = create_connection(
        test_db_session,
        test_website,
        platform="meta",
        config={"pixel_id": "987654321"},
        access_token="EAAB-live-token",
    )

    set_connection_active(test_db_session, connection, False)
    assert connection.is_active is False
    assert connection.encrypted_access_token is None

    with pytest.raises(CredentialError):
        set_connection_active(test_db_session, connection, True)

    set_connection_active(test_db_session, connection, True, access_token="EAAB-new-token")
    assert connection.is_active is True
    assert decrypt_secret(connection.encrypted_access_token, context="test") == "EAAB-new-token"


def test_source_connection_reactivates_without_token(test_db_session, test_website):
    connection = create_connection(
        test_db_session,
        test_website,
        platform="shopify",
        config={"shop_domain": "qk-123.myshopify.com"},
    )
    set_connection_active(test_db_session, connection, False)
    set_connection_active(test_db_session, connection, True)

    assert connection.is_active is True
    assert connection.type == ConnectionTypeEnum.source
