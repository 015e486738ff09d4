"""Tests for environment validation."""

import os
import subprocess
import sys
from pathlib import Path

import pytest

from clarity.exceptions import ConfigurationError
from clarity.settings import Settings, load_settings


def test_valid_environment_loads():
    settings = load_settings()

    assert isinstance(settings, Settings)
    assert settings.DATABASE_URL == "sqlite:///:memory:"
    assert settings.CLERK_JWT_KEY.startswith("-----BEGIN PUBLIC KEY-----")


def test_missing_variable_is_reported_by_name(monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY")

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()

    assert exc_info.value.fields == ["STRIPE_SECRET_KEY"]
    assert "STRIPE_SECRET_KEY" in str(exc_info.value)


def test_empty_string_counts_as_missing(monkeypatch):
    monkeypatch.setenv("CLERK_SECRET_KEY", "")

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()

    assert "CLERK_SECRET_KEY" in exc_info.value.fields


def test_all_bad_variables_are_listed(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "not a url")
    monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", "too-short")
    monkeypatch.setenv("POSTHOG_HOST", "us.i.posthog")

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()

    assert exc_info.value.fields == ["DATABASE_URL", "POSTHOG_HOST", "TOKEN_ENCRYPTION_KEY"]


def test_skip_flag_bypasses_validation(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
    monkeypatch.delenv("CLERK_SECRET_KEY")
    monkeypatch.setenv("POSTHOG_HOST", "not-a-url")

    settings = load_settings()

    assert settings.POSTHOG_HOST == "not-a-url"


def test_skip_flag_leaves_missing_variables_as_none(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
    monkeypatch.delenv("DATABASE_URL")
    monkeypatch.delenv("TOKEN_ENCRYPTION_KEY")

    settings = load_settings()

    assert settings.DATABASE_URL is None
    assert settings.TOKEN_ENCRYPTION_KEY is None
    assert settings.ADMIN_SECRET_KEY
    assert settings.cors_origins == ["http://localhost:3000"]


def test_app_imports_with_only_skip_flag_set(tmp_path):
    """Container image builds import the app with no environment at all."""
    project_root = Path(__file__).resolve().parents[2]
    env = {
        "SKIP_ENV_VALIDATION": "1",
        "PATH": os.environ.get("PATH", ""),
        "PYTHONPATH": str(project_root),
    }

    result = subprocess.run(
        [sys.executable, "-c", "import clarity.main; assert clarity.main.app"],
        cwd=tmp_path,
        env=env,
        capture_output=True,
        text=True,
        timeout=120,
    )

    assert result.returncode == 0, result.stderr


def test_skip_flag_false_still_validates(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "false")
    monkeypatch.delenv("CLERK_SECRET_KEY")

    with pytest.raises(ConfigurationError):
        load_settings()


def test_public_config_exposes_no_secrets():
    settings = load_settings()
    public = settings.public_config()

    assert set(public) == {"clerk_publishable_key", "posthog_key", "posthog_host"}
    assert settings.CLERK_SECRET_KEY not in public.values()
    assert settings.TOKEN_ENCRYPTION_KEY not in public.values()


def test_escaped_pem_newlines_are_restored(monkeypatch):
    monkeypatch.setenv("CLERK_JWT_KEY", "-----BEGIN PUBLIC KEY-----\\nABC\\n-----END PUBLIC KEY-----")

    assert load_settings().CLERK_JWT_KEY == "-----BEGIN PUBLIC KEY-----\nABC\n-----END PUBLIC KEY-----"


def test_cors_origins_are_split(monkeypatch):
    monkeypatch.setenv("BACKEND_CORS_ORIGINS", "https://app.claritytracking.com, http://localhost:3000,")

    assert load_settings().cors_origins == ["https://app.claritytracking.com", "http://localhost:3000"]
