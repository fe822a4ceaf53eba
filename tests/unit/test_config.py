"""Unit tests for configuration management."""

import os
from collections.abc import Generator

import pytest

from invoice_processor.shared.config import Settings, get_settings


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables before and after test."""
    original_env = dict(os.environ)
    env_vars = [k for k in os.environ if k.upper().startswith("APP_")]
    for var in env_vars:
        del os.environ[var]
    yield
    os.environ.clear()
    os.environ.update(original_env)


def test_settings_defaults(clean_env: None) -> None:
    """Test that settings have correct default values."""
    settings = Settings(_env_file=None)

    assert settings.environment == "development"
    assert settings.log_level == "INFO"
    assert settings.service_name == "invoice-processor"
    assert settings.analysis_model_id == "prebuilt-invoice"
    assert settings.store_backend == "firestore"
    assert settings.storage_schemes == ["gs"]
    assert settings.storage_gateway_host == "firebasestorage.googleapis.com"
    assert settings.inventory_dedupe_invoices is True


def test_party_defaults(clean_env: None) -> None:
    """Test default supplier/customer lookup tables."""
    settings = Settings(_env_file=None)

    assert settings.supplier_name == "Aravindhan Agency"
    assert settings.customer_name == "Snowy Milk Parlour"
    assert "parlour" in settings.customer_keywords
    assert "agency" in settings.supplier_keywords


def test_settings_from_env_vars(clean_env: None) -> None:
    """Test that settings can be overridden via environment variables."""
    os.environ["APP_ENVIRONMENT"] = "production"
    os.environ["APP_LOG_LEVEL"] = "ERROR"
    os.environ["APP_STORE_BACKEND"] = "memory"
    os.environ["APP_SUPPLIER_KEYWORDS"] = '["acme"]'

    settings = Settings(_env_file=None)

    assert settings.environment == "production"
    assert settings.log_level == "ERROR"
    assert settings.store_backend == "memory"
    assert settings.supplier_keywords == ["acme"]


def test_settings_case_insensitive(clean_env: None) -> None:
    """Test that environment variables are case insensitive."""
    os.environ["app_log_level"] = "DEBUG"

    settings = Settings(_env_file=None)

    assert settings.log_level == "DEBUG"


def test_get_settings_factory() -> None:
    """Test that factory function returns Settings instance."""
    settings = get_settings()

    assert isinstance(settings, Settings)
