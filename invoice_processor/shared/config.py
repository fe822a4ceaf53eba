"""Shared configuration management for the invoice processor.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="invoice-processor",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Document analysis (Azure Document Intelligence / Form Recognizer)
    analysis_endpoint: str = Field(
        default="",
        description="Document analysis endpoint (use env var APP_ANALYSIS_ENDPOINT)",
    )
    analysis_key: str = Field(
        default="",
        description="Document analysis API key (use env var APP_ANALYSIS_KEY)",
    )
    analysis_model_id: str = Field(
        default="prebuilt-invoice",
        description="Prebuilt model used for invoice analysis",
    )

    # Document store configuration
    store_backend: Literal["firestore", "memory"] = Field(
        default="firestore",
        description="Document store: firestore (Google Cloud), memory (local development)",
    )
    firestore_project_id: str = Field(
        default="",
        description="Firestore project id",
    )
    firestore_credentials_json: str = Field(
        default="",
        description="Service account JSON blob (use env var APP_FIRESTORE_CREDENTIALS_JSON)",
    )

    # Image source configuration
    storage_gateway_host: str = Field(
        default="firebasestorage.googleapis.com",
        description="HTTPS gateway serving storage objects",
    )
    storage_schemes: list[str] = Field(
        default=["gs"],
        description="URL schemes treated as storage references (scheme://bucket/path)",
    )
    fetch_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for downloading invoice images",
        gt=0,
    )

    # Party lookup tables used by the reconciler
    supplier_name: str = Field(
        default="Aravindhan Agency",
        description="Canonical supplier name and fallback when none is found",
    )
    supplier_keywords: list[str] = Field(
        default=["aravindhan", "agency"],
        description="Lower-case keywords identifying the supplier",
    )
    customer_name: str = Field(
        default="Snowy Milk Parlour",
        description="Canonical customer name and fallback when none is found",
    )
    customer_keywords: list[str] = Field(
        default=["snowy", "milk", "parlour"],
        description="Lower-case keywords identifying the customer",
    )

    # Inventory aggregation
    inventory_dedupe_invoices: bool = Field(
        default=True,
        description="Skip items already aggregated from the same invoice id",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
