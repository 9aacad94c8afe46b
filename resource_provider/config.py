"""Configuration management for the resource provider.

This module handles loading and validating configuration from environment
variables with sensible defaults.
"""

from typing import Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """
    Provider settings loaded from environment variables.

    Covers everything the orchestrator and the clients need. The HTTP
    plugin server extends this with bind settings in ``http_config``.
    """

    # Cloud account
    region: str = Field(
        default="",
        description="Default region for service endpoints",
        validation_alias=AliasChoices("PROVIDER_REGION", "CLOUD_REGION", "REGION"),
    )
    project_id: str = Field(
        default="",
        description="Project the resources belong to",
        validation_alias=AliasChoices("PROVIDER_PROJECT_ID", "PROJECT_ID"),
    )
    cloud_domain: str = Field(
        default="myhuaweicloud.com",
        description="Domain used to derive service endpoints",
        validation_alias="CLOUD_DOMAIN",
    )
    auth_token: Optional[SecretStr] = Field(
        default=None,
        description="Token sent as X-Auth-Token on every API call",
        validation_alias=AliasChoices("PROVIDER_AUTH_TOKEN", "AUTH_TOKEN"),
    )
    enterprise_project_id: Optional[str] = Field(
        default=None,
        description="Default enterprise project for new resources",
        validation_alias="ENTERPRISE_PROJECT_ID",
    )
    endpoint_overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Service name to endpoint URL overrides (JSON object)",
        validation_alias="ENDPOINT_OVERRIDES",
    )

    # Remote calls
    request_timeout_seconds: int = Field(
        default=30,
        ge=1,
        description="Timeout for a single API call",
        validation_alias="REQUEST_TIMEOUT_SECONDS",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for throttled API calls",
        validation_alias="MAX_RETRIES",
    )
    job_poll_interval_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="Delay between polls of an asynchronous job",
        validation_alias="JOB_POLL_INTERVAL_SECONDS",
    )
    job_timeout_seconds: float = Field(
        default=1800.0,
        gt=0.0,
        description="Maximum time to wait for an asynchronous job",
        validation_alias="JOB_TIMEOUT_SECONDS",
    )

    # Runtime
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="LOG_LEVEL",
    )
    environment: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
        validation_alias=AliasChoices("ENVIRONMENT", "ENV"),
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
        validation_alias="DEBUG",
    )

    # Audit trail
    audit_enabled: bool = Field(
        default=True,
        description="Record every lifecycle operation in the audit database",
        validation_alias="AUDIT_ENABLED",
    )
    audit_db_path: str = Field(
        default="provider_audit.db",
        description="Path to the audit SQLite database",
        validation_alias="AUDIT_DB_PATH",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


def get_settings() -> CoreSettings:
    """
    Build a fresh settings instance.

    Loads settings from environment variables and .env file.

    Returns:
        CoreSettings instance
    """
    return CoreSettings()


# Global settings instance (lazy loaded)
_settings: Optional[CoreSettings] = None


def settings() -> CoreSettings:
    """
    Get the global settings instance.

    Creates the settings instance on first call and caches it.

    Returns:
        Global CoreSettings instance
    """
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings
