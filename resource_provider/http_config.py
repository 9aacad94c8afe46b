# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""HTTP-specific configuration for the plugin server.

Extends ``CoreSettings`` with host/port binding. Only the HTTP entry
point (``main.py``, ``run_server.py``) needs it; library callers use
``CoreSettings`` from ``config.py`` directly.
"""

from pydantic import AliasChoices, Field

from .config import CoreSettings


class ServerSettings(CoreSettings):
    """HTTP plugin server settings extending CoreSettings."""

    host: str = Field(
        default="127.0.0.1",
        description="Host to bind the plugin server to",
        validation_alias=AliasChoices("PROVIDER_SERVER_HOST", "HOST"),
    )
    port: int = Field(
        default=8080,
        description="Port to run the plugin server on",
        validation_alias=AliasChoices("PROVIDER_SERVER_PORT", "PORT"),
    )


def get_settings() -> ServerSettings:
    """
    Get HTTP server settings.

    Loads settings from environment variables and .env file.

    Returns:
        ServerSettings instance
    """
    return ServerSettings()


# Global settings instance (lazy loaded)
_settings: ServerSettings | None = None


def settings() -> ServerSettings:
    """
    Get the global HTTP server settings instance.

    Creates the settings instance on first call and caches it.

    Returns:
        Global ServerSettings instance
    """
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings
