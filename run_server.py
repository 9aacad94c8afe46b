# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

#!/usr/bin/env python3
"""
Main entry point for the resource provider plugin server.

This script loads settings from the environment / .env file, configures
logging and starts the FastAPI server on the configured port (default: 8080).

Usage:
    python run_server.py

Or with uvicorn directly:
    uvicorn resource_provider.main:app --host 127.0.0.1 --port 8080
"""

import logging
import sys

import uvicorn

from resource_provider import __version__
from resource_provider.http_config import ServerSettings, settings
from resource_provider.resources import list_resource_types


def configure_logging(log_level: str) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Set uvicorn loggers to the same level
    logging.getLogger("uvicorn").setLevel(numeric_level)
    logging.getLogger("uvicorn.access").setLevel(numeric_level)
    logging.getLogger("uvicorn.error").setLevel(numeric_level)


def print_startup_banner(config: ServerSettings) -> None:
    """
    Print startup banner with configuration information.

    Args:
        config: Server settings
    """
    base_url = f"http://{config.host}:{config.port}"
    lines = [
        f"Declarative Resource Provider v{__version__}",
        f"  Host:        {config.host}",
        f"  Port:        {config.port}",
        f"  Environment: {config.environment}",
        f"  Log Level:   {config.log_level}",
        f"  Region:      {config.region or '(unset)'}",
        f"  Audit DB:    {config.audit_db_path if config.audit_enabled else '(disabled)'}",
        f"  Resources:   {', '.join(list_resource_types())}",
        f"  Health:      {base_url}/health",
        f"  Operations:  {base_url}/resources/<type>/<operation>",
    ]
    width = max(len(line) for line in lines) + 2
    print("=" * width)
    for line in lines:
        print(line)
    print("=" * width)


def main() -> None:
    """
    Main entry point for the plugin server.

    Loads configuration, configures logging, and starts the server.
    """
    config = settings()

    configure_logging(config.log_level)
    logger = logging.getLogger(__name__)

    print_startup_banner(config)

    logger.info("Starting resource provider plugin server...")
    logger.info(f"Server will listen on {config.host}:{config.port}")

    if not (config.region and config.project_id and config.auth_token):
        logger.warning(
            "Region, project ID or auth token is not configured. "
            "Server will start but every remote operation will fail."
        )

    try:
        uvicorn.run(
            "resource_provider.main:app",
            host=config.host,
            port=config.port,
            reload=config.debug,
            log_level=config.log_level.lower(),
            access_log=True,
        )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")


if __name__ == "__main__":
    main()
