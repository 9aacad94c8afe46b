"""Health check data models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    """Health status response for the plugin server."""

    status: str = Field(
        ...,
        description="Overall health status: 'healthy', 'degraded' or 'unhealthy'",
        examples=["healthy"],
    )
    version: str = Field(..., description="Provider version", examples=["0.1.0"])
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Timestamp when health check was performed",
    )
    resource_types: list[str] = Field(
        default_factory=list, description="Resource kinds this provider manages"
    )
    credentials_configured: bool = Field(
        ..., description="Whether region, project and token are configured"
    )
    audit_connected: bool = Field(..., description="Whether the audit database is accessible")
