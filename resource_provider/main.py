"""FastAPI application entry point for the resource provider plugin server.

A declarative engine drives the provider over HTTP: it asks for a plan,
then calls create, read, update, delete or import for one resource
instance at a time. Every error is sanitized before it leaves the
process.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .container import ProviderContainer
from .exceptions import ProviderError, ResourceNotFoundError
from .http_config import settings
from .models import AuditLogEntry, AuditStatus, HealthStatus, PlanResult, ResourceState
from .services.lifecycle import ResourceLifecycle
from .utils.correlation import CorrelationIDMiddleware, get_correlation_id_for_logging
from .utils.error_sanitization import redact_attributes, redact_sensitive_info, sanitize_exception

logger = logging.getLogger(__name__)

# Global container (populated by the lifespan)
container: Optional[ProviderContainer] = None


# Request models
class PlanRequest(BaseModel):
    """Request model for planning one resource instance."""

    id: str = Field("", description="Current handle; empty when the resource does not exist")
    old: Optional[dict[str, Any]] = Field(None, description="Previously applied desired state")
    new: Optional[dict[str, Any]] = Field(None, description="Desired state; null to remove")


class CreateRequest(BaseModel):
    """Request model for creating a resource."""

    desired: dict[str, Any]


class ReadRequest(BaseModel):
    """Request model for reading or deleting a resource."""

    id: str
    attributes: dict[str, Any] = Field(default_factory=dict)


class UpdateRequest(BaseModel):
    """Request model for an in-place update."""

    id: str
    old: dict[str, Any] = Field(default_factory=dict)
    new: dict[str, Any]


class ImportRequest(BaseModel):
    """Request model for importing an existing resource."""

    id: str
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="Extra context such as the region"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - startup and shutdown.

    Builds the provider container on startup and releases its clients
    on shutdown.
    """
    global container

    logger.info("Starting resource provider plugin server")
    app_settings = settings()

    container = ProviderContainer(settings=app_settings)
    container.initialize()
    logger.info(
        f"Resource provider v{__version__} started on port {app_settings.port} "
        f"with resource types {container.resource_types}"
    )

    yield

    logger.info("Shutting down resource provider plugin server")
    container.shutdown()
    container = None
    logger.info("Shutdown complete")


app = FastAPI(
    title="Declarative Resource Provider",
    description=(
        "Reconciles declared cloud resources (private certificates, secrets, "
        "database instances) against the cloud API."
    ),
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(CorrelationIDMiddleware)


def get_container() -> ProviderContainer:
    """Dependency returning the initialized container."""
    if container is None or not container.initialized:
        raise HTTPException(status_code=503, detail="Provider not initialized")
    return container


def get_lifecycle(
    type_name: str, provider: ProviderContainer = Depends(get_container)
) -> ResourceLifecycle:
    """Dependency resolving the orchestrator for the path's resource type."""
    try:
        return provider.get_lifecycle(type_name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown resource type: {type_name}")


def _response(lifecycle: ResourceLifecycle, state: ResourceState) -> dict[str, Any]:
    """Serialize a state with sensitive attributes masked."""
    data = state.model_dump(mode="json")
    data["attributes"] = redact_attributes(
        state.attributes, lifecycle.handler.descriptor.sensitive_fields
    )
    return data


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    """Map provider errors to sanitized JSON responses."""
    sanitized = sanitize_exception(exc)
    reason = redact_sensitive_info(sanitized.internal_message)
    logger.warning(
        f"{request.method} {request.url.path} failed: {reason}",
        extra=get_correlation_id_for_logging(),
    )
    return JSONResponse(status_code=sanitized.status_code, content=sanitized.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    Logs the error and returns a sanitized error response.
    """
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    sanitized = sanitize_exception(exc)
    return JSONResponse(status_code=sanitized.status_code, content=sanitized.to_dict())


@app.get("/health", response_model=HealthStatus)
def health_check() -> HealthStatus:
    """
    Health check endpoint for monitoring server status.

    Healthy when credentials are configured and the audit database (if
    enabled) is reachable; degraded when either is missing.
    """
    if container is None or not container.initialized:
        return HealthStatus(
            status="unhealthy",
            version=__version__,
            credentials_configured=False,
            audit_connected=False,
        )

    audit_connected = bool(container.audit_service and container.audit_service.is_connected())
    audit_ok = audit_connected or not container.settings.audit_enabled
    status = "healthy" if container.credentials_configured and audit_ok else "degraded"

    return HealthStatus(
        status=status,
        version=__version__,
        resource_types=container.resource_types,
        credentials_configured=container.credentials_configured,
        audit_connected=audit_connected,
    )


@app.get("/")
def root():
    """Server information and endpoint index."""
    return {
        "name": "Declarative Resource Provider",
        "version": __version__,
        "endpoints": {
            "health": "/health",
            "resources": "/resources",
            "schema": "/resources/{type}/schema",
            "operations": "/resources/{type}/{plan|create|read|update|delete|import}",
            "audit": "/audit",
        },
    }


@app.get("/resources")
def list_resources(provider: ProviderContainer = Depends(get_container)):
    """List the managed resource types."""
    return {"resource_types": provider.resource_types}


@app.get("/resources/{type_name}/schema")
def get_schema(lifecycle: ResourceLifecycle = Depends(get_lifecycle)):
    """Descriptor of a resource type."""
    return lifecycle.handler.descriptor.model_dump(mode="json")


@app.post("/resources/{type_name}/plan", response_model=PlanResult)
def plan_resource(
    request: PlanRequest, lifecycle: ResourceLifecycle = Depends(get_lifecycle)
) -> PlanResult:
    return lifecycle.plan(request.old, request.new, request.id)


@app.post("/resources/{type_name}/create")
def create_resource(request: CreateRequest, lifecycle: ResourceLifecycle = Depends(get_lifecycle)):
    return _response(lifecycle, lifecycle.create(request.desired))


@app.post("/resources/{type_name}/read")
def read_resource(request: ReadRequest, lifecycle: ResourceLifecycle = Depends(get_lifecycle)):
    return _response(lifecycle, lifecycle.read(request.id, request.attributes))


@app.post("/resources/{type_name}/update")
def update_resource(request: UpdateRequest, lifecycle: ResourceLifecycle = Depends(get_lifecycle)):
    return _response(lifecycle, lifecycle.update(request.id, request.old, request.new))


@app.post("/resources/{type_name}/delete")
def delete_resource(request: ReadRequest, lifecycle: ResourceLifecycle = Depends(get_lifecycle)):
    return _response(lifecycle, lifecycle.delete(request.id, request.attributes))


@app.post("/resources/{type_name}/import")
def import_resource(request: ImportRequest, lifecycle: ResourceLifecycle = Depends(get_lifecycle)):
    """Resolve an import identifier, then read the object it names."""
    imported = lifecycle.import_state(request.id)
    attributes = {**request.attributes, **imported.attributes}
    state = lifecycle.read(imported.id, attributes)
    if not state.exists:
        raise ResourceNotFoundError(
            f"{lifecycle.type_name} {imported.id} does not exist", resource_id=imported.id
        )
    return _response(lifecycle, state)


@app.get("/audit", response_model=list[AuditLogEntry])
def get_audit_logs(
    resource_type: Optional[str] = None,
    operation: Optional[str] = None,
    status: Optional[AuditStatus] = None,
    limit: int = Query(100, ge=1, le=1000),
    provider: ProviderContainer = Depends(get_container),
) -> list[AuditLogEntry]:
    """Recent audit entries, newest first."""
    if provider.audit_service is None:
        raise HTTPException(status_code=503, detail="Audit trail is disabled")
    return provider.audit_service.get_logs(
        resource_type=resource_type, operation=operation, status=status, limit=limit
    )
