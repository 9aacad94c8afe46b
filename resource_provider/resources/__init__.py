"""Resource kinds managed by the provider and their registry."""

from .base import (
    ObservedStateBuilder,
    OperationContext,
    ResourceHandler,
    UpdateGroup,
    parse_composite_id,
)
from .csms_secret import CsmsSecretHandler
from .private_certificate import PrivateCertificateHandler
from .rds_instance import RdsInstanceHandler

HANDLERS: dict[str, type[ResourceHandler]] = {
    handler.descriptor.type_name: handler
    for handler in (PrivateCertificateHandler, CsmsSecretHandler, RdsInstanceHandler)
}


def get_handler(type_name: str) -> ResourceHandler:
    """
    Instantiate the handler for a resource type.

    Raises:
        KeyError: If the resource type is not managed by this provider
    """
    try:
        return HANDLERS[type_name]()
    except KeyError:
        raise KeyError(f"unknown resource type: {type_name}") from None


def list_resource_types() -> list[str]:
    """Names of all managed resource types, sorted."""
    return sorted(HANDLERS)


__all__ = [
    "HANDLERS",
    "ObservedStateBuilder",
    "OperationContext",
    "ResourceHandler",
    "UpdateGroup",
    "parse_composite_id",
    "CsmsSecretHandler",
    "PrivateCertificateHandler",
    "RdsInstanceHandler",
    "get_handler",
    "list_resource_types",
]
