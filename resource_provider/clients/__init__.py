"""Cloud API client layer."""

from .client_factory import ServiceClientFactory
from .http_client import DEFAULT_REQUEST_OPTIONS, RemoteClient, RequestOptions
from .jobs import JobPoller
from .tags import TagApiStyle, TagClient

__all__ = [
    "ServiceClientFactory",
    "RemoteClient",
    "RequestOptions",
    "DEFAULT_REQUEST_OPTIONS",
    "JobPoller",
    "TagApiStyle",
    "TagClient",
]
