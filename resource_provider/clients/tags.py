"""Tag side-channel: batch tag create/delete/list on a resource."""

import logging
from enum import Enum
from typing import Mapping

from .http_client import RemoteClient
from ..utils.path_search import search_as
from ..utils.payload import expand_tags, flatten_tags

logger = logging.getLogger(__name__)


class TagApiStyle(str, Enum):
    """How a service exposes tag mutation."""

    # POST {base}/tags/create and DELETE {base}/tags/delete
    SPLIT = "split"
    # POST {base}/tags/action with {"action": "create" | "delete"}
    ACTION = "action"


class TagClient:
    """
    Tag operations for one remote object.

    ``base_path`` addresses the tagged object, e.g.
    ``v1/private-certificates/{id}``; the tag endpoints hang off it.
    """

    def __init__(self, client: RemoteClient, base_path: str, style: TagApiStyle):
        self.client = client
        self.base_path = base_path.rstrip("/")
        self.style = style

    def create_tags(self, tags: Mapping[str, str]) -> None:
        """Attach tags in one batch call. No call for an empty mapping."""
        if not tags:
            return
        body = {"tags": expand_tags(tags)}
        if self.style == TagApiStyle.ACTION:
            body["action"] = "create"
            self.client.post(f"{self.base_path}/tags/action", json_body=body)
        else:
            self.client.post(f"{self.base_path}/tags/create", json_body=body)
        logger.debug(f"Created {len(tags)} tag(s) on {self.base_path}")

    def delete_tags(self, tags: Mapping[str, str]) -> None:
        """Detach tags in one batch call. No call for an empty mapping."""
        if not tags:
            return
        body = {"tags": expand_tags(tags)}
        if self.style == TagApiStyle.ACTION:
            body["action"] = "delete"
            self.client.post(f"{self.base_path}/tags/action", json_body=body)
        else:
            self.client.delete(f"{self.base_path}/tags/delete", json_body=body)
        logger.debug(f"Deleted {len(tags)} tag(s) on {self.base_path}")

    def get_tags(self) -> dict[str, str]:
        """Current tags of the object as a mapping."""
        response = self.client.get(f"{self.base_path}/tags")
        return flatten_tags(search_as("tags", response, list, []))
