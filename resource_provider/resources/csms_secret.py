# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Secret stored in the cloud secret manager (CSMS).

The secret manager shares its endpoint with the key management service.
A secret is addressed by name, so the handle is ``<secret_id>/<name>``.
Its value is append-only: changing ``secret_text`` creates a new
version, and state only ever holds the hash of the latest version.
"""

import logging
from typing import Any, Optional

from ..clients.tags import TagApiStyle
from ..exceptions import RemoteAPIError
from ..models.schema import Attribute, AttributeType, ResourceDescriptor
from ..utils.path_search import path_search, search_as
from ..utils.payload import build_body, hash_and_hex_encode
from ..utils.timeutils import UTC_DISPLAY_FORMAT, format_epoch_millis
from .base import (
    ObservedStateBuilder,
    OperationContext,
    ResourceHandler,
    UpdateGroup,
    parse_composite_id,
    require_identifier,
)

logger = logging.getLogger(__name__)

SECRETS_PATH = "v1/{project_id}/secrets"
TAG_RESOURCE_TYPE = "csms"
SECRET_NAME_PATTERN = r"^[\w\-.]{1,64}$"

CSMS_SECRET = ResourceDescriptor(
    type_name="csms_secret",
    description="Secret with versioned value in the secret manager",
    attributes=(
        Attribute(
            name="region", type=AttributeType.STRING, optional=True, computed=True, force_new=True
        ),
        Attribute(
            name="name",
            type=AttributeType.STRING,
            required=True,
            force_new=True,
            validation_regex=SECRET_NAME_PATTERN,
            description=(
                "At most 64 letters, digits, underscores (_), hyphens (-) and dots (.)"
            ),
        ),
        Attribute(name="secret_text", type=AttributeType.STRING, required=True, sensitive=True),
        Attribute(name="kms_key_id", type=AttributeType.STRING, optional=True, computed=True),
        Attribute(name="description", type=AttributeType.STRING, optional=True),
        Attribute(name="tags", type=AttributeType.MAP, elem_type=AttributeType.STRING, optional=True),
        Attribute(name="secret_id", type=AttributeType.STRING, computed=True),
        Attribute(name="latest_version", type=AttributeType.STRING, computed=True),
        Attribute(name="status", type=AttributeType.STRING, computed=True),
        Attribute(name="create_time", type=AttributeType.STRING, computed=True),
    ),
)


def split_handle(handle: str) -> tuple[str, str]:
    """Secret ID and name from a ``<id>/<name>`` handle."""
    parts = parse_composite_id(handle, parts=("secret_id", "name"))
    return parts["secret_id"], parts["name"]


def latest_version_id(versions: list[dict[str, Any]]) -> Optional[str]:
    """ID of the most recently created version, None for an empty list."""
    if not versions:
        return None
    newest = sorted(versions, key=lambda v: path_search("create_time", v, 0), reverse=True)[0]
    return search_as("id", newest, str)


class CsmsSecretHandler(ResourceHandler):
    """Secret manager secrets."""

    descriptor = CSMS_SECRET
    service = "kms"
    tag_style = TagApiStyle.ACTION

    def remote_id(self, resource_id: str) -> str:
        return split_handle(resource_id)[0]

    def tag_path(self, resource_id: str) -> Optional[str]:
        return f"v1/{{project_id}}/{TAG_RESOURCE_TYPE}/{self.remote_id(resource_id)}"

    def create(self, ctx: OperationContext) -> str:
        name = ctx.desired["name"]
        body = build_body(
            {
                "name": name,
                "kms_key_id": ctx.desired.get("kms_key_id"),
                "description": ctx.desired.get("description"),
                "secret_string": ctx.desired.get("secret_text"),
            },
            required=("name", "secret_string"),
        )
        logger.debug(f"Creating secret {name} (kms_key_id={body.get('kms_key_id')})")
        response = ctx.client.post(SECRETS_PATH, json_body=body)
        secret_id = require_identifier(response, "secret.id", self.type_name)
        return f"{secret_id}/{name}"

    def fetch(self, ctx: OperationContext) -> dict[str, Any]:
        _, name = split_handle(ctx.resource_id)
        return ctx.client.get(f"{SECRETS_PATH}/{name}")

    def flatten(
        self, ctx: OperationContext, raw: dict[str, Any], state: ObservedStateBuilder
    ) -> None:
        _, name = split_handle(ctx.resource_id)
        state.set("secret_id", search_as("secret.id", raw, str))
        state.set("name", search_as("secret.name", raw, str))
        state.set("kms_key_id", search_as("secret.kms_key_id", raw, str))
        state.set("description", search_as("secret.description", raw, str, ""))
        state.set("status", search_as("secret.state", raw, str))
        state.set(
            "create_time",
            format_epoch_millis(path_search("secret.create_time", raw, 0), UTC_DISPLAY_FORMAT),
        )

        try:
            version = self._latest_version(ctx, name)
        except (RemoteAPIError, ValueError) as e:
            state.add_error(e)
            return
        state.set(
            "secret_text", hash_and_hex_encode(search_as("version.secret_string", version, str))
        )
        state.set("latest_version", search_as("version.version_metadata.id", version, str))

    def _latest_version(self, ctx: OperationContext, name: str) -> dict[str, Any]:
        versions = ctx.client.get(f"{SECRETS_PATH}/{name}/versions")
        version_id = latest_version_id(search_as("version_metadatas", versions, list, []))
        if not version_id:
            raise ValueError(f"secret {name} has no versions")
        return ctx.client.get(f"{SECRETS_PATH}/{name}/versions/{version_id}")

    def update_groups(self) -> list[UpdateGroup]:
        return [
            UpdateGroup("base_info", ("kms_key_id", "description"), self._update_base_info),
            UpdateGroup("secret_text", ("secret_text",), self._create_version),
        ]

    def _update_base_info(self, ctx: OperationContext) -> None:
        _, name = split_handle(ctx.resource_id)
        body = build_body({"kms_key_id": ctx.desired.get("kms_key_id")})
        # an empty description clears it, so it is always sent
        body["description"] = ctx.desired.get("description") or ""
        ctx.client.put(f"{SECRETS_PATH}/{name}", json_body=body)

    def _create_version(self, ctx: OperationContext) -> None:
        _, name = split_handle(ctx.resource_id)
        ctx.client.post(
            f"{SECRETS_PATH}/{name}/versions",
            json_body={"secret_string": ctx.desired.get("secret_text")},
        )

    def delete(self, ctx: OperationContext) -> None:
        _, name = split_handle(ctx.resource_id)
        ctx.client.delete(f"{SECRETS_PATH}/{name}")

    def parse_import_id(self, raw_id: str) -> tuple[str, dict[str, Any]]:
        secret_id, name = split_handle(raw_id)
        return raw_id, {"secret_id": secret_id, "name": name}
