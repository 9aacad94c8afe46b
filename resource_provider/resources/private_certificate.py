# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Private certificate issued by a private CA in the certificate manager.

Every attribute except ``tags`` is fixed at creation; tags are managed
through the certificate's split tag endpoints.
"""

import logging
from typing import Any, Optional

from ..clients.tags import TagApiStyle
from ..models.schema import Attribute, AttributeType, ResourceDescriptor
from ..utils.path_search import path_search, search_as
from ..utils.payload import build_body, expand_singleton_block, value_ignore_empty
from ..utils.timeutils import format_epoch_millis
from .base import ObservedStateBuilder, OperationContext, ResourceHandler, require_identifier

logger = logging.getLogger(__name__)

COLLECTION_PATH = "v1/private-certificates"
NOT_FOUND_CODE = "PCA.10010002"

DISTINGUISHED_NAME_FIELDS = (
    "common_name",
    "country",
    "state",
    "locality",
    "organization",
    "organizational_unit",
)
EXTENDED_KEY_USAGE_FIELDS = (
    "server_auth",
    "client_auth",
    "code_signing",
    "email_protection",
    "time_stamping",
)


def _string(name: str, **flags: Any) -> Attribute:
    return Attribute(name=name, type=AttributeType.STRING, **flags)


PRIVATE_CERTIFICATE = ResourceDescriptor(
    type_name="private_certificate",
    description="Private certificate signed by a private certificate authority",
    attributes=(
        _string("region", optional=True, computed=True, force_new=True),
        _string("issuer_id", required=True, force_new=True, description="Issuing CA ID"),
        _string("key_algorithm", required=True, force_new=True),
        _string("signature_algorithm", required=True, force_new=True),
        Attribute(
            name="distinguished_name",
            type=AttributeType.BLOCK,
            required=True,
            force_new=True,
            max_items=1,
            block=(
                _string("common_name", required=True, force_new=True),
                _string("country", optional=True, computed=True, force_new=True),
                _string("state", optional=True, computed=True, force_new=True),
                _string("locality", optional=True, computed=True, force_new=True),
                _string("organization", optional=True, computed=True, force_new=True),
                _string("organizational_unit", optional=True, computed=True, force_new=True),
            ),
        ),
        Attribute(
            name="validity",
            type=AttributeType.BLOCK,
            required=True,
            force_new=True,
            max_items=1,
            block=(
                _string("type", required=True, force_new=True),
                Attribute(name="value", type=AttributeType.INT, required=True, force_new=True),
                _string("start_at", optional=True, force_new=True),
            ),
        ),
        Attribute(
            name="subject_alternative_names",
            type=AttributeType.BLOCK,
            optional=True,
            force_new=True,
            block=(
                _string("type", required=True, force_new=True),
                _string("value", required=True, force_new=True),
            ),
        ),
        Attribute(
            name="key_usage",
            type=AttributeType.LIST,
            elem_type=AttributeType.STRING,
            optional=True,
            force_new=True,
        ),
        *(
            Attribute(name=name, type=AttributeType.BOOL, optional=True, force_new=True)
            for name in EXTENDED_KEY_USAGE_FIELDS
        ),
        _string("object_identifier", optional=True, force_new=True),
        _string("object_identifier_value", optional=True, force_new=True),
        _string("enterprise_project_id", optional=True, computed=True, force_new=True),
        Attribute(name="tags", type=AttributeType.MAP, elem_type=AttributeType.STRING, optional=True),
        _string("issuer_name", computed=True),
        _string("status", computed=True),
        _string("start_at", computed=True),
        _string("expired_at", computed=True),
        _string("gen_mode", computed=True),
        _string("created_at", computed=True),
    ),
)


def build_distinguished_name(raw: Any) -> Optional[dict[str, Any]]:
    block = expand_singleton_block(raw)
    if block is None:
        return None
    return {name: block.get(name) for name in DISTINGUISHED_NAME_FIELDS}


def build_validity(raw: Any) -> Optional[dict[str, Any]]:
    block = expand_singleton_block(raw)
    if block is None:
        return None
    return {
        "type": block.get("type"),
        "value": block.get("value"),
        "start_from": value_ignore_empty(block.get("start_at")),
    }


def build_subject_alternative_names(raw: Any) -> list[dict[str, Any]]:
    if isinstance(raw, dict):
        raw = [raw]
    return [
        {"type": path_search("type", item), "value": path_search("value", item)}
        for item in raw or []
    ]


def build_create_body(desired: dict[str, Any], enterprise_project_id: Optional[str] = None) -> dict:
    """Wire payload for ``POST v1/private-certificates``."""
    return build_body(
        {
            "issuer_id": desired.get("issuer_id"),
            "key_algorithm": desired.get("key_algorithm"),
            "signature_algorithm": desired.get("signature_algorithm"),
            "distinguished_name": build_distinguished_name(desired.get("distinguished_name")),
            "validity": build_validity(desired.get("validity")),
            "enterprise_project_id": value_ignore_empty(
                desired.get("enterprise_project_id") or enterprise_project_id
            ),
            "key_usage": desired.get("key_usage"),
            "extended_key_usage": {name: desired.get(name) for name in EXTENDED_KEY_USAGE_FIELDS},
            "customized_extension": {
                "object_identifier": desired.get("object_identifier"),
                "value": desired.get("object_identifier_value"),
            },
            "subject_alternative_names": build_subject_alternative_names(
                desired.get("subject_alternative_names")
            ),
        },
        required=("issuer_id", "key_algorithm", "signature_algorithm"),
    )


def flatten_distinguished_name(raw: dict[str, Any]) -> list[dict[str, Any]]:
    block = path_search("distinguished_name", raw)
    if not isinstance(block, dict):
        return []
    return [{name: search_as(name, block, str) for name in DISTINGUISHED_NAME_FIELDS}]


class PrivateCertificateHandler(ResourceHandler):
    """Certificate manager private certificates."""

    descriptor = PRIVATE_CERTIFICATE
    service = "ccm"
    not_found_codes = (NOT_FOUND_CODE,)
    tag_style = TagApiStyle.SPLIT

    def tag_path(self, resource_id: str) -> Optional[str]:
        return f"{COLLECTION_PATH}/{resource_id}"

    def create(self, ctx: OperationContext) -> str:
        body = build_create_body(ctx.desired, ctx.enterprise_project_id)
        response = ctx.client.post(COLLECTION_PATH, json_body=body)
        return require_identifier(response, "certificate_id", self.type_name)

    def fetch(self, ctx: OperationContext) -> dict[str, Any]:
        return ctx.client.get(f"{COLLECTION_PATH}/{ctx.resource_id}")

    def flatten(
        self, ctx: OperationContext, raw: dict[str, Any], state: ObservedStateBuilder
    ) -> None:
        state.set("distinguished_name", flatten_distinguished_name(raw))
        for name in (
            "issuer_id",
            "key_algorithm",
            "signature_algorithm",
            "enterprise_project_id",
            "issuer_name",
            "status",
            "gen_mode",
        ):
            state.set(name, search_as(name, raw, str))
        state.set("start_at", format_epoch_millis(path_search("not_before", raw, 0)))
        state.set("expired_at", format_epoch_millis(path_search("not_after", raw, 0)))
        state.set("created_at", format_epoch_millis(path_search("create_time", raw, 0)))

    def delete(self, ctx: OperationContext) -> None:
        ctx.client.delete(f"{COLLECTION_PATH}/{ctx.resource_id}")
