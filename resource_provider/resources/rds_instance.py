# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Relational database (RDS) instance.

Creation, flavor resize, volume enlargement and deletion return a job
ID; the instance is only consistent once that job completes. Every
other in-place change has its own sub-action endpoint, called once per
changed attribute group.
"""

import logging
from typing import Any, Optional

from ..clients.http_client import DEFAULT_REQUEST_OPTIONS
from ..clients.tags import TagApiStyle
from ..exceptions import ReplacementRequiredError, ResourceNotFoundError
from ..models.schema import Attribute, AttributeType, ResourceDescriptor
from ..models.state import ChangeSet
from ..utils.path_search import path_search, search_as
from ..utils.payload import build_body, expand_singleton_block, expand_tags, flatten_tags
from .base import (
    ObservedStateBuilder,
    OperationContext,
    ResourceHandler,
    UpdateGroup,
    require_identifier,
)

logger = logging.getLogger(__name__)

INSTANCES_PATH = "v3/{project_id}/instances"

RDS_REQUEST_OPTIONS = DEFAULT_REQUEST_OPTIONS.merge(
    headers={"X-Language": "en-us"}, ok_codes=(200, 202)
)

RDS_INSTANCE = ResourceDescriptor(
    type_name="rds_instance",
    description="Managed relational database instance",
    attributes=(
        Attribute(
            name="region", type=AttributeType.STRING, optional=True, computed=True, force_new=True
        ),
        Attribute(name="name", type=AttributeType.STRING, required=True),
        Attribute(name="alias", type=AttributeType.STRING, optional=True),
        Attribute(
            name="datastore",
            type=AttributeType.BLOCK,
            required=True,
            force_new=True,
            max_items=1,
            block=(
                Attribute(name="type", type=AttributeType.STRING, required=True, force_new=True),
                Attribute(name="version", type=AttributeType.STRING, required=True, force_new=True),
            ),
        ),
        Attribute(name="flavor", type=AttributeType.STRING, required=True),
        Attribute(
            name="volume",
            type=AttributeType.BLOCK,
            required=True,
            max_items=1,
            block=(
                Attribute(name="type", type=AttributeType.STRING, required=True),
                Attribute(name="size", type=AttributeType.INT, required=True),
            ),
        ),
        Attribute(
            name="availability_zone",
            type=AttributeType.LIST,
            elem_type=AttributeType.STRING,
            required=True,
            force_new=True,
        ),
        Attribute(name="vpc_id", type=AttributeType.STRING, required=True, force_new=True),
        Attribute(name="subnet_id", type=AttributeType.STRING, required=True, force_new=True),
        Attribute(
            name="security_group_id", type=AttributeType.STRING, required=True, force_new=True
        ),
        Attribute(
            name="port", type=AttributeType.INT, optional=True, computed=True, force_new=True
        ),
        Attribute(name="password", type=AttributeType.STRING, optional=True, sensitive=True),
        Attribute(
            name="ha_replication_mode",
            type=AttributeType.STRING,
            optional=True,
            computed=True,
            allowed_values=("async", "semisync", "sync"),
        ),
        Attribute(
            name="switch_strategy",
            type=AttributeType.STRING,
            optional=True,
            computed=True,
            allowed_values=("reliability", "availability"),
        ),
        Attribute(name="collation", type=AttributeType.STRING, optional=True, computed=True),
        Attribute(
            name="maintain_begin",
            type=AttributeType.STRING,
            optional=True,
            computed=True,
            validation_regex=r"^\d{2}:00$",
        ),
        Attribute(
            name="maintain_end",
            type=AttributeType.STRING,
            optional=True,
            computed=True,
            validation_regex=r"^\d{2}:00$",
        ),
        Attribute(
            name="parameters", type=AttributeType.MAP, elem_type=AttributeType.STRING, optional=True
        ),
        Attribute(
            name="storage_auto_expansion",
            type=AttributeType.BLOCK,
            optional=True,
            max_items=1,
            block=(
                Attribute(name="limit_size", type=AttributeType.INT, required=True),
                Attribute(
                    name="trigger_threshold",
                    type=AttributeType.INT,
                    required=True,
                    allowed_values=(10, 15, 20),
                ),
            ),
        ),
        Attribute(
            name="time_zone", type=AttributeType.STRING, optional=True, computed=True, force_new=True
        ),
        Attribute(
            name="enterprise_project_id",
            type=AttributeType.STRING,
            optional=True,
            computed=True,
            force_new=True,
        ),
        Attribute(name="tags", type=AttributeType.MAP, elem_type=AttributeType.STRING, optional=True),
        Attribute(name="status", type=AttributeType.STRING, computed=True),
        Attribute(
            name="private_ips", type=AttributeType.LIST, elem_type=AttributeType.STRING, computed=True
        ),
        Attribute(
            name="public_ips", type=AttributeType.LIST, elem_type=AttributeType.STRING, computed=True
        ),
        Attribute(name="created", type=AttributeType.STRING, computed=True),
    ),
)


def build_create_body(
    desired: dict[str, Any], region: str, enterprise_project_id: Optional[str] = None
) -> dict[str, Any]:
    """Wire payload for ``POST v3/{project_id}/instances``."""
    datastore = expand_singleton_block(desired.get("datastore")) or {}
    volume = expand_singleton_block(desired.get("volume")) or {}
    ha = None
    if desired.get("ha_replication_mode"):
        ha = {"mode": "ha", "replication_mode": desired["ha_replication_mode"]}
    port = desired.get("port")

    return build_body(
        {
            "name": desired.get("name"),
            "datastore": {"type": datastore.get("type"), "version": datastore.get("version")},
            "ha": ha,
            "flavor_ref": desired.get("flavor"),
            "volume": {"type": volume.get("type"), "size": volume.get("size")},
            "region": region,
            "availability_zone": ",".join(desired.get("availability_zone") or []),
            "vpc_id": desired.get("vpc_id"),
            "subnet_id": desired.get("subnet_id"),
            "security_group_id": desired.get("security_group_id"),
            "port": str(port) if port is not None else None,
            "password": desired.get("password"),
            "time_zone": desired.get("time_zone"),
            "collation": desired.get("collation"),
            "enterprise_project_id": desired.get("enterprise_project_id") or enterprise_project_id,
            "tags": expand_tags(desired.get("tags")),
        },
        required=(
            "name",
            "datastore",
            "flavor_ref",
            "volume",
            "region",
            "availability_zone",
            "vpc_id",
            "subnet_id",
            "security_group_id",
        ),
    )


def split_maintenance_window(window: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """``"02:00-06:00"`` -> ``("02:00", "06:00")``."""
    if not window or "-" not in window:
        return None, None
    begin, end = window.split("-", 1)
    return begin, end


def volume_change(changes: ChangeSet) -> tuple[dict[str, Any], dict[str, Any]]:
    """Old and new ``volume`` blocks as plain dicts."""
    old_raw, new_raw = changes.get_change("volume")
    return expand_singleton_block(old_raw) or {}, expand_singleton_block(new_raw) or {}


class RdsInstanceHandler(ResourceHandler):
    """Relational database instances."""

    descriptor = RDS_INSTANCE
    service = "rds"
    tag_style = TagApiStyle.ACTION
    tags_in_body = True
    uses_jobs = True

    def instance_path(self, resource_id: str, action: str = "") -> str:
        path = f"{INSTANCES_PATH}/{resource_id}"
        return f"{path}/{action}" if action else path

    def tag_path(self, resource_id: str) -> Optional[str]:
        return self.instance_path(resource_id)

    def create(self, ctx: OperationContext) -> str:
        body = build_create_body(ctx.desired, ctx.region, ctx.enterprise_project_id)
        response = ctx.client.post(INSTANCES_PATH, json_body=body, options=RDS_REQUEST_OPTIONS)
        instance_id = require_identifier(response, "instance.id", self.type_name)
        ctx.resource_id = instance_id
        ctx.wait_for_job(search_as("job_id", response, str))
        return instance_id

    def fetch(self, ctx: OperationContext) -> dict[str, Any]:
        response = ctx.client.get(
            INSTANCES_PATH, params={"id": ctx.resource_id}, options=RDS_REQUEST_OPTIONS
        )
        instances = search_as("instances", response, list, [])
        if not instances:
            raise ResourceNotFoundError(
                f"{self.type_name} {ctx.resource_id} not found", resource_id=ctx.resource_id
            )
        return instances[0]

    def flatten(
        self, ctx: OperationContext, raw: dict[str, Any], state: ObservedStateBuilder
    ) -> None:
        for name in ("name", "status", "vpc_id", "subnet_id", "security_group_id", "created"):
            state.set(name, search_as(name, raw, str))
        for name in ("time_zone", "enterprise_project_id", "switch_strategy"):
            state.set(name, search_as(name, raw, str))
        state.set("alias", search_as("alias", raw, str, ""))
        state.set("flavor", search_as("flavor_ref", raw, str))
        state.set("port", search_as("port", raw, int))
        state.set("ha_replication_mode", search_as("ha.replication_mode", raw, str))
        state.set("private_ips", search_as("private_ips", raw, list, []))
        state.set("public_ips", search_as("public_ips", raw, list, []))
        state.set(
            "datastore",
            [
                {
                    "type": search_as("datastore.type", raw, str),
                    "version": search_as("datastore.version", raw, str),
                }
            ],
        )
        state.set(
            "volume",
            [
                {
                    "type": search_as("volume.type", raw, str),
                    "size": search_as("volume.size", raw, int),
                }
            ],
        )
        begin, end = split_maintenance_window(search_as("maintenance_window", raw, str))
        state.set("maintain_begin", begin)
        state.set("maintain_end", end)
        state.set("tags", flatten_tags(search_as("tags", raw, list, [])))
        state.set_from("storage_auto_expansion", lambda: self._auto_expansion(ctx))

    def _auto_expansion(self, ctx: OperationContext) -> list[dict[str, Any]]:
        response = ctx.client.get(
            self.instance_path(ctx.resource_id, "disk-auto-expansion"),
            options=RDS_REQUEST_OPTIONS,
        )
        if not path_search("switch_option", response, False):
            return []
        return [
            {
                "limit_size": search_as("limit_size", response, int),
                "trigger_threshold": search_as("trigger_threshold", response, int),
            }
        ]

    def replace_fields(self, changes: ChangeSet) -> list[str]:
        if not changes.has_change("volume"):
            return []
        old, new = volume_change(changes)
        if old.get("type") and old.get("type") != new.get("type"):
            return ["volume.type"]
        return []

    def update_groups(self) -> list[UpdateGroup]:
        return [
            UpdateGroup("name", ("name",), self._rename),
            UpdateGroup("alias", ("alias",), self._modify_alias),
            UpdateGroup("flavor", ("flavor",), self._resize_flavor),
            UpdateGroup("volume", ("volume",), self._enlarge_volume),
            UpdateGroup("replication_mode", ("ha_replication_mode",), self._modify_replication_mode),
            UpdateGroup("switch_strategy", ("switch_strategy",), self._modify_switch_strategy),
            UpdateGroup("collation", ("collation",), self._modify_collation),
            UpdateGroup(
                "maintenance_window", ("maintain_begin", "maintain_end"), self._modify_ops_window
            ),
            UpdateGroup("password", ("password",), self._reset_password),
            UpdateGroup("parameters", ("parameters",), self._modify_parameters),
            UpdateGroup(
                "storage_auto_expansion", ("storage_auto_expansion",), self._modify_auto_expansion
            ),
        ]

    def _call(self, ctx: OperationContext, method: str, action: str, body: dict) -> None:
        response = ctx.client.request(
            method,
            self.instance_path(ctx.resource_id, action),
            options=RDS_REQUEST_OPTIONS,
            json_body=body,
        )
        ctx.wait_for_job(search_as("job_id", response, str))

    def _rename(self, ctx: OperationContext) -> None:
        self._call(ctx, "PUT", "name", {"name": ctx.desired["name"]})

    def _modify_alias(self, ctx: OperationContext) -> None:
        self._call(ctx, "PUT", "alias", {"alias": ctx.desired.get("alias") or ""})

    def _resize_flavor(self, ctx: OperationContext) -> None:
        self._call(ctx, "POST", "action", {"resize_flavor": {"spec_code": ctx.desired["flavor"]}})

    def _enlarge_volume(self, ctx: OperationContext) -> None:
        replace = self.replace_fields(ctx.changes)
        if replace:
            raise ReplacementRequiredError(self.type_name, replace)
        old, new = volume_change(ctx.changes)
        if old.get("size") == new.get("size"):
            return
        self._call(ctx, "POST", "action", {"enlarge_volume": {"size": new.get("size")}})

    def _modify_replication_mode(self, ctx: OperationContext) -> None:
        self._call(ctx, "PUT", "failover/mode", {"mode": ctx.desired["ha_replication_mode"]})

    def _modify_switch_strategy(self, ctx: OperationContext) -> None:
        self._call(
            ctx, "PUT", "failover/strategy", {"repairStrategy": ctx.desired["switch_strategy"]}
        )

    def _modify_collation(self, ctx: OperationContext) -> None:
        self._call(ctx, "PUT", "collations", {"collation": ctx.desired["collation"]})

    def _modify_ops_window(self, ctx: OperationContext) -> None:
        self._call(
            ctx,
            "PUT",
            "ops-window",
            {
                "start_time": ctx.desired.get("maintain_begin"),
                "end_time": ctx.desired.get("maintain_end"),
            },
        )

    def _reset_password(self, ctx: OperationContext) -> None:
        self._call(ctx, "POST", "password", {"db_user_pwd": ctx.desired.get("password")})

    def _modify_parameters(self, ctx: OperationContext) -> None:
        values = {k: str(v) for k, v in (ctx.desired.get("parameters") or {}).items()}
        if not values:
            logger.info(f"Parameters removed from {ctx.resource_id}; remote values are kept")
            return
        self._call(ctx, "PUT", "configurations", {"values": values})

    def _modify_auto_expansion(self, ctx: OperationContext) -> None:
        config = expand_singleton_block(ctx.desired.get("storage_auto_expansion"))
        if config is None:
            body: dict[str, Any] = {"switch_option": False}
        else:
            body = {
                "switch_option": True,
                "limit_size": config.get("limit_size"),
                "trigger_threshold": config.get("trigger_threshold"),
            }
        self._call(ctx, "PUT", "disk-auto-expansion", body)

    def delete(self, ctx: OperationContext) -> None:
        response = ctx.client.delete(
            self.instance_path(ctx.resource_id), options=RDS_REQUEST_OPTIONS
        )
        ctx.wait_for_job(search_as("job_id", response, str))
