"""In-memory stand-in for the certificate manager, secret manager and RDS APIs.

Implements just enough of each service for lifecycle flows. Objects live
in dictionaries, every call is recorded in order, and failures can be
injected per method and path. Plug it into a client factory with
``ServiceClientFactory(settings, session_factory=cloud.session)``.
"""

import copy
import itertools
import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import requests

# 2023-11-14T22:13:20Z
EPOCH_MS = 1700000000000
DAY_MS = 24 * 60 * 60 * 1000

CERT_NOT_FOUND = {"error_code": "PCA.10010002", "error_msg": "The certificate does not exist."}


@dataclass
class RecordedCall:
    """One request received by the fake cloud."""

    method: str
    service: str
    path: str
    body: Any = None
    params: Optional[dict] = None


@dataclass
class InjectedFailure:
    method: str
    pattern: str
    status: int
    body: Any
    remaining: int


def make_response(status: int, body: Any = None, url: str = "") -> requests.Response:
    """Build a real ``requests.Response`` carrying a JSON body."""
    response = requests.Response()
    response.status_code = status
    response._content = b"" if body is None else json.dumps(body).encode("utf-8")
    response.encoding = "utf-8"
    response.url = url
    response.headers["Content-Type"] = "application/json"
    return response


class FakeSession(requests.Session):
    """Session whose requests never leave the process."""

    def __init__(self, cloud: "FakeCloud"):
        super().__init__()
        self.cloud = cloud

    def request(self, method, url, headers=None, json=None, params=None, timeout=None, **kwargs):
        return self.cloud.handle(method, url, json, params, headers=self.headers)


def _tag_list(tags: dict[str, str]) -> list[dict[str, str]]:
    return [{"key": k, "value": v} for k, v in sorted(tags.items())]


class FakeCloud:
    """Services ``ccm``, ``kms`` and ``rds`` of one fake account."""

    def __init__(self, job_polls: int = 1):
        """
        Args:
            job_polls: Status queries that report "Running" before a job completes
        """
        self.job_polls = job_polls
        self.calls: list[RecordedCall] = []
        self.auth_tokens: list[Optional[str]] = []
        self.failures: list[InjectedFailure] = []
        # failure reason for the next job started, if any
        self.next_job_failure: Optional[str] = None

        self.certificates: dict[str, dict] = {}
        self.secrets: dict[str, dict] = {}
        self.versions: dict[str, list[dict]] = {}
        self.instances: dict[str, dict] = {}
        self.auto_expansion: dict[str, dict] = {}
        self.jobs: dict[str, dict] = {}
        self.tags: dict[tuple[str, str], dict[str, str]] = {}

        self._ids = itertools.count(1)
        self._routes: dict[str, list[tuple[str, str, Callable]]] = {
            "ccm": [
                ("POST", r"v1/private-certificates", self._create_certificate),
                ("GET", r"v1/private-certificates/([^/]+)", self._get_certificate),
                ("DELETE", r"v1/private-certificates/([^/]+)", self._delete_certificate),
                ("POST", r"v1/private-certificates/([^/]+)/tags/create", self._certificate_tags_create),
                ("DELETE", r"v1/private-certificates/([^/]+)/tags/delete", self._certificate_tags_delete),
                ("GET", r"v1/private-certificates/([^/]+)/tags", self._certificate_tags_get),
            ],
            "kms": [
                ("POST", r"v1/[^/]+/secrets", self._create_secret),
                ("GET", r"v1/[^/]+/secrets/([^/]+)", self._get_secret),
                ("PUT", r"v1/[^/]+/secrets/([^/]+)", self._update_secret),
                ("DELETE", r"v1/[^/]+/secrets/([^/]+)", self._delete_secret),
                ("GET", r"v1/[^/]+/secrets/([^/]+)/versions", self._list_versions),
                ("POST", r"v1/[^/]+/secrets/([^/]+)/versions", self._create_version),
                ("GET", r"v1/[^/]+/secrets/([^/]+)/versions/([^/]+)", self._get_version),
                ("POST", r"v1/[^/]+/csms/([^/]+)/tags/action", self._secret_tags_action),
                ("GET", r"v1/[^/]+/csms/([^/]+)/tags", self._secret_tags_get),
            ],
            "rds": [
                ("POST", r"v3/[^/]+/instances", self._create_instance),
                ("GET", r"v3/[^/]+/instances", self._list_instances),
                ("DELETE", r"v3/[^/]+/instances/([^/]+)", self._delete_instance),
                ("POST", r"v3/[^/]+/instances/([^/]+)/action", self._instance_action),
                ("POST", r"v3/[^/]+/instances/([^/]+)/tags/action", self._instance_tags_action),
                ("GET", r"v3/[^/]+/instances/([^/]+)/disk-auto-expansion", self._get_auto_expansion),
                ("PUT", r"v3/[^/]+/instances/([^/]+)/disk-auto-expansion", self._set_auto_expansion),
                ("POST", r"v3/[^/]+/instances/([^/]+)/password", self._reset_password),
                (
                    "PUT",
                    r"v3/[^/]+/instances/([^/]+)/(name|alias|failover/mode|failover/strategy"
                    r"|collations|ops-window|configurations)",
                    self._modify_instance,
                ),
                ("GET", r"v3/[^/]+/jobs", self._get_job),
            ],
        }

    # ------------------------------------------------------------------
    # Harness
    # ------------------------------------------------------------------

    def session(self) -> FakeSession:
        """Session factory for ``ServiceClientFactory``."""
        return FakeSession(self)

    def fail(
        self,
        method: str,
        pattern: str,
        status: int = 500,
        body: Any = None,
        times: int = 1,
    ) -> None:
        """Make the next ``times`` calls matching ``method`` and path regex fail."""
        if body is None:
            body = {"error_code": "APIGW.0500", "error_msg": "injected failure"}
        self.failures.append(InjectedFailure(method, pattern, status, body, times))

    def calls_to(
        self, service: Optional[str] = None, method: Optional[str] = None, path: str = ""
    ) -> list[RecordedCall]:
        """Recorded calls filtered by service, method and path substring."""
        return [
            c
            for c in self.calls
            if (service is None or c.service == service)
            and (method is None or c.method == method)
            and path in c.path
        ]

    def mutations(self, service: Optional[str] = None) -> list[RecordedCall]:
        """Every non-GET call, in order."""
        return [c for c in self.calls_to(service) if c.method != "GET"]

    def clear_calls(self) -> None:
        self.calls.clear()

    def handle(self, method: str, url: str, body: Any, params: Any, headers=None) -> requests.Response:
        parts = urlsplit(url)
        service = (parts.hostname or "").split(".")[0]
        path = parts.path.lstrip("/")
        self.calls.append(
            RecordedCall(method, service, path, copy.deepcopy(body), dict(params or {}) or None)
        )
        self.auth_tokens.append((headers or {}).get("X-Auth-Token"))

        for failure in self.failures:
            if failure.remaining and failure.method == method and re.search(failure.pattern, path):
                failure.remaining -= 1
                return make_response(failure.status, failure.body, url)

        for route_method, pattern, handler in self._routes.get(service, []):
            if route_method != method:
                continue
            match = re.fullmatch(pattern, path)
            if match:
                status, payload = handler(body or {}, params or {}, *match.groups())
                return make_response(status, payload, url)

        return make_response(404, {"error_code": "APIGW.0101", "error_msg": "no route"}, url)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids):04d}"

    @staticmethod
    def _apply_tags(current: dict[str, str], action: str, tags: list[dict]) -> None:
        for tag in tags:
            if action == "create":
                current[tag["key"]] = tag.get("value", "")
            else:
                current.pop(tag["key"], None)

    def _start_job(self, on_complete: Callable[[], None]) -> str:
        job_id = self._next_id("job")
        self.jobs[job_id] = {
            "remaining": self.job_polls,
            "on_complete": on_complete,
            "done": False,
            "fail_reason": self.next_job_failure,
        }
        self.next_job_failure = None
        return job_id

    # ------------------------------------------------------------------
    # Certificate manager
    # ------------------------------------------------------------------

    def _create_certificate(self, body, params):
        certificate_id = self._next_id("cert")
        self.certificates[certificate_id] = {
            "certificate_id": certificate_id,
            "issuer_id": body.get("issuer_id"),
            "issuer_name": "root-ca",
            "key_algorithm": body.get("key_algorithm"),
            "signature_algorithm": body.get("signature_algorithm"),
            "distinguished_name": body.get("distinguished_name", {}),
            "status": "ISSUED",
            "gen_mode": "GENERATE",
            "enterprise_project_id": body.get("enterprise_project_id", "0"),
            "create_time": EPOCH_MS,
            "not_before": EPOCH_MS,
            "not_after": EPOCH_MS + 365 * DAY_MS,
        }
        self.tags[("ccm", certificate_id)] = {}
        return 200, {"certificate_id": certificate_id}

    def _get_certificate(self, body, params, certificate_id):
        if certificate_id not in self.certificates:
            return 400, CERT_NOT_FOUND
        return 200, self.certificates[certificate_id]

    def _delete_certificate(self, body, params, certificate_id):
        if self.certificates.pop(certificate_id, None) is None:
            return 400, CERT_NOT_FOUND
        self.tags.pop(("ccm", certificate_id), None)
        return 204, None

    def _certificate_tags_create(self, body, params, certificate_id):
        if certificate_id not in self.certificates:
            return 400, CERT_NOT_FOUND
        self._apply_tags(self.tags[("ccm", certificate_id)], "create", body.get("tags", []))
        return 204, None

    def _certificate_tags_delete(self, body, params, certificate_id):
        if certificate_id not in self.certificates:
            return 400, CERT_NOT_FOUND
        self._apply_tags(self.tags[("ccm", certificate_id)], "delete", body.get("tags", []))
        return 204, None

    def _certificate_tags_get(self, body, params, certificate_id):
        if certificate_id not in self.certificates:
            return 400, CERT_NOT_FOUND
        return 200, {"tags": _tag_list(self.tags[("ccm", certificate_id)])}

    # ------------------------------------------------------------------
    # Secret manager
    # ------------------------------------------------------------------

    def _secret_not_found(self, name):
        return 404, {"error_code": "CSMS.0401", "error_msg": f"secret {name} does not exist"}

    def _create_secret(self, body, params):
        name = body["name"]
        if name in self.secrets:
            return 400, {"error_code": "CSMS.0300", "error_msg": "secret already exists"}
        secret = {
            "id": self._next_id("secret"),
            "name": name,
            "kms_key_id": body.get("kms_key_id", "default-key"),
            "description": body.get("description", ""),
            "state": "ENABLED",
            "create_time": EPOCH_MS,
        }
        self.secrets[name] = secret
        self.versions[name] = [
            {"id": "v1", "create_time": EPOCH_MS, "secret_string": body.get("secret_string")}
        ]
        self.tags[("kms", secret["id"])] = {}
        return 200, {"secret": dict(secret)}

    def _get_secret(self, body, params, name):
        if name not in self.secrets:
            return self._secret_not_found(name)
        return 200, {"secret": dict(self.secrets[name])}

    def _update_secret(self, body, params, name):
        if name not in self.secrets:
            return self._secret_not_found(name)
        secret = self.secrets[name]
        if "kms_key_id" in body:
            secret["kms_key_id"] = body["kms_key_id"]
        if "description" in body:
            secret["description"] = body["description"]
        return 200, {"secret": dict(secret)}

    def _delete_secret(self, body, params, name):
        secret = self.secrets.pop(name, None)
        if secret is None:
            return self._secret_not_found(name)
        self.versions.pop(name, None)
        self.tags.pop(("kms", secret["id"]), None)
        return 204, None

    def _list_versions(self, body, params, name):
        if name not in self.secrets:
            return self._secret_not_found(name)
        return 200, {
            "version_metadatas": [
                {"id": v["id"], "create_time": v["create_time"]} for v in self.versions[name]
            ]
        }

    def _create_version(self, body, params, name):
        if name not in self.secrets:
            return self._secret_not_found(name)
        versions = self.versions[name]
        version = {
            "id": f"v{len(versions) + 1}",
            "create_time": versions[-1]["create_time"] + 1000,
            "secret_string": body.get("secret_string"),
        }
        versions.append(version)
        return 200, {"version_metadata": {"id": version["id"], "secret_name": name}}

    def _get_version(self, body, params, name, version_id):
        for version in self.versions.get(name, []):
            if version["id"] == version_id:
                return 200, {
                    "version": {
                        "version_metadata": {"id": version_id, "secret_name": name},
                        "secret_string": version["secret_string"],
                    }
                }
        return self._secret_not_found(name)

    def _secret_tags_action(self, body, params, secret_id):
        if ("kms", secret_id) not in self.tags:
            return 404, {"error_code": "CSMS.0401", "error_msg": "resource does not exist"}
        self._apply_tags(self.tags[("kms", secret_id)], body.get("action"), body.get("tags", []))
        return 204, None

    def _secret_tags_get(self, body, params, secret_id):
        if ("kms", secret_id) not in self.tags:
            return 404, {"error_code": "CSMS.0401", "error_msg": "resource does not exist"}
        return 200, {"tags": _tag_list(self.tags[("kms", secret_id)])}

    # ------------------------------------------------------------------
    # RDS
    # ------------------------------------------------------------------

    def _instance_not_found(self, instance_id):
        return 404, {"error_code": "DBS.200823", "error_msg": f"instance {instance_id} not found"}

    def _create_instance(self, body, params):
        instance_id = self._next_id("rds")
        ha = body.get("ha")
        self.instances[instance_id] = {
            "id": instance_id,
            "name": body.get("name"),
            "status": "BUILD",
            "alias": "",
            "datastore": body.get("datastore"),
            "flavor_ref": body.get("flavor_ref"),
            "volume": dict(body.get("volume") or {}),
            "region": body.get("region"),
            "vpc_id": body.get("vpc_id"),
            "subnet_id": body.get("subnet_id"),
            "security_group_id": body.get("security_group_id"),
            "port": int(body.get("port", "3306")),
            "private_ips": ["192.168.0.10"],
            "public_ips": [],
            "created": "2023-11-14T22:13:20+0000",
            "time_zone": body.get("time_zone", "UTC+08:00"),
            "enterprise_project_id": body.get("enterprise_project_id", "0"),
            "switch_strategy": "reliability",
            "maintenance_window": "02:00-06:00",
            "ha": {"mode": ha["mode"], "replication_mode": ha["replication_mode"]} if ha else None,
            "collation": body.get("collation"),
            "parameters": {},
        }
        self.auto_expansion[instance_id] = {"switch_option": False}
        tags: dict[str, str] = {}
        self._apply_tags(tags, "create", body.get("tags", []))
        self.tags[("rds", instance_id)] = tags

        def activate():
            self.instances[instance_id]["status"] = "ACTIVE"

        job_id = self._start_job(activate)
        return 202, {"instance": {"id": instance_id, "name": body.get("name")}, "job_id": job_id}

    def _list_instances(self, body, params):
        instance_id = params.get("id")
        found = []
        if instance_id in self.instances:
            instance = dict(self.instances[instance_id])
            instance["tags"] = _tag_list(self.tags[("rds", instance_id)])
            found.append(instance)
        return 200, {"instances": found, "total_count": len(found)}

    def _delete_instance(self, body, params, instance_id):
        if instance_id not in self.instances:
            return self._instance_not_found(instance_id)

        def remove():
            self.instances.pop(instance_id, None)
            self.tags.pop(("rds", instance_id), None)

        return 202, {"job_id": self._start_job(remove)}

    def _instance_action(self, body, params, instance_id):
        if instance_id not in self.instances:
            return self._instance_not_found(instance_id)
        instance = self.instances[instance_id]
        if "resize_flavor" in body:
            spec_code = body["resize_flavor"]["spec_code"]

            def apply():
                instance["flavor_ref"] = spec_code

        elif "enlarge_volume" in body:
            size = body["enlarge_volume"]["size"]

            def apply():
                instance["volume"]["size"] = size

        else:
            return 400, {"error_code": "DBS.200001", "error_msg": "unsupported action"}
        return 202, {"job_id": self._start_job(apply)}

    def _instance_tags_action(self, body, params, instance_id):
        if instance_id not in self.instances:
            return self._instance_not_found(instance_id)
        self._apply_tags(self.tags[("rds", instance_id)], body.get("action"), body.get("tags", []))
        return 200, {}

    def _get_auto_expansion(self, body, params, instance_id):
        if instance_id not in self.instances:
            return self._instance_not_found(instance_id)
        return 200, dict(self.auto_expansion[instance_id])

    def _set_auto_expansion(self, body, params, instance_id):
        if instance_id not in self.instances:
            return self._instance_not_found(instance_id)
        self.auto_expansion[instance_id] = dict(body)
        return 200, {}

    def _reset_password(self, body, params, instance_id):
        if instance_id not in self.instances:
            return self._instance_not_found(instance_id)
        return 200, {"resp": "successful"}

    def _modify_instance(self, body, params, instance_id, action):
        if instance_id not in self.instances:
            return self._instance_not_found(instance_id)
        instance = self.instances[instance_id]
        if action == "name":
            instance["name"] = body["name"]
        elif action == "alias":
            instance["alias"] = body["alias"]
        elif action == "failover/mode":
            instance["ha"] = {"mode": "ha", "replication_mode": body["mode"]}
            return 202, {"workflowId": self._next_id("wf")}
        elif action == "failover/strategy":
            instance["switch_strategy"] = body["repairStrategy"]
        elif action == "collations":
            instance["collation"] = body["collation"]
        elif action == "ops-window":
            instance["maintenance_window"] = f"{body['start_time']}-{body['end_time']}"
        elif action == "configurations":
            instance["parameters"].update(body["values"])
            return 200, {"restart_required": False}
        return 200, {}

    def _get_job(self, body, params):
        job_id = params.get("id")
        job = self.jobs.get(job_id)
        if job is None:
            return 404, {"error_code": "DBS.200019", "error_msg": f"job {job_id} not found"}
        if job["fail_reason"]:
            return 200, {"job": {"id": job_id, "status": "Failed", "fail_reason": job["fail_reason"]}}
        if job["remaining"] > 0:
            job["remaining"] -= 1
            return 200, {"job": {"id": job_id, "status": "Running"}}
        if not job["done"]:
            job["on_complete"]()
            job["done"] = True
        return 200, {"job": {"id": job_id, "status": "Completed"}}
