"""Unit tests for settings loading."""

import pytest
from pydantic import ValidationError

from resource_provider.config import CoreSettings
from resource_provider.http_config import ServerSettings


class TestCoreSettings:
    """Test CoreSettings defaults and environment loading."""

    def test_defaults(self, monkeypatch):
        for name in ("PROVIDER_REGION", "CLOUD_REGION", "REGION", "PROVIDER_AUTH_TOKEN", "AUTH_TOKEN"):
            monkeypatch.delenv(name, raising=False)

        s = CoreSettings(_env_file=None)

        assert s.region == ""
        assert s.auth_token is None
        assert s.cloud_domain == "myhuaweicloud.com"
        assert s.max_retries == 3
        assert s.job_poll_interval_seconds == 10.0
        assert s.job_timeout_seconds == 1800.0
        assert s.audit_enabled is True

    def test_environment_variables(self, test_env):
        s = CoreSettings(_env_file=None)

        assert s.region == "cn-north-4"
        assert s.project_id == "proj-1"
        assert s.auth_token.get_secret_value() == "test-token"
        assert s.audit_db_path == test_env["AUDIT_DB_PATH"]
        assert s.log_level == "DEBUG"
        assert s.environment == "test"

    def test_region_alias(self, monkeypatch):
        monkeypatch.delenv("PROVIDER_REGION", raising=False)
        monkeypatch.setenv("CLOUD_REGION", "ap-southeast-1")
        assert CoreSettings(_env_file=None).region == "ap-southeast-1"

    def test_endpoint_overrides_parse_json(self, monkeypatch):
        monkeypatch.setenv("ENDPOINT_OVERRIDES", '{"kms": "http://localhost:9000/"}')
        s = CoreSettings(_env_file=None)
        assert s.endpoint_overrides == {"kms": "http://localhost:9000/"}

    def test_token_is_masked(self, core_settings):
        assert "test-token" not in repr(core_settings)

    @pytest.mark.parametrize(
        "field, value",
        [("max_retries", -1), ("request_timeout_seconds", 0), ("job_timeout_seconds", 0)],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            CoreSettings(_env_file=None, **{field: value})

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PROVIDER_PROJECT_ID", raising=False)
        monkeypatch.delenv("PROJECT_ID", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("PROVIDER_PROJECT_ID=proj-from-file\n")

        assert CoreSettings(_env_file=str(env_file)).project_id == "proj-from-file"


class TestServerSettings:
    """Test the plugin server settings."""

    def test_bind_defaults(self, monkeypatch):
        for name in ("PROVIDER_SERVER_HOST", "HOST", "PROVIDER_SERVER_PORT", "PORT"):
            monkeypatch.delenv(name, raising=False)

        s = ServerSettings(_env_file=None)

        assert s.host == "127.0.0.1"
        assert s.port == 8080

    def test_inherits_core_settings(self, test_env, monkeypatch):
        monkeypatch.setenv("PROVIDER_SERVER_PORT", "9090")

        s = ServerSettings(_env_file=None)

        assert s.port == 9090
        assert s.region == "cn-north-4"
