"""Pytest configuration and shared fixtures."""

from unittest.mock import MagicMock

import pytest

from fake_cloud import FakeCloud
from resource_provider.clients.client_factory import ServiceClientFactory
from resource_provider.clients.http_client import RemoteClient
from resource_provider.config import CoreSettings
from resource_provider.container import ProviderContainer
from resource_provider.services.audit_service import AuditService


# =============================================================================
# Environment and Configuration Fixtures
# =============================================================================

@pytest.fixture
def test_env(monkeypatch, tmp_path):
    """Set up test environment variables."""
    test_vars = {
        "PROVIDER_REGION": "cn-north-4",
        "PROVIDER_PROJECT_ID": "proj-1",
        "PROVIDER_AUTH_TOKEN": "test-token",
        "AUDIT_DB_PATH": str(tmp_path / "env_audit.db"),
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
    }
    for key, value in test_vars.items():
        monkeypatch.setenv(key, value)
    return test_vars


@pytest.fixture
def temp_db(tmp_path):
    """Path of a fresh audit database file."""
    return str(tmp_path / "audit.db")


@pytest.fixture
def core_settings(temp_db):
    """Settings with a complete account and no job poll delay."""
    return CoreSettings(
        _env_file=None,
        region="cn-north-4",
        project_id="proj-1",
        auth_token="test-token",
        audit_db_path=temp_db,
        job_poll_interval_seconds=0.0,
        job_timeout_seconds=60.0,
        max_retries=0,
    )


# =============================================================================
# Remote API Fakes
# =============================================================================

@pytest.fixture
def mock_client():
    """A RemoteClient double whose calls return empty bodies."""
    client = MagicMock(spec=RemoteClient)
    client.get.return_value = {}
    client.post.return_value = {}
    client.put.return_value = {}
    client.delete.return_value = {}
    client.request.return_value = {}
    return client


@pytest.fixture
def fake_cloud():
    """In-memory cloud API; jobs complete on their second status query."""
    return FakeCloud(job_polls=1)


@pytest.fixture
def client_factory(core_settings, fake_cloud):
    """Client factory whose clients talk to the fake cloud."""
    factory = ServiceClientFactory(core_settings, session_factory=fake_cloud.session)
    yield factory
    factory.clear_cache()


@pytest.fixture
def audit_service(temp_db):
    """AuditService backed by a temporary database."""
    return AuditService(db_path=temp_db)


@pytest.fixture
def provider(core_settings, client_factory):
    """Initialized container wired to the fake cloud."""
    container = ProviderContainer(settings=core_settings, client_factory=client_factory)
    container.initialize()
    yield container
    container.shutdown()


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def certificate_config():
    """Minimal valid private certificate configuration."""
    return {
        "issuer_id": "ca-0001",
        "key_algorithm": "RSA_2048",
        "signature_algorithm": "SHA256",
        "distinguished_name": [{"common_name": "cert-a"}],
        "validity": [{"type": "YEAR", "value": 1}],
    }


@pytest.fixture
def secret_config():
    """Minimal valid secret configuration."""
    return {"name": "db-password", "secret_text": "s3cr3t-value"}


@pytest.fixture
def rds_config():
    """Minimal valid RDS instance configuration."""
    return {
        "name": "orders-db",
        "datastore": [{"type": "MySQL", "version": "8.0"}],
        "flavor": "rds.mysql.n1.large.2",
        "volume": [{"type": "CLOUDSSD", "size": 40}],
        "availability_zone": ["cn-north-4a"],
        "vpc_id": "vpc-1",
        "subnet_id": "subnet-1",
        "security_group_id": "sg-1",
        "password": "Str0ng!Passw0rd",
    }


# =============================================================================
# Pytest Hooks for Test Reporting
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "property: marks tests as property-based tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark tests by directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "property" in str(item.fspath):
            item.add_marker(pytest.mark.property)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def pytest_sessionstart(session):
    """Print test session information."""
    print("\n" + "=" * 70)
    print("Declarative Resource Provider - Test Suite")
    print("=" * 70)


def pytest_sessionfinish(session, exitstatus):
    """Print test session summary."""
    print("\n" + "=" * 70)
    if exitstatus == 0:
        print("PASS: All tests passed!")
    else:
        print(f"FAIL: Tests failed with exit status: {exitstatus}")
    print("=" * 70)
