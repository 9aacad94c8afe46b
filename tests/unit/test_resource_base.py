"""Unit tests for shared resource kind plumbing."""

from unittest.mock import MagicMock

import pytest

from resource_provider.exceptions import (
    InvalidIdentifierFormatError,
    MissingIdentifierError,
    PartialFieldSetError,
    RemoteAPIError,
)
from resource_provider.resources.base import (
    ObservedStateBuilder,
    OperationContext,
    parse_composite_id,
    require_identifier,
)
from resource_provider.resources.private_certificate import (
    PRIVATE_CERTIFICATE,
    PrivateCertificateHandler,
)


class TestObservedStateBuilder:
    """Tests for collecting observed attributes."""

    def test_collects_values(self):
        state = ObservedStateBuilder(PRIVATE_CERTIFICATE)
        state.set("status", "ISSUED")
        state.set("issuer_name", None)

        assert state.build() == {"status": "ISSUED", "issuer_name": None}

    def test_collects_every_failure(self):
        """Test that all failures are reported together, not just the first."""
        state = ObservedStateBuilder(PRIVATE_CERTIFICATE)
        state.set("status", 42)
        state.set("no_such_attribute", "x")
        state.set("issuer_name", "root-ca")

        with pytest.raises(PartialFieldSetError) as exc_info:
            state.build()

        assert len(exc_info.value.errors) == 2
        assert exc_info.value.type_name == "private_certificate"
        assert "failed to set 2 attribute(s)" in str(exc_info.value)

    def test_set_from_records_getter_failure(self):
        state = ObservedStateBuilder(PRIVATE_CERTIFICATE)

        def failing():
            raise RemoteAPIError("GET failed", status_code=500)

        state.set_from("status", failing)
        state.set_from("issuer_name", lambda: "root-ca")

        assert len(state.errors) == 1
        assert "status" in str(state.errors[0])
        assert state.values == {"issuer_name": "root-ca"}

    def test_add_error(self):
        state = ObservedStateBuilder(PRIVATE_CERTIFICATE)
        state.add_error(ValueError("versions unavailable"))
        with pytest.raises(PartialFieldSetError, match="versions unavailable"):
            state.build()


class TestParseCompositeId:
    """Tests for parse_composite_id."""

    def test_two_segments(self):
        assert parse_composite_id("abc/my-secret") == {"id": "abc", "name": "my-secret"}

    def test_custom_part_names(self):
        parts = parse_composite_id("abc/name", parts=("secret_id", "name"))
        assert parts == {"secret_id": "abc", "name": "name"}

    @pytest.mark.parametrize("raw", ["", "abc", "abc/", "/name", "a/b/c", None])
    def test_malformed(self, raw):
        with pytest.raises(InvalidIdentifierFormatError, match="format must be"):
            parse_composite_id(raw)


class TestRequireIdentifier:
    """Tests for require_identifier."""

    def test_returns_identifier(self):
        assert require_identifier({"instance": {"id": "i-1"}}, "instance.id", "rds_instance") == "i-1"

    @pytest.mark.parametrize("response", [{}, {"instance": {}}, {"instance": {"id": ""}}])
    def test_missing_identifier(self, response):
        with pytest.raises(MissingIdentifierError, match="instance.id is not found"):
            require_identifier(response, "instance.id", "rds_instance")


class TestOperationContext:
    """Tests for job waiting through the context."""

    def test_no_job_id_is_a_no_op(self, mock_client):
        poller = MagicMock()
        OperationContext(client=mock_client, poller=poller).wait_for_job(None)
        poller.wait.assert_not_called()

    def test_waits_on_job(self, mock_client):
        poller = MagicMock()
        OperationContext(client=mock_client, poller=poller).wait_for_job("job-1")
        poller.wait.assert_called_once_with("job-1")

    def test_job_without_poller(self, mock_client):
        with pytest.raises(RuntimeError, match="no job poller"):
            OperationContext(client=mock_client).wait_for_job("job-1")


class TestResourceHandlerDefaults:
    """Tests for the base handler behaviour."""

    def test_designated_code_is_not_found_regardless_of_status(self):
        handler = PrivateCertificateHandler()
        error = RemoteAPIError("x", status_code=400, error_code="PCA.10010002")
        assert handler.is_not_found(error)

    def test_plain_404_is_not_found(self):
        handler = PrivateCertificateHandler()
        assert handler.is_not_found(RemoteAPIError("x", status_code=404))

    def test_other_errors_are_not_not_found(self):
        handler = PrivateCertificateHandler()
        assert not handler.is_not_found(
            RemoteAPIError("x", status_code=400, error_code="PCA.10010001")
        )
        assert not handler.is_not_found(RemoteAPIError("x", status_code=500))

    def test_bare_import_id(self):
        assert PrivateCertificateHandler().parse_import_id(" cert-1 ") == ("cert-1", {})

    @pytest.mark.parametrize("raw", ["", "   ", "a/b"])
    def test_malformed_bare_import_id(self, raw):
        with pytest.raises(InvalidIdentifierFormatError):
            PrivateCertificateHandler().parse_import_id(raw)
