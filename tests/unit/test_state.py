"""Unit tests for change sets and resource state models."""

import pytest

from resource_provider.models.state import (
    ChangeSet,
    LifecycleStatus,
    ResourceState,
    normalize_value,
)


class TestNormalizeValue:
    """Tests for comparison normalization."""

    @pytest.mark.parametrize("value", [None, "", [], {}, {"a": None}, [None, ""]])
    def test_empty_values_normalize_to_none(self, value):
        assert normalize_value(value) is None

    def test_non_empty_values_are_cleaned(self):
        assert normalize_value({"a": 1, "b": None}) == {"a": 1}


class TestChangeSet:
    """Tests for ChangeSet computation and queries."""

    def test_detects_changed_added_and_removed(self):
        old = {"name": "a", "alias": "x", "size": 1}
        new = {"name": "b", "size": 1, "tags": {"env": "dev"}}

        changes = ChangeSet.compute(old, new)

        assert changes.changed_fields == ["alias", "name", "tags"]
        assert changes.get_change("name") == ("a", "b")
        assert changes.get_change("alias") == ("x", None)

    def test_empty_equals_absent(self):
        """Test that None, "" and empty containers do not count as changes."""
        changes = ChangeSet.compute({"alias": "", "tags": {}}, {"description": None})
        assert not changes
        assert len(changes) == 0

    def test_restricted_to_fields(self):
        changes = ChangeSet.compute({"a": 1, "b": 1}, {"a": 2, "b": 2}, fields=["b"])
        assert changes.changed_fields == ["b"]

    def test_has_change(self):
        changes = ChangeSet.compute({"maintain_begin": "02:00"}, {"maintain_begin": "03:00"})
        assert changes.has_change("maintain_begin", "maintain_end")
        assert not changes.has_change("maintain_end")

    def test_get_change_of_unchanged_field_raises(self):
        with pytest.raises(KeyError):
            ChangeSet.compute({"a": 1}, {"a": 1}).get_change("a")

    def test_without(self):
        changes = ChangeSet.compute({}, {"a": 1, "b": 2}).without(["a"])
        assert changes.changed_fields == ["b"]

    def test_handles_none_inputs(self):
        assert ChangeSet.compute(None, {"a": 1}).changed_fields == ["a"]
        assert not ChangeSet.compute(None, None)

    def test_is_immutable(self):
        changes = ChangeSet.compute({}, {"a": 1})
        with pytest.raises(Exception):
            changes.changes = ()


class TestResourceState:
    """Tests for ResourceState."""

    def test_present_with_id_exists(self):
        state = ResourceState(resource_type="t", id="x", status=LifecycleStatus.PRESENT)
        assert state.exists

    def test_absent_does_not_exist(self):
        assert not ResourceState(resource_type="t").exists

    def test_importing_with_id_exists(self):
        state = ResourceState(resource_type="t", id="x", status=LifecycleStatus.IMPORTING)
        assert state.exists

    def test_serializes_status_value(self):
        state = ResourceState(resource_type="t", id="x", status=LifecycleStatus.PRESENT)
        assert state.model_dump(mode="json")["status"] == "present"
