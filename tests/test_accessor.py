"""Tests for dot-path access into entity trees."""

from __future__ import annotations

import pytest

from rcm_workflow.rules.accessor import get_nested_value, set_nested_value


class TestGetNestedValue:
    """Tests for get_nested_value."""

    def test_reads_nested_key(self, sample_claim):
        """Test dot paths walk nested mappings."""
        assert get_nested_value(sample_claim, "patient.name") == "Jane Smith"

    def test_reads_list_index(self, sample_claim):
        """Test bracketed indices select list items."""
        assert get_nested_value(sample_claim, "items[1].procedure_code") == "99215"

    def test_reads_chained_indices(self):
        """Test consecutive indices select into nested lists."""
        assert get_nested_value({"matrix": [[1, 2], [3, 4]]}, "matrix[1][0]") == 3

    @pytest.mark.parametrize(
        "path",
        ["missing", "patient.missing.deeper", "items[5].procedure_code", "status.length", "items.0"],
    )
    def test_missing_paths_return_none(self, sample_claim, path):
        """Test unresolvable paths yield None instead of raising."""
        assert get_nested_value(sample_claim, path) is None

    def test_none_root(self):
        """Test a None entity yields None."""
        assert get_nested_value(None, "a.b") is None


class TestSetNestedValue:
    """Tests for set_nested_value."""

    def test_overwrites_existing_value(self, sample_claim):
        """Test existing leaves are replaced."""
        set_nested_value(sample_claim, "patient.name", "Janet Smith")
        assert sample_claim["patient"]["name"] == "Janet Smith"

    def test_creates_intermediate_mappings(self):
        """Test missing parents are created as dicts."""
        entity: dict = {}
        set_nested_value(entity, "review.flags.manual", True)
        assert entity == {"review": {"flags": {"manual": True}}}

    def test_creates_and_pads_lists(self):
        """Test index steps create lists padded with None."""
        entity: dict = {}
        set_nested_value(entity, "items[2].code", "A")
        assert entity == {"items": [None, None, {"code": "A"}]}

    def test_writes_into_existing_list(self, sample_claim):
        """Test index steps into existing list items."""
        set_nested_value(sample_claim, "items[0].line_amount", 175.0)
        assert sample_claim["items"][0]["line_amount"] == 175.0
        assert sample_claim["items"][1]["line_amount"] == 200.0

    def test_empty_path_rejected(self):
        """Test an empty path is an error."""
        with pytest.raises(ValueError):
            set_nested_value({}, "", 1)
