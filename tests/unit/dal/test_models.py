import pytest
from pydantic import ValidationError

from dal.models import ExecutionResult, FieldMeta


class TestExecutionResult:
    """Tests for the two result shapes."""

    def test_row_set(self):
        result = ExecutionResult.row_set(
            [{"a": 1, "b": "x"}], [FieldMeta(name="a"), FieldMeta(name="b")]
        )
        assert result.is_row_set
        assert result.column_names() == ["a", "b"]
        assert result.as_lists() == [[1, "x"]]

    def test_row_set_without_fields_uses_row_keys(self):
        result = ExecutionResult.row_set([{"x": 1, "y": 2}])
        assert result.column_names() == ["x", "y"]

    def test_mutation(self):
        result = ExecutionResult.mutation(affected_rows=2, insert_id=7)
        assert not result.is_row_set
        assert result.message == "Query OK, 2 row(s) affected"
        assert result.as_lists() == []

    def test_shapes_are_exclusive(self):
        """A result is either a row-set or a summary, never both or neither."""
        with pytest.raises(ValidationError):
            ExecutionResult()
        with pytest.raises(ValidationError):
            ExecutionResult(rows=[], message="both")
        with pytest.raises(ValidationError):
            ExecutionResult(rows=[], affected_rows=1)
