import pytest

from dal.util.logical_types import (
    logical_type_from_asyncpg_oid,
    logical_type_from_db_type,
    logical_type_from_mysql_type_code,
)


class TestLogicalTypeMapping:
    """Tests for logical type mapping utilities."""

    @pytest.mark.parametrize(
        "db_type,expected",
        [
            ("timestamptz", "timestamp"),
            ("datetime", "timestamp"),
            ("date", "date"),
            ("time", "time"),
            ("boolean", "boolean"),
            ("uuid", "uuid"),
            ("jsonb", "json"),
            ("numeric(10,2)", "numeric"),
            ("decimal", "numeric"),
            ("double precision", "float"),
            ("int4", "integer"),
            ("bigint unsigned", "integer"),
            ("varchar", "string"),
            ("text", "string"),
            ("geometry", "unknown"),
            (None, "unknown"),
        ],
    )
    def test_logical_type_from_db_type(self, db_type, expected):
        """Map db type strings to logical types."""
        assert logical_type_from_db_type(db_type) == expected

    @pytest.mark.parametrize(
        "oid,expected",
        [
            (16, "boolean"),
            (20, "integer"),
            (701, "float"),
            (1700, "numeric"),
            (1082, "date"),
            (1184, "timestamp"),
            (3802, "json"),
            (25, "string"),
            (999999, "unknown"),
            ("not-an-oid", "unknown"),
        ],
    )
    def test_logical_type_from_asyncpg_oid(self, oid, expected):
        """Map asyncpg OIDs to logical types."""
        assert logical_type_from_asyncpg_oid(oid) == expected

    @pytest.mark.parametrize(
        "type_code,expected",
        [
            (3, "integer"),
            (246, "numeric"),
            (12, "timestamp"),
            (253, "string"),
            (999, "unknown"),
            ("varchar", "string"),
            (None, "unknown"),
        ],
    )
    def test_logical_type_from_mysql_type_code(self, type_code, expected):
        """Map MySQL protocol type codes to logical types."""
        assert logical_type_from_mysql_type_code(type_code) == expected
