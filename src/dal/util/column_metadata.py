"""Helpers for building row-set field metadata from driver descriptions."""

from __future__ import annotations

from typing import Any, List, Optional

from dal.models import FieldMeta
from dal.util.logical_types import (
    logical_type_from_asyncpg_oid,
    logical_type_from_db_type,
    logical_type_from_mysql_type_code,
)


def fields_from_asyncpg_attributes(attrs: Optional[List[Any]]) -> List[FieldMeta]:
    """Build field metadata from asyncpg prepared-statement attributes."""
    fields: List[FieldMeta] = []
    for attr in attrs or []:
        name = getattr(attr, "name", None) or str(attr)
        attr_type = getattr(attr, "type", None)
        db_type = getattr(attr_type, "name", None) if attr_type is not None else None
        oid = getattr(attr_type, "oid", None) if attr_type is not None else None
        logical_type = (
            logical_type_from_asyncpg_oid(oid)
            if oid is not None
            else logical_type_from_db_type(db_type)
        )
        fields.append(FieldMeta(name=name, type=logical_type, db_type=db_type))
    return fields


def fields_from_cursor_description(description: Optional[list]) -> List[FieldMeta]:
    """Build field metadata from DB-API cursor description tuples (aiomysql)."""
    fields: List[FieldMeta] = []
    for entry in description or []:
        if isinstance(entry, (list, tuple)) and entry:
            name = entry[0]
            type_code = entry[1] if len(entry) > 1 else None
        else:
            name = getattr(entry, "name", None)
            type_code = getattr(entry, "type_code", None)
        fields.append(
            FieldMeta(
                name=str(name),
                type=logical_type_from_mysql_type_code(type_code),
                db_type=str(type_code) if type_code is not None else None,
            )
        )
    return fields
