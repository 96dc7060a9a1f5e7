# File: crudgen/type_mapper.py
"""
CrudGen - Field Type Mapper
============================
Pure functions mapping a native MySQL column type onto the semantic field
vocabulary (``crudgen.models.FieldType``).

``enum`` / ``set`` columns synthesize an ``EnumDefinition`` from the literal
list found in the column's full type detail; the field then refers to the
enum by name.  ``decimal`` deliberately maps to ``string`` so no precision is
lost on the way through a float.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, FrozenSet, List, Optional, Tuple

from crudgen.exceptions import UnmappableTypeError
from crudgen.models import ColumnInfo, EnumDefinition, FieldType
from crudgen.utils import to_pascal_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.type_mapper")

# ---------------------------------------------------------------------------
# Type tables
# ---------------------------------------------------------------------------

STRING_TYPES: FrozenSet[str] = frozenset(
    {"char", "varchar", "text", "tinytext", "mediumtext", "longtext"}
)
ENUM_TYPES: FrozenSet[str] = frozenset({"enum", "set"})

_NATIVE_TYPE_MAP: Dict[str, FieldType] = {
    **{t: FieldType.STRING for t in STRING_TYPES},
    "blob": FieldType.BYTES,
    "mediumblob": FieldType.BYTES,
    "longblob": FieldType.BYTES,
    "binary": FieldType.BYTES,
    "varbinary": FieldType.BYTES,
    # temporal values travel as epoch integers
    "date": FieldType.INT64,
    "time": FieldType.INT64,
    "datetime": FieldType.INT64,
    "timestamp": FieldType.INT64,
    "bool": FieldType.BOOL,
    "boolean": FieldType.BOOL,
    "tinyint": FieldType.INT64,
    "smallint": FieldType.INT64,
    "mediumint": FieldType.INT64,
    "int": FieldType.INT64,
    "integer": FieldType.INT64,
    "bigint": FieldType.INT64,
    "decimal": FieldType.STRING,
    "double": FieldType.FLOAT64,
    "float": FieldType.FLOAT64,
}

_ENUM_LITERALS_RE: re.Pattern[str] = re.compile(r"(?:enum|set)\s*\((.+?)\)", re.IGNORECASE)
_ENUM_SPLIT_RE: re.Pattern[str] = re.compile(r"[,']")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_enum_values(column_type: str) -> Optional[List[str]]:
    """
    Extract the literal list of an ``enum(...)`` / ``set(...)`` type detail.

    Examples:
        >>> parse_enum_values("enum('a','b')")
        ['a', 'b']
        >>> parse_enum_values("varchar(20)") is None
        True
    """
    match: Optional[re.Match[str]] = _ENUM_LITERALS_RE.search(column_type)
    if match is None:
        return None
    return [part for part in _ENUM_SPLIT_RE.split(match.group(1)) if part.strip()]


def enum_name_for(column: ColumnInfo) -> str:
    """Enum type name: owning message name followed by the camel column name."""
    return to_pascal_case(column.table_name) + to_pascal_case(column.column_name)


def map_column_type(
    column: ColumnInfo,
) -> Tuple[str, Optional[EnumDefinition]]:
    """
    Map *column* onto a semantic type.

    Returns:
        ``(field_type, enum)`` where *enum* is the synthesized definition for
        ``enum`` / ``set`` columns and ``None`` otherwise.

    Raises:
        UnmappableTypeError: the native type has no mapping rule, or an enum
            column carries no literal list.
        EnumTagCollisionError: the synthesized enum repeats a tag.
    """
    native: str = column.data_type.strip().lower()

    if native in ENUM_TYPES:
        values: Optional[List[str]] = parse_enum_values(column.column_type)
        if not values:
            raise UnmappableTypeError(
                column.column_type or column.data_type,
                column.table_name,
                column.column_name,
            )
        name: str = enum_name_for(column)
        enum: EnumDefinition = EnumDefinition.from_values(
            name, column.column_comment, values
        )
        logger.debug(
            "Synthesized enum %s with %d value(s) from %s.%s.",
            name,
            len(values),
            column.table_name,
            column.column_name,
        )
        return name, enum

    field_type: Optional[FieldType] = _NATIVE_TYPE_MAP.get(native)
    if field_type is None:
        raise UnmappableTypeError(column.data_type, column.table_name, column.column_name)

    return field_type.value, None


def zero_value_literal(data_type: str) -> str:
    """Go zero-value literal for a primary key of the given native type."""
    if data_type.strip().lower() in STRING_TYPES:
        return '""'
    return "0"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "STRING_TYPES",
    "ENUM_TYPES",
    "parse_enum_values",
    "enum_name_for",
    "map_column_type",
    "zero_value_literal",
]
