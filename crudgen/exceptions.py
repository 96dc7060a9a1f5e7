# File: crudgen/exceptions.py
"""
CrudGen - Exception Hierarchy
==============================

Every fault the generation pipeline can surface derives from
``CrudGenError`` so callers (the CLI, the orchestrator) can catch one type.

Fatal faults:
    - ``UnmappableTypeError``   — a column type with no mapping rule.
    - ``EnumTagCollisionError`` — two enum values share a tag.
    - ``NoColumnsError``        — introspection returned nothing to generate.
    - ``ArtifactIOError``       — an artifact could not be read or written.
    - ``ConfigError``           — unusable configuration input.

Recovered faults (malformed definition lines, primary-key lookups) never
raise; they are logged where they happen.
"""

from __future__ import annotations

from typing import List, Optional


class CrudGenError(Exception):
    """Base exception for all generation errors."""

    pass


class UnmappableTypeError(CrudGenError):
    """Raised when a native column type has no semantic mapping."""

    def __init__(self, native_type: str, table: str = "", column: str = "") -> None:
        self.native_type = native_type
        self.table = table
        self.column = column
        super().__init__(
            f"No compatible type found for `{native_type}`. "
            f"column: `{table}`.`{column}`"
        )


class EnumTagCollisionError(CrudGenError):
    """Raised when an enum field reuses a tag that is already taken."""

    def __init__(self, tag: int, existing_field: str, enum_name: str = "") -> None:
        self.tag = tag
        self.existing_field = existing_field
        self.enum_name = enum_name
        super().__init__(
            f"Tag `{tag}` is already in use by field `{existing_field}`"
            + (f" of enum `{enum_name}`" if enum_name else "")
        )


class NoColumnsError(CrudGenError):
    """Raised when the column source yields no columns to generate from."""

    def __init__(self, tables: Optional[List[str]] = None) -> None:
        self.tables = tables or []
        target: str = ", ".join(self.tables) if self.tables else "*"
        super().__init__(f"No columns to generate for tables: {target}")


class ArtifactIOError(CrudGenError):
    """Raised when an artifact cannot be read or written."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Artifact I/O error on {path}: {reason}")


class ConfigError(CrudGenError):
    """Raised for unreadable or invalid configuration input."""

    pass


__all__: List[str] = [
    "CrudGenError",
    "UnmappableTypeError",
    "EnumTagCollisionError",
    "NoColumnsError",
    "ArtifactIOError",
    "ConfigError",
]
