# File: crudgen/validators.py
"""
CrudGen - Schema & Configuration Validators
============================================
A **pure-function validation pipeline** over the models in
``crudgen.models``.

Pydantic handles per-field structure.  This module adds the cross-entity
checks: entity names unique across messages and custom messages, enums
without duplicate values, CRUD selectors that exist, a DSN when column mode
is requested, and so on.

Usage:
    from crudgen.validators import validate_full
    result = validate_full(schema, config)
    if not result:
        raise SystemExit(result.format_report())
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Set

from crudgen.models import CrudMethod, GenerationConfig, Schema
from crudgen.utils import is_identifier

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self, code: str, message: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self, code: str, message: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(
        self, code: str, message: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not any(e.is_error for e in self._items)

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


_KNOWN_CRUD_METHODS: Set[str] = {m.value for m in CrudMethod}


# ---------------------------------------------------------------------------
# Schema validators
# ---------------------------------------------------------------------------


def validate_entity_names(schema: Schema) -> ValidationResult:
    """
    Entity names must be identifiers and unique across ``messages`` and
    ``cus_messages``; both kinds end up in the same type namespace.
    """
    result: ValidationResult = ValidationResult()
    seen: Dict[str, str] = {}

    for kind, messages in (("message", schema.messages), ("custom", schema.cus_messages)):
        for message in messages:
            ctx: Dict[str, Any] = {"name": message.name, "kind": kind}
            if not is_identifier(message.name):
                result.add_error(
                    "INVALID_ENTITY_NAME",
                    f"Type name '{message.name}' is not a valid identifier.",
                    ctx,
                )
            if message.name in seen:
                result.add_error(
                    "DUPLICATE_ENTITY_NAME",
                    f"Type '{message.name}' is defined as both "
                    f"{seen[message.name]} and {kind}.",
                    ctx,
                )
            seen.setdefault(message.name, kind)

    return result


def validate_message_fields(schema: Schema) -> ValidationResult:
    result: ValidationResult = ValidationResult()

    for message in [*schema.messages, *schema.cus_messages]:
        if not message.fields:
            result.add_warning(
                "EMPTY_MESSAGE",
                f"Type '{message.name}' has no fields.",
                {"name": message.name},
            )
            continue
        names: Set[str] = set()
        for field in message.fields:
            if field.name in names:
                result.add_warning(
                    "DUPLICATE_FIELD",
                    f"Field '{field.name}' appears twice in '{message.name}'.",
                    {"name": message.name, "field": field.name},
                )
            names.add(field.name)

    return result


def validate_enum_definitions(schema: Schema) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    seen: Set[str] = set()

    for enum in schema.enums:
        ctx: Dict[str, Any] = {"enum": enum.name}
        if enum.name in seen:
            result.add_error(
                "DUPLICATE_ENUM_NAME",
                f"Enum '{enum.name}' is defined more than once.",
                ctx,
            )
        seen.add(enum.name)

        if not enum.fields:
            result.add_error("EMPTY_ENUM", f"Enum '{enum.name}' has no values.", ctx)

        values: Set[str] = set()
        for field in enum.fields:
            if field.name in values:
                result.add_warning(
                    "DUPLICATE_ENUM_VALUE",
                    f"Enum '{enum.name}' lists '{field.name}' more than once "
                    f"after normalisation.",
                    {**ctx, "value": field.name},
                )
            values.add(field.name)

    return result


# ---------------------------------------------------------------------------
# Config validators
# ---------------------------------------------------------------------------


def validate_generation_config(
    config: GenerationConfig, column_mode: bool = False
) -> ValidationResult:
    """
    Semantic checks on the configuration.

    *column_mode* is set when database introspection will run, which makes
    the DSN mandatory.
    """
    result: ValidationResult = ValidationResult()

    if not is_identifier(config.service_name):
        result.add_error(
            "INVALID_SERVICE_NAME",
            f"Service name '{config.service_name}' is not a valid identifier.",
            {"service_name": config.service_name},
        )

    for method in config.crud_methods:
        if method.strip() and method.strip().lower() not in _KNOWN_CRUD_METHODS:
            result.add_error(
                "UNKNOWN_CRUD_METHOD",
                f"CRUD method '{method}' is not one of "
                f"{', '.join(sorted(_KNOWN_CRUD_METHODS))}.",
                {"method": method},
            )

    if not config.dir:
        result.add_error("EMPTY_OUTPUT_DIR", "dir must not be empty.")

    if column_mode and not config.dsn:
        result.add_error(
            "MISSING_DSN",
            "Column mode needs a database URL (--dsn or CRUDGEN_DSN).",
        )

    overlap: Set[str] = set(config.tables) & set(config.ignore_tables)
    if overlap:
        result.add_warning(
            "TABLE_BOTH_SELECTED_AND_IGNORED",
            f"Tables both selected and ignored: {', '.join(sorted(overlap))}.",
            {"tables": sorted(overlap)},
        )

    return result


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def validate_schema(schema: Schema) -> ValidationResult:
    """Run all schema-level validators."""
    result: ValidationResult = ValidationResult()

    validators: List[Callable[[Schema], ValidationResult]] = [
        validate_entity_names,
        validate_message_fields,
        validate_enum_definitions,
    ]
    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(schema))

    logger.info("Schema validation complete: %s", result.summary())
    return result


def validate_config(
    config: GenerationConfig, column_mode: bool = False
) -> ValidationResult:
    result: ValidationResult = validate_generation_config(config, column_mode)
    logger.info("Config validation complete: %s", result.summary())
    return result


def validate_full(
    schema: Schema, config: GenerationConfig, column_mode: bool = False
) -> ValidationResult:
    """Schema and config validation in one result."""
    result: ValidationResult = ValidationResult()
    result.merge(validate_schema(schema))
    result.merge(validate_config(config, column_mode))

    if schema.service_name != config.service_name:
        result.add_warning(
            "SERVICE_NAME_MISMATCH",
            f"Schema service '{schema.service_name}' differs from configured "
            f"'{config.service_name}'.",
        )

    if not result.is_valid:
        logger.error("Validation FAILED with %d error(s).", result.error_count)
    else:
        logger.info("Validation PASSED. %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_entity_names",
    "validate_message_fields",
    "validate_enum_definitions",
    "validate_generation_config",
    "validate_schema",
    "validate_config",
    "validate_full",
]

logger.debug("crudgen.validators loaded — %d public symbols.", len(__all__))
