# File: crudgen/extractor.py
"""
CrudGen - Schema Extractor
===========================
Builds the ``Schema`` from either source:

- **Column mode** — a flat, ordered list of ``ColumnInfo`` rows is grouped by
  table (first-seen order) into one ``Message`` per table.  Strict: any type
  mapping failure aborts the whole pass and nothing is added to the schema.
- **Definition-block mode** — the message names listed in a ``.proto``
  directive section become ``cus_messages``.  Best effort: unparseable lines
  and missing blocks are skipped with a diagnostic.

Both modes append only enums not already present and finalize the schema.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from crudgen.exceptions import NoColumnsError
from crudgen.introspection import SchemaSource
from crudgen.models import (
    ColumnInfo,
    EnumDefinition,
    GenerationConfig,
    Message,
    MessageField,
    ProtoFile,
    ProtoMessage,
    Schema,
)
from crudgen.proto import parse_proto
from crudgen.type_mapper import map_column_type
from crudgen.utils import Timer, go_camel_name, to_pascal_case, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.extractor")


# ---------------------------------------------------------------------------
# Column mode
# ---------------------------------------------------------------------------


def extract_from_columns(
    schema: Schema,
    columns: Sequence[ColumnInfo],
    ignore_tables: Optional[Iterable[str]] = None,
) -> Schema:
    """
    Populate ``schema.messages`` and ``schema.enums`` from column rows.

    Raises:
        NoColumnsError: nothing is left once ignored tables are dropped.
        UnmappableTypeError: a column type has no mapping rule.
        EnumTagCollisionError: a synthesized enum repeats a tag.
    """
    ignored: Set[str] = {t.strip() for t in (ignore_tables or []) if t.strip()}
    kept: List[ColumnInfo] = [c for c in columns if c.table_name not in ignored]
    if not kept:
        raise NoColumnsError(sorted({c.table_name for c in columns}))

    # attached to the schema only after every column mapped
    grouped: Dict[str, Message] = {}
    new_enums: List[EnumDefinition] = []

    for column in kept:
        message_name: str = to_pascal_case(column.table_name)
        message: Optional[Message] = grouped.get(message_name)
        if message is None:
            message = Message(name=message_name, comment=column.table_comment)
            grouped[message_name] = message

        field_type, enum = map_column_type(column)
        if enum is not None:
            new_enums.append(enum)

        message.append_field(
            MessageField(
                type=field_type,
                name=column.column_name,
                comment=column.column_comment,
                column_name=column.column_name,
            )
        )

    existing_messages: Set[str] = set(schema.message_names)
    for name, message in grouped.items():
        if name in existing_messages:
            logger.warning("Message %s already extracted; keeping the first one.", name)
            continue
        schema.messages.append(message)

    _append_new_enums(schema, new_enums)

    logger.info(
        "Column mode: %d message(s), %d enum(s) from %d column(s).",
        len(grouped),
        len(new_enums),
        len(kept),
    )
    return schema.finalize()


# ---------------------------------------------------------------------------
# Definition-block mode
# ---------------------------------------------------------------------------


def _message_from_block(block: ProtoMessage) -> Message:
    message: Message = Message(name=go_camel_name(block.name), comment=block.name)
    for field in block.fields:
        field_type: str = f"[]{field.type}" if field.is_repeated else field.type
        message.append_field(
            MessageField(
                type=field_type,
                name=field.name,
                comment=field.comment,
                column_name=to_snake_case(field.name),
            )
        )
    return message


def extract_from_proto(schema: Schema, source: Union[str, ProtoFile]) -> Schema:
    """
    Populate ``schema.cus_messages`` from the blocks named in the directive
    section of *source* (raw text or an already parsed ``ProtoFile``).

    Never raises on malformed input.
    """
    proto: ProtoFile = parse_proto(source) if isinstance(source, str) else source

    existing: Set[str] = set(schema.cus_message_names)
    added: int = 0
    for name in proto.directives:
        block: Optional[ProtoMessage] = proto.get_message(name)
        if block is None:
            logger.warning("Directive names message %r but no such block exists; skipped.", name)
            continue
        if block.skipped_lines:
            logger.info(
                "Message %s: %d line(s) did not parse as fields.",
                name,
                len(block.skipped_lines),
            )

        message: Message = _message_from_block(block)
        if message.name in existing:
            continue
        existing.add(message.name)
        schema.cus_messages.append(message)
        added += 1

    logger.info(
        "Definition-block mode: %d of %d listed message(s) extracted.",
        added,
        len(proto.directives),
    )
    return schema.finalize()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _append_new_enums(schema: Schema, enums: Iterable[EnumDefinition]) -> None:
    present: Set[str] = set(schema.enum_names)
    for enum in enums:
        if enum.name not in present:
            present.add(enum.name)
            schema.enums.append(enum)


def new_schema(config: GenerationConfig) -> Schema:
    return Schema(
        service_name=config.service_name,
        dir=config.dir,
        generate_crud_methods=list(config.crud_methods),
    )


def build_schema(
    config: GenerationConfig,
    source: Optional[SchemaSource] = None,
    proto_text: Optional[str] = None,
) -> Schema:
    """
    Build a finalized ``Schema`` for *config*.

    Column mode runs when *source* is given, definition-block mode when
    *proto_text* is given; both may run in one call.  The caller owns the
    source and any connection behind it.
    """
    schema: Schema = new_schema(config)

    if source is not None:
        with Timer("introspect columns"):
            tables: Optional[List[str]] = None if config.all_tables else config.tables
            columns: List[ColumnInfo] = source.columns(tables)
        if not columns:
            raise NoColumnsError(tables)
        with Timer("column mode"):
            extract_from_columns(schema, columns, config.ignore_tables)

    if proto_text is not None:
        with Timer("definition-block mode"):
            extract_from_proto(schema, proto_text)

    return schema.finalize()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "extract_from_columns",
    "extract_from_proto",
    "new_schema",
    "build_schema",
]
