"""
tests/test_extractor.py
Unit tests for crudgen.extractor: column mode, definition-block mode and the
combined ``build_schema`` entry point.
"""

from __future__ import annotations

from typing import List

import pytest

from crudgen.exceptions import NoColumnsError, UnmappableTypeError
from crudgen.extractor import build_schema, extract_from_columns, extract_from_proto, new_schema
from crudgen.introspection import InMemorySchemaSource
from crudgen.models import ColumnInfo, GenerationConfig, Schema

from tests.conftest import make_column


def _empty_schema() -> Schema:
    return Schema(service_name="user")


# ===========================================================================
# Column mode
# ===========================================================================


class TestColumnMode:
    def test_one_message_per_table(
        self, user_columns: List[ColumnInfo], order_columns: List[ColumnInfo]
    ) -> None:
        schema = extract_from_columns(_empty_schema(), [*user_columns, *order_columns])
        assert schema.message_names == ["OrderItem", "User"]

    def test_fields_follow_column_order(self, user_columns: List[ColumnInfo]) -> None:
        schema = extract_from_columns(_empty_schema(), user_columns[:4])
        user = schema.messages[0]
        assert user.comment == "user table"
        assert [(f.name, f.type) for f in user.fields] == [
            ("id", "int64"),
            ("name", "string"),
            ("status", "UserStatus"),
            ("balance", "string"),
        ]
        assert user.fields[0].comment == "user id"
        assert user.fields[0].column_name == "id"

    def test_enum_attached(self, user_columns: List[ColumnInfo]) -> None:
        schema = extract_from_columns(_empty_schema(), user_columns)
        assert schema.enum_names == ["UserStatus"]

    def test_table_comment_defaults_to_camel_name(self) -> None:
        column = ColumnInfo(table_name="order_item", column_name="id", data_type="bigint")
        schema = extract_from_columns(_empty_schema(), [column])
        assert schema.messages[0].comment == "orderItem"

    def test_ignored_tables(
        self, user_columns: List[ColumnInfo], order_columns: List[ColumnInfo]
    ) -> None:
        schema = extract_from_columns(
            _empty_schema(), [*user_columns, *order_columns], ignore_tables=["order_item"]
        )
        assert schema.message_names == ["User"]

    def test_everything_ignored_raises(self, order_columns: List[ColumnInfo]) -> None:
        with pytest.raises(NoColumnsError):
            extract_from_columns(_empty_schema(), order_columns, ignore_tables=["order_item"])

    def test_unmappable_column_leaves_schema_untouched(
        self, user_columns: List[ColumnInfo]
    ) -> None:
        schema = _empty_schema()
        bad = make_column("user", "location", "geometry")
        with pytest.raises(UnmappableTypeError):
            extract_from_columns(schema, [*user_columns, bad])
        assert schema.messages == []
        assert schema.enums == []


# ===========================================================================
# Definition-block mode
# ===========================================================================


class TestProtoMode:
    def test_listed_blocks_only(self, proto_text: str) -> None:
        schema = extract_from_proto(_empty_schema(), proto_text)
        # "Missing" has no block and is skipped; unlisted blocks are ignored
        assert schema.cus_message_names == ["PageMeta", "UserInfo"]
        assert schema.messages == []

    def test_field_conversion(self, proto_text: str) -> None:
        schema = extract_from_proto(_empty_schema(), proto_text)
        info = schema.cus_messages[1]
        assert info.comment == "UserInfo"
        assert [(f.name, f.type, f.column_name) for f in info.fields] == [
            ("id", "int64", "id"),
            ("nick_name", "string", "nick_name"),
            ("tags", "[]string", "tags"),
        ]
        assert info.fields[0].comment == "user id"

    def test_block_names_keep_their_casing(self) -> None:
        text = (
            "// Api Struct Gen\n// UserVIPInfo\n// page_meta\n// Struct Gen End\n"
            "message UserVIPInfo {\n  int64 id = 1;\n}\n"
            "message page_meta {\n  int64 total = 1;\n}\n"
        )
        schema = extract_from_proto(_empty_schema(), text)
        assert schema.cus_message_names == ["PageMeta", "UserVIPInfo"]

    def test_no_directives(self) -> None:
        schema = extract_from_proto(_empty_schema(), "message A {\n  int64 id = 1;\n}\n")
        assert schema.cus_messages == []


# ===========================================================================
# build_schema
# ===========================================================================


class TestBuildSchema:
    def test_both_modes(self, schema: Schema) -> None:
        assert schema.service_name == "user"
        assert schema.message_names == ["OrderItem", "User"]
        assert schema.cus_message_names == ["PageMeta", "UserInfo"]
        assert schema.enum_names == ["UserStatus"]
        assert schema.generate_crud_methods == ["insert", "update", "query"]

    def test_table_selection(self, config: GenerationConfig, source: InMemorySchemaSource) -> None:
        config.tables = ["order_item"]
        schema = build_schema(config, source)
        assert schema.message_names == ["OrderItem"]

    def test_star_means_all(self, config: GenerationConfig, source: InMemorySchemaSource) -> None:
        config.tables = ["*"]
        schema = build_schema(config, source)
        assert schema.message_names == ["OrderItem", "User"]

    def test_no_columns_raises(self, config: GenerationConfig) -> None:
        with pytest.raises(NoColumnsError):
            build_schema(config, InMemorySchemaSource())

    def test_neither_mode_gives_empty_schema(self, config: GenerationConfig) -> None:
        schema = build_schema(config)
        assert schema.messages == [] and schema.cus_messages == []

    def test_deterministic(self, config: GenerationConfig, source: InMemorySchemaSource, proto_text: str) -> None:
        first = build_schema(config, source, proto_text)
        second = build_schema(config, source, proto_text)
        assert first.model_dump() == second.model_dump()

    def test_new_schema_copies_config(self, config: GenerationConfig) -> None:
        schema = new_schema(config)
        assert schema.dir == config.dir
        assert schema.param_file_path.name == "userParam.api"
        assert schema.service_file_path.name == "user.api"
