"""
tests/conftest.py
Shared fixtures for the crudgen test suite.

The database is replaced by ``InMemorySchemaSource``; all file I/O happens
inside temporary directories managed by pytest's tmp_path fixture.
"""

from __future__ import annotations

import pathlib
import textwrap
from typing import Dict, List, Tuple

import pytest

from crudgen.extractor import build_schema
from crudgen.introspection import InMemorySchemaSource
from crudgen.models import ColumnInfo, GenerationConfig, Schema
from crudgen.renderer import ArtifactRenderer


# ---------------------------------------------------------------------------
# Column rows
# ---------------------------------------------------------------------------


def make_column(
    table: str,
    column: str,
    data_type: str,
    column_type: str = "",
    comment: str = "",
    table_comment: str = "",
) -> ColumnInfo:
    return ColumnInfo(
        table_name=table,
        column_name=column,
        data_type=data_type,
        column_type=column_type or data_type,
        column_comment=comment,
        table_comment=table_comment,
    )


@pytest.fixture()
def user_columns() -> List[ColumnInfo]:
    """Table ``user``: four mapped columns, one enum, two bookkeeping columns."""
    return [
        make_column("user", "id", "bigint", "bigint(20)", "user id", "user table"),
        make_column("user", "name", "varchar", "varchar(64)", "nickname", "user table"),
        make_column(
            "user", "status", "enum", "enum('active','banned')", "account state", "user table"
        ),
        make_column("user", "balance", "decimal", "decimal(10,2)", "", "user table"),
        make_column("user", "create_time", "datetime", "datetime", "", "user table"),
        make_column("user", "update_time", "datetime", "datetime", "", "user table"),
    ]


@pytest.fixture()
def order_columns() -> List[ColumnInfo]:
    return [
        make_column("order_item", "id", "bigint", "bigint(20)", "row id", "order lines"),
        make_column("order_item", "qty", "int", "int(11)", "quantity", "order lines"),
    ]


@pytest.fixture()
def primary_keys() -> Dict[str, Tuple[str, str]]:
    return {
        "user": ("id", "bigint"),
        "order_item": ("id", "bigint"),
        "user_auth": ("auth_key", "varchar"),
    }


@pytest.fixture()
def source(
    user_columns: List[ColumnInfo],
    order_columns: List[ColumnInfo],
    primary_keys: Dict[str, Tuple[str, str]],
) -> InMemorySchemaSource:
    return InMemorySchemaSource([*user_columns, *order_columns], primary_keys)


# ---------------------------------------------------------------------------
# Definition file
# ---------------------------------------------------------------------------


PROTO_TEXT: str = textwrap.dedent(
    """\
    syntax = "proto3";

    package user;

    // Api Struct Gen
    // UserInfo
    // PageMeta
    // Missing
    // Struct Gen End

    message UserInfo {
      int64 id = 1;  // user id
      string nick_name = 2;
      repeated string tags = 3;
      map<string, string> extra = 4;
      message Inner {
        int64 ignored = 1;
      }
      oneof choice {
        string email = 5;
      }
    }

    message PageMeta {
      int64 page_no = 1;
      int64 page_size = 2;
    }

    message UserFilter {
      int64 id = 1;
    }

    message OrderItem {
      int64 id = 1;
    }

    service user {
      // create a user
      rpc CreateUser(User) returns (CreateUserResp);
      rpc UpdateUser(User) returns (UpdateUserResp);
      rpc DeleteUser(User) returns (DeleteUserResp);
      rpc QueryUserDetail(UserFilter) returns (UserInfo);
      rpc QueryUserList(UserFilter) returns (QueryUserListResp);
      rpc Ping(PingReq) returns (PingResp);
      rpc Watch(stream WatchReq) returns (stream WatchResp);
    }
    """
)


@pytest.fixture()
def proto_text() -> str:
    return PROTO_TEXT


@pytest.fixture()
def proto_path(tmp_path: pathlib.Path, proto_text: str) -> pathlib.Path:
    path = tmp_path / "rpc" / "proto" / "user.proto"
    path.parent.mkdir(parents=True)
    path.write_text(proto_text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Config / schema
# ---------------------------------------------------------------------------


@pytest.fixture()
def config(tmp_path: pathlib.Path) -> GenerationConfig:
    return GenerationConfig(
        service_name="user",
        dir=str(tmp_path / "api"),
        crud_methods=["insert", "update", "query"],
        logic_dir=str(tmp_path / "logic"),
    )


@pytest.fixture()
def schema(config: GenerationConfig, source: InMemorySchemaSource, proto_text: str) -> Schema:
    return build_schema(config, source, proto_text)


@pytest.fixture()
def renderer(schema: Schema) -> ArtifactRenderer:
    return ArtifactRenderer(schema)
