"""
tests/test_utils.py
Unit tests for crudgen.utils naming and file helpers.
"""

from __future__ import annotations

import os
import pathlib

import pytest

from crudgen.utils import (
    first_lower,
    first_upper,
    go_camel_name,
    is_identifier,
    read_file,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
    write_file,
)


class TestNaming:
    @pytest.mark.parametrize(
        "value, expected",
        [("UserProfile", "user_profile"), ("getHTTPResponse", "get_http_response"), ("a_b", "a_b")],
    )
    def test_snake(self, value: str, expected: str) -> None:
        assert to_snake_case(value) == expected

    def test_pascal_and_camel(self) -> None:
        assert to_pascal_case("order_item") == "OrderItem"
        assert to_pascal_case("QueryOrderList") == "QueryOrderList"
        assert to_camel_case("nick_name") == "nickName"
        assert to_camel_case("") == ""

    def test_go_camel_name(self) -> None:
        assert go_camel_name("UserVIPInfo") == "UserVIPInfo"
        assert go_camel_name("queryOrderList") == "QueryOrderList"
        assert go_camel_name("order_item_filter") == "OrderItemFilter"

    def test_first_letter(self) -> None:
        assert first_upper("userInfo") == "UserInfo"
        assert first_lower("UserInfo") == "userInfo"
        assert first_upper("") == ""

    def test_identifier(self) -> None:
        assert is_identifier("user_1")
        assert not is_identifier("1user")
        assert not is_identifier("user-info")


class TestWriteFile:
    def test_creates_parents(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "a" / "b" / "out.api"
        assert write_file(path, "héllo") == len("héllo".encode("utf-8"))
        assert path.read_text(encoding="utf-8") == "héllo"

    def test_replaces_and_leaves_no_temp_files(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "out.api"
        path.write_text("old", encoding="utf-8")
        write_file(path, "new")
        assert path.read_text(encoding="utf-8") == "new"
        assert os.listdir(tmp_path) == ["out.api"]

    def test_read_keeps_line_endings(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "crlf.api"
        path.write_bytes(b"a\r\nb\r\n")
        assert read_file(path) == "a\r\nb\r\n"
