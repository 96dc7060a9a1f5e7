"""
tests/test_introspection.py
Unit tests for crudgen.introspection: the SQL that MySQLSchemaSource sends,
schema-name caching, row conversion and engine disposal.

A recording engine stands in for SQLAlchemy's, so no database is needed.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest
from sqlalchemy.dialects import mysql
from sqlalchemy.sql.elements import TextClause

from crudgen.introspection import InMemorySchemaSource, MySQLSchemaSource

from tests.conftest import make_column


def _column_row(table: str, column: str, data_type: str = "bigint") -> Dict[str, Any]:
    return {
        "TABLE_NAME": table,
        "COLUMN_NAME": column,
        "IS_NULLABLE": "NO",
        "DATA_TYPE": data_type,
        "CHARACTER_MAXIMUM_LENGTH": None,
        "NUMERIC_PRECISION": None,
        "NUMERIC_SCALE": None,
        "COLUMN_TYPE": None,
        "COLUMN_COMMENT": None,
        "TABLE_COMMENT": "orders",
    }


class _Result:
    def __init__(self, rows: List[Any]) -> None:
        self._rows = rows

    def scalar(self) -> Any:
        return self._rows[0][0] if self._rows else None

    def mappings(self) -> "_Result":
        return self

    def all(self) -> List[Any]:
        return list(self._rows)

    def first(self) -> Optional[Any]:
        return self._rows[0] if self._rows else None


class _Connection:
    def __init__(self, engine: "_RecordingEngine") -> None:
        self._engine = engine

    def __enter__(self) -> "_Connection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        pass

    def execute(self, statement: TextClause, params: Optional[Dict[str, Any]] = None) -> _Result:
        self._engine.executed.append((statement, params))
        sql = statement.text
        if "SCHEMA()" in sql:
            return _Result([("shop",)])
        if "COLUMN_KEY" in sql:
            return _Result(self._engine.primary_key_rows)
        return _Result(self._engine.column_rows)


class _RecordingEngine:
    def __init__(self) -> None:
        self.executed: List[Tuple[TextClause, Optional[Dict[str, Any]]]] = []
        self.column_rows: List[Dict[str, Any]] = [
            _column_row("order", "id"),
            _column_row("order", "create_time", "datetime"),
        ]
        self.primary_key_rows: List[Tuple[str, str]] = [("order_id", "bigint")]
        self.disposed = False

    def connect(self) -> _Connection:
        return _Connection(self)

    def dispose(self) -> None:
        self.disposed = True


@pytest.fixture()
def engine() -> _RecordingEngine:
    return _RecordingEngine()


@pytest.fixture()
def mysql_source(engine: _RecordingEngine) -> MySQLSchemaSource:
    source = MySQLSchemaSource("mysql+pymysql://root:secret@db:3306/shop")
    source._engine = engine  # type: ignore[assignment]
    return source


def _compiled(statement: TextClause) -> str:
    return str(statement.compile(dialect=mysql.dialect()))


class TestMySQLSchemaSource:
    def test_table_filter_uses_expanding_bind(
        self, mysql_source: MySQLSchemaSource, engine: _RecordingEngine
    ) -> None:
        columns = mysql_source.columns(["order", "order_item"])
        statement, params = engine.executed[-1]

        assert "c.TABLE_NAME IN :tables" in statement.text
        assert "POSTCOMPILE_tables" in _compiled(statement)
        assert params == {"schema": "shop", "tables": ["order", "order_item"]}
        assert statement.text.endswith("ORDER BY c.TABLE_NAME, c.ORDINAL_POSITION")
        # bookkeeping columns are dropped
        assert [c.column_name for c in columns] == ["id"]
        assert columns[0].table_comment == "orders"
        assert columns[0].column_comment == ""

    @pytest.mark.parametrize("tables", [None, [], ["*"]])
    def test_all_tables_has_no_filter(
        self, mysql_source: MySQLSchemaSource, engine: _RecordingEngine, tables
    ) -> None:
        mysql_source.columns(tables)
        statement, params = engine.executed[-1]
        assert " IN " not in statement.text
        assert "POSTCOMPILE" not in _compiled(statement)
        assert params == {"schema": "shop"}

    def test_schema_name_queried_once(
        self, mysql_source: MySQLSchemaSource, engine: _RecordingEngine
    ) -> None:
        mysql_source.columns()
        mysql_source.columns(["order"])
        mysql_source.primary_key("order")
        schema_queries = [s for s, _ in engine.executed if "SCHEMA()" in s.text]
        assert len(schema_queries) == 1
        assert mysql_source.schema_name() == "shop"

    def test_primary_key(self, mysql_source: MySQLSchemaSource, engine: _RecordingEngine) -> None:
        assert mysql_source.primary_key("order") == ("order_id", "bigint")
        _, params = engine.executed[-1]
        assert params == {"schema": "shop", "table": "order"}

        engine.primary_key_rows = []
        assert mysql_source.primary_key("log") is None

    def test_close_disposes_engine(
        self, mysql_source: MySQLSchemaSource, engine: _RecordingEngine
    ) -> None:
        with mysql_source:
            mysql_source.columns()
        assert engine.disposed
        mysql_source.close()

    def test_repr_hides_credentials(self) -> None:
        source = MySQLSchemaSource("mysql+pymysql://root:secret@db:3306/shop")
        assert "secret" not in repr(source)
        assert "db:3306/shop" in repr(source)


class TestInMemorySchemaSource:
    def test_selection_and_filtering(self) -> None:
        source = InMemorySchemaSource(
            [
                make_column("a", "id", "bigint"),
                make_column("a", "update_time", "datetime"),
                make_column("b", "id", "bigint"),
            ],
            {"a": ("id", "bigint")},
        )
        assert [c.table_name for c in source.columns(["a"])] == ["a"]
        assert len(source.columns(["*"])) == 2
        assert source.primary_key("a") == ("id", "bigint")
        assert source.primary_key("b") is None
