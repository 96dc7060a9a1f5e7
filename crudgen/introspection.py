# File: crudgen/introspection.py
"""
CrudGen - Schema Introspection
===============================
Column-metadata and primary-key lookups against a MySQL schema through
SQLAlchemy.

The engine is owned by the ``MySQLSchemaSource`` instance created by the
top-level invocation and handed explicitly to the extractor and dispatcher;
there is no process-wide handle.  Anything implementing the ``SchemaSource``
protocol can stand in for it (tests use ``InMemorySchemaSource``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import Engine

from crudgen.models import ColumnInfo

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.introspection")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# bookkeeping columns never turned into fields
DENY_COLUMNS: Tuple[str, ...] = ("create_time", "update_time")

_COLUMNS_SQL: str = (
    "SELECT c.TABLE_NAME, c.COLUMN_NAME, c.IS_NULLABLE, c.DATA_TYPE, "
    "c.CHARACTER_MAXIMUM_LENGTH, c.NUMERIC_PRECISION, c.NUMERIC_SCALE, "
    "c.COLUMN_TYPE, c.COLUMN_COMMENT, t.TABLE_COMMENT "
    "FROM INFORMATION_SCHEMA.COLUMNS AS c "
    "LEFT JOIN INFORMATION_SCHEMA.TABLES AS t "
    "ON c.TABLE_NAME = t.TABLE_NAME AND c.TABLE_SCHEMA = t.TABLE_SCHEMA "
    "WHERE c.TABLE_SCHEMA = :schema"
)
_COLUMNS_TABLE_FILTER: str = " AND c.TABLE_NAME IN :tables"
_COLUMNS_ORDER: str = " ORDER BY c.TABLE_NAME, c.ORDINAL_POSITION"

_PRIMARY_KEY_SQL: str = (
    "SELECT c.COLUMN_NAME, c.DATA_TYPE FROM INFORMATION_SCHEMA.COLUMNS AS c "
    "WHERE c.TABLE_SCHEMA = :schema AND c.TABLE_NAME = :table "
    "AND c.COLUMN_KEY = 'PRI' ORDER BY c.ORDINAL_POSITION LIMIT 1"
)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class SchemaSource(Protocol):
    """What the extractor and dispatcher need from a schema."""

    def columns(self, tables: Optional[Sequence[str]] = None) -> List[ColumnInfo]:
        ...

    def primary_key(self, table: str) -> Optional[Tuple[str, str]]:
        ...


def _row_to_column(row: Mapping[str, Any]) -> ColumnInfo:
    return ColumnInfo(
        table_name=row["TABLE_NAME"],
        column_name=row["COLUMN_NAME"],
        is_nullable=row["IS_NULLABLE"] or "YES",
        data_type=row["DATA_TYPE"],
        character_maximum_length=row["CHARACTER_MAXIMUM_LENGTH"],
        numeric_precision=row["NUMERIC_PRECISION"],
        numeric_scale=row["NUMERIC_SCALE"],
        column_type=row["COLUMN_TYPE"] or "",
        column_comment=row["COLUMN_COMMENT"] or "",
        table_comment=row["TABLE_COMMENT"] or "",
    )


def filter_columns(columns: Iterable[ColumnInfo]) -> List[ColumnInfo]:
    """Drop the bookkeeping columns in ``DENY_COLUMNS``."""
    return [c for c in columns if c.column_name not in DENY_COLUMNS]


# ---------------------------------------------------------------------------
# MySQL
# ---------------------------------------------------------------------------


class MySQLSchemaSource:
    """
    ``SchemaSource`` over ``INFORMATION_SCHEMA`` of the connected database.

    The engine is created on first use and released by ``close()``.  The
    object is also a context manager.
    """

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        self.url: str = url
        self._engine_kwargs: Dict[str, Any] = engine_kwargs
        self._engine: Optional[Engine] = None
        self._schema: Optional[str] = None

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> "MySQLSchemaSource":
        return cls(url, **engine_kwargs)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            logger.debug("Creating engine for %s", self._safe_url())
            self._engine = create_engine(self.url, **self._engine_kwargs)
        return self._engine

    def _safe_url(self) -> str:
        scheme, sep, rest = self.url.partition("://")
        if "@" in rest:
            rest = rest.split("@", 1)[1]
        return f"{scheme}{sep}{rest}"

    def schema_name(self) -> str:
        """Name of the current schema (``SELECT SCHEMA()``)."""
        if self._schema is None:
            with self.engine.connect() as conn:
                self._schema = conn.execute(text("SELECT SCHEMA()")).scalar() or ""
        return self._schema

    def columns(self, tables: Optional[Sequence[str]] = None) -> List[ColumnInfo]:
        """
        Column rows of the current schema, ordered by table then position.

        ``tables`` restricts the result; ``None``, empty or ``["*"]`` mean all.
        Bookkeeping columns are filtered out.
        """
        wanted: List[str] = [t for t in (tables or []) if t and t != "*"]
        params: Dict[str, Any] = {"schema": self.schema_name()}

        sql: str = _COLUMNS_SQL
        if wanted:
            sql += _COLUMNS_TABLE_FILTER
            params["tables"] = wanted
        sql += _COLUMNS_ORDER

        statement = text(sql)
        if wanted:
            statement = statement.bindparams(bindparam("tables", expanding=True))

        with self.engine.connect() as conn:
            rows = conn.execute(statement, params).mappings().all()

        columns: List[ColumnInfo] = filter_columns(_row_to_column(row) for row in rows)
        logger.info(
            "Introspected %d column(s) from schema %r.", len(columns), params["schema"]
        )
        return columns

    def primary_key(self, table: str) -> Optional[Tuple[str, str]]:
        """``(column_name, data_type)`` of the table's primary key, or ``None``."""
        with self.engine.connect() as conn:
            row = conn.execute(
                text(_PRIMARY_KEY_SQL),
                {"schema": self.schema_name(), "table": table},
            ).first()
        if row is None:
            return None
        return str(row[0]), str(row[1])

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.debug("Engine disposed.")

    def __enter__(self) -> "MySQLSchemaSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<MySQLSchemaSource {self._safe_url()}>"


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemorySchemaSource:
    """``SchemaSource`` over pre-built column rows and a primary-key table."""

    def __init__(
        self,
        columns: Optional[Iterable[ColumnInfo]] = None,
        primary_keys: Optional[Dict[str, Tuple[str, str]]] = None,
    ) -> None:
        self._columns: List[ColumnInfo] = list(columns or [])
        self._primary_keys: Dict[str, Tuple[str, str]] = dict(primary_keys or {})

    def columns(self, tables: Optional[Sequence[str]] = None) -> List[ColumnInfo]:
        wanted: List[str] = [t for t in (tables or []) if t and t != "*"]
        selected: List[ColumnInfo] = [
            c for c in self._columns if not wanted or c.table_name in wanted
        ]
        return filter_columns(selected)

    def primary_key(self, table: str) -> Optional[Tuple[str, str]]:
        return self._primary_keys.get(table)

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DENY_COLUMNS",
    "SchemaSource",
    "filter_columns",
    "MySQLSchemaSource",
    "InMemorySchemaSource",
]
