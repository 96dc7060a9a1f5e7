# File: crudgen/dispatcher.py
"""
CrudGen - Naming-Convention Dispatcher
=======================================
Infers CRUD intent from an rpc name and its request type, and resolves the
primary key of the backing table.

    classify("CreateOrder", "Order")                  → CrudKind.CREATE
    classify("QueryOrderFilterList", "OrderFilter")   → CrudKind.QUERY_LIST

Primary-key lookups never fail the run: any fault falls back to ``Id`` / ``0``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from crudgen.introspection import SchemaSource
from crudgen.models import CrudKind
from crudgen.type_mapper import zero_value_literal
from crudgen.utils import go_camel_name, to_pascal_case, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.dispatcher")

FILTER_SUFFIX: str = "Filter"


def base_type_name(request_type: str) -> str:
    """Upper-camel request type with the first ``Filter`` removed."""
    return go_camel_name(request_type).replace(FILTER_SUFFIX, "", 1)


def _patterns(base: str) -> List[Tuple[str, CrudKind]]:
    return [
        (f"Create{base}", CrudKind.CREATE),
        (f"Delete{base}", CrudKind.DELETE),
        (f"Query{base}Detail", CrudKind.QUERY_DETAIL),
        (f"Query{base}List", CrudKind.QUERY_LIST),
        (f"Update{base}", CrudKind.UPDATE),
    ]


def classify(endpoint_name: str, request_type: str) -> CrudKind:
    """
    Match *endpoint_name* against the CRUD naming patterns of its request
    type.  First match wins; no match is ``CrudKind.UNCLASSIFIED``.

    The patterns are tried with the ``Filter``-stripped type first, then
    with the type as written, so both ``QueryOrderList`` and
    ``QueryOrderFilterList`` match a request type of ``OrderFilter``.
    """
    endpoint: str = go_camel_name(endpoint_name)
    bases: List[str] = [base_type_name(request_type)]
    if go_camel_name(request_type) not in bases:
        bases.append(go_camel_name(request_type))

    for base in bases:
        for candidate, kind in _patterns(base):
            if endpoint == candidate:
                return kind
    return CrudKind.UNCLASSIFIED


# ---------------------------------------------------------------------------
# Primary key
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PrimaryKey:
    """Go field name of the key and the zero-value literal of its type."""

    name: str
    zero_value: str


DEFAULT_PRIMARY_KEY: PrimaryKey = PrimaryKey(name="Id", zero_value="0")


def resolve_primary_key(
    source: Optional[SchemaSource], model_name: str
) -> PrimaryKey:
    """
    Look up the primary key of the table backing *model_name*.

    The table name is the snake_case fold of the model name.  Falls back to
    ``DEFAULT_PRIMARY_KEY`` when there is no source, no key, or the lookup
    raises.
    """
    table: str = to_snake_case(model_name)
    if source is None or not table:
        return DEFAULT_PRIMARY_KEY

    try:
        found: Optional[Tuple[str, str]] = source.primary_key(table)
    except Exception as exc:
        logger.warning(
            "Primary key lookup for %r failed (%s); using %s.",
            table,
            exc,
            DEFAULT_PRIMARY_KEY.name,
        )
        return DEFAULT_PRIMARY_KEY

    if found is None:
        logger.warning(
            "Table %r has no primary key; using %s.", table, DEFAULT_PRIMARY_KEY.name
        )
        return DEFAULT_PRIMARY_KEY

    column, data_type = found
    return PrimaryKey(name=to_pascal_case(column), zero_value=zero_value_literal(data_type))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FILTER_SUFFIX",
    "base_type_name",
    "classify",
    "PrimaryKey",
    "DEFAULT_PRIMARY_KEY",
    "resolve_primary_key",
]
