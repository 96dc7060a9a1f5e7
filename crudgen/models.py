# File: crudgen/models.py
"""
CrudGen - Core Data Models
===========================
Pydantic V2 models for the intermediate representation shared by every
stage of the pipeline:

    Column rows / .proto text → Schema Extractor → ``Schema``
                                                 → Renderer | Merge Engine

The ``Schema`` is built once per invocation, consumed by one rendering pass
and discarded.  Persistence is entirely the on-disk artifact text.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from crudgen.exceptions import EnumTagCollisionError
from crudgen.utils import to_camel_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.models")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SYNTAX: str = "v1"

_NON_WORD_RE: re.Pattern[str] = re.compile(r"[^\w]+")

# ---------------------------------------------------------------------------
# Enums — fixed sets used across the entire project
# ---------------------------------------------------------------------------


class FieldType(str, Enum):
    """Semantic field types produced by the type mapper."""

    STRING = "string"
    BYTES = "bytes"
    BOOL = "bool"
    INT64 = "int64"
    FLOAT64 = "float64"


class CrudMethod(str, Enum):
    """Endpoint families that can be requested for the service artifact."""

    INSERT = "insert"
    UPDATE = "update"
    QUERY = "query"


class CrudKind(str, Enum):
    """Logic template selected for an rpc by the naming dispatcher."""

    CREATE = "create"
    DELETE = "delete"
    QUERY_DETAIL = "query_detail"
    QUERY_LIST = "query_list"
    UPDATE = "update"
    UNCLASSIFIED = "unclassified"


class NamingFormat(str, Enum):
    """File naming styles for generated logic files."""

    SNAKE = "go_zero"
    LOWER = "gozero"
    CAMEL = "goZero"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Source descriptors
# ---------------------------------------------------------------------------


class ColumnInfo(BaseModel):
    """
    One row of column metadata, as read from ``INFORMATION_SCHEMA.COLUMNS``
    joined with ``INFORMATION_SCHEMA.TABLES``.
    """

    model_config = _SHARED_CONFIG

    table_name: str = Field(..., min_length=1, description="Owning table.")
    column_name: str = Field(..., min_length=1, description="Column name.")
    is_nullable: str = Field(default="YES", description="'YES' or 'NO'.")
    data_type: str = Field(..., min_length=1, description="Native type, e.g. 'varchar'.")
    character_maximum_length: Optional[int] = Field(default=None)
    numeric_precision: Optional[int] = Field(default=None)
    numeric_scale: Optional[int] = Field(default=None)
    column_type: str = Field(
        default="", description="Full native type detail, e.g. \"enum('a','b')\"."
    )
    column_comment: str = Field(default="")
    table_comment: str = Field(default="")

    @model_validator(mode="before")
    @classmethod
    def _default_table_comment(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("table_comment"):
            data = dict(data)
            data["table_comment"] = to_camel_case(str(data.get("table_name") or ""))
        return data

    @computed_field  # type: ignore[misc]
    @property
    def nullable(self) -> bool:
        return self.is_nullable.upper() == "YES"

    def __repr__(self) -> str:
        return f"<Column {self.table_name}.{self.column_name} {self.data_type}>"


# ---------------------------------------------------------------------------
# Schema primitives
# ---------------------------------------------------------------------------


class MessageField(BaseModel):
    """A single field of a generated type."""

    model_config = _SHARED_CONFIG

    type: str = Field(..., min_length=1, description="Semantic type or enum name.")
    name: str = Field(..., min_length=1, description="Display name.")
    comment: str = Field(default="", description="Human comment.")
    column_name: str = Field(..., min_length=1, description="Source column / wire name.")


class Message(BaseModel):
    """One generated type family: one per table or per extracted block."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Upper-camel type name.")
    comment: str = Field(default="", description="Table comment or derived name.")
    fields: List[MessageField] = Field(default_factory=list)

    def append_field(self, field: MessageField) -> None:
        self.fields.append(field)

    def __repr__(self) -> str:
        return f"<Message {self.name} ({len(self.fields)} fields)>"


class EnumField(BaseModel):
    """An enumerated value.  Immutable once constructed."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    tag: int = Field(..., ge=0)

    @field_validator("name")
    @classmethod
    def _normalise_name(cls, v: str) -> str:
        return _NON_WORD_RE.sub("_", v.upper())

    def __str__(self) -> str:
        return f"{self.name} = {self.tag}"


class EnumDefinition(BaseModel):
    """An enumerated type synthesized from an ``enum(...)`` / ``set(...)`` column."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    comment: str = Field(default="")
    fields: List[EnumField] = Field(default_factory=list)

    def append_field(self, field: EnumField) -> None:
        """Append *field*; tags must stay unique within the enum."""
        for existing in self.fields:
            if existing.tag == field.tag:
                raise EnumTagCollisionError(field.tag, existing.name, self.name)
        self.fields.append(field)

    @classmethod
    def from_values(
        cls, name: str, comment: str, values: List[str]
    ) -> "EnumDefinition":
        """Build an enum whose tags are the ordinal positions of *values*."""
        enum: EnumDefinition = cls(name=name, comment=comment)
        for tag, value in enumerate(values):
            enum.append_field(EnumField(name=value, tag=tag))
        return enum

    def __repr__(self) -> str:
        return f"<Enum {self.name} ({len(self.fields)} values)>"


# ---------------------------------------------------------------------------
# Schema — root aggregate
# ---------------------------------------------------------------------------


class Schema(BaseModel):
    """
    The root model consumed by the renderer and the merge engine.

    Invariant: after ``finalize()`` the imports are unique and sorted, and
    ``messages``, ``cus_messages`` and ``enums`` are sorted by name, so two
    runs over the same input render byte-identical artifacts.
    """

    model_config = _SHARED_CONFIG

    syntax: str = Field(default=SYNTAX)
    service_name: str = Field(..., min_length=1)
    dir: str = Field(default=".", description="Output directory for artifacts.")
    imports: List[str] = Field(default_factory=list)
    messages: List[Message] = Field(default_factory=list)
    cus_messages: List[Message] = Field(default_factory=list)
    enums: List[EnumDefinition] = Field(default_factory=list)
    generate_crud_methods: List[str] = Field(default_factory=list)

    def append_import(self, value: str) -> None:
        if value not in self.imports:
            self.imports.append(value)

    def finalize(self) -> "Schema":
        """Sort every collection by name.  Returns ``self`` for chaining."""
        self.imports.sort()
        self.messages.sort(key=lambda m: m.name)
        self.cus_messages.sort(key=lambda m: m.name)
        self.enums.sort(key=lambda e: e.name)
        return self

    # -- Paths --------------------------------------------------------------

    @property
    def param_file_path(self) -> Path:
        return Path(self.dir) / f"{self.service_name}Param.api"

    @property
    def service_file_path(self) -> Path:
        return Path(self.dir) / f"{self.service_name}.api"

    # -- Lookups ------------------------------------------------------------

    @property
    def message_names(self) -> List[str]:
        return [m.name for m in self.messages]

    @property
    def cus_message_names(self) -> List[str]:
        return [m.name for m in self.cus_messages]

    @property
    def enum_names(self) -> List[str]:
        return [e.name for e in self.enums]

    def __repr__(self) -> str:
        return (
            f"<Schema {self.service_name}: {len(self.messages)} messages, "
            f"{len(self.cus_messages)} custom, {len(self.enums)} enums>"
        )


# ---------------------------------------------------------------------------
# Interface-definition intermediate representation
# ---------------------------------------------------------------------------


class ProtoField(BaseModel):
    """A typed field line inside a ``message`` block."""

    model_config = _SHARED_CONFIG

    label: str = Field(default="", description="'repeated', 'optional' or ''.")
    type: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    tag: int = Field(..., ge=0)
    comment: str = Field(default="")

    @computed_field  # type: ignore[misc]
    @property
    def is_repeated(self) -> bool:
        return self.label == "repeated"


class ProtoMessage(BaseModel):
    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    fields: List[ProtoField] = Field(default_factory=list)
    skipped_lines: List[str] = Field(default_factory=list)


class RpcDefinition(BaseModel):
    """An ``rpc Name(Req) returns (Resp);`` declaration."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    request_type: str = Field(..., min_length=1)
    returns_type: str = Field(..., min_length=1)
    streams_request: bool = Field(default=False)
    streams_returns: bool = Field(default=False)
    doc: List[str] = Field(default_factory=list, description="Leading comment lines.")


class ServiceDefinition(BaseModel):
    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    rpcs: List[RpcDefinition] = Field(default_factory=list)


class ProtoFile(BaseModel):
    """Everything the tokenizer recovers from one ``.proto`` source."""

    model_config = _SHARED_CONFIG

    package: str = Field(default="")
    directives: List[str] = Field(
        default_factory=list,
        description="Message names listed between the struct-gen markers.",
    )
    messages: List[ProtoMessage] = Field(default_factory=list)
    services: List[ServiceDefinition] = Field(default_factory=list)

    def get_message(self, name: str) -> Optional[ProtoMessage]:
        for message in self.messages:
            if message.name == name:
                return message
        return None


# ---------------------------------------------------------------------------
# Code Generation Configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Configuration surface for one invocation.

    Loaded from a YAML/JSON file and/or CLI flags; see
    ``crudgen.generator.load_config_file``.
    """

    model_config = _SHARED_CONFIG

    # -- Artifact -----------------------------------------------------------
    service_name: str = Field(..., min_length=1, description="Service name.")
    dir: str = Field(default=".", description="Target directory for artifacts.")
    crud_methods: List[str] = Field(
        default_factory=list,
        description="CRUD endpoint subset; empty means the two query endpoints.",
    )

    # -- Column source ------------------------------------------------------
    dsn: Optional[str] = Field(
        default=None, description="SQLAlchemy URL of the MySQL schema to introspect."
    )
    tables: List[str] = Field(
        default_factory=list, description="Tables to generate; empty or '*' means all."
    )
    ignore_tables: List[str] = Field(default_factory=list)

    # -- Definition source --------------------------------------------------
    proto_file: Optional[str] = Field(
        default=None, description="Interface-definition file with struct-gen markers."
    )
    with_proto_types: bool = Field(
        default=False, description="Also extract custom types from the proto file."
    )

    # -- Logic generation ---------------------------------------------------
    logic_dir: str = Field(default="internal/logic")
    svc_package: str = Field(default="internal/svc")
    naming_format: NamingFormat = Field(default=NamingFormat.SNAKE)
    multiple: bool = Field(
        default=False, description="Group logic files per proto service."
    )

    @field_validator("crud_methods", "tables", "ignore_tables", mode="before")
    @classmethod
    def _split_strings(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",")]
        return v

    @computed_field  # type: ignore[misc]
    @property
    def resolved_proto_file(self) -> str:
        if self.proto_file:
            return self.proto_file
        return f"./rpc/proto/{self.service_name}.proto"

    @computed_field  # type: ignore[misc]
    @property
    def all_tables(self) -> bool:
        return not [t for t in self.tables if t.strip() and t.strip() != "*"]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SYNTAX",
    "FieldType",
    "CrudMethod",
    "CrudKind",
    "NamingFormat",
    "ColumnInfo",
    "MessageField",
    "Message",
    "EnumField",
    "EnumDefinition",
    "Schema",
    "ProtoField",
    "ProtoMessage",
    "RpcDefinition",
    "ServiceDefinition",
    "ProtoFile",
    "GenerationConfig",
]

logger.debug("crudgen.models loaded — %d public symbols.", len(__all__))
