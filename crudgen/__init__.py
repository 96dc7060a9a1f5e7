"""
CrudGen — CRUD Interface Definition Generator
==============================================

Derives REST interface definitions from a MySQL schema and a service
definition (``.proto``) file, and keeps them current as the schema grows.

Two artifacts are produced per service: ``<service>Param.api`` (request and
response types) and ``<service>.api`` (enums and the service block).  When
they already exist, only entities missing from their registries are
appended; everything else in the file stays byte-for-byte as it was.

Architecture overview::

    ┌──────────────┐     ┌─────────────────────┐     ┌────────────────┐
    │  CLI / Entry │────▶│  ArtifactGenerator  │────▶│ ArtifactRenderer│
    │   (cli.py)   │     │   (generator.py)    │     │  (renderer.py) │
    └──────────────┘     └──────────┬──────────┘     └────────────────┘
                                    │
              ┌───────────┬─────────┼──────────┬────────────┐
              ▼           ▼         ▼          ▼            ▼
        ┌──────────┐ ┌─────────┐ ┌───────┐ ┌────────┐ ┌──────────┐
        │extractor │ │  proto  │ │ merge │ │ logic  │ │validators│
        └────┬─────┘ └─────────┘ └───────┘ └───┬────┘ └──────────┘
             ▼                                 ▼
      ┌─────────────┐                   ┌────────────┐
      │introspection│                   │ dispatcher │
      └─────────────┘                   └────────────┘

Usage::

    # As a library
    from crudgen import ArtifactGenerator, GenerationConfig, MySQLSchemaSource
    config = GenerationConfig(service_name="user", dsn="mysql+pymysql://...")
    with MySQLSchemaSource.from_url(config.dsn) as source:
        report = ArtifactGenerator().generate(config, source=source)

    # From the command line
    python -m crudgen api --service user --dsn "mysql+pymysql://..." -v

Public API:
    - ArtifactGenerator  — Pipeline orchestrator
    - GenerationConfig   — Invocation settings model
    - Schema             — Intermediate representation
    - ArtifactRenderer   — Fresh artifact text
    - merge_artifact     — Additive merge into an existing artifact
    - LogicGenerator     — rpc logic skeletons
"""

from __future__ import annotations

__version__: str = "0.1.0"
__author__: str = "CrudGen Team"
__license__: str = "MIT"

from crudgen.exceptions import (
    ArtifactIOError,
    ConfigError,
    CrudGenError,
    EnumTagCollisionError,
    NoColumnsError,
    UnmappableTypeError,
)
from crudgen.models import (
    ColumnInfo,
    CrudKind,
    CrudMethod,
    EnumDefinition,
    EnumField,
    GenerationConfig,
    Message,
    MessageField,
    NamingFormat,
    ProtoFile,
    Schema,
)
from crudgen.type_mapper import map_column_type
from crudgen.introspection import InMemorySchemaSource, MySQLSchemaSource, SchemaSource
from crudgen.proto import parse_proto
from crudgen.extractor import build_schema, extract_from_columns, extract_from_proto
from crudgen.dispatcher import PrimaryKey, classify, resolve_primary_key
from crudgen.renderer import ArtifactRenderer
from crudgen.merge import merge_artifact, merge_text, render_or_merge
from crudgen.logic import LogicGenerator, generate_logic
from crudgen.validators import ValidationResult, validate_full
from crudgen.generator import ArtifactGenerator, GenerationReport

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core orchestrator
    "ArtifactGenerator",
    "GenerationReport",
    # Errors
    "CrudGenError",
    "UnmappableTypeError",
    "EnumTagCollisionError",
    "NoColumnsError",
    "ArtifactIOError",
    "ConfigError",
    # Models
    "ColumnInfo",
    "CrudKind",
    "CrudMethod",
    "EnumDefinition",
    "EnumField",
    "GenerationConfig",
    "Message",
    "MessageField",
    "NamingFormat",
    "ProtoFile",
    "Schema",
    # Pipeline stages
    "map_column_type",
    "SchemaSource",
    "MySQLSchemaSource",
    "InMemorySchemaSource",
    "parse_proto",
    "build_schema",
    "extract_from_columns",
    "extract_from_proto",
    "PrimaryKey",
    "classify",
    "resolve_primary_key",
    "ArtifactRenderer",
    "merge_artifact",
    "merge_text",
    "render_or_merge",
    "LogicGenerator",
    "generate_logic",
    # Validation
    "validate_full",
    "ValidationResult",
]
