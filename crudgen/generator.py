# File: crudgen/generator.py
"""
CrudGen - Generation Pipeline (Orchestrator)
=============================================

Connects every phase together:

    Config → Validation → Extraction → Validation → Render | Merge

``ArtifactGenerator`` is both the programmatic API and the backend of the
CLI.

Workflow (``generate``)::

    1. Validate the ``GenerationConfig`` (validators.py).
    2. Build the ``Schema``: column mode through the ``SchemaSource`` the
       caller owns, definition-block mode from the ``.proto`` file.
    3. Validate the schema.
    4. Create or merge ``<service>Param.api``.
    5. Create or merge ``<service>.api``.
    6. Return a ``GenerationReport``.

Error handling strategy:
    - Every fault is recorded on the report; nothing is swallowed.
    - Extraction faults abort before any artifact is touched.
    - A failed artifact write leaves that file as it was and stops the run.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from crudgen.exceptions import ArtifactIOError, ConfigError, CrudGenError
from crudgen.extractor import build_schema
from crudgen.introspection import SchemaSource
from crudgen.logic import LogicFileResult, LogicGenerator
from crudgen.merge import PARAM_ARTIFACT, SERVICE_ARTIFACT, render_or_merge
from crudgen.models import GenerationConfig, ProtoFile, Schema
from crudgen.proto import parse_proto
from crudgen.renderer import ArtifactRenderer
from crudgen.utils import Timer, read_file
from crudgen.validators import ValidationResult, validate_config, validate_schema

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.generator")

DSN_ENV_VAR: str = "CRUDGEN_DSN"


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``ArtifactGenerator.generate()`` and
    ``ArtifactGenerator.generate_logic()``.
    """

    success: bool = False
    service_name: str = ""
    output_directory: str = ""

    # Metrics
    messages_extracted: int = 0
    custom_messages_extracted: int = 0
    enums_extracted: int = 0
    total_elapsed_seconds: float = 0.0

    # Files
    written_files: List[str] = field(default_factory=list)
    unchanged_files: List[str] = field(default_factory=list)
    logic_results: List[LogicFileResult] = field(default_factory=list)

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    io_errors: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  CrudGen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Service:          {self.service_name}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Messages:         {self.messages_extracted}")
        lines.append(f"  Custom types:     {self.custom_messages_extracted}")
        lines.append(f"  Enums:            {self.enums_extracted}")
        lines.append(f"  Files written:    {len(self.written_files)}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections = (
            ("Written", self.written_files, "+"),
            ("Unchanged", self.unchanged_files, "="),
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("I/O Errors", self.io_errors, "✗"),
        )
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(f"{'─'*60}")
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Config loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a configuration file (JSON or YAML), dispatching on the extension.

    Raises:
        ConfigError: the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        suffix: str = path.suffix.lower()
        if suffix == ".json":
            return _load_json_file(path)
        # YAML is a superset of JSON, so anything else goes through it
        return _load_yaml_file(path)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc


def build_config(
    raw: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> GenerationConfig:
    """
    Merge file data and CLI overrides into a ``GenerationConfig``.

    A nested ``config`` / ``generation_config`` key is accepted as well as a
    flat mapping.  ``None`` overrides are ignored.  The DSN falls back to
    the ``CRUDGEN_DSN`` environment variable.

    Raises:
        ConfigError: the merged values do not validate.
    """
    data: Dict[str, Any] = {}
    raw = raw or {}
    for key in ("config", "generation_config"):
        if isinstance(raw.get(key), dict):
            data.update(raw[key])
            break
    else:
        data.update(raw)

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    if not data.get("dsn") and os.environ.get(DSN_ENV_VAR):
        data["dsn"] = os.environ[DSN_ENV_VAR]

    try:
        return GenerationConfig.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigError(f"Config validation failed: {exc}") from exc


def read_proto_source(config: GenerationConfig) -> str:
    """Read the configured ``.proto`` file; faults become ``ArtifactIOError``."""
    path: Path = Path(config.resolved_proto_file)
    try:
        return read_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ArtifactIOError(str(path), str(exc)) from exc


# ---------------------------------------------------------------------------
# ArtifactGenerator — orchestrator
# ---------------------------------------------------------------------------


class ArtifactGenerator:
    """
    Pipeline orchestrator.

    Usage::

        generator = ArtifactGenerator()
        with MySQLSchemaSource.from_url(config.dsn) as source:
            report = generator.generate(config, source=source)
        print(report.summary())

    The source is owned by the caller; the generator never opens or closes
    connections.
    """

    def __init__(self, *, fail_on_warnings: bool = False) -> None:
        self._fail_on_warnings: bool = fail_on_warnings
        logger.debug("ArtifactGenerator initialised: fail_on_warnings=%s.", fail_on_warnings)

    # -----------------------------------------------------------------
    # Public: .api artifacts
    # -----------------------------------------------------------------

    def generate(
        self,
        config: GenerationConfig,
        source: Optional[SchemaSource] = None,
        proto_text: Optional[str] = None,
    ) -> GenerationReport:
        """
        Extract the schema and create or merge both artifacts.

        Column mode runs when *source* is given.  Definition-block mode runs
        when *proto_text* is given or ``config.with_proto_types`` is set (the
        file at ``config.resolved_proto_file`` is read).
        """
        report: GenerationReport = self._new_report(config)
        pipeline_start: float = time.perf_counter()

        proto_mode: bool = proto_text is not None or config.with_proto_types
        if not self._step_validate_config(
            config, report, column_mode=source is None and not proto_mode
        ):
            return self._finalise_report(report, pipeline_start)

        if proto_mode and proto_text is None:
            proto_text = self._step_read_definitions(config, report)
            if proto_text is None:
                return self._finalise_report(report, pipeline_start)

        schema: Optional[Schema] = self._step_extract(config, source, proto_text, report)
        if schema is None:
            return self._finalise_report(report, pipeline_start)

        if not self._step_validate_schema(schema, report):
            return self._finalise_report(report, pipeline_start)

        renderer: ArtifactRenderer = ArtifactRenderer(schema)
        for step_name, path, artifact in (
            ("Parameters Artifact", schema.param_file_path, PARAM_ARTIFACT),
            ("Service Artifact", schema.service_file_path, SERVICE_ARTIFACT),
        ):
            if not self._step_write(step_name, path, renderer, artifact, report):
                break

        return self._finalise_report(report, pipeline_start)

    # -----------------------------------------------------------------
    # Public: logic skeletons
    # -----------------------------------------------------------------

    def generate_logic(
        self,
        config: GenerationConfig,
        source: Optional[SchemaSource] = None,
        proto_text: Optional[str] = None,
    ) -> GenerationReport:
        """Write one logic file per rpc of the configured ``.proto`` file."""
        report: GenerationReport = self._new_report(config)
        report.output_directory = str(Path(config.logic_dir).resolve())
        pipeline_start: float = time.perf_counter()

        if not self._step_validate_config(config, report):
            return self._finalise_report(report, pipeline_start)

        if proto_text is None:
            proto_text = self._step_read_definitions(config, report)
            if proto_text is None:
                return self._finalise_report(report, pipeline_start)

        with Timer("logic") as t:
            proto: ProtoFile = parse_proto(proto_text)
            try:
                results: List[LogicFileResult] = LogicGenerator(config, source).generate(proto)
            except ArtifactIOError as exc:
                report.io_errors.append(str(exc))
                results = []

        report.logic_results.extend(results)
        report.written_files.extend(str(r.path) for r in results if r.written)
        report.unchanged_files.extend(str(r.path) for r in results if not r.written)
        rpc_count: int = sum(len(s.rpcs) for s in proto.services)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Logic Files",
            success=not report.io_errors,
            elapsed_seconds=t.elapsed,
            detail=f"{len(report.written_files)} written, {rpc_count} rpc(s)",
        ))
        if not proto.services:
            report.validation_warnings.append("No service declared in the definition file.")

        return self._finalise_report(report, pipeline_start)

    # -----------------------------------------------------------------
    # Pipeline steps
    # -----------------------------------------------------------------

    @staticmethod
    def _new_report(config: GenerationConfig) -> GenerationReport:
        report: GenerationReport = GenerationReport()
        report.service_name = config.service_name
        report.output_directory = str(Path(config.dir).resolve())
        return report

    def _record_validation(
        self, step_name: str, result: ValidationResult, report: GenerationReport, elapsed: float
    ) -> bool:
        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        ok: bool = result.is_valid and not (self._fail_on_warnings and result.warnings)
        report.step_metrics.append(GenerationStepMetric(
            step_name=step_name,
            success=ok,
            elapsed_seconds=elapsed,
            detail=detail,
        ))
        for err in result.errors:
            logger.error("  ✗ %s", err)
        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)
        if self._fail_on_warnings and result.warnings and result.is_valid:
            report.validation_errors.append("Warnings treated as errors.")
        return ok

    def _step_validate_config(
        self, config: GenerationConfig, report: GenerationReport, column_mode: bool = False
    ) -> bool:
        with Timer("validate config") as t:
            result: ValidationResult = validate_config(config, column_mode)
        return self._record_validation("Validate Config", result, report, t.elapsed)

    def _step_read_definitions(
        self, config: GenerationConfig, report: GenerationReport
    ) -> Optional[str]:
        with Timer("read definitions") as t:
            try:
                text: Optional[str] = read_proto_source(config)
            except ArtifactIOError as exc:
                report.io_errors.append(str(exc))
                text = None
        report.step_metrics.append(GenerationStepMetric(
            step_name="Read Definitions",
            success=text is not None,
            elapsed_seconds=t.elapsed,
            detail=config.resolved_proto_file,
        ))
        return text

    def _step_extract(
        self,
        config: GenerationConfig,
        source: Optional[SchemaSource],
        proto_text: Optional[str],
        report: GenerationReport,
    ) -> Optional[Schema]:
        schema: Optional[Schema] = None
        with Timer("extract") as t:
            try:
                schema = build_schema(config, source, proto_text)
            except SQLAlchemyError as exc:
                report.io_errors.append(f"Database error: {exc}")
            except CrudGenError as exc:
                report.generation_errors.append(str(exc))

        if schema is None:
            detail: str = "aborted"
        else:
            report.messages_extracted = len(schema.messages)
            report.custom_messages_extracted = len(schema.cus_messages)
            report.enums_extracted = len(schema.enums)
            detail = (
                f"{len(schema.messages)} message(s), "
                f"{len(schema.cus_messages)} custom, {len(schema.enums)} enum(s)"
            )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Extract Schema",
            success=schema is not None,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))
        logger.info("Extraction %s in %.3fs.", detail, t.elapsed)
        return schema

    def _step_validate_schema(self, schema: Schema, report: GenerationReport) -> bool:
        with Timer("validate schema") as t:
            result: ValidationResult = validate_schema(schema)
        return self._record_validation("Validate Schema", result, report, t.elapsed)

    def _step_write(
        self,
        step_name: str,
        path: Path,
        renderer: ArtifactRenderer,
        artifact: str,
        report: GenerationReport,
    ) -> bool:
        existed: bool = path.exists()
        failure: Optional[ArtifactIOError] = None
        written: bool = False
        with Timer(step_name) as t:
            try:
                written = render_or_merge(path, renderer, artifact)
            except ArtifactIOError as exc:
                failure = exc

        if failure is not None:
            report.io_errors.append(str(failure))
            report.step_metrics.append(GenerationStepMetric(
                step_name=step_name,
                success=False,
                elapsed_seconds=t.elapsed,
                detail=str(failure),
            ))
            return False

        if written:
            report.written_files.append(str(path))
        else:
            report.unchanged_files.append(str(path))
        action: str = "merged" if existed else "created"
        report.step_metrics.append(GenerationStepMetric(
            step_name=step_name,
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{path.name} {action if written else 'unchanged'}",
        ))
        return True

    @staticmethod
    def _finalise_report(report: GenerationReport, pipeline_start: float) -> GenerationReport:
        report.total_elapsed_seconds = time.perf_counter() - pipeline_start
        report.success = not (
            report.validation_errors or report.generation_errors or report.io_errors
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DSN_ENV_VAR",
    "GenerationStepMetric",
    "GenerationReport",
    "load_config_file",
    "build_config",
    "read_proto_source",
    "ArtifactGenerator",
]

logger.debug("crudgen.generator loaded.")
