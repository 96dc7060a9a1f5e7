# File: crudgen/logic.py
"""
CrudGen - Logic Skeleton Generator
===================================
Writes one Go logic file per ``rpc`` of a ``.proto`` service.

For every rpc the naming dispatcher picks a CRUD template (create / delete /
query-detail / query-list / update) or the generic one, the primary key of
the backing table is resolved (``Id`` / ``0`` when unknown), and the
function is wrapped in the usual ``<Rpc>Logic`` struct and constructor.

Existing logic files are never overwritten.

All source assembly uses ``List[str]`` + ``"\\n".join()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from crudgen.dispatcher import PrimaryKey, base_type_name, classify, resolve_primary_key
from crudgen.introspection import SchemaSource
from crudgen.merge import write_artifact
from crudgen.models import (
    CrudKind,
    GenerationConfig,
    NamingFormat,
    ProtoFile,
    RpcDefinition,
    ServiceDefinition,
)
from crudgen.utils import (
    first_lower,
    go_camel_name,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.logic")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TAB: str = "\t"
PROTO_ALIAS: str = "proto"

SQLC_IMPORT: str = '"github.com/zeromicro/go-zero/core/stores/sqlc"'
UTIL_IMPORT: str = '"comm/util"'
ERRORM_IMPORT: str = '"comm/errorm"'

_NEEDS_SQLC = {CrudKind.CREATE, CrudKind.UPDATE}
_NEEDS_UTIL = {CrudKind.QUERY_LIST, CrudKind.UPDATE}


def format_filename(naming_format: NamingFormat, name: str) -> str:
    """
    Apply a file naming style to *name*.

    Examples:
        >>> format_filename(NamingFormat.SNAKE, "CreateOrder_logic")
        'create_order_logic'
        >>> format_filename(NamingFormat.CAMEL, "CreateOrder_logic")
        'createOrderLogic'
    """
    style = NamingFormat(naming_format)
    if style is NamingFormat.LOWER:
        return to_snake_case(name).replace("_", "")
    if style is NamingFormat.CAMEL:
        return to_camel_case(name)
    return to_snake_case(name)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class LogicFunction:
    """A rendered logic function and what its file needs to import."""

    rpc_name: str
    kind: CrudKind
    model_name: str
    primary_key: PrimaryKey
    source: str
    has_sqlc: bool = False
    has_util: bool = False
    has_model: bool = False


@dataclass(slots=True)
class LogicFileResult:
    path: Path
    rpc_name: str
    kind: CrudKind
    written: bool
    reason: str = ""


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _Context:
    """Names shared by every template for one rpc."""

    logic_name: str
    method: str
    request: str
    response: str
    response_type: str
    model: str
    model_var: str
    pk: PrimaryKey
    comment: List[str] = field(default_factory=list)


class LogicGenerator:
    """
    Renders and writes logic files for the services of a parsed proto.

    *source* is the primary-key lookup; without it every key falls back to
    ``Id`` / ``0``.
    """

    def __init__(
        self, config: GenerationConfig, source: Optional[SchemaSource] = None
    ) -> None:
        self._config: GenerationConfig = config
        self._source: Optional[SchemaSource] = source
        self._bodies: Dict[CrudKind, Callable[[_Context], List[str]]] = {
            CrudKind.CREATE: self._create_body,
            CrudKind.DELETE: self._delete_body,
            CrudKind.QUERY_DETAIL: self._query_detail_body,
            CrudKind.QUERY_LIST: self._query_list_body,
            CrudKind.UPDATE: self._update_body,
        }

    # -- Signatures ---------------------------------------------------------

    @staticmethod
    def _signature(ctx: _Context, service: str, rpc: RpcDefinition) -> str:
        stream_body: str = f"{PROTO_ALIAS}.{go_camel_name(service)}_{ctx.method}Server"
        streaming: bool = rpc.streams_request or rpc.streams_returns
        if not rpc.streams_request:
            params: str = f"in {ctx.request}"
            if streaming:
                params += f", stream {stream_body}"
        else:
            params = f"stream {stream_body}"
        has_reply: bool = not streaming
        returns: str = f"({ctx.response}, error)" if has_reply else "error"
        return f"func (l *{ctx.logic_name}) {ctx.method}({params}) {returns} {{"

    # -- Bodies -------------------------------------------------------------

    @staticmethod
    def _generic_body(ctx: _Context, has_reply: bool) -> List[str]:
        ret: str = f"&{ctx.response_type}{{}}, nil" if has_reply else "nil"
        return [
            f"{TAB}// todo: add your logic here and delete this line",
            "",
            f"{TAB}return {ret}",
        ]

    @staticmethod
    def _create_body(ctx: _Context) -> List[str]:
        m, pk = ctx.model, ctx.pk
        return [
            f"{TAB}if in.{pk.name} != {pk.zero_value} {{",
            f"{TAB}{TAB}_, err := l.svcCtx.{m}Model.FindOne(l.ctx, in.{pk.name})",
            f"{TAB}{TAB}if err == nil {{",
            f'{TAB}{TAB}{TAB}return nil, errorm.New(errorm.RecordExists, "{ctx.model_var} already exists")',
            f"{TAB}{TAB}}}",
            f"{TAB}{TAB}if err != sqlc.ErrNotFound {{",
            f"{TAB}{TAB}{TAB}return nil, errorm.New(errorm.DBError, err.Error())",
            f"{TAB}{TAB}}}",
            f"{TAB}}}",
            "",
            f"{TAB}data := model.{m}FromProto(in)",
            f"{TAB}result, err := l.svcCtx.{m}Model.Insert(l.ctx, data)",
            f"{TAB}if err != nil {{",
            f"{TAB}{TAB}return nil, errorm.New(errorm.DBError, err.Error())",
            f"{TAB}}}",
            f"{TAB}id, err := result.LastInsertId()",
            f"{TAB}if err != nil {{",
            f"{TAB}{TAB}return nil, errorm.New(errorm.DBError, err.Error())",
            f"{TAB}}}",
            "",
            f"{TAB}return &{ctx.response_type}{{Id: id}}, nil",
        ]

    @staticmethod
    def _delete_body(ctx: _Context) -> List[str]:
        m, pk = ctx.model, ctx.pk
        return [
            f"{TAB}if in.{pk.name} == {pk.zero_value} {{",
            f'{TAB}{TAB}return nil, errorm.New(errorm.ParamError, "{pk.name} is required")',
            f"{TAB}}}",
            f"{TAB}if err := l.svcCtx.{m}Model.Delete(l.ctx, in.{pk.name}); err != nil {{",
            f"{TAB}{TAB}return nil, errorm.New(errorm.DBError, err.Error())",
            f"{TAB}}}",
            "",
            f"{TAB}return &{ctx.response_type}{{}}, nil",
        ]

    @staticmethod
    def _query_detail_body(ctx: _Context) -> List[str]:
        m, pk = ctx.model, ctx.pk
        return [
            f"{TAB}data, err := l.svcCtx.{m}Model.FindOne(l.ctx, in.{pk.name})",
            f"{TAB}if err != nil {{",
            f"{TAB}{TAB}if err == model.ErrNotFound {{",
            f'{TAB}{TAB}{TAB}return nil, errorm.New(errorm.RecordNotFound, "{ctx.model_var} not found")',
            f"{TAB}{TAB}}}",
            f"{TAB}{TAB}return nil, errorm.New(errorm.DBError, err.Error())",
            f"{TAB}}}",
            "",
            f"{TAB}return model.{m}ToProto(data), nil",
        ]

    @staticmethod
    def _query_list_body(ctx: _Context) -> List[str]:
        m = ctx.model
        return [
            f"{TAB}page := util.NewPage(in.PageNo, in.PageSize)",
            f"{TAB}list, total, err := l.svcCtx.{m}Model.FindPage(l.ctx, in, page.Offset(), page.Limit())",
            f"{TAB}if err != nil {{",
            f"{TAB}{TAB}return nil, errorm.New(errorm.DBError, err.Error())",
            f"{TAB}}}",
            "",
            f"{TAB}resp := &{ctx.response_type}{{",
            f"{TAB}{TAB}CurrPage:   page.No,",
            f"{TAB}{TAB}TotalPage:  page.Total(total),",
            f"{TAB}{TAB}TotalCount: total,",
            f"{TAB}}}",
            f"{TAB}for _, item := range list {{",
            f"{TAB}{TAB}resp.{m}List = append(resp.{m}List, model.{m}ToProto(item))",
            f"{TAB}}}",
            "",
            f"{TAB}return resp, nil",
        ]

    @staticmethod
    def _update_body(ctx: _Context) -> List[str]:
        m, pk = ctx.model, ctx.pk
        return [
            f"{TAB}if in.{pk.name} == {pk.zero_value} {{",
            f'{TAB}{TAB}return nil, errorm.New(errorm.ParamError, "{pk.name} is required")',
            f"{TAB}}}",
            f"{TAB}data, err := l.svcCtx.{m}Model.FindOne(l.ctx, in.{pk.name})",
            f"{TAB}if err != nil {{",
            f"{TAB}{TAB}if err == sqlc.ErrNotFound {{",
            f'{TAB}{TAB}{TAB}return nil, errorm.New(errorm.RecordNotFound, "{ctx.model_var} not found")',
            f"{TAB}{TAB}}}",
            f"{TAB}{TAB}return nil, errorm.New(errorm.DBError, err.Error())",
            f"{TAB}}}",
            f"{TAB}util.CopyNonZero(data, in)",
            f"{TAB}if err := l.svcCtx.{m}Model.Update(l.ctx, data); err != nil {{",
            f"{TAB}{TAB}return nil, errorm.New(errorm.DBError, err.Error())",
            f"{TAB}}}",
            "",
            f"{TAB}return &{ctx.response_type}{{Id: data.{pk.name}}}, nil",
        ]

    # -- Function -----------------------------------------------------------

    def render_function(self, service: str, rpc: RpcDefinition) -> LogicFunction:
        """Classify *rpc* and render its logic function."""
        method: str = go_camel_name(rpc.name)
        request: str = go_camel_name(rpc.request_type)
        returns: str = go_camel_name(rpc.returns_type)
        streaming: bool = rpc.streams_request or rpc.streams_returns

        kind: CrudKind = classify(rpc.name, rpc.request_type)
        if streaming and kind is not CrudKind.UNCLASSIFIED:
            logger.info("rpc %s streams; using the generic template.", rpc.name)
            kind = CrudKind.UNCLASSIFIED

        model: str = base_type_name(rpc.request_type)
        pk: PrimaryKey = resolve_primary_key(self._source, model)

        ctx = _Context(
            logic_name=f"{method}Logic",
            method=method,
            request=f"*{PROTO_ALIAS}.{request}",
            response=f"*{PROTO_ALIAS}.{returns}",
            response_type=f"{PROTO_ALIAS}.{returns}",
            model=model,
            model_var=first_lower(model),
            pk=pk,
            comment=[f"// {line}" for line in rpc.doc],
        )

        lines: List[str] = list(ctx.comment)
        lines.append(self._signature(ctx, service, rpc))
        body_fn: Optional[Callable[[_Context], List[str]]] = self._bodies.get(kind)
        if body_fn is None:
            lines.extend(self._generic_body(ctx, has_reply=not streaming))
        else:
            lines.extend(body_fn(ctx))
        lines.append("}")

        crud: bool = body_fn is not None
        return LogicFunction(
            rpc_name=rpc.name,
            kind=kind,
            model_name=model if crud else "",
            primary_key=pk,
            source="\n".join(lines),
            has_sqlc=kind in _NEEDS_SQLC,
            has_util=kind in _NEEDS_UTIL,
            has_model=crud,
        )

    # -- File ---------------------------------------------------------------

    def imports_for(self, service: str, function: LogicFunction) -> List[str]:
        imports = {
            f'"{self._config.svc_package}"',
            f'{PROTO_ALIAS} "proto/{service}"',
            ERRORM_IMPORT,
        }
        if function.has_sqlc:
            imports.add(SQLC_IMPORT)
        if function.has_util:
            imports.add(UTIL_IMPORT)
        if function.has_model:
            imports.add(f'"{service}-service/model"')
        return sorted(imports)

    def render_file(
        self, service: str, function: LogicFunction, package: str = "logic"
    ) -> str:
        logic_name: str = f"{go_camel_name(function.rpc_name)}Logic"
        lines: List[str] = [
            f"package {package}",
            "",
            "import (",
            f'{TAB}"context"',
            "",
            *(f"{TAB}{imp}" for imp in self.imports_for(service, function)),
            "",
            f'{TAB}"github.com/zeromicro/go-zero/core/logx"',
            ")",
            "",
            f"type {logic_name} struct {{",
            f"{TAB}ctx    context.Context",
            f"{TAB}svcCtx *svc.ServiceContext",
            f"{TAB}logx.Logger",
            "}",
            "",
            f"func New{logic_name}(ctx context.Context, svcCtx *svc.ServiceContext) *{logic_name} {{",
            f"{TAB}return &{logic_name}{{",
            f"{TAB}{TAB}ctx:    ctx,",
            f"{TAB}{TAB}svcCtx: svcCtx,",
            f"{TAB}{TAB}Logger: logx.WithContext(ctx),",
            f"{TAB}}}",
            "}",
            "",
            function.source,
            "",
        ]
        return "\n".join(lines)

    # -- Orchestration ------------------------------------------------------

    def _targets(
        self, proto: ProtoFile
    ) -> List[Tuple[ServiceDefinition, Path, str]]:
        """``(service, directory, package)`` per service to generate."""
        base: Path = Path(self._config.logic_dir)
        if not proto.services:
            return []
        if not self._config.multiple:
            if len(proto.services) > 1:
                logger.warning(
                    "%d services found; only %r is generated without --multiple.",
                    len(proto.services),
                    proto.services[0].name,
                )
            return [(proto.services[0], base, "logic")]
        return [
            (
                item,
                base / item.name.lower(),
                to_pascal_case(f"{item.name}_logic").lower(),
            )
            for item in proto.services
        ]

    def generate(self, proto: ProtoFile) -> List[LogicFileResult]:
        """Write a logic file for every rpc; existing files are kept."""
        results: List[LogicFileResult] = []
        for service, directory, package in self._targets(proto):
            for rpc in service.rpcs:
                filename: str = format_filename(
                    self._config.naming_format, f"{rpc.name}_logic"
                )
                path: Path = directory / f"{filename}.go"
                function: LogicFunction = self.render_function(service.name, rpc)

                if path.exists():
                    logger.info("Logic file %s exists; skipped.", path)
                    results.append(
                        LogicFileResult(path, rpc.name, function.kind, False, "exists")
                    )
                    continue

                write_artifact(path, self.render_file(service.name, function, package))
                logger.info("Wrote %s (%s).", path, function.kind.value)
                results.append(LogicFileResult(path, rpc.name, function.kind, True))
        return results


def generate_logic(
    proto: ProtoFile,
    config: GenerationConfig,
    source: Optional[SchemaSource] = None,
) -> List[LogicFileResult]:
    """Convenience wrapper around ``LogicGenerator.generate``."""
    return LogicGenerator(config, source).generate(proto)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "format_filename",
    "LogicFunction",
    "LogicFileResult",
    "LogicGenerator",
    "generate_logic",
]
