# File: crudgen/renderer.py
"""
CrudGen - Artifact Renderer
============================
Deterministic text serialization of a finalized ``Schema`` into the two
``.api`` artifacts:

``<service>Param.api``
    syntax header, table registry, custom-type registry and the type body
    (one ``type ( ... )`` group per message and per custom message).

``<service>.api``
    syntax header, import of the parameters artifact, table registry, enum
    region and the ``service`` block with the CRUD endpoints of every message.

Every block is produced as a list of lines by a single method, so the merge
engine (``crudgen.merge``) appends exactly what a fresh render would write.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, List, Sequence

from crudgen.models import CrudMethod, EnumDefinition, Message, MessageField, Schema
from crudgen.utils import first_lower, first_upper, to_camel_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.renderer")

# ---------------------------------------------------------------------------
# Sentinels
# ---------------------------------------------------------------------------

TABLES_START: str = "// Already Exist Table:"
TABLES_END: str = "// Exist Table End"
CUSTOM_START: str = "// Proto Customize Type:"
CUSTOM_END: str = "// Customize Type End"
TYPES_START: str = "// Type Record Start"
TYPES_END: str = "// Type Record End"
ENUMS_START: str = "// Enums Record Start"
ENUMS_END: str = "// Enums Record End"
SERVICE_START: str = "// Service Record Start"
SERVICE_END: str = "// Service Record End"

INDENT: str = "  "
TAB: str = "\t"

# fields left out of the model type
MODEL_EXCLUDED_FIELDS: FrozenSet[str] = frozenset({"version", "del_state", "delete_time"})

_BANNER_RULE: str = "-" * 32
_SERVICE_RULE: str = "-" * 23

# endpoint order inside a message's service block
_METHOD_ORDER: Sequence[str] = (
    CrudMethod.INSERT.value,
    CrudMethod.UPDATE.value,
    CrudMethod.QUERY.value,
)


def selected_methods(crud_methods: Sequence[str]) -> List[str]:
    """
    Normalize the configured CRUD subset.

    Blank entries are dropped; an empty result means ``["query"]``.
    """
    wanted = {m.strip().lower() for m in crud_methods if m and m.strip()}
    if not wanted:
        return [CrudMethod.QUERY.value]
    return [m for m in _METHOD_ORDER if m in wanted]


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class ArtifactRenderer:
    """Renders fresh artifacts and the individual blocks they are made of."""

    def __init__(self, schema: Schema) -> None:
        self.schema: Schema = schema
        self.methods: List[str] = selected_methods(schema.generate_crud_methods)

    # -- Shared pieces ------------------------------------------------------

    def header_lines(self) -> List[str]:
        return [f'syntax = "{self.schema.syntax}"', ""]

    @staticmethod
    def registry_entry(name: str) -> str:
        return f"// {name}"

    def registry_lines(self, start: str, end: str, names: Sequence[str]) -> List[str]:
        return [start, *(self.registry_entry(n) for n in names), end]

    # -- Parameters artifact ------------------------------------------------

    @staticmethod
    def _model_field_line(field: MessageField) -> str:
        name: str = to_camel_case(field.name)
        comment: str = field.comment or name
        return (
            f'{INDENT * 2}{first_upper(name)}   {field.type}  '
            f'`json:"{field.column_name}"`  //{comment}'
        )

    @staticmethod
    def _field_line(name: str, type_: str, tag: str) -> str:
        return f"{INDENT * 2}{name}   {type_}  `{tag}`"

    def model_type_lines(self, message: Message) -> List[str]:
        """The model type itself, without bookkeeping fields."""
        lines: List[str] = [f"{INDENT}{message.name} {{"]
        for field in message.fields:
            if field.name in MODEL_EXCLUDED_FIELDS:
                continue
            lines.append(self._model_field_line(field))
        lines.append(f"{INDENT}}}")
        return lines

    def create_resp_lines(self, message: Message) -> List[str]:
        name: str = first_upper(message.name)
        return [
            f"{INDENT}Create{name}Resp {{",
            self._field_line("Id", "int64", 'json:"id"'),
            f"{INDENT}}}",
        ]

    def update_req_lines(self, message: Message) -> List[str]:
        lines: List[str] = [f"{INDENT}Update{first_upper(message.name)}Req {{"]
        for field in message.fields:
            name: str = first_upper(to_camel_case(field.name))
            tag: str = f'json:"{field.column_name}"'
            lines.append(f"{self._field_line(name, field.type, tag)}  //{field.comment}")
        lines.append(f"{INDENT}}}")
        return lines

    def update_resp_lines(self, message: Message) -> List[str]:
        name: str = first_upper(message.name)
        return [
            f"{INDENT}Update{name}Resp {{",
            self._field_line("Id", "int64", 'json:"id"'),
            f"{INDENT}}}",
        ]

    def query_req_lines(self, message: Message) -> List[str]:
        name: str = first_upper(message.name)
        return [
            f"{INDENT}Query{name}Req {{",
            self._field_line("Id", "int64", 'form:"id,optional"'),
            self._field_line("PageNo", "int64", 'form:"page_no,optional"'),
            self._field_line("PageSize", "int64", 'form:"page_size,optional"'),
            f"{INDENT}}}",
        ]

    def query_resp_lines(self, message: Message) -> List[str]:
        name: str = first_upper(message.name)
        list_tag: str = f'json:"{first_lower(message.name)}_list"'
        return [
            f"{INDENT}Query{name}Resp {{",
            self._field_line(f"{message.name}List", f"[]{name}", list_tag),
            self._field_line("CurrPage", "int64", 'json:"curr_page"'),
            self._field_line("TotalPage", "int64", 'json:"total_page"'),
            self._field_line("TotalCount", "int64", 'json:"total_count"'),
            f"{INDENT}}}",
        ]

    def message_block(self, message: Message) -> List[str]:
        """Banner plus the ``type ( ... )`` group of one table message."""
        groups: List[List[str]] = [
            self.model_type_lines(message),
            self.create_resp_lines(message),
            self.update_req_lines(message),
            self.update_resp_lines(message),
            self.query_req_lines(message),
            self.query_resp_lines(message),
        ]
        lines: List[str] = [f"//{_BANNER_RULE}{message.comment}{_BANNER_RULE}", "type ("]
        for index, group in enumerate(groups):
            if index:
                lines.append("")
            lines.extend(group)
        lines.extend([")", ""])
        return lines

    def custom_block(self, message: Message) -> List[str]:
        """Banner plus the ``type ( ... )`` group of one custom message."""
        return [
            f"//{_BANNER_RULE}customize_proto{message.name}{_BANNER_RULE}",
            "type (",
            *self.model_type_lines(message),
            ")",
            "",
        ]

    def render_param(self) -> str:
        schema: Schema = self.schema
        lines: List[str] = self.header_lines()
        lines.extend(self.registry_lines(TABLES_START, TABLES_END, schema.message_names))
        lines.append("")
        lines.extend(
            self.registry_lines(CUSTOM_START, CUSTOM_END, schema.cus_message_names)
        )
        lines.append("")
        lines.append(TYPES_START)
        for message in schema.messages:
            lines.extend(self.message_block(message))
        for message in schema.cus_messages:
            lines.extend(self.custom_block(message))
        lines.append(TYPES_END)
        lines.append("")
        return "\n".join(lines)

    # -- Service artifact ---------------------------------------------------

    @staticmethod
    def enum_block(enum: EnumDefinition) -> List[str]:
        lines: List[str] = [f"// {enum.comment}".rstrip(), f"enum {enum.name} {{"]
        lines.extend(f"{INDENT}{field};" for field in enum.fields)
        lines.append("}")
        return lines

    @staticmethod
    def _endpoint(doc: str, handler: str, route: str) -> List[str]:
        return [f'{TAB}@doc "{doc}"', f"{TAB}@handler {handler}", f"{TAB}{route}", ""]

    def endpoint_lines(self, message: Message) -> List[str]:
        """Endpoints of *message* for the configured CRUD subset."""
        name: str = message.name
        path: str = first_upper(name)
        lines: List[str] = []
        for method in self.methods:
            if method == CrudMethod.INSERT.value:
                lines.extend(
                    self._endpoint(
                        f"{name} create [auto]",
                        f"create{name}",
                        f"post /{path}/create ({name}) returns (Create{path}Resp);",
                    )
                )
            elif method == CrudMethod.UPDATE.value:
                lines.extend(
                    self._endpoint(
                        f"{name} update [auto]",
                        f"update{name}",
                        f"post /{path}/update (Update{name}Req) returns (Update{path}Resp);",
                    )
                )
            elif method == CrudMethod.QUERY.value:
                lines.extend(
                    self._endpoint(
                        f"{name} list query [auto]",
                        f"query{name}List",
                        f"get /{path}/query (Query{path}Req) returns (Query{name}Resp);",
                    )
                )
                lines.extend(
                    self._endpoint(
                        f"{name} query [auto]",
                        f"query{name}",
                        f"get /{path} (Query{path}Req) returns ({path});",
                    )
                )
        return lines

    def service_block(self, message: Message) -> List[str]:
        return [
            f"{TAB}//{_SERVICE_RULE}{message.comment}{_SERVICE_RULE}",
            *self.endpoint_lines(message),
        ]

    def render_service(self) -> str:
        schema: Schema = self.schema
        lines: List[str] = self.header_lines()
        lines.extend(["import (", f'{TAB}"{schema.service_name}Param.api"', ")", ""])
        lines.extend(self.registry_lines(TABLES_START, TABLES_END, schema.message_names))
        lines.append("")
        lines.append(ENUMS_START)
        for enum in schema.enums:
            lines.extend(self.enum_block(enum))
        lines.append(ENUMS_END)
        lines.append("")
        lines.extend(["// " + "-" * 36, "// api Func", "// " + "-" * 36, ""])
        lines.append(f"service {schema.service_name} {{")
        lines.append(f"{TAB}{SERVICE_START}")
        for message in schema.messages:
            lines.extend(self.service_block(message))
        lines.append(f"{TAB}{SERVICE_END}")
        lines.append("}")
        lines.append("")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TABLES_START",
    "TABLES_END",
    "CUSTOM_START",
    "CUSTOM_END",
    "TYPES_START",
    "TYPES_END",
    "ENUMS_START",
    "ENUMS_END",
    "SERVICE_START",
    "SERVICE_END",
    "MODEL_EXCLUDED_FIELDS",
    "selected_methods",
    "ArtifactRenderer",
]
