# File: crudgen/proto.py
"""
CrudGen - Interface-Definition Tokenizer
=========================================
A line-oriented tokenizer over the subset of ``.proto`` syntax the
generator consumes.  It produces a typed ``ProtoFile`` before any schema
field is constructed:

    // Api Struct Gen            ← directive section: message names to extract
    // UserInfo
    // Struct Gen End

    message UserInfo {           ← message blocks
      int64 id = 1;  // user id
      repeated string tags = 2;
    }

    service user {               ← service blocks (used by the logic generator)
      // create a user
      rpc CreateUser(User) returns (CreateUserResp);
    }

Brace depth is tracked per line, so nested messages, enums and option blocks
are stepped over instead of being mistaken for fields.  Lines that do not
fit the field grammar are recorded on the message as skipped and never raise.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

from crudgen.models import (
    ProtoField,
    ProtoFile,
    ProtoMessage,
    RpcDefinition,
    ServiceDefinition,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.proto")

# ---------------------------------------------------------------------------
# Markers and patterns
# ---------------------------------------------------------------------------

STRUCT_GEN_START: str = "Api Struct Gen"
STRUCT_GEN_END: str = "Struct Gen End"

_FIELD_LABELS: Tuple[str, ...] = ("repeated", "optional", "required")

_PACKAGE_RE: re.Pattern[str] = re.compile(r"^package\s+([\w.]+)\s*;")
_MESSAGE_RE: re.Pattern[str] = re.compile(r"^message\s+(\w+)")
_SERVICE_RE: re.Pattern[str] = re.compile(r"^service\s+(\w+)")
_RPC_RE: re.Pattern[str] = re.compile(
    r"^rpc\s+(\w+)\s*\(\s*(stream\s+)?([\w.]+)\s*\)\s*"
    r"returns\s*\(\s*(stream\s+)?([\w.]+)\s*\)"
)


def _split_comment(line: str) -> Tuple[str, str]:
    code, _, comment = line.partition("//")
    return code.strip(), comment.strip()


def parse_field_line(code: str, comment: str = "") -> Optional[ProtoField]:
    """
    Parse ``[label] <type> <name> = <tag>;`` into a ``ProtoField``.

    Returns ``None`` when the line does not fit the grammar.
    """
    tokens: List[str] = code.replace("=", " = ").replace(";", " ").split()
    label: str = ""
    if tokens and tokens[0] in _FIELD_LABELS:
        label = tokens.pop(0)

    if len(tokens) < 4 or tokens[2] != "=":
        return None

    type_token, name, _, tag_token = tokens[:4]
    if not tag_token.isdigit():
        return None

    return ProtoField(
        label=label,
        type=type_token,
        name=name,
        tag=int(tag_token),
        comment=comment,
    )


def parse_rpc_line(code: str, doc: List[str]) -> Optional[RpcDefinition]:
    match: Optional[re.Match[str]] = _RPC_RE.match(code)
    if match is None:
        return None
    return RpcDefinition(
        name=match.group(1),
        request_type=match.group(3),
        returns_type=match.group(5),
        streams_request=bool(match.group(2)),
        streams_returns=bool(match.group(4)),
        doc=list(doc),
    )


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


def parse_proto(text: str) -> ProtoFile:
    """
    Tokenize a ``.proto`` source into a ``ProtoFile``.

    Never raises on malformed content; unparseable lines are skipped.
    """
    result: ProtoFile = ProtoFile()
    lines: List[str] = text.splitlines()

    depth: int = 0
    block: Optional[Union[ProtoMessage, ServiceDefinition]] = None
    block_depth: int = 0
    pending_doc: List[str] = []
    in_directives: bool = False

    for raw in lines:
        # -- directive section ------------------------------------------------
        if in_directives:
            if STRUCT_GEN_END in raw:
                in_directives = False
                continue
            name: str = raw.replace("//", "").strip()
            if name:
                result.directives.append(name)
            continue
        if block is None and STRUCT_GEN_START in raw:
            in_directives = True
            continue

        code, comment = _split_comment(raw)
        opens: int = code.count("{")
        closes: int = code.count("}")

        # -- top level --------------------------------------------------------
        if block is None:
            message_match = _MESSAGE_RE.match(code)
            service_match = _SERVICE_RE.match(code)
            package_match = _PACKAGE_RE.match(code)

            if message_match is not None:
                block = ProtoMessage(name=message_match.group(1))
            elif service_match is not None:
                block = ServiceDefinition(name=service_match.group(1))
            elif package_match is not None:
                result.package = package_match.group(1)

            block_depth = depth
            depth = max(depth + opens - closes, 0)
            pending_doc = []
            if block is not None and opens and depth <= block_depth:
                _close_block(result, block)
                block = None
            continue

        # -- inside a message / service -----------------------------------------
        at_member_level: bool = depth == block_depth + 1

        if at_member_level and not opens and not closes and code:
            if isinstance(block, ProtoMessage):
                parsed_field: Optional[ProtoField] = parse_field_line(code, comment)
                if parsed_field is None:
                    block.skipped_lines.append(raw.strip())
                    logger.debug(
                        "Skipping unparseable line in message %s: %r",
                        block.name,
                        raw.strip(),
                    )
                else:
                    block.fields.append(parsed_field)
            else:
                rpc: Optional[RpcDefinition] = parse_rpc_line(code, pending_doc)
                if rpc is not None:
                    block.rpcs.append(rpc)
            pending_doc = []
        elif at_member_level and isinstance(block, ServiceDefinition):
            if not code and comment:
                pending_doc.append(comment)
            else:
                rpc = parse_rpc_line(code, pending_doc)
                if rpc is not None:
                    block.rpcs.append(rpc)
                pending_doc = []

        depth += opens - closes
        if depth <= block_depth:
            _close_block(result, block)
            block = None
            depth = block_depth

    if block is not None:
        logger.warning("Unterminated block %r at end of input; keeping it.", block.name)
        _close_block(result, block)

    if in_directives:
        logger.warning("Directive section has no %r marker.", STRUCT_GEN_END)

    logger.debug(
        "Parsed proto: %d directive(s), %d message(s), %d service(s).",
        len(result.directives),
        len(result.messages),
        len(result.services),
    )
    return result


def _close_block(
    result: ProtoFile, block: Union[ProtoMessage, ServiceDefinition]
) -> None:
    if isinstance(block, ProtoMessage):
        result.messages.append(block)
    else:
        result.services.append(block)


def read_proto_file(path: Path) -> ProtoFile:
    """Read and tokenize a ``.proto`` file.  I/O errors propagate."""
    return parse_proto(path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "STRUCT_GEN_START",
    "STRUCT_GEN_END",
    "parse_field_line",
    "parse_rpc_line",
    "parse_proto",
    "read_proto_file",
]
