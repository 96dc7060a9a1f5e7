# File: crudgen/merge.py
"""
CrudGen - Incremental Merge Engine
===================================
Regenerates an existing artifact without touching anything already in it.

The artifact is parsed once into an ``ArtifactDocument``: an ordered list of
``Region`` objects, each either verbatim text or the inner lines of a
sentinel-delimited region::

    // Already Exist Table:      ┐
    // Order                     │ registry region "tables"
    // Exist Table End           ┘
    ...                            text region (kept byte-for-byte)
    // Type Record Start         ┐
    <type blocks>                │ body region "types"
    // Type Record End           ┘

Merging is additive-only and whole-entity: names already listed in a
registry are never re-rendered, and new entities get a registry line and a
body block appended just before the region's end sentinel.  Serializing a
document that was not changed reproduces the input exactly.

The service endpoint region is located by its end sentinel alone; new
endpoints go just before that line.  A region whose start sentinel is
missing, or whose end sentinel never follows, is absent: its lines stay
verbatim text and nothing is merged into it.  A name is only registered
when its body block is written in the same pass, so one registry line always
means one body block.  Line endings of the input are kept.  The file is
rewritten atomically, and only once the merge succeeded.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from crudgen.exceptions import ArtifactIOError
from crudgen.renderer import ArtifactRenderer
from crudgen.utils import Timer, read_file, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.merge")

TEXT: str = "text"

_ENUM_NAME_RE: re.Pattern[str] = re.compile(r"^enum\s+(\w+)")


# ---------------------------------------------------------------------------
# Document model
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RegionSpec:
    """
    A sentinel pair; lines are matched by substring.

    A region without a start sentinel begins empty right before its end line.
    """

    key: str
    start: Optional[str]
    end: str


TABLES_REGION: RegionSpec = RegionSpec("tables", "Already Exist Table", "Exist Table End")
CUSTOM_REGION: RegionSpec = RegionSpec("custom", "Proto Customize Type", "Customize Type End")
TYPES_REGION: RegionSpec = RegionSpec("types", "Type Record Start", "Type Record End")
ENUMS_REGION: RegionSpec = RegionSpec("enums", "Enums Record Start", "Enums Record End")
SERVICE_REGION: RegionSpec = RegionSpec("service", None, "Service Record End")

PARAM_REGIONS: Sequence[RegionSpec] = (TABLES_REGION, CUSTOM_REGION, TYPES_REGION)
SERVICE_REGIONS: Sequence[RegionSpec] = (TABLES_REGION, ENUMS_REGION, SERVICE_REGION)


@dataclass(frozen=True, slots=True)
class Region:
    """
    One span of the artifact.

    For a text region ``lines`` is the raw text.  For a sentinel region
    ``start_line`` / ``end_line`` are the sentinel lines as found and
    ``lines`` holds what lies between them.
    """

    key: str
    lines: List[str] = field(default_factory=list)
    start_line: Optional[str] = None
    end_line: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.key == TEXT

    def appended(self, new_lines: Sequence[str]) -> "Region":
        """A copy with *new_lines* added before the end sentinel."""
        return dataclasses.replace(self, lines=[*self.lines, *new_lines])

    def raw_lines(self) -> List[str]:
        if self.is_text:
            return list(self.lines)
        lines: List[str] = [] if self.start_line is None else [self.start_line]
        lines.extend(self.lines)
        lines.append(self.end_line or "")
        return lines


@dataclass(slots=True)
class ArtifactDocument:
    regions: List[Region] = field(default_factory=list)
    newline: str = "\n"

    def get(self, key: str) -> Optional[Region]:
        for region in self.regions:
            if region.key == key:
                return region
        return None

    def replace(self, old: Region, new: Region) -> "ArtifactDocument":
        """A new document with *old* swapped for *new*."""
        return ArtifactDocument(
            regions=[new if region is old else region for region in self.regions],
            newline=self.newline,
        )

    def serialize(self) -> str:
        lines: List[str] = []
        for region in self.regions:
            lines.extend(region.raw_lines())
        return self.newline.join(lines)


def _find(lines: Sequence[str], marker: str, start: int) -> int:
    for index in range(start, len(lines)):
        if marker in lines[index]:
            return index
    return -1


def parse_document(text: str, specs: Sequence[RegionSpec]) -> ArtifactDocument:
    """
    Split *text* into regions, looking for *specs* in artifact order.

    Never raises; absent or unterminated regions are logged and left as text.
    """
    newline: str = "\r\n" if "\r\n" in text else "\n"
    lines: List[str] = text.split(newline)
    regions: List[Region] = []
    cursor: int = 0

    for spec in specs:
        if spec.start is None:
            end_only: int = _find(lines, spec.end, cursor)
            if end_only < 0:
                logger.warning("Region %r not found (no %r line).", spec.key, spec.end)
                continue
            regions.append(Region(key=TEXT, lines=lines[cursor:end_only]))
            regions.append(Region(key=spec.key, end_line=lines[end_only]))
            cursor = end_only + 1
            continue

        start: int = _find(lines, spec.start, cursor)
        if start < 0:
            logger.warning("Region %r not found (no %r line).", spec.key, spec.start)
            continue
        end: int = _find(lines, spec.end, start + 1)
        if end < 0:
            logger.warning(
                "Region %r has no %r line before end of input; left untouched.",
                spec.key,
                spec.end,
            )
            continue

        regions.append(Region(key=TEXT, lines=lines[cursor:start]))
        regions.append(
            Region(
                key=spec.key,
                lines=lines[start + 1 : end],
                start_line=lines[start],
                end_line=lines[end],
            )
        )
        cursor = end + 1

    regions.append(Region(key=TEXT, lines=lines[cursor:]))
    return ArtifactDocument(regions=regions, newline=newline)


# ---------------------------------------------------------------------------
# Existing-entity scans
# ---------------------------------------------------------------------------


def registry_names(region: Region) -> List[str]:
    """Entry names of a registry region: each line minus its ``//`` prefix."""
    names: List[str] = []
    for line in region.lines:
        entry: str = line.strip()
        if entry.startswith("//"):
            entry = entry[2:].strip()
        if entry:
            names.append(entry)
    return names


def enum_names(region: Region) -> List[str]:
    names: List[str] = []
    for line in region.lines:
        match: Optional[re.Match[str]] = _ENUM_NAME_RE.match(line)
        if match is not None:
            names.append(match.group(1))
    return names


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class MergeResult:
    """The merged document and the entity names it gained, per region key."""

    document: ArtifactDocument
    added: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return any(self.added.values())

    def added_count(self) -> int:
        return sum(len(names) for names in self.added.values())


def _merge_registry(
    document: ArtifactDocument, key: str, model_names: Sequence[str]
) -> Tuple[ArtifactDocument, List[str], Optional[Set[str]]]:
    """
    Append registry lines for names not yet listed.

    Returns ``(document, new_names, existing_names)``; *existing_names* is
    ``None`` when the region is absent.
    """
    region: Optional[Region] = document.get(key)
    if region is None:
        return document, [], None
    existing: Set[str] = set(registry_names(region))
    new_names: List[str] = [name for name in model_names if name not in existing]
    if new_names:
        entries: List[str] = [ArtifactRenderer.registry_entry(n) for n in new_names]
        document = document.replace(region, region.appended(entries))
    return document, new_names, existing


def _append_to_body(
    document: ArtifactDocument, key: str, blocks: List[str]
) -> ArtifactDocument:
    region: Optional[Region] = document.get(key)
    if region is None or not blocks:
        return document
    return document.replace(region, region.appended(blocks))


def merge_param_document(
    document: ArtifactDocument, renderer: ArtifactRenderer
) -> MergeResult:
    """
    Merge the schema's messages and custom messages into a parsed
    parameters artifact.
    """
    schema = renderer.schema
    result: MergeResult = MergeResult(document=document)

    if document.get(TYPES_REGION.key) is None:
        logger.warning("Type body region missing; no types merged.")
        result.added = {TABLES_REGION.key: [], CUSTOM_REGION.key: []}
        return result

    document, new_tables, tables_seen = _merge_registry(
        document, TABLES_REGION.key, schema.message_names
    )
    document, new_custom, custom_seen = _merge_registry(
        document, CUSTOM_REGION.key, schema.cus_message_names
    )

    blocks: List[str] = []
    tables_new: Set[str] = set(new_tables)
    custom_new: Set[str] = set(new_custom)
    for message in schema.messages:
        if message.name in tables_new:
            blocks.extend(renderer.message_block(message))
    for message in schema.cus_messages:
        if message.name in custom_new:
            blocks.extend(renderer.custom_block(message))
    document = _append_to_body(document, TYPES_REGION.key, blocks)

    if tables_seen is None:
        logger.warning("Table registry missing; no table types merged.")
    if custom_seen is None:
        logger.warning("Custom-type registry missing; no custom types merged.")

    result.document = document
    result.added = {
        TABLES_REGION.key: new_tables,
        CUSTOM_REGION.key: new_custom,
    }
    return result


def merge_service_document(
    document: ArtifactDocument, renderer: ArtifactRenderer
) -> MergeResult:
    """Merge the schema's messages and enums into a parsed service artifact."""
    schema = renderer.schema
    result: MergeResult = MergeResult(document=document)

    new_tables: List[str] = []
    if document.get(SERVICE_REGION.key) is None:
        logger.warning("Service region missing; no endpoints merged.")
    else:
        document, new_tables, tables_seen = _merge_registry(
            document, TABLES_REGION.key, schema.message_names
        )
        if tables_seen is None:
            logger.warning("Table registry missing; no endpoints merged.")

    new_enums: List[str] = []
    enum_region: Optional[Region] = document.get(ENUMS_REGION.key)
    if enum_region is not None:
        present: Set[str] = set(enum_names(enum_region))
        enum_lines: List[str] = []
        for enum in schema.enums:
            if enum.name not in present:
                new_enums.append(enum.name)
                enum_lines.extend(renderer.enum_block(enum))
        if enum_lines:
            document = document.replace(enum_region, enum_region.appended(enum_lines))
    elif schema.enums:
        logger.warning("Enum region missing; no enums merged.")

    blocks: List[str] = []
    tables_new: Set[str] = set(new_tables)
    for message in schema.messages:
        if message.name in tables_new:
            blocks.extend(renderer.service_block(message))
    document = _append_to_body(document, SERVICE_REGION.key, blocks)

    result.document = document
    result.added = {TABLES_REGION.key: new_tables, ENUMS_REGION.key: new_enums}
    return result


# ---------------------------------------------------------------------------
# File-level operations
# ---------------------------------------------------------------------------

MergeFunc = Callable[[ArtifactDocument, ArtifactRenderer], MergeResult]

PARAM_ARTIFACT: str = "param"
SERVICE_ARTIFACT: str = "service"

_ARTIFACTS: Dict[str, Tuple[Sequence[RegionSpec], MergeFunc]] = {
    PARAM_ARTIFACT: (PARAM_REGIONS, merge_param_document),
    SERVICE_ARTIFACT: (SERVICE_REGIONS, merge_service_document),
}


def write_artifact(path: Path, content: str) -> int:
    """Atomically write *content*; I/O faults become ``ArtifactIOError``."""
    try:
        return write_file(path, content)
    except OSError as exc:
        raise ArtifactIOError(str(path), str(exc)) from exc


def merge_text(text: str, renderer: ArtifactRenderer, artifact: str) -> MergeResult:
    specs, merge = _ARTIFACTS[artifact]
    return merge(parse_document(text, specs), renderer)


def merge_artifact(path: Path, renderer: ArtifactRenderer, artifact: str) -> MergeResult:
    """
    Merge the schema into the artifact at *path* and write it back.

    The file is read whole and replaced whole; it is not rewritten when
    nothing new was added.

    Raises:
        ArtifactIOError: the file cannot be read or written.  The file on
            disk is unchanged.
    """
    try:
        text: str = read_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ArtifactIOError(str(path), str(exc)) from exc

    with Timer(f"merge {path.name}"):
        result: MergeResult = merge_text(text, renderer, artifact)

    if result.changed:
        write_artifact(path, result.document.serialize())
        logger.info("Merged %d new entity name(s) into %s", result.added_count(), path)
    else:
        logger.info("%s is up to date.", path)
    return result


def render_or_merge(path: Path, renderer: ArtifactRenderer, artifact: str) -> bool:
    """
    Write a fresh artifact when *path* does not exist, merge otherwise.

    Returns ``True`` when the file was written.
    """
    if not path.exists():
        content: str = (
            renderer.render_param()
            if artifact == PARAM_ARTIFACT
            else renderer.render_service()
        )
        write_artifact(path, content)
        logger.info("Created %s", path)
        return True
    return merge_artifact(path, renderer, artifact).changed


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RegionSpec",
    "TABLES_REGION",
    "CUSTOM_REGION",
    "TYPES_REGION",
    "ENUMS_REGION",
    "SERVICE_REGION",
    "PARAM_REGIONS",
    "SERVICE_REGIONS",
    "Region",
    "ArtifactDocument",
    "parse_document",
    "registry_names",
    "enum_names",
    "MergeResult",
    "merge_param_document",
    "merge_service_document",
    "PARAM_ARTIFACT",
    "SERVICE_ARTIFACT",
    "write_artifact",
    "merge_text",
    "merge_artifact",
    "render_or_merge",
]
