"""
tests/test_merge.py
Unit tests for crudgen.merge: idempotence, additive-only merges, registry
set difference, malformed artifacts and I/O faults.
"""

from __future__ import annotations

import os
import pathlib
from typing import List

import pytest

from crudgen.exceptions import ArtifactIOError
from crudgen.merge import (
    PARAM_ARTIFACT,
    PARAM_REGIONS,
    SERVICE_ARTIFACT,
    SERVICE_REGIONS,
    merge_artifact,
    merge_text,
    parse_document,
    registry_names,
    render_or_merge,
)
from crudgen.models import Message, MessageField, Schema
from crudgen.renderer import ArtifactRenderer
from crudgen.type_mapper import map_column_type

from tests.conftest import make_column


def _schema_with(names: List[str], service: str = "shop") -> Schema:
    messages = [
        Message(
            name=name,
            comment=name.lower(),
            fields=[MessageField(type="int64", name="id", column_name="id")],
        )
        for name in names
    ]
    return Schema(
        service_name=service,
        messages=messages,
        generate_crud_methods=["insert", "query"],
    ).finalize()


def _renderer(names: List[str]) -> ArtifactRenderer:
    return ArtifactRenderer(_schema_with(names))


# ===========================================================================
# Document model
# ===========================================================================


class TestParseDocument:
    def test_round_trip_is_exact(self, renderer: ArtifactRenderer) -> None:
        for text, specs in (
            (renderer.render_param(), PARAM_REGIONS),
            (renderer.render_service(), SERVICE_REGIONS),
        ):
            assert parse_document(text, specs).serialize() == text

    def test_round_trip_without_regions(self) -> None:
        text = "hand written\nno markers here\n"
        document = parse_document(text, PARAM_REGIONS)
        assert [r.key for r in document.regions] == ["text"]
        assert document.serialize() == text

    def test_registry_names(self, renderer: ArtifactRenderer) -> None:
        document = parse_document(renderer.render_param(), PARAM_REGIONS)
        assert registry_names(document.get("tables")) == ["OrderItem", "User"]
        assert registry_names(document.get("custom")) == ["PageMeta", "UserInfo"]


# ===========================================================================
# Idempotence and set difference
# ===========================================================================


class TestMergeSemantics:
    @pytest.mark.parametrize("artifact", [PARAM_ARTIFACT, SERVICE_ARTIFACT])
    def test_merge_into_fresh_render_is_a_no_op(
        self, renderer: ArtifactRenderer, artifact: str
    ) -> None:
        fresh = renderer.render_param() if artifact == PARAM_ARTIFACT else renderer.render_service()
        result = merge_text(fresh, renderer, artifact)
        assert not result.changed
        assert result.document.serialize() == fresh

    def test_param_set_difference(self) -> None:
        existing = _renderer(["Alpha", "Beta"]).render_param()
        result = merge_text(existing, _renderer(["Alpha", "Beta", "Gamma"]), PARAM_ARTIFACT)

        assert result.added["tables"] == ["Gamma"]
        merged = result.document.serialize()
        assert merged.count("// Gamma") == 1
        assert merged.count("  Gamma {") == 1
        assert merged.count("  Alpha {") == 1
        # new entry lands just before the registry end sentinel
        lines = merged.split("\n")
        assert lines[lines.index("// Exist Table End") - 1] == "// Gamma"
        # new block lands just before the type body end sentinel
        assert lines[lines.index("// Type Record End") - 1] == ""
        assert lines.index("  Gamma {") < lines.index("// Type Record End")

    def test_service_set_difference(self) -> None:
        existing = _renderer(["Alpha", "Beta"]).render_service()
        result = merge_text(existing, _renderer(["Alpha", "Beta", "Gamma"]), SERVICE_ARTIFACT)

        merged = result.document.serialize()
        assert merged.count("@handler createGamma") == 1
        assert merged.count("@handler createAlpha") == 1
        lines = merged.split("\n")
        assert lines.index("\t@handler queryGamma") < lines.index("\t// Service Record End")

    def test_merge_twice_equals_merge_once(self) -> None:
        existing = _renderer(["Alpha"]).render_param()
        target = _renderer(["Alpha", "Beta"])
        once = merge_text(existing, target, PARAM_ARTIFACT).document.serialize()
        twice = merge_text(once, target, PARAM_ARTIFACT)
        assert not twice.changed
        assert twice.document.serialize() == once

    def test_removed_entities_are_kept(self) -> None:
        existing = _renderer(["Alpha", "Beta"]).render_param()
        result = merge_text(existing, _renderer(["Alpha"]), PARAM_ARTIFACT)
        assert not result.changed
        assert "  Beta {" in result.document.serialize()

    def test_hand_edits_survive(self) -> None:
        existing = _renderer(["Alpha"]).render_param()
        edited = existing.replace(
            "  Alpha {", "  // hand-written note\n  Alpha {"
        ) + "// trailing notes\n"
        merged = merge_text(edited, _renderer(["Alpha", "Beta"]), PARAM_ARTIFACT)
        text = merged.document.serialize()
        assert "  // hand-written note\n  Alpha {" in text
        assert text.endswith("// trailing notes\n")
        # everything before the insertion point is byte-identical
        prefix = edited.split("// Exist Table End")[0]
        assert text.startswith(prefix)

    def test_new_enum_appended(self) -> None:
        base = _schema_with(["Alpha"])
        existing = ArtifactRenderer(base).render_service()

        column = make_column("alpha", "kind", "enum", "enum('x','y')", "kind of alpha")
        _, enum = map_column_type(column)
        richer = _schema_with(["Alpha"])
        richer.enums.append(enum)
        result = merge_text(existing, ArtifactRenderer(richer), SERVICE_ARTIFACT)

        assert result.added["enums"] == ["AlphaKind"]
        lines = result.document.serialize().split("\n")
        assert lines.index("enum AlphaKind {") < lines.index("// Enums Record End")


# ===========================================================================
# Malformed artifacts
# ===========================================================================


class TestMalformedArtifacts:
    def test_missing_end_sentinel_merges_nothing_there(self) -> None:
        existing = _renderer(["Alpha"]).render_param().replace("// Exist Table End\n", "")
        result = merge_text(existing, _renderer(["Alpha", "Beta"]), PARAM_ARTIFACT)
        assert result.added["tables"] == []
        assert result.document.serialize() == existing

    def test_missing_body_region_registers_nothing(self) -> None:
        fresh = _renderer(["Alpha"]).render_param()
        existing = fresh.replace("// Type Record Start\n", "")
        result = merge_text(existing, _renderer(["Alpha", "Beta"]), PARAM_ARTIFACT)
        assert not result.changed
        assert result.document.serialize() == existing

        # once the sentinel is back, Beta is still new and gets its block
        restored = merge_text(fresh, _renderer(["Alpha", "Beta"]), PARAM_ARTIFACT)
        assert restored.added["tables"] == ["Beta"]
        assert "  Beta {" in restored.document.serialize()

    def test_service_with_end_sentinel_only(self) -> None:
        existing = _renderer(["Alpha"]).render_service().replace("\t// Service Record Start\n", "")
        target = _renderer(["Alpha", "Beta"])
        result = merge_text(existing, target, SERVICE_ARTIFACT)
        text = result.document.serialize()
        assert result.added["tables"] == ["Beta"]
        assert text.count("@handler createBeta") == 1
        lines = text.split("\n")
        assert lines.index("\t@handler queryBeta") < lines.index("\t// Service Record End")

        again = merge_text(text, target, SERVICE_ARTIFACT)
        assert not again.changed

    def test_service_without_end_sentinel_registers_nothing(self) -> None:
        existing = _renderer(["Alpha"]).render_service().replace("\t// Service Record End\n", "")
        result = merge_text(existing, _renderer(["Alpha", "Beta"]), SERVICE_ARTIFACT)
        assert result.added["tables"] == []
        text = result.document.serialize()
        assert "// Beta" not in text
        assert "createBeta" not in text

    def test_crlf_line_endings_are_kept(self) -> None:
        existing = _renderer(["Alpha"]).render_service().replace("\n", "\r\n")
        result = merge_text(existing, _renderer(["Alpha", "Beta"]), SERVICE_ARTIFACT)
        text = result.document.serialize()
        assert "@handler createBeta" in text
        assert text.count("\n") == text.count("\r\n")

    def test_empty_file(self) -> None:
        result = merge_text("", _renderer(["Alpha"]), PARAM_ARTIFACT)
        assert not result.changed
        assert result.document.serialize() == ""


# ===========================================================================
# File-level operations
# ===========================================================================


class TestFileOperations:
    def test_render_or_merge_creates_then_merges(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "api" / "shopParam.api"
        assert render_or_merge(path, _renderer(["Alpha"]), PARAM_ARTIFACT) is True
        first = path.read_text(encoding="utf-8")
        assert first == _renderer(["Alpha"]).render_param()

        assert render_or_merge(path, _renderer(["Alpha"]), PARAM_ARTIFACT) is False
        assert path.read_text(encoding="utf-8") == first

        assert render_or_merge(path, _renderer(["Alpha", "Beta"]), PARAM_ARTIFACT) is True
        assert "// Beta" in path.read_text(encoding="utf-8")

    def test_unchanged_file_is_not_rewritten(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "shop.api"
        path.write_text(_renderer(["Alpha"]).render_service(), encoding="utf-8")
        os.utime(path, (1_000_000, 1_000_000))
        merge_artifact(path, _renderer(["Alpha"]), SERVICE_ARTIFACT)
        assert path.stat().st_mtime == 1_000_000

    def test_unreadable_file_raises(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "shopParam.api"
        path.write_bytes(b"\xff\xfe\xfa not utf-8")
        with pytest.raises(ArtifactIOError) as exc_info:
            merge_artifact(path, _renderer(["Alpha"]), PARAM_ARTIFACT)
        assert exc_info.value.path == str(path)
        assert path.read_bytes() == b"\xff\xfe\xfa not utf-8"

    def test_directory_in_place_of_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "shopParam.api"
        path.mkdir()
        with pytest.raises(ArtifactIOError):
            render_or_merge(path, _renderer(["Alpha"]), PARAM_ARTIFACT)
        assert path.is_dir()

    def test_crlf_file_merged_in_place(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "shopParam.api"
        path.write_bytes(_renderer(["Alpha"]).render_param().replace("\n", "\r\n").encode("utf-8"))
        merge_artifact(path, _renderer(["Alpha", "Beta"]), PARAM_ARTIFACT)
        raw = path.read_bytes()
        assert b"  Beta {\r\n" in raw
        assert raw.count(b"\n") == raw.count(b"\r\n")
