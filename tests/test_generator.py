"""
tests/test_generator.py
Integration tests for crudgen.generator: configuration loading and the
ArtifactGenerator pipeline end to end against temporary directories.
"""

from __future__ import annotations

import json
import pathlib

import pytest
import yaml

from crudgen.exceptions import ConfigError
from crudgen.generator import (
    DSN_ENV_VAR,
    ArtifactGenerator,
    build_config,
    load_config_file,
)
from crudgen.introspection import InMemorySchemaSource
from crudgen.models import GenerationConfig

from tests.conftest import make_column


# ===========================================================================
# Configuration
# ===========================================================================


class TestConfigLoading:
    def test_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "crudgen.yaml"
        path.write_text(
            yaml.safe_dump({"service_name": "user", "tables": "a, b", "multiple": True}),
            encoding="utf-8",
        )
        config = build_config(load_config_file(path))
        assert config.service_name == "user"
        assert config.tables == ["a", "b"]
        assert config.multiple is True

    def test_json_nested(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "crudgen.json"
        path.write_text(json.dumps({"config": {"service_name": "user"}}), encoding="utf-8")
        config = build_config(load_config_file(path))
        assert config.service_name == "user"

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(DSN_ENV_VAR, raising=False)
        config = build_config(
            {"service_name": "user", "dir": "a"}, {"dir": "b", "dsn": None}
        )
        assert config.dir == "b"
        assert config.dsn is None

    def test_dsn_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(DSN_ENV_VAR, "mysql+pymysql://u:p@db/app")
        assert build_config({"service_name": "user"}).dsn == "mysql+pymysql://u:p@db/app"
        explicit = build_config({"service_name": "user", "dsn": "sqlite://"})
        assert explicit.dsn == "sqlite://"

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigError):
            load_config_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("service_name: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_non_mapping(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigError):
            build_config({"service_name": "user", "colour": "blue"})

    def test_missing_service_name(self) -> None:
        with pytest.raises(ConfigError):
            build_config({})

    def test_default_proto_path(self) -> None:
        assert build_config({"service_name": "user"}).resolved_proto_file == (
            "./rpc/proto/user.proto"
        )


# ===========================================================================
# Pipeline
# ===========================================================================


class TestGenerate:
    def test_fresh_run(
        self, config: GenerationConfig, source: InMemorySchemaSource, proto_text: str
    ) -> None:
        report = ArtifactGenerator().generate(config, source=source, proto_text=proto_text)
        assert report.success, report.summary()
        assert report.messages_extracted == 2
        assert report.custom_messages_extracted == 2
        assert report.enums_extracted == 1

        api_dir = pathlib.Path(config.dir)
        assert (api_dir / "userParam.api").is_file()
        assert (api_dir / "user.api").is_file()
        assert len(report.written_files) == 2
        assert "SUCCESS" in report.summary()

    def test_second_run_changes_nothing(
        self, config: GenerationConfig, source: InMemorySchemaSource, proto_text: str
    ) -> None:
        generator = ArtifactGenerator()
        generator.generate(config, source=source, proto_text=proto_text)
        api_dir = pathlib.Path(config.dir)
        before = {p.name: p.read_text(encoding="utf-8") for p in api_dir.iterdir()}

        report = generator.generate(config, source=source, proto_text=proto_text)
        assert report.success
        assert report.written_files == []
        assert len(report.unchanged_files) == 2
        assert {p.name: p.read_text(encoding="utf-8") for p in api_dir.iterdir()} == before

    def test_new_table_is_merged(
        self, config: GenerationConfig, user_columns, order_columns
    ) -> None:
        generator = ArtifactGenerator()
        generator.generate(config, source=InMemorySchemaSource(user_columns))
        report = generator.generate(
            config, source=InMemorySchemaSource([*user_columns, *order_columns])
        )
        assert report.success
        text = (pathlib.Path(config.dir) / "user.api").read_text(encoding="utf-8")
        assert text.count("@handler createUser\n") == 1
        assert "@handler createOrderItem" in text

    def test_proto_file_from_config(
        self, config: GenerationConfig, proto_path: pathlib.Path
    ) -> None:
        config.with_proto_types = True
        config.proto_file = str(proto_path)
        report = ArtifactGenerator().generate(config)
        assert report.success, report.summary()
        assert report.custom_messages_extracted == 2

    def test_missing_proto_file_is_io_error(self, config: GenerationConfig, tmp_path: pathlib.Path) -> None:
        config.with_proto_types = True
        config.proto_file = str(tmp_path / "absent.proto")
        report = ArtifactGenerator().generate(config)
        assert not report.success
        assert report.io_errors

    def test_no_source_is_validation_error(self, config: GenerationConfig) -> None:
        report = ArtifactGenerator().generate(config)
        assert not report.success
        assert any("MISSING_DSN" in e for e in report.validation_errors)

    def test_unmappable_column_writes_nothing(
        self, config: GenerationConfig, user_columns
    ) -> None:
        bad = make_column("user", "location", "geometry")
        report = ArtifactGenerator().generate(
            config, source=InMemorySchemaSource([*user_columns, bad])
        )
        assert not report.success
        assert report.generation_errors
        assert not pathlib.Path(config.dir).exists()

    def test_unwritable_directory_is_io_error(
        self, config: GenerationConfig, source: InMemorySchemaSource, tmp_path: pathlib.Path
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        config.dir = str(blocker)
        report = ArtifactGenerator().generate(config, source=source)
        assert not report.success
        assert report.io_errors
        assert report.written_files == []
        failed = [m for m in report.step_metrics if not m.success]
        assert len(failed) == 1
        assert failed[0].elapsed_seconds > 0

    def test_fail_on_warnings(self, config: GenerationConfig, source: InMemorySchemaSource) -> None:
        config.tables = ["user"]
        config.ignore_tables = ["user"]
        report = ArtifactGenerator(fail_on_warnings=True).generate(config, source=source)
        assert not report.success
        assert report.validation_warnings


class TestGenerateLogic:
    def test_logic_run(self, config: GenerationConfig, proto_text: str) -> None:
        report = ArtifactGenerator().generate_logic(config, proto_text=proto_text)
        assert report.success, report.summary()
        assert len(report.logic_results) == 7
        assert len(report.written_files) == 7

        again = ArtifactGenerator().generate_logic(config, proto_text=proto_text)
        assert again.written_files == []
        assert len(again.unchanged_files) == 7

    def test_missing_definition_file(self, config: GenerationConfig, tmp_path: pathlib.Path) -> None:
        config.proto_file = str(tmp_path / "absent.proto")
        report = ArtifactGenerator().generate_logic(config)
        assert not report.success
        assert report.io_errors
