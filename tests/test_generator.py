"""
tests/test_generator.py
Unit tests for sqlgen.generator.

Tests cover:
- End-to-end runs against the in-memory SQLite example database
- Target selection and output layout
- Fail-fast behaviour, cancellation and the generation report
- Wiring checks in new_generator
"""

from __future__ import annotations

import pathlib
import threading
from typing import Any, List

import pytest

from sqlgen.config import Config
from sqlgen.errors import ConfigError, GenerateError
from sqlgen.generator import (
    MIGRATION_FILE,
    GenerationReport,
    Generator,
    new_generator,
    sql_header,
)
from sqlgen.models import ParseFailure, Schema, Target
from sqlgen.parsers import MySQLParser, SQLiteParser
from sqlgen.templates import TemplateEngine


def _relative(report: GenerationReport, root: pathlib.Path) -> List[str]:
    return sorted(pathlib.Path(f.path).relative_to(root).as_posix() for f in report.files)


# ===========================================================================
# End to end
# ===========================================================================


class TestEndToEnd:
    def test_models_only(self, sqlite_conn: Any, config: Config) -> None:
        gen = new_generator(config)
        schema = gen.parse(sqlite_conn)
        report = gen.generate(schema)

        out = pathlib.Path(config.output_dir)
        assert report.success
        assert _relative(report, out) == ["models/posts.go", "models/users.go"]
        assert sorted(p.name for p in (out / "models").iterdir()) == ["posts.go", "users.go"]
        assert not (out / MIGRATION_FILE).exists()

        users_go = (out / "models" / "users.go").read_text(encoding="utf-8")
        assert "type User struct {" in users_go
        assert "\tUsername string" in users_go

        posts_go = (out / "models" / "posts.go").read_text(encoding="utf-8")
        assert "\tUserID *int" in posts_go

    def test_all_targets(self, sqlite_conn: Any, config: Config) -> None:
        gen = new_generator(config.merged_with({"targets": "all"}))
        report = gen.generate(gen.parse(sqlite_conn))
        out = pathlib.Path(config.output_dir)
        assert _relative(report, out) == [
            "dao/posts_dao.go",
            "dao/users_dao.go",
            "models/posts.go",
            "models/users.go",
            "query/posts_query.go",
            "query/users_query.go",
            MIGRATION_FILE,
        ]
        assert report.tables == ["posts", "users"]

        script = (out / MIGRATION_FILE).read_text(encoding="utf-8")
        assert script.startswith("-- Code generated by sqlgen. DO NOT EDIT.\n")
        assert script.index("-- Table: users") < script.index("-- Table: posts")

    def test_output_dir_override(
        self, sqlite_conn: Any, config: Config, tmp_path: pathlib.Path
    ) -> None:
        gen = new_generator(config)
        other = tmp_path / "elsewhere"
        report = gen.generate(gen.parse(sqlite_conn), output_dir=other)
        assert report.output_directory == str(other)
        assert (other / "models" / "users.go").is_file()
        assert not pathlib.Path(config.output_dir).exists()

    def test_file_names_follow_table_rule(self, sqlite_conn: Any, config: Config) -> None:
        gen = new_generator(config.merged_with({"table_name_rule": "pascal"}))
        gen.generate(gen.parse(sqlite_conn))
        assert (pathlib.Path(config.output_dir) / "models" / "Users.go").is_file()

    def test_generate_table(self, users_table: Any, config: Config) -> None:
        gen = new_generator(config.merged_with({"targets": "model|dao"}))
        records = gen.generate_table(users_table)
        assert [pathlib.Path(r.path).name for r in records] == ["users.go", "users_dao.go"]


# ===========================================================================
# Parse step
# ===========================================================================


class TestParse:
    def test_filter_applied(self, sqlite_conn: Any, config: Config) -> None:
        gen = new_generator(config.merged_with({"table_filter": {"include": ["user*"]}}))
        assert gen.parse(sqlite_conn).table_names == ["users"]

    def test_failures_kept_on_report(self, users_posts_schema: Schema, config: Config) -> None:
        failing = users_posts_schema.model_copy(update={
            "failures": [ParseFailure(table="ghosts", message="table not found")],
        })
        report = new_generator(config).generate(failing)
        assert report.success
        assert [f.table for f in report.parse_failures] == ["ghosts"]
        assert "ghosts: table not found" in report.summary()


# ===========================================================================
# Failure handling
# ===========================================================================


class TestFailFast:
    def test_render_failure_stops_run(
        self, users_posts_schema: Schema, config: Config
    ) -> None:
        engine = TemplateEngine()
        engine.load_template("model", "{{ missing_var }}")
        gen = Generator(config, SQLiteParser(), engine)

        with pytest.raises(GenerateError) as exc_info:
            gen.generate(users_posts_schema)

        error = exc_info.value
        assert error.table == "posts"
        assert error.file.endswith("posts.go")
        assert "missing_var" in error.message
        out = pathlib.Path(config.output_dir)
        assert not (out / "models" / "posts.go").exists()
        assert not (out / "models" / "users.go").exists()

    def test_later_tables_not_written(
        self, users_posts_schema: Schema, config: Config
    ) -> None:
        engine = TemplateEngine()
        engine.load_template("model", "{% if table_name == 'users' %}{{ boom }}{% endif %}ok\n")
        gen = Generator(config, SQLiteParser(), engine)

        with pytest.raises(GenerateError) as exc_info:
            gen.generate(users_posts_schema)

        assert exc_info.value.table == "users"
        out = pathlib.Path(config.output_dir)
        assert (out / "models" / "posts.go").read_text(encoding="utf-8") == "ok\n"
        assert not (out / "models" / "users.go").exists()

    def test_cancellation(self, users_posts_schema: Schema, config: Config) -> None:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(GenerateError) as exc_info:
            new_generator(config).generate(users_posts_schema, cancel=cancel)
        assert "cancelled" in exc_info.value.message
        assert not pathlib.Path(config.output_dir).exists()

    def test_dialect_mismatch(self, config: Config) -> None:
        with pytest.raises(ConfigError) as exc_info:
            Generator(config, MySQLParser(), TemplateEngine())
        assert exc_info.value.field == "database_type"

    def test_missing_template_dir(self, config: Config, tmp_path: pathlib.Path) -> None:
        broken = config.merged_with({"template_dir": str(tmp_path / "absent")})
        with pytest.raises(GenerateError):
            new_generator(broken)


# ===========================================================================
# Wiring & report
# ===========================================================================


class TestWiring:
    def test_template_dir_overrides(
        self, sqlite_conn: Any, config: Config, tmp_path: pathlib.Path
    ) -> None:
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "model.tmpl").write_text("// {{ entity_name }}\n", encoding="utf-8")
        gen = new_generator(config.merged_with({"template_dir": str(templates)}))
        gen.generate(gen.parse(sqlite_conn))
        users_go = pathlib.Path(config.output_dir) / "models" / "users.go"
        assert users_go.read_text(encoding="utf-8") == "// User\n"

    def test_parser_options_forwarded(self, tmp_path: pathlib.Path) -> None:
        config = Config(database_type="mysql", output_dir=str(tmp_path))
        gen = new_generator(config, database="shop")
        assert isinstance(gen.parser, MySQLParser)
        assert gen.parser.database == "shop"

    def test_sql_header(self) -> None:
        assert sql_header("// Code generated. DO NOT EDIT.\n//\n// v1") == (
            "-- Code generated. DO NOT EDIT.\n--\n-- v1"
        )

    def test_report_summary(self, sqlite_conn: Any, config: Config) -> None:
        gen = new_generator(config)
        report = gen.generate(gen.parse(sqlite_conn))
        summary = report.summary()
        assert "SUCCESS" in summary
        assert "Files written:    2" in summary
        assert report.total_bytes > 0
        assert report.total_lines > 0
        assert report.elapsed_seconds >= 0

    def test_wants(self, config: Config) -> None:
        assert config.wants(Target.MODEL)
        assert not config.wants(Target.DAO)
