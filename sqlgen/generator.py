# File: sqlgen/generator.py
"""
sqlgen - Generation Pipeline (Orchestrator)
============================================
Connects every phase of a reverse-generation run:

    Connection → Parser → Table Filter → TemplateData → Templates → Writer
                                      └──────────────→ DDL renderer ──┘

Collaborators are passed to ``Generator`` explicitly; ``new_generator``
wires the stock ones from a ``Config``.

Output layout (``<name>`` follows ``table_name_rule``)::

    <output>/models/<name>.go
    <output>/dao/<name>_dao.go
    <output>/query/<name>_query.go
    <output>/schema.sql

Error handling strategy:
    - ``parse`` keeps the parser's per-table failures on the returned
      Schema; they are copied onto the ``GenerationReport``.
    - ``generate`` is fail-fast.  The first render or write failure is
      logged and raised as ``GenerateError``; later tables are not written.
      Files already written stay in place, each of them complete.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, NamedTuple, Optional, Union

from sqlgen.config import Config
from sqlgen.ddl import DDLRenderer
from sqlgen.errors import ConfigError, GenerateError
from sqlgen.filters import filter_tables
from sqlgen.models import ParseFailure, Schema, Table, Target
from sqlgen.parsers import DialectParser, new_parser
from sqlgen.render import TemplateData, build_template_data
from sqlgen.templates import TemplateEngine
from sqlgen.utils import Timer
from sqlgen.writer import FileRecord, FileWriter

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.generator")

MIGRATION_FILE: str = "schema.sql"


class Artifact(NamedTuple):
    target: Target
    template: str
    directory: str
    pattern: str


ARTIFACTS: List[Artifact] = [
    Artifact(Target.MODEL, "model", "models", "{name}.go"),
    Artifact(Target.DAO, "dao", "dao", "{name}_dao.go"),
    Artifact(Target.QUERY, "query", "query", "{name}_query.go"),
]


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """What one ``Generator.generate`` call produced."""

    success: bool = False
    output_directory: str = ""
    tables: List[str] = field(default_factory=list)
    files: List[FileRecord] = field(default_factory=list)
    parse_failures: List[ParseFailure] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.files)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "SUCCESS" if self.success else "FAILED"
        lines.append("=" * 60)
        lines.append("  sqlgen - Generation Report")
        lines.append("=" * 60)
        lines.append(f"  Status:           {status}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Tables generated: {len(self.tables)}")
        lines.append(f"  Files written:    {len(self.files)}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.elapsed_seconds:.3f}s")

        if self.files:
            lines.append("-" * 60)
            for record in self.files:
                lines.append(f"    {record.path}  ({record.line_count} lines)")

        if self.parse_failures:
            lines.append("-" * 60)
            lines.append(f"  Skipped Tables ({len(self.parse_failures)}):")
            for failure in self.parse_failures:
                lines.append(f"    {failure.table}: {failure.message}")

        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _with_context(exc: GenerateError, table: str, file: str = "") -> GenerateError:
    return GenerateError(
        exc.message,
        table=exc.table or table,
        file=exc.file or file,
        cause=exc.cause or exc,
    )


def sql_header(header: str) -> str:
    """Turn a ``//`` code header into ``--`` SQL comment lines."""
    lines: List[str] = []
    for line in header.splitlines():
        text: str = line.strip().lstrip("/").strip()
        lines.append(f"-- {text}" if text else "--")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Generator:
    """
    Parse a live database and render its tables into Go source files.

    Usage::

        gen = new_generator(Config(database_type="sqlite", targets="model|dao"))
        with engine.connect() as conn:
            schema = gen.parse(conn)
        report = gen.generate(schema)
        print(report.summary())
    """

    def __init__(
        self,
        config: Config,
        parser: DialectParser,
        engine: TemplateEngine,
        writer: Optional[FileWriter] = None,
        ddl_renderer: Optional[DDLRenderer] = None,
    ) -> None:
        if parser.get_dialect() is not config.database_type:
            raise ConfigError(
                "database_type",
                f"parser dialect {parser.get_dialect().value} does not match "
                f"{config.database_type.value}",
            )
        self.config: Config = config
        self.parser: DialectParser = parser
        self.engine: TemplateEngine = engine
        self.writer: FileWriter = writer or FileWriter()
        self.ddl_renderer: DDLRenderer = ddl_renderer or DDLRenderer(
            config.database_type, header=sql_header(config.header)
        )

    # -- Parse --------------------------------------------------------------

    def parse(self, conn: Any, cancel: Optional[threading.Event] = None) -> Schema:
        """Introspect *conn* and apply the configured table filter."""
        schema: Schema = self.parser.parse_database(conn, cancel)
        tables: List[Table] = filter_tables(schema.tables, self.config.table_filter)
        if schema.failures:
            logger.warning(
                "%d table(s) could not be parsed: %s",
                len(schema.failures),
                ", ".join(f.table for f in schema.failures),
            )
        return schema.model_copy(update={"tables": tables})

    # -- Generate -----------------------------------------------------------

    def generate(
        self,
        schema: Schema,
        output_dir: Union[str, Path, None] = None,
        cancel: Optional[threading.Event] = None,
    ) -> GenerationReport:
        """Render and write every requested artifact for every table."""
        out: Path = Path(output_dir or self.config.output_dir)
        report = GenerationReport(
            output_directory=str(out),
            parse_failures=list(schema.failures),
        )
        tables: List[Table] = filter_tables(schema.tables, self.config.table_filter)

        with Timer("generate") as timer:
            try:
                for table in tables:
                    if cancel is not None and cancel.is_set():
                        raise GenerateError("generation cancelled", table=table.name)
                    report.files.extend(self.generate_table(table, out))
                    report.tables.append(table.name)
                if self.config.wants(Target.MIGRATION):
                    report.files.append(
                        self._write_migration(schema.model_copy(update={"tables": tables}), out)
                    )
            except GenerateError as exc:
                logger.error("Generation aborted: %s", exc)
                raise

        report.elapsed_seconds = timer.elapsed
        report.success = True
        logger.info(
            "Generated %d file(s) for %d table(s) into %s in %.3fs.",
            len(report.files),
            len(report.tables),
            out,
            report.elapsed_seconds,
        )
        return report

    def generate_table(
        self, table: Table, output_dir: Union[str, Path, None] = None
    ) -> List[FileRecord]:
        """Render and write the per-table artifacts of *table*."""
        out: Path = Path(output_dir or self.config.output_dir)
        data: TemplateData = build_template_data(table, self.config)
        records: List[FileRecord] = []
        for artifact in ARTIFACTS:
            if not self.config.wants(artifact.target):
                continue
            path: Path = out / artifact.directory / artifact.pattern.format(name=data.file_name)
            try:
                content: str = self.engine.render(artifact.template, data)
                records.append(self.writer.write_atomic(path, content))
            except GenerateError as exc:
                raise _with_context(exc, table.name, str(path)) from exc
            logger.debug("Generated %s for table %s.", path, table.name)
        return records

    def _write_migration(self, schema: Schema, out: Path) -> FileRecord:
        path: Path = out / MIGRATION_FILE
        script: str = self.ddl_renderer.render(schema)
        record: FileRecord = self.writer.write_atomic(path, script)
        logger.info("Wrote migration script %s (%d tables).", path, len(schema.tables))
        return record

    def __repr__(self) -> str:
        return f"<Generator {self.config.database_type.value} -> {self.config.output_dir}>"


def new_generator(config: Config, **parser_options: Any) -> Generator:
    """Wire the stock parser, template engine, writer and DDL renderer."""
    engine = TemplateEngine()
    if config.template_dir:
        engine.load_template_dir(config.template_dir)
    return Generator(
        config=config,
        parser=new_parser(config.database_type, **parser_options),
        engine=engine,
        writer=FileWriter(),
        ddl_renderer=DDLRenderer(config.database_type, header=sql_header(config.header)),
    )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MIGRATION_FILE",
    "Artifact",
    "ARTIFACTS",
    "GenerationReport",
    "sql_header",
    "Generator",
    "new_generator",
]

logger.debug("sqlgen.generator loaded.")
