# File: sqlgen/sqlfiles.py
"""
sqlgen - Forward SQL File Output
=================================
Persists the statements of ``DialectGenerator.generate_sql`` as ``.sql``
files, one set per record type.

    combined   <table>_create.sql + <table>_crud.sql
    separate   <table>_create.sql, _insert, _select, _update, _delete
    summary    init_database.sql holding every CREATE statement

Files go through the atomic writer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from sqlgen.dialects import DialectGenerator, SQLResult
from sqlgen.errors import GenerateError
from sqlgen.writer import FileRecord, FileWriter

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.sqlfiles")

SUMMARY_FILE: str = "init_database.sql"

_SECTION_WIDTH: int = 20


@dataclass(frozen=True)
class GenerateOptions:
    separate_files: bool = False
    generate_summary: bool = True
    include_comments: bool = True


def _section(title: str) -> str:
    bar: str = "=" * _SECTION_WIDTH
    return f"-- {bar} {title} {bar}"


class SQLFileGenerator:
    """Writes forward-generated SQL for record types into *output_dir*."""

    def __init__(
        self,
        dialect_generator: DialectGenerator,
        output_dir: Union[str, Path],
        writer: Optional[FileWriter] = None,
    ) -> None:
        self.dialect_generator: DialectGenerator = dialect_generator
        self.output_dir: Path = Path(output_dir)
        self.writer: FileWriter = writer or FileWriter()

    def generate_files(
        self, *models: Any, options: Optional[GenerateOptions] = None
    ) -> List[FileRecord]:
        options = options or GenerateOptions()
        results: List[SQLResult] = [self.dialect_generator.generate_sql(m) for m in models]

        records: List[FileRecord] = []
        for result in results:
            if options.separate_files:
                records.extend(self._write_separate(result, options))
            else:
                records.extend(self._write_combined(result, options))
        if options.generate_summary and results:
            records.append(self._write_summary(results, options))

        logger.info(
            "Wrote %d SQL file(s) for %d model(s) into %s.",
            len(records),
            len(results),
            self.output_dir,
        )
        return records

    # -- Layouts ------------------------------------------------------------

    def _header(self, title: str, options: GenerateOptions) -> str:
        if not options.include_comments:
            return ""
        stamp: str = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        return (
            f"-- {title}\n"
            f"-- Dialect: {self.dialect_generator.get_dialect().value}\n"
            f"-- Generated at: {stamp}\n\n"
        )

    def _write_combined(self, result: SQLResult, options: GenerateOptions) -> List[FileRecord]:
        create: str = self._header(f"{result.table_name}: CREATE TABLE", options)
        create += result.create_table + "\n"

        crud: List[str] = [self._header(f"{result.table_name}: CRUD statements", options)]
        sections: List[Tuple[str, str]] = [
            ("INSERT", result.insert),
            ("SELECT", result.select),
            ("UPDATE", result.update),
            ("DELETE", result.delete),
        ]
        crud.append("\n\n".join(f"{_section(title)}\n{sql}" for title, sql in sections))
        return [
            self._write(f"{result.table_name}_create.sql", create, result.table_name),
            self._write(f"{result.table_name}_crud.sql", "".join(crud) + "\n", result.table_name),
        ]

    def _write_separate(self, result: SQLResult, options: GenerateOptions) -> List[FileRecord]:
        parts: List[Tuple[str, str, str]] = [
            ("create", "CREATE TABLE", result.create_table),
            ("insert", "INSERT", result.insert),
            ("select", "SELECT", result.select),
            ("update", "UPDATE", result.update),
            ("delete", "DELETE", result.delete),
        ]
        return [
            self._write(
                f"{result.table_name}_{suffix}.sql",
                self._header(f"{result.table_name}: {title}", options) + sql + "\n",
                result.table_name,
            )
            for suffix, title, sql in parts
        ]

    def _write_summary(self, results: List[SQLResult], options: GenerateOptions) -> FileRecord:
        body: str = "\n\n".join(
            f"{_section(result.table_name)}\n{result.create_table}" for result in results
        )
        content: str = self._header("Database initialisation script", options) + body + "\n"
        return self._write(SUMMARY_FILE, content)

    def _write(self, name: str, content: str, table: str = "") -> FileRecord:
        try:
            return self.writer.write_atomic(self.output_dir / name, content)
        except GenerateError as exc:
            if table and not exc.table:
                raise GenerateError(exc.message, table=table, file=exc.file, cause=exc.cause) from exc
            raise

    def __repr__(self) -> str:
        return f"<SQLFileGenerator {self.dialect_generator.get_dialect().value} -> {self.output_dir}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = ["SUMMARY_FILE", "GenerateOptions", "SQLFileGenerator"]

logger.debug("sqlgen.sqlfiles loaded.")
