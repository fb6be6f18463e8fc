# File: sqlgen/__init__.py
"""
sqlgen - Bidirectional Schema <-> Source Code Generator
========================================================

Reverse generation introspects a live MySQL, PostgreSQL or SQLite catalog
through SQLAlchemy and renders Go data-access code (entities, DAOs, query
builders) plus a DDL migration script.  Forward generation reads annotated
Python record types (dataclasses or pydantic models) and emits
dialect-specific SQL.

Architecture overview::

    ┌──────────────┐     ┌───────────────┐     ┌──────────────────┐
    │ DialectParser│────▶│   Generator   │────▶│  TemplateEngine  │
    │ (parsers.py) │     │(generator.py) │     │  (templates.py)  │
    └──────────────┘     └───────┬───────┘     └──────────────────┘
                                 │
                    ┌────────────┼────────────┐
                    ▼            ▼            ▼
             ┌──────────┐ ┌───────────┐ ┌───────────┐
             │ filters  │ │  render   │ │  writer   │
             │  (.py)   │ │  (.py)    │ │  (.py)    │
             └──────────┘ └───────────┘ └───────────┘

    record type ──▶ DialectGenerator (dialects.py) ──▶ SQLFileGenerator

Usage::

    from sqlalchemy import create_engine
    from sqlgen import Config, new_generator

    config = Config(database_type="sqlite", targets="model|dao|migration")
    gen = new_generator(config)
    with create_engine("sqlite:///app.db").connect() as conn:
        schema = gen.parse(conn)
    print(gen.generate(schema).summary())

Public API:
    - Generator / new_generator   - reverse-generation orchestrator
    - new_parser                  - catalog parser for a dialect
    - new_dialect_generator       - forward SQL generator for a dialect
    - TemplateEngine              - Jinja2 template registry
    - Config / load_config        - validated run configuration
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from sqlgen.config import Config, load_config
from sqlgen.ddl import DDLRenderer
from sqlgen.dialects import (
    DialectGenerator,
    Field,
    MySQLGenerator,
    PostgresGenerator,
    SQLiteGenerator,
    SQLResult,
    new_dialect_generator,
    reflect_fields,
    sql_field,
    table_name_for,
)
from sqlgen.errors import (
    ConfigError,
    GenerateError,
    ParseCancelledError,
    ParseError,
    SqlGenError,
)
from sqlgen.filters import filter_tables, match_pattern
from sqlgen.generator import GenerationReport, Generator, new_generator
from sqlgen.models import (
    Column,
    DatabaseType,
    ForeignKey,
    Index,
    NamingRule,
    ParseFailure,
    Schema,
    SoftDeleteOptions,
    Table,
    TableFilter,
    TagOptions,
    Target,
    TimestampOptions,
    VersionOptions,
)
from sqlgen.naming import (
    to_camel_case,
    to_go_field_name,
    to_pascal_case,
    to_plural,
    to_singular,
    to_snake_case,
)
from sqlgen.parsers import (
    DialectParser,
    MySQLParser,
    PostgresParser,
    SQLiteParser,
    new_parser,
)
from sqlgen.render import ColumnData, TemplateData, build_template_data
from sqlgen.sqlfiles import GenerateOptions, SQLFileGenerator
from sqlgen.templates import TemplateEngine
from sqlgen.typemap import map_type
from sqlgen.utils import Timer, configure_logging
from sqlgen.writer import FileRecord, FileWriter

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Orchestration
    "Generator",
    "GenerationReport",
    "new_generator",
    # Configuration
    "Config",
    "load_config",
    # Models
    "Column",
    "DatabaseType",
    "ForeignKey",
    "Index",
    "NamingRule",
    "ParseFailure",
    "Schema",
    "SoftDeleteOptions",
    "Table",
    "TableFilter",
    "TagOptions",
    "Target",
    "TimestampOptions",
    "VersionOptions",
    # Errors
    "SqlGenError",
    "ParseError",
    "ParseCancelledError",
    "GenerateError",
    "ConfigError",
    # Parsers
    "DialectParser",
    "MySQLParser",
    "PostgresParser",
    "SQLiteParser",
    "new_parser",
    # Forward generation
    "DialectGenerator",
    "Field",
    "MySQLGenerator",
    "PostgresGenerator",
    "SQLiteGenerator",
    "SQLResult",
    "new_dialect_generator",
    "reflect_fields",
    "sql_field",
    "table_name_for",
    "GenerateOptions",
    "SQLFileGenerator",
    # Rendering
    "TemplateEngine",
    "TemplateData",
    "ColumnData",
    "build_template_data",
    "DDLRenderer",
    "FileWriter",
    "FileRecord",
    # Utilities
    "Timer",
    "configure_logging",
    "filter_tables",
    "match_pattern",
    "map_type",
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_go_field_name",
    "to_plural",
    "to_singular",
]
