# File: sqlgen/templates.py
"""
sqlgen - Template Engine
=========================
A registry of named Jinja2 templates plus the function table generated code
needs (case conversion, pluralisation, string and arithmetic helpers).

Three Go templates ship built in:

    model   entity struct with one tagged field per column
    dao     record-access object: constructor, find, create, update, delete
    query   chainable SELECT builder

Any of them can be replaced with ``load_template`` or from ``<name>.tmpl``
files through ``load_template_dir``.  Every helper is registered both as a
global (``{{ toPascal(name) }}``) and as a filter (``{{ name | toPascal }}``).

Rendering is pure: it returns text and never touches the file system.
Undefined variables are errors rather than silent blanks.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Union

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError

from sqlgen.errors import GenerateError
from sqlgen.models import DatabaseType
from sqlgen.naming import (
    to_camel_case,
    to_pascal_case,
    to_plural,
    to_singular,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.templates")

TEMPLATE_SUFFIX: str = ".tmpl"

# ---------------------------------------------------------------------------
# Built-in templates
# ---------------------------------------------------------------------------

MODEL_TEMPLATE: str = '''\
{% if header %}
{{ header }}

{% endif %}
package {{ package_name }}
{% if imports %}

import (
{% for path in imports %}
	"{{ path }}"
{% endfor %}
)
{% endif %}

// {{ entity_name }} maps the {{ table_name }} table.{{ " " ~ table_comment if table_comment else "" }}
type {{ entity_name }} struct {
{% for col in columns %}
	{{ col.field_name }} {{ col.go_type }}{{ " `" ~ col.struct_tag ~ "`" if col.struct_tag else "" }}{{ " // " ~ col.comment if col.comment else "" }}
{% endfor %}
}

// TableName returns the name of the underlying table.
func ({{ entity_name }}) TableName() string {
	return "{{ table_name }}"
}
'''

DAO_TEMPLATE: str = '''\
{% if header %}
{{ header }}

{% endif %}
{% set pk = primary_key %}
{% set column_list = columns | map(attribute="name") | join(", ") %}
{% set alive = " AND " ~ soft_delete.field ~ " IS NULL" if soft_delete.enabled else "" %}
package {{ package_name }}

import (
	"context"
	"database/sql"
{% if version_column %}
	"errors"
{% endif %}
	"fmt"
)
{% if version_column %}

// Err{{ entity_name }}Conflict is returned when an update loses an optimistic-lock race.
var Err{{ entity_name }}Conflict = errors.New("{{ table_name }}: version conflict")
{% endif %}

// {{ entity_name }}DAO reads and writes the {{ table_name }} table.
type {{ entity_name }}DAO struct {
	db *sql.DB
}

// New{{ entity_name }}DAO creates a {{ entity_name }}DAO.
func New{{ entity_name }}DAO(db *sql.DB) *{{ entity_name }}DAO {
	return &{{ entity_name }}DAO{db: db}
}
{% if pk %}

// FindBy{{ pk.field_name }} returns the row with the given key, or nil when there is none.
func (d *{{ entity_name }}DAO) FindBy{{ pk.field_name }}(ctx context.Context, key {{ pk.base_type }}) (*{{ entity_name }}, error) {
	query := `SELECT {{ column_list }} FROM {{ table_name }} WHERE {{ pk.name }} = {{ bindvar(dialect, 1) }}{{ alive }}`

	var m {{ entity_name }}
	err := d.db.QueryRowContext(ctx, query, key).Scan(
{% for col in columns %}
		&m.{{ col.field_name }},
{% endfor %}
	)
	if err == sql.ErrNoRows {
		return nil, nil
	}
	if err != nil {
		return nil, fmt.Errorf("find {{ entity_name }} by {{ pk.name }}: %w", err)
	}
	return &m, nil
}
{% endif %}

// Create inserts m.
func (d *{{ entity_name }}DAO) Create(ctx context.Context, m *{{ entity_name }}) error {
{% set returning = pk and pk.is_auto_increment and dialect == "postgres" %}
	query := `INSERT INTO {{ table_name }} ({{ insert_columns | map(attribute="name") | join(", ") }}) VALUES ({% for col in insert_columns %}{{ ", " if not loop.first else "" }}{{ bindvar(dialect, loop.index) }}{% endfor %}){{ " RETURNING " ~ pk.name if returning else "" }}`

{% if returning %}
	err := d.db.QueryRowContext(ctx, query,
{% for col in insert_columns %}
		m.{{ col.field_name }},
{% endfor %}
	).Scan(&m.{{ pk.field_name }})
	if err != nil {
		return fmt.Errorf("create {{ entity_name }}: %w", err)
	}
	return nil
{% elif pk and pk.is_auto_increment %}
	result, err := d.db.ExecContext(ctx, query,
{% for col in insert_columns %}
		m.{{ col.field_name }},
{% endfor %}
	)
	if err != nil {
		return fmt.Errorf("create {{ entity_name }}: %w", err)
	}
	id, err := result.LastInsertId()
	if err != nil {
		return fmt.Errorf("create {{ entity_name }}: last insert id: %w", err)
	}
	m.{{ pk.field_name }} = {{ pk.base_type }}(id)
	return nil
{% else %}
	_, err := d.db.ExecContext(ctx, query,
{% for col in insert_columns %}
		m.{{ col.field_name }},
{% endfor %}
	)
	if err != nil {
		return fmt.Errorf("create {{ entity_name }}: %w", err)
	}
	return nil
{% endif %}
}
{% if pk and (update_columns or version_column) %}
{% set key_position = update_columns | length + 1 %}

// Update writes the mutable columns of m{{ ", guarded by its version" if version_column else "" }}.
func (d *{{ entity_name }}DAO) Update(ctx context.Context, m *{{ entity_name }}) error {
	query := `UPDATE {{ table_name }} SET {% for col in update_columns %}{{ ", " if not loop.first else "" }}{{ col.name }} = {{ bindvar(dialect, loop.index) }}{% endfor %}{% if version_column %}{{ ", " if update_columns else "" }}{{ version_column.name }} = {{ version_column.name }} + 1{% endif %} WHERE {{ pk.name }} = {{ bindvar(dialect, key_position) }}{% if version_column %} AND {{ version_column.name }} = {{ bindvar(dialect, key_position + 1) }}{% endif %}{{ alive }}`

	result, err := d.db.ExecContext(ctx, query,
{% for col in update_columns %}
		m.{{ col.field_name }},
{% endfor %}
		m.{{ pk.field_name }},
{% if version_column %}
		m.{{ version_column.field_name }},
{% endif %}
	)
	if err != nil {
		return fmt.Errorf("update {{ entity_name }}: %w", err)
	}
{% if version_column %}
	affected, err := result.RowsAffected()
	if err != nil {
		return fmt.Errorf("update {{ entity_name }}: rows affected: %w", err)
	}
	if affected == 0 {
		return Err{{ entity_name }}Conflict
	}
	m.{{ version_column.field_name }}++
{% else %}
	_ = result
{% endif %}
	return nil
}
{% endif %}
{% if pk %}

{% if soft_delete.enabled %}
// Delete marks the row as deleted by setting {{ soft_delete.field }}.
func (d *{{ entity_name }}DAO) Delete(ctx context.Context, key {{ pk.base_type }}) error {
	query := `UPDATE {{ table_name }} SET {{ soft_delete.field }} = CURRENT_TIMESTAMP WHERE {{ pk.name }} = {{ bindvar(dialect, 1) }}{{ alive }}`
{% else %}
// Delete removes the row permanently.
func (d *{{ entity_name }}DAO) Delete(ctx context.Context, key {{ pk.base_type }}) error {
	query := `DELETE FROM {{ table_name }} WHERE {{ pk.name }} = {{ bindvar(dialect, 1) }}`
{% endif %}

	if _, err := d.db.ExecContext(ctx, query, key); err != nil {
		return fmt.Errorf("delete {{ entity_name }}: %w", err)
	}
	return nil
}
{% endif %}
'''

QUERY_TEMPLATE: str = '''\
{% if header %}
{{ header }}

{% endif %}
{% set q = entity_name ~ "Query" %}
package {{ package_name }}

import (
	"context"
	"database/sql"
{% for path in imports %}
	"{{ path }}"
{% endfor %}
	"fmt"
	"strings"
)

// {{ q }} builds SELECT statements against the {{ table_name }} table.
type {{ q }} struct {
	db         *sql.DB
	conditions []string
	args       []interface{}
	orderBy    string
	limit      int
	offset     int
}

var {{ entity_name | toCamel }}Columns = map[string]bool{
{% for col in columns %}
	"{{ col.name }}": true,
{% endfor %}
}

// New{{ q }} starts an unfiltered query.
func New{{ q }}(db *sql.DB) *{{ q }} {
	return &{{ q }}{db: db}
}

func (q *{{ q }}) bind() string {
{% if dialect == "postgres" %}
	return fmt.Sprintf("$%d", len(q.args))
{% else %}
	return "?"
{% endif %}
}
{% for col in columns %}

// Where{{ col.field_name }} filters on {{ col.name }} equality.
func (q *{{ q }}) Where{{ col.field_name }}(v {{ col.base_type }}) *{{ q }} {
	q.args = append(q.args, v)
	q.conditions = append(q.conditions, "{{ col.name }} = "+q.bind())
	return q
}
{% endfor %}

// OrderBy sorts by a known column; unknown columns are ignored.
func (q *{{ q }}) OrderBy(column string, desc bool) *{{ q }} {
	if !{{ entity_name | toCamel }}Columns[column] {
		return q
	}
	q.orderBy = column
	if desc {
		q.orderBy += " DESC"
	}
	return q
}

// Limit caps the number of rows returned.
func (q *{{ q }}) Limit(n int) *{{ q }} {
	q.limit = n
	return q
}

// Offset skips the first n rows.
func (q *{{ q }}) Offset(n int) *{{ q }} {
	q.offset = n
	return q
}

func (q *{{ q }}) where() string {
	conditions := q.conditions
{% if soft_delete.enabled %}
	conditions = append([]string{"{{ soft_delete.field }} IS NULL"}, conditions...)
{% endif %}
	if len(conditions) == 0 {
		return ""
	}
	return " WHERE " + strings.Join(conditions, " AND ")
}

// Build returns the SQL text and its arguments.
func (q *{{ q }}) Build() (string, []interface{}) {
	var b strings.Builder
	b.WriteString("SELECT {{ columns | map(attribute="name") | join(", ") }} FROM {{ table_name }}")
	b.WriteString(q.where())
	if q.orderBy != "" {
		b.WriteString(" ORDER BY " + q.orderBy)
	}
	if q.limit > 0 {
		fmt.Fprintf(&b, " LIMIT %d", q.limit)
	}
	if q.offset > 0 {
		fmt.Fprintf(&b, " OFFSET %d", q.offset)
	}
	return b.String(), q.args
}

// Find runs the query and scans every row.
func (q *{{ q }}) Find(ctx context.Context) ([]*{{ entity_name }}, error) {
	query, args := q.Build()
	rows, err := q.db.QueryContext(ctx, query, args...)
	if err != nil {
		return nil, fmt.Errorf("query {{ table_name }}: %w", err)
	}
	defer rows.Close()

	var result []*{{ entity_name }}
	for rows.Next() {
		var m {{ entity_name }}
		if err := rows.Scan(
{% for col in columns %}
			&m.{{ col.field_name }},
{% endfor %}
		); err != nil {
			return nil, fmt.Errorf("scan {{ table_name }}: %w", err)
		}
		result = append(result, &m)
	}
	return result, rows.Err()
}

// Count returns the number of rows matching the filters.
func (q *{{ q }}) Count(ctx context.Context) (int64, error) {
	var n int64
	query := "SELECT COUNT(*) FROM {{ table_name }}" + q.where()
	if err := q.db.QueryRowContext(ctx, query, q.args...).Scan(&n); err != nil {
		return 0, fmt.Errorf("count {{ table_name }}: %w", err)
	}
	return n, nil
}
'''

BUILTIN_TEMPLATES: Dict[str, str] = {
    "model": MODEL_TEMPLATE,
    "dao": DAO_TEMPLATE,
    "query": QUERY_TEMPLATE,
}


# ---------------------------------------------------------------------------
# Function table
# ---------------------------------------------------------------------------


def bindvar(dialect: Union[str, DatabaseType], position: int) -> str:
    """Positional placeholder: ``$n`` for PostgreSQL, ``?`` elsewhere."""
    if DatabaseType(dialect) is DatabaseType.POSTGRES:
        return f"${position}"
    return "?"


def _join(items: Iterable[Any], sep: str = "") -> str:
    return sep.join(str(item) for item in items)


def default_functions() -> Dict[str, Callable[..., Any]]:
    return {
        "toCamel": to_camel_case,
        "toPascal": to_pascal_case,
        "toSnake": to_snake_case,
        "toPlural": to_plural,
        "toSingular": to_singular,
        "lower": lambda s: str(s).lower(),
        "upper": lambda s: str(s).upper(),
        "title": lambda s: str(s).title(),
        "join": _join,
        "contains": lambda s, sub: sub in s,
        "hasPrefix": lambda s, prefix: str(s).startswith(prefix),
        "hasSuffix": lambda s, suffix: str(s).endswith(suffix),
        "add": lambda a, b: a + b,
        "sub": lambda a, b: a - b,
        "bindvar": bindvar,
    }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TemplateEngine:
    """
    Named-template registry over a Jinja2 ``Environment``.

    The environment trims block lines (``trim_blocks`` / ``lstrip_blocks``)
    so templates can be indented for readability without leaking blank
    lines into the Go output.
    """

    def __init__(self, load_builtins: bool = True) -> None:
        self._sources: Dict[str, str] = {}
        self._env: Environment = Environment(
            loader=DictLoader(self._sources),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )
        for name, fn in default_functions().items():
            self.register_func(name, fn)
        if load_builtins:
            for name, source in BUILTIN_TEMPLATES.items():
                self.load_template(name, source)

    # -- Registry -----------------------------------------------------------

    def register_func(self, name: str, fn: Callable[..., Any]) -> None:
        self._env.globals[name] = fn
        self._env.filters[name] = fn

    def load_template(self, name: str, source: str) -> None:
        """Register (or replace) template *name*; syntax errors surface now."""
        try:
            self._env.parse(source)
        except TemplateError as exc:
            raise GenerateError(f"invalid template {name}: {exc}", cause=exc) from exc
        self._sources[name] = source
        logger.debug("Template %s loaded (%d chars).", name, len(source))

    def load_template_file(self, name: str, path: Union[str, Path]) -> None:
        path = Path(path)
        try:
            source: str = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise GenerateError("cannot read template", file=str(path), cause=exc) from exc
        self.load_template(name, source)

    def load_template_dir(self, directory: Union[str, Path]) -> List[str]:
        """Load every ``<name>.tmpl`` file in *directory*; returns the names."""
        directory = Path(directory)
        if not directory.is_dir():
            raise GenerateError("template directory not found", file=str(directory))
        loaded: List[str] = []
        for path in sorted(directory.glob(f"*{TEMPLATE_SUFFIX}")):
            self.load_template_file(path.stem, path)
            loaded.append(path.stem)
        logger.info("Loaded %d template(s) from %s.", len(loaded), directory)
        return loaded

    def has_template(self, name: str) -> bool:
        return name in self._sources

    @property
    def template_names(self) -> List[str]:
        return sorted(self._sources)

    # -- Rendering ----------------------------------------------------------

    def render(self, name: str, data: Any) -> str:
        """Render template *name* with *data* (a dataclass or a mapping)."""
        if not self.has_template(name):
            raise GenerateError(f"unknown template: {name}")
        context: Mapping[str, Any] = _as_context(data)
        try:
            return self._env.get_template(name).render(**context)
        except TemplateError as exc:
            raise GenerateError(f"render {name} failed: {exc}", cause=exc) from exc

    def __repr__(self) -> str:
        return f"<TemplateEngine templates={self.template_names}>"


def _as_context(data: Any) -> Mapping[str, Any]:
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return {f.name: getattr(data, f.name) for f in dataclasses.fields(data)}
    if isinstance(data, Mapping):
        return data
    raise GenerateError(f"template data must be a dataclass or mapping, not {type(data).__name__}")


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TEMPLATE_SUFFIX",
    "BUILTIN_TEMPLATES",
    "bindvar",
    "default_functions",
    "TemplateEngine",
]

logger.debug("sqlgen.templates loaded.")
