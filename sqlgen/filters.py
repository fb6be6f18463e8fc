# File: sqlgen/filters.py
"""
sqlgen - Table Filter
======================
Restricts which tables take part in a run.  The include list (when not
empty) is an allow-list applied first; the exclude list then removes
matches.  Patterns support three wildcard shapes and nothing else:

    user*    prefix
    *_log    suffix
    *tmp*    substring
    orders   exact name
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, TypeVar

from sqlgen.models import Table, TableFilter

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.filters")

T = TypeVar("T", str, Table)


def match_pattern(name: str, pattern: str) -> bool:
    if pattern == "*":
        return True
    starts: bool = pattern.startswith("*")
    ends: bool = pattern.endswith("*")
    if starts and ends and len(pattern) > 1:
        return pattern[1:-1] in name
    if starts:
        return name.endswith(pattern[1:])
    if ends:
        return name.startswith(pattern[:-1])
    return name == pattern


def match_any(name: str, patterns: Iterable[str]) -> bool:
    return any(match_pattern(name, p) for p in patterns)


def is_included(name: str, table_filter: TableFilter) -> bool:
    if table_filter.include and not match_any(name, table_filter.include):
        return False
    return not match_any(name, table_filter.exclude)


def filter_tables(tables: Sequence[T], table_filter: TableFilter) -> List[T]:
    """Apply *table_filter* to tables or bare table names, keeping order."""
    kept: List[T] = []
    for item in tables:
        name: str = item if isinstance(item, str) else item.name
        if is_included(name, table_filter):
            kept.append(item)
        else:
            logger.debug("Table %s filtered out.", name)
    if len(kept) != len(tables):
        logger.info("Table filter kept %d of %d tables.", len(kept), len(tables))
    return kept


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = ["match_pattern", "match_any", "is_included", "filter_tables"]

logger.debug("sqlgen.filters loaded.")
