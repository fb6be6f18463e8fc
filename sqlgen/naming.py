# File: sqlgen/naming.py
"""
sqlgen - Naming Converter
==========================
Pure string transforms used by every other component to derive identifiers
from table and column names: snake / camel / Pascal case, English
singular / plural, and Go exported field names.

All public functions are wrapped in ``functools.lru_cache`` because the same
handful of column names is converted many times per table (struct field,
JSON tag, template helpers).
"""

from __future__ import annotations

import functools
import logging
import re
from typing import Dict, FrozenSet, List, Tuple

from sqlgen.models import NamingRule

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.naming")

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# "HTTPRequest" -> "HTTP_Request"
_ACRONYM_BOUNDARY_RE: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
# "userName" -> "user_Name", "item2Count" -> "item2_Count"
_LOWER_UPPER_BOUNDARY_RE: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATOR_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]+")
_WORD_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)

# Words that Go style keeps fully upper-cased inside exported identifiers.
GO_INITIALISMS: FrozenSet[str] = frozenset({
    "api", "html", "http", "https", "id", "ip", "json", "sql", "ssh",
    "tcp", "udp", "ui", "uid", "url", "uri", "uuid", "xml",
})

_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
}
_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}

_VOWELS: str = "aeiou"


def _match_case(source: str, replacement: str) -> str:
    if source[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


# ---------------------------------------------------------------------------
# Case conversion
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def split_words(name: str) -> Tuple[str, ...]:
    """Split an identifier in any casing style into lowercase words."""
    cleaned: str = _SEPARATOR_RE.sub(" ", name)
    return tuple(word.lower() for word in _WORD_RE.findall(cleaned) if word)


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert an identifier to snake_case.

    Acronym runs stay together::

        >>> to_snake_case("HTTPRequest")
        'http_request'
        >>> to_snake_case("UserID")
        'user_id'
        >>> to_snake_case("user_name")
        'user_name'
    """
    if not name:
        return ""
    text: str = _ACRONYM_BOUNDARY_RE.sub(r"\1_\2", name)
    text = _LOWER_UPPER_BOUNDARY_RE.sub(r"\1_\2", text)
    text = _SEPARATOR_RE.sub("_", text)
    return text.strip("_").lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """``user_name`` -> ``UserName``; ``http-request`` -> ``HttpRequest``."""
    return "".join(word.capitalize() for word in split_words(name))


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """``user_name`` -> ``userName``."""
    words: Tuple[str, ...] = split_words(name)
    if not words:
        return ""
    return words[0] + "".join(word.capitalize() for word in words[1:])


@functools.lru_cache(maxsize=None)
def to_go_field_name(name: str) -> str:
    """
    Exported Go identifier for a column name.

    Pascal case, except that well-known initialisms are upper-cased the way
    ``golint`` expects them::

        >>> to_go_field_name("id")
        'ID'
        >>> to_go_field_name("user_id")
        'UserID'
        >>> to_go_field_name("avatar_url")
        'AvatarURL'
    """
    parts: List[str] = []
    for word in split_words(name):
        parts.append(word.upper() if word in GO_INITIALISMS else word.capitalize())
    result: str = "".join(parts)
    if result and result[0].isdigit():
        result = "F" + result
    return result


def convert_name(name: str, rule: NamingRule) -> str:
    """Apply one of the configurable naming rules."""
    rule = NamingRule(rule)
    if rule is NamingRule.SNAKE:
        return to_snake_case(name)
    if rule is NamingRule.CAMEL:
        return to_camel_case(name)
    return to_pascal_case(name)


# ---------------------------------------------------------------------------
# Singular / plural
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    English pluralisation good enough for table and collection names.

    Words that already look plural (trailing ``s`` but not ``ss``) are left
    alone so that ``to_plural(to_singular(x)) == to_plural(x)``.
    """
    if not name:
        return ""
    lower: str = name.lower()
    if lower in _IRREGULAR_PLURALS:
        return _match_case(name, _IRREGULAR_PLURALS[lower])
    if lower in _IRREGULAR_SINGULARS:
        return name
    if lower.endswith("s") and not lower.endswith("ss"):
        return name
    if lower.endswith(("ss", "sh", "ch", "x", "z")):
        return name + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in _VOWELS:
        return name[:-1] + "ies"
    return name + "s"


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """Reverse of :func:`to_plural` for the forms it produces."""
    if not name:
        return ""
    lower: str = name.lower()
    if lower in _IRREGULAR_SINGULARS:
        return _match_case(name, _IRREGULAR_SINGULARS[lower])
    if lower in _IRREGULAR_PLURALS:
        return name
    if lower.endswith("ies") and len(lower) > 3:
        return name[:-3] + "y"
    if lower.endswith(("sses", "shes", "ches", "xes", "zes")):
        return name[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return name[:-1]
    return name


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "GO_INITIALISMS",
    "split_words",
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_go_field_name",
    "convert_name",
    "to_plural",
    "to_singular",
]

logger.debug("sqlgen.naming loaded.")
