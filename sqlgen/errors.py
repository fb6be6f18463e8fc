# File: sqlgen/errors.py
"""
sqlgen - Structured Error Types
================================
Every failure raised by the engine carries structured context rather than a
bare string, so callers can tell *where* something went wrong without
parsing messages:

    ParseError     table / column / message / cause   (catalog queries)
    GenerateError  table / file / message / cause     (render & write)
    ConfigError    field / message                    (startup validation)

The original exception is always chained (``raise ... from exc``) and also
kept on ``.cause`` so the driver or I/O error can be inspected directly.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.errors")


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class SqlGenError(Exception):
    """Root of the sqlgen exception hierarchy."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.cause: Optional[BaseException] = cause

    def __str__(self) -> str:
        return self.format()

    def format(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class ParseError(SqlGenError):
    """A catalog query or row scan failed."""

    def __init__(
        self,
        message: str,
        table: str = "",
        column: str = "",
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause)
        self.table: str = table
        self.column: str = column

    def format(self) -> str:
        if self.column:
            return (
                f"parse error on table {self.table} column {self.column}: "
                f"{self.message}"
            )
        if self.table:
            return f"parse error on table {self.table}: {self.message}"
        return f"parse error: {self.message}"

    def __repr__(self) -> str:
        return f"<ParseError table={self.table!r} column={self.column!r}>"


class ParseCancelledError(ParseError):
    """The caller's cancellation token fired while a parse was in flight."""


# ---------------------------------------------------------------------------
# Generate errors
# ---------------------------------------------------------------------------


class GenerateError(SqlGenError):
    """Template rendering or file writing failed."""

    def __init__(
        self,
        message: str,
        table: str = "",
        file: str = "",
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause)
        self.table: str = table
        self.file: str = file

    def format(self) -> str:
        parts: List[str] = []
        if self.table:
            parts.append(f"table {self.table}")
        if self.file:
            parts.append(f"file {self.file}")
        if parts:
            return f"generate error for {' '.join(parts)}: {self.message}"
        return f"generate error: {self.message}"

    def __repr__(self) -> str:
        return f"<GenerateError table={self.table!r} file={self.file!r}>"


# ---------------------------------------------------------------------------
# Config errors
# ---------------------------------------------------------------------------


class ConfigError(SqlGenError, ValueError):
    """A configuration field failed validation."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field: str = field

    def format(self) -> str:
        return f"config error on field {self.field}: {self.message}"

    @classmethod
    def from_validation_error(cls, exc: Any) -> "ConfigError":
        """
        Build a ConfigError from the first entry of a pydantic
        ``ValidationError``.

        Custom validators raise ``ValueError`` with a human message; pydantic
        keeps it under ``ctx["error"]`` so it is used verbatim when present.
        """
        errors = exc.errors()
        if not errors:
            return cls("config", str(exc))
        first = errors[0]
        field: str = ".".join(str(part) for part in first.get("loc", ())) or "config"
        ctx = first.get("ctx") or {}
        original = ctx.get("error")
        message: str = str(original) if original is not None else first.get("msg", "")
        return cls(field, message)

    def __repr__(self) -> str:
        return f"<ConfigError field={self.field!r}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SqlGenError",
    "ParseError",
    "ParseCancelledError",
    "GenerateError",
    "ConfigError",
]

logger.debug("sqlgen.errors loaded.")
