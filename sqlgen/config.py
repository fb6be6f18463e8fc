# File: sqlgen/config.py
"""
sqlgen - Run Configuration
===========================
A single immutable ``Config`` governs one generation run: dialect, output
location, naming rules, the ``Target`` flags, the table filter and the
feature toggles (soft delete, timestamps, optimistic-lock version, struct
tags).

Validation happens once, at construction.  Any problem surfaces as a
``ConfigError`` naming the offending field, before the engine performs any
I/O.  Configs can also be loaded from YAML or JSON files::

    config = load_config("sqlgen.yaml", output_dir="./out")
"""

from __future__ import annotations

import json
import logging
from functools import reduce
from pathlib import Path
from typing import Annotated, Any, Dict, List, Mapping, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    ValidationError,
    field_validator,
)

from sqlgen.errors import ConfigError
from sqlgen.models import (
    DatabaseType,
    NamingRule,
    SoftDeleteOptions,
    TableFilter,
    TagOptions,
    Target,
    TimestampOptions,
    VersionOptions,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("sqlgen.config")

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_OUTPUT_DIR: str = "./generated"
DEFAULT_PACKAGE_NAME: str = "models"
DEFAULT_HEADER: str = "// Code generated by sqlgen. DO NOT EDIT."


# ---------------------------------------------------------------------------
# Target flag coercion
# ---------------------------------------------------------------------------


def _coerce_targets(value: Any) -> Target:
    """
    Accept ``Target`` values, their integer form, a ``"model|dao"`` string,
    or a list of names such as ``["model", "migration"]``.
    """
    if isinstance(value, Target):
        return value
    if isinstance(value, bool):
        raise ValueError(f"invalid target: {value!r}")
    if isinstance(value, int):
        if value & ~Target.ALL.value:
            raise ValueError(f"invalid target bits: {value}")
        return Target(value)
    if isinstance(value, str):
        value = [part for part in value.replace(",", "|").split("|")]
    if isinstance(value, (list, tuple, set, frozenset)):
        flags: List[Target] = []
        for item in value:
            if isinstance(item, Target):
                flags.append(item)
                continue
            name: str = str(item).strip().upper()
            if not name:
                continue
            if name not in Target.__members__:
                raise ValueError(f"unknown target: {item}")
            flags.append(Target[name])
        return reduce(lambda acc, flag: acc | flag, flags, Target.NONE)
    raise ValueError(f"invalid target: {value!r}")


def _target_names(flags: Target) -> List[str]:
    return [
        member.name.lower()
        for member in (Target.MODEL, Target.DAO, Target.QUERY, Target.MIGRATION)
        if flags & member
    ]


TargetFlags = Annotated[
    Target,
    PlainValidator(_coerce_targets),
    PlainSerializer(_target_names, return_type=List[str], when_used="json"),
]


# ---------------------------------------------------------------------------
# Config model
# ---------------------------------------------------------------------------


class Config(BaseModel):
    """Validated, immutable settings for one generation run."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="forbid",
        validate_default=True,
    )

    database_type: DatabaseType = Field(default=DatabaseType.SQLITE)
    dsn: str = Field(default="", description="Connection string (informational).")
    output_dir: str = Field(default=DEFAULT_OUTPUT_DIR)
    package_name: str = Field(default=DEFAULT_PACKAGE_NAME)
    table_name_rule: NamingRule = Field(default=NamingRule.SNAKE)
    column_name_rule: NamingRule = Field(default=NamingRule.CAMEL)
    targets: TargetFlags = Field(default=Target.MODEL)
    table_filter: TableFilter = Field(default_factory=TableFilter)
    soft_delete: SoftDeleteOptions = Field(default_factory=SoftDeleteOptions)
    timestamp: TimestampOptions = Field(default_factory=TimestampOptions)
    version: VersionOptions = Field(default_factory=VersionOptions)
    tags: TagOptions = Field(default_factory=TagOptions)
    template_dir: str = Field(
        default="", description="Directory of <name>.tmpl files overriding built-ins."
    )
    header: str = Field(default=DEFAULT_HEADER)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigError.from_validation_error(exc) from exc

    # -- Validators ---------------------------------------------------------

    @field_validator("database_type", mode="before")
    @classmethod
    def _known_database_type(cls, value: Any) -> Any:
        if isinstance(value, DatabaseType):
            return value
        if value is None or str(value).strip() == "":
            raise ValueError("database type is required")
        text: str = str(value).strip().lower()
        if text not in {d.value for d in DatabaseType}:
            raise ValueError(f"unsupported database type: {value}")
        return text

    @field_validator("output_dir")
    @classmethod
    def _output_dir_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("output directory is required")
        return value

    @field_validator("package_name")
    @classmethod
    def _package_name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("package name is required")
        if not value.replace("_", "").isalnum() or value[0].isdigit():
            raise ValueError(f"invalid package name: {value}")
        return value

    # -- Helpers ------------------------------------------------------------

    @classmethod
    def defaults(cls) -> "Config":
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        return cls(**dict(data))

    def merged_with(self, overrides: Mapping[str, Any]) -> "Config":
        """Return a new Config with non-empty *overrides* applied on top."""
        data: Dict[str, Any] = self.model_dump(by_alias=True)
        for key, value in overrides.items():
            if value is None or value == "":
                continue
            data[key] = value
        return Config(**data)

    def wants(self, target: Target) -> bool:
        return bool(self.targets & target)

    def __repr__(self) -> str:
        return (
            f"<Config {self.database_type.value} -> {self.output_dir} "
            f"package={self.package_name} targets={self.targets}>"
        )


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def load_config(path: Union[str, Path], **overrides: Any) -> Config:
    """
    Load a Config from a YAML (``.yaml`` / ``.yml``) or JSON file.

    Keyword *overrides* win over the file contents; ``None`` values are
    ignored so CLI layers can pass unset flags straight through.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError("path", f"config file not found: {path}")

    text: str = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            raw: Any = yaml.safe_load(text) or {}
        else:
            raw = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError("path", f"cannot parse {path.name}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("path", f"top level of {path.name} must be a mapping")

    raw.update({k: v for k, v in overrides.items() if v is not None})
    config: Config = Config(**raw)
    logger.info(
        "Loaded config from %s (database=%s, output=%s).",
        path,
        config.database_type.value,
        config.output_dir,
    )
    return config


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DEFAULT_OUTPUT_DIR",
    "DEFAULT_PACKAGE_NAME",
    "DEFAULT_HEADER",
    "Config",
    "load_config",
]

logger.debug("sqlgen.config loaded.")
