from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_ERROR_DISPLAY_LIMIT,
    DEFAULT_MAX_ROWS,
    DatabaseConfig,
    EntityConfig,
    ImportConfig,
)
from ..models.field_spec import FieldSpec

"""Config loader for entity definitions.

Responsibilities:
- Load YAML config/entities.yml
- Validate it against the packaged JSON schema (entities_schema.json)
- Apply defaults (max_rows=1000, error_display_limit=10)
- Build the frozen config dataclasses
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "load_config",
    "parse_config",
]

DEFAULT_CONFIG_PATH = Path("config/entities.yml")
SCHEMA_PATH = Path(__file__).with_name("entities_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the config
            data fails validation (missing keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {location}: {e.message}") from e


def _database(raw: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        host=raw.get("host"),
        port=raw.get("port"),
        user=raw.get("user"),
        password=raw.get("password"),
        database=raw.get("database"),
        dsn=raw.get("dsn"),
    )


def _entity(key: str, raw: dict[str, Any], default_limit: int) -> EntityConfig:
    try:
        fields = tuple(FieldSpec.from_dict(c) for c in raw["columns"])
    except ValueError as e:
        raise ConfigError(f"entity '{key}': {e}") from e

    names = [f.name for f in fields]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigError(f"entity '{key}': duplicate column names {duplicates}")

    returning = raw.get("returning")
    if returning and not raw.get("table"):
        raise ConfigError(f"entity '{key}': 'returning' requires 'table'")

    return EntityConfig(
        key=key,
        name=raw["name"],
        fields=fields,
        table=raw.get("table"),
        returning=returning,
        sample_rows=tuple(dict(r) for r in raw.get("sample_rows", ())),
        max_rows=raw.get("max_rows", DEFAULT_MAX_ROWS),
        error_display_limit=raw.get("error_display_limit", default_limit),
    )


def parse_config(data: Any) -> ImportConfig:
    """Validate already-loaded config data and build an ImportConfig."""
    _validate_config_schema(data)
    default_limit = data.get("error_display_limit", DEFAULT_ERROR_DISPLAY_LIMIT)
    entities = {
        key: _entity(key, raw, default_limit) for key, raw in data["entities"].items()
    }
    return ImportConfig(entities=entities, database=_database(data.get("database", {})))


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    return parse_config(data)
