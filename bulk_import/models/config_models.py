from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .field_spec import FieldSpec

"""Config dataclasses for the bulk import tool.

These are built by config.loader from config/entities.yml after schema
validation. One EntityConfig describes one importable entity type (leads,
clients, proposals, ...).
"""

__all__ = [
    "DEFAULT_ERROR_DISPLAY_LIMIT",
    "DEFAULT_MAX_ROWS",
    "DatabaseConfig",
    "EntityConfig",
    "ImportConfig",
]

DEFAULT_ERROR_DISPLAY_LIMIT = 10
DEFAULT_MAX_ROWS = 1000


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback.

    Environment variables (DATABASE_URL / PGDSN / PG*) take precedence.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class EntityConfig:
    """One importable entity: its template columns and where rows are created."""
    key: str  # Lookup key used on the command line
    name: str  # Display name, template sheet name
    fields: tuple[FieldSpec, ...]
    table: str | None = None  # Target table for the psycopg2 creator
    returning: str | None = None  # Column returned as created id
    sample_rows: tuple[dict[str, Any], ...] = ()
    max_rows: int = DEFAULT_MAX_ROWS
    error_display_limit: int = DEFAULT_ERROR_DISPLAY_LIMIT

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object."""
    entities: dict[str, EntityConfig]
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def entity(self, key: str) -> EntityConfig:
        try:
            return self.entities[key]
        except KeyError:
            known = ", ".join(sorted(self.entities)) or "<none>"
            raise KeyError(f"unknown entity '{key}' (configured: {known})") from None
