from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.record_insert import dry_run_creator, make_table_creator
from ..errors import BulkImportError, EmptyFileError
from ..excel.reader import read_table
from ..excel.template import TEMPLATE_FORMATS
from ..logging.error_log import LOGS_DIR, ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import DatabaseConfig, EntityConfig, ImportConfig
from ..models.import_summary import ImportSummary
from ..services.pipeline import build_template, import_entity
from ..services.summary import render_summary_line

"""Command line entry point.

    python -m bulk_import.cli template <entity> [--format xlsx|csv] [--output DIR]
    python -m bulk_import.cli import <entity> <file> [--dry-run]
    python -m bulk_import.cli inspect <file> [--rows N]

Exit codes: 0 every row succeeded, 2 at least one row failed, 1 fatal error.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the libpq DSN.

    Precedence: DATABASE_URL / PGDSN, then individual PG* variables, then the
    ``database`` section of the config file. ``.env`` is loaded into the
    environment beforehand, so its values win.
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_cursor(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (needs a live database)
    """Yield a cursor inside one transaction; commit on success, roll back on error."""
    conn = psycopg2.connect(_resolve_dsn(db_cfg))
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Entity definitions (default: {DEFAULT_CONFIG_PATH})",
    )
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    p = argparse.ArgumentParser(prog="bulk-import", description="Spreadsheet bulk upload tool")
    sub = p.add_subparsers(dest="command", required=True)

    t = sub.add_parser("template", parents=[common], help="Write the upload template of an entity")
    t.add_argument("entity")
    t.add_argument("--format", dest="file_format", choices=TEMPLATE_FORMATS, default="xlsx")
    t.add_argument("--output", type=Path, default=Path("."), help="Output directory")

    i = sub.add_parser("import", parents=[common], help="Validate and import a file")
    i.add_argument("entity")
    i.add_argument("file", type=Path)
    i.add_argument("--dry-run", action="store_true", help="Validate only; nothing is written")
    i.add_argument("--logs-dir", type=Path, default=LOGS_DIR, help="Error log directory")

    s = sub.add_parser("inspect", parents=[common], help="Print headers and the first rows of a file")
    s.add_argument("file", type=Path)
    s.add_argument("--rows", type=int, default=3)
    return p.parse_args(argv)


def _entity(args: argparse.Namespace, logger: logging.Logger) -> tuple[ImportConfig, EntityConfig] | None:
    try:
        cfg = load_config(args.config)
        return cfg, cfg.entity(args.entity)
    except ConfigError as e:
        logger.error(f"config: {e}")
    except KeyError as e:
        logger.error(f"config: {e.args[0]}")
    return None


def _cmd_template(args: argparse.Namespace, logger: logging.Logger) -> int:
    loaded = _entity(args, logger)
    if loaded is None:
        return EXIT_FATAL
    _, entity = loaded
    artifact = build_template(entity, args.file_format)
    args.output.mkdir(parents=True, exist_ok=True)
    path = args.output / artifact.file_name
    path.write_bytes(artifact.content)
    logger.info(f"template written: {path} columns={len(entity.fields)}")
    return EXIT_SUCCESS_ALL


def _cmd_import(args: argparse.Namespace, logger: logging.Logger) -> int:
    loaded = _entity(args, logger)
    if loaded is None:
        return EXIT_FATAL
    cfg, entity = loaded
    try:
        content = args.file.read_bytes()
    except OSError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL

    # DISABLE_DB_CONNECT=1 forces dry-run (tests, CI)
    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1" or not entity.table
    mode = "dry-run" if dry_run else "live"
    logger.info(f"Importing {args.file.name} as {entity.name} mode={mode}")

    error_log = ErrorLogBuffer(args.logs_dir)
    started = time.perf_counter()
    try:
        if dry_run:
            summary = import_entity(entity, content, args.file.name, dry_run_creator, error_log=error_log)
        else:
            try:
                with _db_cursor(cfg.database) as cur:
                    create = make_table_creator(cur, entity.table, entity.field_names, entity.returning)
                    summary = import_entity(entity, content, args.file.name, create, error_log=error_log)
            except psycopg2.Error as e:
                logger.error(f"database: {str(e).strip()}")
                return EXIT_FATAL
    except EmptyFileError as e:
        logger.warning(str(e))
        summary = ImportSummary()
    except BulkImportError as e:
        logger.error(str(e))
        _flush(error_log, logger)
        return EXIT_FATAL
    elapsed = time.perf_counter() - started

    for message in summary.errors:
        logger.error(message)
    if summary.created_ids:
        logger.debug(f"created ids: {list(summary.created_ids)}")

    summary_line = render_summary_line(entity.name, summary, elapsed)
    log_summary(summary_line[len("SUMMARY "):])
    _flush(error_log, logger)

    if summary.has_failures:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _flush(error_log: ErrorLogBuffer, logger: logging.Logger) -> None:
    path = error_log.flush()
    if path is not None:
        logger.info(f"error log: {path}")


def _cmd_inspect(args: argparse.Namespace, logger: logging.Logger) -> int:
    try:
        table = read_table(args.file.read_bytes(), args.file.name)
    except OSError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL
    except BulkImportError as e:
        logger.error(str(e))
        return EXIT_FATAL
    print(f"FILE: {args.file.name} format={table.source_format} sheet={table.sheet_name}")
    print(f"  columns={table.columns} rows={len(table.records)}")
    for record in table.records[: max(args.rows, 0)]:
        # datetime values are not JSON serialisable; fall back to isoformat
        safe = {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in record.items()}
        print("  " + json.dumps(safe, ensure_ascii=False, default=str))
    return EXIT_SUCCESS_ALL


_COMMANDS = {
    "template": _cmd_template,
    "import": _cmd_import,
    "inspect": _cmd_inspect,
}


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when argv is None; an explicit [] must stay empty
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    return _COMMANDS[args.command](args, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
