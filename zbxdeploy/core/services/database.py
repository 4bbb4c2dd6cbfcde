"""
Database commands — create, import, dump and drop the Zabbix database.

SQL is fed to the client on stdin and credentials travel through the
environment, so neither shows up in argv, ``ps`` output or the log.
"""

from __future__ import annotations

import gzip
import logging
import zlib
from dataclasses import dataclass, field
from pathlib import Path

from zbxdeploy.core.errors import IOFailure

logger = logging.getLogger(__name__)

DB_NAME = "zabbix"
DB_USER = "zabbix"

_SCHEMA_SUBDIR = {"mysql": "mysql", "pgsql": "postgresql"}


@dataclass(frozen=True)
class DbCommand:
    """One database client invocation."""

    label: str
    argv: list[str]
    input_text: str | None = None
    env: dict[str, str] = field(default_factory=dict)


def _quote(value: str, db: str) -> str:
    """SQL string literal for ``db``.

    MySQL treats backslash as an escape character; PostgreSQL (with
    ``standard_conforming_strings`` on, the default) keeps it literal.
    """
    if db == "mysql":
        value = value.replace("\\", "\\\\")
    return "'" + value.replace("'", "''") + "'"


def _check(db: str) -> None:
    if db not in _SCHEMA_SUBDIR:
        raise AssertionError(f"unreachable database kind: {db!r}")


def _admin_argv(db: str) -> list[str]:
    if db == "mysql":
        return ["mysql", "-uroot"]
    return ["sudo", "-u", "postgres", "psql", "-v", "ON_ERROR_STOP=1"]


def _admin(db: str, label: str, sql: str) -> DbCommand:
    return DbCommand(label=label, argv=_admin_argv(db), input_text=sql + "\n")


def create_commands(db: str, password: str) -> list[DbCommand]:
    """Create the database and its owner, and grant privileges."""
    _check(db)
    if db == "mysql":
        return [
            _admin(db, "create database",
                   f"CREATE DATABASE {DB_NAME} CHARACTER SET utf8mb4 COLLATE utf8mb4_bin;"),
            _admin(db, "create user",
                   f"CREATE USER '{DB_USER}'@'localhost' IDENTIFIED BY {_quote(password, db)};"),
            _admin(db, "grant privileges",
                   f"GRANT ALL PRIVILEGES ON {DB_NAME}.* TO '{DB_USER}'@'localhost';"),
        ]
    return [
        _admin(db, "create database", f"CREATE DATABASE {DB_NAME};"),
        _admin(db, "create user", f"CREATE USER {DB_USER} WITH PASSWORD {_quote(password, db)};"),
        _admin(db, "grant privileges", f"GRANT ALL PRIVILEGES ON DATABASE {DB_NAME} TO {DB_USER};"),
    ]


def relax_command(db: str) -> DbCommand | None:
    """Temporary setting the schema import needs (MySQL only)."""
    _check(db)
    if db == "mysql":
        return _admin(db, "enable log_bin_trust_function_creators",
                      "SET GLOBAL log_bin_trust_function_creators = 1;")
    return None


def restore_command(db: str) -> DbCommand | None:
    """Undo ``relax_command``."""
    _check(db)
    if db == "mysql":
        return _admin(db, "disable log_bin_trust_function_creators",
                      "SET GLOBAL log_bin_trust_function_creators = 0;")
    return None


def schema_path(schema_dir: Path, db: str) -> Path:
    _check(db)
    return schema_dir / _SCHEMA_SUBDIR[db] / "server.sql.gz"


def load_schema(schema_dir: Path, db: str) -> str:
    """Decompress the server schema shipped by ``zabbix-sql-scripts``.

    Raises:
        IOFailure: If the archive is missing or corrupt.
    """
    path = schema_path(schema_dir, db)
    try:
        with gzip.open(path, "rt", encoding="utf-8") as f:
            return f.read()
    except (OSError, EOFError, zlib.error) as e:
        raise IOFailure(f"Cannot read schema {path}: {e}", step="Database Configuration") from e


def import_command(db: str, password: str, schema_sql: str) -> DbCommand:
    """Load the schema as the Zabbix database user."""
    _check(db)
    if db == "mysql":
        return DbCommand(
            label="import schema",
            argv=["mysql", "--default-character-set=utf8mb4", f"-u{DB_USER}", DB_NAME],
            input_text=schema_sql,
            env={"MYSQL_PWD": password},
        )
    return DbCommand(
        label="import schema",
        argv=["sudo", "-u", DB_USER, "psql", "-q", "-v", "ON_ERROR_STOP=1", DB_NAME],
        input_text=schema_sql,
    )


def dump_argv(db: str) -> list[str]:
    """Native export tool; output goes to stdout."""
    _check(db)
    if db == "mysql":
        return ["mysqldump", "-uroot", DB_NAME]
    return ["sudo", "-u", "postgres", "pg_dump", DB_NAME]


def drop_commands(db: str) -> list[DbCommand]:
    """Drop the database and its user, tolerating their absence."""
    _check(db)
    if db == "mysql":
        user_sql = f"DROP USER IF EXISTS '{DB_USER}'@'localhost';"
    else:
        user_sql = f"DROP USER IF EXISTS {DB_USER};"
    return [
        _admin(db, "drop database", f"DROP DATABASE IF EXISTS {DB_NAME};"),
        _admin(db, "drop user", user_sql),
    ]
