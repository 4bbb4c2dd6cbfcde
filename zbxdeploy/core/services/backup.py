"""
Backup manager — snapshot configuration and database before mutating.

Each run creates a fresh ``zabbix-backup-YYYYmmdd_HHMMSS`` directory and
never touches earlier ones. The set is built under a ``.partial`` name
and renamed once every copy and the dump succeeded. A backup either
completes or raises ``BackupError``.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from zbxdeploy.adapters.base import CommandRunner
from zbxdeploy.core.errors import BackupError
from zbxdeploy.core.services.database import dump_argv

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "zabbix-backup-"
DUMP_FILENAME = "zabbix_db.sql"
# Incomplete sets keep this suffix; only renamed sets are usable
PARTIAL_SUFFIX = ".partial"

# source directory → name inside the backup set
REQUIRED_DIRS: dict[str, str] = {
    "/etc/zabbix": "etc_zabbix",
    "/usr/share/zabbix": "usr_share_zabbix",
}
OPTIONAL_DIRS: dict[str, str] = {
    "/etc/apache2": "etc_apache2",
    "/etc/httpd": "etc_httpd",
    "/etc/nginx": "etc_nginx",
}


@dataclass
class BackupSet:
    """A completed backup directory."""

    path: Path
    copied: list[str] = field(default_factory=list)
    database_dump: Path | None = None

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "copied": self.copied,
            "database_dump": str(self.database_dump) if self.database_dump else None,
        }


class BackupManager:
    """Create timestamped backup sets.

    Args:
        runner: Runs the database export tool.
        backup_root: Parent directory for backup sets.
        required_dirs: Directories that must be copied.
        optional_dirs: Directories copied only when present.
        clock: Source of the timestamp (tests pin it).
    """

    def __init__(
        self,
        runner: CommandRunner,
        backup_root: Path,
        *,
        required_dirs: dict[str, str] | None = None,
        optional_dirs: dict[str, str] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._runner = runner
        self._root = backup_root
        self._required = REQUIRED_DIRS if required_dirs is None else required_dirs
        self._optional = OPTIONAL_DIRS if optional_dirs is None else optional_dirs
        self._clock = clock

    def _make_dir(self) -> tuple[Path, Path]:
        """Reserve a backup name; return ``(staging, final)`` paths.

        The staging directory carries ``PARTIAL_SUFFIX`` until the set
        is complete.
        """
        stamp = self._clock().strftime("%Y%m%d_%H%M%S")
        base = self._root / f"{BACKUP_PREFIX}{stamp}"
        final = base
        for n in range(1, 100):
            staging = final.with_name(final.name + PARTIAL_SUFFIX)
            if not final.exists():
                try:
                    staging.mkdir(parents=True, exist_ok=False)
                    return staging, final
                except FileExistsError:
                    pass
                except OSError as e:
                    raise BackupError(f"Failed to create backup directory {staging}: {e}", step="Backup") from e
            final = base.with_name(f"{base.name}-{n}")
        raise BackupError(f"Too many backups named {base.name}", step="Backup")

    def _copy(self, source: Path, dest: Path) -> None:
        try:
            shutil.copytree(source, dest, symlinks=True)
        except (OSError, shutil.Error) as e:
            raise BackupError(f"Failed to backup {source}: {e}", step="Backup") from e

    def backup(self, database: str, *, config_dirs: bool = True) -> BackupSet:
        """Copy configuration directories and dump the database.

        With ``config_dirs=False`` only the database is dumped.

        Raises:
            BackupError: On the first copy or dump failure.
        """
        target, final = self._make_dir()
        logger.info("🗄 Creating backup in %s...", final)
        result = BackupSet(path=final)

        required = self._required if config_dirs else {}
        optional = self._optional if config_dirs else {}

        for source, name in required.items():
            src = Path(source)
            if not src.is_dir():
                raise BackupError(f"Failed to backup {source}: directory not found", step="Backup")
            self._copy(src, target / name)
            result.copied.append(source)

        for source, name in optional.items():
            src = Path(source)
            if not src.is_dir():
                logger.debug("Optional backup source missing, skipping: %s", source)
                continue
            self._copy(src, target / name)
            result.copied.append(source)

        dump = target / DUMP_FILENAME
        logger.info("🗄 Backing up %s database...", database)
        res = self._runner.run(dump_argv(database), stdout_path=dump)
        if res.failed:
            raise BackupError(
                f"Failed to backup {database} database (exit {res.returncode})",
                step="Backup",
                output=res.output,
            )
        try:
            size = dump.stat().st_size
        except OSError as e:
            raise BackupError(f"Database dump missing: {dump}", step="Backup") from e
        if size == 0:
            raise BackupError(f"Database dump is empty: {dump}", step="Backup", output=res.output)
        try:
            target.rename(final)
        except OSError as e:
            raise BackupError(f"Failed to finalize backup {final}: {e}", step="Backup") from e
        result.database_dump = final / DUMP_FILENAME

        logger.info("✅ Backup completed in %s.", final)
        return result
