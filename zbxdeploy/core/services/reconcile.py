"""
Config reconciler — merge declared ``key=value`` settings into a config file.

For each declared key, in declaration order, every existing line for
that key is removed (commented out or not) and a fresh ``key=value``
line is appended. Keys that are not declared are left alone. Applying
the same declaration twice gives a byte-identical file.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path

from zbxdeploy.core.errors import IOFailure

logger = logging.getLogger(__name__)

STEP = "Server Configuration"

# Values of keys containing these words never reach the log
_SECRET_HINTS = ("password", "psk", "secret")


def _mask(key: str, value: str) -> str:
    if any(hint in key.lower() for hint in _SECRET_HINTS):
        return "****"
    return value


def parse_declaration(text: str) -> list[tuple[str, str]]:
    """Parse declaration lines into ordered ``(key, value)`` pairs.

    Blank lines, lines starting with ``#`` and lines with an empty key
    are skipped. Lines without ``=`` are skipped with a warning.
    Duplicated keys are kept in order; the last one wins when applied.
    """
    pairs: list[tuple[str, str]] = []
    for num, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            logger.warning("Ignoring declaration line %d without '=': %r", num, line)
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if not key:
            continue
        pairs.append((key, value.strip()))
    return pairs


def _key_pattern(key: str) -> re.Pattern[str]:
    return re.compile(rf"^\s*#*\s*{re.escape(key)}\s*=")


def apply_settings(lines: list[str], pairs: list[tuple[str, str]]) -> list[str]:
    """Return ``lines`` with every pair applied.

    Pure function over the file contents; ``lines`` keep their line
    endings and the result always ends with a newline.
    """
    result = list(lines)
    for key, value in pairs:
        pattern = _key_pattern(key)
        result = [line for line in result if not pattern.match(line)]
        if result and not result[-1].endswith("\n"):
            result[-1] += "\n"
        result.append(f"{key}={value}\n")
    return result


def _write_preserving(target: Path, content: str) -> None:
    """Replace ``target`` atomically, keeping its mode and owner."""
    st = target.stat()
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        shutil.copymode(target, tmp)
        if os.geteuid() == 0:
            os.chown(tmp, st.st_uid, st.st_gid)
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def reconcile(declaration_file: Path, target_file: Path) -> int:
    """Apply ``declaration_file`` to ``target_file``.

    A verbatim ``<target>.bak`` copy is written first (overwritten on
    every run).

    Returns:
        Number of distinct keys applied.

    Raises:
        IOFailure: If any file cannot be read, copied or written.
    """
    try:
        declared = parse_declaration(declaration_file.read_text(encoding="utf-8"))
    except OSError as e:
        raise IOFailure(f"Cannot read {declaration_file}: {e}", step=STEP) from e

    backup = target_file.with_name(target_file.name + ".bak")
    try:
        shutil.copy2(target_file, backup)
    except OSError as e:
        raise IOFailure(f"Failed to backup {target_file}: {e}", step=STEP) from e

    try:
        lines = target_file.read_text(encoding="utf-8").splitlines(keepends=True)
    except OSError as e:
        raise IOFailure(f"Cannot read {target_file}: {e}", step=STEP) from e

    for key, value in declared:
        logger.info("Applying configuration: %s=%s", key, _mask(key, value))

    new_lines = apply_settings(lines, declared)
    try:
        _write_preserving(target_file, "".join(new_lines))
    except OSError as e:
        raise IOFailure(f"Failed to write {target_file}: {e}", step=STEP) from e

    applied = len({key for key, _ in declared})
    logger.info("✅ Zabbix server configuration updated in %s (%d keys).", target_file, applied)
    return applied


def write_default_declaration(path: Path, password: str) -> None:
    """Create the declaration file with the database connection settings.

    Written with mode 0600 since it carries the database password.

    Raises:
        IOFailure: If the file cannot be created.
    """
    content = (
        "DBHost=localhost\n"
        "DBName=zabbix\n"
        "DBUser=zabbix\n"
        f"DBPassword={password}\n"
    )
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise IOFailure(f"Cannot create {path}: {e}", step=STEP) from e
    logger.info("Creating default configuration file: %s", path)
