"""
Environment probe — distribution id, OS version and CPU architecture.

Read-only. Runs once per process; the result is immutable.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from zbxdeploy.core.data.distros import ARCH_ALIASES, DEFAULT_ARCH
from zbxdeploy.core.errors import UnsupportedOS
from zbxdeploy.core.models.environment import TargetEnvironment

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines of an os-release file.

    Surrounding single or double quotes are removed from values;
    comments and blank lines are ignored.
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        fields[key.strip()] = value
    return fields


def normalize_architecture(machine: str) -> str:
    """Map a raw ``uname -m`` value onto ``arm64`` or ``amd64``.

    Unknown values fall back to ``amd64``. The fallback keeps older
    behaviour (any non-ARM host was treated as x86) but is logged so an
    unsupported machine does not pass silently.
    """
    normalized = ARCH_ALIASES.get(machine.strip())
    if normalized is None:
        logger.warning(
            "Unrecognized CPU architecture %r, assuming %s",
            machine, DEFAULT_ARCH,
        )
        return DEFAULT_ARCH
    return normalized


def probe(
    os_release: Path = OS_RELEASE,
    machine: str | None = None,
) -> TargetEnvironment:
    """Detect the host this process runs on.

    Args:
        os_release: os-release file to read.
        machine: Raw architecture string (default: ``platform.machine()``).

    Raises:
        UnsupportedOS: If os-release is missing, unreadable, or has no
            ``ID``/``VERSION_ID``.
    """
    try:
        text = os_release.read_text(encoding="utf-8")
    except OSError as e:
        raise UnsupportedOS(
            f"Unsupported Linux distribution: cannot read {os_release}",
            step="Environment Detection",
        ) from e

    fields = parse_os_release(text)
    distro = fields.get("ID", "").lower()
    os_version = fields.get("VERSION_ID", "")
    if not distro or not os_version:
        raise UnsupportedOS(
            f"Unsupported Linux distribution: {os_release} has no ID/VERSION_ID",
            step="Environment Detection",
        )

    arch = normalize_architecture(machine if machine is not None else platform.machine())
    env = TargetEnvironment(distro=distro, os_version=os_version, architecture=arch)
    logger.info("Detected OS: %s", env)
    return env
