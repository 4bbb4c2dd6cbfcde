"""
Package manager commands — apt, zypper and dnf.

Builds argv lists only; executing them is the runner's job. Keeping the
distro branching here means the lifecycle reads the same on every
distribution.
"""

from __future__ import annotations

import logging
from pathlib import Path

from zbxdeploy.core.data.distros import PRODUCT_PACKAGE_PREFIX

logger = logging.getLogger(__name__)

SUPPORTED_MANAGERS = ("apt", "zypper", "dnf")

# apt must never stop and ask a question mid-run
APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def _check(pm: str) -> None:
    if pm not in SUPPORTED_MANAGERS:
        raise AssertionError(f"unreachable package manager: {pm!r}")


def refresh_cmd(pm: str) -> list[str] | None:
    """Metadata refresh before installing, where the manager needs one."""
    _check(pm)
    if pm == "apt":
        return ["apt", "update"]
    return None


def install_cmd(pm: str, packages: list[str]) -> list[str]:
    _check(pm)
    return [pm, "install", "-y", *packages]


def upgrade_cmd(pm: str, packages: list[str]) -> list[str]:
    """Upgrade packages that are already installed, never add new ones."""
    _check(pm)
    if pm == "apt":
        return ["apt", "install", "-y", "--only-upgrade", *packages]
    if pm == "zypper":
        return ["zypper", "update", "-y", *packages]
    return ["dnf", "upgrade", "-y", *packages]


def remove_cmd(pm: str, packages: list[str]) -> list[str]:
    _check(pm)
    if pm == "apt":
        return ["apt", "remove", "--purge", "-y", *packages]
    return [pm, "remove", "-y", *packages]


def cleanup_cmd(pm: str) -> list[str]:
    """Dependency/cache cleanup after removal."""
    _check(pm)
    if pm == "apt":
        return ["apt", "autoremove", "-y"]
    if pm == "zypper":
        return ["zypper", "clean"]
    return ["dnf", "clean", "all"]


def query_installed_cmd(pm: str) -> list[str]:
    """List every installed package, one per line."""
    _check(pm)
    if pm == "apt":
        return ["dpkg-query", "-W", "-f=${Status} ${Package}\\n"]
    return ["rpm", "-qa", "--qf", "%{NAME}\\n"]


def parse_installed(pm: str, output: str, prefix: str = PRODUCT_PACKAGE_PREFIX) -> list[str]:
    """Extract installed package names starting with ``prefix``.

    ``dpkg-query`` lines look like ``install ok installed zabbix-agent2``;
    only fully installed packages count. ``rpm`` lines are bare names.
    """
    _check(pm)
    names: list[str] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        if pm == "apt":
            status, _, name = line.rpartition(" ")
            if status != "install ok installed":
                continue
        else:
            name = line
        if name.startswith(prefix) and name not in names:
            names.append(name)
    return names


def repo_setup_cmds(pm: str, url: str, download_dir: Path) -> list[list[str]]:
    """Commands that register the Zabbix repository from ``url``."""
    _check(pm)
    if pm == "apt":
        deb = str(download_dir / "zabbix-release.deb")
        return [
            ["wget", "-q", url, "-O", deb],
            ["dpkg", "-i", deb],
            ["apt", "update"],
        ]
    if pm == "zypper":
        return [
            ["rpm", "-Uvh", "--nosignature", url],
            ["zypper", "--gpg-auto-import-keys", "refresh", "Zabbix Official Repository"],
        ]
    return [
        ["rpm", "-Uvh", url],
        ["dnf", "clean", "all"],
    ]


def command_env(pm: str) -> dict[str, str] | None:
    return APT_ENV if pm == "apt" else None


def exclude_from_epel(epel_repo: Path) -> bool:
    """Keep EPEL from shadowing the Zabbix packages.

    Adds ``excludepkgs=zabbix*`` right after the ``[epel]`` section
    header. Returns True when the file was changed; a section that
    already carries the exclusion is left alone.

    Raises:
        OSError: If the repo file cannot be read or written.
    """
    lines = epel_repo.read_text(encoding="utf-8").splitlines(keepends=True)

    header = None
    section = None
    for idx, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("["):
            section = stripped
            if stripped == "[epel]":
                header = idx
            continue
        if section == "[epel]" and stripped.replace(" ", "") == "excludepkgs=zabbix*":
            return False

    if header is None:
        return False

    lines.insert(header + 1, "excludepkgs=zabbix*\n")
    epel_repo.write_text("".join(lines), encoding="utf-8")
    logger.info("Excluded zabbix* packages from %s", epel_repo)
    return True
