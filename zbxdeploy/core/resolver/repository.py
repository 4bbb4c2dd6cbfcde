"""
Repository resolver — where the Zabbix release package lives.

Pure functions of (version, distro, OS version, architecture).
"""

from __future__ import annotations

from zbxdeploy.core.errors import UnsupportedDistro

REPO_BASE = "https://repo.zabbix.com/zabbix"


def resolve_repo_url(version: str, distro: str, os_version: str, arch: str) -> str:
    """Return the URL of the ``zabbix-release`` package for this host.

    RPM-based distros only use the major OS version (``sles 15.5`` →
    ``15``); the repository tree has no minor-version directories.

    Raises:
        UnsupportedDistro: For any distro outside ubuntu, sles, centos.
    """
    major = os_version.split(".", 1)[0]

    match distro:
        case "ubuntu":
            tree = "ubuntu-arm64" if arch == "arm64" else "ubuntu"
            return (
                f"{REPO_BASE}/{version}/{tree}/pool/main/z/zabbix-release/"
                f"zabbix-release_{version}-1+ubuntu{os_version}_all.deb"
            )
        case "sles":
            return (
                f"{REPO_BASE}/{version}/sles/{major}/{arch}/"
                f"zabbix-release-{version}-1.sles{major}.noarch.rpm"
            )
        case "centos":
            return (
                f"{REPO_BASE}/{version}/rhel/{major}/{arch}/"
                f"zabbix-release-{version}-1.el{major}.noarch.rpm"
            )
        case _:
            raise UnsupportedDistro(
                f"Unsupported distro: {distro}",
                step="Repository Resolution",
            )
