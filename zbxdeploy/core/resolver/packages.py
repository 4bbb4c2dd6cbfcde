"""
Package sets and service names for a (distro, database, web server).

Deterministic: the same inputs always give the same ordered list, so a
re-run after a failure asks the package manager for the same thing.
"""

from __future__ import annotations

from zbxdeploy.core.data.distros import (
    AGENT_PACKAGES,
    DISTRO_PROFILES,
    PRODUCT_SERVICES,
    DatabaseEngine,
    DistroProfile,
)
from zbxdeploy.core.errors import UnsupportedDistro
from zbxdeploy.core.models.request import DATABASE_KINDS, WEBSERVER_KINDS


def get_profile(distro: str) -> DistroProfile:
    """Look up the distro profile.

    Raises:
        UnsupportedDistro: If the distro has no profile.
    """
    try:
        return DISTRO_PROFILES[distro]
    except KeyError:
        raise UnsupportedDistro(f"Distro {distro} is not supported.", step="Repository Resolution") from None


def _two_way(value: str, allowed: tuple[str, ...], what: str) -> str:
    # Request validation already limits these; anything else is a bug.
    if value not in allowed:
        raise AssertionError(f"unreachable {what}: {value!r}")
    return value


def resolve_package_set(distro: str, database: str, webserver: str) -> list[str]:
    """Ordered Zabbix packages to install.

    The database-specific server package always precedes the frontend
    package.
    """
    profile = get_profile(distro)
    db = _two_way(database, DATABASE_KINDS, "database kind")
    web = _two_way(webserver, WEBSERVER_KINDS, "web server kind")

    packages = [f"zabbix-server-{db}", profile.frontend_package.format(db=db)]
    web_conf = profile.web_conf_packages[web]
    if not profile.web_conf_last:
        packages.append(web_conf)
    packages.append("zabbix-sql-scripts")
    packages.extend(profile.extra_packages)
    packages.extend(AGENT_PACKAGES)
    if profile.web_conf_last:
        packages.append(web_conf)
    return packages


def database_engine(distro: str, database: str) -> DatabaseEngine:
    return get_profile(distro).databases[_two_way(database, DATABASE_KINDS, "database kind")]


def web_services(distro: str, webserver: str) -> list[str]:
    """Web server and PHP services for this distro."""
    web = _two_way(webserver, WEBSERVER_KINDS, "web server kind")
    return list(get_profile(distro).web_services[web])


def web_packages(distro: str, webserver: str) -> list[str]:
    """Web server packages installed alongside Zabbix (empty if the
    Zabbix packages pull them in)."""
    return list(get_profile(distro).web_packages.get(webserver, ()))


def product_services() -> list[str]:
    return list(PRODUCT_SERVICES)
