"""
Distro profiles — package names, services and paths per distribution.

Pure data. No logic beyond lookups.
"""

from __future__ import annotations

from dataclasses import dataclass, field

PRODUCT_SERVICES: tuple[str, ...] = ("zabbix-server", "zabbix-agent2")

# Everything an uninstall tries to stop, whether or not it exists here
ALL_SERVICES: tuple[str, ...] = (
    "zabbix-server",
    "zabbix-agent",
    "zabbix-agent2",
    "apache2",
    "nginx",
    "httpd",
    "php-fpm",
    "php8.1-fpm",
)

PRODUCT_PACKAGE_PREFIX = "zabbix"

AGENT_PACKAGES: tuple[str, ...] = (
    "zabbix-agent2",
    "zabbix-agent2-plugin-mongodb",
    "zabbix-agent2-plugin-mssql",
    "zabbix-agent2-plugin-postgresql",
)

# Architecture names as reported by ``uname -m``
ARCH_ALIASES: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "AMD64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}
DEFAULT_ARCH = "amd64"


@dataclass(frozen=True)
class DatabaseEngine:
    """How to install and run one database engine on one distro.

    ``package_choices`` and ``service_choices`` are tried in order; the
    first that succeeds wins.
    """

    package_choices: tuple[tuple[str, ...], ...]
    service_choices: tuple[str, ...]
    init_command: tuple[str, ...] = ()


@dataclass(frozen=True)
class DistroProfile:
    """Everything distro-specific the lifecycle needs."""

    distro: str
    package_manager: str
    repo_file: str
    databases: dict[str, DatabaseEngine]
    frontend_package: str                     # may contain {db}
    web_conf_packages: dict[str, str]
    web_services: dict[str, tuple[str, ...]]
    web_packages: dict[str, tuple[str, ...]] = field(default_factory=dict)
    extra_packages: tuple[str, ...] = ()
    web_conf_last: bool = False


DISTRO_PROFILES: dict[str, DistroProfile] = {
    "ubuntu": DistroProfile(
        distro="ubuntu",
        package_manager="apt",
        repo_file="/etc/apt/sources.list.d/zabbix.list",
        databases={
            "mysql": DatabaseEngine(
                package_choices=(("mysql-server",), ("mariadb-server",)),
                service_choices=("mysql", "mariadb"),
            ),
            "pgsql": DatabaseEngine(
                package_choices=(("postgresql", "postgresql-contrib"),),
                service_choices=("postgresql",),
            ),
        },
        frontend_package="zabbix-frontend-php",
        web_conf_packages={"apache": "zabbix-apache-conf", "nginx": "zabbix-nginx-conf"},
        web_services={"apache": ("apache2",), "nginx": ("nginx", "php8.1-fpm")},
        web_packages={"apache": ("apache2",), "nginx": ("nginx", "php8.1-fpm")},
    ),
    "sles": DistroProfile(
        distro="sles",
        package_manager="zypper",
        repo_file="/etc/zypp/repos.d/zabbix.repo",
        databases={
            "mysql": DatabaseEngine(
                package_choices=(("mariadb", "mariadb-server"),),
                service_choices=("mariadb",),
            ),
            "pgsql": DatabaseEngine(
                package_choices=(("postgresql", "postgresql-server"),),
                service_choices=("postgresql",),
            ),
        },
        frontend_package="zabbix-web-{db}",
        web_conf_packages={"apache": "zabbix-apache-conf-php8", "nginx": "zabbix-nginx-conf"},
        web_services={"apache": ("apache2",), "nginx": ("nginx", "php-fpm")},
    ),
    "centos": DistroProfile(
        distro="centos",
        package_manager="dnf",
        repo_file="/etc/yum.repos.d/zabbix.repo",
        databases={
            "mysql": DatabaseEngine(
                package_choices=(("mariadb-server",),),
                service_choices=("mariadb",),
            ),
            "pgsql": DatabaseEngine(
                package_choices=(("postgresql-server",),),
                service_choices=("postgresql",),
                init_command=("postgresql-setup", "--initdb"),
            ),
        },
        frontend_package="zabbix-web-{db}",
        web_conf_packages={"apache": "zabbix-apache-conf", "nginx": "zabbix-nginx-conf"},
        web_services={"apache": ("httpd", "php-fpm"), "nginx": ("nginx", "php-fpm")},
        extra_packages=("zabbix-selinux-policy",),
        web_conf_last=True,
    ),
}

EPEL_REPO_FILE = "/etc/yum.repos.d/epel.repo"
