"""Resolver — repository URLs, package sets and service names."""

from zbxdeploy.core.resolver.packages import (  # noqa: F401
    database_engine,
    get_profile,
    product_services,
    resolve_package_set,
    web_packages,
    web_services,
)
from zbxdeploy.core.resolver.repository import resolve_repo_url  # noqa: F401
