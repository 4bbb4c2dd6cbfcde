"""
Shared test fixtures and configuration.
"""

import gzip
import logging
from datetime import datetime
from pathlib import Path

import pytest

from zbxdeploy.adapters.mock import MockRunner
from zbxdeploy.adapters.prompt import ScriptedPrompter
from zbxdeploy.core.config.settings import DeployerSettings
from zbxdeploy.core.engine.lifecycle import LifecycleController
from zbxdeploy.core.models.environment import TargetEnvironment
from zbxdeploy.core.services.backup import BackupManager

SERVER_CONF = """\
# This is a configuration file for Zabbix server daemon
LogFile=/var/log/zabbix/zabbix_server.log
# DBHost=localhost
DBName=zabbix
# DBPassword=
Timeout=4
"""


@pytest.fixture
def ubuntu_env() -> TargetEnvironment:
    return TargetEnvironment(distro="ubuntu", os_version="22.04", architecture="amd64")


@pytest.fixture
def host(tmp_path: Path) -> Path:
    """A fake host filesystem with the paths the deployer touches."""
    root = tmp_path / "host"
    (root / "etc" / "zabbix").mkdir(parents=True)
    (root / "etc" / "zabbix" / "zabbix_server.conf").write_text(SERVER_CONF)
    (root / "usr" / "share" / "zabbix").mkdir(parents=True)
    (root / "usr" / "share" / "zabbix" / "index.php").write_text("<?php\n")
    (root / "etc" / "apache2").mkdir(parents=True)
    (root / "etc" / "apache2" / "apache2.conf").write_text("ServerName zabbix\n")
    (root / "etc" / "apt" / "sources.list.d").mkdir(parents=True)
    (root / "etc" / "apt" / "sources.list.d" / "zabbix.list").write_text("deb zabbix\n")
    for db, sub in (("mysql", "mysql"), ("pgsql", "postgresql")):
        schema = root / "usr" / "share" / "zabbix-sql-scripts" / sub / "server.sql.gz"
        schema.parent.mkdir(parents=True)
        with gzip.open(schema, "wt") as f:
            f.write(f"-- {db} schema\nCREATE TABLE users (userid bigint);\n")
    (root / "opt").mkdir()
    return root


@pytest.fixture
def settings(host: Path, tmp_path: Path) -> DeployerSettings:
    return DeployerSettings(
        log_file=None,
        backup_root=host / "opt",
        declaration_file=tmp_path / "zabbix_server_config.conf",
        server_config=host / "etc" / "zabbix" / "zabbix_server.conf",
        schema_dir=host / "usr" / "share" / "zabbix-sql-scripts",
        download_dir=tmp_path,
        os_release=host / "etc" / "os-release",
    )


@pytest.fixture
def mock_runner() -> MockRunner:
    runner = MockRunner()
    runner.set_output(["mysqldump"], "-- MySQL dump\n")
    runner.set_output(["sudo", "-u", "postgres", "pg_dump"], "-- PostgreSQL dump\n")
    return runner


@pytest.fixture
def make_controller(mock_runner, settings, host, ubuntu_env):
    """Build a controller wired to the mock runner and fake host."""

    def _make(answers=("y",), env: TargetEnvironment | None = None):
        prompter = ScriptedPrompter(answers)
        backups = BackupManager(
            mock_runner,
            settings.backup_root,
            required_dirs={
                str(host / "etc" / "zabbix"): "etc_zabbix",
                str(host / "usr" / "share" / "zabbix"): "usr_share_zabbix",
            },
            optional_dirs={
                str(host / "etc" / "apache2"): "etc_apache2",
                str(host / "etc" / "nginx"): "etc_nginx",
            },
            clock=lambda: datetime(2024, 5, 1, 12, 30, 0),
        )
        controller = LifecycleController(
            mock_runner,
            prompter,
            settings,
            probe=lambda: env or ubuntu_env,
            backup_manager=backups,
            host_root=host,
        )
        return controller, prompter

    return _make


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo whatever ``setup_logging`` did to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
