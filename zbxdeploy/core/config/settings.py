"""
DeployerSettings — paths and defaults the deployer runs with.

Every field has a default, so a host without a settings file behaves
like the classic deployer script.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class DeployerSettings(BaseModel):
    """Host paths and fallbacks."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    log_file: Path | None = Path("/var/log/zabbix_install.log")
    backup_root: Path = Path("/opt")
    declaration_file: Path = Path("zabbix_server_config.conf")
    server_config: Path = Path("/etc/zabbix/zabbix_server.conf")
    # Known weak fallback for --default installs; not a secret store.
    default_db_password: str = "zabbix_password"
    schema_dir: Path = Path("/usr/share/zabbix-sql-scripts")
    download_dir: Path = Path("/tmp")
    os_release: Path = Path("/etc/os-release")
    command_timeout: int = Field(default=1800, gt=0)
