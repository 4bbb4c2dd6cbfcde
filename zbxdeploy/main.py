"""
Zabbix deployer — CLI entrypoint.

Usage:
    zbxdeploy --install --default --version 7.0 --db mysql --webserver apache
    zbxdeploy --upgrade --version 7.0 --db pgsql --webserver nginx
    zbxdeploy --uninstall
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

import click

from zbxdeploy import __version__
from zbxdeploy.adapters.prompt import ClickPrompter, Prompter
from zbxdeploy.adapters.shell.command import SubprocessRunner
from zbxdeploy.core.config.loader import ConfigError, load_settings
from zbxdeploy.core.config.settings import DeployerSettings
from zbxdeploy.core.engine.lifecycle import LifecycleController, LifecycleReport
from zbxdeploy.core.errors import DeployError, OperatorAbort, ValidationError
from zbxdeploy.core.models.request import DeploymentRequest
from zbxdeploy.core.observability.logging_config import setup_logging


logger = logging.getLogger(__name__)

USAGE = (
    "Usage: zbxdeploy [--install|--upgrade|--uninstall] [--default|--manual] "
    "--version <zabbix_version> --db <mysql|pgsql> --webserver <apache|nginx>"
)


def _box(message: str) -> None:
    width = len(message) + 6
    click.secho("┌" + "─" * width + "┐", fg="cyan")
    click.secho("│" + message.center(width) + "│", fg="cyan", bold=True)
    click.secho("└" + "─" * width + "┘", fg="cyan")


def _fail(error: DeployError) -> None:
    click.secho(f"❌ {error.step or 'Run'} failed: {error}", fg="red", bold=True)
    if error.output:
        for line in error.output.strip().splitlines()[-10:]:
            click.echo(f"   │ {line}")
    sys.exit(1)


def _select_action(install: bool, upgrade: bool, uninstall: bool) -> str:
    chosen = [name for name, flag in (
        ("install", install), ("upgrade", upgrade), ("uninstall", uninstall),
    ) if flag]
    if len(chosen) != 1:
        raise ValidationError(
            "Exactly one of --install, --upgrade, --uninstall is required.\n" + USAGE,
            step="Validation",
        )
    return chosen[0]


def _select_mode(default_mode: bool, manual_mode: bool) -> str:
    if default_mode and manual_mode:
        raise ValidationError("--default and --manual are mutually exclusive.", step="Validation")
    return "manual" if manual_mode else "default"


def _credential(request: DeploymentRequest, settings: DeployerSettings, prompter: Prompter) -> DeploymentRequest:
    """Attach the database password an install needs."""
    if request.action != "install":
        return request
    if request.mode == "manual":
        password = os.environ.get("DB_PASSWORD") or prompter.secret("Enter database password")
        if not password:
            raise OperatorAbort("Password cannot be empty.", step="Credential")
        logger.info("Database password provided.")
        return request.with_credential(password)
    logger.info("Using default database password.")
    return request.with_credential(settings.default_db_password)


def _summary(request: DeploymentRequest, report: LifecycleReport, settings: DeployerSettings) -> None:
    if request.action == "install":
        _box("Installation Complete")
        click.secho(f"✅ Zabbix {request.product_version} is installed and configured.", fg="green")
        click.echo("🌐 Access the Zabbix frontend at http://<server_ip>/zabbix")
        click.echo("👤 Default login: Admin / zabbix")
        click.echo(f"⚙️  Configuration file: {settings.declaration_file}")
    elif request.action == "upgrade":
        _box("Upgrade Complete")
        click.secho(f"✅ Zabbix upgraded to {request.product_version}.", fg="green")
        if report.backup:
            click.echo(f"🗄  Backup: {report.backup.path}")
        click.echo("🌐 Access the Zabbix frontend at http://<server_ip>/zabbix")
        click.echo("⚠️  Clear browser cache if the web interface has issues.")
    else:
        _box("Uninstallation Complete")
        click.secho("✅ Zabbix has been uninstalled.", fg="green")
        if report.backup:
            click.echo(f"🗄  Database dump: {report.backup.database_dump}")
    for warning in report.warnings:
        click.secho(f"   {warning}", fg="yellow")
    if settings.log_file:
        click.echo(f"📜 Log file: {settings.log_file}")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--deployer-version", prog_name="zbxdeploy")
@click.option("--install", is_flag=True, help="Install Zabbix.")
@click.option("--upgrade", is_flag=True, help="Upgrade an existing Zabbix installation.")
@click.option("--uninstall", is_flag=True, help="Remove Zabbix from this host.")
@click.option("--default", "default_mode", is_flag=True, help="Use the default database password (default).")
@click.option("--manual", "manual_mode", is_flag=True, help="Prompt for the database password.")
@click.option("--version", "product_version", default=None, help="Zabbix version: 6.0, 6.4 or 7.0.")
@click.option("--db", "database", default=None, help="Database: mysql or pgsql.")
@click.option("--webserver", default=None, help="Web server: apache or nginx.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask before installing or upgrading.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to zbxdeploy.yml (default: auto-detect).",
)
@click.option("--log-file", default=None, help="Append the run log to this file.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print the run report as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Show command output.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
def cli(
    install: bool,
    upgrade: bool,
    uninstall: bool,
    default_mode: bool,
    manual_mode: bool,
    product_version: str | None,
    database: str | None,
    webserver: str | None,
    assume_yes: bool,
    config_path: str | None,
    log_file: str | None,
    as_json: bool,
    verbose: bool,
    quiet: bool,
    debug: bool,
) -> None:
    """Zabbix deployer — install, upgrade or uninstall a Zabbix server."""
    try:
        settings = load_settings(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    # ── Logging setup (once, at process start) ──────────────────
    if debug or verbose:
        level = "DEBUG"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("ZBXD_LOG_LEVEL", "INFO")

    run_log = log_file or os.environ.get("ZBXD_LOG_FILE") or settings.log_file
    try:
        setup_logging(
            level=level,
            log_file=run_log,
            log_file_level=os.environ.get("ZBXD_LOG_FILE_LEVEL"),
        )
    except OSError as e:
        click.secho(f"❌ Failed to create log file {run_log}: {e}", fg="red")
        sys.exit(1)
    if run_log:
        settings = settings.model_copy(update={"log_file": Path(run_log)})

    prompter = ClickPrompter(assume_yes=assume_yes)
    try:
        action = _select_action(install, upgrade, uninstall)
        fields = {"action": action, "mode": _select_mode(default_mode, manual_mode)}
        if action != "uninstall":
            fields.update(product_version=product_version, database=database, webserver=webserver)
        request = DeploymentRequest.build(**fields)
        request = _credential(request, settings, prompter)
        logger.info("Request: %s", request.describe())
    except DeployError as e:
        logger.error("❌ %s", e)
        _fail(e)
        return

    if not as_json:
        title = "Uninstallation" if action == "uninstall" else (
            f"Zabbix {request.product_version} {action.capitalize()}"
        )
        _box(title)

    controller = LifecycleController(
        SubprocessRunner(default_timeout=settings.command_timeout),
        prompter,
        settings,
    )
    report = controller.run(request)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.ok else 1)

    if report.error is not None:
        _fail(report.error)

    _summary(request, report, settings)


if __name__ == "__main__":
    cli()
