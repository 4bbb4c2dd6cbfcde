"""
Lifecycle controller — the install / upgrade / uninstall state machine.

Flow:
    idle → validating → probing → <action steps> → done | aborted

Install and upgrade are fail-fast: the first failing step raises and no
later step runs. Uninstall is best-effort: command failures are logged
as warnings and cleanup carries on. The controller only talks to the
host through a ``CommandRunner`` and to the operator through a
``Prompter``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from zbxdeploy.adapters.base import CommandResult, CommandRunner
from zbxdeploy.adapters.prompt import Prompter, is_yes
from zbxdeploy.core.config.settings import DeployerSettings
from zbxdeploy.core.data.distros import ALL_SERVICES, EPEL_REPO_FILE
from zbxdeploy.core.detection.environment import probe as probe_host
from zbxdeploy.core.errors import (
    BackupError,
    DeployError,
    ExternalCommandFailure,
    IOFailure,
    OperatorAbort,
    ValidationError,
    VerificationFailure,
)
from zbxdeploy.core.models.environment import TargetEnvironment
from zbxdeploy.core.models.progress import ProgressState
from zbxdeploy.core.models.request import DATABASE_KINDS, DeploymentRequest
from zbxdeploy.core.resolver.packages import (
    database_engine,
    get_profile,
    product_services,
    resolve_package_set,
    web_packages,
    web_services,
)
from zbxdeploy.core.resolver.repository import resolve_repo_url
from zbxdeploy.core.services import database as dbcmd
from zbxdeploy.core.services import package_manager as pkg
from zbxdeploy.core.services.backup import BackupManager, BackupSet
from zbxdeploy.core.services.reconcile import reconcile, write_default_declaration

logger = logging.getLogger(__name__)

INSTALL_STEPS = 6
UPGRADE_STEPS = 5
UNINSTALL_STEPS = 4

_VERSION_RE = re.compile(r"Zabbix\)?\s+v?(\d+\.\d+)")


def parse_server_version(output: str) -> str | None:
    """Extract ``major.minor`` from ``zabbix_server -V`` output.

    Accepts both ``Zabbix 7.0.1`` and ``zabbix_server (Zabbix) 7.0.1``.
    """
    match = _VERSION_RE.search(output)
    return match.group(1) if match else None


@dataclass
class LifecycleReport:
    """Outcome of one run."""

    action: str
    phase: str = "idle"
    environment: TargetEnvironment | None = None
    completed_steps: list[str] = field(default_factory=list)
    backup: BackupSet | None = None
    reconciled_keys: int = 0
    removed_packages: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: DeployError | None = None

    @property
    def ok(self) -> bool:
        return self.phase == "done" and self.error is None

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "phase": self.phase,
            "environment": self.environment.model_dump() if self.environment else None,
            "completed_steps": self.completed_steps,
            "backup": self.backup.to_dict() if self.backup else None,
            "reconciled_keys": self.reconciled_keys,
            "removed_packages": self.removed_packages,
            "warnings": self.warnings,
            "error": (
                {"type": type(self.error).__name__, "step": self.error.step, "message": str(self.error)}
                if self.error else None
            ),
        }


class LifecycleController:
    """Sequence one deployment action against the host.

    Args:
        runner: Executes external commands.
        prompter: Answers confirmation and cleanup questions.
        settings: Host paths and defaults.
        probe: Environment probe (default: read the host).
        backup_manager: Backup manager (default: one rooted at
            ``settings.backup_root``).
        host_root: Prefix for absolute host paths such as repository
            files (tests point it at a temporary directory).
    """

    def __init__(
        self,
        runner: CommandRunner,
        prompter: Prompter,
        settings: DeployerSettings | None = None,
        *,
        probe: Callable[[], TargetEnvironment] | None = None,
        backup_manager: BackupManager | None = None,
        host_root: Path = Path("/"),
    ):
        self._runner = runner
        self._prompter = prompter
        self._settings = settings or DeployerSettings()
        self._probe = probe or (lambda: probe_host(self._settings.os_release))
        self._backups = backup_manager or BackupManager(runner, self._settings.backup_root)
        self._host_root = host_root
        self.progress = ProgressState(total_steps=0)

    # ── Entry point ─────────────────────────────────────────────

    def run(self, request: DeploymentRequest) -> LifecycleReport:
        """Run the requested action. Never raises ``DeployError``."""
        report = LifecycleReport(action=request.action)
        try:
            report.phase = "validating"
            self._validate(request)

            report.phase = "probing"
            env = self._probe()
            report.environment = env

            report.phase = request.action
            if request.action == "install":
                self.progress = ProgressState(total_steps=INSTALL_STEPS)
                self._install(request, env, report)
            elif request.action == "upgrade":
                self.progress = ProgressState(total_steps=UPGRADE_STEPS)
                self._upgrade(request, env, report)
            else:
                self.progress = ProgressState(total_steps=UNINSTALL_STEPS)
                self._uninstall(env, report)

            report.phase = "done"
        except DeployError as e:
            report.phase = "aborted"
            report.error = e
            logger.error("❌ %s failed: %s", e.step or request.action, e)
            if e.output:
                logger.error("%s", e.output.strip())
        return report

    def _validate(self, request: DeploymentRequest) -> None:
        if request.action == "install" and not request.password:
            raise ValidationError("Database password cannot be empty.", step="Validation")

    # ── Command helpers ─────────────────────────────────────────

    def _exec(
        self,
        argv: list[str],
        *,
        input_text: str | None = None,
        env: dict[str, str] | None = None,
        label: str = "",
    ) -> CommandResult:
        logger.info("$ %s", label or " ".join(argv))
        result = self._runner.run(
            argv,
            input_text=input_text,
            env=env,
            timeout=self._settings.command_timeout,
        )
        if result.output.strip():
            logger.debug("%s", result.output.rstrip())
        return result

    def _must(self, step: str, argv: list[str], *, what: str = "", **kwargs) -> CommandResult:
        """Run a command; any failure aborts the run."""
        result = self._exec(argv, **kwargs)
        if result.failed:
            raise ExternalCommandFailure(
                f"Failed to {what or 'run ' + result.command_line} (exit {result.returncode})",
                step=step,
                result=result,
            )
        return result

    def _attempt(self, report: LifecycleReport, argv: list[str], *, what: str = "", **kwargs) -> CommandResult:
        """Run a command; failure is only a warning."""
        result = self._exec(argv, **kwargs)
        if result.failed:
            message = f"⚠️ Failed to {what or result.command_line} (exit {result.returncode})"
            logger.warning("%s", message)
            report.warnings.append(message)
        return result

    def _must_db(self, step: str, cmd: dbcmd.DbCommand) -> CommandResult:
        return self._must(
            step, cmd.argv, what=cmd.label,
            input_text=cmd.input_text, env=cmd.env or None,
            label=f"{' '.join(cmd.argv)}  # {cmd.label}",
        )

    def _host_path(self, path: str) -> Path:
        return self._host_root / path.lstrip("/")

    def _done(self, report: LifecycleReport, step: str) -> None:
        report.completed_steps.append(step)
        self.progress.advance(step)

    def _confirm(self, summary: str) -> None:
        if not self._prompter.confirm_intent(summary):
            raise OperatorAbort("Aborted by user.", step="Confirmation")

    # ── Install ─────────────────────────────────────────────────

    def _install(self, request: DeploymentRequest, env: TargetEnvironment, report: LifecycleReport) -> None:
        version, db, web = request.product_version, request.database, request.webserver
        profile = get_profile(env.distro)
        pm = profile.package_manager
        url = resolve_repo_url(version, env.distro, env.os_version, env.architecture)

        self._confirm(f"Installing Zabbix {version} with {db} and {web} on {env}")

        step = "Prerequisites Installation"
        refresh = pkg.refresh_cmd(pm)
        if refresh:
            self._must(step, refresh, what="update package index")
        self._must(step, pkg.install_cmd(pm, ["wget", "curl"]), what="install prerequisites",
                   env=pkg.command_env(pm))
        logger.info("✅ Prerequisites installed.")
        self._done(report, step)

        self._install_database(env, db, pm)
        self._done(report, "Database Installation")

        step = "Zabbix Installation"
        logger.info("🌐 Installing Zabbix %s for %s with %s and %s...", version, env, db, web)
        self._register_repository(step, pm, url)
        packages = resolve_package_set(env.distro, db, web)
        logger.info("Installing Zabbix packages: %s", " ".join(packages))
        self._must(step, pkg.install_cmd(pm, packages), what="install Zabbix packages",
                   env=pkg.command_env(pm))
        extra = web_packages(env.distro, web)
        if extra:
            self._must(step, pkg.install_cmd(pm, extra), what=f"install {' '.join(extra)}",
                       env=pkg.command_env(pm))
        self._done(report, step)

        step = "Service Startup"
        services = product_services() + web_services(env.distro, web)
        self._must(step, ["systemctl", "enable", *services], what="enable services")
        self._must(step, ["systemctl", "restart", *services], what="restart services")
        self._done(report, step)

        self._configure_database(db, request.password)
        self._done(report, "Database Configuration")

        step = "Server Configuration"
        declaration = self._settings.declaration_file
        if not declaration.is_file():
            write_default_declaration(declaration, request.password)
        report.reconciled_keys = reconcile(declaration, self._settings.server_config)
        self._done(report, step)

        logger.info("✅ Zabbix %s installed successfully.", version)

    def _install_database(self, env: TargetEnvironment, db: str, pm: str) -> None:
        step = "Database Installation"
        engine = database_engine(env.distro, db)
        logger.info("📦 Installing %s server...", db)

        last: CommandResult | None = None
        for choice in engine.package_choices:
            last = self._exec(pkg.install_cmd(pm, list(choice)), env=pkg.command_env(pm))
            if last.ok:
                break
            logger.warning("⚠️ %s installation failed, trying next option...", " ".join(choice))
        else:
            raise ExternalCommandFailure(
                f"Failed to install {db} server", step=step, result=last,
            )

        if engine.init_command:
            self._must(step, list(engine.init_command), what="initialize database cluster")

        service = None
        for candidate in engine.service_choices:
            last = self._exec(["systemctl", "enable", candidate])
            if last.ok:
                service = candidate
                break
        if service is None:
            raise ExternalCommandFailure(
                f"Failed to enable {'/'.join(engine.service_choices)} service",
                step=step, result=last,
            )
        self._must(step, ["systemctl", "start", service], what=f"start {service} service")
        logger.info("✅ %s server installed and started.", db)

    def _register_repository(self, step: str, pm: str, url: str) -> None:
        logger.info("Downloading Zabbix repository: %s", url)
        for argv in pkg.repo_setup_cmds(pm, url, self._settings.download_dir):
            self._must(step, argv, what=" ".join(argv[:2]), env=pkg.command_env(pm))

        if pm == "dnf":
            epel = self._host_path(EPEL_REPO_FILE)
            if epel.is_file():
                try:
                    pkg.exclude_from_epel(epel)
                except OSError as e:
                    raise IOFailure(f"Failed to modify epel repo: {e}", step=step) from e

    def _configure_database(self, db: str, password: str) -> None:
        step = "Database Configuration"
        logger.info("🛠 Configuring %s database for Zabbix...", db)

        for cmd in dbcmd.create_commands(db, password):
            self._must_db(step, cmd)

        relax = dbcmd.relax_command(db)
        restore = dbcmd.restore_command(db)
        if relax:
            self._must_db(step, relax)
        try:
            schema = dbcmd.load_schema(self._settings.schema_dir, db)
            self._must_db(step, dbcmd.import_command(db, password, schema))
        except DeployError:
            if restore:
                self._exec(restore.argv, input_text=restore.input_text, label=restore.label)
            raise
        if restore:
            self._must_db(step, restore)
        logger.info("✅ %s database configured.", db)

    # ── Upgrade ─────────────────────────────────────────────────

    def _upgrade(self, request: DeploymentRequest, env: TargetEnvironment, report: LifecycleReport) -> None:
        version, db, web = request.product_version, request.database, request.webserver
        profile = get_profile(env.distro)
        pm = profile.package_manager
        url = resolve_repo_url(version, env.distro, env.os_version, env.architecture)

        self._confirm(f"Upgrading Zabbix to {version} with {db} and {web} on {env}")

        services = product_services() + web_services(env.distro, web)
        logger.info("🛑 Stopping Zabbix services...")
        self._must("Service Shutdown", ["systemctl", "stop", *services], what="stop services")

        report.backup = self._backups.backup(db)
        self._done(report, "Backup")

        step = "Repository Update"
        logger.info("🌐 Updating Zabbix repository to version %s", version)
        self._register_repository(step, pm, url)
        self._done(report, step)

        step = "Zabbix Upgrade"
        query = self._must(step, pkg.query_installed_cmd(pm), what="query installed packages")
        installed = set(pkg.parse_installed(pm, query.output))
        targets = [p for p in resolve_package_set(env.distro, db, web) if p in installed]
        if targets:
            logger.info("📦 Upgrading Zabbix packages: %s", " ".join(targets))
            self._must(step, pkg.upgrade_cmd(pm, targets), what="upgrade Zabbix packages",
                       env=pkg.command_env(pm))
        else:
            message = "No installed Zabbix packages to upgrade"
            logger.warning("⚠️ %s", message)
            report.warnings.append(message)
        self._done(report, step)

        step = "Service Restart"
        logger.info("🔄 Restarting services...")
        self._must(step, ["systemctl", "restart", *services], what="restart services")
        self._done(report, step)

        step = "Version Verification"
        logger.info("🔍 Verifying Zabbix version...")
        result = self._must(step, ["zabbix_server", "-V"], what="query zabbix_server version")
        found = parse_server_version(result.output)
        if found != version:
            raise VerificationFailure(version, found, step=step)
        logger.info("✅ Zabbix successfully upgraded to version %s.", version)
        self._done(report, step)

    # ── Uninstall ───────────────────────────────────────────────

    def _uninstall(self, env: TargetEnvironment, report: LifecycleReport) -> None:
        profile = get_profile(env.distro)
        pm = profile.package_manager

        logger.info("🧹 Stopping and disabling Zabbix services...")
        self._attempt(report, ["systemctl", "stop", *ALL_SERVICES], what="stop services")
        self._attempt(report, ["systemctl", "disable", *ALL_SERVICES], what="disable services")
        self._done(report, "Service Shutdown")

        logger.info("📦 Detecting installed Zabbix packages...")
        query = self._attempt(report, pkg.query_installed_cmd(pm), what="query installed packages")
        installed = pkg.parse_installed(pm, query.output) if query.ok else []
        if installed:
            logger.info("🧹 Removing the following Zabbix packages: %s", " ".join(installed))
            removal = self._attempt(report, pkg.remove_cmd(pm, installed), what="remove Zabbix packages",
                                    env=pkg.command_env(pm))
            if removal.ok:
                report.removed_packages = installed
            self._attempt(report, pkg.cleanup_cmd(pm), what="clean up dependencies",
                          env=pkg.command_env(pm))
        else:
            logger.info("ℹ️ No Zabbix packages found to remove.")
        self._done(report, "Package Removal")

        repo_file = self._host_path(profile.repo_file)
        try:
            repo_file.unlink(missing_ok=True)
        except OSError as e:
            message = f"⚠️ Failed to remove {repo_file}: {e}"
            logger.warning("%s", message)
            report.warnings.append(message)
        refresh = pkg.refresh_cmd(pm)
        if refresh:
            self._attempt(report, refresh, what="refresh package index after cleanup")
        self._done(report, "Repository Removal")

        self._drop_database(report)
        self._done(report, "Database Cleanup")
        logger.info("✅ Zabbix uninstalled.")

    def _drop_database(self, report: LifecycleReport) -> None:
        logger.info("🗑️ Database cleanup")
        answer = self._prompter.ask("⚠️ Do you want to remove the Zabbix database? (y/n)")
        logger.info("User response for database cleanup: %s", answer)
        if not is_yes(answer):
            logger.info("ℹ️ Zabbix database and user will be retained.")
            return

        kind = self._prompter.ask("⚠️ Is the database MySQL or PostgreSQL? (mysql/pgsql)").strip().lower()
        logger.info("User specified database type: %s", kind)
        if kind not in DATABASE_KINDS:
            message = "Invalid database type. Skipping database cleanup."
            logger.error("❌ %s", message)
            report.warnings.append(message)
            return

        try:
            report.backup = self._backups.backup(kind, config_dirs=False)
        except BackupError as e:
            message = f"⚠️ {e}. Skipping database cleanup."
            logger.warning("%s", message)
            report.warnings.append(message)
            return

        logger.info("🧹 Dropping %s database and user...", kind)
        for cmd in dbcmd.drop_commands(kind):
            self._attempt(report, cmd.argv, what=cmd.label, input_text=cmd.input_text,
                          label=f"{' '.join(cmd.argv)}  # {cmd.label}")
